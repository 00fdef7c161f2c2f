import base64
import hashlib
import json
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from unittest import TestCase
from unittest import mock

import pytest

from aadgraph.credentials import create_asymmetric_key_credential
from aadgraph.credentials import create_password_credential
from aadgraph.credentials import create_symmetric_key_credential
from aadgraph.lib import error
from aadgraph.lib.auth import decode_token_payload
from aadgraph.lib.auth import get_tenant_id
from aadgraph.lib.python_utilities import lower_camel_case
from aadgraph.lib.python_utilities import to_wire
from aadgraph.lib.url import URL
from aadgraph.requests import HTTPBearerAuth


class TestUtils(TestCase):
    def test_to_wire(self):
        # fmt: off
        self.assertEqual(to_wire('blatti'), b'blatti')
        self.assertEqual(to_wire(b'blatti'), b'blatti')
        self.assertEqual(to_wire('a\nb'), b'a\r\nb')
        self.assertEqual(to_wire('a\r\nb'), b'a\r\nb')
        self.assertEqual(to_wire(''), b'')
        self.assertEqual(to_wire(b''), b'')
        self.assertEqual(to_wire(None), None)
        # fmt: on

    def test_lower_camel_case(self):
        self.assertEqual(lower_camel_case("employee_code"), "employeeCode")
        self.assertEqual(lower_camel_case("EmployeeCode"), "employeeCode")
        self.assertEqual(lower_camel_case("skill"), "skill")


class TestURL:
    def test_join(self):
        url = URL("https://graph.windows.net/contoso.com/")
        assert str(url.join("users", None, "", "u1")) == (
            "https://graph.windows.net/contoso.com/users/u1"
        )

    def test_query_parameters(self):
        url = URL("https://graph.windows.net/contoso.com/users?a=1&b=2")
        assert str(url.set_query_parameter("a", "3")) == (
            "https://graph.windows.net/contoso.com/users?a=3&b=2"
        )
        assert str(url.set_query_parameter("c", "x y")) == (
            "https://graph.windows.net/contoso.com/users?a=1&b=2&c=x%20y"
        )

    def test_equality(self):
        assert URL("https://x/y") == "https://x/y"
        assert URL.objectify(None) is None
        assert URL("https://x/y").hostname == "x"


def make_token(claims):
    payload = base64.urlsafe_b64encode(json.dumps(claims).encode()).decode().rstrip("=")
    return "eyJ0eXAiOiJKV1QifQ.%s.sig" % payload


class TestAuth:
    def test_tenant_id(self):
        token = make_token({"tid": "t1", "aud": "https://graph.windows.net"})
        assert get_tenant_id(token) == "t1"
        assert get_tenant_id("Bearer " + token) == "t1"

    def test_garbage(self):
        assert decode_token_payload("garbage") == {}
        assert decode_token_payload("a.!!!.c") == {}
        assert get_tenant_id(make_token({"aud": "x"})) is None

    def test_bearer_auth(self):
        request = mock.Mock()
        request.headers = {}
        HTTPBearerAuth("Bearer abc")(request)
        assert request.headers["Authorization"] == "Bearer abc"


class TestCredentials:
    def setup_method(self):
        self.start = datetime.now(timezone.utc)
        self.end = self.start + timedelta(days=365)

    def test_password(self):
        credential = create_password_credential(self.start, self.end, "s3cret")
        wire = credential.to_wire(mutated_only=False)
        assert wire["value"] == "s3cret"
        assert wire["endDate"].endswith("Z")
        assert len(wire["keyId"]) == 36

    def test_password_dates(self):
        with pytest.raises(error.ValidationError):
            create_password_credential(self.end, self.start, "s3cret")
        with pytest.raises(error.ValidationError):
            create_password_credential(
                self.start - timedelta(days=10),
                self.start - timedelta(days=1),
                "s3cret",
            )
        with pytest.raises(error.ValidationError):
            create_password_credential(self.start, self.end, "")

    def test_symmetric(self):
        key = b"0123456789abcdef"
        credential = create_symmetric_key_credential(
            self.start, self.end, base64.b64encode(key).decode()
        )
        assert credential.value == key
        assert credential.type == "Symmetric"
        assert credential.usage == "Verify"
        assert credential.to_wire(mutated_only=False)["value"] == base64.b64encode(
            key
        ).decode()

    def test_symmetric_bad_base64(self):
        with pytest.raises(error.ValidationError):
            create_symmetric_key_credential(self.start, self.end, "not base64!")

    def test_asymmetric(self):
        certificate = b"0\x82\x01\x0a fake der"
        credential = create_asymmetric_key_credential(
            self.start, self.end, certificate
        )
        assert credential.type == "AsymmetricX509Cert"
        assert credential.custom_key_identifier == hashlib.sha1(certificate).digest()

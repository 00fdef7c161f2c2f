"""
Tests for the error resolver.
"""

import json

import pytest

from aadgraph.lib import error


def error_body(code, message="Something went wrong", values=None):
    odata_error = {"code": code, "message": {"lang": "en", "value": message}}
    if values is not None:
        odata_error["values"] = values
    return json.dumps({"odata.error": odata_error}).encode("utf-8")


class TestResolveError:
    @pytest.mark.parametrize(
        "code,error_class",
        [
            ("Authentication_MissingOrMalformed", error.AuthenticationError),
            ("Authentication_ExpiredToken", error.ExpiredTokenError),
            ("Authorization_RequestDenied", error.AuthorizationError),
            ("Request_ResourceNotFound", error.ObjectNotFoundError),
            ("Directory_ExpiredPageToken", error.PageNotAvailableError),
            ("Directory_ReplicaUnavailable", error.ServiceUnavailableError),
            ("Directory_QuotaExceeded", error.QuotaExceededError),
            ("Request_ThrottledTemporarily", error.RequestThrottledError),
            ("Request_MultipleObjectsWithSameKeyValue", error.DuplicateObjectError),
            ("Request_UnsupportedQuery", error.UnsupportedQueryError),
            ("Request_BadRequest", error.BadRequestError),
            ("Headers_HeaderNotSupported", error.InvalidHeaderError),
            ("Service_InternalServerError", error.InternalServerError),
        ],
    )
    def test_code_table(self, code, error_class):
        exc = error.resolve_error(400, error_body(code))
        assert type(exc) is error_class
        assert exc.code == code

    def test_expired_token(self):
        """Authentication_ExpiredToken resolves to ExpiredTokenError with context."""
        exc = error.resolve_error(
            401,
            error_body("Authentication_ExpiredToken", "Your access token has expired."),
            "https://graph.windows.net/contoso.com/users?api-version=2013-11-08",
            {"request-id": "abc"},
        )
        assert isinstance(exc, error.ExpiredTokenError)
        assert exc.status_code == 401
        assert exc.message == "Your access token has expired."
        assert exc.response_uri.startswith("https://graph.windows.net/")
        assert exc.response_headers == {"request-id": "abc"}
        assert exc.error_response["odata.error"]["code"] == "Authentication_ExpiredToken"

    def test_unknown_code(self):
        """Unknown codes give the generic error, with the code kept."""
        exc = error.resolve_error(400, error_body("Foo_Bar", "nope"))
        assert type(exc) is error.GraphError
        assert exc.code == "Foo_Bar"
        assert exc.message == "nope"

    def test_not_json(self):
        """Unparseable bodies give the generic error with code Unknown."""
        exc = error.resolve_error(502, b"<html>Bad gateway</html>")
        assert type(exc) is error.GraphError
        assert exc.code == "Unknown"
        assert exc.message == "<html>Bad gateway</html>"
        assert exc.status_code == 502

    def test_empty_body(self):
        """An empty body is kept as the message, there is nothing better."""
        exc = error.resolve_error(503, b"")
        assert exc.code == "Unknown"
        assert exc.message == ""
        assert exc.status_code == 503
        assert error.resolve_error(503, None).message == ""

    def test_extended_errors(self):
        exc = error.resolve_error(
            400,
            error_body(
                "Request_BadRequest",
                values=[
                    {"item": "PropertyName", "value": "mailNickname"},
                    {"item": "PropertyErrorCode", "value": "InvalidValue"},
                ],
            ),
        )
        assert exc.extended_errors == {
            "PropertyName": "mailNickname",
            "PropertyErrorCode": "InvalidValue",
        }

    def test_plain_string_message(self):
        body = json.dumps({"odata.error": {"code": "Request_BadRequest", "message": "bad"}})
        assert error.resolve_error(400, body).message == "bad"

    def test_str(self):
        exc = error.resolve_error(404, error_body("Request_ResourceNotFound"), "https://x")
        text = str(exc)
        assert "ObjectNotFoundError" in text
        assert "https://x" in text
        assert "Request_ResourceNotFound" in text

    def test_local_errors_have_no_status(self):
        exc = error.PropertyValidationError("ObjectId should be empty for create.")
        assert exc.status_code is None
        assert exc.message == "ObjectId should be empty for create."
        assert isinstance(exc, error.ValidationError)

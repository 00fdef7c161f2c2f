"""
Helpers for creating the key and password credentials of applications
and service principals.

    app.password_credentials.append(
        create_password_credential(start, end, "s3cret")
    )
    connection.update(app)
"""

import base64
import binascii
import hashlib
import uuid
from datetime import datetime
from datetime import timezone
from typing import Union

from aadgraph.directoryobjects import KeyCredential
from aadgraph.directoryobjects import PasswordCredential
from aadgraph.graphobject import to_utc
from aadgraph.lib import error

KEY_USAGE_VERIFY = "Verify"
KEY_TYPE_SYMMETRIC = "Symmetric"
KEY_TYPE_ASYMMETRIC_X509 = "AsymmetricX509Cert"


def _validate_dates(start_date: datetime, end_date: datetime) -> None:
    if to_utc(start_date) > to_utc(end_date):
        raise error.ValidationError("start_date should be before end_date")
    if to_utc(end_date) < datetime.now(timezone.utc):
        raise error.ValidationError("end_date should be in the future")


def create_password_credential(
    start_date: datetime, end_date: datetime, password: str
) -> PasswordCredential:
    _validate_dates(start_date, end_date)
    if not password:
        raise error.ValidationError("password should not be empty")
    return PasswordCredential(
        start_date=start_date,
        end_date=end_date,
        key_id=uuid.uuid4(),
        value=password,
    )


def create_symmetric_key_credential(
    start_date: datetime, end_date: datetime, key: Union[bytes, str]
) -> KeyCredential:
    """
    `key` is either the raw key, or the key encoded as base64 text.
    """
    _validate_dates(start_date, end_date)
    if isinstance(key, str):
        try:
            key = base64.b64decode(key, validate=True)
        except binascii.Error:
            raise error.ValidationError("key is not valid base64")
    if not key:
        raise error.ValidationError("key should not be empty")
    return KeyCredential(
        start_date=start_date,
        end_date=end_date,
        key_id=uuid.uuid4(),
        type=KEY_TYPE_SYMMETRIC,
        usage=KEY_USAGE_VERIFY,
        value=key,
    )


def create_asymmetric_key_credential(
    start_date: datetime, end_date: datetime, certificate: bytes
) -> KeyCredential:
    """
    `certificate` is the DER encoded X.509 certificate.  Its SHA-1
    thumbprint is used as custom key identifier.
    """
    _validate_dates(start_date, end_date)
    if not certificate:
        raise error.ValidationError("certificate should not be empty")
    return KeyCredential(
        start_date=start_date,
        end_date=end_date,
        key_id=uuid.uuid4(),
        custom_key_identifier=hashlib.sha1(certificate).digest(),
        type=KEY_TYPE_ASYMMETRIC_X509,
        usage=KEY_USAGE_VERIFY,
        value=certificate,
    )

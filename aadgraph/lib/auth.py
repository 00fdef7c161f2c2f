"""
Access token utilities.

The library does not acquire tokens, it only needs to peek into the
token it was given to find out which tenant it belongs to.
"""

from __future__ import annotations

import base64
import json

from aadgraph.lib import constants
from aadgraph.lib.error import log


def decode_token_payload(access_token: str) -> dict:
    """
    Decode the payload (middle part) of a JWT without verifying it.

    Args:
        access_token: the raw token, optionally prefixed with "Bearer ".

    Returns:
        The claims as a dict, or an empty dict if the token can't be decoded.
    """
    token = access_token.strip()
    if token.lower().startswith("bearer "):
        token = token[7:].strip()
    parts = token.split(".")
    if len(parts) < 2:
        return {}
    payload = parts[1]
    payload += "=" * (-len(payload) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload.encode("ascii")))
    except (ValueError, UnicodeError):
        log.debug("access token payload is not decodable json")
        return {}
    return claims if isinstance(claims, dict) else {}


def get_tenant_id(access_token: str) -> str | None:
    """
    Returns the tenant id claim of the token, or None.

    Example:
        >>> get_tenant_id(token)
        '4fd2b2f2-ea27-4fe5-a8f3-7b1a7c975f34'
    """
    return decode_token_payload(access_token).get(constants.TENANT_ID_CLAIM)

#!/usr/bin/env python
import json
import logging
import os
from typing import Any
from typing import Dict
from typing import Mapping
from typing import Optional
from typing import Union

from aadgraph import __version__
from aadgraph.lib import constants

## Environmental variables prepended with "PYTHON_AADGRAPH" are used for debug purposes,
## environmental variables prepended with "AADGRAPH_" are for connection parameters
debug_dump_communication = os.environ.get("PYTHON_AADGRAPH_COMMDUMP", False)
## one of DEBUG_PDB, DEBUG, DEVELOPMENT, PRODUCTION
debugmode = os.environ.get("PYTHON_AADGRAPH_DEBUGMODE")
if not debugmode:
    if "dev" in __version__ or __version__ == "(unknown)":
        debugmode = "DEVELOPMENT"
    else:
        debugmode = "PRODUCTION"

log = logging.getLogger("aadgraph")
if debugmode.startswith("DEBUG"):
    log.setLevel(logging.DEBUG)
else:
    log.setLevel(logging.WARNING)


def weirdness(*reasons):
    reason = " : ".join([str(x) for x in reasons])
    log.warning(f"Deviation from expectations found: {reason}")
    if debugmode == "DEBUG_PDB":
        log.error(f"Dropping into debugger due to {reason}")
        import pdb

        pdb.set_trace()


def assert_(condition: object) -> None:
    try:
        assert condition
    except AssertionError:
        if debugmode == "PRODUCTION":
            log.error(
                "Deviation from expectations found.  %s" % ERR_FRAGMENT, exc_info=True
            )
        elif debugmode == "DEBUG_PDB":
            log.error("Deviation from expectations found.  Dropping into debugger")
            import pdb

            pdb.set_trace()
        else:
            raise


ERR_FRAGMENT: str = "Please consider raising an issue on the aadgraph issue tracker, include this error, the traceback (if any) and the request-id response header"


class GraphError(Exception):
    """
    Base class for everything raised by this library.

    Errors coming from the service carry the HTTP status, the OData
    error code and message, the extended error pairs, the request URI
    and the response headers.  Errors raised locally, before anything
    is sent, leave the HTTP related attributes unset.
    """

    status_code: Optional[int] = None
    code: str = "Unknown"
    message: str = "no reason"
    response_uri: Optional[str] = None

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        extended_errors: Optional[Dict[str, str]] = None,
        error_response: Optional[Dict[str, Any]] = None,
        response_uri: Optional[str] = None,
        response_headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        if message is not None:
            self.message = message
        if code:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        if response_uri:
            self.response_uri = str(response_uri)
        self.extended_errors = dict(extended_errors or {})
        self.error_response = error_response
        self.response_headers = dict(response_headers or {})
        super().__init__(self.message)

    def __str__(self) -> str:
        ret = "%s at '%s', code %s, reason %s" % (
            self.__class__.__name__,
            self.response_uri,
            self.code,
            self.message,
        )
        if self.status_code is not None:
            ret += " (HTTP status %s)" % self.status_code
        if self.extended_errors:
            ret += ", details %s" % self.extended_errors
        return ret


class AuthenticationError(GraphError):
    """
    The access token was missing, malformed, or of a type the service
    does not accept.
    """

    pass


class ExpiredTokenError(GraphError):
    """
    The access token has expired.  A new one has to be acquired before
    the request is attempted again.
    """

    pass


class AuthorizationError(GraphError):
    """
    The caller is authenticated but not allowed to do what it asked for.
    """

    pass


class ObjectNotFoundError(GraphError):
    pass


class PageNotAvailableError(GraphError):
    """The continuation token is no longer valid"""

    pass


class ServiceUnavailableError(GraphError):
    """Transient service side failure, the request may be retried"""

    pass


class InvalidApiVersionError(GraphError):
    pass


class InvalidHeaderError(GraphError):
    pass


class BadRequestError(GraphError):
    pass


class UnsupportedQueryError(GraphError):
    pass


class DuplicateObjectError(GraphError):
    pass


class InternalServerError(GraphError):
    pass


class QuotaExceededError(GraphError):
    pass


class RequestThrottledError(GraphError):
    pass


class ResponseError(GraphError):
    """
    The response could not be understood, i.e. it was not valid json,
    or a batch response did not match the batch request.
    """

    pass


class TypeMismatchError(ResponseError):
    pass


class ValidationError(GraphError):
    """
    Raised before anything is sent to the service.  Never retried.
    """

    code = "ValidationFailed"


class PropertyValidationError(ValidationError):
    pass


class QueryValidationError(ValidationError):
    pass


class InvalidOperationError(GraphError):
    code = "InvalidOperation"


ERROR_CODE_MAP: Dict[str, type] = {
    "Authentication_MissingOrMalformed": AuthenticationError,
    "Authentication_Unauthorized": AuthenticationError,
    "Authentication_UnsupportedTokenType": AuthenticationError,
    "Authentication_ExpiredToken": ExpiredTokenError,
    "Authorization_IdentityDisabled": AuthorizationError,
    "Authorization_IdentityNotFound": AuthorizationError,
    "Authorization_RequestDenied": AuthorizationError,
    "Request_ResourceNotFound": ObjectNotFoundError,
    "Directory_ObjectNotFound": ObjectNotFoundError,
    "Directory_ExpiredPageToken": PageNotAvailableError,
    "Directory_ReplicaUnavailable": ServiceUnavailableError,
    "Directory_ConcurrencyViolation": ServiceUnavailableError,
    "Request_DataContractVersionMissing": InvalidApiVersionError,
    "Request_InvalidDataContractVersion": InvalidApiVersionError,
    "Headers_HeaderNotSupported": InvalidHeaderError,
    "Request_BadRequest": BadRequestError,
    "Request_InvalidRequestUrl": BadRequestError,
    "Request_UnsupportedQuery": UnsupportedQueryError,
    "Request_MultipleObjectsWithSameKeyValue": DuplicateObjectError,
    "Service_InternalServerError": InternalServerError,
    "Directory_QuotaExceeded": QuotaExceededError,
    "Request_ThrottledPermanently": RequestThrottledError,
    "Request_ThrottledTemporarily": RequestThrottledError,
}


def _parse_extended_errors(values: Any) -> Dict[str, str]:
    extended = {}
    if not isinstance(values, list):
        return extended
    for pair in values:
        if isinstance(pair, dict) and "item" in pair:
            extended[pair["item"]] = pair.get("value")
    return extended


def resolve_error(
    status_code: int,
    body: Union[bytes, str, None],
    response_uri: Optional[str] = None,
    response_headers: Optional[Mapping[str, str]] = None,
) -> GraphError:
    """
    Turns an error response body into the matching exception object.

    The exception is returned, not raised.  If the body is not an
    OData error envelope, a plain GraphError with code "Unknown" and
    the raw body as message is returned.
    """
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    raw = body or ""
    try:
        envelope = json.loads(raw)
        odata_error = envelope[constants.ODATA_ERROR_KEY]
        code = odata_error[constants.ODATA_ERROR_CODE_KEY]
    except (ValueError, KeyError, TypeError):
        log.debug("error response is not an odata error envelope: %r", raw[:200])
        return GraphError(
            message=raw,
            code="Unknown",
            status_code=status_code,
            response_uri=response_uri,
            response_headers=response_headers,
        )

    message = odata_error.get(constants.ODATA_ERROR_MESSAGE_KEY)
    if isinstance(message, dict):
        message = message.get("value")
    error_class = ERROR_CODE_MAP.get(code, GraphError)
    return error_class(
        message=message,
        code=code,
        status_code=status_code,
        extended_errors=_parse_extended_errors(
            odata_error.get(constants.ODATA_ERROR_VALUES_KEY)
        ),
        error_response=envelope,
        response_uri=response_uri,
        response_headers=response_headers,
    )

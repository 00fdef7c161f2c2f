"""
The multipart batch format.

A batch body looks like this (line endings are CRLF):

    --batch_<client request id>
    Content-Type: application/http
    Content-Transfer-Encoding: binary

    GET https://graph.windows.net/contoso.com/users/<id>?api-version=2013-11-08 HTTP/1.1
    Content-Type: application/json;odata=minimalmetadata
    Accept: application/json;odata=minimalmetadata
    Prefer: return-content
    Accept-Charset: UTF-8

    --batch_<client request id>
    Content-Type: multipart/mixed; boundary=changeset_<changeset id>

    --changeset_<changeset id>
    Content-Type: application/http
    Content-Transfer-Encoding: binary

    PATCH https://graph.windows.net/contoso.com/users/<id>?api-version=2013-11-08 HTTP/1.1
    ...

    {"displayName": "Bob"}
    --changeset_<changeset id>--
    --batch_<client request id>--

Every mutating item gets a changeset of its own.  Responses come back
in the same order as the requests, and are correlated by position.
"""

import json
import re
import uuid
from typing import Callable, List, Optional, Sequence, Tuple

from aadgraph.lib import constants
from aadgraph.lib import error
from aadgraph.lib.error import log

from .json_parsers import deserialize_response
from .types import BatchRequestItem, BatchResponseItem

CRLF = "\r\n"

_STATUS_LINE_RE = re.compile(r"^HTTP/1\.[01] (\d{3})(?: (.*))?$")
_HEADER_LINE_RE = re.compile(r"^([A-Za-z0-9!#$%&'*+.^_`|~-]+):\s*(.*)$")
_BOUNDARY_RE = re.compile(r"boundary=\"?([^\";]+)\"?", re.IGNORECASE)


def batch_content_type(batch_id: str) -> str:
    return "multipart/mixed; boundary=%s%s" % (constants.BATCH_BOUNDARY_PREFIX, batch_id)


def validate_batch_size(items: Sequence[BatchRequestItem]) -> None:
    if not 1 <= len(items) <= constants.MAX_BATCH_ITEMS:
        raise error.ValidationError(
            "Invalid batch request. Should contain 1 to %i items, got %i."
            % (constants.MAX_BATCH_ITEMS, len(items))
        )


def render_item(item: BatchRequestItem) -> str:
    """The multipart text of one item, changeset closing line excluded"""
    lines = ["--%s%s" % (constants.BATCH_BOUNDARY_PREFIX, item.batch_id)]
    if item.is_changeset_required:
        changeset = constants.CHANGESET_BOUNDARY_PREFIX + item.changeset_id
        lines.append("Content-Type: multipart/mixed; boundary=%s" % changeset)
        lines.append("")
        lines.append("--%s" % changeset)
    lines.append("Content-Type: application/http")
    lines.append("Content-Transfer-Encoding: binary")
    lines.append("")
    lines.append("%s %s HTTP/1.1" % (item.method.value, item.request_uri))

    headers = dict(item.headers)
    headers["Content-Type"] = constants.MINIMAL_METADATA_CONTENT_TYPE
    headers["Accept"] = constants.MINIMAL_METADATA_CONTENT_TYPE
    headers[constants.HEADER_PREFER] = constants.PREFER_RETURN_CONTENT
    headers[constants.HEADER_ACCEPT_CHARSET] = constants.CHARSET_UTF8
    for name, value in headers.items():
        lines.append("%s: %s" % (name, value))
    lines.append("")
    if item.body:
        lines.append(item.body)
    return CRLF.join(lines) + CRLF


def build_batch_body(
    items: Sequence[BatchRequestItem],
    batch_id: str,
    new_changeset_id: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> Tuple[str, str]:
    """
    Render the batch.

    The items get `batch_id` assigned, and the ones needing a changeset
    get a fresh changeset id.

    Returns:
        (content type, body)

    Raises:
        ValidationError: not 1 to 5 items
    """
    validate_batch_size(items)
    parts = []
    for item in items:
        item.batch_id = batch_id
        if item.is_changeset_required:
            item.changeset_id = new_changeset_id()
        parts.append(render_item(item))
        if item.is_changeset_required:
            parts.append(
                "--%s%s--%s"
                % (constants.CHANGESET_BOUNDARY_PREFIX, item.changeset_id, CRLF)
            )
    parts.append("--%s%s--" % (constants.BATCH_BOUNDARY_PREFIX, batch_id))
    return batch_content_type(batch_id), "".join(parts)


def parse_boundary(content_type: Optional[str]) -> str:
    match = _BOUNDARY_RE.search(content_type or "")
    if not match:
        raise error.ResponseError(
            message="No multipart boundary in batch response content type %r"
            % content_type
        )
    return match.group(1)


def _parse_item_body(
    item: BatchResponseItem, line: str, request_uri: Optional[str]
) -> None:
    """
    Stores the json body of one sub-response in the item, either as
    its result set or as its exception.  The key order of the json
    object does not matter.
    """
    try:
        root = json.loads(line)
    except ValueError:
        root = None
    if isinstance(root, dict) and constants.ODATA_ERROR_KEY in root:
        item.failed = True
        item.exception = error.resolve_error(
            item.status if item.status >= 400 else 400, line, request_uri, item.headers
        )
        return
    try:
        item.result_set = deserialize_response(line, request_uri)
    except error.GraphError as e:
        log.warning("could not parse batch item from %s: %s", request_uri, e)
        item.failed = True
        item.exception = e


def parse_batch_response(
    content_type: Optional[str],
    body: str,
    request_items: Sequence[BatchRequestItem],
    response_uri: Optional[str] = None,
) -> List[BatchResponseItem]:
    """
    Split a batch response into one BatchResponseItem per request item.

    The text is walked line by line.  A status line starts a new item.
    A json object with an "odata.error" key is an error, any other
    json object is a result, other "Name: value" lines following the
    status line are the item's headers.  Failures of single items,
    including bodies that can't be parsed, are kept in the items and
    parsing goes on.

    Raises:
        ResponseError: no boundary, or not one response per request
    """
    boundary = parse_boundary(content_type)
    if "--" + boundary not in body:
        raise error.ResponseError(
            message="Batch response does not contain its boundary %s" % boundary,
            response_uri=response_uri,
        )

    responses: List[BatchResponseItem] = []
    current: Optional[BatchResponseItem] = None
    for line in body.splitlines():
        line = line.strip()
        if not line:
            continue
        if line.startswith("--"):
            ## a new part, or the end of one
            current = None
            continue

        status_match = _STATUS_LINE_RE.match(line)
        if status_match:
            current = BatchResponseItem(status=int(status_match.group(1)))
            current.failed = current.status >= 400
            responses.append(current)
            continue
        if current is None:
            ## part headers of the multipart envelope
            continue

        idx = len(responses) - 1
        request_uri = request_items[idx].request_uri if idx < len(request_items) else None
        if line.startswith("{"):
            _parse_item_body(current, line, request_uri)
        else:
            header_match = _HEADER_LINE_RE.match(line)
            if header_match:
                current.headers[header_match.group(1)] = header_match.group(2)
            else:
                error.weirdness("unexpected line in batch response", line)

    if len(responses) != len(request_items):
        raise error.ResponseError(
            message="Got %i responses to a batch of %i requests"
            % (len(responses), len(request_items)),
            response_uri=response_uri,
        )

    for idx, item in enumerate(responses):
        if item.failed and item.exception is None:
            item.exception = error.resolve_error(
                item.status, "", request_items[idx].request_uri, item.headers
            )
    return responses

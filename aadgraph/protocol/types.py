"""
Core protocol types.

These dataclasses represent HTTP requests and responses, and the
parsed results of a response, independent of any I/O implementation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class HttpVerb(Enum):
    """HTTP methods used against the graph."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @property
    def is_mutating(self) -> bool:
        return self is not HttpVerb.GET


@dataclass(frozen=True)
class GraphRequest:
    """
    Represents an HTTP request to be made.

    This is a pure data structure with no I/O. It describes what request
    should be made, but does not make it.

    Attributes:
        method: HTTP method
        url: Full URL for the request, api-version included
        headers: HTTP headers as dict
        body: Request body (optional)
        batchable: False for operations that can't be part of a batch
    """

    method: HttpVerb
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None
    batchable: bool = True

    def with_header(self, name: str, value: str) -> "GraphRequest":
        """Return new request with additional header."""
        return GraphRequest(
            method=self.method,
            url=self.url,
            headers={**self.headers, name: value},
            body=self.body,
            batchable=self.batchable,
        )


@dataclass(frozen=True)
class GraphResponse:
    """
    Represents an HTTP response received.

    Attributes:
        status: HTTP status code
        headers: HTTP headers as dict
        body: Response body as bytes
    """

    status: int
    headers: dict[str, str]
    body: bytes

    @property
    def ok(self) -> bool:
        """True if status indicates success (2xx)."""
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        """Case insensitive header lookup."""
        lname = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lname:
                return value
        return None


@dataclass
class PagedResults:
    """
    One page of results.

    A response carries either entities (`items`) or plain values like
    strings and booleans (`mixed_items`), never both.

    Attributes:
        items: the entities, in server order
        mixed_items: values that aren't entities, as text
        page_token: continuation token for the next page, None on the last page
        request_uri: the URI that produced this page
    """

    items: list[Any] = field(default_factory=list)
    mixed_items: list[str] = field(default_factory=list)
    page_token: Optional[str] = None
    request_uri: Optional[str] = None

    @property
    def is_last_page(self) -> bool:
        return not self.page_token

    def __iter__(self):
        return iter(self.items)


@dataclass
class BatchRequestItem:
    """
    One operation queued in a batch.

    Attributes:
        method: HTTP method
        request_uri: target URI, absolute
        body: request body text, or None
        headers: additional headers for this item
        is_changeset_required: wrap the item in its own changeset
        batch_id: the client request id shared by the whole batch
        changeset_id: set when the batch body is built
    """

    method: HttpVerb
    request_uri: str
    body: Optional[str] = None
    headers: dict[str, str] = field(default_factory=dict)
    is_changeset_required: bool = False
    batch_id: Optional[str] = None
    changeset_id: Optional[str] = None


@dataclass
class BatchResponseItem:
    """
    The outcome of one batch item.

    Attributes:
        failed: True if the item failed
        result_set: parsed results for a successful item
        exception: the resolved error for a failed item
        headers: response headers of the item
        status: HTTP status of the item
    """

    failed: bool = False
    result_set: Optional[PagedResults] = None
    exception: Optional[Exception] = None
    headers: dict[str, str] = field(default_factory=dict)
    status: Optional[int] = None

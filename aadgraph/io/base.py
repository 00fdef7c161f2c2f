"""
Abstract I/O protocol definition.

This module defines the interface that all I/O implementations must follow.
"""

from typing import Protocol, runtime_checkable

from aadgraph.protocol.types import GraphRequest, GraphResponse


@runtime_checkable
class SyncIOProtocol(Protocol):
    """
    Protocol defining the synchronous I/O interface.

    Implementations must provide a way to execute GraphRequest objects
    and return GraphResponse objects synchronously.  Error responses
    are returned like any other response, not raised.
    """

    def execute(self, request: GraphRequest) -> GraphResponse:
        """
        Execute a request and return the response.

        Args:
            request: The GraphRequest to execute

        Returns:
            GraphResponse with status, headers, and body
        """
        ...

    def close(self) -> None:
        """Close any resources (e.g., HTTP session)."""
        ...

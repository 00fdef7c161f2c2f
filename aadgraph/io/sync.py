"""
Synchronous I/O implementation using the requests library.
"""

from typing import Optional

import requests
from requests.auth import AuthBase

from aadgraph.protocol.types import GraphRequest, GraphResponse


class SyncIO:
    """
    Synchronous I/O shell using the requests library.

    This is a thin wrapper that executes GraphRequest objects via HTTP
    and returns GraphResponse objects.

    Example:
        io = SyncIO(auth=HTTPBearerAuth(token))
        request = protocol.get_request(User, object_id)
        response = io.execute(request)
        user = protocol.parse_single(response, request, User)
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        auth: Optional[AuthBase] = None,
        timeout: float = 30.0,
        verify: bool = True,
    ):
        """
        Initialize the sync I/O handler.

        Args:
            session: Existing requests Session to use (creates new if None)
            auth: requests auth object, i.e. HTTPBearerAuth
            timeout: Request timeout in seconds
            verify: Verify SSL certificates
        """
        self._owns_session = session is None
        self.session = session or requests.Session()
        if auth is not None:
            self.session.auth = auth
        self.timeout = timeout
        self.verify = verify

    def execute(self, request: GraphRequest) -> GraphResponse:
        """
        Execute a GraphRequest and return GraphResponse.

        Args:
            request: The request to execute

        Returns:
            GraphResponse with status, headers, and body
        """
        response = self.session.request(
            method=request.method.value,
            url=request.url,
            headers=request.headers,
            data=request.body,
            timeout=self.timeout,
            verify=self.verify,
        )

        return GraphResponse(
            status=response.status_code,
            headers=dict(response.headers),
            body=response.content,
        )

    def close(self) -> None:
        """Close the session if we created it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self) -> "SyncIO":
        """Context manager entry."""
        return self

    def __exit__(self, *args) -> None:
        """Context manager exit."""
        self.close()

"""
I/O layer for the graph protocol.

This module provides the implementation for executing GraphRequest
objects and returning GraphResponse objects.

The I/O layer is intentionally thin - it only handles HTTP transport.
All protocol logic (json building/parsing) is in aadgraph.protocol.

Example:
    from aadgraph.protocol import GraphProtocol, GraphContext
    from aadgraph.io import SyncIO

    protocol = GraphProtocol(GraphContext(tenant="contoso.com"))
    with SyncIO(auth=HTTPBearerAuth(token)) as io:
        request = protocol.list_request(User)
        response = io.execute(request)
        results = protocol.parse_results(response, request, User)
"""

from .base import SyncIOProtocol
from .sync import SyncIO

__all__ = [
    # Protocols
    "SyncIOProtocol",
    # Implementations
    "SyncIO",
]

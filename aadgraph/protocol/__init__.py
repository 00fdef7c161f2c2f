"""
Sans-I/O graph protocol implementation.

This module provides protocol-level operations without any I/O.
It builds requests and parses responses as pure data transformations.

The protocol layer is organized into:
- types: Core data structures (GraphRequest, GraphResponse, result types)
- json_builders: Pure functions to build json request bodies
- json_parsers: Pure functions to parse json response bodies
- uri: Request URI building
- batch: The multipart batch format
- operations: GraphProtocol class combining all of the above

Example:
    from aadgraph.protocol import GraphProtocol, GraphContext, GraphResponse

    protocol = GraphProtocol(GraphContext(tenant="contoso.com"))
    request = protocol.list_request(User)
    # ... execute request with your preferred I/O ...
    response = GraphResponse(status=200, headers={}, body=b"...")
    results = protocol.parse_results(response, request, User)
"""

from .batch import build_batch_body, parse_batch_response
from .json_builders import build_action_body, build_entity_body, build_link_body
from .json_parsers import (
    MetadataType,
    deserialize_response,
    materialize_entity,
    parse_metadata_type,
)
from .operations import GraphProtocol
from .types import (
    BatchRequestItem,
    BatchResponseItem,
    GraphRequest,
    GraphResponse,
    HttpVerb,
    PagedResults,
)
from .uri import GraphContext, request_uri

__all__ = [
    # Types
    "HttpVerb",
    "GraphRequest",
    "GraphResponse",
    "PagedResults",
    "BatchRequestItem",
    "BatchResponseItem",
    "MetadataType",
    "GraphContext",
    # Builders
    "build_entity_body",
    "build_link_body",
    "build_action_body",
    "build_batch_body",
    "request_uri",
    # Parsers
    "deserialize_response",
    "materialize_entity",
    "parse_metadata_type",
    "parse_batch_response",
    # Protocol
    "GraphProtocol",
]

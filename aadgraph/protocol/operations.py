"""
Graph protocol operations combining request building and response parsing.

This class provides a high-level interface to the graph operations
while remaining completely I/O-free.
"""

import uuid
from typing import Any, Dict, List, Optional, Sequence, Type, Union

from aadgraph.filters import GraphQuery
from aadgraph.graphobject import GraphObject
from aadgraph.graphobject import Link
from aadgraph.lib import constants
from aadgraph.lib import error
from aadgraph.lib.python_utilities import to_normal_str

from . import uri as uris
from .batch import build_batch_body, parse_batch_response
from .json_builders import build_action_body, build_entity_body, build_link_body
from .json_parsers import deserialize_response
from .types import (
    BatchRequestItem,
    BatchResponseItem,
    GraphRequest,
    GraphResponse,
    HttpVerb,
    PagedResults,
)


class GraphProtocol:
    """
    Sans-I/O graph protocol handler.

    Builds requests and parses responses without doing any I/O.
    All HTTP communication is delegated to an external I/O implementation.

    Example:
        protocol = GraphProtocol(GraphContext(tenant="contoso.com"))

        # Build request
        request = protocol.get_request(User, "8f2b...")

        # Execute with your I/O (not shown)
        response = io.execute(request)

        # Parse response
        user = protocol.parse_single(response, request, User)
    """

    def __init__(
        self,
        context: Optional[uris.GraphContext] = None,
        client_request_id: Optional[str] = None,
    ):
        """
        Args:
            context: endpoint, tenant and api version
            client_request_id: correlation id sent with every request
        """
        self.context = context or uris.GraphContext()
        self.client_request_id = client_request_id or str(uuid.uuid4())

    def _base_headers(self) -> Dict[str, str]:
        """Return base headers for all requests."""
        return {
            "Content-Type": constants.MINIMAL_METADATA_CONTENT_TYPE,
            "Accept": constants.MINIMAL_METADATA_CONTENT_TYPE,
            constants.HEADER_CLIENT_REQUEST_ID: self.client_request_id,
            constants.HEADER_PREFER: constants.PREFER_RETURN_CONTENT,
            constants.HEADER_ACCEPT_CHARSET: constants.CHARSET_UTF8,
        }

    def _request(
        self,
        method: HttpVerb,
        url: Any,
        body: Optional[Union[str, bytes]] = None,
        batchable: bool = True,
        **headers: str,
    ) -> GraphRequest:
        if isinstance(body, str):
            body = body.encode("utf-8")
        return GraphRequest(
            method=method,
            url=str(url),
            headers={**self._base_headers(), **headers},
            body=body,
            batchable=batchable,
        )

    @staticmethod
    def _link(entity_class: Type[GraphObject], link: Union[Link, str]) -> Link:
        prop = link if isinstance(link, Link) else entity_class.lookup_property(link)
        if not isinstance(prop, Link):
            raise error.PropertyValidationError(
                "%s is not a link of %s" % (link, entity_class.__name__)
            )
        return prop

    @staticmethod
    def _check_id(entity: GraphObject) -> None:
        if not entity.object_id:
            raise error.PropertyValidationError("ObjectId should not be empty.")

    # =========================================================================
    # Request builders
    # =========================================================================

    def list_request(
        self,
        entity_class: Type[GraphObject],
        page_token: Optional[str] = None,
        query: Optional[GraphQuery] = None,
    ) -> GraphRequest:
        """Build a request listing an entity set"""
        return self._request(
            HttpVerb.GET,
            uris.list_uri(self.context, entity_class, page_token, query),
        )

    def get_request(
        self,
        entity_class: Type[GraphObject],
        object_id: str,
        expand: Optional[Union[Link, str]] = None,
    ) -> GraphRequest:
        """Build a request for a single object, optionally expanding a link"""
        query = GraphQuery(expand=expand) if expand is not None else None
        return self._request(
            HttpVerb.GET, uris.get_uri(self.context, entity_class, object_id, query)
        )

    def add_request(self, entity: GraphObject) -> GraphRequest:
        """
        Build the POST creating `entity`.  The entity is validated and
        only its changed properties are sent.
        """
        entity.validate_for_submit(is_create=True)
        return self._request(
            HttpVerb.POST,
            uris.request_uri(self.context, type(entity)),
            build_entity_body(entity),
        )

    def update_request(self, entity: GraphObject) -> GraphRequest:
        """Build the PATCH sending the changed properties of `entity`"""
        entity.validate_for_submit(is_create=False)
        return self._request(
            HttpVerb.PATCH,
            uris.request_uri(self.context, type(entity), entity.object_id),
            build_entity_body(entity),
        )

    def delete_request(self, entity: GraphObject) -> GraphRequest:
        self._check_id(entity)
        return self._request(
            HttpVerb.DELETE,
            uris.request_uri(self.context, type(entity), entity.object_id),
        )

    def add_containment_request(
        self, parent: GraphObject, entity: GraphObject
    ) -> GraphRequest:
        self._check_id(parent)
        entity.validate_for_submit(is_create=True)
        return self._request(
            HttpVerb.POST,
            uris.containment_uri(self.context, parent, type(entity)),
            build_entity_body(entity),
        )

    def update_containment_request(
        self, parent: GraphObject, entity: GraphObject
    ) -> GraphRequest:
        self._check_id(parent)
        entity.validate_for_submit(is_create=False)
        return self._request(
            HttpVerb.PATCH,
            uris.containment_uri(self.context, parent, type(entity), entity.object_id),
            build_entity_body(entity),
        )

    def list_containments_request(
        self,
        parent: GraphObject,
        containment_class: Type[GraphObject],
        page_token: Optional[str] = None,
        query: Optional[GraphQuery] = None,
    ) -> GraphRequest:
        self._check_id(parent)
        return self._request(
            HttpVerb.GET,
            uris.list_uri(self.context, containment_class, page_token, query, parent),
        )

    def get_containment_request(
        self,
        parent: GraphObject,
        containment_class: Type[GraphObject],
        object_id: str,
    ) -> GraphRequest:
        self._check_id(parent)
        return self._request(
            HttpVerb.GET,
            uris.containment_uri(self.context, parent, containment_class, object_id),
        )

    def delete_containment_request(
        self, parent: GraphObject, entity: GraphObject
    ) -> GraphRequest:
        self._check_id(parent)
        self._check_id(entity)
        return self._request(
            HttpVerb.DELETE,
            uris.containment_uri(self.context, parent, type(entity), entity.object_id),
        )

    def linked_objects_request(
        self,
        entity: GraphObject,
        link: Union[Link, str],
        page_token: Optional[str] = None,
        top: int = -1,
    ) -> GraphRequest:
        """Build a request for the objects behind a link, i.e. a group's members"""
        self._check_id(entity)
        prop = self._link(type(entity), link)
        return self._request(
            HttpVerb.GET,
            uris.request_uri(
                self.context,
                type(entity),
                entity.object_id,
                prop.wire_name,
                page_token=page_token,
                top=top,
            ),
        )

    def add_link_request(
        self, source: GraphObject, target: GraphObject, link: Union[Link, str]
    ) -> GraphRequest:
        """
        Single valued links (like manager) are replaced with PUT, other
        links get the target added with POST.
        """
        self._check_id(source)
        self._check_id(target)
        prop = self._link(type(source), link)
        return self._request(
            HttpVerb.PUT if prop.single_valued else HttpVerb.POST,
            uris.request_uri(
                self.context,
                type(source),
                source.object_id,
                constants.LINKS_FRAGMENT,
                prop.wire_name,
            ),
            build_link_body(uris.object_uri(self.context, target)),
        )

    def delete_link_request(
        self,
        source: GraphObject,
        target: Optional[GraphObject],
        link: Union[Link, str],
    ) -> GraphRequest:
        self._check_id(source)
        prop = self._link(type(source), link)
        target_id = None
        if not prop.single_valued:
            if target is None:
                raise error.PropertyValidationError(
                    "the target object is needed to remove it from %s" % prop.wire_name
                )
            self._check_id(target)
            target_id = target.object_id
        return self._request(
            HttpVerb.DELETE,
            uris.request_uri(
                self.context,
                type(source),
                source.object_id,
                constants.LINKS_FRAGMENT,
                prop.wire_name,
                target_id,
            ),
        )

    def get_stream_request(
        self, entity: GraphObject, property_name: str, accept_type: str
    ) -> GraphRequest:
        self._check_id(entity)
        return self._request(
            HttpVerb.GET,
            uris.request_uri(
                self.context, type(entity), entity.object_id, property_name
            ),
            batchable=False,
            Accept=accept_type,
        )

    def set_stream_request(
        self,
        entity: GraphObject,
        property_name: str,
        data: bytes,
        content_type: str,
    ) -> GraphRequest:
        self._check_id(entity)
        request = self._request(
            HttpVerb.PUT,
            uris.request_uri(
                self.context, type(entity), entity.object_id, property_name
            ),
            data,
            batchable=False,
        )
        return request.with_header("Content-Type", content_type)

    def action_request(
        self,
        action: str,
        parameters: Optional[Dict[str, Any]] = None,
        entity: Optional[GraphObject] = None,
    ) -> GraphRequest:
        """
        Build the POST invoking a service action, bound to `entity` if
        given, otherwise to the tenant.
        """
        if entity is not None:
            self._check_id(entity)
            url = uris.request_uri(self.context, type(entity), entity.object_id, action)
        else:
            url = uris.request_uri(self.context, None, None, action)
        return self._request(
            HttpVerb.POST, url, build_action_body(parameters), batchable=False
        )

    def batch_request(
        self, items: Sequence[BatchRequestItem], batch_id: Optional[str] = None
    ) -> GraphRequest:
        """
        Build the POST to $batch.

        Raises:
            ValidationError: not 1 to 5 items
        """
        content_type, body = build_batch_body(
            items, batch_id or self.client_request_id
        )
        return self._request(
            HttpVerb.POST,
            uris.request_uri(self.context, None, None, constants.BATCH_FRAGMENT),
            body,
            batchable=False,
        ).with_header("Content-Type", content_type)

    @staticmethod
    def batch_item(request: GraphRequest) -> BatchRequestItem:
        """The batch item for a request, mutating requests get a changeset"""
        return BatchRequestItem(
            method=request.method,
            request_uri=request.url,
            body=to_normal_str(request.body),
            is_changeset_required=request.method.is_mutating,
        )

    # =========================================================================
    # Response parsers
    # =========================================================================

    def check_response(self, response: GraphResponse, request: GraphRequest) -> None:
        """
        Raises the resolved error if the response isn't a success.
        """
        if not response.ok:
            raise error.resolve_error(
                response.status, response.body, request.url, response.headers
            )

    def parse_results(
        self,
        response: GraphResponse,
        request: GraphRequest,
        expected: Optional[Type[GraphObject]] = None,
    ) -> PagedResults:
        self.check_response(response, request)
        return deserialize_response(response.body, request.url, expected)

    def parse_single(
        self,
        response: GraphResponse,
        request: GraphRequest,
        expected: Optional[Type[GraphObject]] = None,
    ) -> GraphObject:
        """
        The one entity in a response.

        Raises:
            ResponseError: there wasn't exactly one entity
        """
        results = self.parse_results(response, request, expected)
        if len(results.items) != 1:
            raise error.ResponseError(
                message="Unable to deserialize the response, expected one object, got %i"
                % len(results.items),
                response_uri=request.url,
                response_headers=response.headers,
            )
        return results.items[0]

    def parse_mixed(
        self, response: GraphResponse, request: GraphRequest
    ) -> List[str]:
        return self.parse_results(response, request).mixed_items

    def parse_batch(
        self,
        response: GraphResponse,
        request: GraphRequest,
        items: Sequence[BatchRequestItem],
    ) -> List[BatchResponseItem]:
        self.check_response(response, request)
        try:
            body = to_normal_str(response.body)
        except UnicodeDecodeError as e:
            raise error.ResponseError(
                message="Batch response is not valid utf-8: %s" % e,
                response_uri=request.url,
            ) from e
        return parse_batch_response(
            response.header("Content-Type"),
            body,
            items,
            request.url,
        )

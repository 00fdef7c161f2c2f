"""
Request URI building.

Every URI has the form

    https://<graph domain>/<tenant>/<entity set>[/<id>][/<fragment>...]?api-version=<version>[&...]

All functions here are pure: the same input always gives the same URI.
"""

from dataclasses import dataclass
from typing import Any, Optional, Type
from urllib.parse import quote

from aadgraph.filters import GraphQuery
from aadgraph.graphobject import GraphObject
from aadgraph.lib import constants
from aadgraph.lib.url import URL


@dataclass(frozen=True)
class GraphContext:
    """
    What a URI needs to know about the connection.

    Attributes:
        tenant: tenant id or domain name, or "myorganization"
        api_version: value of the api-version query parameter
        graph_domain: host name of the service
    """

    tenant: str = constants.COMMON_TENANT_NAME
    api_version: str = constants.DEFAULT_API_VERSION
    graph_domain: str = constants.DEFAULT_GRAPH_DOMAIN

    @property
    def endpoint(self) -> URL:
        return URL(
            constants.ENDPOINT_FORMAT.format(
                domain=self.graph_domain, tenant=self.tenant
            )
        )


def _quote_id(object_id: Any) -> Optional[str]:
    if object_id is None or object_id == "":
        return None
    return quote(str(object_id), safe="")


def request_uri(
    context: GraphContext,
    entity_class: Optional[Type[GraphObject]] = None,
    object_id: Any = None,
    *fragments: Optional[str],
    page_token: Optional[str] = None,
    top: int = -1,
) -> URL:
    """
    Build a request URI.

    Args:
        context: endpoint, tenant and api version
        entity_class: gives the entity set, None for tenant level actions
        object_id: id of a single object
        fragments: further path segments, None and "" are skipped
        page_token: continuation token from a previous page.  If given,
            it replaces the whole path.
        top: page size, ignored unless positive

    Returns:
        URL with the api-version parameter set
    """
    if page_token:
        if page_token.startswith(("http://", "https://")):
            uri = URL(page_token)
        else:
            uri = URL(
                str(context.endpoint.strip_trailing_slash()) + "/" + page_token.lstrip("/")
            )
    else:
        segments = []
        if entity_class is not None:
            segments.append(entity_class.entity_set_name)
        segments.append(_quote_id(object_id))
        segments.extend(fragments)
        uri = context.endpoint.join(*segments)

    uri = uri.set_query_parameter(
        constants.QUERY_PARAMETER_API_VERSION, context.api_version
    )
    if top and top > 0:
        uri = uri.set_query_parameter(constants.QUERY_PARAMETER_TOP, str(top))
    return uri


def containment_uri(
    context: GraphContext,
    parent: GraphObject,
    containment_class: Type[GraphObject],
    containment_id: Any = None,
    *fragments: Optional[str],
    page_token: Optional[str] = None,
) -> URL:
    """
    URI of objects contained by `parent`, like
    .../applications/<id>/extensionProperties[/<containment_id>]
    """
    return request_uri(
        context,
        type(parent),
        parent.object_id,
        containment_class.entity_set_name,
        _quote_id(containment_id),
        *fragments,
        page_token=page_token,
    )


def list_uri(
    context: GraphContext,
    entity_class: Type[GraphObject],
    page_token: Optional[str] = None,
    query: Optional[GraphQuery] = None,
    parent: Optional[GraphObject] = None,
) -> URL:
    """
    URI for listing an entity set (or the objects contained by
    `parent`), with the query parameters of `query` added.
    """
    if parent is not None:
        uri = containment_uri(context, parent, entity_class, page_token=page_token)
    else:
        uri = request_uri(context, entity_class, page_token=page_token)
    if query is not None:
        for name, value in query.parameters(entity_class):
            uri = uri.set_query_parameter(name, value)
    return uri


def get_uri(
    context: GraphContext,
    entity_class: Type[GraphObject],
    object_id: Any,
    query: Optional[GraphQuery] = None,
) -> URL:
    """
    URI of a single object.  Only $expand (and free form parameters)
    are allowed in the query.
    """
    uri = request_uri(context, entity_class, object_id)
    if query is not None:
        query.check_single_object()
        for name, value in query.parameters(entity_class):
            uri = uri.set_query_parameter(name, value)
    return uri


def object_uri(context: GraphContext, entity: GraphObject) -> URL:
    """
    The URI of an object in its own entity set, with the api-version,
    as used in the body when adding a link.
    """
    return request_uri(context, type(entity), entity.object_id)

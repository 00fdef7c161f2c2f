"""
Pure functions for parsing json responses of the graph service.

All functions take the raw response body (and the request uri, for
diagnostics) and return structured data.  No I/O is done here.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Type, Union

from aadgraph.graphobject import GraphObject
from aadgraph.lib import constants
from aadgraph.lib import error
from aadgraph.registry import registry as default_registry
from aadgraph.registry import TypeRegistry

from .types import PagedResults

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetadataType:
    """
    What the odata.metadata marker of a response says about it.

    Attributes:
        entity_class: entity class of the entity set, if it's one
        is_entity: the response carries entities
        is_collection: True/False if the marker tells, None if unknown
    """

    entity_class: Optional[Type[GraphObject]] = None
    is_entity: bool = False
    is_collection: Optional[bool] = None


def parse_metadata_type(
    metadata: Optional[str], registry: TypeRegistry = default_registry
) -> MetadataType:
    """
    Classifies a response by its metadata marker, like

        https://graph.windows.net/contoso.com/$metadata#users
        https://graph.windows.net/contoso.com/$metadata#directoryObjects/Microsoft.WindowsAzure.ActiveDirectory.User/@Element
        https://graph.windows.net/contoso.com/$metadata#Collection(Edm.String)
    """
    if not metadata:
        return MetadataType()
    segments = [x for x in metadata.split("/") if x]
    if len(segments) < 4:
        return MetadataType()
    type_segment = segments[3]
    if "#" in type_segment:
        type_segment = type_segment[type_segment.index("#") + 1 :]

    entity_class = registry.resolve_by_set_name(type_segment)
    if entity_class is not None:
        return MetadataType(
            entity_class=entity_class,
            is_entity=True,
            is_collection=not metadata.endswith(constants.ELEMENT_SUFFIX),
        )
    if type_segment.startswith(constants.COLLECTION_PREFIX):
        return MetadataType(is_collection=True)
    return MetadataType()


def materialize_entity(
    data: dict,
    expected: Optional[Type[GraphObject]] = None,
    resolved: Optional[Type[GraphObject]] = None,
    registry: TypeRegistry = default_registry,
) -> GraphObject:
    """
    Builds an entity from a json object.

    The class is picked from the object's discriminator, falling back
    to the class found from the metadata marker, and then to the
    expected class.  If the expected class is a subclass of the picked
    one (i.e. a user class with extension properties), the expected
    class is used.

    Raises:
        TypeMismatchError: the picked class isn't the expected one
    """
    expected = expected or GraphObject
    cls = registry.resolve(data.get(constants.ODATA_TYPE_KEY)) or resolved or expected
    if cls is not expected and issubclass(expected, cls):
        cls = expected
    if not issubclass(cls, expected):
        raise error.TypeMismatchError(
            "Unexpected type %s obtained in response. Only objects of type %s are expected."
            % (cls.__name__, expected.__name__)
        )
    return cls.from_wire(data)


def _raw_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def deserialize_response(
    body: Union[bytes, str, None],
    request_uri: Optional[str] = None,
    expected: Optional[Type[GraphObject]] = None,
    registry: TypeRegistry = default_registry,
) -> PagedResults:
    """
    Parse a json response into a PagedResults.

    Args:
        body: raw response body
        request_uri: the uri of the request, stored in the results
        expected: the entity class the caller asked for

    Returns:
        PagedResults with either entities or mixed values.  An empty
        body gives empty results.

    Raises:
        ResponseError: the body isn't a json object
        TypeMismatchError: an entity isn't of the expected class
    """
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise error.ResponseError(
                message="Response is not valid utf-8: %s" % e, response_uri=request_uri
            ) from e
    results = PagedResults(request_uri=request_uri)
    if not body or not body.strip():
        return results

    try:
        root = json.loads(body)
    except ValueError as e:
        raise error.ResponseError(
            message="Invalid json response: %s" % e, response_uri=request_uri
        )
    if not isinstance(root, dict):
        raise error.ResponseError(message="Invalid json input", response_uri=request_uri)

    meta = parse_metadata_type(root.get(constants.ODATA_METADATA_KEY), registry)
    results.page_token = root.get(constants.ODATA_NEXT_LINK_KEY) or None

    single_entity = meta.is_entity and meta.is_collection is False
    if constants.ODATA_VALUES_KEY in root and not single_entity:
        value = root[constants.ODATA_VALUES_KEY]
        is_collection = meta.is_collection
        if is_collection is None:
            is_collection = isinstance(value, list)
        if is_collection and isinstance(value, list):
            for element in value:
                if not meta.is_entity:
                    results.mixed_items.append(_raw_text(element))
                elif isinstance(element, dict):
                    results.items.append(
                        materialize_entity(
                            element, expected, meta.entity_class, registry
                        )
                    )
                else:
                    error.weirdness("non-object in entity collection", element)
        else:
            results.mixed_items.append(_raw_text(value))
    elif meta.is_entity:
        results.items.append(
            materialize_entity(root, expected, meta.entity_class, registry)
        )
    else:
        results.mixed_items.append(_raw_text(root))

    log.debug(
        "parsed %i entities and %i values from %s",
        len(results.items),
        len(results.mixed_items),
        request_uri,
    )
    return results

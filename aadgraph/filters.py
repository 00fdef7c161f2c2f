"""
Query building: $filter, $top, $expand and $orderby.

A filter predicate is a small tree, built with the functions in this
module rather than written as text:

    query = GraphQuery(top=10)
    query.filter = and_(eq(User.display_name, "Bob"), startswith(User.mail, "bob"))
    connection.list(User, query=query)

renders as

    $top=10&$filter=(displayName eq 'Bob') and (startswith(mail,'bob'))

Properties can be given as the class attribute (User.display_name) or
by name ("displayName" or "display_name").  They are resolved against
the entity class the query is run on, and anything that doesn't
resolve to a declared property is refused with QueryValidationError.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Type, Union

from aadgraph.graphobject import GraphModel
from aadgraph.graphobject import Link
from aadgraph.graphobject import Property
from aadgraph.graphobject import to_utc
from aadgraph.lib import constants
from aadgraph.lib import error

PropertyRef = Union[Property, str]


class Predicate:
    """Base class for the nodes of a filter tree"""

    def __and__(self, other: "Predicate") -> "Predicate":
        return and_(self, other)

    def __or__(self, other: "Predicate") -> "Predicate":
        return or_(self, other)


@dataclass(frozen=True)
class Comparison(Predicate):
    prop: PropertyRef
    operator: str
    value: Any


@dataclass(frozen=True)
class Logical(Predicate):
    operator: str
    left: Predicate
    right: Predicate


@dataclass(frozen=True)
class Call(Predicate):
    kind: str
    prop: PropertyRef
    value: Any


def eq(prop: PropertyRef, value: Any) -> Comparison:
    return Comparison(prop, "eq", value)


def ge(prop: PropertyRef, value: Any) -> Comparison:
    """prop >= value, for string and integer properties"""
    return Comparison(prop, "ge", value)


def le(prop: PropertyRef, value: Any) -> Comparison:
    """prop <= value, for string and integer properties"""
    return Comparison(prop, "le", value)


def and_(left: Predicate, right: Predicate) -> Logical:
    return Logical("and", left, right)


def or_(left: Predicate, right: Predicate) -> Logical:
    return Logical("or", left, right)


def startswith(prop: PropertyRef, value: str) -> Call:
    return Call("startswith", prop, value)


def any_(prop: PropertyRef, value: Any) -> Call:
    """A collection property has a member equal to value"""
    return Call("any", prop, value)


def format_value(value: Any) -> str:
    """
    Renders a value as an OData literal:

    >>> format_value(True)
    'true'
    >>> format_value(uuid.UUID("11111111-1111-1111-1111-111111111111"))
    "Guid'11111111-1111-1111-1111-111111111111'"
    >>> format_value(b"\\xab\\xcd")
    "X'ABCD'"
    >>> format_value("O'Neil")
    "'O''Neil'"
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, uuid.UUID):
        return "Guid'%s'" % value
    if isinstance(value, (bytes, bytearray)):
        return "X'%s'" % bytes(value).hex().upper()
    if isinstance(value, datetime):
        return "DateTime'%s'" % to_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")
    return "'%s'" % str(value).replace("'", "''")


def _resolve(entity_class: Type[GraphModel], prop: PropertyRef) -> Property:
    if isinstance(prop, Property):
        if prop in entity_class.declared_properties().values():
            return prop
        raise error.QueryValidationError(
            "%s is not a property of %s" % (prop.wire_name, entity_class.__name__)
        )
    resolved = entity_class.lookup_property(prop)
    if resolved is None:
        raise error.QueryValidationError(
            "%s is not a property of %s" % (prop, entity_class.__name__)
        )
    return resolved


def _check_value(prop: Property, value: Any) -> None:
    if value is not None and not prop.accepts(value):
        raise error.QueryValidationError(
            "Property types do not match: %s can't be compared with %r"
            % (prop.wire_name, value)
        )


def render_predicate(entity_class: Type[GraphModel], predicate: Predicate) -> str:
    """
    The $filter text for a predicate tree.

    Raises:
        QueryValidationError: unknown property, operator not allowed
            for the property, or a value of the wrong type
    """
    if isinstance(predicate, Logical):
        return "(%s) %s (%s)" % (
            render_predicate(entity_class, predicate.left),
            predicate.operator,
            render_predicate(entity_class, predicate.right),
        )

    if isinstance(predicate, Comparison):
        prop = _resolve(entity_class, predicate.prop)
        if prop.is_link or prop.collection:
            raise error.QueryValidationError(
                "%s can't be compared directly, use any_" % prop.wire_name
            )
        if predicate.operator in ("ge", "le") and prop.kind not in (str, int):
            raise error.QueryValidationError(
                "%s is only supported on string and integer properties"
                % predicate.operator
            )
        _check_value(prop, predicate.value)
        return "%s %s %s" % (
            prop.wire_name,
            predicate.operator,
            format_value(predicate.value),
        )

    if isinstance(predicate, Call):
        prop = _resolve(entity_class, predicate.prop)
        if predicate.kind == "startswith":
            if prop.kind is not str or prop.collection:
                raise error.QueryValidationError(
                    "startswith is only supported on string properties"
                )
            _check_value(prop, predicate.value)
            return "startswith(%s,%s)" % (prop.wire_name, format_value(predicate.value))
        if predicate.kind == "any":
            if not prop.collection or prop.is_link:
                raise error.QueryValidationError(
                    "any is only supported on collection properties"
                )
            _check_value(prop, predicate.value)
            return "%s/any(c:c eq %s)" % (prop.wire_name, format_value(predicate.value))
        raise error.QueryValidationError("unsupported function %s" % predicate.kind)

    raise error.QueryValidationError("not a filter predicate: %r" % (predicate,))


class GraphQuery:
    """
    Query options for list operations.

    Attributes:
        top: page size, values <= 0 mean the server default
        expand: a link property to expand
        order_by: a property to sort on
        filter: a predicate tree
        override_filter: a raw $filter text, can't be combined with filter

    Other query parameters can be set like query["$select"] = "displayName".
    """

    def __init__(
        self,
        top: int = -1,
        expand: Optional[PropertyRef] = None,
        order_by: Optional[PropertyRef] = None,
        filter: Optional[Predicate] = None,
        override_filter: Optional[str] = None,
    ) -> None:
        self._parameters: Dict[str, str] = {}
        self.top = top
        self.expand = expand
        self.order_by = order_by
        self.filter = filter
        self.override_filter = override_filter

    @property
    def top(self) -> int:
        return int(self._parameters.get(constants.QUERY_PARAMETER_TOP, -1))

    @top.setter
    def top(self, value: int) -> None:
        if value and value > 0:
            self._parameters[constants.QUERY_PARAMETER_TOP] = str(value)
        else:
            self._parameters.pop(constants.QUERY_PARAMETER_TOP, None)

    @property
    def override_filter(self) -> Optional[str]:
        return self._override_filter

    @override_filter.setter
    def override_filter(self, value: Optional[str]) -> None:
        prefix = constants.QUERY_PARAMETER_FILTER + "="
        if value and value.startswith(prefix):
            value = value[len(prefix) :]
        self._override_filter = value or None

    def __getitem__(self, name: str) -> Optional[str]:
        return self._parameters.get(name)

    def __setitem__(self, name: str, value: Optional[str]) -> None:
        if value is None:
            self._parameters.pop(name, None)
        else:
            self._parameters[name] = str(value)

    def check_single_object(self) -> None:
        """
        Raises QueryValidationError for options that make no sense
        when fetching a single object by id.
        """
        if self.order_by is not None:
            raise error.QueryValidationError(
                "order_by can't be used when fetching a single object"
            )
        if self.filter is not None or self.override_filter:
            raise error.QueryValidationError(
                "Filter expressions can't be used when fetching a single object"
            )

    def parameters(self, entity_class: Type[GraphModel]) -> List[Tuple[str, str]]:
        """
        The query parameters, in a stable order: the free form ones in
        the order they were set, then $expand, $orderby and $filter.
        """
        if self.filter is not None and self.override_filter:
            raise error.QueryValidationError(
                "Both filter and override_filter cannot be used at the same time."
            )
        ret = list(self._parameters.items())
        if self.expand is not None:
            if isinstance(self.expand, (list, tuple)):
                raise error.QueryValidationError("only one property can be expanded")
            prop = _resolve(entity_class, self.expand)
            if not isinstance(prop, Link):
                raise error.QueryValidationError(
                    "%s is not a link and can't be expanded" % prop.wire_name
                )
            ret.append((constants.QUERY_PARAMETER_EXPAND, prop.wire_name))
        if self.order_by is not None:
            if isinstance(self.order_by, (list, tuple)):
                raise error.QueryValidationError("only one property can be sorted on")
            prop = _resolve(entity_class, self.order_by)
            ret.append((constants.QUERY_PARAMETER_ORDERBY, prop.wire_name))
        if self.filter is not None:
            ret.append(
                (
                    constants.QUERY_PARAMETER_FILTER,
                    render_predicate(entity_class, self.filter),
                )
            )
        elif self.override_filter:
            ret.append((constants.QUERY_PARAMETER_FILTER, self.override_filter))
        return ret

    def to_query_string(self, entity_class: Type[GraphModel]) -> str:
        """The parameters joined, unencoded.  Mostly useful for logging."""
        return "&".join("%s=%s" % x for x in self.parameters(entity_class))

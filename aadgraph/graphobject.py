#!/usr/bin/env python
"""
The entity model.

Every directory object (and the complex values they carry) is a
GraphModel.  Declared properties are class attributes, instances of
Property (or Link / Extension), which map a python attribute to the
name used on the wire and keep track of which properties have been
changed since the object was created or last committed.  Fields
received from the server that have no declared counterpart end up in
`undeclared_properties`, so nothing the server sends is lost.
"""
import base64
import re
import uuid
from collections.abc import MutableSequence
from collections.abc import MutableSet
from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Callable
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional
from typing import Set

from aadgraph.lib import constants
from aadgraph.lib import error
from aadgraph.lib.python_utilities import lower_camel_case

_DATETIME_RE = re.compile(
    r"^(\d{4}-\d\d-\d\dT\d\d:\d\d(?::\d\d)?)(?:\.(\d+))?(Z|[+-]\d\d:?\d\d)?$"
)


def parse_datetime(text: str) -> datetime:
    """
    Parses the ISO-8601 timestamps the service sends.  Fractions of a
    second may come with up to seven digits, and naive timestamps are
    taken to be UTC.
    """
    match = _DATETIME_RE.match(text.strip())
    if not match:
        raise ValueError("not a timestamp: %r" % text)
    base, fraction, tz = match.groups()
    if fraction:
        base += "." + fraction[:6].ljust(6, "0")
    if tz in (None, "Z"):
        tz = "+00:00"
    elif ":" not in tz:
        tz = tz[:3] + ":" + tz[3:]
    return datetime.fromisoformat(base + tz)


def to_utc(value: datetime) -> datetime:
    ## naive datetimes are local time, like datetime.astimezone() assumes
    return value.astimezone(timezone.utc)


def format_datetime(value: datetime) -> str:
    return to_utc(value).replace(tzinfo=None).isoformat() + "Z"


def extension_property_name(app_id: Any, name: str) -> str:
    """
    The wire name of an extension property registered by the
    application `app_id`, i.e.
    extension_5b3a8e6c3d8c4ef9a2c7c05a9b4fe4b1_employeeCode
    """
    return "%s_%s_%s" % (
        constants.EXTENSION_PROPERTY_PREFIX,
        str(app_id).replace("-", ""),
        name,
    )


class ChangeTrackingCollection(MutableSequence):
    """
    A list that calls `on_change` after every modification.  Used for
    collection valued properties, so that appending to
    `user.other_mails` marks `otherMails` as changed.
    """

    def __init__(
        self, values: Iterable = (), on_change: Optional[Callable[[], None]] = None
    ) -> None:
        self._items = list(values)
        self._on_change = on_change

    def _notify(self) -> None:
        if self._on_change:
            self._on_change()

    def __getitem__(self, index):
        return self._items[index]

    def __setitem__(self, index, value) -> None:
        self._items[index] = value
        self._notify()

    def __delitem__(self, index) -> None:
        del self._items[index]
        self._notify()

    def __len__(self) -> int:
        return len(self._items)

    def insert(self, index: int, value: Any) -> None:
        self._items.insert(index, value)
        self._notify()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (ChangeTrackingCollection, list, tuple)):
            return self._items == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return "%s(%r)" % (self.__class__.__name__, self._items)


class BoundedValueSet(MutableSet):
    """
    A set whose members must come from a fixed domain.

    Adding anything outside the domain raises PropertyValidationError
    right away.  Every add or discard that actually changes the set
    calls `on_change`.  Insertion order is kept, as it's sent to the
    server as a json array.
    """

    def __init__(
        self,
        domain: Iterable[str],
        values: Iterable[str] = (),
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self.domain = frozenset(domain)
        self._items: Dict[str, None] = {}
        self._on_change = None
        for value in values:
            self.add(value)
        self._on_change = on_change

    def __contains__(self, value: object) -> bool:
        return value in self._items

    def __iter__(self):
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def add(self, value: str) -> None:
        if value not in self.domain:
            raise error.PropertyValidationError(
                "%r is not one of the allowed values %s" % (value, sorted(self.domain))
            )
        if value not in self._items:
            self._items[value] = None
            if self._on_change:
                self._on_change()

    def discard(self, value: str) -> None:
        if value in self._items:
            del self._items[value]
            if self._on_change:
                self._on_change()

    def __repr__(self) -> str:
        return "%s(%r)" % (self.__class__.__name__, list(self._items))


class Property:
    """
    A declared, wire mapped property.

    Args:
        wire_name: the json name of the property
        kind: python type of the value (str, bool, int, uuid.UUID,
              datetime, bytes or a GraphComplexType subclass)
        collection: the value is a json array of `kind`
        domain: for collections, restricts the members to these values
        tracked: setting the property marks it as changed
    """

    is_link = False
    is_extension = False

    def __init__(
        self,
        wire_name: str,
        kind: type = str,
        collection: bool = False,
        domain: Optional[Iterable[str]] = None,
        tracked: bool = True,
    ) -> None:
        self.wire_name = wire_name
        self.kind = kind
        self.collection = collection
        self.domain = frozenset(domain) if domain is not None else None
        self.tracked = tracked
        self.name: Optional[str] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return "%s(%r)" % (self.__class__.__name__, self.wire_name)

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        if self.collection and obj._values.get(self.name) is None:
            obj._values[self.name] = self._wrap(obj, ())
        return obj._values.get(self.name)

    def __set__(self, obj, value) -> None:
        if self.collection and value is not None:
            value = self._wrap(obj, value)
        obj._values[self.name] = value
        if self.tracked:
            obj.mark_changed(self.wire_name)

    def _wrap(self, obj, values: Iterable):
        on_change = None
        if self.tracked:

            def on_change():
                obj.mark_changed(self.wire_name)

        if self.domain is not None:
            return BoundedValueSet(self.domain, values, on_change)
        return ChangeTrackingCollection(values, on_change)

    ## value conversion

    def _value_to_wire(self, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, GraphModel):
            return value.to_wire(mutated_only=False)
        if isinstance(value, uuid.UUID):
            return str(value)
        if isinstance(value, datetime):
            return format_datetime(value)
        if isinstance(value, (bytes, bytearray)):
            return base64.b64encode(bytes(value)).decode("ascii")
        return value

    def _value_from_wire(self, raw: Any) -> Any:
        if raw is None:
            return None
        kind = self.kind
        try:
            if isinstance(kind, type) and issubclass(kind, GraphModel):
                if isinstance(raw, dict):
                    return kind.from_wire(raw)
                raise ValueError("expected a json object")
            if kind is uuid.UUID:
                return uuid.UUID(raw)
            if kind is datetime:
                return parse_datetime(raw)
            if kind is bytes:
                return base64.b64decode(raw)
        except (ValueError, TypeError) as e:
            error.weirdness(
                "could not convert %s value %r to %s" % (self.wire_name, raw, kind), e
            )
        return raw

    def to_wire(self, value: Any) -> Any:
        if self.collection and value is not None:
            return [self._value_to_wire(x) for x in value]
        return self._value_to_wire(value)

    def from_wire(self, raw: Any, obj: "GraphModel") -> Any:
        if self.collection and isinstance(raw, list):
            return self._wrap(obj, [self._value_from_wire(x) for x in raw])
        return self._value_from_wire(raw)

    def accepts(self, value: Any) -> bool:
        """True if `value` is a valid (single) value for this property"""
        kind = self.kind
        if kind is int:
            return isinstance(value, int) and not isinstance(value, bool)
        if kind is bytes:
            return isinstance(value, (bytes, bytearray))
        return isinstance(value, kind)


class Link(Property):
    """
    A navigation property, i.e. a relationship to other directory
    objects.  Links are only populated when requested with $expand,
    and they can't be changed through add/update, use the link
    operations of the connection for that.
    """

    is_link = True

    def __init__(self, wire_name: str, single_valued: bool = False) -> None:
        super().__init__(wire_name, kind=object, collection=not single_valued)
        self.single_valued = single_valued

    def _wrap(self, obj, values: Iterable):
        def on_change():
            obj.mark_changed(self.wire_name)

        return ChangeTrackingCollection(values, on_change)

    def to_wire(self, value: Any) -> Any:
        if value:
            raise error.PropertyValidationError(
                "Updating links is not supported from entity. (%s)" % self.wire_name
            )
        return None

    def _value_from_wire(self, raw: Any) -> Any:
        from aadgraph.protocol.json_parsers import materialize_entity

        if isinstance(raw, dict):
            return materialize_entity(raw, GraphObject)
        error.weirdness("unexpected value for link", self.wire_name, raw)
        return raw


class Extension(Property):
    """
    A typed extension property, registered by the application `app_id`.

    class EmployeeUser(User):
        employee_code = Extension("5b3a8e6c-3d8c-4ef9-a2c7-c05a9b4fe4b1")

    maps `employee_code` to
    `extension_5b3a8e6c3d8c4ef9a2c7c05a9b4fe4b1_employeeCode`.
    """

    is_extension = True

    def __init__(self, app_id: Any, name: Optional[str] = None, kind: type = str):
        super().__init__("", kind=kind)
        self.app_id = app_id
        self.friendly_name = name
        if name:
            self.wire_name = extension_property_name(app_id, name)

    def __set_name__(self, owner: type, name: str) -> None:
        super().__set_name__(owner, name)
        if not self.friendly_name:
            self.friendly_name = lower_camel_case(name)
            self.wire_name = extension_property_name(self.app_id, self.friendly_name)


class GraphModel:
    """
    Base for everything that is mapped to and from a json object.
    """

    ## json keys that describe the response rather than the object
    _envelope_keys = frozenset([constants.ODATA_METADATA_KEY])

    _declared: Dict[str, Property] = {}
    _by_wire_name: Dict[str, Property] = {}

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        declared: Dict[str, Property] = {}
        for klass in reversed(cls.__mro__):
            for name, value in vars(klass).items():
                if isinstance(value, Property):
                    declared[name] = value
        cls._declared = declared
        cls._by_wire_name = {x.wire_name: x for x in declared.values()}

    def __init__(self, **kwargs) -> None:
        self._init_state()
        for key, value in kwargs.items():
            if key not in self._declared:
                raise TypeError(
                    "%s has no property %r" % (self.__class__.__name__, key)
                )
            setattr(self, key, value)

    def _init_state(self) -> None:
        self._values: Dict[str, Any] = {}
        self.changed_properties: Set[str] = set()
        self.materialized_properties: List[str] = []
        self.undeclared_properties: Dict[str, Any] = {}

    @classmethod
    def declared_properties(cls) -> Dict[str, Property]:
        """attribute name -> Property, for this class and its bases"""
        return dict(cls._declared)

    @classmethod
    def lookup_property(cls, name: str) -> Optional[Property]:
        """
        Finds a declared property by attribute name or wire name,
        case insensitive.
        """
        if name in cls._declared:
            return cls._declared[name]
        if name in cls._by_wire_name:
            return cls._by_wire_name[name]
        lname = name.lower()
        for attr, prop in cls._declared.items():
            if attr.lower() == lname or prop.wire_name.lower() == lname:
                return prop
        return None

    def mark_changed(self, wire_name: str) -> None:
        self.changed_properties.add(wire_name)

    def clear_changes(self) -> None:
        self.changed_properties.clear()

    def get_undeclared(self, name: str, default: Any = None) -> Any:
        return self.undeclared_properties.get(name, default)

    def set_undeclared(self, name: str, value: Any) -> None:
        self.undeclared_properties[name] = value
        self.mark_changed(name)

    def __getitem__(self, name: str) -> Any:
        if name in self.undeclared_properties:
            return self.undeclared_properties[name]
        prop = self.lookup_property(name)
        if prop is None:
            return None
        return prop.__get__(self)

    def __setitem__(self, name: str, value: Any) -> None:
        prop = self.lookup_property(name)
        if prop is None:
            self.set_undeclared(name, value)
        else:
            prop.__set__(self, value)

    def to_wire(self, mutated_only: bool = True) -> Dict[str, Any]:
        """
        The json object for this instance, as a dict.

        With mutated_only, only the changed properties are included
        (a None value is sent as null, clearing the property).
        Otherwise every declared property with a value is included.
        Links with content raise PropertyValidationError either way.
        """
        ret: Dict[str, Any] = {}
        for prop in self._declared.values():
            if mutated_only and prop.wire_name not in self.changed_properties:
                continue
            value = self._values.get(prop.name)
            if prop.is_link:
                prop.to_wire(value)
                continue
            if value is None and not mutated_only:
                continue
            ret[prop.wire_name] = prop.to_wire(value)
        for name in sorted(self.changed_properties):
            if name not in self._by_wire_name and name in self.undeclared_properties:
                ret[name] = self.undeclared_properties[name]
        return ret

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "GraphModel":
        """
        Builds a clean instance (no changed properties) from a json
        object.  Unknown keys are kept in undeclared_properties.
        """
        obj = cls.__new__(cls)
        obj._init_state()
        obj._load(data)
        return obj

    def _load(self, data: Dict[str, Any]) -> None:
        for key, raw in data.items():
            prop = self._by_wire_name.get(key)
            if prop is not None:
                self._values[prop.name] = prop.from_wire(raw, self)
                self.materialized_properties.append(key)
            elif key not in self._envelope_keys:
                self.undeclared_properties[key] = raw
        self.changed_properties.clear()

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self.to_wire(mutated_only=False) == other.to_wire(mutated_only=False)

    __hash__ = object.__hash__

    def __repr__(self) -> str:
        return "%s(%s)" % (
            self.__class__.__name__,
            ", ".join(
                "%s=%r" % (k, v) for k, v in self._values.items() if v is not None
            ),
        )


class GraphComplexType(GraphModel):
    """
    A structured value without identity, like a password profile.
    """

    pass


class GraphObject(GraphModel):
    """
    Base class for all entities.

    Concrete classes are registered with the `aadgraph.registry.entity`
    decorator, which sets `entity_set_name` and `discriminator`.
    """

    entity_set_name: Optional[str] = None
    discriminator: Optional[str] = None

    object_id = Property("objectId", tracked=False)
    odata_type = Property(constants.ODATA_TYPE_KEY, tracked=False)

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        if self.odata_type is None:
            self.odata_type = self.discriminator

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GraphObject):
            return NotImplemented
        if self.object_id and other.object_id:
            return self.object_id == other.object_id
        return super().__eq__(other)

    __hash__ = object.__hash__

    def validate_for_submit(self, is_create: bool) -> None:
        """
        Checks the object before it is sent with add or update.  Raises
        PropertyValidationError, changes nothing.
        """
        if is_create and self.object_id:
            raise error.PropertyValidationError("ObjectId should be empty for create.")
        if not is_create and not self.object_id:
            raise error.PropertyValidationError(
                "ObjectId should not be empty for update."
            )
        for prop in self._declared.values():
            if prop.is_link and prop.wire_name in self.changed_properties:
                raise error.PropertyValidationError(
                    "Link %s cannot be specified during add / update." % prop.wire_name
                )
        self.validate_properties(is_create)

    def validate_properties(self, is_create: bool) -> None:
        pass

    def _require(self, *names: str) -> None:
        for name in names:
            if self._values.get(name) in (None, ""):
                raise error.PropertyValidationError(
                    "%s is required." % self._declared[name].wire_name
                )

    def get_extension(self, app_id: Any, name: str, default: Any = None) -> Any:
        full_name = extension_property_name(app_id, name)
        prop = self._by_wire_name.get(full_name)
        if prop is not None:
            return prop.__get__(self)
        return self.get_undeclared(full_name, default)

    def set_extension(self, app_id: Any, name: str, value: Any) -> None:
        self[extension_property_name(app_id, name)] = value

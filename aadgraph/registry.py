"""
Maps type discriminators ("odata.type") and entity set names to the
entity classes.

Entity classes announce themselves with the `entity` decorator.  The
lookup tables are built once, the first time something is resolved,
from everything announced up to then.
"""

import threading
from typing import Dict
from typing import List
from typing import Optional
from typing import Type

from aadgraph.lib import error
from aadgraph.lib.error import log

_known_entities: List[type] = []


def entity(set_name: str, discriminator: str):
    """
    Class decorator registering an entity class.

    @entity("users", "Microsoft.WindowsAzure.ActiveDirectory.User")
    class User(DirectoryObject):
        ...
    """

    def register(cls):
        cls.entity_set_name = set_name
        cls.discriminator = discriminator
        _known_entities.append(cls)
        return cls

    return register


class TypeRegistry:
    """
    The lookup tables.  Population is guarded by a lock and happens
    exactly once; after that the tables are only read.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_discriminator: Optional[Dict[str, type]] = None
        self._by_set_name: Optional[Dict[str, type]] = None

    def _populate(self) -> None:
        with self._lock:
            if self._by_discriminator is not None:
                return
            ## make sure the built in entities are defined
            import aadgraph.directoryobjects  # noqa: F401

            by_discriminator = {}
            by_set_name = {}
            for cls in list(_known_entities):
                by_discriminator[cls.discriminator] = cls
                by_set_name[cls.entity_set_name] = cls
            ## two classes sharing a set name or a discriminator is a bug
            error.assert_(len(by_discriminator) == len(by_set_name) == len(_known_entities))
            log.debug("type registry populated with %i types", len(by_discriminator))
            ## assign set name table first, the discriminator table is the gate
            self._by_set_name = by_set_name
            self._by_discriminator = by_discriminator

    @property
    def populated(self) -> bool:
        return self._by_discriminator is not None

    def resolve(self, discriminator: Optional[str]) -> Optional[Type]:
        """
        Returns the class for a discriminator, or None if it's unknown.
        """
        if self._by_discriminator is None:
            self._populate()
        if not discriminator:
            return None
        return self._by_discriminator.get(discriminator)

    def resolve_by_set_name(self, set_name: Optional[str]) -> Optional[Type]:
        if self._by_discriminator is None:
            self._populate()
        if not set_name:
            return None
        return self._by_set_name.get(set_name)


registry = TypeRegistry()

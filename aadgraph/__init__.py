#!/usr/bin/env python
import logging

__version__ = "1.0.0"

from .graphconnection import BatchContext, GraphConnection, get_connection
from .config import GraphSettings
from .directoryobjects import *
from .filters import GraphQuery, and_, any_, eq, ge, le, or_, startswith
from .graphobject import Extension, extension_property_name

# Silence notification of no default logging handler
log = logging.getLogger("aadgraph")


class NullHandler(logging.Handler):
    def emit(self, record) -> None:
        pass


log.addHandler(NullHandler())

__all__ = [
    "__version__",
    "GraphConnection",
    "GraphSettings",
    "GraphQuery",
    "BatchContext",
    "get_connection",
]

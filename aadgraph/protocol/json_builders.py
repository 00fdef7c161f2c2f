"""
Pure functions for building json request bodies.

All functions return the body as text.  No I/O is done here.
"""

import json
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from aadgraph.graphobject import format_datetime
from aadgraph.graphobject import GraphModel
from aadgraph.lib import constants


def _json_default(value: Any) -> Any:
    if isinstance(value, GraphModel):
        return value.to_wire(mutated_only=False)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return format_datetime(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError("%s is not json serializable" % type(value).__name__)


def to_json(data: Any) -> str:
    return json.dumps(data, default=_json_default)


def build_entity_body(entity: GraphModel, mutated_only: bool = True) -> str:
    """
    Build the body for creating or updating an entity.

    Args:
        entity: the object to send
        mutated_only: only include the changed properties

    Raises:
        PropertyValidationError: a link property has content
    """
    return to_json(entity.to_wire(mutated_only=mutated_only))


def build_link_body(target_url: str) -> str:
    """
    Build the body for adding a link, i.e.
    {"url": "https://graph.windows.net/contoso.com/directoryObjects/<id>"}
    """
    return to_json({constants.ODATA_URL_KEY: str(target_url)})


def build_action_body(parameters: Optional[Dict[str, Any]] = None) -> str:
    """
    Build the body for a service action.  None valued parameters are
    left out.
    """
    return to_json({k: v for k, v in (parameters or {}).items() if v is not None})

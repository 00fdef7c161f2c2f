#!/usr/bin/env python
import functools
import os
import time
import uuid
from typing import Any
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional
from typing import Type
from typing import Union

from aadgraph.config import GraphSettings
from aadgraph.directoryobjects import Application
from aadgraph.directoryobjects import AssignedLicense
from aadgraph.directoryobjects import TenantDetail
from aadgraph.directoryobjects import User
from aadgraph.filters import GraphQuery
from aadgraph.graphobject import GraphObject
from aadgraph.graphobject import Link
from aadgraph.io import SyncIO
from aadgraph.io import SyncIOProtocol
from aadgraph.lib import constants
from aadgraph.lib import error
from aadgraph.lib.auth import get_tenant_id
from aadgraph.lib.error import log
from aadgraph.lib.python_utilities import to_wire
from aadgraph.protocol import BatchRequestItem
from aadgraph.protocol import BatchResponseItem
from aadgraph.protocol import GraphContext
from aadgraph.protocol import GraphProtocol
from aadgraph.protocol import GraphRequest
from aadgraph.protocol import GraphResponse
from aadgraph.protocol import PagedResults
from aadgraph.requests import HTTPBearerAuth


def graph_method(supports_batching: bool = False):
    """
    Marks a GraphConnection method as an operation, and tells whether
    it can be recorded in a batch.
    """

    def decorate(func):
        func.supports_batching = supports_batching
        return func

    return decorate


class BatchContext:
    """
    Collects operations to be sent together as one batch request.

    Get one from GraphConnection.batch().  Operations are recorded
    either by passing the context to the connection:

        batch = connection.batch()
        connection.get(User, user_id, batch=batch)
        connection.delete(group, batch=batch)
        results = batch.execute()

    or by calling the operation on the context itself:

        batch.get(User, user_id)

    Recording operations returns None.  The results come from
    execute(), one BatchResponseItem per operation, in recording order.
    A context belongs to whoever created it, nothing is shared between
    contexts of the same connection.
    """

    def __init__(self, connection: "GraphConnection") -> None:
        self.connection = connection
        self.items: List[BatchRequestItem] = []

    def record(self, request: GraphRequest) -> None:
        if not request.batchable:
            raise error.InvalidOperationError(
                "Batching is not supported for %s %s." % (request.method.value, request.url)
            )
        self.items.append(self.connection.protocol.batch_item(request))

    def __len__(self) -> int:
        return len(self.items)

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        method = getattr(self.connection, name)
        if not getattr(method, "supports_batching", False):
            raise error.InvalidOperationError("Batching is not supported for %s." % name)
        return functools.partial(method, batch=self)

    def execute(self) -> List[BatchResponseItem]:
        return self.connection.execute_batch(self)


class GraphConnection:
    """
    Basic client for the directory graph.

    Most of the methods map to one HTTP request.  Requests are built
    and responses parsed by a GraphProtocol, and executed by a
    transport (a SyncIO by default).
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        tenant: Optional[str] = None,
        client_request_id: Optional[str] = None,
        settings: Optional[GraphSettings] = None,
        io: Optional[SyncIOProtocol] = None,
    ) -> None:
        """
        Sets up a connection.  Nothing is sent to the server yet.

        Args:
            access_token: OAuth2 access token for the graph resource
            tenant: tenant id or domain.  Defaults to the tenant the
                access token was issued for.
            client_request_id: correlation id sent with every request
            settings: GraphSettings, defaults are used if not given
            io: transport, mostly for testing
        """
        self.settings = settings or GraphSettings()
        if not tenant and access_token:
            tenant = get_tenant_id(access_token)
        self.tenant = tenant or constants.COMMON_TENANT_NAME
        self.client_request_id = client_request_id or str(uuid.uuid4())
        self.protocol = GraphProtocol(
            GraphContext(
                tenant=self.tenant,
                api_version=self.settings.api_version,
                graph_domain=self.settings.graph_domain_name,
            ),
            client_request_id=self.client_request_id,
        )
        if io is None:
            auth = HTTPBearerAuth(access_token) if access_token else None
            io = SyncIO(auth=auth, timeout=self.settings.timeout)
        self.io = io
        log.debug(
            "graph connection to %s, client-request-id %s",
            self.protocol.context.endpoint,
            self.client_request_id,
        )

    def __enter__(self) -> "GraphConnection":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        self.io.close()

    # =========================================================================
    # plumbing
    # =========================================================================

    def _should_retry(self, exc: error.GraphError, attempt: int) -> bool:
        settings = self.settings
        return (
            settings.is_retry_enabled
            and isinstance(exc, settings.retry_on_exceptions)
            and attempt < settings.total_attempts
        )

    def _execute(self, request: GraphRequest) -> GraphResponse:
        """
        Sends a request, retrying as the settings say.  Returns the
        response if it's a success, raises the resolved error otherwise.
        """
        attempt = 0
        while True:
            attempt += 1
            log.debug("sending %s %s", request.method.value, request.url)
            response = self.io.execute(request)
            if error.debug_dump_communication:
                self._dump_communication(request, response)
            self._log_response_headers(response)
            if response.ok:
                return response
            exc = error.resolve_error(
                response.status, response.body, request.url, response.headers
            )
            if not self._should_retry(exc, attempt):
                raise exc
            log.warning(
                "%s - retrying in %s seconds, attempt %i of %i",
                exc,
                self.settings.wait_before_retry,
                attempt + 1,
                self.settings.total_attempts,
            )
            time.sleep(self.settings.wait_before_retry)

    def _log_response_headers(self, response: GraphResponse) -> None:
        for name in constants.CORRELATION_HEADERS:
            value = response.header(name)
            if value:
                log.debug("%s: %s", name, value)

    def _dump_communication(
        self, request: GraphRequest, response: GraphResponse
    ) -> None:
        import datetime
        from tempfile import NamedTemporaryFile

        with NamedTemporaryFile(prefix="aadgraphcomm", delete=False) as commlog:
            commlog.write(b"=" * 80 + b"\n")
            commlog.write(f"{datetime.datetime.now():%FT%H:%M:%S}".encode("utf-8"))
            commlog.write(b"\n====>\n")
            commlog.write(f"{request.method.value} {request.url}\n".encode("utf-8"))
            commlog.write(
                b"\n".join(
                    to_wire(f"{x}: {request.headers[x]}")
                    for x in request.headers
                    if x.lower() != "authorization"
                )
            )
            commlog.write(b"\n\n")
            commlog.write(to_wire(request.body or b""))
            commlog.write(b"\n<====\n")
            commlog.write(f"{response.status}\n".encode("utf-8"))
            commlog.write(
                b"\n".join(
                    to_wire(f"{x}: {response.headers[x]}") for x in response.headers
                )
            )
            commlog.write(b"\n\n")
            commlog.write(response.body or b"")
            log.debug(f"communication dumped to {commlog.name}")

    def _submit(
        self, request: GraphRequest, batch: Optional[BatchContext]
    ) -> Optional[GraphResponse]:
        if batch is not None:
            batch.record(request)
            return None
        return self._execute(request)

    # =========================================================================
    # entities
    # =========================================================================

    @graph_method(supports_batching=True)
    def list(
        self,
        entity_class: Type[GraphObject],
        page_token: Optional[str] = None,
        query: Optional[GraphQuery] = None,
        batch: Optional[BatchContext] = None,
    ) -> Optional[PagedResults]:
        """
        One page of an entity set.

        Args:
            entity_class: i.e. User
            page_token: page_token of the previous page
            query: GraphQuery with filter, top, expand, order_by
        """
        request = self.protocol.list_request(entity_class, page_token, query)
        response = self._submit(request, batch)
        if response is None:
            return None
        return self.protocol.parse_results(response, request, entity_class)

    @graph_method(supports_batching=True)
    def get(
        self,
        entity_class: Type[GraphObject],
        object_id: str,
        expand: Optional[Union[Link, str]] = None,
        batch: Optional[BatchContext] = None,
    ) -> Optional[GraphObject]:
        """
        Fetches one object by id, optionally with one link expanded.
        """
        request = self.protocol.get_request(entity_class, object_id, expand)
        response = self._submit(request, batch)
        if response is None:
            return None
        results = self.protocol.parse_results(response, request, entity_class)
        if not results.items:
            raise error.ObjectNotFoundError(
                message="no %s with id %s" % (entity_class.__name__, object_id),
                response_uri=request.url,
            )
        return results.items[0]

    def _commit(
        self, request: GraphRequest, response: GraphResponse, entity: GraphObject
    ) -> GraphObject:
        if response.body and response.body.strip():
            result = self.protocol.parse_single(response, request, type(entity))
        else:
            result = entity
        entity.clear_changes()
        result.clear_changes()
        return result

    @graph_method(supports_batching=True)
    def add(
        self, entity: GraphObject, batch: Optional[BatchContext] = None
    ) -> Optional[GraphObject]:
        """
        Creates `entity` in the directory and returns the created object.
        """
        request = self.protocol.add_request(entity)
        response = self._submit(request, batch)
        if response is None:
            return None
        return self._commit(request, response, entity)

    @graph_method(supports_batching=True)
    def update(
        self, entity: GraphObject, batch: Optional[BatchContext] = None
    ) -> Optional[GraphObject]:
        """
        Sends the changed properties of `entity`.
        """
        request = self.protocol.update_request(entity)
        response = self._submit(request, batch)
        if response is None:
            return None
        return self._commit(request, response, entity)

    @graph_method(supports_batching=True)
    def delete(self, entity: GraphObject, batch: Optional[BatchContext] = None) -> None:
        self._submit(self.protocol.delete_request(entity), batch)

    # =========================================================================
    # containment
    # =========================================================================

    @graph_method(supports_batching=True)
    def add_containment(
        self,
        parent: GraphObject,
        entity: GraphObject,
        batch: Optional[BatchContext] = None,
    ) -> Optional[GraphObject]:
        """
        Creates `entity` below `parent`, i.e. an ExtensionProperty below
        an Application.
        """
        request = self.protocol.add_containment_request(parent, entity)
        response = self._submit(request, batch)
        if response is None:
            return None
        return self._commit(request, response, entity)

    @graph_method(supports_batching=True)
    def update_containment(
        self,
        parent: GraphObject,
        entity: GraphObject,
        batch: Optional[BatchContext] = None,
    ) -> Optional[GraphObject]:
        request = self.protocol.update_containment_request(parent, entity)
        response = self._submit(request, batch)
        if response is None:
            return None
        return self._commit(request, response, entity)

    @graph_method(supports_batching=True)
    def list_containments(
        self,
        parent: GraphObject,
        containment_class: Type[GraphObject],
        page_token: Optional[str] = None,
        query: Optional[GraphQuery] = None,
        batch: Optional[BatchContext] = None,
    ) -> Optional[PagedResults]:
        request = self.protocol.list_containments_request(
            parent, containment_class, page_token, query
        )
        response = self._submit(request, batch)
        if response is None:
            return None
        return self.protocol.parse_results(response, request, containment_class)

    @graph_method(supports_batching=True)
    def get_containment(
        self,
        parent: GraphObject,
        containment_class: Type[GraphObject],
        object_id: str,
        batch: Optional[BatchContext] = None,
    ) -> Optional[GraphObject]:
        request = self.protocol.get_containment_request(
            parent, containment_class, object_id
        )
        response = self._submit(request, batch)
        if response is None:
            return None
        return self.protocol.parse_single(response, request, containment_class)

    @graph_method(supports_batching=True)
    def delete_containment(
        self,
        parent: GraphObject,
        entity: GraphObject,
        batch: Optional[BatchContext] = None,
    ) -> None:
        self._submit(self.protocol.delete_containment_request(parent, entity), batch)

    # =========================================================================
    # links
    # =========================================================================

    @graph_method(supports_batching=True)
    def get_linked_objects(
        self,
        entity: GraphObject,
        link: Union[Link, str],
        page_token: Optional[str] = None,
        top: int = -1,
        batch: Optional[BatchContext] = None,
    ) -> Optional[PagedResults]:
        """
        One page of the objects behind a link, like

            connection.get_linked_objects(group, Group.members)
        """
        request = self.protocol.linked_objects_request(entity, link, page_token, top)
        response = self._submit(request, batch)
        if response is None:
            return None
        return self.protocol.parse_results(response, request)

    @graph_method()
    def get_all_direct_links(
        self, entity: GraphObject, link: Union[Link, str]
    ) -> List[GraphObject]:
        """
        All the objects behind a link, following the page tokens.
        """
        ret = []
        page_token = None
        while True:
            page = self.get_linked_objects(entity, link, page_token)
            ret.extend(page.items)
            if page.is_last_page:
                return ret
            page_token = page.page_token

    @graph_method(supports_batching=True)
    def add_link(
        self,
        source: GraphObject,
        target: GraphObject,
        link: Union[Link, str],
        batch: Optional[BatchContext] = None,
    ) -> None:
        """
        Adds `target` to a link of `source`, i.e.

            connection.add_link(group, user, Group.members)
            connection.add_link(user, boss, User.manager)
        """
        self._submit(self.protocol.add_link_request(source, target, link), batch)

    @graph_method(supports_batching=True)
    def delete_link(
        self,
        source: GraphObject,
        target: Optional[GraphObject],
        link: Union[Link, str],
        batch: Optional[BatchContext] = None,
    ) -> None:
        """
        Removes `target` from a link of `source`.  For single valued
        links the target is not needed.
        """
        self._submit(self.protocol.delete_link_request(source, target, link), batch)

    # =========================================================================
    # stream properties
    # =========================================================================

    @graph_method()
    def get_stream_property(
        self,
        entity: GraphObject,
        property_name: str,
        accept_type: str = "image/jpeg",
    ) -> bytes:
        """
        Downloads a binary property, like the thumbnailPhoto of a user.
        """
        request = self.protocol.get_stream_request(entity, property_name, accept_type)
        return self._execute(request).body

    @graph_method()
    def set_stream_property(
        self,
        entity: GraphObject,
        property_name: str,
        data: bytes,
        content_type: str = "image/jpeg",
    ) -> None:
        request = self.protocol.set_stream_request(
            entity, property_name, data, content_type
        )
        self._execute(request)

    # =========================================================================
    # actions
    # =========================================================================

    def _action(
        self,
        action: str,
        parameters: Optional[Dict[str, Any]] = None,
        entity: Optional[GraphObject] = None,
    ):
        request = self.protocol.action_request(action, parameters, entity)
        return request, self._execute(request)

    @graph_method()
    def get_member_groups(
        self, entity: GraphObject, security_enabled_only: bool = False
    ) -> List[str]:
        """
        Ids of all the groups `entity` is a member of, directly or
        transitively.
        """
        request, response = self._action(
            constants.ACTION_GET_MEMBER_GROUPS,
            {"securityEnabledOnly": security_enabled_only},
            entity,
        )
        return self.protocol.parse_mixed(response, request)

    @graph_method()
    def check_member_groups(
        self, entity: GraphObject, group_ids: Iterable[str]
    ) -> List[str]:
        """
        The subset of `group_ids` that `entity` is a member of.
        """
        request, response = self._action(
            constants.ACTION_CHECK_MEMBER_GROUPS,
            {"groupIds": [str(x) for x in group_ids]},
            entity,
        )
        return self.protocol.parse_mixed(response, request)

    @graph_method()
    def is_member_of(self, group_id: str, member_id: str) -> bool:
        request, response = self._action(
            constants.ACTION_IS_MEMBER_OF,
            {"groupId": str(group_id), "memberId": str(member_id)},
        )
        values = self.protocol.parse_mixed(response, request)
        if not values:
            error.weirdness("no value in isMemberOf response", request.url)
            return False
        return values[0].strip().lower() == "true"

    @graph_method()
    def assign_license(
        self,
        user: User,
        add_licenses: Iterable[AssignedLicense] = (),
        remove_licenses: Iterable[Any] = (),
    ) -> User:
        """
        Adds and removes licenses (by sku id) of a user, returns the
        updated user.
        """
        request, response = self._action(
            constants.ACTION_ASSIGN_LICENSE,
            {
                "addLicenses": list(add_licenses),
                "removeLicenses": [str(x) for x in remove_licenses],
            },
            user,
        )
        return self.protocol.parse_single(response, request, type(user))

    @graph_method()
    def restore(
        self, application: Application, identifier_uris: Iterable[str] = ()
    ) -> Application:
        """
        Restores a deleted application.
        """
        request, response = self._action(
            constants.ACTION_RESTORE,
            {"identifierUris": list(identifier_uris)},
            application,
        )
        return self.protocol.parse_single(response, request, type(application))

    @graph_method()
    def get_tenant_details(self) -> TenantDetail:
        page = self.list(TenantDetail)
        if not page.items:
            raise error.ObjectNotFoundError(
                message="no tenant details", response_uri=page.request_uri
            )
        return page.items[0]

    # =========================================================================
    # batching
    # =========================================================================

    def batch(self) -> BatchContext:
        """A new, empty batch"""
        return BatchContext(self)

    def execute_batch(self, batch: BatchContext) -> List[BatchResponseItem]:
        """
        Sends the operations recorded in `batch` as one request.

        Raises:
            ValidationError: the batch doesn't have 1 to 5 operations
            ResponseError: the response doesn't match the batch
        """
        request = self.protocol.batch_request(batch.items)
        response = self._execute(request)
        return self.protocol.parse_batch(response, request, batch.items)


def get_connection(
    check_config_file: bool = True,
    config_file: Optional[str] = None,
    config_section: Optional[str] = None,
    environment: bool = True,
    **config_data,
) -> Optional[GraphConnection]:
    """
    This function will yield a GraphConnection object.  It will not try
    to connect.  It will read configuration from various sources,
    dependent on the parameters given, in this order:

    * Data from the parameters given
    * Environment variables prepended with `AADGRAPH_`, like `AADGRAPH_ACCESS_TOKEN`, `AADGRAPH_TENANT`, `AADGRAPH_API_VERSION`.
    * Environment variables `AADGRAPH_CONFIG_FILE` and `AADGRAPH_CONFIG_SECTION` will be honored if environment is set
    * Configuration file, keys prepended with `aadgraph_`
    """
    if config_data:
        return _connection_from_config(config_data)

    if environment:
        conf = {}
        for conf_key in (
            x
            for x in os.environ
            if x.startswith("AADGRAPH_") and not x.startswith("AADGRAPH_CONFIG")
        ):
            conf[conf_key[9:].lower()] = os.environ[conf_key]
        if conf:
            return _connection_from_config(conf)
        if not config_file:
            config_file = os.environ.get("AADGRAPH_CONFIG_FILE")
        if not config_section:
            config_section = os.environ.get("AADGRAPH_CONFIG_SECTION")

    if check_config_file:
        from . import config

        cfg = config.read_config(config_file)
        if cfg:
            section = config.config_section(cfg, config_section or "default")
            conn_params = {}
            for k in section:
                if k.startswith("aadgraph_") and section[k]:
                    conn_params[k[9:]] = section[k]
            if conn_params:
                return _connection_from_config(conn_params)
    return None


_SETTINGS_CONVERTERS = {
    "api_version": str,
    "graph_domain_name": str,
    "timeout": float,
    "wait_before_retry": float,
    "total_attempts": int,
    "is_retry_enabled": lambda x: str(x).lower() not in ("0", "false", "no", "off"),
}


def _connection_from_config(conf: Dict[str, Any]) -> GraphConnection:
    conf = dict(conf)
    settings = {}
    for key, convert in _SETTINGS_CONVERTERS.items():
        if key in conf:
            settings[key] = convert(conf.pop(key))
    if settings:
        conf["settings"] = GraphSettings(**settings)
    return GraphConnection(**conf)

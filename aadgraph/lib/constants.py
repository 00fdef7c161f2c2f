"""
Names and defaults used on the wire by the directory graph service.
"""

## endpoint
DEFAULT_GRAPH_DOMAIN = "graph.windows.net"
DEFAULT_API_VERSION = "2013-11-08"
COMMON_TENANT_NAME = "myorganization"
ENDPOINT_FORMAT = "https://{domain}/{tenant}"
TENANT_ID_CLAIM = "tid"

## query parameters
QUERY_PARAMETER_API_VERSION = "api-version"
QUERY_PARAMETER_FILTER = "$filter"
QUERY_PARAMETER_TOP = "$top"
QUERY_PARAMETER_EXPAND = "$expand"
QUERY_PARAMETER_ORDERBY = "$orderby"

LINKS_FRAGMENT = "$links"
BATCH_FRAGMENT = "$batch"

## json keys
ODATA_TYPE_KEY = "odata.type"
ODATA_METADATA_KEY = "odata.metadata"
ODATA_NEXT_LINK_KEY = "odata.nextLink"
ODATA_VALUES_KEY = "value"
ODATA_ERROR_KEY = "odata.error"
ODATA_ERROR_CODE_KEY = "code"
ODATA_ERROR_MESSAGE_KEY = "message"
ODATA_ERROR_VALUES_KEY = "values"
ODATA_URL_KEY = "url"
ELEMENT_SUFFIX = "@Element"
COLLECTION_PREFIX = "Collection"

## headers
HEADER_CLIENT_REQUEST_ID = "client-request-id"
HEADER_REQUEST_ID = "request-id"
HEADER_DIAGNOSTICS_SERVER = "ocp-aad-diagnostics-server-name"
HEADER_PREFER = "Prefer"
PREFER_RETURN_CONTENT = "return-content"
HEADER_ACCEPT_CHARSET = "Accept-Charset"
CHARSET_UTF8 = "UTF-8"
MINIMAL_METADATA_CONTENT_TYPE = "application/json;odata=minimalmetadata"
CORRELATION_HEADERS = (
    HEADER_REQUEST_ID,
    HEADER_CLIENT_REQUEST_ID,
    HEADER_DIAGNOSTICS_SERVER,
)

## service actions
ACTION_GET_MEMBER_GROUPS = "getMemberGroups"
ACTION_CHECK_MEMBER_GROUPS = "checkMemberGroups"
ACTION_ASSIGN_LICENSE = "assignLicense"
ACTION_IS_MEMBER_OF = "isMemberOf"
ACTION_RESTORE = "restore"

## batching
MAX_BATCH_ITEMS = 5
BATCH_BOUNDARY_PREFIX = "batch_"
CHANGESET_BOUNDARY_PREFIX = "changeset_"

## retries
MAX_RETRY_ATTEMPTS = 10

EXTENSION_PROPERTY_PREFIX = "extension"

#!/usr/bin/env python
import sys
from typing import Iterable
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union
from urllib.parse import parse_qsl
from urllib.parse import quote
from urllib.parse import SplitResult
from urllib.parse import urlsplit
from urllib.parse import urlunsplit

from aadgraph.lib.python_utilities import to_normal_str

if sys.version_info < (3, 11):
    from typing_extensions import Self
else:
    from typing import Self

## characters kept verbatim in query values.  OData literals like
## X'AB', Guid'...' and startswith(a,'b') stay readable in logs.
QUERY_SAFE_CHARS = "$'(),:/@*!"


class URL:
    """
    This class is for wrapping URLs into objects.  It's used
    internally in the library, end users should not need to know
    anything about this class.  All methods that accept URLs can be
    fed either with a URL object or a string.

    The query part is treated as an ordered list of (name, value)
    pairs, so that building the same request twice gives the very same
    string.
    """

    def __init__(self, url: Union[str, SplitResult]) -> None:
        if isinstance(url, SplitResult):
            url = url.geturl()
        self.url_raw = to_normal_str(url)

    def __bool__(self) -> bool:
        return bool(self.url_raw)

    def __ne__(self, other: object) -> bool:
        return not self == other

    def __eq__(self, other: object) -> bool:
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(str(self))

    @classmethod
    def objectify(cls, url: Union[Self, str, SplitResult, None]) -> Optional["URL"]:
        if url is None or isinstance(url, URL):
            return url
        return URL(url)

    def __getattr__(self, attr: str):
        if "url_raw" not in vars(self):
            raise AttributeError(attr)
        return getattr(urlsplit(self.url_raw), attr)

    def __str__(self) -> str:
        return self.url_raw

    def __repr__(self) -> str:
        return "URL(%s)" % str(self)

    def strip_trailing_slash(self) -> "URL":
        if str(self).endswith("/"):
            return URL.objectify(str(self)[:-1])
        else:
            return self

    def join(self, *segments: str) -> "URL":
        """
        Appends path segments.  Query and fragment of self are kept.
        Segments are used verbatim, they are not quoted.
        """
        parts = urlsplit(self.url_raw)
        path = parts.path.rstrip("/")
        for segment in segments:
            if segment is None or segment == "":
                continue
            path += "/" + str(segment).strip("/")
        return URL(parts._replace(path=path))

    def query_items(self) -> List[Tuple[str, str]]:
        return parse_qsl(urlsplit(self.url_raw).query, keep_blank_values=True)

    def with_query(self, items: Iterable[Tuple[str, str]]) -> "URL":
        parts = urlsplit(self.url_raw)
        query = "&".join(
            "%s=%s" % (name, quote(str(value), safe=QUERY_SAFE_CHARS))
            for name, value in items
        )
        return URL(urlunsplit(parts._replace(query=query)))

    def set_query_parameter(self, name: str, value: str) -> "URL":
        """
        Returns a new URL where the parameter `name` has the given value.
        An existing value is replaced in place, otherwise the parameter
        is appended.
        """
        items = self.query_items()
        for idx, (key, _) in enumerate(items):
            if key == name:
                items[idx] = (name, value)
                break
        else:
            items.append((name, value))
        return self.with_query(items)

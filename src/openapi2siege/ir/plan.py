from dataclasses import dataclass, field
from typing import List, Tuple
from urllib.parse import urlencode

BODILESS_METHODS = ("GET", "HEAD")


@dataclass
class RequestCookie:
    name: str
    value: str
    # Set to the owning request's URL (without its query string)
    path: str = ""


@dataclass
class ResolvedRequest:
    """
    One concrete request of the plan. Mutable so that security schemes can
    add query parameters and cookies after the batch is built.
    """
    method: str
    # Absolute URL with the path substituted, no query string
    base_url: str
    query: List[Tuple[str, str]] = field(default_factory=list)
    payload: str = ""
    media_type: str = ""
    cookies: List[RequestCookie] = field(default_factory=list)
    # Endpoint ID the request was resolved from, e.g. "GET /users/{id}"
    endpoint_id: str = ""

    @property
    def url(self) -> str:
        if not self.query:
            return self.base_url
        # Keys sorted, values kept in insertion order per key
        ordered = sorted(self.query, key=lambda pair: pair[0])
        return f"{self.base_url}?{urlencode(ordered)}"

    def add_query(self, name: str, value: str) -> None:
        self.query.append((name, value))

    def add_cookie(self, name: str, value: str) -> None:
        self.cookies.append(RequestCookie(name=name, value=value, path=self.base_url))


# Insertion order is the operation iteration order and must be preserved
RequestBatch = List[ResolvedRequest]

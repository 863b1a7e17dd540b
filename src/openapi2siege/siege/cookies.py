import logging
from http.cookiejar import Cookie, MozillaCookieJar
from urllib.parse import urlsplit

from ..ir.plan import RequestBatch, RequestCookie

logger = logging.getLogger(__name__)


def default_path(url: str) -> str:
    """RFC 6265 default-path of a request URL."""
    path = urlsplit(url).path
    if not path.startswith("/") or path.count("/") == 1:
        return "/"
    return path[:path.rindex("/")]


def make_cookie(cookie: RequestCookie, url: str) -> Cookie:
    parts = urlsplit(url)
    path = cookie.path if cookie.path.startswith("/") else default_path(url)
    return Cookie(
        version=0,
        name=cookie.name,
        value=cookie.value,
        port=None,
        port_specified=False,
        domain=parts.hostname or "",
        domain_specified=False,
        domain_initial_dot=False,
        path=path,
        path_specified=True,
        secure=parts.scheme == "https",
        expires=None,
        discard=False,
        comment=None,
        comment_url=None,
        rest={},
    )


def build_cookie_jar(requests: RequestBatch, filename: str) -> MozillaCookieJar:
    """Collects every request cookie into a jar bound to `filename`."""
    jar = MozillaCookieJar(filename)
    for request in requests:
        for cookie in request.cookies:
            jar.set_cookie(make_cookie(cookie, request.url))
    logger.debug(f"Collected {len(jar)} cookie(s)")
    return jar

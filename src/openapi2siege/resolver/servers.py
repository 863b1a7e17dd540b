import logging
from typing import Sequence
from urllib.parse import quote, urlsplit, urlunsplit

from ..config.settings import ServerSettings
from ..errors import AmbiguousServer, MissingServerVariable, NoServers, RelativeServerUrl
from ..ir.models import Server

logger = logging.getLogger(__name__)


def substitute_variables(server: Server, overrides: dict) -> str:
    url = server.url
    for name, variable in server.variables.items():
        value = overrides.get(name) or variable.default
        if not value:
            raise MissingServerVariable(
                f"Server variable {name} not set and default is empty.\n"
                f"\tCheck your configuration for `server.variables.{name}`"
            )
        if variable.enum and value not in variable.enum:
            logger.warning(f"Server variable {name}={value!r} is not one of {list(variable.enum)}")
        url = url.replace(f"{{{name}}}", value)
    return url


def resolve_base_url(servers: Sequence[Server], settings: ServerSettings) -> str:
    """
    Picks one server and returns its URL with every variable substituted.

    Candidates are visited in order; a lone server is always chosen, otherwise
    the first whose description matches `server.description`, or the first
    one when `server.useFirst` is set.
    """
    if not servers:
        raise NoServers(
            "The document declares no servers, so there is no base URL to test against.\n"
            "\tAdd a `servers` entry to the document"
        )

    for server in servers:
        url = substitute_variables(server, settings.variables)

        if len(servers) == 1 or server.description == settings.description or settings.use_first:
            parts = urlsplit(url)
            if not parts.scheme or not parts.netloc:
                raise RelativeServerUrl(f"Server URL {url!r} is not absolute")
            logger.debug(f"Using server {url}")
            return url

    raise AmbiguousServer(
        "Couldn't determine which server to use.\n"
        "\tCheck your configuration for `server.description` or `server.useFirst`."
    )


def join_url(base_url: str, path: str) -> str:
    """Appends an API path to the base URL's own path."""
    parts = urlsplit(base_url)
    base_path = parts.path.rstrip("/")
    path = quote(path, safe="/:@!$&'()*+,;=-._~")
    joined = f"{base_path}/{path.lstrip('/')}" if path else base_path or "/"
    return urlunsplit((parts.scheme, parts.netloc, joined, "", ""))


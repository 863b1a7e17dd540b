import logging
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from ..config.settings import AuthSettings
from ..errors import (
    MalformedCredentials,
    UnconfiguredApiKey,
    UnconfiguredCredentials,
    UnconfiguredMutualTLS,
    UnknownSecurityScheme,
    UnrecognizedSecurityScheme,
    UnsupportedSecurityScheme,
)
from ..ir.models import SecurityRequirement, SecurityScheme
from ..ir.plan import ResolvedRequest
from ..siege.run_config import Credentials, RunConfiguration

logger = logging.getLogger(__name__)

TOKEN_COMMAND = "command"
TOKEN_ENV_VAR = "OA2S_TOKEN"


def scheme_names(requirements: Iterable[SecurityRequirement]) -> List[str]:
    """Flattens requirement objects into scheme names, first occurrence first."""
    names: List[str] = []
    for requirement in requirements:
        for name in requirement:
            if name not in names:
                names.append(name)
    return names


def parse_credentials(name: str, creds: str) -> Credentials:
    """`user:pass` or `user:pass:realm`; the realm may itself contain colons."""
    parts = creds.split(":", 2)
    if len(parts) < 2:
        raise MalformedCredentials(
            f"Credentials incorrect for {name} scheme\n"
            f"\tNeed `auth.{name}.creds` to be `{{user}}:{{pass}}` or `{{user}}:{{pass}}:{{realm}}`"
        )
    realm = parts[2] if len(parts) > 2 else ""
    return Credentials(user=parts[0], password=parts[1], realm=realm)


class SecuritySchemeApplier:
    """
    Adds the credentials each security requirement asks for to the resolved
    requests and to the shared run configuration.

    A scheme is applied to a given request at most once, and its run-wide
    effects (global header, login, TLS material) happen at most once.
    """

    def __init__(
        self,
        schemes: Dict[str, SecurityScheme],
        auth: Dict[str, AuthSettings],
        run_config: RunConfiguration,
    ):
        self.schemes = schemes
        self.auth = auth
        self.run_config = run_config
        self._applied_globally: Set[str] = set()
        self._applied_to: Set[Tuple[int, str]] = set()

    def apply_document(self, requirements: Sequence[SecurityRequirement]) -> None:
        """
        Validates the document-wide requirements and applies their run-wide
        effects, whether or not any operation ends up using them.
        """
        self.apply(requirements, [])

    def apply(self, requirements: Sequence[SecurityRequirement], requests: Sequence[ResolvedRequest]) -> None:
        for name in scheme_names(requirements):
            scheme = self.schemes.get(name)
            if scheme is None:
                raise UnknownSecurityScheme(
                    f"Security scheme {name} is not defined in components.securitySchemes"
                )
            self._apply_scheme(scheme, [r for r in requests if (id(r), name) not in self._applied_to])
            self._applied_globally.add(name)
            self._applied_to.update((id(r), name) for r in requests)

    def _settings(self, name: str) -> AuthSettings:
        return self.auth.get(name) or AuthSettings()

    def _apply_scheme(self, scheme: SecurityScheme, requests: List[ResolvedRequest]) -> None:
        if scheme.type == "apiKey":
            self._apply_api_key(scheme, requests)
        elif scheme.type == "http":
            if scheme.name not in self._applied_globally:
                self._apply_http(scheme)
        elif scheme.type == "mutualTLS":
            if scheme.name not in self._applied_globally:
                self._apply_mutual_tls(scheme)
        elif scheme.type in ("oauth2", "openIdConnect"):
            raise UnsupportedSecurityScheme(
                f"Unsupported security scheme `{scheme.type}` used in {scheme.name}\n"
                f"\tSiege doesn't currently support this authentication mechanism."
            )
        else:
            raise UnrecognizedSecurityScheme(
                f"Unrecognized security scheme `{scheme.type}` used in {scheme.name}\n"
                f"\tOpenAPI v3 doesn't support this authentication type, so we don't know how to proceed"
            )

    def _apply_api_key(self, scheme: SecurityScheme, requests: List[ResolvedRequest]) -> None:
        key = self._settings(scheme.name).apikey
        if key is None:
            raise UnconfiguredApiKey(
                f"API Key not configured for {scheme.name} scheme\n\tNeed `auth.{scheme.name}.apikey`"
            )

        if scheme.location == "query":
            for request in requests:
                request.add_query(scheme.param_name, key)
        elif scheme.location == "header":
            if scheme.name not in self._applied_globally:
                self.run_config.add_header(scheme.param_name, key)
        elif scheme.location == "cookie":
            for request in requests:
                request.add_cookie(scheme.param_name, key)
        else:
            raise UnrecognizedSecurityScheme(
                f"API key location `{scheme.location}` used in {scheme.name} is not one of query, header, cookie"
            )

    def _apply_http(self, scheme: SecurityScheme) -> None:
        creds = self._settings(scheme.name).creds
        if creds is None:
            raise UnconfiguredCredentials(
                f"Credentials not configured for {scheme.name} scheme\n\tNeed `auth.{scheme.name}.creds`"
            )

        if scheme.scheme in ("basic", "digest"):
            self.run_config.login = parse_credentials(scheme.name, creds)
        elif scheme.scheme == "bearer":
            if creds == TOKEN_COMMAND:
                self.run_config.add_header("Authorization", f"Bearer ${{{TOKEN_ENV_VAR}}}")
                logger.warning(
                    f"Siege does NOT actively support bearer tokens; set your current token in the "
                    f"{TOKEN_ENV_VAR} environment variable. Token expiry is up to you."
                )
            else:
                self.run_config.add_header("Authorization", f"Bearer {creds}")
            logger.warning("The HTTP auth scheme `bearer` is supported on a best-effort basis only.")
        else:
            raise UnsupportedSecurityScheme(
                f"The HTTP auth scheme {scheme.scheme} (used in {scheme.name}) is not currently supported."
            )

    def _apply_mutual_tls(self, scheme: SecurityScheme) -> None:
        settings = self._settings(scheme.name)
        if settings.cert is None or settings.key is None:
            raise UnconfiguredMutualTLS(
                f"Certificate and/or key not configured for {scheme.name} scheme\n"
                f"\tNeed `auth.{scheme.name}.cert` and `auth.{scheme.name}.key`"
            )
        self.run_config.ssl_cert = settings.cert
        self.run_config.ssl_key = settings.key

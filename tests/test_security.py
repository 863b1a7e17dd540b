import logging

import pytest

from openapi2siege.config.settings import AuthSettings
from openapi2siege.errors import (
    MalformedCredentials,
    UnconfiguredApiKey,
    UnconfiguredCredentials,
    UnconfiguredMutualTLS,
    UnknownSecurityScheme,
    UnrecognizedSecurityScheme,
    UnsupportedSecurityScheme,
)
from openapi2siege.ir.models import SecurityScheme
from openapi2siege.ir.plan import ResolvedRequest
from openapi2siege.security.applier import SecuritySchemeApplier, parse_credentials, scheme_names
from openapi2siege.siege.run_config import Credentials, RunConfiguration


def _requests():
    return [
        ResolvedRequest(method="GET", base_url="https://api.example.com/users"),
        ResolvedRequest(method="POST", base_url="https://api.example.com/users", payload="{}"),
    ]


def _applier(scheme, auth=None):
    run_config = RunConfiguration()
    applier = SecuritySchemeApplier({scheme.name: scheme}, auth or {}, run_config)
    return applier, run_config


def test_api_key_in_query():
    scheme = SecurityScheme(name="keyAuth", type="apiKey", location="query", param_name="key")
    applier, _ = _applier(scheme, {"keyAuth": AuthSettings(apikey="abc123")})
    requests = _requests()
    applier.apply(({"keyAuth": ()},), requests)
    assert [r.url for r in requests] == [
        "https://api.example.com/users?key=abc123",
        "https://api.example.com/users?key=abc123",
    ]


def test_api_key_in_header_is_global():
    scheme = SecurityScheme(name="keyAuth", type="apiKey", location="header", param_name="X-Api-Key")
    applier, run_config = _applier(scheme, {"keyAuth": AuthSettings(apikey="abc123")})
    requests = _requests()
    applier.apply(({"keyAuth": ()},), requests[:1])
    applier.apply(({"keyAuth": ()},), requests[1:])
    assert run_config.headers == [("X-Api-Key", "abc123")]
    assert all(r.query == [] for r in requests)


def test_api_key_in_cookie():
    scheme = SecurityScheme(name="keyAuth", type="apiKey", location="cookie", param_name="token")
    applier, _ = _applier(scheme, {"keyAuth": AuthSettings(apikey="abc123")})
    requests = _requests()
    applier.apply(({"keyAuth": ()},), requests)
    for request in requests:
        assert [(c.name, c.value, c.path) for c in request.cookies] == [
            ("token", "abc123", "https://api.example.com/users")
        ]


def test_scheme_applied_once_per_request():
    scheme = SecurityScheme(name="keyAuth", type="apiKey", location="query", param_name="key")
    applier, _ = _applier(scheme, {"keyAuth": AuthSettings(apikey="abc123")})
    requests = _requests()
    applier.apply(({"keyAuth": ()}, {"keyAuth": ()}), requests)
    applier.apply(({"keyAuth": ()},), requests)
    assert requests[0].query == [("key", "abc123")]


def test_unconfigured_api_key():
    scheme = SecurityScheme(name="keyAuth", type="apiKey", location="query", param_name="key")
    applier, _ = _applier(scheme)
    with pytest.raises(UnconfiguredApiKey):
        applier.apply(({"keyAuth": ()},), _requests())


def test_unknown_scheme():
    scheme = SecurityScheme(name="keyAuth", type="apiKey", location="query", param_name="key")
    applier, _ = _applier(scheme)
    with pytest.raises(UnknownSecurityScheme):
        applier.apply(({"otherAuth": ()},), _requests())


@pytest.mark.parametrize("sub_scheme", ["basic", "digest"])
def test_login_credentials(sub_scheme):
    scheme = SecurityScheme(name="httpAuth", type="http", scheme=sub_scheme)
    applier, run_config = _applier(scheme, {"httpAuth": AuthSettings(creds="alice:secret:office")})
    applier.apply(({"httpAuth": ()},), _requests())
    assert run_config.login == Credentials("alice", "secret", "office")


def test_login_without_realm():
    scheme = SecurityScheme(name="basicAuth", type="http", scheme="basic")
    applier, run_config = _applier(scheme, {"basicAuth": AuthSettings(creds="alice:secret")})
    applier.apply(({"basicAuth": ()},), _requests())
    assert run_config.login == Credentials("alice", "secret", "")
    assert str(run_config.login) == "alice:secret"


def test_unconfigured_credentials():
    scheme = SecurityScheme(name="basicAuth", type="http", scheme="basic")
    applier, _ = _applier(scheme)
    with pytest.raises(UnconfiguredCredentials):
        applier.apply(({"basicAuth": ()},), _requests())


def test_malformed_credentials():
    with pytest.raises(MalformedCredentials):
        parse_credentials("basicAuth", "alice")


def test_realm_may_contain_colons():
    assert parse_credentials("basicAuth", "alice:secret:a:b") == Credentials("alice", "secret", "a:b")


def test_static_bearer_token(caplog):
    scheme = SecurityScheme(name="bearerAuth", type="http", scheme="bearer")
    applier, run_config = _applier(scheme, {"bearerAuth": AuthSettings(creds="tok")})
    with caplog.at_level(logging.WARNING):
        applier.apply(({"bearerAuth": ()},), _requests())
    assert run_config.headers == [("Authorization", "Bearer tok")]
    assert "best-effort" in caplog.text


def test_command_bearer_token(caplog):
    scheme = SecurityScheme(name="bearerAuth", type="http", scheme="bearer")
    applier, run_config = _applier(scheme, {"bearerAuth": AuthSettings(creds="command")})
    with caplog.at_level(logging.WARNING):
        applier.apply(({"bearerAuth": ()},), _requests())
    assert run_config.headers == [("Authorization", "Bearer ${OA2S_TOKEN}")]
    assert "OA2S_TOKEN" in caplog.text
    assert "best-effort" in caplog.text


def test_unsupported_http_scheme():
    scheme = SecurityScheme(name="hobaAuth", type="http", scheme="hoba")
    applier, _ = _applier(scheme, {"hobaAuth": AuthSettings(creds="x")})
    with pytest.raises(UnsupportedSecurityScheme):
        applier.apply(({"hobaAuth": ()},), _requests())


def test_mutual_tls():
    scheme = SecurityScheme(name="mtls", type="mutualTLS")
    applier, run_config = _applier(scheme, {"mtls": AuthSettings(cert="client.pem", key="client.key")})
    applier.apply(({"mtls": ()},), _requests())
    assert run_config.ssl_cert == "client.pem"
    assert run_config.ssl_key == "client.key"


def test_mutual_tls_missing_key():
    scheme = SecurityScheme(name="mtls", type="mutualTLS")
    applier, _ = _applier(scheme, {"mtls": AuthSettings(cert="client.pem")})
    with pytest.raises(UnconfiguredMutualTLS):
        applier.apply(({"mtls": ()},), _requests())


@pytest.mark.parametrize("kind", ["oauth2", "openIdConnect"])
def test_unsupported_schemes(kind):
    scheme = SecurityScheme(name="sso", type=kind)
    applier, _ = _applier(scheme)
    with pytest.raises(UnsupportedSecurityScheme):
        applier.apply(({"sso": ("read",)},), _requests())


def test_unrecognized_scheme():
    scheme = SecurityScheme(name="weird", type="kerberos")
    applier, _ = _applier(scheme)
    with pytest.raises(UnrecognizedSecurityScheme):
        applier.apply(({"weird": ()},), _requests())


def test_scheme_names_flattens_in_order():
    assert scheme_names(({"a": (), "b": ()}, {"b": (), "c": ()})) == ["a", "b", "c"]


def test_document_requirements_set_login_without_requests():
    scheme = SecurityScheme(name="basicAuth", type="http", scheme="basic")
    applier, run_config = _applier(scheme, {"basicAuth": AuthSettings(creds="alice:secret")})
    applier.apply_document(({"basicAuth": ()},))
    assert run_config.login == Credentials("alice", "secret", "")


def test_document_requirements_are_validated():
    scheme = SecurityScheme(name="basicAuth", type="http", scheme="basic")
    applier, _ = _applier(scheme)
    with pytest.raises(UnconfiguredCredentials):
        applier.apply_document(({"basicAuth": ()},))


def test_document_api_key_header_then_query_per_request():
    header = SecurityScheme(name="headerKey", type="apiKey", location="header", param_name="X-Api-Key")
    query = SecurityScheme(name="queryKey", type="apiKey", location="query", param_name="key")
    run_config = RunConfiguration()
    applier = SecuritySchemeApplier(
        {"headerKey": header, "queryKey": query},
        {"headerKey": AuthSettings(apikey="h1"), "queryKey": AuthSettings(apikey="q1")},
        run_config,
    )
    applier.apply_document(({"headerKey": (), "queryKey": ()},))
    requests = _requests()
    applier.apply(({"headerKey": (), "queryKey": ()},), requests)

    assert run_config.headers == [("X-Api-Key", "h1")]
    assert all(r.query == [("key", "q1")] for r in requests)

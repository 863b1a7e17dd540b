import logging
import unittest

import pytest

from openapi2siege.config.settings import parse_settings
from openapi2siege.errors import (
    MissingParameterConfig,
    UnconfiguredCredentials,
    UnconfiguredOperation,
    UnconfiguredPath,
)
from openapi2siege.parser.openapi import OpenAPIParser
from openapi2siege.resolver.engine import convert
from openapi2siege.siege.url_list import render

USERS_API = """
openapi: 3.0.3
info:
  title: Users
  version: "1.0"
servers:
  - url: https://api.example.com
paths:
  /widgets:
    post:
      requestBody:
        required: true
        content:
          application/json:
            example: {"name": "x"}
    get:
      summary: List widgets
  /users/{id}:
    get:
      parameters:
        - name: id
          in: path
          required: true
          schema: {type: integer}
    put:
      deprecated: true
      parameters:
        - name: id
          in: path
          required: true
    trace:
      summary: Echo
"""

USERS_SETTINGS = {
    "paths": {
        "/users/{id}": {"get": {"params": {"id": 42}}},
        "/widgets": {"get": {}, "post": {}},
    }
}


def _spec(text):
    return OpenAPIParser(text, is_yaml=True).parse()


class TestConversionEngine(unittest.TestCase):
    def test_paths_sorted_and_methods_ordered(self):
        plan = convert(_spec(USERS_API), parse_settings(USERS_SETTINGS))
        self.assertEqual(render(plan.requests).splitlines(), [
            "https://api.example.com/users/42",
            "https://api.example.com/widgets",
            'https://api.example.com/widgets POST {"name":"x"}',
        ])

    def test_request_fields(self):
        plan = convert(_spec(USERS_API), parse_settings(USERS_SETTINGS))
        post = plan.requests[-1]
        self.assertEqual(post.method, "POST")
        self.assertEqual(post.media_type, "application/json")
        self.assertEqual(post.endpoint_id, "POST /widgets")
        self.assertEqual(plan.requests[0].payload, "")

    def test_run_config_uses_get(self):
        plan = convert(_spec(USERS_API), parse_settings(USERS_SETTINGS))
        self.assertEqual(plan.run_config.get_method, "GET")
        self.assertIn("gmethod = GET\n", plan.run_config.to_text())

    def test_deprecated_operation_needs_no_settings(self):
        # PUT /users/{id} is deprecated and has no method settings
        plan = convert(_spec(USERS_API), parse_settings(USERS_SETTINGS))
        self.assertNotIn("PUT", [r.method for r in plan.requests])

    def test_trace_is_warned_about(self):
        with self.assertLogs("openapi2siege.resolver.engine", level="WARNING") as logs:
            convert(_spec(USERS_API), parse_settings(USERS_SETTINGS))
        self.assertTrue(any("TRACE" in line for line in logs.output))

    def test_unconfigured_path(self):
        settings = parse_settings({"paths": {"/widgets": {"get": {}, "post": {}}}})
        with self.assertRaises(UnconfiguredPath):
            convert(_spec(USERS_API), settings)

    def test_unconfigured_operation(self):
        settings = parse_settings({"paths": {"/users/{id}": {"get": {"params": {"id": 1}}}, "/widgets": {"get": {}}}})
        with self.assertRaises(UnconfiguredOperation) as ctx:
            convert(_spec(USERS_API), settings)
        self.assertIn("POST /widgets", str(ctx.exception))

    def test_missing_path_parameter(self):
        settings = parse_settings({"paths": {"/users/{id}": {"get": {}}, "/widgets": {"get": {}, "post": {}}}})
        with self.assertRaises(MissingParameterConfig):
            convert(_spec(USERS_API), settings)

    def test_is_deterministic(self):
        first = convert(_spec(USERS_API), parse_settings(USERS_SETTINGS))
        second = convert(_spec(USERS_API), parse_settings(USERS_SETTINGS))
        self.assertEqual(render(first.requests), render(second.requests))
        self.assertEqual(first.run_config.to_text(), second.run_config.to_text())


SECURED_API = """
openapi: 3.0.3
info: {title: Secured, version: "2"}
servers:
  - url: https://api.example.com/v1
security:
  - keyAuth: []
components:
  securitySchemes:
    keyAuth: {type: apiKey, in: query, name: key}
    basicAuth: {type: http, scheme: basic}
  schemas:
    Counter:
      type: integer
      format: int64
paths:
  /counters:
    post:
      requestBody:
        required: true
        content:
          application/json:
            schema: {$ref: "#/components/schemas/Counter"}
  /health:
    get:
      security: []
      servers:
        - url: https://status.example.com
  /me:
    get:
      security:
        - basicAuth: []
      parameters:
        - name: session
          in: cookie
          required: true
          example: s1
        - name: verbose
          in: query
          required: false
"""

SECURED_SETTINGS = {
    "auth": {"keyAuth": {"apikey": "abc123"}, "basicAuth": {"creds": "alice:secret"}},
    "paths": {
        "/counters": {"post": {}},
        "/health": {"get": {}},
        "/me": {"get": {"params": {"verbose": True}}},
    },
    "siege": {"concurrent": 5, "reps": 10},
}


@pytest.fixture
def secured_plan():
    return convert(_spec(SECURED_API), parse_settings(SECURED_SETTINGS))


def test_synthesized_int64_payload(secured_plan):
    counters = secured_plan.requests[0]
    assert counters.payload == "0"
    assert counters.url == "https://api.example.com/v1/counters?key=abc123"


def test_operation_security_override(secured_plan):
    health = secured_plan.requests[1]
    # Empty operation security disables document-wide auth
    assert health.url == "https://status.example.com/health"


def test_operation_level_scheme(secured_plan):
    me = secured_plan.requests[2]
    assert me.url == "https://api.example.com/v1/me?verbose=true"
    assert str(secured_plan.run_config.login) == "alice:secret"


def test_cookie_path_is_request_url(secured_plan):
    me = secured_plan.requests[2]
    assert [(c.name, c.value, c.path) for c in me.cookies] == [
        ("session", "s1", "https://api.example.com/v1/me")
    ]


def test_siege_settings_applied(secured_plan):
    text = secured_plan.run_config.to_text()
    assert "concurrent = 5\n" in text
    assert "reps = 10\n" in text
    assert "login = alice:secret\n" in text


def test_empty_document_warns(caplog):
    spec = _spec('openapi: 3.0.0\ninfo: {title: Empty, version: "1"}\npaths: {}\n')
    with caplog.at_level(logging.WARNING):
        plan = convert(spec, parse_settings({}))
    assert plan.requests == []
    assert "no operations" in caplog.text


def test_multiple_payload_variants_share_nothing():
    text = """
openapi: 3.0.0
info: {title: Variants, version: "1"}
servers: [{url: "https://api.example.com"}]
paths:
  /items:
    post:
      parameters:
        - {name: tag, in: query, required: true, example: a}
      requestBody:
        required: true
        content:
          application/json:
            example: {"n": 0}
            examples:
              one: {value: {"n": 1}}
"""
    plan = convert(_spec(text), parse_settings({"paths": {"/items": {"post": {}}}}))
    first, second = plan.requests
    assert first.payload == '{"n":0}'
    assert second.payload == '{"n":1}'
    first.add_query("extra", "1")
    assert second.query == [("tag", "a")]


OPTED_OUT_API = """
openapi: 3.0.3
info: {title: OptedOut, version: "1"}
servers: [{url: "https://api.example.com"}]
security:
  - basicAuth: []
components:
  securitySchemes:
    basicAuth: {type: http, scheme: basic}
paths:
  /status:
    get:
      security: []
"""


def test_document_security_applies_when_operations_opt_out():
    settings = parse_settings({
        "auth": {"basicAuth": {"creds": "alice:secret"}},
        "paths": {"/status": {"get": {}}},
    })
    plan = convert(_spec(OPTED_OUT_API), settings)
    assert str(plan.run_config.login) == "alice:secret"
    assert plan.requests[0].url == "https://api.example.com/status"


def test_document_security_is_validated_when_operations_opt_out():
    settings = parse_settings({"paths": {"/status": {"get": {}}}})
    with pytest.raises(UnconfiguredCredentials):
        convert(_spec(OPTED_OUT_API), settings)


def test_document_security_is_validated_without_operations():
    text = OPTED_OUT_API.split("paths:")[0] + "paths: {}\n"
    with pytest.raises(UnconfiguredCredentials):
        convert(_spec(text), parse_settings({}))


def test_head_yields_one_bodiless_request():
    text = """
openapi: 3.0.0
info: {title: Head, version: "1"}
servers: [{url: "https://api.example.com"}]
paths:
  /files:
    head:
      requestBody:
        required: true
        content:
          application/json:
            examples:
              a: {value: {"n": 1}}
              b: {value: {"n": 2}}
"""
    plan = convert(_spec(text), parse_settings({"paths": {"/files": {"head": {}}}}))
    assert [(r.method, r.payload, r.media_type) for r in plan.requests] == [("HEAD", "", "")]

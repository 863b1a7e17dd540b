from typing import Any, Dict, Optional, Set, Tuple, List
import logging
import yaml
import json

from ..errors import UnsupportedDocumentVersion, UnresolvableReference
from ..ir.models import (
    MISSING,
    APISpec,
    Endpoint,
    MediaType,
    Parameter,
    RequestBody,
    SchemaRef,
    SecurityRequirement,
    SecurityScheme,
    Server,
    ServerVariable,
)

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")
COMPONENT_SCHEMA_PREFIX = "#/components/schemas/"


def _unescape(token: str) -> str:
    """JSON-pointer token unescaping (RFC 6901)."""
    return token.replace("~1", "/").replace("~0", "~")


class OpenAPIParser:
    """
    Parses OpenAPI V3 documents into the typed document model.
    """

    def __init__(self, spec_content: str, is_yaml: bool = False):
        if is_yaml:
            self.spec = yaml.safe_load(spec_content)
        else:
            self.spec = json.loads(spec_content)
        self._inlining: Set[str] = set()

        if not isinstance(self.spec, dict):
            raise UnsupportedDocumentVersion("Document root must be a mapping")

        self._validate_version()

    def _validate_version(self):
        if "swagger" in self.spec or str(self.spec.get("openapi", "")).startswith("2."):
            raise UnsupportedDocumentVersion(
                "OpenAPI 2 (Swagger) documents are not yet implemented."
            )
        openapi_version = str(self.spec.get("openapi", ""))
        if not openapi_version.startswith("3."):
            raise UnsupportedDocumentVersion(
                f"Unsupported OpenAPI version: {openapi_version!r}. Only 3.x is supported."
            )

    def parse(self) -> APISpec:
        """
        Main entry point to parse the document.
        """
        info = self.spec.get("info", {})
        title = info.get("title", "Untitled")
        version = str(info.get("version", "0.0.0"))

        return APISpec(
            title=title,
            version=version,
            endpoints=tuple(self._parse_paths()),
            components=self._parse_components(),
            security_schemes=self._parse_security_schemes(),
            servers=self._parse_servers(self.spec.get("servers", [])),
            security=self._parse_security(self.spec.get("security")) or (),
        )

    def _parse_components(self) -> Dict[str, SchemaRef]:
        schemas = self.spec.get("components", {}).get("schemas", {})
        return {name: self._convert_schema(schema_dict) for name, schema_dict in schemas.items()}

    def _resolve_ref(self, ref_path: str) -> Dict[str, Any]:
        """
        Resolves a JSON reference within the document.
        """
        if not ref_path.startswith("#/"):
            raise UnresolvableReference(f"External references not supported: {ref_path}")

        current: Any = self.spec
        for part in ref_path[2:].split("/"):
            part = _unescape(part)
            if not isinstance(current, dict) or part not in current:
                raise UnresolvableReference(f"Could not resolve reference: {ref_path}")
            current = current[part]
        return current

    def _deref(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        seen = set()
        while isinstance(obj, dict) and "$ref" in obj:
            ref = obj["$ref"]
            if ref in seen:
                raise UnresolvableReference(f"Circular reference: {ref}")
            seen.add(ref)
            obj = self._resolve_ref(ref)
        return obj

    def _parse_servers(self, raw_servers: List[Dict[str, Any]]) -> Tuple[Server, ...]:
        servers = []
        for raw in raw_servers or []:
            variables = {
                name: ServerVariable(
                    default="" if var.get("default") is None else str(var.get("default")),
                    enum=tuple(str(v) for v in var.get("enum", [])),
                    description=var.get("description"),
                )
                for name, var in (raw.get("variables") or {}).items()
            }
            servers.append(Server(url=raw.get("url", ""), description=raw.get("description"), variables=variables))
        return tuple(servers)

    def _parse_security_schemes(self) -> Dict[str, SecurityScheme]:
        raw_schemes = self.spec.get("components", {}).get("securitySchemes", {})
        schemes = {}
        for name, raw in raw_schemes.items():
            raw = self._deref(raw)
            schemes[name] = SecurityScheme(
                name=name,
                type=raw.get("type", ""),
                location=raw.get("in"),
                param_name=raw.get("name"),
                scheme=(raw.get("scheme") or "").lower() or None,
                description=raw.get("description"),
            )
        return schemes

    def _parse_security(self, security: Optional[List[Dict[str, Any]]]) -> Optional[Tuple[SecurityRequirement, ...]]:
        if security is None:
            return None
        # security is a list of requirement objects
        # [{ "auth": ["scope"] }]
        return tuple({k: tuple(v or ()) for k, v in req.items()} for req in security)

    def _parse_paths(self) -> List[Endpoint]:
        """
        Parses all paths and operations into Endpoints.
        """
        paths = self.spec.get("paths", {}) or {}
        endpoints = []

        for path_str, path_item in paths.items():
            path_item = self._deref(path_item)
            path_params = path_item.get("parameters", [])
            path_servers = path_item.get("servers", [])

            for method in HTTP_METHODS:
                operation = path_item.get(method)
                if operation is None:
                    continue
                endpoints.append(
                    self._parse_endpoint(path_str, method, operation, path_params, path_servers)
                )

        return endpoints

    def _parse_endpoint(
        self,
        path: str,
        method: str,
        operation: Dict[str, Any],
        path_params: List[Dict[str, Any]],
        path_servers: List[Dict[str, Any]],
    ) -> Endpoint:
        logger.debug(f"Parsing {method.upper()} {path}")

        # Operation parameters override path parameters with the same name and location
        merged: Dict[Tuple[str, str], Parameter] = {}
        for raw in list(path_params) + list(operation.get("parameters", [])):
            param = self._parse_parameter(self._deref(raw))
            merged[(param.name, param.location)] = param

        request_body = None
        if "requestBody" in operation:
            request_body = self._parse_request_body(self._deref(operation["requestBody"]))

        servers = operation.get("servers") or path_servers

        return Endpoint(
            method=method.upper(),
            path=path,
            summary=operation.get("summary"),
            operation_id=operation.get("operationId"),
            deprecated=bool(operation.get("deprecated", False)),
            parameters=tuple(merged.values()),
            request_body=request_body,
            servers=self._parse_servers(servers),
            security=self._parse_security(operation.get("security")),
        )

    def _parse_parameter(self, raw: Dict[str, Any]) -> Parameter:
        location = raw.get("in", "")
        return Parameter(
            name=raw.get("name", ""),
            location=location,
            # Path parameters are always required
            required=bool(raw.get("required", location == "path")),
            allow_empty_value=bool(raw.get("allowEmptyValue", False)),
            example=raw.get("example", MISSING),
            examples=self._example_values(raw.get("examples")),
            deprecated=bool(raw.get("deprecated", False)),
        )

    def _parse_request_body(self, raw: Dict[str, Any]) -> RequestBody:
        content = {}
        for media_type, details in (raw.get("content") or {}).items():
            details = details or {}
            schema = details.get("schema")
            content[media_type] = MediaType(
                name=media_type,
                schema=self._convert_schema(schema) if schema is not None else None,
                example=details.get("example", MISSING),
                examples=self._example_values(details.get("examples")),
            )
        return RequestBody(required=bool(raw.get("required", False)), content=content)

    def _example_values(self, examples: Optional[Dict[str, Any]]) -> Tuple[Any, ...]:
        """Reduces a map of Example Objects to their values, in document order."""
        if not examples:
            return ()
        values = []
        for example in examples.values():
            example = self._deref(example)
            if isinstance(example, dict) and "value" in example:
                values.append(example["value"])
            else:
                logger.debug("Skipping example without an inline value")
        return tuple(values)

    def _convert_schema(self, schema: Any) -> SchemaRef:
        """
        Recursively converts an OpenAPI schema dict into a SchemaRef.
        """
        if not schema:
            return SchemaRef()

        if "$ref" in schema:
            ref_path = schema["$ref"]
            component = ref_path[len(COMPONENT_SCHEMA_PREFIX):]
            if ref_path.startswith(COMPONENT_SCHEMA_PREFIX) and component and "/" not in component:
                return SchemaRef(ref_name=_unescape(component))
            # Anything else, including pointers into a component, is inlined
            if ref_path in self._inlining:
                raise UnresolvableReference(f"Circular reference: {ref_path}")
            self._inlining.add(ref_path)
            try:
                return self._convert_schema(self._resolve_ref(ref_path))
            finally:
                self._inlining.discard(ref_path)

        all_of = tuple(self._convert_schema(s) for s in schema["allOf"]) if "allOf" in schema else None
        one_of = tuple(self._convert_schema(s) for s in schema["oneOf"]) if "oneOf" in schema else None
        any_of = tuple(self._convert_schema(s) for s in schema["anyOf"]) if "anyOf" in schema else None

        # 3.1 allows a list of types; the first one wins
        schema_type = schema.get("type")
        if isinstance(schema_type, list):
            schema_type = schema_type[0] if schema_type else None

        properties = {}
        for prop_name, prop_schema in (schema.get("properties") or {}).items():
            properties[prop_name] = self._convert_schema(prop_schema)

        items = None
        if "items" in schema:
            raw_items = schema["items"]
            items = raw_items if isinstance(raw_items, bool) else self._convert_schema(raw_items)

        examples = schema.get("examples", ())
        if isinstance(examples, dict):
            examples = self._example_values(examples)

        return SchemaRef(
            type=schema_type,
            format=schema.get("format"),
            title=schema.get("title"),
            properties=properties or None,
            items=items,
            default=schema.get("default", MISSING),
            example=schema.get("example", MISSING),
            examples=tuple(examples or ()),
            all_of=all_of,
            one_of=one_of,
            any_of=any_of,
        )


def load_from_file(path: str) -> APISpec:
    with open(path, 'r', encoding='utf-8') as f:
        content = f.read()

    is_yaml = path.endswith('.yaml') or path.endswith('.yml')
    return OpenAPIParser(content, is_yaml=is_yaml).parse()

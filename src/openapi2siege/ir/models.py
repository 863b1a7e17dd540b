from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class _Missing:
    """Marks a keyword the document did not declare (distinct from `null`)."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def is_set(value: Any) -> bool:
    return value is not MISSING


class Composition(Enum):
    PLAIN = "plain"
    ONE_OF = "oneOf"
    ANY_OF = "anyOf"
    ALL_OF = "allOf"


@dataclass(frozen=True)
class SchemaRef:
    """
    Represents a reference to a named schema, or an inline schema definition.
    This corresponds roughly to a JSON Schema object or a $ref.

    A named reference acts as a proxy: it is resolved against the component
    schemas each time a value is synthesized from it.
    """
    # If ref_name is present, it's a reference to a schema in components
    ref_name: Optional[str] = None

    type: Optional[str] = None
    format: Optional[str] = None
    title: Optional[str] = None
    properties: Optional[Dict[str, 'SchemaRef']] = None
    # A boolean literal when the document says `items: true` / `items: false`
    items: Union['SchemaRef', bool, None] = None

    # Literal values, MISSING when absent so that `null`, `0` and `false` survive
    default: Any = MISSING
    example: Any = MISSING
    examples: Tuple[Any, ...] = ()

    # Schema Composition
    all_of: Optional[Tuple['SchemaRef', ...]] = None
    one_of: Optional[Tuple['SchemaRef', ...]] = None
    any_of: Optional[Tuple['SchemaRef', ...]] = None

    @property
    def composition(self) -> Composition:
        """Which composition keyword drives this schema, in precedence order."""
        if self.one_of:
            return Composition.ONE_OF
        if self.any_of:
            return Composition.ANY_OF
        if self.all_of:
            return Composition.ALL_OF
        return Composition.PLAIN

    def describe(self) -> str:
        if self.ref_name:
            return f"#/components/schemas/{self.ref_name}"
        if self.title:
            return self.title
        return f"<{self.type or 'untyped'} schema>"


@dataclass(frozen=True)
class Parameter:
    name: str
    location: str  # path | query | header | cookie
    required: bool = False
    allow_empty_value: bool = False
    example: Any = MISSING
    # Values of the Example Objects, in document order
    examples: Tuple[Any, ...] = ()
    deprecated: bool = False


@dataclass(frozen=True)
class MediaType:
    name: str
    schema: Optional[SchemaRef] = None
    example: Any = MISSING
    examples: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class RequestBody:
    required: bool = False
    # Media type name -> MediaType, in document order
    content: Dict[str, MediaType] = field(default_factory=dict)


@dataclass(frozen=True)
class ServerVariable:
    default: str = ""
    enum: Tuple[str, ...] = ()
    description: Optional[str] = None


@dataclass(frozen=True)
class Server:
    url: str
    description: Optional[str] = None
    variables: Dict[str, ServerVariable] = field(default_factory=dict)


@dataclass(frozen=True)
class SecurityScheme:
    name: str
    type: str  # apiKey | http | mutualTLS | oauth2 | openIdConnect
    # apiKey
    location: Optional[str] = None
    param_name: Optional[str] = None
    # http
    scheme: Optional[str] = None
    description: Optional[str] = None


# A security requirement object: scheme name -> scopes
SecurityRequirement = Dict[str, Tuple[str, ...]]


@dataclass(frozen=True)
class Endpoint:
    """
    Represents a single API operation (Method + Path).
    """
    method: str
    path: str
    summary: Optional[str] = None
    operation_id: Optional[str] = None
    deprecated: bool = False

    parameters: Tuple[Parameter, ...] = field(default_factory=tuple)
    request_body: Optional[RequestBody] = None

    # Per-operation server override; empty means "use the document's servers"
    servers: Tuple[Server, ...] = field(default_factory=tuple)

    # None means "inherit the document's requirements"; () disables auth
    security: Optional[Tuple[SecurityRequirement, ...]] = None

    @property
    def id(self) -> str:
        """Deterministic Endpoint ID: METHOD PATH"""
        return f"{self.method.upper()} {self.path}"


@dataclass(frozen=True)
class APISpec:
    """
    Top-level container for the parsed API document.
    """
    title: str
    version: str
    endpoints: Tuple[Endpoint, ...]

    # Shared schemas (components/schemas)
    components: Dict[str, SchemaRef] = field(default_factory=dict)

    # Security Schemes (components/securitySchemes)
    security_schemes: Dict[str, SecurityScheme] = field(default_factory=dict)

    servers: Tuple[Server, ...] = field(default_factory=tuple)

    # Document-wide security requirements
    security: Tuple[SecurityRequirement, ...] = field(default_factory=tuple)

    @property
    def endpoint_map(self) -> Dict[str, Endpoint]:
        """Map of Endpoint ID -> Endpoint"""
        return {ep.id: ep for ep in self.endpoints}

    @property
    def paths(self) -> List[str]:
        """Declared paths in lexicographic order."""
        return sorted({ep.path for ep in self.endpoints})

    def operations(self, path: str) -> Dict[str, Endpoint]:
        """Lower-cased method -> Endpoint for one path."""
        return {ep.method.lower(): ep for ep in self.endpoints if ep.path == path}

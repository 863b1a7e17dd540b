import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Tuple

from ..errors import (
    CircularSchemaReference,
    NonObjectAllOfMember,
    SynthesisExhausted,
    UnknownSchemaType,
    UnresolvedSchemaReference,
    UnsupportedMediaType,
    UnsynthesizableArray,
)
from ..ir.models import Composition, SchemaRef, is_set

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5


class Outcome(Enum):
    SYNTHESIZED = "synthesized"
    RETRYABLE = "retryable"


@dataclass(frozen=True)
class Synthesis:
    outcome: Outcome
    value: Any = None

    @classmethod
    def of(cls, value: Any) -> "Synthesis":
        return cls(Outcome.SYNTHESIZED, value)


RETRY = Synthesis(Outcome.RETRYABLE)


class PayloadSynthesizer:
    """
    Builds one structurally valid example value from a schema.

    Fatal problems raise a SynthesisError; a schema that cannot be interpreted
    as it stands comes back as RETRY so the caller can rebuild it from its
    reference and try again.
    """

    def __init__(self, components: Dict[str, SchemaRef]):
        self.components = components

    def generate(self, schema: SchemaRef) -> Any:
        """Synthesizes a value, rebuilding the schema up to MAX_ATTEMPTS times."""
        return self._generate(schema, frozenset())

    def synthesize(self, schema: SchemaRef) -> Synthesis:
        """Single attempt, without retrying a RETRY outcome."""
        built, active = self._build(schema, frozenset())
        return self._synthesize(built, active)

    def _build(self, schema: SchemaRef, active: FrozenSet[str]) -> Tuple[SchemaRef, FrozenSet[str]]:
        """
        Follows a reference, and any chain of component aliases behind it, to a
        concrete schema. Returns it with every name visited on the way added
        to `active`.
        """
        while schema.ref_name:
            if schema.ref_name in active:
                raise CircularSchemaReference(
                    f"Schema {schema.describe()} refers back to itself; configure a payload instead"
                )
            active = active | {schema.ref_name}
            resolved = self.components.get(schema.ref_name)
            if resolved is None:
                raise UnresolvedSchemaReference(f"Could not resolve schema {schema.describe()}")
            schema = resolved
        return schema, active

    def _generate(self, proxy: SchemaRef, active: FrozenSet[str]) -> Any:
        for attempt in range(MAX_ATTEMPTS):
            schema, inner = self._build(proxy, active)
            result = self._synthesize(schema, inner)
            if result.outcome is Outcome.SYNTHESIZED:
                return result.value
            logger.debug(f"Retry {attempt} for {proxy.describe()} failed; trying again")

        raise SynthesisExhausted(
            f"Could not generate a value for {proxy.describe()} after {MAX_ATTEMPTS} attempts"
        )

    def _synthesize(self, schema: SchemaRef, active: FrozenSet[str]) -> Synthesis:
        if is_set(schema.default):
            return Synthesis.of(schema.default)
        if is_set(schema.example):
            return Synthesis.of(schema.example)
        if schema.examples:
            return Synthesis.of(schema.examples[0])

        composition = schema.composition
        if composition is Composition.ONE_OF:
            return Synthesis.of(self._generate(schema.one_of[0], active))
        if composition is Composition.ANY_OF:
            return Synthesis.of(self._generate(schema.any_of[0], active))
        if composition is Composition.ALL_OF:
            merged = self._merge_all_of(schema, active)
            if merged:
                return Synthesis.of(merged)

        if schema.type is not None:
            return self._from_type(schema, active)

        if schema.properties:
            return Synthesis.of(self._object(schema, active))
        if schema.items is not None:
            return Synthesis.of(self._array(schema, active))
        return RETRY

    def _merge_all_of(self, schema: SchemaRef, active: FrozenSet[str]) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for member in schema.all_of:
            partial = self._generate(member, active)
            if not isinstance(partial, dict):
                raise NonObjectAllOfMember(
                    f"allOf member {member.describe()} of {schema.describe()} "
                    f"produced {type(partial).__name__}, expected an object"
                )
            merged.update(partial)
        return merged

    def _from_type(self, schema: SchemaRef, active: FrozenSet[str]) -> Synthesis:
        schema_type = schema.type
        if schema_type == "object":
            return Synthesis.of(self._object(schema, active))
        if schema_type == "array":
            return Synthesis.of(self._array(schema, active))
        if schema_type == "null":
            return Synthesis.of(None)
        if schema_type == "boolean":
            return Synthesis.of(True)
        if schema_type == "number":
            # float, double and unspecified widths all become a double
            return Synthesis.of(0.0)
        if schema_type == "integer":
            # int32, int64 and unspecified widths all become a plain int
            return Synthesis.of(0)
        if schema_type == "string":
            return Synthesis.of("test")
        raise UnknownSchemaType(
            f"Unknown type {schema_type!r} in {schema.describe()}; "
            f"can't generate a fake value for something we don't understand"
        )

    def _object(self, schema: SchemaRef, active: FrozenSet[str]) -> Dict[str, Any]:
        return {
            name: self._generate(prop, active)
            for name, prop in (schema.properties or {}).items()
        }

    def _array(self, schema: SchemaRef, active: FrozenSet[str]) -> list:
        if isinstance(schema.items, bool):
            if schema.items:
                return []
            raise UnsynthesizableArray(
                f"Can't determine how to generate items for {schema.describe()} "
                f"(whose item definition is `false`)"
            )
        if schema.items is None:
            return []
        return [self._generate(schema.items, active)]


def generate_payload(schema: SchemaRef, components: Dict[str, SchemaRef]) -> Any:
    return PayloadSynthesizer(components).generate(schema)


def serialize_payload(media_type: str, data: Any) -> str:
    """Encodes a value for the given media type."""
    if media_type == "application/json":
        # don't serialize a string that's already serialized
        if isinstance(data, str) and ("{" in data or "[" in data):
            return data
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    raise UnsupportedMediaType(f"Unsupported media type {media_type!r}")

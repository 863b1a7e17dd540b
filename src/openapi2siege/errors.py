"""
Error kinds raised while turning an OpenAPI document into a Siege plan.

Every error is fatal to the conversion: nothing is caught inside the core, so
the first failure aborts the whole pass before any file is written. The CLI
is the only place these are caught.
"""


class ConversionError(ValueError):
    """Base class for every conversion failure."""


# Document loading

class UnsupportedDocumentVersion(ConversionError):
    pass


class UnresolvableReference(ConversionError):
    pass


class SettingsError(ConversionError):
    pass


# Operation walk

class UnconfiguredPath(ConversionError):
    """A path (or one of its methods) has no `paths.{path}` block in the settings."""


class UnconfiguredOperation(UnconfiguredPath):
    pass


# Parameters and payloads

class ParameterError(ConversionError):
    pass


class MissingParameterConfig(ParameterError):
    pass


class PayloadError(ConversionError):
    pass


class MissingPayloadConfig(PayloadError):
    pass


class UnsupportedMediaType(PayloadError):
    pass


# Servers

class ServerError(ConversionError):
    pass


class MissingServerVariable(ServerError):
    pass


class AmbiguousServer(ServerError):
    pass


class NoServers(ServerError):
    pass


class RelativeServerUrl(ServerError):
    pass


# Security schemes

class SecurityError(ConversionError):
    pass


class UnknownSecurityScheme(SecurityError):
    pass


class UnconfiguredApiKey(SecurityError):
    pass


class UnconfiguredCredentials(SecurityError):
    pass


class MalformedCredentials(SecurityError):
    pass


class UnconfiguredMutualTLS(SecurityError):
    pass


class UnsupportedSecurityScheme(SecurityError):
    pass


class UnrecognizedSecurityScheme(SecurityError):
    pass


# Schema synthesis

class SynthesisError(ConversionError):
    pass


class UnknownSchemaType(SynthesisError):
    pass


class UnsynthesizableArray(SynthesisError):
    pass


class NonObjectAllOfMember(SynthesisError):
    pass


class UnresolvedSchemaReference(SynthesisError):
    pass


class CircularSchemaReference(SynthesisError):
    pass


class SynthesisExhausted(SynthesisError):
    """A schema kept asking to be rebuilt after every allowed attempt."""

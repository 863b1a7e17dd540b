import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

from ..errors import MissingParameterConfig
from ..ir.models import Parameter, is_set
from ..ir.plan import RequestCookie

logger = logging.getLogger(__name__)


@dataclass
class ResolvedParameters:
    path: str
    query: List[Tuple[str, str]] = field(default_factory=list)
    cookies: List[RequestCookie] = field(default_factory=list)


def value_to_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if value is None:
        return ""
    return json.dumps(value, separators=(",", ":"))


def _fallback_value(method: str, path: str, param: Parameter) -> str:
    if is_set(param.example):
        return value_to_string(param.example)
    if param.examples:
        return value_to_string(param.examples[0])
    if param.allow_empty_value:
        return ""
    raise MissingParameterConfig(
        f"Unconfigured value for {param.name} in {method.upper()} {path}, with no examples to draw from\n"
        f"\tNeed paths.{path}.{method.lower()}.params.{param.name}"
    )


def resolve_parameters(
    method: str,
    path: str,
    parameters: Sequence[Parameter],
    configured: Dict[str, str],
) -> ResolvedParameters:
    """
    Resolves every declared parameter of one operation.

    A configured value always wins. Required parameters without one fall back
    to the declared example, then the first of the examples, then an empty
    value when allowed. Optional parameters without a configured value are
    left out.
    """
    resolved = ResolvedParameters(path=path)

    for param in parameters:
        if param.name in configured:
            value = configured[param.name]
        elif param.required:
            value = _fallback_value(method, path, param)
        else:
            continue

        if param.location == "path":
            resolved.path = resolved.path.replace(f"{{{param.name}}}", value)
        elif param.location == "query":
            resolved.query.append((param.name, value))
        elif param.location == "cookie":
            resolved.cookies.append(RequestCookie(name=param.name, value=value))
        elif param.location == "header":
            logger.warning(
                f"Per-request headers are unsupported by Siege; your tests may not work as expected. "
                f"Skipping {param.name} for {path}"
            )
        else:
            logger.warning(f"Unknown parameter location {param.location!r} for {param.name} in {path}; skipping")

    return resolved

"""
Conversion settings: everything the document itself cannot tell us.

Loaded from a YAML (or JSON) file, by default `oa2s.yaml`:

    spec: openapi.yaml
    server:
      useFirst: false
      description: Production
      variables: {region: eu}
    auth:
      apiKeyAuth: {apikey: abc123}
      basicAuth: {creds: "user:pass:realm"}
    paths:
      /users/{id}:
        get:
          params: {id: 42}
        put:
          params: {id: 42}
          payloads:
            application/json: '{"name": "x"}'
    siege:
      urls: urls.txt
      cookies: cookies.txt
      config: siege.conf
"""
import json
import logging
import os
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import SettingsError, UnconfiguredOperation, UnconfiguredPath

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = "oa2s.yaml"


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, separators=(",", ":"))


class MethodSettings(BaseModel):
    params: Dict[str, str] = Field(default_factory=dict)
    payloads: Dict[str, str] = Field(default_factory=dict)

    @field_validator("params", "payloads", mode="before")
    @classmethod
    def _coerce_values(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): _stringify(v) for k, v in value.items()}
        return value


class ServerSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    use_first: bool = Field(False, alias="useFirst")
    description: Optional[str] = None
    variables: Dict[str, str] = Field(default_factory=dict)

    @field_validator("variables", mode="before")
    @classmethod
    def _coerce_variables(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): _stringify(v) for k, v in value.items()}
        return value


class AuthSettings(BaseModel):
    apikey: Optional[str] = None
    creds: Optional[str] = None
    cert: Optional[str] = None
    key: Optional[str] = None


class SiegeSettings(BaseModel):
    urls: str = "urls.txt"
    cookies: str = "cookies.txt"
    config: str = "siege.conf"
    concurrent: Optional[int] = Field(None, ge=1)
    reps: Optional[int] = Field(None, ge=1)
    time: Optional[str] = None
    delay: Optional[float] = Field(None, ge=0)
    variables: Dict[str, str] = Field(default_factory=dict)


class ConversionSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    spec: str = "openapi.yaml"
    server: ServerSettings = Field(default_factory=ServerSettings)
    auth: Dict[str, AuthSettings] = Field(default_factory=dict)
    # path -> lower-cased method -> settings
    paths: Dict[str, Dict[str, MethodSettings]] = Field(default_factory=dict)
    siege: SiegeSettings = Field(default_factory=SiegeSettings)

    @field_validator("paths", mode="before")
    @classmethod
    def _lower_methods(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {
                path: {str(m).lower(): cfg or {} for m, cfg in (methods or {}).items()}
                for path, methods in value.items()
            }
        return value

    def path_settings(self, path: str) -> Dict[str, MethodSettings]:
        if path not in self.paths:
            raise UnconfiguredPath(
                f"Path `{path}` not configured.\n"
                f"\tNeed `paths.{path}.{{method}}.params.{{name}}` "
                f"and/or `paths.{path}.{{method}}.payloads.{{mediaType}}`"
            )
        return self.paths[path]

    def method_settings(self, path: str, method: str) -> MethodSettings:
        methods = self.path_settings(path)
        method = method.lower()
        if method not in methods:
            raise UnconfiguredOperation(
                f"`{method.upper()} {path}` not configured.\n"
                f"\tNeed `paths.{path}.{method}.params.{{name}}` "
                f"and/or `paths.{path}.{method}.payloads.{{mediaType}}`"
            )
        return methods[method]


def load_settings(path: Optional[str] = None) -> ConversionSettings:
    """
    Loads settings from a YAML/JSON file.

    A missing file is only tolerated for the default location, in which case
    every value comes from defaults and command-line flags.
    """
    explicit = path is not None
    path = path or DEFAULT_SETTINGS_FILE

    if not os.path.exists(path):
        if explicit:
            raise SettingsError(f"Settings file not found: {path}")
        logger.info(f"No settings file at {path}; using defaults")
        return ConversionSettings()

    with open(path, 'r', encoding='utf-8') as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise SettingsError(f"Could not parse {path}: {e}") from e

    return parse_settings(raw, source=path)


def parse_settings(raw: Dict[str, Any], source: str = "<settings>") -> ConversionSettings:
    if not isinstance(raw, dict):
        raise SettingsError(f"{source} must contain a mapping at the top level")
    try:
        return ConversionSettings.model_validate(raw)
    except ValidationError as e:
        raise SettingsError(f"Invalid settings in {source}:\n{e}") from e

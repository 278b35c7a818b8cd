"""Configuration management for tdingest.

Handles connection URLs, TOML config files, environment variables, named
profiles, and configuration precedence resolution.

Precedence order (highest to lowest):
1. Explicit overrides (CLI flags, factory keyword arguments)
2. --url flag (parsed into components)
3. Environment variables (TDINGEST_URL, TDINGEST_USER, ...)
4. Named profile (--profile or TDINGEST_PROFILE env var)
5. Config file defaults
6. Built-in defaults
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, unquote, urlparse

from pydantic import BaseModel, computed_field, field_validator, model_validator

from tdingest.core.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "tdingest" / "config.toml"

MAX_SQL_LENGTH = 1_048_576
MAX_ATTEMPTS = 3

DEFAULT_USER = "root"
DEFAULT_PASSWORD = "taosdata"  # pragma: allowlist secret
DEFAULT_REST_PORT = 6041
DEFAULT_NATIVE_PORT = 6030

TRANSPORTS = ("rest", "native")

# scheme -> (transport, http scheme for REST)
_URL_SCHEMES: dict[str, tuple[str, str | None]] = {
    "rest": ("rest", "http"),
    "http": ("rest", "http"),
    "https": ("rest", "https"),
    "taos-rs": ("rest", "http"),
    "taos": ("native", None),
    "taosws": ("native", None),
}

# Path segments belonging to the REST endpoint rather than a database name.
_ENDPOINT_SEGMENTS = frozenset({"rest", "sql"})

_ENV_VARS: dict[str, str] = {
    "TDINGEST_URL": "url",
    "TDINGEST_USER": "user",
    "TDINGEST_PASSWORD": "password",  # pragma: allowlist secret
    "TDINGEST_DATABASE": "database",
    "TDINGEST_TIMEOUT": "timeout",
}

_ENV_FLAGS: dict[str, str] = {
    "TDINGEST_STRICT_TYPE": "strict_type_check",
    "TDINGEST_BINARY_AS_STRING": "binary_as_string",
    "TDINGEST_DEBUG": "debug",
}

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off", ""})


def parse_bool(name: str, value: str) -> bool:
    v = value.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    msg = f"Invalid {name} value: '{value}'. Expected true/false"
    raise ConfigError(msg)


def parse_url(url: str) -> dict[str, Any]:
    """Split a connection URL into transport and connection components.

    Supports rest://, http(s)://, taos://, taosws:// and the jdbc:TAOS://
    and jdbc:TAOS-RS:// forms. The database comes from the ``db`` or
    ``database`` query parameter, else the first path segment.
    """
    if url is None or not url.strip():
        raise ConfigError("Connection URL must not be empty")

    text = url.strip()
    if text.lower().startswith("jdbc:"):
        text = text[len("jdbc:") :]
    parsed = urlparse(text)
    scheme = parsed.scheme.lower()
    if scheme not in _URL_SCHEMES:
        expected = ", ".join(sorted(_URL_SCHEMES))
        msg = f"Invalid URL scheme: '{parsed.scheme}'. Expected one of: {expected}"
        raise ConfigError(msg)

    transport, http_scheme = _URL_SCHEMES[scheme]
    result: dict[str, Any] = {"transport": transport}
    if http_scheme:
        result["scheme"] = http_scheme
    if parsed.hostname:
        result["host"] = parsed.hostname
    try:
        port = parsed.port
    except ValueError as e:
        raise ConfigError(f"Invalid port in URL '{url}': {e}") from e
    if port:
        result["port"] = port
    if parsed.username:
        result["user"] = unquote(parsed.username)
    if parsed.password:
        result["password"] = unquote(parsed.password)

    query_params = parse_qs(parsed.query)
    if "user" in query_params:
        result["user"] = query_params["user"][0]
    if "password" in query_params:
        result["password"] = query_params["password"][0]

    database = None
    for key in ("db", "database"):
        if key in query_params and query_params[key][0].strip():
            database = query_params[key][0].strip()
            break
    if database is None:
        segments = [s for s in parsed.path.split("/") if s]
        for segment in segments:
            if segment.lower() not in _ENDPOINT_SEGMENTS:
                database = segment
                break
    if database:
        result["database"] = database
    return result


class ConnectionProfile(BaseModel):
    url: str | None = None
    transport: str | None = None
    scheme: str | None = None
    host: str | None = None
    port: int | None = None
    database: str | None = None
    user: str | None = None
    password: str | None = None

    @model_validator(mode="before")
    @classmethod
    def parse_url_into_components(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("url"):
            data = dict(data)
            for key, value in parse_url(data["url"]).items():
                if key not in data:
                    data[key] = value
        return data

    @field_validator("transport")
    @classmethod
    def validate_transport(cls, v: str | None) -> str | None:
        if v is not None and v not in TRANSPORTS:
            msg = f"Invalid transport: '{v}'. Must be one of: {', '.join(TRANSPORTS)}"
            raise ValueError(msg)
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int | None) -> int | None:
        if v is not None and not (1 <= v <= 65535):
            msg = f"Invalid port: {v}. Must be 1-65535"
            raise ValueError(msg)
        return v


class AppConfig(BaseModel):
    timeout: float = 30.0
    strict_type_check: bool = False
    binary_as_string: bool = False
    debug: bool = True
    default_profile: str | None = None
    profiles: dict[str, ConnectionProfile] = {}


class ClientConfig(BaseModel):
    """Fully resolved settings for one TdClient."""

    transport: str = "rest"
    scheme: str = "http"
    host: str = "localhost"
    port: int | None = None
    database: str | None = None
    user: str = DEFAULT_USER
    password: str = DEFAULT_PASSWORD
    timeout: float = 30.0
    strict_type_check: bool = False
    binary_as_string: bool = False
    debug: bool = True
    max_attempts: int = MAX_ATTEMPTS
    max_sql_length: int = MAX_SQL_LENGTH
    active_profile: str | None = None
    sources: dict[str, str] = {}

    @field_validator("transport")
    @classmethod
    def validate_transport(cls, v: str) -> str:
        if v not in TRANSPORTS:
            msg = f"Invalid transport: '{v}'. Must be one of: {', '.join(TRANSPORTS)}"
            raise ValueError(msg)
        return v

    @field_validator("max_attempts", "max_sql_length")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Must be positive, got {v}")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def effective_port(self) -> int:
        if self.port:
            return self.port
        return DEFAULT_REST_PORT if self.transport == "rest" else DEFAULT_NATIVE_PORT

    @computed_field  # type: ignore[prop-decorator]
    @property
    def base_url(self) -> str:
        """REST endpoint root; statements are posted to ``<base_url>/sql``."""
        return f"{self.scheme}://{self.host}:{self.effective_port}/rest"

    @classmethod
    def from_url(cls, url: str, **overrides: Any) -> ClientConfig:
        fields = parse_url(url)
        fields.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return cls(**fields)
        except ValueError as e:
            raise ConfigError(f"Invalid client configuration: {e}") from e


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML file.

    Returns default AppConfig if file doesn't exist.
    Raises ConfigError on malformed TOML or invalid config.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Malformed TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return AppConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid configuration in {config_path}: {e}"
        raise ConfigError(msg) from e


def resolve_config(
    config: AppConfig,
    profile_name: str | None = None,
    url: str | None = None,
    **overrides: Any,
) -> ClientConfig:
    """Resolve configuration using precedence chain.

    Overrides > URL > env > profile > config defaults > built-in defaults.
    """
    sources: dict[str, str] = {}
    resolved: dict[str, Any] = {}

    # Layer 1: Built-in defaults
    for key, field in ClientConfig.model_fields.items():
        if key in ("active_profile", "sources"):
            continue
        resolved[key] = field.default
        sources[key] = "default"

    # Layer 2: Config file global defaults
    for key in ("timeout", "strict_type_check", "binary_as_string", "debug"):
        if key in config.model_fields_set:
            resolved[key] = getattr(config, key)
            sources[key] = "config"

    # Layer 3: Named profile
    effective_profile = profile_name
    if not effective_profile:
        effective_profile = os.environ.get("TDINGEST_PROFILE")
    if not effective_profile:
        effective_profile = config.default_profile

    if effective_profile:
        if effective_profile not in config.profiles:
            available = (
                ", ".join(sorted(config.profiles.keys())) if config.profiles else "none"
            )
            msg = f"Unknown profile: '{effective_profile}'. Available profiles: {available}"
            raise ConfigError(msg)
        profile = config.profiles[effective_profile]
        for key in profile.model_fields_set:
            if key == "url":
                continue
            value = getattr(profile, key)
            if key in resolved and value is not None:
                resolved[key] = value
                sources[key] = f"profile: {effective_profile}"

    # Layer 4: Environment variables
    env_url = None
    for env_var, field_name in _ENV_VARS.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        if field_name == "url":
            env_url = value
            continue
        if field_name == "timeout":
            try:
                resolved[field_name] = float(value)
            except ValueError:
                msg = f"Invalid {env_var} value: '{value}'. Must be a number"
                raise ConfigError(msg) from None
        else:
            resolved[field_name] = value
        sources[field_name] = f"env: {env_var}"
    for env_var, field_name in _ENV_FLAGS.items():
        value = os.environ.get(env_var)
        if value is not None:
            resolved[field_name] = parse_bool(env_var, value)
            sources[field_name] = f"env: {env_var}"

    # Layer 5: URL (flag beats environment)
    for source, value in (("env: TDINGEST_URL", env_url), ("url", url)):
        if not value:
            continue
        for key, component in parse_url(value).items():
            if key in resolved:
                resolved[key] = component
                sources[key] = source

    # Layer 6: Explicit overrides (highest priority)
    for key, value in overrides.items():
        if value is None:
            continue
        if key not in resolved:
            raise ConfigError(f"Unknown configuration key: '{key}'")
        resolved[key] = value
        sources[key] = f"cli: --{key.replace('_', '-')}"

    resolved["active_profile"] = effective_profile
    resolved["sources"] = sources
    try:
        return ClientConfig(**resolved)
    except ValueError as e:
        raise ConfigError(f"Invalid client configuration: {e}") from e

"""Proxy configuration.

A config can come from a -config.json file that specifies:
- port: local listener port (default: 8080)
- throttle_delay_ms: pause before every uncached upstream call (default: 1000)
- cache_dir: root of the response cache (default: cache)
- upstream_timeout_s: timeout for upstream calls, null for none (default: 20)
- apis: API identifiers to serve (default: ["sonapi_v2"])
- api_urls: optional URL templates per API, e.g. {"sonapi_v2": "http://host/v2/{term}"}
- verbose: enable verbose logging (default: false)

Environment variables (SONACARDS_*) override the file, and CLI flags override both.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv

from sonacards.proxy.apis import ExternalApi, parse_api


CONFIG_FILENAME = "-config.json"

ENV_PORT = "SONACARDS_PORT"
ENV_DELAY_MS = "SONACARDS_DELAY_MS"
ENV_CACHE_DIR = "SONACARDS_CACHE_DIR"
ENV_TIMEOUT_S = "SONACARDS_TIMEOUT_S"


@dataclass(frozen=True)
class ProxyConfig:
    """Configuration for the caching proxy and the card driver."""
    port: int = 8080
    throttle_delay_ms: int = 1000
    cache_dir: str = "cache"
    upstream_timeout_s: Optional[float] = 20.0
    apis: Tuple[ExternalApi, ...] = (ExternalApi.SONAPI_V2,)
    api_urls: Mapping[str, str] = field(default_factory=dict)
    verbose: bool = False

    def __post_init__(self):
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port must be between 0 and 65535, got {self.port}")
        if self.throttle_delay_ms < 0:
            raise ValueError(f"throttle_delay_ms must be >= 0, got {self.throttle_delay_ms}")
        if self.upstream_timeout_s is not None and self.upstream_timeout_s <= 0:
            raise ValueError(f"upstream_timeout_s must be > 0, got {self.upstream_timeout_s}")
        if not self.apis:
            raise ValueError("at least one API must be configured")
        for name in self.api_urls:
            parse_api(name)

    @property
    def throttle_delay_s(self) -> float:
        return self.throttle_delay_ms / 1000.0

    @property
    def cache_path(self) -> Path:
        return Path(self.cache_dir)


def _parse_apis(value: Any) -> Tuple[ExternalApi, ...]:
    if isinstance(value, str):
        value = [v.strip() for v in value.split(",") if v.strip()]
    if not isinstance(value, list):
        raise ValueError(f"apis must be a list of API names, got {value!r}")
    return tuple(parse_api(str(v)) for v in value)


def _parse_timeout(value: Any) -> Optional[float]:
    if value is None or value == "" or str(value).lower() in ("none", "null", "0"):
        return None
    return float(value)


def _values_from_file(config_path: Path) -> Dict[str, Any]:
    with open(config_path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{config_path} must contain a JSON object")

    values: Dict[str, Any] = {}
    if "port" in data:
        values["port"] = int(data["port"])
    if "throttle_delay_ms" in data:
        values["throttle_delay_ms"] = int(data["throttle_delay_ms"])
    if "cache_dir" in data:
        # Relative cache dirs are relative to the config file
        values["cache_dir"] = str((config_path.parent / str(data["cache_dir"])).resolve())
    if "upstream_timeout_s" in data:
        values["upstream_timeout_s"] = _parse_timeout(data["upstream_timeout_s"])
    if "apis" in data:
        values["apis"] = _parse_apis(data["apis"])
    if "api_urls" in data:
        api_urls = data["api_urls"]
        if not isinstance(api_urls, dict):
            raise ValueError("api_urls must be an object mapping API names to URL templates")
        values["api_urls"] = {str(k): str(v) for k, v in api_urls.items()}
    if "verbose" in data:
        values["verbose"] = bool(data["verbose"])
    return values


def _values_from_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if environ.get(ENV_PORT):
        values["port"] = int(environ[ENV_PORT])
    if environ.get(ENV_DELAY_MS):
        values["throttle_delay_ms"] = int(environ[ENV_DELAY_MS])
    if environ.get(ENV_CACHE_DIR):
        values["cache_dir"] = environ[ENV_CACHE_DIR]
    if environ.get(ENV_TIMEOUT_S):
        values["upstream_timeout_s"] = _parse_timeout(environ[ENV_TIMEOUT_S])
    return values


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> ProxyConfig:
    """Build the configuration from file, environment, and explicit overrides.

    Overrides set to None are ignored so argparse defaults can be passed through.
    Raises ValueError on unknown APIs or out-of-range values.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    values: Dict[str, Any] = {}
    if config_path is not None:
        values.update(_values_from_file(Path(config_path)))
    values.update(_values_from_env(environ))
    values.update({k: v for k, v in overrides.items() if v is not None})
    return ProxyConfig(**values)

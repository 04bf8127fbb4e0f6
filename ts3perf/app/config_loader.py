# ts3perf/app/config_loader.py
from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from ts3perf.app.config import CheckConfig
from ts3perf.check.thresholds import ThresholdSpec
from ts3perf.core.errors import CheckConfigError

THRESHOLD_KEYS = ("packet_loss", "ping", "clients")

# key -> schema type name
SCHEMA: Dict[str, str] = {
    "host": "str",
    "port": "int",
    "virtual_port": "int",
    "timeout_s": "float",
    "packet_loss": "threshold",
    "ping": "threshold",
    "clients": "threshold",
    "minimal_uptime": "int",
    "ignore_reserved_slots": "bool",
    "ignore_virtualserver_status": "bool",
    "username": "str",
    "password": "str",
    "debug": "bool",
}


def _cast(value: Any, type_name: str) -> Any:
    if value is None:
        return None

    if type_name == "str":
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            raise TypeError(f"Expected str, got {type(value).__name__}")
        return str(value)

    if type_name == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Expected int, got {type(value).__name__}")
        return value

    if type_name == "float":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Expected float, got {type(value).__name__}")
        return float(value)

    if type_name == "bool":
        if isinstance(value, bool):
            return value
        raise TypeError(f"Expected bool, got {type(value).__name__}")

    if type_name == "threshold":
        if not isinstance(value, Mapping):
            raise TypeError(f"Expected mapping with warning/critical, got {type(value).__name__}")
        unknown = set(value) - {"warning", "critical"}
        if unknown:
            raise TypeError(f"Unknown threshold keys {sorted(unknown)}")
        return ThresholdSpec(
            warning=_cast(value.get("warning"), "float"),
            critical=_cast(value.get("critical"), "float"),
        )

    raise TypeError(f"Unknown schema type '{type_name}'")


def parse_config_mapping(doc: Mapping[str, Any], *, source: str = "<config>") -> Dict[str, Any]:
    """Validate and cast a raw mapping into CheckConfig keyword arguments."""
    out: Dict[str, Any] = {}
    for key, value in doc.items():
        if key not in SCHEMA:
            raise CheckConfigError(
                f"Unknown config key '{key}' in {source}.",
                hint=f"Valid keys: {sorted(SCHEMA)}",
                details={"source": source, "key": key},
            ) from None
        if value is None:
            continue
        try:
            out[key] = _cast(value, SCHEMA[key])
        except (TypeError, ValueError) as e:
            raise CheckConfigError(
                f"Invalid value for config key '{key}' in {source}.",
                hint=str(e),
                details={"source": source, "key": key, "value": value},
            ) from None
    return out


def load_config_file(path: str | Path) -> Dict[str, Any]:
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = yaml.safe_load(f) or {}
    except OSError as e:
        raise CheckConfigError(
            f"Cannot read config file {path}.",
            hint=str(e),
            details={"path": str(path)},
        ) from None
    except yaml.YAMLError as e:
        raise CheckConfigError(
            f"Malformed YAML in config file {path}.",
            hint=str(e),
            details={"path": str(path)},
        ) from None

    if not isinstance(doc, Mapping):
        raise CheckConfigError(f"Config file {path} must contain a mapping at top level.")

    return parse_config_mapping(doc, source=str(path))


def build_config(
    *,
    file_values: Optional[Mapping[str, Any]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> CheckConfig:
    """
    Defaults < config file < explicit overrides (CLI flags that were given).

    Threshold overrides are merged per level, so a file can set `warning`
    and the command line only `critical`.
    """
    cfg = CheckConfig()
    if file_values:
        cfg = replace(cfg, **dict(file_values))

    overrides = dict(overrides or {})
    for key in THRESHOLD_KEYS:
        if key in overrides and isinstance(overrides[key], Mapping):
            current: ThresholdSpec = getattr(cfg, key)
            levels = {k: v for k, v in overrides[key].items() if v is not None}
            overrides[key] = replace(current, **levels)

    if overrides:
        cfg = replace(cfg, **overrides)
    return cfg

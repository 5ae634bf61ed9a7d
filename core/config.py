"""Optimizer configuration loading.

Parses the YAML run configuration (source patterns, strategy, glob and
renderer options) in strict or non-strict mode. Non-strict mode logs and
falls back to defaults; strict mode raises ``ConfigValidationError``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

_RENDERER_KEYS = {"line_ending", "trailing_newline"}


class ConfigValidationError(RuntimeError):
    """Raised when strict configuration validation fails."""


@dataclass
class OptimizerConfig:
    """Resolved optimizer run configuration."""

    files: dict[str, list[str]] = field(default_factory=dict)
    closure: bool = False
    glob: dict[str, Any] = field(default_factory=dict)
    renderer: dict[str, Any] = field(default_factory=dict)

    def optimize_options(self) -> dict[str, Any]:
        """Options mapping accepted by ``optimizer.optimize``."""
        return {"closure": self.closure, "renderer_options": dict(self.renderer)}


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def resolve_strict_config_validation(default: bool = False) -> bool:
    """Resolve strict validation mode from ``STRICT_CONFIG_VALIDATION`` env."""
    return _env_flag("STRICT_CONFIG_VALIDATION", default=default)


def resolve_closure(default: bool = False) -> bool:
    """Resolve the closure strategy override from ``OPTIMIZER_CLOSURE`` env."""
    return _env_flag("OPTIMIZER_CLOSURE", default=default)


def _invalid(msg: str, strict: bool) -> None:
    if strict:
        raise ConfigValidationError(msg)
    logger.warning("%s; using defaults", msg)


def _parse_files(raw: Any, strict: bool) -> dict[str, list[str]]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        _invalid("'files' must map source patterns to destinations", strict)
        return {}

    files: dict[str, list[str]] = {}
    for pattern, destinations in raw.items():
        if isinstance(destinations, str):
            destinations = [destinations]
        if not isinstance(destinations, list) or not all(
            isinstance(d, str) for d in destinations
        ):
            _invalid(f"Invalid destination for pattern '{pattern}'", strict)
            continue
        files[str(pattern)] = destinations
    return files


def _parse_mapping(raw: Any, name: str, strict: bool) -> dict[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        _invalid(f"'{name}' must be a mapping", strict)
        return {}
    return dict(raw)


def _parse_renderer(raw: Any, strict: bool) -> dict[str, Any]:
    renderer = _parse_mapping(raw, "renderer", strict)
    unknown = set(renderer) - _RENDERER_KEYS
    if unknown:
        _invalid(f"Unknown renderer options: {', '.join(sorted(unknown))}", strict)
        renderer = {k: v for k, v in renderer.items() if k in _RENDERER_KEYS}
    return renderer


def parse_optimizer_config(payload: Any, strict: bool = False) -> OptimizerConfig:
    """Validate a decoded configuration payload."""
    if payload is None:
        return OptimizerConfig(closure=resolve_closure())
    if not isinstance(payload, dict):
        _invalid(f"Unexpected config payload type: {type(payload).__name__}", strict)
        return OptimizerConfig(closure=resolve_closure())

    closure = payload.get("closure", False)
    if not isinstance(closure, bool):
        _invalid("'closure' must be a boolean", strict)
        closure = False

    return OptimizerConfig(
        files=_parse_files(payload.get("files"), strict),
        closure=resolve_closure(default=closure),
        glob=_parse_mapping(payload.get("glob"), "glob", strict),
        renderer=_parse_renderer(payload.get("renderer"), strict),
    )


def load_optimizer_config(
    config_path: str,
    strict: Optional[bool] = None,
) -> OptimizerConfig:
    """Load and validate an optimizer YAML configuration file.

    In non-strict mode read/parse failures yield the default configuration.
    In strict mode they raise ``ConfigValidationError``. ``strict`` defaults
    to the ``STRICT_CONFIG_VALIDATION`` environment flag.
    """
    if strict is None:
        strict = resolve_strict_config_validation()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            payload = yaml.safe_load(f)
    except FileNotFoundError as exc:
        msg = f"Optimizer config file not found: {config_path}"
        if strict:
            raise ConfigValidationError(msg) from exc
        logger.warning("%s; continuing with defaults", msg)
        return OptimizerConfig(closure=resolve_closure())
    except yaml.YAMLError as exc:
        msg = f"Failed to parse optimizer config YAML at {config_path}: {exc}"
        if strict:
            raise ConfigValidationError(msg) from exc
        logger.warning("%s; continuing with defaults", msg)
        return OptimizerConfig(closure=resolve_closure())

    if payload is None:
        msg = f"Optimizer config file is empty: {config_path}"
        if strict:
            raise ConfigValidationError(msg)
        logger.warning("%s; continuing with defaults", msg)

    return parse_optimizer_config(payload, strict=strict)

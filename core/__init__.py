"""Core shared configuration, logging and reporting utilities."""

from core.structured_logging import (
    configure_structured_logging,
    file_scope,
    get_run_id,
    get_source_file,
    phase_scope,
    set_run_id,
)
from core.config import (
    ConfigValidationError,
    OptimizerConfig,
    load_optimizer_config,
    parse_optimizer_config,
    resolve_closure,
    resolve_strict_config_validation,
)
from core.run_artifacts import build_run_report, write_run_report

__all__ = [
    "configure_structured_logging",
    "file_scope",
    "get_run_id",
    "get_source_file",
    "phase_scope",
    "set_run_id",
    "ConfigValidationError",
    "OptimizerConfig",
    "load_optimizer_config",
    "parse_optimizer_config",
    "resolve_closure",
    "resolve_strict_config_validation",
    "build_run_report",
    "write_run_report",
]

#!/usr/bin/env python3
"""
Command-line driver for the class-declaration protocol optimizer.

Reads source files matched by glob patterns, optimizes every declaration
usage and writes the results into destination directories.

Usage:
    python run_optimizer.py --config optimizer.yml
    python run_optimizer.py --source "src/**/*.js" --dest dist
    python run_optimizer.py --source "src/*.js" --dest dist --closure
"""

import argparse
import logging
import sys
import time

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Class-declaration protocol optimizer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python run_optimizer.py --config optimizer.yml\n"
            "  python run_optimizer.py --source 'src/**/*.js' --dest dist --closure\n"
        )
    )

    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML optimizer configuration."
    )
    parser.add_argument(
        "--source",
        action="append",
        default=[],
        help="Source glob pattern. Repeatable; paired with --dest in order."
    )
    parser.add_argument(
        "--dest",
        action="append",
        default=[],
        help="Destination directory for the matching --source pattern."
    )
    parser.add_argument(
        "--closure",
        action="store_true",
        default=False,
        help="Optimize every usage with closures instead of direct prototype calls."
    )
    parser.add_argument(
        "--strict-config",
        action="store_true",
        default=None,
        help="Fail on invalid configuration instead of falling back to defaults."
    )
    parser.add_argument(
        "--report-dir",
        default=None,
        help="If set, write a JSON run report into this directory."
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. Default: INFO"
    )

    return parser.parse_args()


def main() -> None:
    """Main entry point for the optimizer."""
    from core.config import OptimizerConfig, load_optimizer_config, resolve_closure
    from core.run_artifacts import write_run_report
    from core.structured_logging import configure_structured_logging, phase_scope, set_run_id
    from optimizer.batch import optimize_files
    from optimizer.models import OptimizeOptions

    args = parse_args()
    configure_structured_logging(getattr(logging, args.log_level))
    run_id = set_run_id()

    if len(args.source) != len(args.dest):
        logger.error("Every --source pattern needs a matching --dest directory")
        sys.exit(1)

    try:
        with phase_scope("config"):
            if args.config:
                config = load_optimizer_config(args.config, strict=args.strict_config)
            else:
                config = OptimizerConfig(closure=resolve_closure())
            for pattern, dest in zip(args.source, args.dest):
                config.files.setdefault(pattern, []).append(dest)
            if args.closure:
                config.closure = True

        if not config.files:
            logger.error("No source patterns given (use --config or --source/--dest)")
            sys.exit(1)

        with phase_scope("optimize"):
            t0 = time.time()
            stats = optimize_files(
                config.files,
                glob_options=config.glob,
                options=OptimizeOptions.from_mapping(config.optimize_options()),
            )
            logger.info(f"Optimization finished in {time.time() - t0:.2f}s: {stats}")

        if args.report_dir:
            path = write_run_report(
                stats.to_dict(),
                run_id,
                output_dir=args.report_dir,
                config={"closure": config.closure, "patterns": sorted(config.files)},
            )
            logger.info(f"Run report written to {path}")

        if stats.files_failed:
            sys.exit(1)

    except FileNotFoundError as e:
        logger.error(f"File error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Optimizer failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

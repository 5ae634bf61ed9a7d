"""
High-level orchestrator for optimizing files on disk.

Expands source glob patterns, optimizes every matched file and writes the
result into one or more destination directories, mirroring the layout below
the pattern's fixed prefix.
"""

import glob
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from core.structured_logging import file_scope
from optimizer.config import JS_EXTENSIONS
from optimizer.engine import OptimizationReport, optimize_source
from optimizer.models import OptimizeOptions

logger = logging.getLogger(__name__)

Destinations = Union[str, Sequence[str]]


@dataclass
class BatchStats:
    """Statistics for a batch optimization run."""

    files_processed: int = 0
    files_failed: int = 0
    constructs_optimized: int = 0
    classification_errors: int = 0
    file_errors: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert stats to dictionary."""
        return {
            "files_processed": self.files_processed,
            "files_failed": self.files_failed,
            "constructs_optimized": self.constructs_optimized,
            "classification_errors": self.classification_errors,
            "file_errors": dict(self.file_errors),
        }

    def __str__(self) -> str:
        return (
            f"BatchStats(processed={self.files_processed}, "
            f"failed={self.files_failed}, optimized={self.constructs_optimized}, "
            f"classification_errors={self.classification_errors})"
        )


def discover_js_files(directory: str) -> List[str]:
    """Recursively discover all JavaScript files in a directory.

    Args:
        directory: Root directory to search.

    Returns:
        Sorted list of paths to JavaScript files.
    """
    js_files = []

    for root, dirs, files in os.walk(directory):
        # Skip hidden directories and dependency folders
        dirs[:] = [d for d in dirs if not d.startswith('.') and d != 'node_modules']

        for file in files:
            if os.path.splitext(file)[1] in JS_EXTENSIONS:
                js_files.append(os.path.join(root, file))

    return sorted(js_files)


def expand_pattern(pattern: str, glob_options: Optional[Mapping[str, Any]] = None) -> List[str]:
    """Expand a source pattern into the list of files it matches.

    Directories matched by the pattern are skipped; a pattern naming a
    directory expands to the JavaScript files below it.

    Raises:
        FileNotFoundError: If nothing matches.
    """
    pattern = os.path.normpath(pattern)
    options = {"recursive": True}
    options.update(glob_options or {})

    if os.path.isdir(pattern):
        files = discover_js_files(pattern)
    else:
        files = sorted(m for m in glob.glob(pattern, **options) if not os.path.isdir(m))

    if not files:
        raise FileNotFoundError(f"ENOENT, no such file '{pattern}'")
    return files


def relative_path(file: str, pattern: str) -> str:
    """Return the path of ``file`` relative to the fixed prefix of ``pattern``.

    For instance file ``/a/b.js`` and pattern ``/a/*`` give ``b.js``.
    """
    pattern = os.path.normpath(pattern)
    file = os.path.normpath(file)

    if os.path.isdir(pattern):
        return os.path.relpath(file, pattern)

    for x in range(len(file)):
        if x >= len(pattern) or file[x] != pattern[x]:
            return file[x:]

    return os.path.basename(file)


def optimize_file(path: str, options: Optional[OptimizeOptions] = None) -> OptimizationReport:
    """Optimize a single file and log its classification errors as warnings.

    Raises:
        FileNotFoundError: If the file does not exist.
        RenderError: If generated code fails to re-parse.
    """
    with open(path, "r", encoding="utf-8") as f:
        source = f.read()

    report = optimize_source(source, options)
    for error in report.errors:
        logger.warning("%s: %s", path, error)
    return report


def optimize_files(
    files: Mapping[str, Destinations],
    closure: bool = False,
    glob_options: Optional[Mapping[str, Any]] = None,
    options: Optional[OptimizeOptions] = None,
    continue_on_error: bool = True,
) -> BatchStats:
    """Optimize every file matched by the source patterns of ``files``.

    Args:
        files: Maps a source glob pattern to a destination directory or a
            list of destination directories.
        closure: Use the closure strategy for every usage.
        glob_options: Extra keyword arguments for ``glob.glob``.
        options: Full OptimizeOptions; overrides ``closure`` when given.
        continue_on_error: If False, re-raise the first per-file failure.

    Returns:
        BatchStats with processing statistics.

    Raises:
        FileNotFoundError: If a pattern matches no file.
    """
    options = options or OptimizeOptions(closure=closure)
    stats = BatchStats()

    # Patterns are processed in order so that overlapping ones do not conflict
    for pattern, destinations in files.items():
        if isinstance(destinations, str):
            destinations = [destinations]
        destinations = list(dict.fromkeys(os.path.normpath(d) for d in destinations))

        matched = expand_pattern(pattern, glob_options)
        logger.info("Pattern %s matched %d files", pattern, len(matched))

        for path in matched:
            with file_scope(path):
                try:
                    logger.debug("Optimizing file: %s", path)
                    report = optimize_file(path, options)

                    relative = relative_path(path, pattern)
                    for destination in destinations:
                        target = os.path.join(destination, relative)
                        os.makedirs(os.path.dirname(os.path.abspath(target)), exist_ok=True)
                        with open(target, "w", encoding="utf-8") as f:
                            f.write(report.output)

                    stats.files_processed += 1
                    stats.constructs_optimized += report.direct + report.closure
                    stats.classification_errors += len(report.errors)
                    if report.errors:
                        stats.file_errors[path] = [str(e) for e in report.errors]

                except Exception as e:
                    logger.error(f"Failed to optimize {path}: {e}", exc_info=True)
                    stats.files_failed += 1
                    stats.file_errors.setdefault(path, []).append(str(e))
                    if not continue_on_error:
                        raise

    logger.info(f"Optimization complete: {stats}")
    return stats

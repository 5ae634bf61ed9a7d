"""
Optimization driver.

Classifies every protocol usage of a source text, picks the rewrite strategy
for each one and renders the mutated tree back to text.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from optimizer.classifier import iter_usages
from optimizer.closure import ClosureRewriter
from optimizer.direct import DirectRewriter
from optimizer.eligibility import can_optimize_direct
from optimizer.models import ClassificationError, OptionsLike, coerce_options
from optimizer.parser import parse_source

logger = logging.getLogger(__name__)


@dataclass
class OptimizationReport:
    """Per-source outcome of an optimization run."""

    errors: List[ClassificationError] = field(default_factory=list)
    output: str = ""
    constructs: int = 0
    direct: int = 0
    closure: int = 0
    declined: int = 0

    def to_dict(self) -> dict:
        return {
            "errors": [str(e) for e in self.errors],
            "constructs": self.constructs,
            "direct": self.direct,
            "closure": self.closure,
            "declined": self.declined,
        }


def optimize_source(source: str, options: OptionsLike = None) -> OptimizationReport:
    """Optimize every declaration usage in ``source``.

    Args:
        source: JavaScript source text.
        options: OptimizeOptions or a mapping with ``closure`` and
            ``renderer_options``.

    Returns:
        An OptimizationReport with the rendered output and the collected
        classification errors.

    Raises:
        RenderError: If a generated fragment fails to re-parse.
    """
    options = coerce_options(options)
    direct = DirectRewriter()
    closure = ClosureRewriter()
    report = OptimizationReport()

    tree = parse_source(source)

    for usage in iter_usages(tree):
        if isinstance(usage, ClassificationError):
            report.errors.append(usage)
            continue

        report.constructs += 1
        # Use the closure rewriter if the user wants it or if the direct one can't be used
        if options.closure or not can_optimize_direct(usage, tree):
            rewriter = closure
        else:
            rewriter = direct

        if rewriter.optimize(tree, usage):
            if rewriter is closure:
                report.closure += 1
            else:
                report.direct += 1
        else:
            report.declined += 1

    report.output = tree.render(options.render)
    logger.debug(
        "Optimized %d usages (%d direct, %d closure, %d declined, %d errors)",
        report.constructs,
        report.direct,
        report.closure,
        report.declined,
        len(report.errors),
    )
    return report


def optimize(source: str, options: OptionsLike = None) -> Tuple[List[ClassificationError], str]:
    """Optimize ``source`` and return ``(errors, output_text)``.

    Example:
        >>> errors, output = optimize("Class.declare({ $name: 'A' });")
        >>> output
        'Class.declare({}, true);'
    """
    report = optimize_source(source, options)
    return report.errors, report.output

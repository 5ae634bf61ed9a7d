"""
Class-declaration protocol optimizer.

Tree-sitter-based JavaScript source rewriter. Finds interface, abstract class
and class declarations of the declarative class protocol and rewrites them
into forms without runtime $super / $self / $static indirection.
"""

from optimizer.models import (
    ClassificationError,
    Construct,
    OptimizeOptions,
    OptimizerError,
    RenderError,
    RewriteContext,
)
from optimizer.source_tree import RenderOptions, SourceTree, SyntaxNode
from optimizer.parser import create_parser, parse_source, parse_file, parse_fragment
from optimizer.classifier import iter_usages, classify_call, infer_kind
from optimizer.eligibility import can_optimize_direct
from optimizer.direct import DirectRewriter
from optimizer.closure import ClosureRewriter
from optimizer.engine import OptimizationReport, optimize, optimize_source
from optimizer.batch import BatchStats, optimize_file, optimize_files

__all__ = [
    # Data models
    "ClassificationError",
    "Construct",
    "OptimizeOptions",
    "OptimizerError",
    "RenderError",
    "RewriteContext",
    "RenderOptions",
    "SourceTree",
    "SyntaxNode",
    # Low-level parsing
    "create_parser",
    "parse_source",
    "parse_file",
    "parse_fragment",
    # Classification and rewriting
    "iter_usages",
    "classify_call",
    "infer_kind",
    "can_optimize_direct",
    "DirectRewriter",
    "ClosureRewriter",
    # High-level orchestration
    "OptimizationReport",
    "optimize",
    "optimize_source",
    "BatchStats",
    "optimize_file",
    "optimize_files",
]

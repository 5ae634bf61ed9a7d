"""
Data models for class-declaration protocol optimization.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Union

from optimizer.config import DEFAULT_CLOSURE
from optimizer.source_tree import RenderOptions, SyntaxNode


class OptimizerError(Exception):
    """Base class for optimizer errors."""


class ClassificationError(OptimizerError):
    """A declaration usage whose kind cannot be determined.

    Collected and returned by ``optimize()``; never raised across a file.
    """

    def __init__(self, line: int, column: int):
        self.line = line
        self.column = column
        super().__init__(
            f"Not enough metadata to optimize usage at line {line}, "
            f"column {column} (add a $name property?)"
        )


class RenderError(OptimizerError):
    """A generated code fragment failed to re-parse.

    Fatal for the whole ``optimize()`` call.
    """


@dataclass
class Construct:
    """A matched declaration call site.

    Attributes:
        node: The ``call_expression`` node.
        kind: One of: interface, abstract, concrete.
        members: The ``object`` node passed as first argument.
        method: Called protocol method, ``declare`` or ``extend``.
    """

    node: SyntaxNode
    kind: str
    members: SyntaxNode
    method: str

    @property
    def line(self) -> int:
        return self.node.line

    @property
    def column(self) -> int:
        return self.node.column


@dataclass
class RewriteContext:
    """State threaded through the member traversal of one construct.

    Attributes:
        parent: Resolved parent reference text, or None.
        is_static: True while inside a ``$statics`` group.
    """

    parent: Optional[str] = None
    is_static: bool = False

    def for_statics(self) -> "RewriteContext":
        return replace(self, is_static=True)


@dataclass
class OptimizeOptions:
    """Options accepted by ``optimize()``.

    Attributes:
        closure: Use the closure rewriter for every construct.
        render: Passthrough configuration for the printer.
    """

    closure: bool = DEFAULT_CLOSURE
    render: RenderOptions = field(default_factory=RenderOptions)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "OptimizeOptions":
        """Build options from a plain mapping (``closure``, ``renderer_options``)."""
        renderer: Dict[str, Any] = dict(options.get("renderer_options") or {})
        return cls(
            closure=bool(options.get("closure", DEFAULT_CLOSURE)),
            render=RenderOptions(**renderer),
        )


OptionsLike = Union[OptimizeOptions, Mapping[str, Any], None]


def coerce_options(options: OptionsLike) -> OptimizeOptions:
    if options is None:
        return OptimizeOptions()
    if isinstance(options, OptimizeOptions):
        return options
    return OptimizeOptions.from_mapping(options)

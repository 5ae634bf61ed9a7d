"""
Direct rewrite strategy.

Replaces symbolic references with plain prototype chain expressions on the
parent class, e.g. ``this.$super(a)`` in ``run`` becomes
``Base.prototype.run.call(this, a)``. Requires a parent reference that can be
spliced verbatim into generated code.
"""

import logging
from typing import Optional, Tuple

from optimizer.config import CLASS_STRIPPED_MARKERS, OPTIMIZED_FLAG
from optimizer.models import Construct, RewriteContext
from optimizer.rewriter import (
    Rewriter,
    has_unresolved_reference,
    is_simple_reference,
    remove_members,
    resolve_parent,
    rewrite_super_calls,
    strip_member_unwrap,
    strip_static_access,
    super_target_name,
)
from optimizer.source_tree import SourceTree

logger = logging.getLogger(__name__)


class DirectRewriter(Rewriter):
    """Rewrite constructs in place against a statically known parent."""

    strategy = "direct"

    def optimize_class(self, tree: SourceTree, construct: Construct) -> bool:
        parent = resolve_parent(tree, construct)

        # If something strange is being extended, leave the usage as authored
        if parent is not None and not is_simple_reference(parent):
            logger.debug(
                "Not optimizing usage at line %d: parent %r is not a simple reference",
                construct.line,
                parent,
            )
            return False

        self.strip_abstract_members(tree, construct)

        ctx = RewriteContext(parent=parent)
        optimizable = self.rewrite_members(tree, construct.members, ctx)

        if optimizable:
            tree.append_element(construct.node.child_by_field_name("arguments"), OPTIMIZED_FLAG)

        remove_members(tree, construct.members, CLASS_STRIPPED_MARKERS)
        return True

    def rewrite_symbols(
        self, code: str, name: Optional[str], ctx: RewriteContext
    ) -> Tuple[str, bool]:
        if ctx.parent is not None and name is not None:
            accessor = "." if ctx.is_static else ".prototype."
            code = rewrite_super_calls(code, ctx.parent, accessor, super_target_name(name, ctx))

        code = strip_static_access(code, ctx)
        code = strip_member_unwrap(code)
        return code, not has_unresolved_reference(code)

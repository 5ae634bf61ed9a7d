"""
Closure rewrite strategy.

Wraps the member object in a factory function whose parameters receive the
protocol's symbolic references:

    Class.declare({ $extends: Base, run: function () { this.$super(); } })

becomes

    Class.declare(Base, function ($super, $parent) {
        return { run: function () { $super.run.call(this); } };
    }, true)

Unlike the direct strategy this works for any parent expression and for
constructs that use ``this.$self``.
"""

import logging
from typing import Optional, Tuple

from optimizer.classifier import find_member
from optimizer.config import (
    CLASS_STRIPPED_MARKERS,
    EXTEND_METHOD,
    OPTIMIZED_FLAG,
    PARENT_MARKER,
    PARENT_PARAM,
    SELF_REF,
    SUPER_REF,
)
from optimizer.models import Construct, RenderError, RewriteContext
from optimizer.rewriter import (
    Rewriter,
    has_unresolved_reference,
    remove_members,
    replace_self_access,
    resolve_parent,
    rewrite_super_calls,
    strip_member_unwrap,
    strip_static_access,
    super_target_name,
)
from optimizer.source_tree import SourceTree, SyntaxNode, copy_positions, detect_line_ending

logger = logging.getLogger(__name__)


def build_factory(object_text: str, has_parent: bool, newline: str = "\n") -> str:
    """Return the source of a factory function returning ``object_text``."""
    params = [SUPER_REF, PARENT_PARAM, SELF_REF] if has_parent else [SELF_REF]
    return "function (%s) {%s    return %s;%s}" % (", ".join(params), newline, object_text, newline)


def _factory_parts(arguments: SyntaxNode) -> Tuple[SyntaxNode, SyntaxNode]:
    """Locate the factory function and its returned object in new arguments."""
    factory = arguments.named_children[-1]
    body = factory.child_by_field_name("body")
    statements = body.named_children if body is not None else []
    returned = statements[0].named_children if statements else []
    if not returned:
        raise RenderError("Generated factory does not return the member object")
    return factory, returned[0]


class ClosureRewriter(Rewriter):
    """Rewrite constructs into self-invoking factories."""

    strategy = "closure"

    def optimize_class(self, tree: SourceTree, construct: Construct) -> bool:
        self.strip_abstract_members(tree, construct)

        parent = resolve_parent(tree, construct)
        has_parent = parent is not None

        # Step 1: move the member object into a factory with the magical params
        arguments: Optional[SyntaxNode] = construct.node.child_by_field_name("arguments")
        newline = detect_line_ending(tree.text())
        if has_parent and construct.method != EXTEND_METHOD:
            tree.remove_element(find_member(tree, construct.members, PARENT_MARKER))
            factory_text = build_factory(tree.text(construct.members), has_parent, newline)
            arguments = tree.replace_node(arguments, "(%s, %s)" % (parent, factory_text))
        else:
            factory_text = build_factory(tree.text(construct.members), has_parent, newline)
            arguments = tree.replace_node(arguments, "(%s)" % factory_text)

        factory, members = _factory_parts(arguments)
        # The member object moved verbatim; keep reporting its authored positions
        copy_positions(construct.members, members)
        construct.members = members

        # Step 2: rewrite the symbolic references against the params
        ctx = RewriteContext(parent=parent)
        optimizable = self.rewrite_members(tree, members, ctx)

        # Step 3: flag as optimized and drop the then unused $self param
        if optimizable:
            tree.append_element(arguments, OPTIMIZED_FLAG)
            params = factory.child_by_field_name("parameters")
            tree.remove_element(params.named_children[-1])

        remove_members(tree, members, CLASS_STRIPPED_MARKERS)
        return True

    def rewrite_symbols(
        self, code: str, name: Optional[str], ctx: RewriteContext
    ) -> Tuple[str, bool]:
        if ctx.parent is not None and name is not None:
            # On static context $super is actually $parent
            ancestor = PARENT_PARAM if ctx.is_static else SUPER_REF
            code = rewrite_super_calls(code, ancestor, ".", super_target_name(name, ctx))

        code = strip_static_access(code, ctx)
        code = strip_member_unwrap(code)
        code, self_count = replace_self_access(code, SELF_REF)
        return code, self_count == 0 and not has_unresolved_reference(code)

"""
Shared rewrite machinery for both optimization strategies.

Holds the metadata stripping applied to interfaces and abstract classes, the
member traversal that visits every function of a construct, and the regular
expressions for the protocol's symbolic references. The direct and closure
rewriters plug a ``rewrite_symbols`` emitter into this traversal.
"""

import logging
import re
from typing import Iterable, Optional, Tuple

from optimizer.classifier import find_member, is_function, member_key, member_value
from optimizer.config import (
    ABSTRACTS_MARKER,
    CALL_NODE,
    EXTEND_METHOD,
    FINALS_MARKER,
    INITIALIZER_ALIASES,
    INITIALIZER_NAME,
    INTERFACE_STRIPPED_MARKERS,
    KIND_ABSTRACT,
    KIND_INTERFACE,
    MEMBER_NODE,
    OBJECT_NODE,
    PARENT_MARKER,
    PARENTHESIZED_NODE,
    RECEIVER_PATTERN,
    SIMPLE_REFERENCE_RE,
    STATICS_MARKER,
)
from optimizer.eligibility import has_self_reference
from optimizer.models import Construct, RewriteContext
from optimizer.source_tree import SourceTree, SyntaxNode

logger = logging.getLogger(__name__)

SUPER_CALL_RE = re.compile(RECEIVER_PATTERN + r"(\s*)\.(\s*)\$super\(")
EMPTY_CALL_ARGS_RE = re.compile(RECEIVER_PATTERN + r", \)")
STATIC_ACCESS_RE = re.compile(RECEIVER_PATTERN + r"(\s*)\.(\s*)\$static(?![\w$])")
SELF_ACCESS_RE = re.compile(RECEIVER_PATTERN + r"\s*\.\s*\$self(?![\w$])")
MEMBER_UNWRAP_RE = re.compile(r"\.\$member\(\)")
LEFTOVER_SUPER_RE = re.compile(r"\.\s*\$super(?![\w$])")
LEFTOVER_SELF_RE = re.compile(r"\.\s*\$self(?![\w$])")
LEFTOVER_STATIC_RE = re.compile(r"\.\s*\$static(?![\w$])")

# Links followed from a member value down to a wrapped function literal
_WRAPPER_LINKS = {
    MEMBER_NODE: "object",
    CALL_NODE: "function",
}


# ----------------------------------------------------------------------
# Metadata stripping
# ----------------------------------------------------------------------


def remove_members(tree: SourceTree, members: SyntaxNode, names: Iterable[str]) -> None:
    """Remove every member keyed by one of ``names``."""
    names = set(names)
    for member in list(members.named_children):
        if member_key(tree, member) in names:
            tree.remove_element(member)


def remove_functions(tree: SourceTree, members: SyntaxNode) -> None:
    """Remove function-valued members, recursing into a ``$statics`` group.

    A ``$statics`` group left empty is removed as well.
    """
    for member in list(members.named_children):
        value = member_value(member)
        if member_key(tree, member) == STATICS_MARKER and value is not None and value.type == OBJECT_NODE:
            remove_functions(tree, value)
            if not value.named_children:
                tree.remove_element(member)
        elif is_function(value):
            tree.remove_element(member)


def strip_interface(tree: SourceTree, construct: Construct) -> None:
    """Reduce an interface to its non-executable shape."""
    remove_functions(tree, construct.members)
    remove_members(tree, construct.members, INTERFACE_STRIPPED_MARKERS)


def strip_abstracts(tree: SourceTree, construct: Construct) -> None:
    """Drop abstract function declarations; keep anything else (e.g. bound)."""
    member = find_member(tree, construct.members, ABSTRACTS_MARKER)
    if member is None:
        return
    value = member_value(member)
    if value is None or value.type != OBJECT_NODE:
        return
    remove_functions(tree, value)
    if not value.named_children:
        tree.remove_element(member)


# ----------------------------------------------------------------------
# Parent resolution
# ----------------------------------------------------------------------


def resolve_parent(tree: SourceTree, construct: Construct) -> Optional[str]:
    """Return the parent class reference text of a construct, if any.

    For ``X.extend({...})`` the parent is ``X``; otherwise it is the value of
    the ``$extends`` marker.
    """
    if construct.method == EXTEND_METHOD:
        callee = construct.node.child_by_field_name("function")
        return tree.text(callee.child_by_field_name("object"))

    member = find_member(tree, construct.members, PARENT_MARKER)
    value = member_value(member) if member is not None else None
    if value is None:
        return None
    return tree.text(value)


def is_simple_reference(reference: str) -> bool:
    """True for identifiers and dotted identifier paths only."""
    return SIMPLE_REFERENCE_RE.match(reference) is not None


# ----------------------------------------------------------------------
# Symbolic reference rewriting
# ----------------------------------------------------------------------


def super_target_name(name: str, ctx: RewriteContext) -> str:
    """Method name a super call resolves to on the ancestor."""
    if not ctx.is_static and name in INITIALIZER_ALIASES:
        return INITIALIZER_NAME
    return name


def rewrite_super_calls(code: str, ancestor: str, accessor: str, name: str) -> str:
    """Rewrite ``recv.$super(`` to ``<ancestor><accessor><name>.call(recv, ``."""
    code = SUPER_CALL_RE.sub(
        lambda m: f"{ancestor}{m.group(2)}{accessor}{m.group(3)}{name}.call({m.group(1)}, ",
        code,
    )
    return EMPTY_CALL_ARGS_RE.sub(lambda m: f"{m.group(1)})", code)


def strip_static_access(code: str, ctx: RewriteContext) -> str:
    """In static context ``recv.$static`` is ``recv`` itself."""
    if not ctx.is_static:
        return code
    return STATIC_ACCESS_RE.sub(lambda m: f"{m.group(1)}{m.group(2)}{m.group(3)}", code)


def strip_member_unwrap(code: str) -> str:
    return MEMBER_UNWRAP_RE.sub("", code)


def replace_self_access(code: str, replacement: str) -> Tuple[str, int]:
    return SELF_ACCESS_RE.subn(lambda m: replacement, code)


def has_unresolved_reference(code: str) -> bool:
    """True if a receiver-bound super call or self access survived."""
    return SUPER_CALL_RE.search(code) is not None or has_self_reference(code)


def has_leftover_marker(code: str, is_static: bool) -> bool:
    if LEFTOVER_SUPER_RE.search(code) or LEFTOVER_SELF_RE.search(code):
        return True
    return is_static and LEFTOVER_STATIC_RE.search(code) is not None


# ----------------------------------------------------------------------
# Member traversal
# ----------------------------------------------------------------------


def find_function(value: SyntaxNode) -> Optional[SyntaxNode]:
    """Find the function literal a member value is built from.

    Follows ``.object`` / ``.callee`` links so wrapped functions such as
    ``function () {}.$bound()`` are found; the wrappers stay in place.
    """
    current: Optional[SyntaxNode] = value
    while current is not None and not is_function(current):
        if current.type == PARENTHESIZED_NODE:
            inner = current.named_children
            current = inner[0] if inner else None
        elif current.type in _WRAPPER_LINKS:
            current = current.child_by_field_name(_WRAPPER_LINKS[current.type])
        else:
            return None
    return current


class Rewriter:
    """Strategy interface shared by the direct and closure rewriters.

    Subclasses implement ``optimize_class`` and ``rewrite_symbols``; kind
    dispatch and member traversal live here.
    """

    strategy = "base"

    def optimize(self, tree: SourceTree, construct: Construct) -> bool:
        """Rewrite a construct in place.

        Returns:
            True if the construct was rewritten, False if it was declined.
        """
        logger.debug(
            "Optimizing %s usage at line %d with the %s strategy",
            construct.kind,
            construct.line,
            self.strategy,
        )
        if construct.kind == KIND_INTERFACE:
            strip_interface(tree, construct)
            return True
        return self.optimize_class(tree, construct)

    def optimize_class(self, tree: SourceTree, construct: Construct) -> bool:
        raise NotImplementedError

    def rewrite_symbols(
        self, code: str, name: Optional[str], ctx: RewriteContext
    ) -> Tuple[str, bool]:
        """Rewrite the symbolic references of one function's source.

        Returns:
            A tuple of (code, optimizable); optimizable is False when the
            construct must not be flagged as optimized.
        """
        raise NotImplementedError

    def strip_abstract_members(self, tree: SourceTree, construct: Construct) -> None:
        if construct.kind == KIND_ABSTRACT:
            strip_abstracts(tree, construct)

    def rewrite_members(
        self, tree: SourceTree, members: SyntaxNode, ctx: RewriteContext
    ) -> bool:
        """Rewrite every function of a member group.

        ``$statics`` groups are visited in static context and ``$finals``
        groups in the current context.

        Returns:
            True if the construct can still be flagged as optimized.
        """
        optimizable = True

        for member in list(members.named_children):
            key = member_key(tree, member)
            value = member_value(member)
            if value is None:
                continue

            if key == STATICS_MARKER and value.type == OBJECT_NODE:
                ok = self.rewrite_members(tree, value, ctx.for_statics())
            elif key == FINALS_MARKER and value.type == OBJECT_NODE:
                ok = self.rewrite_members(tree, value, ctx)
            else:
                function = find_function(value)
                if function is None:
                    continue
                ok = self._rewrite_function(tree, function, key, ctx)

            optimizable = optimizable and ok

        return optimizable

    def _rewrite_function(
        self,
        tree: SourceTree,
        function: SyntaxNode,
        name: Optional[str],
        ctx: RewriteContext,
    ) -> bool:
        original = tree.text(function)
        code, ok = self.rewrite_symbols(original, name, ctx)

        if has_leftover_marker(code, ctx.is_static):
            logger.warning(
                "The optimization might have broken the behavior at line %d, column %d",
                function.line,
                function.column,
            )
        if not ok:
            logger.warning(
                "Unresolved symbolic reference at line %d, column %d; "
                "usage will not be flagged as optimized",
                function.line,
                function.column,
            )

        if code != original:
            tree.replace_node(function, code)
        return ok

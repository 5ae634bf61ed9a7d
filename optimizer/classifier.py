"""
Declaration usage detection and classification.

This module walks the syntax tree and finds every call site of the
declaration protocol, classifying each as an interface, an abstract class
or a concrete class.
"""

import logging
from typing import Iterator, List, Optional, Union

from optimizer.config import (
    ABSTRACTS_MARKER,
    CALL_NODE,
    CLASS_METADATA_MARKERS,
    DECLARE_METHOD,
    EXTEND_METHOD,
    FUNCTION_NODES,
    INTERFACE_IGNORED_MARKERS,
    KIND_ABSTRACT,
    KIND_CONCRETE,
    KIND_INTERFACE,
    MEMBER_NODE,
    NAME_KEY_NODES,
    OBJECT_NODE,
    PAIR_NODE,
    ROLE_KIND_MAP,
    STATICS_MARKER,
    STRING_KEY_NODE,
)
from optimizer.models import ClassificationError, Construct
from optimizer.source_tree import SourceTree, SyntaxNode

logger = logging.getLogger(__name__)

Usage = Union[Construct, ClassificationError]


def member_key(tree: SourceTree, member: SyntaxNode) -> Optional[str]:
    """Return the plain name of an object member's key.

    Identifier, number and string keys are supported; computed keys and
    non-pair members (shorthand, methods, spreads) yield None.
    """
    if member.type != PAIR_NODE:
        return None
    key = member.child_by_field_name("key")
    if key is None:
        return None
    if key.type in NAME_KEY_NODES:
        return tree.text(key)
    if key.type == STRING_KEY_NODE:
        return tree.text(key)[1:-1]
    return None


def member_value(member: SyntaxNode) -> Optional[SyntaxNode]:
    """Return the value node of a ``pair`` member."""
    if member.type != PAIR_NODE:
        return None
    return member.child_by_field_name("value")


def find_member(tree: SourceTree, members: SyntaxNode, name: str) -> Optional[SyntaxNode]:
    """Return the first member of an object node keyed ``name``."""
    for member in members.named_children:
        if member_key(tree, member) == name:
            return member
    return None


def is_function(node: Optional[SyntaxNode]) -> bool:
    return node is not None and node.type in FUNCTION_NODES


def _has_empty_body(function: SyntaxNode) -> bool:
    body = function.child_by_field_name("body")
    return body is not None and not body.named_children


def is_interface(tree: SourceTree, members: SyntaxNode) -> bool:
    """Check if the members describe an interface.

    Every member except ``$name`` and ``$extends`` must be a function with
    an empty body, or a ``$statics`` group that is itself an interface.
    """
    for member in members.named_children:
        key = member_key(tree, member)
        if key in INTERFACE_IGNORED_MARKERS:
            continue

        value = member_value(member)
        if key == STATICS_MARKER and value is not None and value.type == OBJECT_NODE:
            if not is_interface(tree, value):
                return False
        elif is_function(value):
            if not _has_empty_body(value):
                return False
        else:
            return False

    return True


def is_abstract_class(tree: SourceTree, members: SyntaxNode) -> bool:
    """Check if the members describe an abstract class (has ``$abstracts``)."""
    return any(member_key(tree, m) == ABSTRACTS_MARKER for m in members.named_children)


def is_class(tree: SourceTree, members: SyntaxNode) -> bool:
    """Check if the members carry any concrete class metadata marker."""
    return any(member_key(tree, m) in CLASS_METADATA_MARKERS for m in members.named_children)


def infer_kind(tree: SourceTree, members: SyntaxNode) -> Optional[str]:
    """Infer a construct kind from its members.

    Tests are applied in precedence order interface, abstract, concrete; the
    first one that passes wins.

    Returns:
        The kind, or None if no test passes.
    """
    if is_interface(tree, members):
        return KIND_INTERFACE
    if is_abstract_class(tree, members):
        return KIND_ABSTRACT
    if is_class(tree, members):
        return KIND_CONCRETE
    return None


def callee_method_name(tree: SourceTree, call: SyntaxNode) -> Optional[str]:
    """Return the property name of a ``X.method(...)`` call, else None."""
    callee = call.child_by_field_name("function")
    if callee is None or callee.type != MEMBER_NODE:
        return None
    prop = callee.child_by_field_name("property")
    if prop is None or prop.type != "property_identifier":
        return None
    return tree.text(prop)


def _role_name(tree: SourceTree, callee: SyntaxNode) -> str:
    """Name of the object a method is called on (last segment if dotted)."""
    target = callee.child_by_field_name("object")
    if target is None:
        return ""
    if target.type == MEMBER_NODE:
        prop = target.child_by_field_name("property")
        return tree.text(prop) if prop is not None else ""
    return tree.text(target)


def _first_object_argument(call: SyntaxNode) -> Optional[SyntaxNode]:
    arguments = call.child_by_field_name("arguments")
    if arguments is None:
        return None
    items = arguments.named_children
    if items and items[0].type == OBJECT_NODE:
        return items[0]
    return None


def classify_call(tree: SourceTree, call: SyntaxNode) -> Optional[Usage]:
    """Classify a single call site.

    Returns:
        A Construct, a ClassificationError for an ``extend`` usage whose kind
        cannot be inferred, or None if the call is not a protocol usage.
    """
    if call.type != CALL_NODE:
        return None

    method = callee_method_name(tree, call)
    if method not in (DECLARE_METHOD, EXTEND_METHOD):
        return None

    members = _first_object_argument(call)
    if members is None:
        return None

    if method == DECLARE_METHOD:
        kind = ROLE_KIND_MAP.get(_role_name(tree, call.child_by_field_name("function")))
        if kind is None:
            return None
    else:
        kind = infer_kind(tree, members)
        if kind is None:
            return ClassificationError(call.line, call.column)

    return Construct(node=call, kind=kind, members=members, method=method)


def iter_usages(tree: SourceTree) -> Iterator[Usage]:
    """Yield every protocol usage of the tree in depth-first source order.

    The consumer may rewrite a yielded construct in place before resuming;
    traversal continues into the construct's children as they are after the
    rewrite.
    """
    stack: List[SyntaxNode] = [tree.root]
    while stack:
        node = stack.pop()
        usage = classify_call(tree, node)
        if isinstance(usage, ClassificationError):
            logger.debug("Unclassified usage at line %d", usage.line)
            yield usage
        elif usage is not None:
            logger.debug("Found %s usage at line %d", usage.kind, usage.line)
            yield usage
        stack.extend(reversed(node.children))

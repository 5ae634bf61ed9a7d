"""
Direct rewrite eligibility.

A conservative textual scan: any ``this.$self``-style access in the
construct makes the direct strategy unusable, because the class being
declared has no static identifier to substitute. The scan may reject
constructs that would in fact be safe, never the reverse.
"""

import re
from typing import Optional, Union

from optimizer.config import RECEIVER_PATTERN
from optimizer.models import Construct
from optimizer.source_tree import SourceTree, SyntaxNode

SELF_ACCESS_RE = re.compile(RECEIVER_PATTERN + r"\s*\.\s*\$self")


def has_self_reference(code: str) -> bool:
    return SELF_ACCESS_RE.search(code) is not None


def can_optimize_direct(
    target: Union[str, Construct, SyntaxNode], tree: Optional[SourceTree] = None
) -> bool:
    """Check if the direct rewriter may be used for ``target``.

    Args:
        target: Serialized construct text, a Construct or a syntax node.
        tree: Tree owning ``target`` when it is not a string.

    Returns:
        False if a dynamic self reference is present, True otherwise.
    """
    if isinstance(target, Construct):
        target = target.node
    if isinstance(target, SyntaxNode):
        if tree is None:
            raise ValueError("A tree is required to serialize a syntax node")
        target = tree.text(target)
    return not has_self_reference(target)

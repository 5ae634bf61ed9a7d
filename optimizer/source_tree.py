"""
Token-backed mutable syntax tree.

The tree-sitter tree produced for a source file is immutable, so the engine
mirrors it into a ``SourceTree``: an arena of tokens (grammar leaves plus the
trivia between them) and a tree of ``SyntaxNode`` objects that address the
arena by ``[start, end)`` index ranges. Concatenating the arena always
reproduces the current source text.

Every mutation goes through a splice of the arena. After a splice, nodes that
start after the spliced range are shifted and nodes that enclose it are
resized, so node ranges stay contiguous and ordered at all times.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

from tree_sitter import Node

from optimizer.config import COMMENT_NODE

logger = logging.getLogger(__name__)


@dataclass
class Token:
    """A single entry of the token arena.

    Attributes:
        text: Source text of the token.
        trivia: True for whitespace (or any uncovered text) between leaves.
    """

    text: str
    trivia: bool = False


@dataclass
class RenderOptions:
    """Printer configuration.

    Attributes:
        line_ending: If set, every line break is normalized to this string.
        trailing_newline: Ensure the rendered text ends with a line break.
    """

    line_ending: Optional[str] = None
    trailing_newline: bool = False


class SyntaxNode:
    """A node of the mutable tree, addressing the arena by index range."""

    __slots__ = (
        "type",
        "is_named",
        "children",
        "field",
        "parent",
        "start",
        "end",
        "line",
        "column",
    )

    def __init__(
        self,
        type: str,
        is_named: bool,
        start: int,
        end: int,
        line: int = 0,
        column: int = 0,
        field: Optional[str] = None,
    ):
        self.type = type
        self.is_named = is_named
        self.children: List["SyntaxNode"] = []
        self.field = field
        self.parent: Optional["SyntaxNode"] = None
        self.start = start
        self.end = end
        self.line = line
        self.column = column

    def __repr__(self) -> str:
        return f"SyntaxNode({self.type!r}, [{self.start}, {self.end}), line={self.line})"

    def child_by_field_name(self, name: str) -> Optional["SyntaxNode"]:
        for child in self.children:
            if child.field == name:
                return child
        return None

    @property
    def named_children(self) -> List["SyntaxNode"]:
        """Named children, comments excluded."""
        return [c for c in self.children if c.is_named and c.type != COMMENT_NODE]

    def walk(self) -> Iterator["SyntaxNode"]:
        """Yield this node and all descendants in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def _shift(self, offset: int) -> None:
        for node in self.walk():
            node.start += offset
            node.end += offset

    def _relativize(self) -> None:
        """Make positions relative to this node: line 0, column 0."""
        line, column = self.line, self.column
        for node in self.walk():
            if node.line == line:
                node.column -= column
            node.line -= line

    def _anchor(self, line: int, column: int) -> None:
        """Place relative positions at ``line``/``column`` of the host source.

        The column offset only applies to nodes on the fragment's first line.
        """
        for node in self.walk():
            if node.line == 0:
                node.column += column
            node.line += line


def copy_positions(source: SyntaxNode, target: SyntaxNode) -> None:
    """Copy line/column from ``source`` onto a structurally equal ``target``.

    Nodes are paired in pre-order; copying stops at the first node whose
    type differs.
    """
    for old, new in zip(source.walk(), target.walk()):
        if old.type != new.type:
            break
        new.line = old.line
        new.column = old.column


def detect_line_ending(text: str) -> str:
    """Return the first line break style used in ``text``, ``\\n`` if none."""
    index = text.find("\n")
    if index > 0 and text[index - 1] == "\r":
        return "\r\n"
    if index < 0 and "\r" in text:
        return "\r"
    return "\n"


class SourceTree:
    """Token arena plus the root ``SyntaxNode`` that spans all of it."""

    def __init__(self, tokens: List[Token], root: SyntaxNode, error_count: int = 0):
        self.tokens = tokens
        self.root = root
        self.error_count = error_count

    @property
    def has_error(self) -> bool:
        return self.error_count > 0

    def text(self, node: Optional[SyntaxNode] = None) -> str:
        """Return the current source text of ``node`` (or of the whole tree)."""
        if node is None:
            return "".join(t.text for t in self.tokens)
        return "".join(t.text for t in self.tokens[node.start:node.end])

    def render(self, options: Optional[RenderOptions] = None) -> str:
        """Regenerate the source text from the arena."""
        options = options or RenderOptions()
        output = self.text()
        if options.line_ending is not None:
            output = output.replace("\r\n", "\n").replace("\r", "\n")
            if options.line_ending != "\n":
                output = output.replace("\n", options.line_ending)
        if options.trailing_newline and output and not output.endswith(("\n", "\r")):
            output += options.line_ending or "\n"
        return output

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def replace_node(self, node: SyntaxNode, text: str) -> SyntaxNode:
        """Re-parse ``text`` and splice it over ``node``'s token range.

        The fragment is parsed as the same syntactic category as ``node``
        (an argument list for ``arguments`` nodes, an expression otherwise).

        Returns:
            The new subtree, attached where ``node`` was.

        Raises:
            RenderError: If the fragment cannot be parsed.
        """
        from optimizer.parser import parse_fragment

        parent = node.parent
        if parent is None:
            raise ValueError("Cannot replace the root node")

        new_node, new_tokens = parse_fragment(text, node.type)
        index = parent.children.index(node)
        start, end = node.start, node.end

        del parent.children[index]
        node.parent = None
        self._splice(start, end, new_tokens)

        new_node._shift(start)
        new_node._anchor(node.line, node.column)
        new_node.field = node.field
        new_node.parent = parent
        parent.children.insert(index, new_node)
        logger.debug(
            "Replaced %s at line %d (%d -> %d tokens)",
            node.type,
            node.line,
            end - start,
            len(new_tokens),
        )
        return new_node

    def remove_element(self, element: SyntaxNode) -> None:
        """Remove ``element`` from a comma separated container.

        Works for ``object``, ``arguments`` and ``formal_parameters`` nodes:
        the separating comma is removed together with the element so the
        container stays well formed.
        """
        container = element.parent
        if container is None:
            raise ValueError("Cannot remove a detached node")

        children = container.children
        items = container.named_children
        position = items.index(element)
        index = children.index(element)

        if len(items) == 1:
            # Only element: empty the container between its delimiters
            first, last = 1, len(children) - 1
            start, end = children[0].end, children[-1].start
        elif position < len(items) - 1:
            following = items[position + 1]
            first, last = index, children.index(following)
            start, end = element.start, following.start
        else:
            preceding = items[position - 1]
            first = children.index(preceding) + 1
            last = index + 1
            start, end = preceding.end, element.end
            comments = [c for c in children[first:index] if c.type == COMMENT_NODE]
            if comments:
                self._remove_keeping_comments(children[first:last], comments[-1])
                return

        for child in children[first:last]:
            child.parent = None
        del children[first:last]
        self._splice(start, end, [])

    def _remove_keeping_comments(self, span: List[SyntaxNode], comment: SyntaxNode) -> None:
        """Remove a trailing element and its commas, but not the comments before it."""
        element = span[-1]
        container = element.parent
        removed = [c for c in span if c.type != COMMENT_NODE]
        for child in removed:
            container.children.remove(child)
            child.parent = None

        # The gap before the element may go if a line break still ends the comment
        start = element.start
        following = self.tokens[element.end] if element.end < len(self.tokens) else None
        after_commas = all(c.end <= comment.start for c in removed[:-1])
        if after_commas and (
            self.text(comment).startswith("/*")
            or (following is not None and following.trivia and "\n" in following.text)
        ):
            start = comment.end

        self._splice(start, element.end, [])
        for child in reversed(removed[:-1]):
            self._splice(child.start, child.end, [])

    def append_element(self, container: SyntaxNode, text: str) -> SyntaxNode:
        """Append a parsed expression as the last element of ``container``.

        Returns:
            The new element node.
        """
        from optimizer.parser import parse_fragment

        new_node, new_tokens = parse_fragment(text, "expression")
        closing = container.children[-1]
        position = closing.start
        index = len(container.children) - 1

        inserted: List[SyntaxNode] = []
        tokens: List[Token] = []
        previous = container.children[index - 1] if index > 0 else None
        if container.named_children and previous is not None:
            if previous.type != ",":
                inserted.append(SyntaxNode(",", False, 0, 1))
                tokens.append(Token(","))
            # Separate from the preceding comma, trailing or inserted
            tokens.append(Token(" ", trivia=True))

        new_node._shift(len(tokens))
        new_node._anchor(closing.line, closing.column + sum(len(t.text) for t in tokens))
        inserted.append(new_node)
        tokens.extend(new_tokens)

        self._splice(position, position, tokens)

        for node in inserted:
            node._shift(position)
            node.parent = container
        if inserted[0] is not new_node:
            inserted[0].line = closing.line
            inserted[0].column = closing.column
        container.children[index:index] = inserted
        return new_node

    def _splice(self, start: int, end: int, new_tokens: List[Token]) -> None:
        """Replace ``tokens[start:end]`` and relocate every attached node.

        Callers detach nodes inside the spliced range before splicing and
        attach replacement nodes afterwards.
        """
        delta = len(new_tokens) - (end - start)
        self.tokens[start:end] = new_tokens
        if delta:
            self._relocate(start, end, delta)

    def _relocate(self, start: int, end: int, delta: int) -> None:
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node is self.root:
                node.end += delta
            elif node.start >= end:
                node.start += delta
                node.end += delta
            elif node.end > end or (node.end == end and start < end):
                node.end += delta
            else:
                continue
            stack.extend(node.children)


class _ArenaBuilder:
    """Mirror a tree-sitter tree into a token arena and ``SyntaxNode`` tree."""

    def __init__(self, source_bytes: bytes):
        self.source_bytes = source_bytes
        self.tokens: List[Token] = []
        self.position = 0
        self.error_count = 0

    def _decode(self, start: int, end: int) -> str:
        return self.source_bytes[start:end].decode("utf-8", errors="replace")

    def _gap(self, until: int) -> None:
        if until > self.position:
            self.tokens.append(Token(self._decode(self.position, until), trivia=True))
            self.position = until

    def build(self, ts_node: Node, field: Optional[str] = None) -> SyntaxNode:
        if ts_node.type == "ERROR" or ts_node.is_missing:
            self.error_count += 1

        line = ts_node.start_point[0] + 1
        # tree-sitter columns count bytes; positions are reported in characters
        line_start = ts_node.start_byte - ts_node.start_point[1]
        column = len(self._decode(line_start, ts_node.start_byte))

        if ts_node.child_count == 0:
            self._gap(ts_node.start_byte)
            index = len(self.tokens)
            self.tokens.append(Token(self._decode(ts_node.start_byte, ts_node.end_byte)))
            self.position = max(self.position, ts_node.end_byte)
            return SyntaxNode(ts_node.type, ts_node.is_named, index, index + 1, line, column, field)

        node = SyntaxNode(ts_node.type, ts_node.is_named, 0, 0, line, column, field)
        cursor = ts_node.walk()
        cursor.goto_first_child()
        while True:
            child = self.build(cursor.node, cursor.field_name)
            child.parent = node
            node.children.append(child)
            if not cursor.goto_next_sibling():
                break

        node.start = node.children[0].start
        node.end = node.children[-1].end
        return node

    def finish(self, root: SyntaxNode) -> SourceTree:
        self._gap(len(self.source_bytes))
        root.start = 0
        root.end = len(self.tokens)
        return SourceTree(self.tokens, root, self.error_count)


def build_source_tree(ts_root: Node, source_bytes: bytes) -> SourceTree:
    """Build a ``SourceTree`` from a parsed tree-sitter root node.

    Args:
        ts_root: Root node of the tree-sitter tree.
        source_bytes: The bytes the tree was parsed from.

    Returns:
        A SourceTree whose rendering equals ``source_bytes`` decoded.
    """
    builder = _ArenaBuilder(source_bytes)
    root = builder.build(ts_root)
    return builder.finish(root)


def find_nodes(
    root: SyntaxNode, predicate: Callable[[SyntaxNode], bool]
) -> List[SyntaxNode]:
    """Return every node under ``root`` (inclusive) matching ``predicate``."""
    return [node for node in root.walk() if predicate(node)]

"""
Tree-sitter parser initialization and source parsing utilities.

This module is the tree provider of the optimizer: it turns JavaScript source
into a mutable ``SourceTree`` and re-parses generated fragments for splicing.
"""

import logging
from typing import List, Tuple

import tree_sitter_javascript as tsjs
from tree_sitter import Language, Parser

from optimizer.config import ARGUMENTS_NODE
from optimizer.models import RenderError
from optimizer.source_tree import SourceTree, SyntaxNode, Token, build_source_tree

# Configure logging
logger = logging.getLogger(__name__)

# Module-level language constant
JS_LANGUAGE = Language(tsjs.language())

# Wrappers that make a fragment parse as a standalone program
_ARGUMENTS_WRAPPER: Tuple[str, str] = ("f", ";")
_EXPRESSION_WRAPPER: Tuple[str, str] = ("(", "\n);")


def create_parser() -> Parser:
    """Create and configure a tree-sitter parser for JavaScript.

    Returns:
        A Parser instance configured with the JavaScript language.

    Example:
        >>> parser = create_parser()
        >>> tree = parser.parse(b"var a = 1;")
    """
    parser = Parser(JS_LANGUAGE)
    logger.debug("Created tree-sitter JavaScript parser")
    return parser


def parse_source(source: str) -> SourceTree:
    """Parse JavaScript source text into a mutable ``SourceTree``.

    Args:
        source: JavaScript source code.

    Returns:
        The SourceTree; ``tree.has_error`` reports syntax errors, which are
        tolerated.

    Raises:
        TypeError: If source is not a string.

    Example:
        >>> tree = parse_source("Class.declare({ $name: 'A' });")
        >>> tree.root.type
        'program'
    """
    if not isinstance(source, str):
        raise TypeError(f"Source must be str, got {type(source).__name__}")

    source_bytes = source.encode("utf-8")
    ts_tree = create_parser().parse(source_bytes)
    tree = build_source_tree(ts_tree.root_node, source_bytes)

    if tree.has_error:
        logger.warning("Parsed tree contains syntax errors (%d error nodes)", tree.error_count)

    logger.debug(f"Parsed {len(source_bytes)} bytes of JavaScript code")
    return tree


def parse_file(file_path: str) -> Tuple[SourceTree, str]:
    """Parse a JavaScript file from disk.

    Args:
        file_path: Path to the .js file.

    Returns:
        A tuple of (SourceTree, source_text).

    Raises:
        FileNotFoundError: If the file does not exist.
        IOError: If the file cannot be read.
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            source = f.read()
    except FileNotFoundError:
        logger.error(f"File not found: {file_path}")
        raise
    except IOError as e:
        logger.error(f"Error reading file {file_path}: {e}")
        raise

    tree = parse_source(source)

    if tree.has_error:
        logger.warning(f"File {file_path} contains syntax errors")

    logger.info(f"Successfully parsed file: {file_path}")
    return tree, source


def parse_fragment(text: str, kind: str) -> Tuple[SyntaxNode, List[Token]]:
    """Parse a generated fragment for splicing into an existing tree.

    Args:
        text: Fragment source text.
        kind: Node type the fragment replaces. ``arguments`` parses the text
            as a call argument list; anything else as an expression.

    Returns:
        A tuple of (node, tokens): a detached subtree whose ranges index
        into ``tokens`` starting at 0.

    Raises:
        RenderError: If the fragment does not parse cleanly as a whole.
    """
    prefix, suffix = _ARGUMENTS_WRAPPER if kind == ARGUMENTS_NODE else _EXPRESSION_WRAPPER
    source_bytes = (prefix + text + suffix).encode("utf-8")
    ts_tree = create_parser().parse(source_bytes)
    if ts_tree.root_node.has_error:
        raise RenderError(f"Generated code does not parse: {text!r}")

    wrapper = build_source_tree(ts_tree.root_node, source_bytes)
    statements = wrapper.root.named_children
    if len(statements) != 1 or not statements[0].named_children:
        raise RenderError(f"Generated code is not a single {kind}: {text!r}")

    outer = statements[0].named_children[0]
    if kind == ARGUMENTS_NODE:
        target = outer.child_by_field_name("arguments")
    else:
        inner = outer.named_children
        target = inner[0] if len(inner) == 1 else None

    if target is None or wrapper.text(target) != text.strip():
        raise RenderError(f"Generated code is not a single {kind}: {text!r}")

    tokens = wrapper.tokens[target.start:target.end]
    target.parent = None
    target._shift(-target.start)
    target._relativize()
    return target, tokens

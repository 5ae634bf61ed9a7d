"""
Configuration constants for class-declaration protocol optimization.

Defines the tree-sitter JavaScript node type strings the engine inspects and
the reserved vocabulary of the declaration protocol.
"""

import re
from typing import Dict, Set

# Call site node types
CALL_NODE: str = "call_expression"
MEMBER_NODE: str = "member_expression"
ARGUMENTS_NODE: str = "arguments"
OBJECT_NODE: str = "object"
PAIR_NODE: str = "pair"
PARENTHESIZED_NODE: str = "parenthesized_expression"
COMMENT_NODE: str = "comment"

# Function literal node types ("function" in older grammar releases)
FUNCTION_NODES: Set[str] = {
    "function_expression",
    "function",
}

# Key node types that carry a plain member name
NAME_KEY_NODES: Set[str] = {
    "property_identifier",
    "identifier",
    "number",
}
STRING_KEY_NODE: str = "string"

# Callee method names
DECLARE_METHOD: str = "declare"
EXTEND_METHOD: str = "extend"

# Construct kinds
KIND_INTERFACE: str = "interface"
KIND_ABSTRACT: str = "abstract"
KIND_CONCRETE: str = "concrete"

# Role object name -> kind for the obvious `<Role>.declare({...})` form
ROLE_KIND_MAP: Dict[str, str] = {
    "Interface": KIND_INTERFACE,
    "AbstractClass": KIND_ABSTRACT,
    "Class": KIND_CONCRETE,
    "FinalClass": KIND_CONCRETE,
}

# Protocol markers (reserved member keys)
NAME_MARKER: str = "$name"
PARENT_MARKER: str = "$extends"
BORROWS_MARKER: str = "$borrows"
IMPLEMENTS_MARKER: str = "$implements"
STATICS_MARKER: str = "$statics"
FINALS_MARKER: str = "$finals"
CONSTANTS_MARKER: str = "$constants"
ABSTRACTS_MARKER: str = "$abstracts"
LOCKED_MARKER: str = "$locked"

# Markers whose presence identifies a concrete class
CLASS_METADATA_MARKERS: Set[str] = {
    NAME_MARKER,
    PARENT_MARKER,
    BORROWS_MARKER,
    IMPLEMENTS_MARKER,
    STATICS_MARKER,
    FINALS_MARKER,
    CONSTANTS_MARKER,
}

# Markers ignored by the interface test
INTERFACE_IGNORED_MARKERS: Set[str] = {
    NAME_MARKER,
    PARENT_MARKER,
}

# Markers removed after optimization
INTERFACE_STRIPPED_MARKERS: Set[str] = {NAME_MARKER, PARENT_MARKER}
CLASS_STRIPPED_MARKERS: Set[str] = {NAME_MARKER, LOCKED_MARKER}

# Symbolic references and closure factory parameters
SUPER_REF: str = "$super"
STATIC_REF: str = "$static"
SELF_REF: str = "$self"
MEMBER_REF: str = "$member"
PARENT_PARAM: str = "$parent"

# Conventional receivers, optionally underscore prefixed
RECEIVER_PATTERN: str = r"(_*this|_*that|_*self)"

# Constructor aliases resolved to the canonical initializer for super calls
INITIALIZER_NAME: str = "initialize"
INITIALIZER_ALIASES: Set[str] = {
    "_initialize",
    "__initialize",
}

# A parent reference that can be spliced verbatim into generated code
SIMPLE_REFERENCE_RE = re.compile(r"^[a-z0-9_$.]+$", re.IGNORECASE)

# Trailing argument signalling an already optimized construct
OPTIMIZED_FLAG: str = "true"

# Extensions picked up by the batch driver when a pattern names a directory
JS_EXTENSIONS: Set[str] = {
    ".js",
    ".mjs",
    ".cjs",
}

# Defaults
DEFAULT_CLOSURE: bool = False

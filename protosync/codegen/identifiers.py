"""
Rust identifier rules for generated module names.
"""
import re

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Strict and reserved keywords across editions
RUST_KEYWORDS = frozenset({
    "as", "async", "await", "break", "const", "continue", "crate", "dyn",
    "else", "enum", "extern", "false", "fn", "for", "gen", "if", "impl", "in",
    "let", "loop", "match", "mod", "move", "mut", "pub", "ref", "return",
    "self", "Self", "static", "struct", "super", "trait", "true", "try",
    "type", "unsafe", "use", "where", "while", "abstract", "become", "box",
    "do", "final", "macro", "override", "priv", "typeof", "unsized",
    "virtual", "yield",
})

# Keywords that cannot be written as raw identifiers
NON_RAW_KEYWORDS = frozenset({"crate", "self", "Self", "super"})


def is_plain_identifier(name: str) -> bool:
    """True for an ASCII identifier usable as a module name without r#."""
    return (
        IDENTIFIER_RE.match(name) is not None
        and name != "_"
        and name not in RUST_KEYWORDS
    )


def module_name(segment: str) -> str:
    """
    Spell a namespace segment as a Rust module name.

    Keywords become raw identifiers (`type` -> `r#type`).

    Raises:
        ValueError: If segment cannot name a module at all
    """
    if IDENTIFIER_RE.match(segment) is None or segment == "_":
        raise ValueError(f"{segment!r} is not a valid module name")
    if segment in NON_RAW_KEYWORDS:
        raise ValueError(f"{segment!r} is a reserved module name")
    if segment in RUST_KEYWORDS:
        return f"r#{segment}"
    return segment

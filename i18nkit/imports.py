"""Import statement bookkeeping shared by the React and Vue import managers."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Set

from tree_sitter import Node

from .structures import Edit
from .syntax import (
    SourceFile,
    apply_edits,
    import_source,
    import_statements,
    parse_source,
    statement_removal,
    walk,
)


def _named_imports(statement: Node) -> Optional[Node]:
    for child in walk(statement):
        if child.type == "named_imports":
            return child
    return None


def _import_clause(statement: Node) -> Optional[Node]:
    for child in statement.named_children:
        if child.type == "import_clause":
            return child
    return None


def specifier_local_name(source: SourceFile, specifier: Node) -> str:
    alias = specifier.child_by_field_name("alias")
    if alias is not None:
        return source.text_of(alias)
    name = specifier.child_by_field_name("name")
    return source.text_of(name if name is not None else specifier)


def imported_names(source: SourceFile, statement: Node) -> List[str]:
    named = _named_imports(statement)
    if named is None:
        return []
    return [
        source.text_of(entry.child_by_field_name("name") or entry)
        for entry in named.named_children
        if entry.type == "import_specifier"
    ]


def find_import(source: SourceFile, package: str) -> Optional[Node]:
    for statement in import_statements(source):
        if import_source(source, statement) == package:
            return statement
    return None


def has_named_import(text: str, package: str, name: str, *, dialect: str = "tsx") -> bool:
    source = parse_source(text, dialect=dialect)
    for statement in import_statements(source):
        if import_source(source, statement) == package and name in imported_names(source, statement):
            return True
    return False


def _insertion_point(source: SourceFile) -> tuple[int, str, str]:
    """Offset plus prefix/suffix for a new import statement."""

    statements = import_statements(source)
    if statements:
        return statements[-1].end_byte, "\n", ""
    for child in source.root.named_children:
        if child.type == "comment":
            continue
        if child.type == "expression_statement" and child.named_children and child.named_children[0].type == "string":
            # keep "use client" style directives first
            return child.end_byte, "\n", ""
        break
    # script blocks usually open with a newline after the tag
    offset = len(source.data) - len(source.data.lstrip(b"\r\n"))
    return offset, "", "\n"


def add_named_imports(
    text: str,
    package: str,
    names: Sequence[str],
    *,
    dialect: str = "tsx",
) -> str:
    """Merge ``names`` into ``import { ... } from 'package'`` or add the statement."""

    wanted = [name for name in dict.fromkeys(names) if name]
    if not wanted:
        return text
    source = parse_source(text, dialect=dialect)
    statement = find_import(source, package)
    if statement is not None:
        existing = imported_names(source, statement)
        missing = [name for name in wanted if name not in existing]
        if not missing:
            return text
        named = _named_imports(statement)
        if named is not None:
            kept = [source.text_of(entry) for entry in named.named_children if entry.type == "import_specifier"]
            replacement = "{ " + ", ".join(kept + missing) + " }"
            return apply_edits(source.data, [Edit(named.start_byte, named.end_byte, replacement)])
        clause = _import_clause(statement)
        if clause is not None and not any(c.type == "namespace_import" for c in clause.named_children):
            addition = ", { " + ", ".join(missing) + " }"
            return apply_edits(source.data, [Edit(clause.end_byte, clause.end_byte, addition)])

    offset, prefix, suffix = _insertion_point(source)
    statement_text = f"import {{ {', '.join(wanted)} }} from '{package}';"
    return apply_edits(source.data, [Edit(offset, offset, prefix + statement_text + suffix)])


def referenced_identifiers(source: SourceFile, root: Node, *, exclude: Iterable[Node] = ()) -> Set[str]:
    """Identifier-like names used under ``root`` outside the excluded subtrees."""

    excluded = [(node.start_byte, node.end_byte) for node in exclude]
    names: Set[str] = set()
    for node in walk(root):
        if node.type not in {
            "identifier",
            "type_identifier",
            "shorthand_property_identifier",
            "nested_identifier",
        }:
            continue
        if any(start <= node.start_byte and node.end_byte <= end for start, end in excluded):
            continue
        names.add(source.text_of(node))
    return names


def remove_unused_specifiers(
    text: str,
    packages: Iterable[str],
    candidates: Iterable[str],
    *,
    dialect: str = "tsx",
) -> str:
    """Drop ``candidates`` imported from ``packages`` when nothing references them.

    Statements left without specifiers are removed with their line.
    """

    package_set = set(packages)
    candidate_set = set(candidates)
    source = parse_source(text, dialect=dialect)
    statements = [s for s in import_statements(source) if import_source(source, s) in package_set]
    if not statements:
        return text
    used = referenced_identifiers(source, source.root, exclude=import_statements(source))

    edits: List[Edit] = []
    for statement in statements:
        named = _named_imports(statement)
        if named is None:
            continue
        specifiers = [entry for entry in named.named_children if entry.type == "import_specifier"]
        kept = [
            entry
            for entry in specifiers
            if specifier_local_name(source, entry) not in candidate_set
            or specifier_local_name(source, entry) in used
        ]
        if len(kept) == len(specifiers):
            continue
        clause = _import_clause(statement)
        others = [c for c in (clause.named_children if clause is not None else []) if c.type != "named_imports"]
        if not kept and not others:
            edits.append(statement_removal(source, statement))
        elif not kept:
            # default import remains: drop ", { ... }"
            start = others[-1].end_byte
            edits.append(Edit(start, named.end_byte, ""))
        else:
            replacement = "{ " + ", ".join(source.text_of(entry) for entry in kept) + " }"
            edits.append(Edit(named.start_byte, named.end_byte, replacement))
    if not edits:
        return text
    return apply_edits(source.data, edits)

"""Tree-sitter parsing helpers and the edit arena shared by every transformer.

Trees are never mutated. Each rewrite pass parses the current text, collects
:class:`~i18nkit.structures.Edit` ranges against that parse and applies them
in one go with :func:`apply_edits`; the next pass re-parses the result.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path, PurePath
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

import tree_sitter_html
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

from .errors import SourceParseError
from .structures import Edit

CHINESE_RE = re.compile(r"[\u4e00-\u9fff]")
LATIN_RE = re.compile(r"[A-Za-z]")

FUNCTION_TYPES = frozenset(
    {
        "function_declaration",
        "function_expression",
        "function",
        "arrow_function",
        "generator_function_declaration",
        "generator_function",
        "method_definition",
    }
)
CLASS_TYPES = frozenset({"class_declaration", "class", "abstract_class_declaration"})
BLOCK_TYPES = frozenset({"statement_block", "class_body", "program"})
STRING_TYPES = frozenset({"string", "template_string"})

_DIALECT_BY_SUFFIX = {
    ".tsx": "tsx",
    ".jsx": "tsx",
    ".js": "tsx",
    ".mjs": "tsx",
    ".cjs": "tsx",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
}


def contains_chinese(text: str | None, *, ignore_spaces: bool = False) -> bool:
    if not text:
        return False
    if ignore_spaces:
        text = re.sub(r"\s", "", text)
    return bool(CHINESE_RE.search(text))


def contains_latin(text: str | None) -> bool:
    return bool(text) and bool(LATIN_RE.search(text or ""))


@lru_cache(maxsize=None)
def get_language(dialect: str) -> Language:
    if dialect == "tsx":
        return Language(tree_sitter_typescript.language_tsx())
    if dialect == "typescript":
        return Language(tree_sitter_typescript.language_typescript())
    if dialect == "html":
        return Language(tree_sitter_html.language())
    raise ValueError(f"Unknown grammar dialect: {dialect}")


def get_parser(dialect: str) -> Parser:
    return Parser(get_language(dialect))


def dialect_for_path(path: str | None) -> str:
    if not path:
        return "tsx"
    return _DIALECT_BY_SUFFIX.get(PurePath(path).suffix.lower(), "tsx")


@dataclass
class SourceFile:
    """Parsed source plus offset conversions between bytes and positions."""

    path: str
    text: str
    data: bytes
    tree: Tree
    dialect: str
    line_offset: int = 0
    _line_starts: List[int] = field(default_factory=list, repr=False)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def has_errors(self) -> bool:
        return self.root.has_error

    def text_of(self, node: Node | None) -> str:
        if node is None:
            return ""
        return self.data[node.start_byte : node.end_byte].decode("utf-8")

    def slice(self, start: int, end: int) -> str:
        return self.data[start:end].decode("utf-8")

    def _starts(self) -> List[int]:
        if not self._line_starts:
            starts = [0]
            for index, byte in enumerate(self.data):
                if byte == 0x0A:
                    starts.append(index + 1)
            self._line_starts = starts
        return self._line_starts

    def position(self, offset: int) -> Tuple[int, int]:
        """Return the 1-based (line, character column) of a byte offset."""

        starts = self._starts()
        index = bisect.bisect_right(starts, offset) - 1
        column = len(self.data[starts[index] : offset].decode("utf-8", errors="replace"))
        return index + 1 + self.line_offset, column + 1

    def offset(self, line: int, column: int) -> int:
        """Inverse of :meth:`position`; clamps to the file bounds."""

        starts = self._starts()
        index = line - 1 - self.line_offset
        if index < 0:
            return 0
        if index >= len(starts):
            return len(self.data)
        line_start = starts[index]
        line_end = starts[index + 1] - 1 if index + 1 < len(starts) else len(self.data)
        line_text = self.data[line_start:line_end].decode("utf-8", errors="replace")
        prefix = line_text[: max(column - 1, 0)]
        return line_start + len(prefix.encode("utf-8"))


def read_source(path: str | PurePath) -> str:
    """Text of a source file; undecodable files raise :class:`SourceParseError`."""

    try:
        return Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise SourceParseError(f"{path} is not valid UTF-8 ({exc.reason})") from exc


def parse_source(
    text: str,
    path: str = "<memory>",
    *,
    dialect: str | None = None,
    line_offset: int = 0,
) -> SourceFile:
    dialect = dialect or dialect_for_path(path)
    data = text.encode("utf-8")
    tree = get_parser(dialect).parse(data)
    return SourceFile(
        path=path,
        text=text,
        data=data,
        tree=tree,
        dialect=dialect,
        line_offset=line_offset,
    )


# ---------------------------------------------------------------- traversal


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal of ``node`` and all of its descendants."""

    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def walk_pruned(node: Node, descend: Callable[[Node], bool]) -> Iterator[Node]:
    """Pre-order traversal that skips the children of nodes where ``descend`` is false."""

    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if descend(current):
            stack.extend(reversed(current.children))


def ancestors(node: Node) -> Iterator[Node]:
    parent = node.parent
    while parent is not None:
        yield parent
        parent = parent.parent


def unwrap_expression(node: Node | None) -> Node | None:
    """Strip parentheses, ``as`` casts and non-null assertions."""

    while node is not None and node.type in {
        "parenthesized_expression",
        "as_expression",
        "non_null_expression",
        "satisfies_expression",
    }:
        node = node.named_children[0] if node.named_children else None
    return node


def callee_name(source: SourceFile, call: Node) -> str:
    """Source text of a call's callee, e.g. ``intl.formatMessage`` or ``t``."""

    function = call.child_by_field_name("function")
    return source.text_of(function) if function is not None else ""


def callee_property(source: SourceFile, call: Node) -> str:
    """Last name of the callee: ``formatMessage`` for ``intl.formatMessage``."""

    function = call.child_by_field_name("function")
    if function is None:
        return ""
    if function.type == "member_expression":
        prop = function.child_by_field_name("property")
        return source.text_of(prop)
    if function.type == "identifier":
        return source.text_of(function)
    return ""


def call_arguments(call: Node) -> List[Node]:
    args = call.child_by_field_name("arguments")
    if args is None:
        return []
    return [child for child in args.named_children if child.type != "comment"]


def is_in_console_call(source: SourceFile, node: Node) -> bool:
    for parent in ancestors(node):
        if parent.type == "call_expression":
            function = parent.child_by_field_name("function")
            if function is not None and function.type == "member_expression":
                obj = function.child_by_field_name("object")
                if obj is not None and source.text_of(obj) == "console":
                    return True
    return False


_UNREPLACEABLE_PARENTS = frozenset(
    {
        "import_statement",
        "export_statement",
        "literal_type",
        "enum_assignment",
        "enum_body",
        "property_signature",
        "internal_module",
        "module",
        "ambient_declaration",
    }
)


def is_replaceable(source: SourceFile, node: Node) -> bool:
    """Whether a string literal may be swapped for a call expression."""

    parent = node.parent
    if parent is None:
        return False
    if parent.type in _UNREPLACEABLE_PARENTS:
        return False
    if parent.type == "pair" and parent.child_by_field_name("key") == node:
        return False
    if parent.type == "call_expression" and node.type == "template_string":
        # tagged template such as css`...` or gql`...`
        return False
    if parent.type == "arguments":
        call = parent.parent
        if call is not None and callee_name(source, call) in {"require", "import"}:
            return False
    return True


def object_properties(source: SourceFile, node: Node | None) -> dict[str, Node]:
    """Map plain keys of an object literal to their value nodes."""

    result: dict[str, Node] = {}
    node = unwrap_expression(node)
    if node is None or node.type != "object":
        return result
    for child in node.named_children:
        if child.type == "pair":
            key = child.child_by_field_name("key")
            value = child.child_by_field_name("value")
            if key is None or value is None:
                continue
            name = source.text_of(key)
            if key.type == "string":
                name = decode_js_string(name)
            result[name] = value
        elif child.type == "shorthand_property_identifier":
            result[source.text_of(child)] = child
    return result


def import_statements(source: SourceFile) -> List[Node]:
    return [child for child in source.root.named_children if child.type == "import_statement"]


def import_source(source: SourceFile, statement: Node) -> str:
    node = statement.child_by_field_name("source")
    return decode_js_string(source.text_of(node)) if node is not None else ""


def end_of_imports(source: SourceFile) -> int:
    """Byte offset just after the last top-level import statement (0 if none)."""

    statements = import_statements(source)
    if not statements:
        return 0
    return statements[-1].end_byte


# ------------------------------------------------------------ string literals

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}
_ESCAPE_RE = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])"
)


def unescape_js(body: str) -> str:
    """Cook the escape sequences of a JS string or template body."""

    def replace(match: re.Match[str]) -> str:
        token = match.group(1)
        if token.startswith("u{"):
            return chr(int(token[2:-1], 16))
        if token.startswith("u") and len(token) == 5:
            return chr(int(token[1:], 16))
        if token.startswith("x") and len(token) == 3:
            return chr(int(token[1:], 16))
        if token in ("\n", "\r\n", "\r", "\u2028", "\u2029"):
            return ""
        return _ESCAPES.get(token, token)

    return _ESCAPE_RE.sub(replace, body)


def decode_js_string(literal: str) -> str:
    """Value of a quoted JS string literal (quotes optional)."""

    if len(literal) >= 2 and literal[0] == literal[-1] and literal[0] in "'\"`":
        literal = literal[1:-1]
    return unescape_js(literal)


def quote_js(value: str, quote: str = "'") -> str:
    """Render ``value`` as a JS string literal, keeping non-ASCII text readable."""

    escaped = (
        value.replace("\\", "\\\\")
        .replace(quote, "\\" + quote)
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f"{quote}{escaped}{quote}"


def escape_template_text(value: str) -> str:
    return value.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")


def template_parts(source: SourceFile, node: Node) -> Tuple[List[str], List[Node]]:
    """Split a template literal into cooked static parts and substitution expressions.

    ``len(parts) == len(expressions) + 1`` always holds.
    """

    parts: List[str] = []
    expressions: List[Node] = []
    cursor = node.start_byte + 1
    for child in node.children:
        if child.type != "template_substitution":
            continue
        parts.append(unescape_js(source.slice(cursor, child.start_byte)))
        inner = [c for c in child.named_children if c.type != "comment"]
        if inner:
            expressions.append(inner[0])
        cursor = child.end_byte
    parts.append(unescape_js(source.slice(cursor, max(cursor, node.end_byte - 1))))
    return parts, expressions


# ---------------------------------------------------------------- JSX helpers


def jsx_text_value(raw: str) -> str:
    """Apply JSX whitespace rules to a run of JSX text."""

    lines = raw.splitlines()
    if len(lines) <= 1:
        return raw
    kept: List[str] = []
    for index, line in enumerate(lines):
        if index > 0:
            line = line.lstrip()
        if index < len(lines) - 1:
            line = line.rstrip()
        if line:
            kept.append(line)
    return " ".join(kept)


def trimmed_span(source: SourceFile, node: Node) -> Tuple[int, int]:
    """Byte span of ``node`` without surrounding whitespace."""

    raw = source.data[node.start_byte : node.end_byte]
    leading = len(raw) - len(raw.lstrip())
    trailing = len(raw) - len(raw.rstrip())
    return node.start_byte + leading, node.end_byte - trailing


def jsx_tag_name(source: SourceFile, element: Node) -> str:
    """Tag name of a JSX element or self-closing element."""

    opening = element
    if element.type == "jsx_element":
        opening = element.child_by_field_name("open_tag") or (
            element.named_children[0] if element.named_children else element
        )
    name = opening.child_by_field_name("name")
    return source.text_of(name) if name is not None else ""


def jsx_attributes(element: Node) -> List[Node]:
    opening = element
    if element.type == "jsx_element":
        opening = element.child_by_field_name("open_tag") or element.named_children[0]
    return [child for child in opening.named_children if child.type == "jsx_attribute"]


def jsx_attribute_name(source: SourceFile, attribute: Node) -> str:
    return source.text_of(attribute.named_children[0]) if attribute.named_children else ""


def jsx_attribute_value(attribute: Node) -> Optional[Node]:
    named = attribute.named_children
    return named[1] if len(named) > 1 else None


def jsx_children(element: Node) -> List[Node]:
    """Children of a JSX element between its opening and closing tags."""

    if element.type != "jsx_element":
        return []
    return [
        child
        for child in element.named_children
        if child.type not in {"jsx_opening_element", "jsx_closing_element"}
    ]


# ------------------------------------------------------------------- edits


def resolve_overlaps(edits: Sequence[Edit]) -> List[Edit]:
    """Drop edits overlapping a larger one; larger edits win."""

    ordered = sorted(
        enumerate(edits), key=lambda item: (-(item[1].end - item[1].start), item[0])
    )
    accepted: List[Tuple[int, Edit]] = []
    for index, edit in ordered:
        clash = any(
            edit.start < other.end and other.start < edit.end
            for _, other in accepted
        )
        if not clash:
            accepted.append((index, edit))
    accepted.sort(key=lambda item: item[0])
    return [edit for _, edit in accepted]


def apply_edits(data: bytes | str, edits: Iterable[Edit]) -> str:
    """Apply all edits in one pass, from the last start offset to the first.

    Insertions at the same offset keep their submission order in the output.
    """

    buffer = data.encode("utf-8") if isinstance(data, str) else data
    pending = resolve_overlaps(list(edits))
    ordered = sorted(enumerate(pending), key=lambda item: (item[1].start, item[0]), reverse=True)
    for _, edit in ordered:
        buffer = buffer[: edit.start] + edit.text.encode("utf-8") + buffer[edit.end :]
    return buffer.decode("utf-8")


def line_start(data: bytes, offset: int) -> int:
    return data.rfind(b"\n", 0, offset) + 1


def line_end(data: bytes, offset: int) -> int:
    """Offset just past the newline that ends the line containing ``offset``."""

    end = data.find(b"\n", offset)
    return len(data) if end == -1 else end + 1


def statement_removal(source: SourceFile, node: Node, *, swallow_blank_line: bool = False) -> Edit:
    """Edit removing a whole statement together with its line when it stands alone.

    With ``swallow_blank_line`` an empty line directly above the statement
    goes too, undoing the ``"\\n\\n"`` separator used when it was inserted.
    """

    start, end = node.start_byte, node.end_byte
    head = source.data[line_start(source.data, start) : start]
    tail_end = line_end(source.data, end)
    tail = source.data[end:tail_end]
    if not head.strip() and not tail.strip():
        first = line_start(source.data, start)
        if swallow_blank_line and first >= 2 and source.data[first - 2 : first] == b"\n\n":
            first -= 1
        return Edit(first, tail_end, "")
    return Edit(start, end, "")


def indentation_at(source: SourceFile, offset: int) -> str:
    start = line_start(source.data, offset)
    line = source.data[start:offset].decode("utf-8", errors="replace")
    return line[: len(line) - len(line.lstrip())]

"""Core data structures for i18nkit."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

LocaleMap = Dict[str, str]
Translations = Dict[str, Dict[str, str]]

T = TypeVar("T")
O = TypeVar("O")


class StringContext(str, Enum):
    """Where an extracted literal lives in the source."""

    JSX_TEXT = "jsx-text"
    JSX_ATTRIBUTE = "jsx-attribute"
    JS_CODE = "js-code"
    TEXT_NODE = "text-node"
    STATIC_ATTRIBUTE = "static-attribute"
    DYNAMIC_ATTRIBUTE = "dynamic-attribute"
    INTERPOLATION = "interpolation"
    SCRIPT = "script"

    @property
    def family(self) -> str:
        """Framework-neutral grouping: text-node, attribute, code or template."""

        if self in (StringContext.JSX_TEXT, StringContext.TEXT_NODE):
            return "text-node"
        if self in (
            StringContext.JSX_ATTRIBUTE,
            StringContext.STATIC_ATTRIBUTE,
            StringContext.DYNAMIC_ATTRIBUTE,
        ):
            return "attribute"
        if self is StringContext.INTERPOLATION:
            return "template"
        return "code"

    @property
    def in_markup(self) -> bool:
        return self in (
            StringContext.JSX_TEXT,
            StringContext.TEXT_NODE,
            StringContext.STATIC_ATTRIBUTE,
            StringContext.DYNAMIC_ATTRIBUTE,
            StringContext.INTERPOLATION,
        )


class ComponentKind(str, Enum):
    """The kind of component enclosing a literal."""

    FUNCTION = "function"
    CLASS = "class"
    SETUP = "setup"
    OPTIONS = "options"
    OTHER = "other"


@dataclass
class ExtractedString:
    """A literal found by an extractor, waiting for its semantic identifier."""

    original: str
    file_path: str
    line: int
    column: int
    context: StringContext
    component_kind: ComponentKind = ComponentKind.OTHER
    semantic_id: str = ""
    processed_message: Optional[str] = None
    is_template_literal: bool = False
    template_variables: List[str] = field(default_factory=list)
    attribute_name: Optional[str] = None

    @property
    def message_key(self) -> str:
        """Text used to group identical messages onto one identifier."""

        return self.processed_message or self.original

    @property
    def display_text(self) -> str:
        """The message as stored in the source locale file."""

        from .messages import create_message_with_options

        if self.is_template_literal:
            message, _ = create_message_with_options(
                self.message_key, self.template_variables
            )
            return message
        return self.message_key


@dataclass
class MessageInfo:
    """Decoded shape of a translation call site or component."""

    id: Optional[str] = None
    default_message: Optional[str] = None
    values: Dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return bool(self.id or self.default_message)


@dataclass
class TransformContext:
    """Per-file state threaded through one restore traversal."""

    locale_map: LocaleMap
    defined_messages: Dict[str, Dict[str, MessageInfo]] = field(default_factory=dict)
    component_name_map: Dict[str, str] = field(default_factory=dict)
    dirty: bool = False

    def lookup(self, info: MessageInfo) -> Optional[str]:
        """Resolve the text for a call site, falling back to its default."""

        if info.id and info.id in self.locale_map:
            return self.locale_map[info.id]
        if info.default_message:
            return info.default_message
        return None


@dataclass(frozen=True)
class Edit:
    """A pending text replacement over UTF-8 byte offsets."""

    start: int
    end: int
    text: str


@dataclass
class BatchOk(Generic[T]):
    """A batch that completed."""

    index: int
    data: T

    ok = True


@dataclass
class BatchErr(Generic[O]):
    """A batch that failed; ``original`` is kept so the run can degrade."""

    index: int
    original: O
    error: BaseException

    ok = False


BatchResult = Union[BatchOk[Any], BatchErr[Any]]


def strip_outer_quotes(text: str) -> str:
    """Drop one pair of matching quotes or backticks around ``text``."""

    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"`":
        return text[1:-1]
    return text

import time
import uuid
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel, Field, field_validator

from blockdoc.config import SCHEMA_VERSION, BLOCK_ID_LENGTH

logger = logging.getLogger(__name__)


def new_block_id() -> str:
    return uuid.uuid4().hex[:BLOCK_ID_LENGTH]


def now_ms() -> int:
    return int(time.time() * 1000)


class BlockType(str, Enum):
    PARAGRAPH = "paragraph"
    HEADER = "header"
    LIST = "list"
    IMAGE = "image"
    QUOTE = "quote"
    CODE = "code"
    DELIMITER = "delimiter"
    TABLE = "table"
    RAW = "raw"
    LINK_TOOL = "linkTool"


class ListStyle(str, Enum):
    ORDERED = "ordered"
    UNORDERED = "unordered"


class Mark(str, Enum):
    LINK = "link"
    BOLD = "bold"
    ITALIC = "italic"
    UNDERLINE = "underline"
    STRIKETHROUGH = "strikethrough"
    MARKER = "marker"
    CODE = "code"


@dataclass(frozen=True)
class InlineRun:
    """A span of text and the marks active over all of it."""
    text: str
    marks: FrozenSet[Mark] = frozenset()
    href: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "InlineRun":
        """
        Read a serialized run.
        Accepts {"text", "marks", "href"} where a mark is either a name or
        {"type": "link", "href": ...}. A bare string is an unmarked run.
        """
        if isinstance(data, str):
            return cls(text=data)
        if not isinstance(data, dict):
            return cls(text="")

        href = data.get("href")
        marks = set()
        for raw_mark in data.get("marks") or []:
            if isinstance(raw_mark, dict):
                name = raw_mark.get("type")
                href = raw_mark.get("href", href)
            else:
                name = raw_mark
            try:
                marks.add(Mark(name))
            except ValueError:
                logger.debug(f"Ignoring unknown inline mark: {name!r}")

        text = data.get("text")
        return cls(
            text=text if isinstance(text, str) else "",
            marks=frozenset(marks),
            href=href if isinstance(href, str) else None,
        )


@dataclass(frozen=True)
class MarkRange:
    """A mark applied over text[start:end]. Ranges may overlap freely."""
    start: int
    end: int
    mark: Mark
    href: Optional[str] = None


@dataclass
class SpanNode:
    """
    One node of the nested span tree built from runs.
    Leaf nodes carry text; inner nodes carry a mark and children.
    """
    mark: Optional[Mark] = None
    href: Optional[str] = None
    text: str = ""
    children: List["SpanNode"] = field(default_factory=list)


class Block(BaseModel):
    id: str = Field(default_factory=new_block_id, description="Identifier unique within the document")
    type: str = Field(description="Block type; unknown types are carried through untouched")
    data: Dict[str, Any] = Field(default_factory=dict, description="Type dependent payload")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        if value is None or value == "":
            return new_block_id()
        return str(value)

    @field_validator("data", mode="before")
    @classmethod
    def _coerce_data(cls, value):
        return {} if value is None else value


class BlockDocument(BaseModel):
    time: int = Field(default_factory=now_ms, description="Creation instant, epoch milliseconds")
    version: str = Field(default=SCHEMA_VERSION, description="Block format version")
    blocks: List[Block] = Field(default_factory=list)

    @field_validator("time", mode="before")
    @classmethod
    def _coerce_time(cls, value):
        if value is None:
            return now_ms()
        if isinstance(value, float):
            return int(value)
        return value

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value):
        return SCHEMA_VERSION if value is None else str(value)

    @field_validator("blocks", mode="before")
    @classmethod
    def _coerce_blocks(cls, value):
        return [] if value is None else value

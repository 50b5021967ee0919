"""
Document level entry points.

    blocks_to_html(doc)  -> str
    html_to_blocks(html) -> BlockDocument
    parse_html(html)     -> Ok(document) | Fatal(reason)

Only input that is not markup at all (or, on the render side, not a block
document at all) is fatal. Everything else converts, possibly with degraded
or raw blocks.
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Union

from pydantic import ValidationError

from blockdoc.config import SCHEMA_VERSION
from blockdoc.models import Block, BlockDocument, new_block_id, now_ms
from htmlcodec.cleaner import is_blank
from htmlcodec.exceptions import UnparseableContentError
from htmlcodec.fallback import raw_block
from htmlcodec.parser import BlockParser
from htmlcodec.renderer import render
from htmlcodec.splitter import split_top_level

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ok:
    document: BlockDocument


@dataclass(frozen=True)
class Fatal:
    reason: str


ParseResult = Union[Ok, Fatal]


class DocumentAssembler:
    def __init__(self):
        self.parser = BlockParser()

    def render(self, document: BlockDocument) -> str:
        return "".join(render(block) for block in document.blocks)

    def parse(self, html: str) -> BlockDocument:
        if is_blank(html):
            return self.stamp([])
        try:
            nodes = split_top_level(html)
        except (AssertionError, ValueError) as e:
            # The tokenizer gave up; keep everything as one opaque block
            logger.debug(f"Could not split HTML into nodes, keeping it raw: {e}")
            return self.stamp([raw_block(html)])
        return self.stamp(self.parser.parse_nodes(nodes))

    def stamp(self, blocks: List[Block]) -> BlockDocument:
        seen = set()
        for block in blocks:
            while block.id in seen:
                block.id = new_block_id()
            seen.add(block.id)
        return BlockDocument(time=now_ms(), version=SCHEMA_VERSION, blocks=blocks)


_assembler = DocumentAssembler()


def read_document(doc: Any) -> BlockDocument:
    if isinstance(doc, BlockDocument):
        return doc
    if isinstance(doc, dict):
        try:
            return BlockDocument.model_validate(doc)
        except ValidationError as e:
            raise UnparseableContentError("Not a block document", str(e)) from e
    raise UnparseableContentError("Not a block document", f"got {type(doc).__name__}")


def blocks_to_html(doc: Any) -> str:
    """
    Render a block document (model or plain dict) as one HTML string, block
    fragments concatenated in order.
    """
    return _assembler.render(read_document(doc))


def parse_html(html: Any) -> ParseResult:
    if isinstance(html, bytes):
        try:
            html = html.decode("utf-8")
        except UnicodeDecodeError as e:
            return Fatal(f"Input is not valid UTF-8: {e}")
    if not isinstance(html, str):
        return Fatal(f"Expected an HTML string, got {type(html).__name__}")
    return Ok(_assembler.parse(html))


def html_to_blocks(html: Any) -> BlockDocument:
    result = parse_html(html)
    if isinstance(result, Fatal):
        raise UnparseableContentError("Content could not be loaded", result.reason)
    return result.document

"""
Keeps content the codec cannot classify.

Render side: `raw` blocks emit their stored HTML verbatim, and blocks of an
unknown type are written as a carrier <div> holding their type and data so
the parser can give them back unchanged. Parse side: unclassified nodes
become `raw` blocks carrying their exact source.
"""
import json
import logging
from typing import Optional

from blockdoc.models import Block, BlockType
from htmlcodec.cleaner import escape_html
from htmlcodec.inline import render_payload

logger = logging.getLogger(__name__)

TYPE_ATTR = "data-block-type"
DATA_ATTR = "data-block-data"


def render_raw(block: Block) -> str:
    html = block.data.get("html")
    return html if isinstance(html, str) else ""


def render_unknown(block: Block) -> str:
    logger.debug(f"Carrying unknown block type {block.type!r} ({block.id})")
    visible = render_payload(block.data.get("text")) if "text" in block.data else ""
    return render_carrier(block, visible)


def render_carrier(block: Block, visible: str) -> str:
    """
    Wrap already rendered HTML in a <div> that also holds the block's type
    and data, so parsing gives the block back unchanged.
    """
    payload = json.dumps(block.data, ensure_ascii=False, default=str)
    return (
        f'<div {TYPE_ATTR}="{escape_html(block.type)}" '
        f'{DATA_ATTR}="{escape_html(payload)}">{visible}</div>'
    )


def raw_block(html: str) -> Block:
    return Block(type=BlockType.RAW.value, data={"html": html})


def restore_unknown(element) -> Optional[Block]:
    """
    Give back the block a carrier <div> was written for, or None when the
    element is not a well-formed carrier.
    """
    block_type = element.get(TYPE_ATTR)
    payload = element.get(DATA_ATTR)
    if not block_type or payload is None:
        return None
    try:
        data = json.loads(payload)
    except ValueError:
        logger.debug(f"Carrier for {block_type!r} holds invalid JSON, keeping it raw")
        return None
    if not isinstance(data, dict):
        return None
    return Block(type=block_type, data=data)

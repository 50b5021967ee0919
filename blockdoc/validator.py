"""
Shape checks for block payloads. A block whose data fails its schema is
rendered as an empty instance of its tag instead of failing the document.
"""
import logging
from typing import Any, Dict

from jsonschema import validate, ValidationError

from blockdoc.models import Block, BlockType

logger = logging.getLogger(__name__)

TEXT_PAYLOAD = {
    "anyOf": [
        {"type": "string"},
        {"type": "array", "items": {"type": ["object", "string"]}},
    ]
}

BLOCK_DATA_SCHEMAS: Dict[str, Dict[str, Any]] = {
    BlockType.PARAGRAPH.value: {
        "type": "object",
        "required": ["text"],
        "properties": {"text": TEXT_PAYLOAD},
    },
    BlockType.HEADER.value: {
        "type": "object",
        "required": ["text"],
        "properties": {"text": TEXT_PAYLOAD},
    },
    BlockType.LIST.value: {
        "type": "object",
        "required": ["items"],
        "properties": {
            "style": {"type": "string"},
            "items": {"type": "array"},
        },
    },
    BlockType.IMAGE.value: {
        "type": "object",
        "anyOf": [
            {"required": ["url"], "properties": {"url": {"type": "string", "minLength": 1}}},
            {
                # Editor image tool layout
                "required": ["file"],
                "properties": {
                    "file": {
                        "type": "object",
                        "required": ["url"],
                        "properties": {"url": {"type": "string", "minLength": 1}},
                    }
                },
            },
        ],
        "properties": {"caption": TEXT_PAYLOAD, "alt": {"type": "string"}},
    },
    BlockType.QUOTE.value: {
        "type": "object",
        "required": ["text"],
        "properties": {"text": TEXT_PAYLOAD, "caption": TEXT_PAYLOAD},
    },
    BlockType.CODE.value: {
        "type": "object",
        "anyOf": [
            {"required": ["text"], "properties": {"text": {"type": "string"}}},
            {"required": ["code"], "properties": {"code": {"type": "string"}}},
        ],
        "properties": {"language": {"type": ["string", "null"]}},
    },
    BlockType.DELIMITER.value: {"type": "object"},
    BlockType.TABLE.value: {
        "type": "object",
        "anyOf": [
            {"required": ["rows"], "properties": {"rows": {"type": "array", "items": {"type": "array"}}}},
            {"required": ["content"], "properties": {"content": {"type": "array", "items": {"type": "array"}}}},
        ],
        "properties": {"withHeadings": {"type": "boolean"}},
    },
    BlockType.RAW.value: {
        "type": "object",
        "required": ["html"],
        "properties": {"html": {"type": "string"}},
    },
    BlockType.LINK_TOOL.value: {
        "type": "object",
        "required": ["link"],
        "properties": {
            "link": {"type": "string", "minLength": 1},
            "meta": {"type": "object", "properties": {"title": {"type": ["string", "null"]}}},
        },
    },
}


class Validator:
    """
    Checks block data against the schema registered for its type.
    Unknown types have no schema and always pass.
    """
    def validate(self, block: Block) -> bool:
        """
        Validates the block data.
        Raises ValidationError if validation fails.
        """
        schema = BLOCK_DATA_SCHEMAS.get(block.type)
        if schema is None:
            return True
        validate(instance=block.data, schema=schema)
        return True

    def is_valid(self, block: Block) -> bool:
        try:
            return self.validate(block)
        except ValidationError as e:
            logger.debug(f"Malformed {block.type} block {block.id}: {e.message}")
            return False

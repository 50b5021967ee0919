import re
import logging
from typing import Any, Callable, Dict, List, Optional

import lxml.html
from lxml import etree

from blockdoc.models import Block, BlockType, ListStyle
from htmlcodec.cleaner import strip_control_chars
from htmlcodec.fallback import raw_block, restore_unknown
from htmlcodec.inline import decode, encode, parse_fragment
from htmlcodec.splitter import TopLevelNode

logger = logging.getLogger(__name__)

# Content the inline decoder would silently drop; text blocks holding any of
# it are kept raw
EMBEDDED_TAGS = frozenset({
    "img", "iframe", "video", "audio", "embed", "object", "svg", "canvas",
    "picture", "math", "input", "select", "textarea", "button", "form",
})

_LANGUAGE_CLASS = re.compile(r"^(?:language|lang)-(.+)$")


def _tag(element) -> Optional[str]:
    return element.tag.lower() if isinstance(element.tag, str) else None


def _children(element, *tags: str) -> List[Any]:
    return [child for child in element if _tag(child) in tags]


def _inline_html(element, skip=()) -> str:
    return encode(decode(element, skip))


def _embedded(element) -> List[Any]:
    return [el for el in element.iter() if el is not element and _tag(el) in EMBEDDED_TAGS]


class BlockParser:
    """
    Classifies top-level HTML nodes into blocks. Anything it cannot map to a
    known block type comes back as a `raw` block with the node's source.
    """
    def __init__(self):
        self._handlers: Dict[str, Callable[[Any], Optional[Block]]] = {
            "p": self._parse_paragraph,
            "h1": self._parse_header,
            "h2": self._parse_header,
            "h3": self._parse_header,
            "h4": self._parse_header,
            "h5": self._parse_header,
            "h6": self._parse_header,
            "ul": self._parse_list,
            "ol": self._parse_list,
            "blockquote": self._parse_quote,
            "pre": self._parse_code,
            "hr": self._parse_delimiter,
            "table": self._parse_table,
            "figure": self._parse_figure,
            "img": self._parse_image,
            "div": restore_unknown,
        }

    def parse_nodes(self, nodes: List[TopLevelNode]) -> List[Block]:
        return [self.parse_node(node) for node in nodes]

    def parse_node(self, node: TopLevelNode) -> Block:
        if node.inline:
            return self._parse_inline_group(node)

        handler = self._handlers.get(node.tag)
        if handler is None:
            logger.debug(f"No block mapping for <{node.tag}>, keeping it raw")
            return raw_block(node.html)

        try:
            element = lxml.html.fragment_fromstring(strip_control_chars(node.html))
        except (etree.ParserError, ValueError, AssertionError) as e:
            logger.debug(f"Could not read <{node.tag}> as a single element: {e}")
            return raw_block(node.html)

        if _tag(element) != node.tag:
            return raw_block(node.html)

        block = handler(element)
        if block is None:
            logger.debug(f"<{node.tag}> did not match its block shape, keeping it raw")
            return raw_block(node.html)
        return block

    def _parse_inline_group(self, node: TopLevelNode) -> Block:
        try:
            container = parse_fragment(node.html)
        except (etree.ParserError, ValueError, AssertionError) as e:
            logger.debug(f"Could not read loose inline content: {e}")
            return raw_block(node.html)
        if _embedded(container):
            return raw_block(node.html)
        return Block(type=BlockType.PARAGRAPH.value, data={"text": _inline_html(container)})

    def _parse_paragraph(self, element) -> Optional[Block]:
        embedded = _embedded(element)
        if embedded:
            # A paragraph wrapping a lone image is an image
            if len(embedded) == 1 and _tag(embedded[0]) == "img" and not element.text_content().strip():
                return self._parse_image(embedded[0])
            return None
        return Block(type=BlockType.PARAGRAPH.value, data={"text": _inline_html(element)})

    def _parse_header(self, element) -> Optional[Block]:
        if _embedded(element):
            return None
        return Block(
            type=BlockType.HEADER.value,
            data={"text": _inline_html(element), "level": int(_tag(element)[1])},
        )

    def _parse_list(self, element) -> Optional[Block]:
        if _embedded(element):
            return None
        style = self._list_style(element)
        return Block(
            type=BlockType.LIST.value,
            data={"style": style, "items": self._list_items(element, style)},
        )

    def _list_style(self, element) -> str:
        return ListStyle.ORDERED.value if _tag(element) == "ol" else ListStyle.UNORDERED.value

    def _list_items(self, element, style: str) -> List[Any]:
        items: List[Any] = []
        for li in _children(element, "li"):
            nested = _children(li, "ul", "ol")
            text = _inline_html(li, skip=nested)
            if not nested:
                items.append(text)
                continue

            nested_style = self._list_style(nested[0])
            children: List[Any] = []
            for sublist in nested:
                children.extend(self._list_items(sublist, nested_style))
            item = {"content": text, "items": children}
            if nested_style != style:
                item["style"] = nested_style
            items.append(item)
        return items

    def _parse_quote(self, element) -> Optional[Block]:
        if _embedded(element):
            return None
        cites = [el for el in element.iter() if _tag(el) == "cite"]
        caption = _inline_html(cites[0]) if cites else ""
        return Block(
            type=BlockType.QUOTE.value,
            data={"text": _inline_html(element, skip=cites[:1]), "caption": caption},
        )

    def _parse_code(self, element) -> Optional[Block]:
        codes = _children(element, "code")
        source = codes[0] if len(codes) == 1 else element
        data = {"text": source.text_content()}

        language = self._language(source) or self._language(element)
        if language:
            data["language"] = language
        return Block(type=BlockType.CODE.value, data=data)

    def _language(self, element) -> Optional[str]:
        for name in (element.get("class") or "").split():
            match = _LANGUAGE_CLASS.match(name)
            if match:
                return match.group(1)
        return None

    def _parse_delimiter(self, element) -> Optional[Block]:
        return Block(type=BlockType.DELIMITER.value, data={})

    def _parse_table(self, element) -> Optional[Block]:
        if _embedded(element):
            return None
        rows = element.xpath("./tr | ./thead/tr | ./tbody/tr | ./tfoot/tr")
        content = []
        with_headings = False
        for index, row in enumerate(rows):
            cells = _children(row, "td", "th")
            if index == 0:
                with_headings = any(_tag(cell) == "th" for cell in cells)
            content.append([_inline_html(cell) for cell in cells])
        return Block(
            type=BlockType.TABLE.value,
            data={"withHeadings": with_headings, "rows": content},
        )

    def _parse_figure(self, element) -> Optional[Block]:
        embedded = _embedded(element)
        if len(embedded) != 1 or _tag(embedded[0]) != "img":
            return None
        block = self._parse_image(embedded[0])
        if block is None:
            return None
        captions = [el for el in element.iter() if _tag(el) == "figcaption"]
        if captions:
            block.data["caption"] = _inline_html(captions[0])
        return block

    def _parse_image(self, element) -> Optional[Block]:
        src = (element.get("src") or "").strip()
        if not src:
            return None
        data = {"url": src, "caption": ""}
        alt = element.get("alt")
        if alt is not None:
            data["alt"] = alt
        return Block(type=BlockType.IMAGE.value, data=data)

import re

# HTML collapses these; U+00A0 is deliberately not among them
_COLLAPSIBLE = re.compile(r'[ \t\n\r\f]+')

# Characters libxml2 refuses in a text document
_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0e-\x1f\x7f]')

_ESCAPES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
})


def collapse_whitespace(text: str) -> str:
    """
    Collapse runs of HTML whitespace to a single space, the way a browser
    renders a text node. Does not trim.
    """
    if not text:
        return ""
    return _COLLAPSIBLE.sub(" ", text)


def is_blank(text: str) -> bool:
    return not text or not _COLLAPSIBLE.sub("", text)


def strip_control_chars(text: str) -> str:
    return _CONTROL_CHARS.sub("", text)


def escape_html(text: str) -> str:
    """Escape &, <, > and " for use in text content or a quoted attribute."""
    if not text:
        return ""
    return text.translate(_ESCAPES)

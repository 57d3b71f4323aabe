"""
HTML sanitization for entry bodies.
"""

from __future__ import annotations

import nh3

# Common formatting and block tags, plus images embedded by the editor.
ALLOWED_TAGS = frozenset(
    {
        "address", "article", "aside", "footer", "header", "hgroup", "main",
        "nav", "section",
        "h1", "h2", "h3", "h4", "h5", "h6",
        "blockquote", "dd", "div", "dl", "dt", "figcaption", "figure", "hr",
        "li", "ol", "p", "pre", "ul",
        "a", "abbr", "b", "bdi", "bdo", "br", "cite", "code", "data", "dfn",
        "em", "i", "kbd", "mark", "q", "rb", "rp", "rt", "rtc", "ruby", "s",
        "samp", "small", "span", "strong", "sub", "sup", "time", "u", "var",
        "wbr",
        "caption", "col", "colgroup", "table", "tbody", "td", "tfoot", "th",
        "thead", "tr",
        "img",
    }
)
ALLOWED_ATTRIBUTES = {"*": {"href", "src", "alt", "title", "target"}}


def sanitize_body(html: str) -> str:
    """Strip disallowed tags and attributes from user supplied HTML."""
    return nh3.clean(
        html,
        tags=set(ALLOWED_TAGS),
        attributes={tag: set(attrs) for tag, attrs in ALLOWED_ATTRIBUTES.items()},
    ).strip()

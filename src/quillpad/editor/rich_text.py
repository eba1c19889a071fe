"""Inline rich-text markup helpers.

Block content is a small HTML subset (bold, italic, links, ...). The host
surface hands us whatever its contenteditable produced, so everything that
enters a block goes through ``sanitize`` first. Caret offsets are always
counted in the plain-text projection (the DOM ``textContent``), never in the
markup.
"""

from __future__ import annotations

import html
import re
from html.parser import HTMLParser

ALLOWED_TAGS = frozenset({
    "b", "strong", "i", "em", "u", "s", "strike", "del",
    "code", "mark", "a", "br", "span",
})

VOID_TAGS = frozenset({"br"})

# Tags whose text must never reach a block
_DROP_CONTENT_TAGS = frozenset({"script", "style", "template"})

_SAFE_HREF = re.compile(r"^(https?:|mailto:|#|/)", re.IGNORECASE)

_EMPTY_ELEMENT = re.compile(r"<([a-z]+)(?: [^>]*)?></\1>")


class _Tokenizer(HTMLParser):
    """Flatten markup into (kind, tag, attrs, text) tokens."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.tokens: list[tuple[str, str, list[tuple[str, str | None]], str]] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        kind = "void" if tag in VOID_TAGS else "start"
        self.tokens.append((kind, tag, attrs, ""))

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self.tokens.append(("void", tag, attrs, ""))

    def handle_endtag(self, tag: str) -> None:
        if tag not in VOID_TAGS:
            self.tokens.append(("end", tag, [], ""))

    def handle_data(self, data: str) -> None:
        self.tokens.append(("text", "", [], data))


def tokenize(markup: str) -> list[tuple[str, str, list[tuple[str, str | None]], str]]:
    """Flat token stream: ``(kind, tag, attrs, text)`` with kind in start/end/void/text."""
    parser = _Tokenizer()
    parser.feed(markup or "")
    parser.close()
    return parser.tokens


def _render_open(tag: str, attrs: list[tuple[str, str | None]]) -> str:
    rendered = "".join(
        f' {name}="{html.escape(value, quote=True)}"'
        for name, value in attrs
        if value is not None
    )
    return f"<{tag}{rendered}>"


def _clean_attrs(tag: str, attrs: list[tuple[str, str | None]]) -> list[tuple[str, str | None]]:
    if tag != "a":
        return []
    for name, value in attrs:
        if name == "href" and value and _SAFE_HREF.match(value.strip()):
            return [("href", value.strip())]
    return []


def escape_text(text: str) -> str:
    """Escape plain text so it can be stored as block content."""
    return html.escape(text or "", quote=False)


def sanitize(markup: str | None) -> str:
    """Reduce arbitrary markup to the allowed inline subset.

    Disallowed tags are unwrapped (their text is kept), attributes other than a
    safe ``href`` on links are dropped, and unbalanced tags are closed. The
    result is stable: ``sanitize(sanitize(x)) == sanitize(x)``.
    """
    if not markup:
        return ""

    out: list[str] = []
    stack: list[str] = []
    dropping = 0

    for kind, tag, attrs, text in tokenize(markup):
        if kind == "text":
            if not dropping:
                out.append(escape_text(text))
        elif tag in _DROP_CONTENT_TAGS:
            if kind == "start":
                dropping += 1
            elif kind == "end" and dropping:
                dropping -= 1
        elif dropping or tag not in ALLOWED_TAGS:
            continue
        elif kind == "void":
            out.append(f"<{tag}>")
        elif kind == "start":
            out.append(_render_open(tag, _clean_attrs(tag, attrs)))
            stack.append(tag)
        elif tag in stack:
            while stack:
                open_tag = stack.pop()
                out.append(f"</{open_tag}>")
                if open_tag == tag:
                    break

    while stack:
        out.append(f"</{stack.pop()}>")

    return _drop_empty_elements("".join(out))


def to_plain_text(markup: str | None) -> str:
    """Plain-text projection of markup (tags stripped, entities decoded)."""
    if not markup:
        return ""
    if "<" not in markup and "&" not in markup:
        return markup
    return "".join(text for kind, _, _, text in tokenize(markup) if kind == "text")


def text_length(markup: str | None) -> int:
    """Length of the plain-text projection; the caret offset at end of content."""
    return len(to_plain_text(markup))


def split_at_offset(markup: str | None, offset: int) -> tuple[str, str]:
    """Split markup at a caret offset into its plain-text projection.

    Inline elements that straddle the caret are closed on the left half and
    reopened on the right half, so ``<b>foo|bar</b>`` becomes
    ``<b>foo</b>`` and ``<b>bar</b>``.
    """
    tokens = tokenize(markup or "")
    offset = max(0, offset)

    before: list[str] = []
    after: list[str] = []
    stack: list[tuple[str, list[tuple[str, str | None]]]] = []
    pos = 0
    split = False

    for kind, tag, attrs, text in tokens:
        if split:
            after.append(_render_token(kind, tag, attrs, text))
            continue

        if kind == "text":
            if pos + len(text) <= offset:
                before.append(escape_text(text))
                pos += len(text)
                continue
            cut = offset - pos
            before.append(escape_text(text[:cut]))
            before.extend(f"</{t}>" for t, _ in reversed(stack))
            after.extend(_render_open(t, a) for t, a in stack)
            after.append(escape_text(text[cut:]))
            pos = offset
            split = True
        elif kind == "start":
            stack.append((tag, attrs))
            before.append(_render_open(tag, attrs))
        elif kind == "end":
            for i in range(len(stack) - 1, -1, -1):
                if stack[i][0] == tag:
                    del stack[i]
                    break
            before.append(f"</{tag}>")
        else:
            before.append(_render_token(kind, tag, attrs, text))

    if not split:
        before.extend(f"</{t}>" for t, _ in reversed(stack))

    return _drop_empty_elements("".join(before)), _drop_empty_elements("".join(after))


def _render_token(kind: str, tag: str, attrs: list[tuple[str, str | None]], text: str) -> str:
    if kind == "text":
        return escape_text(text)
    if kind == "end":
        return f"</{tag}>"
    if kind == "void":
        return f"<{tag}>"
    return _render_open(tag, attrs)


def _drop_empty_elements(markup: str) -> str:
    previous = None
    while previous != markup:
        previous = markup
        markup = _EMPTY_ELEMENT.sub("", markup)
    return markup


def strip_prefix(markup: str | None, length: int) -> str:
    """Drop the first ``length`` plain-text characters, keeping inline markup."""
    return split_at_offset(markup, length)[1]


def concat(left: str | None, right: str | None) -> str:
    """Join two content strings (used by merges)."""
    return f"{left or ''}{right or ''}"


# Inline tag -> Markdown delimiter; tags not listed are unwrapped
_MARKDOWN_MARKERS = {
    "b": "**",
    "strong": "**",
    "i": "*",
    "em": "*",
    "s": "~~",
    "strike": "~~",
    "del": "~~",
    "code": "`",
}


def render_inline(markup: str | None) -> str:
    """Convert sanitized inline markup to Markdown inline syntax."""
    parts: list[str] = []
    link_stack: list[str | None] = []

    for kind, tag, attrs, text in tokenize(markup or ""):
        if kind == "text":
            parts.append(text)
        elif kind == "void" and tag == "br":
            parts.append("  \n")
        elif tag == "a":
            if kind == "start":
                link_stack.append(dict(attrs).get("href"))
                parts.append("[")
            elif kind == "end" and link_stack:
                href = link_stack.pop()
                parts.append(f"]({href})" if href else "]")
        elif tag in _MARKDOWN_MARKERS and kind in ("start", "end"):
            parts.append(_MARKDOWN_MARKERS[tag])

    return "".join(parts)

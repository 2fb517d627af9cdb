"""
MULTI markup codec.

MULTI is the bracket-tag language NTCIP 1203 signs use for formatted text::

    [pt30o][pb0,0,0][jp3][fo1][tr1,1,96,48][cf255,255,0][nl0][jl3][sc2]HELLO[/sc]

encode() renders a MultiDocument with a fixed tag order the sign firmware
expects; decode() parses any MULTI string back into pages and lines and never
raises. Literal brackets are written as ``[[`` and ``]]``.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, NamedTuple, Optional

logger = logging.getLogger(__name__)

BLANK_MULTI = "[pb0,0,0][tr0,0,0,0][g0,0,0][cf0,0,0]"


@dataclass
class Line:
    """One line of a page.

    Attributes:
        new_line: Pixel gap emitted with the [nl] tag that starts the line
        justification: [jl] value (1 other, 2 left, 3 center, 4 right, 5 full)
        text: Literal text, brackets unescaped
    """

    new_line: int = 0
    justification: int = 0
    text: str = ""


@dataclass
class Page:
    """One page of a MULTI document.

    `graphic` is (number, x, y); (0, 0, 0) means no graphic and is not encoded.
    `spacing` is the character spacing applied to every line of the page.
    """

    page_time: int = 0
    background: tuple = (0, 0, 0)
    spacing: int = 0
    justification: int = 0
    font: int = 0
    text_rectangle: tuple = (0, 0, 0, 0)
    foreground: tuple = (0, 0, 0)
    graphic: tuple = (0, 0, 0)
    lines: list = field(default_factory=list)


@dataclass
class MultiDocument:
    pages: list = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.pages)


# ─────────────────────────────────────────────────────────────────────────────
# Encode
# ─────────────────────────────────────────────────────────────────────────────


def escape(text: str) -> str:
    return text.replace("[", "[[").replace("]", "]]")


def _numbers(values) -> str:
    return ",".join(str(int(v)) for v in values)


def _encode_page(page: Page) -> str:
    parts = [
        f"[pt{int(page.page_time)}o]",
        f"[pb{_numbers(page.background)}]",
        f"[jp{int(page.justification)}]",
        f"[fo{int(page.font)}]",
        f"[tr{_numbers(page.text_rectangle)}]",
    ]
    if any(int(v) for v in page.graphic):
        parts.append(f"[g{_numbers(page.graphic)}]")
    parts.append(f"[cf{_numbers(page.foreground)}]")
    if not page.lines and page.spacing:
        parts.append(f"[sc{int(page.spacing)}][/sc]")
    for line in page.lines:
        parts.append(
            f"[nl{int(line.new_line)}][jl{int(line.justification)}]"
            f"[sc{int(page.spacing)}]{escape(line.text)}[/sc]"
        )
    return "".join(parts)


def encode(document: MultiDocument) -> str:
    """Render a document as a MULTI string. Pages are joined with [np]."""
    return "[np]".join(_encode_page(page) for page in document.pages)


# ─────────────────────────────────────────────────────────────────────────────
# Decode
# ─────────────────────────────────────────────────────────────────────────────


class Token(NamedTuple):
    """A scanned MULTI fragment: a tag (name + argument text) or a literal run."""

    is_tag: bool
    name: str
    args: str
    position: int


def tokenize(multi: str) -> Iterator[Token]:
    """Split a MULTI string into tags and literal runs.

    ``[[`` and ``]]`` become literal brackets. An opening bracket with no
    closing bracket is kept as literal text.
    """
    text: list[str] = []
    text_start = 0
    i = 0
    n = len(multi)
    while i < n:
        ch = multi[i]
        if ch == "[" and i + 1 < n and multi[i + 1] == "[":
            if not text:
                text_start = i
            text.append("[")
            i += 2
        elif ch == "]" and i + 1 < n and multi[i + 1] == "]":
            if not text:
                text_start = i
            text.append("]")
            i += 2
        elif ch == "[":
            end = multi.find("]", i + 1)
            if end < 0:
                if not text:
                    text_start = i
                text.append(multi[i:])
                break
            if text:
                yield Token(False, "", "".join(text), text_start)
                text = []
            body = multi[i + 1 : end].strip()
            split = 0
            while split < len(body) and (body[split].isalpha() or body[split] == "/"):
                split += 1
            yield Token(True, body[:split].lower(), body[split:].strip(), i)
            i = end + 1
        else:
            if not text:
                text_start = i
            text.append(ch)
            i += 1
    if text:
        yield Token(False, "", "".join(text), text_start)


def _ints(args: str, count: int) -> tuple:
    """First `count` comma-separated decimal fields. Raises ValueError if short."""
    fields = [f.strip() for f in args.split(",")]
    if len(fields) < count:
        raise ValueError(f"expected {count} fields, got {args!r}")
    return tuple(int(f) for f in fields[:count])


def _int(args: str, default: Optional[int] = None) -> int:
    if not args and default is not None:
        return default
    return _ints(args, 1)[0]


class _Decoder:
    def __init__(self):
        self.pages: list[Page] = []
        self.page = Page()
        self.line: Optional[Line] = None

    def new_line(self, gap: int = 0) -> Line:
        self.line = Line(new_line=gap)
        self.page.lines.append(self.line)
        return self.line

    def new_page(self) -> None:
        self.pages.append(self.page)
        self.page = Page()
        self.line = None

    def text(self, text: str) -> None:
        line = self.line if self.line is not None else self.new_line()
        line.text += text

    def tag(self, name: str, args: str) -> None:
        page = self.page
        if name == "np":
            self.new_page()
        elif name == "pt":
            page.page_time = _int(args.lower().split("o", 1)[0], default=0)
        elif name == "pb":
            page.background = _ints(args, 3)
        elif name == "cf":
            page.foreground = _ints(args, 3)
        elif name == "jp":
            page.justification = _int(args)
        elif name == "fo":
            page.font = _int(args)
        elif name == "tr":
            page.text_rectangle = _ints(args, 4)
        elif name == "g":
            page.graphic = _ints(args, 3)
        elif name == "sc":
            page.spacing = _int(args)
        elif name == "/sc":
            pass
        elif name == "nl":
            self.new_line(_int(args, default=0))
        elif name == "jl":
            justification = _int(args)
            if self.line is None or self.line.text:
                self.new_line()
            self.line.justification = justification
        else:
            logger.debug(f"Skipping unsupported MULTI tag [{name}{args}]")


def decode(multi: Optional[str]) -> MultiDocument:
    """Parse a MULTI string into a document.

    Never raises: malformed tags are logged and skipped, so the result may be
    a partial document. An empty or None string gives an empty document.
    """
    if not multi:
        return MultiDocument()
    decoder = _Decoder()
    for token in tokenize(multi):
        if not token.is_tag:
            decoder.text(token.args)
            continue
        try:
            decoder.tag(token.name, token.args)
        except ValueError as e:
            logger.warning(f"Skipping malformed MULTI tag [{token.name}{token.args}] at {token.position}: {e}")
    decoder.pages.append(decoder.page)
    return MultiDocument(pages=decoder.pages)


def to_plain_text(multi: Optional[str]) -> str:
    """Strip all tags and join the literal fragments with single spaces."""
    if not multi:
        return ""
    fragments = (t.args.strip() for t in tokenize(multi) if not t.is_tag)
    return " ".join(f for f in fragments if f)

# src/a11y_graph/dom/builder.py
import logging
import re
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Tuple

from bs4 import BeautifulSoup, Tag, NavigableString, Comment
from bs4.builder import ParserRejectedMarkup
from bs4.element import PreformattedString

from ..build_context import BuildContext
from ..errors import FragmentParseError
from ..model import SourceLocation
from .core import ElementNode, NodeType
from .models import ElementGraph

logger = logging.getLogger(__name__)


class Dialect(str, Enum):
    HTML = "html"
    JSX = "jsx"
    VUE = "vue"
    SVELTE = "svelte"
    ANGULAR = "angular"


class MarkupBlock(NamedTuple):
    text: str
    line_offset: int


# JSX attribute names that differ from their HTML counterparts (after lower-casing)
_JSX_ATTRIBUTE_NAMES = {"classname": "class", "htmlfor": "for"}

_JSX_BLOCK_START = re.compile(r"(?:\breturn|=>)\s*\(\s*(?=<[A-Za-z>])")
_VUE_TEMPLATE = re.compile(r"<template[^>]*>(.*)</template\s*>", re.DOTALL | re.IGNORECASE)
_RAW_TEXT_BLOCKS = re.compile(
    r"<script\b.*?</script\s*>|<style\b.*?</style\s*>|<!--.*?-->", re.DOTALL | re.IGNORECASE
)
_SCRIPT_STYLE_BLOCKS = re.compile(
    r"<script\b.*?</script\s*>|<style\b.*?</style\s*>", re.DOTALL | re.IGNORECASE
)
_TAG_OPEN = re.compile(r"<(/?)([A-Za-z][\w:.-]*)")
_MUSTACHE = re.compile(r"\{\{.*?\}\}", re.DOTALL)
# A complete opening or closing tag (or a JSX fragment) starting at a "<"
_TAG_AHEAD = re.compile(
    r"""</?>|</?[A-Za-z][\w:.-]*"""
    r"""(?:\s+[A-Za-z_:@#*(\[][\w:.@#*()\[\]-]*(?:\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'<>]+))?)*"""
    r"""\s*/?>"""
)


def detect_dialect(source_file: str) -> Dialect:
    """Picks the markup dialect from the file name."""
    name = (source_file or "").lower()
    if name.endswith((".jsx", ".tsx", ".js", ".ts")):
        return Dialect.JSX
    if name.endswith(".vue"):
        return Dialect.VUE
    if name.endswith(".svelte"):
        return Dialect.SVELTE
    if name.endswith(".component.html"):
        return Dialect.ANGULAR
    return Dialect.HTML


def blank_out(text: str, pattern: re.Pattern) -> str:
    """Replaces every match with spaces, keeping newlines so line numbers survive."""
    return pattern.sub(lambda m: re.sub(r"[^\n]", " ", m.group(0)), text)


def line_of(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def _closing_index(text: str, open_index: int, open_ch: str, close_ch: str) -> int:
    depth = 0
    for i in range(open_index, len(text)):
        ch = text[i]
        if ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return i
    return -1


def quote_jsx_expressions(markup: str) -> str:
    """
    Turns ``attr={expr}`` into ``attr="{expr}"`` so html.parser keeps the
    expression as one attribute value instead of splitting it at ``=>``.
    """
    out: List[str] = []
    pos = 0
    for m in re.finditer(r"=\s*\{", markup):
        if m.start() < pos:
            continue
        brace = m.end() - 1
        close = _closing_index(markup, brace, "{", "}")
        if close < 0:
            break
        expression = markup[brace:close + 1].replace('"', "'")
        out.append(markup[pos:m.start()])
        out.append(f'="{expression}"')
        pos = close + 1
    out.append(markup[pos:])
    return "".join(out)


def escape_comparisons(expression: str) -> str:
    """
    Rewrites every ``<`` that does not open a tag as ``&lt;``. The parser
    decodes it back, so text and attribute values keep their original content.
    """
    out: List[str] = []
    for i, ch in enumerate(expression):
        if ch == "<" and not _TAG_AHEAD.match(expression, i):
            out.append("&lt;")
        else:
            out.append(ch)
    return "".join(out)


def escape_expressions(markup: str, dialect: Dialect) -> str:
    """
    Escapes comparison operators inside template expressions: ``{{ a<b }}``
    for HTML, Vue and Angular, ``{count<max && <span/>}`` for JSX and Svelte.
    """
    if dialect not in (Dialect.JSX, Dialect.SVELTE):
        return _MUSTACHE.sub(lambda m: escape_comparisons(m.group(0)), markup)

    out: List[str] = []
    pos = 0
    i = markup.find("{")
    while i >= 0:
        close = _closing_index(markup, i, "{", "}")
        if close < 0:
            break
        out.append(markup[pos:i])
        out.append(escape_comparisons(markup[i:close + 1]))
        pos = close + 1
        i = markup.find("{", pos)
    out.append(markup[pos:])
    return "".join(out)


def prepare_markup(source: str, dialect: Dialect) -> List[MarkupBlock]:
    """Cuts the parseable markup out of a source file, per dialect."""
    return [
        MarkupBlock(escape_expressions(block.text, dialect), block.line_offset)
        for block in _markup_blocks(source, dialect)
    ]


def _markup_blocks(source: str, dialect: Dialect) -> List[MarkupBlock]:
    if dialect == Dialect.VUE:
        m = _VUE_TEMPLATE.search(source)
        if not m:
            return []
        return [MarkupBlock(m.group(1), line_of(source, m.start(1)) - 1)]

    if dialect == Dialect.SVELTE:
        return [MarkupBlock(blank_out(source, _SCRIPT_STYLE_BLOCKS), 0)]

    if dialect == Dialect.JSX:
        blocks: List[MarkupBlock] = []
        pos = 0
        for m in _JSX_BLOCK_START.finditer(source):
            if m.start() < pos:
                continue
            paren = source.rfind("(", m.start(), m.end())
            close = _closing_index(source, paren, "(", ")")
            if close < 0:
                continue
            body = source[paren + 1:close]
            blocks.append(MarkupBlock(quote_jsx_expressions(body), line_of(source, paren + 1) - 1))
            pos = close
        if blocks:
            return blocks
        return [MarkupBlock(quote_jsx_expressions(source), 0)]

    return [MarkupBlock(source, 0)]


def find_unterminated_tag(markup: str) -> Optional[Tuple[str, int]]:
    """
    Returns (tag, line) for the first tag opener that runs into another ``<``
    or the end of input before its closing ``>``.
    """
    text = blank_out(markup, _RAW_TEXT_BLOCKS)
    size = len(text)
    for m in _TAG_OPEN.finditer(text):
        i = m.end()
        quote = None
        while i < size:
            ch = text[i]
            if quote:
                if ch == quote:
                    quote = None
            elif ch in "\"'":
                quote = ch
            elif ch == ">":
                break
            elif ch == "<":
                return m.group(2), line_of(text, m.start())
            i += 1
        if i >= size:
            return m.group(2), line_of(text, m.start())
    return None


class MarkupParser:
    """
    Parses HTML and template sources into an ElementGraph.

    JSX, Vue, Svelte and Angular templates are reduced to plain markup first
    (see ``prepare_markup``) and then go through the same html.parser tree walk.
    """

    def parse(
            self,
            source: str,
            source_file: str,
            context: Optional[BuildContext] = None
    ) -> ElementGraph:
        """
        Args:
            source (str): The raw markup or component source.
            source_file (str): File name; also selects the dialect.
            context (Optional[BuildContext]): Id counters for the current build.

        Returns:
            ElementGraph: The structural tree of this fragment.

        Raises:
            FragmentParseError: When the markup contains an unterminated tag construct.
        """
        context = context or BuildContext()
        dialect = detect_dialect(source_file)
        roots: List[ElementNode] = []

        for block in prepare_markup(source or "", dialect):
            problem = find_unterminated_tag(block.text)
            if problem:
                tag, line = problem
                raise FragmentParseError(
                    source_file, f"unterminated <{tag}> tag", line=line + block.line_offset
                )
            try:
                soup = BeautifulSoup(block.text, "html.parser", multi_valued_attributes=None)
            except ParserRejectedMarkup as e:
                raise FragmentParseError(source_file, str(e)) from e

            for child in soup.contents:
                node = self._build_tree(child, context, source_file, dialect, block.line_offset, None)
                if node is not None:
                    roots.append(node)

        graph = ElementGraph(source_file=source_file, roots=roots)
        logger.debug(
            f"Parsed {source_file} as {dialect.value}: "
            f"{len(roots)} top-level nodes, {len(graph.get_all_elements())} elements"
        )
        return graph

    def _build_tree(
            self,
            node,
            context: BuildContext,
            source_file: str,
            dialect: Dialect,
            line_offset: int,
            parent_location: Optional[SourceLocation]
    ) -> Optional[ElementNode]:
        """Recursively converts a BeautifulSoup node into an ElementNode."""
        if isinstance(node, Tag):
            location = SourceLocation(
                file=source_file,
                line=(node.sourceline or 1) + line_offset,
                column=node.sourcepos or 0,
            )
            element = ElementNode(
                id=context.next_id("el"),
                tag_name=node.name,
                attributes=self._normalize_attributes(node.attrs, dialect),
                location=location,
            )
            for child in node.children:
                converted = self._build_tree(child, context, source_file, dialect, line_offset, location)
                if converted is not None:
                    element.append_child(converted)
            return element

        if isinstance(node, Comment):
            return ElementNode(
                id=context.next_id("comment"),
                node_type=NodeType.COMMENT,
                text_content=str(node).strip(),
                location=parent_location or SourceLocation(file=source_file, line=1 + line_offset),
            )

        # Doctype, CDATA and processing instructions carry no structure
        if isinstance(node, PreformattedString):
            return None

        if isinstance(node, NavigableString):
            if node.parent is not None and node.parent.name in ("script", "style"):
                return None
            text = " ".join(node.split())
            if not text:
                return None
            return ElementNode(
                id=context.next_id("text"),
                node_type=NodeType.TEXT,
                text_content=text,
                location=parent_location or SourceLocation(file=source_file, line=1 + line_offset),
            )

        return None

    @staticmethod
    def _normalize_attributes(attrs: Dict[str, str], dialect: Dialect) -> Dict[str, str]:
        if dialect != Dialect.JSX:
            return attrs
        return {_JSX_ATTRIBUTE_NAMES.get(name.lower(), name): value for name, value in attrs.items()}

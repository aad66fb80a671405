# src/a11y_graph/style/parser.py
import logging
import re
from typing import Dict, List, Optional

from ..build_context import BuildContext
from ..dom.builder import line_of
from ..dom.selectors import mask_attribute_blocks, specificity
from ..errors import FragmentParseError
from ..model import SourceLocation
from .models import RuleType, StyleGraph, StyleRule

logger = logging.getLogger(__name__)

# Checked in this order, so "focus-visible" wins over "focus"
PSEUDO_CLASS_ORDER = ("focus-visible", "focus-within", "focus", "hover", "active", "disabled", "checked")

_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_STRING = re.compile(r"\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\])*'")
_IMPORT = re.compile(r"@import\s+([^;]+);")


def strip_comments(css: str) -> str:
    """Blanks out comments, keeping newlines for line numbers."""
    return _COMMENT.sub(lambda m: re.sub(r"[^\n]", " ", m.group(0)), css)


def split_selectors(selector_text: str) -> List[str]:
    """Splits a selector list on top-level commas (not inside parentheses or brackets)."""
    parts: List[str] = []
    depth = 0
    current = []
    for ch in selector_text:
        if ch in "([":
            depth += 1
        elif ch in ")]":
            depth = max(0, depth - 1)
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return [" ".join(p.split()) for p in parts if p.strip()]


def detect_pseudo_class(selector: str) -> Optional[str]:
    names = set(re.findall(r"(?<!:):([\w-]+)", mask_attribute_blocks(selector)))
    for name in PSEUDO_CLASS_ORDER:
        if name in names:
            return name
    return None


def parse_declarations(body: str) -> Dict[str, str]:
    """``color: red; outline: none`` -> ``{"color": "red", "outline": "none"}``."""
    properties: Dict[str, str] = {}
    # semicolons inside strings or url() must not split a declaration
    protected = _STRING.sub(lambda m: m.group(0).replace(";", "\0"), body)
    for declaration in protected.split(";"):
        if ":" not in declaration:
            continue
        name, _, value = declaration.partition(":")
        name = name.strip().lower()
        value = value.replace("\0", ";").strip()
        if name and value:
            properties[name] = value
    return properties


def _matching_brace(css: str, open_index: int) -> int:
    depth = 0
    i = open_index
    while i < len(css):
        ch = css[i]
        if ch in "\"'":
            m = _STRING.match(css, i)
            if m:
                i = m.end()
                continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


class StyleParser:
    """
    Parses a style sheet into a StyleGraph.

    Handles plain rules, selector lists, nested ``@media`` blocks and records
    ``@keyframes``, ``@font-face`` and ``@import`` without matching them.
    """

    def parse(
            self,
            source: str,
            source_file: str,
            context: Optional[BuildContext] = None
    ) -> StyleGraph:
        """
        Args:
            source (str): Raw CSS text.
            source_file (str): File name used in rule locations.
            context (Optional[BuildContext]): Id counters for the current build.

        Returns:
            StyleGraph: Rules in source order.

        Raises:
            FragmentParseError: On unbalanced braces.
        """
        context = context or BuildContext()
        css = strip_comments(source or "")
        self._check_balance(css, source_file)

        rules: List[StyleRule] = []
        self._parse_block(css, 0, len(css), source_file, context, None, rules)
        logger.debug(f"Parsed {len(rules)} rules from {source_file}")
        return StyleGraph(source_file=source_file, rules=rules)

    @staticmethod
    def _check_balance(css: str, source_file: str) -> None:
        depth = 0
        text = _STRING.sub(lambda m: " " * len(m.group(0)), css)
        for i, ch in enumerate(text):
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth < 0:
                    raise FragmentParseError(source_file, "unexpected '}'", line=line_of(css, i))
        if depth > 0:
            raise FragmentParseError(source_file, f"{depth} unclosed '{{'", line=line_of(css, len(css)))

    def _parse_block(
            self,
            css: str,
            start: int,
            end: int,
            source_file: str,
            context: BuildContext,
            media_query: Optional[str],
            rules: List[StyleRule]
    ) -> None:
        pos = start
        while pos < end:
            brace = css.find("{", pos, end)
            semicolon = css.find(";", pos, end)

            # statement at-rules such as @import
            if semicolon != -1 and (brace == -1 or semicolon < brace):
                statement = css[pos:semicolon + 1]
                m = _IMPORT.search(statement)
                if m:
                    offset = pos + statement.index("@import")
                    rules.append(self._make_rule(
                        context, "@import", {"src": m.group(1).strip()}, source_file,
                        line_of(css, offset), RuleType.IMPORT, media_query,
                    ))
                pos = semicolon + 1
                continue
            if brace == -1:
                break

            close = _matching_brace(css, brace)
            if close == -1 or close > end:
                break
            prelude = css[pos:brace].strip()
            prelude_offset = pos + (len(css[pos:brace]) - len(css[pos:brace].lstrip()))
            line = line_of(css, prelude_offset)
            body = css[brace + 1:close]

            lowered = prelude.lower()
            if lowered.startswith("@media"):
                query = " ".join(prelude[len("@media"):].split())
                if media_query:
                    query = f"{media_query} and {query}"
                self._parse_block(css, brace + 1, close, source_file, context, query, rules)
            elif lowered.startswith(("@supports", "@layer", "@container")):
                self._parse_block(css, brace + 1, close, source_file, context, media_query, rules)
            elif re.match(r"@(?:-[a-z]+-)?keyframes\b", lowered):
                rules.append(self._make_rule(
                    context, prelude, {}, source_file, line, RuleType.KEYFRAMES, media_query,
                ))
            elif lowered.startswith("@font-face"):
                rules.append(self._make_rule(
                    context, "@font-face", parse_declarations(body), source_file, line,
                    RuleType.FONT_FACE, media_query,
                ))
            elif lowered.startswith("@"):
                logger.debug(f"Skipping unsupported at-rule in {source_file}:{line}: {prelude[:40]}")
            elif prelude:
                properties = parse_declarations(body)
                for selector in split_selectors(prelude):
                    rules.append(self._make_rule(
                        context, selector, properties, source_file, line, RuleType.STYLE, media_query,
                    ))
            pos = close + 1

    @staticmethod
    def _make_rule(
            context: BuildContext,
            selector: str,
            properties: Dict[str, str],
            source_file: str,
            line: int,
            rule_type: RuleType,
            media_query: Optional[str]
    ) -> StyleRule:
        is_style = rule_type == RuleType.STYLE
        return StyleRule(
            id=context.next_id("rule"),
            selector=selector,
            specificity=specificity(selector) if is_style else (0, 0, 0, 0),
            properties=properties,
            location=SourceLocation(file=source_file, line=line),
            rule_type=rule_type,
            media_query=media_query,
            pseudo_class=detect_pseudo_class(selector) if is_style else None,
        )

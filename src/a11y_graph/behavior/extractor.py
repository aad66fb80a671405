# src/a11y_graph/behavior/extractor.py
"""
Best-effort extraction of UI behaviors from JavaScript/TypeScript and from
the event bindings of HTML, JSX, Vue, Svelte and Angular templates.

The extractor never raises on odd input: whatever cannot be understood is
skipped, and a record whose target cannot be named still gets an (empty)
selector descriptor instead of being dropped.
"""
import logging
import re
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from ..build_context import BuildContext
from ..dom.builder import Dialect, blank_out, detect_dialect, line_of, prepare_markup
from ..model import SourceLocation
from .models import ActionType, BehaviorGraph, BehaviorRecord, ElementRef

logger = logging.getLogger(__name__)

SCRIPT_EXTENSIONS = (".js", ".mjs", ".cjs", ".ts")

# Receivers that are not elements
GLOBAL_TARGETS = frozenset({"document", "window", "globalThis", "self"})

_STRING_OR_COMMENT = re.compile(
    r"""("(?:\\.|[^"\\\n])*"|'(?:\\.|[^'\\\n])*'|`(?:\\.|[^`\\])*`)|(//[^\n]*|/\*.*?\*/)""",
    re.DOTALL,
)
_INLINE_SCRIPT = re.compile(r"<script\b[^>]*>(.*?)</script\s*>", re.DOTALL | re.IGNORECASE)

_BINDING = re.compile(r"\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*([^;\n]+)")
_METHOD_CALL = re.compile(
    r"\.\s*(addEventListener|setAttribute|removeAttribute|focus|blur|"
    r"appendChild|removeChild|insertBefore|replaceChildren|remove)\s*\("
)
_CLASS_LIST_CALL = re.compile(r"\.\s*classList\s*\.\s*(add|remove|toggle|replace)\s*\(")
_HANDLER_PROPERTY = re.compile(r"\.\s*on([a-z]+)\s*=(?![=>])")
_CONTENT_PROPERTY = re.compile(r"\.\s*(innerHTML|outerHTML|textContent|innerText)\s*=(?![=>])")
_STYLE_PROPERTY = re.compile(r"\.\s*style\s*\.\s*([A-Za-z]+)\s*=(?![=>])")
_NAVIGATION = re.compile(
    r"\b(?:window\.)?location(?:\.href)?\s*=(?![=>])"
    r"|\blocation\.(?:assign|replace)\s*\("
    r"|\bhistory\.(?:pushState|replaceState)\s*\("
    r"|\bwindow\.open\s*\("
)

# Element lookups, matched against a whole receiver expression
_BY_ID = re.compile(r"""(?:^|\.)getElementById\(\s*(["'`])([^"'`]+)\1\s*\)$""")
_BY_SELECTOR = re.compile(r"""(?:^|\.)querySelector(?:All)?\(\s*(["'`])([^"'`]+)\1\s*\)$""")
_BY_CLASS = re.compile(r"""(?:^|\.)getElementsByClassName\(\s*(["'`])([^"'`]+)\1\s*\)$""")
_BY_TAG = re.compile(r"""(?:^|\.)getElementsByTagName\(\s*(["'`])([^"'`]+)\1\s*\)$""")
_JQUERY = re.compile(r"""^(?:\$|jQuery)\(\s*(["'`])([^"'`]+)\1\s*\)$""")
_REACT_REF = re.compile(r"^([A-Za-z_$][\w$]*)\.current$")
_VUE_REF = re.compile(r"""^this\.\$refs(?:\.([A-Za-z_$][\w$]*)|\[\s*["']([^"']+)["']\s*\])$""")
_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")
_TRAILING_INDEX = re.compile(r"\[\s*\d+\s*\]$")

# Template event bindings: onclick / onClick, @click, v-on:click, on:click, (click)
_TEMPLATE_EVENT_ATTRIBUTE = re.compile(r"^(?:on([a-z]+)|@([\w-]+)|v-on:([\w-]+)|on:([\w-]+)|\(([\w.-]+)\))")

_TEMPLATE_FRAMEWORK = {
    Dialect.HTML: "html",
    Dialect.JSX: "react",
    Dialect.VUE: "vue",
    Dialect.SVELTE: "svelte",
    Dialect.ANGULAR: "angular",
}


def mask_comments(source: str) -> str:
    """Blanks out comments (keeping string literals and line numbers)."""
    def repl(m: re.Match) -> str:
        if m.group(2):
            return re.sub(r"[^\n]", " ", m.group(2))
        return m.group(1)

    return _STRING_OR_COMMENT.sub(repl, source)


def _matching_open(text: str, close_index: int) -> int:
    """Index of the bracket opening the one at ``close_index``, or -1."""
    pairs = {")": "(", "]": "[", "}": "{"}
    stack = [text[close_index]]
    i = close_index - 1
    while i >= 0:
        ch = text[i]
        if ch in "\"'`":
            start = text.rfind(ch, 0, i)
            if start < 0:
                return -1
            i = start - 1
            continue
        if ch in pairs:
            stack.append(ch)
        elif ch in "([{":
            if pairs[stack[-1]] != ch:
                return -1
            stack.pop()
            if not stack:
                return i
        i -= 1
    return -1


def receiver_before(text: str, end: int) -> str:
    """
    The member-expression receiver ending right before ``end``, e.g. for
    ``document.getElementById('x').addEventListener`` it is
    ``document.getElementById('x')``.
    """
    i = end - 1
    while i >= 0 and text[i].isspace():
        i -= 1
    stop = i + 1
    while i >= 0:
        ch = text[i]
        if ch in ")]":
            i = _matching_open(text, i)
            if i < 0:
                break
            i -= 1
        elif ch.isalnum() or ch in "_$.?":
            i -= 1
        elif ch.isspace():
            j = i
            while j >= 0 and text[j].isspace():
                j -= 1
            # whitespace is allowed around the dots of a chained call
            if j >= 0 and (text[j] == "." or text[i + 1] == "."):
                i = j
            else:
                break
        else:
            break
    return re.sub(r"\s+", "", text[i + 1:stop])


def call_arguments(text: str, start: int) -> List[str]:
    """Top-level arguments of the call whose ``(`` sits just before ``start``."""
    args: List[str] = []
    depth = 0
    quote = None
    current = start
    i = start
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "\"'`":
            quote = ch
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            if depth == 0:
                tail = text[current:i].strip()
                if tail or args:
                    args.append(tail)
                return args
            depth -= 1
        elif ch == "," and depth == 0:
            args.append(text[current:i].strip())
            current = i + 1
        i += 1
    return args


def string_literal(expression: str) -> Optional[str]:
    m = re.match(r"""^(["'`])(.*)\1$""", expression.strip(), re.DOTALL)
    return m.group(2) if m else None


def resolve_reference(
        expression: str,
        bindings: Optional[Dict[str, ElementRef]] = None
) -> Tuple[ElementRef, bool]:
    """
    Synthesizes a selector descriptor for a receiver expression.

    Returns the descriptor and whether the receiver is a global
    (document/window) rather than an element.
    """
    expr = _TRAILING_INDEX.sub("", expression.replace("?.", ".").strip())

    m = _BY_ID.search(expr)
    if m:
        return ElementRef(selector=f"#{m.group(2).strip()}", binding=m.group(2).strip()), False
    m = _BY_SELECTOR.search(expr)
    if m:
        return ElementRef(selector=m.group(2).strip(), binding=m.group(2).strip()), False
    m = _BY_CLASS.search(expr)
    if m:
        classes = "".join(f".{c}" for c in m.group(2).split())
        return ElementRef(selector=classes, binding=m.group(2).strip()), False
    m = _BY_TAG.search(expr)
    if m:
        return ElementRef(selector=m.group(2).strip().lower(), binding=m.group(2).strip()), False
    m = _JQUERY.match(expr)
    if m:
        return ElementRef(selector=m.group(2).strip(), binding=m.group(2).strip()), False
    m = _REACT_REF.match(expr)
    if m:
        return ElementRef(selector=f'[ref="{m.group(1)}"]', binding=m.group(1)), False
    m = _VUE_REF.match(expr)
    if m:
        name = m.group(1) or m.group(2)
        return ElementRef(selector=f'[ref="{name}"]', binding=name), False

    if expr in GLOBAL_TARGETS:
        return ElementRef(selector=expr, binding=expr), True
    if expr == "document.body":
        return ElementRef(selector="body", binding=expr), False
    if expr in ("this", "event"):
        return ElementRef(selector="", binding=expr), False
    if _IDENTIFIER.match(expr):
        if bindings and expr in bindings:
            return bindings[expr], False
        return ElementRef(selector=expr, binding=expr), False

    # event.target, chained expressions: nothing to resolve against
    return ElementRef(selector="", binding=expr), False


class BehaviorExtractor:
    """
    Produces a BehaviorGraph from one source file.

    Plain scripts are scanned for DOM API usage. Markup files contribute
    their inline ``<script>`` blocks (or, for JSX, the whole file) plus the
    event bindings declared on template tags.
    """

    def extract(
            self,
            source: str,
            source_file: str,
            context: Optional[BuildContext] = None
    ) -> BehaviorGraph:
        context = context or BuildContext()
        source = source or ""
        records: List[BehaviorRecord] = []
        name = (source_file or "").lower()

        if name.endswith(SCRIPT_EXTENSIONS):
            records.extend(self.extract_script(source, source_file, context))
        else:
            dialect = detect_dialect(source_file)
            if dialect == Dialect.JSX:
                records.extend(self.extract_script(source, source_file, context))
            else:
                for m in _INLINE_SCRIPT.finditer(source):
                    records.extend(self.extract_script(
                        m.group(1), source_file, context, line_offset=line_of(source, m.start(1)) - 1
                    ))
            records.extend(self.extract_template_handlers(source, source_file, context, dialect))

        logger.debug(f"Extracted {len(records)} behaviors from {source_file}")
        return BehaviorGraph(source_file=source_file, records=records)

    # --- Imperative DOM API usage ---

    def extract_script(
            self,
            source: str,
            source_file: str,
            context: BuildContext,
            line_offset: int = 0
    ) -> List[BehaviorRecord]:
        text = mask_comments(source)
        bindings = self._collect_bindings(text)
        found: List[Tuple[int, BehaviorRecord]] = []

        def location(offset: int, length: int) -> SourceLocation:
            line_start = text.rfind("\n", 0, offset) + 1
            return SourceLocation(
                file=source_file,
                line=line_of(text, offset) + line_offset,
                column=offset - line_start,
                length=length,
            )

        def record(offset, length, action_type, ref, is_global, event=None, **metadata):
            if is_global:
                metadata["global"] = True
            found.append((offset, BehaviorRecord(
                id="",
                action_type=action_type,
                element_ref=ref,
                event=event,
                location=location(offset, length),
                metadata=metadata,
            )))

        for m in _METHOD_CALL.finditer(text):
            method = m.group(1)
            receiver = receiver_before(text, m.start())
            if not receiver:
                continue
            if method == "remove" and receiver.endswith("classList"):
                continue
            ref, is_global = resolve_reference(receiver, bindings)
            args = call_arguments(text, m.end())

            if method == "addEventListener":
                event = string_literal(args[0]) if args else None
                if not event or len(args) < 2:
                    continue
                record(m.start(), m.end() - m.start(), ActionType.EVENT_HANDLER, ref, is_global,
                       event=event.lower(), framework="vanilla", synthetic=False, handler=args[1][:80])
            elif method in ("setAttribute", "removeAttribute"):
                attribute = string_literal(args[0]) if args else None
                value = args[1][:80] if len(args) > 1 else None
                if attribute and attribute.lower().startswith("aria-"):
                    record(m.start(), m.end() - m.start(), ActionType.ARIA_STATE_CHANGE, ref, is_global,
                           attribute=attribute.lower(), value=value, method=method)
                else:
                    record(m.start(), m.end() - m.start(), ActionType.DOM_MANIPULATION, ref, is_global,
                           attribute=attribute.lower() if attribute else None, value=value, method=method)
            elif method in ("focus", "blur"):
                record(m.start(), m.end() - m.start(), ActionType.FOCUS_CHANGE, ref, is_global,
                       method=method, timing="immediate")
            else:
                record(m.start(), m.end() - m.start(), ActionType.DOM_MANIPULATION, ref, is_global,
                       method=method)

        for m in _CLASS_LIST_CALL.finditer(text):
            receiver = receiver_before(text, m.start())
            if not receiver:
                continue
            ref, is_global = resolve_reference(receiver, bindings)
            args = call_arguments(text, m.end())
            record(m.start(), m.end() - m.start(), ActionType.DOM_MANIPULATION, ref, is_global,
                   method=f"classList.{m.group(1)}",
                   class_name=string_literal(args[0]) if args else None)

        for m in _HANDLER_PROPERTY.finditer(text):
            receiver = receiver_before(text, m.start())
            if not receiver:
                continue
            ref, is_global = resolve_reference(receiver, bindings)
            record(m.start(), m.end() - m.start(), ActionType.EVENT_HANDLER, ref, is_global,
                   event=m.group(1), framework="vanilla", synthetic=False, property=True)

        for m in _CONTENT_PROPERTY.finditer(text):
            receiver = receiver_before(text, m.start())
            if not receiver:
                continue
            ref, is_global = resolve_reference(receiver, bindings)
            record(m.start(), m.end() - m.start(), ActionType.DOM_MANIPULATION, ref, is_global,
                   property=m.group(1))

        for m in _STYLE_PROPERTY.finditer(text):
            receiver = receiver_before(text, m.start())
            if not receiver:
                continue
            ref, is_global = resolve_reference(receiver, bindings)
            record(m.start(), m.end() - m.start(), ActionType.DOM_MANIPULATION, ref, is_global,
                   style=m.group(1))

        for m in _NAVIGATION.finditer(text):
            record(m.start(), m.end() - m.start(), ActionType.NAVIGATION,
                   ElementRef(selector="", binding="window"), True,
                   method=re.sub(r"\s+", "", m.group(0)).rstrip("=("))

        # ids follow source order
        found.sort(key=lambda pair: pair[0])
        return [
            rec.model_copy(update={"id": context.next_id("action")})
            for _, rec in found
        ]

    @staticmethod
    def _collect_bindings(text: str) -> Dict[str, ElementRef]:
        """First pass: variables bound to element lookups, e.g. ``const b = document.getElementById('x')``."""
        bindings: Dict[str, ElementRef] = {}
        for m in _BINDING.finditer(text):
            name, value = m.group(1), m.group(2).strip().rstrip(";").strip()
            ref, is_global = resolve_reference(value)
            if ref.selector and not is_global and not _IDENTIFIER.match(value):
                bindings[name] = ElementRef(selector=ref.selector, binding=name)
        return bindings

    # --- Declarative template bindings ---

    def extract_template_handlers(
            self,
            source: str,
            source_file: str,
            context: BuildContext,
            dialect: Optional[Dialect] = None
    ) -> List[BehaviorRecord]:
        dialect = dialect or detect_dialect(source_file)
        framework = _TEMPLATE_FRAMEWORK[dialect]
        records: List[BehaviorRecord] = []

        for block in prepare_markup(source, dialect):
            markup = blank_out(block.text, _INLINE_SCRIPT)
            soup = BeautifulSoup(markup, "html.parser", multi_valued_attributes=None)
            for tag in soup.find_all(True):
                records.extend(
                    self._tag_handlers(tag, source_file, context, framework, dialect, block.line_offset)
                )
        return records

    @staticmethod
    def _tag_handlers(
            tag: Tag,
            source_file: str,
            context: BuildContext,
            framework: str,
            dialect: Dialect,
            line_offset: int
    ) -> List[BehaviorRecord]:
        out: List[BehaviorRecord] = []
        static_id = tag.attrs.get("id")
        if static_id and not str(static_id).startswith("{"):
            ref = ElementRef(selector=f"#{static_id}", binding=f"{tag.name}#{static_id}")
        else:
            ref = ElementRef(selector=tag.name.lower(), binding=tag.name)

        for name, value in tag.attrs.items():
            m = _TEMPLATE_EVENT_ATTRIBUTE.match(name.lower())
            if not m:
                continue
            event = next(g for g in m.groups() if g).split(".")[0]
            out.append(BehaviorRecord(
                id=context.next_id("action"),
                action_type=ActionType.EVENT_HANDLER,
                element_ref=ref,
                event=event,
                location=SourceLocation(
                    file=source_file,
                    line=(tag.sourceline or 1) + line_offset,
                    column=tag.sourcepos or 0,
                ),
                metadata={
                    "framework": framework,
                    "synthetic": dialect == Dialect.JSX,
                    "attribute": name,
                    "handler": str(value)[:80],
                },
            ))
        return out

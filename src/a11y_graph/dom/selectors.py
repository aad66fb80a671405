# src/a11y_graph/dom/selectors.py
"""
Selector helpers shared by the element graph, the style graph and the merge.

Only a small compound-selector subset is understood: a tag name (or ``*``)
followed by any sequence of ``#id``, ``.class``, ``[attr]`` and
``[attr="value"]``. Anything else (combinators, selector lists,
pseudo-classes, stray characters) is reported as unsupported and matches
nothing. Matching never raises.
"""
import re
from functools import lru_cache
from typing import List, NamedTuple, Optional, Tuple

Specificity = Tuple[int, int, int, int]

_TAG = re.compile(r"\*|[A-Za-z][\w-]*")
_PART = re.compile(
    r"""
    \#(?P<id>[\w-]+)
  | \.(?P<cls>[\w-]+)
  | \[\s*(?P<attr>[\w:.-]+)\s*
        (?:=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[\w-]+))\s*)?
    \]
    """,
    re.VERBOSE,
)

ARIA_REFERENCE_ATTRIBUTES = ("aria-labelledby", "aria-describedby", "aria-controls")


class CompoundSelector(NamedTuple):
    tag: Optional[str]
    ids: Tuple[str, ...]
    classes: Tuple[str, ...]
    attributes: Tuple[Tuple[str, Optional[str]], ...]


@lru_cache(maxsize=2048)
def parse_compound(selector: str) -> Optional[CompoundSelector]:
    """Parses a compound selector, or returns None when it is outside the supported subset."""
    if not isinstance(selector, str):
        return None
    text = selector.strip()
    if not text:
        return None

    pos = 0
    tag = None
    tag_match = _TAG.match(text)
    if tag_match:
        tag = tag_match.group(0).lower()
        pos = tag_match.end()

    ids, classes, attributes = [], [], []
    while pos < len(text):
        part = _PART.match(text, pos)
        if not part:
            return None
        if part.group("id"):
            ids.append(part.group("id"))
        elif part.group("cls"):
            classes.append(part.group("cls"))
        else:
            value = next(
                (v for v in (part.group("dq"), part.group("sq"), part.group("bare")) if v is not None),
                None,
            )
            attributes.append((part.group("attr").lower(), value))
        pos = part.end()

    if tag is None and not (ids or classes or attributes):
        return None
    return CompoundSelector(tag, tuple(ids), tuple(classes), tuple(attributes))


def selector_matches(element, selector: str) -> bool:
    """True if ``element`` satisfies ``selector``. Unsupported syntax never matches."""
    if not getattr(element, "is_element", False):
        return False
    compound = parse_compound(selector)
    if compound is None:
        return False

    attrs = element.attributes
    if compound.tag and compound.tag != "*" and element.tag_name.lower() != compound.tag:
        return False
    for id_value in compound.ids:
        if attrs.get("id") != id_value:
            return False
    if compound.classes:
        own = set(attrs.get("class", "").split())
        if not all(c in own for c in compound.classes):
            return False
    for name, value in compound.attributes:
        if name not in attrs:
            return False
        if value is not None and attrs[name] != value:
            return False
    return True


def mask_attribute_blocks(selector: str) -> str:
    """
    Same-length copy of ``selector`` with quoted strings and ``[...]`` blocks
    blanked, so a ``:`` inside ``[href="https://x.org"]`` is not taken for a pseudo.
    """
    def blank(m: re.Match) -> str:
        return " " * len(m.group(0))

    return _ATTRIBUTE_BLOCK.sub(blank, _STRINGS.sub(blank, selector))


def strip_pseudo(selector: str) -> str:
    """Removes pseudo-classes and pseudo-elements: ``#submit:focus`` -> ``#submit``."""
    cut = mask_attribute_blocks(selector).find(":")
    return (selector if cut < 0 else selector[:cut]).strip()


def candidate_selectors(element) -> List[str]:
    """
    Every selector string a behavior could use to target ``element``.

    Over-generates on purpose: a behavior resolves when its selector equals
    any one of these forms.
    """
    if not getattr(element, "is_element", False):
        return []
    attrs = element.attributes
    selectors: List[str] = []

    if attrs.get("id"):
        selectors.append(f"#{attrs['id']}")
    for token in attrs.get("class", "").split():
        selectors.append(f".{token}")
    selectors.append(element.tag_name.lower())
    for name in attrs:
        if name.startswith("aria-"):
            selectors.append(f"[{name}]")
    if attrs.get("role"):
        selectors.append(f'[role="{attrs["role"]}"]')

    # keep first occurrence, preserve order
    return list(dict.fromkeys(selectors))


_STRINGS = re.compile(r"\"[^\"]*\"|'[^']*'")
_ATTRIBUTE_BLOCK = re.compile(r"\[[^\]]*\]")
_PSEUDO_ELEMENT = re.compile(r"::[\w-]+(?:\([^)]*\))?")
_PSEUDO_CLASS = re.compile(r":[\w-]+(?:\([^)]*\))?")
_ID = re.compile(r"#[\w-]+")
_CLASS = re.compile(r"\.[\w-]+")
_TYPE = re.compile(r"(?:^|(?<=[\s>+~]))[A-Za-z][\w-]*")


@lru_cache(maxsize=2048)
def specificity(selector: str) -> Specificity:
    """
    CSS specificity as (inline, id, class-like, type).

    - "button"                -> (0, 0, 0, 1)
    - ".btn"                  -> (0, 0, 1, 0)
    - "#submit"               -> (0, 1, 0, 0)
    - "button.btn:focus"      -> (0, 0, 2, 1)
    - "#submit.primary:hover" -> (0, 1, 2, 0)
    """
    text = _STRINGS.sub('""', selector)

    attributes = len(_ATTRIBUTE_BLOCK.findall(text))
    text = _ATTRIBUTE_BLOCK.sub(" ", text)
    pseudo_elements = len(_PSEUDO_ELEMENT.findall(text))
    text = _PSEUDO_ELEMENT.sub(" ", text)
    pseudo_classes = len(_PSEUDO_CLASS.findall(text))
    text = _PSEUDO_CLASS.sub(" ", text)
    ids = len(_ID.findall(text))
    text = _ID.sub(" ", text)
    classes = len(_CLASS.findall(text))
    text = _CLASS.sub(" ", text)
    types = len(_TYPE.findall(text.strip()))

    return 0, ids, classes + attributes + pseudo_classes, types + pseudo_elements

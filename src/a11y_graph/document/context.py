# src/a11y_graph/document/context.py
from typing import Optional, Tuple

from pydantic import BaseModel

from ..behavior.models import ActionType, BehaviorRecord, KEYBOARD_EVENTS
from ..dom.core import ElementNode
from ..dom.models import is_focusable
from ..style.models import StyleRule

IMPLICIT_ROLES = {
    "button": "button",
    "a": "link",
    "input": "textbox",
    "textarea": "textbox",
    "select": "combobox",
    "img": "img",
    "nav": "navigation",
    "main": "main",
    "header": "banner",
    "footer": "contentinfo",
    "aside": "complementary",
    "section": "region",
    "article": "article",
    "form": "form",
    "table": "table",
    "ul": "list",
    "ol": "list",
    "li": "listitem",
    "h1": "heading",
    "h2": "heading",
    "h3": "heading",
    "h4": "heading",
    "h5": "heading",
    "h6": "heading",
}


class ElementContext(BaseModel):
    """
    Analyzer-facing summary of one element: structure, resolved behaviors and
    matching style rules in a single record. Derived on demand, never stored.
    """
    element: ElementNode
    js_handlers: Tuple[BehaviorRecord, ...] = ()
    css_rules: Tuple[StyleRule, ...] = ()
    focusable: bool = False
    interactive: bool = False
    has_click_handler: bool = False
    has_keyboard_handler: bool = False
    role: Optional[str] = None
    label: Optional[str] = None

    model_config = {"frozen": True}


def get_role(element: ElementNode) -> Optional[str]:
    """Explicit ``role`` attribute, else the implicit role of the tag."""
    explicit = element.get_attribute("role")
    if explicit:
        return explicit
    return IMPLICIT_ROLES.get(element.tag_name.lower())


def get_label(element: ElementNode) -> Optional[str]:
    """
    Computed accessible name, in order of precedence:
    aria-label, an aria-labelledby placeholder, text children,
    img alt, then value/placeholder for inputs and buttons.

    aria-labelledby is not resolved to the referenced text; callers that
    need it follow the reference themselves.
    """
    aria_label = element.get_attribute("aria-label")
    if aria_label:
        return aria_label

    labelledby = element.get_attribute("aria-labelledby")
    if labelledby:
        return f"[labelledby: {labelledby}]"

    text = " ".join(c.text_content for c in element.text_children if c.text_content).strip()
    if text:
        return text

    tag = element.tag_name.lower()
    if tag == "img":
        return element.get_attribute("alt") or None
    if tag in ("input", "button"):
        return element.get_attribute("value") or element.get_attribute("placeholder") or None
    return None


def derive_context(element: ElementNode) -> ElementContext:
    """Pure function of the element's resolved state."""
    handlers = tuple(element.behaviors)
    focusable = is_focusable(element)

    has_click = any(
        h.action_type == ActionType.EVENT_HANDLER and h.event == "click" for h in handlers
    )
    has_keyboard = any(
        h.action_type == ActionType.EVENT_HANDLER and h.event in KEYBOARD_EVENTS for h in handlers
    )

    return ElementContext(
        element=element,
        js_handlers=handlers,
        css_rules=tuple(element.style_rules),
        focusable=focusable,
        interactive=bool(handlers) or focusable,
        has_click_handler=has_click,
        has_keyboard_handler=has_keyboard,
        role=get_role(element),
        label=get_label(element),
    )

# src/a11y_graph/analyzers/rules/mouse_only_click.py
from typing import List

from ...behavior.models import ActionType
from ...model import Finding
from ..core import AnalyzerDefinition, audit_spec, finding


def _describe(element) -> str:
    if element.element_id:
        return f'<{element.tag_name}> element with id="{element.element_id}"'
    return f"<{element.tag_name}> element"


@audit_spec(codes=["MOUSE_ONLY_CLICK"])
def check_keyboard_equivalent(view) -> List[Finding]:
    """Click handlers need a keyboard handler on the same element (WCAG 2.1.1)."""
    res = []
    for ctx in view.get_interactive_elements():
        if not ctx.has_click_handler or ctx.has_keyboard_handler:
            continue
        handler = next(
            h for h in ctx.js_handlers
            if h.action_type == ActionType.EVENT_HANDLER and h.event == "click"
        )
        res.append(finding(
            "MOUSE_ONLY_CLICK",
            f"{_describe(ctx.element)} has click handler but no keyboard handler.",
            "CRITICAL",
            "KEYBOARD",
            element=ctx.element,
            related=[handler.location],
            wcag=["2.1.1"],
        ))
    return res


@audit_spec(codes=["CLICK_NOT_FOCUSABLE"])
def check_focusable(view) -> List[Finding]:
    """An element that reacts to clicks but cannot receive focus is unreachable by keyboard."""
    res = []
    for ctx in view.get_interactive_elements():
        if ctx.has_click_handler and not ctx.focusable:
            res.append(finding(
                "CLICK_NOT_FOCUSABLE",
                f"{_describe(ctx.element)} has click handler but is not focusable; "
                f"add tabindex=\"0\" or use a <button>.",
                "WARNING",
                "KEYBOARD",
                element=ctx.element,
                wcag=["2.1.1", "2.4.3"],
            ))
    return res


# --- DEFINITION ---
DEFINITION = AnalyzerDefinition(
    name="mouse-only-click",
    description="Detects click handlers without keyboard access",
    rules=[check_keyboard_equivalent, check_focusable],
)

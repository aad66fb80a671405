# src/a11y_graph/analyzers/rules/visibility_focus.py
from typing import List

from ...model import Finding
from ..core import AnalyzerDefinition, audit_spec, finding


@audit_spec(codes=["ARIA_HIDDEN_FOCUSABLE", "ARIA_HIDDEN_INTERACTIVE"])
def check_aria_hidden(view) -> List[Finding]:
    res = []
    for ctx in view.get_interactive_elements():
        if ctx.element.get_attribute("aria-hidden") != "true":
            continue
        if ctx.focusable:
            res.append(finding(
                "ARIA_HIDDEN_FOCUSABLE",
                f"<{ctx.element.tag_name}> is focusable but marked aria-hidden=\"true\".",
                "CRITICAL",
                "FOCUS",
                element=ctx.element,
                wcag=["4.1.2"],
            ))
        elif ctx.js_handlers:
            res.append(finding(
                "ARIA_HIDDEN_INTERACTIVE",
                f"<{ctx.element.tag_name}> has event handlers but is marked aria-hidden=\"true\".",
                "WARNING",
                "FOCUS",
                element=ctx.element,
                wcag=["4.1.2"],
            ))
    return res


@audit_spec(codes=["HIDDEN_FOCUSABLE", "FOCUS_OUTLINE_REMOVED"])
def check_css_visibility(view) -> List[Finding]:
    res = []
    for ctx in view.get_interactive_elements():
        element = ctx.element
        if not ctx.focusable:
            continue
        rules = view.get_matching_rules(element)
        if view.is_element_hidden(element):
            res.append(finding(
                "HIDDEN_FOCUSABLE",
                f"{element.describe()} is hidden by CSS but can still receive keyboard focus.",
                "WARNING",
                "FOCUS",
                element=element,
                related=[r.location for r in rules if not r.has_pseudo_class][:1],
                wcag=["2.4.7"],
            ))
        if view.removes_focus_outline(element) and not view.has_focus_styles(element):
            res.append(finding(
                "FOCUS_OUTLINE_REMOVED",
                f"{element.describe()} has its outline removed and no :focus style replaces it.",
                "CRITICAL",
                "FOCUS",
                element=element,
                related=[r.location for r in rules],
                wcag=["2.4.7"],
            ))
    return res


# --- DEFINITION ---
DEFINITION = AnalyzerDefinition(
    name="visibility-focus-conflict",
    description="Focusable elements that are hidden or lose their focus indicator",
    rules=[check_aria_hidden, check_css_visibility],
)

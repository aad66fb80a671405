# src/a11y_graph/analyzers/rules/missing_label.py
from typing import List

from ...model import Finding
from ...utils.config_manager import config_manager
from ..core import AnalyzerDefinition, audit_spec, finding


@audit_spec(codes=["MISSING_LABEL"])
def check_accessible_name(view) -> List[Finding]:
    res = []
    exempt = set(config_manager.get_nested("analysis.label_exempt_tags", ["div", "span", "p"]))
    for ctx in view.get_interactive_elements():
        tag = ctx.element.tag_name.lower()
        if not ctx.focusable or ctx.label or tag in exempt:
            continue
        if tag == "input" and ctx.element.get_attribute("type") == "hidden":
            continue
        res.append(finding(
            "MISSING_LABEL",
            f"Focusable <{tag}> ({ctx.role or 'no role'}) has no accessible name.",
            "CRITICAL",
            "LABELS",
            element=ctx.element,
            role=ctx.role,
            wcag=["4.1.2"],
        ))
    return res


# --- DEFINITION ---
DEFINITION = AnalyzerDefinition(
    name="missing-label",
    description="Focusable elements without an accessible name",
    rules=[check_accessible_name],
)

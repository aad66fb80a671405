# src/a11y_graph/analyzers/rules/orphaned_handler.py
from typing import List

from ...model import Finding
from ..core import AnalyzerDefinition, audit_spec, finding


@audit_spec(codes=["ORPHANED_HANDLER"])
def check_unresolved_behaviors(view) -> List[Finding]:
    """
    Behaviors whose selector matched no element. Only meaningful when some
    markup was analysed; without any, every behavior would be orphaned.
    """
    if view.get_fragment_count() == 0:
        return []
    res = []
    for record in view.get_unresolved_behaviors():
        target = record.element_ref.selector or record.element_ref.binding or "an unknown element"
        what = f"'{record.event}' handler" if record.event else record.action_type.value
        message = f"{what} targets {target}, which matches no element in the analysed markup."
        res.append(finding(
            "ORPHANED_HANDLER",
            message,
            "INFO",
            "BEHAVIOR",
            location=record.location,
            selector=record.element_ref.selector,
            action_type=record.action_type.value,
        ))
    return res


# --- DEFINITION ---
DEFINITION = AnalyzerDefinition(
    name="orphaned-handler",
    description="Behaviors that no element receives",
    rules=[check_unresolved_behaviors],
)

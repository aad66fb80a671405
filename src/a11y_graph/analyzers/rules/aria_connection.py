# src/a11y_graph/analyzers/rules/aria_connection.py
from typing import List

from ...model import Finding
from ..core import AnalyzerDefinition, audit_spec, finding


@audit_spec(codes=["BROKEN_ARIA_REFERENCE"])
def check_id_references(view) -> List[Finding]:
    """aria-labelledby, aria-describedby and aria-controls must point at an existing id."""
    res = []
    for ref in view.get_unresolved_references():
        element = view.get_node(ref.element_id)
        res.append(finding(
            "BROKEN_ARIA_REFERENCE",
            f'{ref.attribute}="{ref.target_id}" references an id that does not exist in any analysed file.',
            "CRITICAL",
            "ARIA",
            element=element,
            attribute=ref.attribute,
            target_id=ref.target_id,
            wcag=["1.3.1", "4.1.2"],
        ))
    return res


# --- DEFINITION ---
DEFINITION = AnalyzerDefinition(
    name="aria-connection",
    description="ARIA id references without a target",
    rules=[check_id_references],
)

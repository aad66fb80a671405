# src/a11y_graph/analyzers/core.py
from typing import Any, Callable, List, Optional, Set

from ..dom.core import ElementNode
from ..model import Finding, SourceLocation

AnalyzerRule = Callable[[Any], List[Finding]]


def audit_spec(codes: List[str]):
    """
    Decorator to declare which finding codes an analyzer rule can return.
    Facilitates auto-discovery by the AnalyzerRegistry.
    """
    def decorator(func):
        func.defined_codes = codes
        return func
    return decorator


def finding(
        code: str,
        message: str,
        severity: str,
        category: str,
        element: Optional[ElementNode] = None,
        related: Optional[List[Optional[SourceLocation]]] = None,
        location: Optional[SourceLocation] = None,
        **details: Any
) -> Finding:
    """Shorthand used by rule modules; the confidence label is added later by the engine."""
    return Finding(
        code=code,
        message=message,
        severity=severity,
        category=category,
        element_id=element.id if element is not None else None,
        location=location or (element.location if element is not None else None),
        related_locations=[loc for loc in (related or []) if loc is not None],
        details=details,
    )


class AnalyzerDefinition:
    """
    Configuration object binding an analyzer name to its rule functions.
    """

    def __init__(
            self,
            name: str,
            rules: Optional[List[AnalyzerRule]] = None,
            description: str = "",
            possible_codes: Optional[List[str]] = None
    ):
        self.name = name
        self.description = description
        self.rules = rules or []

        # --- Auto-Discovery of Finding Codes ---
        final_codes: Set[str] = set(possible_codes or [])
        for rule in self.rules:
            if hasattr(rule, 'defined_codes'):
                final_codes.update(rule.defined_codes)

        self.codes = sorted(final_codes)

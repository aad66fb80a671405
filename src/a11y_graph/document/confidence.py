# src/a11y_graph/document/confidence.py
"""
Completeness scoring and per-finding confidence labels.

The completeness score estimates how much of the real cross-file picture a
document graph captured:

- base 0.0 without markup fragments, 0.7 for exactly one, otherwise
  ``max(0.3, 1.0 - 0.1 * fragments)``;
- plus ``resolution_rate * 0.3`` when the merge made any reference decision
  (behavior selectors and ARIA id references);
- clamped to [0.0, 1.0].
"""
import logging
from typing import Optional

from ..model import Confidence, ConfidenceLevel, Finding, Scope
from ..utils.config_manager import config_manager

logger = logging.getLogger(__name__)

SINGLE_FRAGMENT_BASE = 0.7
MIN_MULTI_FRAGMENT_BASE = 0.3
FRAGMENT_PENALTY = 0.1
RESOLUTION_WEIGHT = 0.3


def completeness_score(fragment_count: int, resolved: int, unresolved: int) -> float:
    if fragment_count <= 0:
        base = 0.0
    elif fragment_count == 1:
        base = SINGLE_FRAGMENT_BASE
    else:
        base = max(MIN_MULTI_FRAGMENT_BASE, 1.0 - FRAGMENT_PENALTY * fragment_count)

    total = resolved + unresolved
    if total > 0:
        base += (resolved / total) * RESOLUTION_WEIGHT

    # rounding keeps 0.1 * n float noise out of threshold comparisons
    return round(min(1.0, max(0.0, base)), 6)


def estimate_completeness(graph) -> float:
    """Completeness of a merged DocumentGraph (or anything exposing the same counters)."""
    stats = graph.stats
    return completeness_score(
        graph.get_fragment_count(), stats.resolved_references, stats.unresolved_references
    )


class ConfidenceEstimator:
    """
    Turns a graph's completeness into a HIGH/MEDIUM/LOW label with a reason.
    Works on a DocumentGraph or an AnalyzerView.
    """

    def __init__(self, high_threshold: Optional[float] = None, medium_threshold: Optional[float] = None):
        self.high_threshold = (
            high_threshold if high_threshold is not None
            else config_manager.get_nested("confidence.high_threshold", 0.9)
        )
        self.medium_threshold = (
            medium_threshold if medium_threshold is not None
            else config_manager.get_nested("confidence.medium_threshold", 0.5)
        )

    def label(self, graph, element_context=None) -> Confidence:
        """
        Args:
            graph: A merged DocumentGraph or an AnalyzerView over one.
            element_context: Optional ElementContext. When some references stay
                unresolved, a finding on an element whose
                own fragment is incomplete cannot be HIGH.

        Returns:
            Confidence: Level, human-readable reason, scope and score.
        """
        scope = Scope(graph.scope)
        stats = graph.stats
        completeness = graph.get_tree_completeness()
        fragments = graph.get_fragment_count()
        fully_resolved = stats.unresolved_references == 0

        if completeness >= self.high_threshold:
            level = ConfidenceLevel.HIGH
            reason = f"{fragments} fragment(s) merged, completeness {completeness:.2f}"
        elif scope in (Scope.PAGE, Scope.WORKSPACE) and fully_resolved and fragments > 0:
            level = ConfidenceLevel.HIGH
            reason = f"{scope.value} scope, all {stats.total_references} cross-file references resolved"
        elif scope == Scope.FILE:
            level = ConfidenceLevel.MEDIUM
            reason = "single file, cross-file handlers not visible"
        elif completeness >= self.medium_threshold:
            level = ConfidenceLevel.MEDIUM
            reason = (
                f"partial cross-file picture, {stats.unresolved_references} unresolved "
                f"reference(s), completeness {completeness:.2f}"
            )
        else:
            level = ConfidenceLevel.LOW
            if fragments == 0:
                reason = "no markup fragment available"
            else:
                reason = (
                    f"{stats.unresolved_references} of {stats.total_references} references "
                    f"unresolved, completeness {completeness:.2f}"
                )

        if level == ConfidenceLevel.HIGH and not fully_resolved and element_context is not None:
            index = graph.fragment_index_of(element_context.element)
            if index is not None and not graph.is_fragment_complete(index):
                level = ConfidenceLevel.MEDIUM
                reason = "ARIA references in this element's fragment do not resolve within it"

        return Confidence(level=level, reason=reason, scope=scope, completeness=completeness)

    def annotate(self, finding: Finding, graph) -> Finding:
        """Returns a copy of ``finding`` with its confidence label set. Never drops a finding."""
        element_context = None
        if finding.element_id:
            node = graph.get_node(finding.element_id)
            if node is not None:
                element_context = graph.get_element_context(node)
        confidence = self.label(graph, element_context)
        logger.debug(f"{finding.code} on {finding.element_id or '-'}: {confidence.level.value}")
        return finding.model_copy(update={"confidence": confidence})

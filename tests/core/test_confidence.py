# tests/core/test_confidence.py
from unittest.mock import MagicMock

import pytest

from a11y_graph.analyzers.core import finding
from a11y_graph.document.confidence import ConfidenceEstimator, completeness_score
from a11y_graph.document.graph import MergeStats
from a11y_graph.model import ConfidenceLevel, Scope

from conftest import make_sources


@pytest.mark.parametrize("fragments,resolved,unresolved,expected", [
    (0, 0, 0, 0.0),
    (1, 0, 0, 0.7),
    (2, 0, 0, 0.8),
    (3, 0, 0, 0.7),
    (10, 0, 0, 0.3),
    (12, 0, 0, 0.3),
    (1, 1, 1, 0.85),
    (2, 1, 0, 1.0),
    (0, 0, 3, 0.0),
])
def test_completeness_score(fragments, resolved, unresolved, expected):
    assert completeness_score(fragments, resolved, unresolved) == expected


def _graph(scope, completeness, fragments=1, resolved=0, unresolved=0):
    """Minimale stand-in voor een gemergde graph met vaste tellers."""
    graph = MagicMock()
    graph.scope = scope
    graph.stats = MergeStats(resolved_behaviors=resolved, unresolved_behaviors=unresolved)
    graph.get_tree_completeness.return_value = completeness
    graph.get_fragment_count.return_value = fragments
    return graph


@pytest.fixture
def estimator():
    return ConfidenceEstimator(high_threshold=0.9, medium_threshold=0.5)


def test_high_by_score(estimator):
    confidence = estimator.label(_graph(Scope.FILE, 0.95, resolved=3, unresolved=1))
    assert confidence.level == ConfidenceLevel.HIGH
    assert confidence.completeness == 0.95


def test_high_when_page_scope_resolves_everything(estimator):
    confidence = estimator.label(_graph(Scope.PAGE, 0.7))
    assert confidence.level == ConfidenceLevel.HIGH
    assert "all 0 cross-file references resolved" in confidence.reason


def test_file_scope_is_medium(estimator):
    confidence = estimator.label(_graph(Scope.FILE, 0.7))
    assert confidence.level == ConfidenceLevel.MEDIUM
    assert confidence.reason == "single file, cross-file handlers not visible"


def test_partial_page_is_medium(estimator):
    confidence = estimator.label(_graph(Scope.PAGE, 0.6, fragments=4, resolved=1, unresolved=1))
    assert confidence.level == ConfidenceLevel.MEDIUM


def test_low_below_medium_threshold(estimator):
    confidence = estimator.label(_graph(Scope.WORKSPACE, 0.3, fragments=10, unresolved=4))
    assert confidence.level == ConfidenceLevel.LOW
    assert confidence.reason.startswith("4 of 4 references unresolved")


def test_low_without_markup(estimator):
    confidence = estimator.label(_graph(Scope.PAGE, 0.0, fragments=0, unresolved=1))
    assert confidence.level == ConfidenceLevel.LOW
    assert confidence.reason == "no markup fragment available"


def test_thresholds_come_from_config():
    """Test dat de drempels standaard uit settings.json komen."""
    estimator = ConfidenceEstimator()
    assert (estimator.high_threshold, estimator.medium_threshold) == (0.9, 0.5)


def test_element_in_incomplete_fragment_is_downgraded(builder, estimator):
    """
    Test dat een HIGH-label naar MEDIUM zakt voor een element waarvan het eigen
    fragment referenties bevat die alleen elders (of nergens) oplossen.
    """
    sources = make_sources(
        html='<button id="b" aria-describedby="hint missing">Go</button>',
        templates=['<p id="hint">Hint</p>'],
    )
    graph = builder.build(sources, Scope.PAGE)
    assert graph.get_tree_completeness() == 0.95

    button = graph.get_element_context(graph.get_element_by_id("b"))
    hint = graph.get_element_context(graph.get_element_by_id("hint"))

    assert estimator.label(graph).level == ConfidenceLevel.HIGH
    assert estimator.label(graph, button).level == ConfidenceLevel.MEDIUM
    assert estimator.label(graph, hint).level == ConfidenceLevel.HIGH


def test_annotate_keeps_the_finding(builder, estimator):
    graph = builder.build(make_sources(html='<button id="b"></button>'), Scope.PAGE)
    element = graph.get_element_by_id("b")
    original = finding("MISSING_LABEL", "no name", "CRITICAL", "LABELS", element=element)

    annotated = estimator.annotate(original, graph)

    assert original.confidence is None
    assert annotated.code == "MISSING_LABEL"
    assert annotated.element_id == element.id
    assert annotated.confidence.level == ConfidenceLevel.HIGH
    assert annotated.confidence.scope == Scope.PAGE

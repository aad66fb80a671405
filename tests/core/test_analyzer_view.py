# tests/core/test_analyzer_view.py
import pytest

from a11y_graph.analyzers.engine import AnalysisEngine
from a11y_graph.document.graph import DocumentGraph
from a11y_graph.document.view import AnalyzerView
from a11y_graph.dom.builder import MarkupParser
from a11y_graph.errors import GraphStateError, ReadOnlyGraphError
from a11y_graph.model import Scope

from conftest import make_sources


@pytest.fixture
def view(builder):
    sources = make_sources(
        html='<button id="b" aria-controls="menu">Go</button><a href="/x" class="plain">x</a>',
        javascript=["document.getElementById('b').addEventListener('click', go);"],
        css=[".plain { outline: none; }", "a:focus { outline: 2px solid; }"],
    )
    return AnalyzerView(builder.build(sources, Scope.PAGE))


def test_view_needs_merged_graph():
    graph = DocumentGraph(Scope.FILE, fragments=[MarkupParser().parse("<p>x</p>", "a.html")])
    with pytest.raises(GraphStateError):
        AnalyzerView(graph)


def test_view_rejects_assignment(view):
    with pytest.raises(ReadOnlyGraphError):
        view.extra = 1
    with pytest.raises(ReadOnlyGraphError):
        view._graph = None
    with pytest.raises(ReadOnlyGraphError):
        del view._graph


def test_returned_collections_are_copies(view):
    """Test dat het aanpassen van een teruggegeven lijst de view niet verandert."""
    elements = view.get_all_elements()
    elements.clear()
    unresolved = view.get_unresolved_references()
    unresolved.clear()
    stats = view.stats
    stats.resolved_behaviors = 99

    assert len(view.get_all_elements()) == 2
    assert len(view.get_unresolved_references()) == 1
    assert view.stats.resolved_behaviors == 1


def test_returned_nodes_are_sealed(view):
    button = view.get_element_by_id("b")
    with pytest.raises(ReadOnlyGraphError):
        button.attributes = {}
    with pytest.raises(ReadOnlyGraphError):
        button.append_child(button.children[0])


def test_nested_collections_are_read_only(builder):
    """
    Test dat een analyzer ook via attributen, kinderen, records of regels niets
    kan aanpassen: de volgende run ziet exact dezelfde graph.
    """
    sources = make_sources(
        html='<div id="x">Card</div>',
        javascript=["document.getElementById('x').addEventListener('click', open);"],
        css=["#x { color: red; }"],
    )
    graph = builder.build(sources, Scope.PAGE)
    engine = AnalysisEngine()
    before = [f.code for f in engine.run(graph)]

    view = AnalyzerView(graph)
    card = view.get_element_by_id("x")
    record = view.behavior_graphs[0].records[0]
    rule = view.get_matching_rules(card)[0]

    with pytest.raises(TypeError):
        card.attributes["tabindex"] = "0"
    with pytest.raises(TypeError):
        card.attributes["aria-hidden"] = "true"
    with pytest.raises(AttributeError):
        card.children.append(card.children[0])
    with pytest.raises(AttributeError):
        view.behavior_graphs[0].records.clear()
    with pytest.raises(ValueError):
        view.behavior_graphs[0].records = ()
    with pytest.raises(TypeError):
        record.metadata["global"] = True
    with pytest.raises(TypeError):
        rule.properties["display"] = "none"
    with pytest.raises(ValueError):
        card.location.line = 99

    assert before == ["MOUSE_ONLY_CLICK", "CLICK_NOT_FOCUSABLE"]
    assert [f.code for f in engine.run(graph)] == before
    assert len(graph.behavior_graphs[0].records) == 1
    assert card.get_attribute("tabindex") is None
    assert not graph.is_element_hidden(card)


def test_view_delegates_queries(view):
    button = view.get_element_by_id("b")
    link = view.query_selector("a.plain")

    assert view.scope == Scope.PAGE
    assert view.get_node(button.id) is button
    assert view.fragment_index_of(link) == 0
    assert [ctx.element.tag_name for ctx in view.get_interactive_elements()] == ["button", "a"]
    assert view.removes_focus_outline(link)
    assert view.has_focus_styles(link)
    assert not view.removes_focus_outline(button)

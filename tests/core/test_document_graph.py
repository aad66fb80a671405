# tests/core/test_document_graph.py
import pytest

from a11y_graph.analyzers.engine import AnalysisEngine
from a11y_graph.behavior.extractor import BehaviorExtractor
from a11y_graph.document.graph import DocumentGraph
from a11y_graph.dom.builder import MarkupParser
from a11y_graph.errors import DocumentBuildError, GraphStateError, ReadOnlyGraphError
from a11y_graph.model import Scope, SourceCollection, SourceFiles

from conftest import make_sources

CLICK_JS = "document.getElementById('submit').addEventListener('click', fn);"
KEYDOWN_JS = "document.getElementById('submit').addEventListener('keydown', fn);"


# --- Scenario's ---

def test_handlers_from_two_files_meet_on_one_element(builder):
    """Scenario 1: click- en keydown-handler uit verschillende bestanden komen samen op #submit."""
    sources = make_sources(html='<button id="submit">Submit</button>', javascript=[CLICK_JS, KEYDOWN_JS])
    graph = builder.build(sources, Scope.PAGE)

    ctx = graph.get_element_context(graph.get_element_by_id("submit"))
    assert ctx.has_click_handler
    assert ctx.has_keyboard_handler
    assert [f.code for f in AnalysisEngine().run(graph)] == []


def test_behavior_only_file_scope(builder):
    """Scenario 2: zonder markup-fragment kan geen 'missing keyboard handler' worden vastgesteld."""
    graph = builder.build(make_sources(javascript=[CLICK_JS]), Scope.FILE)

    assert graph.get_interactive_elements() == []
    assert graph.get_fragment_count() == 0
    assert graph.get_tree_completeness() == 0.0
    assert "MOUSE_ONLY_CLICK" not in [f.code for f in AnalysisEngine().run(graph)]


def test_broken_aria_reference(builder):
    """Scenario 3: een aria-labelledby zonder doel maakt het fragment onvolledig."""
    graph = builder.build(make_sources(html='<button aria-labelledby="label1">Click</button>'), Scope.PAGE)

    assert graph.is_fragment_complete(0) is False
    assert graph.stats.unresolved_aria_references == 1
    assert graph.get_unresolved_references()[0].target_id == "label1"


def test_specificity_decides_rule_order(builder):
    """Scenario 4: #x wint van .a, ongeacht de bronvolgorde."""
    sources = make_sources(
        html='<div id="x" class="a b"></div>',
        css=["#x {display:block}\n.a {display:none}"],
    )
    graph = builder.build(sources, Scope.PAGE)
    rules = graph.get_matching_rules(graph.get_element_by_id("x"))

    assert rules[0].selector == "#x"
    assert rules[0].specificity == (0, 1, 0, 0)
    assert rules[1].specificity == (0, 0, 1, 0)
    assert not graph.is_element_hidden(graph.get_element_by_id("x"))


def test_broken_markup_does_not_block_siblings(builder):
    """Scenario 5: onparseerbare markup wordt overgeslagen; JS en CSS worden gewoon gemerged."""
    sources = make_sources(
        html='<div class="broken"\n<p>ok</p>',
        javascript=[CLICK_JS],
        css=[".a { color: red; }"],
    )
    graph = builder.build(sources, Scope.PAGE)

    assert graph.is_merged
    assert graph.get_fragment_count() == 0
    assert [(w.source_file, w.kind, w.line) for w in graph.warnings] == [("index.html", "markup", 1)]
    assert len(graph.style_graphs) == 1
    assert len(graph.get_unresolved_behaviors()) == 1


def test_every_fragment_failing_raises(builder):
    sources = make_sources(html="<div", css=[".a {"])
    with pytest.raises(DocumentBuildError) as exc_info:
        builder.build(sources, Scope.PAGE)
    assert len(exc_info.value.warnings) == 2


def test_empty_collection_builds_empty_graph(builder):
    graph = builder.build(SourceCollection(), Scope.FILE)
    assert graph.get_fragment_count() == 0
    assert graph.get_tree_completeness() == 0.0


# --- Eigenschappen ---

def _snapshot(graph):
    return (
        [el.describe() for el in graph.get_all_elements()],
        [[b.id for b in el.behaviors] for el in graph.get_all_elements()],
        [[r.id for r in el.style_rules] for el in graph.get_all_elements()],
        graph.get_tree_completeness(),
    )


def test_build_is_idempotent(builder):
    """Test dat twee builds van dezelfde collectie structureel identiek zijn."""
    sources = make_sources(
        html='<nav><button id="submit" class="btn">Go</button><a href="#" aria-controls="menu">m</a></nav>',
        javascript=[CLICK_JS, "document.querySelector('.btn').focus();"],
        css=[".btn { outline: none; }", "#submit:focus { box-shadow: 0 0 0 2px blue; }"],
    )
    assert _snapshot(builder.build(sources, Scope.PAGE)) == _snapshot(builder.build(sources, Scope.PAGE))


@pytest.mark.parametrize("html,javascript,templates,added", [
    ('<button aria-labelledby="lbl">Go</button>', [], [], '<span id="lbl">Label</span>'),
    ("<p>intro</p>", ["document.getElementById('menu').addEventListener('click', f);"], [], '<nav id="menu">x</nav>'),
    # twee naar drie fragmenten: 0.8 -> 1.0
    ('<button aria-labelledby="lbl">Go</button>', [], ["<p>intro</p>"], '<span id="lbl">Label</span>'),
])
def test_adding_a_resolving_fragment_never_lowers_completeness(builder, html, javascript, templates, added):
    """Test monotone volledigheid: een fragment dat een open referentie oplost verlaagt de score niet."""
    before = builder.build(make_sources(html=html, javascript=javascript, templates=templates), Scope.PAGE)
    after = builder.build(
        make_sources(html=html, javascript=javascript, templates=templates + [added]), Scope.PAGE
    )

    assert after.stats.unresolved_references < before.stats.unresolved_references
    assert after.get_tree_completeness() >= before.get_tree_completeness()


def test_unmatched_behavior_is_never_attached(builder):
    """Test dat een behavior zonder doel-element bij geen enkel element terechtkomt."""
    ghost = "document.getElementById('ghost').addEventListener('click', f);"
    graph = builder.build(make_sources(html='<button id="b">B</button><div>x</div>', javascript=[ghost]), Scope.PAGE)
    record = graph.behavior_graphs[0].records[0]

    assert all(record not in el.behaviors for el in graph.get_all_elements())
    assert graph.get_unresolved_behaviors() == [record]


def test_element_context_is_stable(builder):
    graph = builder.build(make_sources(html='<button id="submit">Go</button>', javascript=[CLICK_JS]), Scope.PAGE)
    element = graph.get_element_by_id("submit")
    assert graph.get_element_context(element) == graph.get_element_context(element)


# --- Merge-details ---

def test_broad_selector_resolves_to_many_elements(builder):
    js = "document.querySelector('.item').addEventListener('click', pick);"
    graph = builder.build(make_sources(html='<li class="item">a</li><li class="item">b</li>', javascript=[js]), Scope.PAGE)

    assert [len(el.behaviors) for el in graph.get_all_elements()] == [1, 1]
    assert graph.stats.resolved_behaviors == 1


def test_global_listeners_are_not_reference_decisions(builder):
    js = "document.addEventListener('keydown', onKey);\nwindow.location.href = '/';"
    graph = builder.build(make_sources(html="<p>x</p>", javascript=[js]), Scope.PAGE)

    assert graph.stats.total_references == 0
    assert graph.stats.global_behaviors == 2
    assert graph.get_tree_completeness() == 0.7


def test_aria_references_across_fragments(builder):
    """Test dat ARIA-referenties over fragmenten heen worden opgelost, per fragment bijgehouden."""
    sources = make_sources(
        html='<button aria-describedby="hint extra">Go</button>',
        templates=['<p id="hint">Hint</p><p id="extra">More</p>'],
    )
    graph = builder.build(sources, Scope.PAGE)

    assert graph.stats.resolved_aria_references == 2
    assert graph.is_fragment_complete(0) is False
    assert graph.is_fragment_complete(1) is True
    assert graph.is_fragment_complete(2) is False
    assert graph.is_fragment_complete(-1) is False


def test_template_event_bindings_attach(builder):
    sources = make_sources(templates=['<button id="save" onclick="save()">Save</button>'])
    graph = builder.build(sources, Scope.PAGE)
    ctx = graph.get_element_context(graph.get_element_by_id("save"))

    assert ctx.has_click_handler
    assert ctx.js_handlers[0].metadata["framework"] == "html"


def test_elements_with_issues(builder):
    js = "document.querySelector('.clickable').addEventListener('click', go);"
    sources = make_sources(
        html='<div class="clickable">x</div><input id="name"><button>Ok</button><span tabindex="0"></span>',
        javascript=[js],
    )
    graph = builder.build(sources, Scope.PAGE)

    assert [ctx.element.tag_name for ctx in graph.get_elements_with_issues()] == ["div", "input"]


def test_element_context_fields(builder):
    graph = builder.build(make_sources(html=(
        '<nav><a href="/">Home</a><img alt="Logo"><input placeholder="Search">'
        '<div role="tab" aria-labelledby="t1"></div><h2> Title </h2></nav>'
    )), Scope.PAGE)
    contexts = {ctx.element.tag_name: ctx for ctx in map(graph.get_element_context, graph.get_all_elements())}

    assert (contexts["nav"].role, contexts["nav"].label) == ("navigation", None)
    assert (contexts["a"].role, contexts["a"].label, contexts["a"].focusable) == ("link", "Home", True)
    assert (contexts["img"].role, contexts["img"].label) == ("img", "Logo")
    assert (contexts["input"].role, contexts["input"].label) == ("textbox", "Search")
    assert (contexts["div"].role, contexts["div"].label) == ("tab", "[labelledby: t1]")
    assert (contexts["h2"].role, contexts["h2"].label) == ("heading", "Title")


# --- Levenscyclus ---

def test_merge_twice_raises(builder):
    graph = builder.build(make_sources(html="<p>x</p>"), Scope.PAGE)
    with pytest.raises(GraphStateError):
        graph.merge()


def test_derived_queries_need_merge():
    fragment = MarkupParser().parse("<p>x</p>", "a.html")
    graph = DocumentGraph(Scope.FILE, fragments=[fragment])

    assert graph.get_element_by_id("nope") is None
    with pytest.raises(GraphStateError):
        graph.get_tree_completeness()
    with pytest.raises(GraphStateError):
        graph.get_interactive_elements()


def test_merged_nodes_are_sealed(builder):
    graph = builder.build(make_sources(html='<button id="b">B</button>'), Scope.PAGE)
    element = graph.get_element_by_id("b")
    with pytest.raises(ReadOnlyGraphError):
        element.behaviors = ()


def test_manual_merge_without_builder():
    """Test dat fragmenten ook zonder builder kunnen worden samengevoegd."""
    fragment = MarkupParser().parse('<button id="submit">Go</button>', "index.html")
    behaviors = BehaviorExtractor().extract(CLICK_JS, "click.js")
    graph = DocumentGraph(Scope.PAGE, fragments=[fragment], behavior_graphs=[behaviors]).merge()

    assert graph.get_element_context(graph.get_element_by_id("submit")).has_click_handler


def test_source_collection_validates_file_names():
    with pytest.raises(ValueError):
        SourceCollection(javascript=["a();"], source_files=SourceFiles(javascript=[]))


def test_attribute_selector_with_url_attaches(builder):
    """Test dat stijlregels en query_selector_all hetzelfde element vinden bij een URL-selector."""
    sources = make_sources(
        html='<a href="https://x.org">x</a>',
        css=['a[href="https://x.org"] { outline: none; }'],
    )
    graph = builder.build(sources, Scope.PAGE)
    link = graph.query_selector_all('a[href="https://x.org"]')[0]

    assert [r.selector for r in graph.get_matching_rules(link)] == ['a[href="https://x.org"]']

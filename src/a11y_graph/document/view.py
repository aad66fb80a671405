# src/a11y_graph/document/view.py
from typing import List, Optional, Tuple

from ..behavior.models import BehaviorGraph, BehaviorRecord
from ..dom.core import ElementNode
from ..errors import GraphStateError, ReadOnlyGraphError
from ..model import FragmentWarning, Scope
from ..style.models import StyleRule, removes_outline
from .context import ElementContext
from .graph import AriaReference, DocumentGraph, MergeStats


class AnalyzerView:
    """
    Read-only query surface handed to analyzers.

    Wraps a merged DocumentGraph. Nothing can be assigned on the view, the
    nodes it returns are sealed, and collections come back as fresh lists or
    tuples, so an analyzer cannot alter what the next analyzer sees.
    """
    __slots__ = ("_graph",)

    def __init__(self, graph: DocumentGraph):
        if not graph.is_merged:
            raise GraphStateError("AnalyzerView needs a merged DocumentGraph")
        object.__setattr__(self, "_graph", graph)

    def __setattr__(self, name, value):
        raise ReadOnlyGraphError(f"AnalyzerView is read-only; cannot set '{name}'")

    def __delattr__(self, name):
        raise ReadOnlyGraphError(f"AnalyzerView is read-only; cannot delete '{name}'")

    # --- Graph-level facts ---

    @property
    def scope(self) -> Scope:
        return self._graph.scope

    @property
    def stats(self) -> MergeStats:
        return self._graph.stats

    @property
    def behavior_graphs(self) -> Tuple[BehaviorGraph, ...]:
        return self._graph.behavior_graphs

    @property
    def warnings(self) -> Tuple[FragmentWarning, ...]:
        return self._graph.warnings

    def get_fragment_count(self) -> int:
        return self._graph.get_fragment_count()

    def get_tree_completeness(self) -> float:
        return self._graph.get_tree_completeness()

    def is_fragment_complete(self, fragment_index: int) -> bool:
        return self._graph.is_fragment_complete(fragment_index)

    def fragment_index_of(self, element: ElementNode) -> Optional[int]:
        return self._graph.fragment_index_of(element)

    # --- Elements ---

    def get_all_elements(self) -> List[ElementNode]:
        return self._graph.get_all_elements()

    def get_element_by_id(self, element_id: str) -> Optional[ElementNode]:
        return self._graph.get_element_by_id(element_id)

    def get_node(self, node_id: str) -> Optional[ElementNode]:
        return self._graph.get_node(node_id)

    def query_selector(self, selector: str) -> Optional[ElementNode]:
        return self._graph.query_selector(selector)

    def query_selector_all(self, selector: str) -> List[ElementNode]:
        return self._graph.query_selector_all(selector)

    def get_interactive_elements(self) -> List[ElementContext]:
        return self._graph.get_interactive_elements()

    def get_elements_with_issues(self) -> List[ElementContext]:
        return self._graph.get_elements_with_issues()

    def get_element_context(self, element: ElementNode) -> ElementContext:
        return self._graph.get_element_context(element)

    # --- Styles ---

    def get_matching_rules(self, element: ElementNode) -> List[StyleRule]:
        return self._graph.get_matching_rules(element)

    def is_element_hidden(self, element: ElementNode) -> bool:
        return self._graph.is_element_hidden(element)

    def has_focus_styles(self, element: ElementNode) -> bool:
        return self._graph.has_focus_styles(element)

    def removes_focus_outline(self, element: ElementNode) -> bool:
        """True if any attached rule suppresses the outline."""
        return any(removes_outline(rule.properties) for rule in element.style_rules)

    # --- Cross-file linking results ---

    def get_aria_references(self) -> Tuple[AriaReference, ...]:
        return self._graph.get_aria_references()

    def get_unresolved_references(self) -> List[AriaReference]:
        return self._graph.get_unresolved_references()

    def get_unresolved_behaviors(self) -> List[BehaviorRecord]:
        return self._graph.get_unresolved_behaviors()

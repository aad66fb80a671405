# src/a11y_graph/document/graph.py
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from ..behavior.models import BehaviorGraph, BehaviorRecord
from ..dom.core import ElementNode
from ..dom.models import ElementGraph
from ..dom.selectors import ARIA_REFERENCE_ATTRIBUTES, candidate_selectors, selector_matches
from ..errors import GraphStateError
from ..model import FragmentWarning, Scope, SourceLocation
from ..style.models import FOCUS_PSEUDO_CLASSES, StyleGraph, StyleRule, effective_properties, hides_element
from ..utils.config_manager import config_manager
from .confidence import estimate_completeness
from .context import ElementContext, derive_context

logger = logging.getLogger(__name__)


class MergeStats(BaseModel):
    """Counters collected by one merge; the reference totals feed the completeness score."""
    resolved_behaviors: int = 0
    unresolved_behaviors: int = 0
    global_behaviors: int = 0
    resolved_aria_references: int = 0
    unresolved_aria_references: int = 0
    attached_style_rules: int = 0

    @property
    def resolved_references(self) -> int:
        return self.resolved_behaviors + self.resolved_aria_references

    @property
    def unresolved_references(self) -> int:
        return self.unresolved_behaviors + self.unresolved_aria_references

    @property
    def total_references(self) -> int:
        return self.resolved_references + self.unresolved_references

    @property
    def resolution_rate(self) -> Optional[float]:
        """None when no reference decision was made at all."""
        if not self.total_references:
            return None
        return self.resolved_references / self.total_references


class AriaReference(BaseModel):
    """One id taken from an aria-labelledby/-describedby/-controls value."""
    element_id: str  # graph-local id of the referencing node
    attribute: str
    target_id: str
    fragment_index: int
    resolved: bool
    resolved_in_fragment: bool
    location: Optional[SourceLocation] = None

    model_config = {"frozen": True}


class DocumentGraph:
    """
    Cross-file model of one analysis pass.

    Fragments are parsed in isolation; ``merge()`` links them by resolving
    behavior selectors and style selectors against the elements of every
    markup fragment, then checks ARIA id references across all fragments.
    Once merged the graph is sealed and safe to read from many threads.
    """

    def __init__(
            self,
            scope: Scope,
            fragments: Sequence[ElementGraph] = (),
            behavior_graphs: Sequence[BehaviorGraph] = (),
            style_graphs: Sequence[StyleGraph] = (),
            warnings: Sequence[FragmentWarning] = ()
    ):
        self.scope = Scope(scope)
        self.fragments: Tuple[ElementGraph, ...] = tuple(fragments)
        self.behavior_graphs: Tuple[BehaviorGraph, ...] = tuple(behavior_graphs)
        self.style_graphs: Tuple[StyleGraph, ...] = tuple(style_graphs)
        self.warnings: Tuple[FragmentWarning, ...] = tuple(warnings)

        self._merged = False
        self._stats = MergeStats()
        self._aria_references: Tuple[AriaReference, ...] = ()
        self._unresolved_behaviors: Tuple[BehaviorRecord, ...] = ()
        self._nodes_by_id: Dict[str, ElementNode] = {}
        self._fragment_index: Dict[str, int] = {}

    # --- Lifecycle ---

    @property
    def is_merged(self) -> bool:
        return self._merged

    def _require_merged(self, operation: str) -> None:
        if not self._merged:
            raise GraphStateError(f"{operation}() needs a merged graph; call merge() first")

    def merge(self) -> "DocumentGraph":
        """
        Links all fragments. Deterministic: the same inputs always produce
        the same attachments and counters.

        Raises:
            GraphStateError: If the graph has already been merged.
        """
        if self._merged:
            raise GraphStateError("DocumentGraph.merge() may only be called once")

        per_fragment = [fragment.get_all_elements() for fragment in self.fragments]
        elements = [el for fragment_elements in per_fragment for el in fragment_elements]
        stats = MergeStats()

        for index, fragment_elements in enumerate(per_fragment):
            for el in fragment_elements:
                self._nodes_by_id[el.id] = el
                self._fragment_index[el.id] = index

        behaviors = self._resolve_behaviors(elements, stats)
        styles = self._attach_styles(elements, stats)
        self._aria_references = tuple(self._resolve_aria(per_fragment, stats))

        for el in elements:
            el.behaviors = tuple(behaviors.get(el, ()))
            el.style_rules = tuple(styles.get(el, ()))
        for fragment in self.fragments:
            for node in fragment.walk():
                node.seal()

        self._stats = stats
        self._merged = True
        logger.debug(
            f"Merged {len(self.fragments)} markup, {len(self.behavior_graphs)} script and "
            f"{len(self.style_graphs)} style fragments ({self.scope.value} scope): "
            f"{stats.resolved_behaviors}/{stats.resolved_behaviors + stats.unresolved_behaviors} behaviors, "
            f"{stats.resolved_aria_references}/"
            f"{stats.resolved_aria_references + stats.unresolved_aria_references} ARIA references resolved, "
            f"{stats.attached_style_rules} style attachments"
        )
        return self

    def _resolve_behaviors(
            self,
            elements: List[ElementNode],
            stats: MergeStats
    ) -> Dict[ElementNode, List[BehaviorRecord]]:
        index: Dict[str, List[ElementNode]] = defaultdict(list)
        for el in elements:
            for selector in candidate_selectors(el):
                index[selector].append(el)

        attached: Dict[ElementNode, List[BehaviorRecord]] = defaultdict(list)
        unresolved: List[BehaviorRecord] = []
        for graph in self.behavior_graphs:
            for record in graph.records:
                if record.is_global:
                    stats.global_behaviors += 1
                    continue
                selector = record.element_ref.selector
                targets = index.get(selector, []) if selector else []
                if not targets:
                    stats.unresolved_behaviors += 1
                    unresolved.append(record)
                    continue
                stats.resolved_behaviors += 1
                for el in targets:
                    attached[el].append(record)

        self._unresolved_behaviors = tuple(unresolved)
        return attached

    def _attach_styles(
            self,
            elements: List[ElementNode],
            stats: MergeStats
    ) -> Dict[ElementNode, List[StyleRule]]:
        # source order across sheets: sheet index, then rule index
        ordered = [
            rule for graph in self.style_graphs for rule in graph.rules if rule.is_matchable
        ]
        attached: Dict[ElementNode, List[StyleRule]] = {}
        for el in elements:
            matching = [(order, rule) for order, rule in enumerate(ordered) if rule.matches(el)]
            if not matching:
                continue
            matching.sort(key=lambda pair: (pair[1].specificity, pair[0]), reverse=True)
            attached[el] = [rule for _, rule in matching]
            stats.attached_style_rules += len(matching)
        return attached

    @staticmethod
    def _resolve_aria(
            per_fragment: List[List[ElementNode]],
            stats: MergeStats
    ) -> Iterable[AriaReference]:
        fragment_ids = [
            {el.element_id for el in fragment_elements if el.element_id}
            for fragment_elements in per_fragment
        ]
        all_ids = set().union(*fragment_ids) if fragment_ids else set()

        for index, fragment_elements in enumerate(per_fragment):
            for el in fragment_elements:
                for attribute in ARIA_REFERENCE_ATTRIBUTES:
                    value = el.get_attribute(attribute)
                    if not value:
                        continue
                    for target in value.split():
                        resolved = target in all_ids
                        if resolved:
                            stats.resolved_aria_references += 1
                        else:
                            stats.unresolved_aria_references += 1
                        yield AriaReference(
                            element_id=el.id,
                            attribute=attribute,
                            target_id=target,
                            fragment_index=index,
                            resolved=resolved,
                            resolved_in_fragment=target in fragment_ids[index],
                            location=el.location,
                        )

    # --- Structural queries (available before merge) ---

    def get_all_elements(self) -> List[ElementNode]:
        return [el for fragment in self.fragments for el in fragment.get_all_elements()]

    def get_element_by_id(self, element_id: str) -> Optional[ElementNode]:
        """First element carrying ``id="element_id"``, searching fragments in order."""
        for fragment in self.fragments:
            found = fragment.get_element_by_id(element_id)
            if found is not None:
                return found
        return None

    def query_selector(self, selector: str) -> Optional[ElementNode]:
        for fragment in self.fragments:
            found = fragment.query_selector(selector)
            if found is not None:
                return found
        return None

    def query_selector_all(self, selector: str) -> List[ElementNode]:
        return [el for el in self.get_all_elements() if selector_matches(el, selector)]

    def get_fragment_count(self) -> int:
        return len(self.fragments)

    # --- Derived queries (need merge) ---

    @property
    def stats(self) -> MergeStats:
        self._require_merged("stats")
        return self._stats.model_copy()

    def get_node(self, node_id: str) -> Optional[ElementNode]:
        """Looks up an element by its graph-local node id."""
        self._require_merged("get_node")
        return self._nodes_by_id.get(node_id)

    def fragment_index_of(self, element: ElementNode) -> Optional[int]:
        self._require_merged("fragment_index_of")
        return self._fragment_index.get(element.id)

    def get_tree_completeness(self) -> float:
        self._require_merged("get_tree_completeness")
        return estimate_completeness(self)

    def is_fragment_complete(self, fragment_index: int) -> bool:
        """
        True iff every ARIA reference originating in the fragment resolves
        within that same fragment. An out-of-range index is never complete.
        """
        self._require_merged("is_fragment_complete")
        if not isinstance(fragment_index, int) or not 0 <= fragment_index < len(self.fragments):
            return False
        return all(
            ref.resolved_in_fragment
            for ref in self._aria_references
            if ref.fragment_index == fragment_index
        )

    def get_aria_references(self) -> Tuple[AriaReference, ...]:
        self._require_merged("get_aria_references")
        return self._aria_references

    def get_unresolved_references(self) -> List[AriaReference]:
        self._require_merged("get_unresolved_references")
        return [ref for ref in self._aria_references if not ref.resolved]

    def get_unresolved_behaviors(self) -> List[BehaviorRecord]:
        self._require_merged("get_unresolved_behaviors")
        return list(self._unresolved_behaviors)

    def get_element_context(self, element: ElementNode) -> ElementContext:
        self._require_merged("get_element_context")
        return derive_context(element)

    def get_interactive_elements(self) -> List[ElementContext]:
        self._require_merged("get_interactive_elements")
        contexts = (derive_context(el) for el in self.get_all_elements())
        return [ctx for ctx in contexts if ctx.interactive]

    def get_elements_with_issues(self) -> List[ElementContext]:
        """
        Pre-filter for the two most common problems: a click handler without
        a keyboard handler, and a focusable element without an accessible label.
        """
        self._require_merged("get_elements_with_issues")
        exempt = set(config_manager.get_nested("analysis.label_exempt_tags", ["div", "span", "p"]))
        result = []
        for el in self.get_all_elements():
            ctx = derive_context(el)
            if ctx.has_click_handler and not ctx.has_keyboard_handler:
                result.append(ctx)
            elif ctx.focusable and not ctx.label and el.tag_name.lower() not in exempt:
                result.append(ctx)
        return result

    def get_matching_rules(self, element: ElementNode) -> List[StyleRule]:
        """Attached rules, winning rule first."""
        self._require_merged("get_matching_rules")
        return list(element.style_rules)

    def is_element_hidden(self, element: ElementNode) -> bool:
        self._require_merged("is_element_hidden")
        return hides_element(effective_properties(list(element.style_rules)))

    def has_focus_styles(self, element: ElementNode) -> bool:
        self._require_merged("has_focus_styles")
        return any(rule.pseudo_class in FOCUS_PSEUDO_CLASSES for rule in element.style_rules)

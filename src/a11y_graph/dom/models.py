# src/a11y_graph/dom/models.py
from typing import Callable, Iterator, List, Optional

from pydantic import BaseModel, Field

from .core import ElementNode, NodeType
from .selectors import selector_matches

FOCUSABLE_TAGS = frozenset({"a", "button", "input", "select", "textarea"})

VALID_ARIA_ATTRIBUTES = frozenset({
    "aria-activedescendant", "aria-atomic", "aria-autocomplete", "aria-busy",
    "aria-checked", "aria-colcount", "aria-colindex", "aria-colspan",
    "aria-controls", "aria-current", "aria-describedby", "aria-description",
    "aria-details", "aria-disabled", "aria-errormessage", "aria-expanded",
    "aria-flowto", "aria-haspopup", "aria-hidden", "aria-invalid",
    "aria-keyshortcuts", "aria-label", "aria-labelledby", "aria-level",
    "aria-live", "aria-modal", "aria-multiline", "aria-multiselectable",
    "aria-orientation", "aria-owns", "aria-placeholder", "aria-posinset",
    "aria-pressed", "aria-readonly", "aria-relevant", "aria-required",
    "aria-roledescription", "aria-rowcount", "aria-rowindex", "aria-rowspan",
    "aria-selected", "aria-setsize", "aria-sort", "aria-valuemax",
    "aria-valuemin", "aria-valuenow", "aria-valuetext",
})


def is_focusable(element: ElementNode) -> bool:
    """
    Keyboard focusability of an element.

    An explicit tabindex decides on its own (>= 0 is focusable). Otherwise
    links need an href and form controls must not be disabled.
    """
    if not element.is_element:
        return False
    tabindex = element.get_attribute("tabindex")
    if tabindex is not None:
        try:
            return int(tabindex.strip()) >= 0
        except ValueError:
            return False

    tag = element.tag_name.lower()
    if tag not in FOCUSABLE_TAGS:
        return False
    if tag == "a":
        return bool(element.get_attribute("href"))
    return element.get_attribute("disabled") != "true"


class ValidationResult(BaseModel):
    valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ElementGraph(BaseModel):
    """
    The structural tree of one parsed markup fragment.

    ``roots`` holds the top-level nodes in document order; a full HTML page
    normally has a single ``<html>`` root, a template or JSX file may have several.
    """
    source_file: str
    roots: List[ElementNode] = Field(default_factory=list)

    @property
    def root(self) -> Optional[ElementNode]:
        return self.roots[0] if self.roots else None

    # --- Traversal ---

    def walk(self) -> Iterator[ElementNode]:
        """Depth-first pre-order over every node, text and comments included."""
        def visit(node: ElementNode) -> Iterator[ElementNode]:
            yield node
            for child in node.children:
                yield from visit(child)

        for root in self.roots:
            yield from visit(root)

    def _find(self, predicate: Callable[[ElementNode], bool]) -> Optional[ElementNode]:
        for node in self.walk():
            if node.is_element and predicate(node):
                return node
        return None

    # --- Queries ---

    def get_element_by_id(self, element_id: str) -> Optional[ElementNode]:
        """First element in document order carrying ``id="element_id"``."""
        return self._find(lambda el: el.attributes.get("id") == element_id)

    def query_selector(self, selector: str) -> Optional[ElementNode]:
        return self._find(lambda el: selector_matches(el, selector))

    def query_selector_all(self, selector: str) -> List[ElementNode]:
        return [el for el in self.get_all_elements() if selector_matches(el, selector)]

    def get_all_elements(self) -> List[ElementNode]:
        """Every element node in document order."""
        return [node for node in self.walk() if node.node_type == NodeType.ELEMENT]

    def get_focusable_elements(self) -> List[ElementNode]:
        return [el for el in self.get_all_elements() if is_focusable(el)]

    def get_interactive_elements(self) -> List[ElementNode]:
        """Elements with resolved behaviors or keyboard focus."""
        return [el for el in self.get_all_elements() if el.behaviors or is_focusable(el)]

    # --- Structural validation ---

    def validate_structure(self) -> ValidationResult:
        """
        Lightweight markup checks that need no cross-file context:
        images without alt, buttons without a label and unknown aria-* attributes.
        """
        result = ValidationResult()
        for el in self.get_all_elements():
            where = f"{el.location}" if el.location else el.describe()
            tag = el.tag_name.lower()

            if tag == "img" and el.get_attribute("alt") is None:
                result.warnings.append(f"Image missing alt attribute ({where})")

            if tag == "button" and not _has_accessible_label(el):
                result.warnings.append(f"Button missing accessible label ({where})")

            for name in el.attributes:
                if name.startswith("aria-") and name not in VALID_ARIA_ATTRIBUTES:
                    result.errors.append(f"Invalid ARIA attribute: {name} ({where})")

        result.valid = not result.errors
        return result


def _has_accessible_label(element: ElementNode) -> bool:
    if element.get_attribute("aria-label") or element.get_attribute("aria-labelledby"):
        return True
    return any((c.text_content or "").strip() for c in element.text_children)

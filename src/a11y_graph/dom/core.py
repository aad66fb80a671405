# src/a11y_graph/dom/core.py
import weakref
from enum import Enum
from types import MappingProxyType
from typing import Dict, Any, List, Optional, Tuple

from pydantic import BaseModel, Field, PrivateAttr, field_serializer, field_validator

from ..errors import ReadOnlyGraphError
from ..model import SourceLocation
from ..behavior.models import BehaviorRecord
from ..style.models import StyleRule


class NodeType(str, Enum):
    ELEMENT = "element"
    TEXT = "text"
    COMMENT = "comment"


class ElementNode(BaseModel):
    """
    A node in an element graph: an element, a text run or a comment.

    ``behaviors`` and ``style_rules`` are derived fields filled in by the
    document graph merge; the node is sealed afterwards.
    """
    id: str
    node_type: NodeType = NodeType.ELEMENT
    tag_name: str = ""
    attributes: Dict[str, str] = Field(default_factory=dict)
    children: List['ElementNode'] = Field(default_factory=list)
    text_content: Optional[str] = None
    location: Optional[SourceLocation] = None

    # --- Derived by DocumentGraph.merge() ---
    behaviors: Tuple[BehaviorRecord, ...] = ()
    style_rules: Tuple[StyleRule, ...] = ()

    _parent: Optional[weakref.ref] = PrivateAttr(default=None)
    _sealed: bool = PrivateAttr(default=False)

    @field_validator('attributes', mode='before')
    @classmethod
    def normalize_attributes(cls, v: Any) -> Dict[str, str]:
        """Lower-cases attribute names; a later duplicate overwrites an earlier one."""
        if not v:
            return {}
        items = v.items() if isinstance(v, dict) else v
        out: Dict[str, str] = {}
        for name, value in items:
            if isinstance(value, (list, tuple)):
                value = " ".join(str(part) for part in value)
            out[str(name).lower()] = "" if value is None else str(value)
        return out

    @field_serializer('attributes')
    def dump_attributes(self, attributes) -> Dict[str, str]:
        return dict(attributes)

    def model_post_init(self, __context: Any) -> None:
        for child in self.children:
            child._parent = weakref.ref(self)

    def __setattr__(self, name: str, value: Any) -> None:
        if not name.startswith('_') and getattr(self, '_sealed', False):
            raise ReadOnlyGraphError(f"Node {self.id} is sealed; merged graphs are immutable")
        super().__setattr__(name, value)

    # Equality is identity; the weak parent link makes structural comparison recursive.
    def __eq__(self, other: object) -> bool:
        return self is other

    __hash__ = object.__hash__

    # --- Structure ---

    @property
    def parent(self) -> Optional['ElementNode']:
        return self._parent() if self._parent is not None else None

    @property
    def is_element(self) -> bool:
        return self.node_type == NodeType.ELEMENT

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    def ancestors(self):
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def append_child(self, child: 'ElementNode') -> 'ElementNode':
        """Adds ``child`` as last child, detaching it from any previous parent."""
        if self._sealed:
            raise ReadOnlyGraphError(f"Node {self.id} is sealed; merged graphs are immutable")
        if child is self or any(a is child for a in self.ancestors()):
            raise ValueError(f"Appending {child.id} to {self.id} would create a cycle")

        old_parent = child.parent
        if old_parent is not None:
            if old_parent._sealed:
                raise ReadOnlyGraphError(f"Cannot move {child.id} out of sealed node {old_parent.id}")
            old_parent.children[:] = [c for c in old_parent.children if c is not child]

        self.children.append(child)
        child._parent = weakref.ref(self)
        return child

    def seal(self) -> None:
        """Freezes the node: no assignment, and attributes and children become read-only."""
        if self._sealed:
            return
        self.attributes = MappingProxyType(dict(self.attributes))
        self.children = tuple(self.children)
        self._sealed = True

    # --- Attribute helpers ---

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name.lower())

    def has_attribute(self, name: str) -> bool:
        return name.lower() in self.attributes

    @property
    def element_id(self) -> Optional[str]:
        """The markup ``id`` attribute, not the graph-local node id."""
        return self.attributes.get('id') or None

    @property
    def classes(self) -> List[str]:
        return self.attributes.get('class', '').split()

    @property
    def text_children(self) -> List['ElementNode']:
        return [c for c in self.children if c.node_type == NodeType.TEXT]

    def describe(self) -> str:
        """Short human-readable form for diagnostics, e.g. ``button#submit.primary``."""
        if not self.is_element:
            return f"#{self.node_type.value}"
        label = self.tag_name.lower()
        if self.element_id:
            label += f"#{self.element_id}"
        for cls in self.classes:
            label += f".{cls}"
        return label


ElementNode.model_rebuild()

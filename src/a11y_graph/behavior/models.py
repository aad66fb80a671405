# src/a11y_graph/behavior/models.py
from enum import Enum
from types import MappingProxyType
from typing import Optional, List, Dict, Any, Mapping, Tuple

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from ..model import SourceLocation

KEYBOARD_EVENTS = frozenset({"keydown", "keypress", "keyup"})


class ActionType(str, Enum):
    EVENT_HANDLER = "eventHandler"
    FOCUS_CHANGE = "focusChange"
    ARIA_STATE_CHANGE = "ariaStateChange"
    DOM_MANIPULATION = "domManipulation"
    NAVIGATION = "navigation"


class ElementRef(BaseModel):
    """
    Selector descriptor pointing at the element a behavior acts on.

    ``selector`` is a best-effort CSS selector (``#submit``, ``.nav-link``,
    ``button``) and may be empty; ``binding`` is the label used in diagnostics,
    usually the variable name from the source.
    """
    selector: str = ""
    binding: str = ""

    model_config = {"frozen": True}


class BehaviorRecord(BaseModel):
    """
    One UI behavior extracted from a source file.

    Never holds a reference to an element node: linking happens at merge
    time by resolving ``element_ref.selector``.
    """
    id: str
    action_type: ActionType
    element_ref: ElementRef
    event: Optional[str] = None
    location: Optional[SourceLocation] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @field_validator("metadata", mode="after")
    @classmethod
    def freeze_metadata(cls, v: Dict[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(v))

    @field_serializer("metadata")
    def dump_metadata(self, metadata) -> Dict[str, Any]:
        return dict(metadata)

    @model_validator(mode="after")
    def check_event(self) -> "BehaviorRecord":
        if self.action_type == ActionType.EVENT_HANDLER and not self.event:
            raise ValueError("eventHandler records require an event name")
        return self

    @property
    def is_global(self) -> bool:
        """Listeners on document/window and navigation calls target no element."""
        return bool(self.metadata.get("global"))

    @property
    def is_keyboard_handler(self) -> bool:
        return self.action_type == ActionType.EVENT_HANDLER and self.event in KEYBOARD_EVENTS


class BehaviorGraph(BaseModel):
    """Flat collection of the behaviors extracted from one source file."""
    source_file: str
    records: Tuple[BehaviorRecord, ...] = ()

    model_config = {"frozen": True}

    def __len__(self) -> int:
        return len(self.records)

    def find_by_selector(self, selector: str) -> List[BehaviorRecord]:
        return [r for r in self.records if r.element_ref.selector == selector]

    def find_by_element_binding(self, binding: str) -> List[BehaviorRecord]:
        return [r for r in self.records if r.element_ref.binding == binding]

    def find_by_action_type(self, action_type: ActionType) -> List[BehaviorRecord]:
        action_type = ActionType(action_type)
        return [r for r in self.records if r.action_type == action_type]

    def find_event_handlers(self, event: str) -> List[BehaviorRecord]:
        return [
            r for r in self.records
            if r.action_type == ActionType.EVENT_HANDLER and r.event == event
        ]

    def get_all_event_handlers(self) -> List[BehaviorRecord]:
        return self.find_by_action_type(ActionType.EVENT_HANDLER)

    def get_all_focus_actions(self) -> List[BehaviorRecord]:
        return self.find_by_action_type(ActionType.FOCUS_CHANGE)

    def get_all_aria_actions(self) -> List[BehaviorRecord]:
        return self.find_by_action_type(ActionType.ARIA_STATE_CHANGE)

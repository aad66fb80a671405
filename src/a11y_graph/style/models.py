# src/a11y_graph/style/models.py
import re
from enum import Enum
from types import MappingProxyType
from typing import Optional, List, Dict, Any, Mapping, Tuple

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from ..model import SourceLocation
from ..dom.selectors import selector_matches, strip_pseudo

FOCUS_PROPERTIES = frozenset({
    "outline", "outline-width", "outline-style", "outline-color", "outline-offset",
    "border", "box-shadow",
})
VISIBILITY_PROPERTIES = frozenset({
    "display", "visibility", "opacity", "clip", "clip-path", "position",
    "left", "right", "top", "bottom", "width", "height", "overflow", "z-index",
})
CONTRAST_PROPERTIES = frozenset({
    "color", "background", "background-color", "border-color", "text-shadow",
})
INTERACTION_PROPERTIES = frozenset({
    "pointer-events", "cursor", "user-select", "touch-action",
})
FOCUS_PSEUDO_CLASSES = frozenset({"focus", "focus-visible"})


class RuleType(str, Enum):
    STYLE = "style"
    KEYFRAMES = "keyframes"
    FONT_FACE = "font-face"
    IMPORT = "import"


class StyleRule(BaseModel):
    """
    A single CSS rule with its accessibility impact flags.
    The flags are derived from the property set once, when the rule is created.
    """
    id: str
    selector: str
    specificity: Tuple[int, int, int, int] = (0, 0, 0, 0)
    properties: Dict[str, str] = Field(default_factory=dict)
    location: Optional[SourceLocation] = None
    rule_type: RuleType = RuleType.STYLE
    media_query: Optional[str] = None
    pseudo_class: Optional[str] = None

    affects_visibility: bool = False
    affects_focus: bool = False
    affects_contrast: bool = False
    affects_interaction: bool = False

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def derive_flags(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        properties = {
            str(k).strip().lower(): str(v).strip()
            for k, v in (data.get("properties") or {}).items()
        }
        data["properties"] = properties
        keys = set(properties)
        data["affects_visibility"] = bool(keys & VISIBILITY_PROPERTIES)
        data["affects_focus"] = (
            data.get("pseudo_class") in FOCUS_PSEUDO_CLASSES or bool(keys & FOCUS_PROPERTIES)
        )
        data["affects_contrast"] = bool(keys & CONTRAST_PROPERTIES)
        data["affects_interaction"] = bool(keys & INTERACTION_PROPERTIES)
        return data

    @field_validator("properties", mode="after")
    @classmethod
    def freeze_properties(cls, v: Dict[str, str]) -> Mapping[str, str]:
        return MappingProxyType(v)

    @field_serializer("properties")
    def dump_properties(self, properties) -> Dict[str, str]:
        return dict(properties)

    @property
    def has_pseudo_class(self) -> bool:
        return self.pseudo_class is not None

    @property
    def is_matchable(self) -> bool:
        """Only plain style rules are matched against elements."""
        return self.rule_type == RuleType.STYLE

    def matches(self, element) -> bool:
        return self.is_matchable and selector_matches(element, strip_pseudo(self.selector))


def _clean(value: str) -> str:
    return value.replace("!important", "").strip().lower()


def hides_element(properties: Dict[str, str]) -> bool:
    """True if the declarations take an element out of view."""
    def get(name: str) -> str:
        return _clean(properties.get(name, ""))

    if get("display") == "none":
        return True
    if get("visibility") == "hidden":
        return True
    if get("opacity") in ("0", "0.0"):
        return True
    if re.sub(r"[\s,]+", " ", get("clip")) == "rect(0 0 0 0)":
        return True
    if get("position") in ("absolute", "fixed") and get("left") in ("-9999px", "-10000px"):
        return True
    return False


def effective_properties(rules: List[StyleRule]) -> Dict[str, str]:
    """
    Cascaded declarations of rules already sorted winner-first.
    Pseudo-class rules only apply in that state and are left out.
    """
    properties: Dict[str, str] = {}
    for rule in reversed(rules):
        if not rule.has_pseudo_class:
            properties.update(rule.properties)
    return properties


def removes_outline(properties: Dict[str, str]) -> bool:
    """True if the declarations suppress the focus outline."""
    outline = _clean(properties.get("outline", ""))
    return (
        outline in ("none", "0", "0px")
        or _clean(properties.get("outline-style", "")) == "none"
        or _clean(properties.get("outline-width", "")) in ("0", "0px")
    )


class StyleGraph(BaseModel):
    """All rules parsed from one style sheet, in source order."""
    source_file: str
    rules: Tuple[StyleRule, ...] = ()

    model_config = {"frozen": True}

    def __len__(self) -> int:
        return len(self.rules)

    def find_by_selector(self, selector: str) -> List[StyleRule]:
        return [r for r in self.rules if r.selector == selector]

    def find_focus_rules(self) -> List[StyleRule]:
        return [r for r in self.rules if r.affects_focus]

    def find_visibility_rules(self) -> List[StyleRule]:
        return [r for r in self.rules if r.affects_visibility]

    def find_contrast_rules(self) -> List[StyleRule]:
        return [r for r in self.rules if r.affects_contrast]

    def get_matching_rules(self, element) -> List[StyleRule]:
        """
        Rules that apply to ``element``, highest specificity first.
        Among equal specificity the later rule comes first, since it wins the cascade.
        """
        matching = [(order, rule) for order, rule in enumerate(self.rules) if rule.matches(element)]
        matching.sort(key=lambda pair: (pair[1].specificity, pair[0]), reverse=True)
        return [rule for _, rule in matching]

    def is_element_hidden(self, element) -> bool:
        return hides_element(effective_properties(self.get_matching_rules(element)))

    def has_focus_styles(self, element) -> bool:
        return any(
            rule.pseudo_class in FOCUS_PSEUDO_CLASSES
            for rule in self.get_matching_rules(element)
        )

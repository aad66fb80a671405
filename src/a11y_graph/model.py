# src/a11y_graph/model.py
from enum import Enum
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field, model_validator


class Scope(str, Enum):
    """Breadth of a document graph build."""
    FILE = "file"
    PAGE = "page"
    WORKSPACE = "workspace"


class ConfidenceLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class SourceLocation(BaseModel):
    """Position of a node in its source file. Used for diagnostics only."""
    file: str
    line: int = 1
    column: int = 0
    length: Optional[int] = None

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


class SourceFiles(BaseModel):
    html: Optional[str] = None
    javascript: List[str] = Field(default_factory=list)
    css: List[str] = Field(default_factory=list)
    templates: List[str] = Field(default_factory=list)


class SourceCollection(BaseModel):
    """
    Immutable snapshot of the raw texts that make up one analysis pass.

    ``javascript[i]`` belongs to ``source_files.javascript[i]``; the same holds
    for ``css`` and ``templates``. ``templates`` carries additional markup
    fragments for page and workspace builds.
    """
    html: Optional[str] = None
    javascript: List[str] = Field(default_factory=list)
    css: List[str] = Field(default_factory=list)
    templates: List[str] = Field(default_factory=list)
    source_files: SourceFiles = Field(default_factory=SourceFiles)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_file_names(self) -> "SourceCollection":
        for kind in ("javascript", "css", "templates"):
            texts = getattr(self, kind)
            names = getattr(self.source_files, kind)
            if len(texts) != len(names):
                raise ValueError(
                    f"{kind}: {len(texts)} source texts but {len(names)} file names"
                )
        return self

    @property
    def label(self) -> str:
        """A short name for logs and batch summaries."""
        files = self.source_files
        if files.html:
            return files.html
        for names in (files.templates, files.javascript, files.css):
            if names:
                return names[0]
        return "<anonymous>"


class FragmentWarning(BaseModel):
    """A fragment that was dropped from the merge because it could not be parsed."""
    source_file: str
    kind: str  # 'markup', 'style'
    message: str
    line: Optional[int] = None

    model_config = {"frozen": True}


class Confidence(BaseModel):
    level: ConfidenceLevel
    reason: str
    scope: Scope
    completeness: float = 0.0

    model_config = {"frozen": True}


class Finding(BaseModel):
    """
    A single accessibility finding produced by an analyzer.
    The confidence label is attached by the ConfidenceEstimator, never by the rule.
    """
    code: str  # e.g., 'MOUSE_ONLY_CLICK', 'BROKEN_ARIA_REFERENCE'
    message: str
    severity: str  # 'CRITICAL', 'WARNING', 'INFO'
    category: str  # e.g., 'KEYBOARD', 'LABELS', 'ARIA', 'FOCUS'
    element_id: Optional[str] = None
    location: Optional[SourceLocation] = None
    related_locations: List[SourceLocation] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)
    confidence: Optional[Confidence] = None

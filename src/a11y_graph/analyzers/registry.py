# src/a11y_graph/analyzers/registry.py
import importlib
import logging
import pkgutil
from typing import Dict, List, Optional

from .core import AnalyzerDefinition, AnalyzerRule

logger = logging.getLogger(__name__)

RULES_PACKAGE = "a11y_graph.analyzers.rules"


class AnalyzerRegistry:
    """
    Registry of analyzer rules.

    Discovers AnalyzerDefinition modules in the rules package (any module
    exposing a ``DEFINITION`` attribute). Each registry instance holds its
    own rule list, so independent engines never share registration state.
    """

    def __init__(self, package: str = RULES_PACKAGE):
        self.package = package
        self._definitions: Dict[str, AnalyzerDefinition] = {}
        self._loaded = False

    def discover(self) -> "AnalyzerRegistry":
        if self._loaded:
            return self

        try:
            rules_pkg = importlib.import_module(self.package)
        except ImportError as e:
            logger.error(f"Could not find rules package {self.package}: {e}")
            return self

        for _, name, _ in sorted(pkgutil.iter_modules(rules_pkg.__path__), key=lambda m: m[1]):
            full_name = f"{self.package}.{name}"
            try:
                module = importlib.import_module(full_name)
            except ImportError as e:
                logger.error(f"Error loading analyzer module {name}: {e}")
                continue
            definition = getattr(module, "DEFINITION", None)
            if isinstance(definition, AnalyzerDefinition):
                self.register(definition)

        self._loaded = True
        return self

    def register(self, definition: AnalyzerDefinition) -> None:
        if definition.name in self._definitions:
            logger.warning(f"Analyzer '{definition.name}' registered twice; keeping the latest")
        self._definitions[definition.name] = definition
        logger.debug(f"Analyzer loaded: {definition.name} ({', '.join(definition.codes)})")

    def get_definition(self, name: str) -> Optional[AnalyzerDefinition]:
        return self._definitions.get(name)

    def get_all_rules(self) -> List[AnalyzerRule]:
        return [rule for definition in self._definitions.values() for rule in definition.rules]

    def get_all_possible_codes(self) -> List[str]:
        """All finding codes the registered analyzers can produce, sorted."""
        codes = set()
        for definition in self._definitions.values():
            codes.update(definition.codes)
        return sorted(codes)

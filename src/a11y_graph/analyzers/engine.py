# src/a11y_graph/analyzers/engine.py
import logging
from typing import Iterable, List, Optional

from ..document.confidence import ConfidenceEstimator
from ..document.graph import DocumentGraph
from ..document.view import AnalyzerView
from ..model import Finding
from .registry import AnalyzerRegistry

logger = logging.getLogger(__name__)


class AnalysisEngine:
    """
    Runs every registered analyzer rule against a merged document graph.

    Rules only ever see an AnalyzerView. Each finding they return is
    annotated with a confidence label; none is filtered out.
    """

    def __init__(
            self,
            registry: Optional[AnalyzerRegistry] = None,
            estimator: Optional[ConfidenceEstimator] = None
    ):
        self.registry = registry or AnalyzerRegistry().discover()
        self.estimator = estimator or ConfidenceEstimator()
        self.rules = self.registry.get_all_rules()

    def run(self, graph: DocumentGraph, codes: Optional[Iterable[str]] = None) -> List[Finding]:
        """
        Args:
            graph (DocumentGraph): A merged graph.
            codes (Optional[Iterable[str]]): Only keep findings with these codes.

        Returns:
            List[Finding]: Findings in rule order, each carrying a confidence label.
        """
        view = AnalyzerView(graph)
        wanted = set(codes) if codes is not None else None
        findings: List[Finding] = []

        for rule in self.rules:
            for result in rule(view) or []:
                if wanted is not None and result.code not in wanted:
                    continue
                findings.append(self.estimator.annotate(result, view))

        logger.debug(f"{len(findings)} findings from {len(self.rules)} rules")
        return findings

# src/a11y_graph/controllers/build_controller.py
import logging
import threading
import time
from collections import Counter
from concurrent.futures import ProcessPoolExecutor
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence

from tqdm import tqdm

from ..analyzers.engine import AnalysisEngine
from ..document.builder import DocumentGraphBuilder
from ..document.graph import DocumentGraph
from ..errors import A11yGraphError, BuildCancelled
from ..model import Scope, SourceCollection
from ..utils.config_manager import config_manager

logger = logging.getLogger(__name__)


def _worker_build_page(
        collection: Dict[str, Any],
        scope: str,
        codes: Optional[List[str]] = None
) -> Dict[str, Any]:
    """
    Worker function building and analysing one SourceCollection in a separate process.

    Graphs hold weak parent links and cannot be pickled, so only a plain
    summary travels back to the parent process.
    """
    sources = SourceCollection.model_validate(collection)
    label = sources.label
    try:
        graph = DocumentGraphBuilder().build(sources, Scope(scope))
        findings = AnalysisEngine().run(graph, codes=codes)
    except A11yGraphError as e:
        logger.error(f"Worker failed on {label}: {e}")
        return {"error": str(e), "label": label}

    stats = graph.stats
    return {
        "label": label,
        "scope": graph.scope.value,
        "fragments": graph.get_fragment_count(),
        "completeness": graph.get_tree_completeness(),
        "resolved_references": stats.resolved_references,
        "unresolved_references": stats.unresolved_references,
        "warnings": [w.model_dump(mode="json") for w in graph.warnings],
        "findings": [f.model_dump(mode="json") for f in findings],
    }


class BuildController:
    """
    Builds and analyses many source collections in parallel, one graph per
    process. Graph builds share nothing, so no locking is needed.
    """

    def __init__(self, workers: Optional[int] = None):
        self.workers = int(workers or config_manager.get_nested("workers.max_workers", 4))

    def build_many(
            self,
            collections: Sequence[SourceCollection],
            scope: Scope = Scope.PAGE,
            codes: Optional[List[str]] = None,
            progress_callback: Optional[Callable[[int, int], None]] = None,
            show_progress: bool = False
    ) -> Dict[str, Any]:
        """
        Args:
            collections: One SourceCollection per page (or workspace).
            scope: Scope applied to every build.
            codes: Only keep findings with these codes.
            progress_callback: Called with (done, total) after each result.
            show_progress: Draw a tqdm bar on stderr.

        Returns:
            Dict[str, Any]: Per-collection results plus aggregate counters.
        """
        total = len(collections)
        start = time.perf_counter()
        results: List[Dict[str, Any]] = []
        failures: List[Dict[str, Any]] = []
        by_code: Counter = Counter()
        by_confidence: Counter = Counter()

        tasks = [c.model_dump() for c in collections]
        with ProcessPoolExecutor(max_workers=self.workers) as executor:
            func = partial(_worker_build_page, scope=Scope(scope).value, codes=codes)
            results_iter = executor.map(func, tasks)
            if show_progress:
                results_iter = tqdm(results_iter, total=total, desc="Building graphs", unit=" page")

            for i, result in enumerate(results_iter):
                if progress_callback:
                    progress_callback(i + 1, total)

                if "error" in result:
                    failures.append(result)
                    continue

                results.append(result)
                for f in result["findings"]:
                    by_code[f["code"]] += 1
                    confidence = f.get("confidence") or {}
                    by_confidence[confidence.get("level", "UNKNOWN")] += 1

        duration = time.perf_counter() - start
        logger.info(
            f"Built {len(results)}/{total} graphs in {duration:.2f}s with {self.workers} workers "
            f"({sum(by_code.values())} findings, {len(failures)} failed)"
        )
        return {
            "results": results,
            "failures": failures,
            "findings_by_code": dict(by_code),
            "findings_by_confidence": dict(by_confidence),
            "duration": duration,
        }


class BackgroundBuild:
    """
    One cancellable graph build on a daemon thread.

    ``cancel()`` sets a flag the builder checks between fragments; a cancelled
    build publishes nothing and ``on_complete`` is not called.
    """

    def __init__(
            self,
            sources: SourceCollection,
            scope: Scope = Scope.WORKSPACE,
            builder: Optional[DocumentGraphBuilder] = None,
            on_complete: Optional[Callable[[DocumentGraph], None]] = None
    ):
        self.sources = sources
        self.scope = scope
        self.builder = builder or DocumentGraphBuilder()
        self.on_complete = on_complete

        self._cancel_event = threading.Event()
        self._finished = threading.Event()
        self._graph: Optional[DocumentGraph] = None
        self._error: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._run, name=f"graph-build:{sources.label}", daemon=True)

    def start(self) -> "BackgroundBuild":
        self._thread.start()
        return self

    def _run(self) -> None:
        try:
            graph = self.builder.build(self.sources, self.scope, cancel_event=self._cancel_event)
            if self._cancel_event.is_set():
                raise BuildCancelled("Graph build cancelled")
            self._graph = graph
            if self.on_complete:
                self.on_complete(graph)
        except BuildCancelled as e:
            logger.info(f"Background build of {self.sources.label} cancelled")
            self._error = e
        except A11yGraphError as e:
            logger.error(f"Background build of {self.sources.label} failed: {e}")
            self._error = e
        finally:
            self._finished.set()

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._finished.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._finished.wait(timeout)

    def result(self, timeout: Optional[float] = None) -> DocumentGraph:
        """
        Blocks until the build ends.

        Raises:
            TimeoutError: If the build is still running after ``timeout`` seconds.
            BuildCancelled: If the build was cancelled.
            A11yGraphError: Whatever else made the build fail.
        """
        if not self._finished.wait(timeout):
            raise TimeoutError(f"Background build of {self.sources.label} still running")
        if self._error is not None:
            raise self._error
        return self._graph

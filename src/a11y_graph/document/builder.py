# src/a11y_graph/document/builder.py
import logging
import threading
from typing import List, Optional

from ..behavior.extractor import BehaviorExtractor
from ..behavior.models import BehaviorGraph
from ..build_context import BuildContext
from ..dom.builder import MarkupParser
from ..dom.models import ElementGraph
from ..errors import DocumentBuildError, FragmentParseError
from ..model import FragmentWarning, Scope, SourceCollection
from ..style.models import StyleGraph
from ..style.parser import StyleParser
from .graph import DocumentGraph

logger = logging.getLogger(__name__)

DEFAULT_HTML_FILE = "inline.html"


class DocumentGraphBuilder:
    """
    Parses every text of a SourceCollection into its fragment and merges them.

    A fragment that fails to parse is dropped with a FragmentWarning; the rest
    of the collection is still merged. Cancellation is checked between
    fragments, never in the middle of one.
    """

    def __init__(
            self,
            markup_parser: Optional[MarkupParser] = None,
            behavior_extractor: Optional[BehaviorExtractor] = None,
            style_parser: Optional[StyleParser] = None
    ):
        self.markup_parser = markup_parser or MarkupParser()
        self.behavior_extractor = behavior_extractor or BehaviorExtractor()
        self.style_parser = style_parser or StyleParser()

    def build(
            self,
            sources: SourceCollection,
            scope: Scope = Scope.PAGE,
            cancel_event: Optional[threading.Event] = None
    ) -> DocumentGraph:
        """
        Args:
            sources (SourceCollection): The texts to analyse together.
            scope (Scope): Breadth of this build; feeds the confidence labels.
            cancel_event (Optional[threading.Event]): Set it to abandon the build.

        Returns:
            DocumentGraph: The merged graph.

        Raises:
            BuildCancelled: If ``cancel_event`` was set; nothing partial is returned.
            DocumentBuildError: If texts were supplied and every one failed to parse.
        """
        context = BuildContext(cancel_event)
        fragments: List[ElementGraph] = []
        behavior_graphs: List[BehaviorGraph] = []
        style_graphs: List[StyleGraph] = []
        warnings: List[FragmentWarning] = []
        attempted = 0

        markup = []
        if sources.html is not None:
            markup.append((sources.html, sources.source_files.html or DEFAULT_HTML_FILE))
        markup.extend(zip(sources.templates, sources.source_files.templates))

        for text, file_name in markup:
            context.check_cancelled()
            attempted += 1
            try:
                fragments.append(self.markup_parser.parse(text, file_name, context))
            except FragmentParseError as e:
                warnings.append(self._warn(e, "markup"))
            # inline scripts and template event bindings
            behaviors = self.behavior_extractor.extract(text, file_name, context)
            if behaviors.records:
                behavior_graphs.append(behaviors)

        for text, file_name in zip(sources.javascript, sources.source_files.javascript):
            context.check_cancelled()
            attempted += 1
            behavior_graphs.append(self.behavior_extractor.extract(text, file_name, context))

        for text, file_name in zip(sources.css, sources.source_files.css):
            context.check_cancelled()
            attempted += 1
            try:
                style_graphs.append(self.style_parser.parse(text, file_name, context))
            except FragmentParseError as e:
                warnings.append(self._warn(e, "style"))

        context.check_cancelled()
        if attempted and len(warnings) == attempted:
            raise DocumentBuildError(warnings)

        graph = DocumentGraph(
            scope=scope,
            fragments=fragments,
            behavior_graphs=behavior_graphs,
            style_graphs=style_graphs,
            warnings=warnings,
        ).merge()
        logger.info(
            f"Built {scope.value if isinstance(scope, Scope) else scope} graph for {sources.label}: "
            f"{len(fragments)} markup, {len(behavior_graphs)} behavior, {len(style_graphs)} style fragments, "
            f"{len(warnings)} dropped"
        )
        return graph

    @staticmethod
    def _warn(error: FragmentParseError, kind: str) -> FragmentWarning:
        logger.warning(f"Dropping {kind} fragment: {error}")
        return FragmentWarning(
            source_file=error.source_file, kind=kind, message=error.reason, line=error.line
        )

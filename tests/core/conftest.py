# tests/core/conftest.py
import pytest

from a11y_graph.document.builder import DocumentGraphBuilder
from a11y_graph.model import SourceCollection, SourceFiles


def make_sources(html=None, javascript=None, css=None, templates=None, html_file="index.html"):
    """Bouwt een SourceCollection met voorspelbare bestandsnamen."""
    javascript = javascript or []
    css = css or []
    templates = templates or []
    return SourceCollection(
        html=html,
        javascript=javascript,
        css=css,
        templates=templates,
        source_files=SourceFiles(
            html=html_file if html is not None else None,
            javascript=[f"script{i}.js" for i in range(len(javascript))],
            css=[f"style{i}.css" for i in range(len(css))],
            templates=[f"partial{i}.html" for i in range(len(templates))],
        ),
    )


@pytest.fixture
def builder():
    """Een verse DocumentGraphBuilder per test."""
    return DocumentGraphBuilder()

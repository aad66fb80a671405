# tests/core/test_build_controller.py
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from a11y_graph.controllers import build_controller
from a11y_graph.controllers.build_controller import BackgroundBuild, BuildController, _worker_build_page
from a11y_graph.document.builder import DocumentGraphBuilder
from a11y_graph.dom.builder import MarkupParser
from a11y_graph.errors import BuildCancelled, DocumentBuildError
from a11y_graph.model import Scope

from conftest import make_sources

CLICK_ONLY = make_sources(
    html='<div id="card">Card</div>',
    javascript=["document.getElementById('card').addEventListener('click', open);"],
)
CLEAN = make_sources(html='<button id="ok">Ok</button>', html_file="clean.html")
BROKEN = make_sources(html="<div", html_file="broken.html")


@pytest.fixture
def threaded_pool(monkeypatch):
    """Vervangt de process pool door threads, zodat de test geen processen start."""
    monkeypatch.setattr(build_controller, "ProcessPoolExecutor", ThreadPoolExecutor)


def test_worker_returns_plain_summary():
    result = _worker_build_page(CLICK_ONLY.model_dump(), "page")

    assert result["label"] == "index.html"
    assert result["scope"] == "page"
    assert result["fragments"] == 1
    assert result["resolved_references"] == 1
    assert {f["code"] for f in result["findings"]} == {"MOUSE_ONLY_CLICK", "CLICK_NOT_FOCUSABLE"}
    assert result["findings"][0]["confidence"]["level"] == "HIGH"


def test_worker_reports_build_errors():
    result = _worker_build_page(BROKEN.model_dump(), "page")
    assert result["label"] == "broken.html"
    assert "error" in result


def test_build_many_aggregates(threaded_pool):
    progress = []
    summary = BuildController(workers=2).build_many(
        [CLICK_ONLY, CLEAN, BROKEN],
        scope=Scope.PAGE,
        progress_callback=lambda done, total: progress.append((done, total)),
    )

    assert [r["label"] for r in summary["results"]] == ["index.html", "clean.html"]
    assert [f["label"] for f in summary["failures"]] == ["broken.html"]
    assert summary["findings_by_code"] == {"MOUSE_ONLY_CLICK": 1, "CLICK_NOT_FOCUSABLE": 1}
    assert summary["findings_by_confidence"] == {"HIGH": 2}
    assert progress == [(1, 3), (2, 3), (3, 3)]


def test_build_many_codes_filter(threaded_pool):
    summary = BuildController(workers=1).build_many([CLICK_ONLY], codes=["MOUSE_ONLY_CLICK"])
    assert summary["findings_by_code"] == {"MOUSE_ONLY_CLICK": 1}


def test_worker_count_from_config():
    assert BuildController().workers == 4
    assert BuildController(workers=2).workers == 2


# --- BackgroundBuild ---

def test_background_build_publishes_graph():
    received = []
    job = BackgroundBuild(CLICK_ONLY, on_complete=received.append).start()

    graph = job.result(timeout=5)

    assert job.done()
    assert received == [graph]
    assert graph.scope == Scope.WORKSPACE
    assert graph.get_element_by_id("card") is not None


def test_cancel_before_start():
    received = []
    job = BackgroundBuild(CLICK_ONLY, on_complete=received.append)
    job.cancel()
    job.start()

    with pytest.raises(BuildCancelled):
        job.result(timeout=5)
    assert job.cancelled
    assert received == []


class CancellingParser(MarkupParser):
    """Zet de cancel-vlag zodra het eerste markup-fragment geparsed is."""

    def __init__(self):
        super().__init__()
        self.job = None

    def parse(self, *args, **kwargs):
        graph = super().parse(*args, **kwargs)
        self.job.cancel()
        return graph


def test_cancel_between_fragments():
    """Test dat een cancel tijdens de build geen (gedeeltelijke) graph oplevert."""
    parser = CancellingParser()
    received = []
    sources = make_sources(html="<p>a</p>", templates=["<p>b</p>"], css=[".a { color: red; }"])
    job = BackgroundBuild(sources, builder=DocumentGraphBuilder(markup_parser=parser), on_complete=received.append)
    parser.job = job
    job.start()

    with pytest.raises(BuildCancelled):
        job.result(timeout=5)
    assert received == []


def test_failed_build_raises_from_result():
    job = BackgroundBuild(BROKEN).start()
    with pytest.raises(DocumentBuildError):
        job.result(timeout=5)


def test_result_timeout():
    started = threading.Event()
    release = threading.Event()

    class SlowParser(MarkupParser):
        def parse(self, *args, **kwargs):
            started.set()
            release.wait(5)
            return super().parse(*args, **kwargs)

    job = BackgroundBuild(CLEAN, builder=DocumentGraphBuilder(markup_parser=SlowParser())).start()
    started.wait(5)
    try:
        with pytest.raises(TimeoutError):
            job.result(timeout=0.01)
        assert not job.done()
    finally:
        release.set()
    assert job.wait(5)

# src/a11y_graph/build_context.py
import threading
from collections import Counter
from typing import Optional

from .errors import BuildCancelled


class BuildContext:
    """
    Per-build state handed to every fragment producer.

    Holds the id counters for one graph build so concurrent builds never share
    a counter, and the optional cancellation flag checked between fragments.
    """

    def __init__(self, cancel_event: Optional[threading.Event] = None):
        self._counters: Counter = Counter()
        self.cancel_event = cancel_event

    def next_id(self, kind: str) -> str:
        self._counters[kind] += 1
        return f"{kind}-{self._counters[kind]}"

    def check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise BuildCancelled("Graph build cancelled")

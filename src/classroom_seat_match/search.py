"""Search effort cap shared by the cluster search and both backtrackers."""
from __future__ import annotations

import time
from typing import Callable

DEFAULT_NODE_LIMIT = 200_000
DEFAULT_TIME_LIMIT_SEC = 2.0


class SearchBudget:
    """Counts explored nodes and trips once either limit is reached.

    A tripped budget stays tripped, so every stage of a solve sees it and
    falls back to its greedy result.
    """

    def __init__(
        self,
        node_limit: int = DEFAULT_NODE_LIMIT,
        time_limit_sec: float = DEFAULT_TIME_LIMIT_SEC,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.node_limit = node_limit
        self.time_limit_sec = time_limit_sec
        self._clock = clock
        self._start = clock()
        self.nodes = 0
        self.exhausted = False

    def tick(self) -> bool:
        """Record one node. Returns True when the search must stop."""
        self.nodes += 1
        return self.check()

    def check(self) -> bool:
        if self.exhausted:
            return True
        if self.nodes >= self.node_limit or (self._clock() - self._start) >= self.time_limit_sec:
            self.exhausted = True
        return self.exhausted

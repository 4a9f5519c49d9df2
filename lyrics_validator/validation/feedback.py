"""Adaptive rule weights persisted between validation runs.

The feedback state counts how often every rule fired across all runs. Once a
rule has fired often enough its dynamic weight is raised a notch, up to a cap.
Stores are injected into the validator; the JSON store keeps the document on
disk and an in-memory store is available for tests and embedding.
"""

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

STATE_VERSION = "1.0.0"
WEIGHT_THRESHOLD = 20
WEIGHT_INCREMENT = 0.05
MAX_WEIGHT = 0.3


@dataclass
class FeedbackState:
    version: str = STATE_VERSION
    total_runs: int = 0
    rule_hits: dict[str, int] = field(default_factory=dict)
    dynamic_weights: dict[str, float] = field(default_factory=dict)
    history: list[dict] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data) -> "FeedbackState":
        """Rebuild a state from a loaded document, field by field.

        Anything with the wrong shape falls back to its default instead of
        being trusted as-is.
        """
        state = cls()
        if not isinstance(data, dict):
            return state

        if isinstance(data.get("version"), str):
            state.version = data["version"]

        total_runs = data.get("totalRuns")
        if isinstance(total_runs, int) and not isinstance(total_runs, bool) and total_runs >= 0:
            state.total_runs = total_runs

        hits = data.get("ruleHits")
        if isinstance(hits, dict):
            for rule, count in hits.items():
                if isinstance(count, int) and not isinstance(count, bool) and count >= 0:
                    state.rule_hits[str(rule)] = count

        weights = data.get("dynamicWeights")
        if isinstance(weights, dict):
            for rule, weight in weights.items():
                if isinstance(weight, (int, float)) and not isinstance(weight, bool):
                    state.dynamic_weights[str(rule)] = min(MAX_WEIGHT, max(0.0, float(weight)))

        history = data.get("history")
        if isinstance(history, list):
            state.history = [record for record in history if isinstance(record, dict)]

        return state

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "totalRuns": self.total_runs,
            "ruleHits": dict(self.rule_hits),
            "dynamicWeights": dict(self.dynamic_weights),
            "history": list(self.history),
        }

    def apply_run(
        self,
        run_hits: dict[str, int],
        record: dict,
        history_limit: int | None = None,
    ) -> None:
        """Merge one run's rule hits, bump weights and append the history record."""
        for rule, count in run_hits.items():
            self.rule_hits[rule] = self.rule_hits.get(rule, 0) + count
            if self.rule_hits[rule] >= WEIGHT_THRESHOLD:
                raised = round(self.dynamic_weights.get(rule, 0.0) + WEIGHT_INCREMENT, 4)
                self.dynamic_weights[rule] = min(MAX_WEIGHT, raised)

        self.total_runs += 1
        self.history.append(record)
        if history_limit is not None and len(self.history) > history_limit:
            self.history = self.history[-history_limit:]


class FeedbackStore:
    """Base store. Subclasses implement load() and save().

    update() serializes read-modify-write cycles within one process. It does
    not protect a shared file against other processes.
    """

    def __init__(self):
        self._lock = threading.Lock()

    def load(self) -> FeedbackState:
        raise NotImplementedError

    def save(self, state: FeedbackState) -> None:
        raise NotImplementedError

    def update(self, mutator: Callable[[FeedbackState], None]) -> FeedbackState:
        """Load the state, let mutator change it in place, then save it.

        Errors from load, mutator or save propagate; nothing is saved when
        load or mutator fails.
        """
        with self._lock:
            state = self.load()
            mutator(state)
            self.save(state)
        return state


class InMemoryFeedbackStore(FeedbackStore):
    """Keeps the state as a plain dict, as it would be serialized."""

    def __init__(self, data: dict | None = None):
        super().__init__()
        self.data = data
        self.saves = 0

    def load(self) -> FeedbackState:
        return FeedbackState.from_dict(self.data)

    def save(self, state: FeedbackState) -> None:
        self.data = json.loads(json.dumps(state.to_dict()))
        self.saves += 1

    def reset(self) -> None:
        self.data = None


class JsonFeedbackStore(FeedbackStore):
    """Feedback state stored as a JSON document on disk."""

    def __init__(self, path: Path | str):
        super().__init__()
        self.path = Path(path)

    def load(self) -> FeedbackState:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.debug("No feedback state at %s, starting fresh", self.path)
            return FeedbackState()
        except (OSError, ValueError) as e:
            logger.warning("Could not read feedback state %s: %s", self.path, e)
            return FeedbackState()
        return FeedbackState.from_dict(data)

    def save(self, state: FeedbackState) -> None:
        """Write through a temp file so readers never see a partial document."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

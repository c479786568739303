"""Per-model and run-wide accounting of action outcomes."""

from __future__ import annotations

from .models import ActionKind, ActionOutcome, ModelReport, Side, SyncStats


class StatsAggregator:
    """Accumulate one counter increment per ``ActionOutcome``.

    Counters are kept as immutable ``SyncStats`` values per model and
    replaced on every record, so a snapshot taken at any point is
    consistent with the outcomes recorded so far.
    """

    def __init__(self) -> None:
        self._per_model: dict[str, SyncStats] = {}
        self._writes: dict[str, dict[Side, int]] = {}

    def start_model(self, model: str) -> None:
        """Register *model* so it reports zero counts even with no actions."""
        self._per_model.setdefault(model, SyncStats())
        self._writes.setdefault(model, {Side.SOURCE: 0, Side.TARGET: 0})

    def record(self, outcome: ActionOutcome) -> SyncStats:
        """Count *outcome* against its model and return the new model stats."""
        model = outcome.action.model
        self.start_model(model)
        stats = self._per_model[model].record(outcome)
        self._per_model[model] = stats

        destination = outcome.action.destination
        if (
            outcome.success
            and destination is not None
            and outcome.action.kind != ActionKind.NOOP_TIE
        ):
            self._writes[model][destination] += 1
        return stats

    def model_stats(self, model: str) -> SyncStats:
        return self._per_model.get(model, SyncStats())

    def writes(self, model: str, side: Side) -> int:
        return self._writes.get(model, {}).get(side, 0)

    @property
    def total(self) -> SyncStats:
        return sum(self._per_model.values(), SyncStats())

    def model_report(
        self,
        model: str,
        source_count: int | None = None,
        target_count: int | None = None,
    ) -> ModelReport:
        """Build the ``ModelReport`` for *model* from the recorded outcomes."""
        return ModelReport(
            model=model,
            source_count=source_count,
            target_count=target_count,
            stats=self.model_stats(model),
            source_writes=self.writes(model, Side.SOURCE),
            target_writes=self.writes(model, Side.TARGET),
        )

"""Fixed, validated processing order for synchronised models.

The order is declared, never derived from schema reflection: a model
that references another by foreign key must appear after it.  An
optional dependency map lets the planner assert that at startup.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence

from .models import ModelDescriptor

logger = logging.getLogger(__name__)

DEFAULT_MODELS: tuple[str, ...] = (
    "user",
    "asset",
    "ticket",
    "comment",
    "notification",
    "auditLog",
)

DEFAULT_DEPENDENCIES: dict[str, tuple[str, ...]] = {
    "asset": ("user",),
    "ticket": ("user", "asset"),
    "comment": ("ticket", "user"),
    "notification": ("user", "ticket"),
    "auditLog": ("user",),
}


def default_table_name(model: str) -> str:
    """Table name the ORM derives from a model name (``auditLog`` -> ``AuditLog``)."""
    return model[:1].upper() + model[1:]


class ModelOrderPlanner:
    """Hold the ordered model list for a run.

    Args:
        models: Descriptors in processing order.
        dependencies: Optional map of model name to the names it
            references. Every referenced model must be known and must
            come earlier in *models*.

    Raises:
        ValueError: If the list is empty, contains duplicates, or
            violates the dependency map.
    """

    def __init__(
        self,
        models: Sequence[ModelDescriptor],
        dependencies: Mapping[str, Sequence[str]] | None = None,
    ) -> None:
        if not models:
            raise ValueError("Model order is empty: nothing to sync")

        seen: set[str] = set()
        for descriptor in models:
            if descriptor.name in seen:
                raise ValueError(
                    f"Duplicate model in sync order: '{descriptor.name}'"
                )
            seen.add(descriptor.name)

        self._models = tuple(models)
        if dependencies:
            self._check_dependencies(dependencies)

    @classmethod
    def from_names(
        cls,
        names: Sequence[str],
        tables: Mapping[str, str] | None = None,
        dependencies: Mapping[str, Sequence[str]] | None = None,
    ) -> ModelOrderPlanner:
        """Build a planner from plain model names as found in config."""
        table_map = tables or {}
        descriptors = [
            ModelDescriptor(
                name=name,
                table=table_map.get(name) or default_table_name(name),
                position=index,
            )
            for index, name in enumerate(names)
        ]
        return cls(descriptors, dependencies)

    @classmethod
    def default(cls) -> ModelOrderPlanner:
        return cls.from_names(DEFAULT_MODELS, dependencies=DEFAULT_DEPENDENCIES)

    def _check_dependencies(
        self, dependencies: Mapping[str, Sequence[str]]
    ) -> None:
        positions = {m.name: index for index, m in enumerate(self._models)}
        for model, parents in dependencies.items():
            if model not in positions:
                raise ValueError(
                    f"Dependency map names unknown model '{model}'"
                )
            for parent in parents:
                if parent not in positions:
                    raise ValueError(
                        f"Model '{model}' depends on unknown model '{parent}'"
                    )
                if positions[parent] >= positions[model]:
                    raise ValueError(
                        f"Model '{model}' is ordered before its dependency '{parent}'"
                    )
        logger.debug(
            "Dependency order verified for %d models", len(self._models)
        )

    @property
    def models(self) -> tuple[ModelDescriptor, ...]:
        return self._models

    @property
    def names(self) -> list[str]:
        return [m.name for m in self._models]

    def __iter__(self) -> Iterator[ModelDescriptor]:
        return iter(self._models)

    def __len__(self) -> int:
        return len(self._models)

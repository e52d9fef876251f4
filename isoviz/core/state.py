# isoviz/core/state.py
from __future__ import annotations

from dataclasses import dataclass, field, replace


@dataclass(frozen=True, slots=True)
class SourceState:
    """
    Per-source view settings owned by the presentation layer.

    Passed by value into every pipeline call; the core never keeps it.
    """
    visible: bool = False
    selected_key: str | None = None
    exclude_outliers: bool = False
    fill_missing: bool = False
    excluded_ids: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "excluded_ids", frozenset(self.excluded_ids))

    def policy_flags(self) -> tuple:
        """Everything besides the channel key that changes a computed range."""
        return (self.exclude_outliers, self.fill_missing, tuple(sorted(self.excluded_ids)))

    def with_excluded(self, sub_source_id: str, excluded: bool = True) -> "SourceState":
        ids = set(self.excluded_ids)
        if excluded:
            ids.add(sub_source_id)
        else:
            ids.discard(sub_source_id)
        return replace(self, excluded_ids=frozenset(ids))

    def with_(self, **changes) -> "SourceState":
        return replace(self, **changes)

"""Workflow policy gating the processing pipeline."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class WorkflowPolicy:
    """Switches and delays applied to every pipeline run."""

    auto_processing: bool = True
    process_delay: int = 2000  # milliseconds between detection and processing
    enable_backup: bool = True
    enable_cleanup: bool = True

    @property
    def process_delay_seconds(self) -> float:
        return self.process_delay / 1000

    def to_dict(self) -> dict[str, Any]:
        return {
            "autoProcessing": self.auto_processing,
            "processDelay": self.process_delay,
            "enableBackup": self.enable_backup,
            "enableCleanup": self.enable_cleanup,
        }


_FIELDS = frozenset(f.name for f in dataclasses.fields(WorkflowPolicy))


class PolicyStore:
    """Holds the current policy and applies partial updates."""

    def __init__(
        self,
        initial: WorkflowPolicy | None = None,
        on_change: Callable[[WorkflowPolicy], None] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            initial: Starting policy. Defaults are used if None.
            on_change: Called with the merged policy after every update.

        """
        self._policy = initial or WorkflowPolicy()
        self._on_change = on_change

    def get(self) -> WorkflowPolicy:
        """Return the current policy."""
        return self._policy

    def update(self, **changes: Any) -> WorkflowPolicy:
        """Merge the given fields over the current policy.

        Args:
            **changes: Policy fields to replace; omitted fields keep their value.

        Returns:
            The merged policy.

        Raises:
            ValueError: On unknown fields or a negative process delay.

        """
        if unknown := set(changes) - _FIELDS:
            raise ValueError(f"Unknown workflow setting(s): {', '.join(sorted(unknown))}")

        if "process_delay" in changes:
            delay = int(changes["process_delay"])
            if delay < 0:
                raise ValueError("process_delay must not be negative")
            changes["process_delay"] = delay

        for name in ("auto_processing", "enable_backup", "enable_cleanup"):
            if name in changes:
                changes[name] = bool(changes[name])

        self._policy = dataclasses.replace(self._policy, **changes)
        if self._on_change is not None:
            self._on_change(self._policy)
        return self._policy

    def set_auto_processing(self, enabled: bool) -> WorkflowPolicy:
        """Turn auto-processing on or off."""
        return self.update(auto_processing=enabled)

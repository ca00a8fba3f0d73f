"""
Outcome type for best-effort sub-tasks.

Reconciliation, link rewriting and cleanup must never fail the primary
operation that triggered them. They return a ``TaskReport`` instead of
raising; the report carries what changed and what went wrong, and logs its
warnings through the logger of the task that produced it.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class TaskReport:
    """Result of a best-effort task."""
    task: str
    changed: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failed: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.failed and not self.warnings

    def warn(self, message: str, logger: Optional[logging.Logger] = None) -> None:
        """Record a non-fatal problem."""
        self.warnings.append(message)
        if logger:
            logger.warning("[%s] %s", self.task, message)

    def fail(self, error: Exception, logger: Optional[logging.Logger] = None) -> "TaskReport":
        """Mark the whole task as failed."""
        self.failed = True
        self.error = str(error)
        if logger:
            logger.error("[%s] failed: %s", self.task, error)
        return self

    def merge(self, other: "TaskReport") -> None:
        self.changed.extend(other.changed)
        self.warnings.extend(other.warnings)
        if other.failed:
            self.failed = True
            self.error = self.error or other.error

    def messages(self) -> list[str]:
        """Warnings plus the failure message, for surfacing to callers."""
        if self.error:
            return [*self.warnings, f"{self.task} failed: {self.error}"]
        return list(self.warnings)

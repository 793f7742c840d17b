"""Observation context for domain-oriented observability.

Observation contexts collect the metadata that every instrumentation event of
one operation should carry, so probes do not have to thread it through each
call.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ObservationContext:
    """Immutable context containing metadata for observability.

    Attributes:
        account_uuid: The account the operation works on (if applicable).
        project: The project folder being read or written (if applicable).
        extra: Additional contextual metadata.

    Example:
        context = ObservationContext(account_uuid="e34fa4d6-...")
        probe = DefaultDownloaderProbe().with_context(context)
    """

    account_uuid: str | None = None
    project: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging.

        Only includes non-None values to keep logs clean.
        """
        result: dict[str, Any] = {}
        if self.account_uuid is not None:
            result["account_uuid"] = self.account_uuid
        if self.project is not None:
            result["project"] = self.project
        result.update(self.extra)
        return result

    def with_project(self, project: str) -> ObservationContext:
        """Create a new context with the project set."""
        return ObservationContext(
            account_uuid=self.account_uuid,
            project=project,
            extra=self.extra,
        )

"""Protocol for account resource download observability.

Defines the interface for domain probes that capture the domain events of a
download: stage progress, unresolved management zones and the outcome.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class DownloaderProbe(Protocol):
    """Domain probe for account resource downloads."""

    def download_started(self, account_uuid: str) -> None:
        """Record that a download was started."""
        ...

    def stage_completed(self, stage: str, count: int) -> None:
        """Record that a download stage fetched ``count`` resources."""
        ...

    def management_zone_unresolved(
        self, group_id: str, environment: str, management_zone_id: str
    ) -> None:
        """Record that a permission scope names an unknown management zone."""
        ...

    def download_completed(
        self,
        account_uuid: str,
        policies: int,
        groups: int,
        users: int,
        service_users: int,
        boundaries: int,
    ) -> None:
        """Record that a download finished."""
        ...

    def download_failed(self, account_uuid: str, error: str) -> None:
        """Record that a download failed."""
        ...

    def with_context(self, context: ObservationContext) -> DownloaderProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultDownloaderProbe:
    """Default implementation of DownloaderProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def _event_kwargs(self, **fields: Any) -> dict[str, Any]:
        """Merge event fields over the bound context, event fields winning."""
        return {**self._get_context_kwargs(), **fields}

    def with_context(self, context: ObservationContext) -> DefaultDownloaderProbe:
        """Create a new probe with observation context bound."""
        return DefaultDownloaderProbe(logger=self._logger, context=context)

    def download_started(self, account_uuid: str) -> None:
        """Record that a download was started."""
        self._logger.info(
            "account_download_started",
            **self._event_kwargs(account_uuid=account_uuid),
        )

    def stage_completed(self, stage: str, count: int) -> None:
        """Record that a download stage fetched ``count`` resources."""
        self._logger.debug(
            "account_download_stage_completed",
            stage=stage,
            count=count,
            **self._get_context_kwargs(),
        )

    def management_zone_unresolved(
        self, group_id: str, environment: str, management_zone_id: str
    ) -> None:
        """Record that a permission scope names an unknown management zone."""
        self._logger.warning(
            "account_download_management_zone_unresolved",
            group_id=group_id,
            environment=environment,
            management_zone_id=management_zone_id,
            **self._get_context_kwargs(),
        )

    def download_completed(
        self,
        account_uuid: str,
        policies: int,
        groups: int,
        users: int,
        service_users: int,
        boundaries: int,
    ) -> None:
        """Record that a download finished."""
        self._logger.info(
            "account_download_completed",
            **self._event_kwargs(
                account_uuid=account_uuid,
                policies=policies,
                groups=groups,
                users=users,
                service_users=service_users,
                boundaries=boundaries,
            ),
        )

    def download_failed(self, account_uuid: str, error: str) -> None:
        """Record that a download failed."""
        self._logger.error(
            "account_download_failed",
            **self._event_kwargs(account_uuid=account_uuid, error=error),
        )

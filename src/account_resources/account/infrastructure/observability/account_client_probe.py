"""Domain probe for account management API requests.

Following Domain-Oriented Observability patterns, this probe captures
domain-significant events of the HTTP adapter: pages walked, resources not
found and failed requests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class AccountClientProbe(Protocol):
    """Domain probe for account management API requests."""

    def page_fetched(self, path: str, page: int, item_count: int) -> None:
        """Record that one page of a collection was fetched."""
        ...

    def resource_not_found(self, path: str) -> None:
        """Record that a singular resource lookup answered 404."""
        ...

    def request_failed(
        self, path: str, reason: str, status_code: int | None = None
    ) -> None:
        """Record that a request failed."""
        ...

    def with_context(self, context: ObservationContext) -> AccountClientProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultAccountClientProbe:
    """Default implementation of AccountClientProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultAccountClientProbe:
        """Create a new probe with observation context bound."""
        return DefaultAccountClientProbe(logger=self._logger, context=context)

    def page_fetched(self, path: str, page: int, item_count: int) -> None:
        """Record that one page of a collection was fetched."""
        self._logger.debug(
            "account_api_page_fetched",
            path=path,
            page=page,
            item_count=item_count,
            **self._get_context_kwargs(),
        )

    def resource_not_found(self, path: str) -> None:
        """Record that a singular resource lookup answered 404."""
        self._logger.info(
            "account_api_resource_not_found",
            path=path,
            **self._get_context_kwargs(),
        )

    def request_failed(
        self, path: str, reason: str, status_code: int | None = None
    ) -> None:
        """Record that a request failed."""
        self._logger.error(
            "account_api_request_failed",
            path=path,
            reason=reason,
            status_code=status_code,
            **self._get_context_kwargs(),
        )

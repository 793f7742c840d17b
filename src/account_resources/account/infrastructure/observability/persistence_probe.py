"""Domain probe for persisted account resources.

Following Domain-Oriented Observability patterns, this probe captures
domain-significant events of loading and writing resource files.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class PersistenceProbe(Protocol):
    """Domain probe for loading and writing resource files."""

    def root_not_found(self, root_path: str) -> None:
        """Record that a load root does not exist."""
        ...

    def configs_file_skipped(self, path: str) -> None:
        """Record that a deployment configuration file was skipped."""
        ...

    def delete_file_skipped(self, path: str) -> None:
        """Record that a delete file was skipped."""
        ...

    def resources_loaded(
        self, root_path: str, files: int, policies: int, groups: int, users: int
    ) -> None:
        """Record that resources were loaded from a root."""
        ...

    def file_written(self, path: str, count: int) -> None:
        """Record that a resource file was written."""
        ...

    def file_write_failed(self, path: str, error: str) -> None:
        """Record that a resource file could not be written."""
        ...

    def with_context(self, context: ObservationContext) -> PersistenceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultPersistenceProbe:
    """Default implementation of PersistenceProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultPersistenceProbe:
        """Create a new probe with observation context bound."""
        return DefaultPersistenceProbe(logger=self._logger, context=context)

    def root_not_found(self, root_path: str) -> None:
        self._logger.debug(
            "account_resources_root_not_found",
            root_path=root_path,
            **self._get_context_kwargs(),
        )

    def configs_file_skipped(self, path: str) -> None:
        self._logger.warning(
            "account_resources_configs_file_skipped",
            path=path,
            **self._get_context_kwargs(),
        )

    def delete_file_skipped(self, path: str) -> None:
        self._logger.debug(
            "account_resources_delete_file_skipped",
            path=path,
            **self._get_context_kwargs(),
        )

    def resources_loaded(
        self, root_path: str, files: int, policies: int, groups: int, users: int
    ) -> None:
        self._logger.info(
            "account_resources_loaded",
            root_path=root_path,
            files=files,
            policies=policies,
            groups=groups,
            users=users,
            **self._get_context_kwargs(),
        )

    def file_written(self, path: str, count: int) -> None:
        self._logger.info(
            "account_resources_file_written",
            path=path,
            count=count,
            **self._get_context_kwargs(),
        )

    def file_write_failed(self, path: str, error: str) -> None:
        self._logger.error(
            "account_resources_file_write_failed",
            path=path,
            error=error,
            **self._get_context_kwargs(),
        )

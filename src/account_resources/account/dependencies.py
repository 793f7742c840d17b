"""Dependency composition for the Account bounded context.

Wires the httpx client, the downloader and the YAML writer together from
settings. Configuring log output is left to the host application, which calls
``infrastructure.logging.configure_logging`` once at startup.
"""

from __future__ import annotations

from pathlib import Path

from account.application.downloader import AccountResourceDownloader
from account.application.observability import DefaultDownloaderProbe, DownloaderProbe
from account.domain.features import ResourceFeatures
from account.domain.resources import Resources
from account.infrastructure.http_client import HttpAccountClient, create_http_client
from account.infrastructure.observability import (
    DefaultAccountClientProbe,
    DefaultPersistenceProbe,
    PersistenceProbe,
)
from account.infrastructure.persistence.writer import WriterContext, write
from infrastructure.settings import AccountSettings
from shared_kernel.observability_context import ObservationContext


def get_resource_features(settings: AccountSettings) -> ResourceFeatures:
    """Get the optional resource kinds enabled by the settings."""
    return ResourceFeatures(
        boundaries=settings.boundaries_enabled,
        service_users=settings.service_users_enabled,
    )


async def download_to_folder(
    settings: AccountSettings,
    output_folder: str | Path,
    project_folder: str,
    downloader_probe: DownloaderProbe | None = None,
    persistence_probe: PersistenceProbe | None = None,
) -> Resources:
    """Download the configured account and write it as YAML.

    Args:
        settings: Account settings (account UUID, API URL, token, features).
        output_folder: Folder receiving the project folder.
        project_folder: Name of the project folder the files are written to.
        downloader_probe: Observability probe for the download.
        persistence_probe: Observability probe for the write.

    Returns:
        The downloaded resources, as written.

    Raises:
        DownloadError: If the download fails. Nothing is written.
        PartialWriteError: If one or more files could not be written.
    """
    features = get_resource_features(settings)
    context = ObservationContext(account_uuid=settings.account_uuid).with_project(
        project_folder
    )
    downloader_probe = (downloader_probe or DefaultDownloaderProbe()).with_context(
        context
    )
    persistence_probe = (
        persistence_probe or DefaultPersistenceProbe()
    ).with_context(context)

    async with create_http_client(settings) as http_client:
        client = HttpAccountClient(
            http_client,
            page_size=settings.page_size,
            max_concurrent_requests=settings.max_concurrent_requests,
            probe=DefaultAccountClientProbe().with_context(context),
        )
        downloader = AccountResourceDownloader(
            settings.account_uuid,
            client,
            features=features,
            probe=downloader_probe,
        )
        resources = await downloader.download_resources()

    write(
        WriterContext(output_folder=output_folder, project_folder=project_folder),
        resources,
        features=features,
        probe=persistence_probe,
    )
    return resources

"""Domain-Oriented Observability for the Account application layer."""

from account.application.observability.downloader_probe import (
    DefaultDownloaderProbe,
    DownloaderProbe,
)

__all__ = [
    "DownloaderProbe",
    "DefaultDownloaderProbe",
]

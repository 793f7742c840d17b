"""Application layer for the Account bounded context."""

from account.application.downloader import AccountResourceDownloader

__all__ = [
    "AccountResourceDownloader",
]

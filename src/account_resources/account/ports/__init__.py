"""Ports for the Account bounded context.

Protocols, DTOs and exceptions shared between the application layer and the
infrastructure adapters.
"""

from account.ports.client import AccountClient
from account.ports.exceptions import (
    AccountApiError,
    AccountResourceError,
    DownloadError,
    DuplicateResourceError,
    InvalidResourceError,
    MissingResourceDetailError,
    MixedFileFormatError,
    MixingConfigsError,
    MixingDeleteError,
    PartialWriteError,
    ReferenceIntegrityError,
    ResourceLoadError,
)

__all__ = [
    "AccountApiError",
    "AccountClient",
    "AccountResourceError",
    "DownloadError",
    "DuplicateResourceError",
    "InvalidResourceError",
    "MissingResourceDetailError",
    "MixedFileFormatError",
    "MixingConfigsError",
    "MixingDeleteError",
    "PartialWriteError",
    "ReferenceIntegrityError",
    "ResourceLoadError",
]

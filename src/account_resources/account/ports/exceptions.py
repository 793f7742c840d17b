"""Exceptions for the Account bounded context.

Every failure surfaced by the downloader, the HTTP adapter, the loader or the
writer derives from ``AccountResourceError`` so callers can handle the
whole family at once, or special-case a single kind (for example the
mixed-file-format errors raised by the loader).
"""

from __future__ import annotations


class AccountResourceError(Exception):
    """Base exception for account resource operations."""

    pass


class AccountApiError(AccountResourceError):
    """Raised when the account management API cannot be reached or answers
    with an unexpected status.

    ``status_code`` is ``None`` for transport failures where no response was
    received.
    """

    def __init__(self, status_code: int | None, body: str):
        if status_code is None:
            message = body
        else:
            message = f"(HTTP {status_code}): {body}"
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DownloadError(AccountResourceError):
    """Raised when a download stage fails.

    The message names the operation and the account, user or group the
    failing request was issued for.
    """

    def __init__(self, what: str, subject: str, cause: BaseException | str):
        super().__init__(f"failed to get a list of {what} for {subject}: {cause}")
        self.what = what
        self.subject = subject


class MissingResourceDetailError(DownloadError):
    """Raised when a detail lookup returned nothing for a listed resource.

    The collection lookup succeeded, so a missing policy definition or
    membership record is a data-integrity failure rather than an empty result.
    """

    pass


class ResourceLoadError(AccountResourceError):
    """Base exception for failures while loading persisted resources."""

    pass


class InvalidResourceError(ResourceLoadError):
    """Raised when a persisted resource is missing a required field or has an
    invalid value."""

    pass


class DuplicateResourceError(ResourceLoadError):
    """Raised when the same resource identity is defined more than once."""

    pass


class ReferenceIntegrityError(ResourceLoadError):
    """Raised when a reference does not point at a loaded resource."""

    pass


class MixedFileFormatError(ResourceLoadError):
    """Raised when a file combines account resources with another file format."""

    pass


class MixingConfigsError(MixedFileFormatError):
    """Raised when a file defines both account resources and configs."""

    pass


class MixingDeleteError(MixedFileFormatError):
    """Raised when a file defines both account resources and delete entries."""

    pass


class PartialWriteError(AccountResourceError):
    """Raised after writing when one or more resource files failed.

    Files that could be written are left in place; ``errors`` holds the
    failure for every file that could not.
    """

    def __init__(self, errors: list[Exception]):
        details = "; ".join(str(error) for error in errors)
        super().__init__(f"failed to write {len(errors)} resource file(s): {details}")
        self.errors = errors

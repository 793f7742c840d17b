"""YAML persistence of account resources."""

from account.infrastructure.persistence.loader import (
    has_any_account_key_defined,
    load,
    load_projects,
    validate_references,
)
from account.infrastructure.persistence.writer import WriterContext, write

__all__ = [
    "WriterContext",
    "has_any_account_key_defined",
    "load",
    "load_projects",
    "validate_references",
    "write",
]

"""Observability probes for Account infrastructure adapters."""

from account.infrastructure.observability.account_client_probe import (
    AccountClientProbe,
    DefaultAccountClientProbe,
)
from account.infrastructure.observability.persistence_probe import (
    DefaultPersistenceProbe,
    PersistenceProbe,
)

__all__ = [
    "AccountClientProbe",
    "DefaultAccountClientProbe",
    "DefaultPersistenceProbe",
    "PersistenceProbe",
]

"""Reference value objects for account resources.

Account resources point at each other either by the identifier of another
resource managed in the same resource set, or by the display name of a
resource that already exists on the account and is not managed at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

REFERENCE_TYPE = "reference"


@dataclass(frozen=True)
class Reference:
    """Internal reference to a resource defined in the same resource set."""

    id: str

    def id_or_name(self) -> str:
        return self.id


@dataclass(frozen=True)
class StrReference:
    """Reference to a pre-existing, unmanaged resource by its display name."""

    name: str

    def id_or_name(self) -> str:
        return self.name


Ref: TypeAlias = Reference | StrReference

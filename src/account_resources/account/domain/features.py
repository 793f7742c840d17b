"""Resource kinds that can be switched on or off."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ResourceFeatures:
    """Which optional resource kinds are downloaded, loaded and written.

    Boundaries and service users are newer parts of the account API. They are
    passed explicitly to every component instead of being read from the
    environment, so each component can be exercised with either setting.
    """

    boundaries: bool = False
    service_users: bool = True

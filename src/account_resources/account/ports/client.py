"""Account management API client interface (port).

The downloader depends only on this protocol; the httpx implementation lives
in ``account.infrastructure.http_client`` and tests substitute an
``AsyncMock``.
"""

from __future__ import annotations

from typing import Protocol

from account.ports.dtos import (
    BoundaryDto,
    GroupDto,
    GroupPermissionsDto,
    LevelPolicyBindingsDto,
    ManagementZoneResourceDto,
    PolicyDefinitionDto,
    PolicyOverviewDto,
    ServiceUserDto,
    TenantResourceDto,
    UserDto,
    UserGroupsDto,
)


class AccountClient(Protocol):
    """One coroutine per backend collection of the account management API.

    Collection methods walk every page and return the concatenated items.
    All methods raise ``AccountApiError`` on transport failures and non-2xx
    responses.
    """

    async def get_environments_and_management_zones(
        self, account_uuid: str
    ) -> tuple[list[TenantResourceDto], list[ManagementZoneResourceDto]]: ...

    async def get_boundaries(self, account_uuid: str) -> list[BoundaryDto]: ...

    async def get_policies(self, account_uuid: str) -> list[PolicyOverviewDto]: ...

    async def get_policy_definition(
        self, overview: PolicyOverviewDto
    ) -> PolicyDefinitionDto | None:
        """Fetch the statement of a policy.

        Returns:
            The policy definition, or None if the backend answers 404.
        """
        ...

    async def get_groups(self, account_uuid: str) -> list[GroupDto]: ...

    async def get_permissions_for(
        self, account_uuid: str, group_uuid: str
    ) -> GroupPermissionsDto | None: ...

    async def get_policy_group_bindings(
        self, level_type: str, level_id: str
    ) -> LevelPolicyBindingsDto: ...

    async def get_users(self, account_uuid: str) -> list[UserDto]: ...

    async def get_groups_for_user(
        self, email: str, account_uuid: str
    ) -> UserGroupsDto | None:
        """Fetch the group memberships of a (service) user.

        Returns:
            The memberships, or None if the backend answers 404.
        """
        ...

    async def get_service_users(self, account_uuid: str) -> list[ServiceUserDto]: ...

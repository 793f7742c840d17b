"""httpx implementation of the AccountClient port.

Every backend collection of the account management API maps to one coroutine.
Paginated collections are walked page by page and returned concatenated; the
two singular lookups (policy definition, user memberships) translate 404 into
``None``.
"""

from __future__ import annotations

import asyncio
from typing import Any, TypeVar
from urllib.parse import quote

import httpx

from account.infrastructure.observability.account_client_probe import (
    AccountClientProbe,
    DefaultAccountClientProbe,
)
from account.ports.dtos import (
    BoundariesPageDto,
    BoundaryDto,
    EnvironmentResourcesDto,
    GroupDto,
    GroupListDto,
    GroupPermissionsDto,
    LevelPolicyBindingsDto,
    ManagementZoneResourceDto,
    PagedDto,
    PolicyDefinitionDto,
    PolicyOverviewDto,
    PolicyOverviewListDto,
    ServiceUserDto,
    ServiceUsersPageDto,
    TenantResourceDto,
    UserDto,
    UserGroupsDto,
    UserListDto,
)
from account.ports.exceptions import AccountApiError
from infrastructure.settings import AccountSettings
from infrastructure.version import __version__

MAX_PAGE_SIZE = 100

PageT = TypeVar("PageT", bound=PagedDto)


class HttpAccountClient:
    """AccountClient backed by an ``httpx.AsyncClient``.

    The caller owns the ``httpx.AsyncClient`` (base URL, auth headers,
    timeouts, transport-level retries). This class only adds request
    bounding, pagination and error translation on top of it.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        page_size: int = MAX_PAGE_SIZE,
        max_concurrent_requests: int = 10,
        probe: AccountClientProbe | None = None,
    ):
        self._http_client = http_client
        self._page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        self._semaphore = asyncio.Semaphore(max_concurrent_requests)
        self._probe = probe or DefaultAccountClientProbe()

    async def _get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> Any:
        """Issue one GET request and return the decoded JSON body.

        Raises:
            AccountApiError: On transport failures and non-2xx responses
                (except 404 when ``allow_not_found`` is set).
        """
        async with self._semaphore:
            try:
                response = await self._http_client.get(path, params=params)
            except httpx.HTTPError as e:
                self._probe.request_failed(path=path, reason=repr(e))
                raise AccountApiError(None, repr(e)) from e

        if allow_not_found and response.status_code == httpx.codes.NOT_FOUND:
            self._probe.resource_not_found(path=path)
            return None

        if not response.is_success:
            self._probe.request_failed(
                path=path,
                reason="HTTP error",
                status_code=response.status_code,
            )
            raise AccountApiError(response.status_code, response.text)

        return response.json()

    async def _get_all_pages(
        self, path: str, page_size_param: str, page_model: type[PageT]
    ) -> list[Any]:
        """Walk a paginated collection, one request per page.

        Stops on an empty page, on a page without ``nextPageKey``, or once the
        collected item count reaches the reported ``totalCount``.
        """
        items: list[Any] = []
        page_number = 1
        while True:
            body = await self._get(
                path, params={"page": page_number, page_size_param: self._page_size}
            )
            page = page_model.model_validate(body)
            page_items = page.page_items()
            items.extend(page_items)
            self._probe.page_fetched(
                path=path, page=page_number, item_count=len(page_items)
            )

            if not page_items or page.next_page_key is None:
                break
            if page.total_count is not None and len(items) >= page.total_count:
                break
            page_number += 1

        return items

    async def get_environments_and_management_zones(
        self, account_uuid: str
    ) -> tuple[list[TenantResourceDto], list[ManagementZoneResourceDto]]:
        body = await self._get(f"/env/v2/accounts/{account_uuid}/environments")
        resources = EnvironmentResourcesDto.model_validate(body)
        return resources.tenant_resources, resources.management_zone_resources

    async def get_boundaries(self, account_uuid: str) -> list[BoundaryDto]:
        return await self._get_all_pages(
            f"/iam/v1/repo/account/{account_uuid}/boundaries",
            page_size_param="size",
            page_model=BoundariesPageDto,
        )

    async def get_policies(self, account_uuid: str) -> list[PolicyOverviewDto]:
        body = await self._get(
            f"/iam/v1/repo/account/{account_uuid}/policies/aggregate"
        )
        return PolicyOverviewListDto.model_validate(body).policy_overview_list

    async def get_policy_definition(
        self, overview: PolicyOverviewDto
    ) -> PolicyDefinitionDto | None:
        body = await self._get(
            f"/iam/v1/repo/{overview.level_type}/{overview.level_id}"
            f"/policies/{overview.uuid}",
            allow_not_found=True,
        )
        if body is None:
            return None
        return PolicyDefinitionDto.model_validate(body)

    async def get_groups(self, account_uuid: str) -> list[GroupDto]:
        body = await self._get(f"/iam/v1/accounts/{account_uuid}/groups")
        return GroupListDto.model_validate(body).items

    async def get_permissions_for(
        self, account_uuid: str, group_uuid: str
    ) -> GroupPermissionsDto | None:
        body = await self._get(
            f"/iam/v1/accounts/{account_uuid}/groups/{group_uuid}/permissions"
        )
        return GroupPermissionsDto.model_validate(body)

    async def get_policy_group_bindings(
        self, level_type: str, level_id: str
    ) -> LevelPolicyBindingsDto:
        body = await self._get(f"/iam/v1/repo/{level_type}/{level_id}/bindings")
        return LevelPolicyBindingsDto.model_validate(body)

    async def get_users(self, account_uuid: str) -> list[UserDto]:
        body = await self._get(
            f"/iam/v1/accounts/{account_uuid}/users",
            params={"service-users": "false"},
        )
        return UserListDto.model_validate(body).items

    async def get_groups_for_user(
        self, email: str, account_uuid: str
    ) -> UserGroupsDto | None:
        body = await self._get(
            f"/iam/v1/accounts/{account_uuid}/users/{quote(email, safe='@')}",
            allow_not_found=True,
        )
        if body is None:
            return None
        return UserGroupsDto.model_validate(body)

    async def get_service_users(self, account_uuid: str) -> list[ServiceUserDto]:
        return await self._get_all_pages(
            f"/iam/v1/accounts/{account_uuid}/service-users",
            page_size_param="page-size",
            page_model=ServiceUsersPageDto,
        )


def create_http_client(settings: AccountSettings) -> httpx.AsyncClient:
    """Build the ``httpx.AsyncClient`` used to talk to the account API.

    Args:
        settings: Account settings providing base URL, token and timeout.

    Returns:
        An AsyncClient; the caller is responsible for closing it.
    """
    headers = {"User-Agent": f"account-resources/{__version__}"}
    token = settings.access_token.get_secret_value()
    if token:
        headers["Authorization"] = f"Bearer {token}"

    return httpx.AsyncClient(
        base_url=settings.api_url,
        headers=headers,
        timeout=settings.request_timeout_seconds,
    )

"""Data transfer objects returned by the account management API.

Field names follow the API's camelCase JSON; unknown fields are ignored so
that additions on the backend do not break downloads.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AccountApiModel(BaseModel):
    """Base for every account API DTO."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class PagedDto(AccountApiModel):
    """Base for one page of a paginated collection.

    A page without ``next_page_key`` is the last one; ``total_count``, when
    reported, bounds the walk as well.
    """

    total_count: int | None = None
    next_page_key: str | None = None

    @abstractmethod
    def page_items(self) -> list[Any]:
        """Items carried by this page, in server order."""


class TenantResourceDto(AccountApiModel):
    id: str
    name: str = ""


class ManagementZoneResourceDto(AccountApiModel):
    """A management zone; ``parent`` is the ID of the owning tenant."""

    parent: str
    id: str
    name: str = ""


class EnvironmentResourcesDto(AccountApiModel):
    tenant_resources: list[TenantResourceDto] = Field(default_factory=list)
    management_zone_resources: list[ManagementZoneResourceDto] = Field(
        default_factory=list
    )


class BoundaryDto(AccountApiModel):
    uuid: str
    name: str
    boundary_query: str = ""
    level_type: str = ""
    level_id: str = ""


class BoundariesPageDto(PagedDto):
    content: list[BoundaryDto] = Field(default_factory=list)

    def page_items(self) -> list[BoundaryDto]:
        return self.content


class PolicyOverviewDto(AccountApiModel):
    uuid: str
    name: str
    description: str = ""
    level_type: str = ""
    level_id: str = ""


class PolicyOverviewListDto(AccountApiModel):
    policy_overview_list: list[PolicyOverviewDto] = Field(default_factory=list)


class PolicyDefinitionDto(AccountApiModel):
    uuid: str = ""
    name: str = ""
    description: str = ""
    statement_query: str = ""


class GroupDto(AccountApiModel):
    uuid: str
    name: str
    description: str = ""
    federated_attribute_values: list[str] = Field(default_factory=list)


class GroupListDto(AccountApiModel):
    items: list[GroupDto] = Field(default_factory=list)


class PermissionDto(AccountApiModel):
    """A permission grant; ``scope`` is ``tenant:zone`` for management zones."""

    permission_name: str
    scope: str = ""
    scope_type: str = ""


class GroupPermissionsDto(AccountApiModel):
    group_uuid: str = ""
    permissions: list[PermissionDto] = Field(default_factory=list)


class PolicyBindingDto(AccountApiModel):
    policy_uuid: str
    groups: list[str] = Field(default_factory=list)
    boundaries: list[str] = Field(default_factory=list)


class LevelPolicyBindingsDto(AccountApiModel):
    level_type: str = ""
    level_id: str = ""
    policy_bindings: list[PolicyBindingDto] = Field(default_factory=list)


class UserDto(AccountApiModel):
    uid: str = ""
    email: str


class UserListDto(AccountApiModel):
    items: list[UserDto] = Field(default_factory=list)


class AccountGroupDto(AccountApiModel):
    uuid: str
    group_name: str = ""


class UserGroupsDto(AccountApiModel):
    """Group memberships of a single user or service user."""

    uid: str = ""
    email: str = ""
    groups: list[AccountGroupDto] = Field(default_factory=list)


class ServiceUserDto(AccountApiModel):
    uid: str
    email: str
    name: str
    description: str = ""


class ServiceUsersPageDto(PagedDto):
    results: list[ServiceUserDto] = Field(default_factory=list)

    def page_items(self) -> list[ServiceUserDto]:
        return self.results

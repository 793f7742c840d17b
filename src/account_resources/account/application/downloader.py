"""Download an account's authorization model into the resource domain model.

The download runs in strictly sequential stages because later stages resolve
backend UUIDs against the results of earlier ones (bindings need policies,
boundaries and tenants; users need groups). Inside a stage every per-entity
lookup runs as its own task and the stage only continues once all of them
finished.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine, Iterable
from typing import Any, TypeVar

from account.application.observability import (
    DefaultDownloaderProbe,
    DownloaderProbe,
)
from account.domain.features import ResourceFeatures
from account.domain.references import Ref, Reference, StrReference
from account.domain.resources import (
    POLICY_LEVEL_ACCOUNT,
    POLICY_LEVEL_ENVIRONMENT,
    Account,
    Boundary,
    Environment,
    Group,
    ManagementZone,
    Policy,
    PolicyBinding,
    PolicyLevel,
    PolicyLevelAccount,
    PolicyLevelEnvironment,
    Resources,
    ServiceUser,
    User,
)
from account.ports.client import AccountClient
from account.ports.dtos import (
    GroupDto,
    GroupPermissionsDto,
    LevelPolicyBindingsDto,
    ManagementZoneResourceDto,
    PolicyDefinitionDto,
    PolicyOverviewDto,
    TenantResourceDto,
    UserGroupsDto,
)
from account.ports.exceptions import DownloadError, MissingResourceDetailError
from shared_kernel.identifiers import sanitize

T = TypeVar("T")

SCOPE_ACCOUNT = "account"
SCOPE_TENANT = "tenant"
SCOPE_MANAGEMENT_ZONE = "management-zone"

CUSTOM_POLICY_LEVELS = frozenset({POLICY_LEVEL_ACCOUNT, POLICY_LEVEL_ENVIRONMENT})


class AccountResourceDownloader:
    """Builds a ``Resources`` snapshot of one account.

    The result is all-or-nothing: the first failing request aborts the
    download with a ``DownloadError`` and no partial result is returned.
    """

    def __init__(
        self,
        account_uuid: str,
        client: AccountClient,
        features: ResourceFeatures | None = None,
        probe: DownloaderProbe | None = None,
    ):
        self._account_uuid = account_uuid
        self._client = client
        self._features = features or ResourceFeatures()
        self._probe = probe or DefaultDownloaderProbe()

    async def download_resources(self) -> Resources:
        """Download every resource of the account.

        Returns:
            A freshly built Resources aggregate.

        Raises:
            DownloadError: If any request fails or a listed resource has no
                details.
        """
        self._probe.download_started(self._account_uuid)
        try:
            resources = await self._download()
        except DownloadError as e:
            self._probe.download_failed(self._account_uuid, error=str(e))
            raise

        self._probe.download_completed(
            self._account_uuid,
            policies=len(resources.policies),
            groups=len(resources.groups),
            users=len(resources.users),
            service_users=len(resources.service_users),
            boundaries=len(resources.boundaries),
        )
        return resources

    async def _download(self) -> Resources:
        tenants, zones = await self._fetch(
            "environments and management zones",
            self._client.get_environments_and_management_zones(self._account_uuid),
        )
        self._probe.stage_completed("environments", len(tenants))

        boundaries, boundary_refs = await self._download_boundaries()
        policies, policy_refs = await self._download_policies()
        groups, group_refs = await self._download_groups(
            tenants, zones, policy_refs, boundary_refs
        )
        users = await self._download_users(group_refs)
        service_users = await self._download_service_users(group_refs)

        return Resources(
            policies=policies,
            groups=groups,
            users=users,
            service_users=service_users,
            boundaries=boundaries,
        )

    async def _fetch(
        self,
        what: str,
        request: Coroutine[Any, Any, T],
        subject: str | None = None,
    ) -> T:
        """Await one client call, wrapping any failure into a DownloadError."""
        if subject is None:
            subject = f"account '{self._account_uuid}'"
        try:
            return await request
        except DownloadError:
            raise
        except Exception as e:
            raise DownloadError(what, subject, e) from e

    async def _gather(self, requests: Iterable[Coroutine[Any, Any, T]]) -> list[T]:
        """Run requests concurrently and return their results in input order.

        The first failure cancels the remaining requests and is re-raised.
        """
        try:
            async with asyncio.TaskGroup() as task_group:
                tasks = [task_group.create_task(request) for request in requests]
        except ExceptionGroup as errors:
            raise errors.exceptions[0]
        return [task.result() for task in tasks]

    async def _download_boundaries(
        self,
    ) -> tuple[dict[str, Boundary], dict[str, Ref]]:
        boundaries: dict[str, Boundary] = {}
        refs: dict[str, Ref] = {}
        if not self._features.boundaries:
            return boundaries, refs

        dtos = await self._fetch(
            "boundaries", self._client.get_boundaries(self._account_uuid)
        )
        for dto in dtos:
            boundary_id = sanitize(dto.name)
            boundaries[boundary_id] = Boundary(
                id=boundary_id,
                name=dto.name,
                query=dto.boundary_query,
                origin_object_id=dto.uuid,
            )
            refs[dto.uuid] = Reference(id=boundary_id)

        self._probe.stage_completed("boundaries", len(boundaries))
        return boundaries, refs

    async def _download_policies(self) -> tuple[dict[str, Policy], dict[str, Ref]]:
        overviews = await self._fetch(
            "policies", self._client.get_policies(self._account_uuid)
        )
        custom = [o for o in overviews if o.level_type in CUSTOM_POLICY_LEVELS]
        definitions = await self._gather(
            self._fetch_policy_definition(overview) for overview in custom
        )
        definitions_by_uuid = {
            overview.uuid: definition
            for overview, definition in zip(custom, definitions)
        }

        policies: dict[str, Policy] = {}
        refs: dict[str, Ref] = {}
        for overview in overviews:
            definition = definitions_by_uuid.get(overview.uuid)
            if definition is None:
                # built-in policies can only be bound by name
                refs[overview.uuid] = StrReference(name=overview.name)
                continue

            policy_id = sanitize(overview.name)
            policies[policy_id] = Policy(
                id=policy_id,
                name=overview.name,
                level=self._policy_level(overview),
                description=overview.description,
                policy=definition.statement_query,
                origin_object_id=overview.uuid,
            )
            refs[overview.uuid] = Reference(id=policy_id)

        self._probe.stage_completed("policies", len(policies))
        return policies, refs

    def _policy_level(self, overview: PolicyOverviewDto) -> PolicyLevel:
        if overview.level_type == POLICY_LEVEL_ENVIRONMENT:
            return PolicyLevelEnvironment(environment=overview.level_id)
        return PolicyLevelAccount()

    async def _fetch_policy_definition(
        self, overview: PolicyOverviewDto
    ) -> PolicyDefinitionDto:
        if overview.level_type == POLICY_LEVEL_ACCOUNT and not overview.level_id:
            overview = overview.model_copy(update={"level_id": self._account_uuid})

        subject = f"policy '{overview.name}'"
        definition = await self._fetch(
            "policy definitions",
            self._client.get_policy_definition(overview),
            subject=subject,
        )
        if definition is None:
            raise MissingResourceDetailError(
                "policy definitions", subject, "no policy definition returned"
            )
        return definition

    async def _download_groups(
        self,
        tenants: list[TenantResourceDto],
        zones: list[ManagementZoneResourceDto],
        policy_refs: dict[str, Ref],
        boundary_refs: dict[str, Ref],
    ) -> tuple[dict[str, Group], dict[str, Ref]]:
        levels = [(POLICY_LEVEL_ACCOUNT, self._account_uuid)] + [
            (POLICY_LEVEL_ENVIRONMENT, tenant.id) for tenant in tenants
        ]
        level_bindings = await self._gather(
            self._fetch_bindings(level_type, level_id)
            for level_type, level_id in levels
        )
        account_bindings = level_bindings[0]
        environment_bindings = {
            tenant.id: bindings
            for tenant, bindings in zip(tenants, level_bindings[1:])
        }

        group_dtos = await self._fetch(
            "groups", self._client.get_groups(self._account_uuid)
        )
        permissions = await self._gather(
            self._fetch_permissions(dto) for dto in group_dtos
        )

        builder = _GroupBuilder(
            tenant_ids=[tenant.id for tenant in tenants],
            zone_names={(zone.parent, zone.id): zone.name for zone in zones},
            account_bindings=account_bindings,
            environment_bindings=environment_bindings,
            policy_refs=policy_refs,
            boundary_refs=boundary_refs,
            probe=self._probe,
        )
        groups: dict[str, Group] = {}
        refs: dict[str, Ref] = {}
        for dto, group_permissions in zip(group_dtos, permissions):
            group = builder.build(dto, group_permissions)
            groups[group.id] = group
            refs[dto.uuid] = Reference(id=group.id)

        self._probe.stage_completed("groups", len(groups))
        return groups, refs

    async def _fetch_bindings(
        self, level_type: str, level_id: str
    ) -> LevelPolicyBindingsDto:
        return await self._fetch(
            "policy bindings",
            self._client.get_policy_group_bindings(level_type, level_id),
            subject=f"{level_type} '{level_id}'",
        )

    async def _fetch_permissions(self, group: GroupDto) -> GroupPermissionsDto:
        subject = f"group '{group.name}'"
        permissions = await self._fetch(
            "permissions",
            self._client.get_permissions_for(self._account_uuid, group.uuid),
            subject=subject,
        )
        if permissions is None:
            raise MissingResourceDetailError(
                "permissions", subject, "no permissions returned"
            )
        return permissions

    async def _fetch_memberships(self, email: str) -> UserGroupsDto:
        subject = f"user '{email}'"
        memberships = await self._fetch(
            "bind groups",
            self._client.get_groups_for_user(email, self._account_uuid),
            subject=subject,
        )
        if memberships is None:
            raise MissingResourceDetailError(
                "bind groups", subject, "no group memberships returned"
            )
        return memberships

    @staticmethod
    def _group_refs_of(
        memberships: UserGroupsDto, group_refs: dict[str, Ref]
    ) -> list[Ref]:
        # memberships of groups unknown to this download are dropped
        return [
            group_refs[group.uuid]
            for group in memberships.groups
            if group.uuid in group_refs
        ]

    async def _download_users(self, group_refs: dict[str, Ref]) -> dict[str, User]:
        dtos = await self._fetch("users", self._client.get_users(self._account_uuid))
        memberships = await self._gather(
            self._fetch_memberships(dto.email) for dto in dtos
        )

        users = {
            dto.email: User(
                email=dto.email,
                groups=self._group_refs_of(user_memberships, group_refs),
            )
            for dto, user_memberships in zip(dtos, memberships)
        }
        self._probe.stage_completed("users", len(users))
        return users

    async def _download_service_users(
        self, group_refs: dict[str, Ref]
    ) -> dict[str, ServiceUser]:
        service_users: dict[str, ServiceUser] = {}
        if not self._features.service_users:
            return service_users

        dtos = await self._fetch(
            "service users", self._client.get_service_users(self._account_uuid)
        )
        memberships = await self._gather(
            self._fetch_memberships(dto.email) for dto in dtos
        )

        for dto, user_memberships in zip(dtos, memberships):
            service_user_id = sanitize(dto.name)
            service_users[service_user_id] = ServiceUser(
                id=service_user_id,
                name=dto.name,
                description=dto.description,
                groups=self._group_refs_of(user_memberships, group_refs),
                origin_object_id=dto.uid,
            )

        self._probe.stage_completed("service users", len(service_users))
        return service_users


class _GroupBuilder:
    """Turns a group DTO and its permission grants into a ``Group``."""

    def __init__(
        self,
        tenant_ids: list[str],
        zone_names: dict[tuple[str, str], str],
        account_bindings: LevelPolicyBindingsDto,
        environment_bindings: dict[str, LevelPolicyBindingsDto],
        policy_refs: dict[str, Ref],
        boundary_refs: dict[str, Ref],
        probe: DownloaderProbe,
    ):
        self._tenant_ids = tenant_ids
        self._zone_names = zone_names
        self._account_bindings = account_bindings
        self._environment_bindings = environment_bindings
        self._policy_refs = policy_refs
        self._boundary_refs = boundary_refs
        self._probe = probe

    def build(self, dto: GroupDto, permissions: GroupPermissionsDto) -> Group:
        group_id = sanitize(dto.name)

        account_permissions: list[str] = []
        environment_permissions: dict[str, list[str]] = {}
        zone_permissions: dict[tuple[str, str], list[str]] = {}
        for permission in permissions.permissions:
            name = permission.permission_name
            if permission.scope_type == SCOPE_ACCOUNT:
                account_permissions.append(name)
            elif permission.scope_type == SCOPE_TENANT:
                environment_permissions.setdefault(permission.scope, []).append(name)
            elif permission.scope_type == SCOPE_MANAGEMENT_ZONE:
                environment, _, zone_id = permission.scope.partition(":")
                zone_permissions.setdefault((environment, zone_id), []).append(name)

        account_policies = self._bindings_for(dto.uuid, self._account_bindings)
        account = None
        if account_permissions or account_policies:
            account = Account(
                permissions=account_permissions, policies=account_policies
            )

        return Group(
            id=group_id,
            name=dto.name,
            description=dto.description,
            federated_attribute_values=list(dto.federated_attribute_values),
            account=account,
            environments=self._environments(dto.uuid, environment_permissions),
            management_zones=self._management_zones(group_id, zone_permissions),
            origin_object_id=dto.uuid,
        )

    def _environments(
        self, group_uuid: str, permissions: dict[str, list[str]]
    ) -> list[Environment]:
        environment_ids = list(self._tenant_ids)
        environment_ids += [e for e in permissions if e not in self._tenant_ids]

        environments = []
        for environment_id in environment_ids:
            policies = self._bindings_for(
                group_uuid, self._environment_bindings.get(environment_id)
            )
            environment_permissions = permissions.get(environment_id, [])
            if environment_permissions or policies:
                environments.append(
                    Environment(
                        name=environment_id,
                        permissions=environment_permissions,
                        policies=policies,
                    )
                )
        return environments

    def _management_zones(
        self, group_id: str, permissions: dict[tuple[str, str], list[str]]
    ) -> list[ManagementZone]:
        management_zones = []
        for (environment, zone_id), zone_permissions in permissions.items():
            zone_name = self._zone_names.get((environment, zone_id))
            if zone_name is None:
                self._probe.management_zone_unresolved(group_id, environment, zone_id)
                zone_name = zone_id
            management_zones.append(
                ManagementZone(
                    environment=environment,
                    management_zone=zone_name,
                    permissions=zone_permissions,
                )
            )
        return management_zones

    def _bindings_for(
        self, group_uuid: str, level_bindings: LevelPolicyBindingsDto | None
    ) -> list[PolicyBinding]:
        if level_bindings is None:
            return []

        bindings = []
        for binding in level_bindings.policy_bindings:
            if group_uuid not in binding.groups:
                continue
            policy = self._policy_refs.get(binding.policy_uuid)
            if policy is None:
                continue
            boundaries = [
                self._boundary_refs[uuid]
                for uuid in binding.boundaries
                if uuid in self._boundary_refs
            ]
            bindings.append(PolicyBinding(policy=policy, boundaries=boundaries))
        return bindings

"""Unit tests for AccountResourceDownloader.

The account client is an autospec'd AccountClient whose coroutines answer
from the canned data handed to ``make_client``.
"""

from __future__ import annotations

from unittest.mock import create_autospec

import pytest

from account.application.downloader import AccountResourceDownloader
from account.domain import (
    Account,
    Boundary,
    Environment,
    Group,
    ManagementZone,
    Policy,
    PolicyBinding,
    PolicyLevelAccount,
    PolicyLevelEnvironment,
    Reference,
    ResourceFeatures,
    Resources,
    ServiceUser,
    StrReference,
    User,
)
from account.ports.client import AccountClient
from account.ports.dtos import (
    AccountGroupDto,
    BoundaryDto,
    GroupDto,
    GroupPermissionsDto,
    LevelPolicyBindingsDto,
    ManagementZoneResourceDto,
    PermissionDto,
    PolicyBindingDto,
    PolicyDefinitionDto,
    PolicyOverviewDto,
    ServiceUserDto,
    TenantResourceDto,
    UserDto,
    UserGroupsDto,
)
from account.ports.exceptions import (
    AccountApiError,
    DownloadError,
    MissingResourceDetailError,
)
from shared_kernel.identifiers import sanitize

ACCOUNT = "e34fa4d6-b53a-43e0-9be0-cccca1a4da44"
GROUP_UUID = "27dde8b6-2ed3-48f1-90b5-e4c0eae8b9bd"
SECOND_GROUP_UUID = "3c345885-ff01-428b-ba49-b3381819f6dd"
ACCOUNT_POLICY_UUID = "2ff9314d-3c97-4607-bd49-460a53de1390"
ENVIRONMENT_POLICY_UUID = "bc7df7b7-9387-45ff-974f-56573c072e4c"
GLOBAL_POLICY_UUID = "07beda6d-6a02-4827-9c1c-49037c96f176"
BOUNDARY_UUID = "4c1a8d5e-2f3b-4a6c-9d7e-8f0a1b2c3d4e"


def make_client(
    tenants=(),
    zones=(),
    boundaries=(),
    policies=(),
    definitions=None,
    groups=(),
    permissions=None,
    bindings=None,
    users=(),
    memberships=None,
    service_users=(),
):
    """Build an autospec'd AccountClient answering from canned data.

    ``definitions``, ``permissions`` and ``memberships`` are keyed by policy
    UUID, group UUID and email; a missing key yields an empty detail object
    and the value ``None`` is returned as is.
    """
    definitions = definitions or {}
    permissions = permissions or {}
    bindings = bindings or {}
    memberships = memberships or {}

    client = create_autospec(AccountClient, instance=True)
    client.get_environments_and_management_zones.return_value = (
        list(tenants),
        list(zones),
    )
    client.get_boundaries.return_value = list(boundaries)
    client.get_policies.return_value = list(policies)
    client.get_policy_definition.side_effect = lambda overview: definitions.get(
        overview.uuid, PolicyDefinitionDto()
    )
    client.get_groups.return_value = list(groups)
    client.get_permissions_for.side_effect = (
        lambda account_uuid, group_uuid: permissions.get(
            group_uuid, GroupPermissionsDto()
        )
    )
    client.get_policy_group_bindings.side_effect = (
        lambda level_type, level_id: bindings.get(
            (level_type, level_id), LevelPolicyBindingsDto()
        )
    )
    client.get_users.return_value = list(users)
    client.get_groups_for_user.side_effect = lambda email, account_uuid: (
        memberships.get(email, UserGroupsDto(email=email))
    )
    client.get_service_users.return_value = list(service_users)
    return client


def make_downloader(client, probe, features=None) -> AccountResourceDownloader:
    return AccountResourceDownloader(
        ACCOUNT, client, features=features or ResourceFeatures(), probe=probe
    )


async def download(client, probe, features=None) -> Resources:
    return await make_downloader(client, probe, features).download_resources()


class TestEmptyAccount:
    """Tests for downloading an account without resources."""

    @pytest.mark.asyncio
    async def test_returns_empty_resources(self, mock_downloader_probe):
        client = make_client()

        resources = await download(client, mock_downloader_probe)

        assert resources == Resources.empty()
        mock_downloader_probe.download_started.assert_called_once_with(ACCOUNT)
        mock_downloader_probe.download_completed.assert_called_once()

    @pytest.mark.asyncio
    async def test_disabled_kinds_are_not_requested(self, mock_downloader_probe):
        """Boundaries and service users are skipped when switched off."""
        client = make_client()
        features = ResourceFeatures(boundaries=False, service_users=False)

        await download(client, mock_downloader_probe, features)

        client.get_boundaries.assert_not_called()
        client.get_service_users.assert_not_called()


class TestPolicies:
    """Tests for downloading policies."""

    @pytest.mark.asyncio
    async def test_account_policy(self, mock_downloader_probe):
        """Should materialize an account policy with its statement."""
        client = make_client(
            policies=[
                PolicyOverviewDto(
                    uuid=ACCOUNT_POLICY_UUID,
                    name="ALLOW a:b:c name",
                    description="some description",
                    level_type="account",
                )
            ],
            definitions={
                ACCOUNT_POLICY_UUID: PolicyDefinitionDto(statement_query="ALLOW a:b:c;")
            },
        )

        resources = await download(client, mock_downloader_probe)

        assert resources.policies == {
            "allow-a-b-c-name": Policy(
                id="allow-a-b-c-name",
                name="ALLOW a:b:c name",
                level=PolicyLevelAccount(),
                description="some description",
                policy="ALLOW a:b:c;",
                origin_object_id=ACCOUNT_POLICY_UUID,
            )
        }

    @pytest.mark.asyncio
    async def test_account_policy_definition_is_looked_up_on_the_account(
        self, mock_downloader_probe
    ):
        """Account policies without level ID are fetched at account level."""
        client = make_client(
            policies=[
                PolicyOverviewDto(
                    uuid=ACCOUNT_POLICY_UUID, name="policy", level_type="account"
                )
            ],
        )

        await download(client, mock_downloader_probe)

        overview = client.get_policy_definition.call_args.args[0]
        assert overview.level_id == ACCOUNT

    @pytest.mark.asyncio
    async def test_environment_policy(self, mock_downloader_probe):
        client = make_client(
            policies=[
                PolicyOverviewDto(
                    uuid=ENVIRONMENT_POLICY_UUID,
                    name="test policy - tenant",
                    description="some description",
                    level_type="environment",
                    level_id="abc12345",
                )
            ],
            definitions={
                ENVIRONMENT_POLICY_UUID: PolicyDefinitionDto(
                    name="other name",
                    description="user friendly description",
                    statement_query="THIS IS statement",
                )
            },
        )

        resources = await download(client, mock_downloader_probe)

        assert resources.policies == {
            "test-policy-tenant": Policy(
                id="test-policy-tenant",
                name="test policy - tenant",
                level=PolicyLevelEnvironment(environment="abc12345"),
                description="some description",
                policy="THIS IS statement",
                origin_object_id=ENVIRONMENT_POLICY_UUID,
            )
        }

    @pytest.mark.asyncio
    async def test_global_policies_are_not_materialized(self, mock_downloader_probe):
        """Built-in policies are neither fetched nor part of the result."""
        client = make_client(
            policies=[
                PolicyOverviewDto(
                    uuid=GLOBAL_POLICY_UUID,
                    name="test global policy",
                    level_type="global",
                )
            ],
        )

        resources = await download(client, mock_downloader_probe)

        assert resources.policies == {}
        client.get_policy_definition.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_policy_definition_fails(self, mock_downloader_probe):
        """A custom policy without definition aborts the download."""
        client = make_client(
            policies=[
                PolicyOverviewDto(
                    uuid=ACCOUNT_POLICY_UUID, name="test policy", level_type="account"
                )
            ],
            definitions={ACCOUNT_POLICY_UUID: None},
        )

        with pytest.raises(MissingResourceDetailError) as exc_info:
            await download(client, mock_downloader_probe)

        assert "test policy" in str(exc_info.value)
        mock_downloader_probe.download_failed.assert_called_once()
        mock_downloader_probe.download_completed.assert_not_called()


class TestGroups:
    """Tests for downloading groups with permissions and bindings."""

    @pytest.mark.asyncio
    async def test_empty_group(self, mock_downloader_probe):
        client = make_client(
            groups=[
                GroupDto(
                    uuid=GROUP_UUID,
                    name="test group",
                    federated_attribute_values=["firstName", "memberOf"],
                )
            ]
        )

        resources = await download(client, mock_downloader_probe)

        assert resources.groups == {
            "test-group": Group(
                id="test-group",
                name="test group",
                federated_attribute_values=["firstName", "memberOf"],
                origin_object_id=GROUP_UUID,
            )
        }

    @pytest.mark.asyncio
    async def test_groups_with_policies(self, mock_downloader_probe):
        """Bindings at account and environment level become group policies."""
        client = make_client(
            tenants=[TenantResourceDto(id="abc12345")],
            policies=[
                PolicyOverviewDto(
                    uuid=ACCOUNT_POLICY_UUID,
                    name="account policy",
                    level_type="account",
                    level_id=ACCOUNT,
                ),
                PolicyOverviewDto(
                    uuid=ENVIRONMENT_POLICY_UUID,
                    name="environment policy",
                    level_type="environment",
                    level_id="abc12345",
                ),
                PolicyOverviewDto(
                    uuid=GLOBAL_POLICY_UUID,
                    name="Environment role - Viewer",
                    level_type="global",
                ),
            ],
            groups=[
                GroupDto(uuid=GROUP_UUID, name="test group"),
                GroupDto(uuid=SECOND_GROUP_UUID, name="second test group"),
            ],
            bindings={
                ("account", ACCOUNT): LevelPolicyBindingsDto(
                    policy_bindings=[
                        PolicyBindingDto(
                            policy_uuid=ACCOUNT_POLICY_UUID,
                            groups=[GROUP_UUID, SECOND_GROUP_UUID],
                        ),
                        PolicyBindingDto(
                            policy_uuid=GLOBAL_POLICY_UUID,
                            groups=[SECOND_GROUP_UUID],
                        ),
                    ]
                ),
                ("environment", "abc12345"): LevelPolicyBindingsDto(
                    policy_bindings=[
                        PolicyBindingDto(
                            policy_uuid=ENVIRONMENT_POLICY_UUID, groups=[GROUP_UUID]
                        )
                    ]
                ),
            },
        )

        resources = await download(client, mock_downloader_probe)

        assert resources.groups["test-group"].account == Account(
            policies=[PolicyBinding(policy=Reference(id="account-policy"))]
        )
        assert resources.groups["test-group"].environments == [
            Environment(
                name="abc12345",
                policies=[PolicyBinding(policy=Reference(id="environment-policy"))],
            )
        ]
        assert resources.groups["second-test-group"].account == Account(
            policies=[
                PolicyBinding(policy=Reference(id="account-policy")),
                PolicyBinding(policy=StrReference(name="Environment role - Viewer")),
            ]
        )
        assert resources.groups["second-test-group"].environments == []

    @pytest.mark.asyncio
    async def test_groups_with_permissions(self, mock_downloader_probe):
        """Permissions are bucketed by account, tenant and management zone."""
        client = make_client(
            tenants=[TenantResourceDto(id="abc12345", name="tenant1")],
            zones=[
                ManagementZoneResourceDto(
                    parent="abc12345", id="2698219524301731104", name="managementZone"
                )
            ],
            groups=[
                GroupDto(uuid=GROUP_UUID, name="test group"),
                GroupDto(uuid=SECOND_GROUP_UUID, name="second test group"),
            ],
            permissions={
                GROUP_UUID: GroupPermissionsDto(
                    permissions=[
                        PermissionDto(
                            permission_name="account-viewer",
                            scope=ACCOUNT,
                            scope_type="account",
                        ),
                        PermissionDto(
                            permission_name="account-editor",
                            scope=ACCOUNT,
                            scope_type="account",
                        ),
                        PermissionDto(
                            permission_name="tenant-logviewer",
                            scope="abc12345",
                            scope_type="tenant",
                        ),
                        PermissionDto(
                            permission_name="tenant-viewer",
                            scope="abc12345",
                            scope_type="tenant",
                        ),
                    ]
                ),
                SECOND_GROUP_UUID: GroupPermissionsDto(
                    permissions=[
                        PermissionDto(
                            permission_name="account-viewer",
                            scope=ACCOUNT,
                            scope_type="account",
                        ),
                        PermissionDto(
                            permission_name="tenant-view-security-problems",
                            scope="abc12345:2698219524301731104",
                            scope_type="management-zone",
                        ),
                        PermissionDto(
                            permission_name="tenant-viewer",
                            scope="abc12345:2698219524301731104",
                            scope_type="management-zone",
                        ),
                    ]
                ),
            },
        )

        resources = await download(client, mock_downloader_probe)

        assert resources.groups == {
            "test-group": Group(
                id="test-group",
                name="test group",
                account=Account(permissions=["account-viewer", "account-editor"]),
                environments=[
                    Environment(
                        name="abc12345",
                        permissions=["tenant-logviewer", "tenant-viewer"],
                    )
                ],
                origin_object_id=GROUP_UUID,
            ),
            "second-test-group": Group(
                id="second-test-group",
                name="second test group",
                account=Account(permissions=["account-viewer"]),
                management_zones=[
                    ManagementZone(
                        environment="abc12345",
                        management_zone="managementZone",
                        permissions=["tenant-view-security-problems", "tenant-viewer"],
                    )
                ],
                origin_object_id=SECOND_GROUP_UUID,
            ),
        }
        mock_downloader_probe.management_zone_unresolved.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_management_zone_keeps_raw_id(self, mock_downloader_probe):
        """A zone missing from the zone list is kept by ID and reported."""
        client = make_client(
            tenants=[TenantResourceDto(id="abc12345")],
            zones=[ManagementZoneResourceDto(parent="other", id="42", name="Elsewhere")],
            groups=[GroupDto(uuid=GROUP_UUID, name="test group")],
            permissions={
                GROUP_UUID: GroupPermissionsDto(
                    permissions=[
                        PermissionDto(
                            permission_name="tenant-viewer",
                            scope="abc12345:42",
                            scope_type="management-zone",
                        )
                    ]
                )
            },
        )

        resources = await download(client, mock_downloader_probe)

        assert resources.groups["test-group"].management_zones == [
            ManagementZone(
                environment="abc12345",
                management_zone="42",
                permissions=["tenant-viewer"],
            )
        ]
        mock_downloader_probe.management_zone_unresolved.assert_called_once_with(
            "test-group", "abc12345", "42"
        )

    @pytest.mark.asyncio
    async def test_missing_permissions_fail(self, mock_downloader_probe):
        client = make_client(
            groups=[GroupDto(uuid=GROUP_UUID, name="test group")],
            permissions={GROUP_UUID: None},
        )

        with pytest.raises(MissingResourceDetailError) as exc_info:
            await download(client, mock_downloader_probe)

        assert "group 'test group'" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_bindings_are_fetched_per_tenant(self, mock_downloader_probe):
        client = make_client(
            tenants=[TenantResourceDto(id="abc12345"), TenantResourceDto(id="xyz98765")]
        )

        await download(client, mock_downloader_probe)

        levels = {call.args for call in client.get_policy_group_bindings.call_args_list}
        assert levels == {
            ("account", ACCOUNT),
            ("environment", "abc12345"),
            ("environment", "xyz98765"),
        }


class TestBoundaries:
    """Tests for downloading boundaries."""

    @pytest.mark.asyncio
    async def test_boundaries_are_referenced_from_bindings(self, mock_downloader_probe):
        client = make_client(
            boundaries=[
                BoundaryDto(
                    uuid=BOUNDARY_UUID,
                    name="Production only",
                    boundary_query='environment:management-zone IN ("Production");',
                )
            ],
            policies=[
                PolicyOverviewDto(
                    uuid=ACCOUNT_POLICY_UUID,
                    name="account policy",
                    level_type="account",
                    level_id=ACCOUNT,
                )
            ],
            groups=[GroupDto(uuid=GROUP_UUID, name="test group")],
            bindings={
                ("account", ACCOUNT): LevelPolicyBindingsDto(
                    policy_bindings=[
                        PolicyBindingDto(
                            policy_uuid=ACCOUNT_POLICY_UUID,
                            groups=[GROUP_UUID],
                            boundaries=[BOUNDARY_UUID, "unknown-boundary"],
                        )
                    ]
                )
            },
        )
        features = ResourceFeatures(boundaries=True)

        resources = await download(client, mock_downloader_probe, features)

        assert resources.boundaries == {
            "production-only": Boundary(
                id="production-only",
                name="Production only",
                query='environment:management-zone IN ("Production");',
                origin_object_id=BOUNDARY_UUID,
            )
        }
        assert resources.groups["test-group"].account == Account(
            policies=[
                PolicyBinding(
                    policy=Reference(id="account-policy"),
                    boundaries=[Reference(id="production-only")],
                )
            ]
        )


class TestUsers:
    """Tests for downloading users and service users."""

    @pytest.mark.asyncio
    async def test_only_user(self, mock_downloader_probe):
        client = make_client(users=[UserDto(email="usert@some.org")])

        resources = await download(client, mock_downloader_probe)

        assert resources.users == {"usert@some.org": User(email="usert@some.org")}

    @pytest.mark.asyncio
    async def test_user_with_groups(self, mock_downloader_probe):
        """Known groups become references, unknown ones are dropped."""
        client = make_client(
            groups=[GroupDto(uuid=GROUP_UUID, name="test group")],
            users=[UserDto(email="usert@some.org")],
            memberships={
                "usert@some.org": UserGroupsDto(
                    email="usert@some.org",
                    groups=[
                        AccountGroupDto(uuid="not-downloaded"),
                        AccountGroupDto(uuid=GROUP_UUID),
                    ],
                )
            },
        )

        resources = await download(client, mock_downloader_probe)

        assert resources.users == {
            "usert@some.org": User(
                email="usert@some.org", groups=[Reference(id="test-group")]
            )
        }

    @pytest.mark.asyncio
    async def test_missing_user_memberships_fail(self, mock_downloader_probe):
        client = make_client(
            users=[UserDto(email="usert@some.org")],
            memberships={"usert@some.org": None},
        )

        with pytest.raises(MissingResourceDetailError) as exc_info:
            await download(client, mock_downloader_probe)

        assert "user 'usert@some.org'" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_service_users(self, mock_downloader_probe):
        """Service users are keyed by sanitized name and looked up by email."""
        client = make_client(
            groups=[GroupDto(uuid=GROUP_UUID, name="test group")],
            service_users=[
                ServiceUserDto(
                    uid="5e7a3c1d-0000-4000-8000-000000000001",
                    email="5e7a3c1d@service.example.com",
                    name="CI Bot",
                    description="deploys things",
                )
            ],
            memberships={
                "5e7a3c1d@service.example.com": UserGroupsDto(
                    groups=[AccountGroupDto(uuid=GROUP_UUID)]
                )
            },
        )

        resources = await download(client, mock_downloader_probe)

        assert resources.service_users == {
            "ci-bot": ServiceUser(
                id="ci-bot",
                name="CI Bot",
                description="deploys things",
                groups=[Reference(id="test-group")],
                origin_object_id="5e7a3c1d-0000-4000-8000-000000000001",
            )
        }
        client.get_groups_for_user.assert_called_once_with(
            "5e7a3c1d@service.example.com", ACCOUNT
        )


class TestErrorHandling:
    """Tests for wrapping client errors."""

    @pytest.mark.parametrize(
        ("method", "expected_message"),
        [
            (
                "get_environments_and_management_zones",
                "failed to get a list of environments and management zones "
                f"for account '{ACCOUNT}'",
            ),
            ("get_policies", f"failed to get a list of policies for account '{ACCOUNT}'"),
            ("get_groups", f"failed to get a list of groups for account '{ACCOUNT}'"),
            ("get_users", f"failed to get a list of users for account '{ACCOUNT}'"),
            (
                "get_groups_for_user",
                "failed to get a list of bind groups for user 'test.user@some.org'",
            ),
        ],
    )
    @pytest.mark.asyncio
    async def test_client_errors_are_wrapped(
        self, mock_downloader_probe, method, expected_message
    ):
        """Errors keep the original message and name the failed operation."""
        client = make_client(users=[UserDto(email="test.user@some.org")])
        given = AccountApiError(500, "given error")
        getattr(client, method).side_effect = given

        with pytest.raises(DownloadError) as exc_info:
            await download(client, mock_downloader_probe)

        assert expected_message in str(exc_info.value)
        assert "given error" in str(exc_info.value)
        assert exc_info.value.__cause__ is given
        mock_downloader_probe.download_failed.assert_called_once()

    @pytest.mark.asyncio
    async def test_first_failing_worker_fails_the_stage(self, mock_downloader_probe):
        """One failing membership lookup fails the whole download."""
        client = make_client(
            users=[UserDto(email=f"user{i}@some.org") for i in range(5)],
        )

        def memberships(email, account_uuid):
            if email == "user3@some.org":
                raise AccountApiError(503, "unavailable")
            return UserGroupsDto(email=email)

        client.get_groups_for_user.side_effect = memberships

        with pytest.raises(DownloadError) as exc_info:
            await download(client, mock_downloader_probe)

        assert "user 'user3@some.org'" in str(exc_info.value)

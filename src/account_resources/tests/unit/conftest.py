"""Unit test fixtures with mocked dependencies."""

from unittest.mock import create_autospec

import pytest

from account.application.observability import DownloaderProbe
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
from account.infrastructure.observability import AccountClientProbe, PersistenceProbe


@pytest.fixture
def mock_downloader_probe():
    """Create mock downloader probe."""
    return create_autospec(DownloaderProbe, instance=True)


@pytest.fixture
def mock_client_probe():
    """Create mock account client probe."""
    return create_autospec(AccountClientProbe, instance=True)


@pytest.fixture
def mock_persistence_probe():
    """Create mock persistence probe."""
    return create_autospec(PersistenceProbe, instance=True)


@pytest.fixture
def all_features() -> ResourceFeatures:
    """Enable every optional resource kind."""
    return ResourceFeatures(boundaries=True, service_users=True)


@pytest.fixture
def sample_resources() -> Resources:
    """Provide a resource set using every kind of resource and reference."""
    return Resources(
        policies={
            "account-policy": Policy(
                id="account-policy",
                name="Account policy",
                level=PolicyLevelAccount(),
                description="Grants account access",
                policy="ALLOW account:users:read;",
                origin_object_id="2ff9314d-3c97-4607-bd49-460a53de1390",
            ),
            "environment-policy": Policy(
                id="environment-policy",
                name="Environment policy",
                level=PolicyLevelEnvironment(environment="abc12345"),
                policy="ALLOW settings:objects:read;",
            ),
        },
        groups={
            "operators": Group(
                id="operators",
                name="Operators",
                description="On-call operators",
                federated_attribute_values=["memberOf"],
                account=Account(
                    permissions=["account-viewer"],
                    policies=[
                        PolicyBinding(policy=Reference(id="account-policy")),
                        PolicyBinding(
                            policy=StrReference(name="Environment role - Viewer"),
                            boundaries=[Reference(id="production-only")],
                        ),
                    ],
                ),
                environments=[
                    Environment(
                        name="abc12345",
                        permissions=["tenant-viewer"],
                        policies=[
                            PolicyBinding(policy=Reference(id="environment-policy"))
                        ],
                    )
                ],
                management_zones=[
                    ManagementZone(
                        environment="abc12345",
                        management_zone="Payments",
                        permissions=["tenant-viewer"],
                    )
                ],
                origin_object_id="27dde8b6-2ed3-48f1-90b5-e4c0eae8b9bd",
            ),
        },
        users={
            "jane.doe@example.com": User(
                email="jane.doe@example.com",
                groups=[Reference(id="operators"), StrReference(name="Admins")],
            ),
        },
        service_users={
            "ci-bot": ServiceUser(
                id="ci-bot",
                name="CI bot",
                description="Pipeline deployments",
                groups=[Reference(id="operators")],
                origin_object_id="6c4e6f61-9a3c-4d44-8a3f-6a0a1c2b3d4e",
            ),
        },
        boundaries={
            "production-only": Boundary(
                id="production-only",
                name="Production only",
                query='environment:management-zone IN ("Production");',
                origin_object_id="4c1a8d5e-2f3b-4a6c-9d7e-8f0a1b2c3d4e",
            ),
        },
    )

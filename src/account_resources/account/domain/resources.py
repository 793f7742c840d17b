"""In-memory model of an account's authorization resources.

Both the downloader and the persistence loader produce a ``Resources``
aggregate; the writer consumes one. Keys of every mapping are the identity of
the resource: the sanitized ID for policies, groups, service users and
boundaries, and the email address for users.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TypeAlias

from account.domain.references import Ref

PolicyId: TypeAlias = str
GroupId: TypeAlias = str
UserId: TypeAlias = str
ServiceUserId: TypeAlias = str
BoundaryId: TypeAlias = str

POLICY_LEVEL_ACCOUNT = "account"
POLICY_LEVEL_ENVIRONMENT = "environment"


@dataclass(frozen=True)
class PolicyLevelAccount:
    """Policy applies to the whole account."""

    type: str = POLICY_LEVEL_ACCOUNT


@dataclass(frozen=True)
class PolicyLevelEnvironment:
    """Policy applies to a single environment (tenant)."""

    environment: str
    type: str = POLICY_LEVEL_ENVIRONMENT


PolicyLevel: TypeAlias = PolicyLevelAccount | PolicyLevelEnvironment


@dataclass
class Policy:
    id: PolicyId
    name: str
    level: PolicyLevel
    policy: str
    description: str = ""
    origin_object_id: str = ""


@dataclass
class PolicyBinding:
    """A policy granted to a group, optionally narrowed by boundaries."""

    policy: Ref
    boundaries: list[Ref] = field(default_factory=list)


@dataclass
class Account:
    """Account-wide permissions and policies of a group."""

    permissions: list[str] = field(default_factory=list)
    policies: list[PolicyBinding] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.permissions and not self.policies


@dataclass
class Environment:
    """Permissions and policies of a group within one environment."""

    name: str
    permissions: list[str] = field(default_factory=list)
    policies: list[PolicyBinding] = field(default_factory=list)


@dataclass
class ManagementZone:
    """Permissions of a group within one management zone of an environment.

    Policies cannot be bound at management zone granularity.
    """

    environment: str
    management_zone: str
    permissions: list[str] = field(default_factory=list)


@dataclass
class Group:
    id: GroupId
    name: str
    description: str = ""
    federated_attribute_values: list[str] = field(default_factory=list)
    account: Account | None = None
    environments: list[Environment] = field(default_factory=list)
    management_zones: list[ManagementZone] = field(default_factory=list)
    origin_object_id: str = ""


@dataclass
class User:
    email: UserId
    groups: list[Ref] = field(default_factory=list)


@dataclass
class ServiceUser:
    """A non-human account user.

    Display names of service users are not unique on the backend, so the
    identity used here is the sanitized name while ``origin_object_id`` ties the
    resource to one specific backend object.
    """

    id: ServiceUserId
    name: str
    description: str = ""
    groups: list[Ref] = field(default_factory=list)
    origin_object_id: str = ""


@dataclass
class Boundary:
    id: BoundaryId
    name: str
    query: str
    origin_object_id: str = ""


@dataclass
class Resources:
    """Aggregate root holding every account resource, keyed by identity."""

    policies: dict[PolicyId, Policy] = field(default_factory=dict)
    groups: dict[GroupId, Group] = field(default_factory=dict)
    users: dict[UserId, User] = field(default_factory=dict)
    service_users: dict[ServiceUserId, ServiceUser] = field(default_factory=dict)
    boundaries: dict[BoundaryId, Boundary] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> Resources:
        return cls()

    def is_empty(self) -> bool:
        return not (
            self.policies
            or self.groups
            or self.users
            or self.service_users
            or self.boundaries
        )

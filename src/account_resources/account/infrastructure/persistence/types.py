"""On-disk shape of account resource files.

These pydantic models mirror the YAML documents one to one (camelCase keys
via aliases). The writer dumps them and prunes empty optional fields from
the output; the loader validates raw YAML into them after its own
required-field checks.
"""

from __future__ import annotations

from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, model_validator

KEY_POLICIES = "policies"
KEY_GROUPS = "groups"
KEY_USERS = "users"
KEY_SERVICE_USERS = "service-users"
KEY_BOUNDARIES = "boundaries"

KEY_CONFIGS = "configs"
KEY_DELETE = "delete"

ACCOUNT_KEYS = (
    KEY_USERS,
    KEY_SERVICE_USERS,
    KEY_GROUPS,
    KEY_POLICIES,
    KEY_BOUNDARIES,
)

FILE_POLICIES = "policies.yaml"
FILE_GROUPS = "groups.yaml"
FILE_USERS = "users.yaml"
FILE_SERVICE_USERS = "service-users.yaml"
FILE_BOUNDARIES = "boundaries.yaml"


class PersistedModel(BaseModel):
    """Base for persisted models.

    Explicit ``null`` values are treated like absent keys so that an empty
    YAML key loads the same as an omitted one. Unquoted numeric scalars such
    as a numeric ``originObjectId`` load as strings.
    """

    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_null_values(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class PersistedReference(PersistedModel):
    """``{type: reference, id: ...}`` pointing at a resource in the same set."""

    type: Literal["reference"]
    id: str


PersistedRef: TypeAlias = str | PersistedReference


class PersistedPolicyBinding(PersistedModel):
    """``{policy: <ref>, boundaries: [<ref>, ...]}``."""

    policy: PersistedRef
    boundaries: list[PersistedRef] = Field(default_factory=list)


PersistedBindingEntry: TypeAlias = str | PersistedReference | PersistedPolicyBinding


class PersistedPolicyLevel(PersistedModel):
    type: str
    environment: str = ""


class PersistedPolicy(PersistedModel):
    id: str
    name: str
    level: PersistedPolicyLevel
    description: str = ""
    policy: str
    origin_object_id: str = Field(default="", alias="originObjectId")


class PersistedAccount(PersistedModel):
    permissions: list[str] = Field(default_factory=list)
    policies: list[PersistedBindingEntry] = Field(default_factory=list)


class PersistedEnvironment(PersistedModel):
    environment: str
    permissions: list[str] = Field(default_factory=list)
    policies: list[PersistedBindingEntry] = Field(default_factory=list)


class PersistedManagementZone(PersistedModel):
    environment: str
    management_zone: str = Field(alias="managementZone")
    permissions: list[str] = Field(default_factory=list)


class PersistedGroup(PersistedModel):
    id: str
    name: str
    description: str = ""
    federated_attribute_values: list[str] = Field(
        default_factory=list, alias="federatedAttributeValues"
    )
    account: PersistedAccount | None = None
    environments: list[PersistedEnvironment] = Field(default_factory=list)
    management_zones: list[PersistedManagementZone] = Field(
        default_factory=list, alias="managementZones"
    )
    origin_object_id: str = Field(default="", alias="originObjectId")


class PersistedUser(PersistedModel):
    email: str
    groups: list[PersistedRef] = Field(default_factory=list)


class PersistedServiceUser(PersistedModel):
    name: str
    description: str = ""
    groups: list[PersistedRef] = Field(default_factory=list)
    origin_object_id: str = Field(default="", alias="originObjectId")


class PersistedBoundary(PersistedModel):
    id: str
    name: str
    query: str
    origin_object_id: str = Field(default="", alias="originObjectId")


class PersistedResourceFile(PersistedModel):
    """One account resource YAML document."""

    policies: list[PersistedPolicy] = Field(default_factory=list)
    groups: list[PersistedGroup] = Field(default_factory=list)
    users: list[PersistedUser] = Field(default_factory=list)
    service_users: list[PersistedServiceUser] = Field(
        default_factory=list, alias=KEY_SERVICE_USERS
    )
    boundaries: list[PersistedBoundary] = Field(default_factory=list)

"""Account domain module.

Contains the reference value objects and the resource model of the Account
bounded context.
"""

from account.domain.features import ResourceFeatures
from account.domain.references import REFERENCE_TYPE, Ref, Reference, StrReference
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

__all__ = [
    "POLICY_LEVEL_ACCOUNT",
    "POLICY_LEVEL_ENVIRONMENT",
    "REFERENCE_TYPE",
    "Account",
    "Boundary",
    "Environment",
    "Group",
    "ManagementZone",
    "Policy",
    "PolicyBinding",
    "PolicyLevel",
    "PolicyLevelAccount",
    "PolicyLevelEnvironment",
    "Ref",
    "Reference",
    "ResourceFeatures",
    "Resources",
    "ServiceUser",
    "StrReference",
    "User",
]

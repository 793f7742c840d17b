"""Write account resources to YAML files.

One file per resource kind is written into ``<output_folder>/<project_folder>``.
Output is fully deterministic: entities are sorted by identity, nested lists
by their natural key, and empty optional fields are left out so that a
written tree loads back into the same resources.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from account.domain.features import ResourceFeatures
from account.domain.references import Ref, Reference
from account.domain.resources import (
    Account,
    Boundary,
    Group,
    Policy,
    PolicyBinding,
    Resources,
    ServiceUser,
    User,
)
from account.infrastructure.observability.persistence_probe import (
    DefaultPersistenceProbe,
    PersistenceProbe,
)
from account.infrastructure.persistence.types import (
    FILE_BOUNDARIES,
    FILE_GROUPS,
    FILE_POLICIES,
    FILE_SERVICE_USERS,
    FILE_USERS,
    KEY_BOUNDARIES,
    KEY_GROUPS,
    KEY_POLICIES,
    KEY_SERVICE_USERS,
    KEY_USERS,
    PersistedAccount,
    PersistedBindingEntry,
    PersistedBoundary,
    PersistedEnvironment,
    PersistedGroup,
    PersistedManagementZone,
    PersistedModel,
    PersistedPolicy,
    PersistedPolicyBinding,
    PersistedPolicyLevel,
    PersistedRef,
    PersistedReference,
    PersistedServiceUser,
    PersistedUser,
)
from account.ports.exceptions import PartialWriteError


@dataclass(frozen=True)
class WriterContext:
    """Target location of a write: ``<output_folder>/<project_folder>``."""

    output_folder: Path | str
    project_folder: str

    @property
    def target_folder(self) -> Path:
        return Path(self.output_folder).absolute() / self.project_folder


def write(
    context: WriterContext,
    resources: Resources,
    features: ResourceFeatures | None = None,
    probe: PersistenceProbe | None = None,
) -> None:
    """Persist resources as YAML files.

    Collections without entries produce no file. A failure writing one file
    does not stop the remaining files from being written.

    Raises:
        PartialWriteError: After all files were attempted, if any failed.
    """
    features = features or ResourceFeatures()
    probe = probe or DefaultPersistenceProbe()
    target = context.target_folder

    documents: list[tuple[str, str, list[PersistedModel]]] = [
        (FILE_POLICIES, KEY_POLICIES, _sorted_values(resources.policies, _to_policy)),
        (FILE_GROUPS, KEY_GROUPS, _sorted_values(resources.groups, _to_group)),
        (FILE_USERS, KEY_USERS, _sorted_values(resources.users, _to_user)),
    ]
    if features.service_users:
        documents.append(
            (
                FILE_SERVICE_USERS,
                KEY_SERVICE_USERS,
                _sorted_values(resources.service_users, _to_service_user),
            )
        )
    if features.boundaries:
        documents.append(
            (
                FILE_BOUNDARIES,
                KEY_BOUNDARIES,
                _sorted_values(resources.boundaries, _to_boundary),
            )
        )

    errors: list[Exception] = []
    for file_name, key, entries in documents:
        if not entries:
            continue
        path = target / file_name
        try:
            _write_document(path, key, entries)
        except (OSError, yaml.YAMLError) as e:
            probe.file_write_failed(str(path), error=str(e))
            errors.append(e)
            continue
        probe.file_written(str(path), count=len(entries))

    if errors:
        raise PartialWriteError(errors)


def _write_document(path: Path, key: str, entries: list[PersistedModel]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    document = {
        key: [_omit_empty(entry.model_dump(by_alias=True)) for entry in entries]
    }
    content = yaml.safe_dump(
        document, sort_keys=False, allow_unicode=True, default_flow_style=False
    )
    path.write_text(content, encoding="utf-8")


def _omit_empty(value: Any) -> Any:
    """Drop empty strings, lists, mappings and ``None`` at every depth."""
    if isinstance(value, dict):
        pruned = {key: _omit_empty(item) for key, item in value.items()}
        return {
            key: item
            for key, item in pruned.items()
            if item not in ("", [], {}, None)
        }
    if isinstance(value, list):
        return [_omit_empty(item) for item in value]
    return value


def _sorted_values(
    items: dict[str, Any], convert: Callable[[Any], PersistedModel]
) -> list[PersistedModel]:
    return [convert(items[key]) for key in sorted(items)]


def _to_ref(ref: Ref) -> PersistedRef:
    if isinstance(ref, Reference):
        return PersistedReference(type="reference", id=ref.id)
    return ref.name


def _ref_sort_key(ref: Ref) -> tuple[str, bool]:
    # A reference and a string reference may share a value
    return ref.id_or_name(), not isinstance(ref, Reference)


def _sorted_refs(refs: list[Ref]) -> list[PersistedRef]:
    return [_to_ref(ref) for ref in sorted(refs, key=_ref_sort_key)]


def _to_binding(binding: PolicyBinding) -> PersistedBindingEntry:
    if not binding.boundaries:
        return _to_ref(binding.policy)
    return PersistedPolicyBinding(
        policy=_to_ref(binding.policy),
        boundaries=_sorted_refs(binding.boundaries),
    )


def _sorted_bindings(bindings: list[PolicyBinding]) -> list[PersistedBindingEntry]:
    ordered = sorted(
        bindings,
        key=lambda b: (
            _ref_sort_key(b.policy),
            sorted(_ref_sort_key(boundary) for boundary in b.boundaries),
        ),
    )
    return [_to_binding(binding) for binding in ordered]


def _to_policy(policy: Policy) -> PersistedPolicy:
    return PersistedPolicy(
        id=policy.id,
        name=policy.name,
        level=PersistedPolicyLevel(
            type=policy.level.type,
            environment=getattr(policy.level, "environment", ""),
        ),
        description=policy.description,
        policy=policy.policy,
        origin_object_id=policy.origin_object_id,
    )


def _to_account(account: Account | None) -> PersistedAccount | None:
    if account is None or account.is_empty():
        return None
    return PersistedAccount(
        permissions=sorted(account.permissions),
        policies=_sorted_bindings(account.policies),
    )


def _to_group(group: Group) -> PersistedGroup:
    return PersistedGroup(
        id=group.id,
        name=group.name,
        description=group.description,
        federated_attribute_values=list(group.federated_attribute_values),
        account=_to_account(group.account),
        environments=[
            PersistedEnvironment(
                environment=environment.name,
                permissions=sorted(environment.permissions),
                policies=_sorted_bindings(environment.policies),
            )
            for environment in sorted(group.environments, key=lambda e: e.name)
        ],
        management_zones=[
            PersistedManagementZone(
                environment=zone.environment,
                management_zone=zone.management_zone,
                permissions=sorted(zone.permissions),
            )
            for zone in sorted(
                group.management_zones,
                key=lambda z: (z.environment, z.management_zone),
            )
        ],
        origin_object_id=group.origin_object_id,
    )


def _to_user(user: User) -> PersistedUser:
    return PersistedUser(email=user.email, groups=_sorted_refs(user.groups))


def _to_service_user(service_user: ServiceUser) -> PersistedServiceUser:
    return PersistedServiceUser(
        name=service_user.name,
        description=service_user.description,
        groups=_sorted_refs(service_user.groups),
        origin_object_id=service_user.origin_object_id,
    )


def _to_boundary(boundary: Boundary) -> PersistedBoundary:
    return PersistedBoundary(
        id=boundary.id,
        name=boundary.name,
        query=boundary.query,
        origin_object_id=boundary.origin_object_id,
    )

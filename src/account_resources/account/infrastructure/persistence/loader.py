"""Load account resources from YAML files.

Every ``*.yaml``/``*.yml`` file below a root path is read and merged into a
single ``Resources`` aggregate:

1. Files holding deployment configs (``configs``) or delete entries
   (``delete``) are skipped, unless they also define account resources.
2. Each file is checked for required fields and well-formed references, then
   parsed into the persisted models.
3. Resources are merged across files; a second definition of the same
   identity is an error.
4. Internal references are resolved against the merged set.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

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
from account.infrastructure.observability.persistence_probe import (
    DefaultPersistenceProbe,
    PersistenceProbe,
)
from account.infrastructure.persistence.types import (
    ACCOUNT_KEYS,
    KEY_BOUNDARIES,
    KEY_CONFIGS,
    KEY_DELETE,
    KEY_GROUPS,
    KEY_POLICIES,
    KEY_SERVICE_USERS,
    KEY_USERS,
    PersistedAccount,
    PersistedBindingEntry,
    PersistedPolicyBinding,
    PersistedRef,
    PersistedReference,
    PersistedResourceFile,
)
from account.ports.exceptions import (
    DuplicateResourceError,
    InvalidResourceError,
    MixingConfigsError,
    MixingDeleteError,
    ReferenceIntegrityError,
    ResourceLoadError,
)
from shared_kernel.identifiers import sanitize

YAML_SUFFIXES = frozenset({".yaml", ".yml"})


def has_any_account_key_defined(data: Mapping[str, Any] | None) -> bool:
    """Check whether a parsed YAML document defines any account resources."""
    if not data:
        return False
    return any(data.get(key) is not None for key in ACCOUNT_KEYS)


def load(
    root_path: str | Path,
    features: ResourceFeatures | None = None,
    probe: PersistenceProbe | None = None,
) -> Resources:
    """Load and validate all account resources below ``root_path``.

    Args:
        root_path: A directory searched recursively, or a single YAML file.
        features: Optional resource kinds to read; service users and
            boundaries are ignored when their feature is disabled.
        probe: Observability probe.

    Returns:
        The merged resources. A root that does not exist yields empty
        resources.

    Raises:
        ResourceLoadError: If a file cannot be parsed or is invalid, if a
            resource is defined twice, or if a reference cannot be resolved.
    """
    features = features or ResourceFeatures()
    probe = probe or DefaultPersistenceProbe()
    root = Path(root_path)

    if not root.exists():
        probe.root_not_found(str(root))
        return Resources.empty()

    resources = Resources.empty()
    origins: dict[tuple[str, str], Path] = {}
    loaded_files = 0
    for path in _find_yaml_files(root):
        data = _read_yaml(path)
        if not data:
            continue
        if not isinstance(data, dict):
            raise InvalidResourceError(
                f"invalid file '{path}': expected a mapping at the top level"
            )

        if KEY_CONFIGS in data:
            if has_any_account_key_defined(data):
                raise MixingConfigsError(
                    f"file '{path}' mixes account resources with configs"
                )
            probe.configs_file_skipped(str(path))
            continue
        if KEY_DELETE in data:
            if has_any_account_key_defined(data):
                raise MixingDeleteError(
                    f"file '{path}' mixes account resources with delete entries"
                )
            probe.delete_file_skipped(str(path))
            continue

        persisted = _parse_file(path, data, features)
        _add_file_resources(resources, origins, persisted, path)
        loaded_files += 1

    validate_references(resources)

    probe.resources_loaded(
        str(root),
        files=loaded_files,
        policies=len(resources.policies),
        groups=len(resources.groups),
        users=len(resources.users),
    )
    return resources


def load_projects(
    working_dir: str | Path,
    project_paths: Iterable[str | Path],
    features: ResourceFeatures | None = None,
    probe: PersistenceProbe | None = None,
) -> Resources:
    """Load several project folders and merge them into one aggregate.

    Each project is loaded and validated on its own; an identity defined in
    more than one project is rejected.
    """
    merged = Resources.empty()
    for project_path in project_paths:
        try:
            project = load(Path(working_dir) / project_path, features, probe)
        except ResourceLoadError as e:
            raise type(e)(
                f"unable to load resources from project '{project_path}': {e}"
            ) from e
        _add_project_resources(merged, project, project_path)
    return merged


def validate_references(resources: Resources) -> None:
    """Check that every internal reference resolves to a loaded resource.

    Group references are only checked against groups, policy references
    only against policies and boundary references only against boundaries.
    String references name resources that are not managed here and are
    never checked.

    Raises:
        ReferenceIntegrityError: On an internal reference without ID or
            without target.
    """
    for user in resources.users.values():
        for ref in user.groups:
            _check_reference(ref, resources.groups, f"user '{user.email}'", "group")

    for service_user in resources.service_users.values():
        for ref in service_user.groups:
            _check_reference(
                ref,
                resources.groups,
                f"service user '{service_user.name}'",
                "group",
            )

    for group in resources.groups.values():
        if group.account is not None:
            _check_bindings(
                resources, group.account.policies, f"group '{group.id}' account"
            )
        for environment in group.environments:
            _check_bindings(
                resources,
                environment.policies,
                f"group '{group.id}' environment '{environment.name}'",
            )


def _check_bindings(
    resources: Resources, bindings: list[PolicyBinding], owner: str
) -> None:
    for binding in bindings:
        _check_reference(binding.policy, resources.policies, owner, "policy")
        for boundary in binding.boundaries:
            _check_reference(boundary, resources.boundaries, owner, "boundary")


def _check_reference(
    ref: Ref, targets: Mapping[str, Any], owner: str, target_kind: str
) -> None:
    if not isinstance(ref, Reference):
        return
    if not ref.id:
        raise ReferenceIntegrityError(
            f"{owner} references a {target_kind}: no ref id field found"
        )
    if ref.id not in targets:
        raise ReferenceIntegrityError(
            f"{owner} references {target_kind} '{ref.id}': "
            "no referenced target found"
        )


def _find_yaml_files(root: Path) -> list[Path]:
    if root.is_file():
        return [root]
    return sorted(
        path
        for path in root.rglob("*")
        if path.is_file() and path.suffix.lower() in YAML_SUFFIXES
    )


def _is_scalar_text(value: Any) -> bool:
    """Strings and unquoted numbers, which YAML parses as int or float."""
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def _read_yaml(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise InvalidResourceError(f"failed to parse file '{path}': {e}") from e
    except OSError as e:
        raise ResourceLoadError(f"failed to read file '{path}': {e}") from e


class _FileValidator:
    """Required-field and reference-shape checks for one parsed file."""

    def __init__(self, path: Path):
        self._path = path

    def fail(self, message: str) -> InvalidResourceError:
        return InvalidResourceError(f"invalid file '{self._path}': {message}")

    def entries(self, data: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
        value = data.get(key)
        if value is None:
            return []
        if not isinstance(value, list):
            raise self.fail(f"'{key}' must be a list")
        for entry in value:
            if not isinstance(entry, dict):
                raise self.fail(f"every entry of '{key}' must be a mapping")
        return value

    def require(self, entry: Mapping[str, Any], field: str, kind: str) -> None:
        value = entry.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            where = f" {entry['id']!r}" if field != "id" and entry.get("id") else ""
            raise self.fail(f"missing required field '{field}' for {kind}{where}")

    def reference(self, value: Any, owner: str) -> None:
        if _is_scalar_text(value):
            if not str(value).strip():
                raise self.fail(f"{owner}: missing reference value")
            return
        if isinstance(value, dict) and value.get("type") == REFERENCE_TYPE:
            ref_id = value.get("id")
            if not _is_scalar_text(ref_id) or not str(ref_id).strip():
                raise self.fail(
                    f"{owner}: missing required field 'id' for reference"
                )
            return
        raise self.fail(f"{owner}: missing reference value")

    def binding(self, value: Any, owner: str) -> None:
        if isinstance(value, dict) and "policy" in value:
            if "type" in value or "id" in value:
                raise self.fail(f"{owner}: policy definition is ambiguous")
            self.reference(value["policy"], owner)
            boundaries = value.get("boundaries") or []
            if not isinstance(boundaries, list):
                raise self.fail(f"{owner}: 'boundaries' must be a list")
            for boundary in boundaries:
                self.reference(boundary, owner)
            return
        if isinstance(value, dict) and "boundaries" in value:
            raise self.fail(
                f"{owner}: boundaries are only supported when using the "
                "'policy' key"
            )
        self.reference(value, owner)

    def bindings(self, scope: Mapping[str, Any], owner: str) -> None:
        for value in scope.get("policies") or []:
            self.binding(value, owner)

    def references(self, entry: Mapping[str, Any], key: str, owner: str) -> None:
        for value in entry.get(key) or []:
            self.reference(value, owner)


def _parse_file(
    path: Path, data: dict[str, Any], features: ResourceFeatures
) -> PersistedResourceFile:
    check = _FileValidator(path)
    data = dict(data)
    if not features.service_users:
        data.pop(KEY_SERVICE_USERS, None)
    if not features.boundaries:
        data.pop(KEY_BOUNDARIES, None)

    for policy in check.entries(data, KEY_POLICIES):
        for field in ("id", "name", "level", "policy"):
            check.require(policy, field, "policy")
        level = policy["level"]
        if not isinstance(level, dict):
            raise check.fail(f"level of policy '{policy['id']}' must be a mapping")
        level_type = level.get("type")
        if level_type not in (POLICY_LEVEL_ACCOUNT, POLICY_LEVEL_ENVIRONMENT):
            raise check.fail(
                f"policy '{policy['id']}' has unknown level type '{level_type}', "
                f"expected '{POLICY_LEVEL_ACCOUNT}' or '{POLICY_LEVEL_ENVIRONMENT}'"
            )
        if level_type == POLICY_LEVEL_ENVIRONMENT and not level.get("environment"):
            raise check.fail(
                f"missing required field 'level.environment' for policy "
                f"'{policy['id']}'"
            )

    for group in check.entries(data, KEY_GROUPS):
        check.require(group, "id", "group")
        check.require(group, "name", "group")
        owner = f"group '{group['id']}'"
        account = group.get("account")
        if account is not None:
            if not isinstance(account, dict):
                raise check.fail(f"{owner}: 'account' must be a mapping")
            check.bindings(account, owner)
        for environment in check.entries(group, "environments"):
            check.require(environment, "environment", f"environment of {owner}")
            check.bindings(environment, owner)
        for management_zone in check.entries(group, "managementZones"):
            for field in ("environment", "managementZone"):
                check.require(management_zone, field, f"management zone of {owner}")

    for user in check.entries(data, KEY_USERS):
        check.require(user, "email", "user")
        check.references(user, "groups", f"user '{user['email']}'")

    for service_user in check.entries(data, KEY_SERVICE_USERS):
        check.require(service_user, "name", "service user")
        check.references(
            service_user, "groups", f"service user '{service_user['name']}'"
        )

    for boundary in check.entries(data, KEY_BOUNDARIES):
        for field in ("id", "name", "query"):
            check.require(boundary, field, "boundary")

    try:
        return PersistedResourceFile.model_validate(data)
    except ValidationError as e:
        raise check.fail(str(e)) from e


def _to_ref(value: PersistedRef) -> Ref:
    if isinstance(value, PersistedReference):
        return Reference(id=value.id)
    return StrReference(name=value)


def _to_binding(value: PersistedBindingEntry) -> PolicyBinding:
    if isinstance(value, PersistedPolicyBinding):
        return PolicyBinding(
            policy=_to_ref(value.policy),
            boundaries=[_to_ref(boundary) for boundary in value.boundaries],
        )
    return PolicyBinding(policy=_to_ref(value))


def _to_account(value: PersistedAccount | None) -> Account | None:
    if value is None:
        return None
    account = Account(
        permissions=list(value.permissions),
        policies=[_to_binding(binding) for binding in value.policies],
    )
    return None if account.is_empty() else account


def _to_level(level_type: str, environment: str) -> PolicyLevel:
    if level_type == POLICY_LEVEL_ENVIRONMENT:
        return PolicyLevelEnvironment(environment=environment)
    return PolicyLevelAccount()


def _claim(
    origins: dict[tuple[str, str], Path], kind: str, key: str, path: Path
) -> None:
    previous = origins.get((kind, key))
    if previous is not None:
        raise DuplicateResourceError(
            f"duplicate {kind} '{key}' defined in '{previous}' and '{path}'"
        )
    origins[(kind, key)] = path


def _verify_service_users_not_ambiguous(
    first: ServiceUser, second: ServiceUser, where: str
) -> None:
    """Fail if both entries could describe the same backend service user."""
    if first.origin_object_id and first.origin_object_id == second.origin_object_id:
        raise DuplicateResourceError(
            f"multiple service users with the same originObjectId "
            f"'{first.origin_object_id}' ({where})"
        )
    if first.name != second.name:
        return
    if not first.origin_object_id or not second.origin_object_id:
        raise DuplicateResourceError(
            f"multiple service users with name '{first.name}' but at least one "
            f"is without originObjectId ({where})"
        )


def _add_service_user(
    service_users: dict[str, ServiceUser], service_user: ServiceUser, where: str
) -> None:
    """Add a service user, keeping apart entries that share a display name.

    Display names may repeat as long as every entry carries its own
    ``originObjectId``. The first entry keeps the sanitized name as its key;
    later ones are keyed by the sanitized name plus their origin ID.
    """
    for existing in service_users.values():
        _verify_service_users_not_ambiguous(existing, service_user, where)

    if service_user.id in service_users:
        key = sanitize(f"{service_user.name}-{service_user.origin_object_id}")
        if not service_user.origin_object_id or key in service_users:
            raise DuplicateResourceError(
                f"duplicate service user '{service_user.id}' ({where})"
            )
        service_user = replace(service_user, id=key)

    service_users[service_user.id] = service_user


def _add_file_resources(
    resources: Resources,
    origins: dict[tuple[str, str], Path],
    persisted: PersistedResourceFile,
    path: Path,
) -> None:
    for policy in persisted.policies:
        _claim(origins, "policy", policy.id, path)
        resources.policies[policy.id] = Policy(
            id=policy.id,
            name=policy.name,
            level=_to_level(policy.level.type, policy.level.environment),
            description=policy.description,
            policy=policy.policy,
            origin_object_id=policy.origin_object_id,
        )

    for group in persisted.groups:
        _claim(origins, "group", group.id, path)
        resources.groups[group.id] = Group(
            id=group.id,
            name=group.name,
            description=group.description,
            federated_attribute_values=list(group.federated_attribute_values),
            account=_to_account(group.account),
            environments=[
                Environment(
                    name=environment.environment,
                    permissions=list(environment.permissions),
                    policies=[_to_binding(b) for b in environment.policies],
                )
                for environment in group.environments
            ],
            management_zones=[
                ManagementZone(
                    environment=zone.environment,
                    management_zone=zone.management_zone,
                    permissions=list(zone.permissions),
                )
                for zone in group.management_zones
            ],
            origin_object_id=group.origin_object_id,
        )

    for user in persisted.users:
        _claim(origins, "user", user.email, path)
        resources.users[user.email] = User(
            email=user.email, groups=[_to_ref(ref) for ref in user.groups]
        )

    for service_user in persisted.service_users:
        _add_service_user(
            resources.service_users,
            ServiceUser(
                id=sanitize(service_user.name),
                name=service_user.name,
                description=service_user.description,
                groups=[_to_ref(ref) for ref in service_user.groups],
                origin_object_id=service_user.origin_object_id,
            ),
            f"in '{path}'",
        )

    for boundary in persisted.boundaries:
        _claim(origins, "boundary", boundary.id, path)
        resources.boundaries[boundary.id] = Boundary(
            id=boundary.id,
            name=boundary.name,
            query=boundary.query,
            origin_object_id=boundary.origin_object_id,
        )


def _add_project_resources(
    target: Resources, source: Resources, project: str | Path
) -> None:
    collections: list[tuple[str, dict[str, Any], dict[str, Any]]] = [
        ("policy with id", target.policies, source.policies),
        ("group with id", target.groups, source.groups),
        ("user with email", target.users, source.users),
        ("boundary with id", target.boundaries, source.boundaries),
    ]
    for kind, target_items, source_items in collections:
        for key, item in source_items.items():
            if key in target_items:
                raise DuplicateResourceError(
                    f"{kind} '{key}' already defined in another project "
                    f"(while adding project '{project}')"
                )
            target_items[key] = item

    for service_user in source.service_users.values():
        _add_service_user(
            target.service_users,
            service_user,
            f"while adding project '{project}'",
        )

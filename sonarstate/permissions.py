"""Global, project and template permissions for users and groups."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field, replace
from typing import Any

from sonarstate.client import NotFoundError, SonarQubeClient, SonarQubeError
from sonarstate.permission_template import (
    PermissionTemplatePermission,
    parse_permission_templates,
)

PROJECT_CREATOR = "project_creator"
_PAGE_SIZE = "100"


class _Principal(enum.Enum):
    USER = "user"
    GROUP = "group"
    PROJECT_CREATOR = "project_creator"


# (direct endpoint, template endpoint) per principal and action
_CREATE_PATHS = {
    _Principal.USER: ("/api/permissions/add_user", "/api/permissions/add_user_to_template"),
    _Principal.GROUP: ("/api/permissions/add_group", "/api/permissions/add_group_to_template"),
    _Principal.PROJECT_CREATOR: (None, "/api/permissions/add_project_creator_to_template"),
}
_DELETE_PATHS = {
    _Principal.USER: (
        "/api/permissions/remove_user",
        "/api/permissions/remove_user_from_template",
    ),
    _Principal.GROUP: (
        "/api/permissions/remove_group",
        "/api/permissions/remove_group_from_template",
    ),
    _Principal.PROJECT_CREATOR: (
        None,
        "/api/permissions/remove_project_creator_from_template",
    ),
}
_READ_PATHS = {
    _Principal.USER: ("/api/permissions/users", "/api/permissions/template_users"),
    _Principal.GROUP: ("/api/permissions/groups", "/api/permissions/template_groups"),
}


@dataclass
class PermissionGrant:
    """Permissions granted to one user, group or the project creator."""

    permissions: list[str] = field(default_factory=list)
    login_name: str = ""
    group_name: str = ""
    special_group_name: str = ""
    project_key: str = ""
    template_id: str = ""
    template_name: str = ""
    id: str = ""

    def validate(self) -> None:
        """Raise ValueError if the combination of fields is not allowed."""
        principals = [
            name
            for name, value in (
                ("login_name", self.login_name),
                ("group_name", self.group_name),
                ("special_group_name", self.special_group_name),
            )
            if value
        ]
        if len(principals) != 1:
            raise ValueError(
                "exactly one of login_name, group_name, special_group_name must be set, "
                f"got: {principals}"
            )
        if self.special_group_name and self.special_group_name != PROJECT_CREATOR:
            raise ValueError(
                f"expected special_group_name to be one of [{PROJECT_CREATOR}], "
                f"got {self.special_group_name}"
            )
        if self.project_key:
            for name in ("special_group_name", "template_id", "template_name"):
                if getattr(self, name):
                    raise ValueError(f"project_key conflicts with {name}")
        if self.template_id and self.template_name:
            raise ValueError("template_id conflicts with template_name")
        if not self.permissions:
            raise ValueError("permissions must contain at least 1 item")

    @property
    def _principal(self) -> _Principal:
        if self.login_name:
            return _Principal.USER
        if self.group_name:
            return _Principal.GROUP
        return _Principal.PROJECT_CREATOR

    @property
    def _template_params(self) -> dict[str, str]:
        if self.template_id:
            return {"templateId": self.template_id}
        if self.template_name:
            return {"templateName": self.template_name}
        return {}

    @property
    def _principal_params(self) -> dict[str, str]:
        if self.login_name:
            return {"login": self.login_name}
        if self.group_name:
            return {"groupName": self.group_name}
        return {}


def flatten_project_creator_permissions(
    permissions: list[PermissionTemplatePermission] | None,
) -> list[str]:
    """Return the keys of the permissions granted to the project creator."""
    return [p.key for p in permissions or [] if p.with_project_creator]


class PermissionsResource:
    """Grants, reads and revokes permissions."""

    def __init__(self, client: SonarQubeClient) -> None:
        self.client = client

    def _write_path(self, grant: PermissionGrant, paths: dict, action: str) -> str:
        direct, template = paths[grant._principal]
        if grant._template_params:
            return template
        if direct is None:
            raise SonarQubeError(
                f"{action}: 'templateId' or 'templateName' must be set when "
                f"'special_group_name' is set to '{PROJECT_CREATOR}'"
            )
        return direct

    def _base_params(self, grant: PermissionGrant) -> dict[str, str]:
        params: dict[str, str] = {}
        if grant.project_key:
            params["projectKey"] = grant.project_key
        params.update(grant._principal_params)
        params.update(grant._template_params)
        return params

    def _apply(self, grant: PermissionGrant, path: str, error: str) -> None:
        base = self._base_params(grant)
        for permission in grant.permissions:
            try:
                self.client.request("POST", path, {**base, "permission": permission}, 204)
            except SonarQubeError as exc:
                raise SonarQubeError(f"{error}: {exc}", exc.status_code) from exc

    def create(self, grant: PermissionGrant) -> PermissionGrant:
        grant.validate()
        path = self._write_path(grant, _CREATE_PATHS, "create permissions")
        self._apply(grant, path, "error creating Sonarqube permission")
        return self.read(replace(grant, id=str(uuid.uuid4())))

    def _fetch(self, path: str, params: dict[str, str]) -> Any:
        try:
            return self.client.request_json("GET", path, params, 200)
        except SonarQubeError as exc:
            raise SonarQubeError(
                f"error reading Sonarqube permissions: {exc}", exc.status_code
            ) from exc

    def read(self, grant: PermissionGrant) -> PermissionGrant:
        params: dict[str, str] = {"ps": _PAGE_SIZE}
        if grant.project_key:
            params["projectKey"] = grant.project_key
        principal = grant._principal

        if principal is _Principal.PROJECT_CREATOR:
            if grant.template_name:
                params["templateName"] = grant.template_name
            payload = self._fetch("/api/permissions/search_templates", params)
            wanted_id = grant.template_id.casefold()
            wanted_name = grant.template_name.casefold()
            for template in parse_permission_templates(payload):
                if template.id.casefold() == wanted_id or template.name.casefold() == wanted_name:
                    return replace(
                        grant,
                        special_group_name=PROJECT_CREATOR,
                        permissions=flatten_project_creator_permissions(template.permissions),
                    )
        else:
            direct, template_path = _READ_PATHS[principal]
            params.update(grant._template_params)
            path = template_path if grant._template_params else direct
            payload = self._fetch(path, params)
            if principal is _Principal.USER:
                entries, field_name, attr = payload.get("users") or [], "login", "login_name"
            else:
                entries, field_name, attr = payload.get("groups") or [], "name", "group_name"
            wanted = getattr(grant, attr).casefold()
            for entry in entries:
                value = entry.get(field_name, "")
                if value.casefold() == wanted:
                    return replace(
                        grant,
                        **{attr: value},
                        permissions=list(entry.get("permissions") or []),
                    )

        raise NotFoundError(f"unable to find permissions for: {grant.id}")

    def delete(self, grant: PermissionGrant) -> None:
        path = self._write_path(grant, _DELETE_PATHS, "delete permissions")
        self._apply(grant, path, "error deleting Sonarqube permission")
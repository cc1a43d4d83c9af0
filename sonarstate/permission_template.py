"""Permission templates on a SonarQube server."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any

from sonarstate.client import NotFoundError, SonarQubeClient, SonarQubeError

log = logging.getLogger(__name__)


@dataclass
class PermissionTemplatePermission:
    """One permission inside a template."""

    key: str = ""
    with_project_creator: bool = False

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> PermissionTemplatePermission:
        return cls(
            key=data.get("key", ""),
            with_project_creator=bool(data.get("withProjectCreator", False)),
        )


@dataclass
class PermissionTemplate:
    """A permission template; ``default`` is desired state, not read back."""

    name: str
    description: str = ""
    project_key_pattern: str = ""
    default: bool = False
    id: str = ""
    permissions: list[PermissionTemplatePermission] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> PermissionTemplate:
        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            project_key_pattern=data.get("projectKeyPattern", ""),
            id=data.get("id", ""),
            permissions=[
                PermissionTemplatePermission.from_json(p)
                for p in data.get("permissions") or []
            ],
        )


def parse_permission_templates(payload: dict[str, Any]) -> list[PermissionTemplate]:
    """Return the templates listed in a search_templates response."""
    return [
        PermissionTemplate.from_json(entry)
        for entry in payload.get("permissionTemplates") or []
    ]


class PermissionTemplateResource:
    """Creates, reads, updates and deletes permission templates."""

    def __init__(self, client: SonarQubeClient) -> None:
        self.client = client

    def create(self, template: PermissionTemplate) -> PermissionTemplate:
        params = {
            "name": template.name,
            "description": template.description,
            "projectKeyPattern": template.project_key_pattern,
        }
        try:
            payload = self.client.request_json(
                "POST", "/api/permissions/create_template", params, 200
            )
        except SonarQubeError as exc:
            raise SonarQubeError(
                f"error creating permission template: {exc}", exc.status_code
            ) from exc
        template_id = (payload.get("permissionTemplate") or {}).get("id", "")
        if not template_id:
            raise SonarQubeError("create response didn't contain an ID")
        created = replace(template, id=template_id)
        if created.default:
            self.set_default(template_id)
        return self.read(created)

    def read(self, template: PermissionTemplate) -> PermissionTemplate:
        try:
            payload = self.client.request_json(
                "GET", "/api/permissions/search_templates", {"q": template.name}, 200
            )
        except SonarQubeError as exc:
            raise SonarQubeError(
                f"error reading permission templates: {exc}", exc.status_code
            ) from exc
        for found in parse_permission_templates(payload):
            log.debug("comparing %r with %r", template.id, found.id)
            if found.id == template.id:
                return replace(
                    template,
                    id=found.id,
                    name=found.name,
                    description=found.description,
                    project_key_pattern=found.project_key_pattern,
                    permissions=found.permissions,
                )
        raise NotFoundError(f"failed to find template with ID: {template.id}")

    def update(self, template: PermissionTemplate) -> PermissionTemplate:
        params = {
            "id": template.id,
            "description": template.description or "",
            "projectKeyPattern": template.project_key_pattern or "",
        }
        try:
            self.client.request("POST", "/api/permissions/update_template", params, 200)
        except SonarQubeError as exc:
            raise SonarQubeError(
                f"error updating permission template: {exc}", exc.status_code
            ) from exc
        if template.default:
            self.set_default(template.id)
        return self.read(template)

    def delete(self, template: PermissionTemplate) -> None:
        try:
            self.client.request(
                "POST",
                "/api/permissions/delete_template",
                {"templateId": template.id},
                204,
            )
        except SonarQubeError as exc:
            raise SonarQubeError(
                f"error deleting permission template: {exc}", exc.status_code
            ) from exc

    def import_state(self, template_id: str) -> PermissionTemplate:
        return self.read(PermissionTemplate(name="", id=template_id))

    def set_default(self, template_id: str) -> None:
        try:
            self.client.request(
                "POST",
                "/api/permissions/set_default_template",
                {"templateId": template_id},
                204,
            )
        except SonarQubeError as exc:
            raise SonarQubeError(
                f"error setting permission template to default: {exc}", exc.status_code
            ) from exc
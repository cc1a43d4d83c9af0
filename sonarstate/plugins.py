"""Installed plugins on a SonarQube server."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sonarstate.client import NotFoundError, SonarQubeClient


@dataclass
class Plugin:
    """A plugin as reported by the installed-plugins endpoint."""

    key: str
    name: str = ""
    description: str = ""
    version: str = ""
    license: str = ""
    organization_name: str = ""
    organization_url: str = ""
    edition_bundled: bool = False
    homepage_url: str = ""
    issue_tracker_url: str = ""
    implementation_build: str = ""
    filename: str = ""
    hash: str = ""
    sonar_lint_supported: bool = False
    documentation_path: str = ""
    updated_at: int = 0

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Plugin:
        return cls(
            key=data.get("key", ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            version=data.get("version", ""),
            license=data.get("license", ""),
            organization_name=data.get("organizationName", ""),
            organization_url=data.get("organizationUrl", ""),
            edition_bundled=bool(data.get("editionBundled", False)),
            homepage_url=data.get("homepageUrl", ""),
            issue_tracker_url=data.get("issueTrackerUrl", ""),
            implementation_build=data.get("implementationBuild", ""),
            filename=data.get("filename", ""),
            hash=data.get("hash", ""),
            sonar_lint_supported=bool(data.get("sonarLintSupported", False)),
            documentation_path=data.get("documentationPath", ""),
            updated_at=int(data.get("updatedAt", 0)),
        )


class PluginResource:
    """Installs, reads and uninstalls plugins."""

    def __init__(self, client: SonarQubeClient) -> None:
        self.client = client

    def create(self, key: str) -> Plugin:
        self.client.request("POST", "/api/plugins/install", {"key": key}, 204)
        return self.read(key)

    def read(self, key: str) -> Plugin:
        payload = self.client.request_json("GET", "/api/plugins/installed")
        for entry in payload.get("plugins") or []:
            if entry.get("key") == key:
                return Plugin.from_json(entry)
        raise NotFoundError(f"failed to find plugin: {key}")

    def delete(self, key: str) -> None:
        self.client.request("POST", "/api/plugins/uninstall", {"key": key}, 204)

    def import_state(self, key: str) -> Plugin:
        return self.read(key)
"""The main branch name of a SonarQube project."""

from __future__ import annotations

from dataclasses import dataclass

from sonarstate.client import NotFoundError, SonarQubeClient

# Name given back to the main branch when the resource is deleted.
DEFAULT_MAIN_BRANCH = "main"


@dataclass
class ProjectMainBranch:
    """The desired name of a project's main branch."""

    name: str
    project: str

    @property
    def id(self) -> str:
        return f"{self.project}/{self.name}"


def _split_id(branch_id: str) -> tuple[str, str]:
    project, sep, name = branch_id.partition("/")
    if not sep:
        raise ValueError(f"invalid main branch id {branch_id!r}: expected '<project>/<branch>'")
    return project, name


class ProjectMainBranchResource:
    """Renames a project's main branch and reads it back."""

    def __init__(self, client: SonarQubeClient) -> None:
        self.client = client

    def create(self, branch: ProjectMainBranch) -> ProjectMainBranch:
        self.client.request(
            "POST",
            "/api/project_branches/rename",
            {"name": branch.name, "project": branch.project},
            204,
        )
        return self.read(branch.id)

    def read(self, branch_id: str) -> ProjectMainBranch:
        project, name = _split_id(branch_id)
        payload = self.client.request_json(
            "GET", "/api/project_branches/list", {"project": project}, 200
        )
        for entry in payload.get("branches") or []:
            if entry.get("name") == name and entry.get("isMain", False):
                return ProjectMainBranch(name=entry["name"], project=project)
        raise NotFoundError(f"failed to find project main branch: {branch_id}")

    def delete(self, branch: ProjectMainBranch) -> None:
        self.client.request(
            "POST",
            "/api/project_branches/rename",
            {"name": DEFAULT_MAIN_BRANCH, "project": branch.project},
            204,
        )

    def import_state(self, branch_id: str) -> ProjectMainBranch:
        return self.read(branch_id)
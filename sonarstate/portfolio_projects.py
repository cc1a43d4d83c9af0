"""Manually selected projects and branches of a portfolio."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from sonarstate.client import SonarQubeClient, SonarQubeError

log = logging.getLogger(__name__)


@dataclass
class PortfolioProject:
    """A project placed in a MANUAL portfolio, with the branches chosen for it."""

    project_key: str
    selected_branches: list[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> PortfolioProject:
        return cls(
            project_key=data.get("projectKey", ""),
            selected_branches=[
                branch for branch in data.get("selectedBranches") or [] if branch is not None
            ],
        )

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"projectKey": self.project_key}
        if self.selected_branches:
            data["selectedBranches"] = list(self.selected_branches)
        return data


def _same_branches(left: Iterable[str], right: Iterable[str]) -> bool:
    return sorted(left) == sorted(right)


def _ignore_failure(action: Callable[..., None], *args: str) -> None:
    """Run a branch call whose failure does not stop the synchronisation."""
    try:
        action(*args)
    except SonarQubeError as exc:
        log.warning("%s failed for %s: %s", action.__name__, args, exc)


def add_selected_project_branch(
    client: SonarQubeClient, portfolio_key: str, project_key: str, branch: str
) -> None:
    """Add one branch of a project to a portfolio."""
    client.request(
        "POST",
        "/api/views/add_project_branch",
        {"key": portfolio_key, "project": project_key, "branch": branch},
        204,
    )


def delete_selected_project_branch(
    client: SonarQubeClient, portfolio_key: str, project_key: str, branch: str
) -> None:
    """Remove one branch of a project from a portfolio."""
    client.request(
        "POST",
        "/api/views/remove_project_branch",
        {"key": portfolio_key, "project": project_key, "branch": branch},
        204,
    )


def add_selected_project(
    client: SonarQubeClient,
    portfolio_key: str,
    project_key: str,
    branches: Iterable[str],
) -> None:
    """Add a project to a portfolio, then each of its selected branches."""
    client.request(
        "POST",
        "/api/views/add_project",
        {"key": portfolio_key, "project": project_key},
        204,
    )
    for branch in branches:
        _ignore_failure(add_selected_project_branch, client, portfolio_key, project_key, branch)


def update_selected_project(
    client: SonarQubeClient,
    portfolio_key: str,
    project_key: str,
    branches: Iterable[str],
    api_branches: Iterable[str],
) -> None:
    """Bring the server's branches of a portfolio project in line with ``branches``."""
    wanted = list(branches)
    present = list(api_branches)
    for branch in wanted:
        if branch not in present:
            _ignore_failure(
                add_selected_project_branch, client, portfolio_key, project_key, branch
            )
    for branch in present:
        if branch not in wanted:
            _ignore_failure(
                delete_selected_project_branch, client, portfolio_key, project_key, branch
            )


def delete_selected_project(
    client: SonarQubeClient, portfolio_key: str, project_key: str
) -> None:
    """Remove a project from a portfolio."""
    client.request(
        "POST",
        "/api/views/remove_project",
        {"key": portfolio_key, "project": project_key},
        204,
    )


def _add_or_update(
    client: SonarQubeClient,
    portfolio_key: str,
    project: PortfolioProject,
    current: dict[str, PortfolioProject],
) -> None:
    existing = current.get(project.project_key)
    if existing is not None:
        if _same_branches(project.selected_branches, existing.selected_branches):
            return
        try:
            update_selected_project(
                client,
                portfolio_key,
                project.project_key,
                project.selected_branches,
                existing.selected_branches,
            )
        except SonarQubeError as exc:
            raise SonarQubeError(
                f"failed to update project '{project.project_key}': {exc}", exc.status_code
            ) from exc
        return
    try:
        add_selected_project(
            client, portfolio_key, project.project_key, project.selected_branches
        )
    except SonarQubeError as exc:
        raise SonarQubeError(
            f"failed to add project '{project.project_key}': {exc}", exc.status_code
        ) from exc


def synchronize_selected_projects(
    client: SonarQubeClient,
    portfolio_key: str,
    desired: Iterable[PortfolioProject],
    current: Iterable[PortfolioProject],
) -> None:
    """Add, update and remove portfolio projects so the server matches ``desired``."""
    wanted = sorted(desired, key=lambda p: p.project_key)
    present = list(current)
    by_key: dict[str, PortfolioProject] = {}
    for project in present:
        by_key.setdefault(project.project_key, project)

    for project in wanted:
        _add_or_update(client, portfolio_key, project, by_key)

    wanted_keys = {p.project_key for p in wanted}
    for project in present:
        if project.project_key in wanted_keys:
            continue
        try:
            delete_selected_project(client, portfolio_key, project.project_key)
        except SonarQubeError as exc:
            raise SonarQubeError(
                f"failed to delete project from portfolio '{project.project_key}': {exc}",
                exc.status_code,
            ) from exc
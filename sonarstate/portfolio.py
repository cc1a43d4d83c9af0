"""Portfolios (views) on SonarQube Enterprise and Data Center editions."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any

from sonarstate.client import SonarQubeClient, SonarQubeError
from sonarstate.portfolio_projects import PortfolioProject, synchronize_selected_projects

_SUPPORTED_EDITIONS = ("enterprise", "data center")
_VISIBILITIES = ("public", "private")


class SelectionMode(str, enum.Enum):
    """How a portfolio is populated with projects."""

    NONE = "NONE"
    MANUAL = "MANUAL"
    TAGS = "TAGS"
    REGEXP = "REGEXP"
    REST = "REST"


_MODE_ENDPOINTS = {
    SelectionMode.NONE: "/api/views/set_none_mode",
    SelectionMode.MANUAL: "/api/views/set_manual_mode",
    SelectionMode.TAGS: "/api/views/set_tags_mode",
    SelectionMode.REGEXP: "/api/views/set_regexp_mode",
    SelectionMode.REST: "/api/views/set_remaining_projects_mode",
}
_BRANCH_MODES = (SelectionMode.TAGS, SelectionMode.REGEXP, SelectionMode.REST)


@dataclass
class Portfolio:
    """A portfolio and the way it selects its projects."""

    key: str
    name: str = ""
    description: str = ""
    visibility: str = "public"
    selection_mode: SelectionMode | str = SelectionMode.NONE
    branch: str = ""
    tags: list[str] = field(default_factory=list)
    regexp: str = ""
    selected_projects: list[PortfolioProject] = field(default_factory=list)
    qualifier: str = ""

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Portfolio:
        raw_mode = data.get("selectionMode", "")
        try:
            mode: SelectionMode | str = SelectionMode(raw_mode)
        except ValueError:
            mode = raw_mode
        return cls(
            key=data.get("key", ""),
            name=data.get("name", ""),
            description=data.get("desc", ""),
            visibility=data.get("visibility", ""),
            selection_mode=mode,
            branch=data.get("branch", "") or "",
            tags=list(data.get("tags") or []),
            regexp=data.get("regexp", "") or "",
            selected_projects=sorted(
                (PortfolioProject.from_json(p) for p in data.get("selectedProjects") or []),
                key=lambda p: p.project_key,
            ),
            qualifier=data.get("qualifier", ""),
        )


def _selection_mode(portfolio: Portfolio) -> SelectionMode:
    try:
        return SelectionMode(portfolio.selection_mode)
    except ValueError:
        allowed = " ".join(m.value for m in SelectionMode)
        raise ValueError(
            f"expected selection_mode to be one of [{allowed}], "
            f"got {portfolio.selection_mode}"
        ) from None


def _mode_value(mode: SelectionMode | str) -> str:
    return mode.value if isinstance(mode, SelectionMode) else str(mode)


def _projects_signature(projects: list[PortfolioProject]) -> list[tuple[str, tuple[str, ...]]]:
    return sorted((p.project_key, tuple(sorted(p.selected_branches))) for p in projects)


def check_portfolio_support(client: SonarQubeClient) -> None:
    """Raise SonarQubeError unless the server edition supports portfolios."""
    if client.edition.lower() not in _SUPPORTED_EDITIONS:
        raise SonarQubeError(
            "portfolios are only supported in the Enterprise and Datacenter editions of "
            f"SonarQube. You are using: SonarQube {client.edition} version {client.version}"
        )


def validate_portfolio(portfolio: Portfolio) -> None:
    """Raise ValueError if the portfolio's fields do not fit together."""
    if portfolio.visibility not in _VISIBILITIES:
        raise ValueError(
            f"expected visibility to be one of [{' '.join(_VISIBILITIES)}], "
            f"got {portfolio.visibility}"
        )
    mode = _selection_mode(portfolio)

    present = {
        "tags": bool(portfolio.tags),
        "regexp": bool(portfolio.regexp),
        "selected_projects": bool(portfolio.selected_projects),
    }
    names = [name for name, is_set in present.items() if is_set]
    if len(names) > 1:
        raise ValueError(f"{names[0]} conflicts with {names[1]}")

    if portfolio.regexp:
        try:
            re.compile(portfolio.regexp)
        except re.error as exc:
            raise ValueError(f"regexp is not a valid regular expression: {exc}") from exc

    if mode is SelectionMode.MANUAL and not portfolio.selected_projects:
        raise ValueError(
            "When selection_mode is set to MANUAL, you need atleast 1 selected_project, "
            f"got: {portfolio.selected_projects}"
        )
    if mode is SelectionMode.TAGS:
        if not portfolio.tags:
            raise ValueError(
                f"When selection_mode is set to TAGS, you need atleast 1 tag, got: {portfolio.tags}"
            )
        for tag in portfolio.tags:
            if not str(tag):
                raise ValueError(
                    f"When selection_mode is set to TAGS, each tag must be non 0, got: {tag}"
                )
    if mode is SelectionMode.REGEXP and not portfolio.regexp:
        raise ValueError(
            f'When selection_mode is set to REGEXP, regexp must be set, got: "{portfolio.regexp}"'
        )


def tags_to_csv(tags: list[str]) -> str:
    """Join tags with commas; whitespace inside a tag also separates tags."""
    text = "[" + " ".join(str(tag) for tag in tags) + "]"
    return ",".join(text.split()).strip("[]")


class PortfolioResource:
    """Creates, reads, updates and deletes portfolios."""

    def __init__(self, client: SonarQubeClient) -> None:
        self.client = client

    def _fetch(self, key: str) -> Portfolio:
        try:
            payload = self.client.request_json("GET", "/api/views/show", {"key": key}, 200)
        except SonarQubeError as exc:
            raise SonarQubeError(
                f"failed to call api/views/show: {exc}", exc.status_code
            ) from exc
        return Portfolio.from_json(payload)

    def _set_selection_mode(self, portfolio: Portfolio) -> None:
        mode = _selection_mode(portfolio)
        params = {"portfolio": portfolio.key}
        if mode is SelectionMode.TAGS:
            params["tags"] = tags_to_csv(portfolio.tags)
        elif mode is SelectionMode.REGEXP:
            params["regexp"] = portfolio.regexp
        # An empty branch would be taken as a branch named "".
        if mode in _BRANCH_MODES and portfolio.branch:
            params["branch"] = portfolio.branch
        self.client.request("POST", _MODE_ENDPOINTS[mode], params, 204)

        if mode is SelectionMode.MANUAL:
            try:
                current = self._fetch(portfolio.key)
            except SonarQubeError as exc:
                raise SonarQubeError(
                    f"failed to read the portfolio from the API: {exc}", exc.status_code
                ) from exc
            try:
                synchronize_selected_projects(
                    self.client,
                    portfolio.key,
                    portfolio.selected_projects,
                    current.selected_projects,
                )
            except SonarQubeError as exc:
                raise SonarQubeError(
                    f"failed to synchronise portfolio projects: {exc}", exc.status_code
                ) from exc

    def create(self, portfolio: Portfolio) -> Portfolio:
        check_portfolio_support(self.client)
        validate_portfolio(portfolio)
        payload = self.client.request_json(
            "POST",
            "/api/views/create",
            {
                "description": portfolio.description,
                "key": portfolio.key,
                "name": portfolio.name,
                "visibility": portfolio.visibility,
            },
            200,
        )
        created_key = payload.get("key", "")
        self._set_selection_mode(portfolio)
        return self.read(created_key)

    def read(self, key: str) -> Portfolio:
        check_portfolio_support(self.client)
        return self._fetch(key)

    def update(self, old: Portfolio, new: Portfolio) -> Portfolio:
        check_portfolio_support(self.client)
        validate_portfolio(new)

        if (old.name, old.description) != (new.name, new.description):
            try:
                self.client.request(
                    "POST",
                    "/api/views/update",
                    {"key": old.key, "description": new.description, "name": new.name},
                    200,
                )
            except SonarQubeError as exc:
                raise SonarQubeError(
                    f"error updating Sonarqube Portfolio Name and Description: {exc}",
                    exc.status_code,
                ) from exc

        mode_changed = (
            _mode_value(old.selection_mode) != _mode_value(new.selection_mode)
            or old.branch != new.branch
            or list(old.tags) != list(new.tags)
            or old.regexp != new.regexp
            or _projects_signature(old.selected_projects)
            != _projects_signature(new.selected_projects)
        )
        if mode_changed:
            try:
                self._set_selection_mode(new)
            except SonarQubeError as exc:
                raise SonarQubeError(
                    f"error updating Sonarqube selection mode: {exc}", exc.status_code
                ) from exc

        return self.read(old.key)

    def delete(self, portfolio: Portfolio) -> None:
        check_portfolio_support(self.client)
        self.client.request("POST", "/api/views/delete", {"key": portfolio.key}, 204)

    def import_state(self, key: str) -> Portfolio:
        return self.read(key)
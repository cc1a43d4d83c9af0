"""Permission of a user or group to administer a quality gate."""

from __future__ import annotations

from dataclasses import dataclass, replace

from packaging.version import Version

from sonarstate.client import NotFoundError, SonarQubeClient, SonarQubeError

_MINIMUM_VERSION = Version("9.2")


@dataclass
class QualityGateUsergroupAssociation:
    """A quality gate associated with exactly one user or group."""

    gatename: str
    login_name: str = ""
    group_name: str = ""

    @property
    def id(self) -> str:
        if self.login_name:
            return create_gate_permission_id(self.gatename, "user", self.login_name)
        return create_gate_permission_id(self.gatename, "group", self.group_name)


def create_gate_permission_id(gate_name: str, target_type: str, target: str) -> str:
    """Return the identifier of a gate permission, e.g. ``gate[user/login]``."""
    return f"{gate_name}[{target_type}/{target}]"


def check_gate_permission_feature_support(client: SonarQubeClient) -> None:
    """Raise SonarQubeError if the server is older than 9.2."""
    if client.version < _MINIMUM_VERSION:
        raise SonarQubeError(
            "Minimum required SonarQube version for quality gate permissions is "
            f"{_MINIMUM_VERSION}"
        )


def _validate(association: QualityGateUsergroupAssociation) -> None:
    if bool(association.login_name) == bool(association.group_name):
        raise ValueError("exactly one of login_name, group_name must be set")


class QualityGateUsergroupAssociationResource:
    """Grants, reads and revokes quality gate permissions."""

    def __init__(self, client: SonarQubeClient) -> None:
        self.client = client

    def create(
        self, association: QualityGateUsergroupAssociation
    ) -> QualityGateUsergroupAssociation:
        check_gate_permission_feature_support(self.client)
        _validate(association)
        params = {"gateName": association.gatename}
        if association.login_name:
            path = "/api/qualitygates/add_user"
            params["login"] = association.login_name
        else:
            path = "/api/qualitygates/add_group"
            params["groupName"] = association.group_name
        try:
            self.client.request("POST", path, params, 204)
        except SonarQubeError as exc:
            raise SonarQubeError(
                "failed creating quality gate usergroup association for quality gate "
                f"'{association.gatename}': {exc}",
                exc.status_code,
            ) from exc
        return self.read(association)

    def read(
        self, association: QualityGateUsergroupAssociation
    ) -> QualityGateUsergroupAssociation:
        check_gate_permission_feature_support(self.client)
        _validate(association)
        path = (
            "/api/qualitygates/search_users"
            if association.login_name
            else "/api/qualitygates/search_groups"
        )
        try:
            payload = self.client.request_json(
                "GET", path, {"gateName": association.gatename, "selected": "selected"}, 200
            )
        except SonarQubeError as exc:
            raise SonarQubeError(
                f"failed to call quality gate usergroup association api: {exc}",
                exc.status_code,
            ) from exc

        if association.login_name:
            wanted = association.login_name.casefold()
            for entry in payload.get("users") or []:
                login = entry.get("login", "")
                if login.casefold() == wanted:
                    return replace(association, login_name=login)
        else:
            wanted = association.group_name.casefold()
            for entry in payload.get("groups") or []:
                if entry.get("name", "").casefold() == wanted:
                    return association
        raise NotFoundError(
            f"failed to find quality gate usergroup association: {association.id}"
        )

    def delete(self, association: QualityGateUsergroupAssociation) -> None:
        check_gate_permission_feature_support(self.client)
        _validate(association)
        params = {"gateName": association.gatename}
        if association.login_name:
            path = "/api/qualitygates/remove_user"
            params["login"] = association.login_name
        else:
            path = "/api/qualitygates/remove_group"
            params["groupName"] = association.group_name
        try:
            self.client.request("POST", path, params, 204)
        except SonarQubeError as exc:
            raise SonarQubeError(
                f"failed to call quality gate usergroup association api: {exc}",
                exc.status_code,
            ) from exc
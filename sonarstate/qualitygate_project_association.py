"""Association of a quality gate with a project."""

from __future__ import annotations

from dataclasses import dataclass

from sonarstate.client import SonarQubeClient


@dataclass
class QualityGateProjectAssociation:
    """A quality gate selected for a project."""

    gatename: str
    projectkey: str
    gateid: str = ""

    @property
    def id(self) -> str:
        return f"{self.gatename}/{self.projectkey}"


def _project_from_id(association_id: str) -> str:
    parts = association_id.split("/")
    if len(parts) < 2:
        raise ValueError(
            f"invalid association id {association_id!r}: expected '<gatename>/<projectkey>'"
        )
    return parts[1]


class QualityGateProjectAssociationResource:
    """Selects, reads and deselects the quality gate of a project."""

    def __init__(self, client: SonarQubeClient) -> None:
        self.client = client

    def create(self, association: QualityGateProjectAssociation) -> QualityGateProjectAssociation:
        self.client.request(
            "POST",
            "/api/qualitygates/select",
            {"gateName": association.gatename, "projectKey": association.projectkey},
            204,
        )
        return self.read(association.id)

    def read(self, association_id: str) -> QualityGateProjectAssociation:
        project = _project_from_id(association_id)
        payload = self.client.request_json(
            "GET", "/api/qualitygates/get_by_project", {"project": project}, 200
        )
        gate = payload.get("qualityGate") or {}
        return QualityGateProjectAssociation(gatename=gate.get("name", ""), projectkey=project)

    def delete(self, association: QualityGateProjectAssociation) -> None:
        self.client.request(
            "POST",
            "/api/qualitygates/deselect",
            {"gateName": association.gatename, "projectKey": association.projectkey},
            204,
        )

    def import_state(self, association_id: str) -> QualityGateProjectAssociation:
        return self.read(association_id)
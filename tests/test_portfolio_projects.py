from urllib.parse import parse_qsl, urlsplit

import pytest
import responses

from sonarstate.client import SonarQubeClient, SonarQubeError
from sonarstate.portfolio_projects import (
    PortfolioProject,
    add_selected_project,
    add_selected_project_branch,
    delete_selected_project,
    delete_selected_project_branch,
    synchronize_selected_projects,
    update_selected_project,
)

BASE = "http://sonar.example.com"
PORTFOLIO = "testAccSonarqubePortfolioKey"


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        for path in (
            "/api/views/add_project",
            "/api/views/add_project_branch",
            "/api/views/remove_project",
            "/api/views/remove_project_branch",
        ):
            rsps.add(responses.POST, BASE + path, status=204)
        yield rsps


@pytest.fixture
def client():
    return SonarQubeClient(BASE)


def _calls(rsps):
    result = []
    for call in rsps.calls:
        parts = urlsplit(call.request.url)
        result.append(
            (call.request.method, parts.path, dict(parse_qsl(parts.query, keep_blank_values=True)))
        )
    return result


def test_no_calls_when_projects_match(mocked, client):
    desired = [PortfolioProject("proj", ["main", "dev"])]
    current = [PortfolioProject("proj", ["dev", "main"])]
    result = synchronize_selected_projects(client, PORTFOLIO, desired, current)
    assert result is None
    assert len(mocked.calls) == 0


def test_new_project_is_added_with_branches(mocked, client):
    synchronize_selected_projects(
        client, PORTFOLIO, [PortfolioProject("proj", ["main"])], []
    )
    assert _calls(mocked) == [
        ("POST", "/api/views/add_project", {"key": PORTFOLIO, "project": "proj"}),
        (
            "POST",
            "/api/views/add_project_branch",
            {"key": PORTFOLIO, "project": "proj", "branch": "main"},
        ),
    ]


def test_missing_project_is_removed(mocked, client):
    synchronize_selected_projects(client, PORTFOLIO, [], [PortfolioProject("old")])
    assert _calls(mocked) == [
        ("POST", "/api/views/remove_project", {"key": PORTFOLIO, "project": "old"}),
    ]


def test_replace_project(mocked, client):
    result = synchronize_selected_projects(
        client,
        PORTFOLIO,
        [PortfolioProject("testAccSonarqubeProjectKeyNew", ["main"])],
        [PortfolioProject("testAccSonarqubeProjectKeyOld", ["main"])],
    )
    assert result is None
    assert [(path, params["project"]) for _, path, params in _calls(mocked)] == [
        ("/api/views/add_project", "testAccSonarqubeProjectKeyNew"),
        ("/api/views/add_project_branch", "testAccSonarqubeProjectKeyNew"),
        ("/api/views/remove_project", "testAccSonarqubeProjectKeyOld"),
    ]


def test_changed_branches_are_added_and_removed(mocked, client):
    synchronize_selected_projects(
        client,
        PORTFOLIO,
        [PortfolioProject("proj", ["main", "new"])],
        [PortfolioProject("proj", ["main", "old"])],
    )
    assert _calls(mocked) == [
        (
            "POST",
            "/api/views/add_project_branch",
            {"key": PORTFOLIO, "project": "proj", "branch": "new"},
        ),
        (
            "POST",
            "/api/views/remove_project_branch",
            {"key": PORTFOLIO, "project": "proj", "branch": "old"},
        ),
    ]


def test_removing_all_selected_branches(mocked, client):
    result = synchronize_selected_projects(
        client, PORTFOLIO, [PortfolioProject("proj")], [PortfolioProject("proj", ["main"])]
    )
    assert result is None
    assert _calls(mocked) == [
        (
            "POST",
            "/api/views/remove_project_branch",
            {"key": PORTFOLIO, "project": "proj", "branch": "main"},
        ),
    ]


def test_desired_projects_are_processed_in_key_order(mocked, client):
    result = synchronize_selected_projects(
        client, PORTFOLIO, [PortfolioProject("zeta"), PortfolioProject("alpha")], []
    )
    assert result is None
    assert _calls(mocked) == [
        ("POST", "/api/views/add_project", {"key": PORTFOLIO, "project": "alpha"}),
        ("POST", "/api/views/add_project", {"key": PORTFOLIO, "project": "zeta"}),
    ]


def test_add_project_failure_is_raised(client):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, BASE + "/api/views/add_project", status=400)
        with pytest.raises(SonarQubeError, match="failed to add project 'proj'") as info:
            synchronize_selected_projects(client, PORTFOLIO, [PortfolioProject("proj")], [])
    assert info.value.status_code == 400


def test_delete_failure_is_raised(client):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, BASE + "/api/views/remove_project", status=404)
        with pytest.raises(SonarQubeError, match="failed to delete project from portfolio"):
            synchronize_selected_projects(client, PORTFOLIO, [], [PortfolioProject("gone")])


def test_branch_failure_does_not_stop_add(client):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, BASE + "/api/views/add_project", status=204)
        rsps.add(responses.POST, BASE + "/api/views/add_project_branch", status=500)
        result = add_selected_project(client, PORTFOLIO, "proj", ["a", "b"])
        assert result is None
        assert len(rsps.calls) == 3


def test_branch_failure_does_not_stop_update(client):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, BASE + "/api/views/add_project_branch", status=500)
        rsps.add(responses.POST, BASE + "/api/views/remove_project_branch", status=500)
        result = update_selected_project(client, PORTFOLIO, "proj", ["a"], ["b"])
        assert result is None
        assert len(rsps.calls) == 2


def test_branch_calls_raise_on_their_own(client):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, BASE + "/api/views/add_project_branch", status=500)
        rsps.add(responses.POST, BASE + "/api/views/remove_project_branch", status=500)
        with pytest.raises(SonarQubeError):
            add_selected_project_branch(client, PORTFOLIO, "proj", "main")
        with pytest.raises(SonarQubeError):
            delete_selected_project_branch(client, PORTFOLIO, "proj", "main")


def test_delete_selected_project_sends_keys(mocked, client):
    delete_selected_project(client, PORTFOLIO, "proj")
    assert _calls(mocked) == [
        ("POST", "/api/views/remove_project", {"key": PORTFOLIO, "project": "proj"}),
    ]


def test_portfolio_project_json_round_trip():
    project = PortfolioProject("proj", ["main", "dev"])
    assert PortfolioProject.from_json(project.to_json()) == project


def test_portfolio_project_from_json_drops_missing_branches():
    project = PortfolioProject.from_json(
        {"projectKey": "proj", "selectedBranches": ["main", None]}
    )
    assert project.selected_branches == ["main"]
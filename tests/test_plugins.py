from urllib.parse import parse_qs, urlsplit

import pytest
import responses

from sonarstate.client import NotFoundError, SonarQubeClient, SonarQubeError
from sonarstate.plugins import Plugin, PluginResource

BASE = "http://localhost:9000"

INSTALLED = {
    "plugins": [
        {
            "key": "java",
            "name": "Java Code Quality and Security",
            "version": "7.16",
            "editionBundled": False,
            "sonarLintSupported": True,
            "organizationName": "Example Org",
            "updatedAt": 1700000000,
        },
        {"key": "python", "name": "Python"},
    ]
}


def _query(call):
    return parse_qs(urlsplit(call.request.url).query)


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


@pytest.fixture
def resource():
    return PluginResource(SonarQubeClient(BASE))


def test_create_installs_then_reads(rsps, resource):
    rsps.add(responses.POST, f"{BASE}/api/plugins/install", status=204)
    rsps.add(responses.GET, f"{BASE}/api/plugins/installed", json=INSTALLED)
    plugin = resource.create("java")
    assert plugin.key == "java"
    assert plugin.sonar_lint_supported is True
    assert plugin.organization_name == "Example Org"
    assert _query(rsps.calls[0]) == {"key": ["java"]}
    assert rsps.calls[0].request.method == "POST"


def test_read_missing_plugin_raises(rsps, resource):
    rsps.add(responses.GET, f"{BASE}/api/plugins/installed", json=INSTALLED)
    with pytest.raises(NotFoundError):
        resource.read("kotlin")


def test_read_empty_list_raises(rsps, resource):
    rsps.add(responses.GET, f"{BASE}/api/plugins/installed", json={"plugins": []})
    with pytest.raises(NotFoundError):
        resource.read("java")


def test_delete_uninstalls_by_key(rsps, resource):
    rsps.add(responses.POST, f"{BASE}/api/plugins/uninstall", status=204)
    result = resource.delete("python")
    assert result is None
    assert len(rsps.calls) == 1
    assert _query(rsps.calls[0]) == {"key": ["python"]}


def test_delete_failure_raises(rsps, resource):
    rsps.add(responses.POST, f"{BASE}/api/plugins/uninstall", status=400)
    with pytest.raises(SonarQubeError):
        resource.delete("python")


def test_import_returns_same_as_read(rsps, resource):
    rsps.add(responses.GET, f"{BASE}/api/plugins/installed", json=INSTALLED)
    assert resource.import_state("python") == Plugin(key="python", name="Python")


def test_plugin_from_json_defaults():
    plugin = Plugin.from_json({"key": "x"})
    assert plugin == Plugin(key="x")
    assert plugin.updated_at == 0
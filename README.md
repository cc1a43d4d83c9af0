# sonarstate

Manage SonarQube objects from Python by describing what they should look like.
Each resource class talks to the SonarQube web API through a shared
`SonarQubeClient` and offers `create`, `read`, `delete` and, where they make
sense, `update` and `import_state`. The `read` calls return the state the
server reports.

## What is covered

| Module | Class | What it manages |
| --- | --- | --- |
| `sonarstate.plugins` | `PluginResource` | installing, looking up and uninstalling plugins (`Plugin`) |
| `sonarstate.permission_template` | `PermissionTemplateResource` | permission templates (`PermissionTemplate`), including making one the default |
| `sonarstate.permissions` | `PermissionsResource` | global, project and template permissions (`PermissionGrant`) for a user, a group or the project creator |
| `sonarstate.portfolio` | `PortfolioResource` | portfolios (`Portfolio`) with every `SelectionMode`: `NONE`, `MANUAL`, `TAGS`, `REGEXP`, `REST` |
| `sonarstate.portfolio_projects` | functions | the projects and branches of a `MANUAL` portfolio (`PortfolioProject`, `synchronize_selected_projects`) |
| `sonarstate.project_main_branch` | `ProjectMainBranchResource` | the name of a project's main branch (`ProjectMainBranch`) |
| `sonarstate.qualitygate_project_association` | `QualityGateProjectAssociationResource` | which quality gate a project uses |
| `sonarstate.qualitygate_usergroup_association` | `QualityGateUsergroupAssociationResource` | users and groups allowed to edit a quality gate |

## Installing

```
pip install sonarstate
```

## Using it

```python
import requests

from sonarstate.client import SonarQubeClient
from sonarstate.project_main_branch import ProjectMainBranch, ProjectMainBranchResource
from sonarstate.qualitygate_project_association import (
    QualityGateProjectAssociation,
    QualityGateProjectAssociationResource,
)

session = requests.Session()
session.auth = ("admin", "password")

client = SonarQubeClient("http://localhost:9000", session, edition="community", version="10.4")

branches = ProjectMainBranchResource(client)
branch = branches.create(ProjectMainBranch(name="develop", project="my-project"))
print(branch.id)  # "my-project/develop"

gates = QualityGateProjectAssociationResource(client)
association = gates.create(
    QualityGateProjectAssociation(gatename="my-gate", projectkey="my-project")
)
print(association.gatename)
```

`SonarQubeClient` takes the server's base URL, an optional `requests.Session`
(for authentication), the server edition and its version (a string or a
`packaging.version.Version`). Its `request` and `request_json` methods send a
call and raise unless the response has the expected status code.

## Notes on behaviour

- Portfolios are only available when the client's `edition` is `enterprise`
  or `data center`; otherwise `check_portfolio_support` raises.
- `validate_portfolio` checks the visibility, the selection mode and the
  fields it needs (at least one project for `MANUAL`, non-empty tags for
  `TAGS`, a valid regular expression for `REGEXP`). Tags are sent joined by
  commas, see `tags_to_csv`.
- Failing to add or remove a single branch of a portfolio project is logged
  and does not stop the rest of the synchronisation.
- Permissions for the project creator require a `template_id` or
  `template_name`. `PermissionGrant.validate` enforces the allowed field
  combinations.
- A permission template's `default` flag is applied on `create` and `update`
  but is not read back from the server.
- Deleting a `ProjectMainBranch` renames the main branch back to `main`.
- Quality gate user and group associations need SonarQube 9.2 or newer;
  `check_gate_permission_feature_support` raises on older servers.

## Errors

Every failed call raises `SonarQubeError`, which carries the HTTP
`status_code` when there was one. A lookup for something the server does not
know of raises `NotFoundError`, a subclass, so callers can tell "gone" apart
from other failures. Field combinations that are not allowed raise
`ValueError` before any request is sent.

## What it does not do

This package does not create, rename or delete quality gates or edit their
conditions, and it does not create projects or manage their visibility, tags,
key or settings; it only works with gates and projects that already exist.
There is no command-line tool and nothing is stored locally: all state lives
on the SonarQube server.

## Running the tests

```
pip install -e ".[test]"
pytest
```
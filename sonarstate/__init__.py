"""Manage SonarQube portfolios, permissions, permission templates, plugins, main branches and quality gate associations through its web API."""

__version__ = "0.1.0"

__all__ = [
    "client",
    "permission_template",
    "permissions",
    "plugins",
    "portfolio",
    "portfolio_projects",
    "project_main_branch",
    "qualitygate_project_association",
    "qualitygate_usergroup_association",
]
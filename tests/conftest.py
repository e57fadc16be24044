"""Shared pytest fixtures."""

from __future__ import annotations

import logging

import pytest

import catalogci.config as config_module

_ENV_VARS = (
    "BACKSTAGE_URL",
    "CATALOG_CI_ENTITIES_FILE",
    "CATALOG_CI_FORCE_ALL_CHECKS",
    "GITHUB_SERVER_URL",
    "GITHUB_API_URL",
    "GITHUB_REPOSITORY",
    "GITHUB_EVENT_NAME",
    "GITHUB_EVENT_PATH",
    "GITHUB_OUTPUT",
    "GITHUB_TOKEN",
    "DD_API_KEY",
    "DD_SITE",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """No workflow env, no user config, CWD in tmp_path."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, "_GLOBAL_CONFIG_PATH", tmp_path / "no-global" / "config.yaml")
    monkeypatch.chdir(tmp_path)
    yield
    # configure_logging() detaches the catalogci logger from root; undo for caplog.
    logger = logging.getLogger("catalogci")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)

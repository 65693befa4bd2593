"""Pytest fixtures for access-control tests."""

import os
from unittest.mock import patch

import pytest
import yaml

from access_control.bootstrap import build_system
from access_control.config import Settings
from access_control.context import RequestContext


@pytest.fixture
def mock_env_vars():
    """Mock environment variables for testing."""
    env_vars = {
        "HOST": "127.0.0.1",
        "PORT": "3011",
        "LOG_LEVEL": "DEBUG",
        "PUBLIC_ROOT_URL": "http://localhost:3011/",
        "METADATA_DB_URL": "",
        "TOKEN_SERVICE_URL": "",
        "SEED_PATH": "",
    }
    with patch.dict(os.environ, env_vars, clear=False):
        yield env_vars


@pytest.fixture
def settings(mock_env_vars) -> Settings:
    """Create Settings instance with mocked environment."""
    return Settings()


@pytest.fixture
def system(settings):
    """In-memory system with two providers, a few collections and user tokens."""
    system = build_system(settings)
    for provider_id in ("PROV1", "PROV2"):
        system.metadata_db.add_provider(provider_id)
    system.metadata_db.add_collection("PROV1", "coll1")
    system.metadata_db.add_collection("PROV1", "coll2")
    system.metadata_db.add_collection("PROV2", "coll3")
    system.tokens.add_token("user1-token", "user1")
    system.tokens.add_token("user2-token", "user2")
    return system


@pytest.fixture
def guest_context(system) -> RequestContext:
    return RequestContext(system)


@pytest.fixture
def user1_context(system) -> RequestContext:
    return RequestContext(system, token="user1-token")


@pytest.fixture
def seed_yaml_content():
    """Seed file granting registered users create on PROV1 catalog item ACLs."""
    return {
        "providers": ["PROV1", "PROV2"],
        "collections": [
            {"provider_id": "PROV1", "entry_title": "coll1"},
            {"provider_id": "PROV2", "entry_title": "coll3"},
        ],
        "tokens": {"user1-token": "user1", "admin-token": "admin"},
        "groups": [
            {
                "name": "Administrators",
                "description": "System administrators",
                "members": ["admin"],
            },
            {
                "name": "PROV1 Editors",
                "provider_id": "PROV1",
                "description": "Metadata editors for PROV1",
                "members": ["user1"],
            },
        ],
        "acls": [
            {
                "provider_identity": {"provider_id": "PROV1", "target": "CATALOG_ITEM_ACL"},
                "group_permissions": [{"user_type": "registered", "permissions": ["create"]}],
            },
            {
                "system_identity": {"target": "GROUP"},
                "group_permissions": [{"user_type": "guest", "permissions": ["read"]}],
            },
        ],
    }


@pytest.fixture
def seed_path(seed_yaml_content, tmp_path):
    """Write the seed file to a temp file and return the path."""
    seed_file = tmp_path / "seed.yaml"
    seed_file.write_text(yaml.dump(seed_yaml_content))
    return str(seed_file)

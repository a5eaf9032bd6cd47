from __future__ import annotations

import importlib
import sys
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))


def _reload_registry():
    import registry.config as config_mod
    import registry.auth as auth_mod
    import registry.routes.identities as identities_mod
    import registry.routes.anchors as anchors_mod
    import registry.routes.stats as stats_mod
    import registry.app as app_mod

    importlib.reload(config_mod)
    importlib.reload(auth_mod)
    importlib.reload(identities_mod)
    importlib.reload(anchors_mod)
    importlib.reload(stats_mod)
    importlib.reload(app_mod)
    return app_mod


@pytest.fixture()
def make_app(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    def _make(**env_overrides: str):
        # Isolated DB per test.
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("LATTICE_DATABASE_URL", f"sqlite:///{tmp_path / 'registry.db'}")
        monkeypatch.setenv("LATTICE_AUTO_CREATE_SCHEMA", "true")
        monkeypatch.setenv("LATTICE_API_KEY_SALT_ROUNDS", "4")
        monkeypatch.setenv("LATTICE_REQUIRE_SIGNATURES", "false")
        for k, v in env_overrides.items():
            monkeypatch.setenv(k, v)
        return _reload_registry().create_app()

    return _make


@pytest.fixture()
def registry_app(make_app):
    return make_app()


@pytest.fixture()
def auth_header():
    def _auth(api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}"}

    return _auth


@pytest.fixture()
def register():
    def _register(client, label: str = "") -> dict:
        resp = client.post("/v1/identities/register", json={"label": label})
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _register

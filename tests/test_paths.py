"""Tests for ocpwi.paths module."""

import pathlib

import pytest

from ocpwi.paths import Paths


def test_paths_root_explicit(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that an explicit root wins over OCPWI_ROOT."""
    monkeypatch.setenv("OCPWI_ROOT", "/from/env")

    assert Paths("/explicit").root == pathlib.Path("/explicit")


def test_paths_root_with_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that Paths.root returns OCPWI_ROOT when set."""
    monkeypatch.setenv("OCPWI_ROOT", "/custom/work")

    assert Paths().root == pathlib.Path("/custom/work")


def test_paths_root_defaults_to_cwd(monkeypatch: pytest.MonkeyPatch, tmp_path: pathlib.Path) -> None:
    """Test that Paths.root falls back to the current directory."""
    monkeypatch.delenv("OCPWI_ROOT", raising=False)
    monkeypatch.chdir(tmp_path)

    assert Paths().root == tmp_path


def test_paths_layout() -> None:
    """Test the working directory layout under root."""
    paths = Paths("/work")

    assert paths.backups == pathlib.Path("/work/backup")
    assert paths.backup("authentication-cluster") == pathlib.Path("/work/backup/authentication-cluster.yaml")
    assert paths.private_key == pathlib.Path("/work/keys/sa-signer.key")
    assert paths.public_key == pathlib.Path("/work/keys/sa-signer.pub")
    assert paths.discovery_document == pathlib.Path("/work/oidc/openid-configuration.json")
    assert paths.jwks == pathlib.Path("/work/oidc/jwks.json")


def test_paths_key_and_backup_overrides() -> None:
    """Test that key_dir and backup_dir replace the defaults under root."""
    paths = Paths("/work", key_dir="/secure/keys", backup_dir="/secure/backup")

    assert paths.public_key == pathlib.Path("/secure/keys/sa-signer.pub")
    assert paths.backups == pathlib.Path("/secure/backup")


def test_paths_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test config path resolution order."""
    monkeypatch.delenv("OCPWI_CONFIG", raising=False)
    assert Paths("/work").config == pathlib.Path("/work/ocpwi.yaml")

    monkeypatch.setenv("OCPWI_CONFIG", "/etc/ocpwi.yaml")
    assert Paths("/work").config == pathlib.Path("/etc/ocpwi.yaml")

    assert Paths("/work", config="/tmp/c.yaml").config == pathlib.Path("/tmp/c.yaml")

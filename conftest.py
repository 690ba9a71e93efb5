"""Shared pytest fixtures for ocpwi tests.

This module provides common fixtures used across test files:
- ocpwi_root: Sets OCPWI_ROOT to a temporary working directory
- fake_sh: Replaces ocpwi.shext.sh with a recording FakeShell
- session: A WorkloadIdentitySession with sensible test defaults
- rsa_key / signing_key_backup: A real RSA signing key and its backed-up Secret
"""

import base64
import json
import pathlib
import subprocess
import typing

import pytest
import yaml
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

import ocpwi
import ocpwi.backup
import ocpwi.config
import ocpwi.paths
import ocpwi.session
import ocpwi.shext

ISSUER = "https://oidcissuertest.z13.web.core.windows.net"
TENANT_ID = "87654321-4321-4321-4321-210987654321"
CLIENT_ID = "abcdef12-3456-7890-abcd-ef1234567890"
PRINCIPAL_ID = "fedcba09-8765-4321-fedc-ba0987654321"


# ============================================================================
# Subprocess Fixtures
# ============================================================================


class FakeShell:
    """Stands in for `ocpwi.shext.sh`.

    Responses are registered per argument prefix; the longest matching prefix
    wins, and among equal prefixes the most recently registered one. A `once`
    response is dropped after it answers a call. Commands with no registered
    response succeed with empty output.

    Usage:
        def test_something(fake_sh):
            fake_sh.on("az", "group", "show", stdout={"name": "rg"})
            fake_sh.not_found("az", "identity", "show")
            ...
            assert fake_sh.ran("az", "group", "create")
    """

    def __init__(self):
        self.calls: list[list[str]] = []
        self.inputs: list[str | None] = []
        self._responses: list[tuple[tuple[str, ...], int, str, str, bool]] = []

    def on(
        self,
        *prefix: str,
        stdout: typing.Any = "",
        stderr: str = "",
        returncode: int = 0,
        once: bool = False,
    ) -> "FakeShell":
        if not isinstance(stdout, str):
            stdout = json.dumps(stdout)

        self._responses.append((tuple(prefix), returncode, stdout, stderr, once))
        return self

    def not_found(
        self,
        *prefix: str,
        stderr: str = "Error from server (NotFound): not found",
        once: bool = False,
    ) -> "FakeShell":
        return self.on(*prefix, stderr=stderr, returncode=1, once=once)

    def __call__(self, args, check=True, input=None, **kwargs) -> subprocess.CompletedProcess:  # noqa: A002
        args = [str(a) for a in args]
        self.calls.append(args)
        self.inputs.append(input)

        returncode, stdout, stderr = 0, "", ""
        best, chosen = -1, None
        for i, (prefix, rc, out, err, _) in enumerate(self._responses):
            if tuple(args[: len(prefix)]) == prefix and len(prefix) >= best:
                best, chosen = len(prefix), i
                returncode, stdout, stderr = rc, out, err

        if chosen is not None and self._responses[chosen][4]:
            del self._responses[chosen]

        if check and returncode != 0:
            raise subprocess.CalledProcessError(returncode, args, output=stdout, stderr=stderr)

        return subprocess.CompletedProcess(args, returncode, stdout, stderr)

    def find(self, *prefix: str) -> list[list[str]]:
        return [c for c in self.calls if tuple(c[: len(prefix)]) == prefix]

    def ran(self, *prefix: str) -> bool:
        return len(self.find(*prefix)) > 0

    def input_for(self, *prefix: str) -> list[str | None]:
        return [i for c, i in zip(self.calls, self.inputs, strict=True) if tuple(c[: len(prefix)]) == prefix]


@pytest.fixture
def fake_sh(monkeypatch: pytest.MonkeyPatch) -> FakeShell:
    """Replace ocpwi.shext.sh for the duration of a test.

    Every module calls `ocpwi.shext.sh` through the module attribute, and
    `shj`/`probe` resolve `sh` as a module global, so one patch covers all
    CLI calls.
    """
    fake = FakeShell()
    monkeypatch.setattr(ocpwi.shext, "sh", fake)
    return fake


# ============================================================================
# Environment Setup Fixtures
# ============================================================================


@pytest.fixture
def ocpwi_root(monkeypatch: pytest.MonkeyPatch, tmp_path: pathlib.Path) -> pathlib.Path:
    """Set OCPWI_ROOT to a temporary directory and clear other OCPWI_* overrides."""
    monkeypatch.setenv("OCPWI_ROOT", str(tmp_path))
    for key in (
        "OCPWI_CONFIG",
        "OCPWI_SH_DEBUG",
        *ocpwi.config.ENV_OVERRIDES,
    ):
        monkeypatch.delenv(key, raising=False)

    return tmp_path


@pytest.fixture
def config() -> ocpwi.config.WorkloadIdentityConfig:
    return ocpwi.config.WorkloadIdentityConfig(
        resource_group="wi-test-rg",
        location="eastus",
        storage_account="oidcissuertest",
        issuer_url=ISSUER + "/",
        tenant_id=TENANT_ID,
        keyvault=ocpwi.config.KeyVaultConfig(name="kv-test-vault"),
    )


@pytest.fixture
def session(
    ocpwi_root: pathlib.Path,
    config: ocpwi.config.WorkloadIdentityConfig,
) -> ocpwi.session.WorkloadIdentitySession:
    """A session rooted in a temporary directory with a fixed issuer and tenant.

    Usage:
        def test_something(session, fake_sh):
            ocpwi.backup.backup_all(session)
            assert session.paths.backup("authentication-cluster").exists()
    """
    return ocpwi.session.WorkloadIdentitySession(config, ocpwi.paths.Paths(ocpwi_root))


# ============================================================================
# Key Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def pem_pair(private_key) -> tuple[bytes, bytes]:
    return (
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        ),
        private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ),
    )


def signing_key_secret(private_pem: bytes, public_pem: bytes) -> dict[str, typing.Any]:
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "type": "SecretTypeTLS",
        "metadata": {
            "name": ocpwi.SIGNING_KEY_SECRET,
            "namespace": ocpwi.KUBE_APISERVER_OPERATOR_NAMESPACE,
        },
        "data": {
            ocpwi.SIGNING_KEY_PRIVATE_FIELD: base64.b64encode(private_pem).decode(),
            ocpwi.SIGNING_KEY_PUBLIC_FIELD: base64.b64encode(public_pem).decode(),
        },
    }


@pytest.fixture
def signing_key_backup(
    session: ocpwi.session.WorkloadIdentitySession,
    rsa_key: rsa.RSAPrivateKey,
) -> pathlib.Path:
    """Write a backed-up signing key Secret for `rsa_key` into the session's backup dir."""
    path = session.paths.backup(ocpwi.backup.SIGNING_KEY.name)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(signing_key_secret(*pem_pair(rsa_key))))
    return path


@pytest.fixture
def public_key_file(
    session: ocpwi.session.WorkloadIdentitySession,
    rsa_key: rsa.RSAPrivateKey,
) -> pathlib.Path:
    session.paths.keys.mkdir(parents=True, exist_ok=True)
    session.paths.public_key.write_bytes(pem_pair(rsa_key)[1])
    return session.paths.public_key

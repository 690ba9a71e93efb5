import dataclasses
import pathlib

import pytest
from conftest import ISSUER, TENANT_ID

import ocpwi.config
import ocpwi.paths
import ocpwi.session


def test_configured_issuer_is_normalized(session, fake_sh) -> None:
    assert session.issuer_url == ISSUER
    assert session.discovery_url == f"{ISSUER}/.well-known/openid-configuration"
    assert session.jwks_url == f"{ISSUER}/openid/v1/jwks"
    assert fake_sh.calls == []


def test_issuer_from_storage_account(config, ocpwi_root, fake_sh) -> None:
    fake_sh.on("az", "storage", "account", "show", stdout=ISSUER + "/\n")
    session = ocpwi.session.WorkloadIdentitySession(dataclasses.replace(config, issuer_url=None))

    assert session.issuer_url == ISSUER
    (call,) = fake_sh.calls
    assert call[call.index("--query") + 1] == "primaryEndpoints.web"


def test_issuer_requires_storage_account(config, ocpwi_root) -> None:
    session = ocpwi.session.WorkloadIdentitySession(dataclasses.replace(config, issuer_url=None, storage_account=None))

    with pytest.raises(ValueError, match="storage_account must be set"):
        _ = session.issuer_url


def test_tenant_from_az(config, ocpwi_root, fake_sh) -> None:
    fake_sh.on("az", "account", "show", stdout=TENANT_ID + "\n")
    session = ocpwi.session.WorkloadIdentitySession(dataclasses.replace(config, tenant_id=None))

    assert session.tenant_id == TENANT_ID
    assert session.tenant_id == TENANT_ID
    assert len(fake_sh.calls) == 1


def test_exe_env_kubeconfig(config, ocpwi_root) -> None:
    session = ocpwi.session.WorkloadIdentitySession(dataclasses.replace(config, kubeconfig="/tmp/kubeconfig"))

    assert session.exe_env["KUBECONFIG"] == "/tmp/kubeconfig"


def test_load_applies_directory_overrides(ocpwi_root: pathlib.Path) -> None:
    (ocpwi_root / "ocpwi.yaml").write_text(
        ocpwi.config.dump_config(ocpwi.config.WorkloadIdentityConfig(key_dir=str(ocpwi_root / "secure")))
    )

    session = ocpwi.session.WorkloadIdentitySession.load(ocpwi.paths.Paths())

    assert session.paths.public_key == ocpwi_root / "secure" / "sa-signer.pub"
    assert session.paths.backups == ocpwi_root / "backup"

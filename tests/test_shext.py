import subprocess

import pytest

import ocpwi.shext


def test_probe_exists(fake_sh) -> None:
    fake_sh.on("az", "group", "show", stdout="{}")

    assert ocpwi.shext.probe(["az", "group", "show", "--name", "rg"]) is True


@pytest.mark.parametrize(
    "stderr",
    [
        "(ResourceGroupNotFound) Resource group 'rg' could not be found.",
        'Error from server (NotFound): projects.project.openshift.io "wi-poc-test" not found',
        "Error: release: not found",
        "The Vault 'kv' not found within subscription.",
    ],
)
def test_probe_not_found(fake_sh, stderr: str) -> None:
    fake_sh.on("probe", stderr=stderr, returncode=1)

    assert ocpwi.shext.probe(["probe"]) is False


def test_probe_other_errors_propagate(fake_sh) -> None:
    fake_sh.on("oc", "get", stderr="error: You must be logged in to the server (Unauthorized)", returncode=1)

    with pytest.raises(subprocess.CalledProcessError):
        ocpwi.shext.probe(["oc", "get", "project", "x"])


def test_probe_json(fake_sh) -> None:
    fake_sh.on("az", "identity", "show", stdout={"clientId": "abc"})
    fake_sh.not_found("az", "identity", "federated-credential", "show")

    assert ocpwi.shext.probe_json(["az", "identity", "show"]) == {"clientId": "abc"}
    assert ocpwi.shext.probe_json(["az", "identity", "federated-credential", "show"]) is None


def test_shj(fake_sh) -> None:
    fake_sh.on("oc", "get", "pods", stdout={"items": []})

    assert ocpwi.shext.shj(["oc", "get", "pods"]) == {"items": []}


def test_sh_stringifies_arguments(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    seen = {}

    def fake_run(args, **kwargs):
        seen["args"] = args
        seen["kwargs"] = kwargs
        return subprocess.CompletedProcess(args, 0, "", "")

    monkeypatch.setattr(ocpwi.shext, "_run", fake_run)
    monkeypatch.delenv("OCPWI_SH_DEBUG", raising=False)

    ocpwi.shext.sh(["cat", tmp_path / "file"], check=False)

    assert seen["args"] == ["cat", str(tmp_path / "file")]
    assert seen["kwargs"] == {"check": False}


def test_sh_debug_echo(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    monkeypatch.setattr(ocpwi.shext, "_run", lambda args, **kwargs: subprocess.CompletedProcess(args, 0, "", ""))
    monkeypatch.setenv("OCPWI_SH_DEBUG", "1")

    ocpwi.shext.sh(["oc", "get", "project", "my project"])

    assert "$ oc get project 'my project'" in capsys.readouterr().err

import json

import yaml

import ocpwi.ensure
import ocpwi.manifests
import ocpwi.oc


def test_get_json_arguments(fake_sh) -> None:
    fake_sh.on("oc", "get", "pods", stdout={"items": []})

    ocpwi.oc.get_json("pods", namespace="openshift-kube-apiserver", selector="app=openshift-kube-apiserver")

    assert fake_sh.calls == [
        [
            "oc",
            "get",
            "pods",
            "--namespace",
            "openshift-kube-apiserver",
            "--selector",
            "app=openshift-kube-apiserver",
            "--output",
            "json",
        ]
    ]


def test_apply_pipes_manifests(fake_sh) -> None:
    ocpwi.oc.apply(ocpwi.manifests.namespace("a"), ocpwi.manifests.namespace("b"))

    assert fake_sh.calls == [["oc", "apply", "--server-side", "--force-conflicts", "--filename", "-"]]
    (doc,) = fake_sh.input_for("oc", "apply")
    assert [m["metadata"]["name"] for m in yaml.safe_load_all(doc)] == ["a", "b"]


def test_patch_merge(fake_sh) -> None:
    ocpwi.oc.patch_merge("authentication.config.openshift.io", "cluster", {"spec": {"serviceAccountIssuer": "x"}})

    (call,) = fake_sh.calls
    assert call[:6] == ["oc", "patch", "authentication.config.openshift.io", "cluster", "--type", "merge"]
    assert json.loads(call[-1]) == {"spec": {"serviceAccountIssuer": "x"}}


def test_ensure_project(fake_sh) -> None:
    fake_sh.not_found("oc", "get", "project")

    res = ocpwi.oc.ensure_project("wi-poc-test")

    assert res.status == ocpwi.ensure.CREATED
    assert fake_sh.ran("oc", "new-project", "wi-poc-test")


def test_rollout_status(fake_sh) -> None:
    assert ocpwi.oc.rollout_status("wi-test", "wi-poc-test", timeout="5s") is True
    assert fake_sh.calls[-1][-1] == "--timeout=5s"

    fake_sh.on("oc", "rollout", "status", stderr="timed out waiting for the condition", returncode=1)
    assert ocpwi.oc.rollout_status("wi-test", "wi-poc-test") is False


def test_pod_names(fake_sh) -> None:
    fake_sh.on("oc", "get", "pods", stdout={"items": [{"metadata": {"name": "wi-test-1"}}]})

    assert ocpwi.oc.pod_names("wi-poc-test", "app=wi-test") == ["wi-test-1"]


def test_exec_cat(fake_sh) -> None:
    fake_sh.on("oc", "exec", stdout="a.b.c\n")
    assert ocpwi.oc.exec_cat("pod", "ns", "/var/run/token") == "a.b.c"
    assert fake_sh.calls[-1] == ["oc", "exec", "pod", "--namespace", "ns", "--", "cat", "/var/run/token"]

    fake_sh.on("oc", "exec", stderr="No such file or directory", returncode=1)
    assert ocpwi.oc.exec_cat("pod", "ns", "/var/run/token") is None

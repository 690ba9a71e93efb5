from __future__ import annotations

import json
import typing

import ocpwi.ensure
import ocpwi.manifests
import ocpwi.shext


def _scope(namespace: str | None) -> list[str]:
    return ["--namespace", namespace] if namespace else []


def get_json(
    kind: str,
    name: str | None = None,
    namespace: str | None = None,
    selector: str | None = None,
    exe_env: dict[str, str] | None = None,
) -> dict[str, typing.Any]:
    return ocpwi.shext.shj(
        ["oc", "get", kind]
        + ([name] if name else [])
        + _scope(namespace)
        + (["--selector", selector] if selector else [])
        + ["--output", "json"],
        env=exe_env,
    )


def exists(
    kind: str,
    name: str,
    namespace: str | None = None,
    exe_env: dict[str, str] | None = None,
) -> bool:
    return ocpwi.shext.probe(
        ["oc", "get", kind, name, *_scope(namespace), "--output", "name"],
        env=exe_env,
    )


def apply(
    *manifests: dict[str, typing.Any],
    exe_env: dict[str, str] | None = None,
) -> str:
    """Server-side apply; re-applying an unchanged manifest is a no-op."""
    return ocpwi.shext.sh(
        ["oc", "apply", "--server-side", "--force-conflicts", "--filename", "-"],
        input=ocpwi.manifests.dump(*manifests),
        env=exe_env,
    ).stdout.strip()


def patch_merge(
    kind: str,
    name: str,
    patch: dict[str, typing.Any],
    namespace: str | None = None,
    exe_env: dict[str, str] | None = None,
) -> None:
    ocpwi.shext.sh(
        ["oc", "patch", kind, name, *_scope(namespace), "--type", "merge", "--patch", json.dumps(patch)],
        env=exe_env,
    )


def patch_json(
    kind: str,
    name: str,
    ops: list[dict[str, typing.Any]],
    namespace: str | None = None,
    exe_env: dict[str, str] | None = None,
) -> None:
    ocpwi.shext.sh(
        ["oc", "patch", kind, name, *_scope(namespace), "--type", "json", "--patch", json.dumps(ops)],
        env=exe_env,
    )


def ensure_project(name: str, exe_env: dict[str, str] | None = None) -> ocpwi.ensure.EnsureResult:
    return ocpwi.ensure.ensure(
        "project",
        name,
        exists=lambda: exists("project", name, exe_env=exe_env),
        create=lambda: ocpwi.shext.sh(["oc", "new-project", name, "--skip-config-write"], env=exe_env),
    )


def ensure_namespace(name: str, exe_env: dict[str, str] | None = None) -> ocpwi.ensure.EnsureResult:
    return ocpwi.ensure.ensure(
        "namespace",
        name,
        exists=lambda: exists("namespace", name, exe_env=exe_env),
        create=lambda: ocpwi.shext.sh(["oc", "create", "namespace", name], env=exe_env),
    )


def rollout_status(
    deployment: str,
    namespace: str,
    timeout: str = "60s",
    exe_env: dict[str, str] | None = None,
) -> bool:
    return (
        ocpwi.shext.sh(
            ["oc", "rollout", "status", f"deployment/{deployment}", *_scope(namespace), f"--timeout={timeout}"],
            env=exe_env,
            check=False,
        ).returncode
        == 0
    )


def pod_names(
    namespace: str,
    selector: str,
    exe_env: dict[str, str] | None = None,
) -> list[str]:
    pods = get_json("pods", namespace=namespace, selector=selector, exe_env=exe_env)

    return [pod["metadata"]["name"] for pod in pods.get("items", [])]


def exec_cat(
    pod: str,
    namespace: str,
    path: str,
    exe_env: dict[str, str] | None = None,
) -> str | None:
    res = ocpwi.shext.sh(
        ["oc", "exec", pod, *_scope(namespace), "--", "cat", path],
        env=exe_env,
        check=False,
    )
    if res.returncode != 0:
        return None

    return res.stdout.strip()


def whoami(exe_env: dict[str, str] | None = None) -> tuple[str, bool]:
    ret = ocpwi.shext.sh(["oc", "whoami"], env=exe_env, check=False)
    if ret.returncode != 0:
        return "", False

    return ret.stdout.strip(), True

from __future__ import annotations

import json

import ocpwi.ensure
import ocpwi.shext


def repo_names(exe_env: dict[str, str] | None = None) -> list[str]:
    res = ocpwi.shext.sh(["helm", "repo", "list", "--output", "json"], env=exe_env, check=False)

    if res.returncode != 0:
        # helm exits non-zero when no repositories are configured at all
        if "no repositories" in res.stderr:
            return []

        res.check_returncode()

    return [repo["name"] for repo in json.loads(res.stdout or "[]")]


def ensure_repo(name: str, url: str, exe_env: dict[str, str] | None = None) -> ocpwi.ensure.EnsureResult:
    res = ocpwi.ensure.ensure(
        "helm repository",
        name,
        exists=lambda: name in repo_names(exe_env=exe_env),
        create=lambda: ocpwi.shext.sh(["helm", "repo", "add", name, url], env=exe_env),
    )
    ocpwi.shext.sh(["helm", "repo", "update", name], env=exe_env)

    return res


def release_exists(release: str, namespace: str, exe_env: dict[str, str] | None = None) -> bool:
    return ocpwi.shext.probe(
        ["helm", "status", release, "--namespace", namespace, "--output", "json"],
        env=exe_env,
    )


def ensure_release(
    release: str,
    chart: str,
    namespace: str,
    values: dict[str, str] | None = None,
    version: str | None = None,
    exe_env: dict[str, str] | None = None,
) -> ocpwi.ensure.EnsureResult:
    return ocpwi.ensure.ensure(
        "helm release",
        release,
        exists=lambda: release_exists(release, namespace, exe_env=exe_env),
        create=lambda: ocpwi.shext.sh(
            ["helm", "install", release, chart, "--namespace", namespace]
            + (["--version", version] if version else [])
            + [arg for k, v in sorted((values or {}).items()) for arg in ("--set", f"{k}={v}")],
            env=exe_env,
        ),
    )


def version(exe_env: dict[str, str] | None = None) -> tuple[str, bool]:
    ret = ocpwi.shext.sh(["helm", "version", "--short"], env=exe_env, check=False)
    if ret.returncode != 0:
        return "", False

    return ret.stdout.strip(), True

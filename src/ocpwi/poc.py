from __future__ import annotations

import dataclasses
import posixpath
import re
import typing

import click

import ocpwi
import ocpwi.az
import ocpwi.junkdrawer
import ocpwi.manifests
import ocpwi.oc

if typing.TYPE_CHECKING:
    import ocpwi.session

JWT_REGEX = re.compile(r"^[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+$")

EXPECTED_ENV = frozenset(str(e) for e in ocpwi.InjectedEnv)


def looks_like_jwt(token: str | None) -> bool:
    return token is not None and JWT_REGEX.match(token.strip()) is not None


@dataclasses.dataclass
class PocResult:
    pod: str
    env_names: tuple[str, ...] = ()
    token_mounts: tuple[str, ...] = ()
    token_volume: bool = False
    token_path: str | None = None
    token: str | None = None

    @property
    def missing_env(self) -> tuple[str, ...]:
        return tuple(sorted(EXPECTED_ENV - set(self.env_names)))

    @property
    def unexpected_env(self) -> tuple[str, ...]:
        return tuple(sorted(set(self.env_names) - EXPECTED_ENV))

    @property
    def succeeded(self) -> bool:
        return (
            set(self.env_names) == EXPECTED_ENV
            and len(self.token_mounts) == 1
            and self.token_volume
            and looks_like_jwt(self.token)
        )


def inspect_pod(pod: dict[str, typing.Any], token: str | None = None) -> PocResult:
    """Summarize what the webhook injected into the first container of `pod`."""
    spec = pod.get("spec", {})
    container = (spec.get("containers") or [{}])[0]

    env = {e["name"]: e.get("value") for e in container.get("env", []) or []}
    mounts = [m for m in container.get("volumeMounts", []) or [] if m.get("name") == ocpwi.TOKEN_VOLUME_NAME]
    volumes = [v for v in spec.get("volumes", []) or [] if v.get("name") == ocpwi.TOKEN_VOLUME_NAME]

    token_path = env.get(str(ocpwi.InjectedEnv.AZURE_FEDERATED_TOKEN_FILE))
    if not token_path and mounts:
        token_path = posixpath.join(mounts[0]["mountPath"], ocpwi.TOKEN_FILE_NAME)

    return PocResult(
        pod=pod.get("metadata", {}).get("name", ""),
        env_names=tuple(sorted(name for name in env if name.startswith("AZURE_"))),
        token_mounts=tuple(m["mountPath"] for m in mounts),
        token_volume=any("projected" in v for v in volumes),
        token_path=token_path,
        token=token,
    )


def print_poc_result(res: PocResult) -> None:
    ocpwi.junkdrawer.heading("Checking webhook mutation")

    click.secho("Environment variables injected:", fg="blue")
    for name in res.env_names or ("(none found)",):
        click.echo(f"  {name}")
    for name in res.missing_env:
        ocpwi.junkdrawer.fail(f"missing {name}")

    click.secho("Token volume mounts:", fg="blue")
    for path in res.token_mounts or ("(none found)",):
        click.echo(f"  {path}")

    if res.token_volume:
        ocpwi.junkdrawer.ok(f"projected volume {ocpwi.TOKEN_VOLUME_NAME} present")
    else:
        ocpwi.junkdrawer.fail(f"projected volume {ocpwi.TOKEN_VOLUME_NAME} not found")

    if looks_like_jwt(res.token):
        ocpwi.junkdrawer.ok(f"token found at {res.token_path}")
        click.echo(f"  {res.token[:100]}...")
    else:
        ocpwi.junkdrawer.fail("no JWT found in the projected token file")
        ocpwi.junkdrawer.warn("The webhook may not have mutated the pod correctly")


def cleanup_commands(session: ocpwi.session.WorkloadIdentitySession) -> list[str]:
    return [
        f"oc delete project {session.cfg.poc.project}",
        f"az identity delete --name {session.cfg.poc.identity_name} --resource-group {session.cfg.resource_group}",
    ]


def run_poc(session: ocpwi.session.WorkloadIdentitySession) -> PocResult:
    cfg = session.cfg
    poc = cfg.poc
    env = session.exe_env

    ocpwi.junkdrawer.heading("Step 1: Creating OpenShift project")
    ocpwi.oc.ensure_project(poc.project, exe_env=env)

    ocpwi.junkdrawer.heading("Step 2: Creating Azure resource group")
    ocpwi.az.ensure_resource_group(cfg.resource_group, cfg.location, exe_env=env)

    ocpwi.junkdrawer.heading("Step 3: Creating user-assigned managed identity")
    identity = ocpwi.az.ensure_identity(poc.identity_name, cfg.resource_group, cfg.location, exe_env=env)
    client_id = identity["clientId"]
    ocpwi.junkdrawer.info("Client ID", client_id)

    ocpwi.junkdrawer.heading("Step 4: Creating federated identity credential")
    subject = ocpwi.federated_subject(poc.project, poc.service_account)
    ocpwi.az.ensure_federated_credential(
        poc.federated_credential_name,
        poc.identity_name,
        cfg.resource_group,
        issuer=session.issuer_url,
        subject=subject,
        exe_env=env,
    )
    ocpwi.junkdrawer.info("Subject", subject)

    ocpwi.junkdrawer.heading("Step 5: Creating annotated service account")
    ocpwi.oc.apply(
        ocpwi.manifests.service_account(poc.service_account, poc.project, client_id, session.tenant_id),
        exe_env=env,
    )
    sa = ocpwi.oc.get_json("serviceaccount", poc.service_account, namespace=poc.project, exe_env=env)
    annotated = sa.get("metadata", {}).get("annotations", {}).get(str(ocpwi.Annotations.CLIENT_ID))
    if annotated != client_id:
        msg = f"service account annotation client-id={annotated!r} does not match identity client ID {client_id!r}"
        raise RuntimeError(msg)
    ocpwi.junkdrawer.ok("Service account annotated")

    ocpwi.junkdrawer.heading("Step 6: Deploying test workload")
    ocpwi.oc.apply(
        ocpwi.manifests.deployment(poc.deployment, poc.project, poc.service_account, poc.image),
        exe_env=env,
    )
    ocpwi.junkdrawer.ok("Test deployment ready")

    ocpwi.junkdrawer.heading("Step 7: Waiting for deployment to be ready")
    if not ocpwi.oc.rollout_status(poc.deployment, poc.project, timeout=poc.rollout_timeout, exe_env=env):
        ocpwi.junkdrawer.warn(f"deployment/{poc.deployment} not ready after {poc.rollout_timeout}; inspecting anyway")

    pods = ocpwi.oc.pod_names(poc.project, f"app={poc.deployment}", exe_env=env)
    if not pods:
        msg = f"no pod found for deployment/{poc.deployment} in {poc.project!r}"
        raise RuntimeError(msg)

    pod = ocpwi.oc.get_json("pod", pods[0], namespace=poc.project, exe_env=env)
    res = inspect_pod(pod)
    if res.token_path:
        res.token = ocpwi.oc.exec_cat(res.pod, poc.project, res.token_path, exe_env=env)

    print_poc_result(res)

    click.secho("\n=== Summary ===", fg="blue", bold=True)
    ocpwi.junkdrawer.info("Project", poc.project)
    ocpwi.junkdrawer.info("Service Account", poc.service_account)
    ocpwi.junkdrawer.info("Resource Group", cfg.resource_group)
    ocpwi.junkdrawer.info("Managed Identity", poc.identity_name)
    ocpwi.junkdrawer.info("Client ID", client_id)
    ocpwi.junkdrawer.info("Issuer", session.issuer_url)

    return res

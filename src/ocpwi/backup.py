from __future__ import annotations

import dataclasses
import typing

import click
import yaml

import ocpwi
import ocpwi.ensure
import ocpwi.junkdrawer
import ocpwi.oc

if typing.TYPE_CHECKING:
    import ocpwi.session

VOLATILE_METADATA = (
    "managedFields",
    "resourceVersion",
    "uid",
    "creationTimestamp",
    "generation",
)


@dataclasses.dataclass(frozen=True)
class BackupTarget:
    name: str
    kind: str
    object_name: str
    namespace: str | None = None


AUTHENTICATION = BackupTarget(
    name="authentication-cluster",
    kind="authentication.config.openshift.io",
    object_name=ocpwi.AUTHENTICATION_NAME,
)
SIGNING_KEY = BackupTarget(
    name="signing-key-secret",
    kind="secret",
    object_name=ocpwi.SIGNING_KEY_SECRET,
    namespace=ocpwi.KUBE_APISERVER_OPERATOR_NAMESPACE,
)
SIGNING_CERTS = BackupTarget(
    name="signing-certs-configmap",
    kind="configmap",
    object_name=ocpwi.SIGNING_CERTS_CONFIGMAP,
    namespace=ocpwi.KUBE_APISERVER_NAMESPACE,
)

TARGETS = (AUTHENTICATION, SIGNING_KEY, SIGNING_CERTS)


def strip_volatile(obj: dict[str, typing.Any]) -> dict[str, typing.Any]:
    obj = dict(obj)
    obj["metadata"] = {k: v for k, v in obj.get("metadata", {}).items() if k not in VOLATILE_METADATA}
    obj.pop("status", None)

    return obj


def backup_all(
    session: ocpwi.session.WorkloadIdentitySession,
    *,
    force: bool = False,
) -> list[ocpwi.ensure.EnsureResult]:
    """
    Snapshot the cluster objects the workflow changes or reads from.

    Existing backup files are kept so that a re-run after the issuer has been
    changed does not replace the pre-change snapshot.
    """
    ocpwi.junkdrawer.heading("Backing up cluster authentication state")
    session.paths.backups.mkdir(parents=True, exist_ok=True)

    results = []
    for target in TARGETS:
        path = session.paths.backup(target.name)
        res = ocpwi.ensure.EnsureResult(kind="backup", name=str(path))

        existed = path.exists()

        if existed and not force:
            res.status = ocpwi.ensure.EXISTS
        else:
            obj = ocpwi.oc.get_json(
                target.kind,
                target.object_name,
                namespace=target.namespace,
                exe_env=session.exe_env,
            )
            if target is SIGNING_KEY:
                # mode is set before any key material lands
                path.touch(mode=0o600)
                path.chmod(0o600)
            path.write_text(yaml.safe_dump(strip_volatile(obj), sort_keys=False))

            res.status = ocpwi.ensure.UPDATED if existed else ocpwi.ensure.CREATED

        ocpwi.ensure.print_result(res)
        results.append(res)

    return results


def load_backup(
    session: ocpwi.session.WorkloadIdentitySession,
    target: BackupTarget,
) -> dict[str, typing.Any]:
    path = session.paths.backup(target.name)
    if not path.exists():
        msg = f"backup {str(path)!r} not found; run 'ocpwi backup-all' first"
        raise RuntimeError(msg)

    return yaml.safe_load(path.read_text())


def restore_authentication(session: ocpwi.session.WorkloadIdentitySession) -> ocpwi.ensure.EnsureResult:
    """Return the cluster authentication config to its backed-up spec, field for field."""
    ocpwi.junkdrawer.heading("Restoring authentication configuration from backup")

    backed_up = load_backup(session, AUTHENTICATION)
    current = ocpwi.oc.get_json(AUTHENTICATION.kind, AUTHENTICATION.object_name, exe_env=session.exe_env)

    res = ocpwi.ensure.EnsureResult(kind="authentication", name=AUTHENTICATION.object_name)
    want = backed_up.get("spec", {})

    if current.get("spec", {}) == want:
        res.status = ocpwi.ensure.UNCHANGED
    else:
        ocpwi.oc.patch_json(
            AUTHENTICATION.kind,
            AUTHENTICATION.object_name,
            [{"op": "replace", "path": "/spec", "value": want}],
            exe_env=session.exe_env,
        )
        res.status = ocpwi.ensure.UPDATED
        click.secho("  the kube-apiserver will roll out again; watch with 'ocpwi issuer-status'", fg="yellow")

    ocpwi.ensure.print_result(res)
    return res

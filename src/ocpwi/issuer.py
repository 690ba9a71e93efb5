from __future__ import annotations

import typing

import click

import ocpwi
import ocpwi.backup
import ocpwi.ensure
import ocpwi.junkdrawer
import ocpwi.oc
import ocpwi.oidc

if typing.TYPE_CHECKING:
    import ocpwi.session

KUBE_APISERVER_OPERATOR = "kube-apiserver"
KUBE_APISERVER_POD_SELECTOR = "app=openshift-kube-apiserver"
WATCHED_CONDITIONS = ("Available", "Progressing", "Degraded")


def current_issuer(session: ocpwi.session.WorkloadIdentitySession) -> str:
    auth = ocpwi.oc.get_json(
        ocpwi.backup.AUTHENTICATION.kind,
        ocpwi.AUTHENTICATION_NAME,
        exe_env=session.exe_env,
    )

    return auth.get("spec", {}).get("serviceAccountIssuer", "")


def update_issuer(
    session: ocpwi.session.WorkloadIdentitySession,
    *,
    verify: bool = True,
) -> ocpwi.ensure.EnsureResult:
    """Point the cluster's service account issuer at the published OIDC endpoint."""
    ocpwi.junkdrawer.heading("Updating service account issuer")

    # rollback depends on this snapshot existing before anything is changed
    ocpwi.backup.load_backup(session, ocpwi.backup.AUTHENTICATION)

    issuer = session.issuer_url
    if verify:
        ocpwi.oidc.validate_discovery_document(ocpwi.oidc.fetch_json(session.discovery_url))

    res = ocpwi.ensure.EnsureResult(kind="service account issuer", name=issuer)

    if current_issuer(session) == issuer:
        res.status = ocpwi.ensure.UNCHANGED
        ocpwi.ensure.print_result(res)
        return res

    ocpwi.oc.patch_merge(
        ocpwi.backup.AUTHENTICATION.kind,
        ocpwi.AUTHENTICATION_NAME,
        {"spec": {"serviceAccountIssuer": issuer}},
        exe_env=session.exe_env,
    )
    res.status = ocpwi.ensure.UPDATED
    ocpwi.ensure.print_result(res)

    rollout_status(session)
    click.secho(
        "  the kube-apiserver pods now restart one at a time; follow with 'ocpwi issuer-status'",
        fg="yellow",
    )
    return res


def operator_conditions(clusteroperator: dict[str, typing.Any]) -> dict[str, str]:
    return {
        c["type"]: c.get("status", "Unknown")
        for c in clusteroperator.get("status", {}).get("conditions", [])
        if c.get("type") in WATCHED_CONDITIONS
    }


def rollout_status(session: ocpwi.session.WorkloadIdentitySession) -> dict[str, str]:
    ocpwi.junkdrawer.heading("Observing kube-apiserver rollout")

    conditions = operator_conditions(
        ocpwi.oc.get_json("clusteroperator", KUBE_APISERVER_OPERATOR, exe_env=session.exe_env)
    )
    for name in WATCHED_CONDITIONS:
        ocpwi.junkdrawer.info(name, conditions.get(name, "Unknown"))

    pods = ocpwi.oc.get_json(
        "pods",
        namespace=ocpwi.KUBE_APISERVER_NAMESPACE,
        selector=KUBE_APISERVER_POD_SELECTOR,
        exe_env=session.exe_env,
    )
    for pod in pods.get("items", []):
        ocpwi.junkdrawer.info(pod["metadata"]["name"], pod.get("status", {}).get("phase", "Unknown"))

    ocpwi.junkdrawer.info("Issuer", current_issuer(session) or "(default)")

    if conditions.get("Progressing") == "False" and conditions.get("Degraded") != "True":
        ocpwi.junkdrawer.ok("kube-apiserver rollout complete")
    else:
        ocpwi.junkdrawer.warn("kube-apiserver rollout in progress")

    return conditions

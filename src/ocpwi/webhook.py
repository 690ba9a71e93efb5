from __future__ import annotations

import typing

import ocpwi
import ocpwi.ensure
import ocpwi.helm
import ocpwi.junkdrawer
import ocpwi.oc

if typing.TYPE_CHECKING:
    import ocpwi.session


def ensure_namespace(session: ocpwi.session.WorkloadIdentitySession) -> ocpwi.ensure.EnsureResult:
    ocpwi.junkdrawer.heading("Ensuring webhook namespace")
    return ocpwi.oc.ensure_namespace(session.cfg.webhook.namespace, exe_env=session.exe_env)


def ensure_repo(session: ocpwi.session.WorkloadIdentitySession) -> ocpwi.ensure.EnsureResult:
    ocpwi.junkdrawer.heading("Ensuring webhook chart repository")
    wh = session.cfg.webhook
    return ocpwi.helm.ensure_repo(wh.chart_repo_name, wh.chart_repo_url, exe_env=session.exe_env)


def install_release(session: ocpwi.session.WorkloadIdentitySession) -> ocpwi.ensure.EnsureResult:
    ocpwi.junkdrawer.heading("Installing webhook chart")
    wh = session.cfg.webhook
    return ocpwi.helm.ensure_release(
        wh.release,
        wh.chart_ref,
        wh.namespace,
        values={"azureTenantID": session.tenant_id},
        version=wh.chart_version,
        exe_env=session.exe_env,
    )


def scc_users_patch(scc: dict[str, typing.Any], user: str) -> list[dict[str, typing.Any]] | None:
    """JSON patch ops adding `user` to the SCC, or None when it is already allowed."""
    users = scc.get("users")

    if users is None:
        return [{"op": "add", "path": "/users", "value": [user]}]

    if user in users:
        return None

    return [{"op": "add", "path": "/users/-", "value": user}]


def patch_scc(session: ocpwi.session.WorkloadIdentitySession) -> ocpwi.ensure.EnsureResult:
    ocpwi.junkdrawer.heading("Allowing webhook pods in SecurityContextConstraints")
    wh = session.cfg.webhook
    user = ocpwi.federated_subject(wh.namespace, wh.service_account)

    scc = ocpwi.oc.get_json("securitycontextconstraints", wh.scc, exe_env=session.exe_env)
    ops = scc_users_patch(scc, user)

    res = ocpwi.ensure.EnsureResult(kind="scc user", name=f"{wh.scc}:{user}")
    if ops is None:
        res.status = ocpwi.ensure.EXISTS
    else:
        ocpwi.oc.patch_json("securitycontextconstraints", wh.scc, ops, exe_env=session.exe_env)
        res.status = ocpwi.ensure.UPDATED

    ocpwi.ensure.print_result(res)
    return res


def deploy_all(session: ocpwi.session.WorkloadIdentitySession) -> list[ocpwi.ensure.EnsureResult]:
    return [
        ensure_namespace(session),
        ensure_repo(session),
        install_release(session),
        patch_scc(session),
    ]

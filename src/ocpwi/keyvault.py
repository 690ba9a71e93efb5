"""
External Secrets Operator access to Azure Key Vault through workload identity.

A managed identity is granted read access to the vault and federated with a
service account that a `ClusterSecretStore` authenticates as; an
`ExternalSecret` then syncs vault secrets into a namespace.
"""

from __future__ import annotations

import typing

import click

import ocpwi
import ocpwi.az
import ocpwi.azure_sdk
import ocpwi.junkdrawer
import ocpwi.manifests
import ocpwi.oc

if typing.TYPE_CHECKING:
    import ocpwi.session


def setup(session: ocpwi.session.WorkloadIdentitySession) -> None:
    cfg = session.cfg
    kv = cfg.keyvault
    env = session.exe_env
    vault_url = kv.vault_url

    ocpwi.junkdrawer.heading("Step 1: Creating Azure resource group")
    ocpwi.az.ensure_resource_group(kv.resource_group, cfg.location, exe_env=env)

    ocpwi.junkdrawer.heading("Step 2: Creating user-assigned managed identity")
    identity = ocpwi.az.ensure_identity(kv.identity_name, kv.resource_group, cfg.location, exe_env=env)
    tenant_id = session.tenant_id
    ocpwi.junkdrawer.info("Client ID", identity["clientId"])
    ocpwi.junkdrawer.info("Principal ID", identity["principalId"])
    ocpwi.junkdrawer.info("Tenant ID", tenant_id)

    ocpwi.junkdrawer.heading(f"Step 3: Granting {kv.role} role to managed identity")
    scope = ocpwi.az.keyvault_id(kv.name, exe_env=env)
    if scope is None:
        ocpwi.junkdrawer.fail(f"Key Vault {kv.name} not found")
        ocpwi.junkdrawer.warn("Create the Key Vault first or update keyvault.name; skipping role assignment")
    else:
        ocpwi.az.ensure_role_assignment(identity["principalId"], scope, kv.role, exe_env=env)

    ocpwi.junkdrawer.heading(f"Step 4: Ensuring namespace {kv.namespace} exists")
    ocpwi.oc.ensure_namespace(kv.namespace, exe_env=env)

    ocpwi.junkdrawer.heading("Step 5: Creating service account with workload identity annotations")
    ocpwi.oc.apply(
        ocpwi.manifests.service_account(
            kv.service_account,
            kv.namespace,
            identity["clientId"],
            tenant_id,
            use_label=True,
        ),
        exe_env=env,
    )
    ocpwi.junkdrawer.ok(f"Service account {kv.service_account} applied")

    ocpwi.junkdrawer.heading("Step 6: Creating federated identity credential")
    subject = ocpwi.federated_subject(kv.namespace, kv.service_account)
    ocpwi.az.ensure_federated_credential(
        kv.federated_credential_name,
        kv.identity_name,
        kv.resource_group,
        issuer=session.issuer_url,
        subject=subject,
        exe_env=env,
    )
    ocpwi.junkdrawer.info("Subject", subject)

    ocpwi.junkdrawer.heading("Step 7: Creating ClusterSecretStore")
    ocpwi.oc.apply(
        ocpwi.manifests.cluster_secret_store(kv.cluster_secret_store, vault_url, kv.service_account, kv.namespace),
        exe_env=env,
    )
    ocpwi.junkdrawer.ok(f"ClusterSecretStore {kv.cluster_secret_store} applied")

    ocpwi.junkdrawer.heading(f"Step 8: Ensuring target namespace {kv.target_namespace} exists")
    ocpwi.oc.ensure_namespace(kv.target_namespace, exe_env=env)

    ocpwi.junkdrawer.heading(f"Step 9: Creating ExternalSecret {kv.external_secret}")
    ocpwi.oc.apply(
        ocpwi.manifests.external_secret(
            kv.external_secret,
            kv.target_namespace,
            kv.cluster_secret_store,
            [(d.secret_key, d.remote_key) for d in kv.data],
            refresh_interval=kv.refresh_interval,
        ),
        exe_env=env,
    )
    ocpwi.junkdrawer.ok(f"ExternalSecret {kv.external_secret} applied in {kv.target_namespace}")

    click.secho("\n=== Setup Complete ===", fg="blue", bold=True)
    ocpwi.junkdrawer.info("Key Vault URL", vault_url)
    ocpwi.junkdrawer.info("OIDC Issuer", session.issuer_url)
    click.secho("\nTo check ExternalSecret sync status:", fg="yellow")
    click.echo(f"  oc get externalsecret {kv.external_secret} -n {kv.target_namespace}")


def verify_remote_secrets(session: ocpwi.session.WorkloadIdentitySession) -> list[str]:
    """Return the vault secrets the ExternalSecret references that do not exist."""
    kv = session.cfg.keyvault
    ocpwi.junkdrawer.heading(f"Checking Key Vault {kv.name} for referenced secrets")

    missing = ocpwi.azure_sdk.missing_secrets(kv.vault_url, [d.remote_key for d in kv.data])
    for d in kv.data:
        if d.remote_key in missing:
            ocpwi.junkdrawer.fail(f"{d.remote_key} (for {d.secret_key}) not found")
        else:
            ocpwi.junkdrawer.ok(f"{d.remote_key} present")

    return missing

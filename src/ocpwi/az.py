from __future__ import annotations

import json
import pathlib
import typing

import click

import ocpwi
import ocpwi.ensure
import ocpwi.shext


def tenant_id(exe_env: dict[str, str] | None = None) -> str:
    return ocpwi.shext.sh(
        ["az", "account", "show", "--query", "tenantId", "--output", "tsv"],
        env=exe_env,
    ).stdout.strip()


def whoami(exe_env: dict[str, str] | None = None) -> tuple[dict[str, typing.Any], bool]:
    ret = ocpwi.shext.sh(
        ["az", "account", "show", "--output", "json"],
        env=exe_env,
        check=False,
    )
    if ret.returncode != 0:
        return {}, False

    return json.loads(ret.stdout), True


def ensure_resource_group(
    name: str,
    location: str,
    exe_env: dict[str, str] | None = None,
) -> ocpwi.ensure.EnsureResult:
    return ocpwi.ensure.ensure(
        "resource group",
        name,
        exists=lambda: ocpwi.shext.probe(["az", "group", "show", "--name", name], env=exe_env),
        create=lambda: ocpwi.shext.sh(
            ["az", "group", "create", "--name", name, "--location", location, "--output", "none"],
            env=exe_env,
        ),
    )


def show_identity(
    name: str,
    resource_group: str,
    exe_env: dict[str, str] | None = None,
) -> ocpwi.ManagedIdentity | None:
    return ocpwi.shext.probe_json(
        ["az", "identity", "show", "--name", name, "--resource-group", resource_group, "--output", "json"],
        env=exe_env,
    )


def ensure_identity(
    name: str,
    resource_group: str,
    location: str,
    exe_env: dict[str, str] | None = None,
) -> ocpwi.ManagedIdentity:
    """Ensure a user-assigned managed identity exists and return it as Azure reports it."""
    ocpwi.ensure.ensure(
        "managed identity",
        name,
        exists=lambda: show_identity(name, resource_group, exe_env=exe_env) is not None,
        create=lambda: ocpwi.shext.sh(
            [
                "az",
                "identity",
                "create",
                "--name",
                name,
                "--resource-group",
                resource_group,
                "--location",
                location,
                "--output",
                "none",
            ],
            env=exe_env,
        ),
    )

    identity = show_identity(name, resource_group, exe_env=exe_env)
    if identity is None:
        msg = f"managed identity {name!r} not found in {resource_group!r} after creation"
        raise RuntimeError(msg)

    return identity


def show_federated_credential(
    name: str,
    identity_name: str,
    resource_group: str,
    exe_env: dict[str, str] | None = None,
) -> dict[str, typing.Any] | None:
    return ocpwi.shext.probe_json(
        [
            "az",
            "identity",
            "federated-credential",
            "show",
            "--name",
            name,
            "--identity-name",
            identity_name,
            "--resource-group",
            resource_group,
            "--output",
            "json",
        ],
        env=exe_env,
    )


def ensure_federated_credential(
    name: str,
    identity_name: str,
    resource_group: str,
    issuer: str,
    subject: str,
    audience: str = ocpwi.AUDIENCE,
    exe_env: dict[str, str] | None = None,
) -> ocpwi.ensure.EnsureResult:
    existing = show_federated_credential(name, identity_name, resource_group, exe_env=exe_env)

    if existing is not None:
        res = ocpwi.ensure.EnsureResult(kind="federated credential", name=name, status=ocpwi.ensure.EXISTS)
        ocpwi.ensure.print_result(res)

        # An existing credential is never rewritten; a stale one is left to the operator.
        if existing.get("issuer", "").rstrip("/") != issuer.rstrip("/") or existing.get("subject") != subject:
            click.secho(
                f"  existing credential trusts issuer={existing.get('issuer')!r} "
                f"subject={existing.get('subject')!r}, expected issuer={issuer!r} subject={subject!r}",
                fg="yellow",
            )

        return res

    ocpwi.shext.sh(
        [
            "az",
            "identity",
            "federated-credential",
            "create",
            "--name",
            name,
            "--identity-name",
            identity_name,
            "--resource-group",
            resource_group,
            "--issuer",
            issuer,
            "--subject",
            subject,
            "--audiences",
            audience,
            "--output",
            "none",
        ],
        env=exe_env,
    )

    res = ocpwi.ensure.EnsureResult(kind="federated credential", name=name, status=ocpwi.ensure.CREATED)
    ocpwi.ensure.print_result(res)
    return res


def ensure_storage_account(
    name: str,
    resource_group: str,
    location: str,
    exe_env: dict[str, str] | None = None,
) -> ocpwi.ensure.EnsureResult:
    return ocpwi.ensure.ensure(
        "storage account",
        name,
        exists=lambda: ocpwi.shext.probe(
            ["az", "storage", "account", "show", "--name", name, "--resource-group", resource_group],
            env=exe_env,
        ),
        create=lambda: ocpwi.shext.sh(
            [
                "az",
                "storage",
                "account",
                "create",
                "--name",
                name,
                "--resource-group",
                resource_group,
                "--location",
                location,
                "--kind",
                "StorageV2",
                "--sku",
                "Standard_LRS",
                "--allow-blob-public-access",
                "true",
                "--output",
                "none",
            ],
            env=exe_env,
        ),
    )


def static_website_enabled(
    account_name: str,
    auth_mode: str = "key",
    exe_env: dict[str, str] | None = None,
) -> bool:
    return (
        ocpwi.shext.sh(
            [
                "az",
                "storage",
                "blob",
                "service-properties",
                "show",
                "--account-name",
                account_name,
                "--auth-mode",
                auth_mode,
                "--query",
                "staticWebsite.enabled",
                "--output",
                "tsv",
            ],
            env=exe_env,
        ).stdout.strip().lower()
        == "true"
    )


def ensure_static_website(
    account_name: str,
    auth_mode: str = "key",
    exe_env: dict[str, str] | None = None,
) -> ocpwi.ensure.EnsureResult:
    return ocpwi.ensure.ensure(
        "static website",
        account_name,
        exists=lambda: static_website_enabled(account_name, auth_mode, exe_env=exe_env),
        create=lambda: ocpwi.shext.sh(
            [
                "az",
                "storage",
                "blob",
                "service-properties",
                "update",
                "--account-name",
                account_name,
                "--auth-mode",
                auth_mode,
                "--static-website",
                "--index-document",
                "index.html",
                "--output",
                "none",
            ],
            env=exe_env,
        ),
    )


def storage_web_endpoint(
    account_name: str,
    resource_group: str,
    exe_env: dict[str, str] | None = None,
) -> str:
    return ocpwi.shext.sh(
        [
            "az",
            "storage",
            "account",
            "show",
            "--name",
            account_name,
            "--resource-group",
            resource_group,
            "--query",
            "primaryEndpoints.web",
            "--output",
            "tsv",
        ],
        env=exe_env,
    ).stdout.strip()


def upload_blob(
    account_name: str,
    file: pathlib.Path,
    blob_name: str,
    auth_mode: str = "key",
    content_type: str = "application/json",
    exe_env: dict[str, str] | None = None,
) -> None:
    ocpwi.shext.sh(
        [
            "az",
            "storage",
            "blob",
            "upload",
            "--account-name",
            account_name,
            "--auth-mode",
            auth_mode,
            "--container-name",
            ocpwi.WEB_CONTAINER,
            "--file",
            str(file),
            "--name",
            blob_name,
            "--content-type",
            content_type,
            "--overwrite",
            "--output",
            "none",
        ],
        env=exe_env,
    )


def keyvault_id(name: str, exe_env: dict[str, str] | None = None) -> str | None:
    res = ocpwi.shext.sh(
        ["az", "keyvault", "show", "--name", name, "--query", "id", "--output", "tsv"],
        env=exe_env,
        check=False,
    )
    if res.returncode == 0:
        return res.stdout.strip() or None

    if ocpwi.shext.is_not_found(res.stderr):
        return None

    res.check_returncode()
    return None


def role_assignment_exists(
    principal_id: str,
    scope: str,
    role: str,
    exe_env: dict[str, str] | None = None,
) -> bool:
    return (
        ocpwi.shext.sh(
            [
                "az",
                "role",
                "assignment",
                "list",
                "--assignee",
                principal_id,
                "--scope",
                scope,
                "--role",
                role,
                "--query",
                "[0].id",
                "--output",
                "tsv",
            ],
            env=exe_env,
        ).stdout.strip()
        != ""
    )


def ensure_role_assignment(
    principal_id: str,
    scope: str,
    role: str,
    exe_env: dict[str, str] | None = None,
) -> ocpwi.ensure.EnsureResult:
    return ocpwi.ensure.ensure(
        "role assignment",
        role,
        exists=lambda: role_assignment_exists(principal_id, scope, role, exe_env=exe_env),
        create=lambda: ocpwi.shext.sh(
            [
                "az",
                "role",
                "assignment",
                "create",
                "--assignee-object-id",
                principal_id,
                "--assignee-principal-type",
                "ServicePrincipal",
                "--role",
                role,
                "--scope",
                scope,
                "--output",
                "none",
            ],
            env=exe_env,
        ),
    )

from __future__ import annotations

import os
import pathlib
import shlex
import subprocess
import typing

import click

import ocpwi.backup
import ocpwi.config
import ocpwi.issuer
import ocpwi.junkdrawer
import ocpwi.keys
import ocpwi.keyvault
import ocpwi.oidc
import ocpwi.paths
import ocpwi.poc
import ocpwi.preflight
import ocpwi.session
import ocpwi.webhook

Session = ocpwi.session.WorkloadIdentitySession


class WorkflowGroup(click.Group):
    """Turns tool and validation failures into a red message and a non-zero exit."""

    def invoke(self, ctx: click.Context) -> typing.Any:
        try:
            return super().invoke(ctx)
        except (click.exceptions.Exit, click.exceptions.Abort):
            raise
        except subprocess.CalledProcessError as e:
            if e.stderr:
                click.secho(e.stderr.rstrip(), fg="red", err=True)
            cmd = shlex.join(str(a) for a in e.cmd) if isinstance(e.cmd, (list, tuple)) else str(e.cmd)
            click.secho(f"error: {cmd!r} exited with status {e.returncode}", fg="red", err=True)
            ctx.exit(e.returncode)
        except FileNotFoundError as e:
            # subprocess sets filename to the missing executable
            click.secho(f"error: {e.filename or e} not found", fg="red", err=True)
            ctx.exit(1)
        except (ValueError, RuntimeError) as e:
            click.secho(f"error: {e}", fg="red", err=True)
            ctx.exit(1)


def run_poc_checked(session: Session) -> ocpwi.poc.PocResult:
    res = ocpwi.poc.run_poc(session)

    click.secho("\nTo clean up:", fg="yellow")
    for cmd in ocpwi.poc.cleanup_commands(session):
        click.echo(f"  {cmd}")

    if not res.succeeded:
        msg = f"pod {res.pod!r} was not mutated with a workload identity token"
        raise RuntimeError(msg)

    return res


STEPS: list[tuple[str, typing.Callable[[Session], typing.Any]]] = [
    ("backup", ocpwi.backup.backup_all),
    ("keys", ocpwi.keys.extract_signing_keys),
    ("oidc", ocpwi.oidc.publish_all),
    ("issuer", ocpwi.issuer.update_issuer),
    ("webhook", ocpwi.webhook.deploy_all),
    ("poc", run_poc_checked),
]


@click.group(cls=WorkflowGroup)
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=pathlib.Path),
    envvar="OCPWI_ROOT",
    default=None,
    help="Working directory for backups, keys and OIDC documents.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=pathlib.Path),
    envvar="OCPWI_CONFIG",
    default=None,
    help="Config file (default: <root>/ocpwi.yaml).",
)
@click.option("--verbose", is_flag=True, help="Echo every CLI command before running it.")
@click.pass_context
def cli(ctx: click.Context, root: pathlib.Path | None, config_path: pathlib.Path | None, verbose: bool):
    """Provision Azure Workload Identity federation for an OpenShift cluster."""
    if verbose:
        os.environ["OCPWI_SH_DEBUG"] = "1"

    ctx.obj = Session.load(ocpwi.paths.Paths(root, config=config_path))


@cli.command("preflight")
@click.pass_obj
def preflight_cmd(session: Session):
    """Check that az, oc and helm are installed and logged in."""
    if not ocpwi.preflight.preflight(session):
        raise click.exceptions.Exit(1)


@cli.command("show-config")
@click.pass_obj
def show_config(session: Session):
    """Print the effective configuration."""
    click.echo(ocpwi.config.dump_config(session.cfg), nl=False)


@cli.command("backup-all")
@click.option("--force", is_flag=True, help="Overwrite existing backups.")
@click.pass_obj
def backup_all(session: Session, force: bool):
    """Back up authentication config and signing key state."""
    ocpwi.backup.backup_all(session, force=force)


@cli.command("backup-restore")
@click.pass_obj
def backup_restore(session: Session):
    """Restore the authentication config from backup (rollback)."""
    ocpwi.backup.restore_authentication(session)


@cli.command("keys-extract")
@click.pass_obj
def keys_extract(session: Session):
    """Decode the backed-up signing key into a key pair."""
    ocpwi.keys.extract_signing_keys(session)


@cli.command("oidc-create-storage")
@click.pass_obj
def oidc_create_storage(session: Session):
    """Create the storage account serving the issuer."""
    ocpwi.oidc.ensure_storage(session)


@cli.command("oidc-generate-discovery-document")
@click.pass_obj
def oidc_generate_discovery_document(session: Session):
    ocpwi.oidc.generate_discovery_document(session)


@cli.command("oidc-upload-discovery-document")
@click.pass_obj
def oidc_upload_discovery_document(session: Session):
    ocpwi.oidc.upload_discovery_document(session)


@cli.command("oidc-verify-discovery-document")
@click.pass_obj
def oidc_verify_discovery_document(session: Session):
    ocpwi.oidc.verify_discovery_document(session)


@cli.command("jwks-generate")
@click.pass_obj
def jwks_generate(session: Session):
    ocpwi.oidc.generate_jwks(session)


@cli.command("jwks-upload")
@click.pass_obj
def jwks_upload(session: Session):
    ocpwi.oidc.upload_jwks(session)


@cli.command("jwks-verify")
@click.pass_obj
def jwks_verify(session: Session):
    ocpwi.oidc.verify_jwks(session)


@cli.command("oidc-verify-consistency")
@click.pass_obj
def oidc_verify_consistency(session: Session):
    """Check the published JWKS carries the local signing key."""
    ocpwi.oidc.verify_consistency(session)


@cli.command("oidc-publish-all")
@click.pass_obj
def oidc_publish_all(session: Session):
    """Create storage, then generate, upload and verify both documents."""
    ocpwi.oidc.publish_all(session)


@cli.command("issuer-update")
@click.option("--no-verify", is_flag=True, help="Skip checking the discovery document is reachable.")
@click.pass_obj
def issuer_update(session: Session, no_verify: bool):
    """Point the cluster's service account issuer at the published endpoint."""
    ocpwi.issuer.update_issuer(session, verify=not no_verify)


@cli.command("issuer-status")
@click.pass_obj
def issuer_status(session: Session):
    """Show the kube-apiserver rollout state."""
    ocpwi.issuer.rollout_status(session)


@cli.command("webhook-namespace")
@click.pass_obj
def webhook_namespace(session: Session):
    ocpwi.webhook.ensure_namespace(session)


@cli.command("webhook-repo-add")
@click.pass_obj
def webhook_repo_add(session: Session):
    ocpwi.webhook.ensure_repo(session)


@cli.command("webhook-install")
@click.pass_obj
def webhook_install(session: Session):
    ocpwi.webhook.install_release(session)


@cli.command("webhook-patch-scc")
@click.pass_obj
def webhook_patch_scc(session: Session):
    ocpwi.webhook.patch_scc(session)


@cli.command("webhook-deploy-all")
@click.pass_obj
def webhook_deploy_all(session: Session):
    """Namespace, chart repository, release and SCC patch."""
    ocpwi.webhook.deploy_all(session)


@cli.command("poc-test")
@click.pass_obj
def poc_test(session: Session):
    """Deploy a test workload and check the webhook mutated it."""
    run_poc_checked(session)


@cli.command("poc-cleanup")
@click.pass_obj
def poc_cleanup(session: Session):
    """Print the commands that remove the PoC resources."""
    for cmd in ocpwi.poc.cleanup_commands(session):
        click.echo(cmd)


@cli.command("keyvault-setup")
@click.pass_obj
def keyvault_setup(session: Session):
    """Wire External Secrets to Azure Key Vault through workload identity."""
    ocpwi.keyvault.setup(session)


@cli.command("keyvault-verify-secrets")
@click.pass_obj
def keyvault_verify_secrets(session: Session):
    """Check the vault holds every secret the ExternalSecret references."""
    if ocpwi.keyvault.verify_remote_secrets(session):
        raise click.exceptions.Exit(1)


@cli.command("run-all")
@click.option(
    "--start-at-step",
    type=click.Choice([name for name, _ in STEPS]),
    default=STEPS[0][0],
    show_default=True,
)
@click.pass_obj
def run_all(session: Session, start_at_step: str):
    """Run every provisioning step in order. Rollback is never included."""
    steps = ocpwi.junkdrawer.filter_steps_after_start(start_at_step, STEPS)
    ocpwi.junkdrawer.print_steps(steps)

    for name, step in steps:
        click.secho(f"=== {name} ===", fg="blue", bold=True)
        step(session)

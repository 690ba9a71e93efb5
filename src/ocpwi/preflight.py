from __future__ import annotations

import typing

import ocpwi.az
import ocpwi.helm
import ocpwi.junkdrawer
import ocpwi.oc

if typing.TYPE_CHECKING:
    import ocpwi.session


def _az(env: dict[str, str]) -> tuple[str, bool]:
    account, ok = ocpwi.az.whoami(exe_env=env)
    if not ok:
        return "not logged in (run 'az login')", False

    return f"subscription {account.get('name')} ({account.get('id')})", True


def _oc(env: dict[str, str]) -> tuple[str, bool]:
    user, ok = ocpwi.oc.whoami(exe_env=env)
    if not ok:
        return "not logged in (run 'oc login')", False

    return f"logged in as {user}", True


def _helm(env: dict[str, str]) -> tuple[str, bool]:
    version, ok = ocpwi.helm.version(exe_env=env)
    if not ok:
        return "not working", False

    return version, True


CHECKS: list[tuple[str, typing.Callable[[dict[str, str]], tuple[str, bool]]]] = [
    ("az", _az),
    ("oc", _oc),
    ("helm", _helm),
]


def preflight(session: ocpwi.session.WorkloadIdentitySession) -> bool:
    """Check that each CLI is installed and signed in. Nothing is changed."""
    ocpwi.junkdrawer.heading("Checking CLI sessions")
    all_ok = True

    for tool, check in CHECKS:
        try:
            detail, ok = check(session.exe_env)
        except FileNotFoundError:
            detail, ok = "not installed", False

        if ok:
            ocpwi.junkdrawer.ok(f"{tool}: {detail}")
        else:
            ocpwi.junkdrawer.fail(f"{tool}: {detail}")
            all_ok = False

    return all_ok

from __future__ import annotations

import functools
import json
import os
import shlex
import subprocess

import click

NOT_FOUND_MARKERS = (
    "NotFound",
    "not found",
    "could not be found",
    "does not exist",
)

_run = functools.partial(
    subprocess.run,
    check=True,
    capture_output=True,
    text=True,
)


def sh(args, **kwargs) -> subprocess.CompletedProcess:
    if os.environ.get("OCPWI_SH_DEBUG") == "1":
        click.secho("$ " + shlex.join([str(a) for a in args]), dim=True, err=True)

    return _run([str(a) for a in args], **kwargs)


def shj(*args, **kwargs):
    return json.loads(sh(*args, **kwargs).stdout)


def is_not_found(stderr: str) -> bool:
    return any(marker in stderr for marker in NOT_FOUND_MARKERS)


def probe(args, **kwargs) -> bool:
    """
    Report whether the resource addressed by a read-only CLI call exists.

    A non-zero exit that is not a not-found answer is raised rather than
    treated as absence.
    """
    res = sh(args, check=False, **kwargs)

    if res.returncode == 0:
        return True

    if is_not_found(res.stderr):
        return False

    res.check_returncode()
    return False


def probe_json(args, **kwargs):
    """Like `probe`, but return the parsed JSON document or None when absent."""
    res = sh(args, check=False, **kwargs)

    if res.returncode == 0:
        return json.loads(res.stdout)

    if is_not_found(res.stderr):
        return None

    res.check_returncode()
    return None

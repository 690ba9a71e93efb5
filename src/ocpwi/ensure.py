from __future__ import annotations

import dataclasses
import typing

import click

CREATED = "created"
UPDATED = "updated"
UNCHANGED = "unchanged"
EXISTS = "exists"
SKIPPED = "skipped"

_STATUS_TEXT = {
    CREATED: "created",
    UPDATED: "updated",
    UNCHANGED: "unchanged",
    EXISTS: "already exists",
    SKIPPED: "skipped",
}


@dataclasses.dataclass
class EnsureResult:
    kind: str
    name: str
    status: str = SKIPPED

    @property
    def changed(self) -> bool:
        return self.status in (CREATED, UPDATED)


def print_result(
    res: EnsureResult,
    out: typing.IO[str] | None = None,
) -> None:
    text = f"{res.kind} {res.name} {_STATUS_TEXT.get(res.status, res.status)}"
    if res.status == SKIPPED:
        click.secho(f"- {text}", fg="yellow", file=out)
        return

    click.secho(f"✓ {text}", fg="green", file=out)


def ensure(
    kind: str,
    name: str,
    *,
    exists: typing.Callable[[], bool],
    create: typing.Callable[[], typing.Any],
    quiet: bool = False,
) -> EnsureResult:
    """
    Check for a resource and create it only when absent.

    `exists` must be read-only; `create` is never called for a resource that
    is already present, so re-running a partially completed step is safe.
    """
    res = EnsureResult(kind=kind, name=name)

    if exists():
        res.status = EXISTS
    else:
        create()
        res.status = CREATED

    if not quiet:
        print_result(res)

    return res

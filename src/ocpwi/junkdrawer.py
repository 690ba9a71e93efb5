from __future__ import annotations

import base64
import typing

import click


def print_steps(steps: list[tuple[str, typing.Any]]):
    click.secho(
        "∙ " + ("\n∙ ".join([name for name, _ in steps])) + "\n\n",
        fg="white",
        bold=True,
    )


def filter_steps_after_start(start_at_step: str, steps: list[tuple[str, typing.Any]]) -> list[tuple[str, typing.Any]]:
    if len(steps) == 0:
        return steps

    return steps[[name for (name, step) in steps].index(start_at_step) :]


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def b64url_uint(value: int) -> str:
    return b64url(value.to_bytes((value.bit_length() + 7) // 8 or 1, "big"))


def heading(text: str) -> None:
    click.secho(text, fg="yellow", bold=True)


def ok(text: str) -> None:
    click.secho(f"✓ {text}", fg="green")


def info(label: str, value: typing.Any) -> None:
    click.echo(f"  {label}: " + click.style(str(value), fg="blue"))


def warn(text: str) -> None:
    click.secho(text, fg="yellow")


def fail(text: str) -> None:
    click.secho(f"✗ {text}", fg="red", err=True)

from __future__ import annotations

import sys

import click
import typer

from . import __version__
from .cli_shared import (
    RAINDROP_API_BASE_URL,
    RAINDROP_MANIFEST,
    OpError,
    UsageError,
    _apply_global_env,
    _bootstrap_env,
    _eprint,
)
from .manifest import ManifestError
from .menu import run_menu
from .render import _rich_error, print_header
from .session import Session

app = typer.Typer(
    name="smartbucket",
    help="Interactive manager for Raindrop SmartBuckets.",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"smartbucket {__version__}")
        raise typer.Exit(code=0)


def _prompt(text: str) -> str:
    return typer.prompt(text, default="", show_default=False)


def _pause_if_interactive() -> None:
    if sys.stdin.isatty():
        typer.prompt("Press Enter to continue...", default="", show_default=False, prompt_suffix="")


@app.command(help="Start the interactive SmartBucket menu.")
def run(
    manifest: str | None = typer.Option(
        None,
        "--manifest",
        help=f"Manifest file (env override: {RAINDROP_MANIFEST}, default raindrop.manifest)",
    ),
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        help=f"API base URL (env override: {RAINDROP_API_BASE_URL})",
    ),
    plain_json: bool = typer.Option(False, "--plain-json", help="Print response JSON compactly"),
    quiet: bool = typer.Option(False, "--quiet", help="Reduce stderr logging"),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True),
) -> None:
    del version
    g = _apply_global_env(base_url=base_url, manifest=manifest, plain_json=plain_json, quiet=quiet)
    session = Session(g)
    print_header()
    try:
        session.load()
    except ManifestError as e:
        # Unreadable manifest: start without a bucket so option 2 or a prompt can supply one.
        _rich_error(str(e))
    if not g.quiet:
        if session.bucket_name:
            _eprint(f"loaded bucket {session.bucket_name!r} from {g.manifest_path}")
        else:
            _eprint(f"no bucket declared in {g.manifest_path}")
    code = run_menu(session, _prompt, pause=_pause_if_interactive)
    raise typer.Exit(code=code)


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        _bootstrap_env()
    except UsageError as e:
        _rich_error(str(e))
        return 1
    try:
        result = app(args=argv, prog_name="smartbucket", standalone_mode=False)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except (click.exceptions.Abort, typer.Abort):
        _rich_error("aborted")
        return 1
    except click.ClickException as e:
        _rich_error(e.format_message())
        return int(e.exit_code)
    except UsageError as e:
        _rich_error(str(e))
        return 2
    except OpError as e:
        _rich_error(str(e))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

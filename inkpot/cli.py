"""Command-line interface for inkpot.

This module defines the CLI commands using Click framework.

Commands:
- new: Scaffold a new blog.
- build: Build the site into the destination directory.
- serve: Run development server with live reload.
- start / start-draft: Run ``serve`` inside the reproducible environment.
- run-in-env: Run any inkpot command inside the reproducible environment.
- post / draft / publish / unpublish: Author posts and drafts.
"""

from __future__ import annotations

from pathlib import Path

import click
import questionary

from . import __version__
from .config import ConfigError, load_config


@click.group()
@click.version_option(version=__version__, prog_name="inkpot")
def cli():
    """inkpot static blog generator."""


def _echo_failure(project_root: Path, source_path: Path, message: str) -> None:
    try:
        rel_path = source_path.relative_to(project_root)
    except ValueError:
        rel_path = source_path
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  File: {rel_path}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {message}", fg="white"), err=True)


def _echo_warnings(warnings: list[str]) -> None:
    for warning in warnings:
        click.echo(click.style(f"Warning: {warning}", fg="yellow"), err=True)


def _load_config(project_root: Path) -> dict:
    try:
        return load_config(project_root)
    except ConfigError as exc:
        _echo_failure(project_root, exc.source_path, exc.message)
        raise SystemExit(1) from None


@cli.command()
@click.argument("name")
@click.option("--title", help="Site title (defaults to the directory name)")
def new(name: str, title: str | None):
    """Scaffold a new blog."""
    from .scaffold import scaffold

    target = Path(name).resolve()
    try:
        scaffold(target, title=title)
    except FileExistsError as exc:
        raise click.ClickException(str(exc)) from None
    click.echo(f"New inkpot site created at {target}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Render posts from _drafts/")
@click.option("--future", is_flag=True, default=None, help="Render posts dated in the future")
@click.option("--destination", "-d", help="Output directory (overrides _config.yml)")
def build(drafts: bool, future: bool | None, destination: str | None):
    """Build the site into the destination directory."""
    project_root = Path.cwd()
    from .build import BuildError, build_site

    output_dir = Path(destination).resolve() if destination else None
    try:
        result = build_site(
            project_root,
            include_drafts=drafts,
            include_future=future,
            output_dir_override=output_dir,
        )
    except BuildError as exc:
        _echo_failure(project_root, exc.source_path, exc.message)
        raise SystemExit(1) from None
    _echo_warnings(result.warnings)
    click.echo(
        f"Built {len(result.posts)} posts and {len(result.pages)} pages into {result.output_dir}"
    )


@cli.command()
@click.option("--drafts", is_flag=True, help="Render posts from _drafts/")
@click.option("--future", is_flag=True, default=None, help="Render posts dated in the future")
@click.option("--port", "-P", type=int, help="HTTP port (overrides _config.yml port)")
@click.option(
    "--livereload-port",
    type=int,
    help="Port for the live reload websocket server (overrides _config.yml livereload_port)",
)
@click.option("--host", "-H", help="Interface to bind (overrides _config.yml host)")
def serve(
    drafts: bool,
    future: bool | None,
    port: int | None,
    livereload_port: int | None,
    host: str | None,
):
    """Run dev server with live reload."""
    project_root = Path.cwd()
    from .build import BuildError
    from .server import DevServer

    try:
        server = DevServer(
            project_root,
            http_port=port,
            ws_port=livereload_port,
            host=host,
            include_future=future,
        )
        server.start(include_drafts=drafts)
    except ConfigError as exc:
        _echo_failure(project_root, exc.source_path, exc.message)
        raise SystemExit(1) from None
    except BuildError as exc:
        _echo_failure(project_root, exc.source_path, exc.message)
        raise SystemExit(1) from None


def _run_in_shell(ctx: click.Context, args: list[str]) -> None:
    """Run ``inkpot ARGS`` in the reproducible environment and exit with its code."""
    from .envshell import ReproducibleShell, ShellError

    project_root = Path.cwd()
    config = _load_config(project_root)
    try:
        shell = ReproducibleShell(project_root, config)
        code = shell.run(args)
    except ShellError as exc:
        raise click.ClickException(str(exc)) from None
    ctx.exit(code)


@cli.command()
@click.pass_context
def start(ctx: click.Context):
    """Serve the site inside the reproducible environment."""
    _run_in_shell(ctx, ["serve"])


@cli.command("start-draft")
@click.pass_context
def start_draft(ctx: click.Context):
    """Serve the site, drafts included, inside the reproducible environment."""
    _run_in_shell(ctx, ["serve", "--drafts"])


@cli.command(
    "run-in-env",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.argument("command")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run_in_env(ctx: click.Context, command: str, args: tuple[str, ...]):
    """Run ``inkpot COMMAND ARGS`` inside the reproducible environment."""
    _run_in_shell(ctx, [command, *args])


def _ask_title(kind: str) -> str:
    title = questionary.text(
        f"{kind} title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()
    return title


@cli.command()
@click.argument("title", required=False)
@click.option("--layout", default="post", show_default=True, help="Layout for the new post")
def post(title: str | None, layout: str):
    """Create a new post in _posts/."""
    from .compose import ComposeError, new_post

    project_root = Path.cwd()
    title = title or _ask_title("Post")
    try:
        path = new_post(project_root, title, layout=layout)
    except ComposeError as exc:
        raise click.ClickException(str(exc)) from None
    click.echo(f"Created {path.relative_to(project_root)}")


@cli.command()
@click.argument("title", required=False)
@click.option("--layout", default="post", show_default=True, help="Layout for the new draft")
def draft(title: str | None, layout: str):
    """Create a new draft in _drafts/."""
    from .compose import ComposeError, new_draft

    project_root = Path.cwd()
    title = title or _ask_title("Draft")
    try:
        path = new_draft(project_root, title, layout=layout)
    except ComposeError as exc:
        raise click.ClickException(str(exc)) from None
    click.echo(f"Created {path.relative_to(project_root)}")


@cli.command()
@click.argument("path", required=False, type=click.Path(path_type=Path))
def publish(path: Path | None):
    """Move a draft into _posts/ with today's date."""
    from .compose import ComposeError, list_drafts
    from .compose import publish as publish_draft

    project_root = Path.cwd()
    if path is None:
        drafts = list_drafts(project_root)
        if not drafts:
            raise click.ClickException("No drafts found in _drafts/.")
        choice = questionary.select(
            "Select draft:",
            choices=[str(d.relative_to(project_root)) for d in drafts],
            style=_questionary_style(),
        ).ask()
        if choice is None:
            raise click.Abort()
        path = Path(choice)
    try:
        target = publish_draft(project_root, path)
    except ComposeError as exc:
        raise click.ClickException(str(exc)) from None
    click.echo(f"Published {target.relative_to(project_root)}")


@cli.command()
@click.argument("path", type=click.Path(path_type=Path))
def unpublish(path: Path):
    """Move a post back into _drafts/."""
    from .compose import ComposeError
    from .compose import unpublish as unpublish_post

    project_root = Path.cwd()
    try:
        target = unpublish_post(project_root, path)
    except ComposeError as exc:
        raise click.ClickException(str(exc)) from None
    click.echo(f"Moved to {target.relative_to(project_root)}")


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()

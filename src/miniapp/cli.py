"""miniapp command-line interface."""

from __future__ import annotations

import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from . import __version__
from .exceptions import MiniAppError
from .installer import install as run_install
from .models import InjectionStatus, InstallOptions, MiniAppConfig, PersistenceStrategy

app = typer.Typer(
    name="miniapp",
    help="miniapp: inject the dependency manifest build phase into iOS host apps",
    add_completion=False,
    no_args_is_help=True,
)
host_app = typer.Typer(help="Host app integration", no_args_is_help=True)
sdk_app = typer.Typer(help="miniapp SDK setup", no_args_is_help=True)
host_app.add_typer(sdk_app, name="sdk")
app.add_typer(host_app, name="host")

console = Console()
err_console = Console(stderr=True, soft_wrap=True, highlight=False)

LOG_PREFIX = escape("[miniapp]")


def log_info(message: str) -> None:
    err_console.print(f"{LOG_PREFIX} {escape(message)}")


def log_error(message: str) -> None:
    err_console.print(f"[red]{LOG_PREFIX} ERROR:[/red] {escape(message)}")


def _get_version_string() -> str:
    """Get version string from package metadata."""
    try:
        return get_version("miniapp")
    except PackageNotFoundError:
        return __version__


def _config(ctx: typer.Context) -> MiniAppConfig:
    """Configuration handed to the app by main(), or the defaults."""
    config = ctx.find_object(MiniAppConfig)
    if config is None:
        config = MiniAppConfig(version=_get_version_string())
        ctx.obj = config
    return config


def version_callback(ctx: typer.Context, value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"miniapp version {_config(ctx).version}", highlight=False)
        raise typer.Exit


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """miniapp: inject the dependency manifest build phase into iOS host apps."""


@sdk_app.command()
def install(
    ctx: typer.Context,
    project: Path | None = typer.Option(
        None,
        "--project",
        help="Path to App.xcodeproj (searched in the working directory if omitted)",
    ),
    target: str | None = typer.Option(
        None,
        "--target",
        help="Application target that receives the build phase",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Rewrite the generator script and replace an existing build phase",
    ),
    strategy: PersistenceStrategy | None = typer.Option(
        None,
        "--strategy",
        case_sensitive=False,
        help=(
            "How project.pbxproj is rewritten: text (default, OpenStep files only) "
            "or roundtrip (rewrites the file as an XML plist)"
        ),
    ),
) -> None:
    """Inject a Run Script build phase that generates miniapp-deps.json at build time.

    The phase runs Scripts/sdm-gen-deps.sh, which lists the project's Swift
    package dependencies into the app bundle on every build. Running the
    command again is a no-op unless --force is given.
    """
    config = _config(ctx)
    options = InstallOptions(
        project_path=project,
        target_name=target,
        force=force,
        strategy=strategy,
    )

    try:
        result = run_install(options, config)
    except MiniAppError as e:
        log_error(str(e))
        raise typer.Exit(1) from e

    outcome = result.injection
    log_info(f"Generator script: {result.script_path}")
    if outcome.status == InjectionStatus.SKIPPED:
        log_info("Run Script build phase already present; skipping")
    elif outcome.status == InjectionStatus.REPLACED:
        log_info(f"Replaced Run Script build phase in target: {outcome.target_name}")
    else:
        log_info(f"Injected Run Script build phase into target: {outcome.target_name}")
    log_info("Install completed")


@app.command()
def version(ctx: typer.Context) -> None:
    """Show miniapp version information."""
    console.print(f"miniapp version {_config(ctx).version}", highlight=False)


def main() -> None:
    """Entry point for the CLI."""
    config = MiniAppConfig(version=_get_version_string())
    try:
        app(obj=config)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()

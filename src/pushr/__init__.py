import click
from pathlib import Path
import asyncio
import logging
import sys

from .config import DEFAULT_CONFIG_FILE, load_settings
from .error_handling import PushrError
from .logging_config import configure_logging
from .notifications import get_notifier, send_notifications
from .orchestrator import DeploymentOrchestrator


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help="YAML configuration file",
)
@click.option("-v", "--verbose", count=True)
@click.option(
    "--enable-file-logging",
    is_flag=True,
    help="Also log to the log_file named in the configuration",
)
@click.pass_context
def main(ctx: click.Context, config_path: Path, verbose: int, enable_file_logging: bool) -> None:
    """Pushr - deploy applications when their repositories move ahead"""
    try:
        settings = load_settings(config_path)
    except PushrError as e:
        raise click.ClickException(str(e))

    log_level = settings.log_level
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"

    log_file = settings.log_file if enable_file_logging else None
    if enable_file_logging and not log_file:
        log_file = str(config_path.parent / "deploy.log")

    log = configure_logging(log_level, log_file)
    if log_file:
        print(f"📝 Logging to {log_file}", file=sys.stderr)

    ctx.obj = {"settings": settings, "log": log}


@main.command()
@click.pass_obj
def info(obj: dict) -> None:
    """Show the deployed revision of every application"""
    orchestrator = DeploymentOrchestrator.from_settings(obj["settings"], log=obj["log"])
    try:
        summaries = orchestrator.info()
    except PushrError as e:
        raise click.ClickException(str(e))

    for summary in summaries:
        commit = summary.commit
        click.echo(
            f"{summary.name}: {commit.revision or '(unknown)'} {commit.message} "
            f"({commit.when} by {commit.author})"
        )


@main.command()
@click.pass_obj
def deploy(obj: dict) -> None:
    """Deploy every application that is behind its repository"""
    settings = obj["settings"]
    orchestrator = DeploymentOrchestrator.from_settings(settings, log=obj["log"])
    try:
        result = orchestrator.deploy_all()
    except PushrError as e:
        raise click.ClickException(str(e))

    notifier = get_notifier(settings.notification)
    if notifier is not None and result.notifications:
        asyncio.run(send_notifications(notifier, result.notifications))

    click.echo(result.log)
    if not result.success:
        logging.getLogger(__name__).warning("There were errors when deploying")
        sys.exit(1)


@main.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=4567, show_default=True, type=int)
@click.pass_obj
def serve(obj: dict, host: str, port: int) -> None:
    """Serve the HTTP trigger endpoint"""
    from .server import serve as run_server

    run_server(obj["settings"], host=host, port=port)


if __name__ == "__main__":
    main()

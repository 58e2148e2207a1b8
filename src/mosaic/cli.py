#!/usr/bin/env python3
"""
Main CLI entry point for the Mosaic server.
"""

import os
import sys

import click
import uvicorn

from mosaic import __version__
from mosaic.errors import RegistrationError
from mosaic.logging import configure_logging, get_logger

logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="mosaic")
def cli() -> None:
    """Mosaic CLI - serve the composite API and inspect its plugins."""
    pass


@cli.command()
@click.option(
    "--host",
    default="0.0.0.0",
    help="Host to bind to (default: 0.0.0.0)",
)
@click.option(
    "--port",
    default=8090,
    type=int,
    help="Port to bind to (default: 8090)",
)
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Enable auto-reload for development",
)
@click.option(
    "--workers",
    default=1,
    type=int,
    help="Number of worker processes (default: 1)",
)
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Log level (default: info)",
)
def serve(
    host: str,
    port: int,
    reload: bool,
    workers: int,
    log_level: str,
) -> None:
    """Start the Mosaic API server."""

    configure_logging(debug=(log_level == "debug"))

    logger.info(
        "Starting Mosaic API server",
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=log_level,
    )

    # Worker and reload processes re-import the app and read settings from the environment
    if log_level == "debug":
        os.environ["MOSAIC_DEBUG"] = "true"
        os.environ["MOSAIC_LOG_LEVEL"] = "debug"
    else:
        os.environ.setdefault("MOSAIC_DEBUG", "false")
        os.environ.setdefault("MOSAIC_LOG_LEVEL", log_level)

    try:
        if reload or workers > 1:
            uvicorn.run(
                "mosaic.api.app:app",
                host=host,
                port=port,
                reload=reload,
                workers=(workers if not reload else 1),  # reload doesn't work with multiple workers
                log_level=log_level,
                access_log=True,
            )
        else:
            from mosaic.api.app import app

            uvicorn.run(
                app,
                host=host,
                port=port,
                log_level=log_level,
                access_log=True,
            )
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
    except Exception as e:
        logger.error("Server startup failed", error=str(e))
        sys.exit(1)


config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Plugins YAML file (default: MOSAIC_PLUGINS_CONFIG_PATH or built-in plugins)",
)


@cli.command()
@config_option
def schema(config_path: str | None) -> None:
    """Print the composite schema as GraphQL SDL."""
    from mosaic.schema.loader import build_schema, load_plugins_from_config

    configure_logging(level="warning")

    try:
        composite = build_schema(load_plugins_from_config(config_path))
    except (RegistrationError, FileNotFoundError, RuntimeError) as e:
        click.echo(f"✗ Error composing schema: {e}", err=True)
        sys.exit(1)

    click.echo(composite.to_sdl())


@cli.command("plugins")
@config_option
def list_plugins(config_path: str | None) -> None:
    """List configured plugins and the names each one declares."""
    from mosaic.schema.loader import load_plugins_from_config

    configure_logging(level="warning")

    try:
        plugins = load_plugins_from_config(config_path)
    except (FileNotFoundError, RuntimeError) as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    if not plugins:
        click.echo("No plugins configured.")
        return

    click.echo(f"Found {len(plugins)} plugin(s):")
    for plugin in plugins:
        fragment = plugin.fragment()
        click.echo()
        click.echo(f"  {plugin.name} (namespace: {fragment.namespace})")
        if plugin.description:
            click.echo(f"    {plugin.description}")
        if fragment.types:
            click.echo(f"    Types: {', '.join(t.name for t in fragment.types)}")
        if fragment.extensions:
            click.echo(f"    Extends: {', '.join(e.name for e in fragment.extensions)}")
        if fragment.inputs:
            click.echo(f"    Inputs: {', '.join(i.name for i in fragment.inputs)}")
        if fragment.queries:
            click.echo(f"    Queries: {', '.join(q.name for q in fragment.queries)}")
        if fragment.mutations:
            click.echo(f"    Mutations: {', '.join(m.name for m in fragment.mutations)}")


@cli.command()
@config_option
def check(config_path: str | None) -> None:
    """Compose and validate the schema without starting the server."""
    from mosaic.schema.loader import build_schema, load_plugins_from_config

    configure_logging(level="warning")

    try:
        plugins = load_plugins_from_config(config_path)
        composite = build_schema(plugins)
    except (RegistrationError, FileNotFoundError, RuntimeError) as e:
        click.echo(f"✗ Schema check failed: {e}", err=True)
        sys.exit(1)

    summary = composite.summary()
    click.echo(
        f"✓ Composite schema is valid: {summary['types']} type(s), "
        f"{summary['queries']} quer(y/ies), {summary['mutations']} mutation(s) "
        f"from {len(plugins)} plugin(s)"
    )


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    cli()

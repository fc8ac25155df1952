"""
Main entry point for the ChatLink client.

This module provides the command-line interface and the interactive
client run loop.
"""

import asyncio
import sys
from typing import Optional

import typer
from loguru import logger

from .application.console import ConsoleLoop
from .application.startup import ChatClientApplication
from .core.exceptions import ConnectionFailedError
from .infrastructure.config.loader import ConfigLoader
from .infrastructure.config.models import ApplicationConfig
from .infrastructure.logging.setup import setup_logging

cli = typer.Typer(
    name="chatlink",
    help="Interactive console client for a real-time chat server"
)


@cli.command()
def run(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="Chat server host"
    ),
    port: Optional[int] = typer.Option(
        None, "--port", "-p", help="Chat server port"
    ),
    username: Optional[str] = typer.Option(
        None, "--username", "-u", help="Username to announce on connect"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Log file level"
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Show debug logging on the console"
    )
) -> None:
    """Connect to the chat server and start the interactive console."""

    try:
        config = ConfigLoader().load_config(config_file)
        if host:
            config.server.host = host
        if port:
            config.server.port = port
        if username:
            config.client.username = username
        if log_level:
            config.logging.level = log_level.upper()
        if debug:
            config.debug = True
            config.logging.level = "DEBUG"
        # Re-run validation over the command line overrides.
        config = ApplicationConfig.from_dict(config.to_dict())
    except (FileNotFoundError, ValueError, TypeError) as e:
        typer.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    setup_logging(config.logging, console_level="DEBUG" if config.debug else None)
    logger.info(f"Starting {config.name} v{config.version} (debug: {config.debug})")

    try:
        exit_code = asyncio.run(run_client(config))
    except KeyboardInterrupt:
        logger.info("Client interrupted by user")
        exit_code = 0

    if exit_code:
        sys.exit(exit_code)


@cli.command()
def init_config(
    output: str = typer.Option(
        "config.yaml", "--output", "-o", help="Output configuration file"
    ),
    format: str = typer.Option(
        "yaml", "--format", "-f", help="Configuration format (yaml/json)"
    )
) -> None:
    """Generate a default configuration file."""

    config = ApplicationConfig()
    config_loader = ConfigLoader()

    try:
        config_loader.save_config(config, output, format)
        typer.echo(f"Default configuration saved to {output}")
    except ValueError as e:
        typer.echo(f"Error saving configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
def validate_config(
    config_file: str = typer.Argument(..., help="Configuration file to validate")
) -> None:
    """Validate a configuration file."""

    config_loader = ConfigLoader()

    try:
        config = config_loader.load_config(config_file)
        typer.echo(f"Configuration file {config_file} is valid")
        typer.echo(f"Application: {config.name} v{config.version}")
        typer.echo(f"Server: {config.server_url}")
        typer.echo(f"Username: {config.client.username}")
    except (FileNotFoundError, ValueError, TypeError) as e:
        typer.echo(f"Configuration validation failed: {e}", err=True)
        sys.exit(1)


async def run_client(config: ApplicationConfig, console: Optional[ConsoleLoop] = None) -> int:
    """
    Run the client until the user exits.

    Args:
        config: Application configuration
        console: Console loop to use (built from the application by default)

    Returns:
        Process exit code
    """
    app = ChatClientApplication(config)
    typer.echo(f"Connecting to {config.server_url} as {config.client.username}...")

    try:
        try:
            connected = await app.start()
        except ConnectionFailedError as e:
            typer.echo(f"❌ Could not connect to server: {e}", err=True)
            return 1

        if not connected:
            typer.echo("⚠️  Not connected. Use /forcereconnect to retry.")

        console = console or ConsoleLoop(app.dispatcher)
        await console.run()
        return 0
    finally:
        await app.stop()
        typer.echo("Goodbye!")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()

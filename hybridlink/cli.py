"""
Command-line interface for hybridlink.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from hybridlink.client import SecureClient
from hybridlink.common.config import Config
from hybridlink.common.crypto import PADDINGS
from hybridlink.common.exceptions import HybridLinkError
from hybridlink.common.logging_utils import setup_logger
from hybridlink.directory import DirectoryKeyStore, open_backend
from hybridlink.directory.server import start_directory
from hybridlink.server import start_service

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging level (default: from HYBRIDLINK_LOG_LEVEL env or INFO)",
)
@click.option("--log-file", default=None, help="Also log to this rotating file")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, log_file: str | None) -> None:
    """Hybrid RSA/AES-GCM key exchange"""
    config = Config()
    if log_level:
        config.LOG_LEVEL = logging.getLevelName(log_level.upper())
    setup_logger(logging.getLogger("hybridlink"), config.LOG_LEVEL, log_file)
    ctx.obj = config


def _crypto_options(func):  # type: ignore[no-untyped-def]
    func = click.option(
        "--timeout",
        type=float,
        default=None,
        help="Socket and directory timeout in seconds (default: 10)",
    )(func)
    func = click.option(
        "--padding",
        type=click.Choice(PADDINGS),
        default=None,
        help="RSA padding for the session key (default: oaep)",
    )(func)
    func = click.option(
        "--identity",
        default=None,
        help="Directory entry of the service (default: group.service1)",
    )(func)
    return func


@cli.command()
@click.option("--host", default=None, help="Host to bind the directory to")
@click.option("--port", default=None, type=int, help="Port to bind the directory to")
@click.option(
    "--data-file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Persist entries to this JSON file (default: in-memory)",
)
@click.pass_obj
def directory(
    config: Config, host: str | None, port: int | None, data_file: str | None
) -> None:
    """Run the directory service"""
    if data_file:
        config.DIRECTORY_DATA_FILE = Path(data_file)
    start_directory(host, port, config)


@cli.command()
@click.argument("directory_url")
@click.argument("port", type=int)
@click.option("--host", default=None, help="Host to bind the service to")
@_crypto_options
@click.pass_obj
def serve(  # noqa: PLR0913
    config: Config,
    directory_url: str,
    port: int,
    host: str | None,
    identity: str | None,
    padding: str | None,
    timeout: float | None,
) -> None:
    """Publish a fresh public key and serve clients until interrupted"""
    if timeout is not None:
        config.IO_TIMEOUT = timeout
    try:
        start_service(
            directory_url,
            port,
            config,
            host=host,
            identity=identity,
            rsa_padding=padding,
        )
    except HybridLinkError as err:
        raise click.ClickException(str(err)) from err


@cli.command()
@click.argument("directory_url")
@click.argument("host")
@click.argument("port", type=int)
@_crypto_options
@click.pass_obj
def connect(  # noqa: PLR0913
    config: Config,
    directory_url: str,
    host: str,
    port: int,
    identity: str | None,
    padding: str | None,
    timeout: float | None,
) -> None:
    """Run one handshake and print the service's message"""
    if timeout is not None:
        config.IO_TIMEOUT = timeout
    try:
        backend = open_backend(directory_url, timeout=config.IO_TIMEOUT)
        client = SecureClient(
            DirectoryKeyStore(backend),
            host=host,
            port=port,
            identity=identity,
            rsa_padding=padding,
            config=config,
        )
        message = client.fetch_message()
    except HybridLinkError as err:
        raise click.ClickException(str(err)) from err
    click.echo(message)


if __name__ == "__main__":
    cli()

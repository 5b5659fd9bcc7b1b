"""CLI main entry point"""

import logging

import click

from modhost import __version__
from modhost.core.config import get_config
from modhost.cli.modules import modules_group


@click.group()
@click.version_option(version=__version__, prog_name="modhost")
@click.option("--log-level", default=None, help="Override the configured log level")
def cli(log_level):
    """ModHost - install and manage application modules at runtime"""
    level = (log_level or get_config().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(levelname)s: %(message)s"
    )


@cli.command(name="serve")
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind host")
@click.option("--port", default=8080, show_default=True, type=int, help="Bind port")
def serve_cmd(host: str, port: int):
    """Start the module management HTTP API."""
    import uvicorn

    from modhost.webui.app import create_app

    uvicorn.run(create_app(), host=host, port=port, log_level="info")


cli.add_command(modules_group)


if __name__ == "__main__":
    cli()

"""
Click-based CLI for remotecmd.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from remotecmd import __version__
from remotecmd._types import ArgumentNode, CommandEnvelope, Credentials
from remotecmd.api import create_dispatcher
from remotecmd.client import RemoteCommandClient
from remotecmd.errors import RemoteCommandError
from remotecmd.results import CommandResult
from remotecmd.wire import parse_arguments


def _report(result: CommandResult) -> None:
    click.echo(f"Result: {'SUCCESS' if result.success else 'FAILURE'}")
    if result.reason is not None:
        click.echo(f"        Reason: {result.reason}")
    if not result.success:
        sys.exit(1)


def _read_arguments(path: str) -> ArgumentNode:
    try:
        return parse_arguments(Path(path).read_bytes())
    except RemoteCommandError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version=__version__, prog_name="remotecmd")
@click.option("--verbose", "-v", is_flag=True, help="Log at DEBUG level")
def cli(verbose: bool) -> None:
    """Run privileged administration commands locally or on a remote host"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("type_id")
@click.argument("argfile", type=click.Path(exists=True, dir_okay=False))
def run(type_id: str, argfile: str) -> None:
    """Run a command on this host with arguments read from ARGFILE"""
    arguments = _read_arguments(argfile)
    try:
        dispatcher = create_dispatcher()
    except RemoteCommandError as e:
        raise click.ClickException(str(e)) from e
    _report(asyncio.run(dispatcher.dispatch(type_id, arguments)))


@cli.command()
@click.argument("url")
@click.argument("type_id")
@click.argument("argfile", type=click.Path(exists=True, dir_okay=False))
@click.option("--username", "-u", default="", help="Username sent with the command")
@click.option("--password", "-p", default="", help="Password sent with the command")
def send(url: str, type_id: str, argfile: str, username: Optional[str], password: Optional[str]) -> None:
    """Send a command to the endpoint at URL"""
    envelope = CommandEnvelope(
        type_id=type_id,
        arguments=_read_arguments(argfile),
        credentials=Credentials(username or "", password or ""),
    )

    async def _send() -> CommandResult:
        async with RemoteCommandClient(url) as client:
            return await client.send(envelope)

    try:
        result = asyncio.run(_send())
    except RemoteCommandError as e:
        raise click.ClickException(str(e)) from e
    _report(result)


@cli.command()
@click.argument("url")
def ping(url: str) -> None:
    """Check that the endpoint at URL answers"""

    async def _ping() -> CommandResult:
        async with RemoteCommandClient(url) as client:
            return await client.test()

    try:
        result = asyncio.run(_ping())
    except RemoteCommandError as e:
        raise click.ClickException(str(e)) from e
    _report(result)


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind")
@click.option("--port", default=8080, show_default=True, type=int, help="Port to listen on")
def serve(host: str, port: int) -> None:
    """Serve the command endpoint over HTTP"""
    import uvicorn

    from remotecmd.server import create_app

    try:
        app = create_app()
    except RemoteCommandError as e:
        raise click.ClickException(str(e)) from e
    uvicorn.run(app, host=host, port=port)


def main() -> None:
    """Main entry point"""
    cli()


if __name__ == "__main__":
    main()

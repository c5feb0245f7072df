# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

"""
vodup CLI - sign command

Signs a request without sending it.
"""

from typing import List, Optional

import typer

from vodup.commands.factory import SignFactory
from vodup.errors import VodupError


def sign(
    method: str = typer.Argument(..., help="HTTP method"),
    url: str = typer.Argument(..., help="Request URL"),
    auth: str = typer.Option(
        ..., "--auth", "-a", help="JSON file holding the upload authorization"
    ),
    query: List[str] = typer.Option([], "--query", "-q", help="Query parameter NAME=VALUE"),
    header: List[str] = typer.Option([], "--header", "-H", help="Header NAME:VALUE"),
    data: str = typer.Option("", "--data", "-d", help="Request body"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="TOML configuration file"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Print the canonical request and string to sign"
    ),
):
    """
    Sign a request and print the headers to send.
    """
    factory = SignFactory(
        method=method,
        url=url,
        auth_path=auth,
        query=query,
        headers=header,
        data=data,
        config_path=config,
        log_level="WARNING",
    )
    try:
        signed = factory.run()
    except (VodupError, OSError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"URL: {signed.url}")
    for name, value in signed.headers.items():
        if not isinstance(value, str):
            value = " ".join(value)
        typer.echo(f"{name}: {value}")
    if verbose:
        typer.echo("")
        typer.echo("----- canonical request -----")
        typer.echo(signed.context.canonical_request)
        typer.echo("----- string to sign -----")
        typer.echo(signed.string_to_sign)

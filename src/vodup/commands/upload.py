# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

"""
vodup CLI - upload command

Uploads one media file and prints the video id.
"""

from typing import Optional

import typer

from vodup.commands.factory import UploadFactory
from vodup.errors import VodupError


def upload(
    file: str = typer.Argument(..., help="Media file to upload"),
    auth: str = typer.Option(
        ..., "--auth", "-a", help="JSON file holding the upload authorization"
    ),
    user_id: str = typer.Option(..., "--user-id", "-u", help="Third-party user id sent with every call"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="TOML configuration file"),
    concurrency: Optional[int] = typer.Option(
        None, min=1, help="Parts transferred at once (default 1: sequential)"
    ),
    allow_partial: Optional[bool] = typer.Option(
        None,
        "--allow-partial/--require-all-parts",
        help="Finish a multipart upload even when some parts failed",
    ),
    log_level: Optional[str] = typer.Option(None, help="Logging level, e.g. DEBUG"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Also print the upload report"),
):
    """
    Upload FILE and print its video id.

    Files above the single-shot threshold are sent in parts.
    """
    factory = UploadFactory(
        file_path=file,
        auth_path=auth,
        user_id=user_id,
        config_path=config,
        concurrency=concurrency,
        allow_partial=allow_partial,
        log_level=log_level,
    )
    try:
        report = factory.run()
    except (VodupError, OSError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(report.video_id)
    if verbose:
        typer.echo(f"mode: {report.mode}", err=True)
        typer.echo(f"size: {report.file_size}", err=True)
        if report.manifest:
            typer.echo(f"parts: {report.manifest}", err=True)
        if report.failed_parts:
            typer.echo(f"failed parts: {report.failed_parts}", err=True)

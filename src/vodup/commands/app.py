# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

"""
vodup CLI - Command Line Interface for the signed VOD upload client

Commands:
- upload: upload a media file and print its video id
- sign: sign a request offline and show the canonical request
"""

import typer

from vodup.commands.sign import sign
from vodup.commands.upload import upload

app = typer.Typer(
    name="vodup",
    help="Signed VOD upload client",
    no_args_is_help=True,
)

app.command()(upload)
app.command()(sign)


def main():
    app()


if __name__ == "__main__":
    app()

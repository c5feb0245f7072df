# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

"""
vodup CLI command module

Entry points:
- upload: upload a media file
- sign: sign a request offline
"""

from vodup.commands.app import app, main
from vodup.commands.factory import CommandFactory, SignFactory, UploadFactory
from vodup.commands.sign import sign
from vodup.commands.upload import upload

__all__ = [
    "app",
    "main",
    "CommandFactory",
    "SignFactory",
    "UploadFactory",
    "sign",
    "upload",
]

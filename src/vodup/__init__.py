# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from vodup.constants import VODUP_VERSION as __version__  # noqa: F401
from vodup.signing import Credentials, SignatureV4, SigningKeyCache  # noqa: F401
from vodup.upload import StorageClient, UploadSession, UploadTarget, VodApiClient  # noqa: F401

# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from .credentials import Credentials  # noqa: F401
from .key_cache import SigningKeyCache, derive_signing_key  # noqa: F401
from .signature_v4 import SignatureV4, SignedRequest, SigningContext  # noqa: F401

# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from .chunks import ChunkDescriptor, build_part_manifest, crc32_hex, plan_chunks  # noqa: F401
from .clients import StorageClient, VodApiClient  # noqa: F401
from .session import UploadReport, UploadSession  # noqa: F401
from .target import UploadTarget  # noqa: F401

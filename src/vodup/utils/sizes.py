# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

import re
from typing import Optional, Union

_UNITS = {
    "": 1,
    "B": 1,
    "K": 1024,
    "M": 1024 ** 2,
    "G": 1024 ** 3,
    "T": 1024 ** 4,
}

_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMGT]?)(?:I?B)?\s*$", re.IGNORECASE)


def convert_to_bytes(size: Union[int, str, None]) -> Optional[int]:
    """
    Convert a size such as ``5MiB``, ``512K`` or ``1048576`` to bytes.

    All units are binary: ``5MB`` and ``5MiB`` are both 5 * 1024 * 1024.
    """
    if size is None or isinstance(size, int):
        return size
    match = _SIZE_RE.match(size)
    if match is None:
        raise ValueError(f"Invalid size: {size!r}")
    number, unit = match.groups()
    return int(float(number) * _UNITS[unit.upper()])


def convert_bytes_to_human_readable(size: int) -> str:
    value = float(size)
    for suffix in ["B", "KiB", "MiB", "GiB"]:
        if value < 1024:
            return f"{value:.2f}{suffix}"
        value /= 1024
    return f"{value:.2f}TiB"

# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from __future__ import annotations

import dataclasses
import zlib
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

import aiofiles


@dataclass(frozen=True)
class ChunkDescriptor:
    """One byte range of a multipart upload; ``crc32`` is set once its bytes are read."""

    part_number: int
    byte_offset: int
    byte_length: int
    crc32: Optional[str] = None

    def with_crc32(self, data: bytes) -> "ChunkDescriptor":
        return dataclasses.replace(self, crc32=crc32_hex(data))


def crc32_hex(data: bytes) -> str:
    """Standard CRC-32 as eight lowercase hex digits."""
    return f"{zlib.crc32(data) & 0xFFFFFFFF:08x}"


def plan_chunks(file_size: int, chunk_size: int) -> Iterator[ChunkDescriptor]:
    """
    Yield fixed-size ranges covering ``file_size`` bytes, numbered from 1.
    The last range may be shorter.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    part_number = 1
    offset = 0
    while offset < file_size:
        length = min(chunk_size, file_size - offset)
        yield ChunkDescriptor(part_number=part_number, byte_offset=offset, byte_length=length)
        part_number += 1
        offset += length


async def read_chunk(path: str, chunk: ChunkDescriptor) -> bytes:
    """Read exactly the chunk's range through its own file handle."""
    async with aiofiles.open(path, "rb") as f:
        await f.seek(chunk.byte_offset)
        data = await f.read(chunk.byte_length)
    if len(data) != chunk.byte_length:
        raise EOFError(
            f"{path}: expected {chunk.byte_length} bytes at offset {chunk.byte_offset}, "
            f"got {len(data)}"
        )
    return data


async def read_file(path: str) -> bytes:
    async with aiofiles.open(path, "rb") as f:
        return await f.read()


def build_part_manifest(chunks: Iterable[ChunkDescriptor]) -> str:
    """Render ``partNumber:crc32`` pairs, ascending by part number, comma separated."""
    ordered = sorted(chunks, key=lambda c: c.part_number)
    missing = [c.part_number for c in ordered if c.crc32 is None]
    if missing:
        raise ValueError(f"parts without checksum: {missing}")
    return ",".join(f"{c.part_number}:{c.crc32}" for c in ordered)

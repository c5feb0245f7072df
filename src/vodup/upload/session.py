# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

"""
Upload orchestration: apply -> transfer -> commit.

Files up to ``UploadConfig.threshold`` bytes go up in one PUT. Larger files
are split into ``UploadConfig.chunk_size`` parts, each read by offset and
checksummed on its own, then finished with a manifest sorted by part
number.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, TypeVar

from vodup.configs import UploadConfig
from vodup.errors import (
    ChunkUploadError,
    PreconditionError,
    SourceFileError,
    VodupError,
)
from vodup.upload.chunks import (
    ChunkDescriptor,
    crc32_hex,
    plan_chunks,
    read_chunk,
    read_file,
)
from vodup.upload.clients import PHASE_PART, PHASE_PUT, StorageClient, VodApiClient
from vodup.upload.target import UploadTarget
from vodup.utils.sizes import convert_bytes_to_human_readable

logger = logging.getLogger(__name__)

T = TypeVar("T")

MODE_SINGLE = "single"
MODE_MULTIPART = "multipart"


@dataclass
class UploadReport:
    video_id: str
    file_size: int
    mode: str
    uploaded_parts: List[int] = field(default_factory=list)
    failed_parts: List[int] = field(default_factory=list)
    manifest: Optional[str] = None


@dataclass
class PartOutcome:
    chunk: ChunkDescriptor
    error: Optional[VodupError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class UploadSession:
    """
    Drives one file through the three upload phases.

    The session keeps no state between calls to ``upload`` except
    ``last_report``; every call applies for a fresh target.
    """

    def __init__(
        self,
        api: VodApiClient,
        storage: StorageClient,
        config: Optional[UploadConfig] = None,
    ) -> None:
        self.api = api
        self.storage = storage
        self.config = config or UploadConfig()
        self.last_report: Optional[UploadReport] = None

    async def upload(self, file_path: str) -> str:
        """Upload ``file_path`` and return the video id assigned by the apply phase."""
        file_path = os.fspath(file_path)
        file_size = self._check_source(file_path)
        logger.info(
            "Uploading %s (%s)", file_path, convert_bytes_to_human_readable(file_size)
        )

        target = await self.api.apply_upload(file_size)

        if file_size <= self.config.threshold:
            report = await self._upload_single(target, file_path, file_size)
        else:
            report = await self._upload_multipart(target, file_path, file_size)

        await self.api.commit_upload(target.session_key)
        self.last_report = report
        logger.info("Upload finished: vid=%s mode=%s", target.video_id, report.mode)
        return target.video_id

    @staticmethod
    def _check_source(file_path: str) -> int:
        if not os.path.exists(file_path):
            raise SourceFileError(file_path, "file does not exist")
        if not os.path.isfile(file_path):
            raise SourceFileError(file_path, "not a regular file")
        file_size = os.path.getsize(file_path)
        if file_size == 0:
            raise SourceFileError(file_path, "file is empty")
        return file_size

    async def _attempt(self, label: str, call: Callable[[], Awaitable[T]]) -> T:
        attempts = self.config.part_attempts
        for attempt in range(1, attempts + 1):
            try:
                return await call()
            except PreconditionError:
                raise
            except VodupError as exc:
                if attempt == attempts:
                    raise
                logger.warning("%s failed (attempt %d/%d): %s", label, attempt, attempts, exc)
                await asyncio.sleep(self.config.retry_delay)
        raise AssertionError("unreachable")

    async def _upload_single(
        self, target: UploadTarget, file_path: str, file_size: int
    ) -> UploadReport:
        data = await read_file(file_path)
        crc32 = crc32_hex(data)
        await self._attempt(
            PHASE_PUT, lambda: self.storage.put_object(target, data, crc32)
        )
        return UploadReport(video_id=target.video_id, file_size=file_size, mode=MODE_SINGLE)

    async def _upload_multipart(
        self, target: UploadTarget, file_path: str, file_size: int
    ) -> UploadReport:
        upload_id = await self.storage.init_multipart(target)
        chunks = list(plan_chunks(file_size, self.config.chunk_size))
        logger.info(
            "Multipart upload %s: %d parts of up to %s, concurrency %d",
            upload_id,
            len(chunks),
            convert_bytes_to_human_readable(self.config.chunk_size),
            self.config.concurrency,
        )

        # Semaphore waiters wake in FIFO order, so concurrency 1 is strictly
        # sequential in ascending part order.
        semaphore = asyncio.Semaphore(self.config.concurrency)

        async def bounded(chunk: ChunkDescriptor) -> PartOutcome:
            async with semaphore:
                return await self._transfer_part(target, upload_id, file_path, chunk, len(chunks))

        tasks = [asyncio.ensure_future(bounded(chunk)) for chunk in chunks]
        try:
            outcomes = await asyncio.gather(*tasks)
        except BaseException:
            # No part may keep uploading once the upload is abandoned.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        uploaded = sorted((o.chunk for o in outcomes if o.ok), key=lambda c: c.part_number)
        failed = sorted(o.chunk.part_number for o in outcomes if not o.ok)

        if not uploaded:
            raise ChunkUploadError(PHASE_PART, "all parts failed", failed)
        if failed:
            if not self.config.allow_partial:
                raise ChunkUploadError(
                    PHASE_PART,
                    f"{len(failed)} of {len(chunks)} parts failed: {failed}",
                    failed,
                )
            logger.warning(
                "Finishing with %d of %d parts; missing parts %s",
                len(uploaded),
                len(chunks),
                failed,
            )

        manifest = await self.storage.finish_multipart(target, upload_id, uploaded)
        return UploadReport(
            video_id=target.video_id,
            file_size=file_size,
            mode=MODE_MULTIPART,
            uploaded_parts=[c.part_number for c in uploaded],
            failed_parts=failed,
            manifest=manifest,
        )

    async def _transfer_part(
        self,
        target: UploadTarget,
        upload_id: str,
        file_path: str,
        chunk: ChunkDescriptor,
        total: int,
    ) -> PartOutcome:
        try:
            data = await read_chunk(file_path, chunk)
        except (OSError, EOFError) as exc:
            raise SourceFileError(file_path, f"cannot read part {chunk.part_number}: {exc}") from exc
        chunk = chunk.with_crc32(data)

        label = f"part {chunk.part_number}/{total}"
        try:
            await self._attempt(
                label, lambda: self.storage.put_part(target, upload_id, chunk, data)
            )
        except PreconditionError:
            raise
        except VodupError as exc:
            logger.error("%s failed: %s", label, exc)
            return PartOutcome(chunk=chunk, error=exc)

        logger.info(
            "%s uploaded (offset %d, %d bytes, crc32 %s)",
            label,
            chunk.byte_offset,
            chunk.byte_length,
            chunk.crc32,
        )
        return PartOutcome(chunk=chunk)

# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

"""
The two HTTP capabilities an upload needs.

``VodApiClient`` talks to the metadata API and signs every call with the
account credentials. ``StorageClient`` talks to the upload host and only
ever sees the bearer token handed out by the apply phase. Neither holds
the other's secret.
"""

from __future__ import annotations

import json
import logging
import secrets
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import httpx

from vodup.configs import ApiConfig
from vodup.constants import (
    ACTION_APPLY_UPLOAD,
    ACTION_COMMIT_UPLOAD,
    HEADER_CONTENT_CRC32,
    HEADER_LOGICAL_PART_MODE,
    HEADER_STORAGE_MODE,
    HEADER_STORAGE_USER,
)
from vodup.errors import ProtocolError, TransportError
from vodup.signing.credentials import Credentials
from vodup.signing.signature_v4 import HeaderValue, SignatureV4
from vodup.upload.chunks import ChunkDescriptor, build_part_manifest
from vodup.upload.target import (
    UploadTarget,
    check_error_envelope,
    decode_json,
    parse_apply_response,
)
from vodup.utils.logging import mask

logger = logging.getLogger(__name__)

PHASE_APPLY = "apply"
PHASE_COMMIT = "commit"
PHASE_PUT = "transfer/single"
PHASE_INIT = "transfer/init"
PHASE_PART = "transfer/part"
PHASE_FINISH = "transfer/finish"


def header_items(headers: Mapping[str, HeaderValue]) -> List[Tuple[str, str]]:
    """Flatten multi-valued headers into ``(name, value)`` pairs for httpx."""
    items: List[Tuple[str, str]] = []
    for name, value in headers.items():
        if isinstance(value, str):
            items.append((name, value))
        else:
            items.extend((name, str(v)) for v in value)
    return items


async def _send(phase: str, http: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> httpx.Response:
    try:
        response = await http.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        raise TransportError(phase, exc) from exc
    logger.debug("[%s] %s %s -> %s %s", phase, method, url, response.status_code, response.text[:512])
    return response


class VodApiClient:
    """Signed calls to the VOD metadata API."""

    def __init__(
        self,
        credentials: Credentials,
        user_id: str,
        http: httpx.AsyncClient,
        api: Optional[ApiConfig] = None,
        signer: Optional[SignatureV4] = None,
    ) -> None:
        self._credentials = credentials
        self._user_id = user_id
        self._http = http
        self._api = api or ApiConfig()
        self._signer = signer or SignatureV4()

    def _identity_params(self, action: str) -> Dict[str, str]:
        return {
            "Action": action,
            "Version": self._api.version,
            "SpaceName": self._api.space_name,
            "app_id": self._api.app_id,
            "user_id": self._user_id,
        }

    async def _signed_call(
        self,
        phase: str,
        method: str,
        params: Mapping[str, str],
        headers: Mapping[str, HeaderValue],
        body: bytes = b"",
    ) -> Tuple[Dict[str, Any], httpx.Response]:
        signed = self._signer.prepare(
            method, self._api.url, params, headers, body, self._credentials
        )
        response = await _send(
            phase,
            self._http,
            method,
            signed.url,
            headers=header_items(signed.headers),
            content=body or None,
            timeout=self._api.timeout,
        )
        if not response.is_success:
            raise ProtocolError.from_response(phase, "request rejected", response)
        data = decode_json(phase, response)
        check_error_envelope(phase, data, response)
        return data, response

    async def apply_upload(self, file_size: int) -> UploadTarget:
        params = self._identity_params(ACTION_APPLY_UPLOAD)
        params.update(
            {
                "FileType": "video",
                "IsInner": "1",
                "FileSize": str(file_size),
                "s": f"{secrets.randbits(32):x}",
            }
        )
        headers = {
            "User-Agent": self._api.user_agent,
            "Referer": self._api.referer,
            "Sec-Gpc": "1",
        }
        logger.debug(
            "Applying for upload: size=%s ak=%s token=%s",
            file_size,
            self._credentials.access_key,
            mask(self._credentials.session_token),
        )
        data, response = await self._signed_call(PHASE_APPLY, "GET", params, headers)
        target = parse_apply_response(PHASE_APPLY, data, response)
        logger.info("Upload target acquired: vid=%s url=%s", target.video_id, target.upload_url)
        return target

    async def commit_upload(self, session_key: str) -> Dict[str, Any]:
        params = self._identity_params(ACTION_COMMIT_UPLOAD)
        payload = {
            "SessionKey": session_key,
            "Functions": [
                {"name": "GetMeta"},
                {"name": "Snapshot", "input": {"SnapshotTime": 0}},
            ],
        }
        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        headers = {
            "User-Agent": self._api.user_agent,
            "Referer": self._api.referer,
            "Content-Type": "application/json",
        }
        data, _ = await self._signed_call(PHASE_COMMIT, "POST", params, headers, body)
        logger.info("Upload committed")
        return data


class StorageClient:
    """Bearer-token calls to the upload host returned by the apply phase."""

    def __init__(
        self,
        user_id: str,
        http: httpx.AsyncClient,
        api: Optional[ApiConfig] = None,
        timeout: float = 120.0,
    ) -> None:
        self._user_id = user_id
        self._http = http
        self._api = api or ApiConfig()
        self._timeout = timeout

    def _headers(self, target: UploadTarget, gateway: bool = True, **extra: str) -> Dict[str, str]:
        headers = {
            "Authorization": target.upload_auth_token,
            "User-Agent": self._api.user_agent,
            "Referer": self._api.referer,
            HEADER_LOGICAL_PART_MODE: "logical_part",
            HEADER_STORAGE_USER: self._user_id,
        }
        if gateway:
            headers[HEADER_STORAGE_MODE] = "gateway"
        headers.update(extra)
        return headers

    async def put_object(self, target: UploadTarget, data: bytes, crc32: str) -> None:
        """Single-shot upload; only HTTP 200 counts as success."""
        headers = self._headers(
            target,
            gateway=False,
            **{"Content-Type": "application/octet-stream", HEADER_CONTENT_CRC32: crc32},
        )
        response = await _send(
            PHASE_PUT, self._http, "PUT", target.upload_url,
            headers=headers, content=data, timeout=self._timeout,
        )
        if response.status_code != 200:
            raise ProtocolError.from_response(PHASE_PUT, "upload rejected", response)
        _check_optional_envelope(PHASE_PUT, response)

    async def init_multipart(self, target: UploadTarget) -> str:
        body = json.dumps(
            {"auth": target.upload_auth_token, "session_key": target.session_key, "callback_url": ""}
        ).encode("utf-8")
        headers = self._headers(target, **{"Content-Type": "application/json", "Sec-Gpc": "1"})
        response = await _send(
            PHASE_INIT, self._http, "POST", target.upload_url,
            params={"uploadmode": "part", "phase": "init"},
            headers=headers, content=body, timeout=self._timeout,
        )
        if not response.is_success:
            raise ProtocolError.from_response(PHASE_INIT, "init rejected", response)
        data = decode_json(PHASE_INIT, response)
        check_error_envelope(PHASE_INIT, data, response)
        payload = data.get("data")
        upload_id = payload.get("uploadid") if isinstance(payload, Mapping) else None
        if not upload_id:
            raise ProtocolError.from_response(PHASE_INIT, "missing field data.uploadid", response)
        return str(upload_id)

    async def put_part(
        self, target: UploadTarget, upload_id: str, chunk: ChunkDescriptor, data: bytes
    ) -> None:
        """Upload one part; HTTP 200 and 201 both count as success."""
        headers = self._headers(
            target,
            **{"Content-Type": "application/octet-stream", HEADER_CONTENT_CRC32: chunk.crc32 or ""},
        )
        params = {
            "phase": "transfer",
            "part_number": str(chunk.part_number),
            "part_offset": str(chunk.byte_offset),
            "uploadid": upload_id,
        }
        response = await _send(
            PHASE_PART, self._http, "PUT", target.upload_url,
            params=params, headers=headers, content=data, timeout=self._timeout,
        )
        if response.status_code not in (200, 201):
            raise ProtocolError.from_response(
                PHASE_PART, f"part {chunk.part_number} rejected", response
            )

    async def finish_multipart(
        self, target: UploadTarget, upload_id: str, parts: Iterable[ChunkDescriptor]
    ) -> str:
        manifest = build_part_manifest(parts)
        headers = self._headers(target, **{"Content-Type": "text/plain;charset=UTF-8"})
        response = await _send(
            PHASE_FINISH, self._http, "POST", target.upload_url,
            params={"uploadmode": "part", "phase": "finish", "uploadid": upload_id},
            headers=headers, content=manifest.encode("utf-8"), timeout=self._timeout,
        )
        if not response.is_success:
            raise ProtocolError.from_response(PHASE_FINISH, "finish rejected", response)
        _check_optional_envelope(PHASE_FINISH, response)
        return manifest


def _check_optional_envelope(phase: str, response: httpx.Response) -> None:
    try:
        data = response.json()
    except (ValueError, UnicodeDecodeError):
        return
    if isinstance(data, dict):
        check_error_envelope(phase, data, response)

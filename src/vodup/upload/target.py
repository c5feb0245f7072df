# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping

import httpx

from vodup.errors import ApiError, ProtocolError


@dataclass(frozen=True)
class UploadTarget:
    """Where and how to send the bytes of one upload attempt."""

    upload_url: str
    upload_auth_token: str
    video_id: str
    session_key: str

    def __repr__(self) -> str:
        return (
            f"UploadTarget(upload_url={self.upload_url!r}, video_id={self.video_id!r}, "
            f"upload_auth_token=<{len(self.upload_auth_token)} chars>, "
            f"session_key=<{len(self.session_key)} chars>)"
        )


def decode_json(phase: str, response: httpx.Response) -> Dict[str, Any]:
    """Decode a JSON object body, raising ``ProtocolError`` for anything else."""
    try:
        data = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ProtocolError.from_response(phase, "response is not valid JSON", response)
    if not isinstance(data, dict):
        raise ProtocolError.from_response(phase, "response is not a JSON object", response)
    return data


def check_error_envelope(phase: str, data: Mapping[str, Any], response: httpx.Response) -> None:
    """Raise ``ApiError`` when ``ResponseMetadata.Error`` carries a code or message."""
    metadata = data.get("ResponseMetadata")
    if not isinstance(metadata, Mapping):
        return
    error = metadata.get("Error")
    if not isinstance(error, Mapping):
        return
    code = str(error.get("Code") or "")
    message = str(error.get("Message") or "")
    if code or message:
        raise ApiError(
            phase, code, message, status_code=response.status_code, body=response.text
        )


def _require(phase: str, container: Any, key: str, response: httpx.Response) -> Any:
    value = container.get(key) if isinstance(container, Mapping) else None
    if value is None or value == "" or value == []:
        raise ProtocolError.from_response(phase, f"missing field {key}", response)
    return value


def _first(phase: str, items: Any, key: str, response: httpx.Response) -> Mapping[str, Any]:
    if not isinstance(items, list) or not isinstance(items[0], Mapping):
        raise ProtocolError.from_response(phase, f"field {key} is not a list of objects", response)
    return items[0]


def parse_apply_response(phase: str, data: Mapping[str, Any], response: httpx.Response) -> UploadTarget:
    """
    Read the upload target out of an ApplyUploadInner result.

    Expected shape::

        Result.InnerUploadAddress.UploadNodes[0] = {
            UploadHost, Vid, SessionKey, StoreInfos: [{StoreUri, Auth}]
        }
    """
    result = _require(phase, data, "Result", response)
    address = _require(phase, result, "InnerUploadAddress", response)
    nodes = _require(phase, address, "UploadNodes", response)
    node = _first(phase, nodes, "UploadNodes", response)

    upload_host = _require(phase, node, "UploadHost", response)
    video_id = _require(phase, node, "Vid", response)
    session_key = _require(phase, node, "SessionKey", response)
    store_infos = _require(phase, node, "StoreInfos", response)
    store_info = _first(phase, store_infos, "StoreInfos", response)
    store_uri = _require(phase, store_info, "StoreUri", response)
    auth = _require(phase, store_info, "Auth", response)

    return UploadTarget(
        upload_url=f"https://{upload_host}/upload/v1/{store_uri}",
        upload_auth_token=str(auth),
        video_id=str(video_id),
        session_key=str(session_key),
    )

# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

"""
Credentials for the signed API and the adapter that reads them from an
"upload authorization" object.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from vodup.constants import DEFAULT_REGION, DEFAULT_SERVICE
from vodup.utils.logging import mask

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    access_key: str
    secret_key: str
    session_token: Optional[str] = None
    region: str = DEFAULT_REGION
    service: str = DEFAULT_SERVICE
    signature_version: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.access_key

    @classmethod
    def from_upload_auth(
        cls,
        upload_auth: Mapping[str, Any],
        region: str = DEFAULT_REGION,
        service: str = DEFAULT_SERVICE,
    ) -> "Credentials":
        """
        Build credentials from an upload authorization object.

        A missing ``AccessKeyID`` degrades to empty credentials instead of
        raising; the signer rejects those before anything is sent.
        """
        access_key = _string_field(upload_auth, "AccessKeyID")
        secret_key = _string_field(upload_auth, "SecretAccessKey")
        session_token = _string_field(upload_auth, "SessionToken")
        signature_version = _string_field(upload_auth, "SignatureVersion") or None

        logger.debug(
            "Upload auth fields: AccessKeyID=%s SecretAccessKey=%s SessionToken=%s",
            bool(access_key),
            bool(secret_key),
            bool(session_token),
        )

        if not access_key:
            logger.warning("Upload authorization carries no AccessKeyID; using empty credentials")
            return cls(
                access_key="",
                secret_key="",
                session_token=None,
                region=region,
                service=service,
                signature_version=signature_version,
            )

        return cls(
            access_key=access_key,
            secret_key=secret_key,
            session_token=session_token or None,
            region=region,
            service=service,
            signature_version=signature_version,
        )

    def __repr__(self) -> str:
        return (
            f"Credentials(access_key={self.access_key!r}, secret_key={mask(self.secret_key)!r}, "
            f"session_token={mask(self.session_token)!r}, region={self.region!r}, "
            f"service={self.service!r})"
        )


def _string_field(data: Mapping[str, Any], name: str) -> str:
    value = data.get(name)
    if isinstance(value, str):
        return value
    return ""


def extract_upload_auth(document: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Find the upload authorization object in a credential document.

    Accepts the bare object as well as the ``{"upload_auth": {...}}`` and
    ``{"data": {"upload_auth": {...}}}`` wrappers returned by the
    credential endpoint.
    """
    if "AccessKeyID" in document or "SecretAccessKey" in document:
        return dict(document)
    if isinstance(document.get("upload_auth"), Mapping):
        return dict(document["upload_auth"])
    data = document.get("data")
    if isinstance(data, Mapping):
        return extract_upload_auth(data)
    return dict(document)


def load_upload_auth(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        document = json.load(f)
    if not isinstance(document, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return extract_upload_auth(document)

# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

"""
Signature Version 4 request signing for the VOD metadata API.

The scheme follows AWS SigV4 with two service-specific rules: a fixed set
of headers (see ``UNSIGNABLE_HEADERS``) is never signed, and repeated
headers are joined with a single space.
"""

from __future__ import annotations

import datetime
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import parse_qsl, quote, urlsplit

from vodup.constants import (
    HEADER_AMZ_DATE,
    HEADER_SECURITY_TOKEN,
    SIGNING_ALGORITHM,
    SIGNING_TERMINATOR,
    UNSIGNABLE_HEADERS,
)
from vodup.errors import MalformedURLError, MissingCredentialError
from vodup.signing.credentials import Credentials
from vodup.signing.key_cache import DEFAULT_KEY_CACHE, SigningKeyCache

logger = logging.getLogger(__name__)

HeaderValue = Union[str, Sequence[str]]

EMPTY_SHA256 = hashlib.sha256(b"").hexdigest()


def uri_encode(value: str) -> str:
    """Percent-encode everything except A-Z a-z 0-9 - _ . ~"""
    return quote(value, safe="")


def canonical_path(path: str) -> str:
    if path.startswith("/"):
        path = path[1:]
    if not path:
        return "/"
    return "/" + uri_encode(path).replace("%2F", "/")


def canonical_query(params: Mapping[str, object]) -> str:
    if not params:
        return ""
    pairs = sorted((str(k), str(v)) for k, v in params.items())
    return "&".join(f"{uri_encode(k)}={uri_encode(v)}" for k, v in pairs)


def _header_values(value: HeaderValue) -> List[str]:
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def canonical_headers(headers: Mapping[str, HeaderValue]) -> Tuple[str, str]:
    """
    Return ``(canonical_headers, signed_headers)`` for a header mapping.

    Header names are lower-cased; values of names that repeat (in any
    letter case) or carry several values are joined with one space.
    """
    aggregate: Dict[str, List[str]] = {}
    for name, value in headers.items():
        lower = name.lower()
        if lower in UNSIGNABLE_HEADERS:
            continue
        aggregate.setdefault(lower, []).extend(_header_values(value))

    names = sorted(aggregate)
    lines = [f"{name}:{' '.join(aggregate[name])}" for name in names]
    return "\n".join(lines), ";".join(names)


def format_timestamp(now: datetime.datetime) -> str:
    if now.tzinfo is not None:
        now = now.astimezone(datetime.timezone.utc)
    return now.strftime("%Y%m%dT%H%M%SZ")


@dataclass(frozen=True)
class SigningContext:
    method: str
    canonical_uri: str
    canonical_query_string: str
    canonical_headers: str
    signed_header_names: str
    payload_sha256_hex: str

    @property
    def canonical_request(self) -> str:
        # The header block is followed by a blank line before SignedHeaders.
        return (
            f"{self.method}\n"
            f"{self.canonical_uri}\n"
            f"{self.canonical_query_string}\n"
            f"{self.canonical_headers}\n"
            f"\n"
            f"{self.signed_header_names}\n"
            f"{self.payload_sha256_hex}"
        )


@dataclass(frozen=True)
class SignedRequest:
    """Everything produced while signing one request."""

    url: str
    headers: Dict[str, HeaderValue]
    context: SigningContext
    timestamp: str
    credential_scope: str
    string_to_sign: str
    signature: str

    @property
    def authorization(self) -> str:
        return str(self.headers["Authorization"])


class SignatureV4:
    """
    Signs requests with HMAC-SHA256 over a canonical request.

    Instances are stateless apart from the signing-key cache, which is
    process wide unless another one is passed in.
    """

    def __init__(self, key_cache: Optional[SigningKeyCache] = None) -> None:
        self.key_cache = key_cache if key_cache is not None else DEFAULT_KEY_CACHE

    def sign(
        self,
        method: str,
        url: str,
        query_params: Optional[Mapping[str, object]],
        headers: Optional[Mapping[str, HeaderValue]],
        body: bytes,
        credentials: Credentials,
        now: Optional[datetime.datetime] = None,
    ) -> Dict[str, HeaderValue]:
        """Return the caller's headers plus Host, X-Amz-Date, the token and Authorization."""
        return self.prepare(
            method, url, query_params, headers, body, credentials, now=now
        ).headers

    def prepare(
        self,
        method: str,
        url: str,
        query_params: Optional[Mapping[str, object]],
        headers: Optional[Mapping[str, HeaderValue]],
        body: bytes,
        credentials: Credentials,
        now: Optional[datetime.datetime] = None,
    ) -> SignedRequest:
        try:
            parsed = urlsplit(url)
        except ValueError as exc:
            raise MalformedURLError(url, str(exc)) from exc
        if not parsed.scheme or not parsed.netloc or parsed.hostname is None:
            raise MalformedURLError(url)
        if not credentials.access_key:
            raise MissingCredentialError("access_key")
        if not credentials.secret_key:
            raise MissingCredentialError("secret_key")

        timestamp = format_timestamp(now or datetime.datetime.now(datetime.timezone.utc))
        short_date = timestamp[:8]
        # Host name only; an explicit port is not signed.
        host = parsed.hostname
        if ":" in host:
            host = f"[{host}]"

        injected: Dict[str, str] = {HEADER_AMZ_DATE: timestamp, "Host": host}
        if credentials.session_token:
            injected[HEADER_SECURITY_TOKEN] = credentials.session_token

        to_sign: Dict[str, HeaderValue] = {}
        overridden = {name.lower() for name in injected} | {"authorization"}
        for name, value in (headers or {}).items():
            if name.lower() not in overridden:
                to_sign[name] = value
        to_sign.update(injected)

        params: Dict[str, object] = dict(parse_qsl(parsed.query, keep_blank_values=True))
        params.update(query_params or {})

        context = self.build_context(method, parsed.path, params, to_sign, body)
        credential_scope = (
            f"{short_date}/{credentials.region}/{credentials.service}/{SIGNING_TERMINATOR}"
        )
        string_to_sign = self.string_to_sign(timestamp, credential_scope, context)
        signing_key = self.signing_key(
            short_date, credentials.region, credentials.service, credentials.secret_key
        )
        signature = hmac.new(
            signing_key, string_to_sign.encode("utf-8"), hashlib.sha256
        ).hexdigest()

        logger.debug("Canonical request:\n%s", context.canonical_request)
        logger.debug("String to sign:\n%s", string_to_sign)

        to_sign["Authorization"] = (
            f"{SIGNING_ALGORITHM} Credential={credentials.access_key}/{credential_scope}, "
            f"SignedHeaders={context.signed_header_names}, Signature={signature}"
        )

        wire_url = f"{parsed.scheme}://{parsed.netloc}{parsed.path or '/'}"
        if context.canonical_query_string:
            wire_url += "?" + context.canonical_query_string

        return SignedRequest(
            url=wire_url,
            headers=to_sign,
            context=context,
            timestamp=timestamp,
            credential_scope=credential_scope,
            string_to_sign=string_to_sign,
            signature=signature,
        )

    def build_context(
        self,
        method: str,
        path: str,
        query_params: Mapping[str, object],
        headers: Mapping[str, HeaderValue],
        body: bytes,
    ) -> SigningContext:
        header_block, signed_names = canonical_headers(headers)
        return SigningContext(
            method=method.upper(),
            canonical_uri=canonical_path(path),
            canonical_query_string=canonical_query(query_params),
            canonical_headers=header_block,
            signed_header_names=signed_names,
            payload_sha256_hex=hashlib.sha256(body or b"").hexdigest(),
        )

    @staticmethod
    def string_to_sign(timestamp: str, credential_scope: str, context: SigningContext) -> str:
        digest = hashlib.sha256(context.canonical_request.encode("utf-8")).hexdigest()
        return f"{SIGNING_ALGORITHM}\n{timestamp}\n{credential_scope}\n{digest}"

    def signing_key(self, short_date: str, region: str, service: str, secret_key: str) -> bytes:
        return self.key_cache.get(short_date, region, service, secret_key)

# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

import hashlib
import hmac
import threading
from typing import Dict

from vodup.constants import SIGNING_KEY_CACHE_SIZE, SIGNING_TERMINATOR


def hmac_sha256(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(secret_key: str, short_date: str, region: str, service: str) -> bytes:
    k_date = hmac_sha256(("AWS4" + secret_key).encode("utf-8"), short_date)
    k_region = hmac_sha256(k_date, region)
    k_service = hmac_sha256(k_region, service)
    return hmac_sha256(k_service, SIGNING_TERMINATOR)


class SigningKeyCache:
    """
    Memoizes derived signing keys per (date, region, service, secret).

    When the cache is full it is emptied as a whole before the next insert;
    there is no per-entry eviction. Safe to share between threads.
    """

    def __init__(self, capacity: int = SIGNING_KEY_CACHE_SIZE) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._keys: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    @staticmethod
    def cache_key(short_date: str, region: str, service: str, secret_key: str) -> str:
        return f"{short_date}|{region}|{service}|AWS4{secret_key}"

    def get(self, short_date: str, region: str, service: str, secret_key: str) -> bytes:
        key = self.cache_key(short_date, region, service, secret_key)
        with self._lock:
            cached = self._keys.get(key)
        if cached is not None:
            return cached

        signing_key = derive_signing_key(secret_key, short_date, region, service)
        with self._lock:
            if len(self._keys) >= self.capacity:
                self._keys.clear()
            self._keys[key] = signing_key
        return signing_key

    def clear(self) -> None:
        with self._lock:
            self._keys.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._keys


DEFAULT_KEY_CACHE = SigningKeyCache()

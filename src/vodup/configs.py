# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import toml

from vodup.constants import (
    CHUNK_SIZE,
    DEFAULT_API_URL,
    DEFAULT_API_VERSION,
    DEFAULT_APP_ID,
    DEFAULT_LOGGER_DIR,
    DEFAULT_PART_ATTEMPTS,
    DEFAULT_REFERER,
    DEFAULT_REGION,
    DEFAULT_RETRY_DELAY,
    DEFAULT_SERVICE,
    DEFAULT_SPACE_NAME,
    DEFAULT_USER_AGENT,
    SINGLE_UPLOAD_THRESHOLD,
)
from vodup.utils.sizes import convert_to_bytes


@dataclass
class ApiConfig:
    url: str = DEFAULT_API_URL
    version: str = DEFAULT_API_VERSION
    region: str = DEFAULT_REGION
    service: str = DEFAULT_SERVICE
    space_name: str = DEFAULT_SPACE_NAME
    app_id: str = DEFAULT_APP_ID
    user_agent: str = DEFAULT_USER_AGENT
    referer: str = DEFAULT_REFERER
    timeout: float = 30.0


@dataclass
class UploadConfig:
    chunk_size: int = CHUNK_SIZE
    threshold: int = SINGLE_UPLOAD_THRESHOLD
    concurrency: int = 1
    part_attempts: int = DEFAULT_PART_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY
    allow_partial: bool = False
    timeout: float = 120.0

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("chunk-size must be positive")
        if self.threshold < 0:
            raise ValueError("threshold must not be negative")
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if self.part_attempts < 1:
            raise ValueError("part-attempts must be at least 1")
        if self.retry_delay < 0:
            raise ValueError("retry-delay must not be negative")


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None
    dir: str = DEFAULT_LOGGER_DIR


@dataclass
class VodupConfig:
    api: ApiConfig = field(default_factory=ApiConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_toml(cls, path: Optional[str]) -> "VodupConfig":
        config = cls()
        if path:
            config.apply_toml(path)
        return config

    def apply_toml(self, path: str) -> None:
        config = toml.load(path)

        if "api" in config:
            api = config["api"]
            self.api.url = api.get("url", self.api.url)
            self.api.version = api.get("version", self.api.version)
            self.api.region = api.get("region", self.api.region)
            self.api.service = api.get("service", self.api.service)
            self.api.space_name = api.get("space-name", self.api.space_name)
            self.api.app_id = str(api.get("app-id", self.api.app_id))
            self.api.user_agent = api.get("user-agent", self.api.user_agent)
            self.api.referer = api.get("referer", self.api.referer)
            self.api.timeout = float(api.get("timeout", self.api.timeout))

        if "upload" in config:
            upload = config["upload"]
            self.upload.chunk_size = convert_to_bytes(
                upload.get("chunk-size", self.upload.chunk_size)
            )
            self.upload.threshold = convert_to_bytes(
                upload.get("threshold", self.upload.threshold)
            )
            self.upload.concurrency = int(upload.get("concurrency", self.upload.concurrency))
            self.upload.part_attempts = int(
                upload.get("part-attempts", self.upload.part_attempts)
            )
            self.upload.retry_delay = float(upload.get("retry-delay", self.upload.retry_delay))
            self.upload.allow_partial = self._bool(
                upload.get("allow-partial", self.upload.allow_partial)
            )
            self.upload.timeout = float(upload.get("timeout", self.upload.timeout))
            self.upload.validate()

        if "logging" in config:
            log = config["logging"]
            self.logging.level = log.get("level", self.logging.level)
            self.logging.file = self._empty_str(log.get("file", self.logging.file))
            self.logging.dir = log.get("dir", self.logging.dir)

    @staticmethod
    def _bool(value) -> bool:
        if isinstance(value, str):
            text = value.strip().lower()
            if text in ("1", "true", "yes", "on"):
                return True
            if text in ("0", "false", "no", "off", ""):
                return False
            raise ValueError(f"Invalid boolean: {value!r}")
        return bool(value)

    @staticmethod
    def _empty_str(value: Optional[str]) -> Optional[str]:
        if value == "":
            return None
        return value

# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

"""
Command factories.

Each factory turns command line options into a ``VodupConfig`` and runs one
operation with it.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import httpx

from vodup.configs import VodupConfig
from vodup.signing.credentials import Credentials, load_upload_auth
from vodup.signing.signature_v4 import SignatureV4, SignedRequest
from vodup.upload.clients import StorageClient, VodApiClient
from vodup.upload.session import UploadReport, UploadSession
from vodup.utils.logging import build_logger


class CommandFactory(ABC):
    """Shared configuration and credential handling for CLI commands."""

    def __init__(
        self,
        auth_path: str,
        config_path: Optional[str] = None,
        log_level: Optional[str] = None,
    ):
        self.auth_path = auth_path
        self.config_path = config_path
        self.log_level = log_level

    @abstractmethod
    def apply_overrides(self, config: VodupConfig) -> None:
        """Copy command line options onto the loaded configuration."""
        pass

    def create_config(self) -> VodupConfig:
        config = VodupConfig.from_toml(self.config_path)
        if self.log_level:
            config.logging.level = self.log_level
        self.apply_overrides(config)
        return config

    def create_logger(self, config: VodupConfig) -> logging.Logger:
        return build_logger(
            "vodup",
            config.logging.file,
            config.logging.dir,
            level=config.logging.level,
        )

    def create_credentials(self, config: VodupConfig) -> Credentials:
        return Credentials.from_upload_auth(
            load_upload_auth(self.auth_path),
            region=config.api.region,
            service=config.api.service,
        )


class UploadFactory(CommandFactory):
    """
    Upload mode.

    Builds both HTTP capabilities over one connection pool and uploads a
    single file.
    """

    def __init__(
        self,
        file_path: str,
        auth_path: str,
        user_id: str,
        config_path: Optional[str] = None,
        concurrency: Optional[int] = None,
        allow_partial: Optional[bool] = None,
        log_level: Optional[str] = None,
    ):
        super().__init__(auth_path, config_path, log_level)
        self.file_path = file_path
        self.user_id = user_id
        self.concurrency = concurrency
        self.allow_partial = allow_partial

    def apply_overrides(self, config: VodupConfig) -> None:
        if self.concurrency is not None:
            config.upload.concurrency = self.concurrency
        if self.allow_partial is not None:
            config.upload.allow_partial = self.allow_partial
        config.upload.validate()

    def create_session(self, config: VodupConfig, http: httpx.AsyncClient) -> UploadSession:
        credentials = self.create_credentials(config)
        api = VodApiClient(credentials, self.user_id, http, api=config.api)
        storage = StorageClient(self.user_id, http, api=config.api, timeout=config.upload.timeout)
        return UploadSession(api, storage, config.upload)

    async def upload(self, config: VodupConfig) -> UploadReport:
        async with httpx.AsyncClient() as http:
            session = self.create_session(config, http)
            await session.upload(self.file_path)
            return session.last_report

    def run(self) -> UploadReport:
        config = self.create_config()
        self.create_logger(config)
        return asyncio.run(self.upload(config))


class SignFactory(CommandFactory):
    """
    Sign mode.

    Signs one request offline and returns every intermediate value, for
    comparing against what the server expects.
    """

    def __init__(
        self,
        method: str,
        url: str,
        auth_path: str,
        query: Optional[List[str]] = None,
        headers: Optional[List[str]] = None,
        data: str = "",
        config_path: Optional[str] = None,
        log_level: Optional[str] = None,
    ):
        super().__init__(auth_path, config_path, log_level)
        self.method = method
        self.url = url
        self.query = query or []
        self.headers = headers or []
        self.data = data

    def apply_overrides(self, config: VodupConfig) -> None:
        pass

    @staticmethod
    def parse_pairs(items: List[str], separator: str) -> Dict[str, List[str]]:
        pairs: Dict[str, List[str]] = {}
        for item in items:
            if separator not in item:
                raise ValueError(f"Expected NAME{separator}VALUE, got {item!r}")
            name, value = item.split(separator, 1)
            pairs.setdefault(name.strip(), []).append(value.strip())
        return pairs

    def run(self) -> SignedRequest:
        config = self.create_config()
        self.create_logger(config)
        # Repeated query keys keep the last value.
        query = {k: v[-1] for k, v in self.parse_pairs(self.query, "=").items()}
        headers = self.parse_pairs(self.headers, ":")
        return SignatureV4().prepare(
            self.method,
            self.url,
            query,
            headers,
            self.data.encode("utf-8"),
            self.create_credentials(config),
        )

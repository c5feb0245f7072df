import asyncio
import json
from typing import Callable, Dict, List, Optional, Set, Tuple

import httpx
import pytest

from vodup.configs import ApiConfig, UploadConfig
from vodup.signing.credentials import Credentials
from vodup.signing.key_cache import SigningKeyCache
from vodup.signing.signature_v4 import SignatureV4
from vodup.upload.clients import StorageClient, VodApiClient
from vodup.upload.session import UploadSession

API_HOST = "vod.bytedanceapi.com"
UPLOAD_HOST = "tos-d-x-hl.snssdk.com"
STORE_URI = "tos-cn-i-0004/oYQ9bzpcSEDyAdBeAaBfgCNhgAmClmA"
UPLOAD_TOKEN = "SpaceKey/aweme/1/:version:v2:eyJhbGciOiJIUzI1NiJ9.payload.sig"
VIDEO_ID = "v0d00fg10000cn5abcdefghijk"
SESSION_KEY = "eyJhY2NvdW50VHlwZSI6InZvZCJ9"
UPLOAD_ID = "c0ffee00beef"
USER_ID = "1234567890"


class FakeVodServer:
    """
    In-memory stand-in for the metadata API and the upload host.

    Every request is recorded in ``calls`` as ``(kind, request)``.
    """

    def __init__(
        self,
        failing_parts: Optional[Set[int]] = None,
        flaky_parts: Optional[Set[int]] = None,
        part_delays: Optional[Dict[int, float]] = None,
        commit_error: Optional[Tuple[str, str]] = None,
        apply_payload: Optional[dict] = None,
        single_status: int = 200,
        part_status: int = 200,
        on_init: Optional[Callable[[], None]] = None,
    ) -> None:
        self.failing_parts = failing_parts or set()
        self.flaky_parts = set(flaky_parts or set())
        self.part_delays = part_delays or {}
        self.commit_error = commit_error
        self.apply_payload = apply_payload
        self.single_status = single_status
        self.part_status = part_status
        self.on_init = on_init
        self.calls: List[Tuple[str, httpx.Request]] = []
        self.completed_parts: List[int] = []

    def kinds(self) -> List[str]:
        return [kind for kind, _ in self.calls]

    def requests(self, kind: str) -> List[httpx.Request]:
        return [request for k, request in self.calls if k == kind]

    def apply_response(self) -> dict:
        if self.apply_payload is not None:
            return self.apply_payload
        return {
            "ResponseMetadata": {"RequestId": "20240102030405", "Action": "ApplyUploadInner"},
            "Result": {
                "InnerUploadAddress": {
                    "UploadNodes": [
                        {
                            "Vid": VIDEO_ID,
                            "UploadHost": UPLOAD_HOST,
                            "SessionKey": SESSION_KEY,
                            "StoreInfos": [{"StoreUri": STORE_URI, "Auth": UPLOAD_TOKEN}],
                        }
                    ]
                }
            },
        }

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == API_HOST:
            return self._handle_api(request)
        if request.url.host == UPLOAD_HOST:
            return await self._handle_upload(request)
        return httpx.Response(404, text="unknown host")

    def _handle_api(self, request: httpx.Request) -> httpx.Response:
        action = request.url.params.get("Action")
        if action == "ApplyUploadInner":
            self.calls.append(("apply", request))
            return httpx.Response(200, json=self.apply_response())
        if action == "CommitUploadInner":
            self.calls.append(("commit", request))
            metadata = {"RequestId": "20240102030406", "Action": "CommitUploadInner"}
            if self.commit_error:
                code, message = self.commit_error
                metadata["Error"] = {"Code": code, "Message": message}
            return httpx.Response(200, json={"ResponseMetadata": metadata, "Result": {}})
        return httpx.Response(400, text="unknown action")

    async def _handle_upload(self, request: httpx.Request) -> httpx.Response:
        phase = request.url.params.get("phase")
        if phase is None and request.method == "PUT":
            self.calls.append(("single", request))
            return httpx.Response(self.single_status, json={"success": 0})
        if phase == "init":
            self.calls.append(("init", request))
            if self.on_init is not None:
                self.on_init()
            return httpx.Response(200, json={"data": {"uploadid": UPLOAD_ID}})
        if phase == "transfer":
            self.calls.append(("part", request))
            part_number = int(request.url.params["part_number"])
            await asyncio.sleep(self.part_delays.get(part_number, 0))
            if part_number in self.failing_parts:
                return httpx.Response(500, text="part failed")
            if part_number in self.flaky_parts:
                self.flaky_parts.discard(part_number)
                return httpx.Response(503, text="try again")
            self.completed_parts.append(part_number)
            return httpx.Response(self.part_status, json={"success": 0})
        if phase == "finish":
            self.calls.append(("finish", request))
            return httpx.Response(200, json={"success": 0})
        return httpx.Response(400, text="unknown phase")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(
        access_key="AKTPYjE0ZTYxNTI5ZGU0",
        secret_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
        session_token="STSeyJMVE1Ub2tlbiI6IiJ9",
        region="cn-north-1",
        service="vod",
    )


@pytest.fixture
def signer() -> SignatureV4:
    return SignatureV4(SigningKeyCache())


@pytest.fixture
def upload_config() -> UploadConfig:
    return UploadConfig(part_attempts=1, retry_delay=0)


@pytest.fixture
def make_file(tmp_path):
    def _make(size: int, name: str = "video.mp4") -> str:
        path = tmp_path / name
        # Non-repeating content so every part has its own checksum.
        block = bytes((i * 7 + i // 251) % 256 for i in range(65521))
        data = (block * (size // len(block) + 1))[:size]
        path.write_bytes(data)
        return str(path)

    return _make


@pytest.fixture
def run_upload(credentials, signer):
    """Run one upload against ``server`` and return ``(video_id, session)``."""

    def _run(server: FakeVodServer, file_path: str, config: UploadConfig):
        async def go():
            async with server.client() as http:
                api = VodApiClient(credentials, USER_ID, http, api=ApiConfig(), signer=signer)
                storage = StorageClient(USER_ID, http, api=ApiConfig())
                session = UploadSession(api, storage, config)
                video_id = await session.upload(file_path)
                return video_id, session

        return asyncio.run(go())

    return _run


def json_body(request: httpx.Request) -> dict:
    return json.loads(request.content.decode("utf-8"))

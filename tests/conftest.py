"""Test configuration and fixtures"""

import inspect
import json
from dataclasses import dataclass
from typing import Any, Callable, Optional
from urllib.parse import parse_qs, urlsplit

import pytest

from bili_cli.api.client import BiliAPIClient
from bili_cli.api.constants import FINGERPRINT_API_URL, NAV_API_URL
from bili_cli.api.transport import TransportResponse
from bili_cli.storage.credentials import StaticCredentialStore

IMG_URL = "https://i0.hdslb.com/bfs/wbi/7cd084941338484aae1ad9425b84077c.png"
SUB_URL = "https://i0.hdslb.com/bfs/wbi/4932caff0ff746eab6f01bf08b70ac45.png"
MIXIN_KEY = "ea1db124af3c7062474693fa704f4ff8"

NAV_PAYLOAD = {
    "code": -101,
    "message": "账号未登录",
    "data": {"isLogin": False, "wbi_img": {"img_url": IMG_URL, "sub_url": SUB_URL}},
}

FINGERPRINT_PAYLOAD = {
    "code": 0,
    "message": "ok",
    "data": {"b_3": "B3-GUEST-infoc", "b_4": "B4-GUEST-infoc"},
}


@dataclass
class RecordedCall:
    method: str
    url: str
    headers: dict[str, str]
    body: Optional[bytes]

    @property
    def path(self) -> str:
        return self.url.split("?")[0]

    @property
    def query(self) -> dict[str, str]:
        return {k: v[0] for k, v in parse_qs(urlsplit(self.url).query).items()}


class FakeTransport:
    """
    In-memory HttpTransport. Routes are matched on the URL without its query
    string; handlers may return a dict (sent as JSON with status 200), a
    TransportResponse, or an awaitable of either.
    """

    def __init__(self):
        self.routes: dict[str, Callable[[RecordedCall], Any]] = {}
        self.calls: list[RecordedCall] = []
        self.closed = False

    def route(self, url: str, handler: Callable[[RecordedCall], Any]) -> None:
        self.routes[url] = handler

    def json(self, url: str, payload: Any, status: int = 200) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.routes[url] = lambda call: TransportResponse(status, body)

    def calls_to(self, url: str) -> list[RecordedCall]:
        return [call for call in self.calls if call.path == url]

    async def request(self, method, url, headers, body=None):
        call = RecordedCall(method, url, dict(headers), body)
        self.calls.append(call)
        handler = self.routes.get(call.path)
        if handler is None:
            return TransportResponse(404, b"not found")
        result = handler(call)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, TransportResponse):
            return result
        return TransportResponse(200, json.dumps(result).encode("utf-8"))

    async def close(self):
        self.closed = True


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def transport():
    """Fake transport serving the nav and fingerprint endpoints"""
    fake = FakeTransport()
    fake.json(NAV_API_URL, NAV_PAYLOAD)
    fake.json(FINGERPRINT_API_URL, FINGERPRINT_PAYLOAD)
    return fake


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(transport, clock):
    """Anonymous client wired to the fake transport"""
    return BiliAPIClient(transport=transport, clock=clock)


@pytest.fixture
def logged_in_client(transport, clock):
    store = StaticCredentialStore(
        {"SESSDATA": "sess-token", "bili_jct": "csrf-token", "DedeUserID": "42"}
    )
    return BiliAPIClient(credential_store=store, transport=transport, clock=clock)


@pytest.fixture
def play_payload():
    """Playurl response with every kind of stream present"""
    return {
        "code": 0,
        "message": "0",
        "data": {
            "quality": 80,
            "format": "flv",
            "timelength": 215000,
            "accept_description": ["高清 1080P", "高清 720P"],
            "accept_quality": [80, 64],
            "dash": {
                "video": [
                    {
                        "id": 80,
                        "baseUrl": "https://upos.example/v80.m4s",
                        "backupUrl": ["https://backup.example/v80.m4s"],
                        "bandwidth": 1200000,
                        "mimeType": "video/mp4",
                        "codecs": "avc1.640032",
                        "width": 1920,
                        "height": 1080,
                        "frameRate": "29.970",
                        "codecid": 7,
                    },
                    {
                        "id": 64,
                        "base_url": "https://upos.example/v64.m4s",
                        "backup_url": [],
                        "bandwidth": 600000,
                        "mime_type": "video/mp4",
                        "codecs": "avc1.640028",
                        "width": 1280,
                        "height": 720,
                        "frame_rate": "29.970",
                        "codecid": 7,
                    },
                ],
                "audio": [
                    {
                        "id": 30280,
                        "baseUrl": "https://upos.example/a30280.m4s",
                        "bandwidth": 40000,
                        "mimeType": "audio/mp4",
                        "codecs": "mp4a.40.2",
                    },
                    {
                        "id": 30216,
                        "base_url": "https://upos.example/a30216.m4s",
                        "bandwidth": 8000,
                        "mime_type": "",
                        "codecs": "mp4a.40.2",
                    },
                    {"id": 30232, "baseUrl": "", "bandwidth": 16000},
                ],
                "dolby": {
                    "type": 1,
                    "audio": [
                        {
                            "id": 30250,
                            "baseUrl": "https://upos.example/a30250.m4s",
                            "bandwidth": 56000,
                            "mimeType": "",
                            "codecs": "ec-3",
                        }
                    ],
                },
                "flac": {
                    "display": True,
                    "audio": {
                        "id": 30251,
                        "baseUrl": "https://upos.example/a30251.m4s",
                        "bandwidth": 115000,
                        "codecs": "fLaC",
                    },
                },
            },
        },
    }

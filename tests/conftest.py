"""Shared pytest fixtures for mattersplunk tests."""
from __future__ import annotations

from typing import Any

import pytest

from mattersplunk.errors import AuthenticationError
from mattersplunk.splunk.base import Post
from mattersplunk.splunk.splunk import Splunk
from mattersplunk.store.alerts import AlertStore
from mattersplunk.store.kvstore import KVStore
from mattersplunk.store.users import SplunkUser, UserStore

SERVER = "https://splunk.example.com:8089"


class MemoryBackend:
    """Dict-backed KVBackend. ``fail_on`` maps an operation name to the
    exception it should raise for keys containing ``fail_key``."""

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.fail_on: dict[str, Exception] = {}
        self.fail_key = ""

    def _maybe_fail(self, op: str, key: str) -> None:
        if op in self.fail_on and self.fail_key in key:
            raise self.fail_on[op]

    def get(self, key: str) -> bytes | None:
        self._maybe_fail("get", key)
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._maybe_fail("set", key)
        self.data[key] = value

    def delete(self, key: str) -> None:
        self._maybe_fail("delete", key)
        self.data.pop(key, None)


class StubClient:
    """Stands in for SplunkClient.

    ``tokens`` maps a token to the username Splunk reports for it; unknown
    tokens fail authentication.
    """

    def __init__(self, tokens: dict[str, str] | None = None) -> None:
        self.tokens = tokens or {}
        self.checked: list[SplunkUser] = []
        self.results: list[dict[str, Any]] = []
        self.indexes: list[str] = []

    def current_username(self, user: SplunkUser) -> str:
        self.checked.append(user)
        name = self.tokens.get(user.token, "")
        if not name:
            raise AuthenticationError("authorization")
        return name

    def search(self, user: SplunkUser, query: str) -> list[dict[str, Any]]:
        return self.results

    def list_indexes(self, user: SplunkUser) -> list[str]:
        return self.indexes


class RecordingAPI:
    def __init__(self) -> None:
        self.posts: list[Post] = []

    def create_post(self, post: Post) -> Post:
        self.posts.append(post)
        return post


@pytest.fixture()
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture()
def kv(backend: MemoryBackend) -> KVStore:
    return KVStore(backend)


@pytest.fixture()
def users(kv: KVStore) -> UserStore:
    return UserStore(kv, prefix="test")


@pytest.fixture()
def alert_store(kv: KVStore) -> AlertStore:
    return AlertStore(kv, prefix="test")


@pytest.fixture()
def client() -> StubClient:
    return StubClient({"tok-1": "u1", "tok-2": "u2"})


@pytest.fixture()
def api() -> RecordingAPI:
    return RecordingAPI()


@pytest.fixture()
def sp(api: RecordingAPI, users: UserStore, alert_store: AlertStore, client: StubClient) -> Splunk:
    return Splunk(api, users, alert_store, client)  # type: ignore[arg-type]

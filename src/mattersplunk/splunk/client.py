"""Splunk REST client.

Every call is a single synchronous round trip authenticated with the
user's token (``Authorization: Bearer <token>``) and bounded by an explicit
timeout. There are no retries.
"""
from __future__ import annotations

import http.client
import json
import logging
import urllib.parse
import urllib.request
import xml.etree.ElementTree as ET
from typing import Any

from ..errors import AuthenticationError, SplunkRequestError
from ..store.users import SplunkUser

logger = logging.getLogger(__name__)

CURRENT_CONTEXT_PATH = "/services/authentication/current-context"
EXPORT_PATH = "/services/search/jobs/export"
INDEXES_PATH = "/services/data/indexes"

LogResults = list[dict[str, Any]]


def _local_name(tag: str) -> str:
    """Strip the ``{namespace}`` part ElementTree puts in front of tags."""
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if _local_name(child.tag) == name]


def parse_current_username(body: bytes) -> str:
    """Extract the username from a current-context Atom feed.

    The value sits at ``feed/entry/content/dict/key[@name="username"]``
    (``s:dict`` and ``s:key`` are in Splunk's REST namespace). When several
    entries carry it, the last one wins.
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise AuthenticationError(f"authorization: unreadable current-context response: {exc}") from exc

    username = ""
    for entry in _children(root, "entry"):
        for content in _children(entry, "content"):
            for data in _children(content, "dict"):
                for key in _children(data, "key"):
                    if key.get("name") == "username":
                        username = (key.text or "").strip()

    if not username:
        raise AuthenticationError("authorization: Splunk did not report a username")
    return username


def parse_export_line(line: str) -> dict[str, Any] | None:
    """Return the ``result`` object of one export line, or None to skip it."""
    line = line.strip()
    if not line:
        return None
    try:
        row = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(row, dict):
        return None
    result = row.get("result")
    return result if isinstance(result, dict) else None


class SplunkClient:
    """Thin urllib wrapper around the handful of Splunk endpoints we use.

    Args:
        timeout:  Seconds to wait for each request (default: 10).
    """

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = timeout

    def do_request(
        self,
        user: SplunkUser,
        method: str,
        path: str,
        body: bytes | None = None,
        params: dict[str, str] | None = None,
    ) -> bytes:
        """Issue one request against user.server and return the raw body.

        Raises SplunkRequestError on connection failures, malformed server
        URLs, truncated replies and non-2xx replies.
        """
        url = user.server.rstrip("/") + path
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"
        headers = {"Authorization": f"Bearer {user.token}"}
        if body is not None:
            headers["Content-Type"] = "application/x-www-form-urlencoded"

        logger.debug("Splunk %s %s", method, url)
        try:
            req = urllib.request.Request(url, data=body, headers=headers, method=method)
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                return resp.read()
        except (OSError, ValueError, http.client.HTTPException) as exc:
            raise SplunkRequestError(f"{method} {path} failed: {exc}") from exc

    def current_username(self, user: SplunkUser) -> str:
        """Ask Splunk who user.token belongs to.

        Raises AuthenticationError if the request fails or no username
        comes back.
        """
        try:
            body = self.do_request(user, "GET", CURRENT_CONTEXT_PATH)
        except SplunkRequestError as exc:
            raise AuthenticationError(f"authorization: {exc}") from exc
        return parse_current_username(body)

    def search(self, user: SplunkUser, query: str) -> LogResults:
        """Run query as a streaming export search and return its result rows."""
        query = query.strip()
        if not query.startswith(("search ", "|")):
            query = f"search {query}"
        form = urllib.parse.urlencode({"search": query, "output_mode": "json"}).encode()
        body = self.do_request(user, "POST", EXPORT_PATH, body=form)

        results: LogResults = []
        for line in body.decode("utf-8", errors="replace").splitlines():
            result = parse_export_line(line)
            if result is not None:
                results.append(result)
        logger.debug("Search %r returned %d results", query, len(results))
        return results

    def list_indexes(self, user: SplunkUser) -> list[str]:
        """Return the names of the indexes visible to user."""
        body = self.do_request(user, "GET", INDEXES_PATH, params={"output_mode": "json", "count": "0"})
        try:
            data = json.loads(body)
        except json.JSONDecodeError as exc:
            raise SplunkRequestError(f"GET {INDEXES_PATH} returned invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise SplunkRequestError(f"GET {INDEXES_PATH} returned unexpected payload")
        return [entry["name"] for entry in data.get("entry", []) if "name" in entry]

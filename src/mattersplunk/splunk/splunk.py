"""Splunk business logic: session identity, alert relay and log search.

A ``Splunk`` object is built per host invocation (one slash command, one
webhook call). It owns the session, the in-memory "who is acting now"
identity, so two invocations never share it. The object does no locking
of its own.

Session states:

    Unauthenticated --login_user / sync_user--> Authenticated
    Authenticated   --logout_user / failed login_user--> Unauthenticated

A successful login always replaces the whole session identity.
"""
from __future__ import annotations

import logging

from ..config import settings
from ..errors import (
    AuthenticationError,
    InvalidInputError,
    NotAuthenticatedError,
    NotFoundError,
    SplunkPluginError,
)
from ..store.alerts import AlertStore
from ..store.users import SplunkUser, UserStore
from .base import AlertActionPayload, PluginAPI, Post
from .client import LogResults, SplunkClient

logger = logging.getLogger(__name__)


def extract_user_info(login_spec: str) -> tuple[str, str]:
    """Split ``username`` or ``username/token`` into (username, token)."""
    if not login_spec:
        raise InvalidInputError(
            "Please provide username and token like so: username/token. "
            "You can use the username only if already authenticated"
        )
    parts = login_spec.split("/")
    if len(parts) > 2:
        raise InvalidInputError("Expected <username> or <username>/<token>")
    username = parts[0]
    token = parts[1] if len(parts) == 2 else ""
    return username, token


class Splunk:
    """Business logic behind the slash command and the alert webhook.

    Args:
        api:     Host capability interface used to publish posts.
        users:   Durable credential store.
        alerts:  Durable alert subscription store.
        client:  Splunk REST client (default: one using settings.http_timeout).
    """

    def __init__(
        self,
        api: PluginAPI,
        users: UserStore,
        alerts: AlertStore,
        client: SplunkClient | None = None,
    ) -> None:
        self._api = api
        self._users = users
        self._alerts = alerts
        self._client = client if client is not None else SplunkClient(timeout=settings.http_timeout)
        self._session = SplunkUser()
        self._bot_user_id = ""

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def user(self) -> SplunkUser:
        """Return the session identity (empty when unauthenticated)."""
        return self._session

    def _require_user(self) -> SplunkUser:
        if not self._session.authenticated:
            raise NotAuthenticatedError("Not logged in to Splunk. Use login first")
        return self._session

    def sync_user(self, mattermost_user_id: str) -> None:
        """Load the stored current user into the session."""
        self._session = self._users.current_user(mattermost_user_id)

    def login_user(self, mattermost_user_id: str, server: str, login_spec: str) -> None:
        """Authenticate against Splunk and make the result the session identity.

        login_spec is either ``username``, reusing the token stored for that
        username, or ``username/token`` for a credential not seen before.
        The token is always checked against Splunk before anything is kept.
        """
        username, token = extract_user_info(login_spec)

        is_new = False
        try:
            candidate = self._users.user(mattermost_user_id, server, username)
        except NotFoundError:
            if not token:
                raise InvalidInputError("The token is empty to authenticate a new user") from None
            # username is filled in from Splunk's answer below
            candidate = SplunkUser(server=server, token=token)
            is_new = True

        try:
            verified = self._client.current_username(candidate)
        except AuthenticationError:
            self._session = SplunkUser()
            logger.warning("Splunk rejected login on %s for %s", server, mattermost_user_id)
            raise

        self._session = candidate.model_copy(update={"username": verified})
        if is_new:
            self._users.register_user(mattermost_user_id, self._session)
        else:
            self._users.change_current_user(mattermost_user_id, verified, server)
        logger.info("%s logged in to %s as %r", mattermost_user_id, server, verified)

    def logout_user(self, mattermost_user_id: str) -> None:
        """Forget the session identity and its stored credential.

        Clearing the current-user pointer is best effort; a failure deleting
        the credential is raised after the session has been cleared.
        Without a session it raises NotAuthenticatedError and stored state
        is left as is; call sync_user first.
        """
        user = self._require_user()
        try:
            self._users.change_current_user(mattermost_user_id, "")
        except SplunkPluginError as exc:
            logger.warning("Failed to clear current Splunk user for %s: %s", mattermost_user_id, exc)

        try:
            self._users.delete_user(mattermost_user_id, user.server, user.username)
        finally:
            self._session = SplunkUser()

    # ------------------------------------------------------------------
    # Bot user
    # ------------------------------------------------------------------

    def add_bot_user(self, bot_user_id: str) -> None:
        self._bot_user_id = bot_user_id

    def bot_user(self) -> str:
        return self._bot_user_id

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    def add_alert(self, channel_id: str, alert_id: str) -> None:
        self._alerts.add_alert(channel_id, alert_id)

    def list_alerts(self, channel_id: str) -> list[str]:
        return self._alerts.list_alerts(channel_id)

    def delete_alert(self, channel_id: str, alert_id: str) -> None:
        self._alerts.delete_alert(channel_id, alert_id)

    def notify(self, alert_id: str, payload: AlertActionPayload) -> None:
        """Post a fired alert into the channel subscribed to alert_id."""
        channel_id = self._alerts.channel_for_alert(alert_id)
        message = f"Splunk alert {payload.search_name or alert_id!r} fired"
        if payload.results_link:
            message += f": {payload.results_link}"
        self._api.create_post(Post(channel_id=channel_id, user_id=self._bot_user_id, message=message))
        logger.info("Relayed alert %s (sid=%s) to channel %s", alert_id, payload.sid, channel_id)

    # ------------------------------------------------------------------
    # Logs
    # ------------------------------------------------------------------

    def logs(self, query: str) -> LogResults:
        """Run a search as the session identity and return its result rows."""
        user = self._require_user()
        if not query.strip():
            raise InvalidInputError("Search query must not be empty")
        return self._client.search(user, query)

    def list_logs(self) -> list[str]:
        """Return the index names the session identity can search."""
        return self._client.list_indexes(self._require_user())

"""Durable per-Mattermost-user Splunk credentials.

Two kinds of record live under separate key namespaces:

    {prefix}:user:{mm_user_id}{server}{username}   -> SplunkUser
    {prefix}:current:{mm_user_id}                  -> CurrentUserPointer

A Mattermost user can hold credentials for several Splunk accounts; the
pointer says which one is active. Writes that touch both namespaces
(``register_user``) are two separate backend calls, so a crash in between
can leave a record that nothing points at. Nothing here repairs that.
"""
from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field

from ..errors import NotFoundError
from .codec import load_value, store_value
from .kvstore import KVStore, make_key

logger = logging.getLogger(__name__)


class SplunkUser(BaseModel):
    """One stored Splunk credential binding.

    Attributes:
        server:    Splunk base URL the token is valid for.
        username:  Splunk username, as reported by Splunk itself.
        token:     Splunk authentication token. Hidden from repr.
    """

    model_config = ConfigDict(frozen=True)

    server: str = ""
    username: str = ""
    token: str = Field(default="", repr=False)

    @property
    def authenticated(self) -> bool:
        """A record without a username is never a valid identity."""
        return bool(self.username)


class CurrentUserPointer(BaseModel):
    """Which stored SplunkUser is active for a Mattermost user."""

    server: str = ""
    username: str = ""


class UserStore:
    """CRUD over SplunkUser records keyed by (mm user, server, username).

    Usage::

        users = UserStore(KVStore(RedisBackend()))
        users.register_user("mm-id", SplunkUser(server=url, username="admin", token=t))
        users.current_user("mm-id").username  # "admin"
    """

    def __init__(self, store: KVStore, prefix: str = "mattersplunk") -> None:
        self._store = store
        self._prefix = prefix

    def _user_key(self, mattermost_user_id: str, server: str, username: str) -> str:
        return make_key(self._prefix, "user", mattermost_user_id, server, username)

    def _current_key(self, mattermost_user_id: str) -> str:
        return make_key(self._prefix, "current", mattermost_user_id)

    def current_user(self, mattermost_user_id: str) -> SplunkUser:
        """Return the active SplunkUser for a Mattermost user.

        Raises NotFoundError when no pointer exists, the pointer was cleared
        on logout, or the record it points at is gone.
        """
        pointer = load_value(self._store, self._current_key(mattermost_user_id), CurrentUserPointer)
        if not pointer.username:
            raise NotFoundError(f"no current Splunk user for {mattermost_user_id!r}")
        return self.user(mattermost_user_id, pointer.server, pointer.username)

    def user(self, mattermost_user_id: str, server: str, username: str) -> SplunkUser:
        """Return the stored SplunkUser for the composite identity."""
        return load_value(self._store, self._user_key(mattermost_user_id, server, username), SplunkUser)

    def register_user(self, mattermost_user_id: str, user: SplunkUser) -> None:
        """Store user and make it the current one."""
        store_value(self._store, self._user_key(mattermost_user_id, user.server, user.username), user)
        self.change_current_user(mattermost_user_id, user.username, user.server)
        logger.info("Registered Splunk user %r on %s for %s", user.username, user.server, mattermost_user_id)

    def change_current_user(self, mattermost_user_id: str, username: str, server: str = "") -> None:
        """Point the Mattermost user at another stored record.

        The target record is not checked for existence; an empty username
        clears the pointer.
        """
        pointer = CurrentUserPointer(server=server, username=username)
        store_value(self._store, self._current_key(mattermost_user_id), pointer)

    def delete_user(self, mattermost_user_id: str, server: str, username: str) -> None:
        """Remove a stored record. The current-user pointer is left as is."""
        self._store.delete(self._user_key(mattermost_user_id, server, username))
        logger.info("Deleted Splunk user %r on %s for %s", username, server, mattermost_user_id)

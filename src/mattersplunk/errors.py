"""Error taxonomy shared by the store, the Splunk client and the session layer.

Every failure surfaced to a caller (slash-command handler, webhook handler,
CLI) is one of these types, so callers can map each kind to a single
user-facing message::

    try:
        sp.login_user(user_id, server, "admin/abc123")
    except InvalidInputError as exc:
        reply(str(exc))
"""
from __future__ import annotations


class SplunkPluginError(Exception):
    """Base class for all mattersplunk errors."""


class NotFoundError(SplunkPluginError):
    """No value is stored under the requested key or identity."""


class BackendError(SplunkPluginError):
    """The key-value backend failed to load, store or delete a value."""


class SerializationError(SplunkPluginError):
    """A value could not be encoded to or decoded from its stored bytes."""


class InvalidInputError(SplunkPluginError):
    """A caller-supplied argument (e.g. the login argument) is malformed."""


class AuthenticationError(SplunkPluginError):
    """Splunk rejected the credential or did not report who it belongs to."""


class NotAuthenticatedError(SplunkPluginError):
    """The operation needs an authenticated Splunk session and none is active."""


class SplunkRequestError(SplunkPluginError):
    """A Splunk REST call failed or returned a body that could not be parsed."""

"""Channel subscriptions for Splunk webhook alerts.

Each channel keeps the list of alert IDs posted into it, and each alert ID
maps back to its channel so an incoming webhook can be routed:

    {prefix}:alerts:{channel_id}  -> list[str]
    {prefix}:alert:{alert_id}     -> str (channel id)
"""
from __future__ import annotations

import logging

from ..errors import InvalidInputError, NotFoundError
from .codec import load_value, store_value
from .kvstore import KVStore, make_key

logger = logging.getLogger(__name__)


class AlertStore:
    def __init__(self, store: KVStore, prefix: str = "mattersplunk") -> None:
        self._store = store
        self._prefix = prefix

    def _channel_key(self, channel_id: str) -> str:
        return make_key(self._prefix, "alerts", channel_id)

    def _alert_key(self, alert_id: str) -> str:
        return make_key(self._prefix, "alert", alert_id)

    def add_alert(self, channel_id: str, alert_id: str) -> None:
        """Subscribe channel_id to alert_id. Adding twice is a no-op.

        An alert routes to a single channel; binding it to a second one
        raises InvalidInputError.
        """
        try:
            bound = self.channel_for_alert(alert_id)
        except NotFoundError:
            bound = channel_id
        if bound != channel_id:
            raise InvalidInputError(f"alert {alert_id!r} is already subscribed in channel {bound!r}")

        alerts = self.list_alerts(channel_id)
        if alert_id not in alerts:
            alerts.append(alert_id)
            store_value(self._store, self._channel_key(channel_id), alerts)
        store_value(self._store, self._alert_key(alert_id), channel_id)
        logger.info("Alert %s subscribed in channel %s", alert_id, channel_id)

    def list_alerts(self, channel_id: str) -> list[str]:
        """Return the alert IDs subscribed in channel_id, oldest first."""
        try:
            return load_value(self._store, self._channel_key(channel_id), list[str])
        except NotFoundError:
            return []

    def delete_alert(self, channel_id: str, alert_id: str) -> None:
        alerts = self.list_alerts(channel_id)
        if alert_id not in alerts:
            raise NotFoundError(f"alert {alert_id!r} is not subscribed in channel {channel_id!r}")
        alerts.remove(alert_id)
        store_value(self._store, self._channel_key(channel_id), alerts)
        try:
            bound = self.channel_for_alert(alert_id)
        except NotFoundError:
            bound = ""
        # only drop the route when this channel owns it
        if bound == channel_id:
            self._store.delete(self._alert_key(alert_id))
        logger.info("Alert %s removed from channel %s", alert_id, channel_id)

    def channel_for_alert(self, alert_id: str) -> str:
        """Return the channel subscribed to alert_id, or raise NotFoundError."""
        return load_value(self._store, self._alert_key(alert_id), str)

import logging
from collections import namedtuple

from flask import current_app

logger = logging.getLogger(__name__)

# Shape of a realtime change: which table, INSERT/UPDATE/DELETE, and the row
# before/after as plain dicts (old_row is None for inserts, new_row for deletes).
ChangeEvent = namedtuple("ChangeEvent", ["table", "operation", "old_row", "new_row"])

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


class ChangeFeed:
    """
    In-process stand-in for the realtime transport. Delivery is at-most-once:
    a subscriber that raises is logged and skipped, never retried.
    """

    def __init__(self):
        self._subscribers = []

    def subscribe(self, handler):
        self._subscribers.append(handler)

        def unsubscribe():
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return unsubscribe

    def publish(self, event):
        for handler in list(self._subscribers):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Change subscriber failed for %s %s", event.operation, event.table
                )


def get_change_feed():
    return current_app.extensions["change_feed"]

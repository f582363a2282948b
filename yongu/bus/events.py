"""
Event Bus
The session controller, email composer and job board announce what they did
here; anything interested (the CLI, tests) subscribes by event name.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], None]


def _handler_name(handler) -> str:
    return getattr(handler, '__name__', repr(handler))


class EventBus:
    """In-process publish/subscribe keyed by event name."""

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = {}

    def on(self, event_name: str, handler: Handler):
        """Subscribe handler; it receives the event payload dict."""
        self._handlers.setdefault(event_name, []).append(handler)
        logger.debug(f"Subscribed {_handler_name(handler)} to '{event_name}'")

    def emit(self, event_name: str, event_data: Optional[Dict[str, Any]] = None):
        """
        Deliver event_data (empty dict when omitted) to every subscriber in
        registration order. A subscriber that raises is logged and skipped.
        """
        payload = event_data if event_data is not None else {}
        logger.debug(f"Event '{event_name}' keys={sorted(payload)}")

        for handler in list(self._handlers.get(event_name, [])):
            try:
                handler(payload)
            except Exception as e:
                logger.error(f"Subscriber {_handler_name(handler)} failed on '{event_name}': {e}")

    def clear(self):
        """Drop every subscription."""
        self._handlers.clear()


bus = EventBus()


# =============================================================================
# EVENT NAMES
# =============================================================================

# CRM session
EVENT_CONTACT_SAVED = 'contact_saved'
EVENT_CONTACT_DELETED = 'contact_deleted'
EVENT_LOG_ADDED = 'log_added'
EVENT_LOG_REMOVED = 'log_removed'
EVENT_PROFILE_SAVED = 'profile_saved'
EVENT_CONTACTS_IMPORTED = 'contacts_imported'
EVENT_DOCUMENT_SAVED = 'document_saved'
EVENT_SAVE_FAILED = 'save_failed'

# Outreach drafts
EVENT_DRAFT_READY = 'draft_ready'

# Job board
EVENT_JOBS_FETCHED = 'jobs_fetched'

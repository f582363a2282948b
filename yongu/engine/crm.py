"""
CRM Session - Application State Controller
Owns the in-memory document and is the only writer of persisted state.
Every mutation is applied in memory, then the whole document is saved through
the active DocumentStore. Announces changes on the event bus.
"""

import dataclasses
import logging
import threading
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Union

from yongu.bus.events import (
    bus, EVENT_CONTACT_SAVED, EVENT_CONTACT_DELETED, EVENT_LOG_ADDED, EVENT_LOG_REMOVED,
    EVENT_PROFILE_SAVED, EVENT_CONTACTS_IMPORTED, EVENT_DOCUMENT_SAVED, EVENT_SAVE_FAILED,
)
from yongu.engine.store import DocumentStore
from yongu.errors import SaveInProgressError, YonguError
from yongu.logging_config import log_call
from yongu.models import (
    ClientStatus, Contact, ContactLog, Document, UserProfile,
    DEFAULT_LOG_TYPE, new_id, now_iso, parse_timestamp, to_timestamp,
)

logger = logging.getLogger(__name__)

ALL = 'All'

DateLike = Union[str, date, datetime, None]


def _as_timestamp(value: DateLike) -> str:
    """Document timestamp for a datetime, a calendar date (midnight UTC) or an ISO string."""
    if value is None:
        return now_iso()
    if isinstance(value, datetime):
        return to_timestamp(value)
    if isinstance(value, date):
        return to_timestamp(datetime(value.year, value.month, value.day, tzinfo=timezone.utc))
    moment = parse_timestamp(value)
    if moment is None:
        raise ValueError(f"Invalid date: {value!r}")
    return to_timestamp(moment)


def _dedupe(tags: List[str]) -> List[str]:
    seen = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class CRMSession:
    """
    In-memory document plus the store it came from.

    Saves are serialized: a save requested while another is still running
    raises SaveInProgressError instead of interleaving writes.
    """

    def __init__(self, store: DocumentStore, document: Document):
        self.store = store
        self.document = document
        self._save_lock = threading.Lock()

    @classmethod
    @log_call
    def start(cls, store: DocumentStore) -> 'CRMSession':
        """Materialize the document through the store and wrap it in a session."""
        document = store.start()
        logger.info(f"Session started on {store.label} store with {len(document.clients)} contacts")
        return cls(store, document)

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def contacts(self) -> List[Contact]:
        return self.document.clients

    @property
    def profile(self) -> Optional[UserProfile]:
        return self.document.profile

    @property
    def is_saving(self) -> bool:
        return self._save_lock.locked()

    @property
    def needs_profile(self) -> bool:
        """First run: no profile has been set yet."""
        return self.document.profile is None

    def get_contact(self, contact_id: str) -> Optional[Contact]:
        for contact in self.document.clients:
            if contact.id == contact_id:
                return contact
        logger.debug(f"get_contact: contact_id={contact_id} not found")
        return None

    def find_contact(self, id_or_prefix: str) -> Optional[Contact]:
        """Exact id, or an id prefix that matches exactly one contact."""
        exact = self.get_contact(id_or_prefix)
        if exact is not None or not id_or_prefix:
            return exact
        matches = [c for c in self.document.clients if c.id.startswith(id_or_prefix)]
        return matches[0] if len(matches) == 1 else None

    def _require_contact(self, contact_id: str) -> Contact:
        contact = self.get_contact(contact_id)
        if contact is None:
            raise KeyError(f"Contact {contact_id} not found")
        return contact

    def app_title(self) -> str:
        if self.profile and self.profile.industry:
            industry_short = self.profile.industry.split('&')[0].strip()
            return f"{industry_short} Yongu CM"
        return "Yongu CM"

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def save(self) -> None:
        """Stamp lastUpdated and write the whole document. Last write wins."""
        if not self._save_lock.acquire(blocking=False):
            raise SaveInProgressError("A save is already in progress")
        try:
            self.document.last_updated = now_iso()
            self.store.save(self.document)
        except YonguError as e:
            logger.error(f"Save failed on {self.store.label} store: {e}")
            bus.emit(EVENT_SAVE_FAILED, {'store': self.store.label, 'error': str(e)})
            raise
        finally:
            self._save_lock.release()
        bus.emit(EVENT_DOCUMENT_SAVED, {
            'store': self.store.label,
            'contacts': len(self.document.clients),
            'last_updated': self.document.last_updated,
        })

    # =========================================================================
    # CONTACT OPERATIONS
    # =========================================================================

    @log_call
    def save_contact(self, contact: Contact) -> Contact:
        """
        Insert a new contact or replace an existing one by id.

        statusUpdatedAt is refreshed only when the status actually changes
        (or the contact is new); other edits keep the previous value.
        Returns the stored contact.
        """
        if not contact.name.strip() or not contact.company.strip():
            raise ValueError("Name and company are required")

        stored = dataclasses.replace(contact, tags=_dedupe(contact.tags), logs=list(contact.logs))
        existing = self.get_contact(stored.id) if stored.id else None
        if not stored.id:
            stored.id = new_id()

        if existing is None or existing.status != stored.status:
            stored.status_updated_at = now_iso()
        else:
            stored.status_updated_at = existing.status_updated_at or now_iso()

        if existing is None:
            self.document.clients.append(stored)
            logger.info(f"Created contact {stored.id}: {stored.name}")
        else:
            index = next(i for i, c in enumerate(self.document.clients) if c is existing)
            self.document.clients[index] = stored
            logger.info(f"Updated contact {stored.id}: {stored.name}")

        self.save()
        bus.emit(EVENT_CONTACT_SAVED, {'contact_id': stored.id, 'created': existing is None})
        return stored

    @log_call
    def delete_contact(self, contact_id: str) -> bool:
        """Remove a contact for good. Returns False if it does not exist."""
        before = len(self.document.clients)
        self.document.clients = [c for c in self.document.clients if c.id != contact_id]
        if len(self.document.clients) == before:
            return False

        logger.info(f"Deleted contact {contact_id}")
        self.save()
        bus.emit(EVENT_CONTACT_DELETED, {'contact_id': contact_id})
        return True

    @log_call
    def add_log(self, contact_id: str, notes: str, log_type: str = DEFAULT_LOG_TYPE,
                when: DateLike = None) -> ContactLog:
        """
        Prepend an interaction log (newest first).
        lastContactDate only moves forward: an older log never regresses it.
        """
        if not notes or not notes.strip():
            raise ValueError("Log notes are required")

        contact = self._require_contact(contact_id)
        entry = ContactLog(id=new_id(), date=_as_timestamp(when), type=log_type, notes=notes)
        contact.logs.insert(0, entry)

        current = parse_timestamp(contact.last_contact_date)
        if current is None or parse_timestamp(entry.date) > current:
            contact.last_contact_date = entry.date

        self.save()
        bus.emit(EVENT_LOG_ADDED, {'contact_id': contact_id, 'log_id': entry.id})
        return entry

    @log_call
    def remove_log(self, contact_id: str, log_id: str) -> bool:
        contact = self._require_contact(contact_id)
        remaining = [log for log in contact.logs if log.id != log_id]
        if len(remaining) == len(contact.logs):
            return False

        contact.logs = remaining
        self.save()
        bus.emit(EVENT_LOG_REMOVED, {'contact_id': contact_id, 'log_id': log_id})
        return True

    @log_call
    def add_tag(self, contact_id: str, tag: str) -> bool:
        """Add a tag unless already present. Returns True if the tags changed."""
        tag = tag.strip()
        if not tag:
            raise ValueError("Tag must not be empty")
        contact = self._require_contact(contact_id)
        if tag in contact.tags:
            return False
        contact.tags.append(tag)
        self.save()
        bus.emit(EVENT_CONTACT_SAVED, {'contact_id': contact_id, 'created': False})
        return True

    @log_call
    def remove_tag(self, contact_id: str, tag: str) -> bool:
        contact = self._require_contact(contact_id)
        if tag not in contact.tags:
            return False
        contact.tags = [t for t in contact.tags if t != tag]
        self.save()
        bus.emit(EVENT_CONTACT_SAVED, {'contact_id': contact_id, 'created': False})
        return True

    @log_call
    def import_contacts(self, contacts: List[Contact]) -> int:
        """Append imported contacts after the existing ones."""
        self.document.clients.extend(contacts)
        self.save()
        bus.emit(EVENT_CONTACTS_IMPORTED, {'count': len(contacts)})
        return len(contacts)

    @log_call
    def set_profile(self, name: str, industry: str) -> UserProfile:
        extra = dict(self.document.profile.extra) if self.document.profile else {}
        profile = UserProfile(name=name.strip(), industry=industry.strip(), extra=extra)
        if not profile.name:
            raise ValueError("Profile name is required")
        self.document.profile = profile
        self.save()
        bus.emit(EVENT_PROFILE_SAVED, {'name': profile.name})
        return profile

    # =========================================================================
    # QUERIES
    # =========================================================================

    def search(self, term: str = '', continent: Optional[str] = None,
               sector: Optional[str] = None) -> List[Contact]:
        """Case-insensitive match on name, company or any tag; 'All' disables a filter."""
        needle = (term or '').lower()
        results = []
        for c in self.document.clients:
            matches_search = (
                needle in c.name.lower()
                or needle in c.company.lower()
                or any(needle in t.lower() for t in c.tags)
            )
            matches_continent = continent in (None, ALL) or c.continent == continent
            matches_sector = sector in (None, ALL) or c.sector == sector
            if matches_search and matches_continent and matches_sector:
                results.append(c)
        logger.debug(f"search: {len(results)} results (term={term!r}, continent={continent}, sector={sector})")
        return results

    def _is_due(self, contact: Contact, now: datetime) -> bool:
        due = parse_timestamp(contact.next_follow_up_date)
        return due is not None and due <= now

    def due_follow_ups(self, now: Optional[datetime] = None,
                       limit: Optional[int] = None) -> List[Contact]:
        """Contacts whose next follow-up is due, most overdue first."""
        now = now or datetime.now(timezone.utc)
        due = [c for c in self.document.clients if self._is_due(c, now)]
        due.sort(key=lambda c: parse_timestamp(c.next_follow_up_date))
        return due[:limit] if limit else due

    def stats(self, now: Optional[datetime] = None) -> Dict[str, int]:
        now = now or datetime.now(timezone.utc)
        clients = self.document.clients
        return {
            'total': len(clients),
            'active': sum(1 for c in clients if c.status == ClientStatus.ACTIVE.value),
            'leads': sum(1 for c in clients if c.status == ClientStatus.NEW.value),
            'follow_ups': sum(1 for c in clients if self._is_due(c, now)),
        }

    def by_status(self) -> Dict[str, List[Contact]]:
        """Kanban columns in pipeline order; unknown statuses get their own column at the end."""
        board: Dict[str, List[Contact]] = {s.value: [] for s in ClientStatus}
        for c in self.document.clients:
            board.setdefault(c.status, []).append(c)
        return board

    def by_continent(self) -> Dict[str, List[Contact]]:
        groups: Dict[str, List[Contact]] = {}
        for c in self.document.clients:
            groups.setdefault(c.continent, []).append(c)
        return groups

    def pinned(self) -> List[Contact]:
        """Contacts with coordinates, i.e. the ones that get a map pin."""
        return [c for c in self.document.clients if c.lat is not None and c.lng is not None]

    @staticmethod
    def days_in_status(contact: Contact, now: Optional[datetime] = None) -> Optional[int]:
        since = parse_timestamp(contact.status_updated_at)
        if since is None:
            return None
        now = now or datetime.now(timezone.utc)
        return (now - since).days


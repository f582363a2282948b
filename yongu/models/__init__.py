"""
Data Models
Dataclasses for the persisted document. These are pure Python objects, no storage logic.

Field names are snake_case in Python and camelCase in the JSON document;
to_dict()/from_dict() translate between the two. Timestamps stay as the
ISO-8601 strings found in the document so a load/save cycle is lossless.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


# =============================================================================
# ENUMERATIONS
# =============================================================================

class ClientStatus(str, Enum):
    OLD = 'Old'
    NEW = 'New'
    CONTACTED = 'Contacted'
    NEGOTIATING = 'Negotiating'
    ACTIVE = 'Active'
    COMPLETED = 'Completed'
    ARCHIVED = 'Archived'


class IndustrySector(str, Enum):
    VFX_FILM = 'VFX (Film)'
    VFX_COMMERCIAL = 'VFX (Commercial)'
    ANIMATION = 'Animation'
    GAMES_REALTIME = 'Games/Realtime'
    AI_GEN = 'Generative AI'
    MOGRAPH = 'Motion Graphics'
    OTHER = 'Other'


class Continent(str, Enum):
    NORTH_AMERICA = 'North America'
    SOUTH_AMERICA = 'South America'
    EUROPE = 'Europe'
    ASIA = 'Asia'
    AFRICA = 'Africa'
    OCEANIA = 'Oceania'
    ANTARCTICA = 'Antarctica'


class LogType(str, Enum):
    EMAIL = 'Email'
    CALL = 'Call'
    MEETING = 'Meeting'
    SOCIAL = 'Social'


DEFAULT_STATUS = ClientStatus.NEW.value
DEFAULT_SECTOR = IndustrySector.OTHER.value
DEFAULT_CONTINENT = Continent.NORTH_AMERICA.value
DEFAULT_LOG_TYPE = LogType.EMAIL.value


def match_label(enum_cls, value: Optional[str]) -> Optional[str]:
    """Return the canonical label of enum_cls matching value (case-insensitive), else None."""
    if not value:
        return None
    wanted = value.strip().lower()
    for member in enum_cls:
        if member.value.lower() == wanted:
            return member.value
    return None


# =============================================================================
# TIMESTAMPS
# =============================================================================

def to_timestamp(moment: datetime) -> str:
    """Canonical document form: UTC, millisecond precision, 'Z' suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def now_iso() -> str:
    return to_timestamp(datetime.now(timezone.utc))


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a document timestamp into an aware datetime. Returns None if unparsable."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        moment = datetime.fromisoformat(text)
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def new_id() -> str:
    return str(uuid.uuid4())


# =============================================================================
# ENTITIES
# =============================================================================

@dataclass
class ContactLog:
    """Dated interaction record (email, call, meeting, social)."""
    id: str = ''
    date: str = ''
    type: str = DEFAULT_LOG_TYPE
    notes: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'date': self.date, 'type': self.type, 'notes': self.notes}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ContactLog':
        return cls(
            id=data.get('id', ''),
            date=data.get('date', ''),
            type=data.get('type', DEFAULT_LOG_TYPE),
            notes=data.get('notes', ''),
        )


# Python attribute -> document key, in document order
_CONTACT_KEYS = {
    'id': 'id',
    'name': 'name',
    'company': 'company',
    'role': 'role',
    'email': 'email',
    'phone': 'phone',
    'sector': 'sector',
    'status': 'status',
    'status_updated_at': 'statusUpdatedAt',
    'location': 'location',
    'continent': 'continent',
    'lat': 'lat',
    'lng': 'lng',
    'website': 'website',
    'last_contact_date': 'lastContactDate',
    'next_follow_up_date': 'nextFollowUpDate',
    'rate': 'rate',
    'notes': 'notes',
}


@dataclass
class Contact:
    """One tracked relationship (client, studio, lead)."""
    id: str = ''
    name: str = ''
    company: str = ''
    role: str = ''
    email: str = ''
    phone: Optional[str] = None
    sector: str = DEFAULT_SECTOR
    status: str = DEFAULT_STATUS
    status_updated_at: Optional[str] = None
    location: Optional[str] = None
    continent: str = DEFAULT_CONTINENT
    lat: Optional[float] = None
    lng: Optional[float] = None
    website: Optional[str] = None
    last_contact_date: Optional[str] = None
    next_follow_up_date: Optional[str] = None
    rate: Optional[str] = None
    notes: str = ''
    tags: List[str] = field(default_factory=list)
    logs: List[ContactLog] = field(default_factory=list)
    # Keys found in the document that this version does not know about
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for attr, key in _CONTACT_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        data['tags'] = list(self.tags)
        data['logs'] = [log.to_dict() for log in self.logs]
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Contact':
        """
        Lenient: missing keys take defaults and values are not type-checked.
        Logs that are not mappings are skipped.
        """
        kwargs = {}
        for attr, key in _CONTACT_KEYS.items():
            if key in data:
                kwargs[attr] = data[key]
        tags = data.get('tags')
        logs = data.get('logs')
        if not isinstance(tags, list):
            tags = []
        if not isinstance(logs, list):
            logs = []
        known = set(_CONTACT_KEYS.values()) | {'tags', 'logs'}
        return cls(
            **kwargs,
            tags=list(tags),
            logs=[ContactLog.from_dict(log) for log in logs if isinstance(log, dict)],
            extra={k: v for k, v in data.items() if k not in known},
        )


@dataclass
class UserProfile:
    """Owner of the document; absence signals first run."""
    name: str = ''
    industry: str = ''
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {'name': self.name, 'industry': self.industry}
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserProfile':
        return cls(
            name=data.get('name', ''),
            industry=data.get('industry', ''),
            extra={k: v for k, v in data.items() if k not in ('name', 'industry')},
        )


@dataclass
class Document:
    """The unit of persistence: contacts + profile + last save timestamp."""
    clients: List[Contact] = field(default_factory=list)
    profile: Optional[UserProfile] = None
    last_updated: str = field(default_factory=now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'clients': [c.to_dict() for c in self.clients],
            'profile': self.profile.to_dict() if self.profile else None,
            'lastUpdated': self.last_updated,
        }


@dataclass
class JobOffer:
    """A job posting returned by the job board search. Never persisted."""
    id: str = ''
    title: str = ''
    company: str = ''
    location: str = ''
    sector: str = DEFAULT_SECTOR
    type: str = 'Full-time'
    posted_date: str = ''
    description: str = ''
    url: str = ''
    continent: Optional[str] = None
    salary_range: Optional[str] = None
    source: Optional[str] = None

"""
CSV Codec - spreadsheet interchange for the contact list.

Export writes a fixed column order with every field quoted. Import is
tolerant of hand-edited sheets: columns are found by keyword substring
(first header containing the keyword wins, scanning left to right), so
reordered and renamed columns still land in the right field.

Not round-tripped: ids (re-minted), logs (always empty), continent (forced
to the default), time of day on dates.
"""

import logging
import re
from datetime import date
from typing import Dict, Iterable, List, Optional

import pandas as pd

from yongu.config import config
from yongu.errors import ImportEmptyError
from yongu.logging_config import log_call
from yongu.models import (
    ClientStatus, Contact, DEFAULT_CONTINENT, DEFAULT_SECTOR, DEFAULT_STATUS, IndustrySector,
    match_label, new_id, parse_timestamp, to_timestamp,
)

logger = logging.getLogger(__name__)

EXPORT_HEADERS = [
    "Name", "Company", "Role", "Status", "Sector",
    "Email", "Phone", "Location", "Last Contact",
    "Next Follow Up", "Rate", "Notes", "Tags",
]

# Contact field -> keyword searched for in the lowercased headers
HEADER_KEYWORDS = {
    'name': 'name',
    'company': 'company',
    'role': 'role',
    'status': 'status',
    'sector': 'sector',
    'email': 'email',
    'phone': 'phone',
    'location': 'location',
    'last_contact_date': 'last contact',
    'next_follow_up_date': 'next follow',
    'rate': 'rate',
    'notes': 'notes',
    'tags': 'tags',
}

UNKNOWN_COMPANY = 'Unknown'

# Fallback policy for enum-typed cells: blank -> default, known label (any case) ->
# canonical label, anything else -> kept as written. The last case is lenient on
# purpose and only logged.
ENUM_POLICIES = {
    'status': (ClientStatus, DEFAULT_STATUS),
    'sector': (IndustrySector, DEFAULT_SECTOR),
}


# =============================================================================
# EXPORT
# =============================================================================

def _quote(value) -> str:
    """Quote one field; embedded quotes are doubled. Empty → ""."""
    if value is None or value == '':
        return '""'
    return '"' + str(value).replace('"', '""') + '"'


def _format_date(value: Optional[str]) -> str:
    moment = parse_timestamp(value)
    return moment.strftime(config.CSV_DATE_FORMAT) if moment else ''


def _row(contact: Contact) -> List[str]:
    return [
        _quote(contact.name),
        _quote(contact.company),
        _quote(contact.role),
        _quote(contact.status),
        _quote(contact.sector),
        _quote(contact.email),
        _quote(contact.phone),
        _quote(contact.location),
        _quote(_format_date(contact.last_contact_date)),
        _quote(_format_date(contact.next_follow_up_date)),
        _quote(contact.rate),
        _quote(contact.notes),
        _quote(', '.join(contact.tags)),
    ]


@log_call
def export_csv(contacts: Iterable[Contact]) -> str:
    """Header row plus one fully quoted row per contact, newline separated."""
    lines = [','.join(EXPORT_HEADERS)]
    lines.extend(','.join(_row(c)) for c in contacts)
    return '\n'.join(lines)


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"yongu_export_{today.isoformat()}.csv"


# =============================================================================
# IMPORT
# =============================================================================

def split_csv_line(line: str) -> List[str]:
    """Split one CSV line, honouring quoted commas and doubled quotes."""
    fields = []
    current = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == '"':
            if i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == ',' and not in_quotes:
            fields.append(''.join(current))
            current = []
        else:
            current.append(char)
        i += 1
    fields.append(''.join(current))
    return fields


def find_column(headers: List[str], keyword: str) -> int:
    """Index of the first header containing keyword, or -1."""
    for index, header in enumerate(headers):
        if keyword in header:
            return index
    return -1


def _coerce_enum(field_name: str, raw: str) -> str:
    enum_cls, default = ENUM_POLICIES[field_name]
    if not raw:
        return default
    label = match_label(enum_cls, raw)
    if label:
        return label
    logger.warning(f"CSV {field_name} {raw!r} is not a known label, keeping it as written")
    return raw


def _parse_date(raw: str) -> Optional[str]:
    """Generic date parsing; anything unparsable becomes None."""
    if not raw:
        return None
    try:
        parsed = pd.to_datetime(raw, errors='coerce')
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        logger.debug(f"Unparsable CSV date {raw!r}, leaving it empty")
        return None
    return to_timestamp(parsed.to_pydatetime())


def _split_tags(raw: str) -> List[str]:
    return [tag.strip() for tag in raw.split(',') if tag.strip()]


@log_call
def parse_csv(text: str) -> List[Contact]:
    """
    Parse CSV text into new contacts.

    Rows with fewer than two fields or without a name are skipped. Returns an
    empty list when nothing usable is found.
    """
    lines = re.split(r'\r?\n', text)
    if len(lines) < 2:
        return []

    headers = [h.strip().lower() for h in split_csv_line(lines[0])]
    columns: Dict[str, int] = {f: find_column(headers, kw) for f, kw in HEADER_KEYWORDS.items()}
    logger.debug(f"CSV column mapping: {columns}")

    contacts = []
    skipped = 0
    for raw_line in lines[1:]:
        line = raw_line.strip()
        if not line:
            continue

        values = split_csv_line(line)
        if len(values) < 2:
            skipped += 1
            continue

        def cell(field_name: str) -> str:
            index = columns[field_name]
            if 0 <= index < len(values):
                return values[index].strip()
            return ''

        name = cell('name')
        if not name:
            skipped += 1
            continue

        tags = cell('tags')
        contacts.append(Contact(
            id=new_id(),
            name=name,
            company=cell('company') or UNKNOWN_COMPANY,
            role=cell('role'),
            status=_coerce_enum('status', cell('status')),
            sector=_coerce_enum('sector', cell('sector')),
            email=cell('email'),
            phone=cell('phone'),
            location=cell('location'),
            # The interchange format has no geo mapping
            continent=DEFAULT_CONTINENT,
            last_contact_date=_parse_date(cell('last_contact_date')),
            next_follow_up_date=_parse_date(cell('next_follow_up_date')),
            rate=cell('rate'),
            notes=cell('notes'),
            tags=_split_tags(tags) if tags else [],
            logs=[],
        ))

    logger.info(f"Parsed {len(contacts)} contacts from CSV ({skipped} rows skipped)")
    return contacts


def import_csv(text: str) -> List[Contact]:
    """parse_csv, but zero usable rows is an ImportEmptyError."""
    contacts = parse_csv(text)
    if not contacts:
        raise ImportEmptyError(
            "No valid clients found. Please check the CSV headers (Name, Company, Email, ...)."
        )
    return contacts

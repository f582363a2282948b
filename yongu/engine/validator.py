"""
Validator / Repairer
Turns arbitrary parsed JSON into a well-formed Document. Never raises.

It guards against structural corruption (non-object document, missing or
non-list clients, list fields of a contact that are not lists). Scalar contact
fields are not type-checked.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List

from yongu.models import Contact, Document, UserProfile, now_iso

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    VALID = 'valid'
    REPAIRED = 'repaired'
    DEFAULT = 'default'


@dataclass
class ValidationResult:
    """Tagged result of inspecting untrusted input."""
    outcome: Outcome
    document: Document
    repairs: List[str] = field(default_factory=list)


def empty_document() -> Document:
    """Zero-value document: no clients, no profile, stamped now."""
    return Document(clients=[], profile=None, last_updated=now_iso())


def _contact_shape_repairs(index: int, entry: dict) -> List[str]:
    """Parts of a contact that Contact.from_dict cannot carry over as stored."""
    repairs = []
    if 'tags' in entry and not isinstance(entry['tags'], list):
        repairs.append(f'clients[{index}].tags is not a list')
    logs = entry.get('logs')
    if 'logs' in entry and not isinstance(logs, list):
        repairs.append(f'clients[{index}].logs is not a list')
    elif isinstance(logs, list):
        repairs.extend(
            f'clients[{index}].logs[{i}] is not an object'
            for i, log in enumerate(logs) if not isinstance(log, dict)
        )
    return repairs


def inspect_document(raw: Any) -> ValidationResult:
    """
    Classify and repair untrusted input.

    DEFAULT  : raw is absent, not an object, or clients is not a list
    REPAIRED : usable, but profile, lastUpdated, a client entry or a
               client's tags/logs had to be fixed
    VALID    : passed through as-is
    """
    if not isinstance(raw, dict) or not isinstance(raw.get('clients'), list):
        logger.warning("Invalid data format detected, resetting to an empty document")
        return ValidationResult(Outcome.DEFAULT, empty_document(), ['document structure'])

    repairs = []

    clients = []
    for index, entry in enumerate(raw['clients']):
        if isinstance(entry, dict):
            repairs.extend(_contact_shape_repairs(index, entry))
            clients.append(Contact.from_dict(entry))
        else:
            repairs.append(f'clients[{index}] is not an object')

    profile = raw.get('profile')
    if isinstance(profile, dict):
        profile = UserProfile.from_dict(profile)
    else:
        if profile is not None:
            repairs.append('profile is not an object')
        profile = None

    last_updated = raw.get('lastUpdated')
    if not last_updated:
        repairs.append('lastUpdated missing')
        last_updated = now_iso()

    document = Document(clients=clients, profile=profile, last_updated=last_updated)

    if repairs:
        logger.warning(f"Document repaired: {', '.join(repairs)}")
        return ValidationResult(Outcome.REPAIRED, document, repairs)
    return ValidationResult(Outcome.VALID, document)


def validate(raw: Any) -> Document:
    """Return a usable Document for any input."""
    return inspect_document(raw).document

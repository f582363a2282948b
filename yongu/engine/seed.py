"""
Demo contacts written into every newly created document so the first run
has something to look at.
"""

from datetime import datetime, timedelta, timezone
from typing import List

from yongu.models import (
    ClientStatus, Contact, ContactLog, Continent, Document, IndustrySector, LogType,
    new_id, now_iso, to_timestamp,
)


def demo_contacts() -> List[Contact]:
    now = datetime.now(timezone.utc)
    met = to_timestamp(now - timedelta(days=12))
    return [
        Contact(
            id=new_id(),
            name='Sarah Jenkins',
            company='Framestore',
            role='VFX Producer',
            email='sarah.jenkins@example.com',
            sector=IndustrySector.VFX_FILM.value,
            status=ClientStatus.ACTIVE.value,
            status_updated_at=now_iso(),
            location='London, UK',
            continent=Continent.EUROPE.value,
            lat=51.5074,
            lng=-0.1278,
            last_contact_date=met,
            next_follow_up_date=to_timestamp(now + timedelta(days=14)),
            rate='£450/day',
            notes='Booked for compositing on the spring feature.',
            tags=['Nuke', 'Compositing'],
            logs=[ContactLog(id=new_id(), date=met, type=LogType.MEETING.value,
                             notes='Kick-off meeting, agreed on a six week booking.')],
        ),
        Contact(
            id=new_id(),
            name='Marco Rossi',
            company='Epic Games',
            role='Technical Art Director',
            email='marco.rossi@example.com',
            sector=IndustrySector.GAMES_REALTIME.value,
            status=ClientStatus.NEGOTIATING.value,
            status_updated_at=now_iso(),
            location='Montreal, Canada',
            continent=Continent.NORTH_AMERICA.value,
            lat=45.5017,
            lng=-73.5673,
            next_follow_up_date=to_timestamp(now - timedelta(days=2)),
            rate='$6,000/project',
            notes='Interested in Unreal environment work.',
            tags=['Unreal', 'Pipeline'],
        ),
        Contact(
            id=new_id(),
            name='Yuki Tanaka',
            company='Polygon Pictures',
            role='Animation Supervisor',
            sector=IndustrySector.ANIMATION.value,
            status=ClientStatus.NEW.value,
            status_updated_at=now_iso(),
            location='Tokyo, Japan',
            continent=Continent.ASIA.value,
            lat=35.6762,
            lng=139.6503,
            notes='Met at an industry mixer.',
            tags=['Maya'],
        ),
    ]


def new_document() -> Document:
    """Fresh document: demo contacts, no profile yet."""
    return Document(clients=demo_contacts(), profile=None, last_updated=now_iso())

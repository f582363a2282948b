"""
Job Board - search for open creative-industry roles.
Asks the AI backend for real postings when a key is configured and keeps only
entries with a plausible direct job link. Any failure degrades to an offline
placeholder list; fetch_jobs never raises.
"""

import json
import logging
import random
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from urllib.parse import quote_plus, urlparse

from yongu.bus.events import bus, EVENT_JOBS_FETCHED
from yongu.config import config
from yongu.engine.ai_client import call_ai, is_configured
from yongu.logging_config import log_call
from yongu.models import IndustrySector, JobOffer, DEFAULT_SECTOR, to_timestamp

logger = logging.getLogger(__name__)

DATE_RANGES = ['24h', '7d', '15d', '30d', '2m', 'any']

_RANGE_DAYS = {'24h': 1, '7d': 7, '15d': 15, '30d': 30, '2m': 60}
_RANGE_PHRASES = {
    '24h': 'posted in the last 24 hours',
    '7d': 'posted in the last week',
    '15d': 'posted in the last 15 days',
    '30d': 'posted in the last month',
    '2m': 'posted in the last 2 months',
}

OFFLINE_JOB_COUNT = 15

MOCK_STUDIOS = [
    'Skynet VFX', 'Tristram Games', 'Industrial Light & Magic', 'Weta FX',
    'Framestore', 'MPC', 'Sony Pictures Imageworks', 'Epic Games',
    'Unity Technologies', 'The Mill', 'DNEG', 'Riot Games', 'Blizzard', 'Naughty Dog',
]

MOCK_ROLES = [
    'Senior Compositor', 'FX TD', 'Lead Animator', 'Pipeline TD',
    'Unreal Engine Generalist', 'Creative Director', 'Motion Designer',
    'Character Rigger', 'Environment Artist', 'VFX Supervisor', 'Lighting Artist',
]

MOCK_LOCATIONS = [
    'London, UK', 'Vancouver, Canada', 'Los Angeles, USA', 'Montreal, Canada',
    'Remote', 'Sydney, Australia', 'Paris, France', 'Singapore', 'Berlin, Germany', 'Tokyo, Japan',
]

MOCK_SOURCES = ['LinkedIn', 'Glassdoor', 'ArtStation', 'Direct']


@dataclass
class JobSearch:
    """Job board filters. Empty lists mean any sector / any continent."""
    role: str = ''
    sectors: List[str] = field(default_factory=list)
    continents: List[str] = field(default_factory=list)
    location: str = ''
    date_range: str = '30d'


def range_days(date_range: str) -> int:
    return _RANGE_DAYS.get(date_range, 90)


def range_phrase(date_range: str) -> str:
    return _RANGE_PHRASES.get(date_range, 'recently posted')


def is_valid_job_url(url) -> bool:
    """Reject placeholders and bare home pages; apply per-site path rules for the big boards."""
    if not isinstance(url, str) or not url or url == '#' or not url.startswith('http'):
        return False
    parsed = urlparse(url)
    if not parsed.netloc:
        return False
    path = parsed.path
    if path in ('', '/'):
        return False
    if 'linkedin.com' in url:
        return any(p in path for p in ('/jobs/view', '/jobs/search', '/comm/jobs'))
    if 'artstation.com' in url:
        return '/jobs/' in path
    if 'glassdoor.com' in url:
        return '/job-listing' in path or '/partner/jobListing.htm' in path
    return len(path) > 3 or '?' in url


# =============================================================================
# OFFLINE PLACEHOLDERS
# =============================================================================

def generate_mock_jobs(count: int, search: JobSearch, rng: Optional[random.Random] = None) -> List[JobOffer]:
    """Placeholder postings inside the search's date range, newest first."""
    rng = rng or random.Random()
    now = datetime.now(timezone.utc)
    max_days = range_days(search.date_range or '30d')
    sectors = search.sectors or [s.value for s in IndustrySector]
    stamp = int(now.timestamp() * 1000)

    jobs = []
    for i in range(count):
        company = rng.choice(MOCK_STUDIOS)
        role = search.role or rng.choice(MOCK_ROLES)
        location = search.location or rng.choice(MOCK_LOCATIONS)
        source = rng.choice(MOCK_SOURCES)
        age = timedelta(seconds=rng.uniform(0, max_days * 24 * 60 * 60))

        if source == 'LinkedIn':
            url = f"https://www.linkedin.com/jobs/search?keywords={quote_plus(role)}"
        elif source == 'ArtStation':
            url = "https://www.artstation.com/jobs"
        else:
            url = f"https://www.google.com/search?q={quote_plus(f'{role} jobs at {company}')}"

        jobs.append(JobOffer(
            id=f"mock-job-{stamp}-{i}",
            title=role,
            company=company,
            location=location,
            continent=rng.choice(search.continents) if search.continents else None,
            sector=rng.choice(sectors),
            type='Full-time' if rng.random() > 0.3 else 'Contract',
            posted_date=to_timestamp(now - age),
            description=(
                f"(Offline Demo) We are looking for a talented {role} to join our team at "
                f"{company}. Experience with Houdini, Nuke, or Maya required."
            ),
            url=url,
            source=source,
        ))

    jobs.sort(key=lambda j: j.posted_date, reverse=True)
    return jobs


# =============================================================================
# AI SEARCH
# =============================================================================

def build_prompt(search: JobSearch) -> str:
    if search.sectors:
        sector_str = f"Focus on these specific sectors: {', '.join(search.sectors)}."
    else:
        sector_str = 'Focus on sector: "Any Creative Tech".'
    if search.continents:
        continent_str = f"Prioritize these regions/continents: {', '.join(search.continents)}."
    else:
        continent_str = f'Location context: "{search.location or "Global"}".'

    return f"""Find 8 REAL job openings for "{search.role or 'VFX, Animation, or Game Development'}" roles.
{sector_str} {continent_str}
Strictly {range_phrase(search.date_range or 'any')}. Return a list of jobs with direct links.

Respond with a JSON array only. Each item has: title, company, location, url, source, description, postedDate.
title, company and url are required."""


def _strip_code_fence(text: str) -> str:
    match = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)
    return match.group(1) if match else text


def parse_ai_jobs(text: str, search: JobSearch) -> List[JobOffer]:
    """
    Map the AI's JSON answer to JobOffers, dropping items without a usable link.
    Raises ValueError if the answer is not a JSON array.
    """
    items = json.loads(_strip_code_fence(text))
    if not isinstance(items, list):
        raise ValueError("Expected a JSON array of jobs")

    stamp = int(datetime.now(timezone.utc).timestamp() * 1000)
    sector = search.sectors[0] if len(search.sectors) == 1 else DEFAULT_SECTOR
    jobs = []
    for index, item in enumerate(i for i in items if isinstance(i, dict) and is_valid_job_url(i.get('url'))):
        jobs.append(JobOffer(
            id=f"ai-job-{stamp}-{index}",
            title=item.get('title', ''),
            company=item.get('company', ''),
            location=item.get('location') or search.location or 'Unknown',
            sector=sector,
            type='Full-time',
            posted_date=to_timestamp(datetime.now(timezone.utc)),
            description=item.get('description') or f"Found via web search on {item.get('source')}",
            url=item['url'],
            source=item.get('source') or 'Web Search',
        ))
    return jobs


@log_call
def fetch_jobs(search: JobSearch, model: Optional[str] = None,
               rng: Optional[random.Random] = None) -> List[JobOffer]:
    """Search for jobs. Never raises; falls back to offline placeholders."""
    _model = model or config.DEFAULT_AI_MODEL

    if is_configured(_model):
        try:
            text = call_ai(build_prompt(search), model=_model, max_tokens=2000)
            if text and text.strip():
                jobs = parse_ai_jobs(text, search)
                logger.info(f"AI job search returned {len(jobs)} postings with valid links")
                bus.emit(EVENT_JOBS_FETCHED, {'count': len(jobs), 'source': _model})
                return jobs
        except (RuntimeError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Using offline jobs due to AI error: {e}")
    else:
        logger.info(f"No API key for {_model}, using offline jobs")

    jobs = generate_mock_jobs(OFFLINE_JOB_COUNT, search, rng=rng)
    bus.emit(EVENT_JOBS_FETCHED, {'count': len(jobs), 'source': 'offline'})
    return jobs

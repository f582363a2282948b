"""
Email Composer - outreach drafts for a contact.
Tries the configured AI backend first; if there is no key, the call fails or
the answer is empty, an offline template chosen from the goal's keywords is
used instead, so drafting always produces text and never raises.
"""

import logging
from typing import Optional

from yongu.bus.events import bus, EVENT_DRAFT_READY
from yongu.config import config
from yongu.engine.ai_client import call_ai, is_configured
from yongu.logging_config import log_call
from yongu.models import ClientStatus, Contact, parse_timestamp

logger = logging.getLogger(__name__)

NEGOTIATION_KEYWORDS = ('rate', 'budget', 'money')
FOLLOW_UP_KEYWORDS = ('follow', 'check', 'status')
INTRODUCTION_KEYWORDS = ('intro', 'new')


# =============================================================================
# CONTEXT BUILDERS
# =============================================================================

def goal_for_status(status: str) -> str:
    """Default goal of an email given where the contact sits in the pipeline."""
    if status == ClientStatus.NEW.value:
        return "Introduction and services"
    if status == ClientStatus.NEGOTIATING.value:
        return "Discussing rates and budget"
    if status == ClientStatus.OLD.value:
        return "Re-connecting after a long time"
    return "General check-in"


def _last_contact_text(contact: Contact, fallback: str) -> str:
    moment = parse_timestamp(contact.last_contact_date)
    return moment.strftime(config.CSV_DATE_FORMAT) if moment else fallback


def build_contact_context(contact: Contact) -> str:
    """Facts about the contact for the prompt."""
    context_parts = [
        f"Client Name: {contact.name}",
        f"Company: {contact.company}",
        f"Role: {contact.role or 'N/A'}",
        f"Sector: {contact.sector}",
        f"Last Contact: {_last_contact_text(contact, 'Never')}",
    ]
    if contact.notes:
        context_parts.append(f"Client Notes: {contact.notes[:500]}")
    return "\n".join(context_parts)


# =============================================================================
# OFFLINE TEMPLATES
# =============================================================================

def offline_template(contact: Contact, goal: str) -> str:
    """Keyword-matched template: negotiation, follow-up, introduction, or generic."""
    first_name = contact.name.split(' ')[0] if contact.name else 'there'
    goal_lower = goal.lower()

    if any(k in goal_lower for k in NEGOTIATION_KEYWORDS):
        return f"""Subject: Rate Inquiry / Project Scope - {contact.name}

Hi {first_name},

It was great connecting with you regarding the project at {contact.company}.

Based on the scope we discussed, my standard day rate is {contact.rate or '[Your Rate]'}, but I am open to discussing a project-based fee if that aligns better with your budget structure.

Let me know what works best for you.

Best,
[Your Name]"""

    if any(k in goal_lower for k in FOLLOW_UP_KEYWORDS):
        return f"""Subject: Checking in - {contact.company} / {contact.name}

Hi {first_name},

I hope you're having a great week.

I wanted to quickly follow up on our previous conversation regarding potential collaboration with {contact.company}.

Since we last spoke on {_last_contact_text(contact, 'recently')}, I've been available for new bookings and thought it would be a good time to reconnect.

Do you have any upcoming projects where you might need support?

Best regards,
[Your Name]"""

    if any(k in goal_lower for k in INTRODUCTION_KEYWORDS):
        return f"""Subject: VFX/Creative Support for {contact.company}

Hi {first_name},

I've been following the work at {contact.company} (especially the recent {contact.sector} projects) and wanted to reach out.

I am a freelancer specializing in [Your Specialty] and currently have some availability opening up next month. I'd love to discuss how I could support your team on upcoming deadlines.

You can view my latest reel here: [Link]

Best,
[Your Name]"""

    return f"""Subject: Hello from [Your Name] - {contact.company}

Hi {first_name},

I hope this email finds you well.

I'm writing to touch base regarding {goal}.

I currently have availability in my schedule and would love to discuss how I can help with upcoming projects at {contact.company}.

Looking forward to hearing from you.

Best regards,
[Your Name]"""


# =============================================================================
# DRAFT GENERATION
# =============================================================================

@log_call
def generate_outreach_email(contact: Contact, goal: str, model: Optional[str] = None) -> str:
    """
    Draft an email to contact with the given goal.

    Returns: subject line followed by body. Never raises.
    """
    _model = model or config.DEFAULT_AI_MODEL
    draft = None
    source = 'offline'

    if is_configured(_model):
        prompt = f"""You are a professional assistant for a VFX/Animation freelancer.
Write a polite, professional, and concise email to a client.

{build_contact_context(contact)}

Goal of email: {goal}

Tone: Professional, creative, warm, but concise.
Do not include subject line placeholders, just give me the subject and the body."""
        try:
            draft = call_ai(prompt, model=_model, max_tokens=800).strip() or None
            source = _model
        except (RuntimeError, ValueError) as e:
            logger.warning(f"AI draft failed for contact {contact.id}, falling back to offline template: {e}")
    else:
        logger.info(f"No API key for {_model}, using offline template")

    if not draft:
        draft = offline_template(contact, goal)
        source = 'offline'

    bus.emit(EVENT_DRAFT_READY, {'contact_id': contact.id, 'source': source})
    return draft

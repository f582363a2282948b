#!/usr/bin/env python3
"""
Yongu CRM Terminal CLI
Command-line interface for all CRM operations.

The storage backend is chosen once per run:
  --local        local storage slot
  --file PATH    a .json / .yongu data file
  --pick         choose the data file interactively
  (none)         YONGU_DB_FILE if set, else local storage
"""

import dataclasses
import logging
import sys
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional

import click

from yongu.config import config
from yongu.engine import csv_codec
from yongu.engine.crm import CRMSession, ALL
from yongu.engine.file_store import FilePicker, PathFilePicker, accepted_extensions, is_accepted
from yongu.engine.store import FileDocumentStore, select_store
from yongu.errors import (
    ImportEmptyError, InvalidFormatError, SaveInProgressError, StorageUnavailableError,
    UnsupportedPlatformError, UserCancelledError, WriteFailedError,
)
from yongu.logging_config import configure_logging, log_call
from yongu.models import (
    ClientStatus, Contact, Continent, IndustrySector, LogType,
    DEFAULT_CONTINENT, DEFAULT_SECTOR, DEFAULT_STATUS, parse_timestamp, to_timestamp,
)

AI_MODEL_CHOICES = ['claude', 'deepseek-chat', 'deepseek-reasoner']

STATUS_CHOICE = click.Choice([s.value for s in ClientStatus], case_sensitive=False)
SECTOR_CHOICE = click.Choice([s.value for s in IndustrySector], case_sensitive=False)
CONTINENT_CHOICE = click.Choice([c.value for c in Continent], case_sensitive=False)
LOG_TYPE_CHOICE = click.Choice([t.value for t in LogType], case_sensitive=False)


# =============================================================================
# FILE PICKER CAPABILITY
# =============================================================================

class PromptFilePicker(FilePicker):
    """Asks for a path on the terminal. Ctrl-C (or an empty answer) cancels."""

    def _prompt(self, label, accept, default='', must_exist=False) -> Optional[Path]:
        extensions = ', '.join(accepted_extensions(accept))
        while True:
            try:
                raw = click.prompt(f"{label} ({extensions})", default=default,
                                   show_default=bool(default))
            except click.Abort:
                return None
            raw = (raw or '').strip()
            if not raw:
                return None
            path = Path(raw).expanduser()
            if not is_accepted(path, accept):
                click.echo(f"  Please choose a {extensions} file.", err=True)
                continue
            if must_exist and not path.exists():
                click.echo(f"  {path} does not exist.", err=True)
                continue
            return path

    def pick_open(self, description, accept):
        return self._prompt(f"Open {description}", accept, must_exist=True)

    def pick_save(self, suggested_name, description, accept):
        return self._prompt(f"Save {description} as", accept, default=suggested_name)


def detect_file_picker() -> Optional[FilePicker]:
    """A terminal picker when a user is there to answer, otherwise no file access."""
    return PromptFilePicker() if sys.stdin.isatty() else None


# =============================================================================
# SESSION HELPERS
# =============================================================================

def open_session(options: dict) -> CRMSession:
    """Select the backend from the global options and load the document."""
    store = select_store(
        file_path=options.get('file_path'),
        local=options.get('local', False),
        picker=detect_file_picker() if options.get('pick') else None,
        use_picker=options.get('pick', False),
    )
    return CRMSession.start(store)


def _fail(ctx, message: str):
    click.echo(message, err=True)
    ctx.exit(1)


def _session(ctx) -> CRMSession:
    """open_session with every storage error turned into a user-facing message."""
    logger = logging.getLogger("yongu")
    try:
        return open_session(ctx.obj or {})
    except UserCancelledError:
        logger.info("open cancelled by user")
        ctx.exit(0)
    except UnsupportedPlatformError as e:
        logger.warning(f"open failed: {e}")
        _fail(ctx, f"Error: {e}")
    except InvalidFormatError as e:
        logger.warning(f"open failed: {e}")
        _fail(ctx, f"Failed to open file. Please ensure it is a valid .json or .yongu file.\n  {e}")
    except WriteFailedError as e:
        logger.error(f"open failed while writing: {e}")
        _fail(ctx, f"Error: {e}")
    except StorageUnavailableError as e:
        logger.error(f"open failed: {e}")
        _fail(ctx, f"Error: {e}\n  Check DATABASE_URL, or unset it to keep the slot in the data directory.")


@contextmanager
def _saving(ctx):
    """Show the transient saving indication; surface a failed save and exit non-zero."""
    click.echo("Saving...", err=True)
    try:
        yield
    except (WriteFailedError, SaveInProgressError) as e:
        logging.getLogger("yongu").error(f"save failed: {e}")
        _fail(ctx, f"Failed to save changes: {e}")


def _contact_or_fail(ctx, session: CRMSession, contact_id: str) -> Contact:
    contact = session.find_contact(contact_id)
    if contact is None:
        logging.getLogger("yongu").warning(f"contact_id={contact_id} not found")
        _fail(ctx, f"Contact {contact_id} not found.")
    return contact


def _date_text(value: Optional[str]) -> str:
    moment = parse_timestamp(value)
    return moment.strftime('%Y-%m-%d') if moment else ''


@log_call
def _prompt_date(label: str, default: Optional[date] = None) -> Optional[date]:
    """Prompt for a date, re-prompting on bad format. Returns None if left blank."""
    logger = logging.getLogger("yongu")
    default_str = str(default) if default else ""
    while True:
        raw = click.prompt(label, default=default_str, show_default=bool(default_str)) or ""
        if not raw:
            return None
        try:
            return date.fromisoformat(raw)
        except ValueError:
            logger.debug(f"_prompt_date | rejected input={raw!r}")
            click.echo("  Invalid format, please use YYYY-MM-DD.", err=True)


def _parse_date_option(ctx, value: Optional[str]) -> Optional[str]:
    """YYYY-MM-DD option value → document timestamp ('' clears the date)."""
    if value is None or value == '':
        return None
    try:
        day = date.fromisoformat(value)
    except ValueError:
        _fail(ctx, f"Invalid date {value!r}, please use YYYY-MM-DD.")
    return to_timestamp(datetime(day.year, day.month, day.day, tzinfo=timezone.utc))


# =============================================================================
# ROOT GROUP
# =============================================================================

@click.group()
@click.option('--file', 'file_path', type=click.Path(dir_okay=False),
              help='Data file (.json or .yongu) to work on')
@click.option('--local', is_flag=True, help='Use the local storage slot')
@click.option('--pick', is_flag=True, help='Choose the data file interactively')
@click.pass_context
def cli(ctx, file_path, local, pick):
    """Yongu CM - Client Manager for Freelance Creatives"""
    configure_logging()
    ctx.obj = {'file_path': file_path, 'local': local, 'pick': pick}


@cli.command('init')
@click.argument('path', required=False, type=click.Path(dir_okay=False))
@click.pass_context
@log_call
def init(ctx, path):
    """Create a new data file seeded with demo contacts"""
    logger = logging.getLogger("yongu")
    if path and Path(path).exists() and not click.confirm(f"{path} exists. Overwrite it?", default=False):
        return

    picker = PathFilePicker(path) if path else detect_file_picker()
    store = FileDocumentStore(picker, create=True)
    try:
        session = CRMSession.start(store)
    except UserCancelledError:
        logger.info("init cancelled by user")
        return
    except UnsupportedPlatformError as e:
        logger.warning(f"init failed: {e}")
        _fail(ctx, f"Error: {e}")
    except (InvalidFormatError, WriteFailedError) as e:
        logger.error(f"init failed: {e}")
        _fail(ctx, f"Failed to create file.\n  {e}")

    click.echo(f"\n✓ Created {store.handle.path} with {len(session.contacts)} demo contacts")
    click.echo("Next: set your profile with  yongu --file <path> profile")


# =============================================================================
# CONTACTS COMMANDS
# =============================================================================

@cli.group()
def contacts():
    """Manage contacts (clients, studios, leads)"""
    pass


@contacts.command('list')
@click.option('--search', 'term', default='', help='Match name, company or tag')
@click.option('--continent', type=click.Choice([ALL] + [c.value for c in Continent], case_sensitive=False),
              default=ALL, help='Filter by continent')
@click.option('--sector', type=click.Choice([ALL] + [s.value for s in IndustrySector], case_sensitive=False),
              default=ALL, help='Filter by sector')
@click.pass_context
@log_call
def contacts_list(ctx, term, continent, sector):
    """List contacts"""
    session = _session(ctx)
    results = session.search(term=term, continent=continent, sector=sector)

    if not results:
        click.echo("No contacts found.")
        return

    click.echo(f"\nFound {len(results)} contacts:\n")
    click.echo(f"{'ID':<10} {'Name':<24} {'Company':<22} {'Status':<12} {'Sector':<18}")
    click.echo("-" * 88)

    for c in results:
        click.echo(
            f"{c.id[:8]:<10} {c.name[:22]:<24} {c.company[:20]:<22} "
            f"{c.status[:10]:<12} {c.sector[:16]:<18}"
        )


@contacts.command('show')
@click.argument('contact_id')
@click.pass_context
@log_call
def contacts_show(ctx, contact_id):
    """Show full contact details"""
    session = _session(ctx)
    contact = _contact_or_fail(ctx, session, contact_id)

    click.echo(f"\n{'='*80}")
    click.echo(f"{contact.name} ({contact.company})")
    click.echo(f"{'='*80}")
    click.echo(f"ID:          {contact.id}")
    click.echo(f"Role:        {contact.role or '(not set)'}")
    click.echo(f"Status:      {contact.status}")
    days = session.days_in_status(contact)
    if days is not None:
        click.echo(f"In status:   {days} days")
    click.echo(f"Sector:      {contact.sector}")
    click.echo(f"Email:       {contact.email or '(not set)'}")
    click.echo(f"Phone:       {contact.phone or '(not set)'}")
    click.echo(f"Website:     {contact.website or '(not set)'}")
    click.echo(f"Location:    {contact.location or '(not set)'} [{contact.continent}]")
    click.echo(f"Rate:        {contact.rate or '(not set)'}")
    click.echo(f"Last contact:{' ' + _date_text(contact.last_contact_date) if contact.last_contact_date else ' No contact'}")
    click.echo(f"Follow up:   {_date_text(contact.next_follow_up_date) or '(not set)'}")
    click.echo(f"Tags:        {', '.join(contact.tags) or '(none)'}")

    if contact.notes:
        click.echo(f"\nNotes:\n{contact.notes}")

    click.echo(f"\n{'='*80}")
    click.echo("INTERACTION HISTORY")
    click.echo(f"{'='*80}")

    if contact.logs:
        for log in contact.logs:
            click.echo(f"\n[{_date_text(log.date)}] {log.type}  ({log.id[:8]})")
            click.echo(f"  {log.notes[:200]}")
    else:
        click.echo("No interactions yet.")

    click.echo()


@contacts.command('add')
@click.pass_context
@log_call
def contacts_add(ctx):
    """Add a new contact (interactive)"""
    session = _session(ctx)
    click.echo("\n=== ADD NEW CONTACT ===\n")

    name = click.prompt("Name", type=str)
    company = click.prompt("Company", type=str)
    role = click.prompt("Role", default="", show_default=False)
    email = click.prompt("Email", default="", show_default=False)
    phone = click.prompt("Phone", default="", show_default=False)
    status = click.prompt("Status", type=STATUS_CHOICE, default=DEFAULT_STATUS)
    sector = click.prompt("Sector", type=SECTOR_CHOICE, default=DEFAULT_SECTOR)
    continent = click.prompt("Continent", type=CONTINENT_CHOICE, default=DEFAULT_CONTINENT)
    location = click.prompt("Location", default="", show_default=False)
    rate = click.prompt("Rate", default="", show_default=False)
    notes = click.prompt("Notes", default="", show_default=False)
    tags = click.prompt("Tags (comma separated)", default="", show_default=False)

    contact = Contact(
        name=name,
        company=company,
        role=role,
        email=email,
        phone=phone,
        status=status,
        sector=sector,
        continent=continent,
        location=location,
        rate=rate,
        notes=notes,
        tags=[t.strip() for t in tags.split(',') if t.strip()],
    )

    try:
        with _saving(ctx):
            stored = session.save_contact(contact)
    except ValueError as e:
        _fail(ctx, f"Error: {e}")
    click.echo(f"\n✓ Created contact {stored.id[:8]}: {stored.name}")


@contacts.command('edit')
@click.argument('contact_id')
@click.option('--name', help='Update name')
@click.option('--company', help='Update company')
@click.option('--role', help='Update role')
@click.option('--email', help='Update email')
@click.option('--phone', help='Update phone')
@click.option('--website', help='Update website')
@click.option('--status', type=STATUS_CHOICE, help='Update pipeline status')
@click.option('--sector', type=SECTOR_CHOICE, help='Update sector')
@click.option('--continent', type=CONTINENT_CHOICE, help='Update continent')
@click.option('--location', help='Update location text')
@click.option('--lat', type=float, help='Update latitude')
@click.option('--lng', type=float, help='Update longitude')
@click.option('--rate', help='Update rate')
@click.option('--notes', help='Update notes')
@click.option('--next-follow-up', 'next_follow_up', help='Next follow-up date (YYYY-MM-DD)')
@click.pass_context
@log_call
def contacts_edit(ctx, contact_id, next_follow_up, **fields):
    """Edit a contact (use options to set fields)"""
    updates = {k: v for k, v in fields.items() if v is not None}
    if next_follow_up is not None:
        updates['next_follow_up_date'] = _parse_date_option(ctx, next_follow_up)

    if not updates:
        click.echo("No updates specified. Use --status, --email, --notes, ... (see --help)", err=True)
        return

    session = _session(ctx)
    contact = _contact_or_fail(ctx, session, contact_id)
    edited = dataclasses.replace(contact, **updates)

    try:
        with _saving(ctx):
            session.save_contact(edited)
    except ValueError as e:
        _fail(ctx, f"Error: {e}")
    click.echo(f"✓ Updated contact {contact.id[:8]}: {', '.join(sorted(updates))}")


@contacts.command('delete')
@click.argument('contact_id')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@click.pass_context
@log_call
def contacts_delete(ctx, contact_id, yes):
    """Delete a contact permanently"""
    session = _session(ctx)
    contact = _contact_or_fail(ctx, session, contact_id)

    if not yes and not click.confirm(f"Delete {contact.name} ({contact.company})? Are you sure?", default=False):
        return

    with _saving(ctx):
        session.delete_contact(contact.id)
    click.echo(f"✓ Deleted contact {contact.id[:8]}: {contact.name}")


@contacts.command('log')
@click.argument('contact_id')
@click.pass_context
@log_call
def contacts_log(ctx, contact_id):
    """Log an interaction with a contact"""
    session = _session(ctx)
    contact = _contact_or_fail(ctx, session, contact_id)

    click.echo(f"\n=== LOG INTERACTION: {contact.name} ===\n")

    when = _prompt_date("Date (YYYY-MM-DD)", default=date.today())
    log_type = click.prompt("Type", type=LOG_TYPE_CHOICE, default=LogType.EMAIL.value)
    notes = click.prompt("Notes")

    with _saving(ctx):
        entry = session.add_log(contact.id, notes, log_type=log_type, when=when)
    click.echo(f"\n✓ Logged {entry.type.lower()} {entry.id[:8]} for {contact.name}")


@contacts.command('unlog')
@click.argument('contact_id')
@click.argument('log_id')
@click.pass_context
@log_call
def contacts_unlog(ctx, contact_id, log_id):
    """Remove an interaction log entry"""
    session = _session(ctx)
    contact = _contact_or_fail(ctx, session, contact_id)

    matches = [log for log in contact.logs if log.id.startswith(log_id)]
    if len(matches) != 1:
        _fail(ctx, f"Log {log_id} not found for {contact.name}.")

    with _saving(ctx):
        session.remove_log(contact.id, matches[0].id)
    click.echo(f"✓ Removed log {matches[0].id[:8]}")


@contacts.command('tag')
@click.argument('contact_id')
@click.argument('tag')
@click.option('--remove', is_flag=True, help='Remove the tag instead of adding it')
@click.pass_context
@log_call
def contacts_tag(ctx, contact_id, tag, remove):
    """Add (or remove) a tag"""
    session = _session(ctx)
    contact = _contact_or_fail(ctx, session, contact_id)

    try:
        with _saving(ctx):
            changed = session.remove_tag(contact.id, tag) if remove else session.add_tag(contact.id, tag)
    except ValueError as e:
        _fail(ctx, f"Error: {e}")

    if changed:
        click.echo(f"✓ Tags: {', '.join(contact.tags) or '(none)'}")
    else:
        click.echo("Tags unchanged.")


# =============================================================================
# PROFILE & DASHBOARD
# =============================================================================

@cli.command('profile')
@click.option('--name', help='Your name')
@click.option('--industry', help='Your industry, e.g. "VFX & Animation"')
@click.pass_context
@log_call
def profile(ctx, name, industry):
    """Set your name and industry"""
    session = _session(ctx)
    current = session.profile
    name = name or click.prompt("Your name", default=current.name if current else None)
    industry = industry or click.prompt("Industry", default=current.industry if current else "VFX & Animation")

    try:
        with _saving(ctx):
            saved = session.set_profile(name, industry)
    except ValueError as e:
        _fail(ctx, f"Error: {e}")
    click.echo(f"✓ Profile saved: {saved.name} ({saved.industry})")


@cli.command('stats')
@click.pass_context
@log_call
def stats(ctx):
    """Dashboard: totals and priority follow-ups"""
    session = _session(ctx)
    numbers = session.stats()

    click.echo(f"\n{session.app_title()}")
    if session.profile:
        click.echo(f"Hello, {session.profile.name}. Here is what's happening in your "
                   f"{session.profile.industry} network today.")
    else:
        click.echo("No profile yet. Run `yongu profile` to set one up.")

    click.echo(f"\nTotal clients:    {numbers['total']}")
    click.echo(f"Active projects:  {numbers['active']}")
    click.echo(f"Pending leads:    {numbers['leads']}")
    click.echo(f"Follow-ups due:   {numbers['follow_ups']}")

    click.echo("\nPriority follow-ups:")
    due = session.due_follow_ups(limit=config.FOLLOW_UP_LIMIT)
    if not due:
        click.echo("  No urgent follow-ups.")
    for c in due:
        click.echo(f"  ⚠ {c.name} ({c.company}) - overdue since {_date_text(c.next_follow_up_date)}")
    click.echo()


@cli.command('followups')
@click.pass_context
@log_call
def followups(ctx):
    """Contacts with a follow-up date in the past"""
    session = _session(ctx)
    due = session.due_follow_ups()

    if not due:
        click.echo("No overdue follow-ups. You're all caught up! ✓")
        return

    click.echo(f"\n⚠️  {len(due)} contacts need follow-up:\n")
    click.echo(f"{'ID':<10} {'Name':<24} {'Company':<22} {'Due':<12}")
    click.echo("-" * 70)
    for c in due:
        click.echo(f"{c.id[:8]:<10} {c.name[:22]:<24} {c.company[:20]:<22} {_date_text(c.next_follow_up_date):<12}")


@cli.command('board')
@click.pass_context
@log_call
def board(ctx):
    """Pipeline board: contacts grouped by status"""
    session = _session(ctx)
    for status, column in session.by_status().items():
        click.echo(f"\n{status.upper()} ({len(column)})")
        for c in column:
            days = session.days_in_status(c)
            suffix = f" - {days}d" if days is not None else ""
            click.echo(f"  • {c.name} ({c.company}){suffix}")
    click.echo()


@cli.command('map')
@click.pass_context
@log_call
def map_view(ctx):
    """Contacts grouped by continent, with pinned coordinates"""
    session = _session(ctx)
    groups = session.by_continent()
    if not groups:
        click.echo("No contacts found.")
        return

    for continent, members in sorted(groups.items()):
        click.echo(f"\n{continent} ({len(members)})")
        for c in members:
            pin = f" @ {c.lat:.4f}, {c.lng:.4f}" if c.lat is not None and c.lng is not None else ""
            click.echo(f"  • {c.name} - {c.location or 'unknown location'}{pin}")
    click.echo(f"\n{len(session.pinned())} contacts have map pins.\n")


# =============================================================================
# CSV EXPORT / IMPORT
# =============================================================================

@cli.command('export')
@click.argument('path', required=False, type=click.Path(dir_okay=False))
@click.pass_context
@log_call
def export(ctx, path):
    """Export all contacts to CSV (Excel, Sheets, Numbers)"""
    session = _session(ctx)
    target = Path(path or csv_codec.export_filename())
    try:
        target.write_text(csv_codec.export_csv(session.contacts), encoding='utf-8')
    except OSError as e:
        logging.getLogger("yongu").error(f"export failed: {e}")
        _fail(ctx, f"Failed to write {target}: {e}")
    click.echo(f"✓ Exported {len(session.contacts)} contacts to {target}")


@cli.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@click.pass_context
@log_call
def import_(ctx, path, yes):
    """Import contacts from a CSV file"""
    logger = logging.getLogger("yongu")
    try:
        text = Path(path).read_text(encoding='utf-8-sig')
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"import failed to read {path}: {e}")
        _fail(ctx, "Failed to parse file. Please ensure it is a valid CSV.")

    try:
        imported = csv_codec.import_csv(text)
    except ImportEmptyError as e:
        logger.warning(f"import found no rows in {path}")
        _fail(ctx, str(e))

    session = _session(ctx)
    if not yes and not click.confirm(f"Found {len(imported)} clients in file. Import them?", default=True):
        return

    with _saving(ctx):
        session.import_contacts(imported)
    click.echo(f"✓ Import successful! {len(imported)} contacts added.")


# =============================================================================
# AI COMMANDS
# =============================================================================

@cli.command('draft')
@click.argument('contact_id')
@click.option('--goal', help='What the email should achieve (default depends on status)')
@click.option('--model', type=click.Choice(AI_MODEL_CHOICES), default=None,
              help='AI model to use (default: DEFAULT_AI_MODEL)')
@click.option('--log', 'add_to_log', is_flag=True, help='Store the draft as an email log entry')
@click.pass_context
@log_call
def draft(ctx, contact_id, goal, model, add_to_log):
    """Draft an outreach email (falls back to offline templates)"""
    from yongu.engine import email_composer

    session = _session(ctx)
    contact = _contact_or_fail(ctx, session, contact_id)
    goal = goal or email_composer.goal_for_status(contact.status)

    click.echo(f"\nDrafting email to {contact.name} - goal: {goal}\n")
    text = email_composer.generate_outreach_email(contact, goal, model=model)
    click.echo(f"{'='*80}")
    click.echo(text)
    click.echo(f"{'='*80}\n")

    if add_to_log:
        with _saving(ctx):
            entry = session.add_log(contact.id, text, log_type=LogType.EMAIL.value)
        click.echo(f"✓ Draft stored as log {entry.id[:8]}")


@cli.command('jobs')
@click.option('--role', default='', help='Role to search for')
@click.option('--sector', 'sectors', multiple=True, type=SECTOR_CHOICE, help='Sector filter (repeatable)')
@click.option('--continent', 'continents', multiple=True, type=CONTINENT_CHOICE, help='Continent filter (repeatable)')
@click.option('--location', default='', help='City or region')
@click.option('--range', 'date_range', type=click.Choice(['24h', '7d', '15d', '30d', '2m', 'any']),
              default='30d', show_default=True, help='Posting date range')
@click.option('--model', type=click.Choice(AI_MODEL_CHOICES), default=None, help='AI model to use')
@log_call
def jobs(role, sectors, continents, location, date_range, model):
    """Search the job board"""
    from yongu.engine import job_board

    search = job_board.JobSearch(
        role=role, sectors=list(sectors), continents=list(continents),
        location=location, date_range=date_range,
    )
    results = job_board.fetch_jobs(search, model=model)

    if not results:
        click.echo("No jobs found.")
        return

    click.echo(f"\nFound {len(results)} jobs:\n")
    for j in results:
        click.echo(f"• {j.title} - {j.company} ({j.location}) [{j.type}]")
        click.echo(f"  {j.source or 'Web'} · posted {_date_text(j.posted_date)} · {j.url}")
    click.echo()


# =============================================================================
# MAIN
# =============================================================================

if __name__ == '__main__':
    cli()

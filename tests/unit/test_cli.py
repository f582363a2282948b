"""
Unit tests for yongu/cli/main.py.

Mocking strategy:
  - patch yongu.cli.main.open_session to hand out a CRMSession over an
    in-memory store (no files, no local slot)
  - patch yongu.cli.main.configure_logging (autouse) to prevent file I/O
  - AI commands import their modules lazily inside the function body, so
    we patch at yongu.engine.<module>.<function>
  - Use click.testing.CliRunner to invoke commands end-to-end
"""

import json
from datetime import date
from unittest.mock import patch

import click
import pytest
from click.testing import CliRunner

from yongu.cli.main import PromptFilePicker, _prompt_date, cli, detect_file_picker
from yongu.engine.crm import CRMSession
from yongu.engine.file_store import ACCEPT
from yongu.engine.store import DocumentStore
from yongu.errors import (
    InvalidFormatError, StorageUnavailableError, UnsupportedPlatformError, UserCancelledError,
    WriteFailedError,
)
from yongu.models import Contact, ContactLog, Document, JobOffer, UserProfile


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

class MemoryStore(DocumentStore):
    label = 'memory'

    def __init__(self, document, fail_with=None):
        self.document = document
        self.fail_with = fail_with
        self.saved = []

    def start(self):
        return self.document

    def save(self, document):
        if self.fail_with:
            raise self.fail_with
        self.saved.append(document.to_dict())


def _sample_document():
    return Document(clients=[
        Contact(
            id='c1aaaaaa-0001', name='Sarah Jenkins', company='Framestore', role='VFX Producer',
            status='Active', sector='VFX (Film)', continent='Europe', location='London, UK',
            lat=51.5, lng=-0.12, tags=['Nuke'], status_updated_at='2026-01-01T00:00:00.000Z',
            logs=[ContactLog(id='l1bbbbbb-0001', date='2026-02-01T00:00:00.000Z', type='Meeting',
                             notes='Kick-off')],
        ),
        Contact(
            id='c2aaaaaa-0002', name='Marco Rossi', company='Epic Games', status='Negotiating',
            sector='Games/Realtime', next_follow_up_date='2020-01-01T00:00:00.000Z',
        ),
    ])


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def no_logging():
    """Prevent configure_logging from creating log files during tests."""
    with patch("yongu.cli.main.configure_logging"):
        yield


@pytest.fixture
def store():
    return MemoryStore(_sample_document())


@pytest.fixture
def session(store):
    with patch("yongu.cli.main.open_session", return_value=CRMSession(store, store.document)):
        yield store.document


# ---------------------------------------------------------------------------
# Opening the document
# ---------------------------------------------------------------------------

class TestOpenErrors:

    def test_cancel_is_silent(self, runner):
        with patch("yongu.cli.main.open_session", side_effect=UserCancelledError("Open cancelled")):
            result = runner.invoke(cli, ["--pick", "contacts", "list"])
        assert result.exit_code == 0
        assert "Error" not in result.output
        assert "Found" not in result.output

    def test_unsupported_platform(self, runner):
        err = UnsupportedPlatformError("File System not supported on this device. Please use local storage (--local).")
        with patch("yongu.cli.main.open_session", side_effect=err):
            result = runner.invoke(cli, ["--pick", "contacts", "list"])
        assert result.exit_code == 1
        assert "--local" in result.output

    def test_invalid_file(self, runner):
        with patch("yongu.cli.main.open_session", side_effect=InvalidFormatError("not JSON")):
            result = runner.invoke(cli, ["--file", "x.json", "stats"])
        assert result.exit_code == 1
        assert "valid .json or .yongu file" in result.output

    def test_unreachable_slot_database(self, runner):
        err = StorageUnavailableError("Cannot read the storage database: connection refused")
        with patch("yongu.cli.main.open_session", side_effect=err):
            result = runner.invoke(cli, ["--local", "stats"])
        assert result.exit_code == 1
        assert "connection refused" in result.output
        assert "DATABASE_URL" in result.output

    def test_global_options_reach_open_session(self, runner, store):
        with patch("yongu.cli.main.open_session", return_value=CRMSession(store, store.document)) as mock_open:
            runner.invoke(cli, ["--file", "clients.json", "contacts", "list"])
        assert mock_open.call_args[0][0] == {'file_path': 'clients.json', 'local': False, 'pick': False}


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

class TestInit:

    def test_creates_seeded_file(self, runner, tmp_path):
        path = tmp_path / "clients.json"
        result = runner.invoke(cli, ["init", str(path)])
        assert result.exit_code == 0, result.output
        assert "3 demo contacts" in result.output
        assert len(json.loads(path.read_text(encoding="utf-8"))["clients"]) == 3

    def test_wrong_extension(self, runner, tmp_path):
        result = runner.invoke(cli, ["init", str(tmp_path / "clients.csv")])
        assert result.exit_code == 1
        assert not (tmp_path / "clients.csv").exists()

    def test_existing_file_kept_when_not_confirmed(self, runner, tmp_path):
        path = tmp_path / "clients.json"
        path.write_text('{"clients": []}', encoding="utf-8")
        result = runner.invoke(cli, ["init", str(path)], input="n\n")
        assert result.exit_code == 0
        assert path.read_text(encoding="utf-8") == '{"clients": []}'


# ---------------------------------------------------------------------------
# contacts list / show
# ---------------------------------------------------------------------------

class TestContactsList:

    def test_lists_all(self, runner, session):
        result = runner.invoke(cli, ["contacts", "list"])
        assert result.exit_code == 0
        assert "Found 2 contacts" in result.output
        assert "Sarah Jenkins" in result.output
        assert "c1aaaaaa" in result.output

    def test_filters(self, runner, session):
        result = runner.invoke(cli, ["contacts", "list", "--continent", "Europe"])
        assert "Sarah Jenkins" in result.output
        assert "Marco Rossi" not in result.output

    def test_no_match(self, runner, session):
        result = runner.invoke(cli, ["contacts", "list", "--search", "zzz"])
        assert "No contacts found." in result.output


class TestContactsShow:

    def test_show_by_prefix(self, runner, session):
        result = runner.invoke(cli, ["contacts", "show", "c1aa"])
        assert result.exit_code == 0
        assert "Sarah Jenkins (Framestore)" in result.output
        assert "Kick-off" in result.output
        assert "[2026-02-01] Meeting" in result.output

    def test_not_found(self, runner, session):
        result = runner.invoke(cli, ["contacts", "show", "zz"])
        assert result.exit_code == 1
        assert "not found" in result.output


# ---------------------------------------------------------------------------
# contacts add / edit / delete
# ---------------------------------------------------------------------------

class TestContactsAdd:

    def test_add_interactive(self, runner, session, store):
        answers = "Jo Lee\nWeta\n" + "\n" * 9 + "Rigging, Maya\n"
        result = runner.invoke(cli, ["contacts", "add"], input=answers)
        assert result.exit_code == 0, result.output
        assert "Created contact" in result.output
        added = session.clients[-1]
        assert (added.name, added.company, added.status) == ("Jo Lee", "Weta", "New")
        assert added.tags == ["Rigging", "Maya"]
        assert store.saved


class TestContactsEdit:

    def test_status_change(self, runner, session, store):
        result = runner.invoke(cli, ["contacts", "edit", "c2aa", "--status", "active", "--email", "m@epic.example"])
        assert result.exit_code == 0, result.output
        marco = session.clients[1]
        assert marco.status == "Active"
        assert marco.email == "m@epic.example"
        assert marco.status_updated_at
        assert store.saved

    def test_follow_up_date(self, runner, session):
        runner.invoke(cli, ["contacts", "edit", "c1aa", "--next-follow-up", "2026-09-01"])
        assert session.clients[0].next_follow_up_date == "2026-09-01T00:00:00.000Z"

    def test_bad_date(self, runner, session, store):
        result = runner.invoke(cli, ["contacts", "edit", "c1aa", "--next-follow-up", "soon"])
        assert result.exit_code == 1
        assert store.saved == []

    def test_no_updates(self, runner, session, store):
        result = runner.invoke(cli, ["contacts", "edit", "c1aa"])
        assert "No updates specified" in result.output
        assert store.saved == []

    def test_save_failure_is_reported(self, runner):
        store = MemoryStore(_sample_document(), fail_with=WriteFailedError("disk full"))
        with patch("yongu.cli.main.open_session", return_value=CRMSession(store, store.document)):
            result = runner.invoke(cli, ["contacts", "edit", "c1aa", "--role", "EP"])
        assert result.exit_code == 1
        assert "Failed to save changes: disk full" in result.output


class TestContactsDelete:

    def test_delete_confirmed(self, runner, session):
        result = runner.invoke(cli, ["contacts", "delete", "c2aa"], input="y\n")
        assert result.exit_code == 0
        assert [c.name for c in session.clients] == ["Sarah Jenkins"]

    def test_delete_declined(self, runner, session, store):
        runner.invoke(cli, ["contacts", "delete", "c2aa"], input="n\n")
        assert len(session.clients) == 2
        assert store.saved == []

    def test_delete_yes_flag(self, runner, session):
        runner.invoke(cli, ["contacts", "delete", "c2aa", "--yes"])
        assert len(session.clients) == 1


# ---------------------------------------------------------------------------
# logs and tags
# ---------------------------------------------------------------------------

class TestLogs:

    def test_log_interaction(self, runner, session):
        result = runner.invoke(cli, ["contacts", "log", "c2aa"], input="2026-03-01\nCall\nIntro call\n")
        assert result.exit_code == 0, result.output
        marco = session.clients[1]
        assert marco.logs[0].type == "Call"
        assert marco.logs[0].notes == "Intro call"
        assert marco.last_contact_date == "2026-03-01T00:00:00.000Z"

    def test_unlog(self, runner, session):
        result = runner.invoke(cli, ["contacts", "unlog", "c1aa", "l1bb"])
        assert result.exit_code == 0
        assert session.clients[0].logs == []

    def test_unlog_unknown(self, runner, session):
        result = runner.invoke(cli, ["contacts", "unlog", "c1aa", "nope"])
        assert result.exit_code == 1


class TestTags:

    def test_add_tag(self, runner, session):
        result = runner.invoke(cli, ["contacts", "tag", "c1aa", "Houdini"])
        assert "Nuke, Houdini" in result.output

    def test_duplicate_tag(self, runner, session):
        result = runner.invoke(cli, ["contacts", "tag", "c1aa", "Nuke"])
        assert "Tags unchanged." in result.output

    def test_remove_tag(self, runner, session):
        runner.invoke(cli, ["contacts", "tag", "c1aa", "Nuke", "--remove"])
        assert session.clients[0].tags == []


# ---------------------------------------------------------------------------
# profile / dashboard views
# ---------------------------------------------------------------------------

def test_profile_with_options(runner, session, store):
    result = runner.invoke(cli, ["profile", "--name", "Kim", "--industry", "VFX & Animation"])
    assert result.exit_code == 0
    assert session.profile == UserProfile(name="Kim", industry="VFX & Animation")
    assert store.saved[-1]["profile"]["name"] == "Kim"


def test_stats(runner, session):
    session.profile = UserProfile(name="Kim", industry="VFX & Animation")
    result = runner.invoke(cli, ["stats"])
    assert result.exit_code == 0
    assert "VFX Yongu CM" in result.output
    assert "Hello, Kim" in result.output
    assert "Total clients:    2" in result.output
    assert "Marco Rossi (Epic Games)" in result.output


def test_stats_without_profile_hints_setup(runner, session):
    result = runner.invoke(cli, ["stats"])
    assert "yongu profile" in result.output


def test_followups(runner, session):
    result = runner.invoke(cli, ["followups"])
    assert "1 contacts need follow-up" in result.output
    assert "Marco Rossi" in result.output


def test_board(runner, session):
    result = runner.invoke(cli, ["board"])
    assert "NEGOTIATING (1)" in result.output
    assert "ACTIVE (1)" in result.output


def test_map(runner, session):
    result = runner.invoke(cli, ["map"])
    assert "Europe (1)" in result.output
    assert "@ 51.5000, -0.1200" in result.output
    assert "1 contacts have map pins." in result.output


# ---------------------------------------------------------------------------
# CSV export / import
# ---------------------------------------------------------------------------

def test_export(runner, session, tmp_path):
    target = tmp_path / "out.csv"
    result = runner.invoke(cli, ["export", str(target)])
    assert result.exit_code == 0
    lines = target.read_text(encoding="utf-8").split("\n")
    assert lines[0].startswith("Name,Company,Role")
    assert lines[1].startswith('"Sarah Jenkins","Framestore"')


def test_import(runner, session, store, tmp_path):
    source = tmp_path / "in.csv"
    source.write_text("Name,Company\nJo Lee,Weta\n", encoding="utf-8")
    result = runner.invoke(cli, ["import", str(source)], input="y\n")
    assert result.exit_code == 0, result.output
    assert "Found 1 clients in file" in result.output
    assert session.clients[-1].name == "Jo Lee"
    assert len(store.saved[-1]["clients"]) == 3


def test_import_empty(runner, session, store, tmp_path):
    source = tmp_path / "in.csv"
    source.write_text("Name,Company\n,Weta\n", encoding="utf-8")
    result = runner.invoke(cli, ["import", str(source)])
    assert result.exit_code == 1
    assert "No valid clients found" in result.output
    assert store.saved == []


# ---------------------------------------------------------------------------
# AI commands
# ---------------------------------------------------------------------------

def test_draft_uses_status_goal(runner, session):
    with patch("yongu.engine.email_composer.generate_outreach_email", return_value="Subject: Hi") as mock_gen:
        result = runner.invoke(cli, ["draft", "c2aa"])
    assert result.exit_code == 0
    assert "Subject: Hi" in result.output
    assert mock_gen.call_args[0][1] == "Discussing rates and budget"


def test_draft_logged(runner, session):
    with patch("yongu.engine.email_composer.generate_outreach_email", return_value="Subject: Hi"):
        runner.invoke(cli, ["draft", "c2aa", "--goal", "Follow up", "--log"])
    assert session.clients[1].logs[0].notes == "Subject: Hi"
    assert session.clients[1].logs[0].type == "Email"


def test_jobs(runner):
    job = JobOffer(id="j1", title="FX TD", company="DNEG", location="London", posted_date="2026-06-01T00:00:00.000Z",
                   url="https://dneg.example/jobs/1", source="Direct")
    with patch("yongu.engine.job_board.fetch_jobs", return_value=[job]) as mock_fetch:
        result = runner.invoke(cli, ["jobs", "--role", "FX TD", "--sector", "Animation", "--range", "7d"])
    assert result.exit_code == 0
    assert "FX TD - DNEG (London)" in result.output
    search = mock_fetch.call_args[0][0]
    assert (search.role, search.sectors, search.date_range) == ("FX TD", ["Animation"], "7d")


def test_jobs_none(runner):
    with patch("yongu.engine.job_board.fetch_jobs", return_value=[]):
        result = runner.invoke(cli, ["jobs"])
    assert "No jobs found." in result.output


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestPromptFilePicker:

    def test_reprompts_on_wrong_extension(self, tmp_path):
        path = tmp_path / "clients.json"
        path.write_text("{}", encoding="utf-8")
        with patch("yongu.cli.main.click.prompt", side_effect=["notes.txt", str(path)]):
            assert PromptFilePicker().pick_open("Yongu Data File", ACCEPT) == path

    def test_missing_file_reprompts(self, tmp_path):
        path = tmp_path / "clients.json"
        path.write_text("{}", encoding="utf-8")
        with patch("yongu.cli.main.click.prompt", side_effect=[str(tmp_path / "gone.json"), str(path)]):
            assert PromptFilePicker().pick_open("Yongu Data File", ACCEPT) == path

    def test_abort_is_cancel(self):
        with patch("yongu.cli.main.click.prompt", side_effect=click.Abort()):
            assert PromptFilePicker().pick_save("yongu_clients.json", "Yongu Data File", ACCEPT) is None

    def test_save_suggests_name(self):
        with patch("yongu.cli.main.click.prompt", return_value="yongu_clients.json") as mock_prompt:
            path = PromptFilePicker().pick_save("yongu_clients.json", "Yongu Data File", ACCEPT)
        assert path.name == "yongu_clients.json"
        assert mock_prompt.call_args[1]["default"] == "yongu_clients.json"


def test_detect_file_picker_needs_terminal():
    with patch("yongu.cli.main.sys.stdin") as mock_stdin:
        mock_stdin.isatty.return_value = False
        assert detect_file_picker() is None
        mock_stdin.isatty.return_value = True
        assert isinstance(detect_file_picker(), PromptFilePicker)


def test_prompt_date_retries_until_valid():
    with patch("yongu.cli.main.click.prompt", side_effect=["03/01/2026", "2026-03-01"]):
        assert _prompt_date("Date") == date(2026, 3, 1)


def test_prompt_date_blank_is_none():
    with patch("yongu.cli.main.click.prompt", return_value=""):
        assert _prompt_date("Date") is None

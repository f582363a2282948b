"""
Shared fixtures and step definitions for BDD tests.

- runner, context, data_file: available to all scenario files in this directory
- no_logging: autouse, prevents log file creation during tests
- outcome / output / data file steps: shared across all feature files

Scenarios run the real CLI against a data file under pytest's tmp_path, so
they exercise the whole path from command to file on disk.
"""

import json

import pytest
from unittest.mock import patch
from click.testing import CliRunner
from pytest_bdd import given, then, parsers

from yongu.cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def context():
    """Mutable dict shared between Given/When/Then steps within a scenario."""
    return {}


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "clients.json"


@pytest.fixture(autouse=True)
def no_logging():
    with patch("yongu.cli.main.configure_logging"):
        yield


@given("a data file with the demo contacts")
def demo_data_file(runner, data_file):
    result = runner.invoke(cli, ["init", str(data_file)])
    assert result.exit_code == 0, result.output


@then("the command succeeds")
def command_succeeds(context):
    assert context["result"].exit_code == 0, context["result"].output


@then("the command fails")
def command_fails(context):
    assert context["result"].exit_code == 1, context["result"].output


@then(parsers.parse('the output contains "{text}"'))
def output_contains(context, text):
    assert text in context["result"].output, (
        f"Expected {text!r} in output:\n{context['result'].output}"
    )


@then(parsers.parse("the data file holds {count:d} contacts"))
def data_file_holds(data_file, count):
    assert len(json.loads(data_file.read_text(encoding="utf-8"))["clients"]) == count

# -*- coding: utf-8 -*-
"""Location: ./tests/unit/trustheaders/test_cli.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Unit tests for the trustheaders CLI.
"""

# Standard
from unittest.mock import MagicMock, patch

# Third-Party
import pytest
from typer.testing import CliRunner

# First-Party
from trustheaders import __version__
from trustheaders.cli import app
from trustheaders.models import Header


@pytest.fixture
def runner():
    """Create CLI test runner."""
    return CliRunner()


def test_version(runner):
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_mappings_from_file(runner, tmp_path):
    path = tmp_path / "headers-mapping.properties"
    path.write_text("sec-email=mail\nanalytics.sec-firstname=givenName\n", encoding="utf-8")
    result = runner.invoke(app, ["mappings", "--file", str(path)])
    assert result.exit_code == 0
    assert "(default)" in result.stdout
    assert "sec-email" in result.stdout
    assert "analytics" in result.stdout
    assert "givenName" in result.stdout


def test_mappings_missing_file(runner, tmp_path):
    result = runner.invoke(app, ["mappings", "--file", str(tmp_path / "missing.properties")])
    assert result.exit_code == 1
    assert "Cannot read mappings" in result.stdout


@patch("trustheaders.cli.create_header_provider")
def test_resolve(mock_factory, runner):
    mock_factory.return_value.resolver.resolve.return_value = [Header(name="sec-org", value="geoteam"), Header(name="sec-tel", value=None)]
    result = runner.invoke(app, ["resolve", "bob", "--service", "analytics"])
    assert result.exit_code == 0
    assert "sec-org" in result.stdout
    assert "geoteam" in result.stdout
    assert "(none)" in result.stdout
    mock_factory.return_value.resolver.resolve.assert_called_once_with("bob", "analytics")


@patch("trustheaders.cli.create_header_provider")
def test_resolve_nothing(mock_factory, runner):
    mock_factory.return_value.resolver.resolve.return_value = []
    result = runner.invoke(app, ["resolve", "nobody"])
    assert result.exit_code == 1
    assert "No headers resolved for nobody" in result.stdout


@patch("trustheaders.cli.retrieve_layer_connections_for_user")
@patch("trustheaders.cli.SessionLocal")
def test_connections(mock_session_local, mock_retrieve, runner):
    mock_retrieve.return_value = [{"user_name": "bob", "layer": "topp:states", "connections": 2}]
    result = runner.invoke(app, ["connections", "--year", "2024", "--month", "3"])
    assert result.exit_code == 0
    assert "bob" in result.stdout
    assert "topp:states" in result.stdout
    mock_retrieve.assert_called_once_with(mock_session_local.return_value, 2024, 3)
    mock_session_local.return_value.close.assert_called_once()


@patch("trustheaders.cli.retrieve_layer_connections_for_user", side_effect=ValueError("year is expected"))
@patch("trustheaders.cli.SessionLocal", return_value=MagicMock())
def test_connections_invalid_year(mock_session_local, mock_retrieve, runner):
    result = runner.invoke(app, ["connections", "--year", "0"])
    assert result.exit_code == 1
    assert "year is expected" in result.stdout


def test_connections_rejects_invalid_month(runner):
    result = runner.invoke(app, ["connections", "--year", "2024", "--month", "13"])
    assert result.exit_code != 0

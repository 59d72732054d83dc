"""Tests for the command-line entry point."""

from pathlib import Path
from unittest.mock import patch

import pytest

from src.metadata_hub.cli import build_parser, main


@pytest.fixture
def quiet_cli(monkeypatch):
    """Patch out side effects of main(): .env loading, logging setup, the server."""
    for name in ('PORT', 'HOST', 'OP25_COMMAND', 'RULES_PATH', 'STRICT_RULES'):
        monkeypatch.delenv(name, raising=False)
    with patch('src.metadata_hub.cli.load_dotenv'), \
         patch('src.metadata_hub.cli.setup_logging'), \
         patch('uvicorn.run') as mock_run:
        yield mock_run


class TestBuildParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        """Test options default to None so env config applies."""
        args = build_parser().parse_args([])

        assert args.host is None
        assert args.port is None
        assert args.rules is None
        assert args.strict_rules is False

    def test_options(self):
        """Test all options parse."""
        args = build_parser().parse_args(['--port', '8080', '--rules', 'r.json', '--strict-rules'])

        assert args.port == 8080
        assert args.rules == Path('r.json')
        assert args.strict_rules is True


class TestMain:
    """Tests for main()."""

    def test_runs_server_with_overrides(self, quiet_cli, tmp_path):
        """Test command-line host and port reach uvicorn."""
        rules = tmp_path / 'rules.json'
        rules.write_text('[]')

        result = main(['--host', '127.0.0.1', '--port', '9000', '--rules', str(rules)])

        assert result == 0
        quiet_cli.assert_called_once()
        _, kwargs = quiet_cli.call_args
        assert kwargs['host'] == '127.0.0.1'
        assert kwargs['port'] == 9000

    def test_strict_rules_refuses_to_start(self, quiet_cli, tmp_path):
        """Test --strict-rules exits non-zero on a bad rule file."""
        result = main(['--rules', str(tmp_path / 'missing.json'), '--strict-rules'])

        assert result == 1
        quiet_cli.assert_not_called()

    def test_invalid_rules_still_start_by_default(self, quiet_cli, tmp_path):
        """Test a bad rule file does not prevent startup by default."""
        result = main(['--rules', str(tmp_path / 'missing.json')])

        assert result == 0
        quiet_cli.assert_called_once()

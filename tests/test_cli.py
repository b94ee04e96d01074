"""
Tests for CLI argument parsing, settings resolution and the main entry point.

The entry point tests run main() end to end against the fake Fleet server
by replacing requests.Session in the client module.
"""
import logging
from unittest.mock import Mock, patch

import pytest

from fleet_retry_controller import __main__ as cli_main
from fleet_retry_controller.cli.cli_setup import (
    build_settings,
    load_configuration,
    parse_arguments,
    validate_max_retries_arg,
)
from fleet_retry_controller.cli.context import CliContext
from fleet_retry_controller.utils.config import _load_config_defaults
from fleet_retry_controller.utils.exceptions import ConfigurationError
from tests.conftest import write_config_file
from tests.fixtures.fleet_mocks import FakeResponse, fleet_session


@pytest.fixture(autouse=True)
def quiet_process(monkeypatch):
    """Keep main() from installing signal handlers or reading a real .env."""
    monkeypatch.setattr(cli_main.signal, "signal", Mock())
    monkeypatch.setattr("fleet_retry_controller.cli.cli_setup.load_dotenv", Mock())
    yield
    # setup_logging replaces the root handlers
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


@pytest.fixture
def run_config_file(temp_config_dir, minimal_config_data):
    """Config with no API delays so main() runs instantly."""
    minimal_config_data['fleet']['url'] = 'https://fleet.test'
    minimal_config_data['api'] = {'sleep': 0, 'retry_delay': 0, 'transport_retries': 0}
    return write_config_file(temp_config_dir, minimal_config_data, "run.yaml")


@pytest.fixture
def fake_fleet():
    """Serve the standard fake Fleet to every client main() creates."""
    session = fleet_session()
    with patch("fleet_retry_controller.fleetapi.client.requests.Session", return_value=session):
        yield session


@pytest.mark.unit
class TestParseArguments:
    """Test command line parsing."""

    def test_defaults(self):
        args = parse_arguments([])

        assert args.config is None
        assert args.dry_run is False
        assert args.verbose is False
        assert args.max_retries is None
        assert args.teams is None

    def test_all_flags(self):
        args = parse_arguments([
            "--config=custom.yaml", "--fleet-url=https://fleet.test", "--fleet-token=abc",
            "--dry-run", "--teams=Production,Staging", "--exclude-policies=Legacy Script",
            "--max-retries=5", "--log-file=/tmp/fleet.log", "-v",
        ])

        assert args.config == "custom.yaml"
        assert args.fleet_url == "https://fleet.test"
        assert args.fleet_token == "abc"
        assert args.dry_run is True
        assert args.teams == "Production,Staging"
        assert args.exclude_policies == "Legacy Script"
        assert args.max_retries == 5
        assert args.log_file == "/tmp/fleet.log"
        assert args.verbose is True

    @pytest.mark.parametrize("value", ["0", "-1", "abc", "2.5"])
    def test_invalid_max_retries(self, value, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_arguments([f"--max-retries={value}"])

        assert exc_info.value.code == 2
        assert "max-retries" in capsys.readouterr().err

    def test_validate_max_retries_arg(self):
        assert validate_max_retries_arg("4") == 4

    def test_unknown_option(self):
        with pytest.raises(SystemExit) as exc_info:
            parse_arguments(["--bogus"])
        assert exc_info.value.code == 2

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_arguments(["--version"])

        assert exc_info.value.code == 0
        assert "fleet-retry-controller v" in capsys.readouterr().out


class TestLoadConfiguration:
    """Test configuration loading from the CLI."""

    def test_explicit_missing_config_is_error(self, temp_dir):
        args = parse_arguments([f"--config={temp_dir / 'missing.yaml'}"])
        ctx = CliContext(console=Mock())

        with pytest.raises(ConfigurationError):
            load_configuration(args, ctx)

    def test_env_overrides_applied(self, run_config_file, monkeypatch):
        monkeypatch.setenv("FLEET_MAX_RETRIES", "8")
        args = parse_arguments([f"--config={run_config_file}"])

        config = load_configuration(args, CliContext(console=Mock()))

        assert config['remediation']['max_retries'] == "8"

    def test_log_file(self, run_config_file, temp_dir):
        log_file = temp_dir / "logs" / "fleet.log"
        args = parse_arguments([f"--config={run_config_file}", f"--log-file={log_file}"])

        load_configuration(args, CliContext(console=Mock()))
        logging.getLogger("fleet_retry_controller.test").warning("hello from the test")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "hello from the test" in log_file.read_text()


@pytest.mark.unit
class TestBuildSettings:
    """Test resolution of RemediationSettings."""

    def test_defaults(self):
        args = parse_arguments(["--fleet-url=https://fleet.test", "--fleet-token=abc"])

        settings = build_settings(args, _load_config_defaults({}))

        assert settings.max_retries == 3
        assert settings.backoff_schedule == [1800, 7200, 21600, 86400]
        assert settings.api_prefix == '/api/v1/fleet'
        assert settings.api_sleep == 0.3
        assert settings.per_page == 100
        assert settings.include_global is True
        assert settings.teams == ''
        assert settings.dry_run is False

    def test_cli_overrides_config(self, maximal_config_data):
        args = parse_arguments(["--max-retries=2", "--teams=Global", "--exclude-policies=", "--dry-run"])

        settings = build_settings(args, _load_config_defaults(maximal_config_data))

        assert settings.max_retries == 2
        assert settings.teams == "Global"
        assert settings.exclude_policies == ""
        assert settings.dry_run is True

    def test_config_values(self, maximal_config_data):
        settings = build_settings(parse_arguments([]), _load_config_defaults(maximal_config_data))

        assert settings.max_retries == 5
        assert settings.backoff_schedule == [60, 120]
        assert settings.include_global is False
        assert settings.teams == "Production,Staging"
        assert settings.exclude_policies == "Legacy Script"
        assert settings.api_prefix == "/api/latest/fleet"
        assert settings.transport_retries == 1
        assert settings.per_page == 50

    def test_env_string_values_validated(self, minimal_config_data):
        config = _load_config_defaults(minimal_config_data)
        config['api']['sleep'] = "0.75"
        config['remediation']['max_retries'] = "4"

        settings = build_settings(parse_arguments([]), config)

        assert settings.api_sleep == 0.75
        assert settings.max_retries == 4

    @pytest.mark.parametrize("section,key,value", [
        ('remediation', 'max_retries', 0),
        ('remediation', 'max_retries', "many"),
        ('remediation', 'backoff_schedule', []),
        ('remediation', 'backoff_schedule', [1800, -1]),
        ('api', 'sleep', -1),
        ('api', 'per_page', 0),
        ('api', 'transport_retries', -2),
    ])
    def test_invalid_values(self, minimal_config_data, section, key, value):
        config = _load_config_defaults(minimal_config_data)
        config[section][key] = value

        with pytest.raises(ConfigurationError):
            build_settings(parse_arguments([]), config)


@pytest.mark.integration
class TestMain:
    """Test the main entry point end to end."""

    def test_successful_run(self, run_config_file, fake_fleet, flat_file_path, capsys):
        cli_main.main([f"--config={run_config_file}"])

        output = capsys.readouterr().out
        assert "Execution Statistics" in output
        assert "Scripts triggered" in output
        assert len(fake_fleet.calls_to('POST')) == 3
        assert flat_file_path.read_text().count("\n") == 3
        assert fake_fleet.headers['Authorization'] == 'Bearer config-token'
        assert fake_fleet.closed

    def test_dry_run(self, run_config_file, fake_fleet, flat_file_path):
        cli_main.main([f"--config={run_config_file}", "--dry-run"])

        assert fake_fleet.calls_to('POST') == []
        assert flat_file_path.read_text() == ""

    def test_verbose_shows_request_metrics(self, run_config_file, fake_fleet, capsys):
        cli_main.main([f"--config={run_config_file}", "-v"])

        assert "API requests:" in capsys.readouterr().out

    def test_missing_credentials_exit_1(self, temp_config_dir, flat_file_path, capsys):
        config_file = write_config_file(temp_config_dir, {'flat_file': {'path': str(flat_file_path)}})

        with pytest.raises(SystemExit) as exc_info:
            cli_main.main([f"--config={config_file}"])

        assert exc_info.value.code == 1
        assert "Configuration Error" in capsys.readouterr().out
        # Settings are validated before the cache is created
        assert not flat_file_path.exists()

    def test_unwritable_cache_exit_1(self, run_config_file, temp_dir, monkeypatch, capsys):
        blocker = temp_dir / "blocker"
        blocker.write_text("")
        monkeypatch.setenv("FLEET_CACHE_FILE", str(blocker / "cache.db"))

        with pytest.raises(SystemExit) as exc_info:
            cli_main.main([f"--config={run_config_file}"])

        assert exc_info.value.code == 1
        assert "Cache Error" in capsys.readouterr().out

    def test_team_listing_failure_exit_1_with_statistics(self, run_config_file, fake_fleet, capsys):
        fake_fleet.route('GET', '/teams', FakeResponse(500, {"message": "down"}))

        with pytest.raises(SystemExit) as exc_info:
            cli_main.main([f"--config={run_config_file}"])

        output = capsys.readouterr().out
        assert exc_info.value.code == 1
        assert "API Connection Error" in output
        assert "Execution Statistics" in output

    def test_interrupt_exit_130_with_statistics(self, run_config_file, fake_fleet, capsys):
        fake_fleet.route('POST', '/hosts/200/software/21/install', KeyboardInterrupt())

        with pytest.raises(SystemExit) as exc_info:
            cli_main.main([f"--config={run_config_file}"])

        output = capsys.readouterr().out
        assert exc_info.value.code == 130
        assert "shutting down gracefully" in output
        assert "Execution Statistics" in output
        assert fake_fleet.closed

    def test_sigterm_handler_installed(self, run_config_file, fake_fleet):
        cli_main.main([f"--config={run_config_file}"])

        cli_main.signal.signal.assert_called_once_with(cli_main.signal.SIGTERM, cli_main._raise_keyboard_interrupt)

    def test_sigterm_raises_keyboard_interrupt(self):
        with pytest.raises(KeyboardInterrupt):
            cli_main._raise_keyboard_interrupt(15, None)

"""
Tests for run statistics.

Covers counter updates, folding per-host deltas, the log summary and
the rich table report.
"""
import logging

import pytest
from rich.console import Console

from fleet_retry_controller.remediation.statistics import STATISTIC_LABELS, RunStatistics, render_statistics


@pytest.mark.unit
class TestRunStatistics:
    """Test counter operations."""

    def test_starts_at_zero(self):
        stats = RunStatistics()
        assert set(stats.as_dict().values()) == {0}
        assert set(stats.as_dict()) == set(STATISTIC_LABELS)

    def test_record(self):
        stats = RunStatistics()
        stats.record(hosts_processed=1, scripts_triggered=1)
        stats.record(hosts_processed=2)

        assert stats.hosts_processed == 3
        assert stats.scripts_triggered == 1

    def test_record_returns_self(self):
        stats = RunStatistics()
        assert stats.record(api_errors=1) is stats

    def test_record_unknown_counter(self):
        with pytest.raises(ValueError, match="Unknown statistic"):
            RunStatistics().record(hosts_failed=1)

    def test_record_negative(self):
        with pytest.raises(ValueError, match="never decrease"):
            RunStatistics(api_errors=2).record(api_errors=-1)

    def test_merge(self):
        total = RunStatistics(hosts_processed=2, skipped_backoff=1)
        delta = RunStatistics(hosts_processed=1, software_triggered=1)

        result = total.merge(delta)

        assert result is total
        assert total.hosts_processed == 3
        assert total.software_triggered == 1
        assert total.skipped_backoff == 1
        assert delta.hosts_processed == 1

    def test_triggered(self):
        assert RunStatistics(scripts_triggered=2, software_triggered=3).triggered == 5

    def test_log_summary(self, caplog):
        stats = RunStatistics(teams_processed=2, api_errors=1, scripts_triggered=1, software_triggered=2)

        with caplog.at_level(logging.INFO):
            stats.log_summary(logging.getLogger("test.statistics"))

        assert "=== Execution Statistics ===" in caplog.text
        assert "Teams processed: 2" in caplog.text
        assert "API errors: 1" in caplog.text
        assert "Software installs triggered: 2" in caplog.text
        assert "Total automations triggered: 3" in caplog.text


@pytest.mark.unit
class TestRenderStatistics:
    """Test the console report."""

    def test_table_lists_every_counter(self):
        console = Console(record=True, width=100)
        stats = RunStatistics(hosts_processed=7, skipped_max_retries=4)

        render_statistics(stats, console)
        output = console.export_text()

        assert "Execution Statistics" in output
        for label in STATISTIC_LABELS.values():
            assert label in output
        assert "7" in output
        assert "4" in output

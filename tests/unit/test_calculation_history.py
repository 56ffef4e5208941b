"""
Unit tests for dependencies/history.py
"""

import pytest

from naascalc.dependencies.history import CalculationHistory, CalculationHistoryEntry


def entry(component_type="capital", duration_ms=1.0, succeeded=True, **kwargs):
    return CalculationHistoryEntry(
        component_type=component_type,
        duration_ms=duration_ms,
        succeeded=succeeded,
        **kwargs,
    )


class TestCalculationHistory:
    """Test CalculationHistory ring buffer."""

    def test_invalid_capacity(self):
        """Test capacity must be positive."""
        with pytest.raises(ValueError):
            CalculationHistory(max_entries=0)

    def test_default_capacity(self):
        """Test the default capacity."""
        assert CalculationHistory().capacity == 50

    def test_evicts_oldest(self):
        """Test the oldest entries are dropped at capacity."""
        history = CalculationHistory(max_entries=3)
        for i in range(5):
            history.record(entry(component_type=f"c{i}"))

        assert len(history) == 3
        assert history.total_recorded == 5
        assert [e.component_type for e in history.get_entries()] == ["c2", "c3", "c4"]

    def test_get_entries_limit_and_filter(self):
        """Test limiting and filtering entries."""
        history = CalculationHistory()
        history.record(entry("capital"))
        history.record(entry("support"))
        history.record(entry("capital", duration_ms=2.0))

        assert [e.component_type for e in history.get_entries(limit=2)] == ["support", "capital"]
        assert len(history.get_entries(component_type="capital")) == 2
        assert history.get_entries(limit=0) == []

    def test_summary(self):
        """Test aggregate timings."""
        history = CalculationHistory()
        history.record(entry("capital", duration_ms=2.0))
        history.record(entry("capital", duration_ms=4.0))
        history.record(entry("support", duration_ms=6.0, succeeded=False, error_code=2001))

        summary = history.get_summary()

        assert summary["entries"] == 3
        assert summary["succeeded"] == 2
        assert summary["failed"] == 1
        assert summary["average_duration_ms"] == pytest.approx(4.0)
        assert summary["max_duration_ms"] == pytest.approx(6.0)
        assert summary["by_component"]["capital"]["average_ms"] == pytest.approx(3.0)
        assert summary["by_component"]["support"]["failures"] == 1

    def test_empty_summary(self):
        """Test summary of an empty history."""
        summary = CalculationHistory().get_summary()
        assert summary["entries"] == 0
        assert summary["average_duration_ms"] == 0.0

    def test_clear(self):
        """Test clearing keeps the total count."""
        history = CalculationHistory()
        history.record(entry())
        history.clear()
        assert len(history) == 0
        assert history.total_recorded == 1

    def test_entry_to_dict(self):
        """Test entry serialization."""
        data = entry("support", duration_ms=1.23456, pass_id="abc").to_dict()
        assert data["component_type"] == "support"
        assert data["duration_ms"] == 1.235
        assert data["pass_id"] == "abc"
        assert "timestamp" in data

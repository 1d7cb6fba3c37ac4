from datetime import datetime

import pytest

from topollama.schemas.system import SystemSnapshot
from topollama.services.history import HISTORY_LENGTH, HistoryBuffers, HistorySeries


class TestHistorySeries:
    def test_prefilled_with_zeros_and_trailing_labels(self):
        now = datetime(2026, 1, 1, 12, 0, 0)
        series = HistorySeries(capacity=5, now=now)
        assert series.values == [0.0] * 5
        assert series.labels == ["11:59:56", "11:59:57", "11:59:58", "11:59:59", "12:00:00"]

    def test_push_drops_oldest_and_appends(self):
        series = HistorySeries(capacity=3)
        series.push(1, "a")
        series.push(2, "b")
        before_values, before_labels = series.values, series.labels

        series.push(3, "c")

        assert series.values == before_values[1:] + [3.0]
        assert series.labels == before_labels[1:] + ["c"]
        assert series.points() == [("a", 1.0), ("b", 2.0), ("c", 3.0)]
        assert series.latest == 3.0

    def test_length_is_invariant(self):
        series = HistorySeries(capacity=4)
        for i in range(25):
            series.push(i, str(i))
            assert len(series) == len(series.values) == len(series.labels) == 4

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            HistorySeries(capacity=0)


class TestHistoryBuffers:
    def test_default_capacity(self):
        buffers = HistoryBuffers()
        for metric in ("cpu", "gpu", "memory"):
            assert len(buffers[metric]) == HISTORY_LENGTH

    def test_record_pushes_every_metric_with_one_label(self):
        buffers = HistoryBuffers(capacity=3)
        buffers.record(SystemSnapshot(cpu_usage_pct=12.5, gpu_usage_pct=50.0, ram_used_mb=2048), "10:00:00")

        assert buffers["cpu"].points()[-1] == ("10:00:00", 12.5)
        assert buffers["gpu"].points()[-1] == ("10:00:00", 50.0)
        assert buffers["memory"].points()[-1] == ("10:00:00", 2048.0)

    def test_push_single_metric(self):
        buffers = HistoryBuffers(capacity=2)
        buffers.push("gpu", 7, "t")
        assert buffers["gpu"].values == [0.0, 7.0]
        assert buffers["cpu"].values == [0.0, 0.0]

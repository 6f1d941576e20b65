"""Tests for ComparisonStatistics."""

import json
import logging

from smtdiff.core import ComparisonStatistics


class TestComparisonStatistics:
    def test_record_probes(self):
        stats = ComparisonStatistics()
        stats.record_probe(False)
        stats.record_probe(False)
        stats.record_probe(True)
        assert stats.probes == 3
        assert stats.synchronization_points == 1

    def test_record_queries(self):
        stats = ComparisonStatistics()
        stats.record_query("unsat", 0.5)
        stats.record_query("sat", 0.25)
        stats.record_query("sat", 0.25)
        assert stats.total_queries == 3
        assert stats.get_query_count("sat") == 2
        assert stats.get_query_count("unknown") == 0
        assert stats.solver_seconds == 1.0

    def test_reset(self):
        stats = ComparisonStatistics()
        stats.record_resynchronization()
        stats.record_failure("out_of_time")
        stats.record_query("sat", 1.0)
        stats.reset()
        assert stats.summary() == ComparisonStatistics().summary()

    def test_summary_and_json(self):
        stats = ComparisonStatistics()
        stats.record_resynchronization()
        stats.record_failure("unsupported_operation")
        summary = stats.summary()
        assert summary["resynchronizations"] == 1
        assert summary["failures"] == {"unsupported_operation": 1}
        assert json.loads(stats.to_json()) == summary

    def test_report_logs_counters(self, caplog):
        stats = ComparisonStatistics()
        stats.record_resynchronization()
        stats.record_query("unsat", 0.1)
        with caplog.at_level(logging.INFO, logger="smtdiff"):
            stats.report()
        assert "1 resynchronizations" in caplog.text
        assert "Solver returned 'unsat' 1 times" in caplog.text

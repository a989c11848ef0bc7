# tests/unit/services/dlq_manager_service/services/test_error_analyzer.py
import pytest

from src.services.dlq_manager_service.app.services.error_analyzer import ErrorAnalyzer, build_breakdown


def test_breakdown_groups_by_error_header(fake_partition, message_factory):
    """
    GIVEN records with repeated, blank and missing error headers
    WHEN the partition is analyzed
    THEN records are grouped by exact header value, most frequent first.
    """
    records = [
        message_factory(0, error="Timeout"),
        message_factory(1, error="Invalid JSON"),
        message_factory(2, error="Timeout"),
        message_factory(3),
        message_factory(4, error="  "),
        message_factory(5, error="timeout"),
        message_factory(6, error="Timeout"),
    ]
    analyzer = ErrorAnalyzer(reader_factory=fake_partition(records), batch_size=3)

    result = analyzer.breakdown("orders.DLQ")

    assert result.total_messages == 7
    assert [(e.error_type, e.count) for e in result.entries] == [
        ("Timeout", 3),
        ("Unknown Error", 2),
        ("Invalid JSON", 1),
        ("timeout", 1),
    ]
    assert sum(e.count for e in result.entries) == result.total_messages
    assert sum(e.percentage for e in result.entries) == pytest.approx(100.0)


def test_breakdown_of_empty_partition(fake_partition):
    result = ErrorAnalyzer(reader_factory=fake_partition([])).breakdown("orders.DLQ")

    assert result.total_messages == 0
    assert result.entries == []


def test_breakdown_starts_at_the_earliest_retained_offset(fake_partition, message_factory):
    partition = fake_partition([message_factory(i, error="E") for i in range(40, 45)])

    result = ErrorAnalyzer(reader_factory=partition).breakdown("orders.DLQ")

    assert partition.readers[0].seeks == [40]
    assert result.total_messages == 5
    assert partition.opened_with == [("orders.DLQ", 0, "analyzer")]


def test_breakdown_ignores_records_appended_after_the_scan_started(fake_partition, message_factory):
    """
    GIVEN the high watermark was captured when the scan began
    WHEN the reader returns a record past it
    THEN that record is not counted.
    """
    partition = fake_partition([message_factory(i, error="E") for i in range(3)])
    partition.high = 2

    result = ErrorAnalyzer(reader_factory=partition).breakdown("orders.DLQ")

    assert result.total_messages == 2


def test_breakdown_stops_at_the_poll_budget(fake_partition, message_factory):
    partition = fake_partition([message_factory(i, error="E") for i in range(10)], max_batch=2)

    result = ErrorAnalyzer(reader_factory=partition, max_polls=3).breakdown("orders.DLQ")

    assert result.total_messages == 6
    assert partition.open_readers == 0


def test_build_breakdown_keeps_encounter_order_for_ties():
    entries = build_breakdown({"B": 2, "A": 2, "C": 5})

    assert [e.error_type for e in entries] == ["C", "B", "A"]


def test_build_breakdown_percentages():
    entries = build_breakdown({"A": 1, "B": 3})

    assert [(e.error_type, e.percentage) for e in entries] == [("B", 75.0), ("A", 25.0)]
    assert build_breakdown({}) == []


def test_breakdown_stops_once_a_batch_reaches_the_last_offset(fake_partition, message_factory):
    partition = fake_partition([message_factory(i, error="E") for i in range(6)])

    result = ErrorAnalyzer(reader_factory=partition, batch_size=3).breakdown("orders.DLQ")

    assert result.total_messages == 6
    assert partition.readers[0].polls == 2

# tests/unit/services/dlq_manager_service/services/test_partition_browser.py
import pytest

from src.services.dlq_manager_service.app.services.partition_browser import PartitionBrowser


@pytest.fixture
def twenty_five(fake_partition, message_factory):
    return fake_partition([message_factory(i) for i in range(25)])


def test_fetch_page_seeks_to_page_start(twenty_five):
    """
    GIVEN a partition of 25 records
    WHEN page 2 of size 10 is fetched
    THEN the reader seeks straight to offset 10 and returns offsets 10..19.
    """
    browser = PartitionBrowser(reader_factory=twenty_five)

    messages = browser.fetch_page("orders.DLQ", page=2, page_size=10)

    assert [m.offset for m in messages] == list(range(10, 20))
    assert twenty_five.readers[0].seeks == [10]
    assert twenty_five.opened_with == [("orders.DLQ", 0, "browser")]


def test_last_page_may_be_short(twenty_five):
    browser = PartitionBrowser(reader_factory=twenty_five)

    messages = browser.fetch_page("orders.DLQ", page=3, page_size=10)

    assert [m.offset for m in messages] == list(range(20, 25))


def test_page_past_the_end_is_empty_and_never_wraps(twenty_five):
    """
    GIVEN a page that starts beyond the last record
    WHEN it is fetched
    THEN nothing is returned and the reader never seeks.
    """
    browser = PartitionBrowser(reader_factory=twenty_five)

    assert browser.fetch_page("orders.DLQ", page=4, page_size=10) == []
    assert twenty_five.readers[0].seeks == []


def test_pages_concatenate_to_the_partition(fake_partition, message_factory):
    """
    GIVEN a densely numbered partition
    WHEN every page is fetched in turn
    THEN the pages concatenate to exactly the records in offset order.
    """
    records = [message_factory(i) for i in range(23)]
    browser = PartitionBrowser(reader_factory=fake_partition(records))

    collected = []
    for page in range(1, 5):
        collected.extend(browser.fetch_page("orders.DLQ", page=page, page_size=7))

    assert [m.offset for m in collected] == [m.offset for m in records]


def test_empty_partition_returns_empty_page(fake_partition):
    browser = PartitionBrowser(reader_factory=fake_partition([]))

    assert browser.fetch_page("orders.DLQ", page=1, page_size=10) == []
    assert browser.count("orders.DLQ") == 0


def test_poll_budget_caps_a_slow_page(fake_partition, message_factory):
    """
    GIVEN a reader that yields one record per poll
    WHEN a page of 10 is requested with a budget of 3 polls
    THEN only the records collected within the budget are returned.
    """
    partition = fake_partition([message_factory(i) for i in range(20)], max_batch=1)
    browser = PartitionBrowser(reader_factory=partition, max_polls=3)

    messages = browser.fetch_page("orders.DLQ", page=1, page_size=10)

    assert [m.offset for m in messages] == [0, 1, 2]
    assert partition.readers[0].polls == 3


def test_count_is_the_watermark_distance(fake_partition, message_factory):
    browser = PartitionBrowser(reader_factory=fake_partition([message_factory(i) for i in range(5, 12)]))

    assert browser.count("orders.DLQ") == 7


@pytest.mark.parametrize("page, size", [(0, 10), (1, 0), (1, 101)])
def test_invalid_pagination_is_rejected_before_reading(fake_partition, page, size):
    partition = fake_partition([])
    browser = PartitionBrowser(reader_factory=partition)

    with pytest.raises(ValueError):
        browser.fetch_page("orders.DLQ", page=page, page_size=size)
    assert partition.readers == []


def test_reader_is_closed_on_every_path(twenty_five):
    browser = PartitionBrowser(reader_factory=twenty_five)

    browser.fetch_page("orders.DLQ", page=1, page_size=10)
    browser.fetch_page("orders.DLQ", page=9, page_size=10)
    browser.count("orders.DLQ")
    browser.read_message("orders.DLQ", 0, 3)

    assert len(twenty_five.readers) == 4
    assert twenty_five.open_readers == 0


def test_read_message_reads_the_exact_offset(twenty_five):
    browser = PartitionBrowser(reader_factory=twenty_five)

    assert browser.read_message("orders.DLQ", 0, 7).offset == 7
    assert browser.read_message("orders.DLQ", 0, 70) is None
    assert twenty_five.opened_with[-1] == ("orders.DLQ", 0, "replay")

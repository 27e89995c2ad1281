"""Tests for payload persistence."""

from __future__ import annotations

import json

import pytest

from synth_scraper.core.exceptions import PersistenceFailure
from synth_scraper.core.models import ExecutionStatus
from synth_scraper.core.result_sink import ResultSink, result_filename

URL = "https://site.example/blog"
PAYLOAD = {"blogPosts": [{"title": "X", "url": "https://site.example/blog/x", "summary": "..."}]}


def fixed_clock():
    return 1700000000.5


class TestResultFilename:
    def test_hostname_category_timestamp(self):
        assert result_filename(URL, "blog articles", 1700000000000) == \
            "site.example_blog_articles_1700000000000.json"

    def test_collapses_whitespace_and_drops_path_characters(self):
        assert result_filename("https://shop.example:8080/x", " product   data/../x ", 1) == \
            "shop.example_product_data..x_1.json"

    def test_url_without_host(self):
        assert result_filename("not a url", "events", 5) == "unknown-host_events_5.json"


class TestResultSink:
    def test_persist_writes_file_and_upserts_document(self, store, tmp_path):
        sink = ResultSink(store, tmp_path / "extractedData", clock=fixed_clock)

        path = sink.persist(URL, "blog articles", PAYLOAD, "abc123")

        assert path.name == "site.example_blog_articles_1700000000500.json"
        assert json.loads(path.read_text(encoding="utf-8")) == PAYLOAD
        document = store.find_result(URL)
        assert document["status"] == "success"
        assert document["results"] == PAYLOAD
        assert document["scriptId"] == "abc123"
        assert document["lastScrapedAt"] == 1700000000.5

    def test_persisting_twice_keeps_one_document(self, store, tmp_path):
        times = iter([1.0, 2.0])
        sink = ResultSink(store, tmp_path / "extractedData", clock=lambda: next(times))

        sink.persist(URL, "blog articles", PAYLOAD, "abc123")
        sink.persist(URL, "blog articles", {"blogPosts": []}, "abc123")

        assert store.count_results() == 1
        assert store.find_result(URL)["results"] == {"blogPosts": []}
        assert len(list((tmp_path / "extractedData").iterdir())) == 2

    @pytest.mark.parametrize("payload", [None, {}, []])
    def test_empty_payload_writes_nothing(self, store, tmp_path, payload):
        sink = ResultSink(store, tmp_path / "extractedData")

        assert sink.persist(URL, "blog articles", payload, "abc123") is None
        assert not (tmp_path / "extractedData").exists()
        assert store.find_result(URL) is None

    def test_record_failure_replaces_success(self, store, tmp_path):
        sink = ResultSink(store, tmp_path / "extractedData", clock=fixed_clock)
        sink.persist(URL, "blog articles", PAYLOAD, "abc123")

        sink.record_failure(URL, "blog articles", ExecutionStatus.ERROR, "abc123", "boom")

        document = store.find_result(URL)
        assert document["status"] == "error"
        assert document["results"] is None
        assert document["error"] == "boom"

    def test_unwritable_directory_raises_persistence_failure(self, store, tmp_path):
        blocker = tmp_path / "extractedData"
        blocker.write_text("not a directory", encoding="utf-8")
        sink = ResultSink(store, blocker)

        with pytest.raises(PersistenceFailure):
            sink.persist(URL, "blog articles", PAYLOAD, "abc123")

"""Tests for the document store, its migrations and the program cache."""

from __future__ import annotations

import pytest

from synth_scraper.core.migrations import MIGRATIONS, migrate
from synth_scraper.core.models import SynthesizedProgram
from synth_scraper.core.program_cache import ProgramCache

URL = "https://site.example/blog"


def program_document(url=URL, source="from bs4 import BeautifulSoup\n"):
    return SynthesizedProgram(url=url, source_text=source).to_document()


class TestDocumentStore:
    def test_insert_program_never_overwrites(self, store):
        first = program_document()
        second = program_document(source="# other\nfrom bs4 import BeautifulSoup\n")

        assert store.insert_program(URL, first) is True
        assert store.insert_program(URL, second) is False
        assert store.find_program(URL)["id"] == first["id"]

    def test_upsert_result_is_idempotent_per_url(self, store):
        store.upsert_result(URL, {"url": URL, "status": "success", "results": {"a": 1}})
        store.upsert_result(URL, {"url": URL, "status": "success", "results": {"a": 2}})

        assert store.count_results() == 1
        assert store.find_result(URL)["results"] == {"a": 2}

    def test_clear_results_by_status(self, store):
        migrate(store, "up")
        store.upsert_result("https://a.example", {"status": "success"})
        store.upsert_result("https://b.example", {"status": "error"})

        assert store.clear_results("error") == 1
        assert store.find_result("https://a.example") is not None
        assert store.find_result("https://b.example") is None

    def test_clear_empties_both_collections(self, store):
        store.insert_program(URL, program_document())
        store.upsert_result(URL, {"status": "success"})

        assert store.clear() == {"programs": 1, "results": 1}
        assert store.stats()["programs"] == 0
        assert store.stats()["results"] == 0

    def test_persists_across_reopen(self, tmp_path):
        from synth_scraper.core.store import DocumentStore

        with DocumentStore(str(tmp_path / "store")) as first:
            first.insert_program(URL, program_document())

        with DocumentStore(str(tmp_path / "store")) as second:
            assert second.find_program(URL)["url"] == URL


class TestMigrations:
    def test_up_applies_all_in_order(self, store):
        ran = migrate(store, "up")

        assert ran == [m.name for m in MIGRATIONS]
        assert store.schema_version == MIGRATIONS[-1].version
        assert store.meta.get("collections") == ["programs", "results"]

    def test_up_is_idempotent(self, store):
        migrate(store, "up")
        assert migrate(store, "up") == []

    def test_down_reverts_in_reverse_order(self, store):
        migrate(store, "up")
        store.upsert_result(URL, {"status": "success"})

        ran = migrate(store, "down")

        assert ran == [m.name for m in reversed(MIGRATIONS)]
        assert store.schema_version == 0
        assert store.count_results() == 0

    def test_invalid_direction(self, store):
        with pytest.raises(ValueError):
            migrate(store, "sideways")


class TestProgramCache:
    def test_miss_then_hit(self, store, artifacts):
        cache = ProgramCache(store, artifacts)

        assert cache.lookup(URL) is None
        stored = cache.store(URL, "from bs4 import BeautifulSoup\n")
        found = cache.lookup(URL)

        assert found.id == stored.id
        assert found.source_text == stored.source_text
        assert cache.stats()["hits"] == 1
        assert cache.stats()["misses"] == 1

    def test_duplicate_store_keeps_first_program(self, store, artifacts):
        cache = ProgramCache(store, artifacts)

        first = cache.store(URL, "from bs4 import BeautifulSoup\n")
        second = cache.store(URL, "# newer\nfrom bs4 import BeautifulSoup\n")

        assert second.id == first.id
        assert cache.lookup(URL).source_text == "from bs4 import BeautifulSoup\n"

    def test_store_materializes_script(self, store, artifacts):
        program = ProgramCache(store, artifacts).store(URL, "from bs4 import BeautifulSoup\n")

        path = artifacts.scripts_dir / f"script_{program.id}.py"
        assert path.read_text(encoding="utf-8") == "from bs4 import BeautifulSoup\n"

    def test_materialize_recreates_deleted_file(self, store, artifacts):
        cache = ProgramCache(store, artifacts)
        program = cache.store(URL, "from bs4 import BeautifulSoup\n")
        cache.script_path(program).unlink()

        path = cache.materialize(cache.lookup(URL))

        assert path.exists()

    def test_invalidate_removes_document_and_script(self, store, artifacts):
        cache = ProgramCache(store, artifacts)
        program = cache.store(URL, "from bs4 import BeautifulSoup\n")

        assert cache.invalidate(URL) is True
        assert cache.lookup(URL) is None
        assert not cache.script_path(program).exists()
        assert cache.invalidate(URL) is False

"""Tests for the SearchEngine holder and the per-map pool."""

import json
import threading

import pytest

from shiplog_search.document import MapNode
from shiplog_search.engine import SearchEngine
from shiplog_search.extractors import NotesExtractor, TitleAndNotesExtractor
from shiplog_search.metrics import collector
from shiplog_search.pool import MapPool


class TestSearchEngine:
    def test_empty_before_first_build(self):
        engine = SearchEngine()
        assert engine.search("anything").is_empty
        assert engine.suggest("any") == []

    def test_rebuild_and_search(self, sample_document):
        engine = SearchEngine(name="solar")
        engine.rebuild(sample_document.nodes, sample_document.edges)
        assert engine.search("the ka shrine").node_ids == {"ka_shrine"}
        assert engine.suggest("#my") == ["#mystery", "#myth"]

    def test_default_suggestion_limit(self, sample_document):
        engine = SearchEngine(suggestion_limit=2)
        engine.rebuild(sample_document.nodes, sample_document.edges)
        assert len(engine.suggest("m")) == 2
        assert len(engine.suggest("m", limit=4)) == 4

    def test_rebuild_swaps_snapshot(self, sample_document):
        engine = SearchEngine()
        first = engine.rebuild(sample_document.nodes, sample_document.edges)
        engine.rebuild([MapNode(id="n1", title="Dark Bramble")], [])
        assert engine.snapshot is not first
        assert engine.search("#quantum").is_empty
        assert engine.search("bramble").node_ids == {"n1"}
        # the old snapshot is untouched
        assert "quantum" in first.hashtags

    def test_injected_extractor(self):
        engine = SearchEngine(extractor=TitleAndNotesExtractor())
        engine.rebuild([MapNode(id="n1", title="Probe #launch")], [])
        assert engine.search("#launch").node_ids == {"n1"}

    def test_stats(self, sample_document):
        engine = SearchEngine(name="solar")
        engine.rebuild(sample_document.nodes, sample_document.edges)
        stats = engine.stats()
        assert stats["map"] == "solar"
        assert stats["nodes"] == 12
        assert stats["edges"] == 4
        assert stats["places"] == 11
        assert stats["built_at"] is not None

    def test_records_metrics(self, sample_document):
        engine = SearchEngine(name="solar")
        engine.rebuild(sample_document.nodes, sample_document.edges)
        engine.search("#nothing-here")
        engine.suggest("quantum")
        snap = collector.snapshot()
        assert snap["index_builds_total"]["solar"] == 1
        assert snap["queries_total"][("solar", "search")] == 1
        assert snap["queries_total"][("solar", "suggest")] == 1
        assert snap["empty_results_total"]["search"] == 1

    def test_concurrent_readers_see_complete_snapshots(self, sample_document):
        engine = SearchEngine()
        engine.rebuild(sample_document.nodes, sample_document.edges)
        errors = []

        def reader():
            for _ in range(200):
                snap = engine.snapshot
                # every snapshot is either the full sample map or the tiny one
                if snap.stats()["places"] not in (11, 1):
                    errors.append(snap.stats())

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for i in range(20):
            if i % 2:
                engine.rebuild(sample_document.nodes, sample_document.edges)
            else:
                engine.rebuild([MapNode(id="n1", title="Dark Bramble")], [])
        for t in threads:
            t.join()
        assert errors == []

    def test_rebuilds_apply_in_call_order(self):
        entered = threading.Event()
        release = threading.Event()

        class GatedExtractor(NotesExtractor):
            def node_text(self, node):
                if node.id == "slow":
                    entered.set()
                    release.wait(5)
                return super().node_text(node)

        engine = SearchEngine(extractor=GatedExtractor())
        first = threading.Thread(
            target=engine.rebuild, args=([MapNode(id="slow", title="Slow Relic")], []),
        )
        first.start()
        assert entered.wait(5)

        second = threading.Thread(
            target=engine.rebuild, args=([MapNode(id="fast", title="Fast Relic")], []),
        )
        second.start()
        second.join(0.2)
        # waits for the in-flight rebuild instead of racing it
        assert second.is_alive()

        release.set()
        first.join(5)
        second.join(5)
        assert dict(engine.snapshot.full_names) == {"fast": "Fast Relic"}


class TestMapPool:
    def test_normalize_key(self):
        assert MapPool.normalize_key(" Solar ") == "solar"
        for bad in ("", None, "../etc", "-x", "a" * 65, "has space"):
            with pytest.raises(ValueError):
                MapPool.normalize_key(bad)

    def test_load_and_get(self, tmp_path, sample_document):
        pool = MapPool(str(tmp_path))
        pool.load("solar", sample_document)
        assert pool.get("SOLAR").search("#quantum").node_ids == {"quantum_moon", "tower"}
        assert pool.map_ids() == ["solar"]

    def test_reload_reuses_engine(self, tmp_path, sample_document):
        pool = MapPool(str(tmp_path))
        first = pool.load("solar", sample_document)
        sample_document.nodes[0].notes.append("#campfire")
        second = pool.load("solar", sample_document)
        assert first is second
        assert second.search("#campfire").node_ids == {"timber_hearth"}

    def test_lazy_load_from_disk(self, tmp_path, sample_map_data):
        (tmp_path / "solar.json").write_text(json.dumps(sample_map_data), encoding="utf-8")
        pool = MapPool(str(tmp_path))
        assert pool.discover() == ["solar"]
        assert pool.map_ids() == []
        engine = pool.get("solar")
        assert engine.search("old ridge").node_ids == {"old_ridge"}
        assert pool.map_ids() == ["solar"]

    def test_unknown_map(self, tmp_path):
        pool = MapPool(str(tmp_path))
        with pytest.raises(KeyError):
            pool.get("nowhere")

    def test_discover_missing_dir(self, tmp_path):
        assert MapPool(str(tmp_path / "nope")).discover() == []

    def test_remove_and_close(self, tmp_path, sample_document):
        pool = MapPool(str(tmp_path))
        pool.load("a", sample_document)
        pool.load("b", sample_document)
        assert pool.remove("a") is True
        assert pool.remove("a") is False
        pool.close_all()
        assert pool.map_ids() == []

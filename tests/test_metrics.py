"""Tests for the Prometheus metrics collector."""

from shiplog_search.metrics import MetricsCollector


class TestMetricsCollector:
    def test_request_histogram(self):
        m = MetricsCollector()
        m.record_request("get", "/v1/health", 200, 0.003)
        m.record_request("GET", "/v1/health", 200, 2.0)
        text = m.render_prometheus()
        assert 'shiplog_search_requests_total{method="GET",path="/v1/health",status="200"} 2' in text
        assert 'shiplog_search_request_duration_seconds_bucket{path="/v1/health",le="0.001"} 0' in text
        assert 'shiplog_search_request_duration_seconds_bucket{path="/v1/health",le="0.005"} 1' in text
        assert 'shiplog_search_request_duration_seconds_bucket{path="/v1/health",le="+Inf"} 2' in text
        assert 'shiplog_search_request_duration_seconds_count{path="/v1/health"} 2' in text

    def test_query_counters(self):
        m = MetricsCollector()
        m.record_query("solar", "search", empty=True)
        m.record_query("solar", "search", empty=False)
        m.record_query("solar", "suggest", empty=False)
        text = m.render_prometheus()
        assert 'shiplog_search_queries_total{map="solar",kind="search"} 2' in text
        assert 'shiplog_search_queries_total{map="solar",kind="suggest"} 1' in text
        assert 'shiplog_search_empty_results_total{kind="search"} 1' in text

    def test_index_build_replaces_sizes(self):
        m = MetricsCollector()
        m.record_index_build("solar", 0.5, {"places": 3, "tags": 2})
        m.record_index_build("solar", 0.25, {"places": 4})
        snap = m.snapshot()
        assert snap["index_builds_total"] == {"solar": 2}
        assert snap["index_build_seconds"] == {"solar": 0.25}
        assert snap["index_size"] == {("solar", "places"): 4}
        text = m.render_prometheus()
        assert 'shiplog_search_index_entries{map="solar",structure="places"} 4' in text
        assert 'shiplog_search_index_build_seconds{map="solar"} 0.25' in text

    def test_forget_map_keeps_counters(self):
        m = MetricsCollector()
        m.record_index_build("solar", 0.1, {"places": 3})
        m.forget_map("solar")
        snap = m.snapshot()
        assert snap["index_size"] == {}
        assert snap["index_build_seconds"] == {}
        assert snap["index_builds_total"] == {"solar": 1}

    def test_label_escaping(self):
        m = MetricsCollector()
        m.record_query('we"ird', "search", empty=False)
        assert 'map="we\\"ird"' in m.render_prometheus()

    def test_reset(self):
        m = MetricsCollector()
        m.record_query("solar", "search", empty=True)
        m.reset()
        assert m.snapshot()["queries_total"] == {}

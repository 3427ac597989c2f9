import io
import json
import threading
from datetime import datetime
from unittest.mock import MagicMock

import pandas as pd
import pytest
import requests

from logtrack.config import Settings
from logtrack.errors import InputEmpty, LogAnalysisError, NoParseableLines, UnsupportedFormat
from logtrack.pipeline import analyze, count_data_lines, detect_anomalies
from logtrack.schemas import LogFormat, Severity
from logtrack.ingestion.unknown import ExternalLogParser
from logtrack.utils.ai_summary import AISummaryGenerator, build_summary_prompt
from logtrack.utils.cache import AnalysisCache
from logtrack.utils.llm_client import ChatCompletionClient, strip_code_fence
from logtrack.utils.report_generator import CSV_COLUMNS, ReportGenerator, build_summary

def apache_line(ip, minute=0, second=0, hour=10, method="GET", path="/index.html", status=200, size=1024):
    timestamp = f"16/Oct/2024:{hour:02d}:{minute:02d}:{second:02d} +0000"
    return f'{ip} - - [{timestamp}] "{method} {path} HTTP/1.1" {status} {size}'

def apache_log(lines):
    return "\n".join(lines)

# 30 sources, one request each, one per minute during business hours
CLEAN_TRAFFIC = apache_log(apache_line(f"10.0.0.{i}", minute=i) for i in range(30))

def high_volume_traffic():
    lines = [apache_line("203.0.113.7", minute=i // 60, second=i % 60) for i in range(300)]
    for source in range(29):
        lines += [apache_line(f"10.0.1.{source}", minute=m * 5) for m in range(10)]
    return apache_log(lines)

MIXED_TRAFFIC = apache_log(
    [apache_line("198.51.100.4", minute=i, path="/login", method="POST", status=401) for i in range(15)]
    + [apache_line("198.51.100.9", minute=1, path="/admin/config.php")]
    + [apache_line("198.51.100.12", minute=2, path="/exports/all.zip", size=75_000_000)]
    + [apache_line("198.51.100.20", second=i // 2) for i in range(12)]
    + [apache_line("10.0.0.1", minute=i) for i in range(3)]
)

class TestAnalyzeErrors:
    """Caller-visible failures"""

    def test_empty_input(self):
        with pytest.raises(InputEmpty):
            analyze("")

    def test_whitespace_input(self):
        with pytest.raises(InputEmpty):
            analyze("   \n\t\n  ")

    def test_no_parseable_lines(self):
        with pytest.raises(NoParseableLines) as exc_info:
            analyze("first garbage line\nsecond garbage line")

        error = exc_info.value
        assert error.detected_format == "unknown"
        assert error.total_lines == 2
        assert error.skipped_lines == 2
        assert "none of 2 lines matched" in str(error)
        assert error.to_dict()["total_lines"] == 2

    def test_no_data_lines(self):
        with pytest.raises(NoParseableLines) as exc_info:
            analyze("#Software: Microsoft IIS\n#Fields: date time c-ip")

        assert exc_info.value.detected_format == "w3c"
        assert exc_info.value.total_lines == 0
        assert "no data lines" in str(exc_info.value)

    def test_input_empty_message(self):
        assert InputEmpty().to_dict() == {"error": "Log content is empty"}

class TestAnalyzeScenarios:
    """End-to-end behaviour of analyze()"""

    def test_clean_traffic_has_no_anomalies(self):
        result = analyze(CLEAN_TRAFFIC)

        assert result.detected_format == LogFormat.APACHE
        assert len(result.events) == 30
        assert result.anomalies == []
        assert result.summary.anomaly_count == 0

    def test_high_volume_source_is_critical(self):
        result = analyze(high_volume_traffic())
        volume = [a for a in result.anomalies if a.type == "high_request_volume"]

        assert len(volume) == 1
        assert volume[0].source_id == "203.0.113.7"
        assert volume[0].count == 300
        assert volume[0].severity == Severity.CRITICAL

    def test_repeated_unauthorized_requests(self):
        result = analyze(MIXED_TRAFFIC)
        failed = [a for a in result.anomalies if a.type == "multiple_failed_attempts"]

        assert len(failed) == 1
        assert failed[0].source_id == "198.51.100.4"
        assert failed[0].count == 15
        assert failed[0].severity == Severity.CRITICAL
        assert failed[0].resources == ["/login"]

    def test_sensitive_resource_access(self):
        result = analyze(apache_line("198.51.100.9", path="/admin/config.php"))
        suspicious = [a for a in result.anomalies if a.type == "suspicious_resource_access"]

        assert suspicious
        for anomaly in suspicious:
            assert anomaly.severity == Severity.CRITICAL
            assert 85 <= anomaly.confidence <= 95

    def test_rapid_requests(self):
        text = apache_log(apache_line("198.51.100.20", second=i // 2) for i in range(12))
        result = analyze(text)
        rapid = [a for a in result.anomalies if a.type == "rapid_sequential_requests"]

        assert len(rapid) == 1
        assert rapid[0].source_id == "198.51.100.20"
        assert rapid[0].window_seconds <= 10

    def test_large_transfer(self):
        result = analyze(MIXED_TRAFFIC)
        large = [a for a in result.anomalies if a.type == "large_data_transfer"]

        assert len(large) == 1
        assert large[0].megabytes == 75.0
        assert large[0].line_number == 17

    def test_format_hint(self):
        result = analyze(CLEAN_TRAFFIC, format_hint="nginx")
        assert result.detected_format == LogFormat.NGINX

    def test_unsupported_format_hint(self):
        with pytest.raises(UnsupportedFormat) as exc_info:
            analyze(CLEAN_TRAFFIC, format_hint="foo")

        assert isinstance(exc_info.value, LogAnalysisError)
        assert exc_info.value.to_dict()["format_hint"] == "foo"

    def test_skipped_lines_are_counted(self):
        result = analyze(CLEAN_TRAFFIC + "\nnot a log line\n\n")

        assert result.total_lines == 31
        assert result.skipped_lines == 1

    def test_thresholds_come_from_settings(self):
        config = Settings(_env_file=None, FAILED_ATTEMPTS_THRESHOLD=20)
        result = analyze(MIXED_TRAFFIC, config=config)

        assert not [a for a in result.anomalies if a.type == "multiple_failed_attempts"]

class TestAnalyzeProperties:
    def test_apache_line_numbers_unique_and_increasing(self):
        result = analyze(MIXED_TRAFFIC)
        numbers = [e.line_number for e in result.events]

        assert len(result.events) == len(MIXED_TRAFFIC.splitlines())
        assert numbers == sorted(set(numbers))

    def test_idempotent(self):
        first = analyze(MIXED_TRAFFIC)
        second = analyze(MIXED_TRAFFIC)

        assert first.model_dump() == second.model_dump()

    def test_anomalies_are_ranked_and_bounded(self):
        anomalies = analyze(MIXED_TRAFFIC).anomalies
        severities = [a.severity for a in anomalies]

        assert len(anomalies) >= 4
        assert all(0 <= a.confidence <= 95 for a in anomalies)
        assert severities == sorted(severities, key=lambda s: s != Severity.CRITICAL)
        for severity in (Severity.CRITICAL, Severity.WARNING):
            band = [a.confidence for a in anomalies if a.severity == severity]
            assert band == sorted(band, reverse=True)

    def test_detect_anomalies_without_events(self):
        assert detect_anomalies([]) == []

    def test_count_data_lines_ignores_w3c_directives(self):
        text = "#Fields: date time\n2024-10-16 10:00:00\n\n#Remark"
        assert count_data_lines(text, LogFormat.W3C) == 1
        assert count_data_lines(text, LogFormat.APACHE) == 3

class TestExternalParserIntegration:
    """analyze() with a configured external parser"""

    def setup_method(self):
        self.client = MagicMock(spec=ChatCompletionClient)

    def test_unknown_format_is_structured_externally(self):
        self.client.complete.return_value = json.dumps([
            {"source_id": "node-1", "timestamp": "2024-10-16T10:00:00", "resource": "/.git/HEAD"},
        ])
        result = analyze("node-1|2024-10-16T10:00:00|/.git/HEAD", external_parser=ExternalLogParser(self.client))

        assert result.detected_format == LogFormat.UNKNOWN
        assert result.events[0].source_id == "node-1"
        assert result.anomalies[0].type == "suspicious_resource_access"

    def test_collaborator_timeout_falls_back_to_apache(self):
        self.client.complete.side_effect = requests.Timeout("slow")
        # "-" byte count is not detected as Apache but the fallback extractor accepts it
        text = '1.2.3.4 - - [16/Oct/2024:10:00:00 +0000] "GET / HTTP/1.1" 304 -'
        result = analyze(text, external_parser=ExternalLogParser(self.client))

        assert result.detected_format == LogFormat.UNKNOWN
        assert len(result.events) == 1
        assert result.events[0].size_bytes == 0

    def test_skipped_lines_count_only_the_sample(self):
        self.client.complete.return_value = json.dumps([
            {"source_id": f"node-{i}", "timestamp": "2024-10-16T10:00:00"} for i in range(20)
        ])
        text = "\n".join(f"node-{i}|2024-10-16T10:00:00|/status" for i in range(100))
        result = analyze(text, external_parser=ExternalLogParser(self.client))

        assert result.total_lines == 100
        assert result.sampled_lines == 20
        assert result.skipped_lines == 0
        assert len(result.events) == 20

    def test_known_formats_are_not_sampled(self):
        result = analyze(CLEAN_TRAFFIC, external_parser=ExternalLogParser(self.client))
        assert result.sampled_lines is None

    def test_known_formats_never_call_collaborator(self):
        analyze(CLEAN_TRAFFIC, external_parser=ExternalLogParser(self.client))
        self.client.complete.assert_not_called()

class TestReports:
    """Summary and export"""

    def setup_method(self):
        self.result = analyze(MIXED_TRAFFIC)
        self.report_gen = ReportGenerator()

    def test_summary(self):
        summary = build_summary(self.result.events, self.result.anomalies)

        assert summary.total_events == len(self.result.events)
        assert summary.unique_sources == 5
        assert summary.first_seen == datetime(2024, 10, 16, 10, 0, 0)
        assert summary.last_seen == datetime(2024, 10, 16, 10, 14, 0)
        assert summary.critical_count + summary.warning_count == summary.anomaly_count
        assert summary == self.result.summary

    def test_empty_summary(self):
        summary = build_summary([], [])

        assert summary.first_seen is None
        assert summary.anomaly_count == 0

    def test_json_report(self):
        report = json.loads(self.report_gen.generate_json_report(self.result))

        assert report["detected_format"] == "apache"
        assert len(report["anomalies"]) == len(self.result.anomalies)
        assert "events" in report

        without_events = json.loads(self.report_gen.generate_json_report(self.result, include_events=False))
        assert "events" not in without_events

    def test_csv_report(self):
        df = pd.read_csv(io.StringIO(self.report_gen.generate_csv_report(self.result.anomalies)))

        assert list(df.columns) == CSV_COLUMNS
        assert len(df) == len(self.result.anomalies)
        assert df.iloc[0]["severity"] == "critical"
        assert set(df["title"]) >= {"Multiple Failed Attempts", "Large Data Transfer"}

    def test_csv_report_without_anomalies_keeps_header(self):
        csv_data = self.report_gen.generate_csv_report([])

        assert csv_data.splitlines() == [",".join(CSV_COLUMNS)]
        assert pd.read_csv(io.StringIO(csv_data)).empty

class TestAnalysisCache:
    def setup_method(self):
        self.cache = AnalysisCache(version="1", max_entries=2)
        self.result = analyze(CLEAN_TRAFFIC)

    def test_get_and_put(self):
        assert self.cache.get(CLEAN_TRAFFIC) is None
        self.cache.put(CLEAN_TRAFFIC, self.result)

        assert self.cache.get(CLEAN_TRAFFIC) is self.result
        assert self.cache.get(CLEAN_TRAFFIC, "nginx") is None

    def test_key_contains_version_and_hint(self):
        key = self.cache.make_key("abc", "json")
        assert key.startswith("1:json:")
        assert self.cache.make_key("abc") != key

    def test_least_recently_used_is_evicted(self):
        self.cache.put("a", self.result)
        self.cache.put("b", self.result)
        self.cache.get("a")
        self.cache.put("c", self.result)

        assert len(self.cache) == 2
        assert self.cache.get("b") is None
        assert self.cache.get("a") is self.result

    def test_external_parser_flag_is_part_of_key(self):
        self.cache.put(CLEAN_TRAFFIC, self.result)

        assert self.cache.make_key("abc", external=True) != self.cache.make_key("abc")
        assert self.cache.get(CLEAN_TRAFFIC, external=True) is None
        assert self.cache.get(CLEAN_TRAFFIC) is self.result

    def test_concurrent_put_and_get(self):
        cache = AnalysisCache(version="1", max_entries=1)
        errors = []

        def worker(n):
            try:
                for i in range(2000):
                    text = f"{n}-{i % 3}"
                    cache.put(text, self.result)
                    cache.get(text)
                    cache.get(f"{(n + 1) % 8}-{i % 3}")
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(cache) == 1

    def test_bump_version_drops_entries(self):
        self.cache.put("a", self.result)
        self.cache.bump_version("2")

        assert len(self.cache) == 0
        assert self.cache.make_key("a").startswith("2:")

class TestChatCompletionClient:
    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            ChatCompletionClient(api_key="")

    def test_from_settings_without_key(self):
        assert ChatCompletionClient.from_settings(Settings(_env_file=None, OPENAI_API_KEY=None)) is None

    def test_complete(self, monkeypatch):
        response = MagicMock()
        response.json.return_value = {"choices": [{"message": {"content": "  hello  "}}]}
        post = MagicMock(return_value=response)
        monkeypatch.setattr(requests, "post", post)

        client = ChatCompletionClient(api_key="sk-test", timeout=3)
        assert client.complete([{"role": "user", "content": "hi"}]) == "hello"

        _, kwargs = post.call_args
        assert kwargs["timeout"] == 3
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["json"]["temperature"] == 0

    def test_malformed_body(self, monkeypatch):
        response = MagicMock()
        response.json.return_value = {"error": "quota"}
        monkeypatch.setattr(requests, "post", MagicMock(return_value=response))

        with pytest.raises(ValueError):
            ChatCompletionClient(api_key="sk-test").complete([])

    def test_strip_code_fence(self):
        assert strip_code_fence("```json\n[1]\n```") == "[1]"
        assert strip_code_fence("  [1] ") == "[1]"

class TestAISummary:
    def test_prompt_and_call(self):
        result = analyze(MIXED_TRAFFIC)
        client = MagicMock(spec=ChatCompletionClient)
        client.complete.return_value = "Elevated risk."

        text = AISummaryGenerator(client).summarize(result.summary, result.anomalies)

        assert text == "Elevated risk."
        messages = client.complete.call_args[0][0]
        assert f"Critical Security Issues: {result.summary.critical_count}" in messages[1]["content"]
        assert client.complete.call_args[1] == {"temperature": 0.7, "max_tokens": 300}

    def test_prompt_without_anomalies(self):
        summary = build_summary([], [])
        assert "- None" in build_summary_prompt(summary, [])

#!/usr/bin/env python3
"""
LogTrack Command Line Interface
Runs format detection and anomaly analysis on a log file.
"""
import argparse
import logging
import sys
from datetime import datetime

from logtrack.config import settings
from logtrack.errors import LogAnalysisError
from logtrack.ingestion.universal_parser import UniversalLogParser
from logtrack.ingestion.unknown import ExternalLogParser
from logtrack.pipeline import analyze
from logtrack.schemas import LogFormat
from logtrack.utils.llm_client import ChatCompletionClient
from logtrack.utils.report_generator import ReportGenerator

FORMAT_CHOICES = [f.value for f in LogFormat if f != LogFormat.UNKNOWN]

def read_log_file(filename):
    with open(filename, encoding='utf-8', errors='replace') as f:
        return f.read()

def print_result(filename, result):
    summary = result.summary
    print(f"Analyzing {filename} as {result.detected_format.value} logs")
    print(f"Analysis finished at {datetime.now().isoformat()}")
    print("-" * 50)
    print(f"Lines: {result.total_lines} ({result.skipped_lines} skipped)")
    print(f"Events: {summary.total_events} from {summary.unique_sources} sources")
    if summary.first_seen:
        print(f"Time span: {summary.first_seen.isoformat()} -> {summary.last_seen.isoformat()}")
    print(f"Anomalies: {summary.anomaly_count} "
          f"({summary.critical_count} critical, {summary.warning_count} warning)")
    print("-" * 50)

    for anomaly in result.anomalies:
        print(f"[{anomaly.severity.value.upper():8}] {anomaly.title} ({anomaly.confidence}%)")
        print(f"           {anomaly.explanation}")

def analyze_file(filename, log_format=None, as_json=False, as_csv=False, offline=False):
    """Analyze a log file and print the findings. Returns the exit status."""
    client = None if offline else ChatCompletionClient.from_settings(settings)
    external_parser = ExternalLogParser(client) if client else None

    try:
        result = analyze(read_log_file(filename), external_parser=external_parser, format_hint=log_format)
    except LogAnalysisError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    report_gen = ReportGenerator()
    if as_json:
        print(report_gen.generate_json_report(result))
    elif as_csv:
        print(report_gen.generate_csv_report(result.anomalies), end='')
    else:
        print_result(filename, result)
    return 0

def detect_file(filename):
    """Print the detected format of a log file."""
    log_format = UniversalLogParser.detect_format(read_log_file(filename), settings.DETECTION_SAMPLE_LINES)
    print(log_format.value)
    return 0

def main(argv=None):
    parser = argparse.ArgumentParser(description="LogTrack CLI - Log Anomaly Detection")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show diagnostic logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Analyze a log file")
    analyze_parser.add_argument("file", help="Log file to analyze")
    analyze_parser.add_argument("--format", dest="log_format", choices=FORMAT_CHOICES,
                                help="Skip detection and parse as this format")
    output_group = analyze_parser.add_mutually_exclusive_group()
    output_group.add_argument("--json", action="store_true", help="Print the full result as JSON")
    output_group.add_argument("--csv", action="store_true", help="Print anomalies as CSV")
    analyze_parser.add_argument("--offline", action="store_true",
                                help="Never call the external parser for unknown formats")

    # Detect command
    detect_parser = subparsers.add_parser("detect", help="Detect the format of a log file")
    detect_parser.add_argument("file", help="Log file to inspect")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.LOG_LEVEL,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr
    )

    try:
        if args.command == "analyze":
            return analyze_file(args.file, args.log_format, args.json, args.csv, args.offline)
        elif args.command == "detect":
            return detect_file(args.file)
    except OSError as e:
        print(f"Error: cannot read {args.file}: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 0

if __name__ == "__main__":
    sys.exit(main())

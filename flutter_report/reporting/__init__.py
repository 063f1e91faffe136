"""Test result reporting: summary generation and YAML output."""

from flutter_report.reporting.reporter import print_test_results, save_test_report
from flutter_report.reporting.summary import TestSummary, generate_test_summary

__all__ = [
    "TestSummary",
    "generate_test_summary",
    "print_test_results",
    "save_test_report",
]

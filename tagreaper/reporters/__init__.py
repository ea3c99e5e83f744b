"""
Report Generators
=================

Output formatters for deletion reports.

Available Reporters
-------------------
CLIReporter
    Rich terminal tables of per-type counts and of failed deletions from a
    request log.
JSONReporter
    JSON export for programmatic access.

Example
-------
>>> from tagreaper.reporters import CLIReporter, JSONReporter
>>>
>>> CLIReporter().report(deletion_report)
>>> json_str = JSONReporter().to_string(deletion_report)
"""

from tagreaper.reporters.cli_reporter import CLIReporter
from tagreaper.reporters.json_reporter import JSONReporter

__all__ = [
    "CLIReporter",
    "JSONReporter",
]

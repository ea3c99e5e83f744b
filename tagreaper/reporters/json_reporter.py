"""
JSON Reporter Module
====================

Exports deletion reports to JSON for programmatic access.

Example
-------
>>> from tagreaper.reporters import JSONReporter
>>>
>>> reporter = JSONReporter(output_path="report.json")
>>> filepath = reporter.report(deletion_report)
>>>
>>> # Or get as string
>>> json_str = reporter.to_string(deletion_report)

Output Structure
----------------
::

    {
      "metadata": {
        "dry_run": false,
        "aborted": false,
        "error": null,
        "totals": {"deleted": 12, "failed": 0, "skipped": 1, "dry_run": 0},
        "start_time": "2024-01-15T10:30:00+00:00",
        "end_time": "2024-01-15T10:34:12+00:00"
      },
      "by_type": {"AWS::EC2::Subnet": {"deleted": 2, ...}, ...},
      "summaries": [...]
    }
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from tagreaper.orchestrator import DeletionReport

# Module logger
logger = logging.getLogger(__name__)


class JSONReporter:
    """
    Reporter for exporting deletion reports to JSON.

    Parameters
    ----------
    output_path : str, optional
        Path for the output file. If not provided, generates a
        timestamped filename in the current directory.
    indent : int, default=2
        JSON indentation level. Set to None for compact output.
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        indent: Optional[int] = 2,
    ) -> None:
        self.output_path = output_path
        self.indent = indent
        logger.debug(f"Initialized JSONReporter (output_path={output_path})")

    def _get_output_path(self) -> Path:
        if self.output_path:
            return Path(self.output_path)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return Path(f"tagreaper_report_{timestamp}.json")

    def report(self, report: DeletionReport) -> str:
        """
        Write the report to a JSON file.

        Parameters
        ----------
        report : DeletionReport
            Report of a finished run.

        Returns
        -------
        str
            Path to the created JSON file.
        """
        output_path = self._get_output_path()
        data = self.to_dict(report)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=self.indent, default=str)

        logger.info(f"JSON report written: {output_path}")
        return str(output_path)

    def to_string(self, report: DeletionReport) -> str:
        """Convert the report to a JSON string without writing a file."""
        return json.dumps(self.to_dict(report), indent=self.indent, default=str)

    def to_dict(self, report: DeletionReport) -> Dict[str, Any]:
        data = report.to_dict()
        return {
            "metadata": {
                "dry_run": data["dry_run"],
                "aborted": data["aborted"],
                "error": data["error"],
                "totals": data["totals"],
                "start_time": data["start_time"],
                "end_time": data["end_time"],
            },
            "by_type": data["by_type"],
            "summaries": data["summaries"],
        }

    def __repr__(self) -> str:
        return f"JSONReporter(output_path={self.output_path!r}, indent={self.indent})"

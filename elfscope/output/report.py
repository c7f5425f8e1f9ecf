"""
elfscope Report Generator
==========================

Writes an :class:`~elfscope.core.models.ElfReport` as a JSON document for
machine consumption and diffing between builds.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from elfscope import __version__
from elfscope.core.models import ElfReport


class ReportGenerator:
    """Serialises reports to JSON.

    Usage::

        gen = ReportGenerator()
        text = gen.to_json(report)
        gen.generate_json(report, "out/ls.json")
    """

    def build(self, report: ElfReport) -> dict[str, Any]:
        """Wrap *report* in the report envelope."""
        return {
            "report_type": "elfscope_inspection",
            "version": __version__,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "elf": report.model_dump(mode="json"),
        }

    def to_json(self, report: ElfReport, indent: int = 2) -> str:
        return json.dumps(self.build(report), indent=indent, ensure_ascii=False, default=str)

    def generate_json(self, report: ElfReport, output_path: str | Path) -> str:
        """Write the JSON report to *output_path*.

        Returns:
            The absolute path of the generated report.
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.build(report), f, indent=2, ensure_ascii=False, default=str)

        return str(path.resolve())

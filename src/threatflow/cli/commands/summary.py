"""Summary command - print node and edge counts."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from threatflow import console


@dataclass
class Summary:
    """Print per-kind counts without writing any files."""

    facts: Path = field(
        metadata={"help": "Fact JSON file or directory of JSON files"},
    )
    by_type: bool = field(
        default=False,
        metadata={"help": "Also break data flows down by flow type"},
    )

    def run(self) -> int:
        from threatflow.analyzer import analyze_path

        if not self.facts.exists():
            console.error(f"facts not found: {self.facts}")
            return 1

        result = analyze_path(self.facts)
        console.counts_table(
            f"Project Analysis Summary for {result.project_name}",
            result.counts(),
        )
        if self.by_type:
            console.counts_table("Data Flows by Type", result.flows_by_type())
        return 0

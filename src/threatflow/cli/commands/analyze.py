"""Analyze command - classify facts, infer flows, write outputs."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from threatflow import console
from threatflow.config import DEFAULT_ID_MODE, DEFAULT_OUTPUT_FORMAT


@dataclass
class Analyze:
    """Build a data flow diagram from a fact file or directory."""

    facts: Path = field(
        metadata={"help": "Fact JSON file or directory of JSON files"},
    )
    output: Path = field(
        default=Path("dfd-output"),
        metadata={"help": "Directory for reports and diagrams"},
    )
    format: Literal["markdown", "json", "csv", "html"] = field(
        default=DEFAULT_OUTPUT_FORMAT,
        metadata={"help": "Report format"},
    )
    no_diagrams: bool = field(
        default=False,
        metadata={"help": "Skip DOT and Mermaid diagram output"},
    )
    project_name: str | None = field(
        default=None,
        metadata={"help": "Project name (defaults to the facts path stem)"},
    )
    id_mode: Literal["counter", "hash", "uuid"] = field(
        default=DEFAULT_ID_MODE,
        metadata={"help": "How data flow ids are generated"},
    )
    strict: bool = field(
        default=False,
        metadata={"help": "Fail on unreadable fact files instead of skipping"},
    )

    def run(self) -> int:
        """Execute the analyze command."""
        from threatflow.analyzer import analyze_path
        from threatflow.render import write_diagrams, write_report

        if not self.facts.exists():
            console.error(f"facts not found: {self.facts}")
            return 1

        result = analyze_path(
            self.facts,
            project_name=self.project_name,
            id_mode=self.id_mode,
            strict=self.strict,
        )

        written = write_report(result, self.output, self.format)
        if not self.no_diagrams:
            written += write_diagrams(result, self.output)

        console.header(f"Analysis of {result.project_name}")
        for kind, count in result.counts().items():
            console.key_value(kind.replace("_", " "), count, indent=2)
        skipped = result.project_metadata.get("skipped_facts", "0")
        if skipped != "0":
            console.warning(f"{skipped} fact(s) could not be classified")

        console.subheader("\nWritten")
        for path in written:
            console.key_value("file", path, indent=2)
        console.success("done")
        return 0

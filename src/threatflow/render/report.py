"""Report writers: JSON, CSV, Markdown and HTML."""

from __future__ import annotations

import csv
import json
from collections.abc import Callable
from datetime import datetime
from html import escape
from pathlib import Path

import structlog

from threatflow.errors import UnknownFormatError
from threatflow.model import DataFlow
from threatflow.result import AnalysisResult

logger = structlog.get_logger(__name__)

JSON_FILENAME = "analysis-result.json"
MARKDOWN_FILENAME = "analysis-result.md"
HTML_FILENAME = "analysis-result.html"

CSV_FILENAMES = {
    "data_structures": "data-structures.csv",
    "data_flows": "data-flows.csv",
    "external_entities": "external-entities.csv",
    "processes": "processes.csv",
    "data_stores": "data-stores.csv",
}

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _flow_row(result: AnalysisResult, flow: DataFlow) -> list[str]:
    return [
        result.node_label(flow.source_id),
        result.node_label(flow.destination_id),
        result.data_structure_name(flow.data_structure_id),
        flow.type.value,
        flow.protocol or "",
        flow.description,
    ]


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


def write_json(result: AnalysisResult, output_dir: Path) -> list[Path]:
    path = output_dir / JSON_FILENAME
    path.write_text(
        json.dumps(result.to_dict(), indent=2) + "\n", encoding="utf-8"
    )
    return [path]


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


def _csv_rows(result: AnalysisResult) -> dict[str, list[list[str]]]:
    structures = [
        ["Name", "Type", "Description", "External", "Source File", "Fields"]
    ]
    for ds in result.data_structures:
        fields = "; ".join(
            f"{f.name}: {f.type}" + (" [SENSITIVE]" if f.sensitive else "")
            for f in ds.fields
        )
        structures.append(
            [
                ds.name,
                ds.type.value,
                ds.description,
                str(ds.external).lower(),
                ds.source_path,
                fields,
            ]
        )

    flows = [
        [
            "Source",
            "Destination",
            "Data Structure",
            "Type",
            "Protocol",
            "External",
            "Description",
        ]
    ]
    for flow in result.data_flows:
        row = _flow_row(result, flow)
        row.insert(5, str(flow.external).lower())
        flows.append(row)

    entities = [["Name", "Type", "Description", "Protocols"]]
    for entity in result.external_entities:
        entities.append(
            [
                entity.name,
                entity.type.value,
                entity.description,
                "; ".join(entity.protocols),
            ]
        )

    processes = [
        [
            "ID",
            "Name",
            "Description",
            "Source File",
            "Input Data Structures",
            "Output Data Structures",
        ]
    ]
    for p in result.processes:
        processes.append(
            [
                p.id,
                p.name,
                p.description,
                p.source_path,
                "; ".join(p.input_ids),
                "; ".join(p.output_ids),
            ]
        )

    stores = [["ID", "Name", "Type", "Description", "Data Structures"]]
    for s in result.data_stores:
        stores.append(
            [
                s.id,
                s.name,
                s.type.value,
                s.description,
                "; ".join(s.data_structure_ids),
            ]
        )

    return {
        "data_structures": structures,
        "data_flows": flows,
        "external_entities": entities,
        "processes": processes,
        "data_stores": stores,
    }


def write_csv(result: AnalysisResult, output_dir: Path) -> list[Path]:
    written = []
    for kind, rows in _csv_rows(result).items():
        path = output_dir / CSV_FILENAMES[kind]
        with path.open("w", newline="", encoding="utf-8") as f:
            csv.writer(f).writerows(rows)
        written.append(path)
    return written


# ---------------------------------------------------------------------------
# Markdown
# ---------------------------------------------------------------------------


def _md_cell(text: str | None) -> str:
    return (text or "").replace("|", "\\|").replace("\n", " ")


def render_markdown(
    result: AnalysisResult, generated_at: datetime | None = None
) -> str:
    generated_at = generated_at or datetime.now()
    md = [
        f"# Data Flow Analysis - {result.project_name}",
        "",
        f"Generated on: {generated_at.strftime(_TIMESTAMP_FORMAT)}",
        "",
        result.project_description,
        "",
        "## Summary",
        "",
    ]
    for kind, count in result.counts().items():
        md.append(f"- {kind.replace('_', ' ').title()}: {count}")
    md += ["", "## Data Structures", ""]

    for ds in result.data_structures:
        suffix = " [EXTERNAL]" if ds.external else ""
        md += [f"### {ds.name}{suffix}", "", f"- **Type**: {ds.type.value}"]
        if ds.description:
            md.append(f"- **Description**: {ds.description}")
        md += [f"- **Source File**: {ds.source_path}", "", "#### Fields", ""]
        if not ds.fields:
            md += ["*No fields found*", ""]
            continue
        md += [
            "| Field | Type | Description |",
            "|-------|------|-------------|",
        ]
        for f in ds.fields:
            name = f"**{f.name}** [SENSITIVE]" if f.sensitive else f.name
            ftype = f.type + (" [Collection]" if f.collection else "")
            md.append(
                f"| {_md_cell(name)} | {_md_cell(ftype)} "
                f"| {_md_cell(f.description)} |"
            )
        md.append("")

    md += ["## External Entities", ""]
    if not result.external_entities:
        md += ["*No external entities found*", ""]
    else:
        md += [
            "| Name | Type | Description | Protocols |",
            "|------|------|-------------|-----------|",
        ]
        for e in result.external_entities:
            md.append(
                f"| {_md_cell(e.name)} | {e.type.value} "
                f"| {_md_cell(e.description)} "
                f"| {_md_cell(', '.join(e.protocols))} |"
            )
        md.append("")

    md += ["## Processes", ""]
    for p in result.processes:
        md += [f"### {p.name}", ""]
        if p.description:
            md.append(f"- **Description**: {p.description}")
        md += [f"- **Source File**: {p.source_path}", ""]
        for title, ids in (("Inputs", p.input_ids), ("Outputs", p.output_ids)):
            md += [f"#### {title}", ""]
            if ids:
                md += [f"- {i}" for i in ids]
            else:
                md.append(f"*No {title.lower()[:-1]} data structures found*")
            md.append("")

    md += ["## Data Stores", ""]
    if not result.data_stores:
        md += ["*No data stores found*", ""]
    for s in result.data_stores:
        md += [f"### {s.name}", "", f"- **Type**: {s.type.value}"]
        if s.description:
            md.append(f"- **Description**: {s.description}")
        md += ["", "#### Stored Data Structures", ""]
        if s.data_structure_ids:
            md += [f"- {i}" for i in s.data_structure_ids]
        else:
            md.append("*No data structures found*")
        md.append("")

    md += ["## Data Flows", ""]
    if not result.data_flows:
        md += ["*No data flows found*", ""]
    else:
        md += [
            "| Source | Destination | Data Structure | Type | Protocol "
            "| Description |",
            "|--------|-------------|----------------|------|----------"
            "|-------------|",
        ]
        for flow in result.data_flows:
            cells = " | ".join(_md_cell(c) for c in _flow_row(result, flow))
            md.append(f"| {cells} |")
        md.append("")

    return "\n".join(md)


def write_markdown(result: AnalysisResult, output_dir: Path) -> list[Path]:
    path = output_dir / MARKDOWN_FILENAME
    path.write_text(render_markdown(result), encoding="utf-8")
    return [path]


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

_HTML_STYLE = """\
    body { font-family: Arial, sans-serif; margin: 20px; }
    h1 { color: #2c3e50; }
    h2 { color: #3498db; margin-top: 30px; }
    table { border-collapse: collapse; width: 100%; margin-bottom: 20px; }
    th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }
    th { background-color: #f2f2f2; }
    tr:nth-child(even) { background-color: #f9f9f9; }
    .sensitive { color: red; font-weight: bold; }
    .external { color: orange; }"""


def _html_list(items: list[str]) -> str:
    return "<ul>" + "".join(f"<li>{escape(i)}</li>" for i in items) + "</ul>"


def _html_table(headers: list[str], rows: list[list[str]]) -> list[str]:
    """Build a table; cell values are expected to be escaped already."""
    out = [
        "  <table>",
        "    <tr>" + "".join(f"<th>{h}</th>" for h in headers) + "</tr>",
    ]
    for row in rows:
        cells = "".join(f"<td>{c}</td>" for c in row)
        out.append(f"    <tr>{cells}</tr>")
    out.append("  </table>")
    return out


def render_html(
    result: AnalysisResult, generated_at: datetime | None = None
) -> str:
    generated_at = generated_at or datetime.now()
    title = escape(f"Data Flow Analysis - {result.project_name}")
    out = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '  <meta charset="UTF-8">',
        f"  <title>{title}</title>",
        "  <style>",
        _HTML_STYLE,
        "  </style>",
        "</head>",
        "<body>",
        f"  <h1>{title}</h1>",
        f"  <p>Generated on: {generated_at.strftime(_TIMESTAMP_FORMAT)}</p>",
        f"  <p>{escape(result.project_description)}</p>",
        "  <h2>Summary</h2>",
        "  <ul>",
    ]
    for kind, count in result.counts().items():
        out.append(f"    <li>{kind.replace('_', ' ').title()}: {count}</li>")
    out.append("  </ul>")

    rows = []
    for ds in result.data_structures:
        if ds.external:
            name = (
                f'<span class="external">{escape(ds.name)} [EXTERNAL]</span>'
            )
        else:
            name = escape(ds.name)
        fields = "".join(
            ('<li class="sensitive">' if f.sensitive else "<li>")
            + f"{escape(f.name)}: {escape(f.type)}</li>"
            for f in ds.fields
        )
        rows.append(
            [
                name,
                ds.type.value,
                escape(ds.description),
                f"<ul>{fields}</ul>",
            ]
        )
    out.append("  <h2>Data Structures</h2>")
    out += _html_table(["Name", "Type", "Description", "Fields"], rows)

    out.append("  <h2>External Entities</h2>")
    out += _html_table(
        ["Name", "Type", "Description", "Protocols"],
        [
            [
                escape(e.name),
                e.type.value,
                escape(e.description),
                _html_list(e.protocols),
            ]
            for e in result.external_entities
        ],
    )

    out.append("  <h2>Processes</h2>")
    out += _html_table(
        ["Name", "Description", "Inputs", "Outputs"],
        [
            [
                escape(p.name),
                escape(p.description),
                _html_list(p.input_ids),
                _html_list(p.output_ids),
            ]
            for p in result.processes
        ],
    )

    out.append("  <h2>Data Stores</h2>")
    out += _html_table(
        ["Name", "Type", "Description", "Data Structures"],
        [
            [
                escape(s.name),
                s.type.value,
                escape(s.description),
                _html_list(s.data_structure_ids),
            ]
            for s in result.data_stores
        ],
    )

    out.append("  <h2>Data Flows</h2>")
    out += _html_table(
        [
            "Source",
            "Destination",
            "Data Structure",
            "Type",
            "Protocol",
            "Description",
        ],
        [
            [escape(c) for c in _flow_row(result, flow)]
            for flow in result.data_flows
        ],
    )

    out += ["</body>", "</html>", ""]
    return "\n".join(out)


def write_html(result: AnalysisResult, output_dir: Path) -> list[Path]:
    path = output_dir / HTML_FILENAME
    path.write_text(render_html(result), encoding="utf-8")
    return [path]


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

Writer = Callable[[AnalysisResult, Path], list[Path]]

WRITERS: dict[str, Writer] = {
    "json": write_json,
    "csv": write_csv,
    "markdown": write_markdown,
    "html": write_html,
}

FORMATS = tuple(WRITERS)


def write_report(
    result: AnalysisResult, output_dir: Path, fmt: str = "markdown"
) -> list[Path]:
    """Write ``result`` to ``output_dir`` in ``fmt``.

    Returns the paths written. Raises ``UnknownFormatError`` for a format
    not in ``FORMATS``; nothing is written in that case.
    """
    writer = WRITERS.get(fmt.lower())
    if writer is None:
        raise UnknownFormatError(
            f"unknown output format {fmt!r}, expected one of {FORMATS}"
        )
    output_dir.mkdir(parents=True, exist_ok=True)
    written = writer(result, output_dir)
    for path in written:
        logger.info("report written", format=fmt, path=str(path))
    return written

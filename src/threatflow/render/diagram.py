"""DFD diagram emission (GraphViz DOT and Mermaid)."""

from __future__ import annotations

import re
from collections.abc import Callable
from pathlib import Path

import structlog

from threatflow.model import DataFlow, DataFlowType
from threatflow.result import UNKNOWN_NODE, AnalysisResult

logger = structlog.get_logger(__name__)

DOT_FILENAME = "data-flow-diagram.dot"
MERMAID_FILENAME = "data-flow-diagram.mmd"

_UNSAFE_ID = re.compile(r"[^A-Za-z0-9_]")

DOT_FLOW_STYLES: dict[DataFlowType, str] = {
    DataFlowType.INPUT: ", color=blue",
    DataFlowType.OUTPUT: ", color=green",
    DataFlowType.DATABASE_READ: ", color=purple, style=dashed",
    DataFlowType.DATABASE_WRITE: ", color=red, style=dashed",
    DataFlowType.API_CALL: ", color=orange",
}

MERMAID_FLOW_STYLES: dict[DataFlowType, str] = {
    DataFlowType.INPUT: "stroke:#0000ff",
    DataFlowType.OUTPUT: "stroke:#00aa00",
    DataFlowType.DATABASE_READ: "stroke:#aa00aa,stroke-dasharray:5 5",
    DataFlowType.DATABASE_WRITE: "stroke:#aa0000,stroke-dasharray:5 5",
    DataFlowType.API_CALL: "stroke:#ff8800",
}


def sanitize_id(node_id: str | None) -> str:
    """Make an id safe for diagram syntax (``[A-Za-z0-9_]`` only)."""
    if node_id is None:
        return UNKNOWN_NODE
    return _UNSAFE_ID.sub("_", node_id)


def _escape_label(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _mermaid_text(text: str) -> str:
    return text.replace('"', "#quot;").replace("|", "#124;")


class _Endpoints:
    """Resolves flow endpoints to diagram ids."""

    def __init__(self, result: AnalysisResult):
        self.known = {node_id for _k, node_id, _l in result.iter_nodes()}

    def resolve(self, node_id: str | None) -> str:
        if node_id is None or node_id not in self.known:
            return UNKNOWN_NODE
        return sanitize_id(node_id)


def _edge_label(
    result: AnalysisResult,
    flow: DataFlow,
    sep: str,
    escape: Callable[[str], str] = str,
) -> str:
    label = escape(result.data_structure_name(flow.data_structure_id))
    if flow.protocol:
        label += f"{sep}({escape(flow.protocol)})"
    return label


def _dot_node(node_id: str, label: str, shape: str, fill: str) -> str:
    return (
        f'  {node_id} [label="{_escape_label(label)}", '
        f"shape={shape}, fillcolor={fill}];"
    )


def render_dot(result: AnalysisResult) -> str:
    endpoints = _Endpoints(result)
    lines = [
        f'digraph "{_escape_label(result.project_name)}" {{',
        "  rankdir=LR;",
        '  node [shape=box, style="rounded,filled", fontname="Arial"];',
        '  edge [fontname="Arial"];',
        "",
        "  /* External Entities */",
    ]
    for entity in result.external_entities:
        lines.append(
            _dot_node(
                sanitize_id(entity.name), entity.name, "rectangle", "lightblue"
            )
        )
    lines += ["", "  /* Processes */"]
    for process in result.processes:
        lines.append(
            _dot_node(
                sanitize_id(process.id), process.name, "ellipse", "lightgreen"
            )
        )
    lines += ["", "  /* Data Stores */"]
    for store in result.data_stores:
        lines.append(
            _dot_node(
                sanitize_id(store.id), store.name, "cylinder", "lightyellow"
            )
        )
    lines += ["", "  /* Data Flows */"]

    edge_counts: dict[tuple[str, str], int] = {}
    for flow in result.data_flows:
        src = endpoints.resolve(flow.source_id)
        dst = endpoints.resolve(flow.destination_id)
        seen = edge_counts.get((src, dst), 0)
        edge_counts[(src, dst)] = seen + 1

        label = _edge_label(result, flow, "\\n", escape=_escape_label)
        attrs = f'label="{label}"'
        attrs += DOT_FLOW_STYLES.get(flow.type, "")
        if seen:
            # parallel edges between the same pair
            attrs += f', pos="{seen * 10},0!"'
        lines.append(f"  {src} -> {dst} [{attrs}];")

    lines.append("}")
    return "\n".join(lines) + "\n"


def render_mermaid(result: AnalysisResult) -> str:
    endpoints = _Endpoints(result)
    lines = ["flowchart LR", "  %% External Entities"]
    for entity in result.external_entities:
        node = sanitize_id(entity.name)
        lines.append(f'  {node}["{_mermaid_text(entity.name)}"]')
        lines.append(f"  style {node} fill:#d0e0ff,stroke:#0000ff")
    lines += ["", "  %% Processes"]
    for process in result.processes:
        node = sanitize_id(process.id)
        lines.append(f'  {node}(("{_mermaid_text(process.name)}"))')
        lines.append(f"  style {node} fill:#d0ffd0,stroke:#00aa00")
    lines += ["", "  %% Data Stores"]
    for store in result.data_stores:
        node = sanitize_id(store.id)
        lines.append(f'  {node}[("{_mermaid_text(store.name)}")]')
        lines.append(f"  style {node} fill:#ffffd0,stroke:#aaaa00")
    lines += ["", "  %% Data Flows"]

    link_styles = []
    for index, flow in enumerate(result.data_flows):
        src = endpoints.resolve(flow.source_id)
        dst = endpoints.resolve(flow.destination_id)
        label = _edge_label(result, flow, "<br>", escape=_mermaid_text)
        lines.append(f"  {src} -->|{label}| {dst}")
        style = MERMAID_FLOW_STYLES.get(flow.type)
        if style:
            link_styles.append(f"  linkStyle {index} {style}")

    lines += link_styles
    return "\n".join(lines) + "\n"


def write_diagrams(result: AnalysisResult, output_dir: Path) -> list[Path]:
    """Write the DOT and Mermaid diagrams into ``output_dir``."""
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for filename, render in (
        (DOT_FILENAME, render_dot),
        (MERMAID_FILENAME, render_mermaid),
    ):
        path = output_dir / filename
        path.write_text(render(result), encoding="utf-8")
        logger.info("diagram written", path=str(path))
        written.append(path)
    return written

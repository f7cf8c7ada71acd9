from threatflow.render.diagram import (
    render_dot,
    render_mermaid,
    sanitize_id,
    write_diagrams,
)
from threatflow.render.report import FORMATS, write_report

__all__ = [
    "FORMATS",
    "render_dot",
    "render_mermaid",
    "sanitize_id",
    "write_diagrams",
    "write_report",
]

"""
Layer 4: Rendering

Markdown documentation for classified entities and the per-run change
report.
"""

from rendering.markdown import MarkdownRenderer, file_to_markdown_path, group_by_file
from rendering.change_report import (
    CHANGE_REPORT_FILENAME,
    render_change_report,
    write_change_report,
)

__all__ = [
    "MarkdownRenderer",
    "file_to_markdown_path",
    "group_by_file",
    "CHANGE_REPORT_FILENAME",
    "render_change_report",
    "write_change_report",
]

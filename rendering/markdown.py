"""
Markdown documentation renderer.

Output layout under ``output_dir``::

    index.md                     overview table and quick links
    business-logic/README.md     category index
    business-logic/<page>.md     one page per source file
    pipeline-code/README.md
    pipeline-code/<page>.md

A page name is the source path with ``/`` replaced by ``-`` and the
``.py`` / ``.sql`` extension replaced by ``.md``.
"""

import logging
import os
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, TypeVar

from classification.models import BUSINESS_LOGIC, PIPELINE_CODE, ClassifiedFunction, ClassifiedSQLBlock

logger = logging.getLogger(__name__)

CATEGORY_DIRS: Dict[str, str] = {
    BUSINESS_LOGIC: "business-logic",
    PIPELINE_CODE: "pipeline-code",
}
CATEGORY_TITLES: Dict[str, str] = {
    BUSINESS_LOGIC: "Business Logic",
    PIPELINE_CODE: "Pipeline Code",
}
QUICK_LINK_LIMIT = 10

_SOURCE_EXT_RE = re.compile(r"\.(py|sql)$")

T = TypeVar("T", ClassifiedFunction, ClassifiedSQLBlock)


def file_to_markdown_path(file_path: str) -> str:
    """Map a source path to its page name, e.g. ``a/b.py`` -> ``a-b.md``."""
    return _SOURCE_EXT_RE.sub(".md", file_path.replace("/", "-"))


def group_by_file(items: Sequence[T]) -> Dict[str, List[T]]:
    """Group entities by file path, keeping first-seen file order."""
    grouped: Dict[str, List[T]] = {}
    for item in items:
        grouped.setdefault(item.file_path, []).append(item)
    return grouped


def _first_line(text: Optional[str]) -> str:
    if not text:
        return "No description"
    return text.split("\n")[0].strip() or "No description"


class MarkdownRenderer:
    """Render classified entities into a browsable markdown tree.

    Args:
        output_dir: Root of the generated documentation.
        source_repo_url: Repository web URL; when set, function sections get
            a "View Source" link.
        source_ref: Branch or commit used in source links.
    """

    def __init__(
        self,
        output_dir: str,
        source_repo_url: Optional[str] = None,
        source_ref: str = "main",
    ):
        self.output_dir = output_dir
        self.source_repo_url = source_repo_url.rstrip("/") if source_repo_url else None
        self.source_ref = source_ref

    def render(
        self,
        functions: Sequence[ClassifiedFunction],
        sql_blocks: Sequence[ClassifiedSQLBlock],
        generated_at: Optional[datetime] = None,
    ) -> List[str]:
        """Write the full documentation tree.

        Pages left over from a previous run in the category directories are
        removed first so an entity that moved category or disappeared does
        not keep a stale page.

        Returns:
            Paths of all written files.
        """
        generated_at = generated_at or datetime.now(timezone.utc)
        written: List[str] = []

        for category, dirname in CATEGORY_DIRS.items():
            category_dir = os.path.join(self.output_dir, dirname)
            self._clear_pages(category_dir)

            category_functions = [f for f in functions if f.classification == category]
            category_blocks = [b for b in sql_blocks if b.classification == category]

            functions_by_file = group_by_file(category_functions)
            blocks_by_file = group_by_file(category_blocks)
            for file_path in list(dict.fromkeys([*functions_by_file, *blocks_by_file])):
                page = self.render_file_page(
                    file_path,
                    functions_by_file.get(file_path, []),
                    blocks_by_file.get(file_path, []),
                )
                written.append(
                    self._write(os.path.join(category_dir, file_to_markdown_path(file_path)), page)
                )

            index = self.render_category_index(category, category_functions, category_blocks)
            written.append(self._write(os.path.join(category_dir, "README.md"), index))

        written.append(
            self._write(
                os.path.join(self.output_dir, "index.md"),
                self.render_index(functions, sql_blocks, generated_at),
            )
        )
        logger.info("Generated %d documentation files in %s", len(written), self.output_dir)
        return written

    def _source_link(self, function: ClassifiedFunction) -> Optional[str]:
        if not self.source_repo_url:
            return None
        fn = function.function
        return (
            f"{self.source_repo_url}/blob/{self.source_ref}/{fn.file_path}"
            f"#L{fn.start_line}-L{fn.end_line}"
        )

    def render_function_section(self, function: ClassifiedFunction) -> List[str]:
        fn = function.function
        lines = [f"## {fn.name}", ""]

        link = self._source_link(function)
        if link:
            lines += [f"[View Source]({link})", ""]

        lines += ["### Signature", "```python", fn.signature, "```", ""]

        if fn.docstring:
            lines += ["### Description", fn.docstring, ""]

        if fn.business_rule_markers:
            lines.append("### Business Rules")
            lines += [f"- {marker}" for marker in fn.business_rule_markers]
            lines.append("")

        if fn.parameters:
            lines += ["### Parameters", "| Name | Type | Default |", "|------|------|---------|"]
            for param in fn.parameters:
                lines.append(f"| `{param.name}` | {param.type or '-'} | {param.default or '-'} |")
            lines.append("")

        if fn.return_type:
            lines += ["### Returns", f"- `{fn.return_type}`", ""]

        if fn.decorators:
            lines.append("### Decorators")
            lines += [f"- `{decorator}`" for decorator in fn.decorators]
            lines.append("")

        result = function.result
        lines += [
            f"*Classification: {result.classification} ({result.confidence} confidence)*",
            f"*Reason: {result.reason}*",
            "",
            "---",
            "",
        ]
        return lines

    def render_sql_section(self, block: ClassifiedSQLBlock) -> List[str]:
        sql = block.block
        lines = [f"## {sql.name}", "", f"**Type:** {sql.sql_type}", ""]

        if sql.description:
            lines += ["### Description", sql.description, ""]

        if sql.business_rule_markers:
            lines.append("### Business Rules")
            lines += [f"- {marker}" for marker in sql.business_rule_markers]
            lines.append("")

        if sql.tables:
            lines.append("### Tables Referenced")
            lines += [f"- `{table}`" for table in sql.tables]
            lines.append("")

        result = block.result
        lines += [
            "### Source",
            "```sql",
            sql.source_code,
            "```",
            "",
            f"*Classification: {result.classification} ({result.confidence} confidence)*",
            f"*Reason: {result.reason}*",
            "",
            "---",
            "",
        ]
        return lines

    def render_file_page(
        self,
        file_path: str,
        functions: Sequence[ClassifiedFunction],
        sql_blocks: Sequence[ClassifiedSQLBlock],
    ) -> str:
        """Render one source file's page: its functions, then its SQL."""
        lines = [f"# {os.path.basename(file_path)}", "", f"**File:** `{file_path}`", "", "---", ""]
        for function in functions:
            lines += self.render_function_section(function)
        for block in sql_blocks:
            lines += self.render_sql_section(block)
        return "\n".join(lines)

    def render_category_index(
        self,
        category: str,
        functions: Sequence[ClassifiedFunction],
        sql_blocks: Sequence[ClassifiedSQLBlock],
    ) -> str:
        title = CATEGORY_TITLES[category]
        lines = [
            f"# {title} Documentation",
            "",
            f"This directory contains auto-generated documentation for {title.lower()} functions.",
            "",
            "## Summary",
            f"- **Python Functions:** {len(functions)}",
            f"- **SQL Blocks:** {len(sql_blocks)}",
            "",
        ]

        if functions:
            lines += ["## Python Functions", ""]
            for file_path, items in group_by_file(functions).items():
                lines.append(f"### [{os.path.basename(file_path)}](./{file_to_markdown_path(file_path)})")
                lines += [f"- `{item.name}`" for item in items]
                lines.append("")

        if sql_blocks:
            lines += ["## SQL", ""]
            for file_path, items in group_by_file(sql_blocks).items():
                lines.append(f"### [{os.path.basename(file_path)}](./{file_to_markdown_path(file_path)})")
                lines += [f"- `{item.name}` ({item.block.sql_type})" for item in items]
                lines.append("")

        return "\n".join(lines)

    def render_index(
        self,
        functions: Sequence[ClassifiedFunction],
        sql_blocks: Sequence[ClassifiedSQLBlock],
        generated_at: datetime,
    ) -> str:
        counts = {
            category: (
                sum(1 for f in functions if f.classification == category),
                sum(1 for b in sql_blocks if b.classification == category),
            )
            for category in CATEGORY_DIRS
        }

        lines = [
            "# Business Logic Documentation Index",
            "",
            "Auto-generated documentation extracted from source code.",
            "",
            f"**Generated:** {generated_at.isoformat()}",
            "",
            "## Overview",
            "",
            "| Category | Python Functions | SQL Blocks |",
            "|----------|------------------|------------|",
        ]
        for category, dirname in CATEGORY_DIRS.items():
            fn_count, sql_count = counts[category]
            lines.append(f"| [{CATEGORY_TITLES[category]}](./{dirname}/) | {fn_count} | {sql_count} |")
        lines += [f"| **Total** | **{len(functions)}** | **{len(sql_blocks)}** |", "", "## Quick Links", ""]

        for category, dirname in CATEGORY_DIRS.items():
            category_functions = [f for f in functions if f.classification == category]
            lines += [f"### {CATEGORY_TITLES[category]}", ""]
            for function in category_functions[:QUICK_LINK_LIMIT]:
                page = file_to_markdown_path(function.file_path)
                lines.append(
                    f"- [`{function.name}`](./{dirname}/{page}#{function.name.lower()})"
                    f" - {_first_line(function.description)}"
                )
            if len(category_functions) > QUICK_LINK_LIMIT:
                lines.append(f"- ... and {len(category_functions) - QUICK_LINK_LIMIT} more")
            lines.append("")

        return "\n".join(lines)

    def _clear_pages(self, category_dir: str) -> None:
        if not os.path.isdir(category_dir):
            return
        for filename in os.listdir(category_dir):
            if filename.endswith(".md"):
                os.remove(os.path.join(category_dir, filename))

    def _write(self, path: str, content: str) -> str:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        logger.debug("Generated: %s", path)
        return path

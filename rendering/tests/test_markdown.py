"""
Unit tests for markdown.py

Tests page naming, per-file pages, category READMEs, the index and the
removal of stale pages.
"""

import os
import shutil
import tempfile
import unittest
from datetime import datetime, timezone

from classification.models import ClassificationResult, ClassifiedFunction, ClassifiedSQLBlock
from extraction.models import ExtractedFunction, ExtractedSQLBlock, ParameterInfo
from rendering.markdown import MarkdownRenderer, file_to_markdown_path, group_by_file

GENERATED_AT = datetime(2024, 3, 1, tzinfo=timezone.utc)
BUSINESS = ClassificationResult("business_logic", "high", "Contains business rule markers")
PIPELINE = ClassificationResult("pipeline_code", "low", "Default classification")


def make_function(name, file_path="pipeline/rules.py", result=BUSINESS, **overrides):
    values = dict(
        name=name,
        file_path=file_path,
        start_line=6,
        end_line=19,
        signature=f"def {name}(amount: float = 0.0) -> str",
        parameters=[ParameterInfo("amount", "float", "0.0")],
        return_type="str",
        docstring=f"Compute {name}.\n\nLonger text.",
        business_rule_markers=["Amber when late"],
        source_code=f"def {name}(amount: float = 0.0) -> str:\n    return 'G'",
        decorators=["@cached"],
    )
    values.update(overrides)
    return ClassifiedFunction(ExtractedFunction(**values), result)


def make_block(name, file_path="sql/orders.sql", result=PIPELINE, **overrides):
    values = dict(
        name=name,
        file_path=file_path,
        start_line=3,
        end_line=5,
        sql_type="view",
        description="Active orders",
        business_rule_markers=[],
        source_code=f"CREATE VIEW {name} AS SELECT * FROM orders",
        tables=["orders"],
    )
    values.update(overrides)
    return ClassifiedSQLBlock(ExtractedSQLBlock(**values), result)


def read(path):
    with open(path, encoding="utf-8") as f:
        return f.read()


class TestHelpers(unittest.TestCase):
    """Test page naming and grouping."""

    def test_file_to_markdown_path(self):
        self.assertEqual(file_to_markdown_path("pipeline/rules.py"), "pipeline-rules.md")
        self.assertEqual(file_to_markdown_path("sql/orders.sql"), "sql-orders.md")
        self.assertEqual(file_to_markdown_path("top.py"), "top.md")

    def test_group_by_file_keeps_first_seen_order(self):
        items = [make_function("a", "z.py"), make_function("b", "a.py"), make_function("c", "z.py")]
        grouped = group_by_file(items)
        self.assertEqual(list(grouped), ["z.py", "a.py"])
        self.assertEqual([i.name for i in grouped["z.py"]], ["a", "c"])


class TestMarkdownRenderer(unittest.TestCase):
    """Test the generated documentation tree."""

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.renderer = MarkdownRenderer(self.tmp, source_repo_url="https://example.com/org/repo/")

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_layout(self):
        written = self.renderer.render(
            [make_function("calculate_rag_status"), make_function("load", "pipeline/etl.py", PIPELINE)],
            [make_block("active_orders")],
            generated_at=GENERATED_AT,
        )
        relative = sorted(os.path.relpath(p, self.tmp) for p in written)
        self.assertEqual(relative, sorted([
            os.path.join("business-logic", "pipeline-rules.md"),
            os.path.join("business-logic", "README.md"),
            os.path.join("pipeline-code", "pipeline-etl.md"),
            os.path.join("pipeline-code", "sql-orders.md"),
            os.path.join("pipeline-code", "README.md"),
            "index.md",
        ]))

    def test_function_page(self):
        self.renderer.render([make_function("calculate_rag_status")], [], generated_at=GENERATED_AT)
        page = read(os.path.join(self.tmp, "business-logic", "pipeline-rules.md"))

        self.assertTrue(page.startswith("# rules.py\n"))
        self.assertIn("**File:** `pipeline/rules.py`", page)
        self.assertIn("## calculate_rag_status", page)
        self.assertIn(
            "[View Source](https://example.com/org/repo/blob/main/pipeline/rules.py#L6-L19)", page
        )
        self.assertIn("```python\ndef calculate_rag_status(amount: float = 0.0) -> str\n```", page)
        self.assertIn("### Business Rules\n- Amber when late", page)
        self.assertIn("| `amount` | float | 0.0 |", page)
        self.assertIn("### Returns\n- `str`", page)
        self.assertIn("- `@cached`", page)
        self.assertIn("*Classification: business_logic (high confidence)*", page)
        self.assertIn("*Reason: Contains business rule markers*", page)

    def test_no_source_link_without_repo_url(self):
        MarkdownRenderer(self.tmp).render([make_function("f")], [], generated_at=GENERATED_AT)
        page = read(os.path.join(self.tmp, "business-logic", "pipeline-rules.md"))
        self.assertNotIn("View Source", page)

    def test_optional_sections_omitted(self):
        bare = make_function(
            "bare", parameters=[], return_type=None, docstring=None,
            business_rule_markers=[], decorators=[],
        )
        self.renderer.render([bare], [], generated_at=GENERATED_AT)
        page = read(os.path.join(self.tmp, "business-logic", "pipeline-rules.md"))
        for heading in ("### Description", "### Business Rules", "### Parameters",
                        "### Returns", "### Decorators"):
            self.assertNotIn(heading, page)

    def test_sql_page(self):
        self.renderer.render([], [make_block("active_orders")], generated_at=GENERATED_AT)
        page = read(os.path.join(self.tmp, "pipeline-code", "sql-orders.md"))
        self.assertIn("## active_orders", page)
        self.assertIn("**Type:** view", page)
        self.assertIn("### Description\nActive orders", page)
        self.assertIn("### Tables Referenced\n- `orders`", page)
        self.assertIn("```sql\nCREATE VIEW active_orders AS SELECT * FROM orders\n```", page)

    def test_python_file_with_embedded_sql_shares_one_page(self):
        self.renderer.render(
            [make_function("transform", "pipeline/etl.py", PIPELINE)],
            [make_block("embedded_sql_1", "pipeline/etl.py", sql_type="query")],
            generated_at=GENERATED_AT,
        )
        page = read(os.path.join(self.tmp, "pipeline-code", "pipeline-etl.md"))
        self.assertLess(page.index("## transform"), page.index("## embedded_sql_1"))

    def test_category_readme(self):
        self.renderer.render(
            [make_function("a"), make_function("b")],
            [make_block("rule_view", result=BUSINESS)],
            generated_at=GENERATED_AT,
        )
        readme = read(os.path.join(self.tmp, "business-logic", "README.md"))
        self.assertTrue(readme.startswith("# Business Logic Documentation"))
        self.assertIn("- **Python Functions:** 2", readme)
        self.assertIn("- **SQL Blocks:** 1", readme)
        self.assertIn("### [rules.py](./pipeline-rules.md)\n- `a`\n- `b`", readme)
        self.assertIn("- `rule_view` (view)", readme)

        empty = read(os.path.join(self.tmp, "pipeline-code", "README.md"))
        self.assertIn("- **Python Functions:** 0", empty)
        self.assertNotIn("## Python Functions", empty)

    def test_index(self):
        functions = [make_function(f"Rule{i}") for i in range(12)]
        functions.append(make_function("etl", "pipeline/etl.py", PIPELINE, docstring=None))
        self.renderer.render(functions, [make_block("q")], generated_at=GENERATED_AT)
        index = read(os.path.join(self.tmp, "index.md"))

        self.assertTrue(index.startswith("# Business Logic Documentation Index"))
        self.assertIn(f"**Generated:** {GENERATED_AT.isoformat()}", index)
        self.assertIn("| [Business Logic](./business-logic/) | 12 | 0 |", index)
        self.assertIn("| [Pipeline Code](./pipeline-code/) | 1 | 1 |", index)
        self.assertIn("| **Total** | **13** | **1** |", index)
        self.assertIn("- [`Rule0`](./business-logic/pipeline-rules.md#rule0) - Compute Rule0.", index)
        self.assertNotIn("`Rule10`", index)
        self.assertIn("- ... and 2 more", index)
        self.assertIn("- [`etl`](./pipeline-code/pipeline-etl.md#etl) - No description", index)

    def test_stale_pages_removed(self):
        self.renderer.render([make_function("a", "old/gone.py")], [], generated_at=GENERATED_AT)
        stale = os.path.join(self.tmp, "business-logic", "old-gone.md")
        self.assertTrue(os.path.exists(stale))

        self.renderer.render([make_function("a")], [], generated_at=GENERATED_AT)
        self.assertFalse(os.path.exists(stale))
        self.assertTrue(os.path.exists(os.path.join(self.tmp, "business-logic", "pipeline-rules.md")))


if __name__ == "__main__":
    unittest.main()

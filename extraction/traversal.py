"""
CST traversal and Python function extraction logic.

This module walks the tree-sitter concrete syntax tree of a Python file and
turns every function definition (sync or async, top level, nested, or
method) into an ``ExtractedFunction``.

Traversal rule: class and function nodes are transparent containers. Their
``body`` is walked, and every function found inside is hoisted into the
flat result list in source order. A class node itself is never an entity.
"""

import logging
import re
from typing import Iterator, List, Optional

from tree_sitter import Node, Tree

from extraction.config import (
    DECORATED_NODE,
    DECORATOR_NODE,
    DEFAULT_PARAMETER,
    EXPRESSION_STATEMENT,
    FUNCTION_NODE,
    HOISTING_CONTAINERS,
    IDENTIFIER_PARAMETER,
    IMPLICIT_PARAMETERS,
    STRING_NODE,
    TYPED_DEFAULT_PARAMETER,
    TYPED_PARAMETER,
)
from extraction.markers import extract_function_markers
from extraction.models import ExtractedFunction, ParameterInfo

logger = logging.getLogger(__name__)

_STRING_OPEN_RE = re.compile(r"^[rRbBuUfF]{0,2}('''|\"\"\"|'|\")")
_STRING_CLOSE_RE = re.compile(r"('''|\"\"\"|'|\")$")

_SPLAT_PARAMETERS = {"list_splat_pattern", "dictionary_splat_pattern"}


def node_text(node: Optional[Node]) -> Optional[str]:
    """Decode a node's source text, or None for a missing node."""
    if node is None or node.text is None:
        return None
    return node.text.decode("utf-8", errors="replace")


def iter_function_nodes(root: Node) -> Iterator[Node]:
    """Yield every function_definition node under ``root`` in source order.

    Pre-order walk with an explicit stack so deeply nested modules do not hit
    the interpreter recursion limit. Hoisting containers contribute only
    their body; every other node contributes all named children, which
    reaches definitions under ``if``/``try``/``with`` blocks and decorators.
    """
    stack: List[Node] = [root]
    while stack:
        node = stack.pop()
        if node.type == FUNCTION_NODE:
            yield node

        if node.type in HOISTING_CONTAINERS:
            body = node.child_by_field_name("body")
            children = [body] if body is not None else []
        else:
            children = list(node.named_children)
        stack.extend(reversed(children))


def is_async_function(node: Node) -> bool:
    """Check for the ``async`` keyword child of a function_definition."""
    return any(child.type == "async" for child in node.children)


def extract_parameters(node: Node) -> List[ParameterInfo]:
    """Extract declared parameters, dropping implicit ``self`` / ``cls``.

    Args:
        node: A function_definition node.

    Returns:
        Parameters in declaration order.
    """
    params: List[ParameterInfo] = []
    parameters_node = node.child_by_field_name("parameters")
    if parameters_node is None:
        return params

    for child in parameters_node.named_children:
        if child.type == IDENTIFIER_PARAMETER or child.type in _SPLAT_PARAMETERS:
            params.append(ParameterInfo(name=node_text(child) or ""))
        elif child.type == TYPED_PARAMETER:
            # typed_parameter has no name field: the first named child is the
            # identifier (or splat pattern) being annotated.
            name_node = child.named_children[0] if child.named_children else None
            params.append(
                ParameterInfo(
                    name=node_text(name_node) or "",
                    type=node_text(child.child_by_field_name("type")),
                )
            )
        elif child.type == DEFAULT_PARAMETER:
            params.append(
                ParameterInfo(
                    name=node_text(child.child_by_field_name("name")) or "",
                    default=node_text(child.child_by_field_name("value")),
                )
            )
        elif child.type == TYPED_DEFAULT_PARAMETER:
            params.append(
                ParameterInfo(
                    name=node_text(child.child_by_field_name("name")) or "",
                    type=node_text(child.child_by_field_name("type")),
                    default=node_text(child.child_by_field_name("value")),
                )
            )

    return [p for p in params if p.name and p.name not in IMPLICIT_PARAMETERS]


def extract_return_type(node: Node) -> Optional[str]:
    """Return the ``-> T`` annotation text, or None."""
    return node_text(node.child_by_field_name("return_type"))


def clean_docstring(raw: str) -> str:
    """Strip string prefix and quote delimiters, then surrounding whitespace."""
    text = _STRING_OPEN_RE.sub("", raw, count=1)
    text = _STRING_CLOSE_RE.sub("", text, count=1)
    return text.strip()


def extract_docstring(node: Node) -> Optional[str]:
    """Extract the docstring of a function definition.

    Only a bare string literal that is the first statement of the body
    counts; comments before it are ignored.

    Args:
        node: A function_definition node.

    Returns:
        Cleaned docstring text, or None.
    """
    body = node.child_by_field_name("body")
    if body is None:
        return None

    for statement in body.named_children:
        if statement.type == "comment":
            continue
        if statement.type != EXPRESSION_STATEMENT or statement.named_child_count != 1:
            return None
        expression = statement.named_children[0]
        if expression.type != STRING_NODE:
            return None
        return clean_docstring(node_text(expression) or "")
    return None


def extract_decorators(node: Node) -> List[str]:
    """Collect decorators attached to a function definition, in source order."""
    parent = node.parent
    if parent is None or parent.type != DECORATED_NODE:
        return []
    return [
        node_text(child) or ""
        for child in parent.named_children
        if child.type == DECORATOR_NODE
    ]


def build_signature(
    name: str,
    parameters: List[ParameterInfo],
    return_type: Optional[str],
    is_async: bool = False,
) -> str:
    """Rebuild a canonical one-line signature."""
    keyword = "async def" if is_async else "def"
    signature = f"{keyword} {name}({', '.join(p.render() for p in parameters)})"
    if return_type:
        signature += f" -> {return_type}"
    return signature


def extract_function(
    node: Node,
    source_lines: List[str],
    file_path: str,
) -> Optional[ExtractedFunction]:
    """Build an ``ExtractedFunction`` from a function_definition node.

    Args:
        node: The function_definition node.
        source_lines: The file split on newlines.
        file_path: File path relative to the source root.

    Returns:
        The extracted function, or None for a nameless (broken) definition.
    """
    name = node_text(node.child_by_field_name("name"))
    if not name:
        logger.debug("Skipping nameless function at %s:%d", file_path, node.start_point[0] + 1)
        return None

    start_line = node.start_point[0] + 1
    end_line = node.end_point[0] + 1
    source_code = "\n".join(source_lines[start_line - 1:end_line])

    parameters = extract_parameters(node)
    return_type = extract_return_type(node)
    docstring = extract_docstring(node)
    is_async = is_async_function(node)

    function = ExtractedFunction(
        name=name,
        file_path=file_path,
        start_line=start_line,
        end_line=end_line,
        signature=build_signature(name, parameters, return_type, is_async),
        parameters=parameters,
        return_type=return_type,
        docstring=docstring,
        business_rule_markers=extract_function_markers(docstring, source_code),
        source_code=source_code,
        decorators=extract_decorators(node),
        is_async=is_async,
    )
    logger.debug("Extracted function %s at %s:%d", name, file_path, start_line)
    return function


def split_source_lines(source_bytes: bytes) -> List[str]:
    """Split decoded source on ``\\n`` so indices match tree-sitter rows."""
    text = source_bytes.decode("utf-8", errors="replace")
    return [line.rstrip("\r") for line in text.split("\n")]


def extract_functions_from_tree(
    tree: Tree,
    source_bytes: bytes,
    file_path: str,
) -> List[ExtractedFunction]:
    """Extract all functions from a parsed Python CST.

    This is the main entry point for function extraction.

    Args:
        tree: The parsed tree.
        source_bytes: The raw source file bytes.
        file_path: File path relative to the source root.

    Returns:
        Functions in source order, methods and nested functions included.
    """
    source_lines = split_source_lines(source_bytes)
    functions = []
    for node in iter_function_nodes(tree.root_node):
        function = extract_function(node, source_lines, file_path)
        if function is not None:
            functions.append(function)
    logger.debug("Extracted %d functions from %s", len(functions), file_path)
    return functions

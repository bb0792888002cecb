"""
Template Validation Service

Summarizes a parsed template for editors and build tooling: validity,
diagnostics, ISML tags in use, node statistics and an element outline.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from isml.config import ParserConfig
from isml.parser import Document, ElementNode, NodeKind, NodeVisitor, TemplateParser
from isml.parser.vocabulary import is_isml_tag


@dataclass
class TemplateReport:
    """Validation result for one template."""
    source_name: Optional[str]
    errors: List[Dict] = field(default_factory=list)
    warnings: List[Dict] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)           # distinct ISML tags, first use order
    stats: Dict[str, int] = field(default_factory=dict)
    outline: List[Dict] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Check if the template has no errors."""
        return len(self.errors) == 0

    def failed(self, warnings_as_errors: bool = False) -> bool:
        return not self.is_valid or (warnings_as_errors and len(self.warnings) > 0)

    def to_dict(self, include_outline: bool = True) -> Dict:
        """Convert to dictionary for JSON serialization."""
        data = {
            'valid': self.is_valid,
            'source_name': self.source_name,
            'errors': self.errors,
            'warnings': self.warnings,
            'tags': self.tags,
            'stats': self.stats,
        }
        if include_outline:
            data['outline'] = self.outline
        return data


class _StatsCollector(NodeVisitor):
    """Counts nodes by kind and tracks the deepest element nesting."""

    def __init__(self):
        self.counts = {
            'text_nodes': 0,
            'elements': 0,
            'isml_tags': 0,
            'expressions': 0,
            'comments': 0,
            'max_depth': 0,
        }
        self.tags: List[str] = []

    def collect(self, nodes):
        stack = [(node, 1) for node in reversed(nodes)]
        while stack:
            node, depth = stack.pop()
            self.visit(node)
            if node.kind is NodeKind.ELEMENT:
                self.counts['max_depth'] = max(self.counts['max_depth'], depth)
                stack.extend((child, depth + 1) for child in reversed(node.children))

    def visit_text(self, node):
        self.counts['text_nodes'] += 1

    def visit_element(self, node: ElementNode):
        self.counts['elements'] += 1
        if is_isml_tag(node.tag_name):
            self.counts['isml_tags'] += 1
            if node.tag_name not in self.tags:
                self.tags.append(node.tag_name)

        # Expressions inside attribute values count too
        for attribute in node.attributes:
            self.counts['expressions'] += len(attribute.expressions)

    def visit_expression(self, node):
        self.counts['expressions'] += 1

    def visit_comment(self, node):
        self.counts['comments'] += 1


def build_outline(nodes, max_depth: Optional[int] = None) -> List[Dict]:
    """
    Nested list of elements for editor outline views.

    Example item:
        {'tag': 'isloop', 'line': 3, 'column': 5, 'recovered': False, 'children': [...]}

    Args:
        nodes: Top-level nodes
        max_depth: Deepest element level to include; None for no limit.
            Elements below the limit are left out of the outline.
    """
    outline: List[Dict] = []
    stack = [(node, outline, 1) for node in reversed(nodes)]
    while stack:
        node, target, depth = stack.pop()
        if node.kind is not NodeKind.ELEMENT:
            continue
        if max_depth is not None and depth > max_depth:
            continue
        item = {
            'tag': node.tag_name,
            'line': node.span.start_line,
            'column': node.span.start_column,
            'self_closing': node.self_closing,
            'recovered': node.recovered,
            'children': [],
        }
        target.append(item)
        stack.extend((child, item['children'], depth + 1) for child in reversed(node.children))
    return outline


class TemplateValidationService:
    """
    Service for validating ISML templates.

    Parses templates and returns a TemplateReport; never resolves or renders
    anything.
    """

    def __init__(self, config: ParserConfig = None, outline_depth: Optional[int] = None):
        self.parser = TemplateParser(config)
        self.outline_depth = outline_depth

    def validate(self, template_content: str, source_name: str = None) -> TemplateReport:
        """
        Validate template syntax.

        Args:
            template_content: Template text
            source_name: Optional label used in diagnostics

        Returns:
            TemplateReport for the template
        """
        document = self.parser.parse(template_content, source_name)
        return self.report(document)

    def report(self, document: Document) -> TemplateReport:
        stats = _StatsCollector()
        stats.collect(document.children)

        return TemplateReport(
            source_name=document.source_name,
            errors=[d.to_dict() for d in document.errors],
            warnings=[d.to_dict() for d in document.warnings],
            tags=stats.tags,
            stats=dict(stats.counts, diagnostics=len(document.diagnostics)),
            outline=build_outline(document.children, self.outline_depth),
        )

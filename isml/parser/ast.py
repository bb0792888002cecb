"""
Abstract Syntax Tree (AST) nodes for ISML templates.

The tree is a closed set of node variants (text, element, expression,
comment). Every variant carries a ``kind`` discriminator and is dispatched by
NodeVisitor. Nodes are immutable once the parser hands them out.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from isml.parser.exceptions import ISMLSyntaxError
from isml.parser.source import SourceSpan


class NodeKind(Enum):
    """Discriminator for the node variants."""
    TEXT = 'text'
    ELEMENT = 'element'
    EXPRESSION = 'expression'
    COMMENT = 'comment'


class ValueKind(Enum):
    """Shape of an attribute value."""
    NONE = 'none'               # bare attribute: <isbinary stream>
    LITERAL = 'literal'         # class="price"
    EXPRESSION = 'expression'   # value="${product.price}"
    MIXED = 'mixed'             # href="/p/${product.id}.html"


@dataclass(frozen=True)
class LiteralFragment:
    """Static text inside an attribute value."""
    text: str
    span: SourceSpan


@dataclass(frozen=True)
class ExpressionFragment:
    """
    An expression region inside an attribute value.

    Example: ${product.name} in title="${product.name}"
    """
    raw_expression_text: str
    span: SourceSpan
    open_delimiter: str = '${'
    close_delimiter: str = '}'

    @property
    def source_text(self) -> str:
        return f"{self.open_delimiter}{self.raw_expression_text}{self.close_delimiter}"


ValueFragment = Union[LiteralFragment, ExpressionFragment]


@dataclass(frozen=True)
class Attribute:
    """
    A tag attribute.

    Attributes:
        name: Attribute name as written (not case-normalized)
        value: None for a bare attribute, otherwise the ordered fragments
        span: From the first character of the name to the end of the value
        raw_text: The attribute exactly as written in the source
        quote: The quote character around the value, if any
    """
    name: str
    value: Optional[Tuple[ValueFragment, ...]]
    span: SourceSpan
    raw_text: str = ''
    quote: Optional[str] = None

    @property
    def value_kind(self) -> ValueKind:
        if self.value is None:
            return ValueKind.NONE
        expressions = [f for f in self.value if isinstance(f, ExpressionFragment)]
        if not expressions:
            return ValueKind.LITERAL
        if len(self.value) == 1:
            return ValueKind.EXPRESSION
        return ValueKind.MIXED

    @property
    def literal_value(self) -> Optional[str]:
        """The value text for literal values, None otherwise."""
        if self.value_kind is not ValueKind.LITERAL:
            return None
        return ''.join(f.text for f in self.value)

    @property
    def expressions(self) -> List[ExpressionFragment]:
        if not self.value:
            return []
        return [f for f in self.value if isinstance(f, ExpressionFragment)]


@dataclass(frozen=True)
class TextNode:
    """Literal markup passed through verbatim."""
    content: str
    span: SourceSpan
    kind: ClassVar[NodeKind] = NodeKind.TEXT


@dataclass(frozen=True)
class ElementNode:
    """
    A recognized tag with its attributes and body.

    Example:
        <isloop iterator="${products}" alias="product">
            ${product.name}
        </isloop>

    Attributes:
        tag_name: Canonical (lower case) tag name
        attributes: Attributes in source order
        children: Body nodes in source order, empty when self_closing
        self_closing: True for '/>' tags and void names (isset, br, ...)
        span: From '<' of the open tag to the end of the close tag
        open_tag_text: The open tag exactly as written
        close_tag_text: The close tag as written, '' if absent or synthetic
        close_span: Span of the close tag; zero-length when synthesized
        recovered: True when the parser had to synthesize the close
    """
    tag_name: str
    attributes: Tuple[Attribute, ...]
    children: Tuple['Node', ...]
    self_closing: bool
    span: SourceSpan
    open_tag_text: str = ''
    close_tag_text: str = ''
    close_span: Optional[SourceSpan] = None
    recovered: bool = False
    kind: ClassVar[NodeKind] = NodeKind.ELEMENT

    def get_attributes(self, name: str) -> List[Attribute]:
        """All attributes with the given name (duplicates are allowed)."""
        return [a for a in self.attributes if a.name == name]

    def get_attribute(self, name: str) -> Optional[Attribute]:
        matches = self.get_attributes(name)
        return matches[0] if matches else None


@dataclass(frozen=True)
class ExpressionNode:
    """
    An inline dynamic expression, kept unparsed.

    Example: ${product.price} -> raw_expression_text 'product.price'
    """
    raw_expression_text: str
    span: SourceSpan
    open_delimiter: str = '${'
    close_delimiter: str = '}'
    kind: ClassVar[NodeKind] = NodeKind.EXPRESSION


@dataclass(frozen=True)
class CommentNode:
    """A template comment (<iscomment>...</iscomment>); never rendered."""
    content: str
    span: SourceSpan
    open_tag_text: str = '<iscomment>'
    close_tag_text: str = '</iscomment>'
    kind: ClassVar[NodeKind] = NodeKind.COMMENT


Node = Union[TextNode, ElementNode, ExpressionNode, CommentNode]


class NodeVisitor:
    """
    Dispatches on the node kind to visit_text, visit_element,
    visit_expression or visit_comment.

    visit() handles a single node and never descends. visit_tree() calls it
    for every node below the given ones in document order, driven by walk(),
    so deeply nested templates never hit the recursion limit.
    """

    def visit(self, node: Node) -> Any:
        method = getattr(self, f'visit_{node.kind.value}', None)
        if method is None:
            raise TypeError(f"No visitor method for node kind {node.kind!r}")
        return method(node)

    def visit_all(self, nodes: Sequence[Node]) -> List[Any]:
        return [self.visit(node) for node in nodes]

    def visit_tree(self, nodes: Sequence[Node]) -> List[Any]:
        """Visit every node in pre-order, depth first."""
        return [self.visit(node) for node in walk(nodes)]

    def visit_text(self, node: TextNode) -> Any:
        return None

    def visit_element(self, node: ElementNode) -> Any:
        return None

    def visit_expression(self, node: ExpressionNode) -> Any:
        return None

    def visit_comment(self, node: CommentNode) -> Any:
        return None


class SourceWriter(NodeVisitor):
    """Rebuilds template text from a tree."""

    def write(self, nodes: Sequence[Node]) -> str:
        parts = []
        # Close tags wait on the stack as plain strings until the body is written
        stack: List[Union[Node, str]] = list(reversed(nodes))
        while stack:
            item = stack.pop()
            if isinstance(item, str):
                parts.append(item)
            elif item.kind is NodeKind.ELEMENT:
                parts.append(item.open_tag_text)
                stack.append(item.close_tag_text)
                stack.extend(reversed(item.children))
            else:
                parts.append(self.visit(item))
        return ''.join(parts)

    def visit_text(self, node: TextNode) -> str:
        return node.content

    def visit_element(self, node: ElementNode) -> str:
        return self.write((node,))

    def visit_expression(self, node: ExpressionNode) -> str:
        return f"{node.open_delimiter}{node.raw_expression_text}{node.close_delimiter}"

    def visit_comment(self, node: CommentNode) -> str:
        return f"{node.open_tag_text}{node.content}{node.close_tag_text}"


class DictBuilder(NodeVisitor):
    """Converts nodes to plain dicts for JSON serialization."""

    def __init__(self, include_spans: bool = True):
        self.include_spans = include_spans

    def build(self, nodes: Sequence[Node]) -> List[Dict]:
        result: List[Dict] = []
        stack = [(node, result) for node in reversed(nodes)]
        while stack:
            node, target = stack.pop()
            if node.kind is NodeKind.ELEMENT:
                data = self._element(node)
                stack.extend((child, data['children']) for child in reversed(node.children))
            else:
                data = self.visit(node)
            target.append(data)
        return result

    def _with_span(self, data: Dict, span: SourceSpan) -> Dict:
        if self.include_spans:
            data['span'] = span.to_dict()
        return data

    def _fragment(self, fragment: ValueFragment) -> Dict:
        if isinstance(fragment, ExpressionFragment):
            data = {
                'type': 'expression',
                'expression': fragment.raw_expression_text,
                'delimiter': fragment.open_delimiter,
            }
        else:
            data = {'type': 'literal', 'text': fragment.text}
        return self._with_span(data, fragment.span)

    def _attribute(self, attribute: Attribute) -> Dict:
        data = {
            'name': attribute.name,
            'value_kind': attribute.value_kind.value,
            'value': None if attribute.value is None else [self._fragment(f) for f in attribute.value],
        }
        return self._with_span(data, attribute.span)

    def visit_text(self, node: TextNode) -> Dict:
        return self._with_span({'type': 'text', 'content': node.content}, node.span)

    def _element(self, node: ElementNode) -> Dict:
        """Element dict with an empty children list, filled in by build()."""
        data = {
            'type': 'element',
            'tag_name': node.tag_name,
            'self_closing': node.self_closing,
            'attributes': [self._attribute(a) for a in node.attributes],
            'children': [],
        }
        return self._with_span(data, node.span)

    def visit_element(self, node: ElementNode) -> Dict:
        return self.build((node,))[0]

    def visit_expression(self, node: ExpressionNode) -> Dict:
        data = {
            'type': 'expression',
            'expression': node.raw_expression_text,
            'delimiter': node.open_delimiter,
        }
        return self._with_span(data, node.span)

    def visit_comment(self, node: CommentNode) -> Dict:
        return self._with_span({'type': 'comment', 'content': node.content}, node.span)


def walk(nodes: Sequence[Node]) -> Iterator[Node]:
    """Yield nodes in document order (pre-order, depth first)."""
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        yield node
        if node.kind is NodeKind.ELEMENT:
            stack.extend(reversed(node.children))


def to_source(nodes: Sequence[Node]) -> str:
    return SourceWriter().write(nodes)


@dataclass(frozen=True)
class Document:
    """
    Root of a parsed template.

    Holds the top-level nodes and every diagnostic found while parsing.
    A document without error diagnostics is structurally valid.
    """
    children: Tuple[Node, ...]
    diagnostics: Tuple[Any, ...] = ()
    source_name: Optional[str] = None
    source_length: int = 0

    @property
    def errors(self) -> List[Any]:
        return [d for d in self.diagnostics if d.is_error]

    @property
    def warnings(self) -> List[Any]:
        return [d for d in self.diagnostics if not d.is_error]

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)

    @property
    def max_depth(self) -> int:
        """Deepest element nesting level; 0 when there are no elements."""
        deepest = 0
        stack = [(node, 1) for node in self.children if node.kind is NodeKind.ELEMENT]
        while stack:
            node, depth = stack.pop()
            deepest = max(deepest, depth)
            stack.extend((c, depth + 1) for c in node.children if c.kind is NodeKind.ELEMENT)
        return deepest

    def raise_for_errors(self, warnings_as_errors: bool = False):
        """
        Raise ISMLSyntaxError if the document has errors.

        Args:
            warnings_as_errors: Also fail on warning diagnostics
        """
        failing = self.diagnostics if warnings_as_errors else self.errors
        if failing:
            raise ISMLSyntaxError(list(failing), source_name=self.source_name)

    def walk(self) -> Iterator[Node]:
        return walk(self.children)

    def elements(self, tag_name: Optional[str] = None) -> List[ElementNode]:
        """All elements in document order, optionally filtered by tag name."""
        wanted = tag_name.lower() if tag_name else None
        return [
            node for node in self.walk()
            if node.kind is NodeKind.ELEMENT and (wanted is None or node.tag_name == wanted)
        ]

    def to_source(self) -> str:
        return to_source(self.children)

    def to_dict(self, include_spans: bool = True) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'source_name': self.source_name,
            'valid': not self.has_errors,
            'children': DictBuilder(include_spans).build(self.children),
            'diagnostics': [d.to_dict() for d in self.diagnostics],
        }

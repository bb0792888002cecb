"""
ISML Parser Module

Turns template text into a document tree (text, elements, expressions,
comments) plus diagnostics.

Usage:
    from isml.parser import parse

    document = parse(template_text, source_name='default/product/tile.isml')
    if document.has_errors:
        for diagnostic in document.errors:
            print(diagnostic)
"""

from isml.parser.source import Position, SourceReader, SourceSpan
from isml.parser.exceptions import ISMLError, InvalidSourceError, ISMLSyntaxError
from isml.parser.diagnostics import Diagnostic, DiagnosticCode, DiagnosticsCollector, Severity
from isml.parser.ast import (
    Attribute,
    CommentNode,
    Document,
    ElementNode,
    ExpressionFragment,
    ExpressionNode,
    LiteralFragment,
    Node,
    NodeKind,
    NodeVisitor,
    TextNode,
    ValueKind,
)
from isml.parser.lexer import Lexer, Token, TokenType
from isml.parser.parser import TemplateParser, parse

__all__ = [
    'Attribute',
    'CommentNode',
    'Diagnostic',
    'DiagnosticCode',
    'DiagnosticsCollector',
    'Document',
    'ElementNode',
    'ExpressionFragment',
    'ExpressionNode',
    'ISMLError',
    'ISMLSyntaxError',
    'InvalidSourceError',
    'Lexer',
    'LiteralFragment',
    'Node',
    'NodeKind',
    'NodeVisitor',
    'Position',
    'Severity',
    'SourceReader',
    'SourceSpan',
    'TemplateParser',
    'TextNode',
    'Token',
    'TokenType',
    'ValueKind',
    'parse',
]

"""
Parser for ISML templates.

Consumes the lexer's token stream with one token of lookahead and builds the
document tree. Nesting is tracked with an explicit stack of open elements
rather than recursion, so deeply nested templates never hit the interpreter's
recursion limit and recovery is a matter of stack operations:

- a close tag matching no open element is reported and ignored
- a close tag matching an element below the top auto-closes everything above
- elements still open at the end of input are closed there
"""

import logging
from typing import Iterator, List, Optional

from isml.config import ParserConfig
from isml.parser.ast import Attribute, CommentNode, Document, ElementNode, ExpressionNode, Node, TextNode
from isml.parser.diagnostics import DiagnosticCode, DiagnosticsCollector
from isml.parser.lexer import Construct, Lexer, Token, TokenType
from isml.parser.source import Position, SourceReader, SourceSpan
from isml.parser.vocabulary import canonical_name, closes_optionally, is_void

logger = logging.getLogger(__name__)

UNTERMINATED_CODES = {
    Construct.TAG: DiagnosticCode.UNTERMINATED_TAG,
    Construct.EXPRESSION: DiagnosticCode.UNTERMINATED_EXPRESSION,
    Construct.COMMENT: DiagnosticCode.UNTERMINATED_COMMENT,
}


class _Frame:
    """An element whose close tag has not been seen yet."""

    __slots__ = ('tag_name', 'attributes', 'open_span', 'open_tag_text', 'children')

    def __init__(self, tag_name: str, attributes: tuple, open_span: SourceSpan, open_tag_text: str):
        self.tag_name = tag_name
        self.attributes = attributes
        self.open_span = open_span
        self.open_tag_text = open_tag_text
        self.children: List[Node] = []


class _ParseRun:
    """State of a single parse call."""

    def __init__(self, source: str, config: ParserConfig, source_name: Optional[str]):
        self.reader = SourceReader(source)
        self.lexer = Lexer(self.reader, config)
        self.diagnostics = DiagnosticsCollector(source_name)
        self.source_name = source_name
        self.root: List[Node] = []
        self.stack: List[_Frame] = []
        self._tokens: Optional[Iterator[Token]] = None
        self._lookahead: Optional[Token] = None
        # Opener of the construct being parsed, for unterminated-construct errors
        self._pending_opener: Optional[Token] = None

    def run(self) -> Document:
        self._tokens = self.lexer.tokens()
        self._lookahead = next(self._tokens)

        while True:
            token = self._advance()

            if token.type is TokenType.END_OF_INPUT:
                self._finish(token)
                break

            if token.type is TokenType.TEXT:
                self._append(TextNode(content=token.value, span=token.span))
            elif token.type is TokenType.TAG_OPEN_START:
                self._parse_open_tag(token)
            elif token.type is TokenType.TAG_CLOSE_START:
                self._parse_close_tag(token)
            elif token.type is TokenType.EXPRESSION_START:
                self._parse_expression(token)
            elif token.type is TokenType.COMMENT_START:
                self._parse_comment(token)
            else:
                logger.debug(f"Ignoring unexpected {token!r} in markup")

        return Document(
            children=tuple(self.root),
            diagnostics=self.diagnostics.freeze(),
            source_name=self.source_name,
            source_length=len(self.reader)
        )

    # Constructs

    def _parse_open_tag(self, start: Token):
        self._pending_opener = start
        name = start.value[1:]
        attributes = []

        while True:
            token = self._current()
            if token.type is TokenType.END_OF_INPUT:
                return
            self._advance()

            if token.type is TokenType.ATTRIBUTE_NAME:
                value = self._advance() if self._check(TokenType.ATTRIBUTE_VALUE) else None
                attributes.append(self._build_attribute(token, value))
            elif token.type is TokenType.INVALID:
                self.diagnostics.report(
                    DiagnosticCode.MALFORMED_ATTRIBUTE,
                    f"{token.message} in <{name}>",
                    token.span
                )
            elif token.type is TokenType.TAG_OPEN_END:
                end = token
                break

        self._pending_opener = None
        tag_name = canonical_name(name)
        span = SourceSpan.between(start.span.start, end.span.end)
        open_tag_text = self._source_text(span)

        if end.value == '/>' or is_void(tag_name):
            self._append(ElementNode(
                tag_name=tag_name,
                attributes=tuple(attributes),
                children=(),
                self_closing=True,
                span=span,
                open_tag_text=open_tag_text
            ))
        else:
            self.stack.append(_Frame(tag_name, tuple(attributes), span, open_tag_text))

    def _parse_close_tag(self, start: Token):
        self._pending_opener = start

        while True:
            token = self._current()
            if token.type is TokenType.END_OF_INPUT:
                return
            self._advance()

            if token.type is TokenType.INVALID:
                self.diagnostics.report(
                    DiagnosticCode.MALFORMED_CLOSING_TAG,
                    f"{token.message}: {token.value!r}",
                    token.span
                )
            elif token.type is TokenType.TAG_CLOSE_END:
                end = token
                break

        self._pending_opener = None
        tag_name = canonical_name(start.value[2:])
        close_span = SourceSpan.between(start.span.start, end.span.end)

        index = self._find_frame(tag_name)
        if index is None:
            self.diagnostics.report(
                DiagnosticCode.UNEXPECTED_CLOSING_TAG,
                f"Closing tag </{tag_name}> has no matching open tag",
                close_span
            )
            return

        skipped = [f.tag_name for f in self.stack[index + 1:] if not closes_optionally(f.tag_name)]
        if skipped:
            still_open = ', '.join(f"<{name}>" for name in reversed(skipped))
            self.diagnostics.report(
                DiagnosticCode.MISMATCHED_NESTING,
                f"Closing tag </{tag_name}> does not match the open {still_open}",
                close_span
            )

        while len(self.stack) > index + 1:
            self._close_implicitly(self.stack.pop(), close_span.start)

        frame = self.stack.pop()
        self._append(ElementNode(
            tag_name=frame.tag_name,
            attributes=frame.attributes,
            children=tuple(frame.children),
            self_closing=False,
            span=SourceSpan.between(frame.open_span.start, close_span.end),
            open_tag_text=frame.open_tag_text,
            close_tag_text=self._source_text(close_span),
            close_span=close_span
        ))

    def _parse_expression(self, start: Token):
        self._pending_opener = start
        if self._current().type is TokenType.END_OF_INPUT:
            return
        content = self._advance()
        end = self._advance()
        self._pending_opener = None

        self._append(ExpressionNode(
            raw_expression_text=content.value,
            span=SourceSpan.between(start.span.start, end.span.end),
            open_delimiter=start.value,
            close_delimiter=end.value
        ))

    def _parse_comment(self, start: Token):
        self._pending_opener = start
        if self._current().type is TokenType.END_OF_INPUT:
            return
        content = self._advance()
        end = self._advance()
        self._pending_opener = None

        self._append(CommentNode(
            content=content.value,
            span=SourceSpan.between(start.span.start, end.span.end),
            open_tag_text=start.value,
            close_tag_text=end.value
        ))

    def _finish(self, token: Token):
        """Handle end of input: unterminated construct, then open elements."""
        if token.unterminated is not None:
            opener = self._pending_opener
            self.diagnostics.report(
                UNTERMINATED_CODES[token.unterminated],
                self._unterminated_message(token.unterminated, opener),
                opener.span if opener is not None else token.span
            )
            self._append(TextNode(content=token.value, span=token.span))

        end = token.span.end
        while self.stack:
            frame = self.stack.pop()
            if not closes_optionally(frame.tag_name):
                self.diagnostics.report(
                    DiagnosticCode.UNTERMINATED_ELEMENT,
                    f"Element <{frame.tag_name}> is never closed",
                    frame.open_span
                )
            self._close_implicitly(frame, end)

    # Helpers

    def _close_implicitly(self, frame: _Frame, point: Position):
        """
        Close a frame without a close tag.

        Optional-close elements become empty elements and hand their children
        to the parent; anything else gets a zero-length close at point.
        """
        if closes_optionally(frame.tag_name):
            self._append(ElementNode(
                tag_name=frame.tag_name,
                attributes=frame.attributes,
                children=(),
                self_closing=True,
                span=frame.open_span,
                open_tag_text=frame.open_tag_text
            ))
            for child in frame.children:
                self._append(child)
            return

        close_span = SourceSpan.at(point)
        self._append(ElementNode(
            tag_name=frame.tag_name,
            attributes=frame.attributes,
            children=tuple(frame.children),
            self_closing=False,
            span=SourceSpan.between(frame.open_span.start, point),
            open_tag_text=frame.open_tag_text,
            close_span=close_span,
            recovered=True
        ))

    def _build_attribute(self, name: Token, value: Optional[Token]) -> Attribute:
        last = value or name
        span = SourceSpan.between(name.span.start, last.span.end)
        quote = None
        if value is not None and value.value[:1] in ('"', "'"):
            quote = value.value[0]

        return Attribute(
            name=name.value,
            value=value.fragments if value is not None else None,
            span=span,
            raw_text=self._source_text(span),
            quote=quote
        )

    @staticmethod
    def _unterminated_message(construct: Construct, opener: Optional[Token]) -> str:
        if construct is Construct.EXPRESSION:
            return "Unterminated expression: missing '}'"
        if construct is Construct.COMMENT:
            return "Unterminated comment: missing </iscomment>"
        if opener is not None:
            return f"Unterminated tag {opener.value}: missing '>'"
        return "Unterminated tag: missing '>'"

    def _find_frame(self, tag_name: str) -> Optional[int]:
        for index in range(len(self.stack) - 1, -1, -1):
            if self.stack[index].tag_name == tag_name:
                return index
        return None

    def _append(self, node: Node):
        if self.stack:
            self.stack[-1].children.append(node)
        else:
            self.root.append(node)

    def _source_text(self, span: SourceSpan) -> str:
        return self.reader.slice(span.start_offset, span.end_offset)

    def _current(self) -> Token:
        return self._lookahead

    def _advance(self) -> Token:
        """Consume the lookahead token and return it."""
        token = self._lookahead
        if token.type is not TokenType.END_OF_INPUT:
            self._lookahead = next(self._tokens)
        return token

    def _check(self, token_type: TokenType) -> bool:
        return self._lookahead.type is token_type


class TemplateParser:
    """
    Parser for ISML templates.

    Holds only its configuration, so one instance can be shared between
    threads; each parse() call builds its own reader, lexer and element stack.
    """

    def __init__(self, config: ParserConfig = None):
        self.config = config or ParserConfig()

    def parse(self, source: str, source_name: str = None) -> Document:
        """
        Parse template text into a Document.

        Args:
            source: The full template text
            source_name: Optional label (e.g. a file path) used in diagnostics

        Returns:
            Document with the node tree and all diagnostics. Syntax errors
            never raise; check document.has_errors.

        Raises:
            InvalidSourceError: If source is None or not a string
        """
        document = _ParseRun(source, self.config, source_name).run()
        logger.debug(
            f"Parsed {source_name or '<template>'}: "
            f"{len(document.children)} top-level nodes, {len(document.diagnostics)} diagnostics"
        )
        return document

    def validate(self, source: str, source_name: str = None) -> dict:
        """
        Validate template syntax.

        Returns:
            Dict with 'valid', 'errors', 'warnings'
        """
        document = self.parse(source, source_name)
        return {
            'valid': not document.has_errors,
            'errors': [str(d) for d in document.errors],
            'warnings': [str(d) for d in document.warnings],
        }


def parse(source: str, source_name: str = None, config: ParserConfig = None) -> Document:
    """Parse template text with a one-off TemplateParser."""
    return TemplateParser(config).parse(source, source_name)

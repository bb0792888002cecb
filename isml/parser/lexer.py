"""
Lexer for ISML templates.

Tokenizes template text lazily. The lexer is a small state machine whose
current mode decides which constructs are recognized:

- Markup: literal text up to the next tag, expression or comment opener
- Tag interior: tag name, then attribute name/value pairs up to > or />
- Close tag: </name up to >
- Expression: ${ ... } with balanced braces and quoted strings
- Comment: <iscomment> ... </iscomment>, scanned verbatim; <iscomment/> is empty
- Raw text: body of <script>/<style>; only ISML constructs are recognized
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from isml.config import ParserConfig
from isml.parser.ast import ExpressionFragment, LiteralFragment, ValueFragment
from isml.parser.source import Position, SourceReader, SourceSpan
from isml.parser.vocabulary import (
    COMMENT_TAG,
    RAW_TEXT_ELEMENTS,
    canonical_name,
    is_isml_tag,
    is_void,
)

COMMENT_CLOSE = '</' + COMMENT_TAG


class TokenType(Enum):
    """Token types for the ISML lexer."""
    TEXT = 'TEXT'

    TAG_OPEN_START = 'TAG_OPEN_START'       # <name
    TAG_OPEN_END = 'TAG_OPEN_END'           # > or />
    TAG_CLOSE_START = 'TAG_CLOSE_START'     # </name
    TAG_CLOSE_END = 'TAG_CLOSE_END'         # >
    ATTRIBUTE_NAME = 'ATTRIBUTE_NAME'
    ATTRIBUTE_VALUE = 'ATTRIBUTE_VALUE'     # quotes included in the lexeme

    EXPRESSION_START = 'EXPRESSION_START'   # ${
    EXPRESSION_CONTENT = 'EXPRESSION_CONTENT'
    EXPRESSION_END = 'EXPRESSION_END'       # }

    COMMENT_START = 'COMMENT_START'         # <iscomment>
    COMMENT_CONTENT = 'COMMENT_CONTENT'
    COMMENT_END = 'COMMENT_END'             # </iscomment>

    # Malformed input inside a tag
    INVALID = 'INVALID'

    END_OF_INPUT = 'END_OF_INPUT'


class LexerMode(Enum):
    MARKUP = 'MARKUP'
    RAW_TEXT = 'RAW_TEXT'
    TAG_INTERIOR = 'TAG_INTERIOR'
    CLOSE_TAG = 'CLOSE_TAG'
    EXPRESSION = 'EXPRESSION'
    COMMENT = 'COMMENT'
    DONE = 'DONE'


class Construct(Enum):
    """Constructs that can be left open at the end of input."""
    TAG = 'tag'
    EXPRESSION = 'expression'
    COMMENT = 'comment'


@dataclass(frozen=True)
class Token:
    """
    A token produced by the lexer.

    Attributes:
        type: Token type
        value: The source text of the token
        span: Where the token is in the source
        fragments: Literal/expression parts of an ATTRIBUTE_VALUE
        unterminated: For END_OF_INPUT, the construct the input ended in.
            value then holds the unscanned text from that construct's opener.
        message: Explanation for INVALID tokens
    """
    type: TokenType
    value: str
    span: SourceSpan
    fragments: Tuple[ValueFragment, ...] = ()
    unterminated: Optional[Construct] = None
    message: str = ''

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r}, pos={self.span.start_offset})"


def _is_name_start(char: Optional[str]) -> bool:
    return char is not None and char.isascii() and char.isalpha()


def _is_name_char(char: Optional[str]) -> bool:
    return char is not None and (char.isalnum() or char in '-_:.')


class Lexer:
    """
    Lazy, mode-sensitive tokenizer.

    Each Lexer owns its reader and mode; nothing is shared between
    instances.
    """

    def __init__(self, reader: SourceReader, config: ParserConfig = None):
        self.reader = reader
        self.config = config or ParserConfig()
        self.mode = LexerMode.MARKUP
        # Start of the tag/expression/comment currently being scanned
        self._opener: Optional[Position] = None
        self._raw_text_tag: Optional[str] = None
        # ISML body tags opened inside the current raw text element
        self._raw_text_depth = 0

    def tokens(self) -> Iterator[Token]:
        """
        Generate tokens until END_OF_INPUT (always the last token).
        """
        handlers = {
            LexerMode.MARKUP: self._lex_markup,
            LexerMode.RAW_TEXT: self._lex_markup,
            LexerMode.TAG_INTERIOR: self._lex_tag,
            LexerMode.CLOSE_TAG: self._lex_close_tag,
            LexerMode.EXPRESSION: self._lex_expression,
            LexerMode.COMMENT: self._lex_comment,
        }
        while self.mode is not LexerMode.DONE:
            yield from handlers[self.mode]()

    def tokenize(self) -> List[Token]:
        """Tokenize the entire input at once."""
        return list(self.tokens())

    # Markup

    def _lex_markup(self):
        """Collect text until an opener or the end of input."""
        reader = self.reader
        start = reader.position()

        while True:
            if reader.at_end:
                yield from self._text(start)
                yield self._end_of_input()
                self.mode = LexerMode.DONE
                return

            mode = self._match_opener()
            if mode is not None:
                yield from self._text(start)
                self.mode = mode
                return

            reader.advance()

    def _text(self, start: Position):
        if self.reader.offset > start.offset:
            yield self._token(TokenType.TEXT, start)

    def _match_opener(self) -> Optional[LexerMode]:
        """Return the mode for the construct starting here, if any."""
        reader = self.reader
        char = reader.peek()

        if char == '$':
            return LexerMode.EXPRESSION if reader.peek(1) == '{' else None
        if char != '<':
            return None

        if reader.peek(1) == '/':
            name = self._peek_name(2)
            if name and self._is_recognized(name, closing=True):
                return LexerMode.CLOSE_TAG
            return None

        name = self._peek_name(1)
        if not name:
            return None
        if canonical_name(name) == COMMENT_TAG:
            return LexerMode.COMMENT
        if self._is_recognized(name):
            return LexerMode.TAG_INTERIOR
        return None

    def _is_recognized(self, name: str, closing: bool = False) -> bool:
        if self._raw_text_tag is not None:
            return is_isml_tag(name) or (closing and canonical_name(name) == self._raw_text_tag)
        return self.config.recognize_html_tags or is_isml_tag(name)

    def _markup_mode(self) -> LexerMode:
        return LexerMode.RAW_TEXT if self._raw_text_tag else LexerMode.MARKUP

    # Tags

    def _lex_tag(self):
        """Tokenize an open tag: <name attr="value" ...> or />"""
        reader = self.reader
        start = reader.position()
        self._opener = start

        reader.advance()  # <
        name = self._read_name()
        yield self._token(TokenType.TAG_OPEN_START, start)

        while True:
            self._skip_whitespace()
            char = reader.peek()
            mark = reader.position()

            if char is None:
                yield self._end_of_input(Construct.TAG)
                self.mode = LexerMode.DONE
                return

            if char == '>':
                reader.advance()
                yield self._token(TokenType.TAG_OPEN_END, mark)
                tag = canonical_name(name)
                if self._raw_text_tag is not None:
                    if is_isml_tag(tag) and not is_void(tag):
                        self._raw_text_depth += 1
                elif tag in RAW_TEXT_ELEMENTS and self.config.recognize_html_tags:
                    self._raw_text_tag = tag
                    self._raw_text_depth = 0
                self.mode = self._markup_mode()
                return

            if char == '/' and reader.peek(1) == '>':
                reader.advance_by(2)
                yield self._token(TokenType.TAG_OPEN_END, mark)
                self.mode = self._markup_mode()
                return

            if char in '"\'':
                if not self._skip_quoted():
                    yield self._end_of_input(Construct.TAG)
                    self.mode = LexerMode.DONE
                    return
                yield self._invalid(mark, "Unexpected quoted text where an attribute name was expected")
                continue

            if char in '=</':
                reader.advance()
                yield self._invalid(mark, f"Unexpected {char!r} where an attribute name was expected")
                continue

            complete = yield from self._lex_attribute()
            if not complete:
                yield self._end_of_input(Construct.TAG)
                self.mode = LexerMode.DONE
                return

    def _lex_attribute(self):
        """
        Tokenize one attribute. Returns False if the input ends inside it.
        """
        reader = self.reader
        start = reader.position()

        if not self._read_attribute_name():
            return False
        yield self._token(TokenType.ATTRIBUTE_NAME, start)

        self._skip_whitespace()
        if reader.peek() != '=':
            return True

        equals = reader.position()
        reader.advance()
        self._skip_whitespace()

        char = reader.peek()
        if char is None:
            return False
        if char == '>' or (char == '/' and reader.peek(1) == '>'):
            yield self._invalid(equals, "Missing attribute value after '='")
            return True

        value_start = reader.position()
        if char in '"\'':
            reader.advance()
            fragments = self._read_value(quote=char)
        else:
            fragments = self._read_value(quote=None)

        if fragments is None:
            return False

        yield Token(
            TokenType.ATTRIBUTE_VALUE,
            reader.slice(value_start.offset, reader.offset),
            SourceSpan.between(value_start, reader.position()),
            fragments=fragments
        )
        return True

    def _read_attribute_name(self) -> bool:
        reader = self.reader
        while True:
            char = reader.peek()
            if char is None:
                return True
            if char.isspace() or char in '=>"\'<':
                return True
            if char == '/' and reader.peek(1) == '>':
                return True
            if char == '$' and reader.peek(1) == '{':
                reader.advance_by(2)
                if not self._scan_expression_body():
                    return False
            reader.advance()

    def _read_value(self, quote: Optional[str]) -> Optional[Tuple[ValueFragment, ...]]:
        """
        Read an attribute value after its opening quote (if any).

        Returns the value fragments, or None if the input ends first.
        """
        reader = self.reader
        fragments = []
        literal_start = reader.position()

        while True:
            char = reader.peek()
            if char is None:
                return None

            if quote is not None and char == quote:
                self._add_literal(fragments, literal_start)
                reader.advance()
                return tuple(fragments)

            if quote is None and (char.isspace() or char == '>' or (char == '/' and reader.peek(1) == '>')):
                self._add_literal(fragments, literal_start)
                return tuple(fragments)

            if char == '$' and reader.peek(1) == '{':
                self._add_literal(fragments, literal_start)
                fragment = self._read_expression_fragment()
                if fragment is None:
                    return None
                fragments.append(fragment)
                literal_start = reader.position()
                continue

            if char == '#' and self.config.hash_expressions:
                length = self._hash_expression_length(quote)
                if length:
                    self._add_literal(fragments, literal_start)
                    start = reader.position()
                    text = reader.advance_by(length)
                    fragments.append(ExpressionFragment(
                        text[1:-1],
                        SourceSpan.between(start, reader.position()),
                        open_delimiter='#',
                        close_delimiter='#'
                    ))
                    literal_start = reader.position()
                    continue

            reader.advance()

    def _add_literal(self, fragments: list, start: Position):
        reader = self.reader
        if reader.offset > start.offset:
            fragments.append(LiteralFragment(
                reader.slice(start.offset, reader.offset),
                SourceSpan.between(start, reader.position())
            ))

    def _read_expression_fragment(self) -> Optional[ExpressionFragment]:
        reader = self.reader
        start = reader.position()
        reader.advance_by(2)  # ${
        content_start = reader.offset

        if not self._scan_expression_body():
            return None

        content = reader.slice(content_start, reader.offset)
        reader.advance()  # }
        return ExpressionFragment(content, SourceSpan.between(start, reader.position()))

    def _hash_expression_length(self, quote: Optional[str]) -> int:
        """
        Length of a #...# expression starting here, or 0 when the '#' is
        literal (no closing '#' before the value ends, or nothing between).
        """
        reader = self.reader
        index = 1
        while True:
            char = reader.peek(index)
            if char is None:
                return 0
            if char == '#':
                return index + 1 if index > 1 else 0
            if quote is not None and char == quote:
                return 0
            if quote is None and (char.isspace() or char == '>'):
                return 0
            if char in '"\'':
                # A nested string never runs past the end of the value
                index += 1
                while True:
                    inner = reader.peek(index)
                    if inner is None or inner == quote:
                        return 0
                    if quote is None and (inner.isspace() or inner == '>'):
                        return 0
                    if inner == char:
                        break
                    index += 1
            index += 1

    def _lex_close_tag(self):
        """Tokenize a close tag: </name>"""
        reader = self.reader
        start = reader.position()
        self._opener = start

        reader.advance_by(2)  # </
        name = self._read_name()
        yield self._token(TokenType.TAG_CLOSE_START, start)

        while True:
            self._skip_whitespace()
            char = reader.peek()
            mark = reader.position()

            if char is None:
                yield self._end_of_input(Construct.TAG)
                self.mode = LexerMode.DONE
                return

            if char == '>':
                reader.advance()
                yield self._token(TokenType.TAG_CLOSE_END, mark)
                if canonical_name(name) == self._raw_text_tag:
                    self._raw_text_tag = None
                elif self._raw_text_tag is not None and is_isml_tag(name):
                    self._raw_text_depth -= 1
                    # Closes an element opened before the raw text one, which
                    # ends the raw text element implicitly
                    if self._raw_text_depth < 0:
                        self._raw_text_tag = None
                        self._raw_text_depth = 0
                self.mode = self._markup_mode()
                return

            if char in '"\'':
                if not self._skip_quoted():
                    yield self._end_of_input(Construct.TAG)
                    self.mode = LexerMode.DONE
                    return
            else:
                while reader.peek() is not None and not reader.peek().isspace() and reader.peek() != '>':
                    reader.advance()
            yield self._invalid(mark, "Unexpected content in closing tag")

    # Expressions

    def _lex_expression(self):
        """Tokenize ${ ... }"""
        reader = self.reader
        start = reader.position()
        self._opener = start

        reader.advance_by(2)
        yield self._token(TokenType.EXPRESSION_START, start)

        content_start = reader.position()
        if not self._scan_expression_body():
            yield self._end_of_input(Construct.EXPRESSION)
            self.mode = LexerMode.DONE
            return
        yield self._token(TokenType.EXPRESSION_CONTENT, content_start)

        mark = reader.position()
        reader.advance()
        yield self._token(TokenType.EXPRESSION_END, mark)
        self.mode = self._markup_mode()

    def _scan_expression_body(self) -> bool:
        """
        Advance to the '}' closing the current expression.

        Nested braces and quoted strings are skipped as a whole, so '}' inside
        them does not end the expression. Returns False at end of input.
        """
        reader = self.reader
        depth = 0
        while True:
            char = reader.peek()
            if char is None:
                return False
            if char in '"\'':
                if not self._skip_quoted():
                    return False
                continue
            if char == '{':
                depth += 1
            elif char == '}':
                if depth == 0:
                    return True
                depth -= 1
            reader.advance()

    # Comments

    def _lex_comment(self):
        """Tokenize <iscomment> ... </iscomment>"""
        reader = self.reader
        start = reader.position()
        self._opener = start

        while True:
            char = reader.advance()
            if char is None:
                yield self._end_of_input(Construct.COMMENT)
                self.mode = LexerMode.DONE
                return
            if char == '>':
                break
        yield self._token(TokenType.COMMENT_START, start)

        content_start = reader.position()
        if reader.slice(start.offset, reader.offset).endswith('/>'):
            # <iscomment/> is an empty comment with no end tag
            yield self._token(TokenType.COMMENT_CONTENT, content_start)
            yield self._token(TokenType.COMMENT_END, content_start)
            self.mode = self._markup_mode()
            return

        while True:
            if reader.at_end:
                yield self._end_of_input(Construct.COMMENT)
                self.mode = LexerMode.DONE
                return
            close_length = self._comment_close_length()
            if close_length:
                break
            reader.advance()
        yield self._token(TokenType.COMMENT_CONTENT, content_start)

        mark = reader.position()
        reader.advance_by(close_length)
        yield self._token(TokenType.COMMENT_END, mark)
        self.mode = self._markup_mode()

    def _comment_close_length(self) -> int:
        reader = self.reader
        if not reader.startswith(COMMENT_CLOSE, ignore_case=True):
            return 0
        index = len(COMMENT_CLOSE)
        while reader.peek(index) is not None and reader.peek(index).isspace():
            index += 1
        if reader.peek(index) == '>':
            return index + 1
        return 0

    # Helpers

    def _token(self, token_type: TokenType, start: Position) -> Token:
        """Token covering the text from start to the current position."""
        reader = self.reader
        return Token(
            token_type,
            reader.slice(start.offset, reader.offset),
            SourceSpan.between(start, reader.position())
        )

    def _invalid(self, start: Position, message: str) -> Token:
        reader = self.reader
        return Token(
            TokenType.INVALID,
            reader.slice(start.offset, reader.offset),
            SourceSpan.between(start, reader.position()),
            message=message
        )

    def _end_of_input(self, construct: Construct = None) -> Token:
        reader = self.reader
        end = reader.position()
        if construct is None:
            return Token(TokenType.END_OF_INPUT, '', SourceSpan.at(end))
        return Token(
            TokenType.END_OF_INPUT,
            reader.slice(self._opener.offset),
            SourceSpan.between(self._opener, end),
            unterminated=construct
        )

    def _peek_name(self, offset: int) -> str:
        reader = self.reader
        if not _is_name_start(reader.peek(offset)):
            return ''
        end = offset
        while _is_name_char(reader.peek(end)):
            end += 1
        return reader.slice(reader.offset + offset, reader.offset + end)

    def _read_name(self) -> str:
        reader = self.reader
        start = reader.offset
        while _is_name_char(reader.peek()):
            reader.advance()
        return reader.slice(start, reader.offset)

    def _skip_quoted(self) -> bool:
        """Skip a quoted string with backslash escapes. False at end of input."""
        reader = self.reader
        quote = reader.advance()
        while True:
            char = reader.advance()
            if char is None:
                return False
            if char == '\\':
                if reader.advance() is None:
                    return False
            elif char == quote:
                return True

    def _skip_whitespace(self):
        reader = self.reader
        while reader.peek() is not None and reader.peek().isspace():
            reader.advance()

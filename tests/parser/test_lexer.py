"""
Tests for the ISML lexer
"""

from isml.config import ParserConfig
from isml.parser import ExpressionFragment, Lexer, LiteralFragment, SourceReader, TokenType
from isml.parser.lexer import Construct


def tokenize(source, **config):
    return Lexer(SourceReader(source), ParserConfig(**config)).tokenize()


def kinds(source, **config):
    return [(t.type, t.value) for t in tokenize(source, **config)]


class TestMarkupAndExpressions:
    """Test text and inline expressions"""

    def test_text_with_expression(self):
        assert kinds('Hello ${name}!') == [
            (TokenType.TEXT, 'Hello '),
            (TokenType.EXPRESSION_START, '${'),
            (TokenType.EXPRESSION_CONTENT, 'name'),
            (TokenType.EXPRESSION_END, '}'),
            (TokenType.TEXT, '!'),
            (TokenType.END_OF_INPUT, ''),
        ]

    def test_empty_input_yields_only_end_of_input(self):
        assert kinds('') == [(TokenType.END_OF_INPUT, '')]

    def test_nested_braces_and_quoted_close_stay_in_expression(self):
        tokens = tokenize("${ {a: '}'} }")
        content = [t for t in tokens if t.type is TokenType.EXPRESSION_CONTENT]
        assert len(content) == 1
        assert content[0].value == " {a: '}'} "

    def test_escaped_quote_inside_expression_string(self):
        tokens = tokenize('${"say \\"}\\" now"}tail')
        assert tokens[1].value == '"say \\"}\\" now"'
        assert tokens[3].value == 'tail'

    def test_dollar_without_brace_is_text(self):
        assert kinds('costs $5') == [
            (TokenType.TEXT, 'costs $5'),
            (TokenType.END_OF_INPUT, ''),
        ]

    def test_less_than_without_name_is_text(self):
        assert kinds('a < b <= c') == [
            (TokenType.TEXT, 'a < b <= c'),
            (TokenType.END_OF_INPUT, ''),
        ]

    def test_tokens_are_produced_lazily(self):
        reader = SourceReader('abc <isif condition="${x}">')
        tokens = Lexer(reader).tokens()
        first = next(tokens)
        assert first.type is TokenType.TEXT
        assert reader.offset == 4


class TestTags:
    """Test open and close tags"""

    def test_self_closing_tag_with_attributes(self):
        assert kinds('<isset name="x" value="${1}" scope="request"/>') == [
            (TokenType.TAG_OPEN_START, '<isset'),
            (TokenType.ATTRIBUTE_NAME, 'name'),
            (TokenType.ATTRIBUTE_VALUE, '"x"'),
            (TokenType.ATTRIBUTE_NAME, 'value'),
            (TokenType.ATTRIBUTE_VALUE, '"${1}"'),
            (TokenType.ATTRIBUTE_NAME, 'scope'),
            (TokenType.ATTRIBUTE_VALUE, '"request"'),
            (TokenType.TAG_OPEN_END, '/>'),
            (TokenType.END_OF_INPUT, ''),
        ]

    def test_unquoted_and_bare_attributes(self):
        assert kinds('<input type=text disabled>') == [
            (TokenType.TAG_OPEN_START, '<input'),
            (TokenType.ATTRIBUTE_NAME, 'type'),
            (TokenType.ATTRIBUTE_VALUE, 'text'),
            (TokenType.ATTRIBUTE_NAME, 'disabled'),
            (TokenType.TAG_OPEN_END, '>'),
            (TokenType.END_OF_INPUT, ''),
        ]

    def test_close_tag_allows_whitespace(self):
        assert kinds('</isif >') == [
            (TokenType.TAG_CLOSE_START, '</isif'),
            (TokenType.TAG_CLOSE_END, '>'),
            (TokenType.END_OF_INPUT, ''),
        ]

    def test_close_tag_with_junk(self):
        tokens = tokenize('</isif foo>')
        assert [t.type for t in tokens] == [
            TokenType.TAG_CLOSE_START,
            TokenType.INVALID,
            TokenType.TAG_CLOSE_END,
            TokenType.END_OF_INPUT,
        ]
        assert tokens[1].value == 'foo'

    def test_attribute_value_fragments(self):
        tokens = tokenize('<a href="/p/${product.ID}.html">')
        value = next(t for t in tokens if t.type is TokenType.ATTRIBUTE_VALUE)
        assert [type(f) for f in value.fragments] == [LiteralFragment, ExpressionFragment, LiteralFragment]
        assert value.fragments[0].text == '/p/'
        assert value.fragments[1].raw_expression_text == 'product.ID'
        assert value.fragments[2].text == '.html'

    def test_quote_inside_expression_does_not_end_value(self):
        tokens = tokenize('<isprint value="${Resource.msg("a", "b", null)}">')
        value = next(t for t in tokens if t.type is TokenType.ATTRIBUTE_VALUE)
        assert value.value == '"${Resource.msg("a", "b", null)}"'
        assert len(value.fragments) == 1

    def test_stray_quote_is_invalid(self):
        tokens = tokenize('<div "oops">')
        invalid = [t for t in tokens if t.type is TokenType.INVALID]
        assert len(invalid) == 1
        assert invalid[0].value == '"oops"'

    def test_equals_without_value_is_invalid(self):
        tokens = tokenize('<isset name= >')
        assert [t.type for t in tokens] == [
            TokenType.TAG_OPEN_START,
            TokenType.ATTRIBUTE_NAME,
            TokenType.INVALID,
            TokenType.TAG_OPEN_END,
            TokenType.END_OF_INPUT,
        ]
        assert "Missing attribute value" in tokens[2].message


class TestHashExpressions:
    """Test legacy #...# expressions in attribute values"""

    def test_hash_expression_in_value(self):
        tokens = tokenize('<isif condition="#pdict.Basket.empty#">')
        value = next(t for t in tokens if t.type is TokenType.ATTRIBUTE_VALUE)
        assert len(value.fragments) == 1
        fragment = value.fragments[0]
        assert isinstance(fragment, ExpressionFragment)
        assert fragment.raw_expression_text == 'pdict.Basket.empty'
        assert fragment.open_delimiter == '#'

    def test_anchor_hash_is_literal(self):
        tokens = tokenize('<a href="#top">')
        value = next(t for t in tokens if t.type is TokenType.ATTRIBUTE_VALUE)
        assert value.fragments == (LiteralFragment('#top', value.fragments[0].span),)

    def test_hash_expressions_disabled(self):
        tokens = tokenize('<isif condition="#x#">', hash_expressions=False)
        value = next(t for t in tokens if t.type is TokenType.ATTRIBUTE_VALUE)
        assert isinstance(value.fragments[0], LiteralFragment)
        assert value.fragments[0].text == '#x#'

    def test_apostrophe_does_not_run_past_the_value(self):
        tokens = tokenize('<a title="#it\'s" data-x=\'#\'>x</a>')
        values = [t for t in tokens if t.type is TokenType.ATTRIBUTE_VALUE]
        assert [v.value for v in values] == ['"#it\'s"', "'#'"]
        assert all(isinstance(f, LiteralFragment) for v in values for f in v.fragments)
        assert tokens[-2].type is TokenType.TAG_CLOSE_END

    def test_quoted_hash_inside_expression(self):
        tokens = tokenize('<isif condition="#a == \'#\'#">')
        value = next(t for t in tokens if t.type is TokenType.ATTRIBUTE_VALUE)
        assert value.fragments[0].raw_expression_text == "a == '#'"


class TestComments:
    """Test <iscomment> scanning"""

    def test_comment_content_is_verbatim(self):
        assert kinds('<iscomment>a <isif> ${x}</iscomment>') == [
            (TokenType.COMMENT_START, '<iscomment>'),
            (TokenType.COMMENT_CONTENT, 'a <isif> ${x}'),
            (TokenType.COMMENT_END, '</iscomment>'),
            (TokenType.END_OF_INPUT, ''),
        ]

    def test_comment_close_is_case_insensitive(self):
        tokens = tokenize('<ISCOMMENT>x</IsComment >')
        assert tokens[2].type is TokenType.COMMENT_END
        assert tokens[2].value == '</IsComment >'

    def test_self_closing_comment_is_empty(self):
        assert kinds('<iscomment/><div>') == [
            (TokenType.COMMENT_START, '<iscomment/>'),
            (TokenType.COMMENT_CONTENT, ''),
            (TokenType.COMMENT_END, ''),
            (TokenType.TAG_OPEN_START, '<div'),
            (TokenType.TAG_OPEN_END, '>'),
            (TokenType.END_OF_INPUT, ''),
        ]


class TestRawText:
    """Test <script>/<style> bodies"""

    def test_script_body_is_text(self):
        assert kinds('<script>if (a < b) { x = "<div>"; }</script>') == [
            (TokenType.TAG_OPEN_START, '<script'),
            (TokenType.TAG_OPEN_END, '>'),
            (TokenType.TEXT, 'if (a < b) { x = "<div>"; }'),
            (TokenType.TAG_CLOSE_START, '</script'),
            (TokenType.TAG_CLOSE_END, '>'),
            (TokenType.END_OF_INPUT, ''),
        ]

    def test_expressions_recognized_in_script(self):
        types = [t.type for t in tokenize('<script>var x = ${pdict.x};</script>')]
        assert TokenType.EXPRESSION_CONTENT in types

    def test_isml_tags_recognized_in_style(self):
        tokens = tokenize('<style><isif condition="${dark}">body{}</isif></style>')
        names = [t.value for t in tokens if t.type in (TokenType.TAG_OPEN_START, TokenType.TAG_CLOSE_START)]
        assert names == ['<style', '<isif', '</isif', '</style']

    def test_closing_an_outer_isml_tag_ends_raw_text(self):
        tokens = tokenize('<isif condition="${a}"><script></isif><div>x</div>')
        names = [t.value for t in tokens if t.type in (TokenType.TAG_OPEN_START, TokenType.TAG_CLOSE_START)]
        assert names == ['<isif', '<script', '</isif', '<div', '</div']

    def test_isml_tags_inside_script_keep_raw_text(self):
        tokens = tokenize('<script><isloop items="${a}" var="i"><isprint value="${i}"></isloop>"<b>"</script>')
        texts = [t.value for t in tokens if t.type is TokenType.TEXT]
        assert texts == ['"<b>"']


class TestIsmlOnly:
    """Test recognize_html_tags=False"""

    def test_html_is_text(self):
        source = '<div><isif condition="${a}">x</isif></div>'
        assert [t.type for t in tokenize(source, recognize_html_tags=False)] == [
            TokenType.TEXT,
            TokenType.TAG_OPEN_START,
            TokenType.ATTRIBUTE_NAME,
            TokenType.ATTRIBUTE_VALUE,
            TokenType.TAG_OPEN_END,
            TokenType.TEXT,
            TokenType.TAG_CLOSE_START,
            TokenType.TAG_CLOSE_END,
            TokenType.TEXT,
            TokenType.END_OF_INPUT,
        ]


class TestEndOfInput:
    """Test unterminated constructs"""

    def test_unterminated_tag(self):
        last = tokenize('<isif condition="x"')[-1]
        assert last.type is TokenType.END_OF_INPUT
        assert last.unterminated is Construct.TAG
        assert last.value == '<isif condition="x"'

    def test_unterminated_expression(self):
        tokens = tokenize('a ${b')
        assert tokens[-1].unterminated is Construct.EXPRESSION
        assert tokens[-1].value == '${b'
        assert tokens[-1].span.start_offset == 2

    def test_unterminated_comment(self):
        last = tokenize('<iscomment>never closed')[-1]
        assert last.unterminated is Construct.COMMENT
        assert last.value == '<iscomment>never closed'

    def test_well_formed_input_ends_cleanly(self):
        last = tokenize('<isif condition="${a}">x</isif>')[-1]
        assert last.type is TokenType.END_OF_INPUT
        assert last.unterminated is None
        assert last.span.is_empty

"""
Tests for DiagnosticsCollector, exceptions and the tag vocabulary
"""

import pytest

from isml.parser import (
    Diagnostic,
    DiagnosticCode,
    DiagnosticsCollector,
    ISMLError,
    ISMLSyntaxError,
    InvalidSourceError,
    Position,
    Severity,
    SourceSpan,
)
from isml.parser.vocabulary import closes_optionally, is_isml_tag, is_void


def span_at(offset, line=1, column=None):
    return SourceSpan.at(Position(offset, line, column or offset + 1))


class TestDiagnosticsCollector:
    """Test collecting diagnostics during a parse"""

    def test_default_severity(self):
        collector = DiagnosticsCollector()
        error = collector.report(DiagnosticCode.UNTERMINATED_TAG, 'x', span_at(0))
        warning = collector.report(DiagnosticCode.MALFORMED_CLOSING_TAG, 'y', span_at(1))
        assert error.severity is Severity.ERROR
        assert warning.severity is Severity.WARNING
        assert collector.error_count == 1
        assert len(collector) == 2

    def test_severity_override(self):
        collector = DiagnosticsCollector()
        diagnostic = collector.report(
            DiagnosticCode.UNEXPECTED_CLOSING_TAG, 'x', span_at(0), severity=Severity.WARNING
        )
        assert diagnostic.is_error is False

    def test_freeze_sorts_stably(self):
        collector = DiagnosticsCollector('t.isml')
        collector.report(DiagnosticCode.UNEXPECTED_CLOSING_TAG, 'late', span_at(9))
        collector.report(DiagnosticCode.MISMATCHED_NESTING, 'first', span_at(2))
        collector.report(DiagnosticCode.MALFORMED_ATTRIBUTE, 'second', span_at(2))

        frozen = collector.freeze()
        assert isinstance(frozen, tuple)
        assert [d.message for d in frozen] == ['first', 'second', 'late']
        assert all(d.source_name == 't.isml' for d in frozen)

    def test_report_after_freeze_fails(self):
        collector = DiagnosticsCollector()
        collector.freeze()
        with pytest.raises(RuntimeError):
            collector.report(DiagnosticCode.UNTERMINATED_TAG, 'x', span_at(0))


class TestDiagnostic:
    """Test diagnostic formatting"""

    def test_str_without_source_name(self):
        diagnostic = Diagnostic(Severity.ERROR, 'Boom', span_at(4, 2, 3), DiagnosticCode.UNTERMINATED_TAG)
        assert str(diagnostic) == '2:3: error: Boom [unterminated-tag]'

    def test_to_dict(self):
        diagnostic = Diagnostic(Severity.WARNING, 'Hm', span_at(0), DiagnosticCode.MALFORMED_CLOSING_TAG)
        data = diagnostic.to_dict()
        assert data['severity'] == 'warning'
        assert data['code'] == 'malformed-closing-tag'
        assert data['message'] == 'Hm'
        assert (data['line'], data['column']) == (1, 1)
        assert data['span']['start_offset'] == 0

    def test_codes_are_stable(self):
        assert {code.value for code in DiagnosticCode} == {
            'unterminated-tag',
            'unterminated-expression',
            'unterminated-comment',
            'unexpected-closing-tag',
            'mismatched-nesting',
            'unterminated-element',
            'malformed-attribute',
            'malformed-closing-tag',
        }


class TestExceptions:
    """Test exception hierarchy"""

    def test_basic_error(self):
        error = ISMLError('Test error')
        assert str(error) == 'Test error'

    def test_with_source_name(self):
        error = ISMLError('Test error', source_name='a.isml')
        assert str(error) == '[a.isml] Test error'
        assert error.message == 'Test error'

    def test_hierarchy(self):
        assert issubclass(InvalidSourceError, ISMLError)
        assert issubclass(ISMLSyntaxError, ISMLError)

    def test_syntax_error_lists_diagnostics(self):
        diagnostic = Diagnostic(Severity.ERROR, 'Boom', span_at(0), DiagnosticCode.UNTERMINATED_TAG)
        error = ISMLSyntaxError([diagnostic])
        assert error.diagnostics == [diagnostic]
        assert str(error) == '1 problem(s) in template:\n1:1: error: Boom [unterminated-tag]'


class TestVocabulary:
    """Test tag classification"""

    @pytest.mark.parametrize('name', ['isset', 'ISINCLUDE', 'iselse', 'br', 'IMG', 'input'])
    def test_void(self, name):
        assert is_void(name)

    @pytest.mark.parametrize('name', ['isif', 'isloop', 'div', 'iscomment', 'isproductprice'])
    def test_not_void(self, name):
        assert not is_void(name)

    def test_isml_prefix(self):
        assert is_isml_tag('IsLoop')
        assert not is_isml_tag('div')

    def test_optional_close(self):
        assert closes_optionally('isproductprice')
        assert not closes_optionally('isif')
        assert not closes_optionally('isset')
        assert not closes_optionally('iscomment')
        assert not closes_optionally('div')

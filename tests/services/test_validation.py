"""
Tests for TemplateValidationService
"""

from isml.config import ParserConfig
from isml.services.validation import TemplateReport, TemplateValidationService, build_outline
from isml.parser import parse


class TestTemplateValidationService:
    """Test template reports"""

    def test_valid_template_report(self, product_tile):
        report = TemplateValidationService().validate(product_tile, 'default/product/tile.isml')

        assert report.is_valid is True
        assert report.source_name == 'default/product/tile.isml'
        assert report.errors == []
        assert report.warnings == []
        assert report.tags == ['iscontent', 'isinclude', 'isif', 'iselse', 'isloop']

    def test_stats(self, product_tile):
        stats = TemplateValidationService().validate(product_tile).stats

        assert stats['elements'] == 9
        assert stats['isml_tags'] == 5
        assert stats['expressions'] == 8
        assert stats['comments'] == 1
        assert stats['max_depth'] == 3
        assert stats['diagnostics'] == 0

    def test_invalid_template_report(self):
        report = TemplateValidationService().validate('<isif condition="${a}">\n<p>x</p>\n', 'cart.isml')

        assert report.is_valid is False
        assert len(report.errors) == 1
        assert report.errors[0]['code'] == 'unterminated-element'
        assert report.errors[0]['line'] == 1

    def test_warnings_only(self):
        report = TemplateValidationService().validate('<div></div foo>')
        assert report.is_valid is True
        assert report.failed() is False
        assert report.failed(warnings_as_errors=True) is True

    def test_uses_parser_config(self):
        service = TemplateValidationService(ParserConfig(recognize_html_tags=False))
        report = service.validate('<div><isif condition="${a}"></isif></div>')
        assert report.stats['elements'] == 1
        assert report.tags == ['isif']

    def test_to_dict(self):
        data = TemplateValidationService().validate('<isloop items="${a}" var="i"></isloop>').to_dict()
        assert set(data) == {'valid', 'source_name', 'errors', 'warnings', 'tags', 'stats', 'outline'}
        assert 'outline' not in TemplateReport(source_name=None).to_dict(include_outline=False)


class TestOutline:
    """Test element outline"""

    def test_nested_outline(self):
        document = parse('<div>\n  <isif condition="${a}"><br></isif>\n</div>text')
        outline = build_outline(document.children)

        assert len(outline) == 1
        div = outline[0]
        assert (div['tag'], div['line'], div['column']) == ('div', 1, 1)

        isif = div['children'][0]
        assert (isif['tag'], isif['line'], isif['column']) == ('isif', 2, 3)
        assert isif['children'][0]['tag'] == 'br'
        assert isif['children'][0]['self_closing'] is True

    def test_outline_marks_recovered_elements(self):
        outline = build_outline(parse('<div><span></div>').children)
        assert outline[0]['recovered'] is False
        assert outline[0]['children'][0]['recovered'] is True

    def test_outline_max_depth(self):
        outline = build_outline(parse('<a><b><c></c></b></a>').children, max_depth=2)
        assert outline[0]['children'][0]['tag'] == 'b'
        assert outline[0]['children'][0]['children'] == []

    def test_deep_template_report(self):
        depth = 2000
        source = '<isif condition="${a}">' * depth + '</isif>' * depth
        report = TemplateValidationService(outline_depth=10).validate(source)

        assert report.is_valid is True
        assert report.stats['max_depth'] == depth
        assert report.stats['expressions'] == depth

        level, item = 1, report.outline[0]
        while item['children']:
            level, item = level + 1, item['children'][0]
        assert level == 10

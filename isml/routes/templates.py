"""
Template endpoints

Validation and parse-tree export for editors and build dashboards. Nothing
here resolves or renders a template.
"""
import logging

from flask import Blueprint, current_app, jsonify, request

from isml.config import ParserConfig
from isml.parser import TemplateParser
from isml.services.validation import TemplateValidationService

logger = logging.getLogger(__name__)
templates_bp = Blueprint('isml', __name__, url_prefix='/api/v1/isml')


def _read_template_request():
    """
    Pull template_content and source_name out of the JSON body.

    Returns:
        (data, error_response) where error_response is None when the body is valid
    """
    data = request.get_json(silent=True) or {}
    template_content = data.get('template_content')

    if template_content is None:
        return data, (jsonify({'error': 'template_content is required'}), 400)
    if not isinstance(template_content, str):
        return data, (jsonify({'error': 'template_content must be a string'}), 400)

    source_name = data.get('source_name')
    if source_name is not None and not isinstance(source_name, str):
        return data, (jsonify({'error': 'source_name must be a string'}), 400)

    return data, None


@templates_bp.route('/validate', methods=['POST'])
def validate_template():
    """
    Validate template syntax.

    POST /api/v1/isml/validate

    Request Body:
    {
        "template_content": "...",              # Template text
        "source_name": "default/cart.isml"      # Optional label for diagnostics
    }

    Response:
    {
        "valid": false,
        "source_name": "default/cart.isml",
        "errors": [{"severity": "error", "code": "unterminated-element", "line": 3, ...}],
        "warnings": [],
        "tags": ["isif", "isloop"],
        "stats": {"elements": 12, "isml_tags": 4, ...},
        "outline": [{"tag": "isif", "line": 1, "column": 1, "children": [...]}]
    }
    """
    data, error = _read_template_request()
    if error:
        return error

    try:
        service = TemplateValidationService(
            ParserConfig.from_object(current_app.config),
            outline_depth=current_app.config.get('ISML_OUTLINE_MAX_DEPTH'),
        )
        report = service.validate(data['template_content'], data.get('source_name'))
        return jsonify(report.to_dict())

    except Exception as e:
        logger.exception(f"Error validating template {data.get('source_name') or '<template>'}")
        return jsonify({
            'error': str(e),
            'valid': False,
            'errors': [],
            'warnings': []
        }), 500


@templates_bp.route('/parse', methods=['POST'])
def parse_template():
    """
    Export the parsed document tree.

    POST /api/v1/isml/parse

    Request Body:
    {
        "template_content": "...",
        "source_name": "default/cart.isml",     # Optional
        "include_spans": true                   # Optional, default true
    }

    Response: Document.to_dict()
    {
        "source_name": "default/cart.isml",
        "valid": true,
        "children": [{"type": "element", "tag_name": "isif", ...}],
        "diagnostics": []
    }
    """
    data, error = _read_template_request()
    if error:
        return error

    include_spans = data.get('include_spans', True)
    if not isinstance(include_spans, bool):
        return jsonify({'error': 'include_spans must be a boolean'}), 400

    try:
        parser = TemplateParser(ParserConfig.from_object(current_app.config))
        document = parser.parse(data['template_content'], data.get('source_name'))

        # The JSON encoder recurses once per nesting level
        max_depth = current_app.config.get('ISML_EXPORT_MAX_DEPTH')
        if max_depth is not None and document.max_depth > max_depth:
            logger.warning(
                f"Parse tree of {data.get('source_name') or '<template>'} is {document.max_depth} levels deep, "
                f"export limit is {max_depth}"
            )
            return jsonify({
                'error': f'Template nesting exceeds {max_depth} levels; use /validate instead',
                'max_depth': document.max_depth,
            }), 422

        return jsonify(document.to_dict(include_spans=include_spans))

    except Exception as e:
        logger.exception(f"Error parsing template {data.get('source_name') or '<template>'}")
        return jsonify({'error': str(e)}), 500

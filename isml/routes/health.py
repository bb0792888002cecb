"""
API health check endpoint
"""
from datetime import datetime, timezone

from flask import Blueprint, jsonify

from isml.parser import parse

bp = Blueprint('health', __name__, url_prefix='/api')


@bp.route('/health', methods=['GET'])
def health_check():
    """Healthcheck endpoint: the API is up and the parser handles a sample template"""
    try:
        document = parse('<isif condition="${true}">ok</isif>', source_name='healthcheck')
        document.raise_for_errors()

        return jsonify({
            'status': 'healthy',
            'message': 'API is online and the parser is working',
            'timestamp': datetime.now(timezone.utc).isoformat()
        }), 200

    except Exception as e:
        return jsonify({
            'status': 'unhealthy',
            'message': 'API is online but the parser failed',
            'error': str(e),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }), 503

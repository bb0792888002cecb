import os
from dataclasses import dataclass
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()


def env_flag(name: str, default: bool) -> bool:
    """Read a boolean from the environment ('1', 'true', 'yes', 'on')."""
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def env_int(name: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return int(value)


class Config:
    # Flask
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    DEBUG = os.getenv('FLASK_ENV') == 'development'

    # Largest template accepted by the HTTP API
    MAX_CONTENT_LENGTH = env_int('ISML_MAX_TEMPLATE_BYTES', 2 * 1024 * 1024)

    # Comma separated list, added to the default local origins
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Parser
    ISML_RECOGNIZE_HTML_TAGS = env_flag('ISML_RECOGNIZE_HTML_TAGS', True)
    ISML_HASH_EXPRESSIONS = env_flag('ISML_HASH_EXPRESSIONS', True)

    # Deepest element level listed in /validate outlines
    ISML_OUTLINE_MAX_DEPTH = env_int('ISML_OUTLINE_MAX_DEPTH', 100)

    # Deepest element nesting /parse will export as JSON
    ISML_EXPORT_MAX_DEPTH = env_int('ISML_EXPORT_MAX_DEPTH', 200)

    # Precompile check
    ISML_TEMPLATE_ENCODING = os.getenv('ISML_TEMPLATE_ENCODING', 'UTF-8')
    ISML_FAIL_ON_WARNING = env_flag('ISML_FAIL_ON_WARNING', False)
    ISML_MAX_WORKERS = env_int('ISML_MAX_WORKERS', None)


class TestingConfig(Config):
    TESTING = True
    DEBUG = False


def _lookup(source: Any, key: str, default: Any) -> Any:
    if isinstance(source, dict):
        return source.get(key, default)
    return getattr(source, key, default)


@dataclass(frozen=True)
class ParserConfig:
    """
    Settings that change how templates are tokenized.

    Attributes:
        recognize_html_tags: Parse every <name ...> as an element. When False
            only ISML (<is...>) tags are elements and HTML is plain text.
        hash_expressions: Recognize legacy #...# expressions in attribute values.
    """
    recognize_html_tags: bool = True
    hash_expressions: bool = True

    @classmethod
    def from_object(cls, source: Any = None) -> 'ParserConfig':
        """
        Build parser settings from a Config class or a mapping such as
        flask.current_app.config.
        """
        source = Config if source is None else source
        return cls(
            recognize_html_tags=bool(_lookup(source, 'ISML_RECOGNIZE_HTML_TAGS', True)),
            hash_expressions=bool(_lookup(source, 'ISML_HASH_EXPRESSIONS', True)),
        )

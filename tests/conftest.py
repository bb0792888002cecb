"""
Pytest fixtures for ISML tests
"""

import pytest

from isml import create_app
from isml.config import ParserConfig, TestingConfig
from isml.parser import TemplateParser


PRODUCT_TILE = (
    '<iscontent type="text/html" charset="UTF-8" compact="true">\n'
    '<isinclude template="util/modules">\n'
    '<iscomment>Product tile, used on search and category pages</iscomment>\n'
    '<div class="product-tile" data-pid="${pdict.Product.ID}">\n'
    '    <isif condition="${pdict.Product.available}">\n'
    '        <a href="${URLUtils.url(\'Product-Show\', \'pid\', pdict.Product.ID)}">${pdict.Product.name}</a>\n'
    '    <iselse>\n'
    '        <span class="unavailable">${Resource.msg(\'label.unavailable\', \'product\', null)}</span>\n'
    '    </isif>\n'
    '    <isloop items="${pdict.Product.images}" var="image" status="loopstate">\n'
    '        <img src="${image.URL}" alt="${image.alt}"/>\n'
    '    </isloop>\n'
    '</div>\n'
)


@pytest.fixture
def parser():
    """Parser with default settings"""
    return TemplateParser()


@pytest.fixture
def isml_only_parser():
    """Parser that treats HTML as plain text"""
    return TemplateParser(ParserConfig(recognize_html_tags=False))


@pytest.fixture
def product_tile():
    """A realistic, well-formed template"""
    return PRODUCT_TILE


@pytest.fixture
def app():
    """Flask app configured for tests"""
    return create_app(TestingConfig)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def template_dir(tmp_path):
    """
    Template source directory with two language directories:

        default/product/tile.isml       valid
        default/cart/summary.isml       unclosed <isif>
        en_US/account/header.isml       valid
        .isml                           ignored (no language directory)
    """
    (tmp_path / 'default' / 'product').mkdir(parents=True)
    (tmp_path / 'default' / 'cart').mkdir(parents=True)
    (tmp_path / 'en_US' / 'account').mkdir(parents=True)

    (tmp_path / 'default' / 'product' / 'tile.isml').write_text(PRODUCT_TILE, encoding='utf-8')
    (tmp_path / 'default' / 'cart' / 'summary.isml').write_text(
        '<isif condition="${basket.empty}">\n<p>Empty</p>\n', encoding='utf-8'
    )
    (tmp_path / 'en_US' / 'account' / 'header.isml').write_text(
        '<h1>${Resource.msg(\'account.title\', \'account\', null)}</h1>\n', encoding='utf-8'
    )
    (tmp_path / 'default' / 'readme.txt').write_text('<isif>', encoding='utf-8')
    (tmp_path / 'default' / '.isml').write_text('<isif>', encoding='utf-8')
    (tmp_path / '.isml').write_text('<isif>', encoding='utf-8')
    return tmp_path

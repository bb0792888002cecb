"""
Tag vocabulary for ISML templates.

The parser does not know what a tag does, only how it is shaped: whether it
carries a body, never carries one, or may be left open.
"""

ISML_PREFIX = 'is'

# <iscomment> bodies are scanned verbatim by the lexer
COMMENT_TAG = 'iscomment'

# ISML tags that never have a body or an end tag
ISML_EMPTY_TAGS = frozenset({
    'isbinary',
    'isbreak',
    'iscache',
    'iscachekey',
    'iscontent',
    'iscookie',
    'isdictionary',
    'iselse',
    'iselseif',
    'isfile',
    'isinclude',
    'ismodule',
    'isnext',
    'isplaceholder',
    'ispipeline',
    'isprint',
    'isredirect',
    'isselect',
    'isset',
    'istext',
})

# ISML tags that require a matching end tag
ISML_BODY_TAGS = frozenset({
    'isfilebundle',
    'isform',
    'isif',
    'isloop',
    'isplacement',
    'isrender',
})

HTML_VOID_ELEMENTS = frozenset({
    'area',
    'base',
    'br',
    'col',
    'embed',
    'hr',
    'img',
    'input',
    'link',
    'meta',
    'param',
    'source',
    'track',
    'wbr',
})

# Bodies of these elements are text except for ISML constructs
RAW_TEXT_ELEMENTS = frozenset({'script', 'style'})


def canonical_name(name: str) -> str:
    """Tag names are case-insensitive; the canonical form is lower case."""
    return name.lower()


def is_isml_tag(name: str) -> bool:
    return canonical_name(name).startswith(ISML_PREFIX)


def is_void(name: str) -> bool:
    """Check if an element is complete without '/>' or an end tag."""
    name = canonical_name(name)
    return name in ISML_EMPTY_TAGS or name in HTML_VOID_ELEMENTS


def closes_optionally(name: str) -> bool:
    """
    Check if an element may be left without an end tag.

    Custom module tags (declared with <ismodule>) are written both as
    <isfoo ...> and as <isfoo ...>...</isfoo>.
    """
    name = canonical_name(name)
    return (
        name.startswith(ISML_PREFIX)
        and name not in ISML_BODY_TAGS
        and name not in ISML_EMPTY_TAGS
        and name != COMMENT_TAG
    )

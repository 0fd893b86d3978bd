"""Render incident HTML as plain text for trackers that can't handle markup"""

import logging
import re

logger = logging.getLogger(__name__)

_I = re.IGNORECASE

# (pattern, replacement) applied in order after whitespace normalization.
_BLOCK_RULES = [
    # Drop head/script/style blocks (attributes cleared first).
    (re.compile(r"<( )*head([^>])*>", _I), "<head>"),
    (re.compile(r"(<( )*(/)( )*head( )*>)", _I), "</head>"),
    (re.compile(r"(<head>).*(</head>)", _I), ""),
    (re.compile(r"<( )*script([^>])*>", _I), "<script>"),
    (re.compile(r"(<( )*(/)( )*script( )*>)", _I), "</script>"),
    (re.compile(r"(<script>).*(</script>)", _I), ""),
    (re.compile(r"<( )*style([^>])*>", _I), "<style>"),
    (re.compile(r"(<( )*(/)( )*style( )*>)", _I), "</style>"),
    (re.compile(r"(<style>).*(</style>)", _I), ""),
    # Table cells become tabs, breaks and list items become line breaks.
    (re.compile(r"<( )*td([^>])*>", _I), "\t"),
    (re.compile(r"<( )*br( )*/?( )*>", _I), "\n"),
    (re.compile(r"<( )*li( )*>", _I), "\n"),
    # Paragraph-like elements become a blank line.
    (re.compile(r"<( )*div([^>])*>", _I), "\n\n"),
    (re.compile(r"<( )*tr([^>])*>", _I), "\n\n"),
    (re.compile(r"<( )*p([^>])*>", _I), "\n\n"),
    # Anything else enclosed in < >.
    (re.compile(r"<[^>]*>", _I), ""),
]

_ENTITIES = [
    ("&nbsp;", " "),
    ("&bull;", " * "),
    ("&lsaquo;", "<"),
    ("&rsaquo;", ">"),
    ("&trade;", "(tm)"),
    ("&frasl;", "/"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&copy;", "(c)"),
    ("&reg;", "(r)"),
]
_OTHER_ENTITY_RE = re.compile(r"&(.{2,6});", _I)

_CLEANUP_RULES = [
    (re.compile(r"(\n)( )+(\n)"), "\n\n"),
    (re.compile(r"(\t)( )+(\t)"), "\t\t"),
    (re.compile(r"(\t)( )+(\n)"), "\t\n"),
    (re.compile(r"(\n)( )+(\t)"), "\n\t"),
    (re.compile(r"(\n)(\t)+(\n)"), "\n\n"),
    (re.compile(r"(\n)(\t)+"), "\n\t"),
    (re.compile(r"\n{3,}"), "\n\n"),
    (re.compile(r"\t{5,}"), "\t\t\t\t"),
]


def html_to_plain_text(source: str) -> str:
    """Plain-text rendering of an HTML fragment.

    Returns the input unchanged if it can't be processed.
    """
    if source is None:
        return ""
    try:
        # Source line breaks and indentation are not significant in HTML.
        result = source.replace("\r", " ").replace("\n", " ").replace("\t", "")
        result = re.sub(r"( )+", " ", result)

        for pattern, replacement in _BLOCK_RULES:
            result = pattern.sub(replacement, result)

        for entity, replacement in _ENTITIES:
            result = re.sub(re.escape(entity), replacement, result, flags=_I)
        result = _OTHER_ENTITY_RE.sub("", result)

        for pattern, replacement in _CLEANUP_RULES:
            result = pattern.sub(replacement, result)
        return result
    except Exception as e:
        logger.warning(f"Unable to render HTML as plain text: {e}")
        return source

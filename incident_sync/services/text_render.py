"""Render HTML markup as plain text for systems that can't display it"""

import logging
import re

logger = logging.getLogger(__name__)

_I = re.IGNORECASE

_BLOCKS = ("head", "script", "style")

_ENTITIES = (
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
)


def _strip_block(text: str, tag: str) -> str:
    # Normalize the opening/closing tags first so attributes don't get in the way
    text = re.sub(rf"<( )*{tag}([^>])*>", f"<{tag}>", text, flags=_I)
    text = re.sub(rf"(<( )*(/)( )*{tag}( )*>)", f"</{tag}>", text, flags=_I)
    return re.sub(rf"(<{tag}>).*?(</{tag}>)", "", text, flags=_I)


def html_to_plain_text(source: str) -> str:
    """Convert HTML to plain text.

    Never raises: if anything goes wrong the original markup is returned.
    """
    try:
        # Source line breaks and indentation carry no meaning in HTML
        result = source.replace("\r", " ").replace("\n", " ").replace("\t", "")
        result = re.sub(r"( )+", " ", result)

        for tag in _BLOCKS:
            result = _strip_block(result, tag)

        result = re.sub(r"<( )*td([^>])*>", "\t", result, flags=_I)
        result = re.sub(r"<( )*br( )*/?( )*>", "\n", result, flags=_I)
        result = re.sub(r"<( )*li( )*>", "\n", result, flags=_I)
        result = re.sub(r"<( )*div([^>])*>", "\n\n", result, flags=_I)
        result = re.sub(r"<( )*tr([^>])*>", "\n\n", result, flags=_I)
        result = re.sub(r"<( )*p(\s[^>]*)?>", "\n\n", result, flags=_I)

        # Anything else enclosed in < >
        result = re.sub(r"<[^>]*>", "", result)

        for entity, replacement in _ENTITIES:
            result = re.sub(re.escape(entity), replacement, result, flags=_I)
        result = re.sub(r"&(.{2,6});", "", result)

        # Whitespace between breaks/tabs, then cap runs
        result = re.sub(r"(\n)( )+(\n)", "\n\n", result)
        result = re.sub(r"(\t)( )+(\t)", "\t\t", result)
        result = re.sub(r"(\t)( )+(\n)", "\t\n", result)
        result = re.sub(r"(\n)( )+(\t)", "\n\t", result)
        result = re.sub(r"(\n)(\t)+(\n)", "\n\n", result)
        result = re.sub(r"(\n)(\t)+", "\n\t", result)
        result = re.sub(r"\n{3,}", "\n\n", result)
        result = re.sub(r"\t{5,}", "\t\t\t\t", result)
        return result
    except Exception as e:
        logger.debug(f"Unable to render HTML as plain text: {e}")
        return source

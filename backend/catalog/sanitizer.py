"""
Rich-text handling for product descriptions.

Descriptions arrive as HTML from a WYSIWYG editor. They are length-checked
first, then cleaned against an allow-list before being stored.
"""
from typing import List, NamedTuple, Tuple

import nh3

DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 5000

ALLOWED_TAGS = {
    'p', 'br', 'strong', 'em', 'u',
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
    'ul', 'ol', 'li', 'blockquote', 'a', 'img', 'code', 'pre',
    'table', 'thead', 'tbody', 'tr', 'th', 'td',
    'figure', 'figcaption', 'span', 'div',
}

ALLOWED_ATTRIBUTES = {
    '*': {
        'href', 'title', 'target', 'rel', 'src', 'alt', 'width', 'height',
        'class', 'style', 'colspan', 'rowspan',
    },
}

# Tags removed together with their content; everything else keeps its text
STRIPPED_CONTENT_TAGS = {'script', 'style'}


class RichTextResult(NamedTuple):
    content: str
    is_valid: bool
    errors: List[str]


def sanitize_rich_text(dirty_html) -> str:
    """Strip everything outside the editor allow-list"""
    if not dirty_html or not isinstance(dirty_html, str):
        return ''
    return nh3.clean(
        dirty_html,
        tags=ALLOWED_TAGS,
        clean_content_tags=STRIPPED_CONTENT_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        # `rel` is allow-listed, so nh3 must not rewrite it
        link_rel=None,
    )


def validate_rich_text(content, min_length=DESCRIPTION_MIN_LENGTH,
                       max_length=DESCRIPTION_MAX_LENGTH) -> Tuple[bool, List[str]]:
    errors = []

    if not content or not isinstance(content, str):
        errors.append('Description must be a valid string')
        return False, errors

    trimmed = content.strip()
    if len(trimmed) < min_length:
        errors.append(f'Description must be at least {min_length} characters long')
    if len(trimmed) > max_length:
        errors.append(f'Description cannot exceed {max_length} characters')

    return not errors, errors


def process_rich_text(dirty_text) -> RichTextResult:
    """Validate, then sanitize, a description for storage"""
    is_valid, errors = validate_rich_text(dirty_text)
    if not is_valid:
        return RichTextResult(content='', is_valid=False, errors=errors)
    return RichTextResult(content=sanitize_rich_text(dirty_text), is_valid=True, errors=[])

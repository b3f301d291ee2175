"""
Content format conversion for article-parser.

Extracted content is HTML; this module turns it into Markdown (with
markdownify) or plain text.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup
from markdownify import MarkdownConverter

CONTENT_TYPES = ('html', 'markdown', 'text')

BLANK_LINES_RE = re.compile(r'\n\s*\n\s*\n+')
BLOCK_TAGS = (
    'p', 'div', 'section', 'article', 'blockquote', 'pre', 'figure', 'figcaption',
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'ul', 'ol', 'li', 'table', 'tr', 'hr',
)


class ArticleMarkdownConverter(MarkdownConverter):
    """markdownify converter tuned for article bodies."""

    def __init__(self, **options):
        options.setdefault('heading_style', 'atx')
        options.setdefault('bullets', '-')
        options.setdefault('strip', ['form', 'input', 'button'])
        super().__init__(**options)

    def convert_script(self, el, text, *args, **kwargs):
        return ''

    def convert_style(self, el, text, *args, **kwargs):
        return ''

    def convert_hr(self, el, text, *args, **kwargs):
        return '\n\n---\n\n'

    def convert_figcaption(self, el, text, *args, **kwargs):
        """Render captions in italics on their own line."""
        if not text.strip():
            return ''
        return f'\n\n*{text.strip()}*\n\n'


def html_to_markdown(content: Optional[str]) -> str:
    """
    Convert article HTML to Markdown.

    Args:
        content: HTML content

    Returns:
        Markdown text (empty for empty input)
    """
    if not content:
        return ''
    markdown = ArticleMarkdownConverter().convert(content)
    markdown = BLANK_LINES_RE.sub('\n\n', markdown)
    return '\n'.join(line.rstrip() for line in markdown.split('\n')).strip()


def html_to_text(content: Optional[str]) -> str:
    """Convert article HTML to plain text, one block per paragraph."""
    if not content:
        return ''
    soup = BeautifulSoup(content, 'html.parser')
    for br in soup.find_all('br'):
        br.replace_with('\n')
    for block in soup.find_all(BLOCK_TAGS):
        block.insert_before('\n')
        block.insert_after('\n')
    text = soup.get_text()
    lines = [' '.join(line.split()) for line in text.split('\n')]
    return BLANK_LINES_RE.sub('\n\n', '\n'.join(lines)).strip()


def convert_content(content: Optional[str], content_type: str = 'html') -> Optional[str]:
    """
    Convert extracted HTML content to the requested format.

    Args:
        content: HTML content, or None
        content_type: One of ``html``, ``markdown`` or ``text``

    Returns:
        Converted content, or None when there is no content

    Raises:
        ValueError: If ``content_type`` is not supported
    """
    if content_type not in CONTENT_TYPES:
        raise ValueError(f"Unsupported content type: {content_type} (expected one of {', '.join(CONTENT_TYPES)})")
    if content is None or content_type == 'html':
        return content
    if content_type == 'markdown':
        return html_to_markdown(content)
    return html_to_text(content)

"""
Generic extractor for article-parser.

Used for pages no site ruleset covers, and field by field whenever a site
rule finds nothing. Metadata comes from meta tags and well-known selectors,
with ``trafilatura.extract_metadata`` as a last resort; body content comes
from ``readability-lxml``.
"""

import logging
import re
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

import trafilatura
from bs4 import BeautifulSoup
from readability import Document
from readability.readability import Unparseable

from ..models import ExtractionContext
from ..utils import count_words, hostname_from_url, normalize_spaces, remove_anchor, truncate_text
from .cleaners import (
    clean_author, clean_content, clean_date_published, clean_dek, clean_lead_image_url,
    clean_next_page_url, clean_title, clean_url, strip_tags,
)
from .transforms import make_links_absolute, safe_select

logger = logging.getLogger(__name__)

STRONG_TITLE_META_TAGS = ('tweetmeme-title', 'dc.title', 'rbtitle', 'headline', 'title')
WEAK_TITLE_META_TAGS = ('og:title', 'twitter:title')
STRONG_TITLE_SELECTORS = (
    '.hentry .entry-title', 'h1#articleHeader', 'h1.articleHeader', 'h1.article',
    '.instapaper_title', '#meebo-title',
)
WEAK_TITLE_SELECTORS = (
    'article h1', '#entry-title', '.entry-title', '#entryTitle', '#entrytitle',
    '.entryTitle', '.entrytitle', '#articleTitle', '.articleTitle', 'h1.title',
    'h2.article', 'h1', 'html head title', 'title',
)

AUTHOR_META_TAGS = (
    'byl', 'clmst', 'dc.author', 'dcsext.author', 'dc.creator', 'rbauthors', 'authors',
)
AUTHOR_SELECTORS = (
    '.entry .entry-author', '.author.vcard .fn', '.author .vcard .fn',
    '.byline.vcard .fn', '.byline .vcard .fn', '.byline .by .author', '.byline .by',
    '.byline .author', '.post-author.vcard', '.post-author .vcard', 'a[rel=author]',
    '#by_author', '.by_author', '#entryAuthor', '.entryAuthor',
    '.byline a[href*=author]', '#author .authorname', '.author .authorname',
    '#author', '.author', '.articleauthor', '.ArticleAuthor', '.byline',
)
AUTHOR_MAX_LENGTH = 300

DATE_PUBLISHED_META_TAGS = (
    'article:published_time', 'displaydate', 'dc.date', 'dc.date.issued', 'rbpubdate',
    'publish_date', 'pub_date', 'pagedate', 'pubdate', 'revision_date', 'doc_date',
    'date_created', 'content_create_date', 'lastmodified', 'created', 'date',
)
DATE_PUBLISHED_SELECTORS = (
    '.hentry .dtstamp.published', '.hentry .published', '.hentry .dtstamp.updated',
    '.hentry .updated', '.single .published', '.meta .published', '.meta .postDate',
    '.entry-date', '.byline .date', '.postmetadata .date', '.article_datetime',
    '.date-header', '.story-date', '.dateStamp', '#story .datetime', '.dateline', '.pubdate',
)
DATE_PUBLISHED_URL_RES = (
    re.compile(r'/(20\d{2}/\d{2}/\d{2})/'),
    re.compile(r'(20\d{2}-[01]\d-[0-3]\d)'),
    re.compile(r'/(20\d{2}/(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)/[0-3]\d)/', re.I),
)

LEAD_IMAGE_META_TAGS = ('og:image', 'twitter:image', 'twitter:image:src', 'image_src')
DEK_META_TAGS = ('description', 'og:description', 'twitter:description', 'dc.description')
DEK_SELECTORS = (
    '.entry-summary', 'h2[itemprop="description"]', '.subtitle', '.sub-title', '.deck',
    '.dek', '.standfirst', '.summary', '.description',
)
EXCERPT_META_TAGS = ('og:description', 'twitter:description')
EXCERPT_MAX_LENGTH = 200

NEXT_LINK_TEXT_RE = re.compile(r'(next|weiter|continue|>([^|]|$)|»([^|]|$))', re.I)
PREV_LINK_TEXT_RE = re.compile(r'(prev|earl|old|new|<|«)', re.I)
CAP_LINK_TEXT_RE = re.compile(r'(first|last|end)', re.I)
PAGE_RE = re.compile(r'pag(e|ing|inat)', re.I)
EXTRANEOUS_LINK_HINTS_RE = re.compile(
    r'print|archive|comment|discuss|e-mail|email|share|reply|all|login|sign|single|adx|entry-unrelated',
    re.I,
)
NEXT_PAGE_MIN_SCORE = 50

LTR_MARK = '\u200e'
RTL_MARK = '\u200f'
RTL_SCRIPT_RANGES = (
    (0x0590, 0x05FF),  # Hebrew
    (0x0600, 0x06FF),  # Arabic
    (0x07C0, 0x07FF),  # NKo
    (0x0700, 0x074F),  # Syriac
    (0x0780, 0x07BF),  # Thaana
    (0x2D30, 0x2D7F),  # Tifinagh
)
NON_DIRECTIONAL_RE = re.compile(r'''[\s\x00\f\t\v'"\-0-9+?!]+''')


def text_direction(text: Optional[str]) -> Optional[str]:
    """
    Detect the writing direction of a string.

    Explicit LTR/RTL marks win; otherwise each character is classified as
    RTL when it falls in an RTL script block and LTR otherwise.

    Returns:
        ``'ltr'``, ``'rtl'``, ``'bidi'``, or None for an empty string
    """
    if not text:
        return None

    has_ltr_mark = LTR_MARK in text
    has_rtl_mark = RTL_MARK in text
    if has_ltr_mark and has_rtl_mark:
        return 'bidi'
    if has_ltr_mark:
        return 'ltr'
    if has_rtl_mark:
        return 'rtl'

    has_rtl = has_ltr = False
    for char in NON_DIRECTIONAL_RE.sub('', text):
        code = ord(char)
        if any(start < code < end for start, end in RTL_SCRIPT_RANGES):
            has_rtl = True
        else:
            has_ltr = True

    if not has_rtl and any(ch.isdigit() for ch in text):
        has_ltr = True

    if has_rtl and has_ltr:
        return 'bidi'
    if has_ltr:
        return 'ltr'
    if has_rtl:
        return 'rtl'
    return None


def word_count_for_html(html: Optional[str]) -> int:
    """Count the words in the text of an HTML fragment."""
    if not html:
        return 0
    return count_words(BeautifulSoup(html, 'html.parser').get_text(' '))


class GenericExtractor:
    """
    Fallback extractor with one method per article field.

    Every method takes the extraction context and returns the field value or
    None. Fields that depend on others read them from the context
    (``content`` needs ``title``, ``dek`` needs ``content`` and ``excerpt``).
    """

    domain = '*'

    def extract_all(self, context: ExtractionContext) -> Dict[str, Any]:
        """
        Extract every field generically, in dependency order.

        Args:
            context: Extraction context for the page

        Returns:
            Field map with all standard keys
        """
        title = self.title(context)
        context.title = title
        date_published = self.date_published(context)
        author = self.author(context)
        next_page_url = self.next_page_url(context)
        content = self.content(context)
        context.content = content
        lead_image_url = self.lead_image_url(context)
        excerpt = self.excerpt(context)
        context.excerpt = excerpt
        dek = self.dek(context)
        word_count = self.word_count(context)
        direction = self.direction(context)
        url, domain = self.url_and_domain(context)

        return {
            'title': title,
            'author': author,
            'date_published': date_published,
            'dek': dek,
            'lead_image_url': lead_image_url,
            'content': content,
            'next_page_url': next_page_url,
            'url': url,
            'domain': domain,
            'excerpt': excerpt,
            'word_count': word_count,
            'direction': direction,
        }

    # Helpers

    def _meta_names(self, context: ExtractionContext) -> Dict[str, str]:
        if context.meta_names is None:
            names: Dict[str, str] = {}
            for meta in context.document.find_all('meta'):
                name = meta.get('name') or meta.get('property')
                value = meta.get('value') or meta.get('content')
                if not name or not isinstance(value, str) or not value.strip():
                    continue
                names.setdefault(name.strip().lower(), value.strip())
            context.meta_names = names
        return context.meta_names

    def _from_meta(self, context: ExtractionContext, names) -> Optional[str]:
        meta_names = self._meta_names(context)
        for name in names:
            if name in meta_names:
                return meta_names[name]
        return None

    def _from_selectors(self, context: ExtractionContext, selectors, max_children: int = 1,
                        text_only: bool = True) -> Optional[str]:
        for selector in selectors:
            nodes = safe_select(context.document, selector)
            if len(nodes) != 1:
                continue
            node = nodes[0]
            if len(node.find_all(True, recursive=False)) > max_children:
                continue
            value = node.get_text() if text_only else node.decode_contents()
            value = normalize_spaces(value)
            if value:
                return value
        return None

    def _metadata(self, context: ExtractionContext):
        if context.metadata is None:
            try:
                context.metadata = trafilatura.extract_metadata(
                    str(context.document), default_url=context.url
                ) or False
            except Exception as e:
                logger.debug("trafilatura metadata extraction failed for %s: %s", context.url, e)
                context.metadata = False
        return context.metadata or None

    def _metadata_value(self, context: ExtractionContext, name: str) -> Optional[str]:
        metadata = self._metadata(context)
        value = getattr(metadata, name, None) if metadata is not None else None
        return value.strip() if isinstance(value, str) and value.strip() else None

    # Fields

    def title(self, context: ExtractionContext) -> Optional[str]:
        """Title from strong meta tags, strong selectors, weak meta tags, weak selectors."""
        candidates = (
            lambda: self._from_meta(context, STRONG_TITLE_META_TAGS),
            lambda: self._from_selectors(context, STRONG_TITLE_SELECTORS),
            lambda: self._from_meta(context, WEAK_TITLE_META_TAGS),
            lambda: self._from_selectors(context, WEAK_TITLE_SELECTORS),
            lambda: self._metadata_value(context, 'title'),
        )
        for candidate in candidates:
            title = clean_title(candidate() or '', context.url, context.document)
            if title:
                return title
        return None

    def author(self, context: ExtractionContext) -> Optional[str]:
        author = self._from_meta(context, AUTHOR_META_TAGS)
        if author and len(author) < AUTHOR_MAX_LENGTH:
            return clean_author(author)

        author = self._from_selectors(context, AUTHOR_SELECTORS, max_children=2)
        if author and len(author) < AUTHOR_MAX_LENGTH:
            return clean_author(author)

        author = self._metadata_value(context, 'author')
        return clean_author(author) if author else None

    def date_published(self, context: ExtractionContext) -> Optional[str]:
        candidates = (
            lambda: self._from_meta(context, DATE_PUBLISHED_META_TAGS),
            lambda: self._from_selectors(context, DATE_PUBLISHED_SELECTORS, max_children=5),
            lambda: self._date_from_url(context.url),
            lambda: self._metadata_value(context, 'date'),
        )
        for candidate in candidates:
            value = candidate()
            if value:
                cleaned = clean_date_published(value)
                if cleaned:
                    return cleaned
        return None

    def _date_from_url(self, url: Optional[str]) -> Optional[str]:
        for pattern in DATE_PUBLISHED_URL_RES:
            match = pattern.search(url or '')
            if match:
                return match.group(1)
        return None

    def content(self, context: ExtractionContext) -> Optional[str]:
        """
        Extract the main content with readability.

        Returns:
            Inner HTML of the cleaned content container, or None
        """
        try:
            summary = Document(str(context.document), url=context.url).summary(html_partial=True)
        except Unparseable as e:
            logger.debug("Readability could not parse %s: %s", context.url, e)
            return None

        soup = BeautifulSoup(summary or '', 'html.parser')
        container = soup.find(True)
        if container is None:
            return None

        make_links_absolute(container, context.url)
        container = clean_content(container, context.title)
        if container is None:
            return None

        markup = container.decode_contents().strip()
        return markup or None

    def lead_image_url(self, context: ExtractionContext) -> Optional[str]:
        image = self._from_meta(context, LEAD_IMAGE_META_TAGS)
        if image:
            cleaned = clean_lead_image_url(image, context.url)
            if cleaned:
                return cleaned

        for link in safe_select(context.document, 'link[rel=image_src]'):
            cleaned = clean_lead_image_url(link.get('href', ''), context.url)
            if cleaned:
                return cleaned

        if context.content:
            content = BeautifulSoup(context.content, 'html.parser')
            for img in content.find_all('img', src=True):
                cleaned = clean_lead_image_url(img['src'], context.url)
                if cleaned:
                    return cleaned

        image = self._metadata_value(context, 'image')
        return clean_lead_image_url(image, context.url) if image else None

    def dek(self, context: ExtractionContext) -> Optional[str]:
        for candidate in (
            self._from_meta(context, DEK_META_TAGS),
            self._from_selectors(context, DEK_SELECTORS, max_children=10),
        ):
            if candidate:
                cleaned = clean_dek(candidate, context.excerpt)
                if cleaned:
                    return cleaned
        return None

    def excerpt(self, context: ExtractionContext) -> Optional[str]:
        """Description meta tags, else the start of the content text, ellipsized."""
        excerpt = self._from_meta(context, EXCERPT_META_TAGS)
        if excerpt and normalize_spaces(excerpt):
            return truncate_text(normalize_spaces(excerpt), EXCERPT_MAX_LENGTH)

        if context.content:
            text = strip_tags(context.content[:EXCERPT_MAX_LENGTH * 5])
            if text:
                return truncate_text(text, EXCERPT_MAX_LENGTH)
        return None

    def word_count(self, context: ExtractionContext) -> int:
        return word_count_for_html(context.content)

    def direction(self, context: ExtractionContext) -> Optional[str]:
        return text_direction(context.title)

    def url_and_domain(self, context: ExtractionContext) -> Tuple[str, Optional[str]]:
        """Canonical link, else ``og:url``, else the page URL; domain is its hostname."""
        url = None
        for link in safe_select(context.document, 'link[rel=canonical]'):
            url = clean_url(link.get('href', ''), context.url)
            if url:
                break
        if not url:
            og_url = self._from_meta(context, ('og:url',))
            url = clean_url(og_url, context.url) if og_url else None
        url = url or context.url
        return url, hostname_from_url(url)

    def next_page_url(self, context: ExtractionContext) -> Optional[str]:
        """
        Find the link to the next page of a multi-page article.

        An explicit ``rel=next`` link wins. Otherwise links on the same host
        are scored by their text, class and id, and the best one is used if
        it scores high enough.
        """
        for link in safe_select(context.document, 'link[rel=next], a[rel=next]'):
            cleaned = clean_next_page_url(link.get('href', ''), context.url)
            if cleaned:
                return cleaned

        article_url = remove_anchor(context.url or '')
        host = hostname_from_url(context.url)
        best_score, best_href = -100, None

        for anchor in context.document.find_all('a', href=True):
            href = clean_next_page_url(anchor['href'], context.url)
            if not href or remove_anchor(href) == article_url or hostname_from_url(href) != host:
                continue

            score = self._score_next_link(anchor, href, article_url)
            if score > best_score:
                best_score, best_href = score, href

        if best_score >= NEXT_PAGE_MIN_SCORE:
            return best_href
        return None

    def _score_next_link(self, anchor, href: str, article_url: str) -> int:
        text = normalize_spaces(anchor.get_text())
        hints = ' '.join([text, ' '.join(anchor.get('class') or []), anchor.get('id') or ''])

        score = 0
        if NEXT_LINK_TEXT_RE.search(text):
            score += 50
        if PAGE_RE.search(hints):
            score += 25
        if CAP_LINK_TEXT_RE.search(text) and not NEXT_LINK_TEXT_RE.search(text):
            score -= 65
        if PREV_LINK_TEXT_RE.search(text):
            score -= 200
        if EXTRANEOUS_LINK_HINTS_RE.search(hints):
            score -= 25
        if not urlparse(href).path.startswith(urlparse(article_url).path.rsplit('/', 1)[0]):
            score -= 25
        if not re.search(r'\d', href.replace(article_url, '', 1)):
            score -= 25
        return score


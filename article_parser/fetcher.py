"""
Resource fetching for article-parser.

Downloads pages with requests and turns them into BeautifulSoup documents
prepared for extraction: meta tags normalized to ``name``/``value``,
lazy-loaded images given a real ``src``, and scripts, styles, form controls and
comments removed (form wrappers are unwrapped, not dropped).
"""

import json
import logging
import re
from typing import Any, Dict, Optional, Union

import requests
from bs4 import BeautifulSoup, Comment
from requests.exceptions import ConnectionError, RequestException, SSLError, Timeout

from .config import get_config
from .exceptions import FetchError, InvalidDocumentError

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
    'DNT': '1',
    'Connection': 'keep-alive',
    'Upgrade-Insecure-Requests': '1',
}

BAD_CONTENT_TYPES = ('audio/mpeg', 'image/gif', 'image/jpeg', 'image/jpg')
MAX_CONTENT_LENGTH = 5 * 1024 * 1024
TAGS_TO_REMOVE = ('script', 'style', 'input', 'button', 'select', 'textarea')

IS_LINK_RE = re.compile(r'https?://')
IS_IMAGE_RE = re.compile(r'\.(png|gif|jpe?g)$', re.I)
IS_SRCSET_RE = re.compile(r'\.(png|gif|jpe?g)(\?\S+)?(\s*[\d.]+[wx])', re.I)


def normalize_meta_tags(document: BeautifulSoup) -> BeautifulSoup:
    """Rename ``content`` to ``value`` and ``property`` to ``name`` on meta tags."""
    for meta in document.find_all('meta'):
        if meta.has_attr('content'):
            meta['value'] = meta['content']
            del meta['content']
        if meta.has_attr('property'):
            meta['name'] = meta['property']
            del meta['property']
    return document


def _src_from_json(value: str) -> Optional[str]:
    try:
        data = json.loads(value)
    except ValueError:
        return None
    src = data.get('src') if isinstance(data, dict) else None
    return src if isinstance(src, str) and src else None


def convert_lazy_loaded_images(document: BeautifulSoup) -> BeautifulSoup:
    """Copy image URLs held in ``data-*`` style attributes into ``src``/``srcset``."""
    for img in document.find_all('img'):
        for name, value in list(img.attrs.items()):
            if not isinstance(value, str) or not IS_LINK_RE.search(value):
                continue
            if name != 'srcset' and IS_SRCSET_RE.search(value):
                img['srcset'] = value
            elif name not in ('src', 'srcset') and IS_IMAGE_RE.search(value):
                img['src'] = _src_from_json(value) or value
    return document


def clean_document(document: BeautifulSoup) -> BeautifulSoup:
    """Drop scripts, styles, form controls and comments; forms keep their content."""
    for node in document.find_all(TAGS_TO_REMOVE):
        if not node.decomposed:
            node.decompose()
    # Some CMSs wrap the whole page body in a single <form>
    for form in document.find_all('form'):
        form.unwrap()
    for comment in document.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()
    return document


class Resource:
    """
    Fetches pages and builds extraction-ready documents.

    Example:
        >>> resource = Resource(timeout=10)
        >>> document = resource.fetch('https://example.com/article')
    """

    def __init__(self, timeout: Optional[float] = None, user_agent: Optional[str] = None,
                 headers: Optional[Dict[str, str]] = None,
                 session: Optional[requests.Session] = None, config: Any = None):
        """
        Initialize the resource fetcher.

        Args:
            timeout: Request timeout in seconds (uses config default if None)
            user_agent: User agent string (uses config default if None)
            headers: Extra request headers
            session: Session to reuse (a new one is created if None)
            config: Config instance (uses the process default if None)
        """
        config = config or get_config()
        fetcher_config = config.get_fetcher_config()

        self.timeout = timeout or fetcher_config.get('timeout', 30)
        self.user_agent = user_agent or fetcher_config.get('user_agent', 'article-parser/1.0.0')

        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        self.session.headers['User-Agent'] = self.user_agent
        if headers:
            self.session.headers.update(headers)

    def fetch(self, url: str) -> BeautifulSoup:
        """
        Download a page and parse it.

        Args:
            url: Absolute http(s) URL

        Returns:
            Prepared BeautifulSoup document

        Raises:
            FetchError: On network errors, non-200 responses, disallowed
                content types or oversized responses
        """
        logger.debug("Fetching %s", url)
        try:
            response = self.session.get(url, timeout=self.timeout, allow_redirects=True)
        except Timeout:
            raise FetchError(url, f"Request timed out after {self.timeout} seconds")
        except SSLError:
            raise FetchError(url, "SSL certificate verification failed")
        except ConnectionError:
            raise FetchError(url, "Could not connect to the server")
        except RequestException as e:
            raise FetchError(url, f"Request failed: {e}")

        self._validate_response(url, response)

        content_type = response.headers.get('content-type', '').lower()
        body: Union[str, bytes]
        if 'charset=' in content_type:
            body = response.text
        else:
            # Let BeautifulSoup sniff the encoding from <meta charset>
            body = response.content
        return self.create(body, url)

    def _validate_response(self, url: str, response: requests.Response) -> None:
        if response.status_code != 200:
            raise FetchError(
                url,
                f"Resource returned a response status code of {response.status_code}",
                status_code=response.status_code,
            )

        content_type = response.headers.get('content-type', '').split(';', 1)[0].strip().lower()
        if content_type in BAD_CONTENT_TYPES:
            raise FetchError(url, f"Content-type for this resource was {content_type} and is not allowed",
                             status_code=response.status_code)

        content_length = response.headers.get('content-length')
        if content_length and content_length.isdigit() and int(content_length) > MAX_CONTENT_LENGTH:
            raise FetchError(
                url,
                f"Content for this resource was too large. Maximum content length is {MAX_CONTENT_LENGTH}",
                status_code=response.status_code,
            )

    def create(self, html: Union[str, bytes], url: str) -> BeautifulSoup:
        """
        Parse supplied HTML into a prepared document.

        Args:
            html: Page markup
            url: URL the markup came from

        Returns:
            Prepared BeautifulSoup document

        Raises:
            InvalidDocumentError: If the markup contains no elements
        """
        document = BeautifulSoup(html or '', 'html.parser')
        if document.find(True) is None:
            raise InvalidDocumentError("No elements found in document, likely a bad parse", url=url)

        normalize_meta_tags(document)
        convert_lazy_loaded_images(document)
        clean_document(document)
        return document

    def close(self) -> None:
        self.session.close()

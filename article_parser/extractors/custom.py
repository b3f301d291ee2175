"""
Built-in site rulesets.

Each ruleset is declared as a plain mapping (the same shape accepted from
YAML ruleset files) and turned into a frozen Ruleset at import time. Sites
that need more than renaming get small transform functions taking
``(node, document)``.
"""

import re
from typing import Any, List, Optional, Tuple
from urllib.parse import unquote

from bs4 import Tag

from ..models import Ruleset

YOUTUBE_THUMBNAIL_RE = re.compile(r'https://i\.embed\.ly/.+url=https://i\.ytimg\.com/vi/(\w+)/')
SINGLE_LETTER_RE = re.compile(r'^[a-zA-Z()]$')
MEDIUM_MIN_IMAGE_WIDTH = 100
NYTIMES_IMAGE_WIDTH = '640'


def _medium_drop_cap(node: Tag, document: Any) -> Optional[str]:
    text = node.get_text()
    if SINGLE_LETTER_RE.match(text):
        node.replace_with(text)
    return None


def _medium_iframe(node: Tag, document: Any) -> Optional[str]:
    """Turn an embed.ly YouTube placeholder into a real embed, dropping other embeds."""
    thumbnail = node.get('data-thumbnail')
    parent = node.parent
    if not thumbnail or parent is None or parent.name != 'figure':
        return None

    match = YOUTUBE_THUMBNAIL_RE.search(unquote(thumbnail))
    if not match:
        parent.decompose()
        return None

    node['src'] = f"https://www.youtube.com/embed/{match.group(1)}"
    caption = parent.find('figcaption')
    iframe = node.extract()
    caption = caption.extract() if caption is not None else None
    parent.clear()
    parent.append(iframe)
    if caption is not None:
        parent.append(caption)
    return None


def _medium_figure(node: Tag, document: Any) -> Optional[str]:
    """Keep only the full-size (last) image and the caption of a figure."""
    if node.find('iframe') is not None:
        return None

    images = node.find_all('img')
    if not images:
        return None

    image = images[-1].extract()
    caption = node.find('figcaption')
    caption = caption.extract() if caption is not None else None
    node.clear()
    node.append(image)
    if caption is not None:
        node.append(caption)
    return None


def _medium_image(node: Tag, document: Any) -> Optional[str]:
    try:
        width = int(node.get('width', ''))
    except ValueError:
        return None
    if width < MEDIUM_MIN_IMAGE_WIDTH:
        node.decompose()
    return None


def _wikipedia_infobox_image(node: Tag, document: Any) -> Optional[str]:
    """Move the first infobox image to the top of the infobox."""
    infobox = node.find_parent(class_='infobox')
    if infobox is not None and infobox.find('img') is node:
        infobox.insert(0, node.extract())
    return None


def _cnn_paragraph(node: Tag, document: Any) -> Optional[str]:
    if node.decode_contents().strip():
        return 'p'
    return None


def _cnn_link_only_paragraph(node: Tag, document: Any) -> Optional[str]:
    """Drop paragraphs that are nothing but a link ("Read more" teasers)."""
    links = node.find_all('a')
    if links and node.get_text().strip() == ''.join(a.get_text() for a in links).strip():
        node.decompose()
    return None


def _nytimes_lazy_image(node: Tag, document: Any) -> Optional[str]:
    src = node.get('src')
    if src:
        node['src'] = src.replace('{{size}}', NYTIMES_IMAGE_WIDTH)
    return None


def _cnet_figure(node: Tag, document: Any) -> Optional[str]:
    """Pull the figure image out of its container so it leads the figure."""
    image = node.find('img')
    if image is None:
        return None
    image['width'] = '100%'
    image['height'] = '100%'
    image['class'] = list(image.get('class') or []) + ['__image-lead__']
    image = image.extract()
    for container in node.select('.imgContainer'):
        container.decompose()
    node.insert(0, image)
    return None


def _unwrap(node: Tag, document: Any) -> Optional[str]:
    node.unwrap()
    return None


MEDIUM = {
    'domain': 'medium.com',
    'title': {'selectors': ['h1', ['meta[name="og:title"]', 'value']]},
    'author': {'selectors': [['meta[name="author"]', 'value']]},
    'content': {
        'selectors': ['article'],
        'clean': ['span a', 'svg'],
        'transforms': {
            'section span:first-of-type': _medium_drop_cap,
            'iframe': _medium_iframe,
            'figure': _medium_figure,
            'img': _medium_image,
        },
    },
    'date_published': {'selectors': [['meta[name="article:published_time"]', 'value']]},
    'lead_image_url': {'selectors': [['meta[name="og:image"]', 'value']]},
}

BLOGGER = {
    'domain': 'blogspot.com',
    'supported_domains': [
        'www.blogspot.com', 'blogspot.co.uk', 'blogspot.ca', 'blogspot.de', 'blogspot.fr',
        'blogspot.jp', 'blogspot.in', 'blogspot.com.au', 'blogspot.com.br', 'blogspot.mx',
    ],
    'content': {
        # Blogger wraps the post body in a noscript fallback
        'selectors': ['.post-content noscript'],
        'transforms': {'noscript': 'div'},
    },
    'author': {'selectors': ['.post-author-name']},
    'title': {'selectors': ['.post h2.title']},
    'date_published': {'selectors': ['span.publishdate']},
}

GUARDIAN = {
    'domain': 'www.theguardian.com',
    'title': {'selectors': ['h1', '.content__headline']},
    'author': {'selectors': ['address[data-link-name="byline"]', 'p.byline']},
    'date_published': {'selectors': [['meta[name="article:published_time"]', 'value']]},
    'dek': {'selectors': ['div[data-gu-name="standfirst"]', '.content__standfirst']},
    'lead_image_url': {'selectors': [['meta[name="og:image"]', 'value']]},
    'content': {
        'selectors': ['#maincontent', '.content__article-body'],
        'clean': ['.hide-on-mobile', '.inline-icon'],
    },
}

WIKIPEDIA = {
    'domain': 'wikipedia.org',
    'title': {'selectors': ['h2.title']},
    'content': {
        'selectors': ['#mw-content-text'],
        'default_cleaner': False,
        'transforms': {
            '.infobox img': _wikipedia_infobox_image,
            '.infobox caption': 'figcaption',
            '.infobox': 'figure',
        },
        'clean': ['.mw-editsection', 'figure tr, figure td, figure tbody', '#toc', '.navbox'],
    },
    'date_published': {'selectors': ['#footer-info-lastmod']},
}

ARS_TECHNICA = {
    'domain': 'arstechnica.com',
    'title': {'selectors': ['title']},
    'author': {'selectors': ['*[rel="author"] *[itemprop="name"]']},
    'date_published': {'selectors': [['.byline time', 'datetime']]},
    'dek': {'selectors': ['h2[itemprop="description"]']},
    'lead_image_url': {'selectors': [['meta[name="og:image"]', 'value']]},
    'content': {
        'selectors': ['div[itemprop="articleBody"]'],
        'clean': [
            'figcaption .enlarge-link', 'figcaption .sep', 'figure.video', '.gallery',
            'aside', '.sidebar',
        ],
    },
}

NPR = {
    'domain': 'www.npr.org',
    'title': {'selectors': ['h1', '.storytitle']},
    'author': {'selectors': ['p.byline__name.byline__name--block']},
    'date_published': {
        'selectors': [['.dateblock time[datetime]', 'datetime'], ['meta[name="date"]', 'value']],
    },
    'lead_image_url': {
        'selectors': [['meta[name="og:image"]', 'value'], ['meta[name="twitter:image:src"]', 'value']],
    },
    'content': {
        'selectors': ['.storytext'],
        'transforms': {
            '.bucketwrap.image': 'figure',
            '.bucketwrap.image .credit-caption': 'figcaption',
        },
        'clean': [
            'div.enlarge_measure', 'b.toggle-caption', 'b.hide-caption', '.ad-header',
            '.ad-wrap', 'aside.ad-wrap', "aside[id*='ad-']", 'button',
            '.bucketwrap .toggle-caption', '.bucketwrap .hide-caption',
        ],
    },
}

WIRED = {
    'domain': 'www.wired.com',
    'title': {'selectors': ['h1[data-testId="ContentHeaderHed"]']},
    'author': {'selectors': [['meta[name="article:author"]', 'value'], 'a[rel="author"]']},
    'content': {
        'selectors': ['article.article.main-content', 'article.content'],
        'clean': ['.visually-hidden', 'figcaption img.photo', '.alert-message'],
    },
    'date_published': {'selectors': [['meta[name="article:published_time"]', 'value']]},
    'lead_image_url': {'selectors': [['meta[name="og:image"]', 'value']]},
}

CNN = {
    'domain': 'www.cnn.com',
    'title': {'selectors': ['h1.pg-headline', 'h1']},
    'author': {'selectors': [['meta[name="author"]', 'value']]},
    'date_published': {'selectors': [['meta[name="article:published_time"]', 'value']]},
    'lead_image_url': {'selectors': [['meta[name="og:image"]', 'value']]},
    'content': {
        'selectors': [
            ['.media__video--thumbnail', '.zn-body-text'],
            '.zn-body-text',
            'div[itemprop="articleBody"]',
        ],
        'transforms': {
            '.zn-body__paragraph': _cnn_link_only_paragraph,
            '.zn-body__paragraph, .el__leafmedia--sourced-paragraph': _cnn_paragraph,
            '.media__video--thumbnail': 'figure',
        },
    },
}

NYTIMES = {
    'domain': 'www.nytimes.com',
    'title': {
        'selectors': [
            'h1[data-testid="headline"]', 'h1.g-headline', 'h1[itemprop="headline"]',
            'h1.headline', 'h1 .balancedHeadline',
        ],
    },
    'author': {
        'selectors': [['meta[name="author"]', 'value'], '.g-byline', '.byline', ['meta[name="byl"]', 'value']],
    },
    'date_published': {
        'selectors': [
            ['meta[name="article:published_time"]', 'value'],
            ['meta[name="article:published"]', 'value'],
        ],
    },
    'lead_image_url': {'selectors': [['meta[name="og:image"]', 'value']]},
    'content': {
        'selectors': ['div.g-blocks', 'section[name="articleBody"]', 'article#story'],
        'transforms': {'img.g-lazy': _nytimes_lazy_image},
        'clean': [
            '.ad', 'header#story-header', '.story-body-1 .lede.video', '.visually-hidden',
            '#newsletter-promo', '.promo', '.comments-button', '.hidden', '.comments',
            '.supplemental', '.nocontent', '.story-footer-links',
        ],
    },
}

BLOOMBERG = {
    'domain': 'www.bloomberg.com',
    'title': {
        'selectors': ['.lede-headline', 'h1.article-title', 'h1[class^="headline"]', 'h1.lede-text-only__hed'],
    },
    'author': {
        'selectors': [
            ['meta[name="parsely-author"]', 'value'], '.byline-details__link', '.bydek',
            '.author', 'p[class*="author"]',
        ],
    },
    'date_published': {
        'selectors': [
            ['time.published-at', 'datetime'], ['time[datetime]', 'datetime'],
            ['meta[name="date"]', 'value'], ['meta[name="parsely-pub-date"]', 'value'],
        ],
    },
    'lead_image_url': {'selectors': [['meta[name="og:image"]', 'value']]},
    'content': {
        'selectors': ['.article-body__content', '.body-content', 'section.copy-block', '.body-copy'],
        'clean': ['.inline-newsletter', '.page-ad'],
    },
}

CNET = {
    'domain': 'www.cnet.com',
    'title': {'selectors': [['meta[name="og:title"]', 'value']]},
    'author': {'selectors': ['span.author', 'a.author']},
    'date_published': {'selectors': ['time']},
    'dek': {'selectors': ['.c-head_dek', '.article-dek']},
    'lead_image_url': {'selectors': [['meta[name="og:image"]', 'value']]},
    'content': {
        'selectors': [['img.__image-lead__', '.article-main-body'], '.article-main-body'],
        'transforms': {'figure.image': _cnet_figure},
    },
}

MACRUMORS = {
    'domain': 'www.macrumors.com',
    'title': {'selectors': ['h1', 'h1.title']},
    'author': {'selectors': ['article a[rel="author"]', '.author-url']},
    'date_published': {'selectors': [['time', 'datetime']]},
    'dek': {'selectors': [['meta[name="description"]', 'value']]},
    'lead_image_url': {'selectors': [['meta[name="og:image"]', 'value']]},
    'content': {'selectors': ['article', '.article']},
}

MASHABLE = {
    'domain': 'mashable.com',
    'title': {'selectors': ['header h1', 'h1.title']},
    'author': {'selectors': [['meta[name="article:author"]', 'value'], 'span.author_name a']},
    'date_published': {'selectors': [['meta[name="article:published_time"]', 'value']]},
    'lead_image_url': {'selectors': [['meta[name="og:image"]', 'value']]},
    'content': {
        'selectors': ['#article', 'section.article-content.blueprint'],
        'transforms': {'.image-credit': 'figcaption'},
    },
}

PITCHFORK = {
    'domain': 'pitchfork.com',
    'title': {'selectors': [['meta[name="og:title"]', 'value'], 'title']},
    'author': {'selectors': [['meta[name="article:author"]', 'value'], '.authors-detail__display-name']},
    'date_published': {'selectors': ['div[class^="InfoSliceWrapper-"]', ['.pub-date', 'datetime']]},
    'dek': {'selectors': [['meta[name="og:description"]', 'value'], '.review-detail__abstract']},
    'lead_image_url': {
        'selectors': [['meta[name="og:image"]', 'value'], ['.single-album-tombstone__art img', 'src']],
    },
    'content': {'selectors': ['div.body__inner-container', '.review-detail__text']},
    'extend': {
        'score': {'selectors': ['p[class*="Rating"]', '.score']},
    },
}

POLITICO = {
    'domain': 'www.politico.com',
    'title': {'selectors': [['meta[name="og:title"]', 'value']]},
    'author': {
        'selectors': [
            ['div[itemprop="author"] meta[itemprop="name"]', 'value'],
            '.story-meta__authors .vcard', '.story-main-content .byline .vcard',
        ],
    },
    'date_published': {
        'selectors': [
            ['time[itemprop="datePublished"]', 'datetime'],
            ['.story-meta__details time[datetime]', 'datetime'],
            ['.story-main-content .timestamp time[datetime]', 'datetime'],
        ],
    },
    'dek': {'selectors': [['meta[name="og:description"]', 'value']]},
    'lead_image_url': {'selectors': [['meta[name="og:image"]', 'value']]},
    'content': {
        'selectors': ['.story-text', '.story-main-content', '.story-core'],
        'clean': ['figcaption', '.story-meta', '.ad'],
    },
}

DEADLINE = {
    'domain': 'deadline.com',
    'title': {'selectors': ['h1']},
    'author': {'selectors': ['section.author h2']},
    'date_published': {'selectors': [['meta[name="article:published_time"]', 'value']]},
    'lead_image_url': {'selectors': [['meta[name="og:image"]', 'value']]},
    'content': {
        'selectors': ['div.a-article-grid__main.pmc-a-grid article.pmc-a-grid-item'],
        'transforms': {'.embed-twitter': _unwrap},
        'clean': ['figcaption'],
    },
}

LE_MONDE = {
    'domain': 'www.lemonde.fr',
    'title': {'selectors': ['h1.article__title']},
    'author': {'selectors': ['.author__name']},
    'date_published': {'selectors': [['meta[name="og:article:published_time"]', 'value']]},
    'dek': {'selectors': ['.article__desc']},
    'lead_image_url': {'selectors': [['meta[name="og:image"]', 'value']]},
    'content': {'selectors': ['.article__content'], 'clean': ['figcaption']},
}

INFOQ = {
    'domain': 'www.infoq.com',
    'title': {'selectors': ['h1.heading']},
    'author': {'selectors': ['div.widget.article__authors']},
    'date_published': {'selectors': ['.article__readTime.date']},
    'dek': {'selectors': [['meta[name="og:description"]', 'value']]},
    'lead_image_url': {'selectors': [['meta[name="og:image"]', 'value']]},
    'content': {'selectors': ['div.article__data'], 'default_cleaner': False},
}

CUSTOM_RULESETS: List[Ruleset] = [
    Ruleset.from_dict(definition)
    for definition in (
        MEDIUM, BLOGGER, GUARDIAN, WIKIPEDIA, ARS_TECHNICA, NPR, WIRED, CNN, NYTIMES,
        BLOOMBERG, CNET, MACRUMORS, MASHABLE, PITCHFORK, POLITICO, DEADLINE, LE_MONDE, INFOQ,
    )
]

MEDIUM_RULESET, BLOGGER_RULESET = CUSTOM_RULESETS[0], CUSTOM_RULESETS[1]

# Content signatures for sites served from arbitrary (custom) domains.
# Checked in order; meta tags are normalized to name/value before detection.
HTML_DETECTORS: List[Tuple[str, Ruleset]] = [
    ('meta[name="al:ios:app_name"][value="Medium"]', MEDIUM_RULESET),
    ('meta[name="generator"][value="blogger" i]', BLOGGER_RULESET),
]

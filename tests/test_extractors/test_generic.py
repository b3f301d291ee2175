"""Tests for the generic fallback extractor."""

import pytest

from article_parser.extractors.generic import GenericExtractor, text_direction, word_count_for_html
from article_parser.models import ExtractionContext

URL = 'https://example.com/2024/03/05/story'

PARAGRAPH = (
    '<p>The city council voted on Tuesday to approve a new budget that expands '
    'public transit, adds funding for parks, and raises salaries for teachers. '
    'Officials said the plan balances growth with fiscal responsibility.</p>'
)

ARTICLE_HTML = f"""
<html>
<head>
  <title>Council approves budget | Example News</title>
  <meta property="og:title" content="Council approves budget">
  <meta name="byl" content="By Maria Lopez">
  <meta property="article:published_time" content="2024-03-05T09:00:00Z">
  <meta property="og:image" content="/images/council.jpg">
  <meta name="description" content="City leaders back a bigger transit budget.">
  <link rel="canonical" href="https://example.com/story-canonical">
</head>
<body>
  <nav><a href="/">Home</a></nav>
  <article>
    <h1>Council approves budget</h1>
    {PARAGRAPH * 4}
  </article>
</body>
</html>
"""


@pytest.fixture
def generic():
    return GenericExtractor()


@pytest.fixture
def context(make_document):
    return ExtractionContext(document=make_document(ARTICLE_HTML, URL), url=URL)


class TestMetadataFields:

    def test_title_prefers_weak_meta_over_selectors(self, generic, context):
        assert generic.title(context) == 'Council approves budget'

    def test_author_from_meta(self, generic, context):
        assert generic.author(context) == 'Maria Lopez'

    def test_author_from_byline_selector(self, generic, make_document):
        document = make_document('<div class="byline">By Sam Reed</div><p>text</p>')
        assert generic.author(ExtractionContext(document=document, url=URL)) == 'Sam Reed'

    def test_date_from_meta(self, generic, context):
        assert generic.date_published(context) == '2024-03-05T09:00:00.000Z'

    def test_date_from_url(self, generic, make_document):
        document = make_document('<p>No dates here.</p>')
        context = ExtractionContext(document=document, url='https://example.com/2021/07/14/x')
        assert generic.date_published(context) == '2021-07-14T00:00:00.000Z'

    def test_lead_image_from_meta(self, generic, context):
        assert generic.lead_image_url(context) == 'https://example.com/images/council.jpg'

    def test_lead_image_from_content(self, generic, make_document):
        document = make_document('<p>x</p>')
        context = ExtractionContext(document=document, url=URL,
                                    content='<p><img src="/a.png"></p>')
        assert generic.lead_image_url(context) == 'https://example.com/a.png'

    def test_dek_from_description(self, generic, context):
        assert generic.dek(context) == 'City leaders back a bigger transit budget.'

    def test_url_prefers_canonical(self, generic, context):
        assert generic.url_and_domain(context) == ('https://example.com/story-canonical', 'example.com')

    def test_url_falls_back_to_page_url(self, generic, make_document):
        context = ExtractionContext(document=make_document('<p>x</p>'), url=URL)
        assert generic.url_and_domain(context) == (URL, 'example.com')


class TestContent:

    def test_content_and_dependents(self, generic, context):
        fields = generic.extract_all(context)

        assert 'city council voted' in fields['content']
        assert '<nav' not in fields['content']
        assert fields['word_count'] > 100
        assert fields['direction'] == 'ltr'
        assert fields['domain'] == 'example.com'
        assert fields['excerpt']
        assert set(fields) == {
            'title', 'author', 'date_published', 'dek', 'lead_image_url', 'content',
            'next_page_url', 'url', 'domain', 'excerpt', 'word_count', 'direction',
        }

    def test_excerpt_from_content(self, generic, make_document):
        context = ExtractionContext(document=make_document('<p>x</p>'), url=URL,
                                    content='<p>' + 'word ' * 100 + '</p>')
        excerpt = generic.excerpt(context)
        assert excerpt.startswith('word word')
        assert excerpt.endswith('…')


class TestNextPage:

    def test_rel_next(self, generic, make_document):
        document = make_document('<link rel="next" href="/2024/03/05/story/2"><p>x</p>', URL)
        context = ExtractionContext(document=document, url=URL)
        assert generic.next_page_url(context) == 'https://example.com/2024/03/05/story/2'

    def test_scored_link(self, generic, make_document):
        document = make_document(
            '<p>Body</p>'
            '<a href="https://example.com/2024/03/05/story?page=2" class="pagination">Next page</a>'
            '<a href="https://other.org/next/2">Next</a>',
            URL,
        )
        context = ExtractionContext(document=document, url=URL)
        assert generic.next_page_url(context) == 'https://example.com/2024/03/05/story?page=2'

    def test_previous_links_are_ignored(self, generic, make_document):
        document = make_document('<a href="/2024/03/05/story?page=1">Previous page</a>', URL)
        assert generic.next_page_url(ExtractionContext(document=document, url=URL)) is None


class TestHelpers:

    @pytest.mark.parametrize('text,expected', [
        ('Hello world', 'ltr'),
        ('שלום', 'rtl'),
        ('שלום hello', 'bidi'),
        ('\u200fHello', 'rtl'),
        ('2024', 'ltr'),
        ('', None),
        (None, None),
    ])
    def test_text_direction(self, text, expected):
        assert text_direction(text) == expected

    def test_word_count_for_html(self):
        assert word_count_for_html('<div><p>one two</p><p>three</p></div>') == 3
        assert word_count_for_html(None) == 0

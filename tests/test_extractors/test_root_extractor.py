"""Tests for per-page extraction with a site ruleset."""

from unittest.mock import Mock

import pytest

from article_parser.exceptions import InvalidDocumentError
from article_parser.extractors.generic import GenericExtractor
from article_parser.extractors.root_extractor import (
    GenericFieldExtractor,
    RootExtractor,
    RuleBasedFieldExtractor,
)
from article_parser.models import GENERIC_RULESET, ExtractionContext, Ruleset

URL = 'https://news.test/politics/vote'

PAGE = """
<html><head>
  <meta property="og:title" content="Meta Title">
  <meta name="section" content="Politics">
</head><body>
  <h1 class="headline">Vote Passes</h1>
  <span class="byline">By Kim Park</span>
  <div class="story">
    <h1>Vote Passes</h1>
    <p>The measure passed with a wide margin after a long debate in the chamber.</p>
    <p class="promo">Subscribe now</p>
  </div>
  <a class="next" href="/politics/vote/2">Next</a>
</body></html>
"""

RULESET = Ruleset.from_dict({
    'domain': 'news.test',
    'title': {'selectors': ['h1.headline']},
    'author': {'selectors': ['.byline']},
    'content': {'selectors': ['.story'], 'clean': ['.promo']},
    'next_page_url': {'selectors': [['a.next', 'href']]},
    'extend': {
        'section': {'selectors': [['meta[name=section]', 'value']]},
        'title': {'selectors': [['meta[name="og:title"]', 'value']]},
    },
})


@pytest.fixture
def extractor():
    return RootExtractor()


@pytest.fixture
def context(make_document):
    return ExtractionContext(document=make_document(PAGE, URL), url=URL)


class TestRootExtractor:

    def test_rule_fields(self, extractor, context):
        result = extractor.extract(RULESET, context)

        assert result['author'] == 'Kim Park'
        assert result['next_page_url'] == 'https://news.test/politics/vote/2'
        assert 'wide margin' in result['content']
        assert 'Subscribe' not in result['content']
        assert result['url'] == URL
        assert result['domain'] == 'news.test'
        assert result['section'] == 'Politics'

    def test_extended_fields_override_standard_keys(self, extractor, context):
        result = extractor.extract(RULESET, context)
        assert result['title'] == 'Meta Title'
        assert context.title == 'Vote Passes'

    def test_content_cleaner_sees_the_title(self, extractor, context):
        result = extractor.extract(RULESET, context)
        assert '<h1>' not in result['content']

    def test_generic_fallback_for_missing_fields(self, extractor, context):
        result = extractor.extract(RULESET, context)
        assert result['excerpt'].startswith('The measure passed')
        assert result['word_count'] > 5
        assert result['direction'] == 'ltr'

    def test_without_fallback(self, extractor, context):
        result = extractor.extract(RULESET, context, fallback=False)
        assert result['excerpt'] is None
        assert result['word_count'] is None
        assert result['url'] == URL

    def test_content_only(self, extractor, make_document):
        context = ExtractionContext(document=make_document(PAGE, URL), url=URL,
                                    extracted_title='Vote Passes')
        result = extractor.extract(RULESET, context, content_only=True)

        assert list(result) == ['content']
        assert '<h1>' not in result['content']

    def test_generic_ruleset_uses_generic_extractor(self, context):
        generic = Mock(spec=GenericExtractor)
        generic.extract_all.return_value = {'title': 'x'}

        result = RootExtractor(generic).extract(GENERIC_RULESET, context)

        assert result == {'title': 'x'}
        generic.extract_all.assert_called_once_with(context)

    @pytest.mark.parametrize('context', [None, ExtractionContext(document=None, url=URL)])
    def test_missing_document(self, extractor, context):
        with pytest.raises(InvalidDocumentError):
            extractor.extract(RULESET, context)


class TestFieldExtractors:

    def test_rule_based_unknown_field(self, context):
        assert RuleBasedFieldExtractor(RULESET).extract('dek', context) is None

    def test_generic_url_field(self, context):
        assert GenericFieldExtractor().extract('url', context) == URL

    def test_generic_unknown_field(self, context):
        assert GenericFieldExtractor().extract('section', context) is None

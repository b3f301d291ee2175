"""Tests for rule-based selection."""

from article_parser.extractors.selector import find_matching_selector, select, select_extended_types
from article_parser.models import ArraySelector, ExtractionContext, Rule, TextSelector

URL = 'https://example.com/news/story'

PAGE = """
<html><head>
  <meta name="author" content="Jane Doe">
  <meta name="section" content="">
</head><body>
  <h1></h1>
  <h2 class="headline">  Real   Headline </h2>
  <ul class="tags"><li>politics</li><li>world</li></ul>
  <p class="dup">one</p><p class="dup">two</p>
  <time datetime="2024-03-01T12:00:00Z">March 1</time>
  <div class="intro"><p>Intro paragraph.</p></div>
  <div class="body"><p>Body with <a href="/related">link</a>.</p><div class="ad">Buy</div></div>
</body></html>
"""


class TestFindMatchingSelector:

    def test_skips_empty_and_ambiguous_matches(self, make_document):
        document = make_document(PAGE)
        rule = Rule.from_definition(['h1', 'p.dup', 'h2.headline'])
        assert find_matching_selector(rule, document) == TextSelector('h2.headline')

    def test_attribute_must_be_non_blank(self, make_document):
        document = make_document(PAGE)
        rule = Rule.from_definition([['meta[name=section]', 'value'], ['meta[name=author]', 'value']])
        assert find_matching_selector(rule, document).selector == 'meta[name=author]'

    def test_array_selector_needs_every_part(self, make_document):
        document = make_document(PAGE)
        rule = Rule.from_definition([['.intro', '.missing'], ['.intro', '.body']], extract_html=True)
        assert find_matching_selector(rule, document, extract_html=True) == \
            ArraySelector(('.intro', '.body'))

    def test_array_selector_ignored_for_text_fields(self, make_document):
        document = make_document(PAGE)
        rule = Rule(selectors=(ArraySelector(('.intro', '.body')),))
        assert find_matching_selector(rule, document) is None

    def test_allow_multiple(self, make_document):
        document = make_document(PAGE)
        rule = Rule.from_definition({'selectors': ['p.dup'], 'allowMultiple': True})
        assert find_matching_selector(rule, document) == TextSelector('p.dup')


class TestSelectText:

    def test_hardcoded_value(self, make_document):
        assert select(Rule(value='Staff'), make_document(PAGE), 'author', URL) == 'Staff'

    def test_no_rule(self, make_document):
        assert select(None, make_document(PAGE), 'title', URL) is None

    def test_text_is_cleaned(self, make_document):
        rule = Rule.from_definition(['h2.headline'])
        assert select(rule, make_document(PAGE), 'title', URL) == 'Real Headline'

    def test_attribute_with_date_cleaner(self, make_document):
        rule = Rule.from_definition([['time', 'datetime']])
        assert select(rule, make_document(PAGE), 'date_published', URL) == '2024-03-01T12:00:00.000Z'

    def test_attribute_transform(self, make_document):
        rule = Rule.from_definition([['meta[name=author]', 'value', str.upper]])
        assert select(rule, make_document(PAGE), 'author', URL) == 'JANE DOE'

    def test_multiple_values(self, make_document):
        rule = Rule.from_definition({'selectors': ['ul.tags li'], 'allow_multiple': True})
        assert select(rule, make_document(PAGE), 'tags', URL) == ['politics', 'world']

    def test_without_default_cleaner(self, make_document):
        rule = Rule.from_definition({'selectors': [['time', 'datetime']], 'default_cleaner': False})
        assert select(rule, make_document(PAGE), 'date_published', URL) == '2024-03-01T12:00:00Z'

    def test_no_match(self, make_document):
        assert select(Rule.from_definition(['.nothing']), make_document(PAGE), 'title', URL) is None


class TestLeadImage:

    GALLERY = """
    <html><body>
      <img class="photo" src="/img/first.jpg">
      <img class="photo" src="/img/second.jpg">
    </body></html>
    """

    def test_lead_image_takes_first_of_several(self, make_document):
        rule = Rule.from_definition([['img.photo', 'src']])
        assert not rule.allow_multiple

        value = select(rule, make_document(self.GALLERY), 'lead_image_url', URL)

        assert value == 'https://example.com/img/first.jpg'

    def test_other_fields_reject_several_matches(self, make_document):
        rule = Rule.from_definition([['img.photo', 'src']])
        assert select(rule, make_document(self.GALLERY), 'url', URL) is None


class TestSelectHtml:

    def test_array_selector_merges_and_cleans(self, make_document):
        rule = Rule.from_definition(
            {'selectors': [['.intro', '.body']], 'clean': ['.ad']}, extract_html=True
        )
        content = select(rule, make_document(PAGE), 'content', URL, extract_html=True,
                         context=ExtractionContext(document=None, url=URL))

        assert content.index('Intro paragraph.') < content.index('Body with')
        assert 'Buy' not in content
        assert 'href="https://example.com/related"' in content

    def test_transforms_rename_nodes(self, make_document):
        rule = Rule.from_definition(
            {'selectors': ['.intro'], 'transforms': {'p': 'blockquote'}}, extract_html=True
        )
        content = select(rule, make_document(PAGE), 'content', URL, extract_html=True)
        assert '<blockquote>Intro paragraph.</blockquote>' in content

    def test_content_cleaner_drops_title_header(self, make_document):
        document = make_document('<article><h1>Same Title</h1><p>Text body.</p></article>')
        rule = Rule.from_definition(['article'], extract_html=True)
        context = ExtractionContext(document=document, url=URL, title='Same Title')

        content = select(rule, document, 'content', URL, extract_html=True, context=context)

        assert 'Same Title' not in content
        assert 'Text body.' in content


class TestExtendedTypes:

    def test_missing_fields_map_to_none(self, make_document):
        extend = {
            'author_meta': Rule.from_definition([['meta[name=author]', 'value']]),
            'missing': Rule.from_definition(['.nope']),
        }
        assert select_extended_types(extend, make_document(PAGE), URL) == {
            'author_meta': 'Jane Doe',
            'missing': None,
        }

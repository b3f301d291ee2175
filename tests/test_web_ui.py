"""Tests for the JSON API server."""

import pytest

pytest.importorskip("fastapi")

from fastapi.testclient import TestClient  # noqa: E402

from article_parser import __version__  # noqa: E402
from article_parser.parser import ArticleParser  # noqa: E402
from article_parser.web_ui.server import create_app  # noqa: E402

PAGE = """
<html><head>
  <meta property="og:title" content="API Story">
  <meta name="byl" content="Rae Morgan">
</head><body><article><h1>API Story</h1>
<p>The API accepts either a URL to fetch or the page markup itself, and answers with the
extracted fields as JSON so that other services can consume them without scraping.</p>
<p>Another paragraph of ordinary prose keeps the readability scorer happy and makes the
article body the clear winner on this small test page.</p>
</article></body></html>
"""


@pytest.fixture
def parser(config, make_fetcher):
    parser = ArticleParser(config, fetcher=make_fetcher({}))
    yield parser
    parser.close()


@pytest.fixture
def client(config, parser):
    with TestClient(create_app(config, parser=parser)) as client:
        yield client


class TestParseEndpoint:

    def test_parse_supplied_html(self, client):
        response = client.post('/api/parse', json={'url': 'https://api.test/story', 'html': PAGE})

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert body['extractor'] == 'generic'
        assert body['article']['title'] == 'API Story'
        assert body['article']['author'] == 'Rae Morgan'
        assert body['processing_time'] >= 0

    def test_parse_as_text(self, client):
        response = client.post('/api/parse', json={
            'url': 'https://api.test/story', 'html': PAGE, 'content_type': 'text',
        })
        assert response.status_code == 200
        assert '<p>' not in response.json()['article']['content']

    def test_failed_extraction_is_400(self, client):
        response = client.post('/api/parse', json={'url': 'http://localhost/admin', 'html': PAGE})
        assert response.status_code == 400
        assert 'localhost' in response.json()['detail']

    def test_missing_url_is_422(self, client):
        assert client.post('/api/parse', json={'html': PAGE}).status_code == 422


class TestInfoEndpoints:

    def test_extractors(self, client):
        response = client.get('/api/extractors')

        assert response.status_code == 200
        domains = {item['domain'] for item in response.json()}
        assert {'medium.com', 'blogspot.com', 'www.npr.org'} <= domains

    def test_health(self, client):
        client.post('/api/parse', json={'url': 'https://api.test/story', 'html': PAGE})

        body = client.get('/api/health').json()

        assert body['status'] == 'healthy'
        assert body['version'] == __version__
        assert body['cache']['capacity'] == 50
        assert body['loader']['cache_misses'] >= 1

    def test_app_does_not_close_injected_parser(self, config, parser):
        with TestClient(create_app(config, parser=parser)):
            pass
        assert not parser.loader._stop.is_set()

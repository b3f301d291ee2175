"""Tests for URL validation and private network protection."""

import pytest

from article_parser.exceptions import URLValidationError
from article_parser.url_validator import URLValidator, is_localhost


def public_resolver(hostname):
    return ['93.184.216.34']


@pytest.fixture
def validator():
    return URLValidator(resolver=public_resolver)


class TestValidate:

    def test_normalizes_host_case(self, validator):
        assert validator.validate('https://Example.COM/Path?q=1#frag') == 'https://example.com/Path?q=1#frag'

    def test_strips_surrounding_whitespace(self, validator):
        assert validator.validate('  http://example.com/a  ') == 'http://example.com/a'

    @pytest.mark.parametrize('url,reason', [
        ('', 'empty'),
        ('   ', 'empty'),
        ('example.com/article', 'scheme'),
        ('ftp://example.com/file', 'Unsupported URL scheme'),
        ('https://', 'missing domain'),
        ('https://' + 'a' * 250 + '.com/', 'too long'),
    ])
    def test_rejects(self, validator, url, reason):
        with pytest.raises(URLValidationError) as exc_info:
            validator.validate(url)
        assert reason in exc_info.value.message

    def test_is_valid(self, validator):
        assert validator.is_valid('https://example.com/')
        assert not validator.is_valid('mailto:someone@example.com')


class TestPrivateNetworks:

    @pytest.mark.parametrize('url', [
        'http://localhost/admin',
        'http://api.localhost/',
        'http://127.0.0.1:8080/',
        'http://[::1]/',
        'http://10.0.0.5/',
        'http://192.168.1.1/',
        'http://169.254.169.254/latest/meta-data',
        'http://0.0.0.0/',
    ])
    def test_blocked(self, validator, url):
        with pytest.raises(URLValidationError):
            validator.validate(url)

    def test_allowed_when_configured(self):
        validator = URLValidator(allow_private_networks=True)
        assert validator.validate('http://localhost:3000/a') == 'http://localhost:3000/a'

    def test_hostname_resolving_to_private_address(self):
        validator = URLValidator(resolver=lambda hostname: ['10.1.2.3'])
        with pytest.raises(URLValidationError, match='private network'):
            validator.validate('https://intranet.example.com/')

    def test_resolution_skipped_when_not_requested(self):
        validator = URLValidator(resolver=lambda hostname: ['10.1.2.3'])
        assert validator.validate('https://intranet.example.com/', resolve_hosts=False)

    def test_dns_failure(self):
        def failing(hostname):
            raise OSError('Name or service not known')

        with pytest.raises(URLValidationError, match='DNS resolution failed'):
            URLValidator(resolver=failing).validate('https://nowhere.invalid/')

    def test_no_addresses(self):
        with pytest.raises(URLValidationError, match='no IP addresses'):
            URLValidator(resolver=lambda hostname: []).validate('https://empty.example/')

    def test_public_literal_ip(self, validator):
        assert validator.validate('http://93.184.216.34/') == 'http://93.184.216.34/'


class TestIsLocalhost:

    @pytest.mark.parametrize('hostname,expected', [
        ('localhost', True),
        ('LOCALHOST', True),
        ('app.localhost', True),
        ('[::1]', True),
        ('example.com', False),
        ('localhost.example.com', False),
    ])
    def test_is_localhost(self, hostname, expected):
        assert is_localhost(hostname) is expected

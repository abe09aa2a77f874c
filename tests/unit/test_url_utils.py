import pytest

from utils.url_utils import normalize_url_for_match, urls_match


@pytest.mark.parametrize("left,right", [
    ("https://www.Example.com/", "https://example.com"),
    ("HTTPS://example.com:443/docs/", "https://example.com/docs"),
    ("https://example.com//a//b", "https://example.com/a/b"),
    ("https://example.com/p?b=2&a=1", "https://example.com/p?a=1&b=2"),
    ("https://example.com/p?utm_source=x&id=3&fbclid=y", "https://example.com/p?id=3"),
    ("https://example.com/p#section", "https://example.com/p"),
])
def test_equivalent_spellings_match(left, right):
    assert urls_match(left, right)


@pytest.mark.parametrize("left,right", [
    ("https://example.com/a", "https://example.com/b"),
    ("http://example.com", "https://example.com"),
    ("https://example.com:8443", "https://example.com"),
    ("https://example.com/p?id=1", "https://example.com/p?id=2"),
])
def test_different_pages_do_not_match(left, right):
    assert not urls_match(left, right)


def test_empty_urls_never_match():
    assert normalize_url_for_match("   ") == ""
    assert not urls_match("", "")


def test_unparseable_input_falls_back_to_lowercase():
    assert normalize_url_for_match("About:Blank/") == "about:blank"
    assert normalize_url_for_match("http://[::1") == "http://[::1"

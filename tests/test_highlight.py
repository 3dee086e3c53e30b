"""Tests for answer highlighting."""

from geoeval.core.highlight import TokenKind, target_terms_for, tokenize


def kinds(text, terms):
    return [(t.kind, t.text) for t in tokenize(text, terms) if t.text.strip()]


class TestTokenize:
    """Classification of answer words."""

    def test_concatenation_restores_input(self):
        text = "Call  Acme Plumbing at acme.com,\nor try\thomeadvisor.com today!"
        tokens = tokenize(text, ["Acme Plumbing", "acme.com"])
        assert "".join(t.text for t in tokens) == text

    def test_target_brand_word(self):
        result = kinds("We love acme.com!", ["Acme", "acme.com"])
        assert (TokenKind.TARGET, "acme.com!") in result
        assert (TokenKind.PLAIN, "We") in result

    def test_external_link(self):
        result = kinds("Also see https://yelp.com/biz/x and angi.com.", ["Acme", "acme.com"])
        assert (TokenKind.EXTERNAL_LINK, "https://yelp.com/biz/x") in result
        assert (TokenKind.EXTERNAL_LINK, "angi.com.") in result

    def test_target_wins_over_link(self):
        result = kinds("https://acme.com/contact", ["acme.com"])
        assert result == [(TokenKind.TARGET, "https://acme.com/contact")]

    def test_short_terms_ignored(self):
        result = kinds("AB Plumbing is good", ["AB"])
        assert all(kind == TokenKind.PLAIN for kind, _ in result)

    def test_terms_are_literal(self):
        """Regex metacharacters in a brand never act as a pattern."""
        result = kinds("Try A+B Co. or AxB today", ["A+B"])
        assert (TokenKind.TARGET, "A+B") in result
        assert (TokenKind.PLAIN, "AxB") in result

    def test_whitespace_tokens_are_plain(self):
        tokens = tokenize("a \n b", ["Acme"]).to_list()
        assert [t.kind for t in tokens] == [TokenKind.PLAIN] * 3
        assert tokens[1].text == " \n "

    def test_restartable(self):
        stream = tokenize("Acme at acme.com", ["Acme"])
        assert list(stream) == list(stream)

    def test_empty_text(self):
        assert tokenize("", ["Acme"]).to_list() == []
        assert tokenize(None, ["Acme"]).to_list() == []


def test_target_terms_for():
    assert target_terms_for("Acme", "acme.com") == ["Acme", "acme.com"]
    assert target_terms_for("", "acme.com") == ["acme.com"]
    assert target_terms_for(None, None) == []

"""Tests for brand matching helpers."""

from geoeval.core.matching import contains_term, is_found, normalize_domain


class TestIsFound:
    """Brand / domain detection in assistant answers."""

    def test_brand_case_insensitive(self):
        assert is_found("Try ACME Plumbing downtown.", "Acme Plumbing", "acme.com")

    def test_domain_match(self):
        assert is_found("See acme.com for prices", "Acme Plumbing", "acme.com")

    def test_neither_mentioned(self):
        assert not is_found("Call Joe's Pipes.", "Acme Plumbing", "acme.com")

    def test_empty_answer(self):
        assert not is_found("", "Acme", "acme.com")
        assert not is_found(None, "Acme", "acme.com")

    def test_empty_brand_never_matches(self):
        # even when the domain appears
        assert not is_found("acme.com is great", "", "acme.com")

    def test_empty_domain_ignored(self):
        assert not is_found("anything at all", "Acme", "")
        assert is_found("acme rocks", "Acme", "")

    def test_substring_semantics(self):
        """Matching is plain substring, not word-bounded."""
        assert is_found("the acmeplumbing van", "acme", "")


class TestCaseInvariance:
    """Answers match the same way whatever their letter case."""

    def setup_method(self):
        self.cases = [
            ("Try Straße Bau today", "Straße Bau", ""),
            ("Ask ÉCOLE Lumière about it", "école lumière", "lumiere.fr"),
            ("Visit acme.com", "Acme", "acme.com"),
            ("Nothing relevant here", "Acme", "acme.com"),
        ]

    def test_upper_and_lower_answers(self):
        for answer, brand, domain in self.cases:
            expected = is_found(answer, brand, domain)
            assert is_found(answer.upper(), brand, domain) == expected
            assert is_found(answer.lower(), brand, domain) == expected

    def test_non_ascii_brand(self):
        assert is_found("TRY STRASSE BAU TODAY", "Straße Bau", "")
        assert contains_term("Die STRASSE", "straße")


def test_contains_term():
    assert contains_term("Best plumber in Austin", "PLUMBER")
    assert not contains_term("Best plumber", "")
    assert not contains_term(None, "x")


def test_normalize_domain():
    assert normalize_domain("https://Acme.com/about") == "acme.com"
    assert normalize_domain("http://www.acme.com") == "www.acme.com"
    assert normalize_domain("  acme.com  ") == "acme.com"
    assert normalize_domain("") == ""

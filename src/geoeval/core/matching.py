"""Brand matching helpers."""

import re
from typing import Optional

_SCHEME_RE = re.compile(r"https?://", re.IGNORECASE)


def is_found(answer_text: Optional[str], brand_name: Optional[str], domain_name: Optional[str]) -> bool:
    """Whether an answer mentions the brand name or the domain (caseless substring)."""
    answer = (answer_text or "").casefold()
    brand = (brand_name or "").casefold()
    domain = (domain_name or "").casefold()
    if not answer or not brand:
        return False
    return brand in answer or (bool(domain) and domain in answer)


def contains_term(text: Optional[str], term: Optional[str]) -> bool:
    """Case-insensitive containment; an empty term never matches."""
    if not term:
        return False
    return term.casefold() in (text or "").casefold()


def normalize_domain(value: Optional[str]) -> str:
    """Reduce user input like 'https://Acme.com/about' to 'acme.com'."""
    value = _SCHEME_RE.sub("", (value or "").strip(), count=1)
    return value.split("/")[0].lower()

"""Answer highlighting: split assistant answers into brand, link and plain spans."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Pattern, Sequence

from .constants import HighlightConstants

_WHITESPACE_RE = re.compile(r"(\s+)")
_TRAILING_PUNCT_RE = re.compile(r"[" + re.escape(HighlightConstants.TRAILING_PUNCTUATION) + r"]+$")
_LINK_RE = re.compile(
    r"([a-z][a-z0-9+.-]*://\S+|[a-z0-9-]+\.(?:" + "|".join(HighlightConstants.LINK_TLDS) + r")\S*)",
    re.IGNORECASE,
)


class TokenKind(Enum):
    TARGET = "target"
    EXTERNAL_LINK = "external-link"
    PLAIN = "plain"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str


def _target_pattern(target_terms: Sequence[str]) -> Optional[Pattern]:
    terms = [re.escape(t) for t in target_terms if t and len(t) >= HighlightConstants.MIN_TERM_LENGTH]
    if not terms:
        return None
    return re.compile("(" + "|".join(terms) + ")", re.IGNORECASE)


class TokenStream:
    """Lazy, re-iterable token sequence for one text.

    Iterating twice produces the same tokens; nothing is cached between passes.
    Joining every token's text gives back the original input.
    """

    def __init__(self, text: Optional[str], target_terms: Sequence[str]):
        self.text = text or ""
        self.target_terms = tuple(target_terms or ())
        self._target_re = _target_pattern(self.target_terms)

    def __iter__(self) -> Iterator[Token]:
        for part in _WHITESPACE_RE.split(self.text):
            if not part:
                continue
            if not part.strip():
                yield Token(TokenKind.PLAIN, part)
                continue

            clean = _TRAILING_PUNCT_RE.sub("", part)
            if self._target_re is not None and self._target_re.search(clean):
                yield Token(TokenKind.TARGET, part)
            elif _LINK_RE.search(clean):
                yield Token(TokenKind.EXTERNAL_LINK, part)
            else:
                yield Token(TokenKind.PLAIN, part)

    def to_list(self) -> List[Token]:
        return list(self)


def tokenize(text: Optional[str], target_terms: Sequence[str]) -> TokenStream:
    """Classify each whitespace-delimited word of ``text``."""
    return TokenStream(text, target_terms)


def target_terms_for(brand_name: Optional[str], domain: Optional[str]) -> List[str]:
    """Terms the dashboard highlights as the target website."""
    return [t for t in (brand_name or "", domain or "") if t]

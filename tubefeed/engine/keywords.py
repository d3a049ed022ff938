"""
Keyword extraction from free text (titles, descriptions, search queries).

Works over mixed-script text: hashtags and bracketed phrases
([MV], 【歌ってみた】) are kept whole, everything else is split on
whitespace after ASCII punctuation is blanked out.
"""
import re
from typing import Optional

HASHTAG_RE = re.compile(r"#[^\s#]+")
BRACKET_RE = re.compile(r"[\[【](.+?)[\]】]")
BRACKET_CHARS_RE = re.compile(r"[\[【\]】]")
PUNCTUATION_RE = re.compile(r"[!-/:-@\[-`{-~]")
NOISE_PREFIX_RE = re.compile(r"^(http|www|com|jp)")


def extract_keywords(text: Optional[str]) -> list[str]:
    """Extract candidate keywords from text.

    Args:
        text: Arbitrary text, usually title + " " + description.

    Returns:
        Hashtags, then bracket contents, then remaining cleaned words.
        Empty list for empty input.
    """
    if not text:
        return []

    hashtags = [tag.strip() for tag in HASHTAG_RE.findall(text)]

    brackets = []
    for phrase in BRACKET_RE.findall(text):
        phrase = BRACKET_CHARS_RE.sub("", phrase).strip()
        if phrase:
            brackets.append(phrase)

    raw = HASHTAG_RE.sub("", BRACKET_RE.sub("", text))
    words = PUNCTUATION_RE.sub(" ", raw).split()
    words = [w for w in words if len(w) > 1 and not NOISE_PREFIX_RE.match(w)]

    return hashtags + brackets + words

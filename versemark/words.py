"""Word tokenizing and word-index/character-offset mapping."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

_TOKEN_RE = re.compile(r"\S+")
_EDGE_NON_WORD_RE = re.compile(r"^\W+|\W+$")


@dataclass(frozen=True)
class Word:
    text: str
    start_offset: int
    end_offset: int


@dataclass(frozen=True)
class WordRange:
    """Inclusive range of word indices within a verse."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def intersects(self, other: WordRange) -> bool:
        return self.start <= other.end and other.start <= self.end


@dataclass(frozen=True)
class CharRange:
    """End-exclusive range of character offsets within a verse."""

    start: int
    end: int

    def overlaps(self, other: CharRange) -> bool:
        return self.start < other.end and other.start < self.end

    def clamp(self, length: int) -> CharRange:
        start = min(max(self.start, 0), length)
        end = min(max(self.end, 0), length)
        return CharRange(start, max(end, start))


Coordinates = WordRange | CharRange


def tokenize(text: str) -> list[Word]:
    return [Word(match.group(0), match.start(), match.end()) for match in _TOKEN_RE.finditer(text)]


def word_count(text: str) -> int:
    return sum(1 for _ in _TOKEN_RE.finditer(text))


def normalize_word(token: str) -> str:
    """Strip punctuation from both ends of a token and lower-case it."""
    return _EDGE_NON_WORD_RE.sub("", token).lower()


def normalized_words(text: str) -> list[str]:
    return [normalize_word(word.text) for word in tokenize(text)]


def is_word_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def word_indices_to_char_offsets(
    text: str,
    start_word_index: int | None,
    end_word_index: int | None,
) -> CharRange | None:
    """
    Map an inclusive word-index pair onto the character span it covers.

    Args:
        text: Canonical verse text
        start_word_index: Index of the first word
        end_word_index: Index of the last word

    Returns:
        Span from the start of the first word to the end of the last word, or
        None when either index is missing or outside the verse.
    """
    if start_word_index is None or end_word_index is None:
        return None
    words = tokenize(text)
    for index in (start_word_index, end_word_index):
        if index < 0 or index >= len(words):
            return None
    return CharRange(words[start_word_index].start_offset, words[end_word_index].end_offset)


def char_offsets_to_word_indices(text: str, start: int, end: int) -> WordRange | None:
    """Return the word range covering every word that intersects ``[start, end)``."""
    covered = [
        index
        for index, word in enumerate(tokenize(text))
        if word.start_offset < end and word.end_offset > start
    ]
    if not covered:
        return None
    return WordRange(covered[0], covered[-1])


def resolve_char_range(coordinates: Iterable[Coordinates], text: str) -> CharRange | None:
    """
    Resolve an annotation's coordinates to one clamped character range.

    Candidates are tried in order; a word range that no longer maps onto the
    text falls through to the next candidate.
    """
    for candidate in coordinates:
        if isinstance(candidate, WordRange):
            resolved = word_indices_to_char_offsets(text, candidate.start, candidate.end)
        else:
            resolved = candidate
        if resolved is not None:
            return resolved.clamp(len(text))
    return None


def expand_to_word_boundaries(text: str, start: int, end: int) -> CharRange:
    """Grow a raw selection to whole words, then drop edge punctuation and whitespace."""
    span = CharRange(start, end).clamp(len(text))
    start, end = span.start, span.end
    while start > 0 and start < len(text) and is_word_char(text[start - 1]) and is_word_char(text[start]):
        start -= 1
    while 0 < end < len(text) and is_word_char(text[end - 1]) and is_word_char(text[end]):
        end += 1
    while start < end and not is_word_char(text[start]):
        start += 1
    while end > start and not is_word_char(text[end - 1]):
        end -= 1
    return CharRange(start, end)

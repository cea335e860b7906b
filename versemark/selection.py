"""Resolve a user's text selection to translation-independent word indices."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .model import SYMBOLS, Annotation, VerseRef
from .words import WordRange, expand_to_word_boundaries, is_word_char, normalized_words, word_count

logger = logging.getLogger(__name__)

OVERLAP_SCORE = 1000
DISTANCE_WEIGHT = 100

# ASCII glyphs ("?", "!") double as punctuation and are left in place.
_INLINE_GLYPHS = tuple(glyph for glyph in SYMBOLS.values() if not glyph.isascii())


@dataclass(frozen=True)
class Selection:
    """A selection as captured from the rendering surface."""

    selected_text: str
    canonical_text: str
    preceding_text: str = ""


def strip_symbols(text: str) -> str:
    """Remove inline symbol glyphs that a surface selection may have picked up."""
    if not text:
        return text
    cleaned = text
    for glyph in _INLINE_GLYPHS:
        cleaned = cleaned.replace(glyph, "")
    return " ".join(cleaned.split())


def selection_from_surface(surface_text: str, start: int, end: int, canonical_text: str | None = None) -> Selection:
    """
    Build a selection from raw offsets into the rendered surface text.

    Args:
        surface_text: Text of the verse as displayed, decorations included
        start: Raw selection start offset in ``surface_text``
        end: Raw selection end offset in ``surface_text``
        canonical_text: Plain verse text; defaults to ``surface_text``

    Returns:
        Selection expanded to whole words, with the preceding text as a hint
    """
    span = expand_to_word_boundaries(surface_text, start, end)
    return Selection(
        selected_text=surface_text[span.start : span.end],
        canonical_text=surface_text if canonical_text is None else canonical_text,
        preceding_text=surface_text[: span.start],
    )


def resolve_selection(
    selection: Selection,
    existing: Iterable[Annotation] = (),
    verse: VerseRef | None = None,
) -> WordRange | None:
    """
    Find the word range in the canonical text that the selection refers to.

    When the selected phrase occurs more than once, occurrences that do not
    overlap an existing annotation are preferred, then the one nearest the
    reading position implied by ``preceding_text``.

    Args:
        selection: Selected text, canonical verse text and position hint
        existing: Annotations already placed in the verse
        verse: Restrict ``existing`` to annotations targeting this verse

    Returns:
        Inclusive word range, or None when the selection cannot be located
    """
    selected = _trim_edges(strip_symbols(selection.selected_text))
    canonical = normalized_words(selection.canonical_text)
    wanted = normalized_words(selected)
    if not canonical or not wanted:
        return None

    span = len(wanted)
    candidates = [index for index in range(len(canonical) - span + 1) if canonical[index : index + span] == wanted]
    logger.debug("Selection %r matched candidates %s", selected, candidates)
    if not candidates:
        return None
    if len(candidates) == 1:
        return WordRange(candidates[0], candidates[0] + span - 1)

    annotated = _annotated_word_ranges(existing, verse)
    approximate_index = word_count(strip_symbols(selection.preceding_text))
    best_start = candidates[0]
    best_score = float("-inf")
    for candidate in candidates:
        candidate_range = WordRange(candidate, candidate + span - 1)
        overlaps = any(candidate_range.intersects(other) for other in annotated)
        distance = abs(candidate - approximate_index)
        score = (-OVERLAP_SCORE if overlaps else OVERLAP_SCORE) + DISTANCE_WEIGHT / (1 + distance)
        logger.debug("Candidate %d: overlaps=%s distance=%d score=%.2f", candidate, overlaps, distance, score)
        if score > best_score:
            best_score = score
            best_start = candidate
    return WordRange(best_start, best_start + span - 1)


def _trim_edges(text: str) -> str:
    start, end = 0, len(text)
    while start < end and not is_word_char(text[start]):
        start += 1
    while end > start and not is_word_char(text[end - 1]):
        end -= 1
    return text[start:end]


def _annotated_word_ranges(existing: Iterable[Annotation], verse: VerseRef | None) -> list[WordRange]:
    ranges: list[WordRange] = []
    for annotation in existing:
        if not annotation.is_single_verse:
            continue
        if verse is not None and not annotation.targets(verse):
            continue
        for coordinates in annotation.coordinates():
            if isinstance(coordinates, WordRange):
                ranges.append(coordinates)
                break
    return ranges

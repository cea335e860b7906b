"""Group a verse's annotations into character ranges ready for segmenting."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .model import Annotation, SymbolAnnotation, TextAnnotation, VerseRef
from .words import CharRange, normalized_words, resolve_char_range

logger = logging.getLogger(__name__)

# Tunable; only the last fallback in RANGE_MATCHERS depends on it.
PROXIMITY_CHARS = 10


@dataclass
class AnnotationRange:
    start: int
    end: int
    text_annotations: list[TextAnnotation] = field(default_factory=list)
    symbol_annotations: list[SymbolAnnotation] = field(default_factory=list)

    @property
    def span(self) -> CharRange:
        return CharRange(self.start, self.end)

    def overlaps(self, other: AnnotationRange) -> bool:
        return self.span.overlaps(other.span)

    def widen(self, span: CharRange) -> None:
        self.start = min(self.start, span.start)
        self.end = max(self.end, span.end)

    def add_text(self, annotation: TextAnnotation) -> None:
        if all(existing.annotation_id != annotation.annotation_id for existing in self.text_annotations):
            self.text_annotations.append(annotation)

    def accepts_symbol(self, annotation: SymbolAnnotation) -> bool:
        return all(
            existing.symbol != annotation.symbol and existing.annotation_id != annotation.annotation_id
            for existing in self.symbol_annotations
        )

    def add_symbol(self, annotation: SymbolAnnotation) -> bool:
        """Attach a symbol unless one with the same key or id is already present."""
        if not self.accepts_symbol(annotation):
            return False
        self.symbol_annotations.append(annotation)
        return True


@dataclass(frozen=True)
class MatchContext:
    verse_text: str
    proximity: int = PROXIMITY_CHARS

    def phrase(self, span: CharRange) -> tuple[str, ...]:
        return self.phrase_of(self.verse_text[span.start : span.end])

    def phrase_of(self, text: str) -> tuple[str, ...]:
        return tuple(word for word in normalized_words(text) if word)

    def occurrences(self, phrase: tuple[str, ...]) -> int:
        words = normalized_words(self.verse_text)
        size = len(phrase)
        return sum(1 for index in range(len(words) - size + 1) if tuple(words[index : index + size]) == phrase)


RangeMatcher = Callable[[CharRange, CharRange, SymbolAnnotation, MatchContext], bool]


def matches_exactly(existing: CharRange, span: CharRange, symbol: SymbolAnnotation, context: MatchContext) -> bool:
    return existing == span


def matches_overlap(existing: CharRange, span: CharRange, symbol: SymbolAnnotation, context: MatchContext) -> bool:
    return existing.overlaps(span)


def matches_same_text(existing: CharRange, span: CharRange, symbol: SymbolAnnotation, context: MatchContext) -> bool:
    """
    Match the words the symbol was placed on against the words of the range.

    The symbol's recorded selection is preferred over the text at its offsets.
    The phrase must occur only once in the verse, otherwise repeated words
    such as "LORD" would pull symbols onto the wrong occurrence.
    """
    phrase = context.phrase_of(symbol.selected_text) if symbol.selected_text else context.phrase(span)
    if not phrase or phrase != context.phrase(existing):
        return False
    return context.occurrences(phrase) == 1


def matches_nearby(existing: CharRange, span: CharRange, symbol: SymbolAnnotation, context: MatchContext) -> bool:
    return (
        abs(existing.start - span.start) <= context.proximity
        and abs(existing.end - span.end) <= context.proximity
    )


RANGE_MATCHERS: list[RangeMatcher] = [
    matches_exactly,
    matches_overlap,
    matches_same_text,
    matches_nearby,
]


def build_ranges(
    verse_text: str,
    annotations: Sequence[Annotation],
    ref: VerseRef | None = None,
    proximity: int = PROXIMITY_CHARS,
) -> list[AnnotationRange]:
    """
    Build the annotation ranges of one verse.

    Text annotations resolving to the same span share a range. Inline symbols
    then join the first range accepted by ``RANGE_MATCHERS`` (tried in order),
    widening it, or open a range of their own. A symbol whose key is already
    on the matched range is dropped and leaves the range as it was. Any two
    ranges that still overlap and both carry symbols are merged.

    Args:
        verse_text: Canonical verse text
        annotations: Merged annotations for the verse
        ref: When given, annotations that do not target this verse are ignored
        proximity: Maximum endpoint distance for the proximity fallback

    Returns:
        Ranges sorted by start offset
    """
    ranges: list[AnnotationRange] = []

    for annotation in annotations:
        if not isinstance(annotation, TextAnnotation) or not _in_verse(annotation, ref):
            continue
        span = resolve_char_range(annotation.coordinates(), verse_text)
        if span is None:
            logger.debug("Text annotation %s has no usable coordinates", annotation.annotation_id)
            continue
        target = next((item for item in ranges if item.span == span), None)
        if target is None:
            target = AnnotationRange(span.start, span.end)
            ranges.append(target)
        target.add_text(annotation)

    context = MatchContext(verse_text, proximity)
    for annotation in annotations:
        if not isinstance(annotation, SymbolAnnotation) or not annotation.is_inline:
            continue
        if not _in_verse(annotation, ref):
            continue
        span = resolve_char_range(annotation.coordinates(), verse_text)
        if span is None:
            logger.debug("Symbol %s has no usable coordinates", annotation.annotation_id)
            continue
        target = _find_range(ranges, span, annotation, context)
        if target is None:
            target = AnnotationRange(span.start, span.end)
            ranges.append(target)
        elif not target.accepts_symbol(annotation):
            logger.debug("Symbol %s duplicates one already on %d-%d", annotation.annotation_id, target.start, target.end)
            continue
        target.widen(span)
        _ = target.add_symbol(annotation)

    ranges.sort(key=lambda item: item.start)
    return _merge_symbol_ranges(ranges)


def _in_verse(annotation: Annotation, ref: VerseRef | None) -> bool:
    if not annotation.is_single_verse:
        return False
    return ref is None or annotation.targets(ref)


def _find_range(
    ranges: list[AnnotationRange],
    span: CharRange,
    symbol: SymbolAnnotation,
    context: MatchContext,
) -> AnnotationRange | None:
    for matcher in RANGE_MATCHERS:
        for candidate in ranges:
            if matcher(candidate.span, span, symbol, context):
                logger.debug("Span %d-%d joins %d-%d via %s", span.start, span.end, candidate.start, candidate.end, matcher.__name__)
                return candidate
    return None


def _merge_symbol_ranges(ranges: list[AnnotationRange]) -> list[AnnotationRange]:
    merged = list(ranges)
    while True:
        pair = _overlapping_symbol_pair(merged)
        if pair is None:
            return merged
        keep, absorbed = pair
        logger.debug("Merging %d-%d into %d-%d", absorbed.start, absorbed.end, keep.start, keep.end)
        keep.widen(absorbed.span)
        for text_annotation in absorbed.text_annotations:
            keep.add_text(text_annotation)
        for symbol in absorbed.symbol_annotations:
            _ = keep.add_symbol(symbol)
        merged = [item for item in merged if item is not absorbed]
        merged.sort(key=lambda item: item.start)


def _overlapping_symbol_pair(ranges: list[AnnotationRange]) -> tuple[AnnotationRange, AnnotationRange] | None:
    with_symbols = [item for item in ranges if item.symbol_annotations]
    for index, first in enumerate(with_symbols):
        for second in with_symbols[index + 1 :]:
            if first.overlaps(second):
                return first, second
    return None

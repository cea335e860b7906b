"""Cut verse text into uniformly styled segments."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .model import HIGHLIGHT_COLORS, SymbolAnnotation, TextAnnotation
from .ranges import AnnotationRange

_TRAILING_PUNCT_RE = re.compile(r"[^\w\s]+$")


@dataclass
class TextSegment:
    start: int
    end: int
    text: str
    annotations: list[TextAnnotation] = field(default_factory=list)
    symbols: list[SymbolAnnotation] = field(default_factory=list)

    @property
    def is_plain(self) -> bool:
        return not self.annotations and not self.symbols

    @property
    def annotation_ids(self) -> list[str]:
        return [annotation.annotation_id for annotation in self.annotations] + [
            symbol.annotation_id for symbol in self.symbols
        ]


@dataclass(frozen=True)
class SegmentStyle:
    """Independent visual properties stacked from a segment's text annotations."""

    background_color: str | None = None
    text_color: str | None = None
    underline_color: str | None = None
    underline_style: str | None = None

    @property
    def is_empty(self) -> bool:
        return self == SegmentStyle()

    def css(self) -> str:
        declarations: list[str] = []
        if self.background_color:
            declarations.append(f"background-color: {self.background_color}40")
        if self.text_color:
            declarations.append(f"color: {self.text_color}")
        if self.underline_color:
            declarations.append("text-decoration: underline")
            declarations.append(f"text-decoration-color: {self.underline_color}")
            declarations.append(f"text-decoration-style: {self.underline_style or 'solid'}")
        return "; ".join(declarations)


def segment_text(verse_text: str, ranges: Sequence[AnnotationRange]) -> list[TextSegment]:
    """
    Tile ``verse_text`` into segments split at every range boundary.

    The segments cover ``[0, len(verse_text))`` in order with no gaps or
    overlaps. Each carries the text annotations (unique by id) and symbols
    (unique by symbol key, first range wins) of every range overlapping it.
    """
    length = len(verse_text)
    boundaries = {0, length}
    for item in ranges:
        boundaries.add(min(max(item.start, 0), length))
        boundaries.add(min(max(item.end, 0), length))
    ordered = sorted(boundaries)

    segments: list[TextSegment] = []
    for start, end in zip(ordered, ordered[1:]):
        segment = TextSegment(start=start, end=end, text=verse_text[start:end])
        for item in ranges:
            if not (item.start < end and item.end > start):
                continue
            for annotation in item.text_annotations:
                if all(existing.annotation_id != annotation.annotation_id for existing in segment.annotations):
                    segment.annotations.append(annotation)
            for symbol in item.symbol_annotations:
                if all(existing.symbol != symbol.symbol for existing in segment.symbols):
                    segment.symbols.append(symbol)
        segments.append(segment)
    return segments


def split_trailing_punctuation(text: str) -> tuple[str, str]:
    """Split ``"God,"`` into ``("God", ",")`` so a glyph only attaches to the word."""
    match = _TRAILING_PUNCT_RE.search(text)
    if match is None or match.start() == 0:
        return text, ""
    return text[: match.start()], text[match.start() :]


def combine_styles(annotations: Iterable[TextAnnotation]) -> SegmentStyle:
    background = text_color = underline_color = underline_style = None
    for annotation in annotations:
        color = HIGHLIGHT_COLORS.get(annotation.color, annotation.color)
        if annotation.kind == "highlight":
            background = color
        elif annotation.kind == "textColor":
            text_color = color
        elif annotation.kind == "underline":
            underline_color = color
            underline_style = annotation.underline_style or "solid"
    return SegmentStyle(
        background_color=background,
        text_color=text_color,
        underline_color=underline_color,
        underline_style=underline_style,
    )

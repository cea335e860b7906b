"""Per-verse render pass: merge, build ranges and segment."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .merging import merge_annotations
from .model import Annotation, JSONDict, SymbolAnnotation, Verse, VerseRef, annotation_to_dict, cast_json, ref_to_dict
from .ranges import PROXIMITY_CHARS, build_ranges
from .segmenting import TextSegment, combine_styles, segment_text

logger = logging.getLogger(__name__)


@dataclass
class RenderedVerse:
    ref: VerseRef
    text: str
    segments: list[TextSegment] = field(default_factory=list)
    symbols_before: list[SymbolAnnotation] = field(default_factory=list)
    symbols_after: list[SymbolAnnotation] = field(default_factory=list)

    def to_payload(self) -> JSONDict:
        segments: list[dict[str, object]] = []
        for segment in self.segments:
            style = combine_styles(segment.annotations)
            segments.append(
                {
                    "start": segment.start,
                    "end": segment.end,
                    "text": segment.text,
                    "annotations": [annotation_to_dict(annotation) for annotation in segment.annotations],
                    "symbols": [annotation_to_dict(symbol) for symbol in segment.symbols],
                    "style": style.css(),
                }
            )
        return cast_json(
            {
                "ref": ref_to_dict(self.ref),
                "label": self.ref.label,
                "text": self.text,
                "segments": segments,
                "symbols_before": [annotation_to_dict(symbol) for symbol in self.symbols_before],
                "symbols_after": [annotation_to_dict(symbol) for symbol in self.symbols_after],
            }
        )


def verse_annotations(annotations: Iterable[Annotation], ref: VerseRef) -> list[Annotation]:
    """Select the annotations whose verse span includes ``ref``."""
    return [annotation for annotation in annotations if annotation.touches(ref)]


def render_verse(
    verse: Verse,
    persisted: Sequence[Annotation],
    virtual: Sequence[Annotation] = (),
    proximity: int = PROXIMITY_CHARS,
) -> RenderedVerse:
    """
    Run the full render pass for one verse.

    Args:
        verse: Verse reference and canonical text
        persisted: Stored annotations; those not touching the verse are ignored
        virtual: Keyword-derived annotations for the verse
        proximity: Proximity fallback passed to the range builder

    Returns:
        Tiled segments plus the verse-level decorations rendered outside the text
    """
    merged = merge_annotations(
        verse.text,
        verse_annotations(persisted, verse.ref),
        verse_annotations(virtual, verse.ref),
    )
    symbols_before: list[SymbolAnnotation] = []
    symbols_after: list[SymbolAnnotation] = []
    inline: list[Annotation] = []
    for annotation in merged:
        if isinstance(annotation, SymbolAnnotation) and not annotation.is_inline:
            if annotation.position == "after":
                symbols_after.append(annotation)
            else:
                symbols_before.append(annotation)
            continue
        inline.append(annotation)

    ranges = build_ranges(verse.text, inline, ref=verse.ref, proximity=proximity)
    segments = segment_text(verse.text, ranges)
    logger.debug("Rendered %s: %d annotations, %d ranges, %d segments", verse.ref.label, len(merged), len(ranges), len(segments))
    return RenderedVerse(
        ref=verse.ref,
        text=verse.text,
        segments=segments,
        symbols_before=symbols_before,
        symbols_after=symbols_after,
    )

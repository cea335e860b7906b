"""Combine persisted annotations with virtual keyword annotations for one verse."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .model import Annotation
from .words import CharRange, resolve_char_range

logger = logging.getLogger(__name__)


def merge_annotations(
    verse_text: str,
    persisted: Sequence[Annotation],
    virtual: Sequence[Annotation],
) -> list[Annotation]:
    """
    Merge persisted and virtual annotations, dropping superseded duplicates.

    A persisted annotation is superseded when a preset-bearing virtual
    annotation overlaps it: either the same preset re-derived it, or it is a
    legacy copy saved before preset matching existed. A virtual annotation
    without a preset id yields to any surviving persisted annotation it
    overlaps. Annotations without a resolvable range in this verse are kept.

    Args:
        verse_text: Canonical verse text used to resolve word-index coordinates
        persisted: Stored annotations touching the verse
        virtual: Annotations computed from keyword presets

    Returns:
        Surviving persisted annotations followed by surviving virtual ones
    """
    virtual_spans = [(annotation, _span(annotation, verse_text)) for annotation in virtual]
    persisted_spans = [(annotation, _span(annotation, verse_text)) for annotation in persisted]

    surviving_persisted: list[tuple[Annotation, CharRange | None]] = []
    for annotation, span in persisted_spans:
        superseded_by = next(
            (
                other
                for other, other_span in virtual_spans
                if other.preset_id and _overlap(span, other_span)
            ),
            None,
        )
        if superseded_by is not None:
            logger.debug("Persisted %s superseded by virtual %s", annotation.annotation_id, superseded_by.annotation_id)
            continue
        surviving_persisted.append((annotation, span))

    surviving_virtual: list[Annotation] = []
    for annotation, span in virtual_spans:
        if not annotation.preset_id and any(_overlap(span, other_span) for _, other_span in surviving_persisted):
            logger.debug("Virtual %s yields to a persisted annotation", annotation.annotation_id)
            continue
        surviving_virtual.append(annotation)

    return [annotation for annotation, _ in surviving_persisted] + surviving_virtual


def _span(annotation: Annotation, verse_text: str) -> CharRange | None:
    if not annotation.is_single_verse:
        return None
    return resolve_char_range(annotation.coordinates(), verse_text)


def _overlap(first: CharRange | None, second: CharRange | None) -> bool:
    if first is None or second is None:
        return False
    return first.overlaps(second)

"""Service for creating and removing annotations from user selections."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from ..model import (
    HIGHLIGHT_COLORS,
    SYMBOL_PLACEMENTS,
    SYMBOL_POSITIONS,
    SYMBOLS,
    TEXT_KINDS,
    UNDERLINE_STYLES,
    SymbolAnnotation,
    TextAnnotation,
    Verse,
    VerseRef,
)
from ..selection import Selection, resolve_selection
from ..store import StudyStore
from ..words import CharRange

logger = logging.getLogger(__name__)


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class AnnotationEditor:
    """Turns resolved selections into persisted annotations."""

    def __init__(self, store: StudyStore, module_id: str) -> None:
        self.store: StudyStore = store
        self.module_id: str = module_id

    def create_text_annotation(
        self,
        verse: Verse,
        selection: Selection,
        kind: str,
        color: str,
        underline_style: str | None = None,
    ) -> TextAnnotation | None:
        """
        Create a highlight, text color or underline over a single-verse selection.

        Args:
            verse: Verse the selection was made in
            selection: Selected text with its position hint
            kind: One of ``TEXT_KINDS``
            color: Key of ``HIGHLIGHT_COLORS``
            underline_style: Style for underlines; defaults to solid when rendered

        Returns:
            The stored annotation, or None when the selection cannot be located

        Raises:
            ValueError: If the kind, color or underline style is unknown
        """
        _validate_text_style(kind, color, underline_style)
        word_range = resolve_selection(selection, self.store.annotations_for_verse(verse.ref), verse.ref)
        if word_range is None:
            logger.warning("Could not locate %r in %s; nothing created.", selection.selected_text, verse.ref.label)
            return None
        now = timestamp()
        annotation = TextAnnotation(
            annotation_id=uuid.uuid4().hex,
            module_id=self.module_id,
            kind=kind,
            start_ref=verse.ref,
            end_ref=verse.ref,
            color=color,
            start_word_index=word_range.start,
            end_word_index=word_range.end,
            selected_text=selection.selected_text,
            underline_style=underline_style if kind == "underline" else None,
            created_at=now,
            updated_at=now,
        )
        self.store.save_annotation(annotation)
        return annotation

    def create_span_annotation(
        self,
        start_ref: VerseRef,
        end_ref: VerseRef,
        span: CharRange,
        kind: str,
        color: str,
        selected_text: str | None = None,
        underline_style: str | None = None,
    ) -> TextAnnotation:
        """Create a cross-verse annotation from raw character offsets, without word resolution."""
        _validate_text_style(kind, color, underline_style)
        if not start_ref.same_chapter(end_ref) or end_ref.verse < start_ref.verse:
            raise ValueError(f"Invalid verse span {start_ref.label} to {end_ref.label}.")
        now = timestamp()
        annotation = TextAnnotation(
            annotation_id=uuid.uuid4().hex,
            module_id=self.module_id,
            kind=kind,
            start_ref=start_ref,
            end_ref=end_ref,
            color=color,
            start_offset=span.start,
            end_offset=span.end,
            selected_text=selected_text,
            underline_style=underline_style if kind == "underline" else None,
            created_at=now,
            updated_at=now,
        )
        self.store.save_annotation(annotation)
        return annotation

    def create_symbol_annotation(
        self,
        verse: Verse,
        symbol: str,
        selection: Selection | None = None,
        position: str = "center",
        color: str | None = None,
        placement: str | None = None,
    ) -> SymbolAnnotation | None:
        """
        Place a symbol on a word range, or before/after the whole verse.

        Without a selection the symbol becomes a verse-level decoration, which
        requires a ``before`` or ``after`` position.
        """
        if symbol not in SYMBOLS:
            raise ValueError(f"Unknown symbol '{symbol}'.")
        if position not in SYMBOL_POSITIONS:
            raise ValueError(f"Invalid symbol position '{position}'.")
        if color is not None and color not in HIGHLIGHT_COLORS:
            raise ValueError(f"Unknown color '{color}'.")
        if placement is not None and placement not in SYMBOL_PLACEMENTS:
            raise ValueError(f"Invalid symbol placement '{placement}'.")

        now = timestamp()
        annotation = SymbolAnnotation(
            annotation_id=uuid.uuid4().hex,
            module_id=self.module_id,
            ref=verse.ref,
            symbol=symbol,
            position=position,
            color=color,
            placement=placement,
            created_at=now,
            updated_at=now,
        )
        if selection is None:
            if position == "center":
                raise ValueError("Center symbols need a selection.")
            self.store.save_annotation(annotation)
            return annotation

        word_range = resolve_selection(selection, self.store.annotations_for_verse(verse.ref), verse.ref)
        if word_range is None:
            logger.warning("Could not locate %r in %s; symbol not placed.", selection.selected_text, verse.ref.label)
            return None
        annotation.word_index = word_range.start
        annotation.start_word_index = word_range.start
        annotation.end_word_index = word_range.end
        annotation.selected_text = selection.selected_text
        self.store.save_annotation(annotation)
        return annotation

    def remove_annotation(self, annotation_id: str) -> bool:
        removed = self.store.delete_annotation(annotation_id)
        if not removed:
            logger.info("Annotation %s was not stored; nothing removed.", annotation_id)
        return removed


def _validate_text_style(kind: str, color: str, underline_style: str | None) -> None:
    if kind not in TEXT_KINDS:
        raise ValueError(f"Unknown annotation type '{kind}'.")
    if color not in HIGHLIGHT_COLORS:
        raise ValueError(f"Unknown color '{color}'.")
    if underline_style is not None and underline_style not in UNDERLINE_STYLES:
        raise ValueError(f"Invalid underline style '{underline_style}'.")

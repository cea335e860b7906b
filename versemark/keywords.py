"""Keyword-preset matching that produces virtual (non-persisted) annotations."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from .model import Annotation, MarkingPreset, SymbolAnnotation, TextAnnotation, Variant, VerseRef
from .words import CharRange, normalize_word, tokenize

logger = logging.getLogger(__name__)

# Apostrophes stay attached so possessives such as "God's" keep their tail.
_LEADING_PUNCT_RE = re.compile(r"^[^\w']*")
_TRAILING_PUNCT_RE = re.compile(r"[^\w']*$")


@dataclass(frozen=True)
class PhraseMatch:
    start: int
    end: int
    matched_text: str


def recompute_virtual_annotations(
    verse_text: str,
    ref: VerseRef,
    presets: Sequence[MarkingPreset],
    module_id: str | None = None,
) -> list[Annotation]:
    """
    Compute the virtual annotations every applicable preset contributes to a verse.

    Args:
        verse_text: Canonical plain text of the verse
        ref: Reference of the verse
        presets: Active keyword presets
        module_id: Translation being rendered, checked against preset module scope

    Returns:
        Virtual text and symbol annotations with deterministic ids
    """
    annotations: list[Annotation] = []
    if not verse_text or not presets:
        return annotations

    applicable = [preset for preset in presets if _preset_applies(preset, ref, module_id)]
    if not applicable:
        return annotations

    phrases: list[tuple[MarkingPreset, str, int]] = []
    for preset in applicable:
        for phrase in _matchable_phrases(preset, ref):
            phrases.append((preset, phrase, len(_phrase_words(phrase))))
    phrases.sort(key=lambda item: (-item[2], -len(item[1])))

    matched_by_preset: dict[str, list[CharRange]] = {}
    for preset, phrase, _ in phrases:
        claimed = matched_by_preset.setdefault(preset.preset_id, [])
        for match in find_phrase_matches(verse_text, phrase):
            span = CharRange(match.start, match.end)
            if any(span.overlaps(existing) for existing in claimed):
                logger.debug("Skipping %r at %d-%d for preset %s: overlap", phrase, match.start, match.end, preset.preset_id)
                continue
            claimed.append(span)
            annotations.extend(_annotations_for_match(preset, ref, match))
    return annotations


def find_phrase_matches(text: str, phrase: str) -> list[PhraseMatch]:
    """Locate every occurrence of ``phrase`` in ``text`` by normalized word comparison."""
    wanted = _phrase_words(phrase)
    if not wanted:
        return []
    words = tokenize(text)
    matches: list[PhraseMatch] = []
    index = 0
    while index <= len(words) - len(wanted):
        window = words[index : index + len(wanted)]
        if [normalize_word(word.text) for word in window] != wanted:
            index += 1
            continue
        first, last = window[0], window[-1]
        raw = text[first.start_offset : last.end_offset]
        leading = len(_LEADING_PUNCT_RE.match(raw).group(0))  # pyright: ignore[reportOptionalMemberAccess]
        trailing = len(_TRAILING_PUNCT_RE.search(raw).group(0))  # pyright: ignore[reportOptionalMemberAccess]
        start = first.start_offset + leading
        end = last.end_offset - trailing
        if end > start:
            matches.append(PhraseMatch(start=start, end=end, matched_text=text[start:end]))
        index += len(wanted) if len(wanted) > 1 else 1
    return matches


def _phrase_words(phrase: str) -> list[str]:
    return [normalize_word(token) for token in normalize_word(phrase.strip()).split()]


def _scope_applies(book_scope: str | None, chapter_scope: int | None, ref: VerseRef) -> bool:
    if not book_scope:
        return True
    if book_scope != ref.book:
        return False
    return chapter_scope is None or chapter_scope == ref.chapter


def _preset_applies(preset: MarkingPreset, ref: VerseRef, module_id: str | None) -> bool:
    if not preset.word or (preset.highlight is None and preset.symbol is None):
        return False
    if not _scope_applies(preset.book_scope, preset.chapter_scope, ref):
        return False
    return not preset.module_scope or preset.module_scope == module_id


def _matchable_phrases(preset: MarkingPreset, ref: VerseRef) -> list[str]:
    if not preset.word:
        return []
    phrases = [preset.word]
    for variant in preset.variants:
        if _variant_applies(variant, ref):
            phrases.append(variant.text)
    return sorted(phrases, key=lambda text: (-len(text), text.lower()))


def _variant_applies(variant: Variant, ref: VerseRef) -> bool:
    return _scope_applies(variant.book_scope, variant.chapter_scope, ref)


def _annotations_for_match(preset: MarkingPreset, ref: VerseRef, match: PhraseMatch) -> list[Annotation]:
    base_id = f"virtual-{preset.preset_id}-{ref.book}-{ref.chapter}-{ref.verse}-{match.start}"
    created: list[Annotation] = []
    if preset.highlight is not None:
        created.append(
            TextAnnotation(
                annotation_id=f"{base_id}-highlight",
                module_id="",
                kind=preset.highlight.style,
                start_ref=ref,
                end_ref=ref,
                color=preset.highlight.color,
                start_offset=match.start,
                end_offset=match.end,
                selected_text=match.matched_text,
                preset_id=preset.preset_id,
            )
        )
    if preset.symbol is not None:
        created.append(
            SymbolAnnotation(
                annotation_id=f"{base_id}-symbol",
                module_id="",
                ref=ref,
                symbol=preset.symbol,
                position="before",
                color=preset.highlight.color if preset.highlight is not None else None,
                start_offset=match.start,
                end_offset=match.end,
                selected_text=match.matched_text,
                preset_id=preset.preset_id,
            )
        )
    return created

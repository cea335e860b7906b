"""Service that renders stored verses, memoizing keyword matches."""

from __future__ import annotations

import hashlib
import json
import logging

from ..keywords import recompute_virtual_annotations
from ..model import Annotation, MarkingPreset, Verse, preset_to_dict
from ..pipeline import RenderedVerse, render_verse
from ..store import StudyStore

logger = logging.getLogger(__name__)


class VerseRenderer:
    """
    Renders verses against the study's stored annotations.

    Virtual annotations are cached per verse reference, together with a
    digest of the verse text, the translation and the active preset set. A
    changed digest replaces the verse's entry. Persisted annotations are read
    on every call.
    """

    def __init__(self, store: StudyStore, module_id: str) -> None:
        self.store: StudyStore = store
        self.module_id: str = module_id
        self._virtual_cache: dict[str, tuple[str, list[Annotation]]] = {}

    def render(self, verse: Verse) -> RenderedVerse:
        persisted = self.store.annotations_for_verse(verse.ref)
        return render_verse(verse, persisted, self.virtual_annotations(verse))

    def virtual_annotations(self, verse: Verse, presets: list[MarkingPreset] | None = None) -> list[Annotation]:
        active = self.store.load_presets() if presets is None else presets
        key = self.cache_key(verse, active)
        cached = self._virtual_cache.get(verse.ref.label)
        if cached is not None and cached[0] == key:
            return cached[1]
        logger.debug("Recomputing keyword matches for %s", verse.ref.label)
        computed = recompute_virtual_annotations(verse.text, verse.ref, active, module_id=self.module_id)
        self._virtual_cache[verse.ref.label] = (key, computed)
        return computed

    def cache_key(self, verse: Verse, presets: list[MarkingPreset]) -> str:
        payload = {
            "text": verse.text,
            "ref": verse.ref.label,
            "module_id": self.module_id,
            "presets": [preset_to_dict(preset) for preset in presets],
        }
        return hashlib.sha1(json.dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()

    @property
    def cached_verses(self) -> int:
        return len(self._virtual_cache)

    def invalidate(self) -> None:
        self._virtual_cache.clear()

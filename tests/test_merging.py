from __future__ import annotations

import itertools
import unittest

from versemark.keywords import recompute_virtual_annotations
from versemark.merging import merge_annotations
from versemark.model import Annotation, MarkingPreset, PresetHighlight, SymbolAnnotation, TextAnnotation, VerseRef
from versemark.ranges import build_ranges

GENESIS = "In the beginning God created the heavens and the earth."
GEN_1_1 = VerseRef("Gen", 1, 1)


def _persisted(annotation_id: str, word: int, preset_id: str | None = None) -> TextAnnotation:
    return TextAnnotation(
        annotation_id=annotation_id,
        module_id="KJV",
        kind="highlight",
        start_ref=GEN_1_1,
        end_ref=GEN_1_1,
        color="green",
        start_word_index=word,
        end_word_index=word,
        preset_id=preset_id,
    )


def _virtual(annotation_id: str, start: int, end: int, preset_id: str | None) -> SymbolAnnotation:
    return SymbolAnnotation(
        annotation_id=annotation_id,
        module_id="",
        ref=GEN_1_1,
        symbol="cross",
        position="before",
        start_offset=start,
        end_offset=end,
        preset_id=preset_id,
    )


def _ids(annotations: list[Annotation]) -> list[str]:
    return [annotation.annotation_id for annotation in annotations]


class MergeAnnotationsTests(unittest.TestCase):
    def test_preset_match_replaces_legacy_persisted_copy(self) -> None:
        preset = MarkingPreset(preset_id="p-god", word="God", highlight=PresetHighlight("highlight", "yellow"))
        virtual = recompute_virtual_annotations(GENESIS, GEN_1_1, [preset])
        persisted = [_persisted("legacy", 3)]

        merged = merge_annotations(GENESIS, persisted, virtual)
        self.assertEqual(_ids(merged), ["virtual-p-god-Gen-1-1-17-highlight"])

        ranges = build_ranges(GENESIS, merged, GEN_1_1)
        self.assertEqual(len(ranges), 1)
        self.assertEqual(_ids(list(ranges[0].text_annotations)), ["virtual-p-god-Gen-1-1-17-highlight"])

    def test_same_preset_persisted_copy_is_superseded(self) -> None:
        merged = merge_annotations(GENESIS, [_persisted("stale", 3, "p-god")], [_virtual("v", 17, 20, "p-god")])
        self.assertEqual(_ids(merged), ["v"])

    def test_different_preset_persisted_copy_is_superseded(self) -> None:
        merged = merge_annotations(GENESIS, [_persisted("other", 3, "p-other")], [_virtual("v", 17, 20, "p-god")])
        self.assertEqual(_ids(merged), ["v"])

    def test_virtual_without_preset_yields_to_persisted(self) -> None:
        merged = merge_annotations(GENESIS, [_persisted("mine", 3)], [_virtual("v", 17, 20, None)])
        self.assertEqual(_ids(merged), ["mine"])

    def test_non_overlapping_annotations_all_survive(self) -> None:
        merged = merge_annotations(GENESIS, [_persisted("first", 0)], [_virtual("v", 17, 20, "p-god")])
        self.assertEqual(_ids(merged), ["first", "v"])

    def test_cross_verse_and_unresolvable_pass_through(self) -> None:
        cross = TextAnnotation(
            annotation_id="cross",
            module_id="KJV",
            kind="underline",
            start_ref=GEN_1_1,
            end_ref=VerseRef("Gen", 1, 2),
            color="blue",
            start_offset=17,
            end_offset=20,
        )
        stale = _persisted("stale", 42)
        merged = merge_annotations(GENESIS, [cross, stale], [_virtual("v", 17, 20, "p-god")])
        self.assertEqual(_ids(merged), ["cross", "stale", "v"])

    def test_result_does_not_depend_on_input_order(self) -> None:
        persisted: list[Annotation] = [_persisted("a", 3), _persisted("b", 0, "p-in"), _persisted("c", 9)]
        virtual: list[Annotation] = [
            _virtual("v1", 17, 20, "p-god"),
            _virtual("v2", 0, 2, None),
            _virtual("v3", 49, 54, None),
        ]
        expected = set(_ids(merge_annotations(GENESIS, persisted, virtual)))
        self.assertEqual(expected, {"b", "c", "v1"})
        for persisted_order in itertools.permutations(persisted):
            for virtual_order in itertools.permutations(virtual):
                merged = merge_annotations(GENESIS, list(persisted_order), list(virtual_order))
                self.assertEqual(set(_ids(merged)), expected)


if __name__ == "__main__":
    _ = unittest.main()

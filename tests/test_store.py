from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from typing import override
from unittest.mock import patch

from versemark.model import (
    MarkingPreset,
    Note,
    PresetHighlight,
    SectionHeading,
    SymbolAnnotation,
    TextAnnotation,
    Variant,
    Verse,
    VerseRef,
)
from versemark.store import StudyManifest, StudyStore, list_studies, slugify, study_id_for_name

GEN_1_1 = VerseRef("Gen", 1, 1)


def _highlight(annotation_id: str, ref: VerseRef = GEN_1_1, end_ref: VerseRef | None = None) -> TextAnnotation:
    return TextAnnotation(
        annotation_id=annotation_id,
        module_id="KJV",
        kind="highlight",
        start_ref=ref,
        end_ref=end_ref or ref,
        color="yellow",
        start_word_index=3,
        end_word_index=3,
        selected_text="God",
        created_at="2024-01-01T00:00:00+00:00",
        updated_at="2024-01-01T00:00:00+00:00",
    )


class StudyUtilitiesTests(unittest.TestCase):
    def test_slugify_removes_invalid_characters(self) -> None:
        self.assertEqual(slugify("Hello, World!"), "hello-world")
        self.assertEqual(slugify("Romans 8"), "romans-8")

    def test_study_id_is_deterministic(self) -> None:
        first = study_id_for_name("Genesis Study")
        self.assertEqual(first, study_id_for_name("Genesis Study"))
        self.assertTrue(first.startswith("genesis-study-"))
        self.assertNotEqual(first, study_id_for_name("Exodus Study"))


class StudyStoreTests(unittest.TestCase):
    temp_dir: tempfile.TemporaryDirectory[str] | None = None
    data_root: Path | None = None

    @override
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.data_root = Path(self.temp_dir.name) / "data"
        self.data_root.mkdir(parents=True, exist_ok=True)
        patcher = patch("versemark.store.get_data_root", return_value=self.data_root)
        self.addCleanup(patcher.stop)
        _ = patcher.start()

    def test_manifest_round_trip(self) -> None:
        store = StudyStore("study-1")
        self.assertIsNone(store.load_manifest())
        manifest = StudyManifest(study_id="study-1", name="Genesis", module_id="KJV")
        store.write_manifest(manifest)
        self.assertEqual(store.load_manifest(), manifest)

    def test_annotations_round_trip(self) -> None:
        store = StudyStore("study-2")
        symbol = SymbolAnnotation(
            annotation_id="s1",
            module_id="KJV",
            ref=GEN_1_1,
            symbol="dove",
            color="blue",
            word_index=3,
            start_word_index=3,
            end_word_index=3,
        )
        annotations = [_highlight("h1"), symbol]
        store.write_annotations(annotations)
        self.assertEqual(store.load_annotations(), annotations)

    def test_save_annotation_upserts_by_id(self) -> None:
        store = StudyStore("study-3")
        store.save_annotation(_highlight("h1"))
        updated = _highlight("h1")
        updated.color = "red"
        store.save_annotation(updated)
        store.save_annotation(_highlight("h2"))
        loaded = store.load_annotations()
        self.assertEqual([item.annotation_id for item in loaded], ["h1", "h2"])
        self.assertEqual(loaded[0].color, "red")

    def test_delete_annotation(self) -> None:
        store = StudyStore("study-4")
        store.save_annotation(_highlight("h1"))
        self.assertTrue(store.delete_annotation("h1"))
        self.assertFalse(store.delete_annotation("h1"))
        self.assertEqual(store.load_annotations(), [])

    def test_annotations_for_chapter_and_verse(self) -> None:
        store = StudyStore("study-5")
        store.write_annotations(
            [
                _highlight("gen1", GEN_1_1),
                _highlight("gen1-span", VerseRef("Gen", 1, 1), VerseRef("Gen", 1, 3)),
                _highlight("gen2", VerseRef("Gen", 2, 1)),
                SymbolAnnotation(annotation_id="sym", module_id="KJV", ref=VerseRef("Gen", 1, 2), symbol="star", position="after"),
            ]
        )
        chapter = store.annotations_for_chapter("Gen", 1)
        self.assertEqual([item.annotation_id for item in chapter], ["gen1", "gen1-span", "sym"])
        verse_two = store.annotations_for_verse(VerseRef("Gen", 1, 2))
        self.assertEqual([item.annotation_id for item in verse_two], ["gen1-span", "sym"])

    def test_presets_round_trip(self) -> None:
        store = StudyStore("study-6")
        presets = [
            MarkingPreset(
                preset_id="p-god",
                word="God",
                variants=[Variant("LORD God", book_scope="Gen")],
                symbol="triangle",
                highlight=PresetHighlight("highlight", "purple"),
                category="identity",
            )
        ]
        store.write_presets(presets)
        self.assertEqual(store.load_presets(), presets)

    def test_notes_and_headings_round_trip(self) -> None:
        store = StudyStore("study-7")
        notes = [Note(note_id="n1", module_id="KJV", ref=GEN_1_1, content="Creation", range_end=VerseRef("Gen", 1, 5))]
        headings = [SectionHeading(heading_id="h1", module_id="KJV", before_ref=GEN_1_1, title="The Creation")]
        store.write_notes(notes)
        store.write_headings(headings)
        self.assertEqual(store.load_notes(), notes)
        self.assertEqual(store.load_headings(), headings)

    def test_verse_text_cache(self) -> None:
        store = StudyStore("study-8")
        self.assertIsNone(store.load_verse(GEN_1_1))
        verse = Verse(GEN_1_1, "In the beginning God created the heaven and the earth.")
        store.save_verse(verse)
        self.assertEqual(store.load_verse(GEN_1_1), verse)
        self.assertEqual(store.load_verses(), {"Gen 1:1": verse.text})

    def test_invalid_data_raises_value_error(self) -> None:
        store = StudyStore("study-9")
        _ = store.annotations_path.write_text(json.dumps({"not": "a list"}), encoding="utf-8")
        with self.assertRaises(ValueError):
            _ = store.load_annotations()
        _ = store.annotations_path.write_text(json.dumps([{"type": "highlight", "annotation_id": "x"}]), encoding="utf-8")
        with self.assertRaises(ValueError):
            _ = store.load_annotations()
        _ = store.meta_path.write_text(json.dumps([]), encoding="utf-8")
        with self.assertRaises(ValueError):
            _ = store.load_manifest()

    def test_list_studies_skips_broken_manifests(self) -> None:
        StudyStore("b-study").write_manifest(StudyManifest(study_id="b-study", name="B", module_id="ESV"))
        StudyStore("a-study").write_manifest(StudyManifest(study_id="a-study", name="A", module_id="KJV"))
        broken = StudyStore("broken")
        _ = broken.meta_path.write_text("{not json", encoding="utf-8")
        self.assertEqual([manifest.study_id for manifest in list_studies()], ["a-study", "b-study"])


if __name__ == "__main__":
    _ = unittest.main()

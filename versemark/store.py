"""Study persistence: annotations, presets, notes and headings on disk."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import cast

from .config import get_data_root
from .model import (
    Annotation,
    JSONValue,
    MarkingPreset,
    Note,
    SectionHeading,
    SymbolAnnotation,
    Verse,
    VerseRef,
    annotation_from_dict,
    annotation_to_dict,
    heading_from_dict,
    heading_to_dict,
    note_from_dict,
    note_to_dict,
    preset_from_dict,
    preset_to_dict,
)


def slugify(name: str) -> str:
    normalized = "".join(ch if ch.isalnum() or ch in "-_" else "-" for ch in name.lower())
    return "-".join(filter(None, normalized.split("-")))


def study_id_for_name(name: str) -> str:
    slug = slugify(name)
    digest = hashlib.sha1(name.strip().encode("utf-8")).hexdigest()[:8]
    return f"{slug}-{digest}" if slug else digest


@dataclass
class StudyManifest:
    study_id: str
    name: str
    module_id: str  # translation the study's annotations belong to


class StudyStore:
    """Coordinates persistence to the on-disk study directory."""

    study_id: str
    root: Path
    meta_path: Path
    annotations_path: Path
    presets_path: Path
    notes_path: Path
    headings_path: Path
    verses_path: Path

    def __init__(self, study_id: str) -> None:
        self.study_id = study_id
        self.root = get_data_root() / study_id
        self.root.mkdir(parents=True, exist_ok=True)
        self.meta_path = self.root / "manifest.json"
        self.annotations_path = self.root / "annotations.json"
        self.presets_path = self.root / "presets.json"
        self.notes_path = self.root / "notes.json"
        self.headings_path = self.root / "headings.json"
        self.verses_path = self.root / "verses.json"

    def write_manifest(self, manifest: StudyManifest) -> None:
        with self.meta_path.open("w", encoding="utf-8") as fh:
            json.dump(manifest.__dict__, fh, indent=2)

    def load_manifest(self) -> StudyManifest | None:
        if not self.meta_path.exists():
            return None
        raw_value = _read_json(self.meta_path)
        if not isinstance(raw_value, dict):
            raise ValueError("Invalid manifest format.")
        study_id = _require_str(raw_value.get("study_id"), "study_id")
        name_value = raw_value.get("name")
        module_value = raw_value.get("module_id")
        return StudyManifest(
            study_id=study_id,
            name=name_value if isinstance(name_value, str) else study_id,
            module_id=module_value if isinstance(module_value, str) else "",
        )

    # Annotations

    def load_annotations(self) -> list[Annotation]:
        return [annotation_from_dict(item) for item in self._read_list(self.annotations_path, "annotations")]

    def write_annotations(self, annotations: list[Annotation]) -> None:
        self._write_list(self.annotations_path, [annotation_to_dict(annotation) for annotation in annotations])

    def save_annotation(self, annotation: Annotation) -> None:
        """Insert the annotation, replacing any stored one with the same id."""
        annotations = [item for item in self.load_annotations() if item.annotation_id != annotation.annotation_id]
        annotations.append(annotation)
        self.write_annotations(annotations)

    def delete_annotation(self, annotation_id: str) -> bool:
        annotations = self.load_annotations()
        remaining = [item for item in annotations if item.annotation_id != annotation_id]
        if len(remaining) == len(annotations):
            return False
        self.write_annotations(remaining)
        return True

    def annotations_for_chapter(self, book: str, chapter: int) -> list[Annotation]:
        anchor = VerseRef(book, chapter, 0)
        result: list[Annotation] = []
        for annotation in self.load_annotations():
            ref = annotation.ref if isinstance(annotation, SymbolAnnotation) else annotation.start_ref
            if ref.same_chapter(anchor):
                result.append(annotation)
        return result

    def annotations_for_verse(self, ref: VerseRef) -> list[Annotation]:
        return [annotation for annotation in self.load_annotations() if annotation.touches(ref)]

    # Presets

    def load_presets(self) -> list[MarkingPreset]:
        return [preset_from_dict(item) for item in self._read_list(self.presets_path, "presets")]

    def write_presets(self, presets: list[MarkingPreset]) -> None:
        self._write_list(self.presets_path, [preset_to_dict(preset) for preset in presets])

    # Notes and headings

    def load_notes(self) -> list[Note]:
        return [note_from_dict(item) for item in self._read_list(self.notes_path, "notes")]

    def write_notes(self, notes: list[Note]) -> None:
        self._write_list(self.notes_path, [note_to_dict(note) for note in notes])

    def load_headings(self) -> list[SectionHeading]:
        return [heading_from_dict(item) for item in self._read_list(self.headings_path, "headings")]

    def write_headings(self, headings: list[SectionHeading]) -> None:
        self._write_list(self.headings_path, [heading_to_dict(heading) for heading in headings])

    # Verse text cache

    def load_verses(self) -> dict[str, str]:
        if not self.verses_path.exists():
            return {}
        raw_value = _read_json(self.verses_path)
        if not isinstance(raw_value, dict):
            raise ValueError("Invalid verses data.")
        return {key: value for key, value in raw_value.items() if isinstance(value, str)}

    def save_verse(self, verse: Verse) -> None:
        verses = self.load_verses()
        verses[verse.ref.label] = verse.text
        with self.verses_path.open("w", encoding="utf-8") as fh:
            json.dump(verses, fh, indent=2, ensure_ascii=False)

    def load_verse(self, ref: VerseRef) -> Verse | None:
        text = self.load_verses().get(ref.label)
        return None if text is None else Verse(ref, text)

    def _read_list(self, path: Path, label: str) -> list[dict[str, JSONValue]]:
        if not path.exists():
            return []
        raw_value = _read_json(path)
        if not isinstance(raw_value, list):
            raise ValueError(f"Invalid {label} data.")
        items: list[dict[str, JSONValue]] = []
        for item in raw_value:
            if not isinstance(item, dict):
                raise ValueError(f"Invalid {label} entry encountered.")
            items.append(item)
        return items

    def _write_list(self, path: Path, payload: list[dict[str, JSONValue]]) -> None:
        with path.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, ensure_ascii=False)


def list_studies() -> list[StudyManifest]:
    manifests: list[StudyManifest] = []
    for manifest_path in get_data_root().glob("*/manifest.json"):
        try:
            manifest = StudyStore(manifest_path.parent.name).load_manifest()
        except (OSError, ValueError):
            continue
        if manifest is not None:
            manifests.append(manifest)
    return sorted(manifests, key=lambda m: m.study_id)


def _read_json(path: Path) -> JSONValue:
    return cast(JSONValue, json.loads(path.read_text(encoding="utf-8")))


def _require_str(value: JSONValue | None, field: str) -> str:
    if isinstance(value, str):
        return value
    raise ValueError(f"Manifest field '{field}' must be a string.")

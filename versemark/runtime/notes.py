"""Service for verse notes and section headings."""

from __future__ import annotations

import uuid

from ..model import Note, SectionHeading, VerseRef
from ..store import StudyStore
from .editor import timestamp


class NoteService:
    """Adds, edits and removes notes and section headings of a study."""

    def __init__(self, store: StudyStore, module_id: str) -> None:
        self.store: StudyStore = store
        self.module_id: str = module_id

    def add_note(self, ref: VerseRef, content: str, range_end: VerseRef | None = None) -> Note:
        if not content.strip():
            raise ValueError("Note content must not be empty.")
        now = timestamp()
        note = Note(
            note_id=uuid.uuid4().hex,
            module_id=self.module_id,
            ref=ref,
            content=content,
            range_end=range_end,
            created_at=now,
            updated_at=now,
        )
        notes = self.store.load_notes()
        notes.append(note)
        self.store.write_notes(notes)
        return note

    def update_note(self, note_id: str, content: str) -> Note:
        """
        Replace a note's content.

        Raises:
            KeyError: If no note has ``note_id``
            ValueError: If ``content`` is blank
        """
        if not content.strip():
            raise ValueError("Note content must not be empty.")
        notes = self.store.load_notes()
        for note in notes:
            if note.note_id == note_id:
                note.content = content
                note.updated_at = timestamp()
                self.store.write_notes(notes)
                return note
        raise KeyError(note_id)

    def remove_note(self, note_id: str) -> bool:
        notes = self.store.load_notes()
        remaining = [note for note in notes if note.note_id != note_id]
        if len(remaining) == len(notes):
            return False
        self.store.write_notes(remaining)
        return True

    def notes_for_chapter(self, book: str, chapter: int) -> list[Note]:
        notes = [note for note in self.store.load_notes() if note.ref.book == book and note.ref.chapter == chapter]
        return sorted(notes, key=lambda note: note.ref.verse)

    def add_heading(self, before_ref: VerseRef, title: str, covers_until: VerseRef | None = None) -> SectionHeading:
        if not title.strip():
            raise ValueError("Heading title must not be empty.")
        now = timestamp()
        heading = SectionHeading(
            heading_id=uuid.uuid4().hex,
            module_id=self.module_id,
            before_ref=before_ref,
            title=title.strip(),
            covers_until=covers_until,
            created_at=now,
            updated_at=now,
        )
        headings = self.store.load_headings()
        headings.append(heading)
        self.store.write_headings(headings)
        return heading

    def remove_heading(self, heading_id: str) -> bool:
        headings = self.store.load_headings()
        remaining = [heading for heading in headings if heading.heading_id != heading_id]
        if len(remaining) == len(headings):
            return False
        self.store.write_headings(remaining)
        return True

    def headings_for_chapter(self, book: str, chapter: int) -> list[SectionHeading]:
        headings = [
            heading
            for heading in self.store.load_headings()
            if heading.before_ref.book == book and heading.before_ref.chapter == chapter
        ]
        return sorted(headings, key=lambda heading: heading.before_ref.verse)

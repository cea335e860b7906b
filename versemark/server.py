"""Flask application factory for the Versemark study viewer."""

from __future__ import annotations

import logging
import os
import secrets
from html import escape
from typing import cast

from flask import Flask, abort, jsonify, request, session
from flask.typing import ResponseReturnValue

from .config import get_data_root
from .model import (
    Annotation,
    Verse,
    VerseRef,
    annotation_to_dict,
    heading_to_dict,
    note_to_dict,
)
from .rendering import render_verse_html
from .runtime import AnnotationEditor, NoteService, VerseRenderer
from .selection import Selection, resolve_selection
from .store import StudyStore, list_studies
from .words import CharRange, word_indices_to_char_offsets

logger = logging.getLogger(__name__)


def get_or_generate_secret_key() -> str:
    """
    Get secret key from environment or generate a new one.
    Warns if using the default development key.
    """
    env_secret = os.environ.get("VERSEMARK_WEB_SECRET")
    if env_secret:
        if env_secret == "versemark-dev":
            logger.warning(
                "Using default secret key 'versemark-dev'. " +
                "Set VERSEMARK_WEB_SECRET environment variable to a secure random value in production."
            )
        return env_secret

    secret_key = secrets.token_hex(32)
    logger.info("Generated new secret key for this session. Set VERSEMARK_WEB_SECRET to persist sessions across restarts.")
    return secret_key


def create_app(store: StudyStore) -> Flask:
    app = Flask(__name__)
    app.secret_key = get_or_generate_secret_key()
    default_study_id = store.study_id
    runtime_cache: dict[str, StudyRuntime] = {default_study_id: StudyRuntime(store)}

    def _payload_dict(raw: object, *, error_message: str) -> dict[str, object]:
        if not isinstance(raw, dict):
            abort(400, error_message)
        result: dict[str, object] = {}
        for key, value in cast(dict[object, object], raw).items():
            if isinstance(key, str):
                result[key] = value
        return result

    def _json_body() -> dict[str, object]:
        raw_json = cast(object, request.get_json(force=True, silent=True))
        return _payload_dict(raw_json, error_message="Invalid payload.")

    def _ref(value: object, field: str) -> VerseRef:
        if not isinstance(value, str):
            abort(400, f"{field} must be a verse reference string.")
        try:
            return VerseRef.parse(value)
        except ValueError as exc:
            abort(400, str(exc))

    def _optional_str(data: dict[str, object], field: str) -> str | None:
        value = data.get(field)
        if value is None:
            return None
        if not isinstance(value, str):
            abort(400, f"{field} must be a string.")
        return value

    def ensure_runtime(study_id: str) -> StudyRuntime:
        if not study_id:
            raise RuntimeError("Study identifier is required.")
        if study_id in runtime_cache:
            return runtime_cache[study_id]
        if not (get_data_root() / study_id / "manifest.json").exists():
            raise RuntimeError(f"Study '{study_id}' not found.")
        runtime_cache[study_id] = StudyRuntime(StudyStore(study_id))
        return runtime_cache[study_id]

    def current_runtime() -> StudyRuntime:
        session_value = session.get("study_id")
        study_id = session_value if isinstance(session_value, str) and session_value else default_study_id
        session["study_id"] = study_id
        try:
            runtime = ensure_runtime(study_id)
        except RuntimeError as exc:
            abort(400, str(exc))
        return runtime

    def verse_from(runtime: StudyRuntime, data: dict[str, object]) -> Verse:
        ref = _ref(data.get("ref"), "ref")
        text = _optional_str(data, "text")
        try:
            return runtime.verse(ref, text)
        except LookupError as exc:
            abort(400, str(exc))

    def selection_from(data: dict[str, object], verse: Verse) -> Selection:
        selected_text = _optional_str(data, "selected_text")
        if not selected_text:
            abort(400, "selected_text is required.")
        return Selection(
            selected_text=selected_text,
            canonical_text=verse.text,
            preceding_text=_optional_str(data, "preceding_text") or "",
        )

    @app.get("/")
    def index() -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        runtime = current_runtime()
        body = "\n".join(f"<p>{runtime.render_html(verse)}</p>" for verse in runtime.stored_verses())
        title = escape(runtime.name)
        return f'<!doctype html><html><head><meta charset="utf-8"><title>{title}</title></head><body>{body}</body></html>'

    @app.get("/api/study")
    def get_study() -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        runtime = current_runtime()
        return jsonify({"study_id": runtime.store.study_id, "name": runtime.name, "module_id": runtime.module_id})

    @app.get("/api/studies")
    def get_studies() -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        studies = [{"study_id": manifest.study_id, "name": manifest.name} for manifest in list_studies()]
        return jsonify({"studies": studies})

    @app.post("/api/study")
    def change_study() -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        data = _json_body()
        study_id = data.get("study_id")
        if not study_id:
            abort(400, "study_id is required.")
        if not isinstance(study_id, str):
            abort(400, "study_id must be a string.")
        try:
            runtime = ensure_runtime(study_id)
        except RuntimeError as exc:
            abort(400, str(exc))
        session["study_id"] = study_id
        return jsonify({"study_id": runtime.store.study_id, "name": runtime.name, "module_id": runtime.module_id})

    @app.get("/api/annotations")
    def get_annotations() -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        runtime = current_runtime()
        ref_arg = request.args.get("ref")
        book_arg = request.args.get("book")
        chapter_arg = request.args.get("chapter")
        annotations: list[Annotation]
        if ref_arg:
            annotations = runtime.store.annotations_for_verse(_ref(ref_arg, "ref"))
        elif book_arg and chapter_arg:
            if not chapter_arg.isdigit():
                abort(400, "chapter must be a number.")
            annotations = runtime.store.annotations_for_chapter(book_arg, int(chapter_arg))
        else:
            annotations = runtime.store.load_annotations()
        return jsonify({"annotations": [annotation_to_dict(annotation) for annotation in annotations]})

    @app.post("/api/resolve")
    def resolve() -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        runtime = current_runtime()
        data = _json_body()
        verse = verse_from(runtime, data)
        selection = selection_from(data, verse)
        word_range = resolve_selection(selection, runtime.store.annotations_for_verse(verse.ref), verse.ref)
        if word_range is None:
            abort(422, "Selection could not be located in the verse.")
        span = word_indices_to_char_offsets(verse.text, word_range.start, word_range.end)
        return jsonify(
            {
                "start_word_index": word_range.start,
                "end_word_index": word_range.end,
                "start_offset": span.start if span else None,
                "end_offset": span.end if span else None,
            }
        )

    @app.post("/api/annotations")
    def create_annotation() -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        runtime = current_runtime()
        data = _json_body()
        kind = _optional_str(data, "type")
        if not kind:
            abort(400, "type is required.")
        color = _optional_str(data, "color")
        underline_style = _optional_str(data, "underline_style")
        annotation: Annotation | None
        try:
            if kind == "symbol":
                verse = verse_from(runtime, data)
                symbol = _optional_str(data, "symbol")
                if not symbol:
                    abort(400, "symbol is required.")
                selection = selection_from(data, verse) if data.get("selected_text") else None
                annotation = runtime.editor.create_symbol_annotation(
                    verse,
                    symbol,
                    selection=selection,
                    position=_optional_str(data, "position") or "center",
                    color=color,
                    placement=_optional_str(data, "placement"),
                )
            elif data.get("end_ref") not in (None, data.get("ref")):
                start_offset = data.get("start_offset")
                end_offset = data.get("end_offset")
                if not isinstance(start_offset, int) or not isinstance(end_offset, int):
                    abort(400, "Cross-verse annotations need integer start_offset and end_offset.")
                annotation = runtime.editor.create_span_annotation(
                    _ref(data.get("ref"), "ref"),
                    _ref(data.get("end_ref"), "end_ref"),
                    CharRange(start_offset, end_offset),
                    kind,
                    color or "",
                    selected_text=_optional_str(data, "selected_text"),
                    underline_style=underline_style,
                )
            else:
                verse = verse_from(runtime, data)
                annotation = runtime.editor.create_text_annotation(
                    verse,
                    selection_from(data, verse),
                    kind,
                    color or "",
                    underline_style=underline_style,
                )
        except ValueError as exc:
            abort(400, str(exc))
        if annotation is None:
            abort(422, "Selection could not be located in the verse.")
        return jsonify(annotation_to_dict(annotation)), 201

    @app.delete("/api/annotations/<annotation_id>")
    def delete_annotation(annotation_id: str) -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        runtime = current_runtime()
        if not runtime.editor.remove_annotation(annotation_id):
            abort(404, f"Unknown annotation {annotation_id}")
        return jsonify({"deleted": annotation_id})

    @app.post("/api/render")
    def render() -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        runtime = current_runtime()
        data = _json_body()
        verse = verse_from(runtime, data)
        rendered = runtime.renderer.render(verse)
        payload = rendered.to_payload()
        payload["html"] = render_verse_html(rendered)
        return jsonify(payload)

    @app.get("/api/notes")
    def get_notes() -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        runtime = current_runtime()
        book, chapter = _chapter_args()
        notes = runtime.notes.notes_for_chapter(book, chapter) if book else runtime.store.load_notes()
        return jsonify({"notes": [note_to_dict(note) for note in notes]})

    @app.post("/api/notes")
    def create_note() -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        runtime = current_runtime()
        data = _json_body()
        ref = _ref(data.get("ref"), "ref")
        range_end_raw = data.get("range_end")
        range_end = None if range_end_raw is None else _ref(range_end_raw, "range_end")
        try:
            note = runtime.notes.add_note(ref, _optional_str(data, "content") or "", range_end=range_end)
        except ValueError as exc:
            abort(400, str(exc))
        return jsonify(note_to_dict(note)), 201

    @app.put("/api/notes/<note_id>")
    def update_note(note_id: str) -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        runtime = current_runtime()
        data = _json_body()
        try:
            note = runtime.notes.update_note(note_id, _optional_str(data, "content") or "")
        except KeyError:
            abort(404, f"Unknown note {note_id}")
        except ValueError as exc:
            abort(400, str(exc))
        return jsonify(note_to_dict(note))

    @app.delete("/api/notes/<note_id>")
    def delete_note(note_id: str) -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        runtime = current_runtime()
        if not runtime.notes.remove_note(note_id):
            abort(404, f"Unknown note {note_id}")
        return jsonify({"deleted": note_id})

    @app.get("/api/headings")
    def get_headings() -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        runtime = current_runtime()
        book, chapter = _chapter_args()
        headings = runtime.notes.headings_for_chapter(book, chapter) if book else runtime.store.load_headings()
        return jsonify({"headings": [heading_to_dict(heading) for heading in headings]})

    @app.post("/api/headings")
    def create_heading() -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        runtime = current_runtime()
        data = _json_body()
        before_ref = _ref(data.get("before_ref"), "before_ref")
        covers_raw = data.get("covers_until")
        covers_until = None if covers_raw is None else _ref(covers_raw, "covers_until")
        try:
            heading = runtime.notes.add_heading(before_ref, _optional_str(data, "title") or "", covers_until=covers_until)
        except ValueError as exc:
            abort(400, str(exc))
        return jsonify(heading_to_dict(heading)), 201

    @app.delete("/api/headings/<heading_id>")
    def delete_heading(heading_id: str) -> ResponseReturnValue:  # pyright: ignore[reportUnusedFunction]
        runtime = current_runtime()
        if not runtime.notes.remove_heading(heading_id):
            abort(404, f"Unknown heading {heading_id}")
        return jsonify({"deleted": heading_id})

    def _chapter_args() -> tuple[str, int]:
        book = request.args.get("book") or ""
        chapter_arg = request.args.get("chapter") or "0"
        if not chapter_arg.isdigit():
            abort(400, "chapter must be a number.")
        return book, int(chapter_arg)

    return app


def run_server(app: Flask, port: int = 8765) -> None:
    app.run(host="127.0.0.1", port=port, debug=False)


class StudyRuntime:
    """Facade coordinating the runtime services of one study."""

    def __init__(self, store: StudyStore) -> None:
        self.store: StudyStore = store
        manifest = store.load_manifest()
        self.name: str = manifest.name if manifest else store.study_id
        self.module_id: str = manifest.module_id if manifest else ""

        self.editor: AnnotationEditor = AnnotationEditor(store, self.module_id)
        self.renderer: VerseRenderer = VerseRenderer(store, self.module_id)
        self.notes: NoteService = NoteService(store, self.module_id)

    def verse(self, ref: VerseRef, text: str | None = None) -> Verse:
        """
        Return the verse for ``ref``, remembering ``text`` when supplied.

        Raises:
            LookupError: If no text was supplied and none is stored
        """
        if text is not None:
            verse = Verse(ref, text)
            self.store.save_verse(verse)
            return verse
        stored = self.store.load_verse(ref)
        if stored is None:
            raise LookupError(f"No text stored for {ref.label}; include 'text' in the request.")
        return stored

    def stored_verses(self) -> list[Verse]:
        verses: list[Verse] = []
        for label, text in self.store.load_verses().items():
            try:
                verses.append(Verse(VerseRef.parse(label), text))
            except ValueError:
                logger.warning("Skipping stored verse with invalid reference %r", label)
        return sorted(verses, key=lambda verse: (verse.ref.book, verse.ref.chapter, verse.ref.verse))

    def render_html(self, verse: Verse) -> str:
        return render_verse_html(self.renderer.render(verse))


"""Command-line interface for Versemark."""

from __future__ import annotations

import json
import logging
import shutil
import webbrowser
from pathlib import Path
from typing import Annotated, cast

import typer

from .config import get_data_root
from .model import JSONValue, MarkingPreset, VerseRef, preset_from_dict
from .rendering import render_verse_html
from .runtime import AnnotationEditor, VerseRenderer
from .selection import Selection
from .server import StudyRuntime, create_app, run_server
from .store import StudyManifest, StudyStore, list_studies, study_id_for_name

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Versemark Bible study annotations")


def _open_study(study_id: str) -> tuple[StudyStore, StudyManifest]:
    if not (get_data_root() / study_id / "manifest.json").exists():
        typer.echo(f"Study '{study_id}' not found.", err=True)
        raise typer.Exit(code=1)
    store = StudyStore(study_id)
    manifest = store.load_manifest()
    if manifest is None:
        typer.echo(f"Study '{study_id}' has no manifest.", err=True)
        raise typer.Exit(code=1)
    return store, manifest


def _parse_ref(value: str) -> VerseRef:
    try:
        return VerseRef.parse(value)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log engine decisions to stderr")] = False,
) -> None:
    """Mark up Bible verses with highlights, underlines and symbols."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")


@app.command()
def new(
    name: Annotated[str, typer.Argument(help="Display name of the study")],
    module: Annotated[str, typer.Option("--module", "-m", help="Translation the study annotates")] = "KJV",
) -> None:
    """Create a study."""
    study_id = study_id_for_name(name)
    store = StudyStore(study_id)
    if store.load_manifest() is not None:
        typer.echo(f"Study '{study_id}' already exists.", err=True)
        raise typer.Exit(code=1)
    store.write_manifest(StudyManifest(study_id=study_id, name=name, module_id=module))
    typer.echo(study_id)


@app.command("list")
def list_command() -> None:
    """List stored studies."""
    studies = list_studies()
    if not studies:
        typer.echo("No studies found.")
        return
    for manifest in studies:
        typer.echo(f"{manifest.study_id}\t{manifest.name}\t{manifest.module_id}")


@app.command()
def delete(
    study_id: Annotated[str, typer.Argument(help="Study to remove, or 'all'")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
) -> None:
    """Delete a study and everything stored with it."""
    if study_id.lower() == "all":
        studies = list_studies()
        if not studies:
            typer.echo("No stored studies found.")
            raise typer.Exit()
        if yes or typer.confirm(f"Delete all {len(studies)} study(ies)?", default=False):
            for manifest in studies:
                shutil.rmtree(get_data_root() / manifest.study_id)
                typer.echo(f"Deleted study '{manifest.study_id}'.")
        raise typer.Exit()

    study_root = get_data_root() / study_id
    if not study_root.exists():
        typer.echo(f"Study '{study_id}' not found.", err=True)
        raise typer.Exit(code=1)
    if yes or typer.confirm(f"Delete study '{study_id}'?", default=False):
        shutil.rmtree(study_root)
        typer.echo(f"Deleted study '{study_id}'.")


@app.command()
def mark(
    study_id: Annotated[str, typer.Argument(help="Study identifier")],
    ref: Annotated[str, typer.Argument(help="Verse reference such as 'Gen 1:1'")],
    selected: Annotated[str, typer.Argument(help="Selected words")],
    text: Annotated[str | None, typer.Option("--text", "-t", help="Verse text; remembered for later commands")] = None,
    kind: Annotated[str, typer.Option("--kind", "-k", help="highlight, textColor, underline or symbol")] = "highlight",
    color: Annotated[str | None, typer.Option("--color", "-c", help="Highlight color name")] = None,
    underline_style: Annotated[str | None, typer.Option("--underline-style", help="solid, dashed, dotted, double or wavy")] = None,
    symbol: Annotated[str | None, typer.Option("--symbol", "-s", help="Symbol key for --kind symbol")] = None,
    preceding: Annotated[str, typer.Option("--preceding", help="Text before the selection, used to pick among repeats")] = "",
) -> None:
    """Annotate a selection within a verse."""
    store, manifest = _open_study(study_id)
    runtime = StudyRuntime(store)
    try:
        verse = runtime.verse(_parse_ref(ref), text)
    except LookupError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    editor = AnnotationEditor(store, manifest.module_id)
    selection = Selection(selected_text=selected, canonical_text=verse.text, preceding_text=preceding)
    try:
        if kind == "symbol":
            if not symbol:
                typer.echo("--symbol is required for symbol annotations.", err=True)
                raise typer.Exit(code=1)
            annotation = editor.create_symbol_annotation(verse, symbol, selection=selection, color=color)
        else:
            annotation = editor.create_text_annotation(
                verse, selection, kind, color or "yellow", underline_style=underline_style
            )
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    if annotation is None:
        typer.echo(f"Could not find '{selected}' in {verse.ref.label}.", err=True)
        raise typer.Exit(code=1)
    typer.echo(annotation.annotation_id)


@app.command()
def unmark(
    study_id: Annotated[str, typer.Argument(help="Study identifier")],
    annotation_id: Annotated[str, typer.Argument(help="Annotation to remove")],
) -> None:
    """Remove an annotation."""
    store, manifest = _open_study(study_id)
    if not AnnotationEditor(store, manifest.module_id).remove_annotation(annotation_id):
        typer.echo(f"Annotation '{annotation_id}' not found.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Removed annotation '{annotation_id}'.")


@app.command()
def render(
    study_id: Annotated[str, typer.Argument(help="Study identifier")],
    ref: Annotated[str, typer.Argument(help="Verse reference such as 'Gen 1:1'")],
    text: Annotated[str | None, typer.Option("--text", "-t", help="Verse text; remembered for later commands")] = None,
    html: Annotated[bool, typer.Option("--html", help="Print HTML instead of JSON segments")] = False,
) -> None:
    """Render a verse with its annotations and keyword matches."""
    store, manifest = _open_study(study_id)
    try:
        verse = StudyRuntime(store).verse(_parse_ref(ref), text)
    except LookupError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    rendered = VerseRenderer(store, manifest.module_id).render(verse)
    if html:
        typer.echo(render_verse_html(rendered))
    else:
        typer.echo(json.dumps(rendered.to_payload(), indent=2, ensure_ascii=False))


@app.command("import-presets")
def import_presets(
    study_id: Annotated[str, typer.Argument(help="Study identifier")],
    path: Annotated[Path, typer.Argument(exists=True, readable=True, dir_okay=False, help="JSON list of keyword presets")],
    replace: Annotated[bool, typer.Option("--replace", help="Drop existing presets instead of merging by id")] = False,
) -> None:
    """Load keyword presets from a JSON file."""
    store, _ = _open_study(study_id)
    try:
        raw_value = cast(JSONValue, json.loads(path.read_text(encoding="utf-8")))
        if not isinstance(raw_value, list):
            raise ValueError("Preset file must contain a JSON list.")
        imported: list[MarkingPreset] = []
        for item in raw_value:
            if not isinstance(item, dict):
                raise ValueError("Invalid preset entry encountered.")
            imported.append(preset_from_dict(item))
    except ValueError as exc:
        typer.echo(f"Could not import presets: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    presets = [] if replace else store.load_presets()
    imported_ids = {preset.preset_id for preset in imported}
    presets = [preset for preset in presets if preset.preset_id not in imported_ids] + imported
    store.write_presets(presets)
    typer.echo(f"Imported {len(imported)} preset(s); {len(presets)} active.")


@app.command()
def serve(
    study_id: Annotated[str, typer.Argument(help="Study identifier")],
    port: Annotated[int, typer.Option(help="Port for the local web viewer")] = 8765,
    no_browser: Annotated[bool, typer.Option(help="Do not automatically open the browser")] = False,
) -> None:
    """Launch the local web viewer for a study."""
    store, _ = _open_study(study_id)
    app_instance = create_app(store)
    if not no_browser:
        _ = webbrowser.open(f"http://127.0.0.1:{port}")
    run_server(app_instance, port=port)


def run() -> None:
    app(prog_name="versemark")

"""Verse, annotation, preset and note types plus their JSON codecs."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field

from .words import CharRange, Coordinates, WordRange

JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | dict[str, "JSONValue"] | list["JSONValue"]
JSONDict = dict[str, JSONValue]
JSONList = list[JSONValue]

HIGHLIGHT_COLORS: dict[str, str] = {
    "red": "#ef4444",
    "orange": "#f97316",
    "amber": "#f59e0b",
    "yellow": "#eab308",
    "lime": "#84cc16",
    "green": "#22c55e",
    "teal": "#14b8a6",
    "cyan": "#06b6d4",
    "blue": "#3b82f6",
    "indigo": "#6366f1",
    "purple": "#a855f7",
    "pink": "#ec4899",
}

SYMBOLS: dict[str, str] = {
    "cross": "✝",
    "triangle": "△",
    "circle": "○",
    "square": "□",
    "diamond": "◇",
    "star": "★",
    "starOutline": "☆",
    "hexagon": "⬡",
    "crown": "👑",
    "dove": "🕊",
    "water": "💧",
    "fire": "🔥",
    "lightning": "⚡",
    "skull": "💀",
    "heart": "❤",
    "prayer": "🙏",
    "book": "📖",
    "clock": "⏰",
    "calendar": "📅",
    "hourglass": "⏳",
    "arrowRight": "→",
    "arrowLeft": "←",
    "arrowUp": "↑",
    "arrowDown": "↓",
    "num1": "①",
    "num2": "②",
    "num3": "③",
    "num4": "④",
    "num5": "⑤",
    "letterA": "Ⓐ",
    "letterB": "Ⓑ",
    "letterC": "Ⓒ",
    "question": "?",
    "exclamation": "!",
    "check": "✓",
    "x": "✗",
}

TEXT_KINDS = ("highlight", "textColor", "underline")
UNDERLINE_STYLES = ("solid", "dashed", "dotted", "double", "wavy")
SYMBOL_POSITIONS = ("before", "after", "center")
SYMBOL_PLACEMENTS = ("above", "overlay")

_REF_RE = re.compile(r"^\s*(?P<book>.+?)\s+(?P<chapter>\d+):(?P<verse>\d+)\s*$")


@dataclass(frozen=True)
class VerseRef:
    book: str
    chapter: int
    verse: int

    @classmethod
    def parse(cls, value: str) -> VerseRef:
        """Parse a reference such as ``"Gen 1:1"`` or ``"1 John 3:16"``."""
        match = _REF_RE.match(value)
        if not match:
            raise ValueError(f"Invalid verse reference: {value!r}")
        return cls(match.group("book"), int(match.group("chapter")), int(match.group("verse")))

    @property
    def label(self) -> str:
        return f"{self.book} {self.chapter}:{self.verse}"

    def same_chapter(self, other: VerseRef) -> bool:
        return self.book == other.book and self.chapter == other.chapter


@dataclass(frozen=True)
class Verse:
    ref: VerseRef
    text: str


@dataclass
class TextAnnotation:
    annotation_id: str
    module_id: str  # empty for virtual annotations
    kind: str  # "highlight", "textColor" or "underline"
    start_ref: VerseRef
    end_ref: VerseRef
    color: str
    start_word_index: int | None = None
    end_word_index: int | None = None
    start_offset: int | None = None
    end_offset: int | None = None
    selected_text: str | None = None
    underline_style: str | None = None
    preset_id: str | None = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_virtual(self) -> bool:
        return not self.module_id

    @property
    def is_single_verse(self) -> bool:
        return self.start_ref == self.end_ref

    def targets(self, ref: VerseRef) -> bool:
        return self.is_single_verse and self.start_ref == ref

    def touches(self, ref: VerseRef) -> bool:
        return (
            self.start_ref.same_chapter(ref)
            and self.end_ref.same_chapter(ref)
            and self.start_ref.verse <= ref.verse <= self.end_ref.verse
        )

    def coordinates(self) -> list[Coordinates]:
        return _coordinates(self.start_word_index, self.end_word_index, self.start_offset, self.end_offset)


@dataclass
class SymbolAnnotation:
    annotation_id: str
    module_id: str  # empty for virtual annotations
    ref: VerseRef
    symbol: str
    position: str = "center"
    color: str | None = None
    placement: str | None = None
    word_index: int | None = None
    start_word_index: int | None = None
    end_word_index: int | None = None
    start_offset: int | None = None
    end_offset: int | None = None
    end_ref: VerseRef | None = None
    selected_text: str | None = None
    preset_id: str | None = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_virtual(self) -> bool:
        return not self.module_id

    @property
    def is_single_verse(self) -> bool:
        return self.end_ref is None or self.end_ref == self.ref

    @property
    def is_inline(self) -> bool:
        """Center symbols and coordinate-bearing ``before`` symbols render inside the text flow."""
        if self.position == "center":
            return True
        return self.position == "before" and bool(self.coordinates())

    def targets(self, ref: VerseRef) -> bool:
        return self.is_single_verse and self.ref == ref

    def touches(self, ref: VerseRef) -> bool:
        return self.ref == ref

    def coordinates(self) -> list[Coordinates]:
        start_word = self.start_word_index if self.start_word_index is not None else self.word_index
        end_word = self.end_word_index if self.end_word_index is not None else start_word
        return _coordinates(start_word, end_word, self.start_offset, self.end_offset)


Annotation = TextAnnotation | SymbolAnnotation


def _coordinates(
    start_word: int | None,
    end_word: int | None,
    start_offset: int | None,
    end_offset: int | None,
) -> list[Coordinates]:
    result: list[Coordinates] = []
    if start_word is not None and end_word is not None:
        result.append(WordRange(start_word, end_word))
    if start_offset is not None and end_offset is not None:
        result.append(CharRange(start_offset, end_offset))
    return result


@dataclass(frozen=True)
class PresetHighlight:
    style: str
    color: str


@dataclass(frozen=True)
class Variant:
    text: str
    book_scope: str | None = None
    chapter_scope: int | None = None


@dataclass
class MarkingPreset:
    """A reusable keyword rule that spawns virtual annotations wherever it matches."""

    preset_id: str
    word: str | None = None
    variants: list[Variant] = field(default_factory=list)
    symbol: str | None = None
    highlight: PresetHighlight | None = None
    book_scope: str | None = None
    chapter_scope: int | None = None
    module_scope: str | None = None
    category: str | None = None
    description: str | None = None


@dataclass
class Note:
    note_id: str
    module_id: str
    ref: VerseRef
    content: str
    range_end: VerseRef | None = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class SectionHeading:
    heading_id: str
    module_id: str
    before_ref: VerseRef
    title: str
    covers_until: VerseRef | None = None
    created_at: str = ""
    updated_at: str = ""


def annotation_to_dict(annotation: Annotation) -> JSONDict:
    payload: JSONDict = {"type": "symbol" if isinstance(annotation, SymbolAnnotation) else annotation.kind}
    for key, value in asdict(annotation).items():
        if key == "kind":
            continue
        payload[key] = value
    return payload


def annotation_from_dict(data: JSONDict) -> Annotation:
    kind = _require_str(data.get("type"), "type")
    annotation_id = _require_str(data.get("annotation_id"), "annotation_id")
    module_id = _optional_str(data.get("module_id")) or ""
    if kind == "symbol":
        symbol = _require_str(data.get("symbol"), "symbol")
        if symbol not in SYMBOLS:
            raise ValueError(f"Unknown symbol '{symbol}'.")
        position = _optional_str(data.get("position")) or "center"
        if position not in SYMBOL_POSITIONS:
            raise ValueError(f"Invalid symbol position '{position}'.")
        end_ref_value = data.get("end_ref")
        return SymbolAnnotation(
            annotation_id=annotation_id,
            module_id=module_id,
            ref=_ref_from_json(data.get("ref"), "ref"),
            symbol=symbol,
            position=position,
            color=_optional_color(data.get("color")),
            placement=_optional_str(data.get("placement")),
            word_index=_optional_int(data.get("word_index")),
            start_word_index=_optional_int(data.get("start_word_index")),
            end_word_index=_optional_int(data.get("end_word_index")),
            start_offset=_optional_int(data.get("start_offset")),
            end_offset=_optional_int(data.get("end_offset")),
            end_ref=None if end_ref_value is None else _ref_from_json(end_ref_value, "end_ref"),
            selected_text=_optional_str(data.get("selected_text")),
            preset_id=_optional_str(data.get("preset_id")),
            created_at=_optional_str(data.get("created_at")) or "",
            updated_at=_optional_str(data.get("updated_at")) or "",
        )
    if kind not in TEXT_KINDS:
        raise ValueError(f"Unknown annotation type '{kind}'.")
    color = _optional_color(data.get("color"))
    if color is None:
        raise ValueError("Text annotations require a color.")
    underline_style = _optional_str(data.get("underline_style"))
    if underline_style is not None and underline_style not in UNDERLINE_STYLES:
        raise ValueError(f"Invalid underline style '{underline_style}'.")
    annotation = TextAnnotation(
        annotation_id=annotation_id,
        module_id=module_id,
        kind=kind,
        start_ref=_ref_from_json(data.get("start_ref"), "start_ref"),
        end_ref=_ref_from_json(data.get("end_ref"), "end_ref"),
        color=color,
        start_word_index=_optional_int(data.get("start_word_index")),
        end_word_index=_optional_int(data.get("end_word_index")),
        start_offset=_optional_int(data.get("start_offset")),
        end_offset=_optional_int(data.get("end_offset")),
        selected_text=_optional_str(data.get("selected_text")),
        underline_style=underline_style,
        preset_id=_optional_str(data.get("preset_id")),
        created_at=_optional_str(data.get("created_at")) or "",
        updated_at=_optional_str(data.get("updated_at")) or "",
    )
    if annotation.is_single_verse and not annotation.coordinates():
        raise ValueError(f"Annotation '{annotation_id}' has neither word indices nor offsets.")
    return annotation


def preset_to_dict(preset: MarkingPreset) -> JSONDict:
    return cast_json(asdict(preset))


def preset_from_dict(data: JSONDict) -> MarkingPreset:
    preset_id = _require_str(data.get("preset_id"), "preset_id")
    symbol = _optional_str(data.get("symbol"))
    if symbol is not None and symbol not in SYMBOLS:
        raise ValueError(f"Unknown symbol '{symbol}'.")
    highlight_value = data.get("highlight")
    highlight: PresetHighlight | None = None
    if isinstance(highlight_value, dict):
        style = _optional_str(highlight_value.get("style")) or "highlight"
        if style not in TEXT_KINDS:
            raise ValueError(f"Invalid highlight style '{style}'.")
        color = _optional_color(highlight_value.get("color"))
        if color is None:
            raise ValueError(f"Preset '{preset_id}' highlight requires a color.")
        highlight = PresetHighlight(style=style, color=color)
    variants: list[Variant] = []
    variants_value = data.get("variants")
    if isinstance(variants_value, list):
        for item in variants_value:
            if isinstance(item, str):
                variants.append(Variant(text=item))
            elif isinstance(item, dict):
                variants.append(
                    Variant(
                        text=_require_str(item.get("text"), "variants.text"),
                        book_scope=_optional_str(item.get("book_scope")),
                        chapter_scope=_optional_int(item.get("chapter_scope")),
                    )
                )
    return MarkingPreset(
        preset_id=preset_id,
        word=_optional_str(data.get("word")),
        variants=variants,
        symbol=symbol,
        highlight=highlight,
        book_scope=_optional_str(data.get("book_scope")),
        chapter_scope=_optional_int(data.get("chapter_scope")),
        module_scope=_optional_str(data.get("module_scope")),
        category=_optional_str(data.get("category")),
        description=_optional_str(data.get("description")),
    )


def note_to_dict(note: Note) -> JSONDict:
    return cast_json(asdict(note))


def note_from_dict(data: JSONDict) -> Note:
    range_end = data.get("range_end")
    return Note(
        note_id=_require_str(data.get("note_id"), "note_id"),
        module_id=_optional_str(data.get("module_id")) or "",
        ref=_ref_from_json(data.get("ref"), "ref"),
        content=_require_str(data.get("content"), "content"),
        range_end=None if range_end is None else _ref_from_json(range_end, "range_end"),
        created_at=_optional_str(data.get("created_at")) or "",
        updated_at=_optional_str(data.get("updated_at")) or "",
    )


def heading_to_dict(heading: SectionHeading) -> JSONDict:
    return cast_json(asdict(heading))


def heading_from_dict(data: JSONDict) -> SectionHeading:
    covers_until = data.get("covers_until")
    return SectionHeading(
        heading_id=_require_str(data.get("heading_id"), "heading_id"),
        module_id=_optional_str(data.get("module_id")) or "",
        before_ref=_ref_from_json(data.get("before_ref"), "before_ref"),
        title=_require_str(data.get("title"), "title"),
        covers_until=None if covers_until is None else _ref_from_json(covers_until, "covers_until"),
        created_at=_optional_str(data.get("created_at")) or "",
        updated_at=_optional_str(data.get("updated_at")) or "",
    )


def ref_to_dict(ref: VerseRef) -> JSONDict:
    return {"book": ref.book, "chapter": ref.chapter, "verse": ref.verse}


def cast_json(value: dict[str, object]) -> JSONDict:
    result: JSONDict = {}
    for key, item in value.items():
        if isinstance(item, dict):
            result[key] = cast_json(item)
        elif isinstance(item, list):
            result[key] = [cast_json(entry) if isinstance(entry, dict) else entry for entry in item]
        else:
            result[key] = item
    return result


def _ref_from_json(value: JSONValue | None, field_name: str) -> VerseRef:
    if isinstance(value, str):
        return VerseRef.parse(value)
    if not isinstance(value, dict):
        raise ValueError(f"Field '{field_name}' must be a verse reference.")
    book = _require_str(value.get("book"), f"{field_name}.book")
    chapter = _optional_int(value.get("chapter"))
    verse = _optional_int(value.get("verse"))
    if chapter is None or verse is None:
        raise ValueError(f"Field '{field_name}' requires chapter and verse numbers.")
    return VerseRef(book, chapter, verse)


def _require_str(value: JSONValue | None, field_name: str) -> str:
    if isinstance(value, str) and value:
        return value
    raise ValueError(f"Field '{field_name}' must be a non-empty string.")


def _optional_str(value: JSONValue | None) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _optional_color(value: JSONValue | None) -> str | None:
    color = _optional_str(value)
    if color is not None and color not in HIGHLIGHT_COLORS:
        raise ValueError(f"Unknown color '{color}'.")
    return color


def _optional_int(value: JSONValue | None) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None

"""HTML presentation of rendered verses."""

from __future__ import annotations

from collections.abc import Sequence
from html import escape

from .model import HIGHLIGHT_COLORS, SYMBOLS, SymbolAnnotation
from .pipeline import RenderedVerse
from .segmenting import TextSegment, combine_styles, split_trailing_punctuation


def render_segments_html(segments: Sequence[TextSegment]) -> str:
    """Render segments in order; plain segments become escaped text."""
    return "".join(_render_segment(segment) for segment in segments)


def render_verse_html(rendered: RenderedVerse) -> str:
    parts = [
        f'<span class="verse" data-ref="{escape(rendered.ref.label)}">',
        f'<sup class="verse-number">{rendered.ref.verse}</sup>',
    ]
    if rendered.symbols_before:
        parts.append(_decorations(rendered.symbols_before, "verse-symbols-before"))
    parts.append(render_segments_html(rendered.segments))
    if rendered.symbols_after:
        parts.append(_decorations(rendered.symbols_after, "verse-symbols-after"))
    parts.append("</span>")
    return "".join(parts)


def _render_segment(segment: TextSegment) -> str:
    if segment.is_plain:
        return escape(segment.text)

    ids = segment.annotation_ids
    classes = " ".join(["annotation-group", *(f"annotation-{escape(item)}" for item in ids)])
    ids_attr = escape(",".join(ids))
    css = combine_styles(segment.annotations).css()
    style_attr = f' style="{escape(css)}"' if css else ""

    if not segment.symbols:
        return (
            f'<span class="{classes}" data-annotation-ids="{ids_attr}">'
            f'<span class="annotation-text"{style_attr}>{escape(segment.text)}</span>'
            "</span>"
        )

    body, trailing = split_trailing_punctuation(segment.text)
    return (
        f'<span class="symbol-inline {classes}" data-annotation-ids="{ids_attr}">'
        f"{_glyph(segment.symbols[0], 'symbol-before')}"
        f'<span class="annotation-text"{style_attr}>{escape(body)}</span>'
        "</span>"
        f"{escape(trailing)}"
    )


def _glyph(symbol: SymbolAnnotation, css_class: str) -> str:
    color = HIGHLIGHT_COLORS.get(symbol.color, "currentColor") if symbol.color else "currentColor"
    return f'<span class="{css_class}" style="color: {color}">{escape(SYMBOLS.get(symbol.symbol, "?"))}</span>'


def _decorations(symbols: Sequence[SymbolAnnotation], css_class: str) -> str:
    return f'<span class="{css_class}">' + "".join(_glyph(symbol, "symbol") for symbol in symbols) + "</span>"

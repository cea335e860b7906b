from __future__ import annotations

import unittest

from versemark.model import SymbolAnnotation, TextAnnotation, Verse, VerseRef
from versemark.pipeline import render_verse
from versemark.rendering import render_segments_html, render_verse_html
from versemark.segmenting import TextSegment

REF = VerseRef("Gen", 1, 3)


def _symbol(annotation_id: str, position: str = "center", **kwargs: object) -> SymbolAnnotation:
    return SymbolAnnotation(annotation_id=annotation_id, module_id="KJV", ref=REF, symbol="cross", position=position, **kwargs)  # pyright: ignore[reportArgumentType]


class RenderSegmentsTests(unittest.TestCase):
    def test_plain_text_is_escaped(self) -> None:
        self.assertEqual(render_segments_html([TextSegment(0, 5, "a < b")]), "a &lt; b")

    def test_text_styles_are_combined(self) -> None:
        highlight = TextAnnotation(
            annotation_id="hl",
            module_id="KJV",
            kind="highlight",
            start_ref=REF,
            end_ref=REF,
            color="yellow",
            start_offset=0,
            end_offset=3,
        )
        underline = TextAnnotation(
            annotation_id="ul",
            module_id="KJV",
            kind="underline",
            start_ref=REF,
            end_ref=REF,
            color="blue",
            start_offset=0,
            end_offset=3,
            underline_style="dotted",
        )
        html = render_segments_html([TextSegment(0, 3, "God", annotations=[highlight, underline])])
        self.assertIn('data-annotation-ids="hl,ul"', html)
        self.assertIn("background-color: #eab30840", html)
        self.assertIn("text-decoration-style: dotted", html)
        self.assertIn(">God</span>", html)

    def test_symbol_precedes_word_and_punctuation_stays_outside(self) -> None:
        segments = [TextSegment(0, 4, "God,", symbols=[_symbol("s1", color="red")]), TextSegment(4, 8, " the")]
        html = render_segments_html(segments)
        self.assertLess(html.index("✝"), html.index("God"))
        self.assertIn('class="symbol-before" style="color: #ef4444"', html)
        self.assertIn("God</span></span>, the", html)
        self.assertIn('data-annotation-ids="s1"', html)


class RenderVerseHtmlTests(unittest.TestCase):
    def test_verse_level_decorations_surround_text(self) -> None:
        text = "And God said, Let there be light"
        persisted = [
            _symbol("before", position="before"),
            _symbol("after", position="after"),
            _symbol("inline", start_word_index=1, end_word_index=1),
        ]
        rendered = render_verse(Verse(REF, text), persisted)
        html = render_verse_html(rendered)
        self.assertTrue(html.startswith('<span class="verse" data-ref="Gen 1:3">'))
        self.assertIn('<sup class="verse-number">3</sup>', html)
        self.assertLess(html.index("verse-symbols-before"), html.index("And "))
        self.assertLess(html.index("light"), html.index("verse-symbols-after"))
        self.assertIn('data-annotation-ids="inline"', html)


if __name__ == "__main__":
    _ = unittest.main()

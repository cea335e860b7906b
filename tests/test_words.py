from __future__ import annotations

import unittest

from versemark.words import (
    CharRange,
    Word,
    WordRange,
    char_offsets_to_word_indices,
    expand_to_word_boundaries,
    normalize_word,
    normalized_words,
    resolve_char_range,
    tokenize,
    word_count,
    word_indices_to_char_offsets,
)

GENESIS = "In the beginning God created the heavens and the earth."


class TokenizeTests(unittest.TestCase):
    def test_tokenize_reports_offsets(self) -> None:
        words = tokenize("In the beginning God")
        self.assertEqual(
            words,
            [Word("In", 0, 2), Word("the", 3, 6), Word("beginning", 7, 16), Word("God", 17, 20)],
        )

    def test_tokenize_empty_and_whitespace(self) -> None:
        self.assertEqual(tokenize(""), [])
        self.assertEqual(tokenize("   \n\t"), [])
        self.assertEqual(word_count(""), 0)

    def test_tokenize_keeps_punctuation_attached(self) -> None:
        words = tokenize("  said,  Let ")
        self.assertEqual(words, [Word("said,", 2, 7), Word("Let", 9, 12)])

    def test_gaps_and_words_reconstruct_text(self) -> None:
        text = "  And God said,\tLet there be light: "
        rebuilt = ""
        cursor = 0
        for word in tokenize(text):
            rebuilt += text[cursor : word.start_offset] + word.text
            cursor = word.end_offset
        rebuilt += text[cursor:]
        self.assertEqual(rebuilt, text)

    def test_normalize_word(self) -> None:
        self.assertEqual(normalize_word('"God,"'), "god")
        self.assertEqual(normalize_word("LORD's"), "lord's")
        self.assertEqual(normalize_word("earth."), "earth")
        self.assertEqual(normalize_word("—"), "")
        self.assertEqual(normalized_words("The LORD, my shepherd."), ["the", "lord", "my", "shepherd"])


class OffsetMapperTests(unittest.TestCase):
    def test_word_indices_map_to_character_span(self) -> None:
        self.assertEqual(word_indices_to_char_offsets(GENESIS, 3, 3), CharRange(17, 20))
        self.assertEqual(word_indices_to_char_offsets(GENESIS, 0, 2), CharRange(0, 16))
        self.assertEqual(GENESIS[17:20], "God")

    def test_missing_or_out_of_range_indices(self) -> None:
        self.assertIsNone(word_indices_to_char_offsets(GENESIS, None, 3))
        self.assertIsNone(word_indices_to_char_offsets(GENESIS, 3, None))
        self.assertIsNone(word_indices_to_char_offsets(GENESIS, 0, 10))
        self.assertIsNone(word_indices_to_char_offsets(GENESIS, -1, 2))
        self.assertIsNone(word_indices_to_char_offsets("", 0, 0))

    def test_round_trip_for_every_word_pair(self) -> None:
        words = tokenize(GENESIS)
        for start in range(len(words)):
            for end in range(start, len(words)):
                span = word_indices_to_char_offsets(GENESIS, start, end)
                assert span is not None
                retokenized = [word.text for word in tokenize(GENESIS[span.start : span.end])]
                self.assertEqual(retokenized, [word.text for word in words[start : end + 1]])

    def test_char_offsets_to_word_indices(self) -> None:
        self.assertEqual(char_offsets_to_word_indices(GENESIS, 17, 20), WordRange(3, 3))
        self.assertEqual(char_offsets_to_word_indices(GENESIS, 18, 19), WordRange(3, 3))
        self.assertEqual(char_offsets_to_word_indices(GENESIS, 0, 16), WordRange(0, 2))
        self.assertIsNone(char_offsets_to_word_indices(GENESIS, 16, 17))

    def test_resolve_prefers_word_range(self) -> None:
        coordinates = [WordRange(3, 3), CharRange(0, 2)]
        self.assertEqual(resolve_char_range(coordinates, GENESIS), CharRange(17, 20))

    def test_resolve_falls_back_to_char_range(self) -> None:
        coordinates = [WordRange(40, 41), CharRange(0, 2)]
        self.assertEqual(resolve_char_range(coordinates, GENESIS), CharRange(0, 2))

    def test_resolve_clamps_out_of_bounds_and_inverted(self) -> None:
        text = "x" * 40
        self.assertEqual(resolve_char_range([CharRange(500, 510)], text), CharRange(40, 40))
        self.assertEqual(resolve_char_range([CharRange(10, 5)], text), CharRange(10, 10))
        self.assertEqual(resolve_char_range([CharRange(-4, 3)], text), CharRange(0, 3))
        self.assertIsNone(resolve_char_range([], text))

    def test_word_range_intersects(self) -> None:
        self.assertTrue(WordRange(1, 3).intersects(WordRange(3, 5)))
        self.assertFalse(WordRange(1, 2).intersects(WordRange(3, 5)))
        self.assertEqual(WordRange(2, 4).length, 3)


class ExpandToWordBoundariesTests(unittest.TestCase):
    text: str = "In the beginning God created"

    def test_partial_word_grows_to_whole_word(self) -> None:
        self.assertEqual(expand_to_word_boundaries(self.text, 18, 19), CharRange(17, 20))

    def test_surrounding_whitespace_is_trimmed(self) -> None:
        self.assertEqual(expand_to_word_boundaries(self.text, 16, 21), CharRange(17, 20))

    def test_selection_ending_inside_next_word(self) -> None:
        self.assertEqual(expand_to_word_boundaries(self.text, 17, 22), CharRange(17, 28))

    def test_trailing_punctuation_is_dropped(self) -> None:
        self.assertEqual(expand_to_word_boundaries("the earth.", 0, 10), CharRange(0, 9))

    def test_offsets_are_clamped(self) -> None:
        self.assertEqual(expand_to_word_boundaries("God", -5, 50), CharRange(0, 3))


if __name__ == "__main__":
    _ = unittest.main()

import unittest

from matetrainer.renderer import render_ascii, render_svg

FEN = "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"


class RendererTests(unittest.TestCase):
    def test_ascii_from_white_side(self) -> None:
        lines = render_ascii(FEN, "white").splitlines()
        self.assertEqual(lines[0], "8 . . . . . . k .")
        self.assertEqual(lines[7], "1 R . . . . . K .")
        self.assertEqual(lines[8], "  a b c d e f g h")

    def test_ascii_from_black_side(self) -> None:
        lines = render_ascii(FEN, "black").splitlines()
        self.assertEqual(lines[0], "1 . K . . . . . R")
        self.assertEqual(lines[8], "  h g f e d c b a")

    def test_svg_contains_board(self) -> None:
        svg = render_svg(FEN, "black", last_move=("a1", "a8"))
        self.assertTrue(svg.startswith("<svg"))

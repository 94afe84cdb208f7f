import tempfile
import textwrap
import unittest
from pathlib import Path

from matetrainer.config import Config, load_config


class LoadConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "config.yaml"

    def _write(self, text: str) -> None:
        self.path.write_text(textwrap.dedent(text), encoding="utf-8")

    def test_full_config(self) -> None:
        self._write("""
            engine:
              path: /usr/games/stockfish
              depth: 20
              init_timeout: 5
              transcript: true
            trainer:
              puzzles_file: ./p.json
              opponent_delay_ms: 250
            logging:
              level: debug
              dir: ./out
        """)
        cfg = load_config(self.path)

        self.assertEqual(cfg.engine.path, "/usr/games/stockfish")
        self.assertEqual(cfg.engine.depth, 20)
        self.assertTrue(cfg.engine.enabled)
        self.assertTrue(cfg.engine.transcript)
        self.assertEqual(cfg.puzzles_path, Path("./p.json"))
        self.assertEqual(cfg.opponent_delay, 0.25)
        self.assertEqual(cfg.logging.level, "DEBUG")
        self.assertEqual(cfg.log_dir_path, Path("./out"))

    def test_empty_file_gives_defaults(self) -> None:
        self._write("")
        self.assertEqual(load_config(self.path), Config())

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_config(self.path)

    def test_invalid_values(self) -> None:
        for text in (
            "engine: {depth: 0}",
            "engine: {init_timeout: 0}",
            "trainer: {opponent_delay_ms: -1}",
            "logging: {level: chatty}",
            "engine: {depth: deep}",
            "engine: [1, 2]",
        ):
            with self.subTest(text=text):
                self._write(text)
                with self.assertRaises(ValueError):
                    load_config(self.path)

    def test_shipped_example_is_valid(self) -> None:
        example = Path(__file__).parent.parent / "config.example.yaml"
        cfg = load_config(example)
        self.assertEqual(cfg.trainer.opponent_delay_ms, 400)
        self.assertIsNone(cfg.engine.path)

"""
Configuration loading from config.yaml.

Uses typed dataclasses throughout so the rest of the app gets IDE
completion and type-checker support without touching raw dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class EngineConfig:
    path: str | None = None   # None = MATETRAINER_ENGINE_PATH / $PATH lookup
    enabled: bool = True
    depth: int = 15
    init_timeout: float = 10.0  # seconds for the uci/isready handshake
    transcript: bool = False    # write every UCI line to logs/uci_*.log


@dataclass
class TrainerConfig:
    puzzles_file: str = "./data/problems.json"
    progress_file: str = "./.matetrainer_progress.json"
    opponent_delay_ms: int = 400  # pause before the opponent's reply is played


@dataclass
class LoggingConfig:
    level: str = "INFO"
    dir: str = "./logs"


@dataclass
class Config:
    engine: EngineConfig = field(default_factory=EngineConfig)
    trainer: TrainerConfig = field(default_factory=TrainerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def puzzles_path(self) -> Path:
        return Path(self.trainer.puzzles_file)

    @property
    def progress_path(self) -> Path:
        return Path(self.trainer.progress_file)

    @property
    def log_dir_path(self) -> Path:
        return Path(self.logging.dir)

    @property
    def opponent_delay(self) -> float:
        """Opponent presentation delay in seconds."""
        return self.trainer.opponent_delay_ms / 1000.0


def load_config(path: str | Path = "config.yaml") -> Config:
    """
    Load and validate config.yaml.

    Raises:
        FileNotFoundError: config.yaml is missing.
        ValueError: fields are present but invalid.
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {cfg_path.resolve()}\n"
            "Copy config.example.yaml to config.yaml and adjust the engine path."
        )

    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    try:
        engine_raw = raw.get("engine") or {}
        engine_cfg = EngineConfig(
            path=engine_raw.get("path"),
            enabled=bool(engine_raw.get("enabled", True)),
            depth=int(engine_raw.get("depth", 15)),
            init_timeout=float(engine_raw.get("init_timeout", 10.0)),
            transcript=bool(engine_raw.get("transcript", False)),
        )

        trainer_raw = raw.get("trainer") or {}
        trainer_cfg = TrainerConfig(
            puzzles_file=str(trainer_raw.get("puzzles_file", "./data/problems.json")),
            progress_file=str(trainer_raw.get("progress_file", "./.matetrainer_progress.json")),
            opponent_delay_ms=int(trainer_raw.get("opponent_delay_ms", 400)),
        )

        logging_raw = raw.get("logging") or {}
        logging_cfg = LoggingConfig(
            level=str(logging_raw.get("level", "INFO")).upper(),
            dir=str(logging_raw.get("dir", "./logs")),
        )

        config = Config(engine=engine_cfg, trainer=trainer_cfg, logging=logging_cfg)
        _validate(config)
        return config

    except (AttributeError, TypeError) as exc:
        raise ValueError(f"Invalid config.yaml structure: {exc}") from exc


def _validate(config: Config) -> None:
    if config.engine.depth < 1:
        raise ValueError("engine.depth must be >= 1")
    if config.engine.init_timeout <= 0:
        raise ValueError("engine.init_timeout must be > 0")
    if config.trainer.opponent_delay_ms < 0:
        raise ValueError("trainer.opponent_delay_ms must be >= 0")
    if config.logging.level not in _LOG_LEVELS:
        raise ValueError(
            f"logging.level must be one of {_LOG_LEVELS}, got '{config.logging.level}'"
        )

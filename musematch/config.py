"""Configuration values, read from the environment (see env.load_env)."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

BACKENDS = ("json", "sqlite")


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    backend: str = "json"
    data_dir: Path = Path("data")
    db_path: Path = Path("data/musematch.db")
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    log_to_file: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        data_dir = Path(env.get("MUSEMATCH_DATA_DIR", "data"))
        backend = env.get("MUSEMATCH_BACKEND", "json").strip().lower()
        if backend not in BACKENDS:
            raise ValueError(f"MUSEMATCH_BACKEND must be one of {BACKENDS}, got {backend!r}")
        return cls(
            backend=backend,
            data_dir=data_dir,
            db_path=Path(env.get("MUSEMATCH_DB_PATH", str(data_dir / "musematch.db"))),
            log_level=env.get("MUSEMATCH_LOG_LEVEL", "INFO").upper(),
            log_dir=Path(env.get("MUSEMATCH_LOG_DIR", "logs")),
            log_to_file=_flag(env.get("MUSEMATCH_LOG_TO_FILE", "true")),
        )

    def open_store(self):
        """Build the configured backing store."""
        if self.backend == "sqlite":
            from .database import SqlStore
            return SqlStore(self.db_path)
        from .storage import JsonStore
        return JsonStore(self.data_dir)

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    if val in {"1", "true", "yes", "y", "on"}:
        return True
    if val in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclass(frozen=True)
class Settings:
    """Static settings for the local editor service.

    Keep defaults local and auditable; the HTTP bridge binds to localhost.
    """

    root_dir: Path = Path(__file__).resolve().parents[2]
    data_dir: Path = Path(os.environ.get("QUILLPAD_DATA_DIR", str(root_dir / ".quillpad-data")))
    log_path: Path = data_dir / "quillpad.log"
    log_level: str = os.environ.get("QUILLPAD_LOG_LEVEL", "INFO")
    log_max_bytes: int = int(os.environ.get("QUILLPAD_LOG_MAX_BYTES", str(1_000_000)))
    log_backup_count: int = int(os.environ.get("QUILLPAD_LOG_BACKUP_COUNT", "3"))
    log_to_file: bool = _env_bool("QUILLPAD_LOG_TO_FILE", True)
    host: str = os.environ.get("QUILLPAD_HOST", "127.0.0.1")
    port: int = int(os.environ.get("QUILLPAD_PORT", "8020"))

    # =========================================================================
    # Editing
    # =========================================================================
    # Trailing-edge debounce between the last mutation and the storage flush.
    # Every new mutation inside the window cancels and reschedules the flush.
    save_debounce_ms: int = int(os.environ.get("QUILLPAD_SAVE_DEBOUNCE_MS", "500"))

    # Title given to freshly created notes.
    default_note_name: str = os.environ.get("QUILLPAD_DEFAULT_NOTE_NAME", "Untitled")


settings = Settings()

"""Chat logger: append-only JSON Lines record of outbound sends, with rotation.

Every send attempt made by a DaktelaSender is written as one line. Operators
read a log back, rotated backups included, with ``read_chat_log``.
"""

from __future__ import annotations

import fcntl
import json
import os
from pathlib import Path

from src.models import ChatLogEntry


def backup_paths(log_path: Path, backup_count: int) -> list[Path]:
    """Rotated backups of ``log_path``, newest (``.1``) first."""
    return [log_path.with_name(f"{log_path.name}.{n}") for n in range(1, backup_count + 1)]


def rotate_file(log_path: Path, backup_count: int) -> None:
    """Shift ``log_path`` into ``.1``, pushing older backups down one slot.

    The backup beyond ``backup_count`` is dropped. With no backups kept the
    current file is simply discarded.
    """
    chain = [log_path, *backup_paths(log_path, backup_count)]
    chain[-1].unlink(missing_ok=True)
    for newer, older in reversed(list(zip(chain, chain[1:]))):
        if newer.exists():
            os.replace(newer, older)


def read_chat_log(log_path: Path, include_backups: bool = False) -> list[ChatLogEntry]:
    """Load the entries of a chat log, oldest first.

    With ``include_backups`` the rotated ``.N`` files that exist are read
    before the current file.
    """
    files = [log_path]
    if include_backups:
        backups = [
            p for p in log_path.parent.glob(f"{log_path.name}.*") if p.suffix[1:].isdigit()
        ]
        backups.sort(key=lambda p: int(p.suffix[1:]), reverse=True)
        files = [*backups, log_path]

    entries: list[ChatLogEntry] = []
    for path in files:
        if not path.exists():
            continue
        for line in path.read_text(encoding="utf-8").splitlines():
            if line.strip():
                entries.append(ChatLogEntry.model_validate_json(line))
    return entries


class ChatLogger:
    """Writes one JSON line per send attempt and rotates by size."""

    def __init__(
        self,
        log_path: str,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
    ) -> None:
        self.log_path = Path(log_path)
        self._max_bytes = max_bytes
        self._backup_count = backup_count

    @classmethod
    def from_env(cls, log_path: str) -> ChatLogger:
        """Create ChatLogger with rotation settings from environment variables."""
        max_bytes = int(os.environ.get("CHAT_LOG_MAX_BYTES", "10485760"))
        backup_count = int(os.environ.get("CHAT_LOG_BACKUP_COUNT", "5"))
        return cls(log_path=log_path, max_bytes=max_bytes, backup_count=backup_count)

    def _is_full(self) -> bool:
        try:
            return self.log_path.stat().st_size >= self._max_bytes
        except FileNotFoundError:
            return False

    def log(self, entry: ChatLogEntry) -> None:
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(
            json.loads(entry.model_dump_json()),
            separators=(",", ":"),
            ensure_ascii=False,
        )

        # Rotation and append happen under one lock
        lock_file = self.log_path.parent / f".{self.log_path.name}.lock"
        with open(lock_file, "w") as lf:
            fcntl.flock(lf, fcntl.LOCK_EX)
            try:
                if self._is_full():
                    rotate_file(self.log_path, self._backup_count)
                with open(self.log_path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
            finally:
                fcntl.flock(lf, fcntl.LOCK_UN)

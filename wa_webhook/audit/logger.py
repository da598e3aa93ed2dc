"""Audit log for webhook traffic: append-only JSON Lines with a hash chain.

Each line carries ``prev_hash``, the SHA-256 of the previous line. The chain
runs through rotation: the first line of a fresh file points at the last line
of ``<name>.1``, so ``validate_audit_chain`` checks the rotated backups and
the live file as one sequence, oldest first.
"""

from __future__ import annotations

import fcntl
import hashlib
import json
import os
from dataclasses import dataclass
from pathlib import Path

from wa_webhook.models import AuditEvent


@dataclass
class ChainValidationResult:
    valid: bool
    broken_at_line: int | None = None
    broken_in: Path | None = None


def _line_hash(line: str) -> str:
    return hashlib.sha256(line.encode()).hexdigest()


def chain_files(log_path: Path) -> list[Path]:
    """Rotated backups (highest index first) followed by the live file."""
    backups: list[tuple[int, Path]] = []
    for candidate in log_path.parent.glob(f"{log_path.name}.*"):
        suffix = candidate.name[len(log_path.name) + 1:]
        if suffix.isdigit():
            backups.append((int(suffix), candidate))
    files = [path for _, path in sorted(backups, reverse=True)]
    if log_path.exists():
        files.append(log_path)
    return files


def validate_audit_chain(log_path: Path) -> ChainValidationResult:
    """Check every line's prev_hash against the line before it, across rotation.

    The oldest surviving backup may start mid-chain because older backups are
    pruned; its first line is taken as the anchor. A log that never rotated
    must start with a null prev_hash.
    """
    files = chain_files(log_path)
    anchored = bool(files) and files[0] != log_path

    previous: str | None = None
    for path in files:
        text = path.read_text().strip()
        if not text:
            continue
        for number, line in enumerate(text.split("\n"), start=1):
            prev_hash = json.loads(line).get("prev_hash")
            if previous is None:
                intact = prev_hash is None or anchored
            else:
                intact = prev_hash == _line_hash(previous)
            if not intact:
                return ChainValidationResult(valid=False, broken_at_line=number, broken_in=path)
            previous = line
    return ChainValidationResult(valid=True)


class AuditLogger:
    """Writes AuditEvents as hash-chained JSON lines, rotating by size."""

    def __init__(
        self,
        log_path: str,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
    ) -> None:
        self.log_path = Path(log_path)
        self._max_bytes = max_bytes
        self._backup_count = backup_count
        self._last_line: str | None = None
        # Continue the chain from the newest non-empty file
        for path in reversed(chain_files(self.log_path)):
            text = path.read_text().strip()
            if text:
                self._last_line = text.split("\n")[-1]
                break

    @classmethod
    def from_env(cls, log_path: str) -> AuditLogger:
        """Create AuditLogger with rotation settings from environment variables."""
        max_bytes = int(os.environ.get("AUDIT_LOG_MAX_BYTES", "10485760"))
        backup_count = int(os.environ.get("AUDIT_LOG_BACKUP_COUNT", "5"))
        return cls(log_path=log_path, max_bytes=max_bytes, backup_count=backup_count)

    def _backup(self, index: int) -> Path:
        return self.log_path.parent / f"{self.log_path.name}.{index}"

    def _maybe_rotate(self) -> None:
        if not self.log_path.exists() or self.log_path.stat().st_size < self._max_bytes:
            return

        oldest = self._backup(self._backup_count)
        if oldest.exists():
            oldest.unlink()
        for index in range(self._backup_count - 1, 0, -1):
            if self._backup(index).exists():
                self._backup(index).rename(self._backup(index + 1))
        self.log_path.rename(self._backup(1))

    def log(self, event: AuditEvent) -> None:
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

        data = json.loads(event.model_dump_json())
        data["prev_hash"] = _line_hash(self._last_line) if self._last_line is not None else None
        line = json.dumps(data, separators=(",", ":"))

        # Rotation and append happen under one lock
        lock_file = self.log_path.parent / f".{self.log_path.name}.lock"
        with open(lock_file, "w") as lf:
            fcntl.flock(lf, fcntl.LOCK_EX)
            try:
                self._maybe_rotate()
                with open(self.log_path, "a") as f:
                    f.write(line + "\n")
            finally:
                fcntl.flock(lf, fcntl.LOCK_UN)

        self._last_line = line

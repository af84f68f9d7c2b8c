"""
Durable sequential writers.

The ledger appends one serialized record per line through this interface,
so tests can swap the JSONL file for an in-memory store.
"""

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Union

from ai_provider_router.core.errors import LedgerWriteError


class SequentialWriter(ABC):
    """Append-only line store."""

    @abstractmethod
    def append(self, line: str) -> None:
        """Append one complete line.

        Raises:
            LedgerWriteError: If the line could not be stored
        """

    @abstractmethod
    def read_lines(self) -> List[str]:
        """Return every complete line in append order."""


class JsonlFileWriter(SequentialWriter):
    """Newline-delimited file, opened in append mode for each record.

    Each record is written with a single ``write`` call under a lock.
    A trailing line without its newline is treated as still being written
    and is never returned by ``read_lines``.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def append(self, line: str) -> None:
        if "\n" in line:
            raise LedgerWriteError("ledger lines cannot contain newlines")
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
                    f.flush()
            except OSError as e:
                raise LedgerWriteError(f"Failed to append to {self.path}: {e}") from e

    def read_lines(self) -> List[str]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            content = f.read()
        # Last element is either "" or a partial line
        return [line for line in content.split("\n")[:-1] if line.strip()]


class InMemoryWriter(SequentialWriter):
    """List-backed store for tests and ephemeral use."""

    def __init__(self):
        self._lines: List[str] = []
        self._lock = threading.Lock()

    def append(self, line: str) -> None:
        if "\n" in line:
            raise LedgerWriteError("ledger lines cannot contain newlines")
        with self._lock:
            self._lines.append(line)

    def read_lines(self) -> List[str]:
        with self._lock:
            return list(self._lines)


class JsonSnapshotFile:
    """JSON document rewritten in full on every save.

    Saves go through a temporary file and ``os.replace`` so readers see
    either the old or the new document.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Any:
        if not self.path.exists():
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def save(self, data: Any) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise LedgerWriteError(f"Failed to write snapshot {self.path}: {e}") from e

"""Append-only exporter log shipped inside the archive."""

from __future__ import annotations

from pathlib import Path

EXPORTER_LOG_FILE_NAME = "ExporterLogs.log"


class ExporterLogError(Exception):
    """Raised when the exporter log cannot be appended to."""

    pass


class ExporterLog:
    """User-visible log of notable export events.

    Unlike the diagnostic loguru stream, this file ends up in the
    interchange archive so whoever runs the import can see what was
    synthesized or skipped. A line already present in the file (for
    instance written before an interrupted run was resumed) is not
    appended again.
    """

    def __init__(self, directory: str | Path) -> None:
        self.path = Path(directory) / EXPORTER_LOG_FILE_NAME
        self._seen: set[str] | None = None

    def log(self, message: str, *args: object) -> None:
        """Append one %-formatted line.

        Raises:
            ExporterLogError: If the file cannot be read or written
        """
        line = message % args if args else message
        seen = self._load_seen()
        if line in seen:
            return

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            raise ExporterLogError(f"error writing log: {e}") from e
        seen.add(line)

    def _load_seen(self) -> set[str]:
        if self._seen is None:
            try:
                text = self.path.read_text(encoding="utf-8") if self.path.exists() else ""
            except OSError as e:
                raise ExporterLogError(f"error reading log: {e}") from e
            self._seen = set(text.splitlines())
        return self._seen

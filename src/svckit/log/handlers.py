"""Daily and size-bounded rotating file handler with gzip archives."""

import gzip
import logging.handlers
import os
import re
import shutil
from datetime import date, timedelta
from pathlib import Path
from typing import Callable, Optional

MB = 1024 * 1024


class DailyRotatingFileHandler(logging.handlers.BaseRotatingHandler):
    """
    Write ``<kind>-<YYYY-MM-DD>.log`` in ``directory``.

    The file rolls over when the date changes or when the next record would
    push it past ``max_bytes``. Rolled files are gzipped to
    ``<kind>-<YYYY-MM-DD>.log.gz`` (``.1.log.gz``, ``.2.log.gz`` ... for
    further rollovers on the same day). Files dated more than
    ``max_age_days`` ago are deleted.
    """

    def __init__(
        self,
        directory: str | os.PathLike,
        kind: str,
        max_bytes: int = 20 * MB,
        max_age_days: int = 14,
        compress: bool = True,
        encoding: str = "utf-8",
        clock: Optional[Callable[[], date]] = None,
    ):
        self.directory = Path(os.path.abspath(directory))
        self.directory.mkdir(parents=True, exist_ok=True)
        self.kind = kind
        self.max_bytes = max_bytes
        self.max_age_days = max_age_days
        self.compress = compress
        self._clock = clock or date.today
        self._current_date = self._clock()
        self._pattern = re.compile(
            rf"^{re.escape(kind)}-(\d{{4}}-\d{{2}}-\d{{2}})(?:\.\d+)?\.log(?:\.gz)?$"
        )
        super().__init__(
            self._path_for(self._current_date), mode="a", encoding=encoding, delay=True
        )
        self.purge_expired()

    def _path_for(self, day: date) -> str:
        return str(self.directory / f"{self.kind}-{day:%Y-%m-%d}.log")

    def shouldRollover(self, record: logging.LogRecord) -> bool:
        if self._clock() != self._current_date:
            return True
        if self.max_bytes <= 0:
            return False
        if self.stream is None:
            self.stream = self._open()
        self.stream.seek(0, 2)
        pos = self.stream.tell()
        if pos == 0:
            return False
        msg = f"{self.format(record)}{self.terminator}"
        return pos + len(msg.encode(self.encoding or "utf-8")) > self.max_bytes

    def doRollover(self) -> None:
        if self.stream:
            self.stream.close()
            self.stream = None

        source = self.baseFilename
        if os.path.exists(source) and os.path.getsize(source) > 0:
            self.rotate(source, self._archive_name(self._current_date))

        self._current_date = self._clock()
        self.baseFilename = self._path_for(self._current_date)
        self.purge_expired()
        if not self.delay:
            self.stream = self._open()

    def _archive_name(self, day: date) -> str:
        suffix = ".log.gz" if self.compress else ".log"
        stem = f"{self.kind}-{day:%Y-%m-%d}"
        candidate = self.directory / f"{stem}{suffix}"
        index = 0
        while candidate.exists() or str(candidate) == self.baseFilename:
            index += 1
            candidate = self.directory / f"{stem}.{index}{suffix}"
        return str(candidate)

    def rotate(self, source: str, dest: str) -> None:
        if callable(self.rotator):
            self.rotator(source, dest)
            return
        if not self.compress:
            os.replace(source, dest)
            return
        with open(source, "rb") as src, gzip.open(dest, "wb") as dst:
            shutil.copyfileobj(src, dst)
        os.remove(source)

    def purge_expired(self) -> list[Path]:
        """
        Delete files of this kind dated before the retention window.

        Returns:
            Paths that were removed
        """
        cutoff = self._clock() - timedelta(days=self.max_age_days)
        removed = []
        for path in self.directory.iterdir():
            match = self._pattern.match(path.name)
            if match is None or str(path) == self.baseFilename:
                continue
            try:
                day = date.fromisoformat(match.group(1))
            except ValueError:
                continue
            if day < cutoff:
                path.unlink(missing_ok=True)
                removed.append(path)
        return removed

"""Pieces shared by the export and import engines."""

import csv
from contextlib import contextmanager
from typing import Callable, Iterator

from sqlcsv.errors import TransferIOError

DEFAULT_PROGRESS_EVERY = 10000

ProgressCallback = Callable[[int], None]


class RowCounter:
    """Counts rows and calls ``callback`` every ``every`` rows."""

    def __init__(self, callback: ProgressCallback | None = None, every: int = DEFAULT_PROGRESS_EVERY):
        self.count = 0
        self._callback = callback
        self._every = max(every, 1)

    def tick(self) -> None:
        self.count += 1
        if self._callback is not None and self.count % self._every == 0:
            self._callback(self.count)


@contextmanager
def io_errors(what: str, driver_errors: tuple[type[Exception], ...] = ()) -> Iterator[None]:
    """Re-raise file, CSV and driver failures as TransferIOError."""
    try:
        yield
    except (OSError, csv.Error, UnicodeError) as exc:
        raise TransferIOError(f"{what} failed: {exc}") from exc
    except driver_errors as exc:
        raise TransferIOError(f"{what} failed: database error: {exc}") from exc

"""Per-cycle recording of controller signals and export to CSV."""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path

import numpy as np

DEFAULT_MAX_RUNS = 100_000


def _cells(name: str, values) -> list[tuple[str, float]]:
    arr = np.asarray(values, dtype=float)
    if arr.ndim == 0:
        return [(name, float(arr))]
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise ValueError(f"{name}: only scalars, vectors and matrices can be logged")
    return [
        (f"{name}_{i + 1}_{j + 1}", float(arr[i, j]))
        for i in range(arr.shape[0])
        for j in range(arr.shape[1])
    ]


class SaveLog:
    """Collects one row of named values per control cycle.

    The columns are fixed by the first cycle. Vectors are logged as columns
    and matrices element by element in row-major order, each cell named
    ``<name>_<row>_<col>`` counting from one; scalars keep their plain name.
    Only the most recent ``max_runs`` cycles are kept.
    """

    def __init__(self, max_runs: int = DEFAULT_MAX_RUNS) -> None:
        if max_runs < 1:
            raise ValueError("max_runs must be at least 1")
        self.max_runs = max_runs
        self.is_save_log = False
        self.run_count = 0
        self._names: list[str] = []
        self._data: list[deque[float]] = []
        self._cursor = 0

    @property
    def column_names(self) -> list[str]:
        return list(self._names)

    def append(self, name: str, values) -> None:
        """Add the cells of ``values`` to the current cycle."""
        for cell_name, value in _cells(name, values):
            if self.run_count == 0:
                self._names.append(cell_name)
                self._data.append(deque(maxlen=self.max_runs))
            elif self._cursor >= len(self._data):
                raise ValueError("more values logged than in the first cycle")
            self._data[self._cursor].append(value)
            self._cursor += 1

    def end_cycle(self) -> None:
        """Close the current cycle."""
        if self.run_count > 0 and self._cursor != len(self._data):
            raise ValueError(
                f"cycle logged {self._cursor} values, expected {len(self._data)}"
            )
        self._cursor = 0
        self.run_count += 1

    def record(self, fields: Mapping[str, object] | Iterable[tuple[str, object]]) -> None:
        """Log every ``(name, values)`` pair of one cycle and close it."""
        items = fields.items() if isinstance(fields, Mapping) else fields
        for name, values in items:
            self.append(name, values)
        self.end_cycle()

    def rows(self) -> Iterator[list[float]]:
        """The retained cycles, oldest first."""
        count = min(self.run_count, self.max_runs)
        for index in range(count):
            yield [column[index] for column in self._data]

    def write_csv(self, path) -> Path:
        """Write the log to ``path``; a directory gets a file named by the current time."""
        target = Path(path)
        if target.is_dir():
            target = target / (time.strftime("%Y-%m-%d_%H-%M-%S") + ".csv")
        with target.open("w", encoding="utf-8", newline="") as out:
            out.write("".join(f"{name}," for name in self._names) + "\n")
            for row in self.rows():
                out.write("".join(f"{value:.6g}," for value in row) + "\n")
        return target
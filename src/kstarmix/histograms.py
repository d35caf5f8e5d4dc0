"""Multi-dimensional histogram accumulators.

Histograms are owned by the caller and passed into the engine, which only
appends fill events. Registries filled in separate workers are combined
with `HistogramRegistry.merge`; bin addition is order independent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Sequence

import numpy as np

from .models import Axis


@dataclass(eq=False)
class Histogram:
    """Fixed-binning n-dimensional count histogram backed by a numpy array."""

    name: str
    title: str
    axes: tuple[Axis, ...]
    counts: np.ndarray = field(init=False, repr=False)
    outside: float = field(default=0.0, init=False)

    def __post_init__(self) -> None:
        if not self.axes:
            raise ValueError(f"Histogram '{self.name}' needs at least one axis.")
        self.axes = tuple(self.axes)
        self.counts = np.zeros(tuple(a.n_bins for a in self.axes), dtype=np.float64)

    @property
    def ndim(self) -> int:
        return len(self.axes)

    @property
    def entries(self) -> float:
        """Sum of in-range bin contents."""
        return float(self.counts.sum())

    def fill(self, *values: float, weight: float = 1.0) -> bool:
        """Increment the cell at `values`; return False when any coordinate is out of range."""
        if len(values) != self.ndim:
            raise ValueError(
                f"Histogram '{self.name}' expects {self.ndim} coordinates, got {len(values)}."
            )
        idx = []
        for axis, value in zip(self.axes, values):
            i = axis.index(float(value))
            if i is None:
                self.outside += weight
                return False
            idx.append(i)
        self.counts[tuple(idx)] += weight
        return True

    def merge(self, other: "Histogram") -> None:
        """Add another histogram with identical binning into this one."""
        if other.axes != self.axes:
            raise ValueError(f"Cannot merge '{other.name}' into '{self.name}': binning differs.")
        self.counts += other.counts
        self.outside += other.outside

    def project(self, axis: int) -> np.ndarray:
        """Sum all other dimensions away and return the 1D contents along `axis`."""
        others = tuple(i for i in range(self.ndim) if i != axis)
        return self.counts.sum(axis=others) if others else self.counts.copy()

    def cells(self) -> Iterator[tuple[tuple[float, ...], float]]:
        """Yield `(bin_centres, content)` for every non-empty cell."""
        centers = [a.centers() for a in self.axes]
        for idx in zip(*np.nonzero(self.counts)):
            yield tuple(centers[d][i] for d, i in enumerate(idx)), float(self.counts[idx])

    def to_frame(self):
        """Return non-empty cells as a pandas DataFrame (one column per axis plus `count`)."""
        pd = _require_pandas()
        columns = [a.name or f"axis{d}" for d, a in enumerate(self.axes)]
        rows = [(*coords, content) for coords, content in self.cells()]
        return pd.DataFrame(rows, columns=[*columns, "count"])


class HistogramRegistry:
    """Named collection of histograms filled by the engine."""

    def __init__(self) -> None:
        self._histograms: dict[str, Histogram] = {}

    def add(self, name: str, title: str, axes: Sequence[Axis]) -> Histogram:
        """Register a histogram; re-adding an identical definition returns the existing one."""
        existing = self._histograms.get(name)
        if existing is not None:
            if existing.axes != tuple(axes):
                raise ValueError(f"Histogram '{name}' already registered with different axes.")
            return existing
        hist = Histogram(name=name, title=title, axes=tuple(axes))
        self._histograms[name] = hist
        return hist

    def fill(self, name: str, *values: float, weight: float = 1.0) -> bool:
        """Fill a registered histogram; unknown names raise KeyError."""
        return self._histograms[name].fill(*values, weight=weight)

    def get(self, name: str) -> Histogram:
        return self._histograms[name]

    def names(self) -> list[str]:
        return list(self._histograms)

    def __contains__(self, name: object) -> bool:
        return name in self._histograms

    def __iter__(self) -> Iterator[Histogram]:
        return iter(self._histograms.values())

    def __len__(self) -> int:
        return len(self._histograms)

    def merge(self, other: "HistogramRegistry") -> None:
        """Fold another registry in; histograms missing here are copied over."""
        for hist in other:
            mine = self._histograms.get(hist.name)
            if mine is None:
                mine = self.add(hist.name, hist.title, hist.axes)
            mine.merge(hist)


def _require_pandas():
    """Import pandas lazily and provide a clear installation hint on failure."""
    try:
        import pandas as pd  # type: ignore
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "pandas is required to export histogram tables. Install pandas and pyarrow."
        ) from exc
    return pd

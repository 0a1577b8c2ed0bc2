"""
Time-indexed checkpoint stores.

Every stateful component records its state at the end of each accepted step
in a :class:`TimeSeries`. A rewind is a :meth:`TimeSeries.truncate` followed by
reading the state back at the rewind date.

Biome-keyed state is stored as one immutable mapping per date in a
:class:`BiomeSeries`. Adding, removing or renaming a biome rewrites every
recorded date, sharing the values of the other biomes between the old and new
snapshots.
"""

from __future__ import annotations

import bisect
from collections.abc import Callable, Iterator, Mapping
from enum import Enum, auto
from types import MappingProxyType
from typing import Generic, TypeVar

from carbonbox.exceptions import BiomeError, TimeseriesError

__all__ = ["BiomeSeries", "Extrapolation", "TimeSeries"]

T = TypeVar("T")
V = TypeVar("V")


class Extrapolation(Enum):
    """Policy for lookups outside the recorded date range."""

    NONE = auto()
    CONSTANT = auto()


class TimeSeries(Generic[T]):
    """
    Ordered mapping from date to value.

    Parameters
    ----------
    name
        Label used in error messages
    interpolate
        Linearly interpolate between the two bracketing dates when a lookup
        date has no exact entry
    extrapolation
        What to do for lookups outside the recorded range
    """

    def __init__(
        self,
        name: str = "",
        *,
        interpolate: bool = False,
        extrapolation: Extrapolation = Extrapolation.NONE,
    ) -> None:
        self.name = name
        self.interpolate = interpolate
        self.extrapolation = extrapolation
        self._dates: list[float] = []
        self._values: dict[float, T] = {}

    def __len__(self) -> int:
        return len(self._dates)

    def __contains__(self, date: object) -> bool:
        return date in self._values

    def __iter__(self) -> Iterator[float]:
        return iter(list(self._dates))

    def __repr__(self) -> str:
        if not self._dates:
            return f"TimeSeries({self.name!r}, empty)"
        return (
            f"TimeSeries({self.name!r}, {len(self)} entries, "
            f"{self._dates[0]}..{self._dates[-1]})"
        )

    def set(self, date: float, value: T) -> None:
        """Insert a value, overwriting any existing entry at ``date``."""
        date = float(date)
        if date not in self._values:
            bisect.insort(self._dates, date)
        self._values[date] = value

    def exists(self, date: float) -> bool:
        """Whether an exact entry exists at ``date``."""
        return float(date) in self._values

    def in_range(self, date: float) -> bool:
        """Whether ``date`` lies within the recorded date range."""
        return bool(self._dates) and self._dates[0] <= date <= self._dates[-1]

    def firstdate(self) -> float:
        """The earliest recorded date."""
        self._require_data()
        return self._dates[0]

    def lastdate(self) -> float:
        """The latest recorded date."""
        self._require_data()
        return self._dates[-1]

    def dates(self) -> list[float]:
        """All recorded dates in increasing order."""
        return list(self._dates)

    def items(self) -> list[tuple[float, T]]:
        """``(date, value)`` pairs in increasing date order."""
        return [(d, self._values[d]) for d in self._dates]

    def get(self, date: float) -> T:
        """
        Look up the value at ``date``.

        Raises
        ------
        TimeseriesError
            If the series is empty, ``date`` is outside the recorded range and
            no extrapolation is allowed, or ``date`` has no exact entry and
            interpolation is disabled
        """
        date = float(date)
        if date in self._values:
            return self._values[date]
        self._require_data()

        first, last = self._dates[0], self._dates[-1]
        if date < first or date > last:
            if self.extrapolation is Extrapolation.CONSTANT:
                return self._values[first if date < first else last]
            msg = (
                f"Date {date} is outside the range of {self._label()} "
                f"[{first}, {last}]"
            )
            raise TimeseriesError(msg, name=self.name)

        if not self.interpolate:
            msg = f"No value at date {date} in {self._label()}"
            raise TimeseriesError(msg, name=self.name)

        idx = bisect.bisect_left(self._dates, date)
        lo, hi = self._dates[idx - 1], self._dates[idx]
        weight = (date - lo) / (hi - lo)
        lo_value, hi_value = self._values[lo], self._values[hi]
        return lo_value + (hi_value - lo_value) * weight  # type: ignore[operator]

    def truncate(self, date: float) -> None:
        """Discard every entry strictly after ``date``."""
        idx = bisect.bisect_right(self._dates, float(date))
        for dropped in self._dates[idx:]:
            del self._values[dropped]
        del self._dates[idx:]

    def rewrite(self, func: Callable[[T], T]) -> None:
        """Replace every recorded value with ``func(value)``."""
        for date in self._dates:
            self._values[date] = func(self._values[date])

    def _require_data(self) -> None:
        if not self._dates:
            msg = f"No data in {self._label()}"
            raise TimeseriesError(msg, name=self.name)

    def _label(self) -> str:
        return f"time series '{self.name}'" if self.name else "time series"


class BiomeSeries(TimeSeries[Mapping[str, V]]):
    """
    Time series of biome-keyed snapshots.

    Snapshots are stored as read-only mappings and are never mutated in place.
    """

    def __init__(self, name: str = "") -> None:
        super().__init__(name)

    def set(self, date: float, value: Mapping[str, V]) -> None:
        """Record a copy of ``value`` as an immutable snapshot."""
        super().set(date, MappingProxyType(dict(value)))

    def add_biome(self, biome: str, init_value: V) -> None:
        """
        Insert ``biome`` with ``init_value`` at every recorded date.

        Raises
        ------
        BiomeError
            If the biome already exists in the recorded data
        """
        if not self:
            return
        if biome in self.get(self.firstdate()):
            msg = f"Biome '{biome}' already exists in {self._label()}"
            raise BiomeError(msg, name=biome)

        def _add(snapshot: Mapping[str, V]) -> Mapping[str, V]:
            return MappingProxyType({**snapshot, biome: init_value})

        self.rewrite(_add)

    def remove_biome(self, biome: str) -> None:
        """Remove ``biome`` from every recorded date; absent biomes are ignored."""

        def _remove(snapshot: Mapping[str, V]) -> Mapping[str, V]:
            if biome not in snapshot:
                return snapshot
            return MappingProxyType({k: v for k, v in snapshot.items() if k != biome})

        self.rewrite(_remove)

    def rename_biome(self, old: str, new: str) -> None:
        """
        Move every recorded value of ``old`` to ``new``.

        Raises
        ------
        BiomeError
            If ``old`` is missing or ``new`` already exists
        """
        if not self:
            return
        first = self.get(self.firstdate())
        if old not in first:
            msg = f"Biome '{old}' not found in {self._label()}"
            raise BiomeError(msg, name=old)
        if new in first:
            msg = f"Biome '{new}' already exists in {self._label()}"
            raise BiomeError(msg, name=new)

        def _rename(snapshot: Mapping[str, V]) -> Mapping[str, V]:
            return MappingProxyType(
                {(new if k == old else k): v for k, v in snapshot.items()}
            )

        self.rewrite(_rename)

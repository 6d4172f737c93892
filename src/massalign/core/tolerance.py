"""Mass tolerances expressed either in Dalton or in parts per million."""
from dataclasses import dataclass
from enum import IntEnum
from typing import Union

import numpy as np


# Constants ------------------------------------------------------------------------------------------------------------
class ToleranceKind(IntEnum):
    """Unit of a tolerance."""
    ABSOLUTE = 0
    PPM = 1


# Classes --------------------------------------------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Tolerance:
    """
    A symmetric mass tolerance.

    Frozen, so it can be used as a cache key for the expanded block-mass ranges.

    Attributes:
        value: Size of the window, in Dalton or ppm depending on ``kind``.
        kind: Either ``ToleranceKind.ABSOLUTE`` or ``ToleranceKind.PPM`` (names are accepted).

    Examples:
        >>> Tolerance.ppm(10).within(114.042927, 114.042928)
        True
        >>> Tolerance.absolute(0.01).bounds(100.0)
        (99.99, 100.01)
    """
    value: float
    kind: Union[ToleranceKind, str, int] = ToleranceKind.PPM

    def __post_init__(self):
        if isinstance(self.kind, ToleranceKind): return
        if isinstance(self.kind, str):
            try: val = ToleranceKind[self.kind.upper()]
            except KeyError: raise ValueError(f"Invalid tolerance kind: {self.kind}")
        else:
            try: val = ToleranceKind(self.kind)
            except ValueError: raise ValueError(f"Invalid tolerance kind: {self.kind}")
        object.__setattr__(self, 'kind', val)

    @classmethod
    def ppm(cls, value: float) -> 'Tolerance': return cls(float(value), ToleranceKind.PPM)

    @classmethod
    def absolute(cls, value: float) -> 'Tolerance': return cls(float(value), ToleranceKind.ABSOLUTE)

    def __str__(self): return f"{self.value:g} {'ppm' if self.kind == ToleranceKind.PPM else 'Da'}"

    def bounds(self, mass: float) -> tuple[float, float]:
        """Returns the lowest and highest mass that are still within tolerance of ``mass``."""
        if self.kind == ToleranceKind.PPM:
            return mass * (1 - self.value * 1e-6), mass * (1 + self.value * 1e-6)
        return mass - self.value, mass + self.value

    def within(self, a, b) -> bool:
        """
        Checks whether any mass in ``b`` lies within the tolerance window of any mass in ``a``.

        Both arguments may be a single mass or a collection of candidate masses. An empty collection never
        matches anything.
        """
        a, b = np.atleast_1d(np.asarray(a, dtype=np.float64)), np.atleast_1d(np.asarray(b, dtype=np.float64))
        if a.size == 0 or b.size == 0: return False
        lo, hi = self.expand(a, a)
        return bool(np.any((b[None, :] >= lo[:, None]) & (b[None, :] <= hi[:, None])))

    def expand(self, lower: np.ndarray, upper: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """
        Widens a set of mass ranges by the tolerance.

        Degenerate ranges (``inf``, ``-inf``) stay degenerate so they never overlap anything.
        """
        if self.kind == ToleranceKind.PPM:
            return lower * (1 - self.value * 1e-6), upper * (1 + self.value * 1e-6)
        return lower - self.value, upper + self.value

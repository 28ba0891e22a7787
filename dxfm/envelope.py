"""Operator envelope timing, envelope curve geometry and program stepping."""

from __future__ import annotations

import sys
from typing import Iterable, Sequence

__all__ = [
    "PROGRAM_COUNT",
    "WheelStepper",
    "eg_duration",
    "envelope_durations",
    "envelope_points",
    "marker_indices",
    "step_program",
]

PROGRAM_COUNT = 32
_KEY_OFF_PADDING = 10.0
_MAX_LEVEL = 99.0

# Table entries are kept in units of 1/100000 and scaled on import.
_UNIT = 100_000


def _scaled(values: Iterable[int]) -> tuple[float, ...]:
    return tuple(v / _UNIT for v in values)


# Seconds for a rising segment, indexed by rate.
_RISE_DURATION = _scaled(
    [
        3800000, 3496000, 3192000, 2888000, 2584000, 2280000, 2064000, 1848000,
        1632000, 1416000, 1200000, 1110000, 1020000, 930000, 840000, 750000,
        696000, 642000, 588000, 534000, 480000, 438000, 396000, 354000,
        312000, 270000, 252000, 234000, 216000, 198000, 180000, 170000,
        160000, 150000, 140000, 130000, 122962, 115925, 108887, 101850,
        94813, 87775, 80737, 73700, 69633, 65567, 61500, 57833,
        54167, 50500, 47300, 44100, 40900, 37967, 35033, 32100,
        28083, 24067, 20050, 16033, 12017, 8000, 7583, 7167,
        6750, 6333, 5917, 5500, 4350, 3200, 2933, 2667,
        2400, 2200, 2000, 1800, 1667, 1533, 1400, 1300,
        1200, 1100, 1000, 900, 800, 800, 800, 800,
        767, 733, 700, 633, 567, 500, 433, 367,
    ]
    + [300] * 32
)

# Seconds for a falling segment, indexed by rate.
_DECAY_DURATION = _scaled(
    [
        31800000, 28375000, 24950000, 21525000, 18100000, 16780000, 15460001, 14139999,
        12820000, 11500000, 10460000, 9420000, 8380000, 7340000, 6300000, 5834000,
        5368000, 4902000, 4436000, 3970000, 3576000, 3182000, 2788000, 2394000,
        2000000, 1824000, 1648000, 1472000, 1296000, 1120000, 1036000, 952000,
        868000, 784000, 700000, 683250, 666500, 649750, 633000, 616250,
        599500, 582750, 566000, 510000, 454000, 398000, 364833, 331667,
        298500, 265333, 232167, 199000, 177333, 155667, 134000, 122333,
        110667, 99000, 89667, 80333, 71000, 65000, 59000, 53000,
        47000, 41000, 32333, 23667, 15000, 12700, 10400, 8100,
        7667, 7233, 6800, 6100, 5400, 4700, 4367, 4033,
        3700, 3300, 2900, 2500, 2333, 2167, 2000, 1767,
        1533, 1300, 1133, 967,
    ]
    + [800] * 36
)

# Rise and decay share the same level-to-percentage curve, linear in pieces.
_LEVEL_PERCENT = _scaled(
    [1] * 32
    + [501, 1001, 1500, 2000]
    + list(range(2800, 14001, 800))
    + list(range(15000, 24001, 1000))
    + list(range(25100, 35001, 1100))
    + list(range(36500, 50001, 1500))
    + list(range(52000, 70001, 2000))
    + list(range(73200, 86001, 3200))
    + list(range(89500, 100001, 3500))
    + [_UNIT] * 28
)


def _check_index(name: str, value: int) -> int:
    if not 0 <= value < 128:
        raise ValueError(f"{name} must be between 0 and 127, got {value}")
    return value


def eg_duration(rate: int, level_from: int, level_to: int) -> float:
    """Return the approximate time in seconds for an envelope segment."""
    _check_index("rate", rate)
    _check_index("level", level_from)
    _check_index("level", level_to)
    table = _RISE_DURATION if level_to > level_from else _DECAY_DURATION
    return table[rate] * abs(_LEVEL_PERCENT[level_to] - _LEVEL_PERCENT[level_from])


def _check_four(name: str, values: Sequence[int]) -> None:
    if len(values) != 4:
        raise ValueError(f"expected 4 {name}, got {len(values)}")


def envelope_durations(rates: Sequence[int], levels: Sequence[int]) -> tuple[float, float, float, float]:
    """Return the durations of the four segments; segment 1 starts from level 4."""
    _check_four("rates", rates)
    _check_four("levels", levels)
    previous = levels[3]
    durations = []
    for rate, level in zip(rates, levels):
        durations.append(eg_duration(rate, previous, level))
        previous = level
    return tuple(durations)  # type: ignore[return-value]


def envelope_points(
    rates: Sequence[int], levels: Sequence[int], width: float, height: float
) -> list[tuple[float, float]]:
    """Return the six corner points of the envelope curve scaled to ``width`` x ``height``.

    Points are the start, the ends of segments 1 to 3, the key-off point and the
    end of the release. The first five are whole pixels; the sustain stage is
    padded by ten seconds before key-off.
    """
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")
    d0, d1, d2, d3 = envelope_durations(rates, levels)
    keyoff = d0 + d1 + d2 + _KEY_OFF_PADDING
    release = max(d3, 0.0)
    scale = width / (keyoff + release)

    def level_y(level: int) -> float:
        return height - height / _MAX_LEVEL * level

    points: list[tuple[float, float]] = [
        (0, int(level_y(levels[3]))),
        (int(d0 * scale), int(level_y(levels[0]))),
        (int((d0 + d1) * scale), int(level_y(levels[1]))),
        (int((d0 + d1 + d2) * scale), int(level_y(levels[2]))),
        (int(keyoff * scale), int(level_y(levels[2]))),
        ((d0 + d1 + d2 + keyoff + d3) * scale, level_y(levels[3])),
    ]
    return points


def marker_indices(vpos: int) -> tuple[int, ...]:
    """Return the indices of the curve points highlighted for envelope stage ``vpos``."""
    if not 0 <= vpos <= 4:
        return ()
    return tuple(i for i in range(5) if vpos == i or (i < 4 and vpos == i + 1))


def step_program(index: int, delta: int) -> int:
    """Move ``delta`` programs from ``index``, wrapping around the 32 program slots."""
    return (index + delta) % PROGRAM_COUNT


class WheelStepper:
    """Turns accumulated mouse-wheel motion into single program steps."""

    def __init__(self, wheel_factor: float | None = None, natural: bool | None = None) -> None:
        if wheel_factor is None:
            wheel_factor = 0.4 if sys.platform.startswith("win") else 0.2
        if wheel_factor <= 0:
            raise ValueError(f"wheel factor must be positive, got {wheel_factor}")
        if natural is None:
            natural = sys.platform == "darwin"
        self.wheel_factor = wheel_factor
        self.natural = natural
        self.accumulated = 0.0

    def reset(self) -> None:
        """Forget any accumulated wheel motion."""
        self.accumulated = 0.0

    def feed(self, index: int, delta_y: float) -> int:
        """Add wheel motion and return the program index it leads to."""
        self.accumulated += delta_y
        factor = self.wheel_factor
        up = self.accumulated > factor
        down = self.accumulated < -factor
        sign = 1
        if not self.natural:
            up, down = down, up
            sign = -1
        if up:
            self.accumulated -= sign * factor
            return step_program(index, 1)
        if down:
            self.accumulated += sign * factor
            return step_program(index, -1)
        return index
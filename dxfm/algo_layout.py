"""Grid layout and line drawing of the 32 six-operator FM algorithm diagrams."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

__all__ = [
    "CELL_HEIGHT",
    "CELL_WIDTH",
    "LABEL_HEIGHT",
    "LABEL_WIDTH",
    "LINE_WIDTH",
    "Feedback",
    "Link",
    "OperatorGlyph",
    "Segment",
    "algorithm_layout",
    "is_operator_on",
]

CELL_WIDTH = 25
CELL_HEIGHT = 21
LABEL_WIDTH = 16
LABEL_HEIGHT = 12
LINE_WIDTH = 3
_OFFSET_X = 3
_OFFSET_Y = 5

Segment = tuple[tuple[int, int], tuple[int, int]]


class Link(IntEnum):
    """How an operator's output connects to the cell below or beside it."""

    DOWN = 0
    RIGHT = 1
    RIGHT_JOIN = 2
    RIGHT_AND_DOWN = 3
    BOTH_AND_DOWN = 4
    RIGHT_WIDE = 6
    LEFT = 7


class Feedback(IntEnum):
    """The shape of the feedback loop drawn around an operator."""

    NONE = 0
    SELF = 1
    ALGO4 = 2
    ALGO6 = 3
    LEFT = 4


@dataclass(frozen=True)
class OperatorGlyph:
    """One operator box in an algorithm diagram, placed on a grid cell."""

    op_id: int
    column: int
    row: int
    link: Link = Link.DOWN
    feedback: Feedback = Feedback.NONE

    def origin(self) -> tuple[int, int]:
        """Return the pixel position of the operator's label box."""
        return (self.column * CELL_WIDTH + _OFFSET_X, self.row * CELL_HEIGHT + _OFFSET_Y)

    def lines(self) -> list[Segment]:
        """Return the line segments for the link and feedback of this operator."""
        x, y = self.origin()
        segments: list[Segment] = []
        link = self.link
        if link is Link.DOWN:
            segments.append(((x + 8, y + 12), (x + 8, y + 21)))
        elif link is Link.RIGHT:
            segments.append(((x + 8, y + 12), (x + 8, y + 18)))
            segments.append(((x + 7, y + 18), (x + 34, y + 18)))
        elif link is Link.RIGHT_JOIN:
            segments.append(((x + 8, y + 12), (x + 8, y + 19)))
        elif link in (Link.RIGHT_AND_DOWN, Link.BOTH_AND_DOWN):
            segments.append(((x + 8, y + 12), (x + 8, y + 21)))
            segments.append(((x + 7, y + 18), (x + 34, y + 18)))
            segments.append(((x + 34, y + 17), (x + 34, y + 21)))
            if link is Link.BOTH_AND_DOWN:
                segments.append(((x - 17, y + 18), (x + 8, y + 18)))
                segments.append(((x - 17, y + 17), (x - 17, y + 21)))
        elif link is Link.RIGHT_WIDE:
            segments.append(((x + 8, y + 12), (x + 8, y + 18)))
            segments.append(((x + 7, y + 18), (x + 58, y + 18)))
        elif link is Link.LEFT:
            segments.append(((x + 8, y + 12), (x + 8, y + 19)))
            segments.append(((x - 17, y + 18), (x + 9, y + 18)))

        fb = self.feedback
        if fb is Feedback.SELF:
            segments.extend([
                ((x + 7, y), (x + 8, y - 5)),
                ((x + 8, y - 4), (x + 21, y - 4)),
                ((x + 20, y - 4), (x + 20, y + 15)),
                ((x + 19, y + 15), (x + 20, y + 16)),
                ((x + 8, y + 15), (x + 20, y + 15)),
            ])
        elif fb in (Feedback.ALGO4, Feedback.ALGO6):
            depth = 58 if fb is Feedback.ALGO4 else 36
            segments.extend([
                ((x + 7, y), (x + 8, y - 5)),
                ((x + 8, y - 4), (x + 20, y - 4)),
                ((x + 19, y - 4), (x + 19, y + depth + 1)),
                ((x + 8, y + depth), (x + 19, y + depth)),
            ])
        elif fb is Feedback.LEFT:
            segments.extend([
                ((x + 7, y), (x + 8, y - 5)),
                ((x + 8, y - 4), (x - 4, y - 4)),
                ((x - 3, y - 4), (x - 3, y + 15)),
                ((x - 3, y + 15), (x + 8, y + 15)),
                ((x + 8, y + 15), (x + 8, y + 12)),
            ])
        return segments


# Each entry lists operators 6 down to 1 as "column row link feedback" digits.
_LAYOUTS = (
    "3001 3100 3200 3320 2200 2310",
    "3000 3100 3200 3320 2201 2310",
    "3101 3200 3320 2100 2200 2310",
    "3102 3200 3320 2100 2200 2310",
    "4201 4320 3200 3310 2200 2310",
    "4203 4320 3200 3310 2200 2310",
    "4101 4270 3200 3320 2200 2310",
    "4100 4270 3204 3320 2200 2310",
    "4100 4270 3200 3320 2201 2310",
    "2200 1210 2310 3101 3200 3320",
    "2201 1210 2310 3100 3200 3320",
    "3270 2200 1210 2360 4201 4320",
    "3271 2200 1210 2360 4200 4320",
    "4171 3100 3200 3320 2200 2310",
    "4170 3100 3200 3320 2204 2310",
    "4101 4270 3100 3200 2210 3300",
    "4100 4270 3100 3200 2214 3300",
    "4000 4100 4270 3204 2210 3300",
    "3231 4320 3310 2100 2200 2310",
    "4200 3210 4320 1231 2360 1310",
    "3230 4320 3310 1231 2310 1310",
    "3241 4320 3310 2310 1200 1310",
    "3231 4320 3310 2200 2310 1310",
    "3241 4320 3310 2310 1310 0310",
    "3231 4320 3310 2310 1310 0310",
    "4201 3210 4320 2200 2360 1310",
    "4200 3210 4320 2201 2360 1310",
    "4320 3101 3200 3310 2200 2310",
    "4201 4320 3200 3310 2310 1310",
    "4320 3101 3200 3310 2310 1310",
    "4201 4320 3310 2310 1310 0310",
    "5321 4310 3310 2310 1310 0310",
)


def _parse(entry: str) -> tuple[OperatorGlyph, ...]:
    return tuple(
        OperatorGlyph(
            op_id=op_id,
            column=int(cell[0]),
            row=int(cell[1]),
            link=Link(int(cell[2])),
            feedback=Feedback(int(cell[3])),
        )
        for op_id, cell in zip(range(6, 0, -1), entry.split())
    )


_ALGORITHMS = tuple(_parse(entry) for entry in _LAYOUTS)


def algorithm_layout(algorithm: int) -> tuple[OperatorGlyph, ...]:
    """Return the operator glyphs of a zero-based algorithm, operator 6 first.

    An algorithm number outside 0..31 has no diagram and yields an empty tuple.
    """
    if 0 <= algorithm < len(_ALGORITHMS):
        return _ALGORITHMS[algorithm]
    return ()


def is_operator_on(op_status: str, op_id: int) -> bool:
    """Tell whether operator ``op_id`` (1..6) is enabled in a six-character switch string.

    The string lists operators 6 down to 1, with '1' marking an enabled one.
    """
    if not 1 <= op_id <= 6:
        raise ValueError(f"operator id must be between 1 and 6, got {op_id}")
    if len(op_status) < 6:
        raise ValueError(f"operator status must have 6 characters, got {len(op_status)}")
    return op_status[6 - op_id] == "1"
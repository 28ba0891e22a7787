"""OPL-style FM operator engine working on log-sine and exponent tables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

SIGN_BIT = 0x8000
OUT_BUS_ADD = 0x04
FEEDBACK_FLAGS = 0xC0
OPERATOR_COUNT = 6

_LEVEL_THRESHOLD = 507

SIN_LOG_TABLE: tuple[int, ...] = (
    2137, 1731, 1543, 1419, 1326, 1252, 1190, 1137, 1091, 1050, 1013, 979, 949, 920, 894, 869,
    846, 825, 804, 785, 767, 749, 732, 717, 701, 687, 672, 659, 646, 633, 621, 609,
    598, 587, 576, 566, 556, 546, 536, 527, 518, 509, 501, 492, 484, 476, 468, 461,
    453, 446, 439, 432, 425, 418, 411, 405, 399, 392, 386, 380, 375, 369, 363, 358,
    352, 347, 341, 336, 331, 326, 321, 316, 311, 307, 302, 297, 293, 289, 284, 280,
    276, 271, 267, 263, 259, 255, 251, 248, 244, 240, 236, 233, 229, 226, 222, 219,
    215, 212, 209, 205, 202, 199, 196, 193, 190, 187, 184, 181, 178, 175, 172, 169,
    167, 164, 161, 159, 156, 153, 151, 148, 146, 143, 141, 138, 136, 134, 131, 129,
    127, 125, 122, 120, 118, 116, 114, 112, 110, 108, 106, 104, 102, 100, 98, 96,
    94, 92, 91, 89, 87, 85, 83, 82, 80, 78, 77, 75, 74, 72, 70, 69,
    67, 66, 64, 63, 62, 60, 59, 57, 56, 55, 53, 52, 51, 49, 48, 47,
    46, 45, 43, 42, 41, 40, 39, 38, 37, 36, 35, 34, 33, 32, 31, 30,
    29, 28, 27, 26, 25, 24, 23, 23, 22, 21, 20, 20, 19, 18, 17, 17,
    16, 15, 15, 14, 13, 13, 12, 12, 11, 10, 10, 9, 9, 8, 8, 7,
    7, 7, 6, 6, 5, 5, 5, 4, 4, 4, 3, 3, 3, 2, 2, 2,
    2, 1, 1, 1, 1, 1, 1, 1, 0, 0, 0, 0, 0, 0, 0, 0,
)

SIN_EXP_TABLE: tuple[int, ...] = (
    0, 3, 6, 8, 11, 14, 17, 20, 22, 25, 28, 31, 34, 37, 40, 42,
    45, 48, 51, 54, 57, 60, 63, 66, 69, 72, 75, 78, 81, 84, 87, 90,
    93, 96, 99, 102, 105, 108, 111, 114, 117, 120, 123, 126, 130, 133, 136, 139,
    142, 145, 148, 152, 155, 158, 161, 164, 168, 171, 174, 177, 181, 184, 187, 190,
    194, 197, 200, 204, 207, 210, 214, 217, 220, 224, 227, 231, 234, 237, 241, 244,
    248, 251, 255, 258, 262, 265, 268, 272, 276, 279, 283, 286, 290, 293, 297, 300,
    304, 308, 311, 315, 318, 322, 326, 329, 333, 337, 340, 344, 348, 352, 355, 359,
    363, 367, 370, 374, 378, 382, 385, 389, 393, 397, 401, 405, 409, 412, 416, 420,
    424, 428, 432, 436, 440, 444, 448, 452, 456, 460, 464, 468, 472, 476, 480, 484,
    488, 492, 496, 501, 505, 509, 513, 517, 521, 526, 530, 534, 538, 542, 547, 551,
    555, 560, 564, 568, 572, 577, 581, 585, 590, 594, 599, 603, 607, 612, 616, 621,
    625, 630, 634, 639, 643, 648, 652, 657, 661, 666, 670, 675, 680, 684, 689, 693,
    698, 703, 708, 712, 717, 722, 726, 731, 736, 741, 745, 750, 755, 760, 765, 770,
    774, 779, 784, 789, 794, 799, 804, 809, 814, 819, 824, 829, 834, 839, 844, 849,
    854, 859, 864, 869, 874, 880, 885, 890, 895, 900, 906, 911, 916, 921, 927, 932,
    937, 942, 948, 953, 959, 964, 969, 975, 980, 986, 991, 996, 1002, 1007, 1013, 1018,
)


def _wrap32(value: int) -> int:
    """Wrap an integer to the signed 32-bit range."""
    return ((value + 0x80000000) & 0xFFFFFFFF) - 0x80000000


def sin_log(phi: int) -> int:
    """Return the log-sine attenuation of a 10-bit phase, with the sign in bit 15."""
    phi &= 0xFFFF
    index = phi & 0xFF
    quadrant = phi & 0x0300
    if quadrant == 0x0000:
        return SIN_LOG_TABLE[index]
    if quadrant == 0x0100:
        return SIN_LOG_TABLE[index ^ 0xFF]
    if quadrant == 0x0200:
        return SIN_LOG_TABLE[index] | SIGN_BIT
    return SIN_LOG_TABLE[index ^ 0xFF] | SIGN_BIT


def opl_sin(phase: int, env: int) -> int:
    """Return the OPL sine output for a 10-bit phase attenuated by ``env``.

    Every 16 envelope units are roughly 3 dB and halve the output.
    """
    exp_val = (sin_log(phase) + ((env & 0xFFFF) << 3)) & 0xFFFF
    negative = bool(exp_val & SIGN_BIT)
    exp_val &= 0x7FFF
    result = (0x0400 + SIN_EXP_TABLE[(exp_val & 0xFF) ^ 0xFF]) << 1
    result >>= exp_val >> 8
    # one's complement for the negative half
    return -result - 1 if negative else result


@dataclass
class OperatorParams:
    """Per-operator state: target level in, last gain out, frequency and phase."""

    level_in: int = 0
    gain_out: int = 0
    freq: int = 0
    phase: int = 0


@dataclass
class FeedbackState:
    """The last two outputs of a feedback operator."""

    y0: int = 0
    y: int = 0


class OplEngine:
    """Renders six-operator FM blocks with OPL-style table lookups."""

    def __init__(self, algorithms: Sequence[Sequence[int]], block_size: int = 64) -> None:
        if block_size <= 0 or block_size & (block_size - 1):
            raise ValueError(f"block size must be a positive power of two, got {block_size}")
        self.algorithms = [tuple(ops) for ops in algorithms]
        for number, ops in enumerate(self.algorithms):
            if len(ops) != OPERATOR_COUNT:
                raise ValueError(
                    f"algorithm {number} has {len(ops)} operators, expected {OPERATOR_COUNT}"
                )
        self.block_size = block_size
        self.lg_n = block_size.bit_length() - 1
        self._buses = [[0] * block_size, [0] * block_size]

    def _gain_step(self, gain1: int, gain2: int) -> int:
        return (gain2 - gain1 + (self.block_size >> 1)) >> self.lg_n

    def _adder(self, add_to: Sequence[int] | None) -> Sequence[int]:
        if add_to is None:
            return [0] * self.block_size
        if len(add_to) != self.block_size:
            raise ValueError(f"expected {self.block_size} samples, got {len(add_to)}")
        return add_to

    def compute(self, inputs, phase0, freq, gain1, gain2, add_to=None):
        """Render one modulated operator block, optionally summed onto ``add_to``."""
        if len(inputs) != self.block_size:
            raise ValueError(f"expected {self.block_size} input samples, got {len(inputs)}")
        dgain = self._gain_step(gain1, gain2)
        gain = gain1
        phase = phase0
        out = []
        for modulation, extra in zip(inputs, self._adder(add_to)):
            gain += dgain
            y = opl_sin(_wrap32(phase + modulation) >> 14, gain)
            out.append(_wrap32((y << 14) + extra))
            phase = _wrap32(phase + freq)
        return out

    def compute_pure(self, phase0, freq, gain1, gain2, add_to=None):
        """Render one unmodulated operator block."""
        dgain = self._gain_step(gain1, gain2)
        gain = gain1
        phase = phase0
        out = []
        for extra in self._adder(add_to):
            gain += dgain
            y = opl_sin(phase >> 14, gain)
            out.append(_wrap32((y << 14) + extra))
            phase = _wrap32(phase + freq)
        return out

    def compute_fb(self, phase0, freq, gain1, gain2, fb_state, fb_shift, add_to=None):
        """Render one self-modulating operator block, updating ``fb_state``."""
        dgain = self._gain_step(gain1, gain2)
        gain = gain1
        phase = phase0
        y0, y = fb_state.y0, fb_state.y
        out = []
        for extra in self._adder(add_to):
            gain += dgain
            scaled_fb = (y0 + y) >> (fb_shift + 1)
            y0 = y
            y = _wrap32(opl_sin(_wrap32(phase + scaled_fb) >> 14, gain) << 14)
            out.append(_wrap32(y + extra))
            phase = _wrap32(phase + freq)
        fb_state.y0, fb_state.y = y0, y
        return out

    def render(self, params, algorithm, fb_state, feedback_shift):
        """Render all six operators of ``algorithm`` and return the output block.

        Operator gains and phases in ``params`` are advanced in place.
        """
        ops = self.algorithms[algorithm]
        if len(params) != OPERATOR_COUNT:
            raise ValueError(f"expected {OPERATOR_COUNT} operators, got {len(params)}")
        output = [0] * self.block_size
        has_contents = [True, False, False]
        for flags, param in zip(ops, params):
            add = bool(flags & OUT_BUS_ADD)
            inbus = (flags >> 4) & 3
            outbus = flags & 3
            target = output if outbus == 0 else self._buses[outbus - 1]
            gain1 = 511 if param.gain_out == 0 else param.gain_out
            gain2 = 512 - (param.level_in >> 19)
            param.gain_out = gain2

            if gain1 <= _LEVEL_THRESHOLD or gain2 <= _LEVEL_THRESHOLD:
                if not has_contents[outbus]:
                    add = False
                add_to = target if add else None
                if inbus == 0 or not has_contents[inbus]:
                    if (flags & FEEDBACK_FLAGS) == FEEDBACK_FLAGS and feedback_shift < 16:
                        samples = self.compute_fb(
                            param.phase, param.freq, gain1, gain2,
                            fb_state, feedback_shift, add_to,
                        )
                    else:
                        samples = self.compute_pure(param.phase, param.freq, gain1, gain2, add_to)
                else:
                    samples = self.compute(
                        self._buses[inbus - 1], param.phase, param.freq, gain1, gain2, add_to
                    )
                target[:] = samples
                has_contents[outbus] = True
            elif not add:
                has_contents[outbus] = False
            param.phase = _wrap32(param.phase + (param.freq << self.lg_n))
        return output
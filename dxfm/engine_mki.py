"""Mark I FM operator engine using finer log-sine and exponent tables."""

from __future__ import annotations

import math
import struct
from itertools import islice
from typing import Sequence

from dxfm.engine_opl import (
    FEEDBACK_FLAGS,
    OPERATOR_COUNT,
    OUT_BUS_ADD,
    FeedbackState,
    OperatorParams,
    OplEngine,
)

__all__ = [
    "ENV_BITDEPTH",
    "ENV_MAX",
    "FeedbackState",
    "MkiEngine",
    "OperatorParams",
    "SIN_EXP_TABLE",
    "SIN_LOG_TABLE",
    "build_sin_exp_table",
    "build_sin_log_table",
    "mki_sin",
]

NEGATIVE_BIT = 0x8000
ENV_BITDEPTH = 14
ENV_MAX = 1 << ENV_BITDEPTH

SINLOG_BITDEPTH = 10
SINLOG_TABLESIZE = 1 << SINLOG_BITDEPTH
SINEXP_BITDEPTH = 10
SINEXP_TABLESIZE = 1 << SINEXP_BITDEPTH

_LEVEL_THRESHOLD = ENV_MAX - 100
_FEEDBACK_OPERATOR = 0xC4
_ALGO_THREE_OP_FEEDBACK = 3
_ALGO_TWO_OP_FEEDBACK = 5
_ALGO_ALL_CARRIERS = 31


def _wrap32(value: int) -> int:
    """Wrap an integer to the signed 32-bit range."""
    return ((value + 0x80000000) & 0xFFFFFFFF) - 0x80000000


def _float32(value: float) -> float:
    """Round a double to single precision."""
    return struct.unpack("f", struct.pack("f", value))[0]


def _round_half_away(value: float) -> int:
    return math.floor(value + 0.5) if value >= 0 else math.ceil(value - 0.5)


def build_sin_log_table() -> tuple[int, ...]:
    """Return the quarter-wave table of -1024 * log2(sin) samples."""
    table = []
    for i in range(SINLOG_TABLESIZE):
        x1 = _float32(math.sin(((0.5 + i) / SINLOG_TABLESIZE) * math.pi / 2.0))
        table.append(_round_half_away(-1024 * math.log2(x1)) & 0xFFFF)
    return tuple(table)


def build_sin_exp_table() -> tuple[int, ...]:
    """Return the table of (2 ** (i / 1024) - 1) * 4096 samples."""
    table = []
    for i in range(SINEXP_TABLESIZE):
        exponent = _float32(_float32(float(i)) / SINEXP_TABLESIZE)
        x1 = _float32((math.pow(2, exponent) - 1) * 4096)
        table.append(_round_half_away(x1) & 0xFFFF)
    return tuple(table)


SIN_LOG_TABLE = build_sin_log_table()
SIN_EXP_TABLE = build_sin_exp_table()


def _sin_log(phi: int) -> int:
    index = phi & (SINLOG_TABLESIZE - 1)
    quadrant = phi & (SINLOG_TABLESIZE * 3)
    if quadrant == 0:
        return SIN_LOG_TABLE[index]
    if quadrant == SINLOG_TABLESIZE:
        return SIN_LOG_TABLE[index ^ (SINLOG_TABLESIZE - 1)]
    if quadrant == SINLOG_TABLESIZE * 2:
        return SIN_LOG_TABLE[index] | NEGATIVE_BIT
    return SIN_LOG_TABLE[index ^ (SINLOG_TABLESIZE - 1)] | NEGATIVE_BIT


def mki_sin(phase: int, env: int) -> int:
    """Return the sine of a 24-bit phase attenuated by a 14-bit envelope, scaled by 2**13."""
    phi = (_wrap32(phase) >> (22 - SINLOG_BITDEPTH)) & 0xFFFF
    exp_val = (_sin_log(phi) + (env & 0xFFFF)) & 0xFFFF
    negative = bool(exp_val & NEGATIVE_BIT)
    exp_val &= ~NEGATIVE_BIT & 0xFFFF
    result = 4096 + SIN_EXP_TABLE[(exp_val & 0x3FF) ^ 0x3FF]
    result = (result >> (exp_val >> 10)) & 0xFFFF
    if negative:
        return _wrap32((-result - 1) << 13)
    return result << 13


class MkiEngine(OplEngine):
    """Renders six-operator FM blocks, with multi-operator feedback for algorithms 4 and 6."""

    def __init__(self, algorithms: Sequence[Sequence[int]], block_size: int = 64) -> None:
        super().__init__(algorithms, block_size)

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
            y = mki_sin(phase + modulation, gain)
            out.append(_wrap32(y + extra))
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
            y = mki_sin(phase, gain)
            out.append(_wrap32(y + extra))
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
            y = mki_sin(phase + scaled_fb, gain)
            out.append(_wrap32(y + extra))
            phase = _wrap32(phase + freq)
        fb_state.y0, fb_state.y = y0, y
        return out

    def _compute_chain(self, params, count, gain01, gain02, fb_state, fb_shift):
        """Render a feedback loop running through the first ``count`` operators."""
        if len(params) < count:
            raise ValueError(f"expected at least {count} operators, got {len(params)}")
        chain = params[:count]
        gains = [gain01]
        dgains = [self._gain_step(gain01, gain02)]
        for param in chain[1:]:
            param.gain_out = ENV_MAX - (param.level_in >> (28 - ENV_BITDEPTH))
            start = ENV_MAX - 1 if param.gain_out == 0 else param.gain_out
            gains.append(start)
            dgains.append(param.gain_out - start)
        phases = [param.phase for param in chain]
        freqs = [param.freq for param in chain]

        y0, y = fb_state.y0, fb_state.y
        out = []
        for _ in range(self.block_size):
            scaled_fb = (y0 + y) >> (fb_shift + 1)
            gains[0] += dgains[0]
            y0 = y
            y = mki_sin(phases[0] + scaled_fb, gains[0])
            phases[0] = _wrap32(phases[0] + freqs[0])
            for k in range(1, count):
                gains[k] += dgains[k]
                y = mki_sin(phases[k] + y, gains[k])
                phases[k] = _wrap32(phases[k] + freqs[k])
            out.append(y)
        fb_state.y0, fb_state.y = y0, y
        return out

    def compute_fb2(self, params, gain01, gain02, fb_state, fb_shift):
        """Render the two-operator feedback loop of algorithm 6."""
        return self._compute_chain(params, 2, gain01, gain02, fb_state, fb_shift)

    def compute_fb3(self, params, gain01, gain02, fb_state, fb_shift):
        """Render the three-operator feedback loop of algorithm 4."""
        return self._compute_chain(params, 3, gain01, gain02, fb_state, fb_shift)

    def _advance(self, param: OperatorParams) -> None:
        param.phase = _wrap32(param.phase + (param.freq << self.lg_n))

    def render(self, params, algorithm, fb_state, feedback_shift):
        """Render all six operators of ``algorithm`` and return the output block.

        Operator gains and phases in ``params`` are advanced in place.
        """
        ops = list(self.algorithms[algorithm])
        if len(params) != OPERATOR_COUNT:
            raise ValueError(f"expected {OPERATOR_COUNT} operators, got {len(params)}")
        fb_on = feedback_shift < 16
        if algorithm in (_ALGO_THREE_OP_FEEDBACK, _ALGO_TWO_OP_FEEDBACK) and fb_on:
            ops[0] = _FEEDBACK_OPERATOR
        boosted_shift = min(feedback_shift + 2, 16)

        output = [0] * self.block_size
        has_contents = [True, False, False]
        steps = iter(zip(ops, params))
        for flags, param in steps:
            add = bool(flags & OUT_BUS_ADD)
            inbus = (flags >> 4) & 3
            outbus = flags & 3
            target = output if outbus == 0 else self._buses[outbus - 1]
            gain1 = ENV_MAX - 1 if param.gain_out == 0 else param.gain_out
            gain2 = ENV_MAX - (param.level_in >> (28 - ENV_BITDEPTH))
            param.gain_out = gain2

            if gain1 <= _LEVEL_THRESHOLD or gain2 <= _LEVEL_THRESHOLD:
                if not has_contents[outbus]:
                    add = False
                add_to = target if add else None
                if inbus == 0 or not has_contents[inbus]:
                    if (flags & FEEDBACK_FLAGS) == FEEDBACK_FLAGS and fb_on:
                        if algorithm == _ALGO_THREE_OP_FEEDBACK:
                            samples = self.compute_fb3(
                                params, gain1, gain2, fb_state, boosted_shift
                            )
                            for chained in params[1:3]:
                                self._advance(chained)
                            for _ in islice(steps, 2):
                                pass
                        elif algorithm == _ALGO_TWO_OP_FEEDBACK:
                            samples = self.compute_fb2(
                                params, gain1, gain2, fb_state, boosted_shift
                            )
                            self._advance(params[1])
                            next(steps, None)
                        elif algorithm == _ALGO_ALL_CARRIERS:
                            samples = self.compute_fb(
                                param.phase, param.freq, gain1, gain2,
                                fb_state, boosted_shift, add_to,
                            )
                        else:
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
            self._advance(param)
        return output
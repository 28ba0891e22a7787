import pytest

from dxfm.engine_opl import (
    SIGN_BIT,
    SIN_LOG_TABLE,
    FeedbackState,
    OperatorParams,
    OplEngine,
    opl_sin,
    sin_log,
)

N = 16
SILENT = 0x04  # add to bus 0
LOUD_LEVEL = 400 << 19
FREQ = 1 << 20


def make_engine(*algorithms):
    return OplEngine(list(algorithms), block_size=N)


def silent_params():
    return [OperatorParams() for _ in range(6)]


def test_sin_log_quadrants():
    assert sin_log(0) == 2137
    assert sin_log(0x0FF) == 0
    assert sin_log(0x100) == SIN_LOG_TABLE[0xFF]
    assert sin_log(0x200) == 2137 | SIGN_BIT
    assert sin_log(0x3FF) == SIN_LOG_TABLE[0] | SIGN_BIT


def test_sin_log_ignores_upper_phase_bits():
    for phi in (0, 17, 0x155, 0x2AB, 0x3FF):
        assert sin_log(phi + 0x400) == sin_log(phi)


def test_opl_sin_peak():
    assert opl_sin(0xFF, 0) == 4084
    assert max(opl_sin(p, 0) for p in range(1024)) == 4084


def test_opl_sin_negative_half_is_ones_complement():
    for env in (0, 10, 100):
        for p in range(0, 0x200, 7):
            assert opl_sin(p + 0x200, env) == -opl_sin(p, env) - 1


def test_block_size_must_be_power_of_two():
    with pytest.raises(ValueError):
        OplEngine([], block_size=24)


def test_algorithm_needs_six_operators():
    with pytest.raises(ValueError):
        OplEngine([(0, 0, 0)], block_size=N)


def test_compute_with_zero_input_matches_pure():
    engine = make_engine()
    pure = engine.compute_pure(123456, FREQ, 511, 100, None)
    modulated = engine.compute([0] * N, 123456, FREQ, 511, 100, None)
    assert modulated == pure
    assert len(pure) == N


def test_compute_adds_onto_existing_samples():
    engine = make_engine()
    base = engine.compute_pure(0, FREQ, 300, 100, None)
    extra = list(range(N))
    summed = engine.compute_pure(0, FREQ, 300, 100, extra)
    assert summed == [a + b for a, b in zip(base, extra)]


def test_compute_rejects_wrong_length():
    engine = make_engine()
    with pytest.raises(ValueError):
        engine.compute([0] * (N - 1), 0, FREQ, 0, 0, None)


def test_compute_fb_updates_state():
    engine = make_engine()
    state = FeedbackState()
    out = engine.compute_fb(0, FREQ, 200, 100, state, 3, None)
    assert state.y == out[-1]
    assert state.y0 == out[-2]


def test_compute_fb_with_zero_history_first_sample_matches_pure():
    engine = make_engine()
    state = FeedbackState()
    fb = engine.compute_fb(0, FREQ, 200, 100, state, 20, None)
    pure = engine.compute_pure(0, FREQ, 200, 100, None)
    assert fb[0] == pure[0]


def test_render_silent_operators_produce_silence_and_advance():
    engine = make_engine((SILENT,) * 6)
    params = silent_params()
    for p in params:
        p.freq = FREQ
    out = engine.render(params, 0, FeedbackState(), 16)
    assert out == [0] * N
    for p in params:
        assert p.gain_out == 512
        assert p.phase == FREQ * N


def test_render_single_carrier_matches_compute_pure():
    engine = make_engine((0x00,) + (SILENT,) * 5)
    params = silent_params()
    params[0].level_in = LOUD_LEVEL
    params[0].freq = FREQ
    params[0].phase = 5000
    expected = engine.compute_pure(5000, FREQ, 511, 112, None)
    out = engine.render(params, 0, FeedbackState(), 16)
    assert out == expected
    assert params[0].gain_out == 112


def test_render_feedback_carrier_matches_compute_fb():
    engine = make_engine((0xC0,) + (SILENT,) * 5)
    params = silent_params()
    params[0].level_in = LOUD_LEVEL
    params[0].freq = FREQ
    ref_state = FeedbackState(1000, -2000)
    expected = engine.compute_fb(0, FREQ, 511, 112, ref_state, 4, None)
    state = FeedbackState(1000, -2000)
    out = engine.render(params, 0, state, 4)
    assert out == expected
    assert state == ref_state


def test_render_feedback_disabled_at_shift_16():
    engine = make_engine((0xC0,) + (SILENT,) * 5)
    params = silent_params()
    params[0].level_in = LOUD_LEVEL
    params[0].freq = FREQ
    expected = engine.compute_pure(0, FREQ, 511, 112, None)
    state = FeedbackState(1000, -2000)
    assert engine.render(params, 0, state, 16) == expected
    assert state == FeedbackState(1000, -2000)


def test_render_modulator_chain():
    # op0 writes bus 1, op1 reads bus 1 and writes the output
    engine = make_engine((0x01, 0x10) + (SILENT,) * 4)
    params = silent_params()
    for p in params[:2]:
        p.level_in = LOUD_LEVEL
        p.freq = FREQ
    modulator = engine.compute_pure(0, FREQ, 511, 112, None)
    expected = engine.compute(modulator, 0, FREQ, 511, 112, None)
    assert engine.render(params, 0, FeedbackState(), 16) == expected


def test_render_rejects_unknown_algorithm():
    engine = make_engine((SILENT,) * 6)
    with pytest.raises(IndexError):
        engine.render(silent_params(), 1, FeedbackState(), 16)
import copy

import pytest

from dxfm.engine_mki import (
    ENV_MAX,
    SIN_EXP_TABLE,
    SIN_LOG_TABLE,
    FeedbackState,
    MkiEngine,
    OperatorParams,
    build_sin_exp_table,
    build_sin_log_table,
    mki_sin,
)

CARRIERS = (0xC4, 0x04, 0x04, 0x04, 0x04, 0x04)
CHAIN = (0xC1, 0x11, 0x14, 0x01, 0x11, 0x14)
ALGORITHMS = [CARRIERS] * 3 + [CHAIN] + [CARRIERS] + [CHAIN] + [CARRIERS] * 26

LOUD_LEVEL = 16000 << 14
FREQ = 1 << 18


def make_params(loud=()):
    return [
        OperatorParams(level_in=LOUD_LEVEL if i in loud else 0, freq=FREQ + i * 1000)
        for i in range(6)
    ]


@pytest.fixture
def engine():
    return MkiEngine(ALGORITHMS, 64)


def test_table_sizes_and_builders_agree():
    assert len(SIN_LOG_TABLE) == 1024
    assert len(SIN_EXP_TABLE) == 1024
    assert build_sin_log_table() == SIN_LOG_TABLE
    assert build_sin_exp_table() == SIN_EXP_TABLE


def test_table_end_values():
    exp_table = build_sin_exp_table()
    log_table = build_sin_log_table()
    assert exp_table[0] == 0
    assert log_table[-1] == 0


def test_tables_are_monotonic():
    log_table = build_sin_log_table()
    exp_table = build_sin_exp_table()
    assert all(a >= b for a, b in zip(log_table, log_table[1:]))
    assert all(a <= b for a, b in zip(exp_table, exp_table[1:]))
    assert max(exp_table) < 4096


def test_mki_sin_quarter_symmetry():
    for k in range(1024):
        assert mki_sin(k << 12, 0) == mki_sin((2047 - k) << 12, 0)


def test_mki_sin_half_wave_antisymmetry():
    for k in range(0, 2048, 37):
        p = k << 12
        assert mki_sin(p, 0) >= 0
        assert mki_sin(p + (1 << 23), 0) == -mki_sin(p, 0) - (1 << 13)


def test_mki_sin_is_periodic_and_scaled():
    for k in range(0, 4096, 101):
        p = k << 12
        assert mki_sin(p + (1 << 24), 200) == mki_sin(p, 200)
        assert mki_sin(p, 200) % (1 << 13) == 0


def test_mki_sin_attenuates_with_envelope():
    peak = 1023 << 12
    magnitudes = [abs(mki_sin(peak, env)) for env in range(0, 8000, 100)]
    assert all(a >= b for a, b in zip(magnitudes, magnitudes[1:]))
    assert magnitudes[0] > magnitudes[-1]


def test_block_size_must_be_power_of_two():
    with pytest.raises(ValueError):
        MkiEngine(ALGORITHMS, 48)


def test_compute_with_zero_input_matches_pure(engine):
    pure = engine.compute_pure(0, FREQ, 300, 400)
    modulated = engine.compute([0] * 64, 0, FREQ, 300, 400)
    assert modulated == pure
    assert any(sample != 0 for sample in pure)


def test_compute_rejects_wrong_input_length(engine):
    with pytest.raises(ValueError):
        engine.compute([0] * 10, 0, FREQ, 300, 400)


def test_compute_pure_adds_to_buffer(engine):
    base = engine.compute_pure(1234, FREQ, 500, 600)
    extra = list(range(64))
    summed = engine.compute_pure(1234, FREQ, 500, 600, extra)
    assert summed == [a + b for a, b in zip(base, extra)]


def test_compute_fb_updates_state(engine):
    state = FeedbackState()
    out = engine.compute_fb(0, FREQ, 300, 300, state, 3)
    assert state.y == out[-1]
    assert state.y0 == out[-2]


def test_compute_fb2_state_tracks_output(engine):
    params = make_params(loud=(0, 1))
    state = FeedbackState()
    out = engine.compute_fb2(params, 300, 300, state, 4)
    assert len(out) == 64
    assert state.y == out[-1]
    assert state.y0 == out[-2]
    assert params[1].gain_out == ENV_MAX - (LOUD_LEVEL >> 14)


def test_compute_fb3_sets_chained_gains(engine):
    params = make_params(loud=(0, 1, 2))
    state = FeedbackState()
    out = engine.compute_fb3(params, 300, 300, state, 4)
    assert state.y == out[-1]
    assert params[2].gain_out == ENV_MAX - (LOUD_LEVEL >> 14)
    assert params[0].phase == 0


def test_render_silent_voice(engine):
    params = make_params()
    out = engine.render(params, 0, FeedbackState(), 16)
    assert out == [0] * 64
    for param in params:
        assert param.phase == param.freq * 64
        assert param.gain_out == ENV_MAX


def test_render_single_carrier_without_feedback(engine):
    params = make_params(loud=(0,))
    out = engine.render(params, 0, FeedbackState(), 16)
    expected = engine.compute_pure(0, FREQ, ENV_MAX - 1, params[0].gain_out)
    assert out == expected


def test_render_single_carrier_with_feedback(engine):
    params = make_params(loud=(0,))
    state = FeedbackState()
    out = engine.render(params, 0, state, 3)
    ref_state = FeedbackState()
    expected = engine.compute_fb(0, FREQ, ENV_MAX - 1, params[0].gain_out, ref_state, 3)
    assert out == expected
    assert state == ref_state


def test_render_algorithm_32_boosts_feedback_shift(engine):
    params = make_params(loud=(0,))
    state = FeedbackState()
    out = engine.render(params, 31, state, 3)
    ref_state = FeedbackState()
    expected = engine.compute_fb(0, FREQ, ENV_MAX - 1, params[0].gain_out, ref_state, 5)
    assert out == expected
    assert state == ref_state


def test_render_algorithm_6_uses_two_operator_loop(engine):
    params = make_params(loud=(0, 1))
    reference = copy.deepcopy(params)
    state = FeedbackState()
    out = engine.render(params, 5, state, 3)
    ref_state = FeedbackState()
    expected = engine.compute_fb2(
        reference, ENV_MAX - 1, params[0].gain_out, ref_state, 5
    )
    assert out == expected
    assert state == ref_state
    assert params[1].phase == params[1].freq * 64
    assert params[0].phase == params[0].freq * 64


def test_render_algorithm_4_uses_three_operator_loop(engine):
    params = make_params(loud=(0, 1, 2))
    reference = copy.deepcopy(params)
    state = FeedbackState()
    out = engine.render(params, 3, state, 2)
    ref_state = FeedbackState()
    expected = engine.compute_fb3(
        reference, ENV_MAX - 1, params[0].gain_out, ref_state, 4
    )
    assert out == expected
    assert state == ref_state
    for param in params[:3]:
        assert param.phase == param.freq * 64


def test_render_rejects_wrong_operator_count(engine):
    with pytest.raises(ValueError):
        engine.render(make_params()[:5], 0, FeedbackState(), 16)


def test_render_rejects_unknown_algorithm(engine):
    with pytest.raises(IndexError):
        engine.render(make_params(), 40, FeedbackState(), 16)
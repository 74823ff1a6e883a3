from __future__ import annotations

import pytest

from pitch_tuner.stabilizer import DisplayStabilizer, StabilizerConfig


def test_first_value_passes_through() -> None:
    stab = DisplayStabilizer()

    assert stab.smooth(12.5) == 12.5
    assert stab.is_seeded


def test_constant_input_converges() -> None:
    stab = DisplayStabilizer()
    stab.smooth(0.0)

    out = 0.0
    for _ in range(20):
        out = stab.smooth(20.0)

    assert abs(out - 20.0) < 1.0


def test_reset_reseeds_on_next_value() -> None:
    stab = DisplayStabilizer()
    for value in (10.0, 30.0, -40.0):
        stab.smooth(value)

    stab.reset()

    assert not stab.is_seeded
    assert stab.history == ()
    assert stab.smooth(-7.0) == -7.0


def test_median_rejects_single_spike() -> None:
    stab = DisplayStabilizer()
    outputs = [stab.smooth(v) for v in (1.0, 2.0, 3.0, 100.0, 4.0)]

    # EMA alone ends at ~20.7 after this sequence.
    assert outputs[-1] < 20.0
    assert max(outputs) <= 4.0


def test_median_stage_without_ema() -> None:
    stab = DisplayStabilizer(StabilizerConfig(ema_alpha=1.0))
    outputs = [stab.smooth(v) for v in (1.0, 2.0, 3.0, 100.0, 4.0)]

    assert outputs == [1.0, 2.0, 2.0, 3.0, 3.0]


def test_history_is_bounded() -> None:
    stab = DisplayStabilizer()
    for i in range(50):
        stab.smooth(float(i))

    assert len(stab.history) == 5


@pytest.mark.parametrize(
    ("kwargs", "match"),
    [({"ema_alpha": 0.0}, "ema_alpha"), ({"ema_alpha": 1.5}, "ema_alpha"), ({"median_window": 0}, "median_window")],
)
def test_config_validation(kwargs: dict[str, float], match: str) -> None:
    with pytest.raises(ValueError, match=match):
        StabilizerConfig(**kwargs)

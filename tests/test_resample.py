from __future__ import annotations

import pytest

from lastseen.core.constants import MINUTE_MS, SAMPLE_STEP_MS
from lastseen.core.models import Observation
from lastseen.core.resample import build_samples

M = MINUTE_MS


def test_forward_fill_carries_last_seen() -> None:
    obs = [Observation(0, 0), Observation(10 * M, 5 * M)]
    samples = build_samples(obs, 0, 10 * M, step_ms=5 * M)
    assert [s.t for s in samples] == [0, 5 * M, 10 * M]
    assert [s.last_seen_at for s in samples] == [0, 0, 5 * M]
    assert [s.age_minutes for s in samples] == [0, 5, 5]


def test_samples_before_first_observation_are_undefined() -> None:
    obs = [Observation(10 * M, 8 * M)]
    samples = build_samples(obs, 0, 15 * M, step_ms=5 * M)
    assert [s.age_minutes for s in samples] == [None, None, 2, 7]
    assert not samples[0].defined
    assert samples[2].defined


def test_range_end_is_inclusive() -> None:
    obs = [Observation(0, 0)]
    assert len(build_samples(obs, 0, 10 * M, step_ms=5 * M)) == 3
    assert len(build_samples(obs, 0, 10 * M - 1, step_ms=5 * M)) == 2


def test_default_step_is_five_minutes() -> None:
    samples = build_samples([Observation(0, 0)], 0, 60 * M)
    assert SAMPLE_STEP_MS == 5 * M
    assert len(samples) == 13
    assert samples[1].t - samples[0].t == SAMPLE_STEP_MS


def test_range_starting_mid_log_uses_latest_prior_observation() -> None:
    obs = [Observation(0, 0), Observation(3 * M, 2 * M), Observation(20 * M, 19 * M)]
    samples = build_samples(obs, 5 * M, 10 * M, step_ms=5 * M)
    assert [s.age_minutes for s in samples] == [3, 8]
    assert all(s.last_seen_at == 2 * M for s in samples)


def test_age_is_floored_and_never_negative() -> None:
    assert build_samples([Observation(0, 0)], 90_000, 90_000)[0].age_minutes == 1
    # last-seen reported after the sample instant
    assert build_samples([Observation(0, 2 * M)], 0, 0)[0].age_minutes == 0


def test_no_linear_interpolation_between_observations() -> None:
    obs = [Observation(0, 0), Observation(60 * M, 58 * M)]
    samples = build_samples(obs, 0, 55 * M, step_ms=5 * M)
    # ages keep growing from the first last-seen until the next capture
    assert [s.age_minutes for s in samples] == list(range(0, 60, 5))


def test_empty_observations() -> None:
    assert build_samples([], 0, 60 * M) == []


def test_resampling_is_deterministic() -> None:
    obs = [Observation(i * 7 * M, i * 7 * M - (i % 4) * M) for i in range(50)]
    first = build_samples(obs, 0, 300 * M)
    second = build_samples(obs, 0, 300 * M)
    assert first == second


def test_non_positive_step_is_rejected() -> None:
    with pytest.raises(ValueError):
        build_samples([Observation(0, 0)], 0, M, step_ms=0)

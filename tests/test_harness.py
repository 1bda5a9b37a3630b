"""Tests for the timing loop, repetition policies and failure propagation."""

from __future__ import annotations

import math
import time

import pytest

from solverbench.benchmarks.config import AdaptivePolicy, FixedPolicy
from solverbench.benchmarks.errors import InvocationFailed, PolicyViolation
from solverbench.benchmarks.harness import BenchmarkSpec, SampleSet, _should_stop, compare, run


class Counter:
    def __init__(self, fail_on: int | None = None, clock=None, step: float = 0.0) -> None:
        self.calls = 0
        self.fail_on = fail_on
        self.clock = clock
        self.step = step

    def __call__(self) -> int:
        self.calls += 1
        if self.clock is not None:
            self.clock.advance(self.step)
        if self.fail_on is not None and self.calls == self.fail_on:
            raise RuntimeError(f"boom on call {self.calls}")
        return self.calls


@pytest.mark.parametrize("count", [1, 3, 7])
def test_fixed_policy_takes_exactly_count_samples(count: int) -> None:
    thunk = Counter()
    result = run(BenchmarkSpec("fake", "w", thunk), FixedPolicy(count=count))

    assert result.count == count
    assert thunk.calls == count + 1


def test_warmup_failure_fails_fast() -> None:
    thunk = Counter(fail_on=1)

    with pytest.raises(InvocationFailed) as info:
        run(BenchmarkSpec("broken", "mesolve", thunk), FixedPolicy(count=5))

    assert thunk.calls == 1
    assert info.value.solver == "broken"
    assert info.value.workload == "mesolve"
    assert info.value.phase == "warmup"
    assert isinstance(info.value.cause, RuntimeError)
    assert info.value.__cause__ is info.value.cause


def test_failure_on_third_timed_call_aborts_run() -> None:
    # warm-up is call 1, so the third timed sample is call 4
    thunk = Counter(fail_on=4)

    with pytest.raises(InvocationFailed) as info:
        run(BenchmarkSpec("flaky", "mcsolve", thunk), FixedPolicy(count=10))

    assert thunk.calls == 4
    assert info.value.phase == "sample"
    assert info.value.sample_index == 2


def test_repeated_runs_have_identical_counts() -> None:
    first = run(BenchmarkSpec("fake", "w", Counter()), FixedPolicy(count=4))
    second = run(BenchmarkSpec("fake", "w", Counter()), FixedPolicy(count=4))

    assert first.count == second.count == 4


def test_custom_warmup_replaces_first_invocation() -> None:
    warmup = Counter()
    invocation = Counter()
    run(BenchmarkSpec("fake", "w", invocation, warmup=warmup), FixedPolicy(count=3))

    assert warmup.calls == 1
    assert invocation.calls == 3


def test_rewinding_clock_never_yields_negative_samples() -> None:
    readings = iter([100.0, 90.0, 50.0, 51.0, 40.0, 10.0])
    result = run(
        BenchmarkSpec("fake", "w", Counter()),
        FixedPolicy(count=3),
        clock=lambda: next(readings),
    )

    assert result.count == 3
    assert result.minimum >= 0.0
    assert result.mean == pytest.approx(1.0 / 3.0)


def test_sample_set_clamps_negative_and_reduces() -> None:
    samples = SampleSet()
    for value in (0.5, -1.0, 1.5):
        samples.append(value)

    assert list(samples) == [0.5, 0.0, 1.5]
    result = samples.reduce("s", "w")
    assert result.count == 3
    assert result.mean == pytest.approx(2.0 / 3.0)
    assert result.median == pytest.approx(0.5)
    assert result.minimum == 0.0
    assert result.total == pytest.approx(2.0)


def test_empty_sample_set_cannot_be_reduced() -> None:
    with pytest.raises(ValueError):
        SampleSet().reduce("s", "w")


def test_sleeping_thunk_mean_is_close_to_sleep_time() -> None:
    result = run(BenchmarkSpec("sleep", "w", lambda: time.sleep(0.01)), FixedPolicy(count=5))

    assert result.count == 5
    assert 0.008 <= result.mean <= 0.05


def test_adaptive_policy_honours_minimum_before_budget(clock) -> None:
    thunk = Counter(clock=clock, step=0.04)
    policy = AdaptivePolicy(min_samples=3, max_total_seconds=0.1)

    result = run(BenchmarkSpec("slow", "w", thunk), policy, clock=clock)

    assert result.count == 3
    assert thunk.calls == 4
    assert result.mean == pytest.approx(0.04)


def test_adaptive_policy_keeps_sampling_fast_calls_until_budget(clock) -> None:
    thunk = Counter(clock=clock, step=0.25)
    policy = AdaptivePolicy(min_samples=1, max_total_seconds=1.0, min_sample_seconds=1.0)

    result = run(BenchmarkSpec("fast", "w", thunk), policy, clock=clock)

    assert result.count == 4
    assert result.total == pytest.approx(1.0)


def test_adaptive_policy_stops_slow_calls_at_minimum(clock) -> None:
    thunk = Counter(clock=clock, step=2.0)
    policy = AdaptivePolicy(min_samples=2, max_total_seconds=100.0, min_sample_seconds=1.0)

    result = run(BenchmarkSpec("slow", "w", thunk), policy, clock=clock)

    assert result.count == 2


def test_adaptive_policy_respects_max_samples(clock) -> None:
    thunk = Counter(clock=clock, step=0.25)
    policy = AdaptivePolicy(
        min_samples=1, max_total_seconds=100.0, min_sample_seconds=1.0, max_samples=6
    )

    result = run(BenchmarkSpec("fast", "w", thunk), policy, clock=clock)

    assert result.count == 6


@pytest.mark.parametrize(
    "policy",
    [
        AdaptivePolicy(min_samples=0, max_total_seconds=1.0),
        AdaptivePolicy(min_samples=3, max_total_seconds=0.0),
        AdaptivePolicy(min_samples=3, max_total_seconds=1.0, min_sample_seconds=-1.0),
        AdaptivePolicy(min_samples=3, max_total_seconds=1.0, max_samples=2),
        AdaptivePolicy(min_samples=1, max_total_seconds=math.nan),
        AdaptivePolicy(min_samples=1, max_total_seconds=math.nan, min_sample_seconds=math.nan),
        AdaptivePolicy(min_samples=1, max_total_seconds=1.0, min_sample_seconds=math.nan),
        AdaptivePolicy(min_samples=1, max_total_seconds=math.inf),
        FixedPolicy(count=0),
    ],
)
def test_invalid_policy_is_rejected_before_any_call(policy) -> None:
    thunk = Counter()

    with pytest.raises(PolicyViolation):
        run(BenchmarkSpec("fake", "w", thunk), policy)

    assert thunk.calls == 0


def test_compare_records_failures_and_keeps_going() -> None:
    specs = [
        BenchmarkSpec("bad", "mesolve", Counter(fail_on=1)),
        BenchmarkSpec("good", "mesolve", Counter()),
        BenchmarkSpec("good", "mcsolve", Counter()),
    ]

    table = compare(specs, FixedPolicy(count=2))

    assert table.get("mesolve", "good").count == 2
    assert table.get("mcsolve", "good").count == 2
    assert table.get("mesolve", "bad") is None
    assert table.failures() == [
        "benchmark unavailable for bad/mesolve: boom on call 1"
    ]


def test_unknown_policy_type_is_rejected() -> None:
    thunk = Counter()

    with pytest.raises(PolicyViolation):
        run(BenchmarkSpec("fake", "w", thunk), object())

    assert thunk.calls == 0


def test_stopping_rule_refuses_unknown_policy_type() -> None:
    with pytest.raises(PolicyViolation):
        _should_stop(SampleSet(), object())

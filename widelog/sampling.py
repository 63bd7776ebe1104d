"""Sampling decisions for finished wide events."""

from __future__ import annotations

import math
import random
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, NamedTuple, Pattern, Union

from .config import (
    DEFAULT_ERROR_STATUS_CODES,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_SLOW_REQUEST_MS,
    SamplingSettings,
    WidelogConfigError,
)
from .events import WideEvent
from .metrics import record_sampling_decision

NEVER_LOG_PATH = "never_log_path"
ERROR_STATUS = "error_status"
SLOW_REQUEST = "slow_request"
VIP_USER = "vip_user"
ALWAYS_LOG_PATH = "always_log_path"
FULL_SAMPLE = "full_sample"
RANDOM_SAMPLE = "random_sample"
SAMPLED_OUT = "sampled_out"

PathPattern = Union[str, Pattern[str]]


class SamplingDecision(NamedTuple):
    emit: bool
    reason: str


def _clamp_rate(rate: float) -> float:
    rate = float(rate)
    if math.isnan(rate):
        return 0.0
    return max(0.0, min(1.0, rate))


def _compile_patterns(
    patterns: PathPattern | Iterable[PathPattern],
) -> tuple[Pattern[str], ...]:
    # A lone pattern is one entry, not a sequence of single-character patterns.
    if isinstance(patterns, (str, re.Pattern)):
        patterns = (patterns,)

    compiled = []
    for pattern in patterns:
        if isinstance(pattern, str):
            try:
                pattern = re.compile(pattern)
            except re.error as exc:
                raise WidelogConfigError(f"invalid path pattern {pattern!r}: {exc}") from exc
        compiled.append(pattern)
    return tuple(compiled)


@dataclass(frozen=True)
class SamplingPolicy:
    """Immutable sampling policy shared by every unit of work.

    ``rate`` is clamped into ``[0, 1]``; string path patterns are compiled.
    """

    rate: float = DEFAULT_SAMPLE_RATE
    slow_threshold_ms: float = DEFAULT_SLOW_REQUEST_MS
    error_status_codes: frozenset = field(default_factory=lambda: frozenset(DEFAULT_ERROR_STATUS_CODES))
    vip_user_ids: frozenset = field(default_factory=frozenset)
    always_log_paths: tuple = ()
    never_log_paths: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "rate", _clamp_rate(self.rate))
        object.__setattr__(self, "error_status_codes", frozenset(self.error_status_codes))
        object.__setattr__(self, "vip_user_ids", frozenset(self.vip_user_ids))
        object.__setattr__(self, "always_log_paths", _compile_patterns(self.always_log_paths))
        object.__setattr__(self, "never_log_paths", _compile_patterns(self.never_log_paths))


def policy_from_settings(settings: SamplingSettings) -> SamplingPolicy:
    """Build a policy from environment-derived settings."""

    return SamplingPolicy(
        rate=settings.rate,
        slow_threshold_ms=settings.slow_threshold_ms,
        error_status_codes=frozenset(settings.error_status_codes),
        vip_user_ids=frozenset(settings.vip_user_ids),
        always_log_paths=settings.always_log_paths,
        never_log_paths=settings.never_log_paths,
    )


def _as_number(value: Any, cast: Callable[[Any], Any]) -> Any:
    if value is None:
        return None
    try:
        return cast(value)
    except (TypeError, ValueError):
        return None


def _is_member(value: Any, members: frozenset) -> bool:
    if value is None:
        return False
    try:
        return value in members
    except TypeError:
        return False


def _matches(path: str | None, patterns: tuple[Pattern[str], ...]) -> bool:
    if not isinstance(path, str) or not path or not patterns:
        return False
    return any(pattern.search(path) for pattern in patterns)


def decide(
    event: WideEvent,
    policy: SamplingPolicy,
    *,
    rng: Callable[[], float] = random.random,
) -> SamplingDecision:
    """Decide whether ``event`` should be emitted; the first matching rule wins."""

    # Deny list outranks every visibility rule, including the allow list.
    if _matches(event.path, policy.never_log_paths):
        return SamplingDecision(False, NEVER_LOG_PATH)

    status_code = _as_number(event.status_code, int)
    response_time_ms = _as_number(event.response_time_ms, float)

    if status_code is not None and status_code in policy.error_status_codes:
        return SamplingDecision(True, ERROR_STATUS)

    if response_time_ms is not None and response_time_ms >= policy.slow_threshold_ms:
        return SamplingDecision(True, SLOW_REQUEST)

    if _is_member(event.user_id, policy.vip_user_ids):
        return SamplingDecision(True, VIP_USER)

    if _matches(event.path, policy.always_log_paths):
        return SamplingDecision(True, ALWAYS_LOG_PATH)

    if policy.rate >= 1.0:
        return SamplingDecision(True, FULL_SAMPLE)

    if rng() < policy.rate:
        return SamplingDecision(True, RANDOM_SAMPLE)

    return SamplingDecision(False, SAMPLED_OUT)


def decide_and_record(
    event: WideEvent,
    policy: SamplingPolicy,
    *,
    rng: Callable[[], float] = random.random,
) -> SamplingDecision:
    """:func:`decide` plus a metrics entry for the reason."""

    decision = decide(event, policy, rng=rng)
    record_sampling_decision(decision.reason, decision.emit)
    return decision

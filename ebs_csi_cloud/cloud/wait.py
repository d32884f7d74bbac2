"""Bounded retry/poll primitive.

A condition is a callable returning ``True`` once the awaited state is
reached. Exceptions raised by the condition propagate immediately, without
further probes.

Usage:
    from ebs_csi_cloud.cloud.wait import Backoff, wait_for

    wait_for(ctx, Backoff(duration=1, factor=1.8, steps=13), is_attached)
"""

import time
from dataclasses import dataclass
from typing import Callable, Union

from oslo_log import log as logging

from .context import RequestContext
from .exceptions import WaitTimeout

LOG = logging.getLogger(__name__)

Condition = Callable[[], bool]


@dataclass(frozen=True)
class Backoff:
    """Exponential schedule: probe, sleep ``duration``, grow by ``factor``.

    At most ``steps`` probes are made.
    """

    duration: float
    factor: float
    steps: int


@dataclass(frozen=True)
class FixedInterval:
    """Fixed schedule: sleep ``interval`` then probe, until ``timeout``."""

    interval: float
    timeout: float


Schedule = Union[Backoff, FixedInterval]

# Most attach/detach operations finish within 1-4 seconds. With a 1 second
# start and a 1.8 factor the sleeps run 1, 1.8, 3.24, 5.83, 10.5, ...
ATTACHMENT_BACKOFF = Backoff(duration=1.0, factor=1.8, steps=13)
MODIFICATION_BACKOFF = Backoff(duration=1.0, factor=1.8, steps=20)
# Volume creation usually takes a few seconds. The caller's deadline wins
# when it is nearer than the timeout.
VOLUME_AVAILABLE_POLL = FixedInterval(interval=3.0, timeout=60.0)


def exponential_backoff(ctx: RequestContext, backoff: Backoff, condition: Condition, what: str = "condition") -> None:
    """Probe ``condition`` on an exponential schedule.

    Raises:
        WaitTimeout: all steps used without the condition being met
        Cancelled: the context was cancelled or its deadline passed
    """
    duration = backoff.duration
    for step in range(backoff.steps):
        ctx.check()
        if condition():
            return
        if step == backoff.steps - 1:
            break
        LOG.debug("Waiting %.2fs for %s (step %d/%d)", duration, what, step + 1, backoff.steps)
        ctx.sleep(duration)
        duration *= backoff.factor
    raise WaitTimeout(what=what)


def poll(ctx: RequestContext, schedule: FixedInterval, condition: Condition, what: str = "condition") -> None:
    """Probe ``condition`` every ``schedule.interval`` seconds.

    The first probe happens after one interval. Polling stops once
    ``schedule.timeout`` seconds have elapsed.

    Raises:
        WaitTimeout: timeout elapsed without the condition being met
        Cancelled: the context was cancelled or its deadline passed
    """
    deadline = time.monotonic() + schedule.timeout
    while True:
        ctx.sleep(schedule.interval)
        if condition():
            return
        if time.monotonic() >= deadline:
            raise WaitTimeout(what=what)


def wait_for(ctx: RequestContext, schedule: Schedule, condition: Condition, what: str = "condition") -> None:
    """Run ``condition`` under ``schedule``."""
    if isinstance(schedule, Backoff):
        exponential_backoff(ctx, schedule, condition, what=what)
    elif isinstance(schedule, FixedInterval):
        poll(ctx, schedule, condition, what=what)
    else:
        raise TypeError(f"Unsupported schedule: {schedule!r}")

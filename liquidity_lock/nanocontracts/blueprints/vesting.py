from typing import NamedTuple

from liquidity_lock import Amount
from liquidity_lock.conf.settings import ScheduleConfig, StakingConfig

DAY_IN_SECONDS = 24 * 3600


def releasable_amount(
    total: int,
    released: int,
    cliff_duration: int,
    duration: int,
    interval: int,
    elapsed: int,
) -> Amount:
    """Amount of a grant that can be released after `elapsed` time.

    Nothing vests before the cliff. After the cliff the grant vests in equal
    steps of `interval` until `duration`, when whatever is left is released.
    All arguments share the same time unit.
    """
    if elapsed < cliff_duration:
        return Amount(0)

    if elapsed >= duration:
        return Amount(max(0, total - released))

    intervals = (elapsed - cliff_duration) // interval
    total_intervals = (duration - cliff_duration) // interval
    vested = total * intervals // total_intervals

    return Amount(max(0, vested - released))


class VestingSchedule(NamedTuple):
    """Cliff and linear schedule in seconds."""

    cliff_duration: int
    duration: int
    interval: int

    @classmethod
    def from_config(cls, schedule: ScheduleConfig) -> "VestingSchedule":
        unit = schedule.time_unit
        return cls(
            cliff_duration=schedule.cliff_duration * unit,
            duration=schedule.duration * unit,
            interval=schedule.interval * unit,
        )

    @classmethod
    def from_staking(cls, staking: StakingConfig) -> "VestingSchedule":
        # Linear rewards accrue every second, otherwise they unlock at the end.
        if staking.is_linear:
            return cls(cliff_duration=0, duration=staking.duration, interval=1)
        return cls(cliff_duration=staking.duration, duration=staking.duration, interval=1)

    def releasable(self, total: int, released: int, elapsed: int) -> Amount:
        return releasable_amount(
            total, released, self.cliff_duration, self.duration, self.interval, elapsed
        )

    def period(self, elapsed: int) -> int:
        """Index of the interval `elapsed` falls in, 0 before the cliff."""
        if elapsed < self.cliff_duration:
            return 0
        elapsed = min(elapsed, self.duration)
        return (elapsed - self.cliff_duration) // self.interval + 1


class VestingInfo(NamedTuple):
    """Vesting information of a single grant."""

    total: int
    released: int
    claimable: int
    last_redemption_period: int

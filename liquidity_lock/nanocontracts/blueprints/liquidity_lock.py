import json
import logging
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from liquidity_lock import (
    NATIVE_TOKEN_UID,
    Address,
    Amount,
    Blueprint,
    Context,
    ContractId,
    NCDepositAction,
    NCFail,
    Timestamp,
    public,
    view,
)
from liquidity_lock.conf.settings import LockConfig
from liquidity_lock.nanocontracts.blueprints.vesting import VestingInfo, VestingSchedule
from liquidity_lock.utils.math import checked_add, checked_mul, checked_sub, mul_div

logger = logging.getLogger(__name__)


class LiquidityLockErrors:
    """Common error messages"""

    RECIPIENT_EXCLUDED = "Recipient cant deposit"
    OWNER_EXCLUDED = "Owner cant deposit"
    ZERO_DEPOSIT = "Must send some value"
    BELOW_MIN = "Must send at least the minimum"
    ABOVE_MAX = "Must send at most the maximum"
    HARD_LIMIT = "Bonus amount will exceed the hard limit"
    PAST_DUE_DATE = "Deposits are closed after the due date"
    NOT_DEPOSITING = "Deposits are closed"
    UNAUTHORIZED = "Ownable: caller is not the owner"
    ALREADY_DISABLED = "Contract is disabled"
    ALREADY_EXECUTED = "Contract is already executed"
    NOT_DISABLED = "Contract has not been disabled"
    NOTHING_TO_WITHDRAW = "Nothing to withdraw"
    NO_DEPOSITS = "No deposits"
    MUST_OWN_POOL = "LiquidityLocking must own the bonus pool"
    SOFT_LIMIT = "Bonus amount must be at least the soft limit"
    BEFORE_DUE_DATE = "Due date not reached"
    POOL_INSUFFICIENT = "Bonus pool cannot cover the allocation"
    NOT_EXECUTED = "The execute() function hasn't run yet"
    NO_DEPOSIT_FROM = "The depositor address provided didn't make any deposit"
    ALREADY_SETUP = "Setup already called for this address"
    NOT_ACTIVE = "Address has no tokens to redeem"
    NOTHING_TO_REDEEM = "Nothing to redeem"
    NO_LIQUIDITY_LEFT = "No LP Tokens to redeem"
    NO_BONUS_LEFT = "No bonus tokens to redeem"
    NO_REWARD_LEFT = "No reward tokens to claim"
    NOT_VESTED = "No tokens vested yet"
    INVALID_SCHEDULE = "Vesting schedule is not valid"


class LiquidityLockError(NCFail):
    pass


class AdmissionRejected(LiquidityLockError):
    pass


class PhaseViolation(LiquidityLockError):
    pass


class AuthorizationDenied(LiquidityLockError):
    pass


class AlreadyDone(LiquidityLockError):
    pass


class PreconditionUnmet(LiquidityLockError):
    pass


class NothingToClaim(LiquidityLockError):
    pass


@dataclass
class Grant:
    """Running totals of one class of proceeds owed to a participant."""

    total: int = 0
    released: int = 0
    last_redemption_period: int = 0


@dataclass
class ParticipantVestingData:
    is_active: bool = False
    liquidity_grant: Grant = field(default_factory=Grant)
    bonus_grant: Grant = field(default_factory=Grant)
    reward_grant: Grant = field(default_factory=Grant)


class ParticipantInfo(NamedTuple):
    contribution: int
    is_active: bool
    liquidity_total: int
    liquidity_released: int
    bonus_total: int
    bonus_released: int
    reward_total: int
    reward_released: int


class ProceedsInfo(NamedTuple):
    total_contributed: int
    total_liquidity_proceeds: int
    total_bonus_proceeds: int
    total_reward_reserve: int
    execution_timestamp: int


class ParticipantVestingInfo(NamedTuple):
    liquidity: VestingInfo
    bonus: VestingInfo
    reward: VestingInfo


class LiquidityLock(Blueprint):
    """Collects native contributions and locks them as market liquidity.

    The life cycle of contracts using this blueprint is the following:

    1. [Owner] Create the contract with a `LockConfig`.
    2. [User] `deposit()` native value while the lock is open.
    3. [Owner] Either `refund(reason)`, after which every participant can get
       their contribution back with `refund_withdrawal(participant)`, or
       `execute()`, which pairs the contributions with bonus tokens in the
       liquidity market.
    4. [Anyone] `setup(participant)` freezes a participant's share of the
       market shares, the bonus tokens and the staking reward.
    5. [Anyone] `redeem_liquidity_proceeds`, `redeem_bonus_proceeds` and
       `claim_for` release each share following its vesting schedule. Funds
       always go to the participant.
    """

    owner: Address

    # Configuration
    min_contribution: Amount
    max_contribution: Amount  # 0 = unlimited
    soft_limit: Amount
    hard_limit: Amount
    conversion_ratio: int
    bonus_source: ContractId
    bonus_asset: ContractId
    liquidity_market: ContractId
    recipient: Address
    due_date: Timestamp
    enforce_due_date: bool
    staking_total_reward: Amount
    schedule: VestingSchedule
    staking_schedule: VestingSchedule
    schedule_valid: bool

    # Phase
    disabled: bool
    disabled_reason: str
    executed: bool
    execution_timestamp: Timestamp

    # Proceeds
    total_contributed: Amount
    total_liquidity_proceeds: Amount
    total_bonus_proceeds: Amount
    total_reward_reserve: Amount

    contributions: dict[Address, Amount]
    vesting_data: dict[Address, ParticipantVestingData]

    @public
    def initialize(self, ctx: Context, config: LockConfig) -> None:
        """Initialize the lock; the caller becomes its owner."""
        self.owner = ctx.address

        self.min_contribution = Amount(config.min_contribution)
        self.max_contribution = Amount(config.max_contribution)
        self.soft_limit = Amount(config.soft_limit)
        self.hard_limit = Amount(config.hard_limit)
        self.conversion_ratio = config.conversion_ratio
        self.bonus_source = ContractId(config.bonus_source)
        self.bonus_asset = ContractId(config.bonus_asset)
        self.liquidity_market = ContractId(config.liquidity_market)
        self.recipient = Address(config.recipient)
        self.due_date = Timestamp(config.due_date)
        self.enforce_due_date = config.enforce_due_date
        self.staking_total_reward = Amount(config.staking.total_reward_amount)
        self.schedule_valid = config.schedule.is_well_formed()
        self.schedule = VestingSchedule.from_config(config.schedule)
        self.staking_schedule = VestingSchedule.from_staking(config.staking)

        self.disabled = False
        self.disabled_reason = ""
        self.executed = False
        self.execution_timestamp = Timestamp(0)

        self.total_contributed = Amount(0)
        self.total_liquidity_proceeds = Amount(0)
        self.total_bonus_proceeds = Amount(0)
        self.total_reward_reserve = Amount(0)

    # Guards

    def _only_owner(self, ctx: Context) -> None:
        if ctx.address != self.owner:
            raise AuthorizationDenied(LiquidityLockErrors.UNAUTHORIZED)

    def _only_depositing(self) -> None:
        if self.disabled or self.executed:
            raise PhaseViolation(LiquidityLockErrors.NOT_DEPOSITING)

    def _only_disabled(self) -> None:
        if not self.disabled:
            raise PhaseViolation(LiquidityLockErrors.NOT_DISABLED)

    def _only_executed(self) -> None:
        if not self.executed:
            raise PhaseViolation(LiquidityLockErrors.NOT_EXECUTED)

    def _emit(self, event: str, **data: Any) -> None:
        payload = {"event": event, **data}
        self.syscall.emit_event(json.dumps(payload, sort_keys=True).encode())

    # Deposits

    @public(allow_deposit=True)
    def deposit(self, ctx: Context) -> None:
        """Contribute the native value attached to the call."""
        self._only_depositing()

        participant = ctx.address
        if participant == self.recipient:
            raise AdmissionRejected(LiquidityLockErrors.RECIPIENT_EXCLUDED)
        if participant == self.owner:
            raise AdmissionRejected(LiquidityLockErrors.OWNER_EXCLUDED)
        if self.enforce_due_date and ctx.timestamp > self.due_date:
            raise AdmissionRejected(LiquidityLockErrors.PAST_DUE_DATE)

        # No attached value counts as a zero deposit.
        action = ctx.actions.get(NATIVE_TOKEN_UID)
        value = action.amount if action is not None else 0
        if value == 0:
            raise AdmissionRejected(LiquidityLockErrors.ZERO_DEPOSIT)
        if value < self.min_contribution:
            raise AdmissionRejected(LiquidityLockErrors.BELOW_MIN)
        if self.max_contribution != 0 and value > self.max_contribution:
            raise AdmissionRejected(LiquidityLockErrors.ABOVE_MAX)

        new_total = checked_add(self.total_contributed, value)
        if checked_mul(new_total, self.conversion_ratio) > self.hard_limit:
            raise AdmissionRejected(LiquidityLockErrors.HARD_LIMIT)

        self.contributions[participant] = Amount(
            checked_add(self.contributions.get(participant, 0), value)
        )
        self.total_contributed = Amount(new_total)
        self._emit("deposit", participant=participant.hex(), amount=value)

    # Refund path

    @public
    def refund(self, ctx: Context, reason: str) -> None:
        """Cancel the lock so every participant can take their deposit back."""
        self._only_owner(ctx)
        if self.executed:
            raise PhaseViolation(LiquidityLockErrors.ALREADY_EXECUTED)
        if self.disabled:
            raise AlreadyDone(LiquidityLockErrors.ALREADY_DISABLED)

        self.disabled = True
        self.disabled_reason = reason
        logger.info("liquidity lock disabled: %s", reason)
        self._emit("refund", reason=reason)

    @public
    def refund_withdrawal(self, ctx: Context, participant: Address) -> None:
        """Send `participant` their whole contribution back."""
        self._only_disabled()

        amount = self.contributions.get(participant, Amount(0))
        if amount == 0:
            raise NothingToClaim(LiquidityLockErrors.NOTHING_TO_WITHDRAW)

        self.contributions[participant] = Amount(0)
        self.syscall.transfer(participant, amount)
        self._emit("refund_withdrawal", participant=participant.hex(), amount=amount)

    # Execution path

    @public
    def execute(self, ctx: Context) -> None:
        """Pair the contributions with bonus tokens in the liquidity market."""
        self._only_owner(ctx)
        if self.disabled:
            raise PhaseViolation(LiquidityLockErrors.ALREADY_DISABLED)
        if self.executed:
            raise AlreadyDone(LiquidityLockErrors.ALREADY_EXECUTED)
        if self.total_contributed == 0:
            raise PreconditionUnmet(LiquidityLockErrors.NO_DEPOSITS)

        contract_id = self.syscall.get_contract_id()
        pool_owner = self.syscall.call_view_method(self.bonus_source, "get_owner")
        if pool_owner != contract_id:
            raise PreconditionUnmet(LiquidityLockErrors.MUST_OWN_POOL)

        liquidity_bonus = checked_mul(self.total_contributed, self.conversion_ratio)
        if liquidity_bonus < self.soft_limit:
            raise PreconditionUnmet(LiquidityLockErrors.SOFT_LIMIT)
        if (
            self.enforce_due_date
            and ctx.timestamp < self.due_date
            and liquidity_bonus < self.hard_limit
        ):
            raise PreconditionUnmet(LiquidityLockErrors.BEFORE_DUE_DATE)

        available = self.syscall.call_view_method(self.bonus_source, "get_available")
        if available < checked_add(liquidity_bonus, self.staking_total_reward):
            raise PreconditionUnmet(LiquidityLockErrors.POOL_INSUFFICIENT)

        native_value = self.total_contributed
        self.executed = True
        self.execution_timestamp = Timestamp(ctx.timestamp)

        self.syscall.call_public_method(
            self.bonus_source, "release", [], contract_id, available
        )
        self.syscall.call_public_method(
            self.bonus_asset, "transfer", [], self.liquidity_market, liquidity_bonus
        )
        market = self.syscall.get_contract(self.liquidity_market)
        result = market.public(
            NCDepositAction(token_uid=NATIVE_TOKEN_UID, amount=native_value)
        ).add_liquidity(liquidity_bonus, contract_id)
        self.total_liquidity_proceeds = Amount(result.shares)

        self.total_reward_reserve = self.staking_total_reward
        token_balance = self.syscall.call_view_method(
            self.bonus_asset, "balance_of", contract_id
        )
        self.total_bonus_proceeds = Amount(
            checked_sub(token_balance, self.total_reward_reserve)
        )

        if result.native_refund > 0:
            self.syscall.transfer(self.recipient, result.native_refund)
        self.syscall.call_public_method(
            self.bonus_source, "transfer_ownership", [], self.recipient
        )

        logger.info(
            "liquidity lock executed: %d contributed, %d shares, %d bonus",
            native_value,
            self.total_liquidity_proceeds,
            self.total_bonus_proceeds,
        )
        self._emit(
            "execute",
            total_contributed=native_value,
            liquidity_proceeds=self.total_liquidity_proceeds,
            bonus_proceeds=self.total_bonus_proceeds,
            reward_reserve=self.total_reward_reserve,
        )

    @public
    def setup(self, ctx: Context, participant: Address) -> None:
        """Freeze the share of the proceeds owed to `participant`."""
        self._only_executed()

        contribution = self.contributions.get(participant, Amount(0))
        if contribution == 0:
            raise PreconditionUnmet(LiquidityLockErrors.NO_DEPOSIT_FROM)
        if participant in self.vesting_data:
            raise AlreadyDone(LiquidityLockErrors.ALREADY_SETUP)

        total = self.total_contributed
        self.vesting_data[participant] = ParticipantVestingData(
            is_active=True,
            liquidity_grant=Grant(
                total=mul_div(self.total_liquidity_proceeds, contribution, total)
            ),
            bonus_grant=Grant(total=mul_div(self.total_bonus_proceeds, contribution, total)),
            reward_grant=Grant(total=mul_div(self.total_reward_reserve, contribution, total)),
        )
        self._emit("setup", participant=participant.hex())

    # Redemptions

    def _get_active_data(self, participant: Address) -> ParticipantVestingData:
        self._only_executed()
        data = self.vesting_data.get(participant)
        if data is None or not data.is_active:
            raise PhaseViolation(LiquidityLockErrors.NOT_ACTIVE)
        return data

    def _release(
        self,
        ctx: Context,
        grant: Grant,
        schedule: VestingSchedule,
        exhausted_message: str,
    ) -> int:
        """Advance `grant` by what vested so far and return the amount to pay."""
        # Rewards have their own schedule but are gated by the vesting one too.
        if not self.schedule_valid:
            raise PreconditionUnmet(LiquidityLockErrors.INVALID_SCHEDULE)
        if grant.total == 0:
            raise NothingToClaim(LiquidityLockErrors.NOTHING_TO_REDEEM)
        if grant.released >= grant.total:
            raise AlreadyDone(exhausted_message)

        elapsed = ctx.timestamp - self.execution_timestamp
        amount = schedule.releasable(grant.total, grant.released, elapsed)
        if amount == 0:
            raise NothingToClaim(LiquidityLockErrors.NOT_VESTED)

        grant.released = checked_add(grant.released, amount)
        grant.last_redemption_period = schedule.period(elapsed)
        return amount

    @public
    def redeem_liquidity_proceeds(self, ctx: Context, participant: Address) -> None:
        """Release vested market shares to `participant`."""
        data = self._get_active_data(participant)
        amount = self._release(
            ctx, data.liquidity_grant, self.schedule, LiquidityLockErrors.NO_LIQUIDITY_LEFT
        )
        self.syscall.call_public_method(
            self.liquidity_market, "transfer_shares", [], participant, amount
        )
        self._emit("redeem_liquidity", participant=participant.hex(), amount=amount)

    @public
    def redeem_bonus_proceeds(self, ctx: Context, participant: Address) -> None:
        """Release vested bonus tokens to `participant`."""
        data = self._get_active_data(participant)
        amount = self._release(
            ctx, data.bonus_grant, self.schedule, LiquidityLockErrors.NO_BONUS_LEFT
        )
        self.syscall.call_public_method(self.bonus_asset, "transfer", [], participant, amount)
        self._emit("redeem_bonus", participant=participant.hex(), amount=amount)

    @public
    def claim_for(self, ctx: Context, participant: Address) -> None:
        """Release the staking reward accrued by `participant`."""
        data = self._get_active_data(participant)
        amount = self._release(
            ctx, data.reward_grant, self.staking_schedule, LiquidityLockErrors.NO_REWARD_LEFT
        )
        self.syscall.call_public_method(self.bonus_asset, "transfer", [], participant, amount)
        self._emit("claim", participant=participant.hex(), amount=amount)

    # Views

    @view
    def get_total_contributed(self) -> Amount:
        return self.total_contributed

    @view
    def get_contribution(self, address: Address) -> Amount:
        return self.contributions.get(address, Amount(0))

    @view
    def is_disabled(self) -> bool:
        return self.disabled

    @view
    def is_executed(self) -> bool:
        return self.executed

    @view
    def get_participant_info(self, address: Address) -> ParticipantInfo:
        data = self.vesting_data.get(address, ParticipantVestingData())
        return ParticipantInfo(
            contribution=self.contributions.get(address, 0),
            is_active=data.is_active,
            liquidity_total=data.liquidity_grant.total,
            liquidity_released=data.liquidity_grant.released,
            bonus_total=data.bonus_grant.total,
            bonus_released=data.bonus_grant.released,
            reward_total=data.reward_grant.total,
            reward_released=data.reward_grant.released,
        )

    @view
    def get_proceeds_info(self) -> ProceedsInfo:
        return ProceedsInfo(
            total_contributed=self.total_contributed,
            total_liquidity_proceeds=self.total_liquidity_proceeds,
            total_bonus_proceeds=self.total_bonus_proceeds,
            total_reward_reserve=self.total_reward_reserve,
            execution_timestamp=self.execution_timestamp,
        )

    def _grant_info(
        self, grant: Grant, schedule: VestingSchedule, elapsed: int
    ) -> VestingInfo:
        claimable = 0
        if self.schedule_valid and self.executed:
            claimable = schedule.releasable(grant.total, grant.released, elapsed)
        return VestingInfo(
            total=grant.total,
            released=grant.released,
            claimable=claimable,
            last_redemption_period=grant.last_redemption_period,
        )

    @view
    def get_vesting_info(
        self, address: Address, timestamp: Timestamp
    ) -> ParticipantVestingInfo:
        """What `address` could redeem of each grant at `timestamp`."""
        data = self.vesting_data.get(address, ParticipantVestingData())
        elapsed = max(0, timestamp - self.execution_timestamp)
        return ParticipantVestingInfo(
            liquidity=self._grant_info(data.liquidity_grant, self.schedule, elapsed),
            bonus=self._grant_info(data.bonus_grant, self.schedule, elapsed),
            reward=self._grant_info(data.reward_grant, self.staking_schedule, elapsed),
        )

    @view
    def get_contract_info(self) -> dict[str, Any]:
        return {
            "owner": self.owner.hex(),
            "recipient": self.recipient.hex(),
            "bonus_source": self.bonus_source.hex(),
            "bonus_asset": self.bonus_asset.hex(),
            "liquidity_market": self.liquidity_market.hex(),
            "min_contribution": self.min_contribution,
            "max_contribution": self.max_contribution,
            "soft_limit": self.soft_limit,
            "hard_limit": self.hard_limit,
            "conversion_ratio": self.conversion_ratio,
            "due_date": self.due_date,
            "enforce_due_date": self.enforce_due_date,
            "schedule_valid": self.schedule_valid,
            "total_contributed": self.total_contributed,
            "disabled": self.disabled,
            "disabled_reason": self.disabled_reason,
            "executed": self.executed,
        }


__blueprint__ = LiquidityLock

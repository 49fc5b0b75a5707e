import json
from math import isqrt

from liquidity_lock.nanocontracts.blueprints.liquidity_lock import (
    AdmissionRejected,
    AlreadyDone,
    AuthorizationDenied,
    LiquidityLockErrors,
    NothingToClaim,
    PhaseViolation,
    PreconditionUnmet,
)
from liquidity_lock.nanocontracts.exception import NCForbiddenAction
from liquidity_lock.nanocontracts.types import NATIVE_TOKEN_UID, NCDepositAction
from tests.nanocontracts.blueprints.test_utilities import (
    LiquidityLockTestCase,
    TestConstants,
    eth,
)

DAY = TestConstants.DAY_IN_SECONDS


class LiquidityLockDepositTestCase(LiquidityLockTestCase):
    """Admission rules of deposit()."""

    def setUp(self):
        super().setUp()
        self.deploy_lock()
        self.user1 = self.new_participant()
        self.user2 = self.new_participant()

    def test_initialize(self):
        contract = self.lock_state()
        self.assertEqual(contract.owner, self.deployment.owner)
        self.assertEqual(contract.recipient, self.deployment.recipient)
        self.assertEqual(contract.total_contributed, 0)
        self.assertFalse(contract.disabled)
        self.assertFalse(contract.executed)
        self.assertTrue(contract.schedule_valid)
        self.assertEqual(contract.schedule.cliff_duration, 30 * DAY)

    def test_recipient_cannot_deposit(self):
        recipient = self.deployment.recipient
        self.fund(recipient, eth(10))
        with self.assertRaises(AdmissionRejected) as cm:
            self.deposit(recipient, eth(1))
        self.assertEqual(str(cm.exception), LiquidityLockErrors.RECIPIENT_EXCLUDED)

    def test_owner_cannot_deposit(self):
        owner = self.deployment.owner
        self.fund(owner, eth(10))
        with self.assertRaises(AdmissionRejected) as cm:
            self.deposit(owner, eth(1))
        self.assertEqual(str(cm.exception), LiquidityLockErrors.OWNER_EXCLUDED)

    def test_zero_deposit(self):
        with self.assertRaises(AdmissionRejected) as cm:
            self.deposit(self.user1, 0)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.ZERO_DEPOSIT)

    def test_below_minimum(self):
        with self.assertRaises(AdmissionRejected) as cm:
            self.deposit(self.user1, TestConstants.MIN_CONTRIBUTION - eth(0.001))
        self.assertEqual(str(cm.exception), LiquidityLockErrors.BELOW_MIN)

    def test_above_maximum(self):
        with self.assertRaises(AdmissionRejected) as cm:
            self.deposit(self.user1, TestConstants.MAX_CONTRIBUTION + eth(0.001))
        self.assertEqual(str(cm.exception), LiquidityLockErrors.ABOVE_MAX)

    def test_deposit_between_bounds(self):
        amount = TestConstants.MIN_CONTRIBUTION + eth(0.001)
        self.deposit(self.user1, amount)

        self.assertEqual(self.view_lock("get_contribution", self.user1), amount)
        self.assertEqual(self.view_lock("get_total_contributed"), amount)
        self.assertEqual(self.runner.get_balance(self.deployment.lock_id), amount)
        self.assertEqual(
            self.runner.get_balance(self.user1), TestConstants.PARTICIPANT_BALANCE - amount
        )

    def test_deposits_accumulate(self):
        self.deposit(self.user1, eth(2))
        self.deposit(self.user1, eth(3))
        self.deposit(self.user2, eth(4))

        self.assertEqual(self.view_lock("get_contribution", self.user1), eth(5))
        self.assertEqual(self.view_lock("get_total_contributed"), eth(9))

    def test_deposit_without_value(self):
        ctx = self.create_context(self.user1)
        with self.assertRaises(AdmissionRejected) as cm:
            self.runner.call_public_method(self.deployment.lock_id, "deposit", ctx)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.ZERO_DEPOSIT)
        self.assertEqual(self.view_lock("get_total_contributed"), 0)

    def test_deposit_rejects_other_tokens(self):
        token_uid = self.gen_random_token_uid()
        ctx = self.create_context(
            self.user1, actions=[NCDepositAction(token_uid=token_uid, amount=eth(2))]
        )
        with self.assertRaises(NCForbiddenAction):
            self.runner.call_public_method(self.deployment.lock_id, "deposit", ctx)
        self.assertEqual(self.view_lock("get_total_contributed"), 0)

    def test_deposit_emits_event(self):
        self.deposit(self.user1, eth(2))
        events = self.runner.get_events(self.deployment.lock_id)
        self.assertEqual(len(events), 1)
        payload = json.loads(events[0].data)
        self.assertEqual(payload["event"], "deposit")
        self.assertEqual(payload["participant"], self.user1.hex())
        self.assertEqual(payload["amount"], eth(2))


class LiquidityLockHardLimitTestCase(LiquidityLockTestCase):
    """Caps scenario: ratio 1000 and a hard limit of 1e24."""

    def test_hard_limit(self):
        self.deploy_lock(max_contribution=0)
        user1 = self.new_participant(balance=eth(2_000))
        user2 = self.new_participant()

        # Leaves exactly one minimum deposit of room under the hard limit.
        to_deposit = TestConstants.HARD_LIMIT // TestConstants.CONVERSION_RATIO - eth(1)
        self.deposit(user1, to_deposit)

        with self.assertRaises(AdmissionRejected) as cm:
            self.deposit(user2, eth(1) + 1)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.HARD_LIMIT)

        self.deposit(user2, eth(1))
        total = self.view_lock("get_total_contributed")
        self.assertEqual(total * TestConstants.CONVERSION_RATIO, TestConstants.HARD_LIMIT)

    def test_total_never_exceeds_hard_limit(self):
        self.deploy_lock(hard_limit=eth(10_000), soft_limit=eth(1_000))
        participants = [self.new_participant() for _ in range(4)]
        for participant in participants:
            try:
                self.deposit(participant, eth(4))
            except AdmissionRejected:
                pass
            total = self.view_lock("get_total_contributed")
            self.assertLessEqual(total * TestConstants.CONVERSION_RATIO, eth(10_000))
        self.assertEqual(self.view_lock("get_total_contributed"), eth(8))


class LiquidityLockRefundTestCase(LiquidityLockTestCase):
    """Refund path: deposit, refund, withdrawals."""

    def setUp(self):
        super().setUp()
        self.deploy_lock()
        self.user1 = self.new_participant()
        self.user2 = self.new_participant()
        self.user3 = self.new_participant()
        self.amount = TestConstants.MIN_CONTRIBUTION + eth(0.001)
        for user in (self.user1, self.user2, self.user3):
            self.deposit(user, self.amount)

    def test_withdrawal_before_refund(self):
        with self.assertRaises(PhaseViolation) as cm:
            self.call_lock("refund_withdrawal", self.user1, self.user1)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.NOT_DISABLED)

    def test_non_owner_refund(self):
        with self.assertRaises(AuthorizationDenied):
            self.call_lock("refund", self.user1, "because")
        self.assertFalse(self.view_lock("is_disabled"))

    def test_refund_flow(self):
        self.call_lock("refund", self.deployment.owner, "soft limit unreachable")
        self.assertTrue(self.view_lock("is_disabled"))
        self.assertEqual(self.lock_state().disabled_reason, "soft limit unreachable")

        with self.assertRaises(AlreadyDone) as cm:
            self.call_lock("refund", self.deployment.owner, "again")
        self.assertEqual(str(cm.exception), LiquidityLockErrors.ALREADY_DISABLED)

        self.call_lock("refund_withdrawal", self.user1, self.user1)
        self.assertEqual(self.runner.get_balance(self.user1), TestConstants.PARTICIPANT_BALANCE)

        # user2 withdraws on behalf of user3, funds go to user3.
        user2_before = self.runner.get_balance(self.user2)
        self.call_lock("refund_withdrawal", self.user2, self.user3)
        self.assertEqual(self.runner.get_balance(self.user3), TestConstants.PARTICIPANT_BALANCE)
        self.assertEqual(self.runner.get_balance(self.user2), user2_before)
        self.assertEqual(self.view_lock("get_contribution", self.user3), 0)

        with self.assertRaises(NothingToClaim) as cm:
            self.call_lock("refund_withdrawal", self.user3, self.user3)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.NOTHING_TO_WITHDRAW)

        self.call_lock("refund_withdrawal", self.user2, self.user2)
        self.assertEqual(self.runner.get_balance(self.deployment.lock_id), 0)

    def test_refund_is_terminal(self):
        self.call_lock("refund", self.deployment.owner, "cancelled")

        with self.assertRaises(PhaseViolation):
            self.deposit(self.new_participant(), eth(1))
        with self.assertRaises(PhaseViolation):
            self.call_lock("execute", self.deployment.owner)
        with self.assertRaises(PhaseViolation):
            self.call_lock("setup", self.user1, self.user1)
        self.assertFalse(self.view_lock("is_executed"))

    def test_refund_event_carries_reason(self):
        self.call_lock("refund", self.deployment.owner, "market closed")
        payload = json.loads(self.runner.get_events(self.deployment.lock_id)[-1].data)
        self.assertEqual(payload, {"event": "refund", "reason": "market closed"})


class LiquidityLockExecuteTestCase(LiquidityLockTestCase):
    """Execution gates and the proceeds it produces."""

    def setUp(self):
        super().setUp()
        self.user1 = self.new_participant()
        self.user2 = self.new_participant()
        self.user3 = self.new_participant()

    def test_execute_without_pool_ownership(self):
        self.deploy_lock(transfer_pool=False)
        owner = self.deployment.owner

        with self.assertRaises(AuthorizationDenied):
            self.call_lock("execute", self.user1)
        with self.assertRaises(PreconditionUnmet) as cm:
            self.call_lock("execute", owner)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.NO_DEPOSITS)

        for user in (self.user1, self.user2, self.user3):
            self.deposit(user, eth(1.001))

        with self.assertRaises(PreconditionUnmet) as cm:
            self.call_lock("execute", owner)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.MUST_OWN_POOL)
        self.assertFalse(self.view_lock("is_executed"))

    def test_soft_limit_gate(self):
        self.deploy_lock()
        owner = self.deployment.owner

        with self.assertRaises(PhaseViolation) as cm:
            self.call_lock("setup", self.user1, self.user1)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.NOT_EXECUTED)

        self.deposit(self.user1, eth(1.001))
        with self.assertRaises(PreconditionUnmet) as cm:
            self.call_lock("execute", owner)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.SOFT_LIMIT)
        self.assertEqual(str(cm.exception), "Bonus amount must be at least the soft limit")
        self.assertFalse(self.view_lock("is_executed"))

        self.deposit(self.user2, eth(1.001))
        self.call_lock("execute", owner)
        self.assertTrue(self.view_lock("is_executed"))

    def test_execute_proceeds(self):
        self.deploy_lock()
        d = self.deployment
        amounts = [eth(1.001), eth(1.001), eth(2)]
        for user, amount in zip((self.user1, self.user2, self.user3), amounts):
            self.deposit(user, amount)
        total = sum(amounts)
        liquidity_bonus = total * TestConstants.CONVERSION_RATIO

        self.advance(DAY)
        self.call_lock("execute", d.owner)

        contract = self.lock_state()
        expected_shares = isqrt(total * liquidity_bonus)
        self.assertTrue(contract.executed)
        self.assertEqual(contract.execution_timestamp, self.now)
        self.assertEqual(contract.total_liquidity_proceeds, expected_shares)
        self.assertEqual(contract.total_reward_reserve, TestConstants.STAKING_REWARD)
        self.assertEqual(
            contract.total_bonus_proceeds,
            TestConstants.POOL_FUNDS - liquidity_bonus - TestConstants.STAKING_REWARD,
        )

        # Contributions moved to the market, the pool was emptied and handed back.
        self.assertEqual(self.runner.get_balance(d.lock_id), 0)
        self.assertEqual(self.runner.get_balance(d.market_id), total)
        self.assertEqual(self.shares_of(d.lock_id), expected_shares)
        self.assertEqual(self.token_balance(d.pool_id), 0)
        self.assertEqual(
            self.token_balance(d.lock_id),
            TestConstants.POOL_FUNDS - liquidity_bonus,
        )
        self.assertEqual(self.runner.call_view_method(d.pool_id, "get_owner"), d.recipient)
        self.assertEqual(
            self.runner.call_view_method(d.market_id, "get_reserves"),
            (total, liquidity_bonus),
        )

    def test_execute_is_one_time(self):
        self.deploy_lock()
        self.deposit(self.user1, eth(2))
        self.call_lock("execute", self.deployment.owner)

        with self.assertRaises(AlreadyDone):
            self.call_lock("execute", self.deployment.owner)
        with self.assertRaises(PhaseViolation):
            self.call_lock("refund", self.deployment.owner, "too late")
        with self.assertRaises(PhaseViolation):
            self.deposit(self.user2, eth(2))
        with self.assertRaises(PhaseViolation):
            self.call_lock("refund_withdrawal", self.user1, self.user1)
        self.assertFalse(self.view_lock("is_disabled"))

    def test_pool_must_cover_allocation(self):
        # Covers the liquidity bonus but not the staking reward.
        self.deploy_lock(pool_funds=eth(2_000))
        self.deposit(self.user1, eth(2))

        with self.assertRaises(PreconditionUnmet) as cm:
            self.call_lock("execute", self.deployment.owner)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.POOL_INSUFFICIENT)
        self.assertEqual(self.token_balance(self.deployment.pool_id), eth(2_000))

    def test_market_refund_goes_to_recipient(self):
        self.deploy_lock()
        d = self.deployment

        # Seed the market at 1 native : 2000 tokens, so the lock brings too
        # much native value for its 1000 tokens per unit.
        provider = self.new_participant()
        self.runner.call_public_method(
            d.token_id, "transfer", self.create_context(d.recipient), provider, eth(2_000)
        )
        self.runner.call_public_method(
            d.token_id, "transfer", self.create_context(provider), d.market_id, eth(2_000)
        )
        self.runner.call_public_method(
            d.market_id,
            "add_liquidity",
            self.create_context(
                provider, actions=[NCDepositAction(token_uid=NATIVE_TOKEN_UID, amount=eth(1))]
            ),
            eth(2_000),
            provider,
        )

        self.deposit(self.user1, eth(2))
        self.call_lock("execute", d.owner)

        # 2000 tokens only match 1 native unit at the market price.
        self.assertEqual(self.runner.get_balance(d.recipient), eth(1))
        self.assertEqual(self.runner.get_balance(d.lock_id), 0)
        self.assertEqual(self.lock_state().total_liquidity_proceeds, self.shares_of(d.lock_id))


class LiquidityLockVestingTestCase(LiquidityLockTestCase):
    """Execution, setup and redemption with a 30 / 335 / 1 day schedule."""

    def setUp(self):
        super().setUp()
        self.deploy_lock()
        self.user1 = self.new_participant()
        self.user2 = self.new_participant()
        self.user3 = self.new_participant()
        self.user4 = self.new_participant()
        self.amounts = {
            self.user1: eth(1.001),
            self.user2: eth(1.001),
            self.user3: eth(2),
        }
        for user, amount in self.amounts.items():
            self.deposit(user, amount)
        self.total = sum(self.amounts.values())
        self.call_lock("execute", self.deployment.owner)
        self.proceeds = self.view_lock("get_proceeds_info")

    def test_setup(self):
        self.call_lock("setup", self.user1, self.user1)
        info = self.view_lock("get_participant_info", self.user1)
        self.assertTrue(info.is_active)
        self.assertEqual(
            info.liquidity_total,
            self.proceeds.total_liquidity_proceeds * self.amounts[self.user1] // self.total,
        )
        self.assertEqual(
            info.bonus_total,
            self.proceeds.total_bonus_proceeds * self.amounts[self.user1] // self.total,
        )
        self.assertEqual(
            info.reward_total,
            TestConstants.STAKING_REWARD * self.amounts[self.user1] // self.total,
        )
        self.assertEqual(info.liquidity_released, 0)

    def test_setup_on_behalf(self):
        self.call_lock("setup", self.user2, self.user3)
        self.assertTrue(self.view_lock("get_participant_info", self.user3).is_active)
        self.assertFalse(self.view_lock("get_participant_info", self.user2).is_active)

        self.call_lock("setup", self.user2, self.user2)

        with self.assertRaises(AlreadyDone) as cm:
            self.call_lock("setup", self.user3, self.user3)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.ALREADY_SETUP)

    def test_setup_without_deposit(self):
        with self.assertRaises(PreconditionUnmet) as cm:
            self.call_lock("setup", self.user4, self.user4)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.NO_DEPOSIT_FROM)

    def test_redeem_without_setup(self):
        for method in ("redeem_liquidity_proceeds", "redeem_bonus_proceeds", "claim_for"):
            with self.assertRaises(PhaseViolation) as cm:
                self.call_lock(method, self.user4, self.user4)
            self.assertEqual(str(cm.exception), LiquidityLockErrors.NOT_ACTIVE)

    def test_redeem_before_cliff(self):
        self.call_lock("setup", self.user1, self.user1)
        self.advance(TestConstants.CLIFF_DAYS * DAY)
        for method in ("redeem_liquidity_proceeds", "redeem_bonus_proceeds"):
            with self.assertRaises(NothingToClaim) as cm:
                self.call_lock(method, self.user1, self.user1)
            self.assertEqual(str(cm.exception), LiquidityLockErrors.NOT_VESTED)

    def test_vesting_schedule(self):
        d = self.deployment
        self.call_lock("setup", self.user1, self.user1)
        grant = self.view_lock("get_participant_info", self.user1).liquidity_total
        total_intervals = TestConstants.DURATION_DAYS - TestConstants.CLIFF_DAYS

        self.advance(DAY * (TestConstants.CLIFF_DAYS + 1))
        self.call_lock("redeem_liquidity_proceeds", self.user1, self.user1)
        first = grant // total_intervals
        self.assertEqual(self.shares_of(self.user1), first)

        # Same interval again.
        with self.assertRaises(NothingToClaim) as cm:
            self.call_lock("redeem_liquidity_proceeds", self.user1, self.user1)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.NOT_VESTED)

        self.advance(DAY)
        self.call_lock("redeem_liquidity_proceeds", self.user1, self.user1)
        self.assertEqual(self.shares_of(self.user1), grant * 2 // total_intervals)

        self.advance(DAY * 338)
        self.call_lock("redeem_liquidity_proceeds", self.user1, self.user1)
        self.assertEqual(self.shares_of(self.user1), grant)

        with self.assertRaises(AlreadyDone) as cm:
            self.call_lock("redeem_liquidity_proceeds", self.user1, self.user1)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.NO_LIQUIDITY_LEFT)

        info = self.lock_state().vesting_data[self.user1]
        self.assertEqual(info.liquidity_grant.released, grant)
        self.assertEqual(info.liquidity_grant.last_redemption_period, total_intervals + 1)
        self.assertEqual(self.shares_of(d.lock_id), self.proceeds.total_liquidity_proceeds - grant)

    def test_redeem_bonus_on_behalf(self):
        self.call_lock("setup", self.user2, self.user2)
        grant = self.view_lock("get_participant_info", self.user2).bonus_total

        self.advance(DAY * TestConstants.DURATION_DAYS)
        self.call_lock("redeem_bonus_proceeds", self.user3, self.user2)
        self.assertEqual(self.token_balance(self.user2), grant)
        self.assertEqual(self.token_balance(self.user3), 0)

        with self.assertRaises(AlreadyDone) as cm:
            self.call_lock("redeem_bonus_proceeds", self.user2, self.user2)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.NO_BONUS_LEFT)

    def test_claim_rewards(self):
        self.call_lock("setup", self.user1, self.user1)
        grant = self.view_lock("get_participant_info", self.user1).reward_total

        elapsed = DAY * (TestConstants.CLIFF_DAYS + 1)
        self.advance(elapsed)
        self.call_lock("claim_for", self.user1, self.user1)
        expected = grant * elapsed // TestConstants.STAKING_DURATION
        self.assertEqual(self.token_balance(self.user1), expected)

        self.advance(TestConstants.STAKING_DURATION)
        self.call_lock("claim_for", self.user1, self.user1)
        self.assertEqual(self.token_balance(self.user1), grant)

        with self.assertRaises(AlreadyDone) as cm:
            self.call_lock("claim_for", self.user1, self.user1)
        self.assertEqual(str(cm.exception), LiquidityLockErrors.NO_REWARD_LEFT)

    def test_grants_are_independent(self):
        self.call_lock("setup", self.user1, self.user1)
        self.advance(DAY * (TestConstants.CLIFF_DAYS + 1))

        self.call_lock("redeem_liquidity_proceeds", self.user1, self.user1)
        self.call_lock("redeem_bonus_proceeds", self.user1, self.user1)
        self.call_lock("claim_for", self.user1, self.user1)

        info = self.view_lock("get_vesting_info", self.user1, self.now)
        self.assertEqual(info.liquidity.claimable, 0)
        self.assertEqual(info.bonus.claimable, 0)
        self.assertGreater(info.liquidity.released, 0)
        self.assertGreater(info.bonus.released, 0)
        self.assertGreater(info.reward.released, 0)

    def test_conservation(self):
        for user in self.amounts:
            self.call_lock("setup", user, user)
        self.advance(DAY * TestConstants.DURATION_DAYS + TestConstants.STAKING_DURATION)

        for user in self.amounts:
            self.call_lock("redeem_liquidity_proceeds", user, user)
            self.call_lock("redeem_bonus_proceeds", user, user)
            self.call_lock("claim_for", user, user)

        d = self.deployment
        paid_shares = sum(self.shares_of(user) for user in self.amounts)
        paid_tokens = sum(self.token_balance(user) for user in self.amounts)
        total_tokens = self.proceeds.total_bonus_proceeds + self.proceeds.total_reward_reserve

        self.assertLessEqual(paid_shares, self.proceeds.total_liquidity_proceeds)
        self.assertLessEqual(paid_tokens, total_tokens)
        # Rounding remainders stay in the lock.
        self.assertEqual(paid_shares + self.shares_of(d.lock_id), self.proceeds.total_liquidity_proceeds)
        self.assertEqual(paid_tokens + self.token_balance(d.lock_id), total_tokens)
        self.assertLess(self.shares_of(d.lock_id), len(self.amounts))

    def test_vesting_info_view(self):
        self.call_lock("setup", self.user1, self.user1)
        grant = self.view_lock("get_participant_info", self.user1).liquidity_total

        before_cliff = self.view_lock("get_vesting_info", self.user1, self.now + DAY)
        self.assertEqual(before_cliff.liquidity.claimable, 0)
        self.assertEqual(before_cliff.liquidity.total, grant)

        at_end = self.view_lock(
            "get_vesting_info", self.user1, self.now + DAY * TestConstants.DURATION_DAYS
        )
        self.assertEqual(at_end.liquidity.claimable, grant)

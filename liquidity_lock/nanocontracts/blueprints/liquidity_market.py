from math import isqrt
from typing import NamedTuple

from liquidity_lock import (
    NATIVE_TOKEN_UID,
    Amount,
    Blueprint,
    CallerId,
    Context,
    ContractId,
    NCFail,
    public,
    view,
)
from liquidity_lock.utils.math import checked_add, checked_mul


class AddLiquidityResult(NamedTuple):
    """Outcome of an add_liquidity call."""

    shares: int
    native_used: int
    token_used: int
    native_refund: int
    token_refund: int


class InvalidAmount(NCFail):
    pass


class InsufficientTokens(NCFail):
    pass


class InsufficientShares(NCFail):
    pass


class LiquidityMarket(Blueprint):
    """Constant product pair between the native asset and one token.

    Providers transfer the token to the market first and then call
    `add_liquidity` with the native value attached. Shares are minted to `to`
    and whatever does not match the current price is sent back to the caller.
    """

    token: ContractId
    reserve_native: Amount
    reserve_token: Amount
    total_shares: Amount
    shares: dict[CallerId, Amount]

    @public
    def initialize(self, ctx: Context, token: ContractId) -> None:
        self.token = token
        self.reserve_native = Amount(0)
        self.reserve_token = Amount(0)
        self.total_shares = Amount(0)

    def _unaccounted_tokens(self) -> int:
        balance = self.syscall.call_view_method(
            self.token, "balance_of", self.syscall.get_contract_id()
        )
        return balance - self.reserve_token

    def _quote(self, native: int, token_amount: int) -> tuple[int, int, int]:
        """Return (native_used, token_used, shares) at the current price."""
        if self.total_shares == 0:
            return native, token_amount, isqrt(checked_mul(native, token_amount))

        token_optimal = checked_mul(native, self.reserve_token) // self.reserve_native
        if token_optimal <= token_amount:
            native_used, token_used = native, token_optimal
        else:
            native_used = checked_mul(token_amount, self.reserve_native) // self.reserve_token
            token_used = token_amount

        shares = min(
            checked_mul(native_used, self.total_shares) // self.reserve_native,
            checked_mul(token_used, self.total_shares) // self.reserve_token,
        )
        return native_used, token_used, shares

    @public(allow_deposit=True)
    def add_liquidity(
        self, ctx: Context, token_amount: Amount, to: CallerId
    ) -> AddLiquidityResult:
        action = ctx.get_single_action(NATIVE_TOKEN_UID)
        native = action.amount
        if native <= 0 or token_amount <= 0:
            raise InvalidAmount("Both amounts must be positive")
        if self._unaccounted_tokens() < token_amount:
            raise InsufficientTokens("Tokens must be transferred before adding liquidity")

        native_used, token_used, minted = self._quote(native, token_amount)
        if minted <= 0:
            raise InsufficientShares("Insufficient liquidity minted")

        self.reserve_native = Amount(checked_add(self.reserve_native, native_used))
        self.reserve_token = Amount(checked_add(self.reserve_token, token_used))
        self.total_shares = Amount(checked_add(self.total_shares, minted))
        self.shares[to] = Amount(checked_add(self.shares.get(to, 0), minted))

        native_refund = native - native_used
        token_refund = token_amount - token_used
        if native_refund > 0:
            self.syscall.transfer(ctx.caller_id, native_refund)
        if token_refund > 0:
            self.syscall.call_public_method(
                self.token, "transfer", [], ctx.caller_id, token_refund
            )

        return AddLiquidityResult(
            shares=minted,
            native_used=native_used,
            token_used=token_used,
            native_refund=native_refund,
            token_refund=token_refund,
        )

    @public
    def transfer_shares(self, ctx: Context, to: CallerId, amount: Amount) -> None:
        if amount < 0:
            raise InvalidAmount("Amount must not be negative")
        balance = self.shares.get(ctx.caller_id, Amount(0))
        if balance < amount:
            raise InsufficientShares(f"Share balance is {balance}, needs {amount}")
        self.shares[ctx.caller_id] = Amount(balance - amount)
        self.shares[to] = Amount(checked_add(self.shares.get(to, 0), amount))

    @view
    def get_reserves(self) -> tuple[int, int]:
        return self.reserve_native, self.reserve_token

    @view
    def shares_of(self, address: CallerId) -> Amount:
        return self.shares.get(address, Amount(0))

    @view
    def get_total_shares(self) -> Amount:
        return self.total_shares


__blueprint__ = LiquidityMarket

from typing import NamedTuple

from liquidity_lock import (
    Amount,
    Blueprint,
    CallerId,
    Context,
    NCFail,
    public,
    view,
)
from liquidity_lock.utils.math import checked_add


class TokenInfo(NamedTuple):
    name: str
    symbol: str
    total_supply: int


class InsufficientBalance(NCFail):
    pass


class InvalidAmount(NCFail):
    pass


class Token(Blueprint):
    """Fungible token with a fixed supply minted to its creator.

    Balances can belong to accounts or to other contracts, which is how the
    bonus pool and the liquidity lock hold the bonus asset.
    """

    name: str
    symbol: str
    total_supply: Amount
    balances: dict[CallerId, Amount]

    @public
    def initialize(
        self, ctx: Context, name: str, symbol: str, initial_supply: Amount
    ) -> None:
        if initial_supply < 0:
            raise InvalidAmount("Initial supply must not be negative")
        self.name = name
        self.symbol = symbol
        self.total_supply = Amount(initial_supply)
        self.balances[ctx.caller_id] = Amount(initial_supply)

    @public
    def transfer(self, ctx: Context, to: CallerId, amount: Amount) -> None:
        """Move `amount` from the caller to `to`."""
        if amount < 0:
            raise InvalidAmount("Amount must not be negative")

        balance = self.balances.get(ctx.caller_id, Amount(0))
        if balance < amount:
            raise InsufficientBalance(f"Balance is {balance}, needs {amount}")

        self.balances[ctx.caller_id] = Amount(balance - amount)
        self.balances[to] = Amount(checked_add(self.balances.get(to, 0), amount))

    @view
    def balance_of(self, address: CallerId) -> Amount:
        return self.balances.get(address, Amount(0))

    @view
    def get_token_info(self) -> TokenInfo:
        return TokenInfo(
            name=self.name,
            symbol=self.symbol,
            total_supply=self.total_supply,
        )


__blueprint__ = Token

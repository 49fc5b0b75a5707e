from liquidity_lock import (
    Amount,
    Blueprint,
    CallerId,
    Context,
    ContractId,
    NCFail,
    public,
    view,
)


class Unauthorized(NCFail):
    pass


class BonusPool(Blueprint):
    """Ownable pool of the bonus asset.

    The pool holds a balance in the token contract. Only its owner can release
    tokens or hand the pool over to someone else.
    """

    owner: CallerId
    token: ContractId

    def _only_owner(self, ctx: Context) -> None:
        if ctx.caller_id != self.owner:
            raise Unauthorized("Ownable: caller is not the owner")

    @public
    def initialize(self, ctx: Context, token: ContractId) -> None:
        self.owner = ctx.caller_id
        self.token = token

    @public
    def transfer_ownership(self, ctx: Context, new_owner: CallerId) -> None:
        self._only_owner(ctx)
        self.owner = new_owner

    @public
    def release(self, ctx: Context, to: CallerId, amount: Amount) -> None:
        """Send `amount` of the pooled tokens to `to`."""
        self._only_owner(ctx)
        self.syscall.call_public_method(self.token, "transfer", [], to, amount)

    @view
    def get_owner(self) -> CallerId:
        return self.owner

    @view
    def get_available(self) -> Amount:
        return self.syscall.call_view_method(
            self.token, "balance_of", self.syscall.get_contract_id()
        )


__blueprint__ = BonusPool

# Copyright 2025 Hathor Labs
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations

import functools
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, NamedTuple, Sequence

from liquidity_lock.nanocontracts.blueprint import Blueprint
from liquidity_lock.nanocontracts.context import Context
from liquidity_lock.nanocontracts.exception import (
    NanoContractDoesNotExist,
    NCContractAlreadyExists,
    NCFail,
    NCForbiddenAction,
    NCInsufficientFunds,
    NCMethodNotFound,
    NCViewMethodError,
)
from liquidity_lock.nanocontracts.types import (
    NCDepositAction,
    allows_deposit,
    is_public,
    is_view,
)
from liquidity_lock.types import (
    NATIVE_TOKEN_UID,
    Amount,
    CallerId,
    ContractId,
    Timestamp,
)

logger = logging.getLogger(__name__)

# Called with (runner, sender, amount, timestamp) after native value is credited
# to the address the hook is registered for.
ReceiverHook = Callable[["Runner", CallerId, int, Timestamp], None]


@dataclass(frozen=True, slots=True)
class NCEvent:
    contract_id: ContractId
    data: bytes


class _Snapshot(NamedTuple):
    contracts: dict[ContractId, tuple[Blueprint, dict[str, Any]]]
    balances: dict[bytes, int]
    events_len: int


class Runner:
    """In-process ledger that executes contract calls.

    Every public call (including calls between contracts) runs inside a
    transaction: the state of all contracts, the native balances and the event
    log are snapshotted before the call and restored if it raises. A single
    re-entrant lock serializes calls, so each operation sees the whole ledger
    exclusively for its duration.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._contracts: dict[ContractId, Blueprint] = {}
        self._balances: dict[bytes, int] = {}
        self._events: list[NCEvent] = []
        self._receivers: dict[bytes, ReceiverHook] = {}
        self._call_stack: list[tuple[ContractId, Context]] = []

    # Ledger harness

    def set_balance(self, address: CallerId, amount: int) -> None:
        if amount < 0:
            raise ValueError("balance must not be negative")
        with self._lock:
            self._balances[bytes(address)] = amount

    def get_balance(self, address: CallerId) -> Amount:
        with self._lock:
            return Amount(self._balances.get(bytes(address), 0))

    def register_receiver(self, address: CallerId, hook: ReceiverHook) -> None:
        """Run `hook` every time native value is transferred to `address`."""
        with self._lock:
            self._receivers[bytes(address)] = hook

    def get_events(self, contract_id: ContractId | None = None) -> list[NCEvent]:
        with self._lock:
            if contract_id is None:
                return list(self._events)
            return [event for event in self._events if event.contract_id == contract_id]

    def has_contract(self, contract_id: ContractId) -> bool:
        return contract_id in self._contracts

    def get_blueprint_class(self, contract_id: ContractId) -> type[Blueprint]:
        return type(self._get_contract(contract_id))

    def get_readonly_contract(self, contract_id: ContractId) -> Blueprint:
        """Return a detached copy of the contract for inspection."""
        with self._lock:
            contract = self._get_contract(contract_id)
            copy = type(contract).__new__(type(contract))
            copy.set_state(contract.get_state())
            return copy

    # Calls

    def create_contract(
        self,
        contract_id: ContractId,
        blueprint_class: type[Blueprint],
        ctx: Context,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        with self._transaction():
            if contract_id in self._contracts:
                raise NCContractAlreadyExists(contract_id.hex())
            contract = blueprint_class(Syscall(self, contract_id))
            self._contracts[contract_id] = contract
            result = self._execute(contract_id, "initialize", ctx, args, kwargs)
        logger.info(
            "contract created: %s (%s)", contract_id.hex(), blueprint_class.__name__
        )
        return result

    def call_public_method(
        self,
        contract_id: ContractId,
        method_name: str,
        ctx: Context,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        try:
            with self._transaction():
                return self._execute(contract_id, method_name, ctx, args, kwargs)
        except NCFail as e:
            logger.debug(
                "call reverted: %s.%s: %r", contract_id.hex(), method_name, e
            )
            raise

    def call_view_method(
        self, contract_id: ContractId, method_name: str, *args: Any, **kwargs: Any
    ) -> Any:
        with self._lock:
            contract = self._get_contract(contract_id)
            method = getattr(type(contract), method_name, None)
            if method is None or not is_view(method):
                raise NCMethodNotFound(f"{type(contract).__name__}.{method_name}")
            snapshot = self._snapshot()
            try:
                result = method(contract, *args, **kwargs)
            except BaseException:
                self._restore(snapshot)
                raise
            if self._changed_since(snapshot):
                self._restore(snapshot)
                raise NCViewMethodError(f"{method_name} changed the ledger state")
            return result

    # Used through Syscall

    def current_context(self) -> Context:
        if not self._call_stack:
            raise NCFail("no call in progress")
        return self._call_stack[-1][1]

    def transfer(self, sender: CallerId, to: CallerId, amount: int) -> None:
        """Move native value and notify the receiver, if it has a hook."""
        timestamp = self.current_context().timestamp
        self._move(sender, to, amount)
        hook = self._receivers.get(bytes(to))
        if hook is not None:
            hook(self, sender, amount, timestamp)

    def emit_event(self, contract_id: ContractId, data: bytes) -> None:
        self._events.append(NCEvent(contract_id=contract_id, data=data))

    # Internals

    def _get_contract(self, contract_id: ContractId) -> Blueprint:
        try:
            return self._contracts[contract_id]
        except KeyError:
            raise NanoContractDoesNotExist(contract_id.hex()) from None

    def _execute(
        self,
        contract_id: ContractId,
        method_name: str,
        ctx: Context,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Any:
        contract = self._get_contract(contract_id)
        method = getattr(type(contract), method_name, None)
        if method is None or not is_public(method):
            raise NCMethodNotFound(f"{type(contract).__name__}.{method_name}")

        if ctx.actions and not allows_deposit(method):
            raise NCForbiddenAction(f"{method_name} does not accept deposits")
        for action in ctx.actions.values():
            if action.token_uid != NATIVE_TOKEN_UID:
                raise NCForbiddenAction("only native deposits are supported")
            self._move(ctx.caller_id, contract_id, action.amount)

        self._call_stack.append((contract_id, ctx))
        try:
            return method(contract, ctx, *args, **kwargs)
        finally:
            self._call_stack.pop()

    def _move(self, sender: CallerId, to: CallerId, amount: int) -> None:
        if amount < 0:
            raise NCFail("amount must not be negative")
        sender_balance = self._balances.get(bytes(sender), 0)
        if sender_balance < amount:
            raise NCInsufficientFunds(
                f"balance of {sender.hex()} is {sender_balance}, needs {amount}"
            )
        self._balances[bytes(sender)] = sender_balance - amount
        self._balances[bytes(to)] = self._balances.get(bytes(to), 0) + amount

    def _snapshot(self) -> _Snapshot:
        return _Snapshot(
            contracts={
                contract_id: (contract, contract.get_state())
                for contract_id, contract in self._contracts.items()
            },
            balances=dict(self._balances),
            events_len=len(self._events),
        )

    def _changed_since(self, snapshot: _Snapshot) -> bool:
        if self._balances != snapshot.balances or len(self._events) != snapshot.events_len:
            return True
        if self._contracts.keys() != snapshot.contracts.keys():
            return True
        return any(
            contract.get_state() != state
            for contract, state in snapshot.contracts.values()
        )

    def _restore(self, snapshot: _Snapshot) -> None:
        self._contracts = {}
        for contract_id, (contract, state) in snapshot.contracts.items():
            contract.set_state(state)
            self._contracts[contract_id] = contract
        self._balances = snapshot.balances
        del self._events[snapshot.events_len:]

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        with self._lock:
            snapshot = self._snapshot()
            try:
                yield
            except BaseException:
                self._restore(snapshot)
                raise


class Syscall:
    """Handle a contract uses to reach the runner."""

    def __init__(self, runner: Runner, contract_id: ContractId) -> None:
        self._runner = runner
        self._contract_id = contract_id

    def get_contract_id(self) -> ContractId:
        return self._contract_id

    def get_balance(self) -> Amount:
        return self._runner.get_balance(self._contract_id)

    def transfer(self, to: CallerId, amount: int) -> None:
        self._runner.transfer(self._contract_id, to, amount)

    def emit_event(self, data: bytes) -> None:
        self._runner.emit_event(self._contract_id, data)

    def call_public_method(
        self,
        contract_id: ContractId,
        method_name: str,
        actions: Sequence[NCDepositAction],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        ctx = Context(
            caller_id=self._contract_id,
            timestamp=self._runner.current_context().timestamp,
            actions=actions,
        )
        return self._runner.call_public_method(contract_id, method_name, ctx, *args, **kwargs)

    def call_view_method(
        self, contract_id: ContractId, method_name: str, *args: Any, **kwargs: Any
    ) -> Any:
        return self._runner.call_view_method(contract_id, method_name, *args, **kwargs)

    def get_contract(self, contract_id: ContractId) -> ContractProxy:
        return ContractProxy(self, contract_id)


class ContractProxy:
    """Calls methods of another contract on behalf of the current one.

        proxy.public(NCDepositAction(...)).add_liquidity(amount, to)
        proxy.view().get_reserves()
    """

    def __init__(self, syscall: Syscall, contract_id: ContractId) -> None:
        self._syscall = syscall
        self._contract_id = contract_id

    def public(self, *actions: NCDepositAction) -> _MethodAccessor:
        def call(method_name: str, *args: Any, **kwargs: Any) -> Any:
            return self._syscall.call_public_method(
                self._contract_id, method_name, actions, *args, **kwargs
            )

        return _MethodAccessor(call)

    def view(self) -> _MethodAccessor:
        return _MethodAccessor(
            functools.partial(self._syscall.call_view_method, self._contract_id)
        )


class _MethodAccessor:
    def __init__(self, call: Callable[..., Any]) -> None:
        self._call = call

    def __getattr__(self, method_name: str) -> Callable[..., Any]:
        if method_name.startswith("_"):
            raise AttributeError(method_name)

        def method(*args: Any, **kwargs: Any) -> Any:
            return self._call(method_name, *args, **kwargs)

        return method

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

from collections.abc import Iterable
from types import MappingProxyType
from typing import Mapping

from liquidity_lock.nanocontracts.exception import NCFail
from liquidity_lock.nanocontracts.types import NCDepositAction
from liquidity_lock.types import Address, CallerId, Timestamp, TokenUid


class Context:
    """Context passed to every public method call.

    It identifies who is calling, when the call happens and which deposits
    come with it. There is at most one action per token.
    """

    __slots__ = ("_caller_id", "_timestamp", "_actions")

    def __init__(
        self,
        caller_id: CallerId,
        timestamp: int,
        actions: Iterable[NCDepositAction] = (),
    ) -> None:
        actions_map: dict[TokenUid, NCDepositAction] = {}
        for action in actions:
            if action.token_uid in actions_map:
                raise NCFail(f"duplicated action for token {action.token_uid.hex()}")
            if action.amount < 0:
                raise NCFail("action amount must not be negative")
            actions_map[action.token_uid] = action

        self._caller_id = caller_id
        self._timestamp = Timestamp(timestamp)
        self._actions = MappingProxyType(actions_map)

    @property
    def caller_id(self) -> CallerId:
        return self._caller_id

    @property
    def address(self) -> Address:
        """Caller as an account address.

        Contracts calling other contracts also show up here, so blueprints
        comparing against an owner address keep working for both."""
        return Address(self._caller_id)

    @property
    def timestamp(self) -> Timestamp:
        return self._timestamp

    @property
    def actions(self) -> Mapping[TokenUid, NCDepositAction]:
        return self._actions

    def get_single_action(self, token_uid: TokenUid) -> NCDepositAction:
        """Return the only action of the context, checking its token."""
        if len(self._actions) != 1:
            raise NCFail("expected exactly one action")
        action = self._actions.get(token_uid)
        if action is None:
            raise NCFail(f"expected an action for token {token_uid.hex()}")
        return action

    def __repr__(self) -> str:
        return (
            f"Context(caller_id={self._caller_id!r}, timestamp={self._timestamp}, "
            f"actions={list(self._actions.values())!r})"
        )

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

from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from liquidity_lock.types import (
    Address,
    Amount,
    CallerId,
    ContractId,
    NATIVE_TOKEN_UID,
    Timestamp,
    TokenUid,
)

__all__ = [
    "Address",
    "Amount",
    "CallerId",
    "ContractId",
    "NATIVE_TOKEN_UID",
    "NCDepositAction",
    "Timestamp",
    "TokenUid",
    "public",
    "view",
]

T = TypeVar("T", bound=Callable[..., Any])

PUBLIC_MARKER = "_nc_public"
VIEW_MARKER = "_nc_view"
ALLOW_DEPOSIT_MARKER = "_nc_allow_deposit"


@dataclass(frozen=True, slots=True)
class NCDepositAction:
    """Native value or token sent along with a call."""

    token_uid: TokenUid
    amount: int


def public(fn: T | None = None, /, *, allow_deposit: bool = False) -> Any:
    """Mark a blueprint method as callable through the runner.

    Can be used bare (`@public`) or with options (`@public(allow_deposit=True)`).
    """

    def decorator(method: T) -> T:
        setattr(method, PUBLIC_MARKER, True)
        setattr(method, ALLOW_DEPOSIT_MARKER, allow_deposit)
        return method

    if fn is not None:
        return decorator(fn)
    return decorator


def view(fn: T) -> T:
    """Mark a blueprint method as read-only."""
    setattr(fn, VIEW_MARKER, True)
    return fn


def is_public(fn: Any) -> bool:
    return getattr(fn, PUBLIC_MARKER, False)


def is_view(fn: Any) -> bool:
    return getattr(fn, VIEW_MARKER, False)


def allows_deposit(fn: Any) -> bool:
    return getattr(fn, ALLOW_DEPOSIT_MARKER, False)

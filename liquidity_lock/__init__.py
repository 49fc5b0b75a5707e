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

from liquidity_lock.nanocontracts.blueprint import Blueprint
from liquidity_lock.nanocontracts.context import Context
from liquidity_lock.nanocontracts.exception import NCFail
from liquidity_lock.nanocontracts.types import NCDepositAction, public, view
from liquidity_lock.types import (
    NATIVE_TOKEN_UID,
    Address,
    Amount,
    CallerId,
    ContractId,
    Timestamp,
    TokenUid,
)

__version__ = "0.1.0"

__all__ = [
    "Address",
    "Amount",
    "Blueprint",
    "CallerId",
    "Context",
    "ContractId",
    "NATIVE_TOKEN_UID",
    "NCDepositAction",
    "NCFail",
    "Timestamp",
    "TokenUid",
    "public",
    "view",
]

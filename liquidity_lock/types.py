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

from typing import NewType, TypeAlias


class Address(bytes):
    """An externally owned account."""

    def __repr__(self) -> str:
        return f"Address({self.hex()})"


class ContractId(bytes):
    """Identifier of a contract created by the runner."""

    def __repr__(self) -> str:
        return f"ContractId({self.hex()})"


class TokenUid(bytes):
    def __repr__(self) -> str:
        return f"TokenUid({self.hex()})"


Amount = NewType("Amount", int)
Timestamp = NewType("Timestamp", int)

# Either an account or a contract can be the caller of a method.
CallerId: TypeAlias = Address | ContractId

NATIVE_TOKEN_UID = TokenUid(b"\x00")

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

"""Overflow-checked integer arithmetic.

Amounts are unsigned 256-bit integers. Python integers never overflow, so every
operation that could leave that range is checked explicitly and fails the call
instead of wrapping around.
"""

from liquidity_lock.nanocontracts.exception import NCFail

MAX_AMOUNT = 2**256 - 1


class ArithmeticOverflow(NCFail):
    pass


def _check(value: int) -> int:
    if value < 0 or value > MAX_AMOUNT:
        raise ArithmeticOverflow(f"value out of range: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    return _check(_check(a) + _check(b))


def checked_sub(a: int, b: int) -> int:
    """Subtract, failing if the result would be negative."""
    return _check(_check(a) - _check(b))


def checked_mul(a: int, b: int) -> int:
    return _check(_check(a) * _check(b))


def mul_div(a: int, b: int, denominator: int) -> int:
    """Compute floor(a * b / denominator) with a checked product."""
    if denominator <= 0:
        raise ArithmeticOverflow("division by zero")
    return checked_mul(a, b) // denominator

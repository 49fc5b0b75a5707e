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

from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from typing_extensions import Self

from liquidity_lock.types import Address, ContractId

DAY_IN_SECONDS = 24 * 60 * 60


def _parse_hex(value: Any) -> Any:
    if isinstance(value, str):
        text = value[2:] if value.startswith(("0x", "0X")) else value
        try:
            return bytes.fromhex(text)
        except ValueError as e:
            raise ValueError(f"invalid hex string: {value!r}") from e
    return value


# Hex strings (with or without 0x) or raw bytes.
HexAddress = Annotated[bytes, BeforeValidator(_parse_hex), AfterValidator(Address)]
HexContractId = Annotated[bytes, BeforeValidator(_parse_hex), AfterValidator(ContractId)]


class _SettingsModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class StakingConfig(_SettingsModel):
    """Reward track paid in the bonus asset on top of the bonus grant."""

    duration: int = Field(ge=0)
    is_linear: bool = True
    total_reward_amount: int = Field(default=0, ge=0)


class ScheduleConfig(_SettingsModel):
    """Cliff and linear vesting schedule, expressed in `time_unit` seconds."""

    is_valid: bool = True
    cliff_duration: int = Field(ge=0)
    duration: int = Field(ge=0)
    interval: int = Field(ge=0)
    time_unit: int = Field(default=DAY_IN_SECONDS, gt=0)

    def is_well_formed(self) -> bool:
        """Whether the schedule can be applied at all."""
        return (
            self.is_valid
            and self.interval > 0
            and self.cliff_duration <= self.duration
            and (self.duration - self.cliff_duration) % self.interval == 0
        )


class LockConfig(_SettingsModel):
    """Deployment options of a liquidity lock."""

    min_contribution: int = Field(ge=0)
    # 0 means there is no per-deposit maximum.
    max_contribution: int = Field(default=0, ge=0)
    soft_limit: int = Field(ge=0)
    hard_limit: int = Field(ge=0)
    conversion_ratio: int = Field(gt=0)
    bonus_source: HexContractId
    bonus_asset: HexContractId
    liquidity_market: HexContractId
    recipient: HexAddress
    due_date: int = 0
    enforce_due_date: bool = False
    staking: StakingConfig
    schedule: ScheduleConfig

    @model_validator(mode="after")
    def _check_limits(self) -> Self:
        if self.soft_limit > self.hard_limit:
            raise ValueError("softLimit must not exceed hardLimit")
        if self.max_contribution != 0 and self.min_contribution > self.max_contribution:
            raise ValueError("minContribution must not exceed maxContribution")
        return self


class LiquidityLockSettings(_SettingsModel):
    """Top level settings: the options a lock is deployed with."""

    network_name: str
    lock: LockConfig

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

from liquidity_lock.conf.settings import (
    LiquidityLockSettings,
    LockConfig,
    ScheduleConfig,
    StakingConfig,
)

SETTINGS = LiquidityLockSettings(
    network_name="rinkeby",
    lock=LockConfig(
        min_contribution=10**18,
        max_contribution=100 * 10**18,
        soft_limit=400 * 10**18,
        hard_limit=2_000 * 10**18,
        conversion_ratio=100,
        bonus_source="877181bd082c53457e40847e243a40a61d61b954",
        bonus_asset="8f54971b2e385ff8136ae7eba5224274fb0ef9c5",
        liquidity_market="7a250d5630b4cf539739df2c5dacb4c659f2488d",
        recipient="4eeaba74d7f51fe3202d7963eff61d2e7e166cba",
        due_date=1636321527,
        staking=StakingConfig(
            duration=172_800,
            is_linear=True,
            total_reward_amount=100 * 10**18,
        ),
        schedule=ScheduleConfig(
            is_valid=True,
            cliff_duration=1,
            duration=3,
            interval=1,
        ),
    ),
)

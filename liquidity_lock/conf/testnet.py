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
    network_name="testnet",
    lock=LockConfig(
        min_contribution=10**18,
        max_contribution=100 * 10**18,
        soft_limit=1_500 * 10**18,
        hard_limit=1_000_000 * 10**18,
        conversion_ratio=1_000,
        bonus_source="c866a25f68be46365c7f5633827ef7600b8d1113",
        bonus_asset="6524b87960c2d573ae514fd4181777e7842435d4",
        liquidity_market="7a250d5630b4cf539739df2c5dacb4c659f2488d",
        recipient="4eeaba74d7f51fe3202d7963eff61d2e7e166cba",
        due_date=1634945648,
        staking=StakingConfig(
            duration=63_070_000,
            is_linear=True,
            total_reward_amount=100 * 10**18,
        ),
        # 30 days of cliff, then one day intervals until day 335.
        schedule=ScheduleConfig(
            is_valid=True,
            cliff_duration=30,
            duration=335,
            interval=1,
        ),
    ),
)

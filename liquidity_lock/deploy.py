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

"""Deploys a liquidity lock with the options of the active settings."""

import logging
from typing import Optional

from liquidity_lock.conf.get_settings import get_config
from liquidity_lock.conf.settings import LockConfig
from liquidity_lock.nanocontracts.blueprints.liquidity_lock import LiquidityLock
from liquidity_lock.nanocontracts.context import Context
from liquidity_lock.nanocontracts.runner import Runner
from liquidity_lock.types import Address, ContractId

logger = logging.getLogger(__name__)


def deploy_liquidity_lock(
    runner: Runner,
    contract_id: ContractId,
    owner: Address,
    timestamp: int,
    config: Optional[LockConfig] = None,
) -> LockConfig:
    """Create the lock owned by `owner`, using `get_config()` unless a config is given."""
    if config is None:
        config = get_config()
    ctx = Context(caller_id=owner, timestamp=timestamp)
    runner.create_contract(contract_id, LiquidityLock, ctx, config)
    logger.info(
        "liquidity lock deployed: %s (recipient %s, ratio %d)",
        contract_id.hex(),
        config.recipient.hex(),
        config.conversion_ratio,
    )
    return config

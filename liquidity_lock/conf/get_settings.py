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

import importlib
import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from liquidity_lock.conf.settings import LiquidityLockSettings, LockConfig

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV = "LIQUIDITY_LOCK_CONFIG_FILE"
CONFIG_MODULE_ENV = "LIQUIDITY_LOCK_CONFIG"
DEFAULT_CONFIG_MODULE = "liquidity_lock.conf.testnet"


def get_settings(config_file: Optional[str] = None) -> LiquidityLockSettings:
    """Return the active settings.

    Sources, in order: `config_file`, the file named by
    LIQUIDITY_LOCK_CONFIG_FILE, then the python module named by
    LIQUIDITY_LOCK_CONFIG (which must expose `SETTINGS`).
    """
    config_file = config_file or os.environ.get(CONFIG_FILE_ENV)
    if config_file:
        return load_settings_file(config_file)
    return load_settings_module(os.environ.get(CONFIG_MODULE_ENV, DEFAULT_CONFIG_MODULE))


def get_config(config_file: Optional[str] = None) -> LockConfig:
    return get_settings(config_file).lock


@lru_cache(maxsize=None)
def load_settings_file(path: str) -> LiquidityLockSettings:
    data = json.loads(Path(path).read_text())
    settings = LiquidityLockSettings.model_validate(data)
    logger.info("settings loaded from file %s (network %s)", path, settings.network_name)
    return settings


@lru_cache(maxsize=None)
def load_settings_module(module_name: str) -> LiquidityLockSettings:
    module = importlib.import_module(module_name)
    settings = getattr(module, "SETTINGS", None)
    if not isinstance(settings, LiquidityLockSettings):
        raise TypeError(f"{module_name}.SETTINGS must be a LiquidityLockSettings instance")
    logger.info("settings loaded from module %s (network %s)", module_name, settings.network_name)
    return settings

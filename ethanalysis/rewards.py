"""Estimated yearly validator rewards."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

GWEI_PER_ETH = 1_000_000_000
GWEI_PER_ETH_F64 = float(GWEI_PER_ETH)

MAX_EFFECTIVE_BALANCE = 32.0 * GWEI_PER_ETH_F64
SECONDS_PER_SLOT = 12
SLOTS_PER_EPOCH = 32
EPOCHS_PER_DAY = (24 * 60 * 60) / SLOTS_PER_EPOCH / SECONDS_PER_SLOT
EPOCHS_PER_YEAR = 365.25 * EPOCHS_PER_DAY

BASE_REWARD_FACTOR = 64


@dataclass(frozen=True)
class ValidatorReward:
    """A yearly reward for one validator in (imprecise) Gwei, with its APR."""

    annual_reward: float
    apr: float

    def to_json(self) -> dict[str, Any]:
        return {"annualReward": self.annual_reward, "apr": self.apr}


def get_issuance_reward(effective_balance_sum: int) -> ValidatorReward:
    """Estimate the maximum issuance reward per validator given the total effective balance."""
    active_validators = effective_balance_sum / GWEI_PER_ETH_F64 / 32.0

    max_balance_at_stake = active_validators * MAX_EFFECTIVE_BALANCE

    max_issuance_per_epoch = math.trunc(
        (BASE_REWARD_FACTOR * max_balance_at_stake) / math.floor(math.sqrt(max_balance_at_stake))
    )
    max_issuance_per_year = max_issuance_per_epoch * EPOCHS_PER_YEAR

    annual_reward = max_issuance_per_year / active_validators
    apr = max_issuance_per_year / effective_balance_sum

    logger.debug("total effective balance: %s ETH", effective_balance_sum / GWEI_PER_ETH_F64)
    logger.debug("nr of active validators: %s", active_validators)
    logger.debug("max issuance per epoch: %s ETH", max_issuance_per_epoch / GWEI_PER_ETH_F64)
    logger.debug("max issuance per year: %s ETH", max_issuance_per_year / GWEI_PER_ETH_F64)
    logger.debug("APR: %.2f%%", apr * 100.0)

    return ValidatorReward(annual_reward=annual_reward, apr=apr)
"""
Deployment of a complete staking + vesting system from configuration.

deploy_system() creates, in order:
1. staking, reward and vesting token ledgers (owner = deployment owner)
2. the StakingRewards pool, funded with the reward budget, then its reward rate
3. the TokenVesting vault: its address is derived and funded with the
   allocation first, so the max_supply snapshot taken at construction sees it
4. every vesting schedule listed in config, timed relative to deployment

All contracts share one EventLog so the indexer can replay the deployment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .config_manager import ConfigManager
from .core.clock import TimeProvider, current_time, system_time
from .core.contracts.access import derive_address, normalize_address
from .core.contracts.erc20 import ERC20Token
from .core.defi.staking_rewards import StakingRewards
from .core.defi.vesting import TokenVesting
from .core.events import EventLog

logger = logging.getLogger(__name__)


@dataclass
class DeployedSystem:
    """Handles to everything deploy_system() created."""

    owner: str
    staking_token: ERC20Token
    rewards_token: ERC20Token
    vesting_token: ERC20Token
    staking: StakingRewards
    vesting: TokenVesting
    event_log: EventLog
    deployed_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "deployed_at": self.deployed_at,
            "tokens": {
                "staking": self.staking_token.to_dict(),
                "rewards": self.rewards_token.to_dict(),
                "vesting": self.vesting_token.to_dict(),
            },
            "staking": self.staking.to_dict(),
            "vesting": self.vesting.to_dict(),
            "event_count": len(self.event_log),
        }


def deploy_system(
    config: Optional[ConfigManager] = None,
    time_provider: Optional[TimeProvider] = None,
    event_log: Optional[EventLog] = None,
) -> DeployedSystem:
    """
    Deploy tokens, the staking pool and the vesting vault.

    Args:
        config: Loaded configuration (defaults to ConfigManager())
        time_provider: Clock shared by every contract (defaults to system time)
        event_log: Event log to append to (a fresh one by default)

    Returns:
        DeployedSystem bundle
    """
    config = config or ConfigManager()
    time_provider = time_provider or system_time
    event_log = event_log if event_log is not None else EventLog()
    owner = normalize_address(config.deployment.owner)
    tokens = config.tokens
    deployed_at = current_time(time_provider)

    def make_token(name: str, symbol: str) -> ERC20Token:
        return ERC20Token(
            name=name,
            symbol=symbol,
            decimals=tokens.decimals,
            owner=owner,
            event_log=event_log,
            time_provider=time_provider,
        )

    staking_token = make_token(tokens.staking_name, tokens.staking_symbol)
    rewards_token = make_token(tokens.reward_name, tokens.reward_symbol)
    vesting_token = make_token(tokens.vesting_name, tokens.vesting_symbol)

    staking = StakingRewards(
        owner,
        staking_token,
        rewards_token,
        event_log=event_log,
        time_provider=time_provider,
    )
    if config.staking.reward_budget > 0:
        rewards_token.mint(owner, staking.address, config.staking.reward_budget)
    if config.staking.reward_rate > 0:
        staking.set_reward_rate(owner, config.staking.reward_rate)
    if config.staking.paused:
        staking.pause(owner)

    vesting_address = derive_address(f"TokenVesting:{owner}")
    if config.vesting.allocation > 0:
        vesting_token.mint(owner, vesting_address, config.vesting.allocation)
    vesting = TokenVesting(
        owner,
        vesting_token,
        address=vesting_address,
        event_log=event_log,
        time_provider=time_provider,
    )

    for entry in config.vesting.schedules:
        vesting.register_vesting_schedule(
            owner,
            entry["beneficiary"],
            start_time=deployed_at + entry["start_offset"],
            cliff_time=deployed_at + entry["cliff_offset"],
            end_time=deployed_at + entry["end_offset"],
            unlock_amount=entry["unlock_amount"],
            total_amount=entry["total_amount"],
        )

    logger.info(
        "System deployed",
        extra={
            "event": "deploy.completed",
            "environment": config.environment.value,
            "owner": owner[:10],
            "staking": staking.address[:10],
            "vesting": vesting.address[:10],
            "reward_rate": staking.reward_rate,
            "vesting_max_supply": vesting.max_supply,
            "schedules": len(config.vesting.schedules),
        }
    )

    return DeployedSystem(
        owner=owner,
        staking_token=staking_token,
        rewards_token=rewards_token,
        vesting_token=vesting_token,
        staking=staking,
        vesting=vesting,
        event_log=event_log,
        deployed_at=deployed_at,
    )

import pytest

from stakevest.core.clock import ManualClock
from stakevest.core.contracts.access import derive_address
from stakevest.core.contracts.erc20 import ERC20Token
from stakevest.core.defi.staking_rewards import StakingRewards
from stakevest.core.defi.vesting import TokenVesting
from stakevest.core.events import EventLog

OWNER = "0x00000000000000000000000000000000000000a1"

START_TIME = 1_700_000_000
REWARD_POOL = 10**27


@pytest.fixture
def clock():
    return ManualClock(START_TIME)


@pytest.fixture
def event_log():
    return EventLog()


@pytest.fixture
def staking_token(clock, event_log):
    return ERC20Token(name="Stake Token", symbol="STK", owner=OWNER, event_log=event_log, time_provider=clock.now)


@pytest.fixture
def rewards_token(clock, event_log):
    return ERC20Token(name="Reward Token", symbol="RWD", owner=OWNER, event_log=event_log, time_provider=clock.now)


@pytest.fixture
def staking(clock, event_log, staking_token, rewards_token):
    """Staking pool holding REWARD_POOL reward tokens, rate 0."""
    pool = StakingRewards(
        OWNER,
        staking_token,
        rewards_token,
        event_log=event_log,
        time_provider=clock.now,
    )
    rewards_token.mint(OWNER, pool.address, REWARD_POOL)
    return pool


@pytest.fixture
def vesting_token(clock, event_log):
    return ERC20Token(name="Vesting Token", symbol="VST", owner=OWNER, event_log=event_log, time_provider=clock.now)


@pytest.fixture
def make_vesting(clock, event_log, vesting_token):
    """Factory: deploy a vault pre-funded with ``allocation`` tokens."""

    def _make(allocation: int = 10**18) -> TokenVesting:
        address = derive_address("test-vesting")
        if allocation:
            vesting_token.mint(OWNER, address, allocation)
        return TokenVesting(
            OWNER,
            vesting_token,
            address=address,
            event_log=event_log,
            time_provider=clock.now,
        )

    return _make

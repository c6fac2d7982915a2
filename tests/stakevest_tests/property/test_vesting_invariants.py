"""
Property-based tests for vesting invariants.

- cumulative entitlement is non-decreasing in time and capped at total
- withdrawals never pay more than total_amount, however they are spaced
- scheduled_tokens never exceeds max_supply across registrations
"""

from hypothesis import Phase, assume, given, settings, strategies as st

from stakevest.core.clock import ManualClock
from stakevest.core.contracts.access import derive_address
from stakevest.core.contracts.erc20 import ERC20Token
from stakevest.core.defi.vesting import TokenVesting, VestingSchedule, vested_amount
from stakevest.core.events import EventLog
from stakevest.core.exceptions import PreconditionError

OWNER = "0x00000000000000000000000000000000000000a1"
BENEFICIARY = "0x00000000000000000000000000000000000000b1"


@st.composite
def schedules(draw):
    start = draw(st.integers(min_value=1, max_value=10**9))
    cliff = start + draw(st.integers(min_value=0, max_value=10**8))
    end = cliff + draw(st.integers(min_value=0, max_value=10**8))
    total = draw(st.integers(min_value=0, max_value=10**30))
    unlock = draw(st.integers(min_value=0, max_value=total))
    return VestingSchedule(start, cliff, end, unlock, total)


def build_vault(allocation: int, now: int):
    clock = ManualClock(now)
    log = EventLog()
    token = ERC20Token(name="V", symbol="V", owner=OWNER, event_log=log, time_provider=clock.now)
    address = derive_address("property-vault")
    if allocation:
        token.mint(OWNER, address, allocation)
    vault = TokenVesting(OWNER, token, address=address, event_log=log, time_provider=clock.now)
    return vault, token, clock


class TestVestingInvariants:
    @given(schedule=schedules(), t1=st.integers(min_value=0, max_value=3 * 10**9), dt=st.integers(min_value=0, max_value=10**9))
    @settings(max_examples=200, phases=[Phase.generate, Phase.target])
    def test_entitlement_monotonic_and_capped(self, schedule, t1, dt):
        early = vested_amount(schedule, t1)
        late = vested_amount(schedule, t1 + dt)
        assert 0 <= early <= late <= schedule.total_amount
        if t1 >= schedule.cliff_time:
            assert early >= schedule.unlock_amount

    @given(
        schedule=schedules(),
        waits=st.lists(st.integers(min_value=0, max_value=5 * 10**7), min_size=1, max_size=12),
    )
    @settings(max_examples=100, phases=[Phase.generate, Phase.target], deadline=None)
    def test_withdrawals_never_exceed_total(self, schedule, waits):
        vault, token, clock = build_vault(schedule.total_amount, schedule.start_time - 1)
        vault.register_vesting_schedule(
            OWNER,
            BENEFICIARY,
            schedule.start_time,
            schedule.cliff_time,
            schedule.end_time,
            schedule.unlock_amount,
            schedule.total_amount,
        )
        clock.set(schedule.cliff_time)
        for wait in waits:
            clock.advance(wait)
            vault.withdraw(BENEFICIARY)
            assert token.balance_of(BENEFICIARY) == vault.get_vesting_schedule(BENEFICIARY).total_withdrawn
            assert token.balance_of(BENEFICIARY) == vested_amount(schedule, clock.now())

        clock.set(max(clock.now(), schedule.end_time))
        vault.withdraw(BENEFICIARY)
        assert token.balance_of(BENEFICIARY) == schedule.total_amount
        assert token.balance_of(vault.address) == 0

    @given(
        allocation=st.integers(min_value=0, max_value=10**24),
        totals=st.lists(st.integers(min_value=0, max_value=10**24), min_size=1, max_size=10),
    )
    @settings(max_examples=100, phases=[Phase.generate, Phase.target], deadline=None)
    def test_cap_respected(self, allocation, totals):
        assume(sum(totals) > 0)
        vault, _, clock = build_vault(allocation, 1_000)
        accepted = 0
        for index, total in enumerate(totals):
            beneficiary = f"0x{index + 0xC0:040x}"
            try:
                vault.register_vesting_schedule(OWNER, beneficiary, 2_000, 3_000, 4_000, 0, total)
            except PreconditionError:
                assert accepted + total > allocation
                continue
            accepted += total
            assert vault.scheduled_tokens == accepted
            assert vault.scheduled_tokens <= vault.max_supply

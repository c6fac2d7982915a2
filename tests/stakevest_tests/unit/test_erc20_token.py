"""
Tests for the ERC20 token ledger used as the engines' collaborator.
"""
import pytest

from stakevest.core.constants import UINT256_MAX, ZERO_ADDRESS
from stakevest.core.contracts.erc20 import ERC20Token
from stakevest.core.events import EventLog
from stakevest.core.exceptions import (
    ArithmeticViolation,
    PausedError,
    PreconditionError,
    TransferFailedError,
    UnauthorizedError,
)

OWNER = "0x00000000000000000000000000000000000000A1"
ALICE = "0x00000000000000000000000000000000000000b1"
BOB = "0x00000000000000000000000000000000000000b2"


@pytest.fixture
def token():
    t = ERC20Token(name="Test", symbol="TST", owner=OWNER, time_provider=lambda: 1000)
    t.mint(OWNER, ALICE, 1_000)
    return t


class TestMinting:
    def test_mint_increases_supply_and_emits_transfer_from_zero(self, token):
        assert token.total_supply == 1_000
        assert token.balance_of(ALICE) == 1_000
        event = token.event_log.filter(name="Transfer")[-1]
        assert event.args == {"from_address": ZERO_ADDRESS, "to_address": ALICE, "value": 1_000}
        assert event.timestamp == 1000

    def test_only_owner_can_mint(self, token):
        with pytest.raises(UnauthorizedError) as exc_info:
            token.mint(ALICE, ALICE, 1)
        assert exc_info.value.caller == ALICE

    def test_owner_is_case_insensitive(self, token):
        token.mint(OWNER.lower(), BOB, 5)
        assert token.balance_of(BOB.upper().replace("0X", "0x")) == 5

    def test_mint_respects_max_supply(self):
        capped = ERC20Token(name="Cap", symbol="CAP", owner=OWNER, max_supply=100)
        capped.mint(OWNER, ALICE, 100)
        with pytest.raises(PreconditionError, match="max supply"):
            capped.mint(OWNER, ALICE, 1)

    def test_mint_to_zero_address_rejected(self, token):
        with pytest.raises(PreconditionError):
            token.mint(OWNER, ZERO_ADDRESS, 1)


class TestTransfers:
    def test_transfer_moves_balance(self, token):
        assert token.transfer(ALICE, BOB, 400) is True
        assert token.balance_of(ALICE) == 600
        assert token.balance_of(BOB) == 400

    def test_transfer_exceeding_balance_fails_without_change(self, token):
        events_before = len(token.event_log)
        with pytest.raises(TransferFailedError):
            token.transfer(ALICE, BOB, 1_001)
        assert token.balance_of(ALICE) == 1_000
        assert len(token.event_log) == events_before

    def test_transfer_from_consumes_allowance(self, token):
        token.approve(ALICE, BOB, 300)
        token.transfer_from(BOB, ALICE, BOB, 200)
        assert token.allowance(ALICE, BOB) == 100
        assert token.balance_of(BOB) == 200

    def test_transfer_from_without_allowance_fails(self, token):
        with pytest.raises(TransferFailedError, match="insufficient allowance"):
            token.transfer_from(BOB, ALICE, BOB, 1)

    def test_unlimited_allowance_not_decremented(self, token):
        token.approve(ALICE, BOB, UINT256_MAX)
        token.transfer_from(BOB, ALICE, BOB, 10)
        assert token.allowance(ALICE, BOB) == UINT256_MAX

    def test_increase_and_decrease_allowance(self, token):
        token.increase_allowance(ALICE, BOB, 50)
        token.increase_allowance(ALICE, BOB, 25)
        assert token.allowance(ALICE, BOB) == 75
        token.decrease_allowance(ALICE, BOB, 70)
        assert token.allowance(ALICE, BOB) == 5
        with pytest.raises(PreconditionError):
            token.decrease_allowance(ALICE, BOB, 6)

    def test_float_amount_rejected(self, token):
        with pytest.raises(ArithmeticViolation) as exc_info:
            token.transfer(ALICE, BOB, 1.5)
        assert "must be an integer" in str(exc_info.value)

    def test_identical_tokens_get_distinct_addresses(self):
        first = ERC20Token(name="Twin", symbol="TWN", owner=OWNER)
        second = ERC20Token(name="Twin", symbol="TWN", owner=OWNER)
        assert first.address != second.address
        assert first.address.startswith("0x") and len(first.address) == 42


class TestPauseAndSnapshots:
    def test_paused_token_blocks_transfers(self, token):
        token.pause(OWNER)
        with pytest.raises(PausedError):
            token.transfer(ALICE, BOB, 1)
        token.unpause(OWNER)
        token.transfer(ALICE, BOB, 1)

    def test_restore_state_reverts_balances_and_events(self, token):
        state = token.get_state()
        token.transfer(ALICE, BOB, 10)
        token.approve(ALICE, BOB, 5)
        token.restore_state(state)
        assert token.balance_of(BOB) == 0
        assert token.allowance(ALICE, BOB) == 0
        assert len(token.event_log) == state["event_count"]

    def test_round_trip_serialization(self, token):
        token.approve(ALICE, BOB, 7)
        log = EventLog()
        restored = ERC20Token.from_dict(token.to_dict(), event_log=log)
        assert restored.address == token.address
        assert restored.balance_of(ALICE) == 1_000
        assert restored.allowance(ALICE, BOB) == 7
        assert restored.event_log is log

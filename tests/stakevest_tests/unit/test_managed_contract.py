"""
Tests for ownership, pause, reentrancy and transactional rollback gates.
"""
import pytest

from stakevest.core.contracts.access import (
    ManagedContract,
    derive_address,
    is_zero_address,
    normalize_address,
)
from stakevest.core.contracts.erc20 import ERC20Token
from stakevest.core.constants import ZERO_ADDRESS
from stakevest.core.events import EventLog
from stakevest.core.exceptions import (
    PausedError,
    PreconditionError,
    ReentrancyError,
    TransferFailedError,
    UnauthorizedError,
)

OWNER = "0x00000000000000000000000000000000000000a1"
ALICE = "0x00000000000000000000000000000000000000b1"


class Vault(ManagedContract):
    """Minimal contract exercising the gates."""

    _state_fields = ("deposits",)

    def __init__(self, owner, token, **kwargs):
        super().__init__(owner, **kwargs)
        self.token = token
        self.deposits = {}

    def deposit(self, caller, amount, fail_after=False):
        with self._transaction(self.token):
            self._require_not_paused()
            self.deposits[caller] = self.deposits.get(caller, 0) + amount
            self._safe_transfer_from(self.token, caller, amount)
            self._emit("Deposited", user=caller, amount=amount)
            if fail_after:
                raise PreconditionError("forced failure")

    def nested(self):
        with self._transaction():
            self.deposit(ALICE, 1)


@pytest.fixture
def setup():
    log = EventLog()
    token = ERC20Token(name="T", symbol="T", owner=OWNER, event_log=log, time_provider=lambda: 5)
    vault = Vault(OWNER, token, event_log=log, time_provider=lambda: 5)
    token.mint(OWNER, ALICE, 100)
    token.approve(ALICE, vault.address, 100)
    return vault, token, log


class TestAddresses:
    def test_zero_address_detection(self):
        assert is_zero_address(ZERO_ADDRESS)
        assert is_zero_address("")
        assert not is_zero_address(OWNER)

    def test_derived_addresses_are_unique(self):
        assert derive_address("x") != derive_address("x")
        assert derive_address("x").startswith("0x")
        assert len(derive_address("x")) == 42

    def test_normalize(self):
        assert normalize_address("0xABC") == "0xabc"


class TestOwnership:
    def test_zero_owner_rejected(self):
        with pytest.raises(PreconditionError):
            ManagedContract(ZERO_ADDRESS)

    def test_require_owner_names_caller(self, setup):
        vault, _, _ = setup
        with pytest.raises(UnauthorizedError) as exc_info:
            vault.pause(ALICE)
        assert exc_info.value.caller == ALICE
        assert ALICE in str(exc_info.value)

    def test_transfer_ownership(self, setup):
        vault, _, log = setup
        vault.transfer_ownership(OWNER, ALICE)
        assert vault.owner == ALICE
        event = log.filter(name="OwnershipTransferred")[-1]
        assert event.args == {"previous_owner": OWNER, "new_owner": ALICE}
        with pytest.raises(UnauthorizedError):
            vault.pause(OWNER)

    def test_transfer_ownership_to_zero_rejected(self, setup):
        vault, _, _ = setup
        with pytest.raises(PreconditionError):
            vault.transfer_ownership(OWNER, ZERO_ADDRESS)


class TestPause:
    def test_pause_blocks_and_unpause_restores(self, setup):
        vault, _, log = setup
        vault.pause(OWNER)
        assert [e.name for e in log][-1] == "Paused"
        with pytest.raises(PausedError):
            vault.deposit(ALICE, 10)
        vault.unpause(OWNER)
        vault.deposit(ALICE, 10)
        assert vault.deposits[ALICE] == 10

    def test_double_pause_rejected(self, setup):
        vault, _, _ = setup
        vault.pause(OWNER)
        with pytest.raises(PreconditionError, match="already paused"):
            vault.pause(OWNER)

    def test_unpause_when_not_paused_rejected(self, setup):
        vault, _, _ = setup
        with pytest.raises(PreconditionError, match="not paused"):
            vault.unpause(OWNER)


class TestTransactions:
    def test_failure_restores_contract_token_and_log(self, setup):
        vault, token, log = setup
        log_length = len(log)
        with pytest.raises(PreconditionError, match="forced failure"):
            vault.deposit(ALICE, 40, fail_after=True)
        assert vault.deposits == {}
        assert token.balance_of(ALICE) == 100
        assert token.balance_of(vault.address) == 0
        assert token.allowance(ALICE, vault.address) == 100
        assert len(log) == log_length

    def test_token_failure_is_wrapped(self, setup):
        vault, token, _ = setup
        with pytest.raises(TransferFailedError, match="Token transfer failed"):
            vault.deposit(ALICE, 101)
        assert vault.deposits == {}

    def test_lock_released_after_failure(self, setup):
        vault, _, _ = setup
        with pytest.raises(PreconditionError):
            vault.deposit(ALICE, 10, fail_after=True)
        vault.deposit(ALICE, 10)
        assert vault.deposits[ALICE] == 10

    def test_nested_mutating_call_rejected(self, setup):
        vault, token, _ = setup
        with pytest.raises(ReentrancyError):
            vault.nested()
        assert vault._locked is False
        assert token.balance_of(ALICE) == 100

    def test_false_return_is_failure(self, setup):
        vault, token, _ = setup

        class RefusingToken(ERC20Token):
            def transfer_from(self, spender, from_addr, to_addr, amount):
                return False

        refusing = RefusingToken(name="R", symbol="R", owner=OWNER)
        vault.token = refusing
        with pytest.raises(TransferFailedError, match="returned failure"):
            vault.deposit(ALICE, 1)

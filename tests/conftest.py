import pytest

from cipherledger import ConfidentialLedger, Config, LocalGateway
from cipherledger.core.encoding import decode_uint
from cipherledger.storage.memory import InMemoryStorage


@pytest.fixture
def config() -> Config:
    return Config(lock_retry_count=2, lock_retry_delay=0.01)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def gateway() -> LocalGateway:
    return LocalGateway()


@pytest.fixture
def ledger(config, storage, gateway) -> ConfidentialLedger:
    return ConfidentialLedger(config=config, storage=storage, gateway=gateway)


@pytest.fixture
def record(ledger, gateway):
    """Encrypt ``amount`` with the local toolkit and record it."""

    async def _record(entry_id, creditor, debtor, amount, label=""):
        sealed = gateway.encrypt_input(amount)
        await ledger.record_debt(entry_id, creditor, debtor, sealed.ciphertext, sealed.proof, label)

    return _record


@pytest.fixture
def reveal(gateway):
    """Publicly decrypt a handle and return the integer value."""

    async def _reveal(handle):
        result = await gateway.public_decrypt(handle)
        return decode_uint(result.cleartext, gateway.amount_bits)

    return _reveal

import copy

import pytest

import ivm_deployer.core.config as ivm_config
from ivm_deployer.testing.fake_chain import FakeChain


def pytest_configure(config):
    config.addinivalue_line("markers", "smoke: mark test as a smoke test")
    config.addinivalue_line("markers", "integration: mark test as integration")


@pytest.fixture
def restore_global_config():
    original = copy.deepcopy(ivm_config.CONFIG)
    yield
    ivm_config.set_config(original)


@pytest.fixture(autouse=True)
def fast_polling(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(
        "ivm_deployer.deploy.confirmations.RECEIPT_POLL_INTERVAL_S", 0.0
    )


@pytest.fixture
def fake_chain() -> FakeChain:
    return FakeChain()

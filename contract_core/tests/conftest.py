from __future__ import annotations

import pytest

from contract_core import logging as clog
from contract_core.config import load_config
from contract_core.examples.adder import ADDER
from contract_core.runtime import ContractInstance, Host


@pytest.fixture(autouse=True)
def _fresh_config_and_log_context():
    """Each test sees the environment it set up, and no leaked log context."""
    load_config.cache_clear()
    clog.clear_context()
    yield
    load_config.cache_clear()
    clog.clear_context()


@pytest.fixture
def host() -> Host:
    return Host()


@pytest.fixture
def adder(host: Host) -> ContractInstance:
    """Adder instance deployed with an initial sum of 5."""
    inst = ContractInstance(ADDER, host)
    inst.deploy([b"\x05"])
    return inst

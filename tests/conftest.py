from __future__ import annotations

from typing import Any, Callable, Dict

import httpx
import pytest

from fakes import FakeChain
from stake_authority_manager.config import load_config
from stake_authority_manager.rpc import StakeRPCClient


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def make_client(chain: FakeChain) -> Callable[..., StakeRPCClient]:
    def _make(**kwargs: Any) -> StakeRPCClient:
        return StakeRPCClient("https://rpc.test", transport=httpx.MockTransport(chain.handler), **kwargs)

    return _make


@pytest.fixture
def config(tmp_path, monkeypatch) -> Dict[str, Any]:
    monkeypatch.chdir(tmp_path)
    return load_config(
        None,
        {
            "rpc_endpoint": "https://rpc.test",
            "confirmation_timeout_seconds": 0.2,
            "confirmation_poll_interval_seconds": 0.01,
        },
    )

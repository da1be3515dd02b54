from __future__ import annotations

import asyncio

import pytest

from fakes import new_address
from stake_authority_manager.errors import NetworkError
from stake_authority_manager.snapshot import StakeAccountInspector


def test_refresh_replaces_snapshot(chain, make_client) -> None:
    address, staker, withdrawer = new_address(), new_address(), new_address()
    chain.add_stake_account(address, 3_000_000_000, staker, withdrawer)

    async def scenario():
        async with make_client() as client:
            inspector = StakeAccountInspector(client)
            await inspector.refresh(f"  {address} ")
            return inspector.snapshot

    snapshot = asyncio.run(scenario())
    assert snapshot.address == address
    assert snapshot.balance_lamports == 3_000_000_000
    assert snapshot.balance_tokens == 3.0
    assert snapshot.stake_authority == staker
    assert snapshot.withdraw_authority == withdrawer


def test_repeated_refresh_is_idempotent(chain, make_client) -> None:
    address = new_address()
    chain.add_stake_account(address, 42, new_address(), new_address())

    async def scenario():
        async with make_client() as client:
            inspector = StakeAccountInspector(client)
            first = await inspector.refresh(address)
            second = await inspector.refresh(address)
            return first, second

    first, second = asyncio.run(scenario())
    assert first == second
    assert first is not second


def test_not_found_clears_snapshot(chain, make_client) -> None:
    address = new_address()
    chain.add_stake_account(address, 42, new_address(), new_address())

    async def scenario():
        async with make_client() as client:
            inspector = StakeAccountInspector(client)
            await inspector.refresh(address)
            assert inspector.snapshot is not None
            result = await inspector.refresh(new_address())
            return result, inspector.snapshot

    result, snapshot = asyncio.run(scenario())
    assert result is None
    assert snapshot is None


def test_network_error_keeps_previous_snapshot(chain, make_client) -> None:
    address = new_address()
    chain.add_stake_account(address, 42, new_address(), new_address())

    async def scenario():
        async with make_client() as client:
            inspector = StakeAccountInspector(client)
            before = await inspector.refresh(address)
            chain.broken_methods.add("getAccountInfo")
            with pytest.raises(NetworkError):
                await inspector.refresh(address)
            return before, inspector.snapshot

    before, after = asyncio.run(scenario())
    assert after is before


def test_refresh_swaps_all_fields_together(chain, make_client) -> None:
    address = new_address()
    chain.add_stake_account(address, 1, new_address(), new_address())

    async def scenario():
        async with make_client() as client:
            inspector = StakeAccountInspector(client)
            first = await inspector.refresh(address)
            chain.add_stake_account(address, 2, new_address(), None)
            second = await inspector.refresh(address)
            return first, second

    first, second = asyncio.run(scenario())
    assert second.balance_lamports == 2
    assert second.stake_authority != first.stake_authority
    assert second.withdraw_authority is None

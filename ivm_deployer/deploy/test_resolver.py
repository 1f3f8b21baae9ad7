import math

import pytest
from eth_utils import to_checksum_address

from ivm_deployer.core.errors import (
    AllocationsNotFound,
    ContractCallReverted,
    NoDecodableData,
)
from ivm_deployer.core.models import ZERO_ADDRESS, LogWindow
from ivm_deployer.deploy.resolver import (
    ALLOCATIONS_INITIALIZED_TOPIC,
    LogWindowScan,
    find_latest_log,
    resolve_allocation_addresses,
)
from ivm_deployer.testing.fake_chain import TOKEN, FakeChain, make_allocation_log

VESTING = {
    "marketing": "0x" + "a1" * 20,
    "development": "0x" + "a2" * 20,
    "team": "0x" + "a3" * 20,
    "reserve": "0x" + "a4" * 20,
    "loyalty": "0x" + "a5" * 20,
}
OTHER_VESTING = {role: "0x" + "e" + str(i) * 39 for i, role in enumerate(VESTING, 1)}


def _break_primary_read(chain: FakeChain) -> None:
    chain.fail_view(
        TOKEN,
        "allocationsInitialized",
        NoDecodableData("allocationsInitialized() returned no decodable data"),
    )


class TestLogWindowScan:
    def test_windows_are_newest_first_and_contiguous(self):
        windows = list(LogWindowScan(head=25, window_size=10))
        assert windows == [LogWindow(16, 25), LogWindow(6, 15), LogWindow(0, 5)]

    def test_stops_at_lookback_limit(self):
        windows = list(LogWindowScan(head=1_000_000))
        assert len(windows) == 20_000
        assert all(w.size == 10 for w in windows)
        assert windows[-1] == LogWindow(800_001, 800_010)

    def test_restartable(self):
        scan = LogWindowScan(head=42, window_size=10, max_lookback=30)
        assert list(scan) == list(scan)

    def test_rejects_empty_windows(self):
        with pytest.raises(ValueError):
            LogWindowScan(head=10, window_size=0)


@pytest.mark.asyncio
async def test_find_latest_log_picks_last_in_newest_window():
    chain = FakeChain(head=100)
    chain.logs = [
        make_allocation_log(token=TOKEN, block_number=60, vesting=OTHER_VESTING),
        make_allocation_log(token=TOKEN, block_number=95, vesting=VESTING, log_index=3),
        make_allocation_log(token=TOKEN, block_number=95, vesting=OTHER_VESTING, log_index=1),
    ]

    log = await find_latest_log(
        chain, TOKEN, ALLOCATIONS_INITIALIZED_TOPIC, LogWindowScan(head=100)
    )

    assert (log["blockNumber"], log["logIndex"]) == (95, 3)
    assert chain.log_queries == [(91, 100)]


@pytest.mark.asyncio
async def test_primary_path_does_not_scan_logs(fake_chain: FakeChain):
    fake_chain.set_allocation_state(TOKEN, VESTING)

    resolved = await resolve_allocation_addresses(fake_chain, TOKEN)

    assert resolved.as_dict() == VESTING
    assert fake_chain.log_queries == []
    assert fake_chain.block_number_calls == 0


@pytest.mark.asyncio
async def test_falls_back_to_event_when_read_is_undecodable():
    chain = FakeChain(head=1050)
    _break_primary_read(chain)
    chain.logs = [make_allocation_log(token=TOKEN, block_number=1000, vesting=VESTING)]

    resolved = await resolve_allocation_addresses(chain, TOKEN)

    assert resolved.as_dict() == {
        role: to_checksum_address(addr) for role, addr in VESTING.items()
    }
    assert len(chain.log_queries) <= math.ceil((1050 - 1000) / 10) + 1


@pytest.mark.asyncio
async def test_fallback_stops_when_nothing_found():
    chain = FakeChain(head=500)
    _break_primary_read(chain)

    with pytest.raises(AllocationsNotFound, match="within 100 blocks"):
        await resolve_allocation_addresses(chain, TOKEN, max_lookback=100)
    assert len(chain.log_queries) == 10


@pytest.mark.asyncio
async def test_event_outside_lookback_is_not_found():
    chain = FakeChain(head=500)
    _break_primary_read(chain)
    chain.logs = [make_allocation_log(token=TOKEN, block_number=300, vesting=VESTING)]

    with pytest.raises(AllocationsNotFound):
        await resolve_allocation_addresses(chain, TOKEN, max_lookback=100)


@pytest.mark.asyncio
async def test_uninitialized_token_does_not_fall_back(fake_chain: FakeChain):
    fake_chain.set_view(TOKEN, "allocationsInitialized", False)

    with pytest.raises(AllocationsNotFound, match="not initialized"):
        await resolve_allocation_addresses(fake_chain, TOKEN)
    assert fake_chain.log_queries == []


@pytest.mark.asyncio
async def test_revert_does_not_fall_back(fake_chain: FakeChain):
    fake_chain.fail_view(
        TOKEN, "allocationsInitialized", ContractCallReverted("allocationsInitialized")
    )

    with pytest.raises(ContractCallReverted):
        await resolve_allocation_addresses(fake_chain, TOKEN)
    assert fake_chain.log_queries == []


@pytest.mark.asyncio
async def test_undecodable_getter_also_falls_back():
    chain = FakeChain(head=20)
    chain.set_allocation_state(TOKEN, VESTING)
    chain.fail_view(TOKEN, "teamVesting", NoDecodableData("teamVesting() returned 0x"))
    chain.logs = [make_allocation_log(token=TOKEN, block_number=20, vesting=VESTING)]

    resolved = await resolve_allocation_addresses(chain, TOKEN)

    assert resolved.team == to_checksum_address(VESTING["team"])
    assert chain.log_queries == [(11, 20)]


@pytest.mark.asyncio
async def test_zero_address_from_state_is_rejected(fake_chain: FakeChain):
    fake_chain.set_allocation_state(TOKEN, {**VESTING, "reserve": ZERO_ADDRESS})

    with pytest.raises(AllocationsNotFound, match="reserve"):
        await resolve_allocation_addresses(fake_chain, TOKEN)


@pytest.mark.asyncio
async def test_zero_address_from_event_is_rejected():
    chain = FakeChain(head=20)
    _break_primary_read(chain)
    chain.logs = [
        make_allocation_log(
            token=TOKEN, block_number=15, vesting={**VESTING, "loyalty": ZERO_ADDRESS}
        )
    ]

    with pytest.raises(AllocationsNotFound, match="loyalty"):
        await resolve_allocation_addresses(chain, TOKEN)


@pytest.mark.asyncio
async def test_full_lookback_is_bounded():
    chain = FakeChain(head=1_000_000)
    _break_primary_read(chain)

    with pytest.raises(AllocationsNotFound):
        await resolve_allocation_addresses(chain, TOKEN)
    assert len(chain.log_queries) == 20_000

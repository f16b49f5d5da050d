"""Integration tests for the ERC-20 contract binding."""
from __future__ import annotations

import asyncio

import pytest
from eth_utils import to_checksum_address

from tests.conftest import ACCOUNT, SPENDER, TOKEN_A, TOKEN_B, TX_HASH, FakeTransport
from tokendapp.contract import ContractBinding
from tokendapp.errors import (
    ContractUnloadedError,
    InvalidAddressError,
    InvalidAmountError,
    ProviderRpcError,
    ReadFailedError,
    TransactionFailedError,
    TransactionRejectedError,
)
from tokendapp.models import ContractEvent


@pytest.fixture()
def binding(transport: FakeTransport) -> ContractBinding:
    return ContractBinding(transport)


class TestLoad:
    def test_load_checksums(self, binding: ContractBinding) -> None:
        binding.load(TOKEN_A)
        assert binding.loaded
        assert binding.address == to_checksum_address(TOKEN_A)

    @pytest.mark.parametrize("address", ["", "0x1234", "not-an-address", "0x" + "zz" * 20])
    def test_invalid_address(self, binding: ContractBinding, address: str) -> None:
        with pytest.raises(InvalidAddressError):
            binding.load(address)
        assert not binding.loaded

    def test_load_bumps_generation(self, binding: ContractBinding) -> None:
        before = binding.generation
        binding.load(TOKEN_A)
        assert binding.generation > before

    def test_reset(self, binding: ContractBinding) -> None:
        binding.load(TOKEN_A)
        binding.reset()
        assert binding.address is None
        assert binding.decimals is None


class TestReads:
    @pytest.mark.asyncio
    async def test_unloaded(self, binding: ContractBinding) -> None:
        with pytest.raises(ContractUnloadedError, match="Contract not loaded."):
            await binding.get_balance(ACCOUNT)
        with pytest.raises(ContractUnloadedError):
            await binding.get_token_info()

    @pytest.mark.asyncio
    async def test_token_info(self, binding: ContractBinding) -> None:
        binding.load(TOKEN_A)
        info = await binding.get_token_info()
        assert info.name == "MyToken"
        assert info.symbol == "MTK"
        assert info.decimals == 18
        assert info.total_supply == "1000000"
        assert binding.decimals == 18

    @pytest.mark.asyncio
    async def test_token_info_all_or_nothing(
        self, binding: ContractBinding, transport: FakeTransport
    ) -> None:
        transport.contracts[TOKEN_A]["symbol"] = ProviderRpcError(-32000, "execution reverted")
        binding.load(TOKEN_A)
        with pytest.raises(ReadFailedError, match="symbol"):
            await binding.get_token_info()

    @pytest.mark.asyncio
    async def test_balance(self, binding: ContractBinding) -> None:
        binding.load(TOKEN_A)
        assert await binding.get_balance(ACCOUNT) == "1.5"

    @pytest.mark.asyncio
    async def test_balance_uses_own_decimals(self, binding: ContractBinding) -> None:
        binding.load(TOKEN_B)
        assert await binding.get_balance(ACCOUNT) == "2.5"

    @pytest.mark.asyncio
    async def test_decimals_cached(
        self, binding: ContractBinding, transport: FakeTransport
    ) -> None:
        binding.load(TOKEN_A)
        await binding.get_balance(ACCOUNT)
        await binding.get_balance(ACCOUNT)
        assert [c[1] for c in transport.calls].count("decimals") == 1

    @pytest.mark.asyncio
    async def test_invalid_holder(self, binding: ContractBinding) -> None:
        binding.load(TOKEN_A)
        with pytest.raises(InvalidAddressError):
            await binding.get_balance("0xnothex")

    @pytest.mark.asyncio
    async def test_allowance(self, binding: ContractBinding, transport: FakeTransport) -> None:
        transport.add_token(TOKEN_A, allowances={(ACCOUNT, SPENDER): 25 * 10**17})
        binding.load(TOKEN_A)
        assert await binding.get_allowance(ACCOUNT, SPENDER) == "2.5"

    @pytest.mark.asyncio
    async def test_allowance_invalid_spender(self, binding: ContractBinding) -> None:
        binding.load(TOKEN_A)
        with pytest.raises(InvalidAddressError, match="spender"):
            await binding.get_allowance(ACCOUNT, "")

    @pytest.mark.asyncio
    async def test_read_failure_wrapped(
        self, binding: ContractBinding, transport: FakeTransport
    ) -> None:
        transport.contracts[TOKEN_A]["decimals"] = ConnectionError("node down")
        binding.load(TOKEN_A)
        with pytest.raises(ReadFailedError, match="node down"):
            await binding.get_balance(ACCOUNT)

    @pytest.mark.asyncio
    async def test_rebind_during_read_discards_result(
        self, binding: ContractBinding, transport: FakeTransport
    ) -> None:
        gate = asyncio.Event()
        original = transport.call

        async def slow_call(address, function, args=()):
            if function == "decimals" and address.lower() == TOKEN_A:
                await gate.wait()
            return await original(address, function, args)

        transport.call = slow_call  # type: ignore[method-assign]
        binding.load(TOKEN_A)
        read = asyncio.ensure_future(binding.get_balance(ACCOUNT))
        await asyncio.sleep(0)
        binding.load(TOKEN_B)
        gate.set()

        with pytest.raises(ContractUnloadedError):
            await read
        assert binding.decimals is None
        assert await binding.get_balance(ACCOUNT) == "2.5"


class TestWrites:
    @pytest.mark.asyncio
    async def test_transfer(self, binding: ContractBinding, transport: FakeTransport) -> None:
        binding.load(TOKEN_A)
        receipt = await binding.transfer(SPENDER, "1.5")
        assert receipt.transaction_hash == TX_HASH
        address, function, args = transport.sent[0]
        assert function == "transfer"
        assert args == (to_checksum_address(SPENDER), 1_500_000_000_000_000_000)

    @pytest.mark.asyncio
    async def test_approve(self, binding: ContractBinding, transport: FakeTransport) -> None:
        binding.load(TOKEN_B)
        await binding.approve(SPENDER, "3")
        assert transport.sent[0][1:] == ("approve", (to_checksum_address(SPENDER), 3_000_000))

    @pytest.mark.asyncio
    async def test_transfer_from(self, binding: ContractBinding, transport: FakeTransport) -> None:
        binding.load(TOKEN_A)
        await binding.transfer_from(ACCOUNT, SPENDER, "1")
        function, args = transport.sent[0][1:]
        assert function == "transferFrom"
        assert args == (to_checksum_address(ACCOUNT), to_checksum_address(SPENDER), 10**18)

    @pytest.mark.asyncio
    async def test_burn(self, binding: ContractBinding, transport: FakeTransport) -> None:
        binding.load(TOKEN_A)
        await binding.burn("0.5")
        assert transport.sent[0][1:] == ("burn", (5 * 10**17,))

    @pytest.mark.asyncio
    async def test_unloaded_write(self, binding: ContractBinding) -> None:
        with pytest.raises(ContractUnloadedError):
            await binding.burn("1")

    @pytest.mark.asyncio
    async def test_invalid_amount_not_submitted(
        self, binding: ContractBinding, transport: FakeTransport
    ) -> None:
        binding.load(TOKEN_B)
        with pytest.raises(InvalidAmountError):
            await binding.transfer(SPENDER, "0.0000001")
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_invalid_recipient_not_submitted(
        self, binding: ContractBinding, transport: FakeTransport
    ) -> None:
        binding.load(TOKEN_A)
        with pytest.raises(InvalidAddressError):
            await binding.transfer("0xabc", "1")
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_user_rejects(self, binding: ContractBinding, transport: FakeTransport) -> None:
        transport.send_error = ProviderRpcError(4001, "User denied transaction signature")
        binding.load(TOKEN_A)
        with pytest.raises(TransactionRejectedError):
            await binding.transfer(SPENDER, "1")

    @pytest.mark.asyncio
    async def test_submission_error(
        self, binding: ContractBinding, transport: FakeTransport
    ) -> None:
        transport.send_error = ProviderRpcError(-32000, "insufficient funds")
        binding.load(TOKEN_A)
        with pytest.raises(TransactionFailedError, match="insufficient funds"):
            await binding.transfer(SPENDER, "1")

    @pytest.mark.asyncio
    async def test_reverted(self, binding: ContractBinding, transport: FakeTransport) -> None:
        transport.receipt_status = 0
        binding.load(TOKEN_A)
        with pytest.raises(TransactionFailedError, match="reverted"):
            await binding.burn("1")

    @pytest.mark.asyncio
    async def test_finality_error(
        self, binding: ContractBinding, transport: FakeTransport
    ) -> None:
        transport.finality_error = TimeoutError("not confirmed")
        binding.load(TOKEN_A)
        with pytest.raises(TransactionFailedError, match="did not complete"):
            await binding.burn("1")


class TestEvents:
    @pytest.mark.asyncio
    async def test_forwards_events(
        self, binding: ContractBinding, transport: FakeTransport
    ) -> None:
        received: list[ContractEvent] = []

        async def handler(event: ContractEvent) -> None:
            received.append(event)

        binding.load(TOKEN_A)
        binding.subscribe(handler)
        assert {s.event for s in transport.subscriptions} == {"Transfer", "Approval"}

        transport.emit(
            "Approval",
            {"owner": ACCOUNT, "spender": SPENDER, "value": 5,
             "transactionHash": TX_HASH, "blockNumber": 3},
        )
        await asyncio.wait_for(binding.events.join(), timeout=1)

        assert received == [
            ContractEvent(
                kind="Approval",
                fields={"owner": ACCOUNT, "spender": SPENDER, "value": 5},
                tx_hash=TX_HASH,
                block_number=3,
            )
        ]
        binding.unsubscribe()

    @pytest.mark.asyncio
    async def test_synthetic_event_injection(self, binding: ContractBinding) -> None:
        received: list[ContractEvent] = []

        async def handler(event: ContractEvent) -> None:
            received.append(event)

        binding.load(TOKEN_A)
        binding.subscribe(handler)
        event = ContractEvent(kind="Transfer", fields={"from": ACCOUNT, "to": SPENDER, "value": 1})
        binding.events.put_nowait(event)
        await asyncio.wait_for(binding.events.join(), timeout=1)
        assert received == [event]
        binding.unsubscribe()

    @pytest.mark.asyncio
    async def test_handler_error_keeps_pump_alive(
        self, binding: ContractBinding, transport: FakeTransport
    ) -> None:
        calls = 0

        async def handler(event: ContractEvent) -> None:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("boom")

        binding.load(TOKEN_A)
        binding.subscribe(handler)
        transport.emit("Transfer", {"from": ACCOUNT, "to": SPENDER, "value": 1})
        transport.emit("Transfer", {"from": ACCOUNT, "to": SPENDER, "value": 2})
        await asyncio.wait_for(binding.events.join(), timeout=1)
        assert calls == 2
        binding.unsubscribe()

    @pytest.mark.asyncio
    async def test_resubscribe_replaces(
        self, binding: ContractBinding, transport: FakeTransport
    ) -> None:
        binding.load(TOKEN_A)
        binding.subscribe(lambda e: asyncio.sleep(0))
        binding.subscribe(lambda e: asyncio.sleep(0))
        assert len(transport.subscriptions) == 2
        binding.unsubscribe()

    @pytest.mark.asyncio
    async def test_reset_cancels_subscriptions(
        self, binding: ContractBinding, transport: FakeTransport
    ) -> None:
        binding.load(TOKEN_A)
        binding.subscribe(lambda e: asyncio.sleep(0))
        binding.reset()
        assert transport.subscriptions == []
        assert not binding.subscribed

    def test_subscribe_requires_contract(self, binding: ContractBinding) -> None:
        with pytest.raises(ContractUnloadedError):
            binding.subscribe(lambda e: asyncio.sleep(0))

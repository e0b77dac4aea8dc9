"""
Shared fixtures: an in-memory ChainClient per chain and the Mosaic built
on top of them. No test touches the network.
"""

from typing import Any, Callable, Dict, List, Tuple, Union

import pytest

from mosaic.core.chain import Chain, ChainClient, Mosaic
from mosaic.core.models import BlockInfo, ContractRef, Receipt, TxOptions
from mosaic.core.settings import MosaicSettings


def addr(n: int) -> str:
    return "0x" + format(n, "040x")


def h32(n: int) -> str:
    return "0x" + format(n, "064x")


STATE_ROOT = "0x" + "11" * 32


class FakeChainClient(ChainClient):
    """
    Dispatches contract reads on (address, method) and records every
    read and transaction. A configured value may be a callable receiving
    the call arguments.
    """

    def __init__(self, block_number: int = 100) -> None:
        self.views: Dict[Tuple[str, str], Any] = {}
        self.receipts: Dict[Tuple[str, str], Union[Receipt, Callable[..., Receipt]]] = {}
        self.code: Dict[str, str] = {}
        self.calls: List[Tuple[str, str, tuple]] = []
        self.sent: List[Tuple[str, str, tuple, TxOptions]] = []
        self.block_number = block_number

    def set_view(self, address: str, method: str, value: Any) -> None:
        self.views[(address.lower(), method)] = value

    def set_receipt(self, address: str, method: str, receipt) -> None:
        self.receipts[(address.lower(), method)] = receipt

    def calls_to(self, method: str) -> int:
        return sum(1 for _, m, _ in self.calls if m == method)

    async def call(self, contract: ContractRef, method: str, args=()) -> Any:
        self.calls.append((contract.address, method, tuple(args)))
        value = self.views[(contract.address.lower(), method)]
        return value(*args) if callable(value) else value

    async def send_transaction(self, contract, method, args, tx_options) -> Receipt:
        self.sent.append((contract.address, method, tuple(args), tx_options))
        configured = self.receipts.get((contract.address.lower(), method))
        if configured is not None:
            return configured(*args) if callable(configured) else configured
        self.block_number += 1
        return Receipt(transaction_hash=h32(0xABC), block_number=self.block_number)

    async def get_block(self, tag="latest") -> BlockInfo:
        return BlockInfo(number=self.block_number, state_root=STATE_ROOT)

    async def get_code(self, address: str) -> str:
        return self.code.get(address.lower(), "0x")


# Contract addresses used across the suite.
GATEWAY = addr(2)
COGATEWAY = addr(3)
ORIGIN_ANCHOR = addr(0x0A)
AUXILIARY_ANCHOR = addr(0x0B)
OST_PRIME = addr(0x0C)
FACILITATOR = addr(5)
STAKER = addr(6)
BENEFICIARY = addr(7)


@pytest.fixture
def origin_client():
    return FakeChainClient(block_number=100)


@pytest.fixture
def auxiliary_client():
    return FakeChainClient(block_number=200)


@pytest.fixture
def mosaic(origin_client, auxiliary_client):
    origin = Chain(
        client=origin_client,
        contract_addresses={"EIP20Gateway": GATEWAY, "Anchor": ORIGIN_ANCHOR},
    )
    auxiliary = Chain(
        client=auxiliary_client,
        contract_addresses={
            "EIP20CoGateway": COGATEWAY,
            "Anchor": AUXILIARY_ANCHOR,
            "OSTPrime": OST_PRIME,
        },
    )
    return Mosaic(origin=origin, auxiliary=auxiliary)


@pytest.fixture
def settings():
    return MosaicSettings(
        anchor_poll_interval_ms=1,
        anchor_wait_timeout_ms=200,
        anchor_worker_interval_ms=1,
    )


@pytest.fixture
def tx_options():
    return {"from": FACILITATOR, "gas": "7500000"}

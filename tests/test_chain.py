import dataclasses
import json

import pytest

from mosaic.contracts.abi import default_registry
from mosaic.contracts.gateway import EIP20Gateway
from mosaic.core.chain import Chain, ContractRegistry, Mosaic
from mosaic.core.errors import ContractNotFound, InvalidArgument

from conftest import GATEWAY, FakeChainClient, addr


class TestChain:
    def test_requires_client(self):
        with pytest.raises(InvalidArgument) as exc:
            Chain(client="http://localhost:8545")
        assert exc.value.message == "client must be an instance of ChainClient."

    def test_attributes_are_read_only(self):
        chain = Chain(client=FakeChainClient(), contract_addresses={"Anchor": addr(1)})

        with pytest.raises(dataclasses.FrozenInstanceError):
            chain.client = FakeChainClient()
        with pytest.raises(TypeError):
            chain.contract_addresses["Anchor"] = addr(2)

    def test_addresses_are_copied(self):
        addresses = {"Anchor": addr(1)}
        chain = Chain(client=FakeChainClient(), contract_addresses=addresses)
        addresses["Anchor"] = addr(2)
        assert chain.address_of("Anchor") == addr(1)

    def test_missing_address(self):
        chain = Chain(client=FakeChainClient())
        with pytest.raises(InvalidArgument) as exc:
            chain.address_of("EIP20Gateway")
        assert exc.value.message == "Invalid EIP20Gateway address: None."


class TestMosaic:
    def test_type_checks(self):
        chain = Chain(client=FakeChainClient())
        with pytest.raises(InvalidArgument):
            Mosaic(origin="origin", auxiliary=chain)
        with pytest.raises(InvalidArgument):
            Mosaic(origin=chain, auxiliary=None)

    def test_read_only(self, mosaic):
        with pytest.raises(dataclasses.FrozenInstanceError):
            mosaic.origin = mosaic.auxiliary


class TestContractRegistry:
    def test_default_registry_names(self):
        assert default_registry().names() == [
            "Anchor", "EIP20CoGateway", "EIP20Gateway", "EIP20Token", "OSTPrime",
        ]

    def test_unknown_name(self):
        with pytest.raises(ContractNotFound):
            ContractRegistry().get("Organization")

    def test_from_directory(self, tmp_path):
        abi = [{"type": "function", "name": "bounty", "inputs": [], "outputs": []}]
        (tmp_path / "EIP20Gateway.abi").write_text(json.dumps(abi))
        (tmp_path / "EIP20Gateway.bin").write_text("0x6080\n")

        registry = ContractRegistry.from_directory(tmp_path, network="dev")

        artifact = registry.get("EIP20Gateway")
        assert artifact.abi == abi
        assert artifact.bytecode == "0x6080"
        assert registry.resolve("EIP20Gateway", GATEWAY).address == GATEWAY

    def test_handle_with_unregistered_contract(self):
        with pytest.raises(ContractNotFound):
            EIP20Gateway(FakeChainClient(), GATEWAY, ContractRegistry())


class TestContractInteract:
    def test_invalid_client(self):
        with pytest.raises(InvalidArgument) as exc:
            EIP20Gateway(None, GATEWAY)
        assert exc.value.message == "Mandatory Parameter 'client' is missing or invalid."

    def test_invalid_address(self):
        with pytest.raises(InvalidArgument) as exc:
            EIP20Gateway(FakeChainClient(), "0x123")
        assert exc.value.message == "Mandatory Parameter 'address' is missing or invalid: 0x123."

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["0x", "0x0000", ""])
    async def test_ensure_deployed_without_code(self, code):
        client = FakeChainClient()
        client.code[GATEWAY] = code
        with pytest.raises(ContractNotFound) as exc:
            await EIP20Gateway(client, GATEWAY).ensure_deployed()
        assert exc.value.message == f"Could not load EIP20Gateway contract for: {GATEWAY}"

    @pytest.mark.asyncio
    async def test_ensure_deployed(self):
        client = FakeChainClient()
        client.code[GATEWAY] = "0x6080604052"
        await EIP20Gateway(client, GATEWAY).ensure_deployed()

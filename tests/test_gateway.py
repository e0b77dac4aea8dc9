from unittest.mock import AsyncMock, MagicMock

import pytest

from mosaic.contracts.gateway import EIP20Gateway
from mosaic.contracts.token import EIP20Token
from mosaic.core.enums import MessageStatus
from mosaic.core.errors import InvalidAmount, InvalidArgument, TransactionReverted
from mosaic.core.models import ContractCall, Receipt

from conftest import (
    BENEFICIARY,
    FACILITATOR,
    GATEWAY,
    ORIGIN_ANCHOR,
    STAKER,
    STATE_ROOT,
    FakeChainClient,
    addr,
    h32,
)

BASE_TOKEN = addr(0x80)
VALUE_TOKEN = addr(0x81)


@pytest.fixture
def client():
    c = FakeChainClient()
    c.set_view(GATEWAY, "bounty", "1000")
    c.set_view(GATEWAY, "baseToken", BASE_TOKEN)
    c.set_view(GATEWAY, "token", VALUE_TOKEN)
    c.set_view(GATEWAY, "stateRootProvider", ORIGIN_ANCHOR)
    return c


@pytest.fixture
def gateway(client):
    return EIP20Gateway(client, GATEWAY)


def stake_args(**overrides):
    args = dict(
        amount="1000",
        beneficiary=BENEFICIARY,
        gas_price="1",
        gas_limit="100000",
        nonce="1",
        hash_lock=h32(0x55),
    )
    args.update(overrides)
    return args


class TestBountyApproval:
    @pytest.mark.asyncio
    async def test_is_bounty_amount_approved(self, gateway):
        token = MagicMock()
        token.is_amount_approved = AsyncMock(return_value=True)
        gateway.get_base_token_contract = AsyncMock(return_value=token)
        gateway.get_bounty = AsyncMock(return_value="1000")

        assert await gateway.is_bounty_amount_approved(FACILITATOR) is True

        gateway.get_base_token_contract.assert_awaited_once()
        gateway.get_bounty.assert_awaited_once()
        token.is_amount_approved.assert_awaited_once_with(FACILITATOR, GATEWAY, "1000")

    @pytest.mark.asyncio
    async def test_invalid_facilitator(self, gateway, client):
        with pytest.raises(InvalidArgument) as exc:
            await gateway.is_bounty_amount_approved(None)
        assert exc.value.message == "Invalid facilitator address: None."
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_against_chain(self, gateway, client):
        client.set_view(BASE_TOKEN, "allowance", "999")
        assert await gateway.is_bounty_amount_approved(FACILITATOR) is False

    @pytest.mark.asyncio
    async def test_approve_bounty_amount(self, gateway, client, tx_options):
        await gateway.approve_bounty_amount(tx_options)

        address, method, args, _ = client.sent[0]
        assert (address, method, args) == (BASE_TOKEN, "approve", (GATEWAY, "1000"))

    @pytest.mark.asyncio
    async def test_approve_bounty_amount_invalid_from(self, gateway):
        with pytest.raises(InvalidArgument) as exc:
            await gateway.approve_bounty_amount({"from": "0x1"})
        assert exc.value.message == "Invalid from address: 0x1."


class TestStakeApproval:
    @pytest.mark.asyncio
    async def test_is_stake_amount_approved(self, gateway, client):
        client.set_view(VALUE_TOKEN, "allowance", "5000")
        assert await gateway.is_stake_amount_approved(STAKER, "5000") is True
        assert await gateway.is_stake_amount_approved(STAKER, "5001") is False

    @pytest.mark.asyncio
    async def test_invalid_staker(self, gateway):
        with pytest.raises(InvalidArgument) as exc:
            await gateway.is_stake_amount_approved("0x12", "1")
        assert exc.value.message == "Invalid staker address: 0x12."

    @pytest.mark.asyncio
    async def test_approve_stake_amount(self, gateway, client, tx_options):
        await gateway.approve_stake_amount("5000", tx_options)
        assert client.sent[0][:3] == (VALUE_TOKEN, "approve", (GATEWAY, "5000"))


class TestCaching:
    @pytest.mark.asyncio
    async def test_bounty_read_once(self, gateway, client):
        assert await gateway.get_bounty() == "1000"
        assert await gateway.get_bounty() == "1000"
        assert client.calls_to("bounty") == 1

    @pytest.mark.asyncio
    async def test_token_contracts_read_once(self, gateway, client):
        base = await gateway.get_base_token_contract()
        assert isinstance(base, EIP20Token)
        assert base.address == BASE_TOKEN
        assert await gateway.get_base_token_contract() is base
        assert await gateway.get_base_token() == BASE_TOKEN
        assert client.calls_to("baseToken") == 1

        value = await gateway.get_value_token_contract()
        assert value.address == VALUE_TOKEN
        await gateway.get_value_token()
        assert client.calls_to("token") == 1

    @pytest.mark.asyncio
    async def test_state_root_provider_read_once(self, gateway, client):
        assert await gateway.get_state_root_provider_address() == ORIGIN_ANCHOR
        anchor = await gateway.get_anchor()
        assert anchor.address == ORIGIN_ANCHOR
        assert await gateway.get_anchor() is anchor
        assert client.calls_to("stateRootProvider") == 1

    @pytest.mark.asyncio
    async def test_handles_do_not_share_cache(self, client):
        await EIP20Gateway(client, GATEWAY).get_bounty()
        await EIP20Gateway(client, GATEWAY).get_bounty()
        assert client.calls_to("bounty") == 2

    @pytest.mark.asyncio
    async def test_latest_anchor_info(self, gateway, client):
        client.set_view(ORIGIN_ANCHOR, "getLatestStateRootBlockHeight", 77)
        client.set_view(ORIGIN_ANCHOR, "getStateRoot", STATE_ROOT)

        info = await gateway.get_latest_anchor_info()
        assert (info.block_height, info.state_root) == (77, STATE_ROOT)


class TestStake:
    def test_raw_tx(self, gateway):
        tx = gateway.stake_raw_tx(**stake_args(gas_limit=100000))

        assert isinstance(tx, ContractCall)
        assert tx.method == "stake"
        assert tx.args == ("1000", BENEFICIARY, "1", "100000", "1", h32(0x55))

    @pytest.mark.asyncio
    async def test_stake(self, gateway, client, tx_options):
        declared = Receipt(
            transaction_hash=h32(9),
            block_number=101,
            events={"StakeIntentDeclared": {"_messageHash": h32(1)}},
        )
        client.set_receipt(GATEWAY, "stake", declared)

        receipt = await gateway.stake(**stake_args(), tx_options=tx_options)

        assert receipt.event_arg("StakeIntentDeclared", "_messageHash") == h32(1)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", 0])
    async def test_zero_amount(self, gateway, client, tx_options, amount):
        with pytest.raises(InvalidAmount) as exc:
            await gateway.stake(**stake_args(amount=amount), tx_options=tx_options)
        assert exc.value.message == f"Stake amount must be greater than zero: {amount}."
        assert client.calls == [] and client.sent == []

    @pytest.mark.asyncio
    async def test_invalid_facilitator(self, gateway, client):
        with pytest.raises(InvalidArgument) as exc:
            await gateway.stake(**stake_args(), tx_options={})
        assert exc.value.message == "Invalid facilitator address: None."

    @pytest.mark.asyncio
    async def test_missing_tx_options(self, gateway):
        with pytest.raises(InvalidArgument) as exc:
            await gateway.stake(**stake_args(), tx_options=None)
        assert exc.value.message == "Invalid transaction options: None."

    @pytest.mark.parametrize(
        "field, value, message",
        [
            ("beneficiary", "0x123", "Invalid beneficiary address: 0x123."),
            ("gas_price", None, "Invalid gas price: None."),
            ("gas_limit", "-1", "Invalid gas limit: -1."),
            ("nonce", "x", "Invalid nonce: x."),
            ("hash_lock", "0x12", "Invalid hash lock: 0x12."),
        ],
    )
    def test_raw_tx_validation(self, gateway, field, value, message):
        with pytest.raises(InvalidArgument) as exc:
            gateway.stake_raw_tx(**stake_args(**{field: value}))
        assert exc.value.message == message

    @pytest.mark.asyncio
    async def test_reverted(self, gateway, client, tx_options):
        client.set_receipt(
            GATEWAY, "stake", Receipt(transaction_hash=h32(9), block_number=101, status=False)
        )
        with pytest.raises(TransactionReverted) as exc:
            await gateway.stake(**stake_args(), tx_options=tx_options)
        assert exc.value.receipt.transaction_hash == h32(9)


class TestMessageStatus:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", list(range(5)) + ["1", "4"])
    async def test_outbox_status(self, gateway, client, raw):
        client.set_view(GATEWAY, "getOutboxMessageStatus", raw)
        assert await gateway.get_outbox_message_status(h32(1)) == MessageStatus(int(raw))

    @pytest.mark.asyncio
    async def test_inbox_status_not_cached(self, gateway, client):
        client.set_view(GATEWAY, "getInboxMessageStatus", MessageStatus.DECLARED.value)
        await gateway.get_inbox_message_status(h32(1))
        await gateway.get_inbox_message_status(h32(1))
        assert client.calls_to("getInboxMessageStatus") == 2

    @pytest.mark.asyncio
    async def test_invalid_hash(self, gateway, client):
        with pytest.raises(InvalidArgument) as exc:
            await gateway.get_outbox_message_status("0x1")
        assert exc.value.message == "Invalid message hash: 0x1."
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_nonce(self, gateway, client):
        client.set_view(GATEWAY, "getNonce", lambda account: 4 if account == STAKER else 0)
        assert await gateway.get_nonce(STAKER) == "4"
        with pytest.raises(InvalidArgument) as exc:
            await gateway.get_nonce("0x0")
        assert exc.value.message == "Invalid account address: 0x0."


class TestProgression:
    def test_progress_stake_raw_tx_missing_hash(self, gateway, client):
        with pytest.raises(InvalidArgument) as exc:
            gateway.progress_stake_raw_tx(None, h32(2))
        assert exc.value.message == "Invalid message hash: None."

    def test_progress_unstake_raw_tx_missing_secret(self, gateway):
        with pytest.raises(InvalidArgument) as exc:
            gateway.progress_unstake_raw_tx(h32(1), None)
        assert exc.value.message == "Invalid unlock secret: None."

    @pytest.mark.asyncio
    async def test_progress_stake_invalid_from(self, gateway):
        with pytest.raises(InvalidArgument) as exc:
            await gateway.progress_stake(h32(1), h32(2), {"from": "0x12"})
        assert exc.value.message == "Invalid from address 0x12 in transaction options."

    @pytest.mark.asyncio
    async def test_progress_unstake(self, gateway, client, tx_options):
        await gateway.progress_unstake(h32(1), h32(2), tx_options)
        assert client.sent[0][1:3] == ("progressUnstake", (h32(1), h32(2)))

    def test_confirm_redeem_intent_raw_tx(self, gateway):
        tx = gateway.confirm_redeem_intent_raw_tx(
            STAKER, "1", BENEFICIARY, "10", "1", "100", 120, h32(3), "0xf8"
        )
        assert tx.method == "confirmRedeemIntent"
        assert tx.args == (STAKER, "1", BENEFICIARY, "10", "1", "100", 120, h32(3), "0xf8")

    def test_confirm_redeem_intent_invalid_proof(self, gateway):
        with pytest.raises(InvalidArgument) as exc:
            gateway.confirm_redeem_intent_raw_tx(
                STAKER, "1", BENEFICIARY, "10", "1", "100", 120, h32(3), None
            )
        assert exc.value.message == "Invalid storage proof data: None."

    @pytest.mark.asyncio
    async def test_prove_gateway(self, gateway, client, tx_options):
        await gateway.prove_gateway(120, "0xf8", "0xf9", tx_options)
        assert client.sent[0][1:3] == ("proveGateway", (120, "0xf8", "0xf9"))


class TestAdministration:
    @pytest.mark.asyncio
    async def test_stake_vault(self, gateway, client):
        client.set_view(GATEWAY, "stakeVault", addr(0x99))
        assert await gateway.get_stake_vault() == addr(0x99)

    @pytest.mark.asyncio
    async def test_activate_gateway(self, gateway, client, tx_options):
        await gateway.activate_gateway(addr(3), tx_options)
        assert client.sent[0][1:3] == ("activateGateway", (addr(3),))

    def test_activate_gateway_invalid_cogateway(self, gateway):
        with pytest.raises(InvalidArgument):
            gateway.activate_gateway_raw_tx("0x3")

# src/mosaic/contracts/abi.py
"""
ABI fragments for the contracts this library talks to.

Only the functions and events used by the contract interacts are
declared. A registry built from full compiler artifacts
(ContractRegistry.from_directory) can be passed instead wherever a
registry is accepted.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List, Sequence, Tuple

from mosaic.core.chain import ContractRegistry
from mosaic.core.models import JsonDict

Param = Tuple[str, str]


def _params(params: Sequence[Param]) -> List[JsonDict]:
    return [{"name": name, "type": typ} for name, typ in params]


def _fn(
    name: str,
    inputs: Sequence[Param] = (),
    outputs: Sequence[Param] = (),
    mutability: str = "nonpayable",
) -> JsonDict:
    return {
        "type": "function",
        "name": name,
        "inputs": _params(inputs),
        "outputs": _params(outputs),
        "stateMutability": mutability,
    }


def _view(name: str, inputs: Sequence[Param] = (), outputs: Sequence[Param] = ()) -> JsonDict:
    return _fn(name, inputs, outputs, "view")


def _event(name: str, inputs: Sequence[Tuple[str, str, bool]]) -> JsonDict:
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [{"name": n, "type": t, "indexed": i} for n, t, i in inputs],
    }


_MESSAGE_BOX: List[JsonDict] = [
    _view("bounty", outputs=[("", "uint256")]),
    _view("stateRootProvider", outputs=[("", "address")]),
    _view("getNonce", [("_account", "address")], [("", "uint256")]),
    _view("getInboxMessageStatus", [("_messageHash", "bytes32")], [("status_", "uint8")]),
    _view("getOutboxMessageStatus", [("_messageHash", "bytes32")], [("status_", "uint8")]),
    _fn(
        "proveGateway",
        [("_blockHeight", "uint256"), ("_rlpAccount", "bytes"), ("_rlpParentNodes", "bytes")],
        [("", "bool")],
    ),
    _event(
        "GatewayProven",
        [
            ("_gateway", "address", True),
            ("_blockHeight", "uint256", True),
            ("_storageRoot", "bytes32", False),
            ("_wasAlreadyProved", "bool", False),
        ],
    ),
]

EIP20_GATEWAY_ABI: List[JsonDict] = _MESSAGE_BOX + [
    _view("token", outputs=[("", "address")]),
    _view("baseToken", outputs=[("", "address")]),
    _view("stakeVault", outputs=[("", "address")]),
    _fn(
        "stake",
        [
            ("_amount", "uint256"),
            ("_beneficiary", "address"),
            ("_gasPrice", "uint256"),
            ("_gasLimit", "uint256"),
            ("_nonce", "uint256"),
            ("_hashLock", "bytes32"),
        ],
        [("messageHash_", "bytes32")],
    ),
    _fn(
        "progressStake",
        [("_messageHash", "bytes32"), ("_unlockSecret", "bytes32")],
        [("staker_", "address"), ("stakeAmount_", "uint256")],
    ),
    _fn(
        "confirmRedeemIntent",
        [
            ("_redeemer", "address"),
            ("_redeemerNonce", "uint256"),
            ("_beneficiary", "address"),
            ("_amount", "uint256"),
            ("_gasPrice", "uint256"),
            ("_gasLimit", "uint256"),
            ("_blockHeight", "uint256"),
            ("_hashLock", "bytes32"),
            ("_rlpParentNodes", "bytes"),
        ],
        [("messageHash_", "bytes32")],
    ),
    _fn(
        "progressUnstake",
        [("_messageHash", "bytes32"), ("_unlockSecret", "bytes32")],
        [("redeemAmount_", "uint256"), ("unstakeAmount_", "uint256"), ("rewardAmount_", "uint256")],
    ),
    _fn("activateGateway", [("_coGatewayAddress", "address")], [("success_", "bool")]),
    _event(
        "StakeIntentDeclared",
        [
            ("_messageHash", "bytes32", True),
            ("_staker", "address", False),
            ("_stakerNonce", "uint256", False),
            ("_beneficiary", "address", False),
            ("_amount", "uint256", False),
        ],
    ),
    _event(
        "StakeProgressed",
        [
            ("_messageHash", "bytes32", True),
            ("_staker", "address", False),
            ("_stakerNonce", "uint256", False),
            ("_amount", "uint256", False),
            ("_proofProgress", "bool", False),
            ("_unlockSecret", "bytes32", False),
        ],
    ),
    _event(
        "RedeemIntentConfirmed",
        [
            ("_messageHash", "bytes32", True),
            ("_redeemer", "address", False),
            ("_redeemerNonce", "uint256", False),
            ("_beneficiary", "address", False),
            ("_amount", "uint256", False),
            ("_blockHeight", "uint256", False),
            ("_hashLock", "bytes32", False),
        ],
    ),
    _event(
        "UnstakeProgressed",
        [
            ("_messageHash", "bytes32", True),
            ("_redeemer", "address", False),
            ("_beneficiary", "address", False),
            ("_redeemAmount", "uint256", False),
            ("_unstakeAmount", "uint256", False),
            ("_rewardAmount", "uint256", False),
            ("_proofProgress", "bool", False),
            ("_unlockSecret", "bytes32", False),
        ],
    ),
]

EIP20_COGATEWAY_ABI: List[JsonDict] = _MESSAGE_BOX + [
    _view("utilityToken", outputs=[("", "address")]),
    _fn(
        "confirmStakeIntent",
        [
            ("_staker", "address"),
            ("_stakerNonce", "uint256"),
            ("_beneficiary", "address"),
            ("_amount", "uint256"),
            ("_gasPrice", "uint256"),
            ("_gasLimit", "uint256"),
            ("_hashLock", "bytes32"),
            ("_blockHeight", "uint256"),
            ("_rlpParentNodes", "bytes"),
        ],
        [("messageHash_", "bytes32")],
    ),
    _fn(
        "progressMint",
        [("_messageHash", "bytes32"), ("_unlockSecret", "bytes32")],
        [("beneficiary_", "address"), ("stakeAmount_", "uint256"), ("mintedAmount_", "uint256"), ("rewardAmount_", "uint256")],
    ),
    _fn(
        "redeem",
        [
            ("_amount", "uint256"),
            ("_beneficiary", "address"),
            ("_gasPrice", "uint256"),
            ("_gasLimit", "uint256"),
            ("_nonce", "uint256"),
            ("_hashLock", "bytes32"),
        ],
        [("messageHash_", "bytes32")],
        mutability="payable",
    ),
    _fn(
        "progressRedeem",
        [("_messageHash", "bytes32"), ("_unlockSecret", "bytes32")],
        [("redeemer_", "address"), ("redeemAmount_", "uint256")],
    ),
    _event(
        "StakeIntentConfirmed",
        [
            ("_messageHash", "bytes32", True),
            ("_staker", "address", False),
            ("_stakerNonce", "uint256", False),
            ("_beneficiary", "address", False),
            ("_amount", "uint256", False),
            ("_blockHeight", "uint256", False),
            ("_hashLock", "bytes32", False),
        ],
    ),
    _event(
        "MintProgressed",
        [
            ("_messageHash", "bytes32", True),
            ("_staker", "address", False),
            ("_beneficiary", "address", False),
            ("_stakeAmount", "uint256", False),
            ("_mintedAmount", "uint256", False),
            ("_rewardAmount", "uint256", False),
            ("_proofProgress", "bool", False),
            ("_unlockSecret", "bytes32", False),
        ],
    ),
    _event(
        "RedeemIntentDeclared",
        [
            ("_messageHash", "bytes32", True),
            ("_redeemer", "address", False),
            ("_redeemerNonce", "uint256", False),
            ("_beneficiary", "address", False),
            ("_amount", "uint256", False),
        ],
    ),
    _event(
        "RedeemProgressed",
        [
            ("_messageHash", "bytes32", True),
            ("_redeemer", "address", False),
            ("_redeemerNonce", "uint256", False),
            ("_amount", "uint256", False),
            ("_proofProgress", "bool", False),
            ("_unlockSecret", "bytes32", False),
        ],
    ),
]

ANCHOR_ABI: List[JsonDict] = [
    _view("getLatestStateRootBlockHeight", outputs=[("height_", "uint256")]),
    _view("getStateRoot", [("_blockHeight", "uint256")], [("stateRoot_", "bytes32")]),
    _fn(
        "anchorStateRoot",
        [("_blockHeight", "uint256"), ("_stateRoot", "bytes32")],
        [("success_", "bool")],
    ),
    _event(
        "StateRootAvailable",
        [("_blockHeight", "uint256", False), ("_stateRoot", "bytes32", False)],
    ),
]

EIP20_TOKEN_ABI: List[JsonDict] = [
    _view("balanceOf", [("_owner", "address")], [("balance_", "uint256")]),
    _view("allowance", [("_owner", "address"), ("_spender", "address")], [("remaining_", "uint256")]),
    _fn("approve", [("_spender", "address"), ("_value", "uint256")], [("success_", "bool")]),
    _event(
        "Approval",
        [("_owner", "address", True), ("_spender", "address", True), ("_value", "uint256", False)],
    ),
]

OST_PRIME_ABI: List[JsonDict] = EIP20_TOKEN_ABI + [
    _fn("wrap", outputs=[("success_", "bool")], mutability="payable"),
    _fn("unwrap", [("_amount", "uint256")], [("success_", "bool")]),
]


@lru_cache()
def default_registry() -> ContractRegistry:
    """Registry holding the bundled fragments, shared by all handles."""
    registry = ContractRegistry(network="default")
    registry.register("EIP20Gateway", EIP20_GATEWAY_ABI)
    registry.register("EIP20CoGateway", EIP20_COGATEWAY_ABI)
    registry.register("Anchor", ANCHOR_ABI)
    registry.register("EIP20Token", EIP20_TOKEN_ABI)
    registry.register("OSTPrime", OST_PRIME_ABI)
    return registry

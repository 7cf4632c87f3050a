"""SNIP-12 (revision 1) typed data for signed orders.

The order hash is the SNIP-12 message hash of the order, scoped by the maker
address. It is both what the maker signs and the order's public identity, so
the type layout below must match the on-chain contract byte for byte.
"""
from typing import Any

from starknet_py.utils.typed_data import TypedData

from src.me_common.felt import felt_to_hex, to_u256_parts
from src.me_signature.domain.models import SignedOrder

PROTOCOL_NAME = "Stela"
PROTOCOL_VERSION = "1"
TYPED_DATA_REVISION = "1"
PRIMARY_TYPE = "SignedOrder"

DOMAIN_TYPE: list[dict[str, str]] = [
    {"name": "name", "type": "shortstring"},
    {"name": "version", "type": "shortstring"},
    {"name": "chainId", "type": "shortstring"},
    {"name": "revision", "type": "shortstring"},
]

# Order matters: reordering changes every order hash.
ORDER_TYPE: list[dict[str, str]] = [
    {"name": "maker", "type": "ContractAddress"},
    {"name": "allowed_taker", "type": "ContractAddress"},
    {"name": "inscription_id", "type": "u256"},
    {"name": "bps", "type": "u256"},
    {"name": "deadline", "type": "u128"},
    {"name": "nonce", "type": "felt"},
    {"name": "min_fill_bps", "type": "u256"},
]


def u256_value(n: int) -> dict[str, str]:
    low, high = to_u256_parts(n)
    return {"low": str(low), "high": str(high)}


def build_order_message(order: SignedOrder) -> dict[str, Any]:
    return {
        "maker": order.maker,
        "allowed_taker": order.allowed_taker,
        "inscription_id": u256_value(order.inscription_id),
        "bps": u256_value(order.bps),
        "deadline": str(order.deadline),
        "nonce": hex(order.nonce),
        "min_fill_bps": u256_value(order.min_fill_bps),
    }


def build_typed_data(chain_id: str, order: SignedOrder) -> dict[str, Any]:
    """Full typed-data document in the shape wallets sign."""
    return {
        "types": {
            "StarknetDomain": DOMAIN_TYPE,
            PRIMARY_TYPE: ORDER_TYPE,
        },
        "primaryType": PRIMARY_TYPE,
        "domain": {
            "name": PROTOCOL_NAME,
            "version": PROTOCOL_VERSION,
            "chainId": chain_id,
            "revision": TYPED_DATA_REVISION,
        },
        "message": build_order_message(order),
    }


def order_message_hash(chain_id: str, order: SignedOrder) -> int:
    typed_data = TypedData.from_dict(build_typed_data(chain_id, order))  # type: ignore[arg-type]
    return typed_data.message_hash(int(order.maker, 16))


def compute_order_hash(chain_id: str, order: SignedOrder) -> str:
    """Deterministic order identity as 0x + 64 hex."""
    return felt_to_hex(order_message_hash(chain_id, order))

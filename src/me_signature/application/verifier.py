"""Signature Verifier — decides whether a submitted order is admissible.

Admissibility is delegated to the maker's account contract. Accounts may be
multisig or otherwise custom wallets, so the engine never checks ECDSA itself.
"""
import logging
from collections.abc import Sequence

from src.me_common.errors import InternalError
from src.me_common.felt import felt_to_hex, parse_felt
from src.me_signature.domain.models import SignedOrder, Verification
from src.me_signature.domain.typed_data import order_message_hash
from src.me_signature.infrastructure.account_client import AccountClient

logger = logging.getLogger(__name__)

# Short string "VALID"; some wallets return plain 1 instead.
VALIDATED = 0x56414C4944
_ACCEPTED_RESULTS = frozenset({VALIDATED, 1})


class SignatureVerifier:
    def __init__(self, client: AccountClient) -> None:
        self._client = client

    def order_hash(self, chain_id: str, order: SignedOrder) -> str:
        return felt_to_hex(self._message_hash(chain_id, order))

    async def verify(
        self, chain_id: str, order: SignedOrder, signature: Sequence[str]
    ) -> Verification:
        message_hash = self._message_hash(chain_id, order)
        order_hash = felt_to_hex(message_hash)

        try:
            components = [parse_felt(part, "signature") for part in signature]
        except ValueError:
            return Verification(order_hash, False, "malformed signature component")

        result = await self._client.is_valid_signature(
            int(order.maker, 16), message_hash, components
        )
        if result and result[0] in _ACCEPTED_RESULTS:
            return Verification(order_hash, True)
        logger.info("Signature rejected by account %s for order %s", order.maker, order_hash)
        return Verification(order_hash, False, "account rejected signature")

    @staticmethod
    def _message_hash(chain_id: str, order: SignedOrder) -> int:
        try:
            return order_message_hash(chain_id, order)
        except (ValueError, TypeError, KeyError) as exc:
            logger.error("Failed to compute typed-data hash: %s", exc)
            raise InternalError() from exc

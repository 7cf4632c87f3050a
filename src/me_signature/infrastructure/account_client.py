"""Read-only calls into maker account contracts over StarkNet JSON-RPC."""
import asyncio
import logging
from collections.abc import Sequence

import aiohttp
from starknet_py.hash.selector import get_selector_from_name
from starknet_py.net.client_errors import ClientError
from starknet_py.net.client_models import Call
from starknet_py.net.full_node_client import FullNodeClient

from src.me_common.errors import RemoteServiceError, UndeployedAccountError
from src.me_common.felt import felt_to_hex

logger = logging.getLogger(__name__)

IS_VALID_SIGNATURE_SELECTOR = get_selector_from_name("is_valid_signature")

# StarkNet JSON-RPC error code for "Contract not found".
_CONTRACT_NOT_FOUND_CODE = 20


def _is_contract_not_found(exc: ClientError) -> bool:
    if exc.code == _CONTRACT_NOT_FOUND_CODE:
        return True
    text = str(exc).lower()
    return "contractnotfound" in text or "contract not found" in text


class AccountClient:
    """Thin wrapper over FullNodeClient; safe to share across requests."""

    def __init__(self, node_url: str, client: FullNodeClient | None = None) -> None:
        self._client = client or FullNodeClient(node_url=node_url)

    async def is_valid_signature(
        self, account: int, message_hash: int, signature: Sequence[int]
    ) -> list[int]:
        """Call ``is_valid_signature(hash, signature)`` on the account at latest block.

        Raises UndeployedAccountError when the address has no class deployed and
        RemoteServiceError for every other RPC or transport failure.
        """
        call = Call(
            to_addr=account,
            selector=IS_VALID_SIGNATURE_SELECTOR,
            calldata=[message_hash, len(signature), *signature],
        )
        try:
            return await self._client.call_contract(call=call, block_number="latest")
        except ClientError as exc:
            if _is_contract_not_found(exc):
                raise UndeployedAccountError(felt_to_hex(account)) from exc
            logger.error("StarkNet RPC error calling is_valid_signature: %s", exc)
            raise RemoteServiceError() from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error("StarkNet RPC transport error: %r", exc)
            raise RemoteServiceError() from exc

"""
Submit the nomination extrinsic on the parachain.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from async_substrate_interface import AsyncSubstrateInterface
from async_substrate_interface.errors import SubstrateRequestException
from bittensor_wallet import Keypair
from websockets.exceptions import ConnectionClosed

from nominator.errors import ConnectivityLost, SubmissionFailed
from nominator.models.validator import NominationEntry

logger = logging.getLogger(__name__)

LIQUID_STAKING_PALLET = "LiquidStaking"


class NominationSubmitter:
    """
    Build, sign and send `LiquidStaking.nominate(derivative_index, targets)`.

    The account nonce is read from the chain right before signing, never
    cached, so external activity on the same account cannot collide with it.
    Acceptance into the transaction pool counts as success.
    """

    def __init__(self, para: AsyncSubstrateInterface, keypair: Keypair, config: Dict):
        self.para = para
        self.keypair = keypair
        self.config = config
        self._derivative_index: Optional[int] = config.get("derivative_index")

    async def get_derivative_index(self) -> int:
        """Pool index from config, falling back to the pallet constant."""
        if self._derivative_index is None:
            constant = await self.para.get_constant(LIQUID_STAKING_PALLET, "DerivativeIndex")
            value = getattr(constant, "value", constant)
            if value is None:
                raise SubmissionFailed("LiquidStaking.DerivativeIndex constant not found")
            self._derivative_index = int(value)
        return self._derivative_index

    async def fetch_nonce(self) -> int:
        """Next account index as the node sees it, pool included."""
        response = await self.para.rpc_request(
            "system_accountNextIndex", [self.keypair.ss58_address]
        )
        nonce = response.get("result") if isinstance(response, dict) else None
        if nonce is None:
            raise SubmissionFailed(f"system_accountNextIndex returned no result: {response!r}")
        return int(nonce)

    async def submit(self, nominations: Sequence[NominationEntry]) -> str:
        """
        Submit one nomination extrinsic.

        Args:
            nominations: Ranked nomination list (order is preserved on chain)

        Returns:
            Extrinsic hash

        Raises:
            SubmissionFailed: signing or sending failed
            ConnectivityLost: the parachain connection is gone
        """
        targets: List[str] = [n.account_id for n in nominations]
        if not targets:
            raise SubmissionFailed("Refusing to submit an empty nomination list")

        try:
            derivative_index = await self.get_derivative_index()
            call = await self.para.compose_call(
                call_module=LIQUID_STAKING_PALLET,
                call_function="nominate",
                call_params={"derivative_index": derivative_index, "targets": targets},
            )
            nonce = await self.fetch_nonce()
            logger.info(
                f"Signing nominate(derivative_index={derivative_index}, "
                f"{len(targets)} targets) from {self.keypair.ss58_address} with nonce {nonce}"
            )
            extrinsic = await self.para.create_signed_extrinsic(
                call=call, keypair=self.keypair, nonce=nonce
            )
            receipt = await self.para.submit_extrinsic(
                extrinsic, wait_for_inclusion=False, wait_for_finalization=False
            )
        except (ConnectionClosed, ConnectionError) as e:
            raise ConnectivityLost(f"Parachain connection lost during submission: {e}") from e
        except (SubstrateRequestException, ValueError, TypeError, KeyError) as e:
            raise SubmissionFailed(f"Nomination extrinsic rejected: {e}") from e

        extrinsic_hash = getattr(receipt, "extrinsic_hash", None) or ""
        logger.info(f"Nomination extrinsic accepted into pool: {extrinsic_hash}")
        return extrinsic_hash

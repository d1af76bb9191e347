"""
Read-only typed access to relay chain staking data.

Thin layer over AsyncSubstrateInterface. Every public call either returns
typed models or raises DataUnavailable (query failed / malformed response)
or ConnectivityLost (the websocket is gone).
"""
import asyncio
import logging
import math
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Set, Tuple

from async_substrate_interface import AsyncSubstrateInterface
from async_substrate_interface.errors import SubstrateRequestException
from scalecodec.utils.ss58 import is_valid_ss58_address, ss58_encode
from websockets.exceptions import ConnectionClosed

from nominator.errors import ConfigurationInvalid, ConnectivityLost, DataUnavailable
from nominator.models.validator import (
    COMMISSION_RATE_DECIMAL,
    EraPoints,
    Exposure,
    ScoringCoefficients,
    ValidatorAccount,
    ValidatorIdentity,
)

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_DEPTH = 84
DEFAULT_SS58_FORMAT = 42
# Max concurrent per-validator storage queries
QUERY_BATCH_SIZE = 64


def _value(obj: Any) -> Any:
    """Unwrap a decoded ScaleObj (or pass plain values through)."""
    if obj is None:
        return None
    return getattr(obj, "value", obj)


def _to_address(raw: Any, ss58_format: int) -> str:
    """Normalize a decoded AccountId (ss58 string, hex, bytes or nested int tuple)."""
    raw = _value(raw)
    while isinstance(raw, (list, tuple)) and len(raw) == 1:
        raw = raw[0]
    if isinstance(raw, str):
        if raw.startswith("0x"):
            return ss58_encode(raw, ss58_format=ss58_format)
        if not is_valid_ss58_address(raw):
            raise ValueError(f"Malformed address {raw!r}")
        return raw
    if isinstance(raw, (bytes, bytearray)):
        return ss58_encode(bytes(raw), ss58_format=ss58_format)
    if isinstance(raw, (list, tuple)) and len(raw) == 32:
        return ss58_encode(bytes(raw), ss58_format=ss58_format)
    raise ValueError(f"Cannot decode account id from {raw!r}")


def decode_identity_data(data: Any) -> Optional[str]:
    """Decode an identity `Data` field ({"Raw": ...}) into text."""
    data = _value(data)
    if isinstance(data, dict):
        raw = next((v for k, v in data.items() if k.startswith("Raw")), None)
    else:
        raw = data
    if raw is None or raw == "None":
        return None
    if isinstance(raw, (list, tuple)):
        raw = bytes(raw)
    if isinstance(raw, str) and raw.startswith("0x"):
        raw = bytes.fromhex(raw[2:])
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    text = str(raw).strip()
    return text or None


def parse_registration_display(registration: Any) -> Optional[str]:
    """Extract the display name from an IdentityOf registration value."""
    registration = _value(registration)
    # Newer runtimes store (Registration, Option<Username>)
    if isinstance(registration, (list, tuple)):
        registration = registration[0] if registration else None
    if not registration:
        return None
    info = registration.get("info") or {}
    return decode_identity_data(info.get("display"))


def parse_era_points(era: int, raw: Any, ss58_format: int) -> EraPoints:
    raw = _value(raw) or {}
    individual = raw.get("individual") or []
    if isinstance(individual, dict):
        individual = individual.items()
    return EraPoints(
        era=era,
        total=int(raw.get("total") or 0),
        individual={_to_address(acct, ss58_format): int(pts) for acct, pts in individual},
    )


class ChainDataGateway:
    """Typed accessor over relay chain staking storage."""

    def __init__(self, relay: AsyncSubstrateInterface, config: Dict):
        """
        Args:
            relay: Connected relay chain substrate client
            config: Process configuration (scoring weights, cap, ss58 format)
        """
        self.relay = relay
        self.config = config
        self.ss58_format = config.get("ss58_format") or getattr(
            relay, "ss58_format", None
        ) or DEFAULT_SS58_FORMAT

    async def _guard(self, what: str, awaitable: Awaitable) -> Any:
        """Await a chain call, translating library errors into domain errors."""
        try:
            return await awaitable
        except (TimeoutError, asyncio.TimeoutError) as e:
            raise DataUnavailable(f"{what}: timed out") from e
        except (ConnectionClosed, ConnectionError) as e:
            raise ConnectivityLost(f"{what}: {e}") from e
        except (SubstrateRequestException, KeyError, TypeError, ValueError, AttributeError) as e:
            raise DataUnavailable(f"{what}: {e}") from e

    async def _gather_batched(self, coros: List[Awaitable]) -> List[Any]:
        results: List[Any] = []
        for i in range(0, len(coros), QUERY_BATCH_SIZE):
            results.extend(await asyncio.gather(*coros[i : i + QUERY_BATCH_SIZE]))
        return results

    async def _query_map_items(self, module: str, storage: str, params=None) -> List[Tuple]:
        async def _collect():
            result = await self.relay.query_map(module, storage, params=params or [])
            return [(key, value) async for key, value in result]

        return await self._guard(f"{module}.{storage}", _collect())

    async def fetch_validator_prefs(self) -> Dict[str, Dict]:
        """`Staking.Validators` keyed by stash: commission (Perbill) and blocked flag."""
        items = await self._query_map_items("Staking", "Validators")
        try:
            return {_to_address(key, self.ss58_format): _value(prefs) or {} for key, prefs in items}
        except (ValueError, TypeError) as e:
            raise DataUnavailable(f"Staking.Validators: {e}") from e

    async def list_validator_stashes(self, prefs: Optional[Dict[str, Dict]] = None) -> Set[str]:
        """All currently registered validator stashes."""
        stashes = set(prefs if prefs is not None else await self.fetch_validator_prefs())
        logger.info(f"Retrieved {len(stashes)} validator stashes")
        return stashes

    async def _fetch_identity(self, stash: str) -> ValidatorIdentity:
        registration = _value(
            await self._guard(
                f"Identity.IdentityOf({stash})",
                self.relay.query("Identity", "IdentityOf", [stash]),
            )
        )
        if registration:
            return ValidatorIdentity(
                has_identity=True, display=parse_registration_display(registration)
            )

        # Sub-identities inherit the parent's registration
        super_of = _value(
            await self._guard(
                f"Identity.SuperOf({stash})",
                self.relay.query("Identity", "SuperOf", [stash]),
            )
        )
        if not super_of:
            return ValidatorIdentity(has_identity=False)
        parent = _to_address(super_of[0], self.ss58_format)
        parent_registration = _value(
            await self._guard(
                f"Identity.IdentityOf({parent})",
                self.relay.query("Identity", "IdentityOf", [parent]),
            )
        )
        if not parent_registration:
            return ValidatorIdentity(has_identity=False)
        return ValidatorIdentity(
            has_identity=True, display=parse_registration_display(parent_registration)
        )

    async def fetch_identities(self, stashes: Iterable[str]) -> Dict[str, ValidatorIdentity]:
        """Identity per stash; stashes without one get has_identity=False."""
        stashes = list(stashes)
        try:
            identities = await self._gather_batched([self._fetch_identity(s) for s in stashes])
        except (ValueError, TypeError, AttributeError, IndexError) as e:
            raise DataUnavailable(f"Malformed identity data: {e}") from e
        return dict(zip(stashes, identities))

    async def fetch_validator_accounts(
        self, stashes: Iterable[str], prefs: Optional[Dict[str, Dict]] = None
    ) -> Dict[str, ValidatorAccount]:
        """
        Commission, blocked flag and controller for each stash.

        Pass `prefs` from `fetch_validator_prefs` to reuse a snapshot already
        read this round instead of reading `Staking.Validators` again.
        """
        stashes = list(stashes)
        if prefs is None:
            prefs = await self.fetch_validator_prefs()
        controllers = await self._gather_batched(
            [
                self._guard(f"Staking.Bonded({s})", self.relay.query("Staking", "Bonded", [s]))
                for s in stashes
            ]
        )
        accounts: Dict[str, ValidatorAccount] = {}
        try:
            for stash, controller in zip(stashes, controllers):
                if stash not in prefs:
                    continue
                controller = _value(controller)
                accounts[stash] = ValidatorAccount(
                    account_id=stash,
                    stash_id=stash,
                    controller_id=_to_address(controller, self.ss58_format) if controller else stash,
                    commission_rate=int(prefs[stash].get("commission") or 0) / COMMISSION_RATE_DECIMAL,
                    blocked=bool(prefs[stash].get("blocked", False)),
                )
        except (ValueError, TypeError) as e:
            raise DataUnavailable(f"Malformed validator preferences: {e}") from e
        return accounts

    async def fetch_active_era(self) -> int:
        active_era = _value(
            await self._guard("Staking.ActiveEra", self.relay.query("Staking", "ActiveEra"))
        )
        if not active_era or active_era.get("index") is None:
            raise DataUnavailable("Staking.ActiveEra is empty")
        return int(active_era["index"])

    async def fetch_exposure(self, stash: str, era: int) -> Exposure:
        """Exposure of a validator in an era; paged overview first, legacy storage second."""
        overview = _value(
            await self._guard(
                f"Staking.ErasStakersOverview({era}, {stash})",
                self.relay.query("Staking", "ErasStakersOverview", [era, stash]),
            )
        )
        if not overview:
            overview = _value(
                await self._guard(
                    f"Staking.ErasStakers({era}, {stash})",
                    self.relay.query("Staking", "ErasStakers", [era, stash]),
                )
            )
        if not overview:
            return Exposure()
        try:
            return Exposure(total=int(overview.get("total") or 0), own=int(overview.get("own") or 0))
        except (ValueError, TypeError) as e:
            raise DataUnavailable(f"Malformed exposure for {stash}: {e}") from e

    async def fetch_exposures(self, stashes: Iterable[str], era: int) -> Dict[str, Exposure]:
        stashes = list(stashes)
        exposures = await self._gather_batched([self.fetch_exposure(s, era) for s in stashes])
        return dict(zip(stashes, exposures))

    async def _history_depth(self) -> int:
        depth = _value(
            await self._guard(
                "Staking.HistoryDepth", self.relay.get_constant("Staking", "HistoryDepth")
            )
        )
        return int(depth) if depth else DEFAULT_HISTORY_DEPTH

    async def list_historic_eras(self, include_current: bool = False) -> List[int]:
        """Eras still held in staking history, oldest first."""
        active, depth = await asyncio.gather(self.fetch_active_era(), self._history_depth())
        eras = list(range(max(0, active - depth), active))
        if include_current:
            eras.append(active)
        return eras

    async def _fetch_one_era_points(self, era: int) -> EraPoints:
        raw = await self._guard(
            f"Staking.ErasRewardPoints({era})",
            self.relay.query("Staking", "ErasRewardPoints", [era]),
        )
        try:
            return parse_era_points(era, raw, self.ss58_format)
        except (ValueError, TypeError, AttributeError) as e:
            raise DataUnavailable(f"Malformed reward points for era {era}: {e}") from e

    async def fetch_era_points(self, eras: Iterable[int]) -> List[EraPoints]:
        return list(await asyncio.gather(*[self._fetch_one_era_points(e) for e in eras]))

    async def fetch_era_slashes(self, era: int) -> Dict[str, int]:
        """Validator slash amounts recorded in an era (absent means not slashed)."""
        items = await self._query_map_items("Staking", "ValidatorSlashInEra", [era])
        slashes: Dict[str, int] = {}
        try:
            for key, value in items:
                # (Perbill, Balance)
                _, amount = _value(value)
                slashes[_to_address(key, self.ss58_format)] = int(amount)
        except (ValueError, TypeError) as e:
            raise DataUnavailable(f"Malformed slash record in era {era}: {e}") from e
        return slashes

    async def fetch_token_decimals(self) -> int:
        response = await self._guard(
            "system_properties", self.relay.rpc_request("system_properties", [])
        )
        try:
            decimals = response["result"]["tokenDecimals"]
            if isinstance(decimals, (list, tuple)):
                decimals = decimals[0]
            return int(decimals)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise DataUnavailable(f"Malformed system properties: {e}") from e

    async def fetch_scoring_coefficients(self) -> ScoringCoefficients:
        """Scoring weights from process configuration."""
        values = {}
        for field in ("commission_weight", "nomination_weight", "era_points_weight"):
            raw = self.config.get(field)
            try:
                values[field] = float(raw)
            except (TypeError, ValueError) as e:
                raise ConfigurationInvalid(f"{field} must be numeric, got {raw!r}") from e
            if not math.isfinite(values[field]):
                raise ConfigurationInvalid(f"{field} must be finite, got {raw!r}")
        return ScoringCoefficients(**values)

    async def fetch_max_validators(self) -> int:
        raw = self.config.get("max_validators")
        try:
            value = int(raw)
        except (TypeError, ValueError) as e:
            raise ConfigurationInvalid(f"max_validators must be an integer, got {raw!r}") from e
        if value <= 0:
            raise ConfigurationInvalid(f"max_validators must be positive, got {value}")
        return value

"""
Main entry point for the liquid-staking nomination client.

Connects to the relay chain and the parachain, then runs nomination rounds
on a timer and/or whenever the relay chain's active era changes.

Exit behaviour:
- invalid configuration or lost chain connectivity: exit status 1
- any other round failure is logged and the client keeps waiting
"""
import argparse
import asyncio
import getpass
import logging
import math
import sys
from typing import Dict, List, Optional, Sequence

from async_substrate_interface import AsyncSubstrateInterface
from bittensor_wallet import Keypair

from nominator import __version__
from nominator.errors import ConnectivityLost
from nominator.orchestrator.triggers import EraChangeTrigger, IntervalTrigger
from nominator.round_orchestrator import NominationRoundOrchestrator
from nominator.services.chain_data import ChainDataGateway
from nominator.services.submitter import NominationSubmitter
from nominator.utils.env import (
    COMMISSION_WEIGHT,
    DERIVATIVE_INDEX,
    ERA_POINTS_WEIGHT,
    ERA_POLL_SECONDS,
    ERA_WINDOW,
    LOG_LEVEL,
    MAX_COMMISSION_RATE,
    MAX_VALIDATORS,
    NOMINATION_WEIGHT,
    NOMINATOR_SEED,
    PARA_WS,
    RELAY_WS,
    TICK_SECONDS,
)

logger = logging.getLogger(__name__)

TRIGGER_MODES = ("timer", "era", "both")


def configure_logging(level: str = "INFO") -> None:
    """Log to stdout and nominator.log; errors are also kept in errors.log."""
    errors_handler = logging.FileHandler("errors.log")
    errors_handler.setLevel(logging.ERROR)
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler("nominator.log"),
            logging.StreamHandler(sys.stdout),
            errors_handler,
        ],
    )


def _optional_rate(value: Optional[str]) -> Optional[float]:
    if value is None or str(value).strip().lower() in ("", "none", "off"):
        return None
    return float(value)


def _is_set(value) -> bool:
    """Return True if value is set and usable (not None, 'None', or empty string)."""
    if value is None:
        return False
    s = str(value).strip()
    return s not in ("", "None", "none")


def get_config(argv: Optional[Sequence[str]] = None) -> Dict:
    """Load configuration from environment and arguments."""
    parser = argparse.ArgumentParser(
        prog="nominate-client",
        description="Score relay chain validators and nominate them for a liquid-staking pool",
    )
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")

    # Endpoints and account
    parser.add_argument(
        "-r", "--relay-ws", type=str, default=RELAY_WS,
        help=f"The relay chain API endpoint to connect to. Default: {RELAY_WS}",
    )
    parser.add_argument(
        "-p", "--para-ws", type=str, default=PARA_WS,
        help=f"The parachain API endpoint to connect to. Default: {PARA_WS}",
    )
    parser.add_argument("-s", "--seed", type=str, default=NOMINATOR_SEED, help="The account seed to use")
    parser.add_argument(
        "-i", "--interactive", action="store_true", help="Input the seed interactively"
    )

    # Scheduling
    parser.add_argument(
        "-t", "--tick", type=float, default=TICK_SECONDS,
        help=f"Seconds between timer-triggered rounds. Default: {TICK_SECONDS}",
    )
    parser.add_argument(
        "--trigger", choices=TRIGGER_MODES, default="timer",
        help="Run rounds on a timer, on active era change, or both",
    )
    parser.add_argument(
        "--era-poll", type=float, default=ERA_POLL_SECONDS,
        help=f"Seconds between active era checks. Default: {ERA_POLL_SECONDS}",
    )

    # Selection policy
    parser.add_argument("--max-validators", type=int, default=MAX_VALIDATORS)
    parser.add_argument(
        "--era-window", type=int, default=ERA_WINDOW,
        help="Number of past eras used for era points and slashes",
    )
    parser.add_argument(
        "--max-commission", type=str, default=MAX_COMMISSION_RATE,
        help="Commission cap in [0, 1]; 'none' disables it",
    )
    parser.add_argument("--commission-weight", type=float, default=COMMISSION_WEIGHT)
    parser.add_argument("--nomination-weight", type=float, default=NOMINATION_WEIGHT)
    parser.add_argument("--era-points-weight", type=float, default=ERA_POINTS_WEIGHT)
    parser.add_argument(
        "--no-tie-break-by-stake", action="store_true",
        help="Break score ties by account id only",
    )
    parser.add_argument(
        "--derivative-index", type=int,
        default=int(DERIVATIVE_INDEX) if _is_set(DERIVATIVE_INDEX) else None,
        help="Liquid staking derivative index (default: LiquidStaking.DerivativeIndex constant)",
    )
    parser.add_argument("--log-level", type=str, default=LOG_LEVEL)

    args = parser.parse_args(argv)

    config = {
        "relay_ws": args.relay_ws,
        "para_ws": args.para_ws,
        "seed": args.seed,
        "interactive": args.interactive,
        "tick_seconds": args.tick,
        "trigger": args.trigger,
        "era_poll_seconds": args.era_poll,
        "max_validators": args.max_validators,
        "era_window": args.era_window,
        "max_commission_rate_raw": args.max_commission,
        "commission_weight": args.commission_weight,
        "nomination_weight": args.nomination_weight,
        "era_points_weight": args.era_points_weight,
        "tie_break_by_stake": not args.no_tie_break_by_stake,
        "derivative_index": args.derivative_index,
        "log_level": args.log_level,
    }
    try:
        config["max_commission_rate"] = _optional_rate(args.max_commission)
    except ValueError:
        config["max_commission_rate"] = "invalid"
    return config


def collect_config_errors(config: Dict) -> List[str]:
    errors: List[str] = []

    for key in ("relay_ws", "para_ws"):
        url = config.get(key)
        if not _is_set(url):
            errors.append(f"{key} must be set")
        elif not str(url).startswith(("ws://", "wss://")):
            errors.append(f"{key} must start with ws:// or wss://")

    if not config.get("interactive") and not _is_set(config.get("seed")):
        errors.append("A seed is required unless --interactive is given")

    if not config.get("tick_seconds") or config["tick_seconds"] <= 0:
        errors.append("tick must be a positive number of seconds")
    if not config.get("era_poll_seconds") or config["era_poll_seconds"] <= 0:
        errors.append("era-poll must be a positive number of seconds")
    if config.get("max_validators") is None or config["max_validators"] <= 0:
        errors.append("max-validators must be a positive integer")
    if config.get("era_window") is None or config["era_window"] <= 0:
        errors.append("era-window must be a positive integer")

    for key in ("commission_weight", "nomination_weight", "era_points_weight"):
        if not math.isfinite(config.get(key, 0.0)):
            errors.append(f"{key.replace('_', '-')} must be a finite number, got {config[key]}")

    rate = config.get("max_commission_rate")
    if rate == "invalid" or (rate is not None and not 0.0 <= rate <= 1.0):
        errors.append(
            f"max-commission must be within [0, 1] or 'none', got {config.get('max_commission_rate_raw')!r}"
        )
    if config.get("derivative_index") is not None and config["derivative_index"] < 0:
        errors.append("derivative-index must not be negative")
    return errors


def validate_config(config: Dict) -> None:
    """Validate required config after assembly. Exit with code 1 if any check fails."""
    errors = collect_config_errors(config)
    if errors:
        logger.error("Config validation failed:")
        for e in errors:
            logger.error(f"  - {e}")
        sys.exit(1)


def load_keypair(config: Dict) -> Keypair:
    """Build the signing keypair from a mnemonic, hex seed or dev URI."""
    seed = getpass.getpass("Input your seed: ") if config.get("interactive") else config["seed"]
    return Keypair.create_from_uri(seed.strip())


def build_trigger_sources(config: Dict, gateway: ChainDataGateway) -> List:
    mode = config.get("trigger", "timer")
    sources: List = []
    if mode in ("timer", "both"):
        sources.append(IntervalTrigger(config["tick_seconds"]))
    if mode in ("era", "both"):
        sources.append(EraChangeTrigger(gateway, config.get("era_poll_seconds", 60.0)))
    return sources


async def run_nominator(config: Dict, keypair: Keypair) -> None:
    logger.info("=" * 80)
    logger.info(f"STARTING NOMINATE CLIENT {__version__}")
    logger.info("=" * 80)
    logger.info(f"Connecting to relaychain: {config['relay_ws']}")
    logger.info(f"Connecting to parachain: {config['para_ws']}")
    logger.info(f"Account: {keypair.ss58_address}")

    async with AsyncSubstrateInterface(config["relay_ws"]) as relay, AsyncSubstrateInterface(
        config["para_ws"]
    ) as para:
        gateway = ChainDataGateway(relay, config)
        submitter = NominationSubmitter(para, keypair, config)
        orchestrator = NominationRoundOrchestrator(gateway, submitter, config)
        sources = build_trigger_sources(config, gateway)
        logger.info(
            f"Trigger mode: {config['trigger']}, tick: {config['tick_seconds']}s, "
            f"max validators: {config['max_validators']}"
        )
        await orchestrator.serve(sources)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Nominate client entry point."""
    config = get_config(argv)
    configure_logging(config["log_level"])
    validate_config(config)
    try:
        keypair = load_keypair(config)
        asyncio.run(run_nominator(config, keypair))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received. Shutting down...")
    except ConnectivityLost as e:
        logger.critical(f"Chain connectivity lost: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Операторский CLI: административные операции над рынком.

Usage:
    python -m src.market --config market.yaml status
    python -m src.market --config market.yaml start --live 300 --lock 7200
    python -m src.market --config market.yaml lock
    python -m src.market --config market.yaml end
    python -m src.market --config market.yaml claim-treasury
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from src.core.config import load_config
from src.core.errors import MarketError
from src.core.logging_config import setup_logging

from .engine import PredictionMarket

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.market",
        description="Prediction market operator CLI",
    )
    parser.add_argument("--config", required=True, help="Path to YAML config")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show current epoch, round and treasury")

    start = sub.add_parser("start", help="Start a new round")
    start.add_argument("--live", type=int, required=True, help="Live (betting) interval, seconds")
    start.add_argument("--lock", type=int, required=True, help="Lock interval, seconds")

    sub.add_parser("lock", help="Lock the current round")
    sub.add_parser("end", help="End the current round and settle it")
    sub.add_parser("claim-treasury", help="Drain the treasury to the admin")

    return parser


def _status(market: PredictionMarket) -> dict:
    round_ = market.get_round(market.current_epoch)
    return {
        "current_epoch": market.current_epoch,
        "treasury_amount": market.treasury_amount,
        "oracle_latest_round_id": market.oracle_latest_round_id,
        "phase": market.round_phase(market.current_epoch).value if round_ else None,
        "round": round_.model_dump(mode="json") if round_ else None,
    }


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        setup_logging(level=config.log_level, log_file=config.log_file)
    except (OSError, ValueError) as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2

    admin = config.admin

    try:
        market = PredictionMarket.from_config(config)

        if args.command == "status":
            output = _status(market)
        elif args.command == "start":
            epoch = market.start_round(admin, args.live, args.lock)
            output = {"epoch": epoch}
        elif args.command == "lock":
            price = market.lock_round(admin)
            output = {"epoch": market.current_epoch, **price.model_dump()}
        elif args.command == "end":
            price = market.end_round(admin)
            output = {"epoch": market.current_epoch, **price.model_dump()}
        else:
            output = {"amount": market.claim_treasury(admin)}
    except MarketError as e:
        logger.error("%s failed: %s", args.command, e)
        print(json.dumps({"error": e.reason, "message": str(e)}))
        return 1

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())

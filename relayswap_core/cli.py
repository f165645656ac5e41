"""
Service bootstrap for RelaySwap.

Loads configuration, applies the logging section and builds an exchange
plus its relayer from the same settings.

Usage:
    relayswap-config --config relayswap.toml      # print effective settings
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict, dataclass
from typing import Optional

from relayswap_core.config import RelaySwapConfig, load_config
from relayswap_core.exchange import Exchange
from relayswap_core.logging_config import configure_from
from relayswap_core.relayer import Relayer

logger = logging.getLogger("relayswap.cli")


@dataclass
class Service:
    config: RelaySwapConfig
    exchange: Exchange
    relayer: Relayer


def build_service(path: Optional[str] = None,
                  configure_logging: bool = True) -> Service:
    """Load *path*, set up logging and wire an exchange with its relayer."""
    cfg = load_config(path)
    if configure_logging:
        configure_from(cfg.logging)
    exchange = Exchange.from_config(cfg)
    relayer = Relayer.from_config(exchange, cfg)
    logger.info(
        "RelaySwap ready: custody=%s relayer=%s invariants=%s",
        exchange.custody_account, relayer.name,
        "on" if exchange.check_invariants else "off",
    )
    return Service(config=cfg, exchange=exchange, relayer=relayer)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="relayswap-config",
        description="Load a RelaySwap configuration and print the effective settings.",
    )
    parser.add_argument("--config", default=None, help="Path to a TOML config file")
    args = parser.parse_args(argv)

    service = build_service(args.config)
    print(json.dumps(asdict(service.config), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

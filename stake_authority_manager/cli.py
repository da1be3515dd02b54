"""Command-line front end: inspect stake accounts, look up validators, change authorities."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import load_config
from .errors import ConfigurationError, NetworkError
from .models import AuthorityChangeRequest, AuthorityKind
from .orchestrator import AuthorityChangeOrchestrator
from .render import render_authority_controls, render_stake_panel, render_validator_table
from .rpc import StakeRPCClient
from .signer import KeypairSigner, console_prompt
from .snapshot import StakeAccountInspector
from .vote_accounts import ValidatorTable


LOGGER_NAME = "stake_authority_manager"
EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INDETERMINATE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stake-authority",
        description="Inspect stake accounts and reassign their staker/withdrawer authorities.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  stake-authority inspect <STAKE_ACCOUNT> --keypair ~/.config/solana/id.json
  stake-authority validators <VOTE_ADDRESS> <VOTE_ADDRESS>
  stake-authority authorize <STAKE_ACCOUNT> --kind withdrawer --new-authority <PUBKEY> --keypair id.json
        """,
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to a JSON config file (default: ./config.cfg if present)")
    parser.add_argument("--endpoint", type=str, default=None, help="RPC endpoint URL")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (default: INFO)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect_parser = subparsers.add_parser("inspect", help="Show a stake account and its authorities")
    inspect_parser.add_argument("address", help="Stake account public key")
    inspect_parser.add_argument("--keypair", type=Path, default=None, help="Keypair file of the connected wallet")

    validators_parser = subparsers.add_parser("validators", help="Look up validators by vote address")
    validators_parser.add_argument("vote_addresses", nargs="+", help="Vote account public keys")

    authorize_parser = subparsers.add_parser("authorize", help="Change the stake or withdraw authority")
    authorize_parser.add_argument("address", help="Stake account public key")
    authorize_parser.add_argument("--kind", choices=[kind.value for kind in AuthorityKind], required=True)
    authorize_parser.add_argument("--new-authority", required=True, help="Wallet public key to install")
    authorize_parser.add_argument("--keypair", type=Path, required=True, help="Keypair file of the current authority")
    authorize_parser.add_argument("--yes", action="store_true", help="Sign without asking for approval")

    return parser


def make_client(config: Dict[str, Any]) -> StakeRPCClient:
    return StakeRPCClient(
        config["rpc_endpoint"],
        timeout=config["request_timeout_seconds"],
        max_retries=config["rpc_max_retries"],
    )


async def run_inspect(args: argparse.Namespace, config: Dict[str, Any], logger: logging.Logger) -> int:
    identity: Optional[str] = None
    if args.keypair is not None:
        identity = KeypairSigner.from_file(args.keypair).public_key

    async with make_client(config) as client:
        inspector = StakeAccountInspector(client, config["commitment"])
        snapshot = await inspector.refresh(args.address)

    if snapshot is None:
        logger.warning("Stake account not found: %s", args.address.strip())
        return EXIT_FAILED
    print(render_stake_panel(snapshot, config["token_symbol"]))
    if identity is not None:
        print(render_authority_controls(snapshot, identity))
    return EXIT_OK


async def run_validators(args: argparse.Namespace, config: Dict[str, Any], logger: logging.Logger) -> int:
    async with make_client(config) as client:
        table = ValidatorTable(client, config["token_symbol"])
        for vote_address in args.vote_addresses:
            await table.add(vote_address)

    if not table.rows:
        logger.warning("No validator addresses to display")
        return EXIT_FAILED
    print(render_validator_table(table.rows))
    return EXIT_OK


async def run_authorize(args: argparse.Namespace, config: Dict[str, Any], logger: logging.Logger) -> int:
    signer = KeypairSigner.from_file(args.keypair, prompt=None if args.yes else console_prompt)
    address = args.address.strip()

    async with make_client(config) as client:
        inspector = StakeAccountInspector(client, config["commitment"])
        snapshot = await inspector.refresh(address)
        if snapshot is None:
            logger.warning("Stake account not found: %s", address)
            return EXIT_FAILED
        print(render_stake_panel(snapshot, config["token_symbol"]))

        request = AuthorityChangeRequest(
            kind=AuthorityKind(args.kind),
            target_account=address,
            current_authority_signer=signer.public_key,
            proposed_authority=args.new_authority.strip(),
        )
        orchestrator = AuthorityChangeOrchestrator(client, inspector, config)
        outcome = await orchestrator.change_authority(request, signer)

    if outcome.is_success:
        logger.info("%s", outcome.message)
        print(render_stake_panel(inspector.snapshot, config["token_symbol"]))
        return EXIT_OK
    if outcome.indeterminate:
        logger.warning("%s", outcome.message)
        return EXIT_INDETERMINATE
    logger.error("%s", outcome.message)
    return EXIT_FAILED


COMMANDS = {
    "inspect": run_inspect,
    "validators": run_validators,
    "authorize": run_authorize,
}


async def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config, {"rpc_endpoint": args.endpoint, "log_level": args.log_level})

    logging.basicConfig(
        level=getattr(logging, config["log_level"], logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger = logging.getLogger(LOGGER_NAME)
    logger.info("Using RPC endpoint %s", config["rpc_endpoint"])

    return await COMMANDS[args.command](args, config, logger)


def main(argv: Optional[List[str]] = None) -> None:
    try:
        exit_code = asyncio.run(run(argv))
    except (ConfigurationError, NetworkError) as exc:
        logging.getLogger(LOGGER_NAME).error("Fatal error: %s", exc)
        raise SystemExit(EXIT_FAILED) from exc
    except KeyboardInterrupt:
        logging.getLogger(LOGGER_NAME).warning("Execution interrupted by user")
        raise SystemExit(130) from None
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()

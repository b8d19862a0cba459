"""CLI and main logic."""

import argparse
import logging
import os
import sys
from pathlib import Path

from staking_vault.console import (
    print_contract_addresses,
    print_rate_change,
    print_slashing_history,
    print_vault_report,
)
from staking_vault.errors import VaultError
from staking_vault.parsing import load_scenario, parse_amount, parse_scenario
from staking_vault.reports import account_snapshot, compute_summary, known_stakers, summarize_onchain
from staking_vault.scenario import run_scenario
from staking_vault.validation import validate_onchain_state, validate_vault_invariants

# Internal defaults (not exposed as CLI flags)
DEFAULT_TIMEOUT = 30
WHAT_IF_DESTINATION = "what-if-destination"


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(description="Slashable staking vault: scenario replay and on-chain inspection.")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging on stderr.")
    sub = p.add_subparsers(dest="command", required=True)

    sim = sub.add_parser("simulate", help="Replay a JSON scenario against an in-memory vault.")
    sim.add_argument("scenario", type=Path, help="Path to the scenario JSON file.")
    sim.add_argument("--no-progress", action="store_true", help="Hide the progress bar.")

    ins = sub.add_parser("inspect", help="Read a deployed staked token over JSON-RPC.")
    ins.add_argument("--address", required=True, help="Staked token contract address.")
    ins.add_argument(
        "--rpc-url",
        default=None,
        help="Execution-layer RPC URL. Required if ETH_RPC_URL environment variable is not set.",
    )
    ins.add_argument("--staker", action="append", default=[], help="Staker address to include (repeatable).")
    ins.add_argument("--block", type=int, default=None, help="Block number to read at. Default: latest.")
    ins.add_argument(
        "--what-if-slash",
        default=None,
        help="Preview slashing this many base units (e.g. 1000e18) against the snapshot.",
    )
    ins.add_argument("--history", action="store_true", help="Scan slashing lifecycle logs.")
    ins.add_argument("--from-block", type=int, default=0, help="First block of the --history scan.")
    ins.add_argument(
        "--no-cache",
        action="store_true",
        help="Disable caching for this run (fetch all data fresh from network).",
    )
    return p.parse_args(argv)


def run_simulate(args: argparse.Namespace) -> int:
    try:
        scenario = parse_scenario(load_scenario(args.scenario.read_bytes()))
    except (OSError, ValueError) as ex:
        print(f"Error: cannot load scenario {args.scenario}: {ex}", file=sys.stderr)
        return 2

    run = run_scenario(scenario, progress=not args.no_progress)
    vault = run.vault

    accounts = [account_snapshot(vault, s) for s in known_stakers(vault)]
    summary = compute_summary(vault, accounts)
    print_vault_report(summary, accounts, title="SIMULATED VAULT", symbol=scenario.asset_symbol)

    issues = validate_vault_invariants(vault, accounts, warn_only=True)
    if issues:
        print("⚠️  Invariant warnings:", file=sys.stderr)
        for issue in issues:
            print(f"   {issue}", file=sys.stderr)

    failures = run.failures
    print(f"🎬 {len(run.outcomes)} steps replayed, {len(failures)} unexpected outcome(s), {len(vault.events)} events")
    for o in failures:
        expected = o.step.expect_error or "success"
        print(f"   ❌ step {o.step.index} ({o.step.op}): got {o.error or 'success'}, expected {expected}")
    return 1 if failures or issues else 0


def run_inspect(args: argparse.Namespace) -> int:
    try:
        from web3 import Web3
    except ImportError as ex:  # pragma: no cover
        print("Missing dependency. Run: pip install -e .", file=sys.stderr)
        raise SystemExit(2) from ex

    from staking_vault.contracts import erc20_contract, resolve_staked_token, staked_token_contract
    from staking_vault.onchain import fetch_vault_state, slash_admin_of, vault_from_onchain

    rpc_url = args.rpc_url or os.getenv("ETH_RPC_URL")
    if not rpc_url:
        print(
            "Error: RPC URL is required. Provide --rpc-url or set ETH_RPC_URL environment variable.",
            file=sys.stderr,
        )
        return 2

    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": DEFAULT_TIMEOUT}))
    if not w3.is_connected():
        print(f"Error: failed to connect to RPC at {rpc_url}", file=sys.stderr)
        return 2

    use_cache = not args.no_cache
    block_identifier = args.block if args.block is not None else "latest"
    try:
        contracts = resolve_staked_token(w3, args.address, block_identifier=block_identifier)
        print(f"ℹ️ Resolved staked token ({args.address[:10]}...)", file=sys.stderr)
    except Exception as ex:  # pylint: disable=broad-exception-caught
        print(f"Error: failed to resolve staked token at {args.address}: {ex}", file=sys.stderr)
        return 2

    token = staked_token_contract(w3, contracts.staked_token)
    underlying = erc20_contract(w3, contracts.underlying)
    try:
        symbol = underlying.functions.symbol().call()
    except Exception:  # pylint: disable=broad-exception-caught
        symbol = ""

    state = fetch_vault_state(
        w3, token, underlying, args.staker, block_identifier=block_identifier, use_cache=use_cache
    )
    for issue in validate_onchain_state(state, warn_only=True):
        print(f"⚠️  {issue}", file=sys.stderr)

    summary, accounts = summarize_onchain(state)
    print_vault_report(summary, accounts, title=f"STAKED TOKEN {state.address} @ block {state.block_number}", symbol=symbol)
    print_contract_addresses(contracts, state.admins)

    if args.what_if_slash is not None:
        vault, _ = vault_from_onchain(state, symbol=symbol)
        admin = slash_admin_of(state)
        if admin is None:
            print("Error: slashing admin unknown; cannot preview a slash.", file=sys.stderr)
            return 2
        before = compute_summary(vault, [])
        try:
            slashed = vault.slash(admin, WHAT_IF_DESTINATION, parse_amount(args.what_if_slash))
        except (VaultError, ValueError) as ex:
            print(f"Error: slash preview rejected: {ex}", file=sys.stderr)
            return 2
        after = compute_summary(vault, [])
        print_rate_change(before, after, symbol=symbol)
        print(f"   ✂️  Actually slashed (after cap): {slashed}")

    if args.history:
        records = collect_history(w3, state.address, args.from_block, state.block_number, use_cache=use_cache)
        print_slashing_history(records, symbol=symbol)

    return 0


def collect_history(w3, address: str, from_block: int, to_block: int, *, use_cache: bool):
    from staking_vault.blockchain import collect_slashing_history

    return collect_slashing_history(w3, address, from_block=from_block, to_block=to_block, use_cache=use_cache)


def main(argv: list[str]) -> int:
    """Main entry point."""
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "simulate":
        return run_simulate(args)
    return run_inspect(args)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))

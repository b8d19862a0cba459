"""Slashing-lifecycle log scanning with caching."""

import sys
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from tqdm import tqdm

from staking_vault.cache import cached
from staking_vault.constants import (
    DEFAULT_LOG_CHUNK_SIZE,
    FUNDS_RETURNED_EVENT_SIGNATURE,
    SLASHED_EVENT_SIGNATURE,
    SLASHING_SETTLED_EVENT_SIGNATURE,
)
from staking_vault.formatters import as_int, normalize_hex_str
from staking_vault.models import SlashingRecord

if TYPE_CHECKING:
    from web3 import Web3  # pragma: no cover


def topic0(signature: str) -> str:
    """Compute topic0 (event signature hash) for an event signature."""
    from web3 import Web3  # pylint: disable=import-outside-toplevel

    return normalize_hex_str(Web3.keccak(text=signature))


def iter_block_ranges(start: int, end: int, chunk_size: int) -> Iterable[tuple[int, int]]:
    """Iterate over block ranges in chunks."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")
    cur = start
    while cur <= end:
        yield cur, min(end, cur + chunk_size - 1)
        cur += chunk_size


def get_logs(w3: "Web3", filter_params: dict[str, Any], *, use_cache: bool = True) -> list[dict[str, Any]]:
    """eth_getLogs over a closed block range; closed ranges never change, so they are cached."""

    def fetch() -> list[dict[str, Any]]:
        response = w3.provider.make_request("eth_getLogs", [filter_params])
        if "error" in response:
            raise RuntimeError(f"RPC error: {response['error']}")
        return response.get("result", [])

    return cached(
        "logs",
        (
            filter_params.get("address", ""),
            filter_params.get("fromBlock", ""),
            filter_params.get("toBlock", ""),
            str(filter_params.get("topics", [])),
        ),
        fetch,
        use_cache=use_cache,
    )


def decode_slashing_log(log: dict[str, Any], topics_by_kind: dict[str, str]) -> SlashingRecord | None:
    topics = [normalize_hex_str(t).lower() for t in log.get("topics", [])]
    if not topics:
        return None
    kind = next((k for k, t in topics_by_kind.items() if t.lower() == topics[0]), None)
    if kind is None:
        return None
    data = normalize_hex_str(log.get("data", "0x"))
    amount = as_int(data) if len(data) > 2 else 0
    destination = None
    if kind == "slashed" and len(topics) > 1:
        destination = "0x" + topics[1][-40:]
    return SlashingRecord(
        kind=kind,
        block_number=as_int(log.get("blockNumber")),
        tx_hash=normalize_hex_str(log.get("transactionHash", "")),
        amount=amount,
        destination=destination,
    )


def collect_slashing_history(
    w3: "Web3",
    address: str,
    *,
    from_block: int,
    to_block: int,
    chunk_size: int = DEFAULT_LOG_CHUNK_SIZE,
    use_cache: bool = True,
) -> list[SlashingRecord]:
    """Scan Slashed / FundsReturned / SlashingSettled logs of `address`, oldest first."""
    topics_by_kind = {
        "slashed": topic0(SLASHED_EVENT_SIGNATURE),
        "funds_returned": topic0(FUNDS_RETURNED_EVENT_SIGNATURE),
        "settled": topic0(SLASHING_SETTLED_EVENT_SIGNATURE),
    }
    ranges = list(iter_block_ranges(from_block, to_block, chunk_size))
    records: list[SlashingRecord] = []
    with tqdm(ranges, desc="🔎 Scanning slashing logs", unit="chunk", file=sys.stderr) as pbar:
        for start, end in pbar:
            pbar.set_postfix(block=end)
            logs = get_logs(
                w3,
                {
                    "address": address,
                    "fromBlock": hex(start),
                    "toBlock": hex(end),
                    # One topic position matching any of the three signatures.
                    "topics": [list(topics_by_kind.values())],
                },
                use_cache=use_cache,
            )
            for log in logs:
                record = decode_slashing_log(log, topics_by_kind)
                if record is not None:
                    records.append(record)
    records.sort(key=lambda r: r.block_number)
    return records

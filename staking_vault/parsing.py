"""Scenario and on-chain value parsing."""

import json
from typing import Any

from staking_vault.constants import (
    DEFAULT_COOLDOWN_SECONDS,
    DEFAULT_MAX_SLASHABLE_PERCENTAGE,
    DEFAULT_UNSTAKE_WINDOW,
    MAX_UINT256,
    ZERO_ADDRESS,
)
from staking_vault.formatters import as_int
from staking_vault.models import Scenario, ScenarioStep, VaultConfig

KNOWN_OPS = {
    "advance",
    "fund",
    "stake",
    "redeem",
    "transfer",
    "cooldown",
    "claim",
    "claim_and_stake",
    "claim_and_redeem",
    "slash",
    "return_funds",
    "settle",
    "set_max_slashable",
    "set_cooldown_seconds",
}

# Step keys that hold token amounts rather than addresses or durations.
AMOUNT_KEYS = ("amount", "claim_amount", "redeem_amount")

ROLE_KEYS = ("slashing_admin", "cooldown_admin", "claim_helper")


def parse_amount(value: Any) -> int:
    """Parse a token amount; the string "max" claims or redeems everything."""
    if isinstance(value, str) and value.strip().lower() == "max":
        return MAX_UINT256
    amount = as_int(value)
    if amount < 0:
        raise ValueError(f"amount must be >= 0, got {value!r}")
    return amount


def load_scenario(raw_bytes: bytes) -> dict[str, Any]:
    """Parse scenario JSON from raw bytes."""
    data = json.loads(raw_bytes.decode("utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Unexpected scenario format (expected JSON object)")
    return data


def parse_step(index: int, entry: dict[str, Any]) -> ScenarioStep:
    if not isinstance(entry, dict):
        raise ValueError(f"step {index}: expected an object, got {type(entry).__name__}")
    op = str(entry.get("op", "")).strip()
    if op not in KNOWN_OPS:
        raise ValueError(f"step {index}: unknown op {op!r}")
    caller = entry.get("caller")
    args: dict[str, object] = {}
    for key, value in entry.items():
        if key in ("op", "caller", "expect_error"):
            continue
        if key in AMOUNT_KEYS:
            args[key] = parse_amount(value)
        elif key in ("seconds", "percentage"):
            args[key] = as_int(value)
        else:
            args[key] = str(value)
    if op not in ("advance", "fund") and caller is None:
        raise ValueError(f"step {index} ({op}): caller is required")
    if op == "advance" and "seconds" not in args:
        raise ValueError(f"step {index}: advance needs 'seconds'")
    expect_error = entry.get("expect_error")
    return ScenarioStep(
        index=index,
        op=op,
        caller=None if caller is None else str(caller),
        args=args,
        expect_error=None if expect_error is None else str(expect_error),
    )


def parse_scenario(data: dict[str, Any]) -> Scenario:
    """
    Parse a scenario document into a Scenario.

    Addresses are opaque labels; amounts accept ints, decimal strings, hex strings and "1e18" notation.
    """
    cfg = data.get("config") or {}
    vault_address = str(cfg.get("address", "vault"))
    config = VaultConfig(
        address=vault_address,
        rewards_vault=str(cfg.get("rewards_vault", ZERO_ADDRESS)),
        cooldown_seconds=as_int(cfg.get("cooldown_seconds"), default=DEFAULT_COOLDOWN_SECONDS),
        unstake_window=as_int(cfg.get("unstake_window"), default=DEFAULT_UNSTAKE_WINDOW),
        max_slashable_percentage=as_int(
            cfg.get("max_slashable_percentage"), default=DEFAULT_MAX_SLASHABLE_PERCENTAGE
        ),
    )

    token = data.get("token") or {}
    asset_address = str(token.get("address", "token"))
    reward_token_address = str(data.get("reward_token", asset_address))

    roles_raw = data.get("roles") or {}
    unknown_roles = set(roles_raw) - set(ROLE_KEYS)
    if unknown_roles:
        raise ValueError(f"unknown roles: {sorted(unknown_roles)}")

    steps = [parse_step(i, entry) for i, entry in enumerate(data.get("steps", []) or [])]

    return Scenario(
        start_time=as_int(data.get("start_time"), default=1_700_000_000),
        config=config,
        asset_address=asset_address,
        asset_symbol=str(token.get("symbol", "TKN")),
        reward_token_address=reward_token_address,
        emission_per_second=parse_amount(data.get("emission_per_second", 0)),
        roles={k: str(v) for k, v in roles_raw.items()},
        balances={str(k): parse_amount(v) for k, v in (data.get("balances") or {}).items()},
        steps=steps,
        reward_balances={str(k): parse_amount(v) for k, v in (data.get("reward_balances") or {}).items()},
    )


def parse_cooldown_value(value: Any) -> int:
    """Cooldown reads return a bare timestamp or a (timestamp, amount) snapshot struct."""
    if isinstance(value, (list, tuple)):
        return as_int(value[0]) if value else 0
    return as_int(value)

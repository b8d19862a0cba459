"""Console output formatting."""

from staking_vault.formatters import (
    cooldown_badge,
    delta_indicator,
    format_amount,
    format_bp,
    format_duration,
    format_rate,
    format_timestamp,
)
from staking_vault.models import AccountSnapshot, SlashingRecord, StakedTokenContracts, VaultSummary


def print_vault_report(
    summary: VaultSummary,
    accounts: list[AccountSnapshot],
    *,
    title: str = "STAKING VAULT REPORT",
    symbol: str = "",
) -> None:
    """Print vault totals followed by one block per staker."""
    print("=" * 70)
    print(f"🏦 {title}")
    print(f"   🕐 {format_timestamp(summary.timestamp)}")
    print("=" * 70)

    slash_flag = "🟠 Post-slashing period (awaiting settlement)" if summary.in_post_slashing_period else "🟢 Normal"
    print(f"   Status: {slash_flag}")
    print(f"   💱 Exchange rate:      {format_rate(summary.exchange_rate)} shares per asset")
    print(f"   📊 Total shares:       {format_amount(summary.total_shares)}")
    print(f"   💰 Backing assets:     {format_amount(summary.total_assets, symbol=symbol)}")
    print(f"   🏦 Vault balance:      {format_amount(summary.vault_asset_balance, symbol=symbol)}")
    surplus = summary.vault_asset_balance - summary.total_assets
    print(f"      • Rounding surplus: {format_amount(surplus, decimals=18, symbol=symbol)}")
    print(f"   ⏳ Cooldown:           {format_duration(summary.cooldown_seconds)}")
    print(f"   🪟 Unstake window:     {format_duration(summary.unstake_window)}")
    print(
        f"   ✂️  Max slashable:      {format_bp(summary.max_slashable_percentage)} "
        f"(~{format_amount(summary.max_slashable_assets, symbol=symbol)})"
    )
    print(f"   🎁 Unclaimed rewards:  {format_amount(summary.unclaimed_rewards)}")
    print(
        f"   👥 Stakers: {summary.stakers_total}  •  idle {summary.stakers_idle}  •  cooling {summary.stakers_cooling}"
        f"  •  redeemable {summary.stakers_redeemable}  •  expired {summary.stakers_expired}"
    )

    for a in accounts:
        emoji, label = cooldown_badge(a.cooldown_status)
        print(f"\n{emoji} Staker: {a.staker}")
        print("   " + "─" * 50)
        print(f"   Shares: {format_amount(a.shares)}  (redeems for ~{format_amount(a.redeemable_assets, symbol=symbol)})")
        print(f"   Cooldown: {label}  •  started {format_timestamp(a.cooldown_timestamp)}")
        if a.unclaimed_rewards:
            print(f"   Rewards to claim: {format_amount(a.unclaimed_rewards)}")
    print("")


def print_rate_change(before: VaultSummary, after: VaultSummary, *, symbol: str = "") -> None:
    """Print the effect of a what-if operation on the vault totals."""
    print("\n" + "=" * 70)
    print("🔮 WHAT-IF")
    print("=" * 70)
    ind = delta_indicator(before.total_assets, after.total_assets)
    print(
        f"   {ind} Backing assets: {format_amount(before.total_assets, symbol=symbol)} → "
        f"{format_amount(after.total_assets, symbol=symbol)}"
    )
    ind = delta_indicator(before.exchange_rate, after.exchange_rate)
    print(f"   {ind} Exchange rate:  {format_rate(before.exchange_rate)} → {format_rate(after.exchange_rate)}")
    if after.in_post_slashing_period and not before.in_post_slashing_period:
        print("   ⚠️  Vault enters the post-slashing period: cooldown checks are lifted until settlement")
    print("")


def print_slashing_history(records: list[SlashingRecord], *, symbol: str = "") -> None:
    print("\n🪓 Slashing history (oldest first):")
    print("─" * 70)
    if not records:
        print("   No slashing events found in the scanned range.")
        return
    for r in records:
        if r.kind == "slashed":
            print(f"   #{r.block_number}  ✂️  slashed {format_amount(r.amount, symbol=symbol)} → {r.destination}")
        elif r.kind == "funds_returned":
            print(f"   #{r.block_number}  💸 funds returned {format_amount(r.amount, symbol=symbol)}")
        else:
            print(f"   #{r.block_number}  ✅ slashing settled")
        print(f"      tx: {r.tx_hash}")
    print("")


def print_contract_addresses(contracts: StakedTokenContracts, admins: dict[str, str]) -> None:
    """Print the addresses resolved from the staked token and its role holders."""
    print("🔗 Contracts:")
    print(f"   • Staked token:   {contracts.staked_token}")
    print(f"   • Underlying:     {contracts.underlying}")
    print(f"   • Reward token:   {contracts.reward_token}")
    print(f"   • Rewards vault:  {contracts.rewards_vault}")
    print("👮 Role holders:")
    for label, holder in admins.items():
        print(f"   • {label}: {holder}")
    print("")

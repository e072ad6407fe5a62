"""Pure conversions from quota units to money and percentages."""

import math
from datetime import datetime, timezone

from newapi_stats.stats.models import NewAPIConfig, Stats, UsageAggregate


def round_cents(amount: float) -> float:
    """Round half-up to two decimals."""
    return math.floor(amount * 100 + 0.5) / 100


def tokens_to_usd(tokens: float, conversion_factor: float) -> float:
    return round_cents(tokens / conversion_factor)


def tokens_to_cny(tokens: float, conversion_factor: float, exchange_rate: float) -> float:
    # USD stays unrounded until after the exchange rate is applied
    usd = tokens / conversion_factor
    return round_cents(usd * exchange_rate)


def usage_percentage(consumed: float, total: float) -> float:
    if total <= 0:
        return 0.0
    return min(100.0, max(0.0, consumed / total * 100))


def remaining_percentage(balance: float, total: float) -> float:
    if total <= 0:
        return 0.0
    return min(100.0, max(0.0, balance / total * 100))


def derive_stats(
    balance: int,
    today: UsageAggregate,
    total: UsageAggregate,
    config: NewAPIConfig,
    now: datetime | None = None,
) -> Stats:
    factor = config.conversion_factor
    rate = config.exchange_rate

    balance_usd = tokens_to_usd(balance, factor)
    today_usd = tokens_to_usd(today.consumption, factor)
    total_usd = tokens_to_usd(total.consumption, factor)

    balance_cny = tokens_to_cny(balance, factor, rate)
    today_cny = tokens_to_cny(today.consumption, factor, rate)
    total_cny = tokens_to_cny(total.consumption, factor, rate)

    lifetime = balance + total.consumption

    return Stats(
        balance=balance,
        today_consumption=today.consumption,
        total_consumption=total.consumption,
        today_requests=today.requests,
        total_requests=total.requests,
        today_prompt_tokens=today.prompt_tokens,
        today_completion_tokens=today.completion_tokens,
        total_prompt_tokens=total.prompt_tokens,
        total_completion_tokens=total.completion_tokens,
        balance_usd=balance_usd,
        today_consumption_usd=today_usd,
        total_consumption_usd=total_usd,
        total_amount_usd=balance_usd + total_usd,
        balance_cny=balance_cny,
        today_consumption_cny=today_cny,
        total_consumption_cny=total_cny,
        total_amount_cny=balance_cny + total_cny,
        usage_percentage=usage_percentage(total.consumption, lifetime),
        remaining_percentage=remaining_percentage(balance, lifetime),
        # Denominator is what is left, not the lifetime amount
        today_usage_percentage=usage_percentage(today.consumption, balance),
        last_updated=now or datetime.now(timezone.utc),
    )

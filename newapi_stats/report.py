"""
Human-readable renderings of a Stats snapshot for status lines, dashboards and chat.
"""

import json
import math

from newapi_stats.stats.models import Stats

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CNY": "¥",
}

REPORT_FORMATS = ("text", "markdown", "json")

WARNING_THRESHOLD = 75.0
CRITICAL_THRESHOLD = 90.0


def fmt_money(amount: float, currency: str = "USD") -> str:
    return f"{CURRENCY_SYMBOLS.get(currency, '')}{amount:.2f}"


def fmt_count(value: int) -> str:
    return f"{value:,}"


def progress_bar(percentage: float, width: int = 10) -> str:
    filled = max(0, min(width, math.floor(percentage / 100 * width + 0.5)))
    return "█" * filled + "░" * (width - filled)


def usage_level(percentage: float) -> str:
    if percentage > CRITICAL_THRESHOLD:
        return "critical"
    if percentage > WARNING_THRESHOLD:
        return "warning"
    return "ok"


def render_status_line(stats: Stats) -> str:
    """Compact one-liner, e.g. `$2.00 | 66.7% | 14:05`."""
    updated = stats.last_updated.astimezone().strftime("%H:%M")
    return f"{fmt_money(stats.balance_usd)} | {stats.usage_percentage:.1f}% | {updated}"


def render_report(stats: Stats, fmt: str = "text") -> str:
    if fmt not in REPORT_FORMATS:
        raise ValueError(f"Unknown format: {fmt}. Use one of: {', '.join(REPORT_FORMATS)}")

    if fmt == "json":
        return json.dumps(stats.model_dump(mode="json"), indent=2)

    updated = stats.last_updated.astimezone().strftime("%Y-%m-%d %H:%M:%S")
    rows = [
        ("Balance", f"{fmt_money(stats.balance_usd)} / {fmt_money(stats.balance_cny, 'CNY')} "
                    f"({fmt_count(stats.balance)} tokens)"),
        ("Today", f"{fmt_money(stats.today_consumption_usd)} / {fmt_money(stats.today_consumption_cny, 'CNY')} "
                  f"({fmt_count(stats.today_consumption)} tokens, {stats.today_usage_percentage:.1f}% of balance)"),
        ("Total spent", f"{fmt_money(stats.total_consumption_usd)} / {fmt_money(stats.total_consumption_cny, 'CNY')} "
                        f"({fmt_count(stats.total_consumption)} tokens)"),
        ("Total amount", f"{fmt_money(stats.total_amount_usd)} / {fmt_money(stats.total_amount_cny, 'CNY')} "
                         f"(balance + spent)"),
        ("Usage", f"{stats.usage_percentage:.1f}% {progress_bar(stats.usage_percentage)} "
                  f"[{usage_level(stats.usage_percentage)}]"),
        ("Requests", f"{fmt_count(stats.today_requests)} today, {fmt_count(stats.total_requests)} total"),
        ("Today tokens", f"prompt {fmt_count(stats.today_prompt_tokens)} | "
                         f"completion {fmt_count(stats.today_completion_tokens)}"),
        ("Updated", updated),
    ]

    if fmt == "markdown":
        lines = ["# New API Usage", ""]
        lines.extend(f"- **{label}:** {value}" for label, value in rows)
        return "\n".join(lines)

    lines = ["=== New API Usage ==="]
    lines.extend(f"{label}: {value}" for label, value in rows)
    return "\n".join(lines)

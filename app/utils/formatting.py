"""
Telegram (Markdown) message texts for the budget bot.
Amounts are rounded to 2 decimal places here and nowhere else.
"""
from decimal import Decimal
from typing import Iterable

from app.models.summary import DailySummary, MonthlySummary

UNKNOWN_COMMAND = "Unknown command. Available commands: /add, /today, /month"
USAGE_HINT = (
    "Use /add to record an expense 💸, /today for today's summary 📅, "
    "or /month for this month's summary 🗓️."
)
CHOOSE_CATEGORY = "Choose a category:"
CHOOSE_CATEGORY_AGAIN = "Please tap one of the category buttons:"
INVALID_AMOUNT = "Please enter a valid number (e.g. `12.50` or `-5`)."
GENERIC_FAILURE = "Sorry, something went wrong. Please try again in a moment."


def money(value: Decimal) -> str:
    return f"{Decimal(value):.2f}"


def start_message(timezone: str) -> str:
    return "\n".join([
        "Hi! I'm your very own budgetbot. 🤖",
        "",
        "*Commands:*",
        "• /add - Add a new expense 💸",
        "• /today - See today's spending vs daily budget 📅",
        "• /month - See this month's spending vs budget 🗓️",
        "",
        f"Daily budgets use *{timezone}* time and have different limits",
        "for weekdays and weekends. The *Other* category has no budget cap.",
    ])


def amount_prompt(category: str) -> str:
    return f"You chose *{category}*.\n\nPlease enter the amount (e.g. `12.50` or `-5` for refund)."


def recorded_message(category: str, amount: Decimal) -> str:
    return (
        f"Recorded *{money(amount)}* in category *{category}*.\n"
        "Use /today or /month to see your spending."
    )


def daily_summary_message(summary: DailySummary, daily_categories: Iterable[str]) -> str:
    breakdown = [
        f"- {name}: {money(summary.by_category[name])}"
        for name in daily_categories
        if name in summary.by_category
    ]
    return "\n".join([
        f"📅 *Today's Daily Budget ({summary.timezone})*",
        f"🗓️ *Date:* `{summary.date}`",
        "",
        "💵 *Daily Summary*",
        f"• Budget: {money(summary.budget_daily)}",
        f"• Spent: {money(summary.spent_daily)}",
        f"• *Remaining:* {money(summary.remaining_daily)}",
        "",
        "🧾 *Breakdown (Daily Categories)*",
        "\n".join(breakdown) if breakdown else "_No daily spending yet._",
    ])


def monthly_summary_message(summary: MonthlySummary) -> str:
    lines_monthly = []
    for name, budget in summary.fixed_monthly_budgets.items():
        spent = summary.spent_monthly_by_category.get(name, Decimal("0"))
        if budget > 0:
            lines_monthly.append(f"• {name}: {money(spent)} / {money(budget)}")
        else:
            lines_monthly.append(f"• {name}: {money(spent)}")

    fixed_total = sum(summary.fixed_monthly_budgets.values(), Decimal("0"))
    return "\n".join([
        f"📊 *Monthly Summary ({summary.timezone})*",
        f"🗓️ *Period:* `{summary.year:04d}-{summary.month:02d}`",
        "",
        "🍽️ *Daily Spending Bucket*",
        f"• Weekdays: {summary.weekdays} x {money(summary.weekday_daily_budget)}",
        f"• Weekends: {summary.weekends} x {money(summary.weekend_daily_budget)}",
        f"→ *Monthly daily budget:* {money(summary.monthly_daily_budget)}",
        f"→ *Spent (daily categories):* {money(summary.spent_daily)}",
        "",
        "📦 *Monthly Categories*",
        f"→ *Total budget:* {money(fixed_total)}",
        f"→ *Spent (monthly categories):* {money(summary.spent_monthly)}",
        "\n".join(lines_monthly) if lines_monthly else "_No fixed monthly spending yet._",
        "",
        "🎁 *Other (Uncapped)*",
        f"→ Spent in Other categories: {money(summary.spent_other)}",
        "",
        "✅ *Overall (Tracked vs Capped Budget)*",
        f"• Total budget: {money(summary.total_budget_tracked)}",
        f"• Total spent: {money(summary.total_spent_tracked)}",
        f"• *Remaining:* {money(summary.remaining_tracked)}",
    ])

"""Human-readable definitions of insight types and their trigger rules."""

from insights import (
    CATEGORY_GROWTH_ALERT_PCT,
    GENERAL_SAVINGS_RATE,
    NIGHT_CHANGE_ALERT_PCT,
    NIGHT_CHANGE_INFO_PCT,
    SAVINGS_POTENTIAL_RATE,
    SAVINGS_POTENTIAL_SHARE,
    TOP_CATEGORY_ACTION_SHARE,
)

INSIGHT_GUIDE = [
    {
        "Insight": "Top category",
        "Type": "basic",
        "Rule": "Largest expense category this month and its share of total spending.",
        "Formula": "round(topAmount / monthTotal * 100), delta vs last month's share",
    },
    {
        "Insight": "Category cut target",
        "Type": "action",
        "Rule": f"Suggest a 5-10% cut when the top category reaches {TOP_CATEGORY_ACTION_SHARE}% of spending.",
        "Formula": f"share >= {TOP_CATEGORY_ACTION_SHARE}",
    },
    {
        "Insight": "Night spending",
        "Type": "basic",
        "Rule": "Spending between 21:00 and 06:00 compared with last month.",
        "Formula": f"|round((cur - prev) / prev * 100)| >= {NIGHT_CHANGE_INFO_PCT}",
    },
    {
        "Insight": "Run-rate forecast",
        "Type": "forecast",
        "Rule": "Month-to-date spending per day projected over the whole month.",
        "Formula": "round(spentSoFar / daysElapsed * daysInMonth)",
    },
    {
        "Insight": "Monthly trend",
        "Type": "trend",
        "Rule": "Total spending this month against last month.",
        "Formula": "round((cur - prev) / prev * 100)",
    },
    {
        "Insight": "Category growth",
        "Type": "alert",
        "Rule": "Fastest-growing category this month.",
        "Formula": f"pct >= {CATEGORY_GROWTH_ALERT_PCT}; 100% when the category is new",
    },
    {
        "Insight": "Night spending spike",
        "Type": "alert",
        "Rule": "Strong change in night spending while night spending continues.",
        "Formula": f"|change| >= {NIGHT_CHANGE_ALERT_PCT} and cur > 0",
    },
    {
        "Insight": "Wallet focus",
        "Type": "focus",
        "Rule": "Wallet with the highest spending this month.",
        "Formula": "max(sum(expense) by wallet)",
    },
    {
        "Insight": "Savings potential",
        "Type": "action",
        "Rule": f"Cut {SAVINGS_POTENTIAL_RATE:.0%} of the top category when it reaches {SAVINGS_POTENTIAL_SHARE}% of spending.",
        "Formula": f"round(topAmount * {SAVINGS_POTENTIAL_RATE})",
    },
    {
        "Insight": "General savings target",
        "Type": "action",
        "Rule": f"Trim {GENERAL_SAVINGS_RATE:.0%} off the forecast when last month has spending.",
        "Formula": f"round(forecast * {GENERAL_SAVINGS_RATE})",
    },
]

"""
Fixed vocabularies for expenses, income, budgets and goals (Ghana locale).
"""

EXPENSE_CATEGORIES = (
    "Food / Chop Bar",
    "Transport (Trotro / Bolt)",
    "Data / Airtime",
    "Rent / Hostel",
    "Utilities",
    "Church / Donations",
    "Betting / Gaming",
    "Entertainment",
    "Shopping",
    "Miscellaneous",
)

PAYMENT_METHODS = (
    "Cash",
    "MTN MoMo",
    "Telecel Cash",
    "Bank Transfer",
    "AirtelTigo Money",
)

INCOME_SOURCES = (
    "Allowance",
    "Salary",
    "Business",
    "Gift",
    "Hustle",
    "Investment",
    "Other",
)

BUDGET_PERIOD_WEEKLY = "weekly"
BUDGET_PERIOD_MONTHLY = "monthly"
BUDGET_PERIODS = (BUDGET_PERIOD_WEEKLY, BUDGET_PERIOD_MONTHLY)

GOAL_ACTIVE = "active"
GOAL_COMPLETED = "completed"
GOAL_ABANDONED = "abandoned"
GOAL_STATUSES = (GOAL_ACTIVE, GOAL_COMPLETED, GOAL_ABANDONED)

"""AI tool bindings package."""

from spend_ledger.agents.tools import (
    FinanceTool,
    RecordExpenseInput,
    SetBudgetInput,
    create_tools,
)

__all__ = [
    "FinanceTool",
    "RecordExpenseInput",
    "SetBudgetInput",
    "create_tools",
]

"""Action facade package."""

from spend_ledger.actions.facade import ActionResult, FinanceActions

__all__ = ["ActionResult", "FinanceActions"]

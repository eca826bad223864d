"""
AI Tool Bindings

Typed tools the chat runtime may call, each bound to ONE tenant.

DESIGN DECISION: Tools are built fresh per authenticated user because the
runtime calls them without any session of its own. The tenant id is
captured in the closure, never taken from tool arguments, so the model
cannot act on another tenant's data.

CRITICAL BOUNDARIES:
- The model supplies arguments, the input model validates them
- Invalid arguments NEVER reach the facade
- The enumerated category set lives here; the ledger accepts free text
"""

from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, Field, create_model
from pydantic import ValidationError as InputValidationError

from spend_ledger.actions.facade import ActionResult, FinanceActions
from spend_ledger.config import AppSettings, get_settings
from spend_ledger.logging_config import get_logger
from spend_ledger.models.finance import ExpenseCategory
from spend_ledger.tenancy import validate_tenant_id


logger = get_logger(__name__)

ToolHandler = Callable[[BaseModel], Awaitable[ActionResult]]


# =============================================================================
# TOOL INPUTS
# =============================================================================

class NoInput(BaseModel):
    """Tools that take no arguments."""
    pass


class RecordExpenseInput(BaseModel):
    """What the model extracts from 'I spent ₹500 on groceries'."""

    amount: Decimal = Field(
        gt=0,
        description="The amount spent in INR (e.g., 500 for ₹500)"
    )
    category: ExpenseCategory = Field(
        description="Category of the expense"
    )
    description: Optional[str] = Field(
        default=None,
        description="Optional description of what was purchased"
    )


class SetBudgetInput(BaseModel):
    category: ExpenseCategory = Field(
        description="Category to set budget for"
    )
    limit: Decimal = Field(
        gt=0,
        description="Monthly budget limit in INR"
    )


def note_input_model(max_length: int) -> type[BaseModel]:
    """Input model for updateUserNote with the configured length cap."""
    return create_model(
        "UpdateUserNoteInput",
        note=(str, Field(max_length=max_length, description="The note content to save.")),
    )


def _describe_errors(error: InputValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        parts.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(parts)


# =============================================================================
# TOOL
# =============================================================================

class FinanceTool:
    """
    One callable tool.

    invoke() always returns a plain dict envelope; it never raises for bad
    arguments.
    """

    def __init__(
        self,
        name: str,
        description: str,
        input_model: type[BaseModel],
        handler: ToolHandler,
    ):
        self.name = name
        self.description = description
        self.input_model = input_model
        self._handler = handler

    def json_schema(self) -> dict[str, Any]:
        """JSON schema of the arguments, as handed to the model."""
        return self.input_model.model_json_schema()

    async def invoke(self, arguments: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        try:
            params = self.input_model.model_validate(arguments or {})
        except InputValidationError as e:
            logger.info("tool_input_rejected", tool=self.name, errors=e.error_count())
            return ActionResult.failed(_describe_errors(e)).to_payload()

        result = await self._handler(params)
        logger.debug("tool_invoked", tool=self.name, success=result.success)
        return result.to_payload()

    def __repr__(self) -> str:
        return f"FinanceTool(name={self.name!r})"


def create_tools(
    actions: FinanceActions,
    tenant_id: Any,
    email: str,
    name: Optional[str] = None,
    settings: Optional[AppSettings] = None,
) -> list[FinanceTool]:
    """
    Build the tool set bound to one authenticated tenant.

    Args:
        actions: The facade the tools call into
        tenant_id: Verified tenant id from the auth layer
        email: The tenant's email address
        name: Optional display name (falls back to the email's local part)

    Raises:
        ValidationError: If tenant_id is malformed
    """
    tenant = validate_tenant_id(tenant_id)
    settings = settings or get_settings().app

    async def get_profile(_: BaseModel) -> ActionResult:
        return await actions.get_user_profile_by_id(
            tenant, email, name or email.split("@")[0]
        )

    async def update_note(params: BaseModel) -> ActionResult:
        return await actions.update_user_note_by_id(tenant, params.note, email, name)

    async def record_expense(params: RecordExpenseInput) -> ActionResult:
        return await actions.record_expense(
            tenant,
            params.amount,
            params.category.value,
            description=params.description,
        )

    async def view_dashboard(_: BaseModel) -> ActionResult:
        return await actions.get_dashboard_data(tenant)

    async def set_budget(params: SetBudgetInput) -> ActionResult:
        return await actions.set_budget_action(
            tenant, params.category.value, params.limit
        )

    async def budget_alerts(_: BaseModel) -> ActionResult:
        return await actions.get_budget_alerts(tenant)

    return [
        FinanceTool(
            name="getUserProfile",
            description="View your profile including name, email, and any saved notes",
            input_model=NoInput,
            handler=get_profile,
        ),
        FinanceTool(
            name="updateUserNote",
            description="Save or update a note in your profile",
            input_model=note_input_model(settings.note_max_length),
            handler=update_note,
        ),
        FinanceTool(
            name="recordExpense",
            description=(
                "Record spending or expenses. Say things like "
                "'I spent ₹500 on groceries' or 'Movie ticket cost ₹300'"
            ),
            input_model=RecordExpenseInput,
            handler=record_expense,
        ),
        FinanceTool(
            name="viewDashboard",
            description=(
                "View your spending overview - see how much you spent this month, "
                "breakdown by categories, and your budget status"
            ),
            input_model=NoInput,
            handler=view_dashboard,
        ),
        FinanceTool(
            name="setBudget",
            description=(
                "Set or change your monthly budget for a category. "
                "For example: set ₹5000 budget for groceries"
            ),
            input_model=SetBudgetInput,
            handler=set_budget,
        ),
        FinanceTool(
            name="getBudgetAlerts",
            description="Check which spending categories are near their budget or over budget",
            input_model=NoInput,
            handler=budget_alerts,
        ),
    ]

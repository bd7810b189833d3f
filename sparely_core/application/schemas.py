"""Pydantic schemas validating user payloads before they reach the domain"""

import datetime
from typing import Any, Dict, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field, ValidationError

from sparely_core.domain.exceptions import InvalidInputError
from sparely_core.domain.models import ExpenseCategory, ExpenseInput, PayInterval, SavingsPercentages

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class PercentagesSchema(BaseModel):
    """User-chosen bucket split; every fraction in [0, 1]"""

    emergency: float = Field(..., ge=0, le=1, allow_inf_nan=False)
    invest: float = Field(..., ge=0, le=1, allow_inf_nan=False)
    fun: float = Field(..., ge=0, le=1, allow_inf_nan=False)
    safe_investment_split: float = Field(0.65, ge=0, le=1, allow_inf_nan=False)

    def to_domain(self) -> SavingsPercentages:
        return SavingsPercentages(
            emergency=self.emergency,
            invest=self.invest,
            fun=self.fun,
            safe_investment_split=self.safe_investment_split,
        )


class ExpenseRequest(BaseModel):
    """New expense as entered by the user"""

    description: str = Field("", max_length=200)
    amount: float = Field(..., gt=0, allow_inf_nan=False, description="Expense amount in currency units")
    category: ExpenseCategory = ExpenseCategory.OTHER
    date: datetime.date
    includes_tax: bool = False
    manual_percentages: Optional[PercentagesSchema] = None

    def to_input(self) -> ExpenseInput:
        return ExpenseInput(
            description=self.description,
            amount=self.amount,
            category=self.category,
            date=self.date,
            includes_tax=self.includes_tax,
            manual_percentages=self.manual_percentages.to_domain() if self.manual_percentages else None,
        )


class PaycheckRequest(BaseModel):
    """Incoming paycheck; save_rate overrides the recommended rate when given"""

    amount: float = Field(..., gt=0, allow_inf_nan=False)
    date: datetime.date
    pay_interval: PayInterval = PayInterval.MONTHLY
    custom_days_between: Optional[int] = Field(None, ge=1, le=366)
    save_rate: Optional[float] = Field(None, ge=0, le=1, allow_inf_nan=False)


def validate_payload(schema: Type[SchemaT], payload: Union[SchemaT, Dict[str, Any]]) -> SchemaT:
    """Coerce a dict into the schema, surfacing validation failures as InvalidInputError"""
    if isinstance(payload, schema):
        return payload
    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid {schema.__name__}: {e.errors()[0]['msg']}") from e

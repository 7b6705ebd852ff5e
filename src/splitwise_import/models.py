"""Pydantic domain models for splitwise-import."""

import datetime as dt
import random
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

CENT = Decimal("0.01")

# ============================================================================
# Credentials
# ============================================================================


class SplitwiseApp(BaseModel):
    """Splitwise application credentials (consumer key and secret)."""

    model_config = ConfigDict(frozen=True)

    key: str
    secret: str = Field(repr=False)


# ============================================================================
# Expense rows
# ============================================================================


class SplitMode(str, Enum):
    """How an expense is shared between me and my friend."""

    EQUAL = "equal"
    NONE = "none"

    @classmethod
    def from_code(cls, code: str | None) -> "SplitMode":
        """'n' means do not split; anything else splits equally."""
        return cls.NONE if code == "n" else cls.EQUAL


class ExpenseEntry(BaseModel):
    """One row of the expense file."""

    amount: Decimal
    description: str | None = None
    date: dt.datetime | dt.date | str | None = None
    comment: str | None = None
    split: str | None = None

    # (mine, theirs), computed on first access
    _shares: tuple[Decimal, Decimal] | None = PrivateAttr(default=None)

    @property
    def split_mode(self) -> SplitMode:
        return SplitMode.from_code(self.split)

    @property
    def my_share(self) -> Decimal:
        """Amount I owe for this expense."""
        return self.shares()[0]

    @property
    def their_share(self) -> Decimal:
        """Amount my friend owes for this expense."""
        return self.shares()[1]

    def shares(self, rng: random.Random | None = None) -> tuple[Decimal, Decimal]:
        """
        Get the (mine, theirs) share pair.

        With an equal split the cent left over by rounding the half goes to a
        random side. The pair is cached on first call so that every later read
        returns the same assignment; ``rng`` only matters on that first call.
        """
        if self._shares is None:
            if self.split_mode is SplitMode.NONE:
                self._shares = (Decimal("0"), self.amount)
            else:
                half = (self.amount / 2).quantize(CENT, rounding=ROUND_HALF_UP)
                pair = [half, self.amount - half]
                (rng or random).shuffle(pair)
                self._shares = (pair[0], pair[1])
        return self._shares

    @property
    def date_text(self) -> str:
        """The date as sent to Splitwise (ISO-8601 when parsed as a date)."""
        if self.date is None:
            return ""
        if isinstance(self.date, dt.date):
            return self.date.isoformat()
        return self.date


# ============================================================================
# Splitwise requests
# ============================================================================


class CreateExpenseRequest(BaseModel):
    """Form body for POST /create_expense.

    User 0 is me: I paid the whole cost and owe my share.
    User 1 is my friend: paid nothing and owes the rest.
    """

    cost: Decimal
    currency_code: str = "CAD"
    group_id: str
    description: str
    users__0__user_id: str
    users__0__paid_share: Decimal
    users__0__owed_share: Decimal
    users__1__user_id: str
    users__1__paid_share: Decimal = Decimal("0")
    users__1__owed_share: Decimal
    creation_method: str = "equal"
    date: str

    @classmethod
    def from_entry(
        cls,
        entry: ExpenseEntry,
        group_id: str,
        my_user_id: str,
        friend_user_id: str,
        currency_code: str = "CAD",
    ) -> "CreateExpenseRequest":
        """Build the request for one expense row."""
        return cls(
            cost=entry.amount,
            currency_code=currency_code,
            group_id=group_id,
            description=entry.description or "",
            users__0__user_id=my_user_id,
            users__0__paid_share=entry.amount,
            users__0__owed_share=entry.my_share,
            users__1__user_id=friend_user_id,
            users__1__owed_share=entry.their_share,
            date=entry.date_text,
        )

    def to_form(self) -> dict[str, str]:
        """Serialize as form fields."""
        return {key: str(value) for key, value in self.model_dump().items()}


# ============================================================================
# OAuth results
# ============================================================================


class AuthSuccess(BaseModel):
    """The OAuth flow completed and returned a token payload."""

    token: dict[str, Any]

    @property
    def access_token(self) -> str:
        return str(self.token["access_token"])


class AuthFailure(BaseModel):
    """The OAuth flow was aborted or could not obtain a token."""

    reason: str


AuthResult = AuthSuccess | AuthFailure

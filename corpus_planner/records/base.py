"""
Base financial records provider interface and exceptions.

This module defines the read-only interface through which the engine consumes
a user's financial records, along with common exceptions. Persistence itself
lives outside the engine.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from corpus_planner.models.records import (
    Expense,
    FinancialRecords,
    Goal,
    Income,
    Insurance,
    Investment,
    Loan,
)
from corpus_planner.models.scenario import ScenarioParameters


class RecordsError(Exception):
    """Base exception for records-related errors."""


class MissingUserContextError(RecordsError):
    """Raised when an operation is invoked without a user identity."""


class RecordsNotFoundError(RecordsError):
    """Raised when a provider has no records at all for a user."""


def require_user_id(user_id: Optional[str]) -> str:
    """
    Validate the user identity for an engine entry point.

    Raises:
        MissingUserContextError: If `user_id` is None or blank
    """
    if user_id is None or not str(user_id).strip():
        raise MissingUserContextError("A user id is required for this operation")
    return user_id


class FinancialRecordsProvider(ABC):
    """
    Abstract base class for financial records providers.

    Implementations return plain record lists per user; missing detail inside
    a record is normal and is resolved by the engine.
    """

    @abstractmethod
    def get_incomes(self, user_id: str) -> List[Income]:
        """Income records for a user."""

    @abstractmethod
    def get_investments(self, user_id: str) -> List[Investment]:
        """Investment records for a user."""

    @abstractmethod
    def get_loans(self, user_id: str) -> List[Loan]:
        """Loan records for a user."""

    @abstractmethod
    def get_insurances(self, user_id: str) -> List[Insurance]:
        """Insurance policies for a user."""

    @abstractmethod
    def get_expenses(self, user_id: str) -> List[Expense]:
        """Expense records for a user."""

    @abstractmethod
    def get_goals(self, user_id: str) -> List[Goal]:
        """Goal records for a user."""

    def get_scenario_settings(self, user_id: str) -> Optional[ScenarioParameters]:
        """
        Persisted scenario settings for a user.

        Returns:
            The saved scenario, or None when the user has none
        """
        return None

    def fetch_records(self, user_id: Optional[str]) -> FinancialRecords:
        """
        Fetch a read-only snapshot of every record for a user.

        Args:
            user_id: The user whose records to fetch

        Returns:
            FinancialRecords snapshot used for a whole invocation

        Raises:
            MissingUserContextError: If `user_id` is missing
            RecordsNotFoundError: If the provider does not know the user
        """
        user_id = require_user_id(user_id)
        return FinancialRecords(
            user_id=user_id,
            incomes=self.get_incomes(user_id),
            investments=self.get_investments(user_id),
            loans=self.get_loans(user_id),
            insurances=self.get_insurances(user_id),
            expenses=self.get_expenses(user_id),
            goals=self.get_goals(user_id),
        )

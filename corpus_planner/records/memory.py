"""
In-memory financial records provider.

Holds records in a dictionary keyed by user id. It is suitable for tests and
for callers that already hold the records in memory.
"""

import logging
from typing import Dict, Iterable, List, Optional

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

from .base import FinancialRecordsProvider, RecordsNotFoundError

logger = logging.getLogger(__name__)


class InMemoryRecordsProvider(FinancialRecordsProvider):
    """
    Dictionary-backed records provider.

    Unknown users have no records, unless `strict` is set, in which case
    looking them up raises RecordsNotFoundError.
    """

    def __init__(
        self,
        records: Optional[Iterable[FinancialRecords]] = None,
        strict: bool = False,
    ):
        """
        Initialize the provider.

        Args:
            records: Initial per-user record snapshots
            strict: Whether unknown users are an error
        """
        self.strict = strict
        self._records: Dict[str, FinancialRecords] = {}
        self._settings: Dict[str, ScenarioParameters] = {}
        for snapshot in records or []:
            self.add_records(snapshot)

    def add_records(self, records: FinancialRecords) -> None:
        """Store (or replace) the records of one user."""
        self._records[records.user_id] = records
        logger.debug(f"Stored records for user {records.user_id}")

    def save_scenario_settings(self, user_id: str, scenario: ScenarioParameters) -> None:
        """Persist scenario settings for a user."""
        self._settings[user_id] = scenario

    def _snapshot(self, user_id: str) -> FinancialRecords:
        snapshot = self._records.get(user_id)
        if snapshot is None:
            if self.strict:
                raise RecordsNotFoundError(f"No records for user: {user_id}")
            return FinancialRecords(user_id=user_id)
        return snapshot

    def get_incomes(self, user_id: str) -> List[Income]:
        return list(self._snapshot(user_id).incomes)

    def get_investments(self, user_id: str) -> List[Investment]:
        return list(self._snapshot(user_id).investments)

    def get_loans(self, user_id: str) -> List[Loan]:
        return list(self._snapshot(user_id).loans)

    def get_insurances(self, user_id: str) -> List[Insurance]:
        return list(self._snapshot(user_id).insurances)

    def get_expenses(self, user_id: str) -> List[Expense]:
        return list(self._snapshot(user_id).expenses)

    def get_goals(self, user_id: str) -> List[Goal]:
        return list(self._snapshot(user_id).goals)

    def get_scenario_settings(self, user_id: str) -> Optional[ScenarioParameters]:
        return self._settings.get(user_id)

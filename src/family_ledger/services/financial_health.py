"""
Financial Health Service - scoring a month and keeping the score history

Gathers the figures the pure scorer needs: the month containing the
target date (income, spending, Budget Summaries) and the monthly
payments of active loans. When no month contains the date, the score is
computed on zero figures with no budgets.

Saved scores are unique per owner and calendar month; saving again for
the same month replaces the stored row.
"""

import datetime as dt
from decimal import Decimal

from family_ledger.feedback.indicators import build_recommendations, compute_financial_health, score_label, score_tone
from family_ledger.feedback.models import BudgetFigures, FinancialHealthScore, StoredHealthScore
from family_ledger.kernel.metrics import health_score_last
from family_ledger.services.base import LedgerService, ledger_operation
from family_ledger.services.loans import LoanService
from family_ledger.services.monthly_overviews import MonthlyOverviewService
from family_ledger.services.summaries import SummaryService

TABLE = "financial_health_scores"
RESOURCE = "Financial health score"
ZERO = Decimal("0")


class FinancialHealthService(LedgerService):
    service_name = "financial_health"

    get_score_label = staticmethod(score_label)
    get_score_tone = staticmethod(score_tone)

    def __init__(
        self,
        *args,
        summaries: SummaryService,
        months: MonthlyOverviewService,
        loans: LoanService,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.summaries = summaries
        self.months = months
        self.loans = loans

    async def _month_containing(self, target: dt.date) -> str | None:
        for month in await self.months.get_all():
            if month.contains(target):
                return month.id
        return None

    @ledger_operation("calculate_score")
    async def calculate_score(self, target_date: dt.date | None = None) -> FinancialHealthScore:
        """
        Score the month containing target_date (today by default)

        Returns:
            FinancialHealthScore; monthly_overview_id is None when no month
            contains the date
        """
        self._user_id()
        target = target_date or self._today()
        monthly_overview_id = await self._month_containing(target)

        total_income = total_spent = ZERO
        budgets: list[BudgetFigures] = []
        if monthly_overview_id is not None:
            summary = await self.summaries.get_monthly_summary(monthly_overview_id)
            total_income, total_spent = summary.total_income, summary.total_spent
            budgets = [
                BudgetFigures(budget_amount=s.budget_amount, amount_spent=s.amount_spent)
                for s in await self.summaries.get_budget_summaries(monthly_overview_id)
            ]

        debt_payments = await self.loans.get_total_monthly_payments()
        score = compute_financial_health(total_income, total_spent, debt_payments, budgets, monthly_overview_id)
        health_score_last.set(score.overall_score)
        self.logger.info(
            "Financial health scored",
            overall_score=score.overall_score,
            score_label=score.score_label.value,
            monthly_overview_id=monthly_overview_id,
        )
        return score

    @ledger_operation("save_score")
    async def save_score(self, score: FinancialHealthScore, target_date: dt.date | None = None) -> StoredHealthScore:
        """
        Store a score for the calendar month of target_date, replacing any
        score already saved for that month
        """
        owner_id = self._user_id()
        month_start = (target_date or self._today()).replace(day=1)
        values = {
            "calculated_for_month": month_start,
            "monthly_overview_id": score.monthly_overview_id,
            "overall_score": score.overall_score,
            "score_label": score.score_label,
            "savings_rate_score": score.savings_rate.score,
            "savings_rate_value": score.savings_rate.raw_value,
            "debt_to_income_score": score.debt_to_income.score,
            "debt_to_income_value": score.debt_to_income.raw_value,
            "budget_adherence_score": score.budget_adherence.score,
            "budget_adherence_value": score.budget_adherence.raw_value,
            "recommendations": build_recommendations(score),
        }

        existing = await self.store.select(
            TABLE, owner_id=owner_id, where={"calculated_for_month": month_start}, limit=1
        )
        if existing:
            row = existing[0]
            record = StoredHealthScore.from_row({**row, **values})
            changes = record.to_row()
            for column in ("id", "owner_id", "created_at", "updated_at"):
                changes.pop(column)
            return StoredHealthScore.from_row(await self._update(TABLE, row["id"], changes, RESOURCE))

        record = StoredHealthScore(**self._record_fields(owner_id), **values)
        return StoredHealthScore.from_row(await self._insert(TABLE, record))

    async def calculate_and_save(self, target_date: dt.date | None = None) -> StoredHealthScore:
        score = await self.calculate_score(target_date)
        return await self.save_score(score, target_date)

    async def get_by_id(self, score_id: str) -> StoredHealthScore:
        owner_id = self._user_id()
        return StoredHealthScore.from_row(await self._owned(TABLE, score_id, RESOURCE, owner_id))

    async def get_score_for_month(self, month: dt.date) -> StoredHealthScore | None:
        """Stored score for the calendar month containing `month`"""
        owner_id = self._user_id()
        rows = await self.store.select(
            TABLE, owner_id=owner_id, where={"calculated_for_month": month.replace(day=1)}, limit=1
        )
        return StoredHealthScore.from_row(rows[0]) if rows else None

    async def get_score_history(self, months: int | None = 12) -> list[StoredHealthScore]:
        """Most recent stored scores first"""
        owner_id = self._user_id()
        rows = await self.store.select(
            TABLE, owner_id=owner_id, order_by="calculated_for_month", descending=True, limit=months
        )
        return [StoredHealthScore.from_row(r) for r in rows]

    async def get_all(self) -> list[StoredHealthScore]:
        return await self.get_score_history(months=None)

    @ledger_operation("update_recommendations")
    async def update_recommendations(self, score_id: str, recommendations: list[str]) -> StoredHealthScore:
        owner_id = self._user_id()
        await self._owned(TABLE, score_id, RESOURCE, owner_id)
        return StoredHealthScore.from_row(
            await self._update(TABLE, score_id, {"recommendations": list(recommendations)}, RESOURCE)
        )

    @ledger_operation("delete")
    async def delete(self, score_id: str) -> None:
        owner_id = self._user_id()
        await self._owned(TABLE, score_id, RESOURCE, owner_id)
        await self._delete(TABLE, score_id, RESOURCE)


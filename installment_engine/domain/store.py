"""Persistence contract the ledger depends on"""

from datetime import date
from decimal import Decimal
from typing import List, Optional, Protocol

from installment_engine.domain.models import InstallmentPlan, PlanStatus


class PlanStore(Protocol):
    """Plan persistence; implemented by infrastructure.database.repositories.PlanRepository"""

    def create_plan(self, plan: InstallmentPlan) -> InstallmentPlan: ...

    def get_plan_by_id(self, plan_id: str) -> Optional[InstallmentPlan]: ...

    def get_plans_by_customer_id(self, customer_id: str) -> List[InstallmentPlan]: ...

    def get_plans_by_sale_id(self, sale_id: str) -> List[InstallmentPlan]: ...

    def get_all_plans(self) -> List[InstallmentPlan]: ...

    def get_plans_by_status(self, status: PlanStatus) -> List[InstallmentPlan]: ...

    def get_overdue_plans(self, cutoff: date) -> List[InstallmentPlan]: ...

    def update_plan(self, plan: InstallmentPlan) -> bool: ...

    def count_plans(self) -> int: ...

    def total_outstanding_amount(self) -> Decimal: ...

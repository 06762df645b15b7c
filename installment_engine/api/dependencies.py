"""Dependency injection for FastAPI endpoints"""

from contextlib import contextmanager
from typing import Iterator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from installment_engine.config import settings
from installment_engine.domain.ledger import PlanLedger, PlanLocks
from installment_engine.infrastructure.database.repositories import PlanRepository
from installment_engine.infrastructure.database.session import get_db, session_scope
from installment_engine.utils.clock import Clock


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_clock(request: Request) -> Clock:
    """Application-wide time source"""
    return request.app.state.clock


def get_plan_locks(request: Request) -> PlanLocks:
    """Per-plan lock registry shared with the overdue sweeper"""
    return request.app.state.plan_locks


def build_ledger(db: Session, clock: Clock, locks: PlanLocks) -> PlanLedger:
    return PlanLedger(
        PlanRepository(db),
        clock=clock,
        locks=locks,
        cap_overpayment_in_totals=settings.cap_overpayment_in_totals,
    )


def get_ledger(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    locks: PlanLocks = Depends(get_plan_locks),
) -> PlanLedger:
    """Provide a ledger bound to the request's database session"""
    return build_ledger(db, clock, locks)


@contextmanager
def ledger_scope(clock: Clock, locks: PlanLocks) -> Iterator[PlanLedger]:
    """Ledger with its own session, for work outside a request"""
    with session_scope() as db:
        yield build_ledger(db, clock, locks)

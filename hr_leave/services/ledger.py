"""
Leave Balance Ledger

Owns the only mutation paths for LeaveBalance rows. Every mutation is a
single conditional UPDATE evaluated by the database against the persisted
row, so two concurrent approvals against one bucket can never lose an
update, and remaining_days is recomputed in the same statement that
changes used_days or total_days.

Architecture:
- Coordinator -> Ledger.debit (caller owns the transaction)
- Router -> Ledger.grant / correct / delete (ledger commits)
"""
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hr_leave.core.exceptions import InsufficientBalanceError, InvalidInputError, NotFoundError
from hr_leave.models.leave_balance import LeaveBalance
from hr_leave.schemas.auth import Actor
from hr_leave.services.audit import AuditService
from hr_leave.services.base import BaseService
from hr_leave.services.leave_types import LeaveTypeRegistry


def _bucket_key(employee_id: str, leave_type: str, year: int) -> str:
    return f"{employee_id}/{leave_type}/{year}"


def _snapshot(balance: LeaveBalance) -> dict:
    return {
        "total_days": balance.total_days,
        "used_days": balance.used_days,
        "remaining_days": balance.remaining_days,
    }


class LeaveLedger(BaseService):

    def __init__(self, db: Session, registry: Optional[LeaveTypeRegistry] = None):
        super().__init__(db)
        self.registry = registry or LeaveTypeRegistry(db)
        self.audit = AuditService(db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _bucket(self, employee_id: str, leave_type: str, year: int):
        return self.db.query(LeaveBalance).filter(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.leave_type == leave_type,
            LeaveBalance.year == year,
        )

    def _find(self, employee_id: str, leave_type: str, year: int) -> Optional[LeaveBalance]:
        # Bulk UPDATEs bypass the identity map, so always reload from the row
        return self._bucket(employee_id, leave_type, year).populate_existing().first()

    def get_balance(self, employee_id: str, leave_type: str, year: int) -> LeaveBalance:
        balance = self._find(employee_id, leave_type, year)
        if balance is None:
            raise NotFoundError("Leave balance", _bucket_key(employee_id, leave_type, year))
        return balance

    def get_by_id(self, balance_id: int) -> LeaveBalance:
        balance = (
            self.db.query(LeaveBalance)
            .filter(LeaveBalance.id == balance_id)
            .populate_existing()
            .first()
        )
        if balance is None:
            raise NotFoundError("Leave balance", balance_id)
        return balance

    def list_balances(self, employee_id: Optional[str] = None) -> List[LeaveBalance]:
        query = self.db.query(LeaveBalance)
        if employee_id:
            query = query.filter(LeaveBalance.employee_id == employee_id)
        return query.order_by(LeaveBalance.year.desc(), LeaveBalance.leave_type).all()

    def granted_leave_types(self, employee_id: str) -> List[LeaveBalance]:
        """Buckets the employee can still draw from."""
        return (
            self.db.query(LeaveBalance)
            .filter(LeaveBalance.employee_id == employee_id, LeaveBalance.remaining_days > 0)
            .order_by(LeaveBalance.year.desc(), LeaveBalance.leave_type)
            .all()
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def grant(
        self,
        employee_id: str,
        leave_type: str,
        year: int,
        total_days: float,
        actor: Optional[Actor] = None
    ) -> LeaveBalance:
        """
        Upsert a bucket's entitlement.

        An existing bucket keeps its used_days; total_days is replaced and
        remaining_days recomputed. Shrinking total_days below used_days is
        rejected.

        Returns the bucket as this call wrote it, detached from the session,
        so a concurrent grant committed afterwards does not show through.
        """
        if not employee_id or not leave_type or year is None or total_days is None:
            raise InvalidInputError("Missing required fields: employee_id, leave_type, year, total_days")
        total_days = float(total_days)
        if total_days < 0:
            raise InvalidInputError("total_days must be a non-negative number")

        policy = self.registry.get_by_name(leave_type)
        if policy is None:
            raise InvalidInputError(f"Unknown leave type '{leave_type}'")
        if not policy.carry_forward and total_days > policy.max_days_per_year:
            raise InvalidInputError(
                f"Grant of {total_days} days exceeds the {policy.max_days_per_year} day yearly cap for '{leave_type}'"
            )

        created = False
        if not self._apply_grant(employee_id, leave_type, year, total_days):
            if self._find(employee_id, leave_type, year) is not None:
                self._reject_grant_below_used(employee_id, leave_type, year, total_days)
            created = self._insert_bucket(employee_id, leave_type, year, total_days)
            if not created and not self._apply_grant(employee_id, leave_type, year, total_days):
                # Lost an insert race to a bucket that is already over the new total
                self._reject_grant_below_used(employee_id, leave_type, year, total_days)

        balance = self._find(employee_id, leave_type, year)
        self.audit.log_action(
            action="grant_leave_balance",
            entity_type="leave_balance",
            entity_id=balance.id,
            actor=actor,
            details={"employee_id": employee_id, "leave_type": leave_type, "year": year, "created": created},
            after_state=_snapshot(balance),
        )
        # Keep the values read inside this transaction; commit would expire them
        self.db.expunge(balance)
        self.commit()
        self.log_info(
            f"Granted {total_days} days of {leave_type} for {employee_id} ({year})",
            balance_id=balance.id,
        )
        return balance

    def _apply_grant(self, employee_id: str, leave_type: str, year: int, total_days: float) -> bool:
        updated = self._bucket(employee_id, leave_type, year).filter(
            LeaveBalance.used_days <= total_days
        ).update(
            {
                LeaveBalance.total_days: total_days,
                LeaveBalance.remaining_days: total_days - LeaveBalance.used_days,
                LeaveBalance.updated_at: datetime.now(timezone.utc),
            },
            synchronize_session=False,
        )
        return updated == 1

    def _insert_bucket(self, employee_id: str, leave_type: str, year: int, total_days: float) -> bool:
        self.db.add(LeaveBalance(
            employee_id=employee_id,
            leave_type=leave_type,
            year=year,
            total_days=total_days,
            used_days=0.0,
            remaining_days=total_days,
        ))
        try:
            self.db.flush()
            return True
        except IntegrityError:
            # Unique bucket key: someone else created it first
            self.db.rollback()
            return False

    def _reject_grant_below_used(self, employee_id: str, leave_type: str, year: int, total_days: float):
        balance = self.get_balance(employee_id, leave_type, year)
        self.db.rollback()
        raise InvalidInputError(
            f"Cannot grant {total_days} days: {balance.used_days} days are already used",
            details={"used_days": balance.used_days},
        )

    def debit(self, employee_id: str, leave_type: str, year: int, days: float) -> LeaveBalance:
        """
        Atomically consume `days` from a bucket.

        The bound check and the increment are one UPDATE statement. Does not
        commit: the caller decides whether the debit becomes durable.
        """
        if days is None or float(days) <= 0:
            raise InvalidInputError("Debit must be a positive number of days")
        days = float(days)

        updated = self._bucket(employee_id, leave_type, year).filter(
            LeaveBalance.used_days + days <= LeaveBalance.total_days
        ).update(
            {
                LeaveBalance.used_days: LeaveBalance.used_days + days,
                LeaveBalance.remaining_days: LeaveBalance.total_days - LeaveBalance.used_days - days,
                LeaveBalance.updated_at: datetime.now(timezone.utc),
            },
            synchronize_session=False,
        )
        if updated == 0:
            balance = self._find(employee_id, leave_type, year)
            if balance is None:
                raise NotFoundError("Leave balance", _bucket_key(employee_id, leave_type, year))
            raise InsufficientBalanceError(requested=days, remaining=balance.remaining_days)

        balance = self._find(employee_id, leave_type, year)
        self.log_info(
            f"Debited {days} days from {_bucket_key(employee_id, leave_type, year)}",
            balance_id=balance.id,
            used_days=balance.used_days,
            remaining_days=balance.remaining_days,
        )
        return balance

    def correct(self, balance_id: int, used_days: float, actor: Optional[Actor] = None) -> LeaveBalance:
        """Admin correction of used_days, bounded by the bucket's total."""
        if used_days is None or float(used_days) < 0:
            raise InvalidInputError("used_days must be a non-negative number")
        used_days = float(used_days)

        updated = self.db.query(LeaveBalance).filter(
            LeaveBalance.id == balance_id,
            LeaveBalance.total_days >= used_days,
        ).update(
            {
                LeaveBalance.used_days: used_days,
                LeaveBalance.remaining_days: LeaveBalance.total_days - used_days,
                LeaveBalance.updated_at: datetime.now(timezone.utc),
            },
            synchronize_session=False,
        )
        if updated == 0:
            balance = self.get_by_id(balance_id)
            self.db.rollback()
            raise InvalidInputError(
                f"used_days {used_days} exceeds total_days {balance.total_days}",
                details={"total_days": balance.total_days},
            )

        balance = self.get_by_id(balance_id)
        self.audit.log_action(
            action="correct_leave_balance",
            entity_type="leave_balance",
            entity_id=balance_id,
            actor=actor,
            details={"used_days": used_days},
            after_state=_snapshot(balance),
        )
        self.commit()
        return self.get_by_id(balance_id)

    def delete(self, balance_id: int, actor: Optional[Actor] = None) -> None:
        deleted = self.db.query(LeaveBalance).filter(LeaveBalance.id == balance_id).delete(
            synchronize_session=False
        )
        if not deleted:
            self.db.rollback()
            raise NotFoundError("Leave balance", balance_id)
        self.audit.log_action(
            action="delete_leave_balance",
            entity_type="leave_balance",
            entity_id=balance_id,
            actor=actor,
        )
        self.commit()
        self.log_info(f"Deleted leave balance {balance_id}")

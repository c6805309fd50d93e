"""
Leave Type Registry.

Catalog of leave categories and their yearly entitlement caps. The default
catalog is seeded lazily on first read against an empty table.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from hr_leave.core.config import settings
from hr_leave.core.exceptions import InvalidInputError, NotFoundError
from hr_leave.models.leave_type import LeaveType
from hr_leave.services.base import BaseService

DEFAULT_LEAVE_TYPES: List[Dict[str, Any]] = [
    {"name": "Casual leave", "description": "General purpose leave", "max_days_per_year": 12, "carry_forward": False},
    {"name": "Sick leave", "description": "Illness or recovery", "max_days_per_year": 10, "carry_forward": True},
    {"name": "Medical leave", "description": "Medical procedures", "max_days_per_year": 7, "carry_forward": False},
    {"name": "Marriage leave", "description": "Marriage ceremony", "max_days_per_year": 7, "carry_forward": False},
    {"name": "Halfday leave", "description": "Half-day absence", "max_days_per_year": 24, "carry_forward": False},
    {"name": "Shortday leave", "description": "Short absence", "max_days_per_year": 24, "carry_forward": False},
    {"name": "Menstruation leave", "description": "Period leave", "max_days_per_year": 12, "carry_forward": False},
    {"name": "Work from home", "description": "WFH days", "max_days_per_year": 60, "carry_forward": False},
]

_EDITABLE_FIELDS = ("name", "description", "max_days_per_year", "carry_forward")


class LeaveTypeRegistry(BaseService):

    def ensure_defaults(self) -> None:
        if not settings.seed_default_leave_types:
            return
        if self.db.query(LeaveType).count() > 0:
            return

        for defaults in DEFAULT_LEAVE_TYPES:
            self.db.add(LeaveType(**defaults))
        try:
            self.db.commit()
            self.log_info(f"Seeded {len(DEFAULT_LEAVE_TYPES)} default leave types")
        except IntegrityError:
            # A concurrent first read seeded the catalog between our count and insert
            self.db.rollback()
            self.log_info("Default leave types already seeded by a concurrent caller")

    def list(self) -> List[LeaveType]:
        self.ensure_defaults()
        return self.db.query(LeaveType).order_by(LeaveType.id).all()

    def get(self, leave_type_id: int) -> LeaveType:
        leave_type = self.db.get(LeaveType, leave_type_id)
        if not leave_type:
            raise NotFoundError("Leave type", leave_type_id)
        return leave_type

    def get_by_name(self, name: str) -> Optional[LeaveType]:
        self.ensure_defaults()
        return self.db.query(LeaveType).filter(LeaveType.name == name).first()

    def create(
        self,
        name: str,
        max_days_per_year: int,
        carry_forward: bool = False,
        description: str = ""
    ) -> LeaveType:
        if not name or max_days_per_year is None:
            raise InvalidInputError("Missing required fields: name and max_days_per_year")

        try:
            leave_type = LeaveType(
                name=name,
                description=description or "",
                max_days_per_year=max_days_per_year,
                carry_forward=bool(carry_forward),
            )
        except ValueError as e:
            raise InvalidInputError(str(e))
        self.db.add(leave_type)
        self._commit_unique(name)
        self.db.refresh(leave_type)
        self.log_info(f"Created leave type '{leave_type.name}'", leave_type_id=leave_type.id)
        return leave_type

    def update(self, leave_type_id: int, fields: Dict[str, Any]) -> LeaveType:
        unknown = set(fields) - set(_EDITABLE_FIELDS)
        if unknown:
            raise InvalidInputError(f"Unknown leave type fields: {', '.join(sorted(unknown))}")

        leave_type = self.get(leave_type_id)
        try:
            for key, value in fields.items():
                if value is None:
                    continue
                setattr(leave_type, key, value)
        except ValueError as e:
            self.db.rollback()
            raise InvalidInputError(str(e))
        self._commit_unique(leave_type.name)
        self.db.refresh(leave_type)
        return leave_type

    def delete(self, leave_type_id: int) -> None:
        deleted = self.db.query(LeaveType).filter(LeaveType.id == leave_type_id).delete(
            synchronize_session=False
        )
        if not deleted:
            self.db.rollback()
            raise NotFoundError("Leave type", leave_type_id)
        self.commit()
        self.log_info(f"Deleted leave type {leave_type_id}")

    def _commit_unique(self, name: str) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise InvalidInputError(f"Leave type '{name}' already exists")

import pytest

from hr_leave.core.exceptions import InsufficientBalanceError, InvalidInputError, NotFoundError
from hr_leave.models.audit_log import AuditLog
from hr_leave.services.ledger import LeaveLedger

YEAR = 2025


def _seed_balance(db, employee_id="emp-1", leave_type="Casual leave", total=12, used=0):
    ledger = LeaveLedger(db)
    balance = ledger.grant(employee_id, leave_type, YEAR, total)
    if used:
        ledger.debit(employee_id, leave_type, YEAR, used)
        db.commit()
        balance = ledger.get_balance(employee_id, leave_type, YEAR)
    return balance


def test_grant_creates_bucket(db_session, hr_actor):
    ledger = LeaveLedger(db_session)
    balance = ledger.grant("emp-1", "Casual leave", YEAR, 12, actor=hr_actor)
    assert (balance.total_days, balance.used_days, balance.remaining_days) == (12, 0, 12)

    entry = db_session.query(AuditLog).filter(AuditLog.action == "grant_leave_balance").one()
    assert entry.actor_id == "hr-1"
    assert entry.details["created"] is True


def test_regrant_keeps_used_days(db_session):
    _seed_balance(db_session, total=10, used=4)
    ledger = LeaveLedger(db_session)
    balance = ledger.grant("emp-1", "Casual leave", YEAR, 12)
    assert (balance.total_days, balance.used_days, balance.remaining_days) == (12, 4, 8)


def test_grant_below_used_days_rejected(db_session):
    _seed_balance(db_session, total=10, used=6)
    ledger = LeaveLedger(db_session)
    with pytest.raises(InvalidInputError):
        ledger.grant("emp-1", "Casual leave", YEAR, 5)
    balance = ledger.get_balance("emp-1", "Casual leave", YEAR)
    assert (balance.total_days, balance.used_days, balance.remaining_days) == (10, 6, 4)


def test_grant_unknown_leave_type_rejected(db_session):
    with pytest.raises(InvalidInputError):
        LeaveLedger(db_session).grant("emp-1", "Sabbatical", YEAR, 5)


def test_grant_over_cap_rejected_unless_carry_forward(db_session):
    ledger = LeaveLedger(db_session)
    with pytest.raises(InvalidInputError):
        ledger.grant("emp-1", "Casual leave", YEAR, 13)

    # Sick leave carries forward, so prior-year days may push it past the yearly cap
    balance = ledger.grant("emp-1", "Sick leave", YEAR, 15)
    assert balance.total_days == 15


def test_grant_negative_total_rejected(db_session):
    with pytest.raises(InvalidInputError):
        LeaveLedger(db_session).grant("emp-1", "Casual leave", YEAR, -1)


def test_debit_updates_used_and_remaining(db_session):
    _seed_balance(db_session, total=12, used=3)
    ledger = LeaveLedger(db_session)
    balance = ledger.debit("emp-1", "Casual leave", YEAR, 3)
    db_session.commit()
    assert (balance.total_days, balance.used_days, balance.remaining_days) == (12, 6, 6)
    assert balance.is_consistent


def test_debit_may_consume_exact_remaining(db_session):
    _seed_balance(db_session, total=5, used=2)
    balance = LeaveLedger(db_session).debit("emp-1", "Casual leave", YEAR, 3)
    assert (balance.used_days, balance.remaining_days) == (5, 0)


def test_debit_beyond_remaining_raises_and_leaves_bucket_untouched(db_session):
    _seed_balance(db_session, total=5, used=4)
    ledger = LeaveLedger(db_session)
    with pytest.raises(InsufficientBalanceError) as exc_info:
        ledger.debit("emp-1", "Casual leave", YEAR, 2)
    assert exc_info.value.details == {"requested": 2.0, "remaining": 1.0}

    balance = ledger.get_balance("emp-1", "Casual leave", YEAR)
    assert (balance.total_days, balance.used_days, balance.remaining_days) == (5, 4, 1)


def test_debit_missing_bucket(db_session):
    with pytest.raises(NotFoundError):
        LeaveLedger(db_session).debit("emp-1", "Casual leave", YEAR, 1)


@pytest.mark.parametrize("days", [0, -2])
def test_debit_requires_positive_days(db_session, days):
    _seed_balance(db_session)
    with pytest.raises(InvalidInputError):
        LeaveLedger(db_session).debit("emp-1", "Casual leave", YEAR, days)


def test_buckets_are_independent_per_year_and_type(db_session):
    ledger = LeaveLedger(db_session)
    ledger.grant("emp-1", "Casual leave", YEAR, 12)
    ledger.grant("emp-1", "Casual leave", YEAR + 1, 12)
    ledger.grant("emp-1", "Sick leave", YEAR, 10)

    ledger.debit("emp-1", "Casual leave", YEAR, 4)
    db_session.commit()

    assert ledger.get_balance("emp-1", "Casual leave", YEAR + 1).used_days == 0
    assert ledger.get_balance("emp-1", "Sick leave", YEAR).used_days == 0
    assert ledger.get_balance("emp-1", "Casual leave", YEAR).used_days == 4


def test_correct_used_days(db_session, admin_actor):
    balance = _seed_balance(db_session, total=12, used=3)
    ledger = LeaveLedger(db_session)
    corrected = ledger.correct(balance.id, 1, actor=admin_actor)
    assert (corrected.used_days, corrected.remaining_days) == (1, 11)

    with pytest.raises(InvalidInputError):
        ledger.correct(balance.id, 13, actor=admin_actor)
    assert ledger.get_by_id(balance.id).used_days == 1

    with pytest.raises(NotFoundError):
        ledger.correct(999, 1, actor=admin_actor)


def test_delete_balance(db_session, admin_actor):
    ledger = LeaveLedger(db_session)
    _seed_balance(db_session)
    # Loaded into the session, so the delete commit expires it
    balance = ledger.get_balance("emp-1", "Casual leave", YEAR)
    balance_id = balance.id

    ledger.delete(balance_id, actor=admin_actor)
    with pytest.raises(NotFoundError):
        ledger.get_by_id(balance_id)
    with pytest.raises(NotFoundError):
        ledger.delete(balance_id, actor=admin_actor)
    assert db_session.query(AuditLog).filter(AuditLog.action == "delete_leave_balance").count() == 1


def test_grant_returns_its_own_write(db_session, session_factory):
    """A grant committed by someone else afterwards does not leak into the result."""
    balance = LeaveLedger(db_session).grant("emp-1", "Casual leave", YEAR, 5)

    other = session_factory()
    try:
        LeaveLedger(other).grant("emp-1", "Casual leave", YEAR, 8)
    finally:
        other.close()
    db_session.commit()

    assert (balance.total_days, balance.used_days, balance.remaining_days) == (5, 0, 5)
    assert LeaveLedger(db_session).get_balance("emp-1", "Casual leave", YEAR).total_days == 8


def test_granted_leave_types_excludes_exhausted_buckets(db_session):
    _seed_balance(db_session, leave_type="Casual leave", total=5, used=5)
    _seed_balance(db_session, leave_type="Sick leave", total=10, used=2)
    granted = LeaveLedger(db_session).granted_leave_types("emp-1")
    assert [b.leave_type for b in granted] == ["Sick leave"]


# --- API ---

def test_grant_and_list_balances_api(client, hr_headers, employee_headers, other_employee_headers):
    response = client.post(
        "/api/leave/balances",
        headers=hr_headers,
        json={"employee_id": "emp-1", "leave_type": "Casual leave", "year": YEAR, "total_days": 12},
    )
    assert response.status_code == 201
    assert response.json()["remaining_days"] == 12

    client.post(
        "/api/leave/balances",
        headers=hr_headers,
        json={"employee_id": "emp-2", "leave_type": "Casual leave", "year": YEAR, "total_days": 6},
    )

    everyone = client.get("/api/leave/balances", headers=hr_headers).json()
    assert {b["employee_id"] for b in everyone} == {"emp-1", "emp-2"}

    own = client.get("/api/leave/balances", headers=employee_headers).json()
    assert [b["employee_id"] for b in own] == ["emp-1"]

    response = client.get("/api/leave/balances?employee_id=emp-1", headers=other_employee_headers)
    assert response.status_code == 403


def test_employee_cannot_grant_balance(client, employee_headers):
    response = client.post(
        "/api/leave/balances",
        headers=employee_headers,
        json={"employee_id": "emp-1", "leave_type": "Casual leave", "year": YEAR, "total_days": 12},
    )
    assert response.status_code == 403


def test_correct_and_delete_balance_api(client, admin_headers, hr_headers):
    balance_id = client.post(
        "/api/leave/balances",
        headers=hr_headers,
        json={"employee_id": "emp-1", "leave_type": "Casual leave", "year": YEAR, "total_days": 12},
    ).json()["id"]

    response = client.patch(f"/api/leave/balances/{balance_id}", headers=hr_headers, json={"used_days": 3})
    assert response.status_code == 200
    assert response.json()["used_days"] == 3
    assert response.json()["remaining_days"] == 9

    response = client.patch(f"/api/leave/balances/{balance_id}", headers=hr_headers, json={"used_days": 20})
    assert response.status_code == 400

    response = client.delete(f"/api/leave/balances/{balance_id}", headers=hr_headers)
    assert response.status_code == 403

    response = client.delete(f"/api/leave/balances/{balance_id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["success"] is True


def test_granted_leave_types_api(client, hr_headers, employee_headers):
    client.post(
        "/api/leave/balances",
        headers=hr_headers,
        json={"employee_id": "emp-1", "leave_type": "Casual leave", "year": YEAR, "total_days": 12},
    )
    client.post(
        "/api/leave/balances",
        headers=hr_headers,
        json={"employee_id": "emp-1", "leave_type": "Medical leave", "year": YEAR, "total_days": 0},
    )
    response = client.get("/api/leave/balances/granted", headers=employee_headers)
    assert response.status_code == 200
    assert [b["leave_type"] for b in response.json()] == ["Casual leave"]

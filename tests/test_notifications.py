import pytest
import requests

from hr_leave.core.config import NotificationSettings
from hr_leave.models.notification import Notification
from hr_leave.schemas.notification import LeaveEvent
from hr_leave.services.notification import (
    InAppNotificationSink,
    NotificationDispatcher,
    NotificationService,
    WebhookNotificationSink,
    build_dispatcher,
    notify_safely,
)

YEAR = 2025


def _event(type="leave_request.approved", status="approved"):
    return LeaveEvent(
        type=type,
        employee_id="emp-1",
        leave_type="Casual leave",
        days=3,
        status=status,
        request_id=7,
    )


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class FakeHttp:
    """Stands in for requests.Session; replays a scripted list of outcomes."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []
        self.closed = False

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


def test_render_messages():
    title, message, severity = NotificationService.render(_event())
    assert title == "Leave Approved"
    assert message == "Your Casual leave request for 3 days has been APPROVED."
    assert severity == "success"

    title, _, severity = NotificationService.render(_event("leave_request.rejected", "rejected"))
    assert (title, severity) == ("Leave Rejected", "error")

    title, message, severity = NotificationService.render(_event("leave_request.created", "pending"))
    assert (title, severity) == ("New Leave Request", "info")
    assert message == "emp-1 requested 3 days of Casual leave; pending review."


def test_notify_safely_swallows_errors():
    def broken(event):
        raise RuntimeError("boom")

    notify_safely(broken, _event())
    notify_safely(None, _event())


def test_dispatcher_keeps_going_after_failing_sink():
    delivered = []

    def broken(event):
        raise RuntimeError("sink down")

    dispatcher = NotificationDispatcher([broken, delivered.append])
    dispatcher.publish(_event())
    assert len(delivered) == 1


def test_in_app_sink_stores_notification(session_factory, db_session):
    InAppNotificationSink(session_factory)(_event())
    stored = db_session.query(Notification).one()
    assert stored.user_id == "emp-1"
    assert stored.title == "Leave Approved"
    assert stored.type == "success"
    assert stored.event_type == "leave_request.approved"
    assert stored.request_id == 7
    assert stored.is_read is False


def test_in_app_sink_routes_new_requests_to_reviewers(session_factory, db_session):
    sink = InAppNotificationSink(session_factory, reviewer_inbox="leave-desk")
    sink(_event("leave_request.created", "pending"))
    sink(_event("leave_request.rejected", "rejected"))

    stored = {n.event_type: n.user_id for n in db_session.query(Notification).all()}
    assert stored == {"leave_request.created": "leave-desk", "leave_request.rejected": "emp-1"}


def test_webhook_sink_posts_event_json():
    http = FakeHttp([FakeResponse(200)])
    sink = WebhookNotificationSink("http://notify.local/hook", timeout_seconds=1.5, http=http)
    sink(_event())

    assert len(http.calls) == 1
    call = http.calls[0]
    assert call["url"] == "http://notify.local/hook"
    assert call["timeout"] == 1.5
    assert call["json"]["type"] == "leave_request.approved"
    assert call["json"]["request_id"] == 7
    assert isinstance(call["json"]["occurred_at"], str)


def test_webhook_sink_retries_transient_failures():
    http = FakeHttp([requests.ConnectionError("refused"), FakeResponse(200)])
    WebhookNotificationSink("http://notify.local/hook", max_attempts=2, http=http)(_event())
    assert len(http.calls) == 2


def test_webhook_sink_gives_up_after_max_attempts():
    http = FakeHttp([FakeResponse(503), FakeResponse(503)])
    sink = WebhookNotificationSink("http://notify.local/hook", max_attempts=2, http=http)
    with pytest.raises(requests.HTTPError):
        sink(_event())
    assert len(http.calls) == 2

    # Through the dispatcher the failure stays contained
    http.outcomes = [FakeResponse(503), FakeResponse(503)]
    NotificationDispatcher([sink]).publish(_event())


def test_build_dispatcher_from_settings(session_factory):
    dispatcher = build_dispatcher(
        session_factory,
        NotificationSettings(webhook_url="http://notify.local/hook", in_app_enabled=True),
    )
    assert [s.name for s in dispatcher.sinks] == ["in_app", "webhook"]
    dispatcher.close()

    dispatcher = build_dispatcher(session_factory, NotificationSettings(webhook_url=None, in_app_enabled=False))
    assert dispatcher.sinks == []


def test_dispatcher_close_releases_sinks():
    http = FakeHttp([])
    NotificationDispatcher([WebhookNotificationSink("http://notify.local/hook", http=http)]).close()
    assert http.closed is True


# --- API ---

def test_workflow_publishes_events(client, recorder, hr_headers, employee_headers):
    client.post(
        "/api/leave/balances",
        headers=hr_headers,
        json={"employee_id": "emp-1", "leave_type": "Casual leave", "year": YEAR, "total_days": 12},
    )
    req_id = client.post(
        "/api/leave/requests",
        headers=employee_headers,
        json={
            "leave_type": "Casual leave",
            "start_date": f"{YEAR}-03-10",
            "end_date": f"{YEAR}-03-12",
            "days_requested": 3,
        },
    ).json()["id"]
    client.post(f"/api/leave/requests/{req_id}/transition", headers=hr_headers, json={"status": "approved"})

    assert [e.type for e in recorder.events] == ["leave_request.created", "leave_request.approved"]
    assert all(e.request_id == req_id for e in recorder.events)

    # A refused transition publishes nothing
    client.post(f"/api/leave/requests/{req_id}/transition", headers=hr_headers, json={"status": "rejected"})
    assert len(recorder.events) == 2


def test_failing_sink_does_not_fail_transition(client, dispatcher, hr_headers, employee_headers):
    def broken(event):
        raise RuntimeError("push gateway down")

    dispatcher.sinks.insert(0, broken)
    req_id = client.post(
        "/api/leave/requests",
        headers=employee_headers,
        json={
            "leave_type": "Casual leave",
            "start_date": f"{YEAR}-03-10",
            "end_date": f"{YEAR}-03-12",
            "days_requested": 3,
        },
    ).json()["id"]
    response = client.post(
        f"/api/leave/requests/{req_id}/transition", headers=hr_headers, json={"status": "rejected"}
    )
    assert response.status_code == 200
    assert response.json()["status"] == "rejected"


def test_notification_endpoints(client, hr_headers, employee_headers, other_employee_headers):
    req_id = client.post(
        "/api/leave/requests",
        headers=employee_headers,
        json={
            "leave_type": "Casual leave",
            "start_date": f"{YEAR}-03-10",
            "end_date": f"{YEAR}-03-12",
            "days_requested": 3,
        },
    ).json()["id"]
    client.post(
        f"/api/leave/requests/{req_id}/transition",
        headers=hr_headers,
        json={"status": "rejected", "admin_notes": "team offsite"},
    )

    notifications = client.get("/api/notifications", headers=employee_headers).json()
    assert [n["title"] for n in notifications] == ["Leave Rejected"]
    assert notifications[0]["request_id"] == req_id

    # New requests land in the reviewer inbox shared by admin and HR
    reviews = client.get("/api/notifications", headers=hr_headers).json()
    assert [n["title"] for n in reviews] == ["New Leave Request"]
    assert reviews[0]["request_id"] == req_id
    assert reviews[0]["message"] == "emp-1 requested 3 days of Casual leave; pending review."
    admin = client.get("/api/notifications", headers={"X-User-Id": "admin-1", "X-Role": "admin"}).json()
    assert [n["id"] for n in admin] == [reviews[0]["id"]]

    assert client.get("/api/notifications", headers=other_employee_headers).json() == []

    # Another user's notification looks absent
    response = client.patch(f"/api/notifications/{notifications[0]['id']}/read", headers=other_employee_headers)
    assert response.status_code == 404
    response = client.patch(f"/api/notifications/{reviews[0]['id']}/read", headers=employee_headers)
    assert response.status_code == 404

    response = client.patch(f"/api/notifications/{reviews[0]['id']}/read", headers=hr_headers)
    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert client.get("/api/notifications?unread_only=true", headers=hr_headers).json() == []

    unread = client.get("/api/notifications?unread_only=true", headers=employee_headers).json()
    assert [n["title"] for n in unread] == ["Leave Rejected"]

    assert client.post("/api/notifications/mark-all-read", headers=employee_headers).status_code == 200
    assert client.get("/api/notifications?unread_only=true", headers=employee_headers).json() == []

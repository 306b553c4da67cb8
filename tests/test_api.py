"""
HTTP tests for the EduTrack API.
"""
import pytest
from fastapi.testclient import TestClient

import api.routes
from main import app
from rbac import AuthorizationService, Ownership


class OutageResolver:
    """Every ownership lookup fails as if the store were down."""
    
    def teacher_owns_class(self, teacher_id, class_id):
        return Ownership.UNKNOWN
    
    def student_enrolled_in_class(self, student_id, class_id):
        return Ownership.UNKNOWN
    
    def parent_of_child(self, parent_id, child_id):
        return Ownership.UNKNOWN
    
    def guardian_of_student_in_class(self, parent_id, class_id):
        return Ownership.UNKNOWN


@pytest.fixture
def client(world):
    with TestClient(app) as test_client:
        yield test_client


def as_user(user_id):
    return {"X-User-Id": str(user_id)}


def reason_of(response):
    return response.json()["detail"]["reason"]


class TestHealth:
    
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "online"
    
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestAuthentication:
    
    def test_missing_header(self, client):
        assert client.get("/users/me").status_code == 401
    
    def test_unknown_user(self, client):
        assert client.get("/users/me", headers=as_user(999999)).status_code == 401
    
    def test_me(self, client, world):
        response = client.get("/users/me", headers=as_user(world.teacher))
        
        assert response.status_code == 200
        body = response.json()
        assert body["role"] == "TEACHER"
        assert body["school_id"] == world.north
        assert "grades:update" in body["permissions"]
        assert "grades:delete" not in body["permissions"]
        assert "email" not in body
    
    def test_me_inactive_has_no_permissions(self, client, world):
        body = client.get("/users/me", headers=as_user(world.inactive_teacher)).json()
        assert body["is_active"] is False
        assert body["permissions"] == []


class TestAuthorizeEndpoint:
    
    def test_allowed(self, client, world):
        response = client.post(
            "/authorize",
            json={"resource": "grades", "action": "update", "school_id": world.north, "class_id": world.class_a},
            headers=as_user(world.teacher),
        )
        assert response.status_code == 200
        assert response.json() == {"allowed": True, "reason": None, "retryable": False}
    
    def test_not_owner(self, client, world):
        response = client.post(
            "/authorize",
            json={"resource": "grades", "action": "update", "school_id": world.north, "class_id": world.class_b},
            headers=as_user(world.teacher),
        )
        assert response.json()["reason"] == "NOT_OWNER"
    
    def test_parent_child(self, client, world):
        response = client.post(
            "/authorize",
            json={"resource": "financials", "action": "process_payment", "school_id": world.north, "student_id": world.student},
            headers=as_user(world.parent),
        )
        assert response.json()["allowed"] is True
    
    def test_parent_other_class(self, client, world):
        response = client.post(
            "/authorize",
            json={"resource": "grades", "action": "list", "school_id": world.north, "class_id": world.class_b},
            headers=as_user(world.parent),
        )
        assert response.json()["reason"] == "NOT_GUARDIAN"
    
    def test_unsupported_action(self, client, world):
        response = client.post(
            "/authorize",
            json={"resource": "grades", "action": "process_payment"},
            headers=as_user(world.clerk),
        )
        assert response.status_code == 400
    
    def test_unknown_resource(self, client, world):
        response = client.post(
            "/authorize",
            json={"resource": "homework", "action": "read"},
            headers=as_user(world.clerk),
        )
        assert response.status_code == 422


class TestPrincipalDashboard:
    
    def test_alerts(self, client, world, activity):
        response = client.get("/dashboard/principal/alerts", headers=as_user(world.principal))
        
        assert response.status_code == 200
        ids = [alert["id"] for alert in response.json()["alerts"]]
        assert ids == [f"attendance-{world.class_a}", f"attendance-{world.class_b}", "fees-pending", "events-upcoming"]
    
    @pytest.mark.parametrize("user,reason", [
        ("teacher", "ROLE_LACKS_PERMISSION"),
        ("parent", "ROLE_LACKS_PERMISSION"),
        ("inactive_teacher", "ACCOUNT_INACTIVE"),
        ("bogus", "INVALID_ROLE"),
    ])
    def test_alerts_denied(self, client, world, user, reason):
        response = client.get("/dashboard/principal/alerts", headers=as_user(getattr(world, user)))
        assert response.status_code == 403
        assert reason_of(response) == reason
    
    def test_trends(self, client, world, activity):
        response = client.get("/dashboard/principal/attendance-trends", params={"days": 3}, headers=as_user(world.principal))
        
        assert response.status_code == 200
        body = response.json()
        assert [point["rate"] for point in body["trends"]] == [50.0, 80.0, None]
        assert body["current_average"] == 65.0
    
    def test_trends_default_window(self, client, world):
        body = client.get("/dashboard/principal/attendance-trends", headers=as_user(world.principal)).json()
        assert len(body["trends"]) == 30
    
    @pytest.mark.parametrize("days", [0, 731])
    def test_trends_window_bounds(self, client, world, days):
        response = client.get("/dashboard/principal/attendance-trends", params={"days": days}, headers=as_user(world.principal))
        assert response.status_code == 400


class TestTeacherDashboard:
    
    def test_alerts(self, client, world, activity):
        response = client.get("/teacher/alerts", headers=as_user(world.teacher))
        
        assert response.status_code == 200
        titles = [alert["title"] for alert in response.json()["alerts"]]
        assert titles[:2] == ["Overdue Grading", "Low Attendance Alert"]
    
    def test_tasks(self, client, world, activity):
        response = client.get("/teacher/tasks/pending", headers=as_user(world.teacher))
        
        assert response.status_code == 200
        ids = [task["id"] for task in response.json()["tasks"]]
        assert ids == [f"grading-{activity.essay}", "messages-unread", f"grading-{activity.quiz}"]
    
    def test_student_denied(self, client, world):
        response = client.get("/teacher/tasks/pending", headers=as_user(world.student))
        assert response.status_code == 403
        assert reason_of(response) == "ROLE_LACKS_PERMISSION"


class TestClassAttendance:
    
    def test_own_class(self, client, world, activity):
        response = client.get(f"/classes/{world.class_a}/attendance-rate", headers=as_user(world.teacher))
        
        assert response.status_code == 200
        assert response.json()["rate"] == 50.0
        assert response.json()["priority"] == "high"
    
    def test_other_class(self, client, world):
        response = client.get(f"/classes/{world.class_b}/attendance-rate", headers=as_user(world.teacher))
        assert response.status_code == 403
        assert reason_of(response) == "NOT_OWNER"
    
    def test_other_school(self, client, world):
        response = client.get(f"/classes/{world.class_c}/attendance-rate", headers=as_user(world.teacher))
        assert response.status_code == 403
        assert reason_of(response) == "CROSS_TENANT"
    
    def test_principal_any_class_in_school(self, client, world, activity):
        response = client.get(f"/classes/{world.class_b}/attendance-rate", headers=as_user(world.principal))
        assert response.status_code == 200
        assert response.json()["rate"] == 80.0
    
    def test_missing_class(self, client, world):
        response = client.get("/classes/999999/attendance-rate", headers=as_user(world.principal))
        assert response.status_code == 404
    
    def test_ownership_outage_is_503(self, client, world, monkeypatch):
        monkeypatch.setattr(api.routes, "get_authorization_service", lambda db: AuthorizationService(OutageResolver()))
        
        response = client.get(f"/classes/{world.class_a}/attendance-rate", headers=as_user(world.teacher))
        
        assert response.status_code == 503
        assert reason_of(response) == "OWNERSHIP_CHECK_FAILED"


class TestAuditLogs:
    
    def test_principal_sees_own_school(self, client, world):
        client.get("/dashboard/principal/alerts", headers=as_user(world.teacher))
        
        response = client.get("/audit-logs", headers=as_user(world.principal))
        
        assert response.status_code == 200
        body = response.json()
        assert body["total"] >= 2
        assert body["summary"]["denied"] >= 1
        assert body["summary"]["allowed"] >= 1
        assert all(entry["school_id"] == world.north for entry in body["entries"])
    
    def test_principal_cannot_reach_other_school(self, client, world):
        response = client.get("/audit-logs", params={"school_id": world.south}, headers=as_user(world.principal))
        assert response.status_code == 403
        assert reason_of(response) == "CROSS_TENANT"
    
    def test_admin_reaches_any_school(self, client, world):
        response = client.get("/audit-logs", params={"school_id": world.south}, headers=as_user(world.admin))
        assert response.status_code == 200
    
    def test_teacher_denied(self, client, world):
        response = client.get("/audit-logs", headers=as_user(world.teacher))
        assert response.status_code == 403

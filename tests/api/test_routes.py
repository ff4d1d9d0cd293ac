"""HTTP tests for the learning flow, access control and error envelope."""

from uuid import uuid4

import httpx
import pytest

from codearc.auth.permissions import UserRole
from codearc.auth.security import hash_password
from codearc.progress.certificate import HttpCertificateRenderer


@pytest.fixture
def people(run, make_user):
    """An admin, an approved mentor and a student."""
    return {
        "admin": run(make_user(UserRole.ADMIN, "Ada Admin")),
        "mentor": run(make_user(UserRole.MENTOR, "Maria Mentor")),
        "student": run(make_user(UserRole.STUDENT, "Sam Student")),
    }


@pytest.fixture
def course(run, make_course, people):
    """A three-chapter course owned by the mentor."""
    return run(make_course(people["mentor"], "Python Basics", chapters=3))


class TestErrorEnvelope:
    """Every error shares one response shape."""

    def test_missing_token(self, client) -> None:
        response = client.get("/v1/progress/dashboard")

        assert response.status_code == 401
        body = response.json()
        assert body["error"] is True
        assert body["status_code"] == 401
        assert body["code"] == "http_error"
        assert "message" in body
        assert "request_id" in body

    def test_garbage_token(self, client) -> None:
        response = client.get(
            "/v1/progress/dashboard", headers={"Authorization": "Bearer nonsense"}
        )
        assert response.status_code == 401

    def test_wrong_role(self, client, people, auth_headers) -> None:
        response = client.get(
            "/v1/progress/dashboard", headers=auth_headers(people["mentor"])
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Insufficient permissions"

    def test_domain_error(self, client, people, auth_headers) -> None:
        response = client.post(
            f"/v1/enrollments/{uuid4()}", headers=auth_headers(people["student"])
        )

        assert response.status_code == 404
        assert response.json()["code"] == "course_not_found"

    def test_request_validation(self, client, people, auth_headers) -> None:
        response = client.post(
            "/v1/courses", json={"title": ""}, headers=auth_headers(people["mentor"])
        )

        assert response.status_code == 422
        assert response.json()["error"] is True


class TestLearningFlow:
    """Enroll, follow the chapter sequence, finish the course."""

    def test_full_course(self, client, session, people, course, auth_headers) -> None:
        course_obj, chapters = course
        headers = auth_headers(people["student"])

        enrolled = client.post(f"/v1/enrollments/{course_obj.id}", headers=headers)
        assert enrolled.status_code == 201

        content = client.get(f"/v1/courses/{course_obj.id}/content", headers=headers)
        assert content.status_code == 200
        locks = [c["is_locked"] for c in content.json()["chapters"]]
        assert locks == [False, True, True]
        assert content.json()["chapters"][1]["video_url"] is None

        skipped = client.post(
            f"/v1/progress/chapters/{chapters[1].id}/complete", headers=headers
        )
        assert skipped.status_code == 409
        assert skipped.json()["code"] == "sequence_violation"
        assert skipped.json()["message"] == "You must complete the previous chapter first."

        progress = []
        for chapter in chapters:
            response = client.post(
                f"/v1/progress/chapters/{chapter.id}/complete", headers=headers
            )
            assert response.status_code == 200
            progress.append(response.json()["progress"])
        assert progress == [33, 67, 100]
        assert response.json()["course_completed"] is True
        assert response.json()["state"] == "completed"

        dashboard = client.get("/v1/progress/dashboard", headers=headers).json()
        assert dashboard["stats"] == {
            "enrolled": 1,
            "completed": 1,
            "in_progress": 0,
            "certificates": 1,
        }

        mine = client.get("/v1/enrollments", headers=headers).json()
        assert [c["progress"] for c in mine] == [100]
        assert mine[0]["course"]["mentor_name"] == "Maria Mentor"

    def test_double_enroll(self, client, people, course, auth_headers) -> None:
        course_obj, _ = course
        headers = auth_headers(people["student"])

        client.post(f"/v1/enrollments/{course_obj.id}", headers=headers)
        again = client.post(f"/v1/enrollments/{course_obj.id}", headers=headers)

        assert again.status_code == 409
        assert again.json()["message"] == "Already enrolled"

    def test_unenroll(self, client, people, course, auth_headers) -> None:
        course_obj, _ = course
        headers = auth_headers(people["student"])
        client.post(f"/v1/enrollments/{course_obj.id}", headers=headers)

        response = client.delete(f"/v1/enrollments/{course_obj.id}", headers=headers)

        assert response.status_code == 204
        assert client.get("/v1/enrollments", headers=headers).json() == []

    def test_not_enrolled_cannot_complete(
        self, client, people, course, auth_headers
    ) -> None:
        _, chapters = course
        response = client.post(
            f"/v1/progress/chapters/{chapters[0].id}/complete",
            headers=auth_headers(people["student"]),
        )
        assert response.status_code == 403


class TestCourseAuthoring:
    def test_mentor_creates_course_and_chapter(
        self, client, people, auth_headers
    ) -> None:
        headers = auth_headers(people["mentor"])

        created = client.post(
            "/v1/courses", json={"title": "Rust Basics"}, headers=headers
        )
        assert created.status_code == 201
        course_id = created.json()["id"]

        chapter = client.post(
            f"/v1/courses/{course_id}/chapters",
            json={"title": "Ownership", "sequence": 1},
            headers=headers,
        )
        assert chapter.status_code == 201

        listed = client.get(f"/v1/courses/{course_id}/chapters", headers=headers)
        assert [c["title"] for c in listed.json()] == ["Ownership"]

    def test_other_mentor_is_forbidden(
        self, client, run, make_user, course, auth_headers
    ) -> None:
        course_obj, _ = course
        intruder = run(make_user(UserRole.MENTOR, "Ivan Intruder"))

        response = client.post(
            f"/v1/courses/{course_obj.id}/chapters",
            json={"title": "Sneaky", "sequence": 4},
            headers=auth_headers(intruder),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "not_course_owner"

    def test_unapproved_mentor_cannot_author(
        self, client, run, make_user, auth_headers
    ) -> None:
        pending = run(make_user(UserRole.MENTOR, approved=False))

        response = client.post(
            "/v1/courses", json={"title": "Too Soon"}, headers=auth_headers(pending)
        )

        assert response.status_code == 403

    def test_students_cannot_author(self, client, people, auth_headers) -> None:
        response = client.post(
            "/v1/courses",
            json={"title": "Mine Now"},
            headers=auth_headers(people["student"]),
        )
        assert response.status_code == 403

    def test_catalog_for_student(self, client, people, course, auth_headers) -> None:
        response = client.get("/v1/courses", headers=auth_headers(people["student"]))

        assert response.status_code == 200
        [entry] = response.json()
        assert entry["title"] == "Python Basics"
        assert entry["is_enrolled"] is False
        assert entry["mentor_name"] == "Maria Mentor"

    def test_mentor_assigns_student(self, client, people, course, auth_headers) -> None:
        course_obj, _ = course

        response = client.post(
            f"/v1/courses/{course_obj.id}/students",
            json={"student_id": str(people["student"].id)},
            headers=auth_headers(people["mentor"]),
        )
        assert response.status_code == 201

        students = client.get(
            f"/v1/courses/{course_obj.id}/students",
            headers=auth_headers(people["mentor"]),
        )
        assert [s["name"] for s in students.json()] == ["Sam Student"]


class TestCertificate:
    def test_download(
        self, client, services, people, course, auth_headers
    ) -> None:
        course_obj, chapters = course
        headers = auth_headers(people["student"])
        services.progress_service.renderer = HttpCertificateRenderer(
            "http://renderer.internal/render",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(
                    200,
                    content=b"%PDF-1.7",
                    headers={"content-type": "application/pdf"},
                )
            ),
        )
        client.post(f"/v1/enrollments/{course_obj.id}", headers=headers)
        for chapter in chapters:
            client.post(f"/v1/progress/chapters/{chapter.id}/complete", headers=headers)

        response = client.get(
            f"/v1/progress/courses/{course_obj.id}/certificate", headers=headers
        )

        assert response.status_code == 200
        assert response.content == b"%PDF-1.7"
        assert response.headers["content-type"] == "application/pdf"
        assert "certificate-python-basics.pdf" in response.headers["content-disposition"]

    def test_not_eligible(self, client, people, course, auth_headers) -> None:
        course_obj, _ = course
        headers = auth_headers(people["student"])
        client.post(f"/v1/enrollments/{course_obj.id}", headers=headers)

        response = client.get(
            f"/v1/progress/courses/{course_obj.id}/certificate", headers=headers
        )

        assert response.status_code == 403
        assert response.json()["code"] == "not_eligible"

    def test_renderer_down(self, client, services, people, course, auth_headers) -> None:
        course_obj, chapters = course
        headers = auth_headers(people["student"])
        services.progress_service.renderer = HttpCertificateRenderer(
            "http://renderer.internal/render",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        client.post(f"/v1/enrollments/{course_obj.id}", headers=headers)
        for chapter in chapters:
            client.post(f"/v1/progress/chapters/{chapter.id}/complete", headers=headers)

        response = client.get(
            f"/v1/progress/courses/{course_obj.id}/certificate", headers=headers
        )

        assert response.status_code == 502
        assert response.json()["code"] == "render_failure"


class TestNotificationsAndChat:
    def test_inbox(self, client, people, course, auth_headers) -> None:
        course_obj, _ = course
        client.post(
            f"/v1/enrollments/{course_obj.id}", headers=auth_headers(people["student"])
        )
        headers = auth_headers(people["mentor"])

        inbox = client.get("/v1/notifications", headers=headers).json()
        assert [n["title"] for n in inbox["items"]] == ["New Enrollment"]
        assert inbox["unread_count"] == 1

        marked = client.post(
            "/v1/notifications/mark-read",
            json={"notification_ids": [inbox["items"][0]["id"]]},
            headers=headers,
        )
        assert marked.json() == {"marked": 1}
        count = client.get("/v1/notifications/unread-count", headers=headers)
        assert count.json() == {"count": 0}

    def test_chat(self, client, people, auth_headers) -> None:
        student, mentor = people["student"], people["mentor"]

        sent = client.post(
            "/v1/chat/messages",
            json={"receiver_id": str(mentor.id), "content": "Hello!"},
            headers=auth_headers(student),
        )
        assert sent.status_code == 201

        contacts = client.get("/v1/chat/contacts", headers=auth_headers(mentor)).json()
        by_id = {c["id"]: c for c in contacts}
        assert by_id[str(student.id)]["unread_count"] == 1

        history = client.get(
            f"/v1/chat/messages/{student.id}", headers=auth_headers(mentor)
        ).json()
        assert [m["content"] for m in history] == ["Hello!"]


class TestAdmin:
    def test_stats(self, client, people, course, auth_headers) -> None:
        course_obj, chapters = course
        student_headers = auth_headers(people["student"])
        client.post(f"/v1/enrollments/{course_obj.id}", headers=student_headers)
        for chapter in chapters:
            client.post(
                f"/v1/progress/chapters/{chapter.id}/complete", headers=student_headers
            )

        response = client.get("/v1/admin/stats", headers=auth_headers(people["admin"]))

        assert response.status_code == 200
        assert response.json() == {
            "users": {"students": 1, "mentors": 1, "admins": 1},
            "courses": 1,
            "enrollments": 1,
            "completions": 1,
        }

    def test_mentor_cannot_see_stats(self, client, people, auth_headers) -> None:
        response = client.get("/v1/admin/stats", headers=auth_headers(people["mentor"]))
        assert response.status_code == 403

    def test_approve_mentor(self, client, run, make_user, people, auth_headers) -> None:
        pending = run(make_user(UserRole.MENTOR, approved=False))

        response = client.patch(
            f"/v1/admin/users/{pending.id}/approval",
            json={"is_approved": True},
            headers=auth_headers(people["admin"]),
        )

        assert response.status_code == 200
        assert response.json()["is_approved"] is True

    def test_broadcast(self, client, people, auth_headers) -> None:
        response = client.post(
            "/v1/admin/notifications/broadcast",
            json={"role": "student", "title": "Welcome", "message": "Term starts Monday"},
            headers=auth_headers(people["admin"]),
        )

        assert response.status_code == 200
        assert response.json() == {"delivered": 1}

    def test_delete_mentor_removes_their_courses(
        self, client, people, course, auth_headers
    ) -> None:
        response = client.delete(
            f"/v1/admin/users/{people['mentor'].id}",
            headers=auth_headers(people["admin"]),
        )
        assert response.status_code == 204

        catalog = client.get("/v1/courses", headers=auth_headers(people["student"]))
        assert catalog.json() == []


class TestAccount:
    def test_change_password(self, client, run, make_user, auth_headers) -> None:
        user = run(make_user(UserRole.STUDENT, password_hash=hash_password("secret1")))

        response = client.post(
            "/v1/auth/change-password",
            json={"old_password": "secret1", "new_password": "n3w-secret"},
            headers=auth_headers(user),
        )
        assert response.status_code == 200
        assert response.json() == {"message": "Password updated successfully"}

        login = client.post(
            "/v1/auth/login", json={"email": user.email, "password": "n3w-secret"}
        )
        assert login.status_code == 200

    def test_wrong_old_password(self, client, run, make_user, auth_headers) -> None:
        user = run(make_user(UserRole.MENTOR, password_hash=hash_password("secret1")))

        response = client.post(
            "/v1/auth/change-password",
            json={"old_password": "nope", "new_password": "n3w-secret"},
            headers=auth_headers(user),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_old_password"
        assert response.json()["message"] == "Invalid old password"

    def test_new_password_too_short(self, client, people, auth_headers) -> None:
        response = client.post(
            "/v1/auth/change-password",
            json={"old_password": "secret1", "new_password": "12345"},
            headers=auth_headers(people["student"]),
        )
        assert response.status_code == 422

    def test_requires_login(self, client) -> None:
        response = client.post(
            "/v1/auth/change-password",
            json={"old_password": "secret1", "new_password": "n3w-secret"},
        )
        assert response.status_code == 401


class TestStudentDirectory:
    def test_plain_listing(self, client, people, auth_headers) -> None:
        response = client.get("/v1/users/students", headers=auth_headers(people["mentor"]))

        assert response.status_code == 200
        [entry] = response.json()
        assert entry["name"] == "Sam Student"
        assert entry["is_enrolled"] is None

    def test_marks_enrollment_for_course(
        self, client, run, make_user, people, course, auth_headers
    ) -> None:
        course_obj, _ = course
        other = run(make_user(UserRole.STUDENT, "Olga Other"))
        client.post(
            f"/v1/enrollments/{course_obj.id}", headers=auth_headers(people["student"])
        )

        response = client.get(
            "/v1/users/students",
            params={"course_id": str(course_obj.id)},
            headers=auth_headers(people["mentor"]),
        )

        assert response.status_code == 200
        enrolled = {s["id"]: s["is_enrolled"] for s in response.json()}
        assert enrolled == {str(people["student"].id): True, str(other.id): False}

    def test_unknown_course(self, client, people, auth_headers) -> None:
        response = client.get(
            "/v1/users/students",
            params={"course_id": str(uuid4())},
            headers=auth_headers(people["admin"]),
        )
        assert response.status_code == 404

    def test_students_cannot_list(self, client, people, auth_headers) -> None:
        response = client.get(
            "/v1/users/students", headers=auth_headers(people["student"])
        )
        assert response.status_code == 403

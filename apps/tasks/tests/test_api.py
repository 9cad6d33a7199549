"""
Integration tests for task API endpoints.
Tests responses, ownership/role checks and multipart handling end to end.
"""
import json
from uuid import uuid4

from django.test import Client
from django.test.client import BOUNDARY, MULTIPART_CONTENT, encode_multipart

from apps.identity.models import UserRole
from apps.tasks.models import Task, TaskAttachment
from .helpers import MediaTestCase, make_user, auth_header, pdf, png


class TaskAPITest(MediaTestCase):
    """Ownership and role rules across the task endpoints."""

    def setUp(self):
        super().setUp()
        self.client = Client()
        self.alice = make_user("alice@example.com")
        self.bob = make_user("bob@example.com", role=UserRole.ADMIN)
        self.carol = make_user("carol@example.com")

    def create_task(self, user, assignee=None, files=None, **fields):
        data = {
            "title": "Ship release",
            "description": "Tag and publish",
            "dueDate": "2030-06-30",
            "assignedTo": str((assignee or user).id),
        }
        data.update(fields)
        if files:
            data["documents"] = files
        return self.client.post("/api/tasks", data=data, **auth_header(user))

    def test_requires_token(self):
        self.assertEqual(self.client.get("/api/tasks").status_code, 401)
        response = self.client.get("/api/tasks", HTTP_AUTHORIZATION="Bearer not-a-jwt")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "No valid token, authorization denied")

    def test_create_task(self):
        response = self.create_task(self.alice, files=[pdf("brief.pdf")])
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["status"], "pending")
        self.assertEqual(data["priority"], "medium")
        self.assertEqual(data["due_date"], "2030-06-30")
        self.assertEqual(data["assigned_to"]["email"], "alice@example.com")
        self.assertEqual(data["created_by"]["email"], "alice@example.com")
        self.assertEqual(len(data["documents"]), 1)
        self.assertEqual(data["documents"][0]["original_name"], "brief.pdf")
        self.assertEqual(data["documents"][0]["size"], len(b"%PDF-1.4 test"))

    def test_create_with_missing_fields(self):
        response = self.client.post("/api/tasks", data={"title": "Only a title"}, **auth_header(self.alice))
        self.assertEqual(response.status_code, 400)
        self.assertIn("description", response.json()["errors"])
        self.assertFalse(Task.objects.exists())

    def test_create_with_unknown_assignee(self):
        response = self.create_task(self.alice, assignedTo=str(uuid4()))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Assigned user not found")
        self.assertFalse(Task.objects.exists())

    def test_create_with_disallowed_upload(self):
        script = pdf("run.sh")
        response = self.create_task(self.alice, files=[script])
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Task.objects.exists())

    def test_admin_only_all_tasks(self):
        self.create_task(self.alice)

        response = self.client.get("/api/tasks/all", **auth_header(self.bob))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), 1)

        response = self.client.get("/api/tasks/all", **auth_header(self.alice))
        self.assertEqual(response.status_code, 403)

    def test_my_tasks_only_lists_assigned(self):
        self.create_task(self.alice)
        self.create_task(self.bob, assignee=self.carol, title="For Carol")

        titles = [t["title"] for t in self.client.get("/api/tasks", **auth_header(self.alice)).json()]
        self.assertEqual(titles, ["Ship release"])
        titles = [t["title"] for t in self.client.get("/api/tasks", **auth_header(self.carol)).json()]
        self.assertEqual(titles, ["For Carol"])

    def test_list_rejects_unknown_sort(self):
        response = self.client.get("/api/tasks?sort=random", **auth_header(self.alice))
        self.assertEqual(response.status_code, 400)

    def test_read_access(self):
        task_id = self.create_task(self.alice).json()["id"]
        self.assertEqual(self.client.get(f"/api/tasks/{task_id}", **auth_header(self.alice)).status_code, 200)
        self.assertEqual(self.client.get(f"/api/tasks/{task_id}", **auth_header(self.bob)).status_code, 200)
        self.assertEqual(self.client.get(f"/api/tasks/{task_id}", **auth_header(self.carol)).status_code, 403)

    def test_unknown_and_malformed_ids(self):
        self.assertEqual(self.client.get(f"/api/tasks/{uuid4()}", **auth_header(self.bob)).status_code, 404)
        self.assertEqual(self.client.get("/api/tasks/12345", **auth_header(self.bob)).status_code, 404)
        self.assertEqual(self.client.delete("/api/tasks/12345", **auth_header(self.bob)).status_code, 404)

    def test_delete_access(self):
        task_id = self.create_task(self.alice).json()["id"]

        response = self.client.delete(f"/api/tasks/{task_id}", **auth_header(self.carol))
        self.assertEqual(response.status_code, 403)
        self.assertTrue(Task.objects.filter(id=task_id).exists())

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.delete(f"/api/tasks/{task_id}", **auth_header(self.alice))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Task removed")
        self.assertFalse(Task.objects.filter(id=task_id).exists())

    def test_admin_deletes_any_task(self):
        task_id = self.create_task(self.alice).json()["id"]
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.delete(f"/api/tasks/{task_id}", **auth_header(self.bob))
        self.assertEqual(response.status_code, 200)


class TaskUpdateAPITest(MediaTestCase):
    """PUT arrives as multipart; fields are replaced and uploads appended."""

    def setUp(self):
        super().setUp()
        self.client = Client()
        self.alice = make_user("alice@example.com")
        self.carol = make_user("carol@example.com")
        response = self.client.post("/api/tasks", data={
            "title": "Draft",
            "description": "First pass",
            "dueDate": "2030-01-01",
            "assignedTo": str(self.alice.id),
            "documents": [pdf("a.pdf"), png("b.png")],
        }, **auth_header(self.alice))
        self.task_id = response.json()["id"]

    def put(self, user, data):
        return self.client.put(
            f"/api/tasks/{self.task_id}",
            data=encode_multipart(BOUNDARY, data),
            content_type=MULTIPART_CONTENT,
            **auth_header(user),
        )

    def form(self, **overrides):
        data = {
            "title": "Final",
            "description": "Second pass",
            "status": "completed",
            "priority": "low",
            "dueDate": "2030-02-01",
            "assignedTo": str(self.alice.id),
        }
        data.update(overrides)
        return data

    def test_update_fields(self):
        response = self.put(self.alice, self.form())
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["title"], "Final")
        self.assertEqual(data["status"], "completed")
        self.assertEqual(data["priority"], "low")
        self.assertEqual(data["due_date"], "2030-02-01")

    def test_update_appends_until_cap(self):
        response = self.put(self.alice, self.form(documents=[pdf("c.pdf"), pdf("d.pdf")]))
        self.assertEqual(response.status_code, 200)
        names = [d["original_name"] for d in response.json()["documents"]]
        self.assertEqual(names, ["a.pdf", "b.png", "c.pdf"])
        self.assertEqual(len(self.stored_files()), 3)

    def test_large_update_past_cap_keeps_what_fits(self):
        # Four 4.5 MB files: each under the per-file limit, ~18 MB in total
        big = [pdf(f"big{i}.pdf", size=int(4.5 * 1024 * 1024)) for i in range(4)]
        response = self.put(self.alice, self.form(documents=big))
        self.assertEqual(response.status_code, 200)
        names = [d["original_name"] for d in response.json()["documents"]]
        self.assertEqual(names, ["a.pdf", "b.png", "big0.pdf"])
        self.assertEqual(len(self.stored_files()), 3)

    def test_reassign_to_other_user(self):
        response = self.put(self.alice, self.form(assignedTo=str(self.carol.id)))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["assigned_to"]["id"], str(self.carol.id))
        # Alice no longer owns it
        self.assertEqual(self.client.get(f"/api/tasks/{self.task_id}", **auth_header(self.alice)).status_code, 403)

    def test_update_forbidden_for_unrelated_user(self):
        response = self.put(self.carol, self.form())
        self.assertEqual(response.status_code, 403)

    def test_update_validation(self):
        response = self.put(self.alice, self.form(title="", status="archived"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(set(response.json()["errors"]), {"title", "status"})

    def test_json_update_is_validated_not_crashed(self):
        response = self.client.put(
            f"/api/tasks/{self.task_id}",
            data=json.dumps({"title": "x"}),
            content_type="application/json",
            **auth_header(self.alice),
        )
        self.assertEqual(response.status_code, 400)


class DeleteDocumentAPITest(MediaTestCase):
    def setUp(self):
        super().setUp()
        self.client = Client()
        self.alice = make_user("alice@example.com")
        self.carol = make_user("carol@example.com")
        response = self.client.post("/api/tasks", data={
            "title": "With docs",
            "description": "Three files",
            "dueDate": "2030-01-01",
            "assignedTo": str(self.alice.id),
            "documents": [pdf("a.pdf"), pdf("b.pdf"), pdf("c.pdf")],
        }, **auth_header(self.alice))
        self.task = response.json()

    def test_delete_single_document(self):
        target = self.task["documents"][1]
        url = f"/api/tasks/{self.task['id']}/documents/{target['id']}"

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.delete(url, **auth_header(self.alice))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Document removed")

        remaining = self.client.get(f"/api/tasks/{self.task['id']}", **auth_header(self.alice)).json()
        self.assertEqual([d["original_name"] for d in remaining["documents"]], ["a.pdf", "c.pdf"])
        self.assertNotIn(target["path"], self.stored_files())
        self.assertEqual(len(self.stored_files()), 2)

    def test_delete_document_forbidden(self):
        target = self.task["documents"][0]
        url = f"/api/tasks/{self.task['id']}/documents/{target['id']}"
        self.assertEqual(self.client.delete(url, **auth_header(self.carol)).status_code, 403)
        self.assertEqual(TaskAttachment.objects.count(), 3)

    def test_delete_unknown_document(self):
        url = f"/api/tasks/{self.task['id']}/documents/{uuid4()}"
        response = self.client.delete(url, **auth_header(self.alice))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Document not found")

    def test_uploaded_file_is_served(self):
        path = self.task["documents"][0]["path"]
        response = self.client.get(f"/uploads/{path}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(b"".join(response.streaming_content), b"%PDF-1.4 test")

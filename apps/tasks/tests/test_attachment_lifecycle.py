"""
Stored files follow their attachment rows: removed after a committed
delete, kept when the delete rolls back.
"""
import os
from unittest import mock

from botocore.exceptions import ClientError
from django.core.files.storage import FileSystemStorage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import transaction
from django.test import SimpleTestCase, override_settings

from apps.tasks import services
from apps.tasks.attachment_service import (
    accept_uploads, remove_stored_files, resolve_mimetype, validate_upload_file,
)
from apps.tasks.dtos import TaskFormData
from apps.tasks.models import Task, TaskAttachment
from .helpers import MediaTestCase, make_user, pdf, png


class AttachmentLifecycleTest(MediaTestCase):
    def setUp(self):
        super().setUp()
        self.alice = make_user("alice@example.com")
        dto = services.create_task(
            self.alice,
            TaskFormData(
                title="Collect receipts", description="Expenses for March",
                due_date="2030-04-01", assigned_to=str(self.alice.id),
            ),
            [pdf("a.pdf"), png("b.png"), pdf("c.pdf")],
        )
        self.task = Task.objects.get(id=dto.id)
        self.paths = [d.path for d in dto.documents]

    def test_files_written_on_create(self):
        for name in self.paths:
            self.assertTrue(os.path.exists(self.stored_path(name)))

    def test_deleting_task_removes_every_file(self):
        with self.captureOnCommitCallbacks(execute=True):
            services.delete_task(self.task)
        self.assertFalse(TaskAttachment.objects.exists())
        self.assertEqual(self.stored_files(), [])

    def test_deleting_one_attachment_keeps_the_rest(self):
        target = self.task.documents.get(original_name="b.png")
        with self.captureOnCommitCallbacks(execute=True):
            self.assertTrue(services.delete_task_attachment(self.task, target.id))

        self.assertTrue(Task.objects.filter(id=self.task.id).exists())
        self.assertEqual(
            list(self.task.documents.values_list("original_name", flat=True)), ["a.pdf", "c.pdf"]
        )
        self.assertFalse(os.path.exists(self.stored_path(target.file.name)))
        self.assertEqual(len(self.stored_files()), 2)

    def test_attachment_of_other_task_is_not_deleted(self):
        other = services.create_task(
            self.alice,
            TaskFormData(
                title="Other", description="Another task",
                due_date="2030-04-02", assigned_to=str(self.alice.id),
            ),
            [pdf("x.pdf")],
        )
        self.assertFalse(services.delete_task_attachment(self.task, other.documents[0].id))
        self.assertFalse(services.delete_task_attachment(self.task, "bogus"))
        self.assertEqual(TaskAttachment.objects.count(), 4)

    def test_rolled_back_delete_keeps_files(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            try:
                with transaction.atomic():
                    self.task.delete()
                    raise RuntimeError("abort")
            except RuntimeError:
                pass
        self.assertEqual(callbacks, [])
        self.assertEqual(TaskAttachment.objects.count(), 3)
        self.assertEqual(len(self.stored_files()), 3)

    def test_removal_waits_for_commit(self):
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            services.delete_task(self.task)
        self.assertEqual(len(callbacks), 3)
        self.assertEqual(len(self.stored_files()), 3)

    def flaky_delete(self, failing_name):
        real_delete = FileSystemStorage.delete

        def delete(storage, name):
            if name == failing_name:
                raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "DeleteObject")
            return real_delete(storage, name)

        return mock.patch.object(FileSystemStorage, "delete", autospec=True, side_effect=delete)

    def test_storage_error_does_not_stop_other_removals(self):
        with self.flaky_delete(self.paths[0]):
            with self.assertLogs("apps.tasks.attachment_service", level="ERROR"):
                with self.captureOnCommitCallbacks(execute=True):
                    services.delete_task(self.task)

        self.assertFalse(Task.objects.filter(id=self.task.id).exists())
        self.assertEqual(self.stored_files(), [self.paths[0]])

    def test_remove_stored_files_counts_only_successes(self):
        with self.flaky_delete(self.paths[1]):
            with self.assertLogs("apps.tasks.attachment_service", level="ERROR"):
                removed = remove_stored_files(self.paths)
        self.assertEqual(removed, 2)
        self.assertEqual(self.stored_files(), [self.paths[1]])

    def test_remove_stored_files_skips_missing(self):
        removed = remove_stored_files([self.paths[0], "never-written.pdf", ""])
        self.assertEqual(removed, 1)
        self.assertEqual(len(self.stored_files()), 2)


class RollbackOnCreateTest(MediaTestCase):
    def test_files_removed_when_row_insert_fails(self):
        alice = make_user("alice@example.com")
        with mock.patch.object(TaskAttachment, "save", side_effect=RuntimeError("db down")):
            with self.assertRaises(RuntimeError):
                services.create_task(
                    alice,
                    TaskFormData(
                        title="t", description="d", due_date="2030-01-01",
                        assigned_to=str(alice.id),
                    ),
                    [pdf("a.pdf"), pdf("b.pdf")],
                )
        self.assertFalse(Task.objects.exists())
        self.assertEqual(self.stored_files(), [])


class UploadRulesTest(SimpleTestCase):
    def test_allowed_types(self):
        for name, mime in [
            ("a.pdf", "application/pdf"),
            ("b.DOCX", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
            ("c.jpeg", "image/jpeg"),
            ("d.doc", "application/octet-stream"),
        ]:
            ok, error = validate_upload_file(SimpleUploadedFile(name, b"x", content_type=mime))
            self.assertTrue(ok, error)

    def test_rejected_types(self):
        for name, mime in [
            ("a.exe", "application/pdf"),
            ("b.pdf", "text/html"),
            ("noext", "application/pdf"),
        ]:
            ok, error = validate_upload_file(SimpleUploadedFile(name, b"x", content_type=mime))
            self.assertFalse(ok)
            self.assertIn(name, error)

    def test_size_limit(self):
        ok, _ = validate_upload_file(pdf("edge.pdf", size=5 * 1024 * 1024))
        self.assertTrue(ok)
        ok, error = validate_upload_file(pdf("over.pdf", size=5 * 1024 * 1024 + 1))
        self.assertFalse(ok)
        self.assertIn("too large", error)

    def test_accept_uploads_cap(self):
        files = [pdf(f"{i}.pdf") for i in range(5)]
        self.assertEqual([f.name for f in accept_uploads(0, files)], ["0.pdf", "1.pdf", "2.pdf"])
        self.assertEqual([f.name for f in accept_uploads(2, files)], ["0.pdf"])
        self.assertEqual(accept_uploads(3, files), [])
        self.assertEqual(accept_uploads(0, None), [])

    def test_mimetype_guessed_for_generic_uploads(self):
        upload = SimpleUploadedFile("scan.png", b"x", content_type="application/octet-stream")
        self.assertEqual(resolve_mimetype(upload), "image/png")


@override_settings(TASK_BACKEND="celery")
class CeleryBackendTest(SimpleTestCase):
    def test_removal_is_queued_on_celery(self):
        from apps.core.task_service import TaskService

        celery_task = mock.Mock()
        with mock.patch("apps.core.backends.celery_backend._get_celery_task", return_value=celery_task):
            task_id = TaskService.remove_stored_files(["x.pdf"])

        celery_task.apply_async.assert_called_once_with(args=[["x.pdf"]], task_id=task_id)

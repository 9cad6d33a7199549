import os
import shutil
import tempfile

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings

from apps.identity.jwt_auth import create_access_token
from apps.identity.models import User, UserRole


def make_user(email, role=UserRole.USER):
    return User.objects.create_user(
        username=email,
        email=email,
        password="secret123",
        name=email.split("@")[0].title(),
        role=role,
    )


def auth_header(user):
    return {"HTTP_AUTHORIZATION": f"Bearer {create_access_token(user.id, user.role)}"}


def pdf(name="doc.pdf", size=None):
    content = b"%PDF-1.4 test" if size is None else b"0" * size
    return SimpleUploadedFile(name, content, content_type="application/pdf")


def png(name="image.png"):
    return SimpleUploadedFile(name, b"\x89PNG\r\n\x1a\n", content_type="image/png")


class MediaTestCase(TestCase):
    """TestCase with MEDIA_ROOT pointed at a throwaway directory."""

    def setUp(self):
        super().setUp()
        self.media_root = tempfile.mkdtemp()
        override = override_settings(MEDIA_ROOT=self.media_root)
        override.enable()
        self.addCleanup(override.disable)
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)

    def stored_path(self, name):
        return os.path.join(self.media_root, name)

    def stored_files(self):
        return sorted(os.listdir(self.media_root))

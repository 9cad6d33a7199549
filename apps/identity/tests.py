import json
from io import StringIO
from datetime import datetime, timedelta, timezone

import jwt
from django.conf import settings
from django.core.management import call_command
from django.test import TestCase, Client

from apps.tasks.models import Task
from .jwt_auth import create_access_token, decode_token, get_user_id_from_token, JWT_ALGORITHM
from .models import User, UserRole
from .permissions import Permissions, get_user_permissions, can_act, can_manage_user


def make_user(email, role=UserRole.USER, password="secret123", name=None):
    return User.objects.create_user(
        username=email,
        email=email,
        password=password,
        name=name or email.split("@")[0].title(),
        role=role,
    )


def auth_header(user):
    return {"HTTP_AUTHORIZATION": f"Bearer {create_access_token(user.id, user.role)}"}


class RBACTest(TestCase):
    def setUp(self):
        self.admin = make_user("admin@example.com", role=UserRole.ADMIN)
        self.alice = make_user("alice@example.com")
        self.bob = make_user("bob@example.com")
        self.task = Task.objects.create(
            title="Write report",
            description="Quarterly numbers",
            due_date="2030-01-15",
            assigned_to=self.alice,
            created_by=self.alice,
        )

    def test_admin_permissions(self):
        perms = get_user_permissions(self.admin)
        self.assertIn(Permissions.TASKS_VIEW_ALL, perms)
        self.assertIn(Permissions.IDENTITY_MANAGE_USER, perms)

    def test_user_has_no_role_permissions(self):
        self.assertEqual(get_user_permissions(self.alice), [])

    def test_inactive_user_has_no_permissions(self):
        self.admin.is_active = False
        self.assertEqual(get_user_permissions(self.admin), [])

    def test_assignee_can_act(self):
        self.assertTrue(can_act(self.alice, self.task))

    def test_admin_can_act_on_any_task(self):
        self.assertTrue(can_act(self.admin, self.task))

    def test_unrelated_user_cannot_act(self):
        self.assertFalse(can_act(self.bob, self.task))

    def test_manage_user(self):
        self.assertTrue(can_manage_user(self.alice, self.alice.id))
        self.assertFalse(can_manage_user(self.alice, self.bob.id))
        self.assertTrue(can_manage_user(self.admin, self.bob.id))


class JWTTest(TestCase):
    def setUp(self):
        self.user = make_user("carol@example.com")

    def test_token_resolves_to_user(self):
        token = create_access_token(self.user.id, self.user.role)
        self.assertEqual(get_user_id_from_token(token), self.user.id)
        self.assertEqual(decode_token(token)["role"], UserRole.USER)

    def test_expired_token_is_rejected(self):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": str(self.user.id), "type": "access", "exp": past},
            settings.JWT_SECRET,
            algorithm=JWT_ALGORITHM,
        )
        self.assertIsNone(decode_token(token))
        self.assertIsNone(get_user_id_from_token(token))

    def test_token_signed_with_other_secret_is_rejected(self):
        token = jwt.encode({"sub": str(self.user.id), "type": "access"}, "not-the-secret", algorithm=JWT_ALGORITHM)
        self.assertIsNone(get_user_id_from_token(token))


class AuthAPITest(TestCase):
    def setUp(self):
        self.client = Client()

    def post_json(self, path, payload, **extra):
        return self.client.post(path, data=json.dumps(payload), content_type="application/json", **extra)

    def test_register_returns_token_and_user(self):
        response = self.post_json("/api/auth/register", {
            "name": "Dana", "email": "Dana@Example.com", "password": "secret123",
        })
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["user"]["email"], "dana@example.com")
        self.assertEqual(data["user"]["role"], "user")
        self.assertNotIn("password", data["user"])

        me = self.client.get("/api/auth/user", HTTP_AUTHORIZATION=f"Bearer {data['token']}")
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["name"], "Dana")

    def test_register_validates_fields(self):
        response = self.post_json("/api/auth/register", {"name": "", "email": "nope", "password": "123"})
        self.assertEqual(response.status_code, 400)
        errors = response.json()["errors"]
        self.assertIn("name", errors)
        self.assertIn("email", errors)
        self.assertIn("password", errors)

    def test_register_rejects_overlong_fields(self):
        long_email = "a" * 150 + "@example.com"
        response = self.post_json("/api/auth/register", {
            "name": "N" * 151, "email": long_email, "password": "secret123",
        })
        self.assertEqual(response.status_code, 400)
        errors = response.json()["errors"]
        self.assertIn("name", errors)
        self.assertIn("email", errors)
        self.assertFalse(User.objects.exists())

    def test_register_rejects_duplicate_email(self):
        make_user("erin@example.com")
        response = self.post_json("/api/auth/register", {
            "name": "Erin", "email": "erin@example.com", "password": "secret123",
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "User already exists")
        self.assertEqual(User.objects.filter(email="erin@example.com").count(), 1)

    def test_login(self):
        make_user("frank@example.com", password="secret123")
        response = self.post_json("/api/auth/login", {"email": "frank@example.com", "password": "secret123"})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["token"])

    def test_login_with_wrong_password(self):
        make_user("gina@example.com", password="secret123")
        response = self.post_json("/api/auth/login", {"email": "gina@example.com", "password": "wrong"})
        self.assertEqual(response.status_code, 401)

    def test_current_user_requires_token(self):
        self.assertEqual(self.client.get("/api/auth/user").status_code, 401)
        response = self.client.get("/api/auth/user", HTTP_AUTHORIZATION="Bearer garbage")
        self.assertEqual(response.status_code, 401)

    def test_token_of_deleted_user_is_rejected(self):
        user = make_user("hank@example.com")
        header = auth_header(user)
        user.delete()
        self.assertEqual(self.client.get("/api/auth/user", **header).status_code, 401)


class UserAPITest(TestCase):
    def setUp(self):
        self.client = Client()
        self.admin = make_user("admin@example.com", role=UserRole.ADMIN)
        self.alice = make_user("alice@example.com")
        self.bob = make_user("bob@example.com")

    def put_json(self, path, payload, user):
        return self.client.put(path, data=json.dumps(payload), content_type="application/json", **auth_header(user))

    def test_list_users_hides_passwords(self):
        response = self.client.get("/api/users", **auth_header(self.alice))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), 3)
        self.assertTrue(all("password" not in u for u in response.json()))

    def test_get_unknown_or_malformed_user(self):
        self.assertEqual(self.client.get("/api/users/not-a-uuid", **auth_header(self.alice)).status_code, 404)
        missing = "00000000-0000-0000-0000-000000000000"
        self.assertEqual(self.client.get(f"/api/users/{missing}", **auth_header(self.alice)).status_code, 404)

    def test_user_updates_own_profile(self):
        response = self.put_json(f"/api/users/{self.alice.id}", {"name": "Alice B", "email": "alice.b@example.com"}, self.alice)
        self.assertEqual(response.status_code, 200)
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.email, "alice.b@example.com")

    def test_user_cannot_update_someone_else(self):
        response = self.put_json(f"/api/users/{self.bob.id}", {"name": "Hacked", "email": "bob@example.com"}, self.alice)
        self.assertEqual(response.status_code, 403)

    def test_email_must_stay_unique(self):
        response = self.put_json(f"/api/users/{self.alice.id}", {"name": "Alice", "email": "bob@example.com"}, self.alice)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Email is already taken")

    def test_only_admin_changes_roles(self):
        response = self.put_json(
            f"/api/users/{self.alice.id}", {"name": "Alice", "email": "alice@example.com", "role": "admin"}, self.alice
        )
        self.assertEqual(response.status_code, 403)

        response = self.put_json(
            f"/api/users/{self.alice.id}", {"name": "Alice", "email": "alice@example.com", "role": "admin"}, self.admin
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["role"], "admin")

    def test_admin_deletes_user(self):
        response = self.client.delete(f"/api/users/{self.bob.id}", **auth_header(self.admin))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(User.objects.filter(id=self.bob.id).exists())

    def test_cannot_delete_user_with_assigned_tasks(self):
        Task.objects.create(
            title="Keep me", description="d", due_date="2030-01-01",
            assigned_to=self.bob, created_by=self.alice,
        )
        response = self.client.delete(f"/api/users/{self.bob.id}", **auth_header(self.admin))
        self.assertEqual(response.status_code, 400)
        self.assertTrue(User.objects.filter(id=self.bob.id).exists())

    def test_deleting_creator_keeps_task(self):
        task = Task.objects.create(
            title="Orphan", description="d", due_date="2030-01-01",
            assigned_to=self.bob, created_by=self.alice,
        )
        response = self.client.delete(f"/api/users/{self.alice.id}", **auth_header(self.alice))
        self.assertEqual(response.status_code, 200)
        task.refresh_from_db()
        self.assertIsNone(task.created_by)


class SeedUsersCommandTest(TestCase):
    def test_seeds_admin_and_user(self):
        call_command("seed_users", "--password", "secret123", stdout=StringIO())
        admin = User.objects.get(email="admin@example.com")
        self.assertEqual(admin.role, UserRole.ADMIN)
        self.assertTrue(admin.check_password("secret123"))
        self.assertEqual(User.objects.get(email="user@example.com").role, UserRole.USER)

    def test_rerun_keeps_existing_users(self):
        call_command("seed_users", stdout=StringIO())
        call_command("seed_users", stdout=StringIO())
        self.assertEqual(User.objects.count(), 2)

import uuid
from django.db import models
from django.contrib.auth.models import AbstractUser


class UserRole(models.TextChoices):
    USER = 'user', 'User'
    ADMIN = 'admin', 'Administrator'


class User(AbstractUser):
    """
    Account that can create tasks and be assigned to them.

    Email is the login identifier; ``username`` is kept equal to it so
    Django's admin and auth backends keep working.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=150)
    email = models.EmailField(unique=True)
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.USER
    )

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username', 'name']

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.email

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

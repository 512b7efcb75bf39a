from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
import re
import uuid


class UserManager(BaseUserManager):
    """Manager for email-login users"""

    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError('Email is required')
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('role', User.ROLE_STAFF)
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('role', User.ROLE_ADMIN)
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        return self._create_user(email, password, **extra_fields)

    def find_staff_by_name(self, name):
        """Case-insensitive lookup of an active staff member by (partial) name"""
        name = (name or '').strip()
        if not name:
            return None
        return self.filter(
            role=User.ROLE_STAFF,
            is_active=True,
            name__iregex=re.escape(name),
        ).order_by('name').first()


class User(AbstractUser):
    """
    Application user

    role = admin  -> manages bills, retailers, products, users, reports
    role = staff  -> field staff (DSR) collecting payments against assigned bills
    """

    ROLE_ADMIN = 'admin'
    ROLE_STAFF = 'staff'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_STAFF, 'Staff'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    username = None
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=150)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_STAFF)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    objects = UserManager()

    class Meta:
        db_table = 'users'
        ordering = ['name']
        verbose_name = 'User'
        verbose_name_plural = 'Users'

    @property
    def is_admin(self):
        return self.role == self.ROLE_ADMIN

    def get_full_name(self):
        return self.name

    def __str__(self):
        return f"{self.name} ({self.role})"

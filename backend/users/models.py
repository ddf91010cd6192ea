# backend/users/models.py
import logging

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils.translation import gettext_lazy as _

logger = logging.getLogger(__name__)


# --- CUSTOM USER MANAGER ---
class CustomUserManager(BaseUserManager):
    """
    Manager untuk user yang login memakai email (tanpa username).
    """
    use_in_migrations = True

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError(_('Email wajib diisi'))
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        logger.info("User %s dibuat dengan role %s", email, user.role)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        # Superuser selalu admin aplikasi
        extra_fields.setdefault('role', CustomUser.Role.ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError(_('Superuser must have is_staff=True.'))
        if extra_fields.get('is_superuser') is not True:
            raise ValueError(_('Superuser must have is_superuser=True.'))

        return self.create_user(email, password, **extra_fields)


# --- CUSTOM USER MODEL ---
class CustomUser(AbstractUser):
    class Role(models.TextChoices):
        UNIT_KERJA = 'UNIT_KERJA', _('Unit Kerja (Peminta)')
        ADMIN = 'ADMIN', _('Administrator Gudang')

    username = None
    email = models.EmailField(_('email address'), unique=True)

    role = models.CharField(
        _('Role'),
        max_length=20,
        choices=Role.choices,
        default=Role.UNIT_KERJA,
    )
    unit_kerja = models.CharField(
        _('kode unit kerja'),
        max_length=20,
        blank=True,
        null=True,
        help_text="Contoh: IT, HRD, FIN",
    )

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name']

    objects = CustomUserManager()

    def __str__(self):
        full_name = super().get_full_name()
        return full_name or self.email

    @property
    def is_unit_kerja(self):
        return self.role == self.Role.UNIT_KERJA

    @property
    def is_admin(self):
        # Superuser juga dianggap admin dalam konteks aplikasi ini
        return self.role == self.Role.ADMIN or self.is_superuser

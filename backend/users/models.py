from __future__ import annotations

from urllib.parse import quote_plus

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Platform user mirrored from the external identity provider."""

    class Role(models.TextChoices):
        CUSTOMER = "CUSTOMER", "Customer"
        ADMIN = "ADMIN", "Admin"

    external_id = models.CharField(
        max_length=191,
        unique=True,
        null=True,
        blank=True,
        help_text="Stable subject identifier issued by the identity provider.",
    )
    role = models.CharField(
        max_length=16,
        choices=Role.choices,
        default=Role.CUSTOMER,
    )
    image_url = models.URLField(
        max_length=1024,
        blank=True,
        default="",
        help_text="Profile image supplied by the identity provider.",
    )

    @property
    def is_platform_admin(self) -> bool:
        return self.role == self.Role.ADMIN

    @property
    def avatar_url(self) -> str:
        """Return the provider image or a deterministic placeholder."""
        if self.image_url:
            return self.image_url
        seed = (self.get_full_name() or self.username or f"user-{self.pk or 'anon'}").strip()
        return f"https://api.dicebear.com/7.x/initials/svg?seed={quote_plus(seed)}"

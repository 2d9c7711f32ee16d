"""
Core app models.

Provides abstract base models and shared utilities used across the project,
plus the push-notification ``DeviceToken`` registry.
"""

from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


class DevicePlatform(models.TextChoices):
    """Mobile platform a push token was issued for."""

    ANDROID = "android", "Android"
    IOS = "ios", "iOS"


class DeviceToken(TimeStampedModel):
    """
    A push-notification destination: one installed app instance of a user.

    * Registration is an idempotent upsert per ``(user, token)``.
    * Unregistering soft-deactivates (``is_active=False``).
    * Only active tokens are ever handed to the dispatcher.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="device_tokens",
        verbose_name="User",
    )
    token = models.CharField(max_length=255, verbose_name="Push Token")
    platform = models.CharField(
        max_length=10,
        choices=DevicePlatform.choices,
        verbose_name="Platform",
    )
    is_active = models.BooleanField(default=True, verbose_name="Active")
    last_used_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Last Used At",
    )

    class Meta:
        verbose_name = "Device Token"
        verbose_name_plural = "Device Tokens"
        ordering = ["-updated_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "token"],
                name="unique_device_token_per_user",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "is_active"]),
        ]

    def __str__(self):
        state = "active" if self.is_active else "inactive"
        return f"[{self.user}] {self.platform} token ({state})"

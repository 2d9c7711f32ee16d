import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="DeviceToken",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("token", models.CharField(max_length=255, verbose_name="Push Token")),
                ("platform", models.CharField(choices=[("android", "Android"), ("ios", "iOS")], max_length=10, verbose_name="Platform")),
                ("is_active", models.BooleanField(default=True, verbose_name="Active")),
                ("last_used_at", models.DateTimeField(blank=True, null=True, verbose_name="Last Used At")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="device_tokens", to=settings.AUTH_USER_MODEL, verbose_name="User")),
            ],
            options={
                "verbose_name": "Device Token",
                "verbose_name_plural": "Device Tokens",
                "ordering": ["-updated_at"],
                "indexes": [models.Index(fields=["user", "is_active"], name="core_device_user_id_6e1f0b_idx")],
                "constraints": [models.UniqueConstraint(fields=("user", "token"), name="unique_device_token_per_user")],
            },
        ),
    ]

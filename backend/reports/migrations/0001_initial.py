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
            name="Category",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True, verbose_name="Category Name")),
            ],
            options={
                "verbose_name": "Category",
                "verbose_name_plural": "Categories",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Report",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("location", models.CharField(max_length=255, verbose_name="Location")),
                ("photo", models.ImageField(blank=True, null=True, upload_to="reports/%Y/%m/", verbose_name="Photo")),
                ("comment", models.TextField(blank=True, default="", verbose_name="Comment")),
                ("status", models.CharField(choices=[("pending", "pendente"), ("in_progress", "em resolução"), ("resolved", "resolvido")], db_index=True, default="pending", max_length=20, verbose_name="Current Status")),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="reports", to=settings.AUTH_USER_MODEL, verbose_name="Owner")),
                ("categories", models.ManyToManyField(related_name="reports", to="reports.category", verbose_name="Categories")),
            ],
            options={
                "verbose_name": "Report",
                "verbose_name_plural": "Reports",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["owner", "status"], name="reports_rep_owner_i_3b9c2e_idx"),
                    models.Index(fields=["status", "updated_at"], name="reports_rep_status_8d4a1f_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReportDetail",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("technical_description", models.TextField(verbose_name="Technical Description")),
                ("priority", models.CharField(choices=[("low", "baixa"), ("medium", "média"), ("high", "alta")], db_index=True, max_length=10, verbose_name="Priority")),
                ("resolution_notes", models.TextField(blank=True, default="", verbose_name="Resolution Notes")),
                ("estimated_cost", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name="Estimated Cost")),
                ("report", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="detail", to="reports.report", verbose_name="Report")),
            ],
            options={
                "verbose_name": "Report Detail",
                "verbose_name_plural": "Report Details",
            },
        ),
    ]

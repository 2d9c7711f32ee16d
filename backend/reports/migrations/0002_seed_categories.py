from django.db import migrations

CATEGORY_NAMES = [
    "Danos na via",
    "Iluminação pública",
    "Problemas de acessibilidade",
    "Árvores caídas",
    "Lixo na via",
    "Parquímetro avariado",
    "Sinalização em falta/ incorreta",
]


def seed_categories(apps, schema_editor):
    Category = apps.get_model("reports", "Category")
    for name in CATEGORY_NAMES:
        Category.objects.get_or_create(name=name)


def remove_categories(apps, schema_editor):
    Category = apps.get_model("reports", "Category")
    Category.objects.filter(name__in=CATEGORY_NAMES).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("reports", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_categories, remove_categories),
    ]

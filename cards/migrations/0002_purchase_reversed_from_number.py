from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("cards", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="purchase",
            name="reversed_from_number",
            field=models.PositiveIntegerField(blank=True, null=True),
        ),
    ]

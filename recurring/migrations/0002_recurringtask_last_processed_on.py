from __future__ import annotations

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("recurring", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="recurringtask",
            name="last_processed_on",
            field=models.DateField(blank=True, null=True),
        ),
    ]

# Generated migration for PromoUsage and nullable Scan.scanned_by_business_id

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("scanman", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="scan",
            name="scanned_by_business_id",
            field=models.PositiveBigIntegerField(
                blank=True,
                db_index=True,
                null=True,
                verbose_name="scanned by (business ID)",
            ),
        ),
        migrations.CreateModel(
            name="PromoUsage",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "promo_id",
                    models.PositiveBigIntegerField(unique=True, verbose_name="promotion ID"),
                ),
                ("uses", models.PositiveIntegerField(default=0, verbose_name="uses")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "promo usage",
                "verbose_name_plural": "promo usages",
                "db_table": "scanman_promo_usage",
            },
        ),
    ]

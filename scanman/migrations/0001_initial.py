import django.core.serializers.json
import django.db.models.deletion
from django.db import migrations, models

import scanman.models.code


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="QRCode",
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
                    "unique_id",
                    models.CharField(
                        default=scanman.models.code.generate_unique_id,
                        editable=False,
                        max_length=64,
                        unique=True,
                        verbose_name="unique ID",
                    ),
                ),
                (
                    "owner_id",
                    models.PositiveBigIntegerField(
                        db_index=True, verbose_name="owner (customer) ID"
                    ),
                ),
                (
                    "business_id",
                    models.PositiveBigIntegerField(
                        blank=True, db_index=True, null=True, verbose_name="business ID"
                    ),
                ),
                (
                    "code_type",
                    models.CharField(
                        choices=[
                            ("CUSTOMER_CARD", "Customer card"),
                            ("LOYALTY_CARD", "Loyalty card"),
                            ("PROMO_CODE", "Promo code"),
                            ("MASTER_CARD", "Master card"),
                        ],
                        max_length=20,
                        verbose_name="type",
                    ),
                ),
                (
                    "payload",
                    models.JSONField(
                        default=dict,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                        verbose_name="payload",
                    ),
                ),
                (
                    "image_url",
                    models.URLField(blank=True, max_length=500, verbose_name="image URL"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("ACTIVE", "Active"),
                            ("REVOKED", "Revoked"),
                            ("EXPIRED", "Expired"),
                            ("REPLACED", "Replaced"),
                        ],
                        db_index=True,
                        default="ACTIVE",
                        max_length=10,
                        verbose_name="status",
                    ),
                ),
                (
                    "verification_code",
                    models.CharField(
                        default=scanman.models.code.generate_verification_code,
                        help_text="Manual fallback when the code cannot be scanned.",
                        max_length=6,
                        verbose_name="verification code",
                    ),
                ),
                ("is_primary", models.BooleanField(default=False, verbose_name="primary")),
                ("uses_count", models.PositiveIntegerField(default=0, verbose_name="uses")),
                (
                    "last_used_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="last used at"),
                ),
                (
                    "expires_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="expires at"),
                ),
                (
                    "revoked_reason",
                    models.CharField(blank=True, max_length=255, verbose_name="revoked reason"),
                ),
                (
                    "revoked_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="revoked at"),
                ),
                (
                    "previous_unique_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        max_length=64,
                        verbose_name="previous unique ID",
                    ),
                ),
                ("signature", models.CharField(max_length=128, verbose_name="signature")),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True, db_index=True, verbose_name="created at"
                    ),
                ),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                (
                    "replaced_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="replaces",
                        to="scanman.qrcode",
                        verbose_name="replaced by",
                    ),
                ),
            ],
            options={
                "verbose_name": "QR code",
                "verbose_name_plural": "QR codes",
                "db_table": "scanman_qrcode",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["owner_id", "code_type", "status"],
                        name="scanman_qrcode_owner_idx",
                    ),
                    models.Index(
                        fields=["status", "expires_at"],
                        name="scanman_qrcode_expiry_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_primary", True), ("status", "ACTIVE")),
                        fields=("owner_id", "code_type"),
                        name="scanman_unique_active_primary_per_type",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="CodeEvent",
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
                    "event_type",
                    models.CharField(
                        choices=[
                            ("ISSUED", "Issued"),
                            ("REVOKED", "Revoked"),
                            ("EXPIRED", "Expired"),
                            ("REPLACED", "Replaced"),
                        ],
                        db_index=True,
                        max_length=10,
                        verbose_name="type",
                    ),
                ),
                (
                    "data",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                        verbose_name="data",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True, db_index=True, verbose_name="created at"
                    ),
                ),
                (
                    "code",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="events",
                        to="scanman.qrcode",
                        verbose_name="code",
                    ),
                ),
            ],
            options={
                "verbose_name": "code event",
                "verbose_name_plural": "code events",
                "db_table": "scanman_code_event",
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="Scan",
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
                    "code_type",
                    models.CharField(blank=True, max_length=20, verbose_name="code type"),
                ),
                (
                    "scanned_by_business_id",
                    models.PositiveBigIntegerField(
                        db_index=True, verbose_name="scanned by (business ID)"
                    ),
                ),
                (
                    "source_address",
                    models.CharField(blank=True, max_length=64, verbose_name="source address"),
                ),
                (
                    "state",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("PROCESSING", "Processing"),
                            ("RATE_LIMITED", "Rate limited"),
                            ("INVALID", "Invalid"),
                            ("SUCCESS", "Success"),
                            ("FAILED", "Failed"),
                        ],
                        max_length=12,
                        verbose_name="state",
                    ),
                ),
                (
                    "outcome",
                    models.CharField(
                        choices=[
                            ("VALID", "Valid"),
                            ("INVALID", "Invalid"),
                            ("SUSPICIOUS", "Suspicious"),
                        ],
                        max_length=10,
                        verbose_name="outcome",
                    ),
                ),
                (
                    "error_code",
                    models.CharField(blank=True, max_length=50, verbose_name="error code"),
                ),
                (
                    "message",
                    models.CharField(blank=True, max_length=255, verbose_name="message"),
                ),
                (
                    "points_awarded",
                    models.IntegerField(blank=True, null=True, verbose_name="points awarded"),
                ),
                (
                    "result_detail",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                        verbose_name="result detail",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True, db_index=True, verbose_name="created at"
                    ),
                ),
                (
                    "code",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="scans",
                        to="scanman.qrcode",
                        verbose_name="code",
                    ),
                ),
            ],
            options={
                "verbose_name": "scan",
                "verbose_name_plural": "scans",
                "db_table": "scanman_scan",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["scanned_by_business_id", "-created_at"],
                        name="scanman_scan_business_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="CustomerBusinessLink",
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
                ("customer_id", models.PositiveBigIntegerField(verbose_name="customer ID")),
                (
                    "business_id",
                    models.PositiveBigIntegerField(db_index=True, verbose_name="business ID"),
                ),
                (
                    "interaction_count",
                    models.PositiveIntegerField(default=1, verbose_name="interactions"),
                ),
                (
                    "first_interaction_at",
                    models.DateTimeField(auto_now_add=True, verbose_name="first interaction at"),
                ),
                (
                    "last_interaction_at",
                    models.DateTimeField(verbose_name="last interaction at"),
                ),
            ],
            options={
                "verbose_name": "customer-business link",
                "verbose_name_plural": "customer-business links",
                "db_table": "scanman_customer_business_link",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("customer_id", "business_id"),
                        name="scanman_unique_customer_business",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="PromoRedemption",
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
                    models.PositiveBigIntegerField(db_index=True, verbose_name="promotion ID"),
                ),
                ("promo_code", models.CharField(max_length=100, verbose_name="promo code")),
                ("business_id", models.PositiveBigIntegerField(verbose_name="business ID")),
                ("customer_id", models.PositiveBigIntegerField(verbose_name="customer ID")),
                (
                    "redeemed_at",
                    models.DateTimeField(
                        auto_now_add=True, db_index=True, verbose_name="redeemed at"
                    ),
                ),
                (
                    "code",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redemptions",
                        to="scanman.qrcode",
                        verbose_name="code",
                    ),
                ),
            ],
            options={
                "verbose_name": "promo redemption",
                "verbose_name_plural": "promo redemptions",
                "db_table": "scanman_promo_redemption",
                "ordering": ["-redeemed_at"],
            },
        ),
        migrations.CreateModel(
            name="ScanDailyStat",
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
                ("business_id", models.PositiveBigIntegerField(verbose_name="business ID")),
                ("day", models.DateField(verbose_name="day")),
                (
                    "code_type",
                    models.CharField(blank=True, max_length=20, verbose_name="code type"),
                ),
                ("total", models.PositiveIntegerField(default=0)),
                ("valid", models.PositiveIntegerField(default=0)),
                ("invalid", models.PositiveIntegerField(default=0)),
                ("suspicious", models.PositiveIntegerField(default=0)),
            ],
            options={
                "verbose_name": "daily scan stat",
                "verbose_name_plural": "daily scan stats",
                "db_table": "scanman_scan_daily_stat",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("business_id", "day", "code_type"),
                        name="scanman_unique_daily_stat",
                    )
                ],
            },
        ),
    ]

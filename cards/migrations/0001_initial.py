from django.db import migrations, models
import django.core.validators
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("core", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Card",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "closing_day",
                    models.PositiveIntegerField(
                        default=25,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(31),
                        ],
                    ),
                ),
                (
                    "due_day",
                    models.PositiveIntegerField(
                        default=5,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(31),
                        ],
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "household",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="cards", to="core.household"
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
                "constraints": [
                    models.UniqueConstraint(fields=("household", "name"), name="unique_card_household")
                ],
            },
        ),
        migrations.CreateModel(
            name="Category",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("color", models.CharField(default="#64748b", max_length=20)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "household",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="categories", to="core.household"
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
                "constraints": [
                    models.UniqueConstraint(fields=("household", "name"), name="unique_category_household")
                ],
            },
        ),
        migrations.CreateModel(
            name="Payer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("nickname", models.CharField(blank=True, max_length=60)),
                ("is_holder", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "household",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="payers", to="core.household"
                    ),
                ),
            ],
            options={
                "ordering": ["-is_holder", "name"],
            },
        ),
        migrations.CreateModel(
            name="Purchase",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("description", models.CharField(max_length=255)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("installments_count", models.PositiveIntegerField(default=1)),
                ("start_installment", models.PositiveIntegerField(default=1)),
                ("purchase_date", models.DateField()),
                ("statement_month", models.DateField()),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("single", "À vista"),
                            ("installment", "Parcelada"),
                            ("recurring", "Fixa"),
                            ("adjustment", "Ajuste"),
                            ("reversal", "Estorno"),
                        ],
                        default="single",
                        max_length=12,
                    ),
                ),
                (
                    "adjustment_type",
                    models.CharField(
                        blank=True,
                        choices=[("credit", "Crédito"), ("debit", "Débito")],
                        default="",
                        max_length=6,
                    ),
                ),
                ("note", models.TextField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "card",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="purchases", to="cards.card"
                    ),
                ),
                (
                    "category",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="purchases",
                        to="cards.category",
                    ),
                ),
                (
                    "household",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="purchases", to="core.household"
                    ),
                ),
                (
                    "payer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="purchases",
                        to="cards.payer",
                    ),
                ),
                (
                    "reversed_purchase",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reversals",
                        to="cards.purchase",
                    ),
                ),
            ],
            options={
                "ordering": ["-statement_month", "-id"],
                "indexes": [
                    models.Index(fields=["household", "card", "is_active"], name="purchase_card_active_idx")
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("installments_count__gte", 1)),
                        name="purchase_installments_count_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("start_installment__gte", 1),
                            ("start_installment__lte", models.F("installments_count")),
                        ),
                        name="purchase_start_installment_in_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Installment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("number", models.PositiveIntegerField()),
                ("installments_total", models.PositiveIntegerField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("statement_month", models.DateField()),
                ("is_settled", models.BooleanField(default=False)),
                ("settled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "recurrence",
                    models.CharField(
                        choices=[("normal", "Normal"), ("fixed", "Fixa")], default="normal", max_length=6
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "household",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="installments", to="core.household"
                    ),
                ),
                (
                    "purchase",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="installments", to="cards.purchase"
                    ),
                ),
            ],
            options={
                "ordering": ["statement_month", "number"],
                "indexes": [
                    models.Index(fields=["household", "statement_month"], name="installment_hh_month_idx")
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_active", True)),
                        fields=("purchase", "number"),
                        name="unique_installment_purchase_number",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="StatementAdvance",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("statement_month", models.DateField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("note", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "adjustment",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="statement_advance",
                        to="cards.purchase",
                    ),
                ),
                (
                    "card",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="statement_advances",
                        to="cards.card",
                    ),
                ),
                (
                    "household",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="statement_advances",
                        to="core.household",
                    ),
                ),
                (
                    "settled_installments",
                    models.ManyToManyField(blank=True, related_name="statement_advances", to="cards.installment"),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q

from core.models import Household


class Category(models.Model):
    household = models.ForeignKey(Household, on_delete=models.CASCADE, related_name="categories")
    name = models.CharField(max_length=120)
    color = models.CharField(max_length=20, default="#64748b")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(fields=["household", "name"], name="unique_category_household")
        ]

    def __str__(self):
        return self.name


class Payer(models.Model):
    household = models.ForeignKey(Household, on_delete=models.CASCADE, related_name="payers")
    name = models.CharField(max_length=120)
    nickname = models.CharField(max_length=60, blank=True)
    is_holder = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-is_holder", "name"]

    def __str__(self):
        return self.nickname or self.name


class Card(models.Model):
    household = models.ForeignKey(Household, on_delete=models.CASCADE, related_name="cards")
    name = models.CharField(max_length=120)
    is_active = models.BooleanField(default=True)
    closing_day = models.PositiveIntegerField(
        default=25, validators=[MinValueValidator(1), MaxValueValidator(31)]
    )
    due_day = models.PositiveIntegerField(
        default=5, validators=[MinValueValidator(1), MaxValueValidator(31)]
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(fields=["household", "name"], name="unique_card_household")
        ]

    def __str__(self):
        return self.name


class Purchase(models.Model):
    class Kind(models.TextChoices):
        SINGLE = "single", "À vista"
        INSTALLMENT = "installment", "Parcelada"
        RECURRING = "recurring", "Fixa"
        ADJUSTMENT = "adjustment", "Ajuste"
        REVERSAL = "reversal", "Estorno"

    class AdjustmentType(models.TextChoices):
        CREDIT = "credit", "Crédito"
        DEBIT = "debit", "Débito"

    household = models.ForeignKey(Household, on_delete=models.CASCADE, related_name="purchases")
    card = models.ForeignKey(Card, on_delete=models.CASCADE, related_name="purchases")
    description = models.CharField(max_length=255)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    installments_count = models.PositiveIntegerField(default=1)
    start_installment = models.PositiveIntegerField(default=1)
    purchase_date = models.DateField()
    statement_month = models.DateField()
    kind = models.CharField(max_length=12, choices=Kind.choices, default=Kind.SINGLE)
    adjustment_type = models.CharField(
        max_length=6, choices=AdjustmentType.choices, blank=True, default=""
    )
    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchases",
    )
    payer = models.ForeignKey(
        Payer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchases",
    )
    reversed_purchase = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reversals",
    )
    # Número da primeira parcela estornada; o estorno n cobre a n-ésima parcela ativa a partir dela.
    reversed_from_number = models.PositiveIntegerField(null=True, blank=True)
    note = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-statement_month", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(installments_count__gte=1), name="purchase_installments_count_positive"
            ),
            models.CheckConstraint(
                condition=Q(start_installment__gte=1)
                & Q(start_installment__lte=F("installments_count")),
                name="purchase_start_installment_in_range",
            ),
        ]
        indexes = [
            models.Index(fields=["household", "card", "is_active"], name="purchase_card_active_idx"),
        ]

    def __str__(self):
        return self.description

    @property
    def expected_installments(self) -> int:
        return self.installments_count - self.start_installment + 1


class Installment(models.Model):
    class Recurrence(models.TextChoices):
        NORMAL = "normal", "Normal"
        FIXED = "fixed", "Fixa"

    household = models.ForeignKey(Household, on_delete=models.CASCADE, related_name="installments")
    purchase = models.ForeignKey(Purchase, on_delete=models.CASCADE, related_name="installments")
    number = models.PositiveIntegerField()
    installments_total = models.PositiveIntegerField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    statement_month = models.DateField()
    is_settled = models.BooleanField(default=False)
    settled_at = models.DateTimeField(null=True, blank=True)
    recurrence = models.CharField(max_length=6, choices=Recurrence.choices, default=Recurrence.NORMAL)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["statement_month", "number"]
        constraints = [
            models.UniqueConstraint(
                fields=["purchase", "number"],
                condition=Q(is_active=True),
                name="unique_installment_purchase_number",
            )
        ]
        indexes = [
            models.Index(fields=["household", "statement_month"], name="installment_hh_month_idx"),
        ]

    def __str__(self):
        return f"{self.purchase} {self.number}/{self.installments_total}"


class StatementAdvance(models.Model):
    household = models.ForeignKey(Household, on_delete=models.CASCADE, related_name="statement_advances")
    card = models.ForeignKey(Card, on_delete=models.CASCADE, related_name="statement_advances")
    statement_month = models.DateField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    adjustment = models.OneToOneField(
        Purchase,
        on_delete=models.PROTECT,
        related_name="statement_advance",
    )
    settled_installments = models.ManyToManyField(
        Installment,
        blank=True,
        related_name="statement_advances",
    )
    note = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Adiantamento {self.amount} ({self.card} {self.statement_month:%m/%Y})"

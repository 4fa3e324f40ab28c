from django.contrib import admin

from .models import Card, Category, Installment, Payer, Purchase, StatementAdvance


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "household", "color", "is_active")
    list_filter = ("household", "is_active")
    search_fields = ("name",)


@admin.register(Payer)
class PayerAdmin(admin.ModelAdmin):
    list_display = ("name", "nickname", "household", "is_holder", "is_active")
    list_filter = ("household", "is_holder", "is_active")
    search_fields = ("name", "nickname")


@admin.register(Card)
class CardAdmin(admin.ModelAdmin):
    list_display = ("name", "household", "closing_day", "due_day", "is_active")
    list_filter = ("household", "is_active")
    search_fields = ("name",)


class InstallmentInline(admin.TabularInline):
    model = Installment
    extra = 0
    fields = ("number", "installments_total", "amount", "statement_month", "is_settled", "is_active")
    readonly_fields = ("number", "installments_total", "statement_month")
    ordering = ("number",)


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    list_display = (
        "description",
        "card",
        "kind",
        "total_amount",
        "installments_count",
        "start_installment",
        "statement_month",
        "payer",
        "is_active",
    )
    list_filter = ("household", "card", "kind", "is_active")
    search_fields = ("description",)
    date_hierarchy = "purchase_date"
    list_select_related = ("card", "payer")
    inlines = [InstallmentInline]


@admin.register(Installment)
class InstallmentAdmin(admin.ModelAdmin):
    list_display = ("purchase", "number", "installments_total", "amount", "statement_month", "is_settled", "card")
    list_filter = ("statement_month", "is_settled", "recurrence", "purchase__card")
    list_select_related = ("purchase__card",)
    autocomplete_fields = ("purchase",)

    def card(self, obj):
        return obj.purchase.card

    card.short_description = "Cartão"


@admin.register(StatementAdvance)
class StatementAdvanceAdmin(admin.ModelAdmin):
    list_display = ("card", "statement_month", "amount", "household", "created_at")
    list_filter = ("household", "card")
    list_select_related = ("card", "household")
    readonly_fields = ("adjustment", "settled_installments")

from django.contrib import admin, messages

from .models import Household, SystemLog


@admin.register(Household)
class HouseholdAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "created_at")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}


@admin.register(SystemLog)
class SystemLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "level", "source", "message", "household", "is_resolved")
    list_filter = ("level", "source", "is_resolved", "household")
    search_fields = ("message", "details")
    actions = ["mark_resolved"]

    @admin.action(description="Marcar logs selecionados como resolvidos")
    def mark_resolved(self, request, queryset):
        updated = queryset.update(is_resolved=True)
        self.message_user(request, f"{updated} log(s) marcados como resolvidos.", level=messages.SUCCESS)

from django.contrib import admin

from .models import DeviceToken


@admin.register(DeviceToken)
class DeviceTokenAdmin(admin.ModelAdmin):
    list_display = ("user", "platform", "is_active", "last_used_at",
                    "updated_at")
    list_filter = ("platform", "is_active")
    search_fields = ("user__username", "token")
    readonly_fields = ("created_at", "updated_at", "last_used_at")

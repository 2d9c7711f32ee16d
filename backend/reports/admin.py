from django.contrib import admin

from .models import Category, Report, ReportDetail


class ReportDetailInline(admin.StackedInline):
    model = ReportDetail
    extra = 0


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("id", "name")
    search_fields = ("name",)


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = ("id", "location", "status", "owner", "created_at",
                    "updated_at")
    list_filter = ("status", "categories")
    search_fields = ("location", "comment", "owner__username")
    # Status only changes through the API so points and notifications follow.
    readonly_fields = ("status", "created_at", "updated_at")
    filter_horizontal = ("categories",)
    inlines = [ReportDetailInline]


@admin.register(ReportDetail)
class ReportDetailAdmin(admin.ModelAdmin):
    list_display = ("report", "priority", "estimated_cost", "updated_at")
    list_filter = ("priority",)

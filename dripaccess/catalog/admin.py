from django.contrib import admin

from dripaccess.catalog.models import Webinar


@admin.register(Webinar)
class WebinarAdmin(admin.ModelAdmin):
    list_display = ["title", "price", "is_paid", "is_published", "created"]
    list_filter = ["is_paid", "is_published"]
    search_fields = ["title", "slug"]
    prepopulated_fields = {"slug": ["title"]}

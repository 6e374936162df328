from django.contrib import admin
from django.contrib.auth import admin as auth_admin
from django.utils.translation import gettext_lazy as _

from dripaccess.users.models import User


@admin.register(User)
class UserAdmin(auth_admin.UserAdmin):
    fieldsets = (
        (None, {"fields": ("username", "password")}),
        (_("Personal info"), {"fields": ("name", "email")}),
        (
            _("Entitlements"),
            {"fields": ("account_active", "has_purchased_plan")},
        ),
        (
            _("Permissions"),
            {
                "fields": (
                    "is_active",
                    "is_staff",
                    "is_superuser",
                    "groups",
                    "user_permissions",
                ),
            },
        ),
        (_("Important dates"), {"fields": ("last_login", "date_joined")}),
    )
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("username", "email", "password1", "password2"),
            },
        ),
    )
    # Engine-owned flags are only changed by the entitlement engine.
    readonly_fields = ["account_active", "has_purchased_plan"]
    list_display = ["username", "email", "name", "account_active", "is_superuser"]
    list_filter = ["account_active", "has_purchased_plan", "is_staff"]
    search_fields = ["name", "username", "email"]

# accounting/admin.py

from django.contrib import admin

from accounting.models.account import Account
from accounting.models.journal import JournalEntry, JournalEntryLine, LedgerSequence
from accounting.models.template import JournalEntryTemplate, TemplateLine

# ============================================================
# ACCOUNT
# ============================================================


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "account_type",
        "level",
        "is_postable",
        "is_active",
        "debit_balance",
        "credit_balance",
    )
    list_filter = ("account_type", "is_postable", "is_active")
    search_fields = ("code", "name")
    ordering = ("code",)
    readonly_fields = ("level", "debit_balance", "credit_balance", "created_at", "updated_at")

    fieldsets = (
        (
            "Account Identity",
            {
                "fields": ("code", "name", "account_type", "parent", "level"),
            },
        ),
        (
            "Status",
            {
                "fields": ("is_postable", "is_active", "description"),
            },
        ),
        (
            "Running Balances",
            {
                "fields": ("debit_balance", "credit_balance"),
            },
        ),
        (
            "Audit",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# JOURNAL ENTRY (READ-ONLY AUDIT)
# ============================================================


class JournalEntryLineInline(admin.TabularInline):
    model = JournalEntryLine
    extra = 0
    can_delete = False
    fields = ("line_number", "account", "debit", "credit", "description")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(JournalEntry)
class JournalEntryAdmin(admin.ModelAdmin):
    list_display = (
        "entry_number",
        "date",
        "description",
        "template_code",
        "trigger_type",
        "status",
        "origin_type",
        "origin_id",
    )
    list_filter = ("status", "trigger_type", "origin_type", "date")
    search_fields = ("entry_number", "description", "reference", "origin_id")
    ordering = ("-entry_number",)
    inlines = [JournalEntryLineInline]

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(LedgerSequence)
class LedgerSequenceAdmin(admin.ModelAdmin):
    list_display = ("name", "next_value")
    readonly_fields = ("name", "next_value")

    def has_add_permission(self, request):
        return False


# ============================================================
# TEMPLATES
# ============================================================


class TemplateLineInline(admin.TabularInline):
    model = TemplateLine
    extra = 0
    fields = (
        "line_number",
        "account",
        "side",
        "amount_type",
        "fixed_amount",
        "percentage",
        "custom_field",
        "description",
    )


@admin.register(JournalEntryTemplate)
class JournalEntryTemplateAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "trigger_type", "is_active", "updated_at")
    list_filter = ("trigger_type", "is_active")
    search_fields = ("code", "name")
    ordering = ("code",)
    inlines = [TemplateLineInline]

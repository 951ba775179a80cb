# sales/admin.py

from django.contrib import admin

from sales.models import Activity, Customer, CustomerReceipt, Invoice, InvoiceItem


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "tax_id", "balance", "is_active")
    search_fields = ("name", "tax_id")
    readonly_fields = ("balance", "created_at")


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    can_delete = False
    readonly_fields = (
        "product",
        "quantity",
        "unit_price",
        "tax_rate",
        "subtotal",
        "tax_amount",
        "unit_cost",
    )


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "number",
        "invoice_type",
        "customer",
        "issue_date",
        "total",
        "balance",
        "status",
        "payment_status",
    )
    list_filter = ("invoice_type", "status", "payment_status", "issue_date")
    search_fields = ("number", "customer__name")
    ordering = ("-issue_date",)
    inlines = [InvoiceItemInline]

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False


@admin.register(CustomerReceipt)
class CustomerReceiptAdmin(admin.ModelAdmin):
    list_display = ("date", "customer", "invoice", "amount", "method", "journal_entry")
    list_filter = ("method",)

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ("created_at", "activity_type", "description", "user")
    list_filter = ("activity_type",)
    readonly_fields = ("activity_type", "description", "invoice", "metadata", "user", "created_at")

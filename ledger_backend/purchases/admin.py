# purchases/admin.py

from django.contrib import admin

from purchases.models import PurchaseInvoice, PurchaseInvoiceItem, Supplier, SupplierPayment


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("name", "tax_id", "balance", "is_active")
    search_fields = ("name", "tax_id")
    readonly_fields = ("balance", "created_at")


class PurchaseInvoiceItemInline(admin.TabularInline):
    model = PurchaseInvoiceItem
    extra = 0
    can_delete = False
    readonly_fields = ("product", "quantity", "unit_cost")


@admin.register(PurchaseInvoice)
class PurchaseInvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_number",
        "supplier",
        "invoice_date",
        "total_amount",
        "balance",
        "status",
        "payment_status",
    )
    list_filter = ("status", "payment_status")
    search_fields = ("invoice_number", "supplier__name")
    inlines = [PurchaseInvoiceItemInline]

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False


@admin.register(SupplierPayment)
class SupplierPaymentAdmin(admin.ModelAdmin):
    list_display = ("payment_date", "supplier", "invoice", "amount", "payment_method", "journal_entry")
    list_filter = ("payment_method",)

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

# products/admin.py

from django.contrib import admin

from products.models import Product, ProductPrice, StockMovement


class ProductPriceInline(admin.TabularInline):
    model = ProductPrice
    extra = 0
    fields = ("price_type", "amount", "currency", "valid_from", "valid_until")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("sku", "name", "stock_quantity", "min_stock", "allow_negative_stock", "is_active")
    list_filter = ("is_active", "allow_negative_stock")
    search_fields = ("sku", "name")
    ordering = ("name",)
    # stock only moves through stock movements
    readonly_fields = ("stock_quantity", "created_at", "updated_at")
    inlines = [ProductPriceInline]


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = (
        "created_at",
        "product",
        "movement_type",
        "quantity",
        "unit_cost",
        "total_cost",
        "stock_before",
        "stock_after",
        "reference",
        "journal_entry",
    )
    list_filter = ("movement_type",)
    search_fields = ("product__sku", "product__name", "reference")
    ordering = ("-created_at",)

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

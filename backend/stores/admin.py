from django.contrib import admin

from .models import Product, Store


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    list_display = ("slug", "name", "owner", "status", "revenue", "orders_count")
    search_fields = ("slug", "name", "owner__username")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "store", "price", "stock", "status")
    list_filter = ("status",)

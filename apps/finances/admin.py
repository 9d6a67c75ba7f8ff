"""Admin registration for finances."""

from __future__ import annotations

from django.contrib import admin

from .models import Payment, PaymentTransaction, Payout, PayoutAccount, RefundRequest


class PaymentTransactionInline(admin.TabularInline):
    model = PaymentTransaction
    extra = 0
    readonly_fields = ("event", "payload", "status", "created_at")


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "booking", "method", "status", "amount", "refunded_amount", "currency", "paid_at")
    list_filter = ("status", "method")
    search_fields = ("booking__booking_code", "transaction_id")
    raw_id_fields = ("booking", "payer")
    inlines = [PaymentTransactionInline]


@admin.register(RefundRequest)
class RefundRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "booking", "requested_by", "refund_percentage", "refund_amount", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("booking__booking_code", "requested_by__email")
    raw_id_fields = ("booking", "requested_by", "reviewed_by")


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    list_display = ("id", "owner", "booking", "amount", "currency", "status", "processed_at")
    list_filter = ("status",)
    search_fields = ("owner__email", "booking__booking_code", "reference")
    exclude = ("destination_account",)
    readonly_fields = ("masked_destination",)


@admin.register(PayoutAccount)
class PayoutAccountAdmin(admin.ModelAdmin):
    list_display = ("owner", "account_holder", "bank_name", "masked_number", "updated_at")
    search_fields = ("owner__email", "account_holder")
    exclude = ("account_number",)
    readonly_fields = ("masked_number",)

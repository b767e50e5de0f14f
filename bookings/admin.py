from django.contrib import admin, messages

from .errors import LaundryError
from .lifecycle import REPRICE_FIELDS, LifecycleStateMachine
from .models import BookingOrder, PickupSlot


def _run(modeladmin, request, queryset, action, label):
    machine = LifecycleStateMachine()
    done = 0
    for order in queryset:
        try:
            getattr(machine, action)(order.pk)
        except LaundryError as e:
            modeladmin.message_user(request, f'Order {order.pk}: {e.message}', level=messages.WARNING)
        else:
            done += 1
    if done:
        modeladmin.message_user(request, f'{label} {done} order(s).')


@admin.action(description='Approve selected bookings')
def approve_orders(modeladmin, request, queryset):
    _run(modeladmin, request, queryset, 'approve', 'Approved')


@admin.action(description='Advance selected orders one step')
def advance_orders(modeladmin, request, queryset):
    _run(modeladmin, request, queryset, 'advance', 'Advanced')


@admin.action(description='Move selected orders to history')
def delete_orders(modeladmin, request, queryset):
    _run(modeladmin, request, queryset, 'soft_delete', 'Deleted')


@admin.action(description='Restore selected orders from history')
def restore_orders(modeladmin, request, queryset):
    _run(modeladmin, request, queryset, 'restore', 'Restored')


@admin.register(BookingOrder)
class BookingOrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'customer_name', 'barangay', 'main_service', 'pickup_date', 'status',
                    'payment_status', 'total_display', 'is_deleted', 'created_at']
    list_filter = ['status', 'payment_status', 'payment_method', 'service_option', 'is_deleted', 'pickup_date']
    search_fields = ['customer_name', 'customer_contact', 'customer_email', 'barangay', 'payment_reference']
    # Date, deletion and payment fields change only through their workflows.
    readonly_fields = ['status', 'barangay', 'pickup_date', 'main_service_price_centavos', 'add_on_prices',
                       'delivery_fee_centavos', 'total_price_centavos', 'payment_method', 'payment_status',
                       'payment_reference', 'payment_proof_image', 'paid_at', 'timer_status', 'timer_started_at',
                       'timer_duration_ms', 'is_deleted', 'deleted_at', 'moved_to_history_at',
                       'created_at', 'updated_at']
    actions = [approve_orders, advance_orders, delete_orders, restore_orders]

    fieldsets = (
        ('Customer', {
            'fields': ('customer_name', 'customer_contact', 'customer_email',
                       'street', 'block_lot', 'landmark', 'barangay')
        }),
        ('Order', {
            'fields': ('status', 'main_service', 'add_ons', 'load_count', 'service_option',
                       'pickup_date', 'pickup_time', 'instructions', 'rejection_reason')
        }),
        ('Pricing', {
            'fields': ('main_service_price_centavos', 'add_on_prices', 'delivery_fee_centavos', 'total_price_centavos')
        }),
        ('Payment', {
            'fields': ('payment_method', 'payment_status', 'payment_reference', 'payment_proof_image',
                       'payment_notes', 'paid_at')
        }),
        ('Timer', {
            'fields': ('timer_status', 'timer_started_at', 'timer_duration_ms', 'auto_advance_enabled')
        }),
        ('History', {
            'fields': ('is_deleted', 'deleted_at', 'moved_to_history_at', 'created_at', 'updated_at')
        }),
    )

    def has_add_permission(self, request):
        return False

    def save_model(self, request, obj, form, change):
        priced = {name: form.cleaned_data[name] for name in form.changed_data if name in REPRICE_FIELDS}
        other = [name for name in form.changed_data if name not in priced]
        if other:
            obj.save(update_fields=other + ['updated_at'])
        if priced:
            try:
                LifecycleStateMachine().reprice(obj.pk, **priced)
            except LaundryError as e:
                self.message_user(request, f'Order {obj.pk} was not repriced: {e.message}', level=messages.ERROR)

    def total_display(self, obj):
        return f"₱{obj.total_price_centavos/100:.2f}"
    total_display.short_description = 'Total'


@admin.register(PickupSlot)
class PickupSlotAdmin(admin.ModelAdmin):
    list_display = ['pickup_date', 'booked', 'created_at']
    ordering = ['-pickup_date']

    def booked(self, obj):
        return BookingOrder.objects.holding_capacity().filter(pickup_date=obj.pickup_date).count()
    booked.short_description = 'Bookings'

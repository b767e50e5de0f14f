from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='BookingOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('pending_booking', 'Pending Booking'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('cancelled', 'Cancelled'), ('pending', 'Pending'), ('washing', 'Washing'), ('drying', 'Drying'), ('folding', 'Folding'), ('ready', 'Ready'), ('completed', 'Completed')], db_index=True, default='pending_booking', max_length=20)),
                ('customer_name', models.CharField(max_length=255)),
                ('customer_contact', models.CharField(max_length=50)),
                ('customer_email', models.EmailField(blank=True, max_length=254)),
                ('street', models.CharField(max_length=255)),
                ('block_lot', models.CharField(blank=True, max_length=100)),
                ('landmark', models.CharField(blank=True, max_length=255)),
                ('barangay', models.CharField(max_length=100)),
                ('main_service', models.CharField(max_length=50)),
                ('add_ons', models.JSONField(blank=True, default=list)),
                ('load_count', models.PositiveIntegerField(default=1)),
                ('service_option', models.CharField(choices=[('pickupOnly', 'Pickup Only'), ('pickupAndDelivery', 'Pickup and Delivery')], default='pickupAndDelivery', max_length=20)),
                ('pickup_date', models.DateField(db_index=True)),
                ('pickup_time', models.CharField(choices=[('7am-10am', 'Morning (7am-10am)'), ('5pm-7pm', 'Afternoon (5pm-7pm)')], max_length=20)),
                ('instructions', models.TextField(blank=True)),
                ('main_service_price_centavos', models.IntegerField(default=0)),
                ('add_on_prices', models.JSONField(blank=True, default=dict)),
                ('delivery_fee_centavos', models.IntegerField(default=0)),
                ('total_price_centavos', models.IntegerField(default=0)),
                ('payment_method', models.CharField(choices=[('cash', 'Cash'), ('gcash', 'GCash'), ('card', 'Card')], default='cash', max_length=10)),
                ('payment_status', models.CharField(choices=[('unpaid', 'Unpaid'), ('gcash_pending', 'GCash Pending Review'), ('paid', 'Paid')], db_index=True, default='unpaid', max_length=20)),
                ('payment_reference', models.CharField(blank=True, max_length=100)),
                ('payment_proof_image', models.CharField(blank=True, max_length=500)),
                ('payment_notes', models.TextField(blank=True)),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('timer_status', models.CharField(blank=True, max_length=20)),
                ('timer_started_at', models.DateTimeField(blank=True, null=True)),
                ('timer_duration_ms', models.PositiveIntegerField(blank=True, null=True)),
                ('auto_advance_enabled', models.BooleanField(default=False)),
                ('rejection_reason', models.TextField(blank=True)),
                ('is_deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('moved_to_history_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'bookings_booking_order',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='PickupSlot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('pickup_date', models.DateField(unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'bookings_pickup_slot',
            },
        ),
    ]

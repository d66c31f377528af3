"""
Initial migration for Lotman models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Lotman models: Warehouse, Location, Lot, Movement, Reservation."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Warehouse',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.SlugField(unique=True, verbose_name='Code')),
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive'), ('maintenance', 'Maintenance')], default='active', max_length=20, verbose_name='Status')),
                ('has_temperature_control', models.BooleanField(default=False, verbose_name='Temperature control')),
                ('has_hazardous_storage', models.BooleanField(default=False, verbose_name='Hazardous storage')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Warehouse',
                'verbose_name_plural': 'Warehouses',
                'ordering': ['code'],
            },
        ),
        migrations.CreateModel(
            name='LedgerSequence',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=50, unique=True, verbose_name='Name')),
                ('current_value', models.BigIntegerField(default=0, verbose_name='Current value')),
            ],
            options={
                'verbose_name': 'Ledger sequence',
                'verbose_name_plural': 'Ledger sequences',
            },
        ),
        migrations.CreateModel(
            name='Operation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(max_length=30, verbose_name='Kind')),
                ('key', models.CharField(max_length=150, verbose_name='Idempotency key')),
                ('request_hash', models.CharField(max_length=64)),
                ('result', models.JSONField(blank=True, default=dict)),
                ('actor', models.CharField(blank=True, default='', max_length=150)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
            ],
            options={
                'verbose_name': 'Operation',
                'verbose_name_plural': 'Operations',
                'constraints': [
                    models.UniqueConstraint(fields=('kind', 'key'), name='unique_operation_key'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Location',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(help_text='Zone/aisle/rack/level, e.g. A-01-03-2', max_length=50, verbose_name='Code')),
                ('zone', models.CharField(blank=True, default='', max_length=20)),
                ('aisle', models.CharField(blank=True, default='', max_length=20)),
                ('rack', models.CharField(blank=True, default='', max_length=20)),
                ('level', models.CharField(blank=True, default='', max_length=20)),
                ('kind', models.CharField(choices=[('storage', 'Storage'), ('cross_dock', 'Cross-dock'), ('quarantine', 'Quarantine'), ('loading', 'Loading'), ('unloading', 'Unloading')], default='storage', max_length=20, verbose_name='Kind')),
                ('max_weight', models.DecimalField(blank=True, decimal_places=3, max_digits=15, null=True, verbose_name='Max weight')),
                ('max_volume', models.DecimalField(blank=True, decimal_places=3, max_digits=15, null=True, verbose_name='Max volume')),
                ('max_quantity', models.DecimalField(blank=True, decimal_places=3, max_digits=15, null=True, verbose_name='Max quantity')),
                ('allows_hazardous', models.BooleanField(default=False, verbose_name='Hazardous allowed')),
                ('is_temperature_controlled', models.BooleanField(default=False, verbose_name='Temperature controlled')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('current_sku', models.CharField(blank=True, default='', help_text='Empty = unoccupied', max_length=64, verbose_name='Current product')),
                ('current_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=15, verbose_name='Current quantity')),
                ('current_weight', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=15)),
                ('current_volume', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=15)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='locations', to='lotman.warehouse', verbose_name='Warehouse')),
            ],
            options={
                'verbose_name': 'Location',
                'verbose_name_plural': 'Locations',
                'ordering': ['warehouse', 'code'],
                'indexes': [
                    models.Index(fields=['warehouse', 'kind', 'is_active'], name='lotman_loc_wh_kind_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('warehouse', 'code'), name='unique_location_code_per_warehouse'),
                    models.CheckConstraint(condition=models.Q(('current_quantity__gte', 0), ('current_weight__gte', 0), ('current_volume__gte', 0)), name='location_occupancy_non_negative'),
                    models.CheckConstraint(condition=models.Q(('max_quantity__isnull', True), ('current_quantity__lte', models.F('max_quantity')), _connector='OR'), name='location_quantity_within_max'),
                    models.CheckConstraint(condition=models.Q(('max_weight__isnull', True), ('current_weight__lte', models.F('max_weight')), _connector='OR'), name='location_weight_within_max'),
                    models.CheckConstraint(condition=models.Q(('max_volume__isnull', True), ('current_volume__lte', models.F('max_volume')), _connector='OR'), name='location_volume_within_max'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Lot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sku', models.CharField(db_index=True, max_length=64, verbose_name='SKU')),
                ('lot_number', models.CharField(blank=True, default='', max_length=50, verbose_name='Lot')),
                ('quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=15, verbose_name='On hand')),
                ('reserved_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=15, verbose_name='Reserved')),
                ('available_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=15, verbose_name='Available')),
                ('unit_cost', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=14, verbose_name='Unit cost')),
                ('expiry_date', models.DateField(blank=True, db_index=True, null=True, verbose_name='Expiry')),
                ('manufactured_on', models.DateField(blank=True, null=True, verbose_name='Manufactured')),
                ('received_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Received')),
                ('status', models.CharField(choices=[('available', 'Available'), ('reserved', 'Reserved'), ('quarantine', 'Quarantine'), ('damaged', 'Damaged'), ('shipped', 'Shipped')], db_index=True, default='available', max_length=20, verbose_name='Status')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('location', models.ForeignKey(blank=True, help_text='Empty = unplaced stock awaiting putaway', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='lotman.location', verbose_name='Location')),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lots', to='lotman.warehouse', verbose_name='Warehouse')),
            ],
            options={
                'verbose_name': 'Lot',
                'verbose_name_plural': 'Lots',
                'indexes': [
                    models.Index(fields=['sku', 'warehouse', 'lot_number'], name='lotman_lot_coordinate_idx'),
                    models.Index(fields=['warehouse', 'status'], name='lotman_lot_wh_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('location__isnull', False), ('status__in', ('available', 'reserved'))), fields=('sku', 'warehouse', 'lot_number', 'location'), name='unique_pickable_lot_coordinate'),
                    models.UniqueConstraint(condition=models.Q(('location__isnull', False), ('status', 'quarantine')), fields=('sku', 'warehouse', 'lot_number', 'location'), name='unique_quarantined_lot_coordinate'),
                    models.UniqueConstraint(condition=models.Q(('location__isnull', True), ('status__in', ('available', 'reserved'))), fields=('sku', 'warehouse', 'lot_number'), name='unique_pickable_unplaced_lot'),
                    models.UniqueConstraint(condition=models.Q(('location__isnull', True), ('status', 'quarantine')), fields=('sku', 'warehouse', 'lot_number'), name='unique_quarantined_unplaced_lot'),
                    models.CheckConstraint(condition=models.Q(('quantity__gte', 0), ('reserved_quantity__gte', 0)), name='lot_quantities_non_negative'),
                    models.CheckConstraint(condition=models.Q(('reserved_quantity__lte', models.F('quantity'))), name='lot_reserved_within_quantity'),
                    models.CheckConstraint(condition=models.Q(('available_quantity', models.F('quantity') - models.F('reserved_quantity'))), name='lot_available_consistent'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Reservation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reference', models.CharField(help_text='Caller reference, also the idempotency key', max_length=150, unique=True, verbose_name='Reference')),
                ('sku', models.CharField(db_index=True, max_length=64, verbose_name='SKU')),
                ('lot_hint', models.CharField(blank=True, default='', max_length=50, verbose_name='Lot hint')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=15, verbose_name='Quantity')),
                ('shipped_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=15, verbose_name='Shipped')),
                ('released_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=15, verbose_name='Released')),
                ('status', models.CharField(choices=[('active', 'Active'), ('fulfilled', 'Fulfilled'), ('released', 'Released')], db_index=True, default='active', max_length=20, verbose_name='Status')),
                ('expires_at', models.DateTimeField(blank=True, db_index=True, help_text='Released automatically if not shipped by then', null=True, verbose_name='Expires at')),
                ('actor', models.CharField(blank=True, default='', max_length=150)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('resolved_at', models.DateTimeField(blank=True, null=True, verbose_name='Resolved at')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reservations', to='lotman.warehouse', verbose_name='Warehouse')),
            ],
            options={
                'verbose_name': 'Reservation',
                'verbose_name_plural': 'Reservations',
                'indexes': [
                    models.Index(fields=['status', 'expires_at'], name='lotman_rsv_status_exp_idx'),
                    models.Index(fields=['sku', 'warehouse'], name='lotman_rsv_sku_wh_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('shipped_quantity__gte', 0), ('released_quantity__gte', 0), ('quantity__gte', models.F('shipped_quantity') + models.F('released_quantity'))), name='reservation_quantities_consistent'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ReservationLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=15)),
                ('shipped_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=15)),
                ('released_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=15)),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reservation_lines', to='lotman.lot')),
                ('reservation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='lotman.reservation')),
            ],
            options={
                'verbose_name': 'Reservation line',
                'verbose_name_plural': 'Reservation lines',
                'ordering': ['pk'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity__gte', models.F('shipped_quantity') + models.F('released_quantity'))), name='reservation_line_quantities_consistent'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Movement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sequence', models.BigIntegerField(unique=True, verbose_name='Position')),
                ('sku', models.CharField(max_length=64, verbose_name='SKU')),
                ('lot_number', models.CharField(blank=True, default='', max_length=50, verbose_name='Lot')),
                ('movement_type', models.CharField(choices=[('receipt', 'Receipt'), ('shipment', 'Shipment'), ('transfer', 'Transfer'), ('adjustment', 'Adjustment'), ('count', 'Cycle count'), ('damage', 'Damage')], max_length=20, verbose_name='Type')),
                ('quantity', models.DecimalField(decimal_places=3, help_text='Positive = into the lot, negative = out of it', max_digits=15, verbose_name='Quantity')),
                ('expiry_date', models.DateField(blank=True, null=True)),
                ('unit_cost', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=14)),
                ('reference_type', models.CharField(blank=True, default='', max_length=50)),
                ('reference_id', models.CharField(blank=True, default='', max_length=100)),
                ('reason', models.CharField(blank=True, default='', max_length=255, verbose_name='Reason')),
                ('actor', models.CharField(blank=True, default='', max_length=150, verbose_name='Actor')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Timestamp')),
                ('from_location', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='lotman.location', verbose_name='From')),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='lotman.lot', verbose_name='Lot record')),
                ('operation', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='lotman.operation', verbose_name='Operation')),
                ('to_location', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='lotman.location', verbose_name='To')),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='lotman.warehouse', verbose_name='Warehouse')),
            ],
            options={
                'verbose_name': 'Movement',
                'verbose_name_plural': 'Movements',
                'ordering': ['sequence'],
                'indexes': [
                    models.Index(fields=['sku', 'warehouse', 'lot_number', 'sequence'], name='lotman_mov_coordinate_idx'),
                    models.Index(fields=['lot', 'sequence'], name='lotman_mov_lot_seq_idx'),
                    models.Index(fields=['reference_type', 'reference_id'], name='lotman_mov_reference_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockAlert',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sku', models.CharField(max_length=64, verbose_name='SKU')),
                ('min_quantity', models.DecimalField(decimal_places=3, help_text='Alert fires when available < this value', max_digits=15, verbose_name='Minimum quantity')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('last_triggered_at', models.DateTimeField(blank=True, null=True, verbose_name='Last triggered')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('warehouse', models.ForeignKey(blank=True, help_text='Empty = all warehouses combined', null=True, on_delete=django.db.models.deletion.CASCADE, related_name='alerts', to='lotman.warehouse', verbose_name='Warehouse')),
            ],
            options={
                'verbose_name': 'Stock alert',
                'verbose_name_plural': 'Stock alerts',
                'indexes': [
                    models.Index(fields=['is_active'], name='lotman_alert_active_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('sku', 'warehouse'), name='unique_stock_alert_per_sku_warehouse'),
                ],
            },
        ),
    ]

"""
Inventory movement ledger.

Generated manually
"""
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('core', '0001_initial'),
        ('products', '0001_initial'),
        ('returns', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='InventoryMovement',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('movement_type', models.CharField(choices=[('sale_return', 'Sale Return'), ('sale_return_defective', 'Sale Return (Defective)'), ('purchase_return', 'Purchase Return')], max_length=30, verbose_name='Movement Type')),
                ('quantity', models.IntegerField(help_text='Requested signed delta', verbose_name='Quantity')),
                ('applied_quantity', models.IntegerField(help_text='Delta actually applied to the counter after the zero floor', verbose_name='Applied Quantity')),
                ('balance_after', models.IntegerField(help_text='Counter value right after this movement', verbose_name='Balance After')),
                ('note', models.TextField(blank=True, verbose_name='Note')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL, verbose_name='Created By')),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='inventory_movements', to='core.organization', verbose_name='Organization')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='inventory_movements', to='products.product', verbose_name='Product')),
                ('reference_return', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='returns.return', verbose_name='Return')),
                ('reference_return_line', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movement', to='returns.returnline', verbose_name='Return Line')),
            ],
            options={
                'verbose_name': 'Inventory Movement',
                'verbose_name_plural': 'Inventory Movements',
                'db_table': 'inventory_movements',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['product', '-created_at'], name='idx_movement_product'),
                    models.Index(fields=['organization', '-created_at'], name='idx_movement_org'),
                    models.Index(fields=['movement_type', '-created_at'], name='idx_movement_type'),
                ],
            },
        ),
        migrations.AddConstraint(
            model_name='inventorymovement',
            constraint=models.CheckConstraint(condition=models.Q(('quantity', 0), _negated=True), name='inventory_movement_quantity_non_zero'),
        ),
        migrations.AddConstraint(
            model_name='inventorymovement',
            constraint=models.CheckConstraint(condition=models.Q(('balance_after__gte', 0)), name='inventory_movement_balance_non_negative'),
        ),
    ]

"""
Sale and purchase returns with their lines.

Generated manually
"""
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('core', '0001_initial'),
        ('contacts', '0001_initial'),
        ('products', '0001_initial'),
        ('sales', '0001_initial'),
        ('purchases', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Return',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('return_number', models.CharField(help_text='Human-readable number (SR-000001 / PR-000001)', max_length=50, verbose_name='Return Number')),
                ('kind', models.CharField(choices=[('sale', 'Sale Return'), ('purchase', 'Purchase Return')], max_length=20, verbose_name='Kind')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='pending', max_length=20, verbose_name='Status')),
                ('refund_type', models.CharField(blank=True, choices=[('full', 'Full Refund'), ('partial', 'Partial Refund'), ('none', 'No Refund')], max_length=20, null=True, verbose_name='Refund Type')),
                ('amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Sum of quantity x unit price', max_digits=12, verbose_name='Amount')),
                ('discount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Discount')),
                ('tax', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Tax')),
                ('total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Total')),
                ('refund_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Refund owed (sale) or debit against the supplier (purchase)', max_digits=12, verbose_name='Refund Amount')),
                ('currency', models.CharField(default='USD', max_length=3, verbose_name='Currency')),
                ('return_date', models.DateField(blank=True, null=True, verbose_name='Return Date')),
                ('reason', models.TextField(blank=True, verbose_name='Reason')),
                ('refund_reason', models.TextField(blank=True, verbose_name='Refund Reason')),
                ('notes', models.TextField(blank=True, verbose_name='Notes')),
                ('rejection_reason', models.TextField(blank=True, verbose_name='Rejection Reason')),
                ('idempotency_key', models.CharField(blank=True, help_text='Client key that makes create retries return the same return', max_length=100, null=True, verbose_name='Idempotency Key')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('decided_at', models.DateTimeField(blank=True, null=True, verbose_name='Decided At')),
                ('counterparty', models.ForeignKey(blank=True, help_text='Customer for sale returns, supplier for purchase returns', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='returns', to='contacts.contact', verbose_name='Counterparty')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Created By')),
                ('decided_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Decided By')),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='returns', to='core.organization', verbose_name='Organization')),
                ('purchase_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='returns', to='purchases.purchaseorder', verbose_name='Purchase Order')),
                ('sale', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='returns', to='sales.sale', verbose_name='Sale')),
            ],
            options={
                'verbose_name': 'Return',
                'verbose_name_plural': 'Returns',
                'db_table': 'returns',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['organization', 'status', '-created_at'], name='idx_return_org_status'),
                    models.Index(fields=['kind', '-created_at'], name='idx_return_kind_created'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ReturnLine',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('product_name', models.CharField(max_length=255, verbose_name='Product Name')),
                ('product_sku', models.CharField(max_length=100, verbose_name='Product SKU')),
                ('quantity', models.PositiveIntegerField(verbose_name='Quantity')),
                ('unit_price', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Unit Price')),
                ('discount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Discount')),
                ('tax_rate', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Percentage, e.g. 10.00 for 10%', max_digits=5, verbose_name='Tax Rate')),
                ('tax_amount', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=14, verbose_name='Tax Amount')),
                ('line_total', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=14, verbose_name='Line Total')),
                ('condition', models.CharField(choices=[('good', 'Good'), ('damaged', 'Damaged'), ('defective', 'Defective'), ('excess', 'Excess'), ('wrong_item', 'Wrong Item')], max_length=20, verbose_name='Condition')),
                ('position', models.PositiveSmallIntegerField(default=0, verbose_name='Position')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='return_lines', to='products.product', verbose_name='Product')),
                ('return_obj', models.ForeignKey(db_column='return_id', on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='returns.return', verbose_name='Return')),
            ],
            options={
                'verbose_name': 'Return Line',
                'verbose_name_plural': 'Return Lines',
                'db_table': 'return_lines',
                'ordering': ['position', 'created_at'],
            },
        ),
        migrations.AddConstraint(
            model_name='return',
            constraint=models.UniqueConstraint(fields=('organization', 'return_number'), name='unique_return_number_per_org'),
        ),
        migrations.AddConstraint(
            model_name='return',
            constraint=models.UniqueConstraint(condition=models.Q(('idempotency_key__isnull', False)), fields=('organization', 'idempotency_key'), name='unique_return_idempotency_key_per_org'),
        ),
        migrations.AddConstraint(
            model_name='return',
            constraint=models.CheckConstraint(condition=models.Q(models.Q(('kind', 'sale'), ('purchase_order__isnull', True), ('sale__isnull', False)), models.Q(('kind', 'purchase'), ('purchase_order__isnull', False), ('sale__isnull', True)), _connector='OR'), name='return_origin_matches_kind'),
        ),
        migrations.AddConstraint(
            model_name='return',
            constraint=models.CheckConstraint(condition=models.Q(models.Q(('kind', 'sale'), ('refund_type__isnull', False)), models.Q(('kind', 'purchase'), ('refund_type__isnull', True)), _connector='OR'), name='return_refund_type_matches_kind'),
        ),
        migrations.AddConstraint(
            model_name='return',
            constraint=models.CheckConstraint(condition=models.Q(('total__gte', 0), ('refund_amount__gte', 0)), name='return_amounts_non_negative'),
        ),
        migrations.AddConstraint(
            model_name='returnline',
            constraint=models.CheckConstraint(condition=models.Q(('quantity__gt', 0)), name='return_line_quantity_positive'),
        ),
        migrations.AddConstraint(
            model_name='returnline',
            constraint=models.CheckConstraint(condition=models.Q(('unit_price__gte', 0), ('discount__gte', 0)), name='return_line_amounts_non_negative'),
        ),
    ]

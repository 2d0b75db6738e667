"""
Credit and debit notes.

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
        ('returns', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='FinancialNote',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('note_number', models.CharField(max_length=50, verbose_name='Note Number')),
                ('note_type', models.CharField(choices=[('sales', 'Credit Note'), ('purchase', 'Debit Note')], max_length=20, verbose_name='Note Type')),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('issued', 'Issued'), ('applied', 'Applied'), ('cancelled', 'Cancelled')], default='issued', max_length=20, verbose_name='Status')),
                ('amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Subtotal less discounts', max_digits=12, verbose_name='Amount')),
                ('tax_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Tax Amount')),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Total Amount')),
                ('refund_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Amount owed to the customer (credit) or deducted from the supplier (debit)', max_digits=12, verbose_name='Refund Amount')),
                ('currency', models.CharField(default='USD', max_length=3, verbose_name='Currency')),
                ('reason', models.TextField(blank=True, verbose_name='Reason')),
                ('notes', models.TextField(blank=True, verbose_name='Notes')),
                ('issued_date', models.DateField(blank=True, null=True, verbose_name='Issued Date')),
                ('applied_date', models.DateField(blank=True, null=True, verbose_name='Applied Date')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='Cancelled At')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('counterparty', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='financial_notes', to='contacts.contact', verbose_name='Counterparty')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Created By')),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='financial_notes', to='core.organization', verbose_name='Organization')),
                ('source_return', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='financial_note', to='returns.return', verbose_name='Return')),
            ],
            options={
                'verbose_name': 'Financial Note',
                'verbose_name_plural': 'Financial Notes',
                'db_table': 'financial_notes',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['organization', 'status'], name='idx_note_org_status'),
                    models.Index(fields=['note_type', '-created_at'], name='idx_note_type_created'),
                ],
            },
        ),
        migrations.AddConstraint(
            model_name='financialnote',
            constraint=models.UniqueConstraint(fields=('organization', 'note_number'), name='unique_note_number_per_org'),
        ),
        migrations.AddConstraint(
            model_name='financialnote',
            constraint=models.CheckConstraint(condition=models.Q(('total_amount__gte', 0)), name='note_total_non_negative'),
        ),
        migrations.AddConstraint(
            model_name='financialnote',
            constraint=models.CheckConstraint(condition=models.Q(('refund_amount__gte', 0)), name='note_refund_non_negative'),
        ),
    ]

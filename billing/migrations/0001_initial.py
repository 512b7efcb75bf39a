import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import uuid
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


DAY_CHOICES = [
    ('Monday', 'Monday'), ('Tuesday', 'Tuesday'), ('Wednesday', 'Wednesday'),
    ('Thursday', 'Thursday'), ('Friday', 'Friday'), ('Saturday', 'Saturday'),
    ('Sunday', 'Sunday'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Bill',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('bill_number', models.CharField(help_text='Bill number (stored uppercase)', max_length=50, unique=True)),
                ('retailer_name', models.CharField(db_index=True, max_length=200)),
                ('amount', models.DecimalField(decimal_places=2, help_text='Total bill amount', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('due_amount', models.DecimalField(decimal_places=2, help_text='Remaining unpaid amount', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('prior_paid', models.DecimalField(decimal_places=2, default=0, help_text='Amount received before the bill was entered', max_digits=12)),
                ('collection_day', models.CharField(blank=True, choices=DAY_CHOICES, max_length=10)),
                ('bill_date', models.DateField()),
                ('due_date', models.DateField(db_index=True)),
                ('status', models.CharField(choices=[('Paid', 'Paid'), ('Unpaid', 'Unpaid'), ('Partially Paid', 'Partially Paid')], db_index=True, default='Unpaid', max_length=20)),
                ('assigned_to_name', models.CharField(blank=True, max_length=150)),
                ('assigned_date', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('payment_date', models.DateTimeField(blank=True, null=True)),
                ('payment_method', models.CharField(blank=True, max_length=20)),
                ('history', models.TextField(blank=True, help_text='Append-only activity log')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_bills', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='bills_created', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Bill',
                'verbose_name_plural': 'Bills',
                'db_table': 'bills',
                'ordering': ['due_date', 'bill_number'],
            },
        ),
        migrations.CreateModel(
            name='Collection',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('amount_collected', models.DecimalField(decimal_places=2, help_text='Amount collected in this payment', max_digits=12)),
                ('payment_mode', models.CharField(choices=[('cash', 'Cash'), ('cheque', 'Cheque'), ('bank_transfer', 'Bank Transfer'), ('upi', 'UPI')], default='cash', max_length=20)),
                ('payment_details', models.JSONField(blank=True, null=True)),
                ('remarks', models.CharField(blank=True, max_length=200)),
                ('collected_on', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('due_after', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('bill', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='collections', to='billing.bill')),
                ('collected_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='collections', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Collection',
                'verbose_name_plural': 'Collections',
                'db_table': 'collections',
                'ordering': ['collected_on', 'created_at'],
            },
        ),
    ]

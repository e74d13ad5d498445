import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


NOTIFICATION_TYPES = [
    'appointment_booked', 'appointment_approved', 'appointment_declined',
    'appointment_confirmed', 'appointment_cancelled', 'appointment_rescheduled',
    'appointment_reminder', 'appointment_completed', 'appointment_no_show',
    'prescription_created', 'prescription_updated', 'prescription_ready',
    'ticket_update', 'stock_low', 'system',
]
DOSAGE_FORMS = ['tablet', 'capsule', 'syrup', 'injection', 'cream', 'ointment', 'drops', 'inhaler', 'patch']
UNITS = ['mg', 'g', 'ml', 'l', 'units', 'pieces']
CATEGORIES = ['prescription', 'over_the_counter', 'controlled_substance', 'vaccine', 'medical_device']
STOCK_ACTIONS = ['stock_in', 'stock_out', 'adjustment', 'expiry', 'damage', 'return']


class Migration(migrations.Migration):

    dependencies = [
        ('clinic', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='MedicineStock',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('medicine_id', models.CharField(max_length=30, unique=True)),
                ('name', models.CharField(db_index=True, max_length=200)),
                ('generic_name', models.CharField(blank=True, max_length=200)),
                ('quantity_available', models.PositiveIntegerField(default=0)),
                ('expiry_date', models.DateField(db_index=True)),
                ('dosage_form', models.CharField(choices=[(f, f) for f in DOSAGE_FORMS], max_length=20)),
                ('strength', models.CharField(blank=True, max_length=50)),
                ('unit', models.CharField(choices=[(u, u) for u in UNITS], max_length=10)),
                ('category', models.CharField(choices=[(c, c) for c in CATEGORIES], db_index=True, max_length=30)),
                ('prescription_required', models.BooleanField(default=True)),
                ('batch_number', models.CharField(blank=True, max_length=50)),
                ('supplier', models.JSONField(blank=True, default=dict)),
                ('cost_price', models.DecimalField(decimal_places=2, max_digits=10)),
                ('selling_price', models.DecimalField(decimal_places=2, max_digits=10)),
                ('minimum_stock_level', models.PositiveIntegerField(default=10)),
                ('reorder_quantity', models.PositiveIntegerField(default=100)),
                ('location', models.JSONField(blank=True, default=dict)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive'),
                                                     ('discontinued', 'Discontinued'), ('recalled', 'Recalled')],
                                            db_index=True, default='active', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                                                 related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={'ordering': ['name', 'medicine_id']},
        ),
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[(a, a) for a in STOCK_ACTIONS], max_length=20)),
                ('quantity', models.PositiveIntegerField()),
                ('previous_quantity', models.PositiveIntegerField()),
                ('new_quantity', models.PositiveIntegerField()),
                ('reason', models.CharField(blank=True, max_length=300)),
                ('batch_number', models.CharField(blank=True, max_length=50)),
                ('prescription_id', models.CharField(blank=True, max_length=30)),
                ('timestamp', models.DateTimeField(auto_now_add=True)),
                ('medicine', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='movements',
                                               to='clinic.medicinestock')),
                ('performed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                                                   related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={'ordering': ['-timestamp', '-id']},
        ),
        migrations.AlterField(
            model_name='notification',
            name='type',
            field=models.CharField(choices=[(t, t) for t in NOTIFICATION_TYPES], default='system', max_length=30),
        ),
    ]

import django.core.serializers.json
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Quotation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quotation_number', models.CharField(max_length=64, unique=True)),
                ('client', models.CharField(max_length=255)),
                ('origin', models.CharField(max_length=255)),
                ('destination', models.CharField(max_length=255)),
                ('cargo_type', models.CharField(max_length=64)),
                ('cargo_description', models.TextField(blank=True, null=True)),
                ('status', models.CharField(choices=[('CREATED', 'Created'), ('QUOTATION', 'Quotation'), ('CONFIRMED', 'Confirmed'), ('ONGOING', 'Ongoing'), ('ARRIVED', 'Arrived'), ('RELEASED', 'Released'), ('CLOSED', 'Closed'), ('CANCELLED', 'Cancelled')], default='CREATED', max_length=20)),
                ('close_reason', models.TextField(blank=True, null=True)),
                ('estimated_cost', models.DecimalField(decimal_places=2, default=1, max_digits=18)),
                ('profit', models.JSONField(default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('carrier_rates', models.JSONField(default=list, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('extra_services', models.JSONField(default=list, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('customer_rates', models.JSONField(default=list, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('offers', models.JSONField(default=list, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('attributes', models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('version', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['status', '-created_at'], name='quotes_status_created_idx'),
                    models.Index(fields=['client'], name='quotes_client_idx'),
                ],
            },
        ),
    ]

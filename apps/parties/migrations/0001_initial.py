# Generated manually for the parties app

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Party',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('display_name', models.CharField(max_length=200)),
                ('party_type', models.CharField(choices=[('SUPPLIER', 'Supplier'), ('CUSTOMER', 'Customer')], max_length=20)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('address', models.CharField(blank=True, max_length=255)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'parties',
                'verbose_name_plural': 'parties',
                'ordering': ['display_name'],
                'indexes': [models.Index(fields=['party_type', 'display_name'], name='parties_type_name_idx')],
            },
        ),
    ]

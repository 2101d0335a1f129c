from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='UserCopyRecord',
            fields=[
                ('copy_id', models.CharField(max_length=100, primary_key=True, serialize=False)),
                ('owner_id', models.CharField(db_index=True, max_length=100)),
                ('master_bot_id', models.CharField(db_index=True, max_length=100)),
                ('invested_amount', models.DecimalField(decimal_places=2, max_digits=20)),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('CLOSING', 'Closing'), ('CLOSED', 'Closed')], default='ACTIVE', max_length=10)),
                ('created_at', models.FloatField()),
                ('closed_at', models.FloatField(blank=True, null=True)),
                ('final_pnl', models.FloatField(blank=True, null=True)),
                ('final_value', models.FloatField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['created_at'],
            },
        ),
    ]

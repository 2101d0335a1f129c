from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('copy_trading', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='usercopyrecord',
            name='final_stats',
            field=models.JSONField(blank=True, null=True),
        ),
    ]

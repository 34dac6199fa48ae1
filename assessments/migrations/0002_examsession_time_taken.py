from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('assessments', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='examsession',
            name='time_taken',
            field=models.PositiveIntegerField(blank=True, help_text='Seconds the candidate spent on the attempt', null=True),
        ),
    ]

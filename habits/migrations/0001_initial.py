# Generated manually for the habit data layer

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Habit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.TextField()),
                ('created_at', models.DateTimeField(db_column='createdAt')),
                ('deleted_at', models.DateField(blank=True, db_column='deletedAt', null=True)),
                ('scheduled_time', models.CharField(blank=True, db_column='scheduledTime', max_length=5, null=True)),
                ('is_critical', models.BooleanField(db_column='isCritical', default=False)),
            ],
            options={
                'db_table': 'habits',
                'ordering': ['created_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='HabitRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField()),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('done', 'Done')], default='pending', max_length=10)),
                ('duration_minutes', models.PositiveIntegerField(blank=True, db_column='durationMinutes', null=True)),
                ('completion_time', models.CharField(blank=True, db_column='completionTime', max_length=5, null=True)),
                ('habit', models.ForeignKey(db_column='habitId', db_index=False, on_delete=django.db.models.deletion.CASCADE, related_name='records', to='habits.habit')),
            ],
            options={
                'db_table': 'habit_records',
            },
        ),
        migrations.AddConstraint(
            model_name='habitrecord',
            constraint=models.UniqueConstraint(fields=('habit', 'date'), name='unique_record_per_habit_per_day'),
        ),
        migrations.AddIndex(
            model_name='habitrecord',
            index=models.Index(fields=['date'], name='idx_habit_records_date'),
        ),
        migrations.AddIndex(
            model_name='habitrecord',
            index=models.Index(fields=['habit'], name='idx_habit_records_habitId'),
        ),
    ]

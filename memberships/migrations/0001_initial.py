import django.db.models.deletion
import django.utils.timezone
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('gyms', '0001_initial'),
        ('members', '0001_initial'),
        ('activities', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Membership',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('member_name', models.CharField(blank=True, max_length=255)),
                ('activity_name', models.CharField(blank=True, max_length=255)),
                ('cost', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('price_source', models.CharField(choices=[('activity', 'Activity tier'), ('plan', 'Membership plan'), ('previous', 'Previous price'), ('manual', 'Set on assignment')], default='manual', max_length=10)),
                ('start_date', models.DateField(default=django.utils.timezone.localdate)),
                ('end_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('expired', 'Expired'), ('cancelled', 'Cancelled'), ('renewed', 'Renewed')], default='active', max_length=10)),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('paid', 'Paid'), ('partial', 'Partial')], default='pending', max_length=10)),
                ('auto_renewal', models.BooleanField(default=False)),
                ('max_attendances', models.PositiveIntegerField(default=0, help_text='0 = unlimited')),
                ('current_attendances', models.PositiveIntegerField(default=0)),
                ('renewed_automatically', models.BooleanField(default=False)),
                ('renewal_date', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('activity', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='memberships', to='activities.activity')),
                ('gym', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to='gyms.gym')),
                ('member', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to='members.member')),
                ('plan', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='memberships', to='activities.membershipplan')),
                ('previous_membership', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='memberships.membership')),
                ('renewed_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='memberships.membership')),
            ],
            options={
                'ordering': ['-start_date', '-created_at'],
                'indexes': [
                    models.Index(fields=['gym', 'status', 'end_date'], name='membership_gym_status_end_idx'),
                    models.Index(fields=['gym', 'auto_renewal'], name='membership_gym_auto_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PendingPayment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('paid', 'Paid')], default='pending', max_length=10)),
                ('type', models.CharField(choices=[('membership_renewal', 'Membership renewal')], default='membership_renewal', max_length=30)),
                ('due_date', models.DateField()),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('gym', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='pending_payments', to='gyms.gym')),
                ('member', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='pending_payments', to='members.member')),
                ('membership', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='pending_payments', to='memberships.membership')),
            ],
            options={
                'ordering': ['due_date', 'created_at'],
            },
        ),
        migrations.CreateModel(
            name='RenewalLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('renewal', 'Renewal'), ('batch_renewal', 'Batch renewal'), ('monthly_process', 'Monthly process')], max_length=20)),
                ('success', models.BooleanField(default=True)),
                ('member_name', models.CharField(blank=True, max_length=255)),
                ('activity_name', models.CharField(blank=True, max_length=255)),
                ('old_end_date', models.DateField(blank=True, null=True)),
                ('new_end_date', models.DateField(blank=True, null=True)),
                ('old_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('new_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('price_source', models.CharField(blank=True, choices=[('activity', 'Activity tier'), ('plan', 'Membership plan'), ('previous', 'Previous price'), ('manual', 'Set on assignment')], max_length=10)),
                ('months', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('automatic', models.BooleanField(default=False)),
                ('error', models.TextField(blank=True)),
                ('details', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('gym', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='renewal_logs', to='gyms.gym')),
                ('membership', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='renewal_logs', to='memberships.membership')),
                ('new_membership', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='memberships.membership')),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='MonthlyRenewalRun',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('year', models.PositiveSmallIntegerField()),
                ('month', models.PositiveSmallIntegerField()),
                ('notify_only', models.BooleanField(default=False)),
                ('renewed_count', models.PositiveIntegerField(default=0)),
                ('failed_count', models.PositiveIntegerField(default=0)),
                ('notified_count', models.PositiveIntegerField(default=0)),
                ('started_at', models.DateTimeField(auto_now_add=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('gym', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='monthly_renewal_runs', to='gyms.gym')),
            ],
            options={
                'ordering': ['-year', '-month'],
                'constraints': [models.UniqueConstraint(fields=('gym', 'year', 'month'), name='unique_monthly_renewal_run')],
            },
        ),
    ]

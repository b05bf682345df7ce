import uuid

import django.db.models.deletion
from django.db import migrations, models

import ledger.utils


def money(**kwargs):
    return models.DecimalField(max_digits=14, decimal_places=2, **kwargs)


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Staff",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("username", models.CharField(max_length=100, unique=True)),
                ("full_name", models.CharField(max_length=200)),
                ("email", models.EmailField(blank=True, max_length=254)),
                (
                    "role",
                    models.CharField(
                        choices=[("admin", "Admin"), ("agent", "Agent"), ("subadmin", "Sub-admin")],
                        max_length=10,
                    ),
                ),
                ("status", models.CharField(default="active", max_length=20)),
                ("created_at", models.DateTimeField(default=ledger.utils.now)),
                ("last_login", models.DateTimeField(blank=True, null=True)),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("account_number", models.CharField(max_length=20, unique=True)),
                ("union_group_name", models.CharField(blank=True, max_length=200)),
                ("first_name", models.CharField(max_length=100)),
                ("middle_name", models.CharField(blank=True, max_length=100)),
                ("last_name", models.CharField(max_length=100)),
                ("full_name", models.CharField(max_length=300)),
                ("marital_status", models.CharField(blank=True, max_length=30)),
                ("age", models.PositiveIntegerField(blank=True, null=True)),
                ("occupation", models.CharField(blank=True, max_length=100)),
                ("business_address", models.CharField(blank=True, max_length=300)),
                ("nearest_bus_stop", models.CharField(blank=True, max_length=200)),
                ("phone_number", models.CharField(blank=True, max_length=30)),
                ("state_of_origin", models.CharField(blank=True, max_length=100)),
                ("loan_amount_requested", money(blank=True, null=True)),
                ("residential_address", models.CharField(blank=True, max_length=300)),
                ("date_of_birth", models.DateField(blank=True, null=True)),
                ("photo_url", models.CharField(blank=True, max_length=500)),
                ("documents_url", models.CharField(blank=True, max_length=500)),
                ("status", models.CharField(default="active", max_length=20)),
                ("created_at", models.DateTimeField(default=ledger.utils.now)),
                (
                    "admin",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="administered_customers",
                        to="ledger.staff",
                    ),
                ),
                (
                    "agent",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="customers", to="ledger.staff"
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="Guarantor",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=200)),
                ("occupation", models.CharField(blank=True, max_length=100)),
                ("business_address", models.CharField(blank=True, max_length=300)),
                ("nearest_bus_stop", models.CharField(blank=True, max_length=200)),
                ("phone_number", models.CharField(blank=True, max_length=30)),
                ("state_of_origin", models.CharField(blank=True, max_length=100)),
                ("residential_address", models.CharField(blank=True, max_length=300)),
                ("documents_url", models.CharField(blank=True, max_length=500)),
                ("created_at", models.DateTimeField(default=ledger.utils.now)),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="guarantors", to="ledger.customer"
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="Loan",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("loan_amount", money()),
                ("daily_payment", money()),
                ("duration", models.PositiveIntegerField(help_text="Duration in days")),
                ("total_repayment", money()),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("approved", "Approved"), ("rejected", "Rejected")],
                        default="pending",
                        max_length=10,
                    ),
                ),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=ledger.utils.now)),
                (
                    "admin",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="administered_loans",
                        to="ledger.staff",
                    ),
                ),
                (
                    "agent",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="loans", to="ledger.staff"
                    ),
                ),
                (
                    "approved_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="decided_loans",
                        to="ledger.staff",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="loans", to="ledger.customer"
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="DailyTransaction",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("sequence", models.PositiveIntegerField(help_text="Position in the customer's balance chain")),
                ("date", models.DateField()),
                ("previous_balance", money(default=0)),
                ("cash_received", money(default=0)),
                ("transfer_received", money(default=0)),
                ("pick_up", money(default=0)),
                ("registration_fee", money(default=0)),
                ("insurance", money(default=0)),
                ("position_charges", money(default=0)),
                ("amount_disbursed", money(default=0)),
                ("bank", models.CharField(blank=True, max_length=100)),
                ("cash_available", money(default=0)),
                ("next_disbursement", money(default=0)),
                ("pending_disbursement", money(default=0)),
                ("record", models.CharField(blank=True, max_length=200)),
                ("closing_balance", money(default=0)),
                ("transportation", money(default=0)),
                ("payment_status", models.CharField(default="unlinked", max_length=10)),
                ("created_at", models.DateTimeField(default=ledger.utils.now)),
                (
                    "agent",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="transactions", to="ledger.staff"
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="ledger.customer",
                    ),
                ),
                (
                    "loan",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="ledger.loan",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="MonthlySummary",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("month", models.CharField(max_length=2)),
                ("year", models.PositiveIntegerField()),
                ("total_cash_received", money(default=0)),
                ("total_pick_up", money(default=0)),
                ("total_registration", money(default=0)),
                ("total_insurance", money(default=0)),
                ("total_position_charges", money(default=0)),
                ("total_amount_disbursed", money(default=0)),
                ("created_at", models.DateTimeField(default=ledger.utils.now)),
                (
                    "agent",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="monthly_summaries",
                        to="ledger.staff",
                    ),
                ),
            ],
        ),
        migrations.AddConstraint(
            model_name="dailytransaction",
            constraint=models.UniqueConstraint(fields=("customer", "sequence"), name="unique_customer_sequence"),
        ),
        migrations.AddIndex(
            model_name="dailytransaction",
            index=models.Index(fields=["agent", "date"], name="ledger_tx_agent_date_idx"),
        ),
    ]

import uuid

from django.db import models

from .utils import now


def _money(**kwargs):
    return models.DecimalField(max_digits=14, decimal_places=2, **kwargs)


class Staff(models.Model):
    ROLE_ADMIN = "admin"
    ROLE_AGENT = "agent"
    ROLE_SUBADMIN = "subadmin"
    ROLE_CHOICES = [(ROLE_ADMIN, "Admin"), (ROLE_AGENT, "Agent"), (ROLE_SUBADMIN, "Sub-admin")]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    username = models.CharField(max_length=100, unique=True)
    full_name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES)
    status = models.CharField(max_length=20, default="active")
    created_at = models.DateTimeField(default=now)
    last_login = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Customer(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    account_number = models.CharField(max_length=20, unique=True)
    union_group_name = models.CharField(max_length=200, blank=True)
    first_name = models.CharField(max_length=100)
    middle_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100)
    full_name = models.CharField(max_length=300)
    marital_status = models.CharField(max_length=30, blank=True)
    age = models.PositiveIntegerField(null=True, blank=True)
    occupation = models.CharField(max_length=100, blank=True)
    business_address = models.CharField(max_length=300, blank=True)
    nearest_bus_stop = models.CharField(max_length=200, blank=True)
    phone_number = models.CharField(max_length=30, blank=True)
    state_of_origin = models.CharField(max_length=100, blank=True)
    loan_amount_requested = _money(null=True, blank=True)
    residential_address = models.CharField(max_length=300, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    photo_url = models.CharField(max_length=500, blank=True)
    documents_url = models.CharField(max_length=500, blank=True)
    agent = models.ForeignKey(Staff, related_name="customers", on_delete=models.PROTECT)
    admin = models.ForeignKey(
        Staff, related_name="administered_customers", null=True, blank=True, on_delete=models.SET_NULL
    )
    status = models.CharField(max_length=20, default="active")
    created_at = models.DateTimeField(default=now)

    def __str__(self) -> str:
        return f"{self.account_number} - {self.full_name}"


class Guarantor(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer = models.ForeignKey(Customer, related_name="guarantors", on_delete=models.CASCADE)
    name = models.CharField(max_length=200)
    occupation = models.CharField(max_length=100, blank=True)
    business_address = models.CharField(max_length=300, blank=True)
    nearest_bus_stop = models.CharField(max_length=200, blank=True)
    phone_number = models.CharField(max_length=30, blank=True)
    state_of_origin = models.CharField(max_length=100, blank=True)
    residential_address = models.CharField(max_length=300, blank=True)
    documents_url = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(default=now)

    def __str__(self) -> str:
        return f"{self.name} for {self.customer.account_number}"


class Loan(models.Model):
    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_REJECTED = "rejected"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer = models.ForeignKey(Customer, related_name="loans", on_delete=models.PROTECT)
    agent = models.ForeignKey(Staff, related_name="loans", on_delete=models.PROTECT)
    admin = models.ForeignKey(
        Staff, related_name="administered_loans", null=True, blank=True, on_delete=models.SET_NULL
    )
    loan_amount = _money()
    daily_payment = _money()
    duration = models.PositiveIntegerField(help_text="Duration in days")
    total_repayment = _money()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    approved_by = models.ForeignKey(
        Staff, related_name="decided_loans", null=True, blank=True, on_delete=models.SET_NULL
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=now)

    def __str__(self) -> str:
        return f"{self.id} / {self.loan_amount} ({self.status})"


class AppendOnlyModel(models.Model):
    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError(f"{type(self).__name__} rows are append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError(f"{type(self).__name__} rows are append-only.")


class DailyTransaction(AppendOnlyModel):
    STATUS_PAID = "paid"
    STATUS_PARTIAL = "partial"
    STATUS_MISSED = "missed"
    STATUS_UNLINKED = "unlinked"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer = models.ForeignKey(Customer, related_name="transactions", on_delete=models.PROTECT)
    loan = models.ForeignKey(
        Loan, related_name="transactions", null=True, blank=True, on_delete=models.PROTECT
    )
    agent = models.ForeignKey(Staff, related_name="transactions", on_delete=models.PROTECT)
    sequence = models.PositiveIntegerField(help_text="Position in the customer's balance chain")
    date = models.DateField()
    previous_balance = _money(default=0)
    cash_received = _money(default=0)
    transfer_received = _money(default=0)
    pick_up = _money(default=0)
    registration_fee = _money(default=0)
    insurance = _money(default=0)
    position_charges = _money(default=0)
    amount_disbursed = _money(default=0)
    bank = models.CharField(max_length=100, blank=True)
    cash_available = _money(default=0)
    next_disbursement = _money(default=0)
    pending_disbursement = _money(default=0)
    record = models.CharField(max_length=200, blank=True)
    closing_balance = _money(default=0)
    transportation = _money(default=0)
    payment_status = models.CharField(max_length=10, default=STATUS_UNLINKED)
    created_at = models.DateTimeField(default=now)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["customer", "sequence"], name="unique_customer_sequence"),
        ]
        indexes = [models.Index(fields=["agent", "date"], name="ledger_tx_agent_date_idx")]

    def __str__(self) -> str:
        return f"{self.customer_id} #{self.sequence} on {self.date}"


class MonthlySummary(AppendOnlyModel):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    agent = models.ForeignKey(Staff, related_name="monthly_summaries", on_delete=models.PROTECT)
    month = models.CharField(max_length=2)
    year = models.PositiveIntegerField()
    total_cash_received = _money(default=0)
    total_pick_up = _money(default=0)
    total_registration = _money(default=0)
    total_insurance = _money(default=0)
    total_position_charges = _money(default=0)
    total_amount_disbursed = _money(default=0)
    created_at = models.DateTimeField(default=now)

    def __str__(self) -> str:
        return f"{self.agent_id} {self.year}-{self.month}"

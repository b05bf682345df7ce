from rest_framework import serializers

from .models import Customer, DailyTransaction, Guarantor, Loan, MonthlySummary, Staff


def _money_field(**kwargs):
    return serializers.DecimalField(max_digits=14, decimal_places=2, **kwargs)


class StaffSerializer(serializers.ModelSerializer):
    class Meta:
        model = Staff
        fields = ["id", "username", "full_name", "email", "role", "status", "created_at", "last_login"]


class RegisterStaffSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=100)
    full_name = serializers.CharField(max_length=200)
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    role = serializers.ChoiceField(choices=Staff.ROLE_CHOICES)


class GuarantorSerializer(serializers.ModelSerializer):
    class Meta:
        model = Guarantor
        fields = [
            "id",
            "name",
            "occupation",
            "business_address",
            "nearest_bus_stop",
            "phone_number",
            "state_of_origin",
            "residential_address",
            "documents_url",
            "created_at",
        ]
        read_only_fields = ["id", "created_at"]
        extra_kwargs = {"name": {"required": False, "allow_blank": True}}


class CustomerSerializer(serializers.ModelSerializer):
    agent_id = serializers.UUIDField(read_only=True)
    admin_id = serializers.UUIDField(read_only=True, allow_null=True)
    guarantor_name = serializers.CharField(read_only=True, allow_null=True)

    class Meta:
        model = Customer
        fields = [
            "id",
            "account_number",
            "union_group_name",
            "first_name",
            "middle_name",
            "last_name",
            "full_name",
            "marital_status",
            "age",
            "occupation",
            "business_address",
            "nearest_bus_stop",
            "phone_number",
            "state_of_origin",
            "loan_amount_requested",
            "residential_address",
            "date_of_birth",
            "photo_url",
            "documents_url",
            "agent_id",
            "admin_id",
            "status",
            "created_at",
            "guarantor_name",
        ]


class RegisterCustomerSerializer(serializers.Serializer):
    agent_id = serializers.UUIDField()
    admin_id = serializers.UUIDField(required=False, allow_null=True)
    union_group_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    first_name = serializers.CharField(max_length=100)
    middle_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=100)
    marital_status = serializers.CharField(max_length=30, required=False, allow_blank=True)
    age = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    occupation = serializers.CharField(max_length=100, required=False, allow_blank=True)
    business_address = serializers.CharField(max_length=300, required=False, allow_blank=True)
    nearest_bus_stop = serializers.CharField(max_length=200, required=False, allow_blank=True)
    phone_number = serializers.CharField(max_length=30, required=False, allow_blank=True)
    state_of_origin = serializers.CharField(max_length=100, required=False, allow_blank=True)
    loan_amount_requested = _money_field(required=False, allow_null=True)
    residential_address = serializers.CharField(max_length=300, required=False, allow_blank=True)
    date_of_birth = serializers.DateField(required=False, allow_null=True)
    photo_url = serializers.CharField(max_length=500, required=False, allow_blank=True)
    documents_url = serializers.CharField(max_length=500, required=False, allow_blank=True)
    guarantor = GuarantorSerializer(required=False, allow_null=True)


class LoanSerializer(serializers.ModelSerializer):
    customer_id = serializers.UUIDField(read_only=True)
    agent_id = serializers.UUIDField(read_only=True)
    admin_id = serializers.UUIDField(read_only=True, allow_null=True)
    approved_by_id = serializers.UUIDField(read_only=True, allow_null=True)
    customer_name = serializers.CharField(read_only=True)
    account_number = serializers.CharField(read_only=True)
    agent_name = serializers.CharField(read_only=True)

    class Meta:
        model = Loan
        fields = [
            "id",
            "customer_id",
            "agent_id",
            "admin_id",
            "loan_amount",
            "daily_payment",
            "duration",
            "total_repayment",
            "status",
            "approved_by_id",
            "approved_at",
            "created_at",
            "customer_name",
            "account_number",
            "agent_name",
        ]


class ApplyLoanRequestSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    agent_id = serializers.UUIDField()
    admin_id = serializers.UUIDField(required=False, allow_null=True)
    loan_amount = _money_field()


class LoanDecisionRequestSerializer(serializers.Serializer):
    admin_id = serializers.UUIDField()


class DailyTransactionSerializer(serializers.ModelSerializer):
    customer_id = serializers.UUIDField(read_only=True)
    loan_id = serializers.UUIDField(read_only=True, allow_null=True)
    agent_id = serializers.UUIDField(read_only=True)
    customer_name = serializers.CharField(read_only=True)
    account_number = serializers.CharField(read_only=True)
    loan_amount = _money_field(read_only=True, allow_null=True)
    daily_payment = _money_field(read_only=True, allow_null=True)

    class Meta:
        model = DailyTransaction
        fields = [
            "id",
            "customer_id",
            "loan_id",
            "agent_id",
            "sequence",
            "date",
            "previous_balance",
            "cash_received",
            "transfer_received",
            "pick_up",
            "registration_fee",
            "insurance",
            "position_charges",
            "amount_disbursed",
            "bank",
            "cash_available",
            "next_disbursement",
            "pending_disbursement",
            "record",
            "closing_balance",
            "transportation",
            "payment_status",
            "created_at",
            "customer_name",
            "account_number",
            "loan_amount",
            "daily_payment",
        ]


class RecordDailyRequestSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    agent_id = serializers.UUIDField()
    loan_id = serializers.UUIDField(required=False, allow_null=True)
    date = serializers.DateField()
    # amounts stay raw here; the ledger rejects negative or non-numeric values itself
    cash_received = serializers.JSONField(required=False)
    transfer_received = serializers.JSONField(required=False)
    pick_up = serializers.JSONField(required=False)
    registration_fee = serializers.JSONField(required=False)
    insurance = serializers.JSONField(required=False)
    position_charges = serializers.JSONField(required=False)
    amount_disbursed = serializers.JSONField(required=False)
    transportation = serializers.JSONField(required=False)
    bank = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")


class MonthlySummarySerializer(serializers.ModelSerializer):
    agent_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = MonthlySummary
        fields = [
            "id",
            "agent_id",
            "month",
            "year",
            "total_cash_received",
            "total_pick_up",
            "total_registration",
            "total_insurance",
            "total_position_charges",
            "total_amount_disbursed",
            "created_at",
        ]


class MonthlySummaryRequestSerializer(serializers.Serializer):
    agent_id = serializers.UUIDField()
    month = serializers.CharField(max_length=2)
    year = serializers.IntegerField(min_value=1900, max_value=9999)

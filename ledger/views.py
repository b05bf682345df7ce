from django.utils import timezone

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView, exception_handler

from . import customers, loans, stats, structures, summaries, transactions
from .exceptions import (
    InvalidAmount,
    InvalidLoanAmount,
    InvalidStaffRole,
    InvalidStateTransition,
    LedgerError,
    LedgerIntegrityError,
    NotFound,
    StorageFailure,
)
from .serializers import (
    ApplyLoanRequestSerializer,
    CustomerSerializer,
    DailyTransactionSerializer,
    GuarantorSerializer,
    LoanDecisionRequestSerializer,
    LoanSerializer,
    MonthlySummaryRequestSerializer,
    MonthlySummarySerializer,
    RecordDailyRequestSerializer,
    RegisterCustomerSerializer,
    RegisterStaffSerializer,
    StaffSerializer,
)
from .transactions import AMOUNT_FIELDS

ERROR_STATUS = (
    (InvalidLoanAmount, status.HTTP_400_BAD_REQUEST),
    (InvalidAmount, status.HTTP_400_BAD_REQUEST),
    (InvalidStaffRole, status.HTTP_400_BAD_REQUEST),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (InvalidStateTransition, status.HTTP_409_CONFLICT),
    (LedgerIntegrityError, status.HTTP_409_CONFLICT),
    (StorageFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def ledger_exception_handler(exc, context):
    if isinstance(exc, LedgerError):
        code = next((s for cls, s in ERROR_STATUS if isinstance(exc, cls)), status.HTTP_400_BAD_REQUEST)
        return Response(exc.as_dict(), status=code)
    return exception_handler(exc, context)


def _query(request, name):
    return request.query_params.get(name) or None


class StaffView(APIView):
    def get(self, request):
        staff = customers.list_staff(role=_query(request, "role"), status=_query(request, "status"))
        return Response(StaffSerializer(staff, many=True).data)

    def post(self, request):
        serializer = RegisterStaffSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        staff = customers.register_staff(**serializer.validated_data)
        return Response(StaffSerializer(staff).data, status=status.HTTP_201_CREATED)


class CustomerListView(APIView):
    def get(self, request):
        items = customers.list_customers(
            agent_id=_query(request, "agent_id"),
            admin_id=_query(request, "admin_id"),
            status=_query(request, "status"),
        )
        return Response(CustomerSerializer(items, many=True).data)

    def post(self, request):
        serializer = RegisterCustomerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        agent_id = data.pop("agent_id")
        admin_id = data.pop("admin_id", None)
        guarantor_data = data.pop("guarantor", None)

        customer, guarantor = customers.register_customer(
            agent_id, data, guarantor=guarantor_data, admin_id=admin_id
        )
        return Response(
            {
                "customer": CustomerSerializer(customer).data,
                "guarantor": GuarantorSerializer(guarantor).data if guarantor else None,
            },
            status=status.HTTP_201_CREATED,
        )


class LoanStructureView(APIView):
    def get(self, request):
        return Response([structures.lookup(amount).as_dict() for amount in structures.valid_amounts()])


class LoanListView(APIView):
    def get(self, request):
        items = loans.list_loans(
            agent_id=_query(request, "agent_id"),
            admin_id=_query(request, "admin_id"),
            customer_id=_query(request, "customer_id"),
            status=_query(request, "status"),
        )
        return Response(LoanSerializer(items, many=True).data)

    def post(self, request):
        serializer = ApplyLoanRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        loan = loans.apply_loan(
            customer_id=data["customer_id"],
            agent_id=data["agent_id"],
            principal=data["loan_amount"],
            admin_id=data.get("admin_id"),
        )
        return Response(LoanSerializer(loan).data, status=status.HTTP_201_CREATED)


class LoanDetailView(APIView):
    def get(self, request, loan_id):
        loan = loans.get_loan(loan_id)
        body = LoanSerializer(loan).data
        body["repayment"] = loans.repayment_progress(loan.id)
        return Response(body)


class LoanDecisionView(APIView):
    decision = None

    def post(self, request, loan_id):
        serializer = LoanDecisionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        decide = loans.approve if self.decision == "approve" else loans.reject
        loan = decide(loan_id, serializer.validated_data["admin_id"])
        return Response(LoanSerializer(loan).data)


class DailyTransactionView(APIView):
    def get(self, request):
        entries = transactions.list_by_filter(
            agent_id=_query(request, "agent_id"),
            customer_id=_query(request, "customer_id"),
            loan_id=_query(request, "loan_id"),
            date=_query(request, "date"),
        )
        return Response(DailyTransactionSerializer(entries, many=True).data)

    def post(self, request):
        serializer = RecordDailyRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        entry = transactions.record_daily(
            customer_id=data["customer_id"],
            agent_id=data["agent_id"],
            date=data["date"],
            amounts={name: data.get(name) for name in AMOUNT_FIELDS},
            loan_id=data.get("loan_id"),
            bank=data.get("bank", ""),
            transportation=data.get("transportation"),
        )
        return Response(DailyTransactionSerializer(entry).data, status=status.HTTP_201_CREATED)


class MonthlySummaryView(APIView):
    def get(self, request):
        items = summaries.list_summaries(
            agent_id=_query(request, "agent_id"),
            month=_query(request, "month"),
            year=_query(request, "year"),
        )
        return Response(MonthlySummarySerializer(items, many=True).data)

    def post(self, request):
        serializer = MonthlySummaryRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        summary = summaries.generate_monthly(**serializer.validated_data)
        return Response(MonthlySummarySerializer(summary).data, status=status.HTTP_201_CREATED)


class DailyReportView(APIView):
    def get(self, request):
        agent_id = _query(request, "agent_id")
        if agent_id is None:
            return Response({"detail": "agent_id is required."}, status=status.HTTP_400_BAD_REQUEST)
        return Response(summaries.daily_report(agent_id, _query(request, "date") or timezone.localdate()))


class DashboardStatsView(APIView):
    def get(self, request):
        return Response(
            stats.dashboard_stats(agent_id=_query(request, "agent_id"), admin_id=_query(request, "admin_id"))
        )

from django.urls import path

from .views import (
    CustomerListView,
    DailyReportView,
    DailyTransactionView,
    DashboardStatsView,
    LoanDecisionView,
    LoanDetailView,
    LoanListView,
    LoanStructureView,
    MonthlySummaryView,
    StaffView,
)

urlpatterns = [
    path("staff/", StaffView.as_view(), name="staff"),
    path("customers/", CustomerListView.as_view(), name="customers"),
    path("loan-structures/", LoanStructureView.as_view(), name="loan-structures"),
    path("loans/", LoanListView.as_view(), name="loans"),
    path("loans/<uuid:loan_id>/", LoanDetailView.as_view(), name="loan-detail"),
    path("loans/<uuid:loan_id>/approve/", LoanDecisionView.as_view(decision="approve"), name="loan-approve"),
    path("loans/<uuid:loan_id>/reject/", LoanDecisionView.as_view(decision="reject"), name="loan-reject"),
    path("transactions/daily/", DailyTransactionView.as_view(), name="daily-transactions"),
    path("summaries/monthly/", MonthlySummaryView.as_view(), name="monthly-summaries"),
    path("reports/daily/", DailyReportView.as_view(), name="daily-report"),
    path("dashboard/stats/", DashboardStatsView.as_view(), name="dashboard-stats"),
]

from django.urls import path

from . import views

app_name = "billing_core"

urlpatterns = [
    path("dashboard/", views.dashboard_view, name="dashboard"),
    path("reports/revenue/", views.revenue_view, name="revenue"),
    path("timer/", views.active_timer_view, name="active-timer"),
    path("timer/start/", views.start_timer_view, name="start-timer"),
    path("timer/<int:entry_id>/stop/", views.stop_timer_view, name="stop-timer"),
    path("invoices/", views.create_invoice_view, name="create-invoice"),
    path(
        "invoices/<int:invoice_id>/status/",
        views.invoice_status_view,
        name="invoice-status",
    ),
    path(
        "invoices/<int:invoice_id>/payments/",
        views.record_payment_view,
        name="record-payment",
    ),
]

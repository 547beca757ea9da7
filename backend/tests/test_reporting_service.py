from datetime import date, datetime

import pytest

from clinicpos.errors import ValidationError
from clinicpos.models import STATUS_PAID, STATUS_TRANSFER, STATUS_UNPAID
from clinicpos.services.reporting_service import period_key, revenue_report, week_number


class TestPeriodKeys:

    def test_week_one_contains_jan_first(self):
        # 2026-01-01 is a Thursday (Sunday-based weekday 4)
        assert week_number(date(2026, 1, 1)) == 1
        assert week_number(date(2026, 1, 3)) == 1
        assert week_number(date(2026, 1, 4)) == 2

    def test_week_formula_when_year_starts_on_sunday(self):
        # 2023-01-01 is a Sunday: ceil((1 + 0) / 7) == 1, and Jan 7 is still week 1
        assert week_number(date(2023, 1, 1)) == 1
        assert week_number(date(2023, 1, 7)) == 1
        assert week_number(date(2023, 1, 8)) == 2

    def test_year_end_does_not_roll_over(self):
        assert week_number(date(2026, 12, 31)) == 53

    @pytest.mark.parametrize(
        "period,expected",
        [
            ("daily", "2026-03-05"),
            ("weekly", "2026-W10"),
            ("monthly", "2026-03"),
            ("yearly", "2026"),
        ],
    )
    def test_period_key_formats(self, period, expected):
        assert period_key(datetime(2026, 3, 5, 23, 59), period) == expected

    def test_unknown_period_rejected(self):
        with pytest.raises(ValidationError):
            period_key(datetime(2026, 3, 5), "hourly")


class TestRevenueReport:

    @pytest.fixture
    def sales(self, admin, make_customer, make_sale):
        customer = make_customer()
        return [
            make_sale(admin, customer, "100", STATUS_PAID, datetime(2026, 3, 1, 9, 0)),
            make_sale(admin, customer, "50.50", STATUS_TRANSFER, datetime(2026, 3, 1, 18, 0)),
            make_sale(admin, customer, "70", STATUS_UNPAID, datetime(2026, 3, 2, 10, 0)),
            make_sale(admin, customer, "30", STATUS_PAID, datetime(2026, 3, 3, 23, 59, 59)),
            make_sale(admin, customer, "999", STATUS_PAID, datetime(2026, 3, 4, 0, 0)),
        ]

    def test_all_counts_paid_and_transfer_only(self, sales):
        report = revenue_report(start="2026-03-01", end="2026-03-03", status="ALL", period="daily")

        assert report["report"] == [
            {"period": "2026-03-01", "revenue": 150.5, "count": 2},
            {"period": "2026-03-03", "revenue": 30, "count": 1},
        ]
        assert report["summary"]["total_revenue"] == 180.5
        assert report["summary"]["total_count"] == 3

    def test_end_date_is_inclusive_of_whole_day(self, sales):
        report = revenue_report(start="2026-03-03", end="2026-03-03", status="PAID", period="daily")
        assert report["summary"]["total_count"] == 1
        assert report["end_date"].startswith("2026-03-03T23:59:59")

    def test_single_status_filter(self, sales):
        report = revenue_report(start="2026-03-01", end="2026-03-31", status="unpaid", period="monthly")
        assert report["status"] == STATUS_UNPAID
        assert report["report"] == [{"period": "2026-03", "revenue": 70, "count": 1}]

    def test_average_per_sale(self, sales):
        report = revenue_report(start="2026-03-01", end="2026-03-04", status="PAID", period="yearly")
        summary = report["summary"]
        assert summary["total_count"] == 3
        assert summary["total_revenue"] == 1129
        assert summary["avg_per_sale"] == pytest.approx(376.33, abs=0.01)

    def test_empty_range_has_zero_average(self, sales):
        report = revenue_report(start="2025-01-01", end="2025-01-31")
        assert report["report"] == []
        assert report["summary"] == {"total_revenue": 0, "total_count": 0, "avg_per_sale": 0}

    def test_invalid_inputs(self, db_session):
        with pytest.raises(ValidationError):
            revenue_report(status="REFUNDED")
        with pytest.raises(ValidationError):
            revenue_report(period="hourly")
        with pytest.raises(ValidationError):
            revenue_report(start="2026-03-05", end="2026-03-01")
        with pytest.raises(ValidationError):
            revenue_report(start="not-a-date")


class TestRevenueRoute:

    def test_admin_only(self, client, employee_headers):
        resp = client.get("/api/reports/revenue", headers=employee_headers)
        assert resp.status_code == 403

    def test_admin_gets_report(self, client, admin_headers):
        resp = client.get(
            "/api/reports/revenue?start_date=2026-01-01&end_date=2026-01-31&period=weekly",
            headers=admin_headers,
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["data"]["period"] == "weekly"
        assert body["data"]["summary"]["total_count"] == 0

    def test_bad_period_is_400(self, client, admin_headers):
        resp = client.get("/api/reports/revenue?period=hourly", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

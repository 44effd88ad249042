# Overview: Pytest coverage for sales reports.

"""
Sales report tests: summary classification, period/category/employee
breakdowns, date ranges and top items.
"""

from datetime import datetime

import pytest

from retailpos.models import Item
from retailpos.services import reporting_service, transaction_service
from retailpos.validation import ValidationError


@pytest.fixture
def march_sales(make_transaction, cashier, manager):
    """Four kinds of row across two days in March 2026."""
    make_transaction(total_cents=1000, tax_cents=100, payment_method="cash",
                     created_at=datetime(2026, 3, 1, 10, 0))
    make_transaction(total_cents=2000, payment_method="card", employee_id=manager.id,
                     created_at=datetime(2026, 3, 1, 15, 0))
    make_transaction(type="refund", total_cents=-500,
                     created_at=datetime(2026, 3, 2, 9, 0))
    make_transaction(status="deleted", total_cents=300,
                     created_at=datetime(2026, 3, 2, 11, 0))


class TestSummary:

    def test_rows_are_classified(self, db_session, company, march_sales):
        report = reporting_service.sales_report(company.id)

        assert report["summary"] == {
            "total_sales_cents": 3000,
            "total_refunds_cents": 500,
            "total_voids_cents": 300,
            "net_sales_cents": 2500,
            "total_tax_cents": 100,
            "sale_count": 2,
            "refund_count": 1,
            "void_count": 1,
            "cash_sales_cents": 1000,
            "card_sales_cents": 2000,
            "average_transaction_cents": 1500.0,
        }
        assert report["transaction_count"] == 4

    def test_other_company_not_included(self, db_session, other_company, march_sales):
        report = reporting_service.sales_report(other_company.id)

        assert report["summary"]["sale_count"] == 0
        assert report["summary"]["average_transaction_cents"] == 0.0
        assert report["breakdown"] == []
        assert report["transaction_count"] == 0

    def test_date_only_end_covers_whole_day(self, db_session, company, make_transaction):
        make_transaction(total_cents=700, created_at=datetime(2026, 3, 31, 22, 0))
        make_transaction(total_cents=900, created_at=datetime(2026, 4, 1, 0, 30))

        report = reporting_service.sales_report(company.id, start="2026-03-01", end="2026-03-31")

        assert report["summary"]["total_sales_cents"] == 700
        assert report["end"] == "2026-03-31T23:59:59Z"

    def test_bad_date(self, db_session, company):
        with pytest.raises(ValidationError):
            reporting_service.sales_report(company.id, start="last tuesday")


class TestBreakdown:

    def test_by_day(self, db_session, company, march_sales):
        report = reporting_service.sales_report(company.id, group_by="day")

        assert report["breakdown"] == [
            {"period": "2026-03-01", "sales_cents": 3000, "refunds_cents": 0,
             "net_cents": 3000, "tax_cents": 100, "count": 2},
            {"period": "2026-03-02", "sales_cents": 0, "refunds_cents": 500,
             "net_cents": -500, "tax_cents": 0, "count": 0},
        ]

    def test_by_month(self, db_session, company, make_transaction):
        make_transaction(total_cents=100, created_at=datetime(2026, 3, 31, 12, 0))
        make_transaction(total_cents=200, created_at=datetime(2026, 4, 1, 12, 0))
        make_transaction(total_cents=300, created_at=datetime(2026, 4, 20, 12, 0))

        report = reporting_service.sales_report(company.id, group_by="month")

        assert [(r["period"], r["sales_cents"]) for r in report["breakdown"]] == [
            ("2026-03", 100),
            ("2026-04", 500),
        ]

    def test_by_week_groups_monday_to_sunday(self, db_session, company, make_transaction):
        # Sunday 8 March, then Monday 9 and Tuesday 10 March 2026
        make_transaction(total_cents=100, created_at=datetime(2026, 3, 8, 12, 0))
        make_transaction(total_cents=200, created_at=datetime(2026, 3, 9, 12, 0))
        make_transaction(total_cents=300, created_at=datetime(2026, 3, 10, 12, 0))

        report = reporting_service.sales_report(company.id, group_by="week")

        assert [r["sales_cents"] for r in report["breakdown"]] == [100, 500]

    def test_by_employee(self, db_session, company, cashier, manager, march_sales):
        report = reporting_service.sales_report(company.id, group_by="employee")

        assert report["breakdown"] == [
            {"id": manager.id, "name": manager.name, "sales_cents": 2000, "refunds_cents": 0,
             "net_cents": 2000, "count": 1, "refund_count": 0},
            {"id": cashier.id, "name": cashier.name, "sales_cents": 1000, "refunds_cents": 500,
             "net_cents": 500, "count": 1, "refund_count": 1},
        ]

    def test_by_category_and_top_items(self, db_session, company, cashier, category, item):
        apples = Item(company_id=company.id, name="Loose Apples", price_cents=500)
        db_session.add(apples)
        db_session.commit()

        transaction_service.create_transaction(
            company.id, cashier.id, [{"item_id": item.id, "quantity": 2}, {"item_id": apples.id}]
        )
        voided = transaction_service.create_transaction(company.id, cashier.id, [{"item_id": item.id}])
        transaction_service.void_transaction(voided.id, company.id)

        report = reporting_service.sales_report(company.id, group_by="category")

        assert report["breakdown"] == [
            {"category_id": category.id, "name": "Groceries", "sales_cents": 3000, "quantity": 2.0, "count": 1},
            {"category_id": None, "name": "Uncategorized", "sales_cents": 500, "quantity": 1.0, "count": 1},
        ]
        assert report["top_items"] == [
            {"id": item.id, "name": item.name, "quantity": 2.0, "revenue_cents": 3000},
            {"id": apples.id, "name": "Loose Apples", "quantity": 1.0, "revenue_cents": 500},
        ]

    def test_unknown_group_by(self, db_session, company):
        with pytest.raises(reporting_service.ReportError):
            reporting_service.sales_report(company.id, group_by="hour")


class TestReportRoutes:

    def test_sales_report_route(self, client, db_session, company, march_sales):
        resp = client.get(f"/api/reports/sales?companyId={company.id}&group_by=day")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["group_by"] == "day"
        assert body["summary"]["net_sales_cents"] == 2500
        assert len(body["breakdown"]) == 2

    def test_requires_company(self, client, db_session):
        assert client.get("/api/reports/sales").status_code == 400

    def test_bad_group_by_is_400(self, client, db_session, company):
        resp = client.get(f"/api/reports/sales?companyId={company.id}&group_by=hour")
        assert resp.status_code == 400
        assert "group_by" in resp.get_json()["error"]

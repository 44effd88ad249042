# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

Every per-record route takes a companyId and only sees rows of that company.
A row that belongs to another company is reported as not found, and a
request without companyId is rejected before any lookup.

Test Coverage:
- Shifts: cross-company read, cash injection and close blocked
- Store credits: cross-company lookup and redemption blocked
- Gift cards: cross-company read, activation and redemption blocked
- Employees: cross-company read, update and stats blocked
"""

import pytest

from retailpos.models import GiftCard, Shift, StoreCredit
from retailpos.services import (
    employee_service,
    gift_card_service,
    shift_service,
    store_credit_service,
)
from retailpos.validation import NotFoundError


@pytest.fixture
def credit(db_session, company):
    return store_credit_service.issue_store_credit(company.id, 2500)


@pytest.fixture
def active_card(db_session, company):
    card = gift_card_service.create_gift_card(company.id, "GC-TENANT", 4000)
    return gift_card_service.activate_gift_card(card.barcode)


class TestServiceScoping:
    """Service lookups filter by company when one is given."""

    def test_shift_of_other_company_not_found(self, db_session, other_company, open_shift):
        with pytest.raises(NotFoundError):
            shift_service.get_shift(open_shift.id, other_company.id)

    def test_close_other_company_shift_leaves_it_open(self, db_session, other_company, open_shift):
        with pytest.raises(NotFoundError):
            shift_service.close_shift(open_shift.id, 0, company_id=other_company.id)

        assert db_session.get(Shift, open_shift.id).status == "open"

    def test_store_credit_of_other_company_not_found(self, db_session, other_company, credit):
        with pytest.raises(NotFoundError):
            store_credit_service.redeem_store_credit(credit.barcode, company_id=other_company.id)

        assert db_session.get(StoreCredit, credit.id).is_used is False

    def test_gift_card_of_other_company_not_found(self, db_session, other_company, active_card):
        with pytest.raises(NotFoundError):
            gift_card_service.redeem_gift_card(active_card.barcode, 100, company_id=other_company.id)

    def test_employee_of_other_company_not_found(self, db_session, other_company, cashier):
        with pytest.raises(NotFoundError):
            employee_service.get_employee_stats(cashier.id, other_company.id)

    def test_own_company_still_found(self, db_session, company, open_shift, credit):
        assert shift_service.get_shift(open_shift.id, company.id).id == open_shift.id
        assert store_credit_service.get_store_credit(credit.barcode, company.id).id == credit.id


class TestShiftRoutes:

    def test_summary_requires_company(self, client, db_session, open_shift):
        resp = client.get(f"/api/shifts/{open_shift.id}/summary")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Company ID required"

    def test_close_requires_company(self, client, db_session, open_shift):
        resp = client.post(f"/api/shifts/{open_shift.id}/close", json={"closing_balance_cents": 0})
        assert resp.status_code == 400
        assert db_session.get(Shift, open_shift.id).status == "open"

    @pytest.mark.parametrize("path", ["", "/summary", "/stats"])
    def test_reads_from_other_company(self, client, db_session, other_company, open_shift, path):
        resp = client.get(f"/api/shifts/{open_shift.id}{path}?companyId={other_company.id}")
        assert resp.status_code == 404

    def test_close_from_other_company(self, client, db_session, other_company, open_shift):
        resp = client.post(f"/api/shifts/{open_shift.id}/close", json={
            "companyId": other_company.id, "closing_balance_cents": 0,
        })
        assert resp.status_code == 404
        assert db_session.get(Shift, open_shift.id).status == "open"

    def test_cash_injection_from_other_company(self, client, db_session, other_company, open_shift):
        resp = client.post(f"/api/shifts/{open_shift.id}/cash-injections", json={
            "companyId": other_company.id, "amount_cents": 5000,
        })
        assert resp.status_code == 404
        assert db_session.get(Shift, open_shift.id).cash_injections_cents == 0


class TestStoreCreditRoutes:

    def test_redeem_with_other_company(self, client, db_session, other_company, credit):
        resp = client.post("/api/store-credits/redeem", json={
            "companyId": other_company.id, "barcode": credit.barcode,
        })
        assert resp.status_code == 404
        assert db_session.get(StoreCredit, credit.id).is_used is False

    def test_use_with_other_company(self, client, db_session, other_company, credit):
        resp = client.post(f"/api/store-credits/{credit.barcode}/use?companyId={other_company.id}")
        assert resp.status_code == 404
        assert db_session.get(StoreCredit, credit.id).is_used is False

    def test_lookup_with_other_company(self, client, db_session, other_company, credit):
        resp = client.get(f"/api/store-credits?companyId={other_company.id}&barcode={credit.barcode}")
        assert resp.status_code == 404

    def test_redeem_requires_company(self, client, db_session, credit):
        resp = client.post("/api/store-credits/redeem", json={"barcode": credit.barcode})
        assert resp.status_code == 400
        assert db_session.get(StoreCredit, credit.id).is_used is False

    def test_use_with_own_company(self, client, db_session, company, credit):
        resp = client.post(f"/api/store-credits/{credit.barcode}/use?companyId={company.id}")
        assert resp.status_code == 200
        assert resp.get_json()["is_used"] is True


class TestGiftCardRoutes:

    def test_read_with_other_company(self, client, db_session, other_company, active_card):
        resp = client.get(f"/api/gift-cards/{active_card.barcode}?companyId={other_company.id}")
        assert resp.status_code == 404

    def test_redeem_with_other_company(self, client, db_session, other_company, active_card):
        resp = client.post("/api/gift-cards/redeem", json={
            "companyId": other_company.id, "barcode": active_card.barcode, "amount_cents": 1000,
        })
        assert resp.status_code == 404
        assert db_session.get(GiftCard, active_card.id).balance_cents == 4000

    def test_activate_with_other_company(self, client, db_session, company, other_company):
        card = gift_card_service.create_gift_card(company.id, "GC-STOCK", 2000)
        resp = client.post(f"/api/gift-cards/{card.barcode}/activate", json={"companyId": other_company.id})
        assert resp.status_code == 404
        assert db_session.get(GiftCard, card.id).purchased_at is None

    def test_deactivate_with_other_company(self, client, db_session, other_company, active_card):
        resp = client.post(f"/api/gift-cards/{active_card.barcode}/deactivate?companyId={other_company.id}")
        assert resp.status_code == 404
        assert db_session.get(GiftCard, active_card.id).is_active is True


class TestEmployeeRoutes:

    @pytest.mark.parametrize("path", ["", "/stats", "/shifts", "/category-sales"])
    def test_reads_from_other_company(self, client, db_session, other_company, cashier, path):
        resp = client.get(f"/api/employees/{cashier.id}{path}?companyId={other_company.id}")
        assert resp.status_code == 404

    def test_update_from_other_company(self, client, db_session, other_company, cashier):
        resp = client.patch(f"/api/employees/{cashier.id}", json={
            "companyId": other_company.id, "name": "Renamed",
        })
        assert resp.status_code == 404
        assert employee_service.get_employee(cashier.id).name == "Casey Cashier"

    def test_update_from_own_company(self, client, db_session, company, cashier):
        resp = client.patch(f"/api/employees/{cashier.id}", json={
            "companyId": company.id, "name": "Casey C.",
        })
        assert resp.status_code == 200
        assert resp.get_json()["name"] == "Casey C."

    def test_read_requires_company(self, client, db_session, cashier):
        assert client.get(f"/api/employees/{cashier.id}").status_code == 400

"""
Store credit tests.

A credit is redeemable exactly once; a second redemption is a conflict and
leaves the original used_at untouched.
"""

from datetime import datetime

import pytest

from retailpos.models import StoreCredit
from retailpos.services import store_credit_service
from retailpos.validation import ConflictError, NotFoundError, ValidationError


def test_issue_generates_barcode(db_session, company, cashier):
    credit = store_credit_service.issue_store_credit(
        company.id, 2599, description="Damaged box", issued_by_employee_id=cashier.id
    )
    assert credit.barcode.startswith("SC-")
    assert credit.is_used is False
    assert credit.amount_cents == 2599


def test_issue_requires_positive_amount(db_session, company):
    with pytest.raises(ValidationError):
        store_credit_service.issue_store_credit(company.id, 0)


def test_issue_with_unknown_transaction(db_session, company):
    with pytest.raises(NotFoundError):
        store_credit_service.issue_store_credit(company.id, 100, transaction_id=5555)


def test_redeem_once(db_session, company):
    credit = store_credit_service.issue_store_credit(company.id, 1000)
    when = datetime(2026, 3, 1, 12, 0, 0)

    redeemed = store_credit_service.redeem_store_credit(credit.barcode, now=when)

    assert redeemed.is_used is True
    assert redeemed.used_at == when


def test_second_redemption_conflicts_and_keeps_used_at(db_session, company):
    credit = store_credit_service.issue_store_credit(company.id, 1000)
    first = datetime(2026, 3, 1, 12, 0, 0)
    store_credit_service.redeem_store_credit(credit.barcode, now=first)

    with pytest.raises(ConflictError) as exc_info:
        store_credit_service.redeem_store_credit(credit.barcode, now=datetime(2026, 3, 2, 9, 0, 0))

    assert exc_info.value.details == {"used_at": "2026-03-01T12:00:00Z"}
    stored = db_session.query(StoreCredit).filter_by(id=credit.id).one()
    assert stored.used_at == first


def test_lookup_is_case_insensitive(db_session, company):
    credit = store_credit_service.issue_store_credit(company.id, 500)
    assert store_credit_service.lookup_store_credit(credit.barcode.lower()).id == credit.id


def test_lookup_used_credit_conflicts(db_session, company):
    credit = store_credit_service.issue_store_credit(company.id, 500)
    store_credit_service.redeem_store_credit(credit.barcode)
    with pytest.raises(ConflictError):
        store_credit_service.lookup_store_credit(credit.barcode)


def test_unknown_barcode(db_session):
    with pytest.raises(NotFoundError):
        store_credit_service.redeem_store_credit("SC-20260101-NOPE00")


class TestStoreCreditRoutes:

    def test_issue_list_and_lookup(self, client, db_session, company):
        resp = client.post("/api/store-credits", json={"companyId": company.id, "amount_cents": 1500})
        assert resp.status_code == 201
        barcode = resp.get_json()["barcode"]

        listed = client.get(f"/api/store-credits?companyId={company.id}")
        assert [c["barcode"] for c in listed.get_json()] == [barcode]

        found = client.get(f"/api/store-credits?companyId={company.id}&barcode={barcode}")
        assert found.status_code == 200
        assert found.get_json()["amount_cents"] == 1500

    def test_double_redeem_is_409(self, client, db_session, company):
        credit = store_credit_service.issue_store_credit(company.id, 700)

        first = client.post("/api/store-credits/redeem", json={"companyId": company.id, "barcode": credit.barcode})
        second = client.post("/api/store-credits/redeem", json={"companyId": company.id, "barcode": credit.barcode})

        assert first.status_code == 200
        assert first.get_json()["amount_cents"] == 700
        assert second.status_code == 409
        assert second.get_json()["used_at"] is not None

    def test_issue_rejects_fractional_amount(self, client, db_session, company):
        resp = client.post("/api/store-credits", json={"companyId": company.id, "amount_cents": "12.50"})
        assert resp.status_code == 400

    def test_list_without_company(self, client, db_session):
        assert client.get("/api/store-credits").status_code == 400

"""
Sale, void and refund tests.

Refunds must respect the return policy and can only happen once per sale;
voids keep the row and flip its status.
"""

from datetime import timedelta

import pytest

from retailpos.models import Customer, Employee, Item, LoyaltyConfig, StoreCredit, Transaction
from retailpos.services import identifier_service, shift_service, store_credit_service, transaction_service
from retailpos.time_utils import utcnow
from retailpos.validation import ConflictError, NotFoundError, ValidationError


def _sell(company, cashier, item, quantity=2, **kwargs):
    return transaction_service.create_transaction(
        company.id,
        cashier.id,
        [{"item_id": item.id, "quantity": quantity}],
        **kwargs,
    )


class TestCreateTransaction:

    def test_totals_tax_and_change(self, db_session, company, cashier, item):
        tx = _sell(company, cashier, item, cash_given_cents=5000)

        assert tx.subtotal_cents == 3000
        assert tx.tax_cents == 300
        assert tx.total_cents == 3300
        assert tx.change_due_cents == 1700
        assert tx.status == "completed"
        assert tx.transaction_number.startswith("TXN-")
        assert len(tx.lines) == 1
        assert tx.lines[0].item_name == item.name

    def test_inventory_decremented_by_rounded_up_quantity(self, db_session, company, cashier, item):
        _sell(company, cashier, item, quantity=1.25)

        db_session.refresh(item)
        assert item.quantity_on_hand == 18

    def test_weighed_line_total_rounds_to_cent(self, db_session, company, cashier):
        loose = Item(company_id=company.id, name="Loose Apples", price_cents=333)
        db_session.add(loose)
        db_session.commit()

        tx = transaction_service.create_transaction(
            company.id, cashier.id,
            [{"item_id": loose.id, "quantity": 1.5, "is_weight_item": True}],
        )

        # 1.5 * 333 = 499.5 -> 500 (round half to even)
        assert tx.subtotal_cents == 500
        assert tx.tax_cents == 0
        assert tx.lines[0].is_weight_item is True

    def test_card_sale_records_no_change(self, db_session, company, cashier, item):
        tx = _sell(company, cashier, item, payment_method="card", cash_given_cents=1000)

        assert tx.total_cents == 3300
        assert tx.change_due_cents is None

    def test_insufficient_cash_rejected(self, db_session, company, cashier, item):
        with pytest.raises(ValidationError):
            _sell(company, cashier, item, cash_given_cents=1000)

    def test_empty_lines_rejected(self, db_session, company, cashier):
        with pytest.raises(ValidationError):
            transaction_service.create_transaction(company.id, cashier.id, [])

    def test_unknown_payment_method(self, db_session, company, cashier, item):
        with pytest.raises(ValidationError):
            _sell(company, cashier, item, payment_method="cheque")

    def test_item_from_other_company(self, db_session, other_company, company, item):
        emp = Employee(company_id=other_company.id, name="B", barcode="EMP-BBBBB")
        db_session.add(emp)
        db_session.commit()
        with pytest.raises(NotFoundError):
            transaction_service.create_transaction(other_company.id, emp.id, [{"item_id": item.id}])

    def test_closed_shift_rejects_sales(self, db_session, company, cashier, item, open_shift):
        shift_service.close_shift(open_shift.id)
        with pytest.raises(ConflictError):
            _sell(company, cashier, item, shift_id=open_shift.id)

    def test_sale_counts_in_shift_summary(self, db_session, company, cashier, item, open_shift):
        _sell(company, cashier, item, shift_id=open_shift.id, cash_given_cents=4000)

        summary = shift_service.summarize_shift(open_shift.id)["summary"]

        assert summary["total_sales_cents"] == 3300
        assert summary["cash_collected_cents"] == 3300
        assert summary["expected_cash_cents"] == 10000 + 3300

    def test_customer_loyalty_updated(self, db_session, company, cashier, item):
        customer = Customer(company_id=company.id, name="Loyal Lee", loyalty_points=5)
        db_session.add(customer)
        db_session.commit()

        tx = _sell(company, cashier, item, customer_id=customer.id, loyalty_points_redeemed=5)

        db_session.refresh(customer)
        assert tx.loyalty_points_earned == 33
        assert customer.loyalty_points == 33
        assert customer.total_spent_cents == 3300
        assert customer.visit_count == 1
        assert db_session.query(LoyaltyConfig).filter_by(company_id=company.id).count() == 1

    def test_redeeming_more_points_than_held(self, db_session, company, cashier, item):
        customer = Customer(company_id=company.id, name="Few Points", loyalty_points=2)
        db_session.add(customer)
        db_session.commit()
        with pytest.raises(ValidationError):
            _sell(company, cashier, item, customer_id=customer.id, loyalty_points_redeemed=10)


class TestVoid:

    def test_void_keeps_row_and_flips_status(self, db_session, company, cashier, item, manager):
        tx = _sell(company, cashier, item)

        voided = transaction_service.void_transaction(tx.id, company.id, authorized_by_employee_id=manager.id)

        assert voided.status == "deleted"
        assert voided.authorized_by_employee_id == manager.id
        assert db_session.query(Transaction).count() == 1

    def test_void_twice_conflicts(self, db_session, company, cashier, item):
        tx = _sell(company, cashier, item)
        transaction_service.void_transaction(tx.id, company.id)
        with pytest.raises(ConflictError):
            transaction_service.void_transaction(tx.id, company.id)

    def test_void_other_company_not_found(self, db_session, company, other_company, cashier, item):
        tx = _sell(company, cashier, item)
        with pytest.raises(NotFoundError):
            transaction_service.void_transaction(tx.id, other_company.id)


class TestRefund:

    def test_refund_creates_negative_transaction_and_restocks(self, db_session, company, cashier, item):
        sale = _sell(company, cashier, item)

        result = transaction_service.refund_transaction(sale.id, company.id, cashier.id)

        db_session.refresh(sale)
        db_session.refresh(item)
        assert sale.status == "refunded"
        assert result["refund"]["type"] == "refund"
        assert result["refund"]["total_cents"] == -3300
        assert result["refund"]["original_transaction_id"] == sale.id
        assert result["refund"]["lines"][0]["line_total_cents"] == -3000
        assert result["store_credit"] is None
        assert item.quantity_on_hand == 20

    def test_refund_to_store_credit(self, db_session, company, cashier, item):
        sale = _sell(company, cashier, item)

        result = transaction_service.refund_transaction(
            sale.id, company.id, cashier.id, payment_method="store_credit"
        )

        credit = result["store_credit"]
        assert credit["amount_cents"] == 3300
        assert credit["transaction_id"] == result["refund"]["id"]
        assert credit["barcode"].startswith("SC-")
        assert db_session.query(StoreCredit).count() == 1

    def test_store_credit_barcode_collision_is_conflict(self, db_session, monkeypatch, company, cashier, item):
        taken = store_credit_service.issue_store_credit(company.id, 100).barcode
        sale = _sell(company, cashier, item)
        monkeypatch.setattr(
            identifier_service, "generate_store_credit_barcode", lambda rng=None, now=None: taken
        )

        with pytest.raises(ConflictError):
            transaction_service.refund_transaction(
                sale.id, company.id, cashier.id, payment_method="store_credit"
            )

        db_session.refresh(sale)
        assert sale.status == "completed"
        assert db_session.query(Transaction).filter_by(type="refund").count() == 0
        assert db_session.query(StoreCredit).count() == 1

    def test_refund_twice_conflicts(self, db_session, company, cashier, item):
        sale = _sell(company, cashier, item)
        transaction_service.refund_transaction(sale.id, company.id, cashier.id)
        with pytest.raises(ConflictError):
            transaction_service.refund_transaction(sale.id, company.id, cashier.id)

    def test_refund_outside_period_carries_details(self, db_session, company, cashier, item):
        sale = _sell(company, cashier, item)
        now = sale.created_at + timedelta(days=31, hours=1)

        with pytest.raises(ConflictError) as exc_info:
            transaction_service.refund_transaction(sale.id, company.id, cashier.id, now=now)

        assert exc_info.value.details == {"days_since_purchase": 31, "max_days": 30}
        db_session.refresh(sale)
        assert sale.status == "completed"

    def test_item_policy_shorter_than_default_blocks(self, db_session, company, cashier, item):
        item.return_period_days = 7
        db_session.commit()
        sale = _sell(company, cashier, item)

        with pytest.raises(ConflictError) as exc_info:
            transaction_service.refund_transaction(
                sale.id, company.id, cashier.id, now=sale.created_at + timedelta(days=10)
            )

        assert exc_info.value.details["item_id"] == item.id

    def test_non_returnable_item_blocks(self, db_session, company, cashier, item):
        item.no_returns = True
        db_session.commit()
        sale = _sell(company, cashier, item)

        with pytest.raises(ConflictError):
            transaction_service.refund_transaction(sale.id, company.id, cashier.id)

    def test_voided_sale_cannot_be_refunded(self, db_session, company, cashier, item):
        sale = _sell(company, cashier, item)
        transaction_service.void_transaction(sale.id, company.id)
        with pytest.raises(ConflictError):
            transaction_service.refund_transaction(sale.id, company.id, cashier.id)


class TestTransactionRoutes:

    def test_create_and_get(self, client, db_session, company, cashier, item):
        resp = client.post("/api/transactions", json={
            "companyId": company.id,
            "employee_id": cashier.id,
            "lines": [{"item_id": item.id, "quantity": 1}],
            "payment_method": "card",
        })
        assert resp.status_code == 201
        tx_id = resp.get_json()["id"]

        got = client.get(f"/api/transactions/{tx_id}?companyId={company.id}")
        assert got.status_code == 200
        assert got.get_json()["total_cents"] == 1650

    def test_lines_must_be_list(self, client, db_session, company, cashier):
        resp = client.post("/api/transactions", json={
            "companyId": company.id, "employee_id": cashier.id, "lines": "nope",
        })
        assert resp.status_code == 400

    def test_list_with_date_filters(self, client, db_session, company, make_transaction):
        make_transaction(total_cents=100, created_at=utcnow() - timedelta(days=10))
        make_transaction(total_cents=200)
        today = utcnow().strftime("%Y-%m-%d")

        resp = client.get(f"/api/transactions?companyId={company.id}&start_date={today}&end_date={today}")

        assert resp.status_code == 200
        assert [t["total_cents"] for t in resp.get_json()] == [200]

    def test_bad_date_filter(self, client, db_session, company):
        resp = client.get(f"/api/transactions?companyId={company.id}&start_date=01/02/2026")
        assert resp.status_code == 400

    def test_refund_outside_period_is_409_with_details(self, client, db_session, company, cashier, make_transaction):
        sale = make_transaction(total_cents=1000, created_at=utcnow() - timedelta(days=31, hours=2))

        resp = client.post(f"/api/transactions/{sale.id}/refund", json={
            "companyId": company.id, "employee_id": cashier.id,
        })

        assert resp.status_code == 409
        body = resp.get_json()
        assert body["days_since_purchase"] == 31
        assert body["max_days"] == 30

    def test_void_route_conflict(self, client, db_session, company, make_transaction):
        sale = make_transaction(total_cents=1000, status="refunded")
        resp = client.post(f"/api/transactions/{sale.id}/void?companyId={company.id}")
        assert resp.status_code == 409

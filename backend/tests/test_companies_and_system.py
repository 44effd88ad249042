"""
Company/catalog routes, health check, CORS headers and CLI commands.
"""

from retailpos.extensions import db
from retailpos.models import Company, Employee


class TestCompanyRoutes:

    def test_create_and_get_company(self, client, db_session):
        resp = client.post("/api/companies", json={"name": "Corner Store", "timezone": "Europe/London"})
        assert resp.status_code == 201
        company_id = resp.get_json()["id"]

        got = client.get(f"/api/companies/{company_id}")
        assert got.status_code == 200
        assert got.get_json()["timezone"] == "Europe/London"

    def test_unknown_timezone_rejected(self, client, db_session):
        resp = client.post("/api/companies", json={"name": "Nowhere", "timezone": "Mars/Olympus"})
        assert resp.status_code == 400

    def test_invalid_json_payload(self, client, db_session):
        resp = client.post("/api/companies", data="not json", content_type="application/json")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid JSON payload"

    def test_catalog_flow(self, client, db_session, company):
        cat = client.post(f"/api/companies/{company.id}/categories", json={"name": "Drinks", "tax_rate": 5})
        assert cat.status_code == 201

        dup = client.post(f"/api/companies/{company.id}/categories", json={"name": "Drinks"})
        assert dup.status_code == 409

        item = client.post(f"/api/companies/{company.id}/items", json={
            "name": "Cola", "price_cents": 199, "category_id": cat.get_json()["id"],
        })
        assert item.status_code == 201

        items = client.get(f"/api/companies/{company.id}/items")
        assert [i["name"] for i in items.get_json()] == ["Cola"]

    def test_item_with_foreign_category(self, client, db_session, company, other_company):
        cat = client.post(f"/api/companies/{other_company.id}/categories", json={"name": "Theirs"})
        resp = client.post(f"/api/companies/{company.id}/items", json={
            "name": "Cola", "price_cents": 199, "category_id": cat.get_json()["id"],
        })
        assert resp.status_code == 404

    def test_company_id_must_be_integer(self, client, db_session):
        resp = client.get("/api/employees?companyId=abc")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Company ID must be an integer"


class TestSystem:

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"

    def test_cors_for_allowed_origin(self, client, db_session):
        resp = client.get("/health", headers={"Origin": "http://localhost:3000"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"

    def test_no_cors_for_unknown_origin(self, client, db_session):
        resp = client.get("/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers


class TestCli:

    def test_create_company_and_employee(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["companies", "create", "--name", "CLI Shop"])
        assert "PASS Created company: CLI Shop" in result.output
        company = db.session.query(Company).filter_by(name="CLI Shop").one()

        result = runner.invoke(args=["employees", "create", "--company-id", str(company.id), "--name", "Sam"])
        assert "Barcode: EMP-" in result.output
        assert db.session.query(Employee).filter_by(company_id=company.id).count() == 1

        result = runner.invoke(args=["employees", "list", "--company-id", str(company.id)])
        assert "Sam" in result.output

    def test_employee_for_unknown_company(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["employees", "create", "--company-id", "999", "--name", "X"])
        assert "FAIL Company not found" in result.output

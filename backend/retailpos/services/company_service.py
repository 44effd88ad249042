# Overview: Service-layer operations for companies and their catalog; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..extensions import db
from ..models import Category, Company, Customer, Item, Vendor
from ..validation import ConflictError, NotFoundError, ValidationError


def _check_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone: {name}")
    return name


def create_company(name: str, timezone: str = "UTC", default_return_period_days: int | None = None) -> Company:
    if not name or not name.strip():
        raise ValidationError("name is required")
    company = Company(
        name=name.strip(),
        timezone=_check_timezone(timezone or "UTC"),
        default_return_period_days=default_return_period_days,
    )
    db.session.add(company)
    db.session.commit()
    return company


def get_company(company_id: int) -> Company:
    company = db.session.get(Company, company_id)
    if company is None:
        raise NotFoundError("Company not found")
    return company


def list_companies() -> list[Company]:
    return db.session.query(Company).order_by(Company.name, Company.id).all()


def update_company(company_id: int, data: dict) -> Company:
    company = get_company(company_id)
    if "name" in data:
        if not data["name"] or not str(data["name"]).strip():
            raise ValidationError("name cannot be blank")
        company.name = str(data["name"]).strip()
    if "timezone" in data:
        company.timezone = _check_timezone(data["timezone"])
    if "is_active" in data:
        company.is_active = bool(data["is_active"])
    db.session.commit()
    return company


# =============================================================================
# CATALOG
# =============================================================================

def create_category(company_id: int, name: str, tax_rate: float = 0.0, return_period_days: int | None = None) -> Category:
    get_company(company_id)
    if not name or not name.strip():
        raise ValidationError("name is required")
    if tax_rate is None or isinstance(tax_rate, bool) or not isinstance(tax_rate, (int, float)) or tax_rate < 0:
        raise ValidationError("tax_rate must be a non-negative number")

    category = Category(
        company_id=company_id,
        name=name.strip(),
        tax_rate=float(tax_rate),
        return_period_days=return_period_days,
    )
    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Category '{name.strip()}' already exists")
    return category


def list_categories(company_id: int) -> list[Category]:
    return db.session.query(Category).filter_by(company_id=company_id).order_by(Category.name).all()


def create_vendor(company_id: int, name: str, contact_name: str | None = None,
                  email: str | None = None, phone: str | None = None) -> Vendor:
    get_company(company_id)
    if not name or not name.strip():
        raise ValidationError("name is required")
    vendor = Vendor(company_id=company_id, name=name.strip(), contact_name=contact_name, email=email, phone=phone)
    db.session.add(vendor)
    db.session.commit()
    return vendor


def list_vendors(company_id: int) -> list[Vendor]:
    return db.session.query(Vendor).filter_by(company_id=company_id).order_by(Vendor.name).all()


def create_item(
    company_id: int,
    name: str,
    price_cents: int,
    category_id: int | None = None,
    vendor_id: int | None = None,
    barcode: str | None = None,
    quantity_on_hand: int = 0,
) -> Item:
    get_company(company_id)
    if not name or not name.strip():
        raise ValidationError("name is required")
    if category_id and db.session.query(Category.id).filter_by(id=category_id, company_id=company_id).first() is None:
        raise NotFoundError("Category not found")
    if vendor_id and db.session.query(Vendor.id).filter_by(id=vendor_id, company_id=company_id).first() is None:
        raise NotFoundError("Vendor not found")

    item = Item(
        company_id=company_id,
        name=name.strip(),
        price_cents=price_cents,
        category_id=category_id,
        vendor_id=vendor_id,
        barcode=barcode.strip() if barcode else None,
        quantity_on_hand=quantity_on_hand,
    )
    db.session.add(item)
    db.session.commit()
    return item


def list_items(company_id: int) -> list[Item]:
    return db.session.query(Item).filter_by(company_id=company_id).order_by(Item.name, Item.id).all()


def create_customer(company_id: int, name: str, email: str | None = None, phone: str | None = None) -> Customer:
    get_company(company_id)
    if not name or not name.strip():
        raise ValidationError("name is required")
    customer = Customer(company_id=company_id, name=name.strip(), email=email, phone=phone)
    db.session.add(customer)
    db.session.commit()
    return customer

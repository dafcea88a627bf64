# inventory_api/seed.py
# Demo data loader for local development
# Run: python -m inventory_api.seed [--reset]

import argparse
import datetime as dt
from typing import List

from sqlalchemy import text

from inventory_api import asset_store, user_store
from inventory_api.auth_context import hash_password
from inventory_api.db import clear_db, get_db_connection, init_db


SAMPLE_USERS = [
    {
        "first_name": "Admin",
        "last_name": "User",
        "email": "admin@company.com",
        "password": "admin123",
        "role": "admin",
        "department": "IT",
        "position": "System Administrator",
        "employee_id": "EMP001",
        "phone": "+1234567890",
    },
    {
        "first_name": "Manager",
        "last_name": "User",
        "email": "manager@company.com",
        "password": "manager123",
        "role": "manager",
        "department": "Operations",
        "position": "Operations Manager",
        "employee_id": "EMP002",
        "phone": "+1234567891",
    },
    {
        "first_name": "Employee",
        "last_name": "User",
        "email": "employee@company.com",
        "password": "employee123",
        "role": "employee",
        "department": "IT",
        "position": "Software Developer",
        "employee_id": "EMP003",
        "phone": "+1234567892",
    },
]


def _asset(name, type, category, location, serial, manufacturer, model, price, value, bought, tags,
           status="active", condition="excellent", notes=None):
    purchase_date = dt.date.fromisoformat(bought)
    return {
        "name": name,
        "type": type,
        "category": category,
        "location": location,
        "serial_number": serial,
        "manufacturer": manufacturer,
        "model": model,
        "purchase_price": price,
        "current_value": value,
        "purchase_date": purchase_date,
        "warranty_expiry": purchase_date.replace(year=purchase_date.year + 3),
        "status": status,
        "condition": condition,
        "notes": notes,
        "tags": tags,
    }


SAMPLE_ASSETS = [
    _asset('MacBook Pro 16"', "electronics", "Computers", "IT Department", "MBP2024001",
           "Apple", "MacBook Pro 16-inch", 2499, 2499, "2024-01-15", ["laptop", "development"],
           notes="High-performance laptop for development work"),
    _asset("Dell XPS 15", "electronics", "Computers", "Marketing Department", "DXP2024002",
           "Dell", "XPS 15 9520", 1899, 1899, "2024-02-20", ["laptop", "design", "marketing"],
           condition="good"),
    _asset("iPhone 15 Pro", "electronics", "Mobile Devices", "Sales Department", "IPH2024003",
           "Apple", "iPhone 15 Pro", 999, 999, "2024-03-10", ["phone", "mobile", "sales"]),
    _asset("HP LaserJet Pro", "equipment", "Printers", "Operations Office", "HP2024005",
           "HP", "LaserJet Pro M404n", 299, 299, "2024-02-15", ["printer", "office"],
           condition="good", notes="Office printer for general use"),
    _asset('iPad Pro 12.9"', "electronics", "Tablets", "IT Department", "IPD2024006",
           "Apple", "iPad Pro 12.9-inch", 1099, 1099, "2024-01-20", ["tablet", "presentations"],
           status="maintenance", condition="fair"),
    _asset("Standing Desk", "furniture", "Desks", "Operations Floor 2", "DSK2024009",
           "Uplift", "V2 Commercial", 749, 650, "2023-11-02", ["desk", "ergonomic"],
           condition="good"),
]


def seed(reset: bool = False) -> List[str]:
    """
    Create the schema and load demo users/assets.

    Without reset, nothing is inserted when users already exist.
    Returns the emails of the users created.
    """
    init_db()
    if reset:
        clear_db()
        print("[SEED] Cleared existing data")

    created = []
    with get_db_connection() as conn:
        existing = conn.execute(text("SELECT COUNT(*) FROM users")).scalar_one()
        if existing:
            print(f"[SEED] {existing} users already present, skipping (use --reset to reload)")
            return created

        users = {}
        for sample in SAMPLE_USERS:
            data = {k: v for k, v in sample.items() if k != "password"}
            user = user_store.create_user(conn, data, hash_password(sample["password"]))
            users[user["email"]] = user
            created.append(user["email"])
            print(f"[SEED] Created user: {user['first_name']} {user['last_name']} ({user['role']})")

        for sample in SAMPLE_ASSETS:
            asset = asset_store.create_asset(conn, sample)
            print(f"[SEED] Created asset: {asset['name']}")

        # Give the demo employee something to look at
        laptop = conn.execute(
            text("SELECT id FROM assets WHERE serial_number = :serial"), {"serial": "MBP2024001"}
        ).scalar_one()
        asset_store.update_asset(conn, laptop, {"assigned_to": users["employee@company.com"]["id"]})

    print(f"[SEED] Done: {len(created)} users, {len(SAMPLE_ASSETS)} assets")
    print("[SEED] Demo accounts: " + ", ".join(created))
    return created


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Load demo data into the inventory database")
    parser.add_argument("--reset", action="store_true", help="delete all users and assets first")
    args = parser.parse_args(argv)
    seed(reset=args.reset)


if __name__ == "__main__":
    main()

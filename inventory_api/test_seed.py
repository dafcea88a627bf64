"""
Test suite for the demo data loader.

Tests:
- First run loads the sample users and assets
- A second run without --reset changes nothing
- --reset wipes existing data and reloads the samples

Run: pytest inventory_api/test_seed.py -v
"""

from sqlalchemy import text

from inventory_api import seed as seed_module
from inventory_api.db import get_db_connection

DEMO_EMAILS = ["admin@company.com", "manager@company.com", "employee@company.com"]


def _counts():
    with get_db_connection() as conn:
        users = conn.execute(text("SELECT COUNT(*) FROM users")).scalar_one()
        assets = conn.execute(text("SELECT COUNT(*) FROM assets")).scalar_one()
    return users, assets


class TestSeed:

    def test_first_run_loads_samples(self, client):
        assert seed_module.seed() == DEMO_EMAILS
        assert _counts() == (len(seed_module.SAMPLE_USERS), len(seed_module.SAMPLE_ASSETS))

        login = client.post("/api/auth/login", json={"email": "employee@company.com", "password": "employee123"})
        assert login.status_code == 200
        headers = {"Authorization": f"Bearer {login.json()['token']}"}

        mine = client.get("/api/assets", headers=headers).json()["assets"]
        assert [a["serialNumber"] for a in mine] == ["MBP2024001"]

    def test_second_run_is_a_no_op(self):
        seed_module.seed()
        before = _counts()

        assert seed_module.seed() == []
        assert _counts() == before

    def test_existing_users_block_seeding(self, make_user):
        make_user("admin")
        assert seed_module.seed() == []
        assert _counts() == (1, 0)

    def test_reset_reloads(self, make_user, make_asset):
        make_user("employee", email="stray@company.com")
        make_asset(name="Stray asset")

        assert seed_module.seed(reset=True) == DEMO_EMAILS
        assert _counts() == (len(seed_module.SAMPLE_USERS), len(seed_module.SAMPLE_ASSETS))
        with get_db_connection() as conn:
            stray = conn.execute(text("SELECT COUNT(*) FROM users WHERE email = 'stray@company.com'")).scalar_one()
        assert stray == 0

    def test_main_parses_reset_flag(self, make_user):
        make_user("employee")
        seed_module.main(["--reset"])
        assert _counts()[0] == len(seed_module.SAMPLE_USERS)

    def test_passwords_never_printed(self, capsys):
        seed_module.seed()
        out = capsys.readouterr().out
        for sample in seed_module.SAMPLE_USERS:
            assert sample["password"] not in out

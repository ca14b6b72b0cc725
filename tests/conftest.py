import os
import pytest
from typing import Any, Callable, Dict, Generator, List, Optional, Set, Tuple
from fastapi.testclient import TestClient

import stripe
from cryptography.fernet import Fernet

# Pas de Redis pendant les tests: le lifespan désactive le limiteur
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from cardcheck import config
from cardcheck.app import app as fastapi_app
from cardcheck.payments import stripe_client

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)


# --- Faux Supabase (table builder PostgREST en mémoire) ---
class _Result:
    def __init__(self, data: List[Dict[str, Any]]):
        self.data = data


class _Query:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload: Optional[Dict[str, Any]] = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._order: Optional[Tuple[str, bool]] = None
        self._limit: Optional[int] = None

    def select(self, *columns):
        self.op = "select"
        return self

    def insert(self, payload: Dict[str, Any]):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload: Dict[str, Any]):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column: str, value: Any):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def is_(self, column: str, value: str):
        expected_null = str(value).lower() == "null"
        self.filters.append(lambda row: (row.get(column) is None) == expected_null)
        return self

    def order(self, column: str, desc: bool = False):
        self._order = (column, desc)
        return self

    def limit(self, n: int):
        self._limit = n
        return self

    def execute(self) -> _Result:
        if (self.table, self.op) in self.db.failures:
            raise RuntimeError(f"injected failure on {self.table}.{self.op}")
        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            row = dict(self.payload or {})
            row.setdefault("id", self.db.next_id(self.table))
            row.setdefault("deleted_at", None)
            rows.append(row)
            return _Result([dict(row)])

        matched = [r for r in rows if all(f(r) for f in self.filters)]
        if self.op == "update":
            for r in matched:
                r.update(self.payload or {})
            return _Result([dict(r) for r in matched])
        if self.op == "delete":
            self.db.tables[self.table] = [r for r in rows if r not in matched]
            return _Result([dict(r) for r in matched])

        if self._order:
            column, desc = self._order
            matched = sorted(matched, key=lambda r: r.get(column) or 0, reverse=desc)
        if self._limit is not None:
            matched = matched[: self._limit]
        return _Result([dict(r) for r in matched])


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failures: Set[Tuple[str, str]] = set()
        self._ids: Dict[str, int] = {}

    def next_id(self, table: str) -> int:
        self._ids[table] = self._ids.get(table, 0) + 1
        return self._ids[table]

    def table(self, name: str) -> _Query:
        return _Query(self, name)

    def fail(self, table: str, op: str) -> None:
        self.failures.add((table, op))

    def seed(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        return self.table(table).insert(row).execute().data[0]

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])

    def activity(self) -> List[str]:
        return [r["description"] for r in self.rows("activity_log")]


# --- Faux Stripe (remplace les fonctions de cardcheck.payments.stripe_client) ---
class FakeStripe:
    OPERATIONS = (
        "create_customer",
        "retrieve_payment_method",
        "create_setup_intent",
        "retrieve_setup_intent",
        "attach_payment_method",
        "set_default_payment_method",
    )

    def __init__(self):
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.payment_methods: Dict[str, Dict[str, Any]] = {}
        self.setup_intents: Dict[str, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self.failures: Dict[str, Exception] = {}
        self._seq = 0

    def _next(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}_{self._seq}"

    def _call(self, op: str) -> None:
        self.calls.append(op)
        exc = self.failures.get(op)
        if exc is not None:
            raise exc

    def add_payment_method(self, pm_id: str, brand: str = "visa", last4: str = "4242",
                           exp_month: int = 12, exp_year: int = 2030, customer: Optional[str] = None,
                           with_card: bool = True) -> Dict[str, Any]:
        card = {"brand": brand, "last4": last4, "exp_month": exp_month, "exp_year": exp_year} if with_card else None
        self.payment_methods[pm_id] = {"id": pm_id, "customer": customer, "card": card}
        return self.payment_methods[pm_id]

    def create_customer(self, *, email: str, name: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        self._call("create_customer")
        customer_id = self._next("cus")
        self.customers[customer_id] = {
            "id": customer_id,
            "email": email,
            "name": name,
            "metadata": dict(metadata),
            "invoice_settings": {"default_payment_method": None},
        }
        return dict(self.customers[customer_id])

    def retrieve_payment_method(self, payment_method_id: str) -> Dict[str, Any]:
        self._call("retrieve_payment_method")
        if payment_method_id not in self.payment_methods:
            raise stripe.InvalidRequestError(f"No such PaymentMethod: '{payment_method_id}'", "id")
        return dict(self.payment_methods[payment_method_id])

    def create_setup_intent(self, customer_id: str) -> Dict[str, Any]:
        self._call("create_setup_intent")
        intent_id = self._next("seti")
        self.setup_intents[intent_id] = {
            "id": intent_id,
            "client_secret": f"{intent_id}_secret_test",
            "customer": customer_id,
            "status": "requires_payment_method",
            "payment_method": None,
            "usage": "off_session",
            "payment_method_types": ["card"],
        }
        return dict(self.setup_intents[intent_id])

    def retrieve_setup_intent(self, setup_intent_id: str) -> Dict[str, Any]:
        self._call("retrieve_setup_intent")
        if setup_intent_id not in self.setup_intents:
            raise stripe.InvalidRequestError(f"No such setupintent: '{setup_intent_id}'", "id")
        return dict(self.setup_intents[setup_intent_id])

    def attach_payment_method(self, payment_method_id: str, customer_id: str) -> Dict[str, Any]:
        self._call("attach_payment_method")
        pm = self.payment_methods[payment_method_id]
        if pm["customer"] and pm["customer"] != customer_id:
            raise stripe.InvalidRequestError("The payment method is already attached to a different customer", "payment_method")
        pm["customer"] = customer_id
        return dict(pm)

    def set_default_payment_method(self, customer_id: str, payment_method_id: str) -> Dict[str, Any]:
        self._call("set_default_payment_method")
        customer = self.customers[customer_id]
        customer["invoice_settings"]["default_payment_method"] = payment_method_id
        return dict(customer)

    def confirm(self, client_secret: str, payment_method_id: str) -> Dict[str, Any]:
        """Ce que fait Stripe.js confirmCardSetup: l'intent réussit et le pm_ est rattaché au client."""
        intent = next(i for i in self.setup_intents.values() if i["client_secret"] == client_secret)
        intent["status"] = "succeeded"
        intent["payment_method"] = payment_method_id
        self.payment_methods[payment_method_id]["customer"] = intent["customer"]
        return dict(intent)

    def install(self, monkeypatch) -> None:
        for name in self.OPERATIONS:
            monkeypatch.setattr(stripe_client, name, getattr(self, name))


@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture(autouse=True)
def zero_order_config(monkeypatch):
    """Stripe + chiffrement configurés par défaut; les tests « non configuré » remettent à vide."""
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_dummy")
    monkeypatch.setattr(config, "STRIPE_PUBLIC_KEY", "pk_test_dummy")
    monkeypatch.setattr(config, "CARD_DATA_ENCRYPTION_KEY", Fernet.generate_key().decode("ascii"))
    monkeypatch.setattr(config, "ZERO_ORDER_VERIFY_SETUP_INTENT", False)
    return config

@pytest.fixture(autouse=True)
def fake_db(monkeypatch) -> FakeSupabase:
    db = FakeSupabase()
    monkeypatch.setattr("cardcheck.infra.supabase_client.get_supabase", lambda: db)
    monkeypatch.setattr("cardcheck.infra.supabase_client.get_service_supabase", lambda: db)
    return db

@pytest.fixture(autouse=True)
def fake_stripe(monkeypatch) -> FakeStripe:
    fake = FakeStripe()
    fake.install(monkeypatch)
    return fake

@pytest.fixture
def client_c1(fake_db) -> Dict[str, Any]:
    return fake_db.seed("clients", {"email": "c1@example.com", "firstname": "Ada", "lastname": "Lovelace"})

@pytest.fixture
def free_product(fake_db) -> int:
    fake_db.seed("pricing", {"type": "product", "relid": 7, "currency": 1, "monthly": 0, "annually": 0, "msetupfee": 0})
    return 7

@pytest.fixture
def paid_product(fake_db) -> int:
    fake_db.seed("pricing", {"type": "product", "relid": 9, "currency": 1, "monthly": 9.99, "annually": 99, "msetupfee": 0})
    return 9

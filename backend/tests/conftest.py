"""
Test fixtures shared across all tests.

Architecture:
- Firestore is replaced by FakeFirestore, a small in-memory double that
  supports the calls the app makes: collection().stream(),
  collection().where("field", "==", value).stream(), document(),
  batch().update()/commit().
- The double is injected with app.dependency_overrides, the same seam
  the routes use in production (Depends(get_firestore)). Nothing is
  monkeypatched at module level.
- Generated reports are written to pytest's tmp_path via a
  LocalStorageService override, and served back from the same directory.
- Seed documents are dated relative to "now" so they always fall inside
  the trailing 30-day dashboard window.
"""

import copy
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from dorlog.firestore import get_firestore
from dorlog.main import app
from dorlog.routers.generation import get_local_storage, get_report_strategy
from dorlog.services.report_data import ReportDataService
from dorlog.services.report_generation import HtmlReportStrategy
from dorlog.services.storage import LocalStorageService

ALICE = "alice@example.com"
BOB = "bob@example.com"


# --- In-memory Firestore ---

class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    def to_dict(self):
        return copy.deepcopy(self._data)


class FakeDocumentRef:
    def __init__(self, collection, doc_id):
        self.collection = collection
        self.id = doc_id


class FakeQuery:
    def __init__(self, collection, filters):
        self.collection = collection
        self.filters = filters

    def where(self, field_path, op, value):
        assert op == "==", f"FakeFirestore only supports '==', got {op!r}"
        return FakeQuery(self.collection, self.filters + [(field_path, value)])

    def stream(self):
        if self.collection.name in self.collection.db.failing:
            raise RuntimeError(f"simulated outage on {self.collection.name}")
        for doc_id, data in list(self.collection.docs.items()):
            if all(data.get(f) == v for f, v in self.filters):
                yield FakeSnapshot(doc_id, data)


class FakeCollection(FakeQuery):
    def __init__(self, db, name):
        self.db = db
        self.name = name
        self.docs = {}
        super().__init__(self, [])

    def document(self, doc_id):
        return FakeDocumentRef(self, doc_id)


class FakeBatch:
    def __init__(self, db):
        self.db = db
        self.updates = []

    def update(self, ref, data):
        if len(self.updates) >= 500:
            raise ValueError("maximum 500 writes allowed per request")
        self.updates.append((ref, data))

    def commit(self):
        for ref, data in self.updates:
            ref.collection.docs[ref.id].update(copy.deepcopy(data))
        self.db.commits += 1
        self.updates = []


class FakeFirestore:
    def __init__(self):
        self.collections = {}
        self.failing = set()
        self.commits = 0

    def collection(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(self, name)
        return self.collections[name]

    def batch(self):
        return FakeBatch(self)

    def add(self, collection, doc_id, data):
        self.collection(collection).docs[doc_id] = data

    def get(self, collection, doc_id):
        return self.collection(collection).docs[doc_id]


def night_quiz(pain, locations, sleep=None, mood=None):
    answers = {"1": pain, "2": locations}
    if sleep is not None:
        answers["4"] = sleep
    if mood is not None:
        answers["9"] = mood
    return {"tipo": "noturno", "respostas": answers}


def crisis_quiz(pain, rescue, triggers=(), response=None):
    answers = {"1": pain, "2": rescue, "3": ["Pulsante"]}
    if triggers:
        answers["5"] = list(triggers)
    if response is not None:
        answers["7"] = response
    return {"tipo": "emergencial", "respostas": answers}


def morning_quiz(feeling):
    return {"tipo": "matinal", "respostas": {"1": feeling}}


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def seeded_db(fake_db, now):
    """Alice has four diary days in the last week; Bob has one.

    Alice's pain readings are 7, 3 and "abc" (dropped), so her series has
    two points with mean 5.0. Her pain points are Cabeça x2, Lombar x1,
    Pescoço x1, and she had one crisis. Her 2/10 night of sleep two
    days ago pairs with yesterday's pain of 3.
    """
    def day(n):
        return now - timedelta(days=n)

    fake_db.add("report_diario", f"{ALICE}_{day(5).date()}", {
        "data": day(5),
        "quizzes": [night_quiz("abc", "Lombar")],
    })
    fake_db.add("report_diario", "legacy_doc_01", {
        "usuarioId": ALICE,
        "data": day(3).isoformat(),
        "quizzes": [morning_quiz("Cansado"), [4, 5, 6]],
    })
    fake_db.add("report_diario", f"{ALICE}_{day(2).date()}", {
        "data": day(2),
        "quizzes": [
            night_quiz(7, ["Cabeça", "Pescoço"], sleep=2, mood="Ansioso"),
            crisis_quiz(9, "Dipirona", triggers=["Estresse", "Frio"], response="Sim, melhorou"),
        ],
    })
    fake_db.add("report_diario", f"{ALICE}_{day(1).date()}", {
        "data": day(1),
        "quizzes": [night_quiz("3", ["Cabeça"], sleep=8, mood="Calmo")],
    })
    # Outside the 30-day window, still counts for adherence
    fake_db.add("report_diario", f"{ALICE}_{day(60).date()}", {
        "data": day(60),
        "quizzes": [night_quiz(10, ["Joelho"])],
    })
    fake_db.add("report_diario", f"{BOB}_{day(1).date()}", {
        "data": day(1),
        "quizzes": [night_quiz(10, ["Joelho"])],
    })

    fake_db.add("medicos", "doc_ana", {
        "usuarioId": ALICE,
        "nome": "Dra. Ana Souza",
        "especialidade": "Reumatologia",
        "crm": "12345-SP",
        "telefone": "(11) 99999-0000",
    })
    fake_db.add("medicamentos", "med_pregabalina", {
        "usuarioId": ALICE,
        "nome": "Pregabalina",
        "posologia": "75mg",
        "frequencia": "2x ao dia",
        "medicoId": "doc_ana",
        "lembrete": [{"hora": "08:00", "status": True}, {"hora": "20:00", "status": True}],
        "lastReset": "2020-01-01",
    })
    fake_db.add("medicamentos", "med_bob", {
        "usuarioId": BOB,
        "nome": "Ibuprofeno",
        "lembrete": [{"hora": "12:00", "status": True}],
    })
    return fake_db


@pytest.fixture
def report_storage(tmp_path):
    return LocalStorageService(base_path=str(tmp_path), public_base_url="http://test")


@pytest_asyncio.fixture
async def client(seeded_db, report_storage):
    """Async HTTP test client wired to the seeded FakeFirestore.

    Report generation uses the HTML strategy; tests that need PDF
    override get_report_strategy again.
    """
    app.dependency_overrides[get_firestore] = lambda: seeded_db
    app.dependency_overrides[get_report_strategy] = lambda: HtmlReportStrategy(
        ReportDataService(seeded_db), report_storage,
    )
    app.dependency_overrides[get_local_storage] = lambda: report_storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

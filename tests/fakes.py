"""
In-memory stand-ins for the Firestore client and the external identity provider.

FakeFirestore implements the slice of the google-cloud-firestore client that
CredentialRegistry uses. Setting `fail = True` makes every call raise
ServiceUnavailable, which is how registry outages are simulated.
"""
from datetime import datetime, timezone
from itertools import count
from typing import Dict, Optional, Tuple

from google.api_core.exceptions import ServiceUnavailable

from healthvault.auth.exceptions import InvalidTokenException
from healthvault.core.firebase import ExternalPrincipal
from healthvault.verification.registry import CredentialRegistry
from healthvault.verification.schemas import EmployeeRecord


class FakeSnapshot:
    def __init__(self, doc_id: str, data: Optional[dict]):
        self.id = doc_id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, store: "FakeFirestore", path: Tuple[str, ...]):
        self.store = store
        self.path = path
        self.id = path[-1]

    def get(self, timeout=None):
        self.store.check()
        return FakeSnapshot(self.id, self.store.documents.get(self.path))

    def set(self, data: dict, timeout=None):
        self.store.check()
        self.store.documents[self.path] = dict(data)

    def collection(self, name: str) -> "FakeCollection":
        return FakeCollection(self.store, self.path + (name,))


class FakeQuery:
    def __init__(self, collection: "FakeCollection", filters=(), limit: Optional[int] = None):
        self.collection = collection
        self.filters = tuple(filters)
        self._limit = limit

    def where(self, filter=None):
        return FakeQuery(self.collection, self.filters + (filter,), self._limit)

    def limit(self, count: int):
        return FakeQuery(self.collection, self.filters, count)

    def stream(self, timeout=None):
        self.collection.store.check()
        matches = []
        for doc_id, data in self.collection.children():
            if all(self._matches(data, f) for f in self.filters):
                matches.append(FakeSnapshot(doc_id, data))
        if self._limit is not None:
            matches = matches[:self._limit]
        return iter(matches)

    @staticmethod
    def _matches(data: dict, field_filter) -> bool:
        if field_filter.op_string != "==":
            raise NotImplementedError(field_filter.op_string)
        return data.get(field_filter.field_path) == field_filter.value


class FakeCollection(FakeQuery):
    def __init__(self, store: "FakeFirestore", path: Tuple[str, ...]):
        self.store = store
        self.path = path
        super().__init__(self)

    def document(self, doc_id: str) -> FakeDocumentRef:
        return FakeDocumentRef(self.store, self.path + (doc_id,))

    def add(self, data: dict, timeout=None):
        self.store.check()
        ref = self.document(f"auto-{next(self.store.ids)}")
        self.store.documents[ref.path] = dict(data)
        return datetime.now(timezone.utc), ref

    def children(self):
        depth = len(self.path) + 1
        for path, data in list(self.store.documents.items()):
            if len(path) == depth and path[:-1] == self.path:
                yield path[-1], data


class FakeWriteBatch:
    def __init__(self, store: "FakeFirestore"):
        self.store = store
        self.writes = []

    def set(self, ref: FakeDocumentRef, data: dict):
        self.writes.append((ref.path, dict(data)))

    def commit(self, timeout=None):
        self.store.check()
        for path, data in self.writes:
            self.store.documents[path] = data
        return []


class FakeFirestore:
    def __init__(self):
        self.documents: Dict[Tuple[str, ...], dict] = {}
        self.ids = count(1)
        self.fail = False
        self.calls = 0

    def check(self):
        self.calls += 1
        if self.fail:
            raise ServiceUnavailable("registry down")

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self, (name,))

    def batch(self) -> FakeWriteBatch:
        return FakeWriteBatch(self)


class FakeIdentityProvider:
    """Accepts only the ID tokens registered with add_token."""

    def __init__(self):
        self.tokens: Dict[str, ExternalPrincipal] = {}

    def add_token(self, token: str, uid: str, email: Optional[str] = None, email_verified: bool = True) -> str:
        self.tokens[token] = ExternalPrincipal(uid=uid, email=email, email_verified=email_verified)
        return token

    def verify_id_token(self, id_token: str) -> ExternalPrincipal:
        if id_token not in self.tokens:
            raise InvalidTokenException()
        return self.tokens[id_token]


def seed_sample_registry(registry: CredentialRegistry) -> None:
    """A reduced copy of the sample registry used across tests."""
    registry.add_doctor("MH12345", "Dr. John Smith", "Medical Council of India", "Cardiologist")
    registry.add_doctor("DL67890", "Dr. Sarah Johnson", "Medical Council of India", "Pediatrician")
    registry.add_organization(
        "ORG001",
        "City Hospital",
        ["cityhospital.com", "ch.org"],
        [
            EmployeeRecord(employee_id="EMP001", email="staff@cityhospital.com", name="Jane Doe", department="Reception"),
            EmployeeRecord(employee_id="EMP002", email="admin@cityhospital.com", name="John Admin", department="Administration"),
        ],
    )
    registry.add_organization(
        "ORG002",
        "Metro Clinic",
        ["metroclinic.com", "mc.org"],
        [EmployeeRecord(employee_id="MC001", email="receptionist@metroclinic.com", name="Alice Brown", department="Reception")],
    )

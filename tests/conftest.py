"""
pytest configuration and shared fixtures for Limen Lakay tests.
"""

import copy
import json
import sys
from pathlib import Path

import httpx
import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config.settings import EmailConfig, SupabaseConfig, VesselStorageConfig  # noqa: E402
from lakay.db import SupabaseStore  # noqa: E402
from lakay.notifications import EmailSender  # noqa: E402
from lakay.vessels import MemoryStorage, VesselStore  # noqa: E402


# =============================================================================
# In-memory stand-in for the supabase client
# =============================================================================


class FakeResult:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Records one chained query and runs it against the fake tables."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.op = "select"
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self.order_by = None
        self.descending = False
        self.row_limit = None
        self.want_count = False

    def select(self, columns="*", count=None):
        self.op = "select"
        self.want_count = count is not None
        return self

    def insert(self, rows):
        self.op = "insert"
        self.payload = rows if isinstance(rows, list) else [rows]
        return self

    def upsert(self, row, on_conflict="id"):
        self.op = "upsert"
        self.payload = row
        self.on_conflict = on_conflict
        return self

    def update(self, data):
        self.op = "update"
        self.payload = data
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = column
        self.descending = desc
        return self

    def limit(self, n):
        self.row_limit = n
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self.filters)

    def execute(self):
        error = self.client.failures.get((self.table, self.op))
        if error:
            raise RuntimeError(error)

        rows = self.client.tables.setdefault(self.table, [])

        if self.op == "insert":
            stored = []
            for row in self.payload:
                row = dict(row)
                row.setdefault("id", self.client.next_id(self.table))
                row.setdefault("created_at", self.client.next_timestamp())
                rows.append(row)
                stored.append(copy.deepcopy(row))
            return FakeResult(stored)

        if self.op == "upsert":
            key = self.payload.get(self.on_conflict)
            for row in rows:
                if row.get(self.on_conflict) == key:
                    row.update(self.payload)
                    return FakeResult([copy.deepcopy(row)])
            row = dict(self.payload)
            row.setdefault("id", self.client.next_id(self.table))
            rows.append(row)
            return FakeResult([copy.deepcopy(row)])

        matched = [row for row in rows if self._matches(row)]

        if self.op == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResult([copy.deepcopy(row) for row in matched])

        if self.op == "delete":
            self.client.tables[self.table] = [row for row in rows if not self._matches(row)]
            return FakeResult([copy.deepcopy(row) for row in matched])

        if self.order_by:
            matched = sorted(
                matched,
                key=lambda row: str(row.get(self.order_by) or ""),
                reverse=self.descending,
            )
        count = len(matched) if self.want_count else None
        if self.row_limit:
            matched = matched[: self.row_limit]
        return FakeResult([copy.deepcopy(row) for row in matched], count)


class FakeBucket:
    def __init__(self, client, name):
        self.client = client
        self.name = name

    def upload(self, path, data, options=None):
        self.client.uploads.append({"bucket": self.name, "path": path, "data": data, "options": options})
        return {"Key": path}

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"


class FakeStorage:
    def __init__(self, client):
        self.client = client

    def from_(self, bucket):
        return FakeBucket(self.client, bucket)


class FakeSupabaseClient:
    """
    Enough of the supabase-py client for SupabaseStore.

    ``failures`` maps (table, operation) to an error message raised on execute.
    """

    def __init__(self, tables=None):
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.failures = {}
        self.uploads = []
        self.storage = FakeStorage(self)
        self._ids = 0
        self._ticks = 0

    def table(self, name):
        return FakeQuery(self, name)

    def next_id(self, table):
        self._ids += 1
        return f"{table}-{self._ids}"

    def next_timestamp(self):
        self._ticks += 1
        return f"2026-01-01T00:00:{self._ticks:02d}+00:00"


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_client():
    return FakeSupabaseClient()


@pytest.fixture
def store(fake_client):
    return SupabaseStore(SupabaseConfig(url="https://db.test", key="test-key"), client=fake_client)


@pytest.fixture
def sent_emails():
    """Request bodies posted to the email edge function."""
    return []


@pytest.fixture
def email_sender(sent_emails):
    def handler(request):
        sent_emails.append(json.loads(request.content))
        return httpx.Response(200, json={"id": "email-1"})

    return EmailSender(
        SupabaseConfig(url="https://db.test", key="test-key"),
        EmailConfig(),
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def offline_sender():
    """An email sender with no credentials: every send reports not configured."""
    return EmailSender(SupabaseConfig(url=None, key=None), EmailConfig())


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start=1_700_000_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms=1):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def vessel_config():
    return VesselStorageConfig(path=Path("unused.json"))


@pytest.fixture
def vessel_store(vessel_config, clock):
    return VesselStore(MemoryStorage(vessel_config.quota_bytes), vessel_config, clock=clock)

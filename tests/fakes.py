import copy
import re
import unittest
from unittest.mock import patch

from azure.cosmos.exceptions import (
    CosmosHttpResponseError, CosmosResourceExistsError, CosmosResourceNotFoundError
)

from flowzone.auth import create_access_token

_QUERY = re.compile(
    r"^SELECT \* FROM c"
    r"(?: WHERE (?P<where>.+?))?"
    r"(?: ORDER BY c\.(?P<order>\w+) (?P<direction>ASC|DESC))?$"
)
_CONDITION = re.compile(r"^c\.(\w+)\s*(=|!=|>=|<=|>|<)\s*(@\w+)$")

_OPERATORS = {
    "=": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    ">=": lambda a, b: a >= b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    "<": lambda a, b: a < b,
}


class FakeContainer:
    """
    In-memory stand-in for a Cosmos container client. Understands the
    queries the app issues: AND-ed comparisons of c.<field> against
    @-parameters, with an optional single-field ORDER BY.
    """

    def __init__(self, name):
        self.name = name
        self.items = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise CosmosHttpResponseError(status_code=503, message="Service unavailable")

    def _store(self, body):
        doc = copy.deepcopy(body)
        doc["_rid"] = f"rid-{doc['id']}"
        doc["_etag"] = "etag"
        self.items[doc["id"]] = doc
        return copy.deepcopy(doc)

    def query_items(self, query, parameters=None, enable_cross_partition_query=False):
        self._check()
        match = _QUERY.match(" ".join(query.split()))
        if match is None:
            raise AssertionError(f"Unsupported query: {query}")
        params = {p["name"]: p["value"] for p in parameters or []}

        conditions = []
        if match.group("where"):
            for clause in match.group("where").split(" AND "):
                cond = _CONDITION.match(clause.strip())
                if cond is None:
                    raise AssertionError(f"Unsupported condition: {clause}")
                field, op, param = cond.groups()
                conditions.append((field, _OPERATORS[op], params[param]))

        results = []
        for doc in self.items.values():
            ok = True
            for field, compare, value in conditions:
                actual = doc.get(field)
                if actual is None and value is not None:
                    ok = False
                    break
                if not compare(actual, value):
                    ok = False
                    break
            if ok:
                results.append(copy.deepcopy(doc))

        if match.group("order"):
            field = match.group("order")
            results.sort(key=lambda d: d.get(field) or "", reverse=match.group("direction") == "DESC")
        return iter(results)

    def create_item(self, body, **kwargs):
        self._check()
        if body["id"] in self.items:
            raise CosmosResourceExistsError(status_code=409, message="Conflict")
        return self._store(body)

    def upsert_item(self, body, **kwargs):
        self._check()
        return self._store(body)

    def delete_item(self, item, partition_key=None, **kwargs):
        self._check()
        if item not in self.items:
            raise CosmosResourceNotFoundError(status_code=404, message="Not found")
        del self.items[item]

    # Test helpers

    def seed(self, doc):
        self._store(doc)
        return doc

    def docs(self):
        return [copy.deepcopy(d) for d in self.items.values()]


class FakeDatabase:
    def __init__(self):
        self.containers = {}

    def get_container_client(self, name):
        if name not in self.containers:
            self.containers[name] = FakeContainer(name)
        return self.containers[name]


class CosmosTestCase(unittest.TestCase):
    """Runs each test against a fresh in-memory database with mail delivery stubbed out."""

    USER_ID = "user-1"
    OTHER_USER_ID = "user-2"

    def setUp(self):
        self.db = FakeDatabase()
        db_patcher = patch("flowzone.database.get_database", return_value=self.db)
        db_patcher.start()
        self.addCleanup(db_patcher.stop)

        smtp_patcher = patch("flowzone.mailer.smtplib.SMTP")
        self.smtp = smtp_patcher.start()
        self.addCleanup(smtp_patcher.stop)

    def container(self, name):
        return self.db.get_container_client(name)

    def auth_headers(self, user_id=None):
        return {"Authorization": f"Bearer {create_access_token(user_id or self.USER_ID)}"}

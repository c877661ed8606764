"""Pytest shared fixtures: in-memory ConfigMgr and Graph planes, app and client."""
import json
import pathlib
import re
import sys
from urllib.parse import parse_qs, unquote, urlsplit

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from configmgr_api.config import AppConfig
from configmgr_api.core.configmgr import (
    AffinityManager,
    CollectionManager,
    ConfigMgrClient,
    DeviceManager,
    MigrationManager,
)
from configmgr_api.core.graph import DirectoryManager, GraphClient, IntuneManager
from configmgr_api.flask_app import create_app
from configmgr_api.services import (
    CollectionService,
    ComputerService,
    DirectoryService,
    MigrationService,
    Services,
    UserService,
)

API_KEY = "test-key-123"
API_CLIENT = "Provisioning"
GRAPH_URL = "https://graph.microsoft.com/beta/"


# ─────────────────────────────────────────────────────────────────────────────
# Fake HTTP plumbing
# ─────────────────────────────────────────────────────────────────────────────
class FakeResponse:
    def __init__(self, status_code=200, payload=None, url=""):
        self.status_code = status_code
        self._payload = payload
        self.url = url
        if payload is None:
            self.content = b""
        elif isinstance(payload, str):
            self.content = payload.encode()
        else:
            self.content = json.dumps(payload).encode()
        self.text = self.content.decode()

    def json(self):
        return json.loads(self.content) if self.content else None


class FakeSession:
    """Stand-in for requests.Session that dispatches to a handler."""

    def __init__(self, handler):
        self.handler = handler
        self.headers = {}
        self.auth = None
        self.verify = True
        self.closed = False
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self.handler(method, url, **kwargs)

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)

    def close(self):
        self.closed = True


# ─────────────────────────────────────────────────────────────────────────────
# ConfigMgr AdminService fake
# ─────────────────────────────────────────────────────────────────────────────
_CLAUSE = re.compile(r"^(\w+) eq (.+)$")


def _parse_literal(raw):
    raw = raw.strip()
    if raw.startswith("'") and raw.endswith("'"):
        return raw[1:-1].replace("''", "'")
    if raw == "null":
        return None
    return int(raw)


def _matches(row, filter_expr):
    if not filter_expr:
        return True
    for clause in filter_expr.split(" and "):
        clause = clause.strip()
        if clause.startswith("("):
            # Obsolete guard: rows with Obsolete=1 never match
            if row.get("Obsolete") == 1:
                return False
            continue
        field, literal = _CLAUSE.match(clause).groups()
        expected = _parse_literal(literal)
        actual = row.get(field)
        if isinstance(expected, str) and isinstance(actual, str):
            if actual.lower() != expected.lower():
                return False
        elif actual != expected:
            return False
    return True


class FakeAdminService:
    """Minimal in-memory ConfigMgr site reachable through the AdminService routes."""

    def __init__(self):
        self.devices = {}
        self.users = []
        self.collections = {
            "SMS00001": {"CollectionID": "SMS00001", "Name": "All Systems", "Comment": "",
                         "LimitToCollectionID": "", "CollectionType": 2},
        }
        self.rules = set()
        self.relationships = []
        self.migrations = []
        self.method_calls = []
        self.fail_methods = {}
        self._next_resource_id = 16777220
        self._next_collection = 1
        self._next_relationship = 1

    # Seeding helpers
    def add_device(self, name, guid="", obsolete=0):
        resource_id = self._next_resource_id
        self._next_resource_id += 1
        self.devices[resource_id] = {
            "ResourceID": resource_id,
            "Name": name,
            "SMSUniqueIdentifier": f"GUID:{resource_id:08X}",
            "SMBIOSGUID": guid,
            "Obsolete": obsolete,
        }
        return resource_id

    def add_user(self, unique_user_name):
        resource_id = 2063597000 + len(self.users)
        self.users.append({"ResourceID": resource_id, "UniqueUserName": unique_user_name})
        return resource_id

    def add_collection(self, name, collection_id=None):
        collection_id = collection_id or f"PS1{self._next_collection:05d}"
        self._next_collection += 1
        self.collections[collection_id] = {
            "CollectionID": collection_id, "Name": name, "Comment": "",
            "LimitToCollectionID": "SMS00001", "CollectionType": 2,
        }
        return collection_id

    def add_migration(self, source, destination, status):
        self.migrations.append({"SourceName": source, "RestoreName": destination, "MigrationStatus": status})

    # Tables
    def _table(self, wmi_class):
        if wmi_class == "SMS_R_System":
            return list(self.devices.values())
        if wmi_class == "SMS_R_User":
            return self.users
        if wmi_class == "SMS_Collection":
            return list(self.collections.values())
        if wmi_class == "SMS_FullCollectionMembership":
            return [
                {"CollectionID": cid, "ResourceID": rid, "Name": self.devices[rid]["Name"]}
                for cid, rid in sorted(self.rules) if rid in self.devices
            ]
        if wmi_class == "SMS_UserMachineRelationship":
            return self.relationships
        if wmi_class == "SMS_StateMigration":
            return self.migrations
        raise AssertionError(f"Unexpected WMI class {wmi_class}")

    def __call__(self, method, url, params=None, json=None, timeout=None):
        path = unquote(urlsplit(url).path.split("/AdminService/wmi/", 1)[1])
        match = re.match(r"^(\w+)(?:\((.+)\))?(?:/AdminService\.(\w+))?$", path)
        wmi_class, key, wmi_method = match.groups()
        key = _parse_literal(key) if key else None

        if wmi_method:
            self.method_calls.append((wmi_class, key, wmi_method, json))
            if wmi_method in self.fail_methods:
                status, body = self.fail_methods[wmi_method]
                return FakeResponse(status, body, url)
            return FakeResponse(200, self._invoke(wmi_class, key, wmi_method, json or {}), url)

        if method == "GET" and key is None:
            rows = [row for row in self._table(wmi_class) if _matches(row, (params or {}).get("$filter"))]
            return FakeResponse(200, {"value": rows}, url)
        if method == "GET" and wmi_class == "SMS_R_System":
            if key not in self.devices:
                return FakeResponse(404, "not found", url)
            return FakeResponse(200, {"value": [self.devices[key]]}, url)
        if method == "POST" and wmi_class == "SMS_Collection":
            collection_id = self.add_collection(json["Name"])
            self.collections[collection_id].update(json)
            return FakeResponse(201, {"value": [self.collections[collection_id]]}, url)
        if method == "DELETE" and wmi_class == "SMS_R_System":
            if self.devices.pop(key, None) is None:
                return FakeResponse(404, "not found", url)
            return FakeResponse(200, None, url)
        if method == "DELETE" and wmi_class == "SMS_UserMachineRelationship":
            before = len(self.relationships)
            self.relationships[:] = [r for r in self.relationships if r["RelationshipResourceID"] != key]
            return FakeResponse(200 if len(self.relationships) < before else 404, None, url)
        raise AssertionError(f"Unexpected AdminService call {method} {url}")

    def _invoke(self, wmi_class, key, wmi_method, params):
        if wmi_method == "ImportMachineEntry":
            name = params["NetbiosName"]
            if any(d["Name"].lower() == name.lower() for d in self.devices.values()):
                return {"ReturnValue": 0, "MachineExists": True}
            resource_id = self.add_device(name, params.get("SMBIOSGUID", ""))
            return {"ReturnValue": 0, "MachineExists": False, "ResourceID": resource_id}
        if wmi_method == "ClearLastNBSAdvForMachines":
            return {"StatusCode": 0}
        if wmi_method in ("AddMembershipRule", "DeleteMembershipRule"):
            rule = params["collectionRule"]
            entry = (key, int(rule["ResourceID"]))
            if wmi_method == "AddMembershipRule":
                self.rules.add(entry)
            else:
                self.rules.discard(entry)
            return {"ReturnValue": 0}
        if wmi_method == "RequestRefresh":
            return {"ReturnValue": 0}
        if wmi_method == "CreateRelationship":
            device = self.devices[params["MachineResourceID"]]
            self.relationships.append({
                "RelationshipResourceID": self._next_relationship,
                "ResourceID": device["ResourceID"],
                "ResourceName": device["Name"],
                "UniqueUserName": params["UserAccountName"],
                "Sources": [params["SourceId"]],
                "Types": [params["TypeId"]],
            })
            self._next_relationship += 1
            return {"ReturnValue": 0}
        if wmi_method in ("AddAssociation", "DeleteAssociation"):
            return {"ReturnValue": 0}
        raise AssertionError(f"Unexpected method {wmi_class}.{wmi_method}")


# ─────────────────────────────────────────────────────────────────────────────
# Microsoft Graph fake
# ─────────────────────────────────────────────────────────────────────────────
class FakeGraph:
    """In-memory directory: users, devices, groups and managed devices."""

    def __init__(self):
        self.users = []
        self.devices = []
        self.groups = {}
        self.managed_devices = []
        self.categories = [{"id": "cat-1", "displayName": "Kiosk"}]
        self.requests = []

    def __call__(self, method, url, headers=None, json=None, timeout=None, **kwargs):
        self.requests.append((method, url, headers, json))
        parts = urlsplit(url)
        path = unquote(parts.path.split("/beta/", 1)[1])
        query = {k: v[0] for k, v in parse_qs(parts.query).items()}
        flt = query.get("$filter", "")

        def by(items, field):
            value = re.search(r"eq '((?:[^']|'')*)'", flt).group(1).replace("''", "'")
            return [item for item in items if item.get(field) == value]

        if method == "GET" and path == "users":
            field = "onPremisesSamAccountName" if "onPremisesSamAccountName" in flt else "userPrincipalName"
            return FakeResponse(200, {"value": by(self.users, field)}, url)
        if method == "GET" and path == "devices":
            return FakeResponse(200, {"value": by(self.devices, "displayName")}, url)
        if method == "GET" and path == "groups":
            groups = [{"id": gid, "displayName": g["displayName"]} for gid, g in self.groups.items()]
            return FakeResponse(200, {"value": by(groups, "displayName")}, url)

        member = re.match(r"^groups/([^/]+)/members(?:/([^/]+))?/?(\$ref)?$", path)
        if member:
            gid, oid, _ref = member.groups()
            members = self.groups[gid]["members"]
            if method == "GET":
                return FakeResponse(200, {"value": [{"id": m} for m in sorted(members)]}, url)
            if method == "POST":
                members.add(json["@odata.id"].rsplit("/", 1)[1])
                return FakeResponse(204, None, url)
            if method == "DELETE":
                if oid not in members:
                    return FakeResponse(404, {"error": {"code": "Request_ResourceNotFound"}}, url)
                members.discard(oid)
                return FakeResponse(204, None, url)

        if method == "GET" and path == "deviceManagement/managedDevices":
            return FakeResponse(200, {"value": by(self.managed_devices, "deviceName")}, url)
        if method == "GET" and path == "deviceManagement/deviceCategories":
            return FakeResponse(200, {"value": self.categories}, url)

        managed = re.match(r"^deviceManagement/managedDevices(?:\('([^']+)'\)|/([^/]+))(?:/(.+))?$", path)
        if managed:
            device_id = managed.group(1) or managed.group(2)
            device = next((d for d in self.managed_devices if d["id"] == device_id), None)
            if device is None:
                return FakeResponse(404, {"error": {"code": "ResourceNotFound"}}, url)
            tail = managed.group(3)
            if tail is None and method == "GET":
                return FakeResponse(200, device, url)
            if tail == "users" and method == "GET":
                upn = device.get("primaryUser")
                return FakeResponse(200, {"value": [{"userPrincipalName": upn}] if upn else []}, url)
            if tail == "users/$ref" and method == "POST":
                user_id = json["@odata.id"].rsplit("/", 1)[1]
                device["primaryUser"] = next(u["userPrincipalName"] for u in self.users if u["id"] == user_id)
                return FakeResponse(204, None, url)
            if tail == "deviceCategory/$ref" and method == "PUT":
                device["categoryId"] = json["@odata.id"].rsplit("/", 1)[1]
                return FakeResponse(204, None, url)
        raise AssertionError(f"Unexpected Graph call {method} {url}")


class StaticCredentials:
    """Token provider double that counts acquisitions."""

    def __init__(self):
        self.invalidated = 0
        self.closed = False

    def get_token(self):
        return f"token-{self.invalidated}"

    def invalidate(self):
        self.invalidated += 1

    def close(self):
        self.closed = True


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────
def captured_records(caplog):
    """caplog records once each; a record can reach the capture handler on both the logger and the root."""
    return list({id(record): record for record in caplog.records}.values())


def make_config(**overrides):
    base = dict(
        configmgr_site_server="cm01.contoso.com",
        configmgr_domain_short_name="CONTOSO",
        graph_tenant_id="tenant",
        graph_app_id="app",
        graph_client_secret="secret",
        graph_url=GRAPH_URL,
        enable_windows_auth=True,
        enable_api_key_auth=True,
        api_keys={API_KEY: API_CLIENT},
        log_level="DEBUG",
    )
    base.update(overrides)
    return AppConfig(**base)


@pytest.fixture()
def plane():
    return FakeAdminService()


@pytest.fixture()
def graph_plane():
    return FakeGraph()


@pytest.fixture()
def configmgr_client(plane):
    client = ConfigMgrClient("cm01.contoso.com", session=FakeSession(plane), max_workers=2, offload_timeout=5)
    yield client
    client.close()


@pytest.fixture()
def graph_client(graph_plane):
    return GraphClient(GRAPH_URL, StaticCredentials(), session=FakeSession(graph_plane))


@pytest.fixture()
def services(configmgr_client, graph_client):
    devices = DeviceManager(configmgr_client)
    return Services(
        computer=ComputerService(devices),
        collection=CollectionService(CollectionManager(configmgr_client, devices), devices),
        user=UserService(AffinityManager(configmgr_client, devices), "CONTOSO"),
        migration=MigrationService(MigrationManager(configmgr_client, devices)),
        directory=DirectoryService(DirectoryManager(graph_client), IntuneManager(graph_client)),
        configmgr_client=configmgr_client,
        graph_client=graph_client,
    )


@pytest.fixture()
def app(services):
    flask_app = create_app(make_config(), services=services)
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture()
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture()
def api_headers():
    return {"X-API-Key": API_KEY}


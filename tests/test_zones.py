import sqlite3
from types import SimpleNamespace

import pytest

from zonepanel.core import RecordInfo, Request, RRSet, User
from zonepanel.zones import ZoneViews


class _Renderer:
    def __init__(self):
        self.calls = []

    def __call__(self, template, data):
        self.calls.append((template, dict(data)))
        return f"{template}: {data.get('Title', '')} {data.get('Message', '')}"

    @property
    def last(self):
        return self.calls[-1]


def _validate_domain_name(name):
    if " " in name or "." not in name:
        raise ValueError("not a domain name")


class _FakePDNS:
    def __init__(self, zones=(), records=(), fail=()):
        self.zones = list(zones)
        self.records = list(records)
        self.fail = set(fail)
        self.calls = []

    def _call(self, name, *args):
        self.calls.append((name, args))
        if name in self.fail:
            raise RuntimeError(f"{name} failed")

    def list_zones_with_info(self):
        self._call("list_zones_with_info")
        return [SimpleNamespace(zone=zone) for zone in self.zones]

    def create_zone(self, req):
        self._call("create_zone", req)
        return SimpleNamespace(id=req.name, name=req.name, kind=req.kind)

    def delete_zone(self, zone_id):
        self._call("delete_zone", zone_id)

    def get_zone(self, zone_id):
        self._call("get_zone", zone_id)
        return SimpleNamespace(id=zone_id, name=zone_id, kind="Native")

    def list_records(self, zone_id):
        self._call("list_records", zone_id)
        return list(self.records)

    def get_metadata(self, zone_id):
        self._call("get_metadata", zone_id)
        return []

    def get_server(self):
        self._call("get_server")
        return SimpleNamespace(version="4.8.0")

    def rectify_zone(self, zone_id):
        self._call("rectify_zone", zone_id)

    def notify_slaves(self, zone_id):
        self._call("notify_slaves", zone_id)

    def set_metadata(self, zone_id, meta):
        self._call("set_metadata", zone_id, meta)

    def delete_metadata(self, zone_id, kind):
        self._call("delete_metadata", zone_id, kind)


def _zone(name):
    return SimpleNamespace(id=name, name=name, kind="Native")


@pytest.fixture
def db():
    conn = sqlite3.connect(":memory:")
    conn.executescript(
        """
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL,
            email TEXT
        );
        CREATE TABLE activity_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            zone_id TEXT,
            action TEXT NOT NULL,
            details TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        );
        INSERT INTO users (username, email) VALUES ('admin', 'admin@example.com');
        """
    )
    yield conn
    conn.close()


def _views(db, pdns=None):
    renderer = _Renderer()
    views = ZoneViews(
        db, pdns or _FakePDNS(), renderer,
        SimpleNamespace(validate_domain_name=_validate_domain_name), 4,
    )
    return views, renderer


ADMIN = User(id=1, username="admin", role="admin")


def _count(db, action):
    return db.execute("SELECT COUNT(*) FROM activity_logs WHERE action = ?", (action,)).fetchone()[0]


def test_list_zones(db):
    views, renderer = _views(db, _FakePDNS(zones=[_zone("example.com")]))
    resp = views.list_zones(Request(user=ADMIN))
    assert resp.status == 200
    template, data = renderer.last
    assert template == "zones.html"
    assert [z.zone.name for z in data["Zones"]] == ["example.com"]
    assert data["IsAdmin"] is True


def test_list_zones_empty(db):
    views, renderer = _views(db)
    resp = views.list_zones(Request(user=ADMIN))
    assert resp.status == 200
    assert renderer.last[1]["Zones"] == []
    assert renderer.last[1]["PageInfo"].total == 0


def test_list_zones_pdns_error(db):
    views, renderer = _views(db, _FakePDNS(fail={"list_zones_with_info"}))
    resp = views.list_zones(Request(user=ADMIN))
    assert resp.status == 200
    assert "Failed to fetch zones" in resp.body


def test_create_zone_page(db):
    views, renderer = _views(db)
    resp = views.create_zone_page(Request(user=ADMIN))
    assert resp.status == 200
    assert renderer.last[0] == "zone_create.html"
    assert renderer.last[1]["DNSTypes"] == ["Native", "Master", "Slave"]


def test_create_zone_success(db):
    pdns = _FakePDNS()
    views, _ = _views(db, pdns)
    request = Request(method="POST", form={"name": "newzone.com", "kind": "Native"}, user=ADMIN)
    resp = views.create_zone(request)
    assert resp.status == 303
    assert resp.headers["Location"] == "/zones"
    assert pdns.calls[0][0] == "create_zone"
    assert _count(db, "create_zone") == 1


def test_create_zone_nameservers_and_default_kind(db):
    pdns = _FakePDNS()
    views, _ = _views(db, pdns)
    request = Request(
        method="POST",
        form={"name": "newzone.com", "nameservers": " ns1.example.com, ,ns2.example.com "},
        user=ADMIN,
    )
    views.create_zone(request)
    req = pdns.calls[0][1][0]
    assert req.kind == "Native"
    assert req.nameservers == ["ns1.example.com", "ns2.example.com"]


def test_create_zone_empty_name(db):
    views, _ = _views(db)
    resp = views.create_zone(Request(method="POST", form={"name": ""}, user=ADMIN))
    assert resp.status == 200
    assert "Zone name is required" in resp.body


def test_create_zone_invalid_name(db):
    views, _ = _views(db)
    resp = views.create_zone(Request(method="POST", form={"name": "bad name"}, user=ADMIN))
    assert "Invalid zone name" in resp.body


def test_create_zone_get_redirects(db):
    views, _ = _views(db)
    resp = views.create_zone(Request(method="GET", user=ADMIN))
    assert resp.status == 303
    assert resp.headers["Location"] == "/zones"


def test_delete_zone_success(db):
    pdns = _FakePDNS()
    views, _ = _views(db, pdns)
    resp = views.delete_zone(Request(method="POST", form={"zone_id": "example.com"}, user=ADMIN))
    assert resp.status == 303
    assert pdns.calls == [("delete_zone", ("example.com",))]
    assert _count(db, "delete_zone") == 1


def test_delete_zone_empty_id(db):
    pdns = _FakePDNS()
    views, _ = _views(db, pdns)
    resp = views.delete_zone(Request(method="POST", form={"zone_id": ""}, user=ADMIN))
    assert resp.status == 303
    assert pdns.calls == []


def test_view_zone(db):
    views, renderer = _views(db)
    resp = views.view_zone(Request(path_params={"zone_id": "example.com"}, user=ADMIN))
    assert resp.status == 200
    template, data = renderer.last
    assert template == "zone_view.html"
    assert data["PDNSVersion"] == "4.8.0"
    assert data["Title"].startswith("example.com - ")


def test_view_zone_not_found(db):
    views, _ = _views(db, _FakePDNS(fail={"get_zone"}))
    resp = views.view_zone(Request(path_params={"zone_id": "missing.com"}, user=ADMIN))
    assert "Zone not found" in resp.body


def test_view_zone_unknown_version_when_server_fails(db):
    views, renderer = _views(db, _FakePDNS(fail={"get_server", "get_metadata"}))
    views.view_zone(Request(path_params={"zone_id": "example.com"}, user=ADMIN))
    assert renderer.last[1]["PDNSVersion"] == "unknown"
    assert renderer.last[1]["MetaData"] is None


def test_view_zone_records_search(db):
    records = [
        RRSet(name="www.example.com.", type="A", ttl=300, records=[RecordInfo(content="1.2.3.4")]),
        RRSet(name="mail.example.com.", type="MX", ttl=300,
              records=[RecordInfo(content="10 mx.example.com.")]),
        RRSet(name="ftp.example.com.", type="CNAME", ttl=300,
              records=[RecordInfo(content="www.example.com.")]),
    ]
    views, renderer = _views(db, _FakePDNS(records=records))
    request = Request(path_params={"zone_id": "example.com"}, query={"search": "WWW"}, user=ADMIN)
    resp = views.view_zone(request)
    assert resp.status == 200
    names = [r.name for r in renderer.last[1]["Records"]]
    assert names == ["www.example.com.", "ftp.example.com."]


def test_rectify_zone_success(db):
    views, _ = _views(db)
    resp = views.rectify_zone(Request(method="POST", path_params={"zone_id": "example.com"}, user=ADMIN))
    assert resp.status == 303
    assert resp.headers["Location"] == "/zones/example.com"
    assert _count(db, "rectify_zone") == 1


def test_rectify_zone_pdns_error(db):
    views, _ = _views(db, _FakePDNS(fail={"rectify_zone"}))
    resp = views.rectify_zone(Request(method="POST", path_params={"zone_id": "example.com"}, user=ADMIN))
    assert resp.status == 200
    assert "Rectify failed" in resp.body


def test_notify_zone_success(db):
    views, _ = _views(db)
    resp = views.notify_zone(Request(method="POST", path_params={"zone_id": "example.com"}, user=ADMIN))
    assert resp.status == 303
    assert resp.headers["Location"] == "/zones/example.com"


def test_notify_zone_pdns_error(db):
    views, _ = _views(db, _FakePDNS(fail={"notify_slaves"}))
    resp = views.notify_zone(Request(method="POST", path_params={"zone_id": "example.com"}, user=ADMIN))
    assert resp.status == 200
    assert "Notify failed" in resp.body


def _meta_request(form):
    return Request(method="POST", form=form, path_params={"zone_id": "example.com"}, user=ADMIN)


def test_create_metadata_success(db):
    views, _ = _views(db)
    resp = views.create_metadata(_meta_request({"kind": "ALSO-NOTIFY", "values": "10.0.0.1"}))
    assert resp.status == 303
    assert _count(db, "create_metadata") == 1


def test_create_metadata_multi_line_values(db):
    pdns = _FakePDNS()
    views, _ = _views(db, pdns)
    resp = views.create_metadata(
        _meta_request({"kind": "ALLOW-AXFR-FROM", "values": "192.0.2.0/24\n2001:db8::/32"})
    )
    assert resp.status == 303
    meta = pdns.calls[0][1][1]
    assert meta.kind == "ALLOW-AXFR-FROM"
    assert meta.metadata == ["192.0.2.0/24", "2001:db8::/32"]


def test_create_metadata_empty_kind(db):
    views, _ = _views(db)
    resp = views.create_metadata(_meta_request({"kind": "", "values": "test"}))
    assert resp.status == 200
    assert "Metadata kind is required" in resp.body


def test_create_metadata_empty_values(db):
    views, _ = _views(db)
    resp = views.create_metadata(_meta_request({"kind": "SOA-EDIT", "values": ""}))
    assert resp.status == 200
    assert "At least one value is required" in resp.body


def test_create_metadata_pdns_error(db):
    views, _ = _views(db, _FakePDNS(fail={"set_metadata"}))
    resp = views.create_metadata(_meta_request({"kind": "SOA-EDIT", "values": "INCREASE"}))
    assert resp.status == 200
    assert "Failed to set metadata" in resp.body


def test_delete_metadata_success(db):
    pdns = _FakePDNS()
    views, _ = _views(db, pdns)
    resp = views.delete_metadata(_meta_request({"kind": "PRESIGNED"}))
    assert resp.status == 303
    assert pdns.calls == [("delete_metadata", ("example.com", "PRESIGNED"))]
    assert _count(db, "delete_metadata") == 1


def test_delete_metadata_empty_kind(db):
    views, _ = _views(db)
    resp = views.delete_metadata(_meta_request({"kind": ""}))
    assert resp.status == 200
    assert "Metadata kind is required" in resp.body


def test_list_zones_pagination(db):
    zones = [_zone(f"zone{i}.com") for i in range(1, 16)]
    views, renderer = _views(db, _FakePDNS(zones=zones))

    views.list_zones(Request(query={"page": "1"}, user=ADMIN))
    data = renderer.last[1]
    assert len(data["Zones"]) == 10
    assert data["PageInfo"].current == 1
    assert data["PageInfo"].total_pages == 2

    views.list_zones(Request(query={"page": "2"}, user=ADMIN))
    data = renderer.last[1]
    assert [z.zone.name for z in data["Zones"]][0] == "zone11.com"
    assert len(data["Zones"]) == 5
    assert data["PageInfo"].current == 2

    views.list_zones(Request(user=ADMIN))
    assert renderer.last[1]["PageInfo"].current == 1


def test_list_zones_per_page_zero_and_invalid(db):
    zones = [_zone(f"zone{i}.com") for i in range(1, 16)]
    views, renderer = _views(db, _FakePDNS(zones=zones))
    views.list_zones(Request(query={"perPage": "0"}, user=ADMIN))
    assert len(renderer.last[1]["Zones"]) == 15
    views.list_zones(Request(query={"perPage": "abc"}, user=ADMIN))
    assert renderer.last[1]["PageInfo"].per_page == 10


def test_list_zones_search(db):
    zones = [_zone("test1.com"), _zone("example.net"), _zone("example.org")]
    views, renderer = _views(db, _FakePDNS(zones=zones))
    resp = views.list_zones(Request(query={"search": "example"}, user=ADMIN))
    assert resp.status == 200
    assert [z.zone.name for z in renderer.last[1]["Zones"]] == ["example.net", "example.org"]
    assert renderer.last[1]["Search"] == "example"


def test_list_zones_search_no_results(db):
    views, renderer = _views(db, _FakePDNS(zones=[_zone("test1.com")]))
    resp = views.list_zones(Request(query={"search": "nonexistent"}, user=ADMIN))
    assert resp.status == 200
    assert renderer.last[1]["Zones"] == []


def test_list_zones_search_case_insensitive(db):
    views, renderer = _views(db, _FakePDNS(zones=[_zone("EXAMPLE.com")]))
    views.list_zones(Request(query={"search": "example"}, user=ADMIN))
    assert [z.zone.name for z in renderer.last[1]["Zones"]] == ["EXAMPLE.com"]


def test_zone_activity_logs_newest_first_with_username(db):
    db.executemany(
        "INSERT INTO activity_logs (user_id, zone_id, action, details, created_at) "
        "VALUES (?, ?, ?, ?, ?)",
        [
            (1, "example.com", "create_zone", "first", "2024-01-01 10:00:00"),
            (1, "example.com", "rectify_zone", "second", "2024-01-02 10:00:00"),
            (1, "other.com", "create_zone", "elsewhere", "2024-01-03 10:00:00"),
            (99, "example.com", "delete_record", "ghost", "2024-01-03 11:00:00"),
        ],
    )
    views, _ = _views(db)
    logs = views.zone_activity_logs("example.com")
    assert [log.details for log in logs] == ["ghost", "second", "first"]
    assert logs[0].username is None
    assert logs[1].username == "admin"


def test_zone_activity_logs_limit(db):
    db.executemany(
        "INSERT INTO activity_logs (user_id, zone_id, action, details, created_at) "
        "VALUES (1, 'example.com', 'x', ?, ?)",
        [(str(i), f"2024-01-01 00:{i // 60:02d}:{i % 60:02d}") for i in range(60)],
    )
    views, _ = _views(db)
    assert len(views.zone_activity_logs("example.com")) == 50


def test_zone_activity_logs_query_error_returns_empty():
    conn = sqlite3.connect(":memory:")
    views, _ = _views(conn)
    assert views.zone_activity_logs("example.com") == []
    conn.close()
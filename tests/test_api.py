import pytest
from fastapi.testclient import TestClient

from config import ServerConfig
from indexer.errors import ParseError, RecordIOError
from server.app import create_app


@pytest.fixture
def client(corpus_dir):
    app = create_app(ServerConfig(base_dir=corpus_dir))
    return TestClient(app)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["documents"] == 3
    assert data["skipped"] == 0


def test_list_records(client):
    r = client.get("/")
    assert r.status_code == 200
    data = r.json()
    assert data["count"] == 3
    assert [rec["number"] for rec in data["records"]] == [1, 2, 3]
    assert data["records"][0]["identifier"] == "0001-use-markdown.yaml"
    assert "body" not in data["records"][0]


def test_record_detail(client):
    r = client.get("/0001-use-markdown.yaml")
    assert r.status_code == 200
    data = r.json()
    assert data["title"] == "Use Markdown"
    assert data["body"] == "We decided to use Markdown for records.\n"
    assert data["date"].startswith("2021-03-04")


def test_record_detail_not_found(client):
    assert client.get("/0099-missing.yaml").status_code == 404


def test_record_detail_with_double_dots_in_name(corpus_dir):
    (corpus_dir / "0005-v1..2-migration.yaml").write_text("---\nnumber: 5\ntitle: Migrate\n---\nSteps.\n", encoding="utf-8")
    client = TestClient(create_app(ServerConfig(base_dir=corpus_dir)))

    r = client.get("/0005-v1..2-migration.yaml")
    assert r.status_code == 200
    assert r.json()["number"] == 5


def test_favicon_is_empty(client):
    r = client.get("/favicon.ico")
    assert r.status_code == 204
    assert r.content == b""


def test_search(client):
    r = client.get("/search", params={"q": "markdwon"})
    assert r.status_code == 200
    data = r.json()
    assert data["query"] == "markdwon"
    assert data["total"] == 2
    first = data["results"][0]
    assert first["number"] == 1
    assert first["title"] == "Use Markdown"
    assert first["identifier"] == ""
    assert first["date"] is None
    assert "<mark>Markdown</mark>" in first["highlights"]["title"][0]


def test_search_limit(client):
    data = client.get("/search", params={"q": "markdown", "limit": 1}).json()
    assert data["total"] == 2
    assert len(data["results"]) == 1


@pytest.mark.parametrize("params", [{}, {"q": ""}, {"q": "\"(*&^%$#"}, {"q": "a" * 5000}])
def test_search_odd_queries_do_not_fail(client, params):
    r = client.get("/search", params=params)
    assert r.status_code == 200
    assert r.json()["total"] == 0


def test_search_negative_limit_rejected(client):
    assert client.get("/search", params={"q": "x", "limit": -1}).status_code == 422


def test_metrics_endpoint(client):
    client.get("/search", params={"q": "markdown"})
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "decisiondocs_search_requests_total" in r.text


def test_bad_records_are_reported(corpus_dir):
    (corpus_dir / "0004-broken.yaml").write_text("not a record", encoding="utf-8")
    client = TestClient(create_app(ServerConfig(base_dir=corpus_dir)))

    assert client.get("/health").json()["skipped"] == 1
    detailed = client.get("/health/detailed").json()
    assert detailed["status"] == "degraded"
    assert detailed["errors"][0]["source"] == "0004-broken.yaml"
    assert client.get("/0004-broken.yaml").status_code == 404


def test_strict_load_refuses_bad_corpus(corpus_dir):
    (corpus_dir / "0004-broken.yaml").write_text("not a record", encoding="utf-8")
    with pytest.raises(ParseError):
        create_app(ServerConfig(base_dir=corpus_dir, strict_load=True))


def test_missing_base_dir(tmp_path):
    with pytest.raises(RecordIOError):
        create_app(ServerConfig(base_dir=tmp_path / "missing"))

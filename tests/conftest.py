import pytest

from indexer import build_index, load_corpus

RECORDS = {
    "0001-use-markdown.yaml": """---
number: 1
title: "Use Markdown"
date: 2021-03-04
status: "accepted"
---
We decided to use Markdown for records.
""",
    "0002-adopt-postgres.yaml": """---
number: 2
title: "Adopt PostgreSQL"
date: 2021-05-10
status: "proposed"
---
The team will store relational data in PostgreSQL instead of MySQL.
Markdown exports remain available for reporting.
""",
    "0003-deprecate-soap.yaml": """---
number: 3
title: "Deprecate SOAP endpoints"
status: "superseded"
---
All SOAP endpoints move to a JSON API over HTTP.
""",
}


def write_records(directory, records):
    for name, content in records.items():
        (directory / name).write_text(content, encoding="utf-8")
    return directory


@pytest.fixture
def corpus_dir(tmp_path):
    """Directory with three valid records plus files the loader must ignore."""
    write_records(tmp_path, RECORDS)
    (tmp_path / "README.md").write_text("# not a record\n", encoding="utf-8")
    (tmp_path / "drafts.yaml").mkdir()
    return tmp_path


@pytest.fixture
def scenario_dir(tmp_path):
    """Single-record corpus."""
    return write_records(tmp_path, {"0001-use-markdown.yaml": RECORDS["0001-use-markdown.yaml"]})


@pytest.fixture
def corpus(corpus_dir):
    return load_corpus(corpus_dir)


@pytest.fixture
def index(corpus):
    return build_index(corpus.documents)

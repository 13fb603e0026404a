import pytest

from indexer import build_index, load_corpus
from indexer.fuzzy_query import FuzzyQueryEngine, edit_distance, marked_spans, render_fragment, search
from indexer.search_index import MATCH_END, MATCH_START
from indexer.models import Document


@pytest.fixture
def engine(index):
    return FuzzyQueryEngine(index)


def ranked(result):
    return [(hit.key, hit.score) for hit in result.hits]


class TestEditDistance:

    @pytest.mark.parametrize("a,b,expected", [
        ("markdown", "markdown", 0),
        ("markdown", "markdowm", 1),   # substitution
        ("markdown", "markdwon", 1),   # adjacent transposition
        ("markdown", "markdow", 1),    # deletion
        ("markdown", "markdownx", 1),  # insertion
        ("ab", "ba", 1),
        ("", "a", 1),
    ])
    def test_within_bound(self, a, b, expected):
        assert edit_distance(a, b, 1) == expected

    @pytest.mark.parametrize("a,b", [
        ("markdown", "mark"),
        ("kitten", "sitting"),
        ("abc", "cab"),
    ])
    def test_beyond_bound(self, a, b):
        assert edit_distance(a, b, 1) is None

    def test_bound_two(self):
        assert edit_distance("kitten", "sittin", 2) == 2
        assert edit_distance("kitten", "sitting", 2) is None


class TestScenario:
    """One record corpus: 0001-use-markdown.yaml."""

    @pytest.fixture
    def scenario_engine(self, scenario_dir):
        corpus = load_corpus(scenario_dir)
        assert len(corpus) == 1
        return FuzzyQueryEngine(build_index(corpus.documents))

    def test_exact_term(self, scenario_engine):
        result = scenario_engine.search("markdown")
        assert result.total == 1
        hit = result.hits[0]
        assert hit.fields == {"number": 1, "title": "Use Markdown", "status": "accepted"}
        assert "<mark>Markdown</mark>" in hit.highlights["body"][0]
        assert hit.spans["body"] == [(18, 26)]

    def test_misspelled_term(self, scenario_engine):
        assert scenario_engine.search("markdwon").total >= 1

    def test_unknown_term(self, scenario_engine):
        result = scenario_engine.search("nonexistentterm")
        assert result.total == 0
        assert result.hits == []


def test_single_substitution_in_title_term_matches(engine):
    """Replacing one character of a title term still finds the record."""
    for title_term, key in (("postgresql", "0002-adopt-postgres.yaml"), ("deprecate", "0003-deprecate-soap.yaml")):
        typo = title_term[:2] + ("x" if title_term[2] != "x" else "y") + title_term[3:]
        keys = [hit.key for hit in engine.search(typo).hits]
        assert key in keys


def test_search_scope_covers_status_and_number(engine):
    assert [h.key for h in engine.search("superseded").hits] == ["0003-deprecate-soap.yaml"]
    assert "0002-adopt-postgres.yaml" in [h.key for h in engine.search("2").hits]


def test_query_is_case_insensitive(engine):
    assert ranked(engine.search("MARKDOWN")) == ranked(engine.search("markdown"))


def test_title_match_outranks_body_match(engine):
    result = engine.search("markdown")
    assert result.total == 2
    assert result.hits[0].key == "0001-use-markdown.yaml"
    assert result.hits[0].score > result.hits[1].score


def test_exact_match_outranks_fuzzy_match():
    docs = [
        Document(identifier="a.yaml", number=1, title="cache"),
        Document(identifier="b.yaml", number=2, title="cachf"),
    ]
    result = FuzzyQueryEngine(build_index(docs)).search("cache")
    assert [h.key for h in result.hits] == ["a.yaml", "b.yaml"]


def test_ties_are_broken_by_key():
    docs = [Document(identifier=name, number=1, title="Same title") for name in ("c.yaml", "a.yaml", "b.yaml")]
    result = FuzzyQueryEngine(build_index(docs)).search("title")
    assert [h.key for h in result.hits] == ["a.yaml", "b.yaml", "c.yaml"]
    assert len({h.score for h in result.hits}) == 1


def test_repeated_queries_are_identical(engine):
    first = engine.search("markdown postgres")
    for _ in range(5):
        assert ranked(engine.search("markdown postgres")) == ranked(first)


def test_rebuilding_gives_identical_results(corpus_dir):
    def run():
        index = build_index(load_corpus(corpus_dir).documents)
        result = FuzzyQueryEngine(index).search("markdwon json")
        return result.total, ranked(result)

    assert run() == run()


def test_multiple_terms_are_or_combined(engine):
    result = engine.search("soap markdown")
    assert result.total == 3


def test_documents_matching_more_terms_rank_first(engine):
    result = engine.search("markdown postgresql")
    assert result.hits[0].key == "0002-adopt-postgres.yaml"


@pytest.mark.parametrize("query", ["", "   ", "the and of", "?!*", None])
def test_empty_queries_match_nothing(engine, query):
    result = engine.search(query)
    assert result.total == 0
    assert result.hits == []


def test_limit_does_not_change_total(engine):
    result = engine.search("markdown", limit=1)
    assert result.total == 2
    assert len(result.hits) == 1


def test_zero_fuzziness_requires_exact_terms(index):
    assert FuzzyQueryEngine(index, fuzziness=0).search("markdwon").total == 0


def test_prefix_length(index):
    assert FuzzyQueryEngine(index, prefix_length=2).search("narkdown").total == 0
    assert FuzzyQueryEngine(index, prefix_length=2).search("maxkdown").total == 2


@pytest.mark.parametrize("kwargs", [{"fuzziness": 3}, {"fuzziness": -1}, {"prefix_length": -1}, {"snippet_tokens": 0}, {"snippet_tokens": 65}])
def test_invalid_engine_settings(index, kwargs):
    with pytest.raises(ValueError):
        FuzzyQueryEngine(index, **kwargs)


def test_highlights_cover_each_matched_field(engine):
    hit = engine.search("markdown").hits[0]
    assert set(hit.highlights) == {"title", "body"}
    assert hit.highlights["title"] == ["Use <mark>Markdown</mark>"]


def test_fuzzy_highlight_marks_the_indexed_word(engine):
    hit = engine.search("markdwon").hits[0]
    assert "<mark>Markdown</mark>" in hit.highlights["title"][0]


def test_module_level_search(index):
    result = search(index, "markdown", limit=5)
    assert result.total == 2
    assert result.took >= 0


def test_marked_spans_are_relative_to_unmarked_text():
    marked = f"Use {MATCH_START}Markdown{MATCH_END} and {MATCH_START}JSON{MATCH_END}"
    assert marked_spans(marked) == [(4, 12), (17, 21)]
    assert marked_spans("plain") == []


def test_render_fragment_escapes_text_but_not_markers():
    fragment = render_fragment(f"<i>tag</i> {MATCH_START}word{MATCH_END}")
    assert fragment == "&lt;i&gt;tag&lt;/i&gt; <mark>word</mark>"


def test_fragment_is_escaped():
    docs = [Document(identifier="a.yaml", number=1, title="Haystack", body="<b>needle</b> in a haystack\n")]
    hit = FuzzyQueryEngine(build_index(docs)).search("needle").hits[0]
    assert "&lt;b&gt;<mark>needle</mark>&lt;/b&gt;" in hit.highlights["body"][0]
    assert hit.spans["body"] == [(3, 9)]


def test_fragment_is_windowed_around_the_match():
    body = "x " * 200 + "needle" + " y" * 200
    docs = [Document(identifier="a.yaml", number=1, title="Haystack", body=body)]
    hit = FuzzyQueryEngine(build_index(docs), snippet_tokens=10).search("needle").hits[0]
    fragment = hit.highlights["body"][0]
    assert "<mark>needle</mark>" in fragment
    assert fragment.startswith("…") and fragment.endswith("…")
    assert len(fragment) < len(body)

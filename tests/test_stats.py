import pytest
from structlog.testing import capture_logs

from harvest.knowledge.serializers import to_json
from harvest.knowledge.stats import CorpusStats, collect_stats, iter_tree_files
from harvest.knowledge.tree import generate_tree
from scripts.corpus_stats import render


@pytest.fixture
def corpus_dir(tmp_path, chapter_params, metadata_payload, pages_payload):
    book = tmp_path / "B" / "RCB_001 (Sách Mẫu)"
    book.mkdir(parents=True)
    (book / "RCB_001.002.json").write_text(
        to_json(generate_tree(chapter_params, metadata_payload, pages_payload)), encoding="utf-8"
    )
    (book / "RCB_001.002.xml").write_text("<root/>", encoding="utf-8")
    (book / "RCB_001.003.json").write_text("{}", encoding="utf-8")

    gospel = tmp_path / "N" / "RCN_001"
    gospel.mkdir(parents=True)
    metadata = {
        **metadata_payload,
        "documentId": "RCN_001",
        "genre": {"code": "N", "category": "new testament", "vietnamese": "Tân Ước"},
    }
    (gospel / "RCN_001.002.json").write_text(
        to_json(generate_tree({**chapter_params, "genre": "N"}, metadata, pages_payload)), encoding="utf-8"
    )
    (tmp_path / "N" / "stray.json").write_text("not a tree", encoding="utf-8")
    return tmp_path


def test_iter_tree_files_walks_genre_document_layout(corpus_dir):
    found = [(path.name, genre) for path, genre in iter_tree_files(corpus_dir)]
    assert found == [("RCB_001.002.json", "B"), ("RCB_001.003.json", "B"), ("RCN_001.002.json", "N")]
    assert list(iter_tree_files(corpus_dir / "missing")) == []


def test_collect_stats_separates_scripture(corpus_dir):
    with capture_logs() as logs:
        stats = collect_stats(corpus_dir)

    assert (stats.total.files, stats.total.pages, stats.total.sentences, stats.total.words) == (2, 2, 4, 18)
    assert (stats.scripture.files, stats.scripture.words) == (1, 9)
    assert stats.share("files") == 50.0
    assert stats.total.words_per_sentence == 4.5
    assert [path.name for path in stats.skipped] == ["RCB_001.003.json"]
    assert logs[0]["event"] == "tree invalid"


def test_empty_corpus_has_zero_ratios(tmp_path):
    stats = collect_stats(tmp_path)
    assert stats.share("words") == 0.0
    assert stats.total.words_per_sentence == 0.0


def test_render_builds_one_row_per_metric(corpus_dir):
    table = render(collect_stats(corpus_dir))
    assert table.row_count == 5
    assert [column.header for column in table.columns][0] == "Metric"
    assert table.caption == "1 invalid tree file(s) skipped"
    assert render(CorpusStats()).caption is None

import pytest
from structlog.testing import capture_logs

from harvest.crawler.files import (
    chapter_path,
    read_metadata_table,
    sanitize_title,
    walk_genre_dir,
    write_chapter_content,
)
from harvest.errors import PersistenceError

PARAMS = {"domain": "R", "subDomain": "C", "genre": "B", "documentNumber": 1, "chapterNumber": 2}

TABLE = (
    "documentId\tdocumentNumber\tgenreCode\tgenreCategory\tgenreVietnamese\ttagCategory\ttitle"
    "\tsourceType\tsourceURL\tlanguage\textra\n"
    'RCB_001\t1\tB\tbook\tSách\tbible\t"Quoted" title\tweb\thttps://example.org/1\tTiếng Việt\n'
    "RCB_002\tx\tB\tbook\tSách\t\tBad number\tweb\thttps://example.org/2\tTiếng Việt\n"
    "RCB_003\t3\tB\tbook\tSai\t\tWrong label\tweb\thttps://example.org/3\tTiếng Việt\n"
    "RCB_004\t4\tB\tbook\tSách\tfamily\tKept\tpdf\t\tTiếng Việt\tignored\tsurplus\n"
)


def test_chapter_path_layout(tmp_path):
    assert chapter_path(PARAMS, tmp_path, "xml") == tmp_path / "B" / "RCB_001" / "RCB_001.002.xml"
    assert chapter_path(PARAMS, tmp_path, "json", document_title="A/B: C?") == (
        tmp_path / "B" / "RCB_001 (A_B_ C_)" / "RCB_001.002.json"
    )
    assert sanitize_title('a<b>|"c"') == "a_b___c_"


def test_write_chapter_content_creates_folders(tmp_path):
    path = write_chapter_content(PARAMS, tmp_path, "<root/>", "xml", document_title="Sách")
    assert path.read_text(encoding="utf-8") == "<root/>"
    assert walk_genre_dir(tmp_path, "B") == [path]
    assert walk_genre_dir(tmp_path, "B", extension="json") == []
    assert walk_genre_dir(tmp_path, "N") == []


def test_write_chapter_content_reports_io_errors(tmp_path):
    (tmp_path / "B").write_text("not a directory", encoding="utf-8")
    with pytest.raises(PersistenceError):
        write_chapter_content(PARAMS, tmp_path, "{}", "json")


def test_read_metadata_table_skips_invalid_rows(tmp_path):
    path = tmp_path / "main.tsv"
    path.write_text(TABLE, encoding="utf-8")

    with capture_logs() as logs:
        rows = read_metadata_table(path)

    assert [(m.document_id, m.title) for m in rows] == [("RCB_001", '"Quoted" title'), ("RCB_004", "Kept")]
    assert rows[1].tags[0].vietnamese == "Gia đình"
    assert [(e["line"], e["document_id"]) for e in logs] == [(3, "RCB_002"), (4, "RCB_003")]


def test_read_metadata_table_applies_predicate(tmp_path):
    path = tmp_path / "main.tsv"
    path.write_text(TABLE, encoding="utf-8")
    rows = read_metadata_table(path, lambda row: row.source_type == "pdf")
    assert [m.document_id for m in rows] == ["RCB_004"]

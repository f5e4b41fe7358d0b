import pytest

from harvest.core.schema import (
    Metadata,
    MetadataRow,
    parse_chapter_params,
    parse_metadata,
    parse_pages,
)
from harvest.errors import ValidationError
from harvest.knowledge.tree import default_parse_date


def test_metadata_accepts_camel_case_payload(metadata_payload):
    result = parse_metadata(metadata_payload)
    assert result.success
    meta = result.data
    assert meta.source_url == "https://example.org/book/1"
    assert meta.genre.code == "B"
    assert meta.requires_manual_check is True
    assert "requiresManualCheck" not in meta.to_tree_meta().dump()


def test_metadata_is_frozen(metadata_payload):
    meta = parse_metadata(metadata_payload).unwrap()
    with pytest.raises(Exception):
        meta.title = "changed"


@pytest.mark.parametrize(
    "patch",
    [
        {"genre": {"code": "B", "category": "book", "vietnamese": "Sai"}},
        {"genre": {"code": "A", "category": "book", "vietnamese": "Sách"}},
        {"genre": {"code": "X", "category": "unclassified", "vietnamese": "Chưa phân loại"}},
        {"tags": [{"category": "bible", "vietnamese": "Bible"}]},
        {"tags": [{"category": "unknown", "vietnamese": ""}]},
        {"sourceURL": "not a url"},
        {"sourceType": "tape"},
        {"language": "Klingon"},
        {"documentNumber": 1000},
    ],
)
def test_metadata_rejects_inconsistent_fields(metadata_payload, patch):
    result = parse_metadata({**metadata_payload, **patch})
    assert not result.success
    assert isinstance(result.error, ValidationError)
    with pytest.raises(ValidationError):
        result.unwrap()


def test_metadata_allows_empty_tag_and_url(metadata_payload):
    payload = {**metadata_payload, "tags": [{"category": "", "vietnamese": ""}], "sourceURL": ""}
    assert parse_metadata(payload).success


@pytest.mark.parametrize("value, ok", [("", True), ("31/12/1999", True), ("1999", True), ("1999-12-31", False), ("32/01/2000", False)])
def test_published_time_refinement(metadata_payload, value, ok):
    result = parse_metadata({**metadata_payload, "publishedTime": value}, parse_date=default_parse_date)
    assert result.success is ok


def test_chapter_params_reject_reserved_genre(chapter_params):
    assert parse_chapter_params(chapter_params).success
    assert not parse_chapter_params({**chapter_params, "genre": "X"}).success
    assert parse_chapter_params({k: v for k, v in chapter_params.items() if k != "chapterName"}).data.chapter_name == ""


def test_pages_discriminate_sentence_type(pages_payload):
    pages = parse_pages(pages_payload).unwrap()
    single, multiple = pages[0].sentences
    assert single.type == "single" and single.footnotes[0].sentence_id == "RCB_001.002.001.01"
    assert multiple.type == "multiple" and [v.language_code for v in multiple.array] == ["vi", "en"]


def test_pages_reject_non_camel_case_extra_attributes(pages_payload):
    pages_payload[0]["sentences"][0]["extraAttributes"] = {"verse_number": 1}
    result = parse_pages(pages_payload)
    assert not result.success
    assert "camelCase" in str(result.error)


def test_pages_reject_unknown_sentence_type(pages_payload):
    pages_payload[0]["sentences"][0]["type"] = "triple"
    assert not parse_pages(pages_payload).success


def test_metadata_row_maps_to_metadata():
    row = MetadataRow.model_validate(
        {
            "documentId": "RCN_002",
            "documentNumber": "2",
            "genreCode": "N",
            "genreCategory": "new testament",
            "genreVietnamese": "Tân Ước",
            "tagCategory": "bible | liturgy",
            "tagVietnamese": "Kinh Thánh | Phụng vụ",
            "title": "Tin Mừng",
            "sourceType": "web",
            "sourceURL": "https://example.org/nt",
            "hasChapters": "true",
            "language": "Tiếng Việt",
            "requiresManualCheck": "0",
        }
    )
    assert row.tag_category == ["bible", "liturgy"]
    meta = row.to_metadata()
    assert isinstance(meta, Metadata)
    assert meta.has_chapters is True
    assert meta.requires_manual_check is False
    assert [(t.category, t.vietnamese) for t in meta.tags] == [("bible", "Kinh Thánh"), ("liturgy", "Phụng vụ")]


def test_metadata_builds_document_params(metadata_payload):
    meta = parse_metadata(metadata_payload).unwrap()
    params = meta.document_params("R", "C")
    assert params.model_dump() == {"domain": "R", "sub_domain": "C", "genre": "B", "document_number": 1}
    with pytest.raises(ValueError):
        meta.document_params("Z", "C")

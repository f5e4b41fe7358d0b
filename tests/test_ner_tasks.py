import json

import pytest

from harvest.core.schema import SentenceEntityAnnotation
from harvest.errors import PersistenceError
from harvest.knowledge.ner_tasks import (
    NerAnnotation,
    NerResult,
    NerTask,
    NerValue,
    apply_tasks,
    chapter_params_of,
    merge_tasks,
    read_tasks,
    tasks_to_annotations,
    tree_to_ner_tasks,
    write_tasks,
)
from harvest.knowledge.tree import generate_tree


@pytest.fixture
def tree(chapter_params, metadata_payload, pages_payload):
    return generate_tree(
        chapter_params,
        metadata_payload,
        pages_payload,
        annotations=[
            {
                "start": 0,
                "end": 3,
                "text": "Xin",
                "labels": ["PER"],
                "sentenceId": "RCB_001.002.001.02",
                "sentenceType": "multiple",
                "languageCode": "vi",
            }
        ],
    )


def _labelled(task, start, end, label):
    value = NerValue(start=start, end=end, text=task.data.text[start:end], labels=[label])
    return task.model_copy(update={"annotations": [NerAnnotation(result=[NerResult(value=value)])]})


def test_one_task_per_sentence_and_language(tree):
    tasks = tree_to_ner_tasks(tree)
    assert [(t.data.sentence_id, t.data.language_code) for t in tasks] == [
        ("RCB_001.002.001.01", ""),
        ("RCB_001.002.001.02", "vi"),
        ("RCB_001.002.001.02", "en"),
    ]
    assert tasks[0].data.title == "Sách Mẫu: Tập 1"
    assert tasks[0].data.genre_code == "B"
    # only the variant carrying labels gets an annotations block
    assert [t.annotations is None for t in tasks] == [True, False, True]


def test_task_dump_matches_import_format(tree):
    payload = tree_to_ner_tasks(tree)[1].dump()
    assert payload["data"]["sentenceId"] == "RCB_001.002.001.02"
    assert payload["data"]["languageCode"] == "vi"
    assert payload["annotations"][0]["result"][0] == {
        "value": {"start": 0, "end": 3, "text": "Xin", "labels": ["PER"]},
        "from_name": "label",
        "to_name": "text",
        "type": "labels",
    }
    assert "annotations" not in tree_to_ner_tasks(tree)[0].dump()


def test_tasks_round_trip_into_tree(tree):
    tasks = tree_to_ner_tasks(tree)
    tasks[0] = _labelled(tasks[0], 16, 19, "PER")

    annotations = tasks_to_annotations(tasks)
    assert annotations == [
        SentenceEntityAnnotation(
            start=16, end=19, text="fox", labels=["PER"], sentence_id="RCB_001.002.001.01", sentence_type="single"
        ),
        SentenceEntityAnnotation(
            start=0,
            end=3,
            text="Xin",
            labels=["PER"],
            sentence_id="RCB_001.002.001.02",
            sentence_type="multiple",
            language_code="vi",
        ),
    ]

    updated = apply_tasks(tree, tasks)
    assert updated.sect.annotations == annotations
    assert len(tree.sect.annotations) == 1


def test_merge_replaces_known_sentences_and_appends_new(tree):
    existing = tree_to_ner_tasks(tree)
    relabelled = _labelled(existing[2], 0, 5, "ORG")
    extra = NerTask.model_validate(
        {
            "data": {
                "text": "New",
                "documentId": "RCB_001",
                "chapterId": "RCB_001.002",
                "sentenceId": "RCB_001.002.001.03",
                "sentenceType": "single",
            }
        }
    )

    merged = merge_tasks(existing, [relabelled, extra])
    assert len(merged) == 4
    assert merged[2].annotations[0].result[0].value.labels == ["ORG"]
    assert merged[3] is extra
    assert existing[2].annotations is None


def test_chapter_params_recovered_from_tree(tree, chapter_params):
    params = chapter_params_of(tree)
    assert params.dump() == chapter_params


def test_apply_tasks_warns_on_unknown_sentences(tree):
    from structlog.testing import capture_logs

    task = NerTask.model_validate(
        {
            "data": {
                "text": "Ghost",
                "documentId": "RCB_001",
                "chapterId": "RCB_001.002",
                "sentenceId": "RCB_001.002.009.01",
                "sentenceType": "single",
            }
        }
    )
    with capture_logs() as logs:
        apply_tasks(tree, [_labelled(task, 0, 5, "PER")])
    assert logs[0]["event"] == "annotations for unknown sentences"
    assert logs[0]["sentence_ids"] == ["RCB_001.002.009.01"]


def test_write_then_read_task_file(tmp_path, tree):
    path = write_tasks(tmp_path / "tasks" / "RCB_001.002.json", tree_to_ner_tasks(tree))
    assert json.loads(path.read_text(encoding="utf-8"))[0]["data"]["text"].startswith("The quick")
    assert read_tasks(path) == tree_to_ner_tasks(tree)


def test_read_tasks_rejects_bad_files(tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text('[{"data": {}}]', encoding="utf-8")
    with pytest.raises(PersistenceError):
        read_tasks(path)
    with pytest.raises(PersistenceError):
        read_tasks(tmp_path / "missing.json")

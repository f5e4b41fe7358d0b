from harvest.core.schema import EntityAnnotation, SentenceEntityAnnotation
from harvest.knowledge.annotations import resolve_overlap, wrap_labels

TEXT = "The quick brown fox jumps over the lazy dog."


def ann(start, end, label, id=None, text=TEXT):
    return EntityAnnotation(start=start, end=end, text=text[start:end], labels=[label], id=id)


def spans(items):
    return [(item.start, item.end, item.labels[0], item.text) for item in items]


def test_wrap_labels_without_annotations_is_identity():
    assert wrap_labels(TEXT, []) == TEXT


def test_wrap_single_annotation():
    assert wrap_labels("The quick", [ann(0, 3, "PER", text="The quick")]) == "<PER>The</PER> quick"


def test_resolve_keeps_disjoint_annotations_sorted():
    items = [ann(20, 25, "ORG"), ann(0, 3, "PER"), ann(4, 9, "LOC")]
    assert spans(resolve_overlap(items)) == spans([items[1], items[2], items[0]])


def test_resolve_partial_overlap_keep_right():
    text = "x" * 30
    items = [ann(0, 15, "LOC", text=text), ann(10, 25, "ORG", text=text)]
    resolved = resolve_overlap(items, overlap_keep_right=True)
    assert [(a.start, a.end, a.labels[0]) for a in resolved] == [
        (0, 10, "LOC"),
        (10, 25, "ORG"),
        (10, 15, "LOC"),
    ]
    assert [(a.start, a.end) for a in items] == [(0, 15), (10, 25)]


def test_resolve_partial_overlap_keep_left():
    items = [ann(4, 19, "LOC", id="2"), ann(10, 25, "ORG", id="3")]
    resolved = resolve_overlap(items, overlap_keep_right=False)
    assert spans(resolved) == [
        (4, 19, "LOC", "quick brown fox"),
        (10, 19, "ORG", "brown fox"),
        (19, 25, "ORG", " jumps"),
    ]


def test_resolve_splits_text_with_the_spans():
    items = [ann(0, 3, "PER", id="1"), ann(4, 19, "LOC", id="2"), ann(10, 25, "ORG", id="3")]
    assert spans(resolve_overlap(items)) == [
        (0, 3, "PER", "The"),
        (4, 10, "LOC", "quick "),
        (10, 25, "ORG", "brown fox jumps"),
        (10, 19, "LOC", "brown fox"),
    ]


def test_resolve_leaves_nested_spans_alone():
    items = [ann(4, 25, "LOC"), ann(10, 19, "ORG"), ann(4, 9, "PER")]
    assert sorted(spans(resolve_overlap(items))) == sorted(spans(items))


def test_wrap_overlapping_annotations():
    items = [ann(0, 3, "PER", id="1"), ann(4, 19, "LOC", id="2"), ann(10, 25, "ORG", id="3")]
    assert wrap_labels(TEXT, items) == (
        '<PER ID="1">The</PER> <LOC ID="2">quick </LOC><ORG ID="3"><LOC ID="2">brown fox</LOC>'
        " jumps</ORG> over the lazy dog."
    )


def test_wrap_contained_annotations():
    items = [ann(0, 3, "PER", id="1"), ann(4, 25, "LOC", id="2"), ann(10, 19, "ORG", id="3")]
    assert wrap_labels(TEXT, items) == (
        '<PER ID="1">The</PER> <LOC ID="2">quick <ORG ID="3">brown fox</ORG> jumps</LOC>'
        " over the lazy dog."
    )


def test_wrap_same_start_puts_longer_span_outside():
    items = [ann(4, 9, "PER"), ann(4, 15, "TITLE")]
    assert wrap_labels(TEXT, items) == "The <TITLE><PER>quick</PER> brown</TITLE> fox jumps over the lazy dog."


def test_chain_overlap_is_deterministic():
    text = "abcdefghijklmnopqrstuvwxyz"
    items = [ann(0, 10, "PER", text=text), ann(5, 15, "LOC", text=text), ann(8, 20, "ORG", text=text)]
    first = spans(resolve_overlap(items))
    assert first == spans(resolve_overlap(list(reversed(items))))
    # PER is only compared with its right neighbour, the truncated LOC, which it encloses
    assert first == [
        (0, 10, "PER", "abcdefghij"),
        (5, 8, "LOC", "fgh"),
        (8, 20, "ORG", "ijklmnopqrst"),
        (8, 15, "LOC", "ijklmno"),
    ]


def test_resolve_preserves_sentence_scope_fields():
    item = SentenceEntityAnnotation(
        start=0, end=15, text=TEXT[:15], labels=["LOC"], sentence_id="s1", sentence_type="single"
    )
    other = SentenceEntityAnnotation(
        start=10, end=25, text=TEXT[10:25], labels=["ORG"], sentence_id="s1", sentence_type="single"
    )
    resolved = resolve_overlap([item, other])
    assert all(isinstance(a, SentenceEntityAnnotation) and a.sentence_id == "s1" for a in resolved)

import unicodedata

import pytest
from docx.oxml.ns import qn

from docx_builders import make_body, make_document, paragraph_texts, text_p
from document_element import DOT_LINE_TEXT, get_text
from question_scanner import QuestionGroup, QuestionScanner, insert_dot_lines, is_end_marker


@pytest.fixture
def scanner():
    return QuestionScanner()


def group_texts(group):
    return [get_text(el) for el in group.elements]


# ---- Nhóm câu hỏi ----
def test_scan_two_questions_with_end_marker(scanner):
    body = make_body(
        text_p("Câu 1:"), text_p("A. x"), text_p("HẾT"), text_p("Câu 2:"), text_p("B. y")
    )
    groups = scanner.scan(body)
    assert [g.index for g in groups] == [0, 1]
    assert group_texts(groups[0]) == ["Câu 1:", "A. x"]
    assert group_texts(groups[1]) == ["Câu 2:", "B. y"]


def test_end_marker_belongs_to_no_group(scanner):
    body = make_body(text_p("Câu 1: ..."), text_p("text"), text_p("Câu 2: ..."), text_p("HẾT"))
    groups = scanner.scan(body)
    assert len(groups) == 2
    assert group_texts(groups[0]) == ["Câu 1: ...", "text"]
    assert group_texts(groups[1]) == ["Câu 2: ..."]


def test_elements_before_first_question_and_after_end_are_ungrouped(scanner):
    body = make_body(
        text_p("ĐỀ KIỂM TRA"), text_p("Câu 1. Hỏi"), text_p("--- HẾT ---"), text_p("Ghi chú")
    )
    groups = scanner.scan(body)
    assert len(groups) == 1
    assert group_texts(groups[0]) == ["Câu 1. Hỏi"]


def test_non_paragraph_elements_join_current_group(scanner):
    table = '<w:tbl><w:tr><w:tc><w:p/></w:tc></w:tr></w:tbl>'
    body = make_body(text_p("Câu 1: Bảng"), table, text_p("A. x"))
    groups = scanner.scan(body)
    assert [el.tag for el in groups[0].elements] == [qn('w:p'), qn('w:tbl'), qn('w:p')]


def test_section_properties_never_grouped(scanner):
    body = make_body(text_p("Câu 1: x"), '<w:sectPr/>')
    groups = scanner.scan(body)
    assert len(groups[0].elements) == 1


@pytest.mark.parametrize("label", ["Câu 1:", "câu 12.", "  Câu 3: abc", "CÂU 4:"])
def test_question_label_variants(scanner, label):
    groups = scanner.scan(make_body(text_p(label)))
    assert len(groups) == 1


@pytest.mark.parametrize("text", ["Câu hỏi 1:", "Câu1:", "Câu 1 là"])
def test_not_question_labels(scanner, text):
    assert scanner.scan(make_body(text_p(text))) == []


def test_decomposed_unicode_label_matches(scanner):
    label = unicodedata.normalize('NFD', "Câu 1: x")
    assert len(scanner.scan(make_body(text_p(label)))) == 1


@pytest.mark.parametrize("text,expected", [
    ("HẾT", True),
    ("  HẾT  ", True),
    ("----- HẾT -----", True),
    ("HẾT giờ", False),
    ("- HẾT", False),
])
def test_is_end_marker(text, expected):
    assert is_end_marker(text) is expected


# ---- Chèn dòng chấm ----
def test_dot_line_count(scanner):
    body = make_body(
        text_p("Câu 1:"), text_p("A. x"), text_p("Câu 2:"), text_p("B. y"), '<w:sectPr/>'
    )
    groups = scanner.scan(body)

    inserted, skipped = insert_dot_lines(body, groups, 3)

    assert (inserted, skipped) == (6, 0)
    dots = DOT_LINE_TEXT
    assert paragraph_texts(body) == [
        "Câu 1:", "A. x", dots, dots, dots,
        "Câu 2:", "B. y", dots, dots, dots,
    ]
    assert body[-1].tag == qn('w:sectPr')


def test_dot_lines_zero_count_is_noop(scanner):
    body = make_body(text_p("Câu 1:"))
    assert insert_dot_lines(body, scanner.scan(body), 0) == (0, 0)
    assert paragraph_texts(body) == ["Câu 1:"]


def test_dot_lines_after_last_attached_element(scanner):
    body = make_body(text_p("Câu 1:"), text_p("A. x"), text_p(""), text_p("Câu 2:"))
    groups = scanner.scan(body)
    # Đoạn cuối của câu 1 bị xóa sau khi quét
    body.remove(groups[0].elements[-1])

    insert_dot_lines(body, groups, 1)

    assert paragraph_texts(body) == ["Câu 1:", "A. x", DOT_LINE_TEXT, "Câu 2:", DOT_LINE_TEXT]


def test_group_with_no_attached_element_is_skipped(scanner):
    document = make_document(text_p("Câu 1:"), text_p("Câu 2:"))
    body = document.find(qn('w:body'))
    groups = scanner.scan(body)
    body.remove(groups[0].elements[0])

    inserted, skipped = insert_dot_lines(body, groups, 2)

    assert (inserted, skipped) == (2, 1)
    assert paragraph_texts(body) == ["Câu 2:", DOT_LINE_TEXT, DOT_LINE_TEXT]


def test_empty_group_ignored():
    body = make_body(text_p("x"))
    assert insert_dot_lines(body, [QuestionGroup(index=0)], 2) == (0, 0)


def test_last_attached_walks_backwards():
    body = make_body(text_p("a"), text_p("b"), text_p("c"))
    a, b, c = list(body)
    group = QuestionGroup(index=0, elements=[a, b, c])
    body.remove(c)
    body.remove(b)
    assert group.last_attached(body) is a

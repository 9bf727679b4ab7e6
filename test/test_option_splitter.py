import pytest
from docx.oxml.ns import qn

from docx_builders import TAB, make_body, p, paragraph_texts, r, t, text_p
from option_splitter import LOOKAHEAD_LIMIT, OptionSplitter, split_paragraph_at


@pytest.fixture
def splitter():
    return OptionSplitter()


# ---- Kịch bản chuẩn: "A.<tab>foo<tab>B.<tab>bar" ----
def test_split_single_run(splitter):
    body = make_body(p(r(t("A."), TAB, t("foo"), TAB, t("B."), TAB, t("bar"))))
    created = splitter.process_body(body)
    assert created == 1
    assert paragraph_texts(body) == ["A. foo", "B. bar"]
    assert splitter.tabs_replaced == 2
    assert body.findall('.//' + qn('w:tab')) == []


def test_split_one_node_per_run(splitter):
    body = make_body(p(
        r(t("A.")), r(TAB), r(t("foo")), r(TAB), r(t("B.")), r(TAB), r(t("bar"))
    ))
    splitter.process_body(body)
    assert paragraph_texts(body) == ["A. foo", "B. bar"]


def test_label_tab_becomes_preserved_space(splitter):
    body = make_body(p(r(t("A."), TAB, t("foo"))))
    splitter.process_body(body)
    space = body.findall('.//' + qn('w:t'))[1]
    assert space.text == " "
    assert space.get(qn('xml:space')) == "preserve"


def test_label_tab_before_spaced_text_becomes_empty(splitter):
    body = make_body(p(r(t("A."), TAB, t(" foo"))))
    splitter.process_body(body)
    assert paragraph_texts(body) == ["A. foo"]


# ---- Đủ 4 đáp án trên một dòng -> 4 đoạn, không mất chữ ----
def test_split_completeness_four_options(splitter):
    original = ["A. một", "B. hai", "C. ba", "D. bốn"]
    nodes = []
    for i, option in enumerate(original):
        if i:
            nodes.append(TAB)
        nodes.append(t(option))
    body = make_body(p(r(*nodes)))

    splitter.process_body(body)

    texts = paragraph_texts(body)
    assert texts == original
    assert "".join(texts) == "".join(original)


@pytest.mark.parametrize("marker", ["A.", "A:", "A)"])
def test_marker_punctuation(splitter, marker):
    second = marker.replace("A", "B")
    body = make_body(p(r(t(f"{marker} x"), TAB, t(f"{second} y"))))
    splitter.process_body(body)
    assert paragraph_texts(body) == [f"{marker} x", f"{second} y"]


def test_ordinary_tab_left_alone(splitter):
    body = make_body(p(r(t("Tên: "), TAB, t("Lớp: A. 12"))))
    splitter.process_body(body)
    assert len(body.findall('.//' + qn('w:tab'))) == 1
    assert len(paragraph_texts(body)) == 1


def test_paragraph_without_marker_untouched(splitter):
    body = make_body(p(r(t("x"), TAB, t("y"))))
    assert splitter.process_body(body) == 0
    assert len(body.findall('.//' + qn('w:tab'))) == 1


def test_lookahead_stops_after_limit(splitter):
    # Run đầu tiên sau tab đã đủ dài -> không đọc sang run có "B."
    long_text = "x" * (LOOKAHEAD_LIMIT + 1)
    runs = [r(t(long_text)), r(t("B. y"))]
    assert splitter.look_ahead_text([], []) == ""
    body = make_body(p(*runs))
    found = splitter.look_ahead_text([], body.findall('.//' + qn('w:r')))
    assert found == long_text


def test_lookahead_reads_following_runs_when_short(splitter):
    body = make_body(p(r(t(" ")), r(t("B.")), r(t(" bar"))))
    found = splitter.look_ahead_text([], body.findall('.//' + qn('w:r')))
    assert found == " B. bar"


def test_new_paragraph_keeps_properties(splitter):
    ppr = '<w:pPr><w:ind w:left="720"/></w:pPr>'
    run = '<w:r><w:rPr><w:i/></w:rPr>' + t("A. x") + TAB + t("B. y") + '</w:r>'
    body = make_body(p(run, ppr=ppr))
    splitter.process_body(body)

    first, second = body.findall(qn('w:p'))
    assert second.find(qn('w:pPr')).find(qn('w:ind')).get(qn('w:left')) == "720"
    new_run = second.find(qn('w:r'))
    assert new_run.find(qn('w:rPr')).find(qn('w:i')) is not None
    # pPr của đoạn gốc vẫn còn, không bị chuyển đi
    assert first.find(qn('w:pPr')) is not None


def test_section_break_stays_on_last_paragraph(splitter):
    ppr = '<w:pPr><w:jc w:val="left"/><w:sectPr/></w:pPr>'
    body = make_body(p(r(t("A. x"), TAB, t("B. y"), TAB, t("C. z")), ppr=ppr))

    splitter.process_body(body)

    paragraphs = body.findall(qn('w:p'))
    assert paragraph_texts(body) == ["A. x", "B. y", "C. z"]
    assert len(body.findall('./' + qn('w:p') + '/' + qn('w:pPr') + '/' + qn('w:sectPr'))) == 1
    assert paragraphs[-1].find(qn('w:pPr')).find(qn('w:sectPr')) is not None
    # Các thuộc tính khác của đoạn vẫn được giữ ở mọi đoạn
    assert all(el.find(qn('w:pPr')).find(qn('w:jc')) is not None for el in paragraphs)


def test_split_inserts_right_after_current_paragraph(splitter):
    body = make_body(
        p(r(t("A. x"), TAB, t("B. y"))),
        text_p("Câu 2: tiếp theo"),
    )
    splitter.process_body(body)
    assert paragraph_texts(body) == ["A. x", "B. y", "Câu 2: tiếp theo"]


def test_long_chain_uses_worklist(splitter):
    nodes = []
    for i in range(200):
        if i:
            nodes.append(TAB)
        nodes.append(t(f"{'ABCD'[i % 4]}. x{i}"))
    body = make_body(p(r(*nodes)))

    splitter.process_body(body)

    assert len(paragraph_texts(body)) == 200
    assert splitter.splits == 199


def test_process_paragraph_returns_document_order(splitter):
    body = make_body(p(r(t("A. 1"), TAB, t("B. 2"), TAB, t("C. 3"))))
    paragraph = body.find(qn('w:p'))
    result = splitter.process_paragraph(paragraph)
    assert result == body.findall(qn('w:p'))


def test_split_paragraph_at_drops_tab_and_moves_tail():
    body = make_body(p(r(t("a"), TAB, t("b")), r(t("c"))))
    paragraph = body.find(qn('w:p'))
    run = paragraph.find(qn('w:r'))
    tab = run.find(qn('w:tab'))

    new_paragraph = split_paragraph_at(paragraph, run, tab)

    assert paragraph.getnext() is new_paragraph
    assert paragraph_texts(body) == ["a", "bc"]
    assert body.findall('.//' + qn('w:tab')) == []

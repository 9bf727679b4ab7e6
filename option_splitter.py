import logging
import re
from copy import deepcopy
from typing import List, Optional

from docx.oxml import OxmlElement
from docx.oxml.ns import qn

from document_element import direct_runs, get_text, is_paragraph, make_text_node


logger = logging.getLogger(__name__)

# Số ký tự tối đa cần nhìn trước sau một tab để nhận ra nhãn đáp án kế tiếp
LOOKAHEAD_LIMIT = 10

OPTION_MARKER = re.compile(r'[A-D][.:)]')
OPTION_AT_START = re.compile(r'^\s*[A-D][.:)]')
LABEL_AT_END = re.compile(r'(?:^|\s)[A-D][.:)]\s*$')
STARTS_WITH_SPACE = re.compile(r'^\s')


class OptionSplitter:
    """Tách các đáp án A. B. C. D. nằm chung một dòng (ngăn bởi tab) thành từng đoạn riêng.

    Một tab có thể là:
    - tab ngăn giữa nhãn và nội dung của chính đáp án ("A.<tab>foo") -> thay bằng dấu cách,
    - tab ngăn giữa hai đáp án ("foo<tab>B. bar") -> cắt đoạn tại đó,
    - tab bình thường -> giữ nguyên.
    """

    def __init__(self, lookahead_limit: int = LOOKAHEAD_LIMIT):
        self.lookahead_limit = lookahead_limit
        self.splits = 0
        self.tabs_replaced = 0

    def process_body(self, body) -> int:
        """Xử lý mọi đoạn cấp cao nhất trong body, trả về số đoạn mới được tạo."""
        created_before = self.splits
        # Chụp danh sách trước: các đoạn mới sinh ra được xử lý qua work-list
        for child in list(body):
            if not is_paragraph(child):
                continue
            if OPTION_MARKER.search(get_text(child)):
                self.process_paragraph(child)
        return self.splits - created_before

    def process_paragraph(self, paragraph) -> List:
        """Tách một đoạn, trả về danh sách các đoạn kết quả theo thứ tự tài liệu."""
        result = [paragraph]
        pending = [paragraph]
        while pending:
            current = pending.pop()
            new_paragraph = self._process_until_split(current)
            if new_paragraph is not None:
                self.splits += 1
                result.append(new_paragraph)
                pending.append(new_paragraph)
        return result

    def _process_until_split(self, paragraph) -> Optional[object]:
        runs = direct_runs(paragraph)
        text_so_far = ''

        for run_index, run in enumerate(runs):
            nodes = list(run)
            for node_index, node in enumerate(nodes):
                if node.tag == qn('w:t'):
                    text_so_far += node.text or ''
                    continue
                if node.tag != qn('w:tab'):
                    continue

                look_ahead = self.look_ahead_text(nodes[node_index + 1:], runs[run_index + 1:])

                if OPTION_AT_START.match(look_ahead):
                    logger.debug("Tách đáp án trước: %r", look_ahead)
                    return split_paragraph_at(paragraph, run, node)

                if LABEL_AT_END.search(text_so_far):
                    replacement = '' if STARTS_WITH_SPACE.match(look_ahead) else ' '
                    run.replace(node, make_text_node(replacement, preserve=bool(replacement)))
                    text_so_far += replacement
                    self.tabs_replaced += 1
        return None

    def look_ahead_text(self, remaining_nodes, following_runs) -> str:
        """Ghép text phía sau tab: phần còn lại của run, rồi các run kế tiếp cho tới khi đủ dài."""
        text = ''.join(n.text or '' for n in remaining_nodes if n.tag == qn('w:t'))
        for run in following_runs:
            if len(text) > self.lookahead_limit:
                break
            text += get_text(run)
        return text


def split_paragraph_at(paragraph, run, split_node):
    """Cắt ``paragraph`` tại ``split_node`` (một w:tab trong ``run``).

    Mọi thứ sau tab chuyển sang một đoạn mới chèn ngay sau đoạn hiện tại;
    bản thân tab bị bỏ. Trả về đoạn mới.
    """
    new_paragraph = OxmlElement('w:p')
    pPr = paragraph.find(qn('w:pPr'))
    if pPr is not None:
        new_paragraph.append(deepcopy(pPr))
        # Ngắt section chỉ thuộc về đoạn cuối cùng sau khi tách
        sectPr = pPr.find(qn('w:sectPr'))
        if sectPr is not None:
            pPr.remove(sectPr)

    new_run = OxmlElement('w:r')
    rPr = run.find(qn('w:rPr'))
    if rPr is not None:
        new_run.append(deepcopy(rPr))

    has_tail = False
    for node in list(split_node.itersiblings()):
        new_run.append(node)
        has_tail = True
    if has_tail:
        new_paragraph.append(new_run)

    for sibling in list(run.itersiblings()):
        new_paragraph.append(sibling)

    run.remove(split_node)
    paragraph.addnext(new_paragraph)
    return new_paragraph

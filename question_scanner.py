import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from docx.oxml.ns import qn

from document_element import get_normalized_text, is_attached, is_paragraph, make_dot_paragraph


logger = logging.getLogger(__name__)

QUESTION_LABEL = re.compile(r'^\s*Câu\s+(\d+)[:.]', re.IGNORECASE)
END_MARKERS = [
    re.compile(r'^\s*HẾT\s*$'),
    re.compile(r'^\s*-+\s*HẾT\s*-+\s*$'),
]


@dataclass
class QuestionGroup:
    """Một câu hỏi: đoạn "Câu N:" và các phần tử theo sau nó."""
    index: int
    elements: List = field(default_factory=list)

    def last_attached(self, body):
        """Phần tử cuối cùng của nhóm còn nằm trong body (có thể đã bị xóa bớt)."""
        for element in reversed(self.elements):
            if is_attached(element, body):
                return element
        return None


def is_end_marker(text: str) -> bool:
    return any(pattern.match(text) for pattern in END_MARKERS)


class QuestionScanner:

    def scan(self, body) -> List[QuestionGroup]:
        groups: List[QuestionGroup] = []
        current: Optional[QuestionGroup] = None

        for element in body:
            if element.tag == qn('w:sectPr'):
                continue

            if is_paragraph(element):
                text = get_normalized_text(element)

                # "HẾT": đóng nhóm, không mở nhóm mới
                if is_end_marker(text):
                    current = None
                    continue

                # "Câu N:" mở nhóm mới
                if QUESTION_LABEL.match(text):
                    current = QuestionGroup(index=len(groups), elements=[element])
                    groups.append(current)
                    continue

            if current is not None:
                current.elements.append(element)

        logger.debug("Tìm thấy %d câu hỏi", len(groups))
        return groups


def insert_dot_lines(body, groups: List[QuestionGroup], count: int) -> Tuple[int, int]:
    """Chèn ``count`` dòng chấm sau phần tử cuối của mỗi câu hỏi.

    Trả về (số dòng đã chèn, số câu hỏi bị bỏ qua).
    """
    if count <= 0:
        return 0, 0

    inserted = 0
    skipped = 0
    for group in groups:
        if not group.elements:
            continue

        anchor = group.last_attached(body)
        if anchor is None:
            logger.debug("Bỏ qua câu hỏi #%d: không còn phần tử nào trong body", group.index)
            skipped += 1
            continue

        for _ in range(count):
            dot_paragraph = make_dot_paragraph()
            anchor.addnext(dot_paragraph)
            anchor = dot_paragraph
            inserted += 1
    return inserted, skipped

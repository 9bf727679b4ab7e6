# docx_processor.py
import logging
import re
from dataclasses import asdict, dataclass
from typing import Optional, Tuple

from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml.ns import qn
from docx.shared import RGBColor
from docx.text.paragraph import Paragraph
from docx.text.run import Run

from document_element import (
    SPACE_LIKE_CLASS, get_body, get_text, has_media, has_protected_content,
    is_blank, is_only_paragraph_in_cell, iter_paragraphs, iter_runs,
)
from docx_package import MalformedDocumentError, parse_document, read_package, serialize_document
from format_config import FormatConfig
from option_splitter import OPTION_AT_START, OptionSplitter
from question_scanner import QuestionScanner, insert_dot_lines


logger = logging.getLogger(__name__)

EXTRA_SPACES = re.compile(SPACE_LIKE_CLASS + '{2,}')

FALSE_VALUES = ('0', 'false', 'off')


@dataclass
class FormatReport:
    """Thống kê những gì pipeline đã thay đổi trong một tài liệu."""
    options_split: int = 0
    label_tabs_replaced: int = 0
    labels_formatted: int = 0
    text_nodes_collapsed: int = 0
    bold_runs_colored: int = 0
    images_centered: int = 0
    paragraphs_removed: int = 0
    question_groups: int = 0
    dot_lines_inserted: int = 0
    groups_skipped: int = 0

    def summary(self) -> str:
        return ", ".join(f"{k}={v}" for k, v in asdict(self).items() if v)


def is_bold_run(run) -> bool:
    """Run in đậm: có w:b và w:val không phải giá trị 'tắt'."""
    rPr = run.find(qn('w:rPr'))
    if rPr is None:
        return False
    b = rPr.find(qn('w:b'))
    if b is None:
        return False
    val = b.get(qn('w:val'))
    return val is None or val.strip().lower() not in FALSE_VALUES


class DocxProcessor:
    """Class chính: chạy các bước định dạng đề thi trên document.xml"""

    def __init__(self, config: Optional[FormatConfig] = None):
        self.config = config or FormatConfig()
        self.scanner = QuestionScanner()

    # ================== CẢ GÓI DOCX ==================

    def process_docx(self, input_path: str, output_path: str) -> FormatReport:
        """Đọc file DOCX, định dạng, ghi ra output_path."""
        logger.info("Đang xử lý %s", input_path)
        package = read_package(input_path)
        root = parse_document(package.document_xml)

        report = self.format_document(root)

        package.save(output_path, serialize_document(root))
        logger.info("Hoàn thành %s: %s", output_path, report.summary() or "không có thay đổi")
        return report

    def process_bytes(self, data: bytes) -> Tuple[bytes, FormatReport]:
        package = read_package(data)
        root = parse_document(package.document_xml)
        report = self.format_document(root)
        return package.to_bytes(serialize_document(root)), report

    # ================== PIPELINE ==================

    def format_document(self, root) -> FormatReport:
        """Chạy các bước theo thứ tự cố định. Thứ tự này quan trọng, không đảo."""
        body = get_body(root)
        if body is None:
            raise MalformedDocumentError("Tài liệu không có w:body")

        config = self.config
        report = FormatReport()

        if config.break_tabs_to_newlines:
            self.split_options(body, report)

        if config.color_bold_text:
            self.format_option_labels(body, config.rgb, report)

        # Dọn khoảng trắng SAU khi tách để bắt cả phần thừa do tách sinh ra
        if config.remove_extra_spaces:
            self.clean_extra_spaces(body, report)

        if config.color_bold_text:
            self.color_bold_text(body, config.rgb, report)

        if config.center_images:
            self.center_images(body, report)

        if config.remove_empty_lines:
            self.remove_empty_paragraphs(body, report)

        if config.dot_lines_count > 0:
            groups = self.scanner.scan(body)
            report.question_groups = len(groups)
            report.dot_lines_inserted, report.groups_skipped = insert_dot_lines(
                body, groups, config.dot_lines_count
            )

        return report

    # ================== CÁC BƯỚC ==================

    def split_options(self, body, report: FormatReport) -> None:
        splitter = OptionSplitter()
        report.options_split += splitter.process_body(body)
        report.label_tabs_replaced += splitter.tabs_replaced
        logger.debug("Tách đáp án: %d đoạn mới, %d tab nhãn", splitter.splits, splitter.tabs_replaced)

    def format_option_labels(self, body, rgb: RGBColor, report: FormatReport) -> None:
        """In đậm + tô màu run chứa nhãn A./B./C./D. đầu tiên của mỗi đoạn đáp án."""
        for p in iter_paragraphs(body):
            if not OPTION_AT_START.match(get_text(p)):
                continue
            for r in iter_runs(p):
                if OPTION_AT_START.match(get_text(r)):
                    run = Run(r, None)
                    run.font.bold = True
                    run.font.color.rgb = rgb
                    report.labels_formatted += 1
                    break

    def clean_extra_spaces(self, body, report: FormatReport) -> None:
        for t in body.iter(qn('w:t')):
            original = t.text or ''
            if not EXTRA_SPACES.search(original):
                continue
            t.text = EXTRA_SPACES.sub(' ', original)
            t.set(qn('xml:space'), 'preserve')
            report.text_nodes_collapsed += 1

    def color_bold_text(self, body, rgb: RGBColor, report: FormatReport) -> None:
        for r in iter_runs(body):
            if is_bold_run(r):
                Run(r, None).font.color.rgb = rgb
                report.bold_runs_colored += 1

    def center_images(self, body, report: FormatReport) -> None:
        # Chỉ căn giữa khi có w:drawing / w:pict; đoạn chỉ có w:object (MathType...) giữ nguyên
        for p in iter_paragraphs(body):
            if has_media(p):
                Paragraph(p, None).alignment = WD_ALIGN_PARAGRAPH.CENTER
                report.images_centered += 1

    def remove_empty_paragraphs(self, body, report: FormatReport) -> None:
        for p in list(iter_paragraphs(body)):
            if has_protected_content(p):
                continue
            if not is_blank(get_text(p)):
                continue
            if is_only_paragraph_in_cell(p):
                continue
            parent = p.getparent()
            if parent is not None:
                parent.remove(p)
                report.paragraphs_removed += 1

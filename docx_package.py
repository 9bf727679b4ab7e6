"""
Đọc / ghi gói DOCX (ZIP).

Chỉ phần ``word/document.xml`` được thay; mọi phần khác (styles, media,
relationships...) được chép nguyên byte, đúng thứ tự và kiểu nén.
"""

import logging
import os
import zipfile
from io import BytesIO
from typing import List, Tuple, Union

from docx.opc.oxml import serialize_part_xml
from docx.oxml import parse_xml
from docx.oxml.ns import qn
from lxml import etree


logger = logging.getLogger(__name__)

DOCUMENT_PART = 'word/document.xml'


class DocxPackageError(Exception):
    """Gói đầu vào không dùng được (không phải file ZIP/DOCX)."""


class MissingDocumentPartError(DocxPackageError):
    """Gói không chứa word/document.xml."""


class MalformedDocumentError(DocxPackageError):
    """word/document.xml không parse được hoặc không có w:body."""


class DocxPackage:
    """Nội dung một gói DOCX đã đọc vào bộ nhớ."""

    def __init__(self, entries: List[Tuple[zipfile.ZipInfo, bytes]], name: str = '<bytes>'):
        self.entries = entries
        self.name = name

    @property
    def document_xml(self) -> bytes:
        for info, data in self.entries:
            if info.filename == DOCUMENT_PART:
                return data
        raise MissingDocumentPartError(f"Không tìm thấy {DOCUMENT_PART} trong {self.name}")

    def to_bytes(self, document_xml: bytes) -> bytes:
        output = BytesIO()
        with zipfile.ZipFile(output, 'w') as zout:
            for info, data in self.entries:
                if info.filename == DOCUMENT_PART:
                    data = document_xml
                zout.writestr(info, data)
        return output.getvalue()

    def save(self, path: str, document_xml: bytes) -> None:
        content = self.to_bytes(document_xml)
        with open(path, 'wb') as f:
            f.write(content)
        logger.debug("Đã ghi %s (%d bytes)", path, len(content))


def read_package(source: Union[str, bytes]) -> DocxPackage:
    """Đọc toàn bộ gói từ đường dẫn hoặc bytes."""
    name = source if isinstance(source, str) else '<bytes>'
    stream = BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
    try:
        with zipfile.ZipFile(stream) as zin:
            entries = [(info, zin.read(info.filename)) for info in zin.infolist()]
    except zipfile.BadZipFile as e:
        raise DocxPackageError(f"{name} không phải file DOCX hợp lệ: {e}") from e

    package = DocxPackage(entries, name)
    if not any(info.filename == DOCUMENT_PART for info, _ in entries):
        raise MissingDocumentPartError(f"Không tìm thấy {DOCUMENT_PART} trong {name}")
    return package


def parse_document(xml: bytes):
    """Parse document.xml bằng parser oxml của python-docx; trả về phần tử w:document."""
    try:
        root = parse_xml(xml)
    except etree.XMLSyntaxError as e:
        raise MalformedDocumentError(f"{DOCUMENT_PART} bị lỗi XML: {e}") from e
    if root.find(qn('w:body')) is None:
        raise MalformedDocumentError(f"{DOCUMENT_PART} không có w:body")
    return root


def serialize_document(root) -> bytes:
    return serialize_part_xml(root)


def output_path_for(input_file: str, output_dir: str) -> str:
    """<thư mục đầu ra>/<tên>.docx, thêm hậu tố nếu trùng với chính file đầu vào."""
    stem = os.path.splitext(os.path.basename(input_file))[0]
    target = os.path.join(output_dir, f"{stem}.docx")
    if os.path.abspath(target) == os.path.abspath(input_file):
        target = os.path.join(output_dir, f"{stem}_formatted.docx")
    return target

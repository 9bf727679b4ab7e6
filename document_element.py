import re
import unicodedata
from typing import Iterator, Optional

from docx.oxml import OxmlElement
from docx.oxml.ns import nsmap, qn
from lxml import etree


NSMAP = dict(nsmap, v='urn:schemas-microsoft-com:vml')

# Ký tự trắng / vô hình hay gặp trong đề Word (NBSP, en/em space, zero-width space...)
SPACE_LIKE_CLASS = '[ \\t\\u00A0\\u2002-\\u200B]'

BLANK_TEXT_PATTERN = re.compile('^[\\s\\u00A0\\u200B]*$')

DOT_LINE_TEXT = '.' * 150

_find_media = etree.XPath('.//w:drawing | .//w:pict', namespaces=NSMAP)
_find_keepers = etree.XPath(
    './/w:drawing | .//w:pict | .//w:object | .//v:shape | .//w:br[@w:type="page"]',
    namespaces=NSMAP,
)
# Công thức OMML và ngắt section cũng không được xóa
_find_math_or_section = etree.XPath(
    './/m:oMath | .//m:oMathPara | ./w:pPr/w:sectPr', namespaces=NSMAP
)


def get_text(element) -> str:
    """Visible text of an element: the w:t contents below it, in document order."""
    if element is None:
        return ''
    return ''.join(t.text or '' for t in element.iter(qn('w:t')))


def get_normalized_text(element) -> str:
    """Visible text in NFC form, so composed and decomposed Vietnamese both match."""
    return unicodedata.normalize('NFC', get_text(element))


def is_paragraph(element) -> bool:
    return element is not None and element.tag == qn('w:p')


def is_blank(text: str) -> bool:
    return not text or BLANK_TEXT_PATTERN.match(text) is not None


def get_body(document):
    """Return the w:body of a w:document root (or the element itself if it already is one)."""
    if document.tag == qn('w:body'):
        return document
    return document.find(qn('w:body'))


def iter_paragraphs(body) -> Iterator:
    """All paragraphs below the body, table cells and text boxes included."""
    return body.iter(qn('w:p'))


def iter_runs(element) -> Iterator:
    return element.iter(qn('w:r'))


def direct_runs(paragraph) -> list:
    return paragraph.findall(qn('w:r'))


def has_media(paragraph) -> bool:
    """Paragraph holds a DrawingML image or a legacy VML picture."""
    return bool(_find_media(paragraph))


def has_protected_content(paragraph) -> bool:
    """Content that makes a paragraph worth keeping even without visible text."""
    return bool(_find_keepers(paragraph)) or bool(_find_math_or_section(paragraph))


def is_only_paragraph_in_cell(paragraph) -> bool:
    parent = paragraph.getparent()
    if parent is None or parent.tag != qn('w:tc'):
        return False
    return len(parent.findall(qn('w:p'))) <= 1


def is_attached(element, body) -> bool:
    """True while the element still hangs below ``body``.

    Walks the ancestor chain, so elements removed (directly or with an
    ancestor) after scanning report False.
    """
    node = element
    while node is not None:
        if node is body:
            return True
        node = node.getparent()
    return False


def make_text_node(text: str, preserve: Optional[bool] = None):
    """Create a w:t. ``preserve`` defaults to "only when the text has edge spaces"."""
    t = OxmlElement('w:t')
    t.text = text
    if preserve is None:
        preserve = text != text.strip()
    if preserve:
        t.set(qn('xml:space'), 'preserve')
    return t


def make_dot_paragraph(text: str = DOT_LINE_TEXT):
    p = OxmlElement('w:p')
    r = OxmlElement('w:r')
    r.append(make_text_node(text, preserve=False))
    p.append(r)
    return p

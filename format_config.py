import json
import logging
import os
import re
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict

from docx.shared import RGBColor


logger = logging.getLogger(__name__)

DEFAULT_BOLD_COLOR = '0000FF'

HEX_COLOR = re.compile(r'^[0-9A-F]{6}$')

# Khóa camelCase trong các file cấu hình cũ -> tên thuộc tính Python
CAMEL_CASE_KEYS = {
    'breakTabsToNewlines': 'break_tabs_to_newlines',
    'colorBoldText': 'color_bold_text',
    'boldColor': 'bold_color',
    'removeExtraSpaces': 'remove_extra_spaces',
    'centerImages': 'center_images',
    'removeEmptyLines': 'remove_empty_lines',
    'dotLinesCount': 'dot_lines_count',
}


def normalize_hex(color: str) -> str:
    """'#ff0000' -> 'FF0000'. Raises ValueError on anything that is not 6 hex digits."""
    clean = (color or '').strip().lstrip('#').upper()
    if not HEX_COLOR.match(clean):
        raise ValueError(f"Mã màu không hợp lệ: {color!r}")
    return clean


@dataclass(frozen=True)
class FormatConfig:
    """Các tùy chọn định dạng. Mỗi bước chỉ chạy khi công tắc của nó bật (hoặc > 0)."""
    break_tabs_to_newlines: bool = False
    color_bold_text: bool = False
    bold_color: str = DEFAULT_BOLD_COLOR
    remove_extra_spaces: bool = False
    center_images: bool = False
    remove_empty_lines: bool = False
    dot_lines_count: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'bold_color', normalize_hex(self.bold_color))
        if isinstance(self.dot_lines_count, bool) or not isinstance(self.dot_lines_count, int):
            raise ValueError(f"Số dòng chấm phải là số nguyên: {self.dot_lines_count!r}")
        if self.dot_lines_count < 0:
            raise ValueError(f"Số dòng chấm không được âm: {self.dot_lines_count}")

    @property
    def rgb(self) -> RGBColor:
        return RGBColor.from_string(self.bold_color)

    @property
    def enabled_stages(self):
        stages = []
        if self.break_tabs_to_newlines:
            stages.append('split-options')
        if self.color_bold_text:
            stages.append('format-labels')
        if self.remove_extra_spaces:
            stages.append('collapse-spaces')
        if self.color_bold_text:
            stages.append('color-bold')
        if self.center_images:
            stages.append('center-images')
        if self.remove_empty_lines:
            stages.append('remove-empty')
        if self.dot_lines_count > 0:
            stages.append('dot-lines')
        return stages

    def replace(self, **overrides) -> 'FormatConfig':
        """Bản sao với các giá trị được ghi đè; bỏ qua giá trị None."""
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **overrides)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FormatConfig':
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                logger.warning("Bỏ qua khóa cấu hình không xác định: %s", key)
                continue
            values[name] = value
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(path: str) -> FormatConfig:
    """Đọc cấu hình từ file JSON. File không tồn tại -> cấu hình mặc định."""
    if not os.path.exists(path):
        logger.debug("Không có file cấu hình %s, dùng mặc định", path)
        return FormatConfig()
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"File cấu hình phải chứa một object JSON: {path}")
    return FormatConfig.from_dict(data)


def save_config(config: FormatConfig, path: str) -> None:
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(config.to_dict(), f, ensure_ascii=False, indent=4)

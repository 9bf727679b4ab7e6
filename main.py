"""
Exam DOCX Formatter
Chuẩn hóa định dạng đề thi trắc nghiệm trong file DOCX
"""

import logging
import os
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path

from PyQt5.QtWidgets import (QApplication, QMainWindow, QWidget, QVBoxLayout,
                             QHBoxLayout, QPushButton, QLabel, QListWidget,
                             QFileDialog, QProgressBar, QTextEdit, QGroupBox, QDialog,
                             QMessageBox, QSplitter, QCheckBox, QLineEdit, QSpinBox,
                             QFormLayout)
from PyQt5.QtCore import Qt, QThread, QUrl, pyqtSignal
from PyQt5.QtGui import QDesktopServices, QFont

from docx_package import DocxPackageError, output_path_for
from docx_processor import DocxProcessor
from format_config import FormatConfig, load_config, save_config


SETTINGS_FILE = "formatter_settings.json"


def get_settings_file_path():
    """Trả về đường dẫn tới file cấu hình cạnh exe hoặc main.py"""
    if getattr(sys, "frozen", False):
        base_path = os.path.dirname(sys.executable)
    else:
        base_path = os.path.dirname(os.path.abspath(__file__))
    return os.path.join(base_path, SETTINGS_FILE)


APP_STYLE = """
    QLabel#header {
        color: #2c3e50;
        padding: 15px;
        background-color: #ecf0f1;
        border-radius: 8px;
    }
    QLabel#outputPath {
        padding: 10px;
        background-color: #f8f9fa;
        border: 1px solid #dee2e6;
        border-radius: 5px;
    }
    QListWidget, QProgressBar {
        border: 2px solid #3498db;
        border-radius: 5px;
    }
    QProgressBar { text-align: center; height: 25px; }
    QProgressBar::chunk { background-color: #3498db; }
    QTextEdit#log {
        border: 2px solid #95a5a6;
        border-radius: 5px;
        background-color: #2c3e50;
        color: #ecf0f1;
        font-family: 'Consolas', 'Courier New', monospace;
        font-size: 10pt;
    }
    QPushButton {
        color: white;
        border: none;
        padding: 10px;
        border-radius: 5px;
        font-weight: bold;
        min-height: 40px;
    }
    QPushButton:disabled { background-color: #bdc3c7; }
"""


def make_button(text, color, slot):
    """Nút bấm một màu, tự nối vào slot"""
    btn = QPushButton(text)
    btn.setStyleSheet(f"QPushButton:enabled {{ background-color: {color}; }}")
    btn.clicked.connect(slot)
    return btn


def make_group(title, layout):
    group = QGroupBox(title)
    group.setFont(QFont("Arial", 10, QFont.Bold))
    group.setLayout(layout)
    return group


class SignalLogHandler(logging.Handler):
    """Chuyển log của các module xử lý sang signal progress để hiện trong ô nhật ký."""

    def __init__(self, signal, level=logging.INFO):
        super().__init__(level)
        self.signal = signal
        self.setFormatter(logging.Formatter("   %(message)s"))

    def emit(self, record):
        try:
            self.signal.emit(self.format(record))
        except Exception:
            self.handleError(record)


@dataclass
class FileResult:
    """Kết quả xử lý một file trong lô"""
    name: str
    status: str  # 'success' | 'error' | 'critical_error'
    detail: str = ""

    @property
    def ok(self):
        return self.status == 'success'

    def describe(self):
        if self.ok:
            return f"✅ {self.name}: {self.detail or 'không có thay đổi'}"
        icon = "❌" if self.status == 'critical_error' else "⚠️"
        return f"{icon} {self.name}:\n      • {self.detail}"


def batch_message(results):
    total = len(results)
    done = sum(1 for r in results if r.ok)
    if done == total:
        return f"✅ Đã định dạng {done}/{total} file!"
    if done:
        return f"⚠️ {done}/{total} file thành công, {total - done} file có lỗi."
    return f"❌ Không định dạng được file nào ({total} file lỗi)."


class ProcessingThread(QThread):
    """Thread xử lý file để không block UI"""
    progress = pyqtSignal(str)  # Dòng nhật ký
    finished = pyqtSignal(bool, str, list)  # (tất cả thành công, thông báo, [FileResult])
    file_progress = pyqtSignal(int, int)  # (file hiện tại, tổng số file)

    def __init__(self, input_files, output_dir, config):
        super().__init__()
        self.input_files = list(input_files)
        self.output_dir = output_dir
        self.processor = DocxProcessor(config)

    def process_one(self, input_file):
        name = Path(input_file).name
        output_file = output_path_for(input_file, self.output_dir)
        try:
            report = self.processor.process_docx(input_file, output_file)
        except DocxPackageError as e:
            # File hỏng / thiếu document.xml: bỏ qua, xử lý tiếp file khác
            self.progress.emit(f"⚠️ Bỏ qua {name}: {e}")
            return FileResult(name, 'error', str(e))
        except Exception as e:
            self.progress.emit(f"❌ Lỗi không mong muốn với {name}: {e}")
            self.progress.emit(f"   Chi tiết: {traceback.format_exc()}")
            return FileResult(name, 'critical_error', str(e))
        self.progress.emit(f"✅ Đã ghi {Path(output_file).name}")
        return FileResult(name, 'success', report.summary())

    def run(self):
        handler = SignalLogHandler(self.progress)
        logging.getLogger().addHandler(handler)
        results = []
        try:
            total = len(self.input_files)
            for idx, input_file in enumerate(self.input_files, 1):
                self.file_progress.emit(idx, total)
                results.append(self.process_one(input_file))
            self.finished.emit(all(r.ok for r in results), batch_message(results), results)
        except Exception as e:
            self.finished.emit(False, f"❌ Lỗi trong thread xử lý: {e}", results)
        finally:
            logging.getLogger().removeHandler(handler)


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.input_files = []
        self.output_dir = ""
        self.processing_thread = None
        self.detailed_results_text = ""
        self.settings_path = get_settings_file_path()
        self.init_ui()
        self.load_settings()

    def init_ui(self):
        """Khởi tạo giao diện"""
        self.setWindowTitle("Công cụ chuẩn hóa đề thi DOCX")
        self.setGeometry(100, 100, 1000, 720)
        self.setStyleSheet(APP_STYLE)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QVBoxLayout(central_widget)
        main_layout.setSpacing(15)
        main_layout.setContentsMargins(20, 20, 20, 20)

        header_label = QLabel("📄 Chuẩn hóa định dạng đề thi trắc nghiệm (DOCX)")
        header_label.setObjectName("header")
        header_label.setFont(QFont("Arial", 18, QFont.Bold))
        header_label.setAlignment(Qt.AlignCenter)
        main_layout.addWidget(header_label)

        splitter = QSplitter(Qt.Horizontal)
        splitter.addWidget(self.build_left_panel())
        splitter.addWidget(self.build_right_panel())
        splitter.setSizes([420, 580])
        main_layout.addWidget(splitter)

        self.statusBar().showMessage("Sẵn sàng xử lý file")

    def build_left_panel(self):
        """Danh sách file, tùy chọn định dạng, thư mục đầu ra"""
        panel = QWidget()
        layout = QVBoxLayout(panel)

        self.file_list = QListWidget()
        self.add_files_btn = make_button("➕ Thêm file", "#3498db", self.add_files)
        self.remove_file_btn = make_button("➖ Xóa file", "#e74c3c", self.remove_selected_file)
        self.clear_files_btn = make_button("🗑️ Xóa tất cả", "#95a5a6", self.clear_files)
        buttons = QHBoxLayout()
        for btn in (self.add_files_btn, self.remove_file_btn, self.clear_files_btn):
            buttons.addWidget(btn)
        files_layout = QVBoxLayout()
        files_layout.addWidget(self.file_list)
        files_layout.addLayout(buttons)
        layout.addWidget(make_group("📁 Danh sách file DOCX", files_layout))

        self.split_tabs_cb = QCheckBox("Tách đáp án A/B/C/D thành từng dòng")
        self.color_bold_cb = QCheckBox("Tô màu nhãn đáp án và chữ đậm")
        self.bold_color_edit = QLineEdit()
        self.bold_color_edit.setMaxLength(7)
        self.bold_color_edit.setPlaceholderText("#0000FF")
        self.extra_spaces_cb = QCheckBox("Xóa khoảng trắng thừa")
        self.center_images_cb = QCheckBox("Căn giữa hình ảnh")
        self.empty_lines_cb = QCheckBox("Xóa dòng trống")
        self.dot_lines_spin = QSpinBox()
        self.dot_lines_spin.setRange(0, 50)

        options_layout = QFormLayout()
        options_layout.addRow(self.split_tabs_cb)
        options_layout.addRow(self.color_bold_cb)
        options_layout.addRow("Màu chữ đậm:", self.bold_color_edit)
        options_layout.addRow(self.extra_spaces_cb)
        options_layout.addRow(self.center_images_cb)
        options_layout.addRow(self.empty_lines_cb)
        options_layout.addRow("Số dòng chấm sau mỗi câu:", self.dot_lines_spin)
        layout.addWidget(make_group("⚙️ Tùy chọn định dạng", options_layout))

        self.output_label = QLabel("Chưa chọn thư mục")
        self.output_label.setObjectName("outputPath")
        self.output_label.setWordWrap(True)
        self.select_output_btn = make_button("📂 Chọn thư mục", "#27ae60", self.select_output_dir)
        output_layout = QVBoxLayout()
        output_layout.addWidget(self.output_label)
        output_layout.addWidget(self.select_output_btn)
        layout.addWidget(make_group("💾 Thư mục lưu kết quả", output_layout))

        self.process_btn = make_button("🚀 Bắt đầu định dạng", "#16a085", self.start_processing)
        self.process_btn.setFont(QFont("Arial", 12, QFont.Bold))
        self.process_btn.setMinimumHeight(50)
        layout.addWidget(self.process_btn)
        return panel

    def build_right_panel(self):
        """Tiến trình và nhật ký"""
        panel = QWidget()
        layout = QVBoxLayout(panel)

        self.progress_bar = QProgressBar()
        self.progress_label = QLabel("Sẵn sàng")
        self.progress_label.setAlignment(Qt.AlignCenter)
        progress_layout = QVBoxLayout()
        progress_layout.addWidget(self.progress_bar)
        progress_layout.addWidget(self.progress_label)
        layout.addWidget(make_group("📊 Tiến trình xử lý", progress_layout))

        self.log_text = QTextEdit()
        self.log_text.setObjectName("log")
        self.log_text.setReadOnly(True)
        clear_log_btn = make_button("🧹 Xóa log", "#7f8c8d", self.log_text.clear)
        log_layout = QVBoxLayout()
        log_layout.addWidget(self.log_text)
        log_layout.addWidget(clear_log_btn)
        layout.addWidget(make_group("📋 Nhật ký xử lý", log_layout))
        return panel

    # ================== CẤU HÌNH ==================

    def load_settings(self):
        """Đọc cấu hình lần trước và đổ lên các ô tùy chọn"""
        try:
            config = load_config(self.settings_path)
        except ValueError as e:
            self.log(f"⚠️ File cấu hình lỗi, dùng mặc định: {e}")
            config = FormatConfig()
        self.split_tabs_cb.setChecked(config.break_tabs_to_newlines)
        self.color_bold_cb.setChecked(config.color_bold_text)
        self.bold_color_edit.setText(f"#{config.bold_color}")
        self.extra_spaces_cb.setChecked(config.remove_extra_spaces)
        self.center_images_cb.setChecked(config.center_images)
        self.empty_lines_cb.setChecked(config.remove_empty_lines)
        self.dot_lines_spin.setValue(config.dot_lines_count)

    def current_config(self):
        """Đọc FormatConfig từ giao diện. Ném ValueError nếu mã màu sai."""
        return FormatConfig(
            break_tabs_to_newlines=self.split_tabs_cb.isChecked(),
            color_bold_text=self.color_bold_cb.isChecked(),
            bold_color=self.bold_color_edit.text() or "#0000FF",
            remove_extra_spaces=self.extra_spaces_cb.isChecked(),
            center_images=self.center_images_cb.isChecked(),
            remove_empty_lines=self.empty_lines_cb.isChecked(),
            dot_lines_count=self.dot_lines_spin.value(),
        )

    # ================== FILE ==================

    def add_files(self):
        """Thêm file DOCX (bỏ qua file đã có và file khóa ~$ của Word)"""
        files, _ = QFileDialog.getOpenFileNames(self, "Chọn đề thi", "", "Word Documents (*.docx)")
        new_files = [f for f in files
                     if f not in self.input_files and not Path(f).name.startswith("~$")]
        for file in new_files:
            self.input_files.append(file)
            self.file_list.addItem(Path(file).name)
        if new_files:
            self.log(f"✅ Thêm {len(new_files)} file")
        self.statusBar().showMessage(f"{len(self.input_files)} file trong danh sách")

    def remove_selected_file(self):
        row = self.file_list.currentRow()
        if row < 0:
            return
        removed = self.input_files.pop(row)
        self.file_list.takeItem(row)
        self.log(f"🗑️ Bỏ {Path(removed).name}")
        self.statusBar().showMessage(f"{len(self.input_files)} file trong danh sách")

    def clear_files(self):
        if not self.input_files:
            return
        answer = QMessageBox.question(self, "Xác nhận", "Xóa toàn bộ danh sách file?",
                                      QMessageBox.Yes | QMessageBox.No)
        if answer == QMessageBox.Yes:
            self.input_files = []
            self.file_list.clear()
            self.log("🗑️ Danh sách file đã được làm trống")
            self.statusBar().showMessage("0 file trong danh sách")

    def select_output_dir(self):
        dir_path = QFileDialog.getExistingDirectory(self, "Thư mục lưu đề đã định dạng")
        if dir_path:
            self.output_dir = dir_path
            self.output_label.setText(dir_path)
            self.log(f"📂 Lưu vào: {dir_path}")

    def log(self, message):
        self.log_text.append(message)
        bar = self.log_text.verticalScrollBar()
        bar.setValue(bar.maximum())

    # ================== XỬ LÝ ==================

    def start_processing(self):
        if not self.input_files:
            QMessageBox.warning(self, "Cảnh báo", "Chưa có file DOCX nào trong danh sách!")
            return
        if not self.output_dir:
            QMessageBox.warning(self, "Cảnh báo", "Chưa chọn thư mục lưu kết quả!")
            return

        try:
            config = self.current_config()
        except ValueError as e:
            QMessageBox.warning(self, "Cấu hình không hợp lệ", str(e))
            return

        try:
            save_config(config, self.settings_path)
        except OSError as e:
            self.log(f"⚠️ Không lưu được cấu hình: {e}")

        stages = config.enabled_stages
        self.log("\n" + "=" * 60)
        if stages:
            self.log("🚀 Các bước: " + ", ".join(stages))
        else:
            self.log("ℹ️ Chưa bật tùy chọn nào, file sẽ được chép nguyên trạng")

        self.set_buttons_enabled(False)
        self.progress_bar.setValue(0)

        self.processing_thread = ProcessingThread(self.input_files, self.output_dir, config)
        self.processing_thread.progress.connect(self.log)
        self.processing_thread.file_progress.connect(self.update_progress)
        self.processing_thread.finished.connect(self.processing_finished)
        self.processing_thread.start()

    def update_progress(self, current, total):
        self.progress_bar.setValue(int(current * 100 / total))
        self.progress_label.setText(f"File {current}/{total}")
        self.statusBar().showMessage(f"Đang định dạng file {current}/{total}")

    def processing_finished(self, all_ok, message, results):
        """Ghi kết quả từng file vào log rồi hỏi người dùng bước tiếp theo"""
        self.detailed_results_text = "\n".join(r.describe() for r in results)
        self.log("=" * 60)
        self.log(message)
        self.log(self.detailed_results_text)

        self.progress_bar.setValue(100)
        self.progress_label.setText("Hoàn thành!")
        self.set_buttons_enabled(True)

        msg_box = QMessageBox(self)
        msg_box.setWindowTitle("Xử lý hoàn tất")
        msg_box.setText(message)
        msg_box.setIcon(QMessageBox.Information if all_ok else QMessageBox.Warning)
        details_btn = msg_box.addButton("🔍 Xem chi tiết", QMessageBox.ActionRole)
        folder_btn = msg_box.addButton("📂 Mở thư mục kết quả", QMessageBox.AcceptRole)
        msg_box.addButton("Đóng", QMessageBox.RejectRole)
        msg_box.exec_()

        if msg_box.clickedButton() == details_btn:
            self.show_detail_results()
        elif msg_box.clickedButton() == folder_btn:
            if not QDesktopServices.openUrl(QUrl.fromLocalFile(self.output_dir)):
                QMessageBox.critical(self, "Lỗi", f"Không mở được thư mục {self.output_dir}")

    def show_detail_results(self):
        dlg = QDialog(self)
        dlg.setWindowTitle("Kết quả từng file")
        dlg.setMinimumSize(600, 500)
        layout = QVBoxLayout(dlg)

        text = QTextEdit()
        text.setReadOnly(True)
        text.setPlainText(self.detailed_results_text)
        layout.addWidget(text)
        layout.addWidget(make_button("Đóng", "#7f8c8d", dlg.close))
        dlg.exec_()

    def set_buttons_enabled(self, enabled):
        for btn in (self.add_files_btn, self.remove_file_btn, self.clear_files_btn,
                    self.select_output_btn, self.process_btn):
            btn.setEnabled(enabled)


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app = QApplication(sys.argv)
    app.setStyle('Fusion')
    window = MainWindow()
    window.show()
    sys.exit(app.exec_())


if __name__ == '__main__':
    main()

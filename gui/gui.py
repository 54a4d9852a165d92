from pathlib import Path
from PyQt6.QtWidgets import QApplication, QMainWindow, QWidget, QFrame, QLabel, QPushButton, QPlainTextEdit, QVBoxLayout, QHBoxLayout, QMessageBox, QFileDialog, QDialog
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QFont

from gui.romselector import ROMSelector
COLOR_BG_MAIN = '#182d55'
COLOR_ELEMENT_BG = '#26395e'
COLOR_ACCENT = '#6d86a8'
COLOR_HOVER = '#354a75'
COLOR_TEXT = '#FFFFFF'
WINDOW_WIDTH = 1000
WINDOW_HEIGHT = 700
GLOBAL_STYLE = f'\n    QMainWindow, QWidget {{\n        background-color: {COLOR_BG_MAIN};\n        color: {COLOR_TEXT};\n        font-family: Arial;\n    }}\n\n    QPushButton.primary {{\n        background-color: {COLOR_ELEMENT_BG};\n        color: {COLOR_TEXT};\n        border: 2px solid {COLOR_ACCENT};\n        border-radius: 10px;\n        font-size: 12px;\n        font-weight: bold;\n        min-height: 40px;\n        padding: 4px 12px;\n    }}\n    QPushButton.primary:hover {{\n        background-color: {COLOR_HOVER};\n    }}\n    QPushButton.primary:disabled {{\n        color: #5a6070;\n        border-color: #3a4560;\n        background-color: {COLOR_ELEMENT_BG};\n    }}\n\n    QFrame.panel {{\n        background-color: {COLOR_ELEMENT_BG};\n        border: 2px solid {COLOR_ACCENT};\n        border-radius: 10px;\n    }}\n\n    QPlainTextEdit {{\n        background-color: {COLOR_ELEMENT_BG};\n        border: 1px solid {COLOR_ACCENT};\n        border-radius: 5px;\n        font-family: monospace;\n        font-size: 11px;\n    }}\n\n    QStatusBar {{\n        background-color: {COLOR_ELEMENT_BG};\n        color: {COLOR_TEXT};\n        font-size: 11px;\n        padding: 0px 20px;\n        min-height: 30px;\n    }}\n\n    QLabel {{\n        background-color: transparent;\n        color: {COLOR_TEXT};\n        font-size: 11px;\n    }}\n\n    QDialog {{\n        background-color: {COLOR_BG_MAIN};\n    }}\n'

def _primary_btn(text: str, parent: QWidget=None) -> QPushButton:
    btn = QPushButton(text, parent)
    btn.setProperty('class', 'primary')
    btn.setFont(QFont('Arial', 12, QFont.Weight.Bold))
    btn.setMinimumHeight(40)
    return btn

def _panel_frame(parent: QWidget=None) -> QFrame:
    frame = QFrame(parent)
    frame.setObjectName('panel')
    frame.setProperty('class', 'panel')
    return frame

class ProgressDialog(QDialog):

    def __init__(self, parent: QWidget, title: str, message: str):
        super().__init__(parent)
        self.setWindowTitle(title)
        self.setFixedSize(400, 160)
        self.setModal(True)
        self.setWindowFlags(Qt.WindowType.Dialog | Qt.WindowType.CustomizeWindowHint | Qt.WindowType.WindowTitleHint)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(12)
        self._msg_label = QLabel(message)
        self._msg_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._msg_label.setFont(QFont('Arial', 12))
        self._msg_label.setWordWrap(True)
        self._msg_label.setStyleSheet(f'color: {COLOR_TEXT};')
        layout.addWidget(self._msg_label)
        self._status_label = QLabel('Initializing...')
        self._status_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._status_label.setFont(QFont('Arial', 10))
        self._status_label.setStyleSheet(f'color: {COLOR_ACCENT};')
        layout.addWidget(self._status_label)
        if parent:
            pg = parent.geometry()
            self.move(pg.x() + (pg.width() - self.width()) // 2, pg.y() + (pg.height() - self.height()) // 2)

    def set_status(self, text: str):
        self._status_label.setText(text)
        QApplication.processEvents()

class NitroToolGUI(QMainWindow):

    def __init__(self):
        super().__init__()
        self.setWindowTitle('Nitro ROM Tool')
        self.resize(WINDOW_WIDTH, WINDOW_HEIGHT)
        self.setStyleSheet(GLOBAL_STYLE)
        self.rom_selector = ROMSelector()
        self._build_ui()
        self._reset_ui_state()

    def _build_ui(self):
        PAD = 20
        PAD_IN = 10
        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QHBoxLayout(central)
        main_layout.setContentsMargins(PAD, PAD, PAD, PAD)
        main_layout.setSpacing(PAD_IN)
        left = QWidget()
        left.setFixedWidth(220)
        vbox = QVBoxLayout(left)
        vbox.setContentsMargins(0, 0, 0, 0)
        vbox.setSpacing(10)
        self.btn_rom = _primary_btn('OPEN ROM')
        self.btn_rom.clicked.connect(self._on_open_rom)
        vbox.addWidget(self.btn_rom)
        self.btn_extract = _primary_btn('EXTRACT ROM')
        self.btn_extract.clicked.connect(self._on_extract_rom)
        vbox.addWidget(self.btn_extract)
        self.btn_build = _primary_btn('BUILD ROM')
        self.btn_build.clicked.connect(self._on_build_rom)
        vbox.addWidget(self.btn_build)
        vbox.addStretch()
        main_layout.addWidget(left)
        panel = _panel_frame()
        panel_layout = QVBoxLayout(panel)
        panel_layout.setContentsMargins(PAD_IN, PAD_IN, PAD_IN, PAD_IN)
        title = QLabel('ROM CONTENTS')
        title.setFont(QFont('Arial', 12, QFont.Weight.Bold))
        panel_layout.addWidget(title)
        self.info_view = QPlainTextEdit()
        self.info_view.setReadOnly(True)
        self.info_view.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
        panel_layout.addWidget(self.info_view)
        main_layout.addWidget(panel, 1)
        self._status_lbl = QLabel('Ready')
        self._status_lbl.setFont(QFont('Arial', 11))
        self.statusBar().addWidget(self._status_lbl, 1)

    def _reset_ui_state(self):
        self.btn_extract.setEnabled(False)
        self.info_view.setPlainText('\n'.join(self.rom_selector.get_info_lines()))

    def _set_status(self, text: str):
        self._status_lbl.setText(text)

    def _on_open_rom(self):
        file_path, _ = QFileDialog.getOpenFileName(self, 'Select NDS ROM', '', 'NDS ROM files (*.nds);;All files (*.*)')
        if not file_path:
            return
        self.load_rom(Path(file_path))

    def load_rom(self, rom_path: Path) -> bool:
        if not self.rom_selector.set_rom(rom_path):
            QMessageBox.critical(self, 'Error', f'Invalid NDS ROM file:\n{rom_path}')
            self._reset_ui_state()
            return False
        self.info_view.setPlainText('\n'.join(self.rom_selector.get_info_lines()))
        self.btn_extract.setEnabled(True)
        self._set_status(f'Loaded {rom_path.name}')
        return True

    def _on_extract_rom(self):
        default_dir = str(self.rom_selector.extracted_path or '')
        out_dir = QFileDialog.getExistingDirectory(self, 'Select extraction folder', default_dir)
        if not out_dir:
            return
        dialog = ProgressDialog(self, 'Extracting', f'Extracting {self.rom_selector.rom_path.name}...')
        dialog.show()
        try:
            success, message = self.rom_selector.extract_rom(out_dir, dialog.set_status)
        finally:
            dialog.close()
        self._report(success, message, 'Extraction')

    def _on_build_rom(self):
        source_dir = QFileDialog.getExistingDirectory(self, 'Select extracted ROM folder')
        if not source_dir:
            return
        output_path, _ = QFileDialog.getSaveFileName(self, 'Save ROM as', str(Path(source_dir).with_suffix('.nds')), 'NDS ROM files (*.nds)')
        if not output_path:
            return
        dialog = ProgressDialog(self, 'Building', f'Building {Path(output_path).name}...')
        dialog.show()
        try:
            success, message = self.rom_selector.build_rom(source_dir, output_path, dialog.set_status)
        finally:
            dialog.close()
        self._report(success, message, 'Build')
        if success:
            self.load_rom(Path(output_path))

    def _report(self, success: bool, message: str, action: str):
        if success:
            self._set_status(f'{action} complete')
            QMessageBox.information(self, f'{action} Complete', message)
        else:
            self._set_status(f'{action} failed')
            QMessageBox.critical(self, f'{action} Failed', message)

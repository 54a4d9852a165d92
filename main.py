import sys
from PyQt6.QtWidgets import QApplication
from gui.gui import NitroToolGUI

def main():
    app = QApplication(sys.argv)
    window = NitroToolGUI()
    window.show()
    sys.exit(app.exec())
if __name__ == '__main__':
    main()

#!/usr/bin/env python3
"""
FX Volatility Import

Loads FX volatility surfaces from Bloomberg and hands them to MX3 through
the XML file drop on the shared import directory.
"""

import sys
import os
import logging
from datetime import datetime

from PyQt6.QtWidgets import QApplication
from PyQt6.QtGui import QFont

from fxvol.gui.main_window import MainWindow
from fxvol.utils.config_loader import ConfigLoader


def setup_logging(config: ConfigLoader):
    """Configure application logging."""
    log_dir = config.log_directory
    os.makedirs(log_dir, exist_ok=True)

    log_file = os.path.join(log_dir, f'fxvol_import_{datetime.now().strftime("%Y%m%d")}.log')

    logging.basicConfig(
        level=getattr(logging, str(config.log_level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Reduce noise from external libraries
    logging.getLogger('blpapi').setLevel(logging.WARNING)
    logging.getLogger('PyQt6').setLevel(logging.WARNING)


def main():
    """Main application entry point."""
    config = ConfigLoader()
    setup_logging(config)
    logger = logging.getLogger(__name__)

    logger.info("Starting FX Volatility Import")
    logger.info(f"Export directory: {config.export_directory}")

    app = QApplication(sys.argv)

    app.setApplicationName("FX Volatility Import")
    app.setOrganizationName("FX Trading")
    app.setApplicationVersion("1.0.0")

    app.setFont(QFont("Segoe UI", 10))

    window = MainWindow()
    window.show()

    logger.info("Application started successfully")

    return app.exec()


if __name__ == "__main__":
    sys.exit(main())

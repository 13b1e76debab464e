"""
BugBoard - Desktop Bug Tracker Client
=====================================

Main entry point for the BugBoard desktop client. The client talks to the
BugBoard REST backend to list, create and comment on issues and, for
administrators, to create user accounts.
"""

import sys
import os
import logging

# ============================================================================
# PYTHONW COMPATIBILITY - NULL STREAM SAFETY
# ============================================================================
# Under pythonw.exe sys.stdout and sys.stderr are None, which breaks the
# console log handler.
if sys.stdout is None:
    sys.stdout = open(os.devnull, 'w')
if sys.stderr is None:
    sys.stderr = open(os.devnull, 'w')

current_dir = os.path.dirname(os.path.abspath(__file__))

# ============================================================================
# LOGGING INITIALIZATION
# ============================================================================
# Logging is configured before any application module is imported.
from bugboard.utils.logger import setup_logging
log_file = setup_logging()

from bugboard.ui.app import App


def main():
    """
    Create the main window and run the Tk event loop until it closes.
    Fatal errors are logged with their stack trace and re-raised.
    """
    logger = logging.getLogger(__name__)

    try:
        logger.info("Initializing BugBoard client")
        logger.info(f"Python version: {sys.version}")
        logger.info(f"Working directory: {current_dir}")
        logger.info(f"Logging to {log_file}")

        app = App()
        logger.info("Application window created successfully")

        app.mainloop()

    except Exception as e:
        logger.critical(f"Fatal error in main application: {e}", exc_info=True)
        raise
    finally:
        logger.info("Application shutdown")
        from bugboard.utils.logger import shutdown_logging
        shutdown_logging()


# ============================================================================
# APPLICATION ENTRY POINT
# ============================================================================
if __name__ == "__main__":
    main()

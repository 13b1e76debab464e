"""
BugBoard Main Application Window
================================

Root CustomTkinter window of the BugBoard client. It owns the client core
(Session, EntityStore, ApiClient, controllers) and swaps between two steps
inside a single container:

- LoginStep: credentials form.
- DashboardStep: issue list, issue creation, comments and admin user creation.

Background work finishes on the Tk main loop through a ``TkDispatcher`` that
the window pumps with ``after``; no other thread touches a widget.

Usage:
------
    >>> from bugboard.ui.app import App
    >>> app = App()
    >>> app.mainloop()
"""

import customtkinter as ctk
import logging

from bugboard.core.api_client import ApiClient
from bugboard.core.config import APP_NAME, DISPATCH_POLL_INTERVAL_MS, GEOMETRY
from bugboard.core.controllers import AuthController, CommentController, IssueController, UserController
from bugboard.core.services import Services
from bugboard.core.session import Session
from bugboard.core.store import EntityStore
from bugboard.utils.background_worker import TaskRunner, TkDispatcher
from bugboard.utils.config_manager import effective_api_url, load_config, save_config


class App(ctk.CTk):
    """
    Main application window and step coordinator.

    Attributes:
        settings: Persisted ClientSettings (URL, last email, appearance)
        session: Authentication state shared by every controller
        store: EntityStore observed by the dashboard
        auth / issues / users / comments: Controllers used by the steps
        steps (dict): Step name -> frame
    """

    def __init__(self):
        super().__init__()

        self.logger = logging.getLogger(__name__)
        self.logger.info("Initializing main application window")

        self.title(APP_NAME)
        self.geometry(GEOMETRY)

        self.logger.info("Loading saved configuration")
        self.settings = load_config()

        ctk.set_appearance_mode(self.settings.appearance_mode or "Dark")
        ctk.set_default_color_theme("blue")

        self.grid_rowconfigure(0, weight=1)
        self.grid_columnconfigure(0, weight=1)

        self._build_core()

        self.protocol("WM_DELETE_WINDOW", self.on_close)

        self.container = ctk.CTkFrame(self)
        self.container.grid(row=0, column=0, sticky="nsew")
        self.container.grid_rowconfigure(0, weight=1)
        self.container.grid_columnconfigure(0, weight=1)

        self.steps = {}

        from bugboard.ui.steps import DashboardStep, LoginStep

        self.logger.info("Creating UI steps")
        for F in (LoginStep, DashboardStep):
            page_name = F.__name__
            self.logger.debug(f"Creating step: {page_name}")
            frame = F(parent=self.container, controller=self)
            self.steps[page_name] = frame
            frame.grid(row=0, column=0, sticky="nsew")

        self.show_step("LoginStep")

    def _build_core(self):
        """Create the client core. The Tk thread becomes the store's owner."""
        self.session = Session()
        self.store = EntityStore()

        self.dispatcher = TkDispatcher(self, interval_ms=DISPATCH_POLL_INTERVAL_MS)
        self.runner = TaskRunner(self.dispatcher)

        self.api = ApiClient(self.session, effective_api_url(self.settings))
        self.services = Services(self.api)

        self.issues = IssueController(self.session, self.store, self.services, self.runner)
        self.users = UserController(self.session, self.store, self.services, self.runner)
        self.comments = CommentController(self.session, self.store, self.services, self.runner)
        self.auth = AuthController(self.session, self.services, self.issues, self.runner)

        self.dispatcher.start()

    def show_step(self, page_name: str):
        """Raise the named step and let it refresh itself."""
        self.logger.info(f"Navigating to step: {page_name}")
        frame = self.steps[page_name]
        frame.tkraise()
        if hasattr(frame, 'refresh'):
            frame.refresh()

    def on_login(self, email: str):
        self.settings.last_email = email
        self.show_step("DashboardStep")

    def logout(self):
        self.auth.logout()
        self.store.clear()
        self.show_step("LoginStep")

    def on_close(self):
        """Stop the dispatcher, persist settings and destroy the window."""
        self.logger.info("Application close requested - starting shutdown sequence")

        for name, step in self.steps.items():
            if hasattr(step, 'shutdown'):
                try:
                    step.shutdown()
                except Exception as e:
                    self.logger.error(f"Error shutting down step {name}: {e}")

        self.dispatcher.stop()
        self.runner.shutdown(wait=False)

        try:
            self.settings.appearance_mode = ctk.get_appearance_mode()
        except Exception as e:
            self.logger.debug(f"Could not read appearance mode: {e}")
        save_config(self.settings)

        self.logger.info("Destroying window and exiting")
        self.destroy()


if __name__ == "__main__":
    app = App()
    app.mainloop()

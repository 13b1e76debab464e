"""
Login Step
==========

Email/password form shown at startup and after logout. The request runs in
the background; the button stays disabled until the answer is back on the
Tk loop.
"""

import customtkinter as ctk
import logging


class LoginStep(ctk.CTkFrame):
    """
    Attributes:
        controller: The main App instance
        email_entry / password_entry: Credential inputs
        status_label: Shows progress and login errors
    """

    def __init__(self, parent, controller):
        super().__init__(parent)
        self.controller = controller
        self.logger = logging.getLogger(__name__)
        self._pending_email = ""

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(0, weight=1)

        self.container = ctk.CTkFrame(self)
        self.container.grid(row=0, column=0, padx=20, pady=20)

        title = ctk.CTkLabel(self.container, text="BugBoard", font=("Roboto", 28, "bold"))
        title.pack(pady=(30, 10), padx=60)
        ctk.CTkLabel(self.container, text="Sign in to continue", text_color="gray").pack(pady=(0, 20))

        self.email_entry = ctk.CTkEntry(self.container, placeholder_text="Email", width=280)
        self.email_entry.pack(pady=5, padx=40)

        self.password_entry = ctk.CTkEntry(self.container, placeholder_text="Password", show="*", width=280)
        self.password_entry.pack(pady=5, padx=40)
        self.password_entry.bind("<Return>", lambda e: self.attempt_login())

        self.login_button = ctk.CTkButton(self.container, text="Login", width=280, height=36, command=self.attempt_login)
        self.login_button.pack(pady=(15, 5), padx=40)

        self.status_label = ctk.CTkLabel(self.container, text="", text_color="gray")
        self.status_label.pack(pady=(5, 25))

    def refresh(self):
        """Prefill the last email and clear the password."""
        last_email = self.controller.settings.last_email
        self.email_entry.delete(0, "end")
        if last_email:
            self.email_entry.insert(0, last_email)
        self.password_entry.delete(0, "end")
        self.status_label.configure(text="", text_color="gray")
        self.login_button.configure(state="normal")

    def attempt_login(self):
        email = self.email_entry.get().strip()
        password = self.password_entry.get()

        if not email or not password:
            self.status_label.configure(text="Please enter email and password", text_color="orange")
            return

        self._pending_email = email
        self.login_button.configure(state="disabled")
        self.status_label.configure(text="Signing in...", text_color="gray")
        self.logger.info(f"Login requested for {email}")
        self.controller.auth.login_async(email, password, self._on_login_done)

    def _on_login_done(self, success: bool):
        self.login_button.configure(state="normal")
        if success:
            self.status_label.configure(text="")
            self.controller.on_login(self._pending_email)
        else:
            self.password_entry.delete(0, "end")
            self.status_label.configure(text="Login failed. Check your credentials and server.", text_color="red")

"""
Dashboard Step
==============

Main working screen after login.

Layout:
-------
- Left: issue list with type/state filters and a free-text search. The list
  re-renders whenever the store's issue collection changes.
- Right (tabs):
    - Details: selected issue, image preview and its comments.
    - New Issue: creation form with optional image attachment.
    - Users: account creation, enabled for administrators only.
"""

import customtkinter as ctk
import logging
from tkinter import filedialog, messagebox

from bugboard.core.config import SUPPORTED_IMAGE_EXTENSIONS
from bugboard.core.errors import BugBoardError
from bugboard.core.images import load_preview
from bugboard.core.models import IssueState, IssueType, Priority, UserType

ALL = "All"


class DashboardStep(ctk.CTkFrame):
    def __init__(self, parent, controller):
        super().__init__(parent)
        self.controller = controller
        self.logger = logging.getLogger(__name__)
        self.selected_issue = None
        self._preview_image = None
        self._image_path = None

        self.grid_columnconfigure(0, weight=2)
        self.grid_columnconfigure(1, weight=3)
        self.grid_rowconfigure(1, weight=1)

        self._build_header()
        self._build_issue_list()
        self._build_tabs()

        self.controller.store.issues.add_listener(self._on_issues_changed)

    # ------------------------------------------------------------------------
    # LAYOUT
    # ------------------------------------------------------------------------

    def _build_header(self):
        header = ctk.CTkFrame(self, fg_color="transparent")
        header.grid(row=0, column=0, columnspan=2, sticky="ew", padx=20, pady=(15, 5))

        self.user_label = ctk.CTkLabel(header, text="", font=("Roboto", 16, "bold"))
        self.user_label.pack(side="left")

        ctk.CTkButton(header, text="Logout", width=100, command=self.controller.logout).pack(side="right")
        ctk.CTkButton(header, text="Refresh", width=100, command=self.refresh_issues).pack(side="right", padx=10)

    def _build_issue_list(self):
        left = ctk.CTkFrame(self)
        left.grid(row=1, column=0, sticky="nsew", padx=(20, 10), pady=10)
        left.grid_columnconfigure(0, weight=1)
        left.grid_rowconfigure(2, weight=1)

        filters = ctk.CTkFrame(left, fg_color="transparent")
        filters.grid(row=0, column=0, sticky="ew", padx=10, pady=(10, 5))

        self.type_filter = ctk.CTkOptionMenu(
            filters, values=[ALL] + [t.label for t in IssueType], command=lambda _: self.apply_filters()
        )
        self.type_filter.pack(side="left", padx=(0, 10))

        self.state_filter = ctk.CTkOptionMenu(
            filters, values=[ALL] + [s.label for s in IssueState], command=lambda _: self.apply_filters()
        )
        self.state_filter.pack(side="left")

        self.search_entry = ctk.CTkEntry(left, placeholder_text="Search title or description...")
        self.search_entry.grid(row=1, column=0, sticky="ew", padx=10, pady=5)
        self.search_entry.bind("<KeyRelease>", lambda e: self.apply_filters())

        self.issue_list = ctk.CTkScrollableFrame(left)
        self.issue_list.grid(row=2, column=0, sticky="nsew", padx=10, pady=(5, 10))
        self._issue_rows = []

        self.count_label = ctk.CTkLabel(left, text="", text_color="gray")
        self.count_label.grid(row=3, column=0, sticky="w", padx=10, pady=(0, 10))

    def _build_tabs(self):
        self.tabs = ctk.CTkTabview(self)
        self.tabs.grid(row=1, column=1, sticky="nsew", padx=(10, 20), pady=10)
        self._build_details_tab(self.tabs.add("Details"))
        self._build_new_issue_tab(self.tabs.add("New Issue"))
        self._build_users_tab(self.tabs.add("Users"))

    def _build_details_tab(self, tab):
        tab.grid_columnconfigure(0, weight=1)
        tab.grid_rowconfigure(3, weight=1)

        self.detail_title = ctk.CTkLabel(tab, text="Select an issue", font=("Roboto", 18, "bold"), anchor="w")
        self.detail_title.grid(row=0, column=0, sticky="ew", padx=10, pady=(10, 0))

        self.detail_meta = ctk.CTkLabel(tab, text="", text_color="gray", anchor="w")
        self.detail_meta.grid(row=1, column=0, sticky="ew", padx=10)

        self.detail_body = ctk.CTkLabel(tab, text="", anchor="w", justify="left", wraplength=450)
        self.detail_body.grid(row=2, column=0, sticky="ew", padx=10, pady=5)

        lower = ctk.CTkFrame(tab, fg_color="transparent")
        lower.grid(row=3, column=0, sticky="nsew", padx=10)
        lower.grid_columnconfigure(1, weight=1)
        lower.grid_rowconfigure(0, weight=1)

        self.preview_label = ctk.CTkLabel(lower, text="")
        self.preview_label.grid(row=0, column=0, sticky="n", padx=(0, 10))

        self.comment_box = ctk.CTkTextbox(lower, state="disabled")
        self.comment_box.grid(row=0, column=1, sticky="nsew")

        entry_row = ctk.CTkFrame(tab, fg_color="transparent")
        entry_row.grid(row=4, column=0, sticky="ew", padx=10, pady=10)

        self.comment_entry = ctk.CTkEntry(entry_row, placeholder_text="Write a comment...")
        self.comment_entry.pack(side="left", fill="x", expand=True, padx=(0, 10))
        ctk.CTkButton(entry_row, text="Comment", width=100, command=self.submit_comment).pack(side="right")

    def _build_new_issue_tab(self, tab):
        tab.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(tab, text="Title").grid(row=0, column=0, sticky="w", padx=10, pady=5)
        self.title_entry = ctk.CTkEntry(tab)
        self.title_entry.grid(row=0, column=1, sticky="ew", padx=10, pady=5)

        ctk.CTkLabel(tab, text="Description").grid(row=1, column=0, sticky="nw", padx=10, pady=5)
        self.description_box = ctk.CTkTextbox(tab, height=120)
        self.description_box.grid(row=1, column=1, sticky="ew", padx=10, pady=5)

        ctk.CTkLabel(tab, text="Type").grid(row=2, column=0, sticky="w", padx=10, pady=5)
        self.type_menu = ctk.CTkOptionMenu(tab, values=[t.label for t in IssueType])
        self.type_menu.grid(row=2, column=1, sticky="w", padx=10, pady=5)

        ctk.CTkLabel(tab, text="Priority").grid(row=3, column=0, sticky="w", padx=10, pady=5)
        self.priority_menu = ctk.CTkOptionMenu(tab, values=[p.label for p in Priority])
        self.priority_menu.set(Priority.MEDIUM.label)
        self.priority_menu.grid(row=3, column=1, sticky="w", padx=10, pady=5)

        ctk.CTkLabel(tab, text="State").grid(row=4, column=0, sticky="w", padx=10, pady=5)
        self.state_menu = ctk.CTkOptionMenu(tab, values=[s.label for s in IssueState])
        self.state_menu.grid(row=4, column=1, sticky="w", padx=10, pady=5)

        image_row = ctk.CTkFrame(tab, fg_color="transparent")
        image_row.grid(row=5, column=1, sticky="ew", padx=10, pady=5)
        ctk.CTkButton(image_row, text="Attach Image", width=120, command=self.browse_image).pack(side="left")
        self.image_label = ctk.CTkLabel(image_row, text="No image", text_color="gray")
        self.image_label.pack(side="left", padx=10)

        self.create_issue_button = ctk.CTkButton(tab, text="Create Issue", command=self.submit_issue)
        self.create_issue_button.grid(row=6, column=1, sticky="e", padx=10, pady=15)

    def _build_users_tab(self, tab):
        tab.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(tab, text="Email").grid(row=0, column=0, sticky="w", padx=10, pady=5)
        self.new_user_email = ctk.CTkEntry(tab)
        self.new_user_email.grid(row=0, column=1, sticky="ew", padx=10, pady=5)

        ctk.CTkLabel(tab, text="Password").grid(row=1, column=0, sticky="w", padx=10, pady=5)
        self.new_user_password = ctk.CTkEntry(tab, show="*")
        self.new_user_password.grid(row=1, column=1, sticky="ew", padx=10, pady=5)

        ctk.CTkLabel(tab, text="Role").grid(row=2, column=0, sticky="w", padx=10, pady=5)
        self.role_menu = ctk.CTkOptionMenu(tab, values=[r.value for r in UserType])
        self.role_menu.set(UserType.USER.value)
        self.role_menu.grid(row=2, column=1, sticky="w", padx=10, pady=5)

        self.create_user_button = ctk.CTkButton(tab, text="Create User", command=self.submit_user)
        self.create_user_button.grid(row=3, column=1, sticky="e", padx=10, pady=15)

        self.users_status = ctk.CTkLabel(tab, text="", text_color="gray")
        self.users_status.grid(row=4, column=0, columnspan=2, sticky="w", padx=10)

    # ------------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------------

    def refresh(self):
        """Called when the step is raised after login."""
        user = self.controller.session.user
        if user is None:
            return
        self.user_label.configure(text=f"{user.username} ({user.role.value})")
        admin = user.is_admin
        self.create_user_button.configure(state="normal" if admin else "disabled")
        self.users_status.configure(text="" if admin else "Only administrators can create users")
        if admin:
            self.controller.users.refresh(on_failure=self._on_users_unavailable)
        self.apply_filters()

    def shutdown(self):
        self.controller.store.issues.remove_listener(self._on_issues_changed)

    def refresh_issues(self):
        self.controller.issues.refresh(on_failure=self._show_error("Could not refresh issues"))

    # ------------------------------------------------------------------------
    # ISSUE LIST
    # ------------------------------------------------------------------------

    def _on_issues_changed(self, event):
        self.apply_filters()

    def current_filters(self):
        """Return (text, issue_type, state) from the filter widgets; "All" maps to None."""
        type_value = self.type_filter.get()
        state_value = self.state_filter.get()
        issue_type = None if type_value == ALL else IssueType.parse(type_value)
        state = None if state_value == ALL else IssueState.parse(state_value)
        return self.search_entry.get().strip(), issue_type, state

    def apply_filters(self):
        text, issue_type, state = self.current_filters()
        issues = self.controller.issues.search(text, issue_type, state)
        self._render_issues(issues)
        return issues

    def _render_issues(self, issues):
        for row in self._issue_rows:
            row.destroy()
        self._issue_rows = []

        for issue in issues:
            row = ctk.CTkButton(
                self.issue_list,
                text=f"#{issue.id}  [{issue.state}]  {issue.title}",
                anchor="w",
                fg_color="transparent",
                command=lambda i=issue: self.select_issue(i)
            )
            row.pack(fill="x", pady=2)
            self._issue_rows.append(row)

        total = len(self.controller.store.issues)
        self.count_label.configure(text=f"{len(issues)} of {total} issues")

    # ------------------------------------------------------------------------
    # DETAILS & COMMENTS
    # ------------------------------------------------------------------------

    def select_issue(self, issue):
        self.selected_issue = issue
        self.tabs.set("Details")
        self.detail_title.configure(text=f"#{issue.id} {issue.title}")
        reporter = issue.reporter.username if issue.reporter else "unknown"
        self.detail_meta.configure(text=f"{issue.type} | {issue.priority} | {issue.state} | by {reporter}")
        self.detail_body.configure(text=issue.description)
        self.preview_label.configure(image=None, text="")
        self._preview_image = None
        self._render_comments(issue.comments)

        self.controller.comments.load_comments(
            issue,
            on_success=lambda comments: self._on_comments_loaded(issue, comments),
            on_failure=self._show_error("Could not load comments")
        )
        if issue.image_path:
            self.controller.issues.download_image(
                issue.image_path,
                on_success=lambda data: self._show_preview(issue, data),
                on_failure=lambda e: self.logger.warning(f"Image preview unavailable: {e}")
            )

    def _on_comments_loaded(self, issue, comments):
        if issue is self.selected_issue:
            self._render_comments(comments)

    def _render_comments(self, comments):
        self.comment_box.configure(state="normal")
        self.comment_box.delete("1.0", "end")
        for comment in comments:
            author = comment.author.username if comment.author else "unknown"
            self.comment_box.insert("end", f"{author} - {comment.relative_time()}\n{comment.content}\n\n")
        self.comment_box.configure(state="disabled")

    def _show_preview(self, issue, data):
        if issue is not self.selected_issue:
            return
        try:
            img = load_preview(data)
        except ValueError as e:
            self.logger.warning(f"Cannot show image for issue {issue.id}: {e}")
            self.preview_label.configure(text="Image unavailable")
            return
        self._preview_image = ctk.CTkImage(light_image=img, dark_image=img, size=img.size)
        self.preview_label.configure(image=self._preview_image, text="")

    def submit_comment(self):
        if self.selected_issue is None:
            messagebox.showwarning("No issue", "Select an issue first.")
            return
        issue = self.selected_issue
        try:
            self.controller.comments.add_comment(
                issue,
                self.comment_entry.get(),
                on_success=lambda c: self._on_comments_loaded(issue, issue.comments),
                on_failure=self._show_error("Could not add comment")
            )
        except BugBoardError as e:
            messagebox.showwarning("Invalid comment", str(e))
            return
        self.comment_entry.delete(0, "end")

    # ------------------------------------------------------------------------
    # NEW ISSUE
    # ------------------------------------------------------------------------

    def browse_image(self):
        patterns = " ".join(SUPPORTED_IMAGE_EXTENSIONS)
        path = filedialog.askopenfilename(filetypes=[("Images", patterns)])
        if path:
            self._image_path = path
            self.image_label.configure(text=path.replace("\\", "/").split("/")[-1])

    def submit_issue(self):
        try:
            self.controller.issues.create_issue(
                self.title_entry.get(),
                self.description_box.get("1.0", "end"),
                IssueType.parse(self.type_menu.get()),
                Priority.parse(self.priority_menu.get()),
                IssueState.parse(self.state_menu.get()),
                image_path=self._image_path,
                on_success=self._on_issue_created,
                on_failure=self._show_error("Could not create issue"),
                on_image_failure=lambda issue, e: messagebox.showwarning(
                    "Image not uploaded", f"Issue #{issue.id} was created but its image could not be uploaded."
                )
            )
        except BugBoardError as e:
            messagebox.showwarning("Invalid issue", str(e))
            return
        self.create_issue_button.configure(state="disabled")

    def _on_issue_created(self, issue):
        self.create_issue_button.configure(state="normal")
        self.title_entry.delete(0, "end")
        self.description_box.delete("1.0", "end")
        self._image_path = None
        self.image_label.configure(text="No image")
        self.select_issue(issue)

    # ------------------------------------------------------------------------
    # USERS
    # ------------------------------------------------------------------------

    def submit_user(self):
        email = self.new_user_email.get()
        try:
            self.controller.users.create_user(
                email,
                self.new_user_password.get(),
                UserType(self.role_menu.get()),
                on_success=self._on_user_created,
                on_failure=self._show_error("Could not create user")
            )
        except BugBoardError as e:
            self.users_status.configure(text=str(e), text_color="orange")
            return
        self.users_status.configure(text=f"Creating {email.strip().lower()}...", text_color="gray")

    def _on_users_unavailable(self, error):
        # Duplicate checks then rely on the backend existence lookup only
        self.users_status.configure(
            text="User list unavailable; duplicates are checked on the server", text_color="orange"
        )

    def _on_user_created(self, user):
        self.new_user_email.delete(0, "end")
        self.new_user_password.delete(0, "end")
        self.users_status.configure(text=f"User {user.username} created", text_color="green")

    # ------------------------------------------------------------------------

    def _show_error(self, title):
        def _handle(error):
            self.create_issue_button.configure(state="normal")
            messagebox.showerror(title, str(error))
        return _handle

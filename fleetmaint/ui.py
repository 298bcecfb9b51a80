"""
Design (ui.py)
- Purpose: Build and manage the Tkinter UI (login, tabs, Treeviews, dialogs, logs panel).
- Inputs: FleetRepo (shared state) and Session (who is logged in).
- Outputs: None (renders UI, dispatches mutations to FleetRepo).
- Side effects: Creates windows; shows desktop notifications for new feed entries.
- Thread-safety: UI code runs on main thread; log records and repo notifications are marshalled
                 through Tk.after().

Every mutating control is enabled only when policy.can() allows it for the current user.
"""

import logging
import tkinter as tk
from datetime import date, datetime
from tkinter import messagebox, ttk
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .config import APP_NAME, LOG_MAX_LINES, UPCOMING_LIMIT
from .forms import (
    ChoiceLookups,
    ComponentDraft,
    FieldErrors,
    JobDraft,
    ShipDraft,
    choice_labels,
    resolve_choices,
    validate_login,
)
from .models import (
    Component,
    Job,
    JobPriority,
    JobStatus,
    JobType,
    Notification,
    ShipStatus,
)
from .policy import Action, can
from .repository import FleetError, FleetRepo, ValidationFailed
from .session import CREDENTIALS, Session, engineers, find_user
from .storage import StorageError
from .utils import format_date, notify_desktop
from . import views

log = logging.getLogger(__name__)

BG = "#1e1e1e"
PANEL = "#2b2b2b"
FG = "#f0f0f0"

PRIORITY_COLORS = {
    JobPriority.LOW: "#7CFC00",
    JobPriority.MEDIUM: "#FFD700",
    JobPriority.HIGH: "#FFA500",
    JobPriority.CRITICAL: "#FF6A6A",
}

# (field key, label, choices or None for a free-text entry)
FormField = Tuple[str, str, Optional[Sequence[str]]]


class UILogHandler(logging.Handler):
    """Forwards log records to the Logs panel on the Tk main thread."""

    def __init__(self, ui: "AppUI") -> None:
        super().__init__()
        self.ui = ui

    def emit(self, record: logging.LogRecord) -> None:
        line = self.format(record) + "\n"
        self.ui.root.after(0, lambda: self.ui._append_log(line))


class AppUI:
    """
    Design (AppUI)
    - Purpose: Encapsulate all UI creation and behavior.
    - Public attributes:
        enable_notifications (tk.BooleanVar): mirror feed entries as desktop notifications
        show_logs (tk.BooleanVar): toggles visibility of the logs panel
    - Public methods:
        schedule_refresh(): thread-safe way to repaint every tab from a fresh snapshot
        on_notification(): FleetRepo listener
    """

    def __init__(self, root: tk.Tk, repo: FleetRepo, session: Session):
        self.root = root
        self.repo = repo
        self.session = session

        self.enable_notifications = tk.BooleanVar(value=True)
        self.show_logs = tk.BooleanVar(value=False)
        self.calendar_month = (date.today().year, date.today().month)
        self._controls: List[Tuple[ttk.Widget, Action]] = []

        self.root.title(APP_NAME)
        self.root.rowconfigure(1, weight=1)
        self.root.columnconfigure(0, weight=1)
        self.root.configure(bg=BG)
        self._configure_style()

        self._build_header()
        self.notebook = ttk.Notebook(self.root)
        self.notebook.grid(row=1, column=0, sticky="nsew", padx=10, pady=(0, 5))
        self._build_dashboard_tab()
        self._build_ships_tab()
        self._build_jobs_tab()
        self._build_calendar_tab()
        self._build_notifications_tab()

        self.logs_box = tk.Text(self.root, height=8, bg="#1b1b1b", fg="#dddddd", wrap="none")
        self.logs_box.configure(state="disabled")
        self.logs_box.grid(row=2, column=0, sticky="ew", padx=10, pady=(0, 10))
        self.logs_box.grid_remove()  # hidden by default

        self.log_handler = UILogHandler(self)
        self.log_handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(message)s",
                                                        "%Y-%m-%d %H:%M:%S"))
        logging.getLogger("fleetmaint").addHandler(self.log_handler)

        self.repo.subscribe(self.on_notification)
        self.refresh_ui()

    # ---------- setup ----------

    def _configure_style(self) -> None:
        style = ttk.Style(self.root)
        style.theme_use("default")
        style.configure("Treeview", background=PANEL, foreground=FG, fieldbackground=PANEL,
                        rowheight=24, font=("Segoe UI", 10))
        style.configure("Treeview.Heading", background=BG, foreground="#ffffff",
                        font=("Segoe UI", 10, "bold"))
        style.map("Treeview", background=[("selected", "#444")], foreground=[])
        style.configure("TFrame", background=BG)
        style.configure("TLabel", background=BG, foreground=FG)

    def _label(self, parent, text="", **kw) -> tk.Label:
        opts = {"fg": FG, "bg": BG}
        opts.update(kw)
        return tk.Label(parent, text=text, **opts)

    def _gated_button(self, parent, text: str, command: Callable[[], None], action: Action) -> ttk.Button:
        button = ttk.Button(parent, text=text, command=command)
        self._controls.append((button, action))
        return button

    def _tree(self, parent, columns: Dict[str, str], height: int = 10) -> ttk.Treeview:
        tree = ttk.Treeview(parent, columns=tuple(columns), show="headings", height=height)
        for key, heading in columns.items():
            tree.heading(key, text=heading)
        tree.tag_configure("overdue", foreground="#FF6A6A")
        tree.tag_configure("done", foreground="#888888")
        return tree

    def _build_header(self) -> None:
        header = tk.Frame(self.root, bg=BG)
        header.grid(row=0, column=0, sticky="ew", padx=10, pady=(10, 5))
        self.user_label = self._label(header, font=("Segoe UI", 10, "bold"))
        self.user_label.pack(side=tk.LEFT, padx=5)
        self.login_button = ttk.Button(header, text="Log In", command=self.toggle_session)
        self.login_button.pack(side=tk.RIGHT, padx=5)
        tk.Checkbutton(header, text="Show Logs", variable=self.show_logs, fg="white", bg=BG,
                       selectcolor=PANEL, command=self.toggle_logs).pack(side=tk.RIGHT, padx=5)
        tk.Checkbutton(header, text="Enable Notifications", variable=self.enable_notifications,
                       fg="white", bg=BG, selectcolor=PANEL, activebackground=BG,
                       activeforeground="white").pack(side=tk.RIGHT, padx=5)

    def _build_dashboard_tab(self) -> None:
        tab = tk.Frame(self.notebook, bg=BG)
        self.notebook.add(tab, text="Dashboard")
        self.kpi_values: Dict[str, tk.Label] = {}
        self.kpi_details: Dict[str, tk.Label] = {}
        for col, title in enumerate(("Total Ships", "Active Jobs", "Overdue Maintenance", "Completed Jobs")):
            card = tk.Frame(tab, bg=PANEL, padx=12, pady=8)
            card.grid(row=0, column=col, sticky="nsew", padx=5, pady=5)
            tab.columnconfigure(col, weight=1)
            self._label(card, title, bg=PANEL).pack(anchor="w")
            self.kpi_values[title] = self._label(card, bg=PANEL, font=("Segoe UI", 18, "bold"))
            self.kpi_values[title].pack(anchor="w")
            self.kpi_details[title] = self._label(card, bg=PANEL, fg="gray")
            self.kpi_details[title].pack(anchor="w")
        self.critical_label = self._label(tab, fg="#FF6A6A", font=("Segoe UI", 10, "bold"))
        self.critical_label.grid(row=1, column=0, columnspan=4, sticky="w", padx=5)
        self.distribution_label = self._label(tab, justify="left", font=("Consolas", 10))
        self.distribution_label.grid(row=2, column=0, columnspan=4, sticky="w", padx=5, pady=10)

    def _build_ships_tab(self) -> None:
        tab = tk.Frame(self.notebook, bg=BG)
        tab.columnconfigure(0, weight=1)
        tab.rowconfigure(1, weight=1)
        tab.rowconfigure(4, weight=1)
        self.notebook.add(tab, text="Ships")

        bar = tk.Frame(tab, bg=BG)
        bar.grid(row=0, column=0, sticky="ew", pady=5)
        self.ship_search = tk.StringVar()
        self.ship_status = tk.StringVar(value=views.ALL)
        tk.Entry(bar, textvariable=self.ship_search, width=30).pack(side=tk.LEFT, padx=5)
        ttk.Combobox(bar, textvariable=self.ship_status, state="readonly", width=18,
                     values=[views.ALL] + [s.value for s in ShipStatus]).pack(side=tk.LEFT, padx=5)
        self.ship_search.trace_add("write", lambda *_: self.refresh_ui())
        self.ship_status.trace_add("write", lambda *_: self.refresh_ui())
        self._gated_button(bar, "Add Ship", self.add_ship, Action.CREATE_SHIP).pack(side=tk.LEFT, padx=5)
        self._gated_button(bar, "Edit Ship", self.edit_ship, Action.EDIT_SHIP).pack(side=tk.LEFT, padx=5)
        self._gated_button(bar, "Delete Ship", self.delete_ship, Action.DELETE_SHIP).pack(side=tk.LEFT, padx=5)

        self.ship_tree = self._tree(tab, {
            "name": "Ship", "imo": "IMO", "flag": "Flag", "status": "Status",
            "components": "Components", "active_jobs": "Active Jobs", "critical": "Critical",
        })
        self.ship_tree.grid(row=1, column=0, sticky="nsew", padx=5)
        self.ship_tree.bind("<<TreeviewSelect>>", lambda _e: self._refresh_ship_detail())

        cbar = tk.Frame(tab, bg=BG)
        cbar.grid(row=2, column=0, sticky="ew", pady=5)
        self.ship_detail = self._label(cbar, font=("Segoe UI", 10, "bold"))
        self.ship_detail.pack(side=tk.LEFT, padx=5)
        self._gated_button(cbar, "Add Component", self.add_component, Action.CREATE_COMPONENT).pack(side=tk.LEFT, padx=5)
        self._gated_button(cbar, "Edit Component", self.edit_component, Action.EDIT_COMPONENT).pack(side=tk.LEFT, padx=5)
        self._gated_button(cbar, "Delete Component", self.delete_component, Action.DELETE_COMPONENT).pack(side=tk.LEFT, padx=5)

        self.component_tree = self._tree(tab, {
            "name": "Component", "serial": "Serial #", "installed": "Installed",
            "maintained": "Last Maintenance", "overdue": "",
        }, height=6)
        self.component_tree.grid(row=3, column=0, sticky="nsew", padx=5)

        self._label(tab, "Maintenance History").grid(row=4, column=0, sticky="nw", padx=5, pady=(5, 0))
        self.history_tree = self._tree(tab, {
            "date": "Scheduled", "component": "Component", "type": "Type", "description": "Description",
        }, height=4)
        self.history_tree.grid(row=5, column=0, sticky="nsew", padx=5, pady=(0, 5))

    def _build_jobs_tab(self) -> None:
        tab = tk.Frame(self.notebook, bg=BG)
        tab.columnconfigure(0, weight=1)
        tab.rowconfigure(1, weight=1)
        self.notebook.add(tab, text="Jobs")

        bar = tk.Frame(tab, bg=BG)
        bar.grid(row=0, column=0, sticky="ew", pady=5)
        self.job_search = tk.StringVar()
        self.job_status = tk.StringVar(value=views.ALL)
        self.job_priority = tk.StringVar(value=views.ALL)
        tk.Entry(bar, textvariable=self.job_search, width=30).pack(side=tk.LEFT, padx=5)
        ttk.Combobox(bar, textvariable=self.job_status, state="readonly", width=12,
                     values=[views.ALL] + [s.value for s in JobStatus]).pack(side=tk.LEFT, padx=5)
        ttk.Combobox(bar, textvariable=self.job_priority, state="readonly", width=10,
                     values=[views.ALL] + [p.value for p in JobPriority]).pack(side=tk.LEFT, padx=5)
        for var in (self.job_search, self.job_status, self.job_priority):
            var.trace_add("write", lambda *_: self.refresh_ui())
        self._gated_button(bar, "Create Job", self.add_job, Action.CREATE_JOB).pack(side=tk.LEFT, padx=5)
        self._gated_button(bar, "Edit Job", self.edit_job, Action.EDIT_JOB).pack(side=tk.LEFT, padx=5)
        self._gated_button(bar, "Delete Job", self.delete_job, Action.DELETE_JOB).pack(side=tk.LEFT, padx=5)

        self.new_status = tk.StringVar(value=JobStatus.IN_PROGRESS.value)
        status_box = ttk.Combobox(bar, textvariable=self.new_status, state="readonly", width=12,
                                  values=[s.value for s in JobStatus])
        status_box.pack(side=tk.LEFT, padx=(15, 5))
        self._controls.append((status_box, Action.UPDATE_JOB_STATUS))
        self._gated_button(bar, "Set Status", self.set_job_status, Action.UPDATE_JOB_STATUS).pack(side=tk.LEFT)

        self.job_tree = self._tree(tab, {
            "ship": "Ship", "component": "Component", "type": "Type", "priority": "Priority",
            "status": "Status", "scheduled": "Scheduled", "engineer": "Engineer", "overdue": "",
        })
        self.job_tree.grid(row=1, column=0, sticky="nsew", padx=5, pady=(0, 5))

    def _build_calendar_tab(self) -> None:
        tab = tk.Frame(self.notebook, bg=BG)
        self.notebook.add(tab, text="Calendar")
        bar = tk.Frame(tab, bg=BG)
        bar.grid(row=0, column=0, columnspan=7, sticky="ew", pady=5)
        ttk.Button(bar, text="<", width=3, command=lambda: self.navigate_month(-1)).pack(side=tk.LEFT, padx=5)
        ttk.Button(bar, text="Today", command=self.calendar_today).pack(side=tk.LEFT)
        ttk.Button(bar, text=">", width=3, command=lambda: self.navigate_month(1)).pack(side=tk.LEFT, padx=5)
        self.month_label = self._label(bar, font=("Segoe UI", 12, "bold"))
        self.month_label.pack(side=tk.LEFT, padx=10)

        for col, name in enumerate(("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")):
            self._label(tab, name, font=("Segoe UI", 9, "bold")).grid(row=1, column=col)
            tab.columnconfigure(col, weight=1, uniform="day")
        self.day_cells: List[tk.Label] = []
        for week in range(6):
            for col in range(7):
                cell = tk.Label(tab, bg=PANEL, fg=FG, anchor="nw", justify="left",
                                width=16, height=4, font=("Segoe UI", 8))
                cell.grid(row=2 + week, column=col, sticky="nsew", padx=1, pady=1)
                self.day_cells.append(cell)

        self._label(tab, "Upcoming Jobs This Month").grid(row=8, column=0, columnspan=7, sticky="w", pady=(8, 0))
        self.upcoming_tree = self._tree(tab, {
            "date": "Date", "ship": "Ship", "component": "Component", "priority": "Priority", "status": "Status",
        }, height=UPCOMING_LIMIT)
        for priority, color in PRIORITY_COLORS.items():
            self.upcoming_tree.tag_configure(priority.value, foreground=color)
        self.upcoming_tree.grid(row=9, column=0, columnspan=7, sticky="nsew", pady=(0, 5))

    def _build_notifications_tab(self) -> None:
        tab = tk.Frame(self.notebook, bg=BG)
        tab.columnconfigure(0, weight=1)
        tab.rowconfigure(1, weight=1)
        self.notebook.add(tab, text="Notifications")
        self.notifications_tab = tab
        bar = tk.Frame(tab, bg=BG)
        bar.grid(row=0, column=0, sticky="ew", pady=5)
        ttk.Button(bar, text="Dismiss", command=self.dismiss_notification).pack(side=tk.LEFT, padx=5)
        self.notification_more = self._label(bar, fg="gray")
        self.notification_more.pack(side=tk.LEFT, padx=10)
        self.notification_tree = self._tree(tab, {"when": "When", "kind": "Type", "message": "Message"})
        for kind, color in (("success", "#7CFC00"), ("warning", "#FFD700"), ("error", "#FF6A6A")):
            self.notification_tree.tag_configure(kind, foreground=color)
        self.notification_tree.grid(row=1, column=0, sticky="nsew", padx=5, pady=(0, 5))

    # ---------- session ----------

    def toggle_session(self) -> None:
        """Header button: log out when signed in, otherwise open the login dialog."""
        if self.session.is_authenticated:
            self._guard("Log Out", self.session.logout)
            self.refresh_ui()
        else:
            self.show_login()

    def show_login(self) -> None:
        """
        Purpose: Modal login dialog with one-click demo accounts.
        Side effects: Session.login on submit; refreshes permissions.
        """
        win = tk.Toplevel(self.root)
        win.title("Sign In")
        win.configure(bg=BG)
        win.transient(self.root)

        self._label(win, "Email").grid(row=0, column=0, sticky="e", padx=5, pady=5)
        e_email = tk.Entry(win, width=30)
        e_email.grid(row=0, column=1, padx=5, pady=5)
        self._label(win, "Password").grid(row=1, column=0, sticky="e", padx=5, pady=5)
        e_password = tk.Entry(win, show="*", width=30)
        e_password.grid(row=1, column=1, padx=5, pady=5)
        error = self._label(win, fg="#FF6A6A")
        error.grid(row=2, column=0, columnspan=2)

        demo = tk.Frame(win, bg=BG)
        demo.grid(row=3, column=0, columnspan=2, pady=5)
        for cred in CREDENTIALS:
            def fill(c=cred):
                e_email.delete(0, tk.END)
                e_email.insert(0, c.email)
                e_password.delete(0, tk.END)
                e_password.insert(0, c.password)
            ttk.Button(demo, text=cred.user.role.value, command=fill).pack(side=tk.LEFT, padx=3)

        def submit():
            email, password = e_email.get().strip(), e_password.get()
            problems = validate_login(email, password)
            if problems:
                error.config(text=next(iter(problems.values())))
                return
            try:
                accepted = self.session.login(email, password)
            except StorageError as exc:
                log.error("Sign In failed: %s", exc)
                error.config(text="Could not save the session")
                messagebox.showerror("Sign In", f"Could not save the session.\n\n{exc}", parent=win)
                return
            if not accepted:
                error.config(text="Invalid email or password")
                return
            win.destroy()
            self.refresh_ui()

        ttk.Button(win, text="Sign In", command=submit).grid(row=4, column=0, columnspan=2, pady=10)
        win.bind("<Return>", lambda _e: submit())
        e_email.focus_set()
        win.grab_set()

    # ---------- Public API ----------

    def schedule_refresh(self) -> None:
        """
        Purpose: Request a repaint safely.
        Thread-safety: Safe to call from any thread.
        """
        self.root.after(0, self.refresh_ui)

    def on_notification(self, notification: Notification) -> None:
        """FleetRepo listener: optional desktop toast, then repaint."""
        if self.enable_notifications.get():
            notify_desktop(notification.message)
        self.schedule_refresh()

    # ---------- UI callbacks & utilities ----------

    def toggle_logs(self) -> None:
        if self.show_logs.get():
            self.logs_box.grid()
        else:
            self.logs_box.grid_remove()

    def _guard(self, title: str, fn: Callable[[], object]):
        """
        Purpose: Run a store/session call, reporting rejected or unsaved mutations in a dialog.
        Outputs: fn's result, or None if it raised FleetError/StorageError.
        """
        try:
            return fn()
        except StorageError as exc:
            log.error("%s failed: %s", title, exc)
            messagebox.showerror(title, f"Could not save changes.\n\n{exc}")
        except FleetError as exc:
            log.warning("%s rejected: %s", title, exc)
            messagebox.showerror(title, str(exc))
        return None

    def _apply_permissions(self) -> None:
        user = self.session.current_user
        for widget, action in self._controls:
            if isinstance(widget, ttk.Combobox):
                widget.configure(state="readonly" if can(user, action) else "disabled")
            else:
                widget.state(["!disabled"] if can(user, action) else ["disabled"])
        if user is None:
            self.user_label.config(text="Not signed in")
            self.login_button.config(text="Log In")
        else:
            self.user_label.config(text=f"{user.name} ({user.role.value})")
            self.login_button.config(text="Log Out")

    def _selected(self, tree: ttk.Treeview) -> Optional[str]:
        selected = tree.selection()
        return selected[0] if selected else None

    @staticmethod
    def _fill(tree: ttk.Treeview, rows) -> None:
        """rows: iterable of (iid, values, tags); keeps the selection when the row survives."""
        keep = tree.selection()
        tree.delete(*tree.get_children())
        for iid, values, tags in rows:
            tree.insert("", "end", iid=iid, values=values, tags=tags)
        survivors = [iid for iid in keep if tree.exists(iid)]
        if survivors:
            tree.selection_set(survivors)

    def refresh_ui(self) -> None:
        """
        Purpose: Rebuild every tab from one repository snapshot.
        Thread-safety: Must run on main thread (use schedule_refresh from other threads).
        """
        snap = self.repo.snapshot()
        today = date.today()
        ship_names = {s.id: s.name for s in snap.ships}
        component_names = {c.id: c.name for c in snap.components}

        self._apply_permissions()
        self._refresh_dashboard(snap, today)

        ships = views.filter_ships(snap.ships, self.ship_search.get(), self.ship_status.get())
        rows = []
        for ship in ships:
            stats = views.ship_stats(ship.id, snap.components, snap.jobs, today)
            rows.append((ship.id, (ship.name, ship.imo, ship.flag, ship.status.value, stats.components,
                                   stats.active_jobs, stats.critical_jobs), ()))
        self._fill(self.ship_tree, rows)

        self._refresh_ship_detail(snap)

        jobs = views.filter_jobs(snap.jobs, snap.ships, snap.components, self.job_search.get(),
                                 self.job_status.get(), self.job_priority.get())
        job_rows = []
        for job in jobs:
            overdue = views.is_job_overdue(job, today)
            engineer = find_user(job.assigned_engineer_id)
            tags = ("overdue",) if overdue else ("done",) if job.status is JobStatus.COMPLETED else ()
            job_rows.append((job.id, (ship_names.get(job.ship_id, "?"), component_names.get(job.component_id, "?"),
                                      job.type.value, job.priority.value, job.status.value, job.scheduled_date,
                                      engineer.name if engineer else job.assigned_engineer_id,
                                      "Overdue" if overdue else ""), tags))
        self._fill(self.job_tree, job_rows)

        self._refresh_calendar(snap.jobs, ship_names, component_names, today)
        self._refresh_notifications(snap.notifications)

    def _refresh_ship_detail(self, snap=None) -> None:
        """Components and completed-job history of the selected ship."""
        snap = snap or self.repo.snapshot()
        today = date.today()
        component_names = {c.id: c.name for c in snap.components}
        ship_names = {s.id: s.name for s in snap.ships}
        ship_id = self._selected(self.ship_tree)
        own = views.components_on_ship(ship_id, snap.components)
        self._fill(self.component_tree, [
            (c.id, (c.name, c.serial_number, c.install_date, c.last_maintenance_date,
                    "OVERDUE" if views.is_component_overdue(c, today) else ""),
             ("overdue",) if views.is_component_overdue(c, today) else ())
            for c in own
        ])
        self._fill(self.history_tree, [
            (j.id, (j.scheduled_date, component_names.get(j.component_id, "?"), j.type.value, j.description), ())
            for j in views.maintenance_history(ship_id, snap.jobs)
        ] if ship_id else [])
        if ship_id:
            stats = views.ship_stats(ship_id, snap.components, snap.jobs, today)
            self.ship_detail.config(text=f"{ship_names.get(ship_id, '')}: {stats.components} components, "
                                         f"{stats.overdue_components} overdue")
        else:
            self.ship_detail.config(text="Select a ship to see its components")

    def _refresh_dashboard(self, snap, today: date) -> None:
        kpis = views.compute_kpis(snap.ships, snap.components, snap.jobs, today)
        open_jobs = kpis.jobs_by_status[JobStatus.OPEN]
        in_progress = kpis.jobs_by_status[JobStatus.IN_PROGRESS]
        cards = {
            "Total Ships": (kpis.total_ships,
                            f"{kpis.active_ships} active, {kpis.ships_under_maintenance} under maintenance"),
            "Active Jobs": (kpis.active_jobs,
                            f"{open_jobs} open, {in_progress} in progress, {kpis.overdue_jobs} overdue"),
            "Overdue Maintenance": (kpis.overdue_components, "Components requiring attention"),
            "Completed Jobs": (kpis.completed_jobs, "Successfully completed"),
        }
        for title, (value, detail) in cards.items():
            self.kpi_values[title].config(text=str(value))
            self.kpi_details[title].config(text=detail)
        self.critical_label.config(
            text=f"{kpis.critical_jobs} critical job(s) need attention" if kpis.critical_jobs else ""
        )
        lines = ["Ship status"]
        lines += [f"  {status.value:<18}{count:>4}" for status, count in kpis.ships_by_status.items()]
        lines.append("Job priority")
        lines += [f"  {priority.value:<18}{count:>4}" for priority, count in kpis.jobs_by_priority.items()]
        self.distribution_label.config(text="\n".join(lines))

    def _refresh_calendar(self, jobs: Sequence[Job], ship_names, component_names, today: date) -> None:
        year, month = self.calendar_month
        self.month_label.config(text=date(year, month, 1).strftime("%B %Y"))
        cells = [day for week in views.month_grid(year, month) for day in week]
        cells += [None] * (len(self.day_cells) - len(cells))
        buckets = views.jobs_by_date(jobs, year, month)
        for cell, day in zip(self.day_cells, cells):
            if day is None:
                cell.config(text="", bg=BG)
                continue
            current = date(year, month, day)
            preview, more = views.day_cell(buckets.get(format_date(current), []), current)
            lines = [str(day)]
            lines += [f"{component_names.get(j.component_id, '?')} ({j.priority.value})" for j in preview]
            if more:
                lines.append(f"+{more} more")
            cell.config(text="\n".join(lines), bg="#203040" if current == today else PANEL)
        self._fill(self.upcoming_tree, [
            (j.id, (j.scheduled_date, ship_names.get(j.ship_id, "?"), component_names.get(j.component_id, "?"),
                    j.priority.value, j.status.value), (j.priority.value,))
            for j in views.upcoming_jobs(jobs, year, month)
        ])

    def _refresh_notifications(self, notifications: Sequence[Notification]) -> None:
        now = datetime.now()
        every = views.active_notifications(notifications, limit=None)
        shown = views.active_notifications(notifications)
        self._fill(self.notification_tree, [
            (n.id, (views.format_relative_time(n.timestamp, now), n.kind.value, n.message), (n.kind.value,))
            for n in shown
        ])
        extra = len(every) - len(shown)
        self.notification_more.config(text=f"{len(every)} unread" + (f", {extra} not shown" if extra else ""))
        title = f"Notifications ({len(every)})" if every else "Notifications"
        self.notebook.tab(self.notifications_tab, text=title)

    def navigate_month(self, delta: int) -> None:
        self.calendar_month = views.shift_month(*self.calendar_month, delta)
        self.refresh_ui()

    def calendar_today(self) -> None:
        self.calendar_month = (date.today().year, date.today().month)
        self.refresh_ui()

    # ---------- internal helper for Logs ----------

    def _append_log(self, text: str) -> None:
        """
        Purpose: Append one line to the Logs panel and trim to LOG_MAX_LINES.
        Thread-safety: Main thread only (called via after()).
        """
        self.logs_box.configure(state="normal")
        self.logs_box.insert("end", text)
        self.logs_box.see("end")
        total_lines = int(self.logs_box.index("end-1c").split(".")[0])
        if total_lines > LOG_MAX_LINES:
            remove = total_lines - LOG_MAX_LINES
            self.logs_box.delete("1.0", f"{remove + 1}.0")
        self.logs_box.configure(state="disabled")

    # ---------- CRUD dialogs ----------

    def _form_dialog(
        self,
        title: str,
        form_fields: Sequence[FormField],
        initial: Dict[str, str],
        on_save: Callable[[Dict[str, str]], Optional[FieldErrors]],
        dependent: Optional[Dict[str, Tuple[str, Callable[[str], Sequence[str]]]]] = None,
    ) -> None:
        """
        Purpose: Generic entry dialog. on_save returns field errors (shown under each field) or
                 None when the dialog may close.
        Inputs: dependent maps a picker to (source field, choices_for); its choices follow the
                source value and a stale selection is cleared.
        """
        win = tk.Toplevel(self.root)
        win.title(title)
        win.configure(bg=BG)
        win.transient(self.root)

        inputs: Dict[str, tk.StringVar] = {}
        pickers: Dict[str, ttk.Combobox] = {}
        errors: Dict[str, tk.Label] = {}
        for row, (key, label, choices) in enumerate(form_fields):
            self._label(win, label).grid(row=row * 2, column=0, sticky="e", padx=5, pady=(5, 0))
            var = tk.StringVar(value=initial.get(key, ""))
            if choices is None:
                widget = tk.Entry(win, textvariable=var, width=34)
            else:
                widget = ttk.Combobox(win, textvariable=var, values=list(choices), state="readonly", width=32)
                pickers[key] = widget
            widget.grid(row=row * 2, column=1, padx=5, pady=(5, 0))
            inputs[key] = var
            errors[key] = self._label(win, fg="#FF6A6A", font=("Segoe UI", 8))
            errors[key].grid(row=row * 2 + 1, column=1, sticky="w", padx=5)

        for key, (source, choices_for) in (dependent or {}).items():
            def narrow(*_, key=key, source=source, choices_for=choices_for):
                options = list(choices_for(inputs[source].get()))
                pickers[key].configure(values=options)
                if inputs[key].get() not in options:
                    inputs[key].set("")
            inputs[source].trace_add("write", narrow)
            narrow()

        def save():
            for label in errors.values():
                label.config(text="")
            problems = on_save({key: var.get() for key, var in inputs.items()})
            if problems:
                for key, message in problems.items():
                    if key in errors:
                        errors[key].config(text=message)
                    else:
                        messagebox.showerror(title, message, parent=win)
                return
            win.destroy()

        ttk.Button(win, text="Save", command=save).grid(row=len(form_fields) * 2, column=0, columnspan=2, pady=10)
        win.grab_set()

    def _store_call(self, title: str, fn: Callable[[], object]) -> Optional[FieldErrors]:
        """Run a mutation from a dialog; validation problems go back to the fields."""
        try:
            fn()
        except ValidationFailed as exc:
            return exc.errors
        except (FleetError, StorageError) as exc:
            log.error("%s failed: %s", title, exc)
            return {"_": str(exc)}
        self.refresh_ui()
        return None

    def _confirm(self, title: str, message: str) -> bool:
        return messagebox.askyesno(title, message)

    # ships

    SHIP_FIELDS: Sequence[FormField] = (
        ("name", "Ship Name", None),
        ("imo", "IMO Number (7 digits)", None),
        ("flag", "Flag", None),
        ("status", "Status", [s.value for s in ShipStatus]),
    )

    def add_ship(self) -> None:
        def save(values):
            draft = ShipDraft(**values)
            return draft.validate() or self._store_call("Add Ship", lambda: self.repo.add_ship(draft))
        self._form_dialog("Add Ship", self.SHIP_FIELDS, {"status": ShipStatus.ACTIVE.value}, save)

    def edit_ship(self) -> None:
        ship_id = self._selected(self.ship_tree)
        ship = self.repo.get_ship(ship_id) if ship_id else None
        if ship is None:
            messagebox.showinfo("Edit Ship", "Select a ship to edit.")
            return
        initial = vars(ShipDraft.from_ship(ship))

        def save(values):
            problems = ShipDraft(**values).validate()
            return problems or self._store_call("Edit Ship", lambda: self.repo.update_ship(ship_id, **values))
        self._form_dialog(f"Edit Ship {ship.name}", self.SHIP_FIELDS, initial, save)

    def delete_ship(self) -> None:
        ship_id = self._selected(self.ship_tree)
        if not ship_id:
            messagebox.showinfo("Delete Ship", "Select a ship to delete.")
            return
        if self._confirm("Delete Ship", "Delete this ship? This will also delete all associated "
                                        "components and jobs."):
            self._guard("Delete Ship", lambda: self.repo.delete_ship(ship_id))
            self.refresh_ui()

    # components

    COMPONENT_FIELDS: Sequence[FormField] = (
        ("name", "Component Name", None),
        ("serial_number", "Serial Number", None),
        ("install_date", "Installation Date (YYYY-MM-DD)", None),
        ("last_maintenance_date", "Last Maintenance (YYYY-MM-DD)", None),
    )

    def add_component(self) -> None:
        ship_id = self._selected(self.ship_tree)
        if not ship_id:
            messagebox.showinfo("Add Component", "Select the ship the component belongs to.")
            return

        def save(values):
            draft = ComponentDraft(ship_id=ship_id, **values)
            return draft.validate() or self._store_call("Add Component", lambda: self.repo.add_component(draft))
        self._form_dialog("Add Component", self.COMPONENT_FIELDS, {}, save)

    def edit_component(self) -> None:
        component_id = self._selected(self.component_tree)
        component: Optional[Component] = self.repo.get_component(component_id) if component_id else None
        if component is None:
            messagebox.showinfo("Edit Component", "Select a component to edit.")
            return
        initial = vars(ComponentDraft.from_component(component))

        def save(values):
            problems = ComponentDraft(ship_id=component.ship_id, **values).validate()
            return problems or self._store_call(
                "Edit Component", lambda: self.repo.update_component(component_id, **values))
        self._form_dialog(f"Edit Component {component.name}", self.COMPONENT_FIELDS, initial, save)

    def delete_component(self) -> None:
        component_id = self._selected(self.component_tree)
        if not component_id:
            messagebox.showinfo("Delete Component", "Select a component to delete.")
            return
        if self._confirm("Delete Component", "Delete this component and its jobs?"):
            self._guard("Delete Component", lambda: self.repo.delete_component(component_id))
            self.refresh_ui()

    # jobs

    def _job_fields(self) -> Tuple[Sequence[FormField], ChoiceLookups, Callable[[str], List[str]]]:
        """
        Form fields, label->id lookups for the ship/component/engineer pickers, and the
        component choices for a picked ship label.
        """
        snap = self.repo.snapshot()
        ship_ids = {f"{s.name} [{s.id}]": s.id for s in snap.ships}
        component_ids = {f"{c.name} [{c.id}]": c.id for c in snap.components}
        engineer_ids = {f"{u.name} [{u.id}]": u.id for u in engineers()}
        lookups = {"ship_id": ship_ids, "component_id": component_ids, "assigned_engineer_id": engineer_ids}

        def components_for(ship_label: str) -> List[str]:
            own = views.components_on_ship(ship_ids.get(ship_label), snap.components)
            return [f"{c.name} [{c.id}]" for c in own]

        form_fields = (
            ("ship_id", "Ship", list(ship_ids)),
            ("component_id", "Component", []),
            ("type", "Job Type", [t.value for t in JobType]),
            ("priority", "Priority", [p.value for p in JobPriority]),
            ("status", "Status", [s.value for s in JobStatus]),
            ("scheduled_date", "Scheduled Date (YYYY-MM-DD)", None),
            ("description", "Description", None),
            ("assigned_engineer_id", "Engineer", list(engineer_ids)),
        )
        return form_fields, lookups, components_for

    def add_job(self) -> None:
        form_fields, lookups, components_for = self._job_fields()
        draft_defaults = JobDraft(ship_id=self._selected(self.ship_tree) or "")

        def save(values):
            draft = JobDraft(**resolve_choices(values, lookups))
            snap = self.repo.snapshot()
            problems = draft.validate(snap.ships, snap.components)
            return problems or self._store_call("Create Job", lambda: self.repo.add_job(draft))
        self._form_dialog("Create Job", form_fields, choice_labels(draft_defaults, lookups), save,
                          dependent={"component_id": ("ship_id", components_for)})

    def edit_job(self) -> None:
        job_id = self._selected(self.job_tree)
        job = self.repo.get_job(job_id) if job_id else None
        if job is None:
            messagebox.showinfo("Edit Job", "Select a job to edit.")
            return
        form_fields, lookups, components_for = self._job_fields()

        def save(values):
            resolved = resolve_choices(values, lookups)
            snap = self.repo.snapshot()
            problems = JobDraft(**resolved).validate(snap.ships, snap.components)
            return problems or self._store_call("Edit Job", lambda: self.repo.update_job(job_id, **resolved))
        self._form_dialog("Edit Job", form_fields, choice_labels(JobDraft.from_job(job), lookups), save,
                          dependent={"component_id": ("ship_id", components_for)})

    def set_job_status(self) -> None:
        job_id = self._selected(self.job_tree)
        if not job_id:
            messagebox.showinfo("Set Status", "Select a job first.")
            return
        status = JobStatus(self.new_status.get())
        self._guard("Set Status", lambda: self.repo.set_job_status(job_id, status))
        self.refresh_ui()

    def delete_job(self) -> None:
        job_id = self._selected(self.job_tree)
        if not job_id:
            messagebox.showinfo("Delete Job", "Select a job to delete.")
            return
        if self._confirm("Delete Job", "Are you sure you want to delete this job?"):
            self._guard("Delete Job", lambda: self.repo.delete_job(job_id))
            self.refresh_ui()

    # notifications

    def dismiss_notification(self) -> None:
        notification_id = self._selected(self.notification_tree)
        if not notification_id:
            return
        self._guard("Dismiss", lambda: self.repo.dismiss_notification(notification_id))
        self.refresh_ui()

# core/nav_registry.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, List

# Page renderer signature: () -> None. Renderers read the engine and the
# signed-in user from st.session_state.
PageFn = Callable[[], None]

@dataclass(frozen=True)
class Route:
    key: str                  # stable id, also the url path
    label: str                # UI label
    icon: str                 # emoji or short string
    policy_page_key: str      # must match a core.policy.PAGE_ACCESS name
    render: PageFn            # callable that renders the page

@dataclass
class Section:
    title: str
    routes: List[Route]

# Import page renderers from "screens" modules; nothing there runs on import.
from screens.dashboard.page import render as dashboard_render
from screens.students.page import render as students_render
from screens.clinic.page import render as clinic_render
from screens.medications.page import render as medications_render
from screens.immunizations.page import render as immunizations_render
from screens.insurance.page import render as insurance_render
from screens.reports.page import render as reports_render
from screens.notifications.page import render as notifications_render
from screens.profile import render as profile_render
from screens.bulk_upload.page import render as bulk_upload_render
from screens.staff.page import render as staff_render
from screens.audit_logs.page import render as audit_logs_render

SECTIONS: List[Section] = [
    Section("Health Records", [
        Route("dashboard",     "Dashboard",      "🏥", "Dashboard",      dashboard_render),
        Route("students",      "Students",       "🎓", "Students",       students_render),
        Route("clinic",        "Clinic Visits",  "🩺", "Clinic Visits",  clinic_render),
        Route("medications",   "Medications",    "💊", "Medications",    medications_render),
        Route("immunizations", "Immunizations",  "💉", "Immunizations",  immunizations_render),
        Route("insurance",     "Insurance",      "🛡️", "Insurance",      insurance_render),
        Route("reports",       "Reports",        "📊", "Reports",        reports_render),
    ]),
    Section("Administration", [
        Route("data_import",   "Data Import",    "📥", "Data Import",    bulk_upload_render),
        Route("staff",         "Staff",          "👥", "Staff Management", staff_render),
        Route("audit_logs",    "Audit Logs",     "🧾", "Audit Logs",     audit_logs_render),
    ]),
    Section("Account", [
        Route("notifications", "Notifications",  "🔔", "Notifications",  notifications_render),
        Route("profile",       "Profile",        "👤", "Profile Settings", profile_render),
    ]),
]

# Index for quick lookup
ROUTE_INDEX: Dict[str, Route] = {r.key: r for s in SECTIONS for r in s.routes}
DEFAULT_ROUTE_KEY = "dashboard"  # after login, where to land

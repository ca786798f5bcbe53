# screens/dashboard/page.py
from __future__ import annotations

from datetime import date, timedelta

import streamlit as st

from core.cache import cached
from core.policy import current_store, current_user, require_page
from core.settings import load_settings
from core.ui import handle_error, metric_row
from screens.clinic.db import follow_ups_due
from screens.dashboard.db import health_overview
from screens.notifications.db import unread_count

_health_overview = cached()(health_overview)


@require_page("Dashboard")
def render():
    user = current_user()
    st.title("🏥 Health Dashboard")
    if user:
        st.caption(f"Welcome, {user.display_name} ({user.role})")
    store = current_store()
    try:
        o = _health_overview(store, date.today(), load_settings().alerts.expiry_warning_days)
        metric_row([
            ("Active students", o.active_students),
            ("Visits today", o.visits_today),
            ("Emergencies this month", o.emergency_visits_this_month),
            ("Immunization coverage", f"{o.immunization_coverage:.0f}%"),
        ])
        metric_row([
            ("Total students", o.total_students),
            ("Medication alerts", o.medication_alerts),
            ("Insurance coverage", f"{o.insurance_coverage}%"),
            ("Chronic conditions", o.chronic_conditions),
        ])

        if o.medication_alerts:
            st.warning(f"{o.medication_alerts} medication(s) are low on stock or near expiry. See Medications.")
        due = follow_ups_due(store, date.today() + timedelta(days=1))
        if due:
            st.info(f"{len(due)} follow-up visit(s) due by tomorrow. See Clinic Visits.")
        unread = unread_count(store)
        if unread:
            st.info(f"You have {unread} unread notification(s).")
    except Exception as e:
        handle_error(e, "Could not load the dashboard.")

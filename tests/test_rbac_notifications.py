import pytest

from core import rbac
from core.records import Notification
from screens.notifications import db as notes


def test_last_admin_is_protected(admin_store, admin):
    with pytest.raises(ValueError, match="last active administrator"):
        rbac.set_role(admin_store, admin.id, "nurse")
    with pytest.raises(ValueError, match="last active administrator"):
        rbac.set_active(admin_store, admin.id, False)


def test_promote_then_demote(admin_store, admin, nurse):
    assert rbac.set_role(admin_store, nurse.id, "admin").role == "admin"
    assert {p.id for p in rbac.active_admins(admin_store)} == {admin.id, nurse.id}
    # with a second admin around the first one may step down
    assert rbac.set_role(admin_store, admin.id, "nurse").role == "nurse"
    with pytest.raises(ValueError, match="Unknown role"):
        rbac.set_role(admin_store, nurse.id, "janitor")
    with pytest.raises(ValueError, match="not found"):
        rbac.set_active(admin_store, 999, True)


def test_list_staff_hides_inactive(admin_store, nurse):
    rbac.set_active(admin_store, nurse.id, False)
    assert nurse.id not in {p.id for p in rbac.list_staff(admin_store)}
    assert nurse.id in {p.id for p in rbac.list_staff(admin_store, include_inactive=True)}


def test_update_profile_only_touches_profile_fields(nurse_store, nurse):
    p = rbac.update_profile(nurse_store, nurse.id, {"department": " Clinic ", "role": "admin", "phone_number": ""})
    assert p.department == "Clinic"
    assert p.phone_number is None
    assert p.role == "nurse"
    with pytest.raises(ValueError, match="Nothing to update"):
        rbac.update_profile(nurse_store, nurse.id, {"email": "x@y.z"})


def test_notification_lifecycle(nurse_store, admin_store, nurse, admin):
    first = notes.notify(admin_store, nurse.id, "Welcome", "Hello")
    notes.notify(admin_store, nurse.id, "Reminder", "Check stock", type="warning")
    notes.notify(admin_store, admin.id, "Private", "Not for the nurse")
    with pytest.raises(ValueError):
        notes.notify(admin_store, nurse.id, "Bad", "x", type="shout")

    assert notes.unread_count(nurse_store) == 2
    assert {n.title for n in notes.my_notifications(nurse_store)} == {"Welcome", "Reminder"}

    notes.mark_read(nurse_store, first.id)
    assert [n.title for n in notes.my_notifications(nurse_store, unread_only=True)] == ["Reminder"]
    assert notes.mark_all_read(nurse_store) == 1
    assert notes.unread_count(nurse_store) == 0

    notes.delete_notification(nurse_store, first.id)
    assert [n.title for n in notes.my_notifications(nurse_store)] == ["Reminder"]
    # the admin's own notification is out of the nurse's reach
    assert notes.unread_count(admin_store) == 1


def test_contact_admins(service, admin_store, nurse, admin):
    rbac.set_role(admin_store, nurse.id, "admin")
    promoted = service.as_user(nurse.id, {"admin"})
    sent = notes.contact_admins(promoted, nurse, " Stock ", " We are out of ORS ")
    assert sent == 2
    rows = Notification.from_rows(service.select("notifications", {"user_id": admin.id}).unwrap())
    assert rows[0].title == "Message from Nurse Wanjiku: Stock"
    assert rows[0].message == "We are out of ORS"
    assert rows[0].related_id == nurse.id
    with pytest.raises(ValueError, match="required"):
        notes.contact_admins(promoted, nurse, "", "body")

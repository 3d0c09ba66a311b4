from __future__ import annotations

from datetime import datetime, timezone
from html import escape
import logging
import secrets

from sqlalchemy.orm import Session

from classboom.core.config import get_settings
from classboom.core.exceptions import InvitationDeliveryError
from classboom.models.school import School
from classboom.models.staff import Staff
from classboom.models.user import User
from classboom.services.audit import log_activity
from classboom.services.email import EmailDeliveryError, send_email
from classboom.services.staff import get_staff
from classboom.services.tenant import TenantContext

logger = logging.getLogger(__name__)


def build_activation_link(token: str) -> str:
    return f"{get_settings().app_url.rstrip('/')}/activate/staff/{token}"


def _invitation_content(staff: Staff, school_name: str, inviter_name: str, link: str) -> tuple[str, str, str]:
    expire_hours = get_settings().invitation_expire_hours
    role = staff.role.value.capitalize()
    subject = f"You're invited to join {school_name} on ClassBoom"
    lines = [
        f"Hello {staff.full_name},",
        "",
        f"{inviter_name} has invited you to join {school_name} as {role}.",
    ]
    if staff.department:
        lines.append(f"Department: {staff.department}")
    if staff.hire_date:
        lines.append(f"Start date: {staff.hire_date.isoformat()}")
    lines += [
        "",
        f"Activate your staff portal account: {link}",
        f"This link expires in {expire_hours} hours.",
    ]
    text = "\n".join(lines)
    html = (
        f"<p>Hello {escape(staff.full_name)},</p>"
        f"<p>{escape(inviter_name)} has invited you to join <strong>{escape(school_name)}</strong>"
        f" as {escape(role)}.</p>"
        f'<p><a href="{escape(link)}">Activate your staff portal account</a></p>'
        f"<p>This link expires in {expire_hours} hours.</p>"
    )
    return subject, text, html


def send_staff_invitation(db: Session, tenant: TenantContext, staff_id: str) -> Staff:
    staff = get_staff(db, tenant, staff_id)
    school = db.get(School, tenant.school_id)
    inviter = db.get(User, tenant.user_id)
    school_name = school.name if school else "School"
    inviter_name = inviter.name if inviter else "School Administrator"

    token = secrets.token_urlsafe(32)
    staff.invite_token = token
    staff.invite_sent_at = datetime.now(timezone.utc)
    staff.can_login = True
    # Enabled when the invitee activates the account.
    staff.portal_access_enabled = False
    db.flush()

    subject, text, html = _invitation_content(staff, school_name, inviter_name, build_activation_link(token))
    try:
        send_email(to_email=staff.email, subject=subject, text_content=text, html_content=html)
    except EmailDeliveryError as exc:
        db.rollback()
        logger.warning("Invitation email to %s failed: %s", staff.email, exc)
        raise InvitationDeliveryError(staff.email, str(exc)) from exc

    log_activity(
        db,
        tenant=tenant,
        action="staff.invited",
        entity_type="staff",
        entity_id=staff.id,
        details={"email": staff.email},
    )
    db.commit()
    db.refresh(staff)
    logger.info("Staff portal invitation sent to %s", staff.email)
    return staff

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from salon_pos.auth import Principal, assert_admin
from salon_pos.models import ApprovalStatus, StaffMember, StaffRole
from salon_pos.security.passwords import generate_password, hash_password, validate_new_password, verify_password
from salon_pos.services.sort_utils import clean_label, person_label, person_sort_key

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def normalize_email(value: str) -> str:
    email = (value or '').strip().lower()
    if not EMAIL_RE.match(email):
        raise ValueError('Invalid email address')
    return email


def display_name(member: StaffMember | None) -> str:
    if member is None:
        return person_label(None, None)
    return person_label(member.full_name, member.email)


def get_member_by_email(db: Session, email: str) -> StaffMember | None:
    return db.execute(
        select(StaffMember).where(func.lower(StaffMember.email) == email.strip().lower())
    ).scalar_one_or_none()


def _get_member(db: Session, staff_id: int) -> StaffMember:
    member = db.execute(select(StaffMember).where(StaffMember.id == staff_id)).scalar_one_or_none()
    if not member:
        raise ValueError('Staff member not found')
    return member


def list_staff_members(db: Session) -> list[StaffMember]:
    return db.execute(
        select(StaffMember)
        .where(StaffMember.role == StaffRole.STAFF)
        .order_by(StaffMember.created_at.desc(), StaffMember.id.desc())
    ).scalars().all()


@dataclass(frozen=True)
class StaffForSale:
    members: list[StaffMember]
    unavailable: bool = False


def list_staff_for_sale(db: Session) -> StaffForSale:
    """Staff who can be credited on a sale line.

    A failed lookup degrades to an empty, ``unavailable`` result so the sale
    page still renders.
    """
    try:
        members = db.execute(
            select(StaffMember).where(
                StaffMember.role == StaffRole.STAFF,
                StaffMember.approval_status == ApprovalStatus.APPROVED,
            )
        ).scalars().all()
    except SQLAlchemyError:
        logger.warning('Failed to load staff members for sale composition', exc_info=True)
        db.rollback()
        return StaffForSale(members=[], unavailable=True)
    ordered = sorted(members, key=lambda m: person_sort_key(full_name=m.full_name, email=m.email))
    return StaffForSale(members=ordered)


def _create_member(
    db: Session,
    *,
    email: str,
    full_name: str | None,
    password: str,
    approval_status: ApprovalStatus,
) -> StaffMember:
    clean_email = normalize_email(email)
    if get_member_by_email(db, clean_email):
        raise ValueError('This email is already registered. Please try logging in instead.')

    member = StaffMember(
        email=clean_email,
        full_name=clean_label(full_name),
        password_hash=hash_password(password),
        role=StaffRole.STAFF,
        approval_status=approval_status,
    )
    db.add(member)
    db.flush()
    return member


def register_staff(db: Session, *, email: str, full_name: str | None, password: str) -> StaffMember:
    validate_new_password(password)
    return _create_member(
        db,
        email=email,
        full_name=full_name,
        password=password,
        approval_status=ApprovalStatus.PENDING,
    )


def provision_staff(
    db: Session,
    *,
    actor: Principal,
    email: str,
    full_name: str | None,
    password: str | None = None,
) -> StaffMember:
    """Create an approved staff account. Without a password one is generated."""
    assert_admin(actor)
    member = _create_member(
        db,
        email=email,
        full_name=full_name,
        password=password or generate_password(),
        approval_status=ApprovalStatus.APPROVED,
    )
    logger.info('Staff member %s provisioned by %s', member.email, actor.email)
    return member


def set_approval_status(
    db: Session,
    *,
    actor: Principal,
    staff_id: int,
    status: ApprovalStatus | str,
) -> StaffMember:
    assert_admin(actor)
    try:
        new_status = ApprovalStatus(status)
    except ValueError as exc:
        raise ValueError('Invalid approval status') from exc

    member = _get_member(db, staff_id)
    if member.role != StaffRole.STAFF:
        raise ValueError('Only staff accounts can be approved or rejected')
    member.approval_status = new_status
    db.flush()
    return member


def remove_staff(db: Session, *, actor: Principal, staff_id: int) -> StaffMember:
    assert_admin(actor)
    if staff_id == actor.id:
        raise ValueError('You cannot remove your own account')
    member = _get_member(db, staff_id)
    db.delete(member)
    db.flush()
    logger.info('Staff member %s removed by %s', member.email, actor.email)
    return member


def change_password(db: Session, *, staff_id: int, current_password: str, new_password: str) -> StaffMember:
    member = _get_member(db, staff_id)
    if not verify_password(current_password, member.password_hash):
        raise ValueError('Current password is incorrect')
    validate_new_password(new_password)
    member.password_hash = hash_password(new_password)
    db.flush()
    return member

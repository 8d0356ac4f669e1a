from __future__ import annotations

import unittest
from unittest.mock import patch

from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from salon_pos.models import ApprovalStatus, StaffMember, StaffRole, WebSession
from salon_pos.security.passwords import verify_password
from salon_pos.security.sessions import create_web_session
from salon_pos.services.staff_service import (
    change_password,
    display_name,
    list_staff_for_sale,
    list_staff_members,
    provision_staff,
    register_staff,
    remove_staff,
    set_approval_status,
)
from tests.support import add_admin, add_member, make_engine, make_session, principal_for, utc


class StaffServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = make_engine()
        self.db = make_session(self.engine)
        self.admin_member = add_admin(self.db)
        self.admin = principal_for(self.admin_member)
        self.db.commit()

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def test_staff_for_sale_is_approved_staff_sorted_by_name(self) -> None:
        add_member(self.db, 'zoe@example.com', full_name='Zoe')
        add_member(self.db, 'amy@example.com')
        add_member(self.db, 'bea@example.com', full_name='bea')
        add_member(self.db, 'pending@example.com', full_name='Aaron', status=ApprovalStatus.PENDING)
        add_member(self.db, 'rejected@example.com', full_name='Abe', status=ApprovalStatus.REJECTED)
        self.db.commit()

        result = list_staff_for_sale(self.db)
        names = [display_name(member) for member in result.members]
        self.assertEqual(names, ['amy@example.com', 'bea', 'Zoe'])
        self.assertFalse(result.unavailable)

    def test_staff_for_sale_degrades_to_empty_list(self) -> None:
        with patch.object(self.db, 'execute', side_effect=OperationalError('select', {}, Exception('down'))):
            with self.assertLogs('salon_pos.services.staff_service', level='WARNING'):
                result = list_staff_for_sale(self.db)
        self.assertEqual(result.members, [])
        self.assertTrue(result.unavailable)

    def test_empty_staff_list_is_not_reported_unavailable(self) -> None:
        result = list_staff_for_sale(self.db)

        self.assertEqual(result.members, [])
        self.assertFalse(result.unavailable)

    def test_list_staff_members_is_newest_first_and_excludes_admins(self) -> None:
        add_member(self.db, 'old@example.com', created_at=utc(2024, 1, 1))
        add_member(self.db, 'new@example.com', created_at=utc(2024, 6, 1), status=ApprovalStatus.PENDING)
        self.db.commit()

        emails = [member.email for member in list_staff_members(self.db)]
        self.assertEqual(emails, ['new@example.com', 'old@example.com'])

    def test_display_name_falls_back_to_email_then_unknown(self) -> None:
        self.assertEqual(display_name(StaffMember(email='a@b.co', full_name='  ')), 'a@b.co')
        self.assertEqual(display_name(StaffMember(email='a@b.co', full_name='Ann')), 'Ann')
        self.assertEqual(display_name(None), 'Unknown')

    def test_register_staff_creates_pending_account(self) -> None:
        member = register_staff(self.db, email=' New@Example.com ', full_name='New Person', password='longenough')

        self.assertEqual(member.email, 'new@example.com')
        self.assertEqual(member.role, StaffRole.STAFF)
        self.assertEqual(member.approval_status, ApprovalStatus.PENDING)
        self.assertTrue(verify_password('longenough', member.password_hash))

    def test_register_staff_validation(self) -> None:
        with self.assertRaisesRegex(ValueError, 'at least 8'):
            register_staff(self.db, email='x@example.com', full_name=None, password='short')
        with self.assertRaisesRegex(ValueError, 'Invalid email'):
            register_staff(self.db, email='not-an-email', full_name=None, password='longenough')
        with self.assertRaisesRegex(ValueError, 'already registered'):
            register_staff(self.db, email='ADMIN@example.com', full_name=None, password='longenough')

    def test_provision_staff_is_admin_only_and_approved(self) -> None:
        member = provision_staff(self.db, actor=self.admin, email='hire@example.com', full_name='Hire')
        self.assertEqual(member.approval_status, ApprovalStatus.APPROVED)

        staff = principal_for(member)
        with self.assertRaises(PermissionError):
            provision_staff(self.db, actor=staff, email='other@example.com', full_name=None)

    def test_provision_staff_uses_given_password(self) -> None:
        member = provision_staff(
            self.db, actor=self.admin, email='hire@example.com', full_name=None, password='temporary-pass'
        )
        self.assertTrue(verify_password('temporary-pass', member.password_hash))

    def test_set_approval_status(self) -> None:
        member = add_member(self.db, 'p@example.com', status=ApprovalStatus.PENDING)

        set_approval_status(self.db, actor=self.admin, staff_id=member.id, status='approved')
        self.assertEqual(member.approval_status, ApprovalStatus.APPROVED)

        with self.assertRaisesRegex(ValueError, 'Invalid approval status'):
            set_approval_status(self.db, actor=self.admin, staff_id=member.id, status='maybe')
        with self.assertRaisesRegex(ValueError, 'Only staff accounts'):
            set_approval_status(self.db, actor=self.admin, staff_id=self.admin.id, status='rejected')

    def test_remove_staff_cascades_sessions(self) -> None:
        member = add_member(self.db, 'gone@example.com')
        create_web_session(self.db, member.id, ip=None, user_agent=None)
        self.db.commit()

        remove_staff(self.db, actor=self.admin, staff_id=member.id)
        self.db.commit()

        self.assertIsNone(self.db.get(StaffMember, member.id))
        self.assertEqual(self.db.execute(select(WebSession)).scalars().all(), [])

    def test_admin_cannot_remove_self(self) -> None:
        with self.assertRaisesRegex(ValueError, 'your own account'):
            remove_staff(self.db, actor=self.admin, staff_id=self.admin.id)

    def test_change_password(self) -> None:
        member = add_member(self.db, 'c@example.com')

        with self.assertRaisesRegex(ValueError, 'Current password is incorrect'):
            change_password(self.db, staff_id=member.id, current_password='wrong', new_password='new-password')

        change_password(self.db, staff_id=member.id, current_password='password123', new_password='new-password')
        self.assertTrue(verify_password('new-password', member.password_hash))


if __name__ == '__main__':
    unittest.main()

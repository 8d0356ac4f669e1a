import argparse
from decimal import Decimal

from sqlalchemy import select

from salon_pos.db import SessionLocal, init_db
from salon_pos.models import ApprovalStatus, Category, Service, StaffMember, StaffRole
from salon_pos.security.passwords import hash_password

DEMO_CATALOG = {
    'Hair': [('Haircut', Decimal('45.00')), ('Blow Dry', Decimal('30.00')), ('Colour', Decimal('95.00'))],
    'Nails': [('Manicure', Decimal('35.00')), ('Pedicure', Decimal('40.00'))],
    'Skin': [('Facial', Decimal('70.00'))],
}


def seed(admin_email: str, admin_password: str, admin_name: str, with_catalog: bool = True) -> None:
    init_db()
    with SessionLocal() as db:
        email = admin_email.strip().lower()
        admin = db.execute(select(StaffMember).where(StaffMember.email == email)).scalar_one_or_none()
        if not admin:
            db.add(
                StaffMember(
                    email=email,
                    full_name=admin_name,
                    password_hash=hash_password(admin_password),
                    role=StaffRole.ADMIN,
                    approval_status=ApprovalStatus.APPROVED,
                )
            )

        if with_catalog:
            for category_name, services in DEMO_CATALOG.items():
                category = db.execute(select(Category).where(Category.name == category_name)).scalar_one_or_none()
                if not category:
                    category = Category(name=category_name)
                    db.add(category)
                    db.flush()
                for service_name, price in services:
                    exists = db.execute(
                        select(Service.id).where(Service.name == service_name, Service.category_id == category.id)
                    ).scalar_one_or_none()
                    if not exists:
                        db.add(Service(name=service_name, price=price, category_id=category.id))

        db.commit()


def main() -> None:
    parser = argparse.ArgumentParser(description='Create the schema, an admin account and a demo catalog.')
    parser.add_argument('--admin-email', default='admin@example.com')
    parser.add_argument('--admin-password', default='adminpass')
    parser.add_argument('--admin-name', default='Salon Admin')
    parser.add_argument('--no-catalog', action='store_true', help='Skip the demo categories and services.')
    args = parser.parse_args()

    seed(args.admin_email, args.admin_password, args.admin_name, with_catalog=not args.no_catalog)
    print('Seed data inserted/verified.')


if __name__ == '__main__':
    main()

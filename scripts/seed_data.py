"""Seed script to create the roles and the administrator account."""

from desco_report.core.config import settings
from desco_report.core.database import Base, SessionLocal, engine
from desco_report.core.logging import configure_logging
from desco_report.services.seed import seed_admin_user, seed_roles

# Import models for Base.metadata.create_all
from desco_report import models  # noqa: F401


def seed_database() -> None:
    """Seed the database with roles and the administrator."""
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        print("Seeding database...")
        roles = seed_roles(db)
        print(f"Roles: {', '.join(role.name for role in roles)}")

        admin = seed_admin_user(db)
        if admin is None:
            print(f"Administrator {settings.ADMIN_EMAIL} already exists. Skipping.")
        else:
            print(f"Created administrator: {admin.username} ({admin.email})")

        print("\nDatabase seeded successfully!")


if __name__ == "__main__":
    configure_logging()
    seed_database()

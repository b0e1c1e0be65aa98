"""Seed script — populates the database with sample users and contacts."""

import asyncio
from datetime import date, timedelta

from contact_crm.config import settings
from contact_crm.database.engine import build_engine, build_session_factory, init_db
from contact_crm.schemas import SignupRequest
from contact_crm.services.access import ContactAccess
from contact_crm.services.accounts import AccountService
from contact_crm.services.token_service import Identity

SAMPLE_PASSWORD = "Passw0rd!"

SAMPLE_USERS = [
    ("Grace Admin", "admin@example.com", "admin"),
    ("Alice Johnson", "alice@example.com", "employee"),
    ("Bob Smith", "bob@example.com", "employee"),
]

SAMPLE_CONTACTS = {
    "alice@example.com": [
        {"name": "Carol Davis", "phone": "+15551234567", "status": "lead",
         "follow_up_date": date.today() + timedelta(days=2), "called": True},
        {"name": "Dan Wilson", "phone": "+15559876543", "remark": "Call after lunch"},
        {"name": "Erin Brooks", "phone": "+15550001111", "status": "rejected", "called": True},
    ],
    "bob@example.com": [
        {"name": "Frank Moore", "phone": "+442071234567"},
        {"name": "Gina Lopez", "phone": "+919876543210", "status": "lead"},
    ],
}


async def seed() -> None:
    """Insert sample users and their contacts into the database."""
    engine = build_engine(settings.database_url)
    await init_db(engine)
    session_factory = build_session_factory(engine)

    created = 0
    async with session_factory() as session:
        accounts = AccountService(session)
        access = ContactAccess(session)
        for name, email, role in SAMPLE_USERS:
            user = await accounts.signup(
                SignupRequest(name=name, email=email, password=SAMPLE_PASSWORD, role=role)
            )
            identity = Identity(user_id=user.id, role=user.role)
            for draft in SAMPLE_CONTACTS.get(email, []):
                await access.create_contact(identity, draft)
                created += 1

    await engine.dispose()
    print(f"✅ Seeded {len(SAMPLE_USERS)} users and {created} contacts (password: {SAMPLE_PASSWORD}).")


if __name__ == "__main__":
    asyncio.run(seed())

"""
Shared fixtures for the test suite: an in-memory database per test case,
row factories, and fakes for the email and image collaborators.
"""

import unittest
from datetime import datetime, timedelta
from uuid import uuid4

from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel.ext.asyncio.session import AsyncSession

from snapscape.core.database import init_db
from snapscape.core.security import hash_password
from snapscape.models.competition import Competition, CompetitionStatus
from snapscape.models.submission import PhotoSubmission, SubmissionStatus
from snapscape.models.user import User, UserRole
from snapscape.services.image_store import StoredImage

PASSWORD = "Passw0rd123"


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class FakeEmailSender:
    configured = True

    def __init__(self):
        self.sent = []

    async def send(self, to, subject, html, text=None):
        self.sent.append({"to": to, "subject": subject, "html": html})
        return True


class FakeImageStore:
    def __init__(self):
        self.uploaded = []
        self.deleted = []

    async def upload(self, content, filename, content_type=None):
        public_id = f"snapscape/{uuid4().hex}"
        self.uploaded.append(public_id)
        url = f"https://res.cloudinary.com/demo/image/upload/{public_id}.jpg"
        return StoredImage(url=url, thumbnail_url=url, public_id=public_id)

    async def delete(self, public_id):
        self.deleted.append(public_id)
        return True


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    """Each test gets a fresh in-memory SQLite database."""

    # SQLite leaves foreign keys unchecked unless asked
    enforce_foreign_keys = False

    async def asyncSetUp(self):
        self.engine = create_async_engine(
            "sqlite+aiosqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        if self.enforce_foreign_keys:
            event.listen(self.engine.sync_engine, "connect", _enable_foreign_keys)
        await init_db(self.engine)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )
        self.session = self.session_factory()

    async def asyncTearDown(self):
        await self.session.close()
        await self.engine.dispose()

    async def make_user(self, name="Alice", email=None, role=UserRole.USER, **fields):
        user = User(
            name=name,
            email=email or f"{name.lower()}-{uuid4().hex[:6]}@example.com",
            password_hash=hash_password(PASSWORD),
            role=role,
            is_verified=True,
            **fields,
        )
        self.session.add(user)
        await self.session.commit()
        return user

    async def make_competition(self, status=CompetitionStatus.VOTING, now=None, **fields):
        now = now or datetime.utcnow()
        values = {
            "title": "Golden Hour",
            "description": "Light at the edges of the day",
            "theme": "Light",
            "rules": "One photo per person",
            "start_date": now - timedelta(days=10),
            "end_date": now - timedelta(days=3),
            "voting_end_date": now + timedelta(days=3),
            "status": status,
        }
        values.update(fields)
        competition = Competition(**values)
        self.session.add(competition)
        await self.session.commit()
        return competition

    async def make_submission(
        self,
        user,
        competition,
        title="Photo",
        status=SubmissionStatus.APPROVED,
        **fields,
    ):
        submission = PhotoSubmission(
            user_id=user.id,
            competition_id=competition.id,
            title=title,
            image_url="https://res.cloudinary.com/demo/image/upload/sample.jpg",
            thumbnail_url="https://res.cloudinary.com/demo/image/upload/sample.jpg",
            image_public_id=f"snapscape/{uuid4().hex}",
            status=status,
            **fields,
        )
        self.session.add(submission)
        await self.session.commit()
        return submission


class ApiTestCase(DatabaseTestCase):
    """Drives the FastAPI app in-process against the per-test database."""

    async def asyncSetUp(self):
        await super().asyncSetUp()
        import httpx

        from snapscape.core.database import get_session
        from snapscape.core.security import limiter
        from snapscape.main import app
        from snapscape.services.email_service import get_email_sender
        from snapscape.services.image_store import get_image_store

        self.email_sender = FakeEmailSender()
        self.image_store = FakeImageStore()

        async def override_session():
            async with self.session_factory() as session:
                yield session

        self.app = app
        app.dependency_overrides[get_session] = override_session
        app.dependency_overrides[get_email_sender] = lambda: self.email_sender
        app.dependency_overrides[get_image_store] = lambda: self.image_store
        limiter.enabled = False

        self.client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")

    async def asyncTearDown(self):
        await self.client.aclose()
        self.app.dependency_overrides.clear()
        await super().asyncTearDown()

    def auth(self, user):
        from snapscape.core.security import create_access_token

        token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
        return {"Authorization": f"Bearer {token}"}

    async def fetch(self, model, key):
        async with self.session_factory() as session:
            return await session.get(model, key)

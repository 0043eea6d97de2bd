import unittest

from sqlmodel import select

from snapscape.models.user import EmailVerificationToken, PasswordResetToken, User, UserRole
from support import PASSWORD, ApiTestCase


class TestAuthApi(ApiTestCase):

    async def register(self, email="new.user@snapscape-mail.com", password="Shutter123"):
        return await self.client.post("/auth/register", json={
            "name": "New User",
            "email": email,
            "password": password,
        })

    async def test_register_sends_verification(self):
        response = await self.register(email="New.User@Snapscape-Mail.com")

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["email"], "new.user@snapscape-mail.com")
        self.assertFalse(body["is_verified"])
        self.assertNotIn("password_hash", body)
        self.assertEqual(len(self.email_sender.sent), 1)
        self.assertEqual(self.email_sender.sent[0]["to"], "new.user@snapscape-mail.com")

    async def test_register_rejects_duplicate_and_weak_password(self):
        await self.register()
        duplicate = await self.register()
        weak = await self.register(email="other@snapscape-mail.com", password="onlyletters")

        self.assertEqual(duplicate.status_code, 400)
        self.assertEqual(duplicate.json()["detail"], "Email already registered")
        self.assertEqual(weak.status_code, 400)

    async def test_verify_email(self):
        await self.register()
        async with self.session_factory() as session:
            token = (await session.execute(select(EmailVerificationToken.token))).scalar_one()

        response = await self.client.get("/auth/verify-email", params={"token": token})
        again = await self.client.get("/auth/verify-email", params={"token": token})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(again.status_code, 400)
        async with self.session_factory() as session:
            user = (await session.execute(select(User))).scalar_one()
        self.assertTrue(user.is_verified)

    async def test_login_refresh_and_me(self):
        user = await self.make_user("Walker", email="walker@snapscape-mail.com")

        bad = await self.client.post("/auth/login", json={"email": user.email, "password": "wrong-pass1"})
        self.assertEqual(bad.status_code, 401)

        login = await self.client.post("/auth/login", json={"email": "Walker@snapscape-mail.com", "password": PASSWORD})
        self.assertEqual(login.status_code, 200)
        access_token = login.json()["access_token"]
        self.assertIn("refresh_token", login.cookies)

        me = await self.client.get("/auth/me", headers={"Authorization": f"Bearer {access_token}"})
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["id"], str(user.id))

        refreshed = await self.client.post("/auth/refresh")
        self.assertEqual(refreshed.status_code, 200)
        self.assertIn("access_token", refreshed.json())

    async def test_deactivated_account_cannot_login(self):
        user = await self.make_user("Gone", is_active=False)
        response = await self.client.post("/auth/login", json={"email": user.email, "password": PASSWORD})
        self.assertEqual(response.status_code, 403)

    async def test_me_requires_token(self):
        self.assertEqual((await self.client.get("/auth/me")).status_code, 401)
        response = await self.client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        self.assertEqual(response.status_code, 401)

    async def test_password_reset_flow(self):
        user = await self.make_user("Forgetful", email="forgetful@snapscape-mail.com")

        unknown = await self.client.post("/auth/forgot-password", json={"email": "nobody@snapscape-mail.com"})
        self.assertEqual(unknown.status_code, 200)
        self.assertEqual(self.email_sender.sent, [])

        await self.client.post("/auth/forgot-password", json={"email": user.email})
        async with self.session_factory() as session:
            token = (await session.execute(select(PasswordResetToken.token))).scalar_one()

        check = await self.client.get("/auth/verify-reset-token", params={"token": token})
        self.assertEqual(check.json(), {"valid": True})

        reset = await self.client.post("/auth/reset-password", json={"token": token, "password": "NewSecret99"})
        self.assertEqual(reset.status_code, 200)

        login = await self.client.post("/auth/login", json={"email": user.email, "password": "NewSecret99"})
        self.assertEqual(login.status_code, 200)

        reused = await self.client.post("/auth/reset-password", json={"token": token, "password": "Another123"})
        self.assertEqual(reused.status_code, 400)


class TestAdminApi(ApiTestCase):

    async def test_admin_routes_require_admin(self):
        user = await self.make_user("Plain")
        response = await self.client.get("/admin/users", headers=self.auth(user))
        self.assertEqual(response.status_code, 403)

    async def test_last_admin_cannot_be_demoted(self):
        admin = await self.make_user("Root", role=UserRole.ADMIN)

        response = await self.client.patch(
            f"/admin/users/{admin.id}", json={"role": "user"}, headers=self.auth(admin)
        )

        self.assertEqual(response.status_code, 400)

    async def test_search_and_update_user(self):
        admin = await self.make_user("Root", role=UserRole.ADMIN)
        target = await self.make_user("Findme")

        found = await self.client.get("/admin/users", params={"search": "findm"}, headers=self.auth(admin))
        self.assertEqual([u["id"] for u in found.json()], [str(target.id)])

        updated = await self.client.patch(
            f"/admin/users/{target.id}", json={"is_active": False}, headers=self.auth(admin)
        )
        self.assertEqual(updated.status_code, 200)
        self.assertFalse(updated.json()["is_active"])

        blocked = await self.client.get("/users/profile", headers=self.auth(target))
        self.assertEqual(blocked.status_code, 403)


if __name__ == "__main__":
    unittest.main()

import unittest

from snapscape.models.competition import CompetitionStatus
from snapscape.models.notification import Notification, Setting
from snapscape.models.user import UserRole
from support import PASSWORD, ApiTestCase


class TestUserApi(ApiTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.user = await self.make_user("Iris")

    async def test_profile_update(self):
        response = await self.client.put(
            "/users/profile", json={"name": "Iris Lens", "country": "Norway"}, headers=self.auth(self.user)
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["name"], "Iris Lens")
        self.assertEqual(response.json()["country"], "Norway")

    async def test_notification_preferences(self):
        before = await self.client.get("/users/notification-preferences", headers=self.auth(self.user))
        self.assertTrue(before.json()["voting_open"])
        self.assertFalse(before.json()["marketing_emails"])

        after = await self.client.put(
            "/users/notification-preferences", json={"voting_open": False}, headers=self.auth(self.user)
        )
        self.assertFalse(after.json()["voting_open"])
        self.assertTrue(after.json()["achievement_notifications"])

    async def test_change_password(self):
        wrong = await self.client.post(
            "/users/change-password",
            json={"current_password": "not-it-123", "new_password": "Fresh1234"},
            headers=self.auth(self.user),
        )
        changed = await self.client.post(
            "/users/change-password",
            json={"current_password": PASSWORD, "new_password": "Fresh1234"},
            headers=self.auth(self.user),
        )
        self.assertEqual(wrong.status_code, 400)
        self.assertEqual(changed.status_code, 200)

        login = await self.client.post("/auth/login", json={"email": self.user.email, "password": "Fresh1234"})
        self.assertEqual(login.status_code, 200)

    async def test_stats_and_voted_photos(self):
        owner = await self.make_user("Owner")
        competition = await self.make_competition(status=CompetitionStatus.VOTING)
        photo = await self.make_submission(owner, competition)
        await self.client.post("/ratings", json={"photo_id": str(photo.id), "score": 5}, headers=self.auth(self.user))

        stats = await self.client.get("/users/stats", headers=self.auth(self.user))
        voted = await self.client.get("/users/voted-photos", headers=self.auth(self.user))

        self.assertEqual(stats.json()["photos_rated"], 1)
        self.assertEqual(stats.json()["total_submissions"], 0)
        self.assertEqual(voted.json()["items"][0]["photo_id"], str(photo.id))


class TestNotificationApi(ApiTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.user = await self.make_user("Reader")
        for index in range(3):
            self.session.add(Notification(user_id=self.user.id, title=f"Note {index}", message="Hello"))
        await self.session.commit()

    async def test_list_and_mark_read(self):
        listing = await self.client.get("/notifications", headers=self.auth(self.user))
        self.assertEqual(listing.json()["unread_count"], 3)

        first_id = listing.json()["notifications"][0]["id"]
        marked = await self.client.patch(f"/notifications/{first_id}/read", headers=self.auth(self.user))
        self.assertTrue(marked.json()["read"])

        await self.client.patch("/notifications/read-all", headers=self.auth(self.user))
        listing = await self.client.get("/notifications", headers=self.auth(self.user))
        self.assertEqual(listing.json()["unread_count"], 0)

    async def test_other_users_notifications_are_hidden(self):
        stranger = await self.make_user("Stranger")
        listing = await self.client.get("/notifications", headers=self.auth(self.user))
        note_id = listing.json()["notifications"][0]["id"]

        response = await self.client.patch(f"/notifications/{note_id}/read", headers=self.auth(stranger))
        self.assertEqual(response.status_code, 404)

    async def test_deletion_follows_site_setting(self):
        admin = await self.make_user("Root", role=UserRole.ADMIN)
        listing = await self.client.get("/notifications", headers=self.auth(self.user))
        note_ids = [n["id"] for n in listing.json()["notifications"]]

        allowed = await self.client.delete(f"/notifications/{note_ids[0]}", headers=self.auth(self.user))
        self.assertEqual(allowed.status_code, 200)

        toggled = await self.client.patch(
            "/settings", json={"allow_notification_deletion": False}, headers=self.auth(admin)
        )
        self.assertFalse(toggled.json()["allow_notification_deletion"])
        self.assertFalse((await self.fetch(Setting, 1)).allow_notification_deletion)

        blocked = await self.client.delete(f"/notifications/{note_ids[1]}", headers=self.auth(self.user))
        self.assertEqual(blocked.status_code, 403)

    async def test_admin_broadcast(self):
        admin = await self.make_user("Root", role=UserRole.ADMIN)
        response = await self.client.post(
            "/admin/notifications/broadcast",
            json={"title": "Maintenance", "message": "Back soon", "send_email": True},
            headers=self.auth(admin),
        )
        self.assertEqual(response.json(), {"notifications_created": 2, "emails_sent": 2})


class TestFeedbackApi(ApiTestCase):

    async def test_contact_is_public(self):
        response = await self.client.post("/contact", json={
            "name": "Visitor",
            "email": "visitor@snapscape-mail.com",
            "subject": "Hello",
            "message": "Love the site",
        })
        self.assertEqual(response.status_code, 201)

    async def test_feedback_and_admin_response(self):
        user = await self.make_user("Critic")
        admin = await self.make_user("Root", role=UserRole.ADMIN)

        created = await self.client.post("/feedback", json={
            "rating": 4,
            "title": "Nice",
            "feedback": "Voting is smooth",
            "is_anonymous": True,
        }, headers=self.auth(user))
        self.assertEqual(created.status_code, 201)

        listed = await self.client.get("/admin/feedback", headers=self.auth(admin))
        self.assertIsNone(listed.json()[0]["user_id"])

        responded = await self.client.patch(
            f"/admin/feedback/{created.json()['id']}",
            json={"admin_response": "Thanks!"},
            headers=self.auth(admin),
        )
        self.assertEqual(responded.json()["status"], "reviewed")


if __name__ == "__main__":
    unittest.main()

import unittest
from datetime import datetime, timedelta
from uuid import uuid4

from snapscape.models.competition import Competition, CompetitionStatus
from snapscape.models.notification import Notification, NotificationType
from snapscape.models.rating import Rating
from snapscape.models.submission import PhotoSubmission, SubmissionStatus
from snapscape.models.user import UserRole
from snapscape.services.notification_service import NotificationService
from snapscape.services.rating_service import RatingService
from support import ApiTestCase


class TestCompetitionApi(ApiTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.admin = await self.make_user("Admin", role=UserRole.ADMIN)
        self.owner = await self.make_user("Owner")
        self.voter = await self.make_user("Voter")

    async def test_create_derives_status_from_dates(self):
        now = datetime.utcnow()
        payload = {
            "title": "Night Streets",
            "description": "City after dark",
            "theme": "Urban",
            "rules": "No composites",
            "start_date": (now - timedelta(days=1)).isoformat() + "Z",
            "end_date": (now + timedelta(days=6)).isoformat() + "Z",
            "voting_end_date": (now + timedelta(days=9)).isoformat() + "Z",
        }

        forbidden = await self.client.post("/competitions", json=payload, headers=self.auth(self.owner))
        created = await self.client.post("/competitions", json=payload, headers=self.auth(self.admin))

        self.assertEqual(forbidden.status_code, 403)
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["status"], "active")

        listed = await self.client.get("/competitions", params={"status": "active"})
        self.assertEqual([c["title"] for c in listed.json()], ["Night Streets"])

    async def test_create_rejects_end_before_start(self):
        now = datetime.utcnow()
        response = await self.client.post("/competitions", json={
            "title": "Backwards",
            "description": "d",
            "theme": "t",
            "rules": "r",
            "start_date": now.isoformat(),
            "end_date": (now - timedelta(days=1)).isoformat(),
            "voting_end_date": (now + timedelta(days=1)).isoformat(),
        }, headers=self.auth(self.admin))
        self.assertEqual(response.status_code, 422)

    async def test_manual_status_pins_competition(self):
        competition = await self.make_competition(status=CompetitionStatus.ACTIVE)

        response = await self.client.patch(
            f"/competitions/{competition.id}", json={"status": "voting"}, headers=self.auth(self.admin)
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "voting")
        self.assertTrue(response.json()["manual_status_override"])

    async def test_rating_flow_and_leaderboard(self):
        competition = await self.make_competition(status=CompetitionStatus.VOTING)
        photo = await self.make_submission(self.owner, competition)

        first = await self.client.post(
            "/ratings", json={"photo_id": str(photo.id), "score": 4}, headers=self.auth(self.voter)
        )
        second = await self.client.post(
            "/ratings", json={"photo_id": str(photo.id), "score": 2}, headers=self.auth(self.voter)
        )
        own = await self.client.post(
            "/ratings", json={"photo_id": str(photo.id), "score": 5}, headers=self.auth(self.owner)
        )
        out_of_range = await self.client.post(
            "/ratings", json={"photo_id": str(photo.id), "score": 9}, headers=self.auth(self.voter)
        )

        self.assertEqual(first.status_code, 201)
        self.assertEqual(first.json()["average_rating"], 4.0)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(second.json()["ratings_count"], 1)
        self.assertEqual(second.json()["average_rating"], 2.0)
        self.assertEqual(own.status_code, 403)
        self.assertEqual(own.json()["detail"], "You cannot rate your own submission")
        self.assertEqual(out_of_range.status_code, 422)

        early = await self.client.get(f"/competitions/{competition.id}/leaderboard")
        self.assertEqual(early.status_code, 400)
        self.assertEqual(early.json()["detail"], "Leaderboard is only available after the competition has ended")

        competition.status = CompetitionStatus.COMPLETED
        await self.session.commit()

        board = await self.client.get(f"/competitions/{competition.id}/leaderboard", params={"limit": 5})
        self.assertEqual(board.status_code, 200)
        ranked = board.json()["ranked_submissions"]
        self.assertEqual(ranked[0]["rank"], 1)
        self.assertEqual(ranked[0]["submission_id"], str(photo.id))
        self.assertEqual(ranked[0]["user_name"], "Owner")

        closed = await self.client.post(
            "/ratings", json={"photo_id": str(photo.id), "score": 5}, headers=self.auth(self.voter)
        )
        self.assertEqual(closed.status_code, 409)

    async def test_unknown_competition_leaderboard(self):
        response = await self.client.get(f"/competitions/{uuid4()}/leaderboard")
        self.assertEqual(response.status_code, 404)


class TestSubmissionApi(ApiTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.admin = await self.make_user("Admin", role=UserRole.ADMIN)
        self.owner = await self.make_user("Owner")

    async def upload(self, competition, user, title="Harbour"):
        return await self.client.post(
            "/submissions",
            data={"competition_id": str(competition.id), "title": title},
            files={"image": ("harbour.jpg", b"\xff\xd8\xff fake jpeg", "image/jpeg")},
            headers=self.auth(user),
        )

    async def test_upload_moderate_and_list(self):
        competition = await self.make_competition(status=CompetitionStatus.ACTIVE, submission_limit=1)

        created = await self.upload(competition, self.owner)
        over_limit = await self.upload(competition, self.owner, title="Second")

        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["status"], "pending")
        self.assertEqual(len(self.image_store.uploaded), 1)
        self.assertEqual(over_limit.status_code, 409)

        submission_id = created.json()["id"]
        moderated = await self.client.patch(
            f"/submissions/{submission_id}/status", json={"status": "approved"}, headers=self.auth(self.admin)
        )
        self.assertEqual(moderated.json()["status"], "approved")

        mine = await self.client.get("/users/submissions", headers=self.auth(self.owner))
        self.assertEqual(mine.json()["pagination"]["total"], 1)
        self.assertEqual(mine.json()["items"][0]["competition_title"], competition.title)

    async def test_upload_rejected_when_not_active(self):
        competition = await self.make_competition(status=CompetitionStatus.VOTING)
        response = await self.upload(competition, self.owner)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(self.image_store.uploaded, [])

    async def test_hidden_submissions_during_active_phase(self):
        competition = await self.make_competition(status=CompetitionStatus.ACTIVE, hide_other_submissions=True)
        other = await self.make_user("Other")
        await self.make_submission(self.owner, competition, title="Mine")
        await self.make_submission(other, competition, title="Theirs")

        response = await self.client.get(
            f"/competitions/{competition.id}/submissions", headers=self.auth(self.owner)
        )

        self.assertEqual([s["title"] for s in response.json()], ["Mine"])

    async def test_delete_removes_image(self):
        competition = await self.make_competition(status=CompetitionStatus.ACTIVE)
        submission = await self.make_submission(self.owner, competition, status=SubmissionStatus.PENDING)
        stranger = await self.make_user("Stranger")

        denied = await self.client.delete(f"/submissions/{submission.id}", headers=self.auth(stranger))
        deleted = await self.client.delete(f"/submissions/{submission.id}", headers=self.auth(self.owner))

        self.assertEqual(denied.status_code, 403)
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(self.image_store.deleted, [submission.image_public_id])
        self.assertIsNone(await self.fetch(PhotoSubmission, submission.id))


class TestCompetitionDeletion(ApiTestCase):
    enforce_foreign_keys = True

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.admin = await self.make_user("Admin", role=UserRole.ADMIN)
        self.owner = await self.make_user("Owner")
        self.voter = await self.make_user("Voter")

    async def test_delete_voting_competition_with_notifications(self):
        competition = await self.make_competition(status=CompetitionStatus.VOTING)
        photo = await self.make_submission(self.owner, competition)
        rating = (await RatingService(self.session).submit_rating(self.voter.id, photo.id, 4))["rating"]
        note = NotificationService(self.session).create(
            self.voter.id,
            "Voting is open",
            f'Voting has started for "{competition.title}".',
            type=NotificationType.COMPETITION,
            related_competition_id=competition.id,
        )
        await self.session.commit()

        denied = await self.client.delete(f"/competitions/{competition.id}", headers=self.auth(self.owner))
        response = await self.client.delete(f"/competitions/{competition.id}", headers=self.auth(self.admin))

        self.assertEqual(denied.status_code, 403)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["submissions_deleted"], 1)
        self.assertEqual(self.image_store.deleted, [photo.image_public_id])
        self.assertIsNone(await self.fetch(Competition, competition.id))
        self.assertIsNone(await self.fetch(PhotoSubmission, photo.id))
        self.assertIsNone(await self.fetch(Rating, rating.id))

        kept = await self.fetch(Notification, note.id)
        self.assertIsNotNone(kept)
        self.assertIsNone(kept.related_competition_id)

    async def test_delete_unknown_competition(self):
        response = await self.client.delete(f"/competitions/{uuid4()}", headers=self.auth(self.admin))
        self.assertEqual(response.status_code, 404)


class TestCronApi(ApiTestCase):

    async def test_cron_secret_required(self):
        missing = await self.client.get("/cron/update-competition-statuses")
        wrong = await self.client.get(
            "/cron/update-competition-statuses", headers={"Authorization": "Bearer nope"}
        )
        self.assertEqual(missing.status_code, 401)
        self.assertEqual(wrong.status_code, 401)

    async def test_cron_updates_statuses(self):
        now = datetime.utcnow()
        competition = await self.make_competition(
            status=CompetitionStatus.UPCOMING,
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=1),
            voting_end_date=now + timedelta(days=2),
        )

        response = await self.client.get(
            "/cron/update-competition-statuses", headers={"Authorization": "Bearer test-cron-secret"}
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["updated"], 1)
        self.assertEqual((await self.fetch(Competition, competition.id)).status, CompetitionStatus.ACTIVE)

    async def test_preview_is_admin_only(self):
        user = await self.make_user("Plain")
        admin = await self.make_user("Root", role=UserRole.ADMIN)
        await self.make_competition(status=CompetitionStatus.ACTIVE)

        denied = await self.client.get("/cron/preview-competition-statuses", headers=self.auth(user))
        preview = await self.client.get("/cron/preview-competition-statuses", headers=self.auth(admin))

        self.assertEqual(denied.status_code, 403)
        self.assertEqual(preview.status_code, 200)
        self.assertIn("changes", preview.json())


if __name__ == "__main__":
    unittest.main()

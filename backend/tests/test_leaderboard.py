import unittest
from datetime import datetime, timedelta
from uuid import uuid4

from snapscape.core.exceptions import LeaderboardUnavailableError, NotFoundError
from snapscape.models.competition import CompetitionStatus
from snapscape.models.submission import PhotoSubmission, SubmissionStatus
from snapscape.services.leaderboard import (
    LeaderboardService,
    aggregate_contributors,
    rank_submissions,
)
from support import DatabaseTestCase

T0 = datetime(2025, 1, 1)


def photo(average, count, minutes=0, user_id=None):
    return PhotoSubmission(
        id=uuid4(),
        user_id=user_id or uuid4(),
        competition_id=uuid4(),
        title="p",
        image_url="u",
        thumbnail_url="u",
        image_public_id="p",
        average_rating=average,
        ratings_count=count,
        created_at=T0 + timedelta(minutes=minutes),
    )


class TestRanking(unittest.TestCase):

    def test_ranks_are_contiguous_from_one(self):
        ranked = rank_submissions([photo(3.0, 2), photo(4.5, 2), photo(1.0, 1)])
        self.assertEqual([rank for rank, _ in ranked], [1, 2, 3])
        self.assertEqual([s.average_rating for _, s in ranked], [4.5, 3.0, 1.0])

    def test_tie_broken_by_ratings_count_then_age(self):
        fewer = photo(4.0, 2, minutes=0)
        more = photo(4.0, 5, minutes=10)
        later = photo(4.0, 2, minutes=5)

        ranked = [s for _, s in rank_submissions([later, fewer, more])]

        self.assertEqual(ranked, [more, fewer, later])

    def test_equal_scores_still_get_distinct_ranks(self):
        ranked = rank_submissions([photo(4.0, 3, minutes=1), photo(4.0, 3, minutes=2)])
        self.assertEqual([rank for rank, _ in ranked], [1, 2])

    def test_empty(self):
        self.assertEqual(rank_submissions([]), [])


class TestContributors(unittest.TestCase):

    def test_grouped_and_sorted(self):
        alice, bob = uuid4(), uuid4()
        submissions = [
            photo(4.0, 1, user_id=alice),
            photo(2.0, 1, user_id=alice),
            photo(5.0, 1, user_id=bob),
        ]

        contributors = aggregate_contributors(submissions, {alice: "Alice", bob: "Bob"})

        self.assertEqual([c["name"] for c in contributors], ["Alice", "Bob"])
        self.assertEqual(contributors[0]["submission_count"], 2)
        self.assertAlmostEqual(contributors[0]["total_rating"], 6.0)
        self.assertAlmostEqual(contributors[0]["average_rating"], 3.0)

    def test_equal_counts_ordered_by_total_rating(self):
        alice, bob = uuid4(), uuid4()
        contributors = aggregate_contributors(
            [photo(2.0, 1, user_id=alice), photo(4.0, 1, user_id=bob)], {}
        )
        self.assertEqual(contributors[0]["user_id"], str(bob))
        self.assertEqual(contributors[0]["name"], "Unknown")


class TestLeaderboardService(DatabaseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.alice = await self.make_user("Alice")
        self.bob = await self.make_user("Bob")

    async def test_rejected_until_competition_ends(self):
        for status in (CompetitionStatus.UPCOMING, CompetitionStatus.ACTIVE, CompetitionStatus.VOTING):
            competition = await self.make_competition(status=status)
            with self.assertRaises(LeaderboardUnavailableError) as ctx:
                await LeaderboardService(self.session).get_leaderboard(competition.id)
            self.assertEqual(ctx.exception.status_code, 400)

    async def test_unknown_competition(self):
        with self.assertRaises(NotFoundError):
            await LeaderboardService(self.session).get_leaderboard(uuid4())

    async def test_leaderboard_of_completed_competition(self):
        competition = await self.make_competition(status=CompetitionStatus.COMPLETED)
        await self.make_submission(self.alice, competition, title="Dusk", average_rating=3.5, ratings_count=4)
        await self.make_submission(self.bob, competition, title="Dawn", average_rating=4.5, ratings_count=2)
        await self.make_submission(self.alice, competition, title="Noon", average_rating=3.5, ratings_count=6)
        await self.make_submission(
            self.bob, competition, title="Hidden", status=SubmissionStatus.PENDING, average_rating=5.0, ratings_count=9
        )

        board = await LeaderboardService(self.session).get_leaderboard(competition.id)

        ranked = board["ranked_submissions"]
        self.assertEqual([r["title"] for r in ranked], ["Dawn", "Noon", "Dusk"])
        self.assertEqual([r["rank"] for r in ranked], [1, 2, 3])
        self.assertEqual(ranked[0]["user_name"], "Bob")
        self.assertEqual(board["competition_status"], "completed")
        self.assertEqual(board["top_contributors"][0]["name"], "Alice")
        self.assertEqual(board["top_contributors"][0]["submission_count"], 2)

    async def test_archived_competition_and_limit(self):
        competition = await self.make_competition(status=CompetitionStatus.ARCHIVED)
        for index in range(5):
            await self.make_submission(self.alice, competition, title=f"#{index}", average_rating=index, ratings_count=1)

        board = await LeaderboardService(self.session).get_leaderboard(competition.id, limit=2)
        self.assertEqual([r["title"] for r in board["ranked_submissions"]], ["#4", "#3"])

        board = await LeaderboardService(self.session).get_leaderboard(competition.id, limit=0)
        self.assertEqual(len(board["ranked_submissions"]), 1)

    async def test_empty_leaderboard(self):
        competition = await self.make_competition(status=CompetitionStatus.COMPLETED)
        board = await LeaderboardService(self.session).get_leaderboard(competition.id)
        self.assertEqual(board["ranked_submissions"], [])
        self.assertEqual(board["top_contributors"], [])


if __name__ == "__main__":
    unittest.main()

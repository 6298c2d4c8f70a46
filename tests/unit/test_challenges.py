import pytest

from squadbot.services.challenge import ChallengeService
from squadbot.services.errors import (
    AlreadyMember,
    ChallengeFull,
    ChallengeNotFound,
    IdGenerationFailed,
    InvalidDailyLimit,
    InvalidDescription,
    InvalidName,
    MaxChallengesReached,
    NotAdmin,
)
from squadbot.services.limits import MAX_CHALLENGES_PER_USER, MAX_PARTICIPANTS_PER_CHALLENGE
from squadbot.utils.ids import is_valid_id


class TestCreateChallenge:
    """Challenge creation rules."""

    def test_create_sets_fields(self, engine):
        """A created challenge keeps its settings and gets a valid random id."""
        service = ChallengeService(engine)
        challenge = service.create("Push-ups", "Daily reps", 42, daily_task_limit=3, hide_future_tasks=True)
        assert is_valid_id(challenge.id)
        stored = service.get_by_id(challenge.id)
        assert stored.name == "Push-ups"
        assert stored.description == "Daily reps"
        assert stored.creator_id == 42
        assert stored.daily_task_limit == 3
        assert stored.hide_future_tasks is True

    @pytest.mark.parametrize("name", ["", "x" * 51])
    def test_name_length(self, challenges, name):
        """Names must be 1-50 characters."""
        with pytest.raises(InvalidName):
            challenges.create(name, "", 1)

    def test_description_length(self, challenges):
        """Descriptions may not exceed 500 characters."""
        with pytest.raises(InvalidDescription):
            challenges.create("Name", "x" * 501, 1)

    @pytest.mark.parametrize("limit", [-1, 51])
    def test_daily_limit_range(self, challenges, limit):
        """Daily limits live in 0..50."""
        with pytest.raises(InvalidDailyLimit):
            challenges.create("Name", "", 1, daily_task_limit=limit)

    def test_per_user_quota(self, challenges):
        """A user can be in at most 10 challenges when creating another."""
        for n in range(MAX_CHALLENGES_PER_USER):
            challenges.create(f"Challenge {n}", "", 7)
        with pytest.raises(MaxChallengesReached):
            challenges.create("One more", "", 7)

    def test_joined_challenges_count_towards_quota(self, challenges, participants):
        """Memberships count, not only ownership."""
        for n in range(MAX_CHALLENGES_PER_USER):
            other = challenges.create(f"Other {n}", "", 1000 + n)
            participants.join(other.id, 7, "Bob", "🔥")
        with pytest.raises(MaxChallengesReached):
            challenges.create("Mine", "", 7)

    def test_id_collision_retries(self, engine):
        """Colliding ids are retried until a free one comes up."""
        ids = iter(["AAAA0000", "AAAA0000", "BBBB1111"])
        service = ChallengeService(engine, id_generator=lambda: next(ids))
        assert service.create("One", "", 1).id == "AAAA0000"
        assert service.create("Two", "", 1).id == "BBBB1111"

    def test_id_generation_gives_up(self, engine):
        """After ten collisions creation fails."""
        service = ChallengeService(engine, id_generator=lambda: "SAME0000")
        service.create("One", "", 1)
        with pytest.raises(IdGenerationFailed):
            service.create("Two", "", 1)


class TestChallengeQueries:
    """Lookups and membership checks."""

    def test_missing_challenge(self, challenges):
        """Unknown ids raise ChallengeNotFound."""
        with pytest.raises(ChallengeNotFound):
            challenges.get_by_id("ZZZZ9999")

    def test_get_by_user_id_includes_memberships(self, challenges, participants, challenge):
        """A user's challenges include created and joined ones, without duplicates."""
        own = challenges.create("Own", "", 200)
        participants.join(own.id, 200, "Bob", "🐺")
        participants.join(challenge.id, 200, "Bob", "🐺")
        ids = {c.id for c in challenges.get_by_user_id(200)}
        assert ids == {own.id, challenge.id}
        assert len(challenges.get_by_user_id(200)) == 2

    def test_is_admin(self, challenges, challenge):
        """Only the creator is admin."""
        assert challenges.is_admin(challenge.id, 100)
        assert not challenges.is_admin(challenge.id, 200)

    def test_can_join(self, challenges, participants, challenge):
        """Members and full challenges are refused."""
        challenges.can_join(challenge.id, 200)
        with pytest.raises(AlreadyMember):
            challenges.can_join(challenge.id, 100)
        with pytest.raises(ChallengeNotFound):
            challenges.can_join("NOPE0000", 200)

    def test_can_join_full(self, challenges, participants, challenge):
        """The 51st participant is refused."""
        for n in range(1, MAX_PARTICIPANTS_PER_CHALLENGE):
            participants.join(challenge.id, 1000 + n, f"User {n}", chr(0x1F400 + n))
        with pytest.raises(ChallengeFull):
            challenges.can_join(challenge.id, 200)


class TestChallengeAdminEdits:
    """Admin-only updates and deletion."""

    def test_updates_by_creator(self, challenges, challenge):
        """The creator can rename and reconfigure."""
        challenges.update_name(challenge.id, "Evening Run", 100)
        challenges.update_description(challenge.id, "", 100)
        challenges.update_daily_limit(challenge.id, 5, 100)
        assert challenges.toggle_hide_future_tasks(challenge.id, 100) is True
        stored = challenges.get_by_id(challenge.id)
        assert (stored.name, stored.description, stored.daily_task_limit, stored.hide_future_tasks) == (
            "Evening Run", "", 5, True,
        )

    def test_updates_by_stranger(self, challenges, challenge):
        """Anyone else gets NotAdmin."""
        with pytest.raises(NotAdmin):
            challenges.update_name(challenge.id, "Mine now", 200)
        with pytest.raises(NotAdmin):
            challenges.delete(challenge.id, 200)

    def test_super_admin_override(self, challenges, challenge):
        """A super admin may edit someone else's challenge."""
        challenges.update_name(challenge.id, "Curated", 200, is_super_admin=True)
        assert challenges.get_by_id(challenge.id).name == "Curated"

    def test_delete_cascades(self, challenges, tasks, participants, completions, challenge, five_tasks):
        """Deleting a challenge removes its tasks, participants and completions."""
        alice = participants.get_by_challenge_and_user(challenge.id, 100)
        completions.complete(five_tasks[0].id, alice.id)

        challenges.delete(challenge.id, 100)

        with pytest.raises(ChallengeNotFound):
            challenges.get_by_id(challenge.id)
        assert tasks.get_by_challenge_id(challenge.id) == []
        assert participants.get_by_challenge_id(challenge.id) == []
        assert completions.count_by_participant_id(alice.id) == 0

import pytest

from squadbot.services.errors import (
    AlreadyMember,
    ChallengeFull,
    ChallengeNotFound,
    EmojiTaken,
    InvalidEmoji,
    InvalidName,
    ParticipantNotFound,
)
from squadbot.services.limits import MAX_PARTICIPANTS_PER_CHALLENGE


class TestJoin:
    """Joining a challenge."""

    def test_join_defaults(self, participants, challenge):
        """A new participant has notifications on and the given offset."""
        bob = participants.join(challenge.id, 200, "Bob", "🔥", time_offset_minutes=180)
        assert bob.notify_enabled is True
        assert bob.time_offset_minutes == 180
        assert participants.count_by_challenge_id(challenge.id) == 2

    def test_join_twice(self, participants, challenge):
        """The same user cannot join twice."""
        with pytest.raises(AlreadyMember):
            participants.join(challenge.id, 100, "Alice again", "🔥")

    def test_emoji_unique_per_challenge(self, participants, challenges, challenge):
        """An emoji is taken per challenge, not globally."""
        with pytest.raises(EmojiTaken):
            participants.join(challenge.id, 200, "Bob", "👑")
        other = challenges.create("Other", "", 300)
        participants.join(other.id, 200, "Bob", "👑")

    def test_join_validation(self, participants, challenge):
        """Names are 1-30 characters and an emoji is required."""
        with pytest.raises(InvalidName):
            participants.join(challenge.id, 200, "x" * 31, "🔥")
        with pytest.raises(InvalidEmoji):
            participants.join(challenge.id, 200, "Bob", "")

    def test_join_missing_challenge(self, participants):
        """Joining an unknown challenge fails."""
        with pytest.raises(ChallengeNotFound):
            participants.join("NOPE0000", 200, "Bob", "🔥")

    def test_participant_cap(self, participants, challenge):
        """The cap is 50 participants including the creator."""
        for n in range(1, MAX_PARTICIPANTS_PER_CHALLENGE):
            participants.join(challenge.id, 1000 + n, f"User {n}", chr(0x1F400 + n))
        with pytest.raises(ChallengeFull):
            participants.join(challenge.id, 200, "Late", "🦄")


class TestParticipantSettings:
    """Settings changes and leaving."""

    def test_lookup(self, participants, challenge):
        """Unknown members come back as None."""
        assert participants.get_by_challenge_and_user(challenge.id, 100).display_name == "Alice"
        assert participants.get_by_challenge_and_user(challenge.id, 999) is None

    def test_update_name_and_offset(self, participants, challenge):
        """Name and clock offset can be changed."""
        alice = participants.get_by_challenge_and_user(challenge.id, 100)
        participants.update_name(alice.id, "Ally")
        participants.update_time_offset(alice.id, -120)
        stored = participants.get_by_id(alice.id)
        assert (stored.display_name, stored.time_offset_minutes) == ("Ally", -120)

    def test_update_emoji(self, participants, challenge):
        """Switching to a free emoji works, a taken one does not, keeping your own is fine."""
        bob = participants.join(challenge.id, 200, "Bob", "🔥")
        with pytest.raises(EmojiTaken):
            participants.update_emoji(bob.id, "👑", challenge.id)
        participants.update_emoji(bob.id, "🔥", challenge.id)
        assert participants.update_emoji(bob.id, "🚀", challenge.id).emoji == "🚀"
        assert sorted(participants.get_used_emojis(challenge.id)) == sorted(["👑", "🚀"])

    def test_toggle_notifications(self, participants, challenge):
        """Toggling flips the flag and returns the new value."""
        alice = participants.get_by_challenge_and_user(challenge.id, 100)
        assert participants.toggle_notifications(alice.id) is False
        assert participants.toggle_notifications(alice.id) is True

    def test_leave(self, participants, challenge):
        """Leaving removes the participant; leaving again fails."""
        bob = participants.join(challenge.id, 200, "Bob", "🔥")
        participants.leave(bob.id)
        assert participants.get_by_challenge_and_user(challenge.id, 200) is None
        with pytest.raises(ParticipantNotFound):
            participants.leave(bob.id)

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..models.challenge import Challenge
from ..models.participant import MAX_DISPLAY_NAME_LENGTH, Participant
from .errors import (
    AlreadyMember,
    ChallengeFull,
    ChallengeNotFound,
    EmojiTaken,
    InvalidEmoji,
    InvalidName,
    ParticipantNotFound,
)
from .limits import MAX_PARTICIPANTS_PER_CHALLENGE

logger = logging.getLogger(__name__)


def validate_display_name(name: str) -> str:
    if not name or len(name) > MAX_DISPLAY_NAME_LENGTH:
        raise InvalidName(f"display name must be 1-{MAX_DISPLAY_NAME_LENGTH} characters")
    return name


class ParticipantService:
    def __init__(self, engine):
        self.engine = engine

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    @staticmethod
    def _used_emojis(session: Session, challenge_id: str, exclude_id: Optional[int] = None) -> List[str]:
        statement = select(Participant.emoji).where(Participant.challenge_id == challenge_id)
        if exclude_id is not None:
            statement = statement.where(Participant.id != exclude_id)
        return list(session.exec(statement).all())

    def join(
        self,
        challenge_id: str,
        telegram_id: int,
        display_name: str,
        emoji: str,
        time_offset_minutes: int = 0,
    ) -> Participant:
        validate_display_name(display_name)
        if not emoji:
            raise InvalidEmoji()

        with self._session() as session:
            if session.get(Challenge, challenge_id) is None:
                raise ChallengeNotFound()
            if emoji in self._used_emojis(session, challenge_id):
                raise EmojiTaken()
            existing = session.exec(
                select(Participant)
                .where(Participant.challenge_id == challenge_id)
                .where(Participant.telegram_id == telegram_id)
            ).first()
            if existing is not None:
                raise AlreadyMember()
            count = session.exec(
                select(func.count()).select_from(Participant).where(Participant.challenge_id == challenge_id)
            ).one()
            if count >= MAX_PARTICIPANTS_PER_CHALLENGE:
                raise ChallengeFull()

            participant = Participant(
                challenge_id=challenge_id,
                telegram_id=telegram_id,
                display_name=display_name,
                emoji=emoji,
                time_offset_minutes=time_offset_minutes,
            )
            session.add(participant)
            try:
                session.commit()
            except IntegrityError:
                # lost a race against another join; report which constraint tripped
                session.rollback()
                if emoji in self._used_emojis(session, challenge_id):
                    raise EmojiTaken()
                raise AlreadyMember()
            session.refresh(participant)

        logger.info("User %s joined %s as %s %s", telegram_id, challenge_id, emoji, display_name)
        return participant

    def get_by_id(self, participant_id: int) -> Participant:
        with self._session() as session:
            participant = session.get(Participant, participant_id)
        if participant is None:
            raise ParticipantNotFound()
        return participant

    def get_by_challenge_and_user(self, challenge_id: str, telegram_id: int) -> Optional[Participant]:
        with self._session() as session:
            return session.exec(
                select(Participant)
                .where(Participant.challenge_id == challenge_id)
                .where(Participant.telegram_id == telegram_id)
            ).first()

    def get_by_challenge_id(self, challenge_id: str) -> List[Participant]:
        with self._session() as session:
            return list(
                session.exec(
                    select(Participant)
                    .where(Participant.challenge_id == challenge_id)
                    .order_by(Participant.joined_at, Participant.id)
                ).all()
            )

    def count_by_challenge_id(self, challenge_id: str) -> int:
        with self._session() as session:
            return session.exec(
                select(func.count()).select_from(Participant).where(Participant.challenge_id == challenge_id)
            ).one()

    def get_used_emojis(self, challenge_id: str) -> List[str]:
        with self._session() as session:
            return self._used_emojis(session, challenge_id)

    def _modify(self, participant_id: int, **values) -> Participant:
        with self._session() as session:
            participant = session.get(Participant, participant_id)
            if participant is None:
                raise ParticipantNotFound()
            for key, value in values.items():
                setattr(participant, key, value)
            session.add(participant)
            session.commit()
            session.refresh(participant)
            return participant

    def update_name(self, participant_id: int, name: str) -> Participant:
        return self._modify(participant_id, display_name=validate_display_name(name))

    def update_emoji(self, participant_id: int, emoji: str, challenge_id: str) -> Participant:
        if not emoji:
            raise InvalidEmoji()
        with self._session() as session:
            if emoji in self._used_emojis(session, challenge_id, exclude_id=participant_id):
                raise EmojiTaken()
        try:
            return self._modify(participant_id, emoji=emoji)
        except IntegrityError:
            raise EmojiTaken()

    def update_time_offset(self, participant_id: int, offset_minutes: int) -> Participant:
        return self._modify(participant_id, time_offset_minutes=offset_minutes)

    def toggle_notifications(self, participant_id: int) -> bool:
        participant = self.get_by_id(participant_id)
        return self._modify(participant_id, notify_enabled=not participant.notify_enabled).notify_enabled

    def leave(self, participant_id: int) -> None:
        with self._session() as session:
            participant = session.get(Participant, participant_id)
            if participant is None:
                raise ParticipantNotFound()
            session.delete(participant)
            session.commit()
        logger.info("Participant %s left %s", participant_id, participant.challenge_id)

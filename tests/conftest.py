import itertools
import random

import pytest

from squadbot.bot.context import Services
from squadbot.database import create_db_and_tables, make_engine
from squadbot.services.challenge import ChallengeService
from squadbot.services.completion import CompletionService
from squadbot.services.participant import ParticipantService
from squadbot.services.state import StateService
from squadbot.services.super_admin import SuperAdminService
from squadbot.services.task import TaskService
from squadbot.services.template import TemplateService


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def id_sequence():
    """Deterministic challenge ids: CHAL0001, CHAL0002, ..."""
    counter = itertools.count(1)
    return lambda: f"CHAL{next(counter):04d}"


@pytest.fixture
def challenges(engine, id_sequence):
    return ChallengeService(engine, id_generator=id_sequence)


@pytest.fixture
def tasks(engine):
    return TaskService(engine, rng=random.Random(7))


@pytest.fixture
def participants(engine):
    return ParticipantService(engine)


@pytest.fixture
def completions(engine):
    return CompletionService(engine)


@pytest.fixture
def states(engine):
    return StateService(engine)


@pytest.fixture
def super_admins(engine):
    return SuperAdminService(engine)


@pytest.fixture
def templates(engine):
    return TemplateService(engine, rng=random.Random(7))


@pytest.fixture
def services(challenges, tasks, participants, completions, states, super_admins, templates):
    return Services(
        challenges=challenges,
        tasks=tasks,
        participants=participants,
        completions=completions,
        states=states,
        super_admins=super_admins,
        templates=templates,
        bot_username="squad_test_bot",
    )


@pytest.fixture
def challenge(challenges, participants):
    """A challenge owned by user 100, who has joined it as 👑 Alice."""
    created = challenges.create("Morning Run", "Run every day", 100)
    participants.join(created.id, 100, "Alice", "👑")
    return created


@pytest.fixture
def five_tasks(tasks, challenge):
    return [tasks.create(challenge.id, f"Task {n}") for n in range(1, 6)]

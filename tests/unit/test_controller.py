import asyncio

import pytest

from squadbot.bot import events
from squadbot.bot.controller import Controller, error_reply
from squadbot.bot.events import Sender
from squadbot.bot.flows.create import HIDE_FUTURE_PROMPT
from squadbot.bot.screens import GENERIC_ERROR, NO_PERMISSION
from squadbot.bot.states import State
from squadbot.services import errors
from squadbot.services.notification import NotificationType


class FakeTransport:
    def __init__(self):
        self.messages = []
        self.photos = []
        self.answered = []

    async def send_message(self, chat_id, text, keyboard=None, html=False):
        self.messages.append((chat_id, text, keyboard))

    async def send_photo(self, chat_id, photo, caption="", keyboard=None):
        self.photos.append((chat_id, photo))

    async def answer_callback(self, callback_id):
        self.answered.append(callback_id)

    def texts(self, chat_id):
        return [text for cid, text, _ in self.messages if cid == chat_id]


class RecordingNotifier:
    def __init__(self):
        self.published = []

    def publish(self, notification):
        self.published.append(notification)
        return True


class User:
    """Drives the controller as one Telegram user."""

    def __init__(self, controller, user_id, username=""):
        self.controller = controller
        self.sender = Sender(user_id, username=username)

    async def start(self, payload=""):
        return await self.controller.handle(events.start(self.sender, payload))

    async def say(self, text):
        return await self.controller.handle(events.text(self.sender, text))

    async def photo(self, media_id):
        return await self.controller.handle(events.photo(self.sender, media_id))

    async def tap(self, data):
        return await self.controller.handle(events.callback(self.sender, data, callback_id=f"cb-{data}"))


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def controller(services, transport, notifier):
    return Controller(services, transport, notifier=notifier)


class TestCreateFlow:
    """Creating a challenge through the conversation."""

    async def test_create_challenge(self, controller, services, transport):
        """Name, description, creator profile and settings end in a live challenge."""
        john = User(controller, 12345)
        await john.start()
        await john.tap("create_challenge")
        await john.say("30-Day Fitness")
        await john.tap("skip")
        await john.say("John")
        await john.say("💪")
        await john.say("5")
        await john.tap("hide_future_no")
        ctx = await john.say("14:30")

        created = services.challenges.get_by_user_id(12345)
        assert len(created) == 1
        challenge = created[0]
        assert (challenge.name, challenge.daily_task_limit, challenge.hide_future_tasks) == ("30-Day Fitness", 5, False)

        participant = services.participants.get_by_challenge_and_user(challenge.id, 12345)
        assert (participant.display_name, participant.emoji, participant.notify_enabled) == ("John", "💪", True)

        state = services.states.get(12345)
        assert (state.state, state.temp_data, state.current_challenge) == ("idle", "", challenge.id)
        assert ctx.state == State.IDLE
        assert "is live!" in transport.texts(12345)[-2]

    async def test_invalid_name_reprompts(self, controller, services, transport):
        """A too long name keeps the user on the same question."""
        user = User(controller, 1)
        await user.tap("create_challenge")
        ctx = await user.say("x" * 51)
        assert ctx.state == State.AWAITING_CHALLENGE_NAME
        assert "1-50 characters" in transport.texts(1)[-1]

    async def test_cancel_returns_to_start(self, controller, services, transport):
        """Cancelling creation forgets the scratch and shows the menu."""
        user = User(controller, 1)
        await user.tap("create_challenge")
        await user.say("Walk")
        ctx = await user.tap("cancel")
        assert ctx.state == State.IDLE
        assert services.states.get(1).temp_data == ""
        assert transport.texts(1)[-1].startswith("Welcome to SquadChallengeBot!")

    async def test_typed_answer_to_hide_future_asks_again(self, controller, services, transport):
        """Typing instead of tapping repeats the question with its buttons."""
        user = User(controller, 1)
        await user.tap("create_challenge")
        await user.say("Walk")
        await user.tap("skip")
        await user.say("Jo")
        await user.say("🐢")
        await user.say("3")
        ctx = await user.say("yes")
        assert ctx.state == State.AWAITING_HIDE_FUTURE_TASKS
        chat_id, text, keyboard = transport.messages[-1]
        assert text == HIDE_FUTURE_PROMPT
        assert [button.data for row in keyboard for button in row] == ["hide_future_yes", "hide_future_no", "cancel"]

        ctx = await user.tap("hide_future_yes")
        assert ctx.state == State.AWAITING_CREATOR_SYNC_TIME

    async def test_quota_reply(self, controller, challenges, transport):
        """The eleventh challenge is refused with an explanation."""
        for n in range(10):
            challenges.create(f"Challenge {n}", "", 1)
        await User(controller, 1).tap("create_challenge")
        assert transport.texts(1)[-1] == error_reply(errors.MaxChallengesReached())


class TestJoinAndProgress:
    """Joining by deep link and completing tasks."""

    async def test_join_and_complete(self, controller, services, transport, notifier, challenge, five_tasks):
        """Skipping a task makes the one after the furthest completed current."""
        sarah = User(controller, 200)
        await sarah.start(challenge.id)
        await sarah.say("Sarah")
        await sarah.say("🔥")
        await sarah.tap("skip_sync_time")

        participant = services.participants.get_by_challenge_and_user(challenge.id, 200)
        assert participant.display_name == "Sarah"
        assert notifier.published[-1].type == NotificationType.JOIN

        await sarah.tap(f"complete_task|{five_tasks[0].id}")
        await sarah.tap(f"complete_task|{five_tasks[2].id}")
        assert services.completions.get_current_task_num(participant.id, five_tasks) == 4
        assert [n.type for n in notifier.published[-2:]] == [NotificationType.TASK_COMPLETED] * 2

    async def test_skip_name_uses_username(self, controller, services, challenge):
        """Skipping the name takes the Telegram username."""
        bob = User(controller, 200, username="bobby")
        await bob.start(challenge.id)
        await bob.tap("skip")
        await bob.tap("select_emoji|🔥")
        await bob.say("09:00")
        assert services.participants.get_by_challenge_and_user(challenge.id, 200).display_name == "bobby"

    async def test_taken_emoji_reprompts(self, controller, transport, challenge):
        """The creator's emoji cannot be picked again."""
        bob = User(controller, 200)
        await bob.start(challenge.id)
        await bob.say("Bob")
        ctx = await bob.say("👑")
        assert ctx.state == State.AWAITING_PARTICIPANT_EMOJI
        assert "already has that one" in transport.texts(200)[-1]

    async def test_member_deep_link_opens_challenge(self, controller, transport, challenge):
        """A member following the link lands on the challenge view."""
        ctx = await User(controller, 100).start(challenge.id)
        assert ctx.challenge_id == challenge.id
        assert "Morning Run" in transport.texts(100)[-1]

    async def test_unknown_deep_link(self, controller, transport):
        """An unknown id in the link is reported."""
        await User(controller, 100).start("ZZZZ9999")
        assert "Challenge not found" in transport.texts(100)[-1]

    async def test_daily_limit_blocks(self, controller, services, transport, challenge, five_tasks):
        """Once the limit is used up the next completion is refused."""
        services.challenges.update_daily_limit(challenge.id, 2, 100)
        alice = User(controller, 100)
        await alice.tap(f"open_challenge|{challenge.id}")
        await alice.tap("complete_current")
        await alice.tap("complete_current")
        await alice.tap("complete_current")
        participant = services.participants.get_by_challenge_and_user(challenge.id, 100)
        assert services.completions.count_by_participant_id(participant.id) == 2
        assert "Daily Limit Reached" in transport.texts(100)[-1]

    async def test_locked_task(self, controller, services, transport, challenge, five_tasks):
        """Sequential mode refuses tasks past the current one."""
        services.challenges.toggle_hide_future_tasks(challenge.id, 100)
        alice = User(controller, 100)
        await alice.tap(f"open_challenge|{challenge.id}")
        await alice.tap(f"complete_task|{five_tasks[3].id}")
        assert "locked" in transport.texts(100)[-1]

    async def test_finishing_celebrates(self, controller, notifier, transport, challenge, five_tasks):
        """The last task brings the celebration and both completion notices."""
        alice = User(controller, 100)
        await alice.tap(f"open_challenge|{challenge.id}")
        for _ in five_tasks:
            await alice.tap("complete_current")
        assert "YOU DID IT" in transport.texts(100)[-1]
        assert {n.type for n in notifier.published} >= {
            NotificationType.CHALLENGE_COMPLETED,
            NotificationType.USER_CHALLENGE_COMPLETED,
        }

    async def test_task_with_image_sends_photo(self, controller, services, transport, challenge):
        """Task details show the task's picture first."""
        task = services.tasks.create(challenge.id, "Pose", image_file_id="photo-1")
        alice = User(controller, 100)
        await alice.tap(f"open_challenge|{challenge.id}")
        await alice.tap(f"task_detail|{task.id}")
        assert transport.photos == [(100, "photo-1")]
        assert "Task #1: Pose" in transport.texts(100)[-1]


class TestAdminFlows:
    """Admin screens and the permission gate."""

    async def test_add_task_flow(self, controller, services, challenge):
        """Title, image and description make a task."""
        alice = User(controller, 100)
        await alice.tap(f"open_challenge|{challenge.id}")
        await alice.tap("add_task")
        await alice.say("Push-ups")
        await alice.photo("photo-9")
        await alice.say("Twenty of them")
        task = services.tasks.get_by_challenge_id(challenge.id)[0]
        assert (task.title, task.image_file_id, task.description, task.order_num) == (
            "Push-ups", "photo-9", "Twenty of them", 1,
        )

    async def test_non_admin_is_refused(self, controller, services, transport, challenge):
        """Participants who did not create the challenge cannot administer it."""
        services.participants.join(challenge.id, 200, "Bob", "🔥")
        bob = User(controller, 200)
        await bob.tap(f"open_challenge|{challenge.id}")
        await bob.tap("admin_panel")
        assert transport.texts(200)[-1] == NO_PERMISSION

    async def test_delete_challenge_notifies_members(self, controller, services, notifier, challenge):
        """Deleting resets everyone parked on it and tells the members."""
        services.participants.join(challenge.id, 200, "Bob", "🔥")
        services.states.set_current_challenge(200, challenge.id)
        alice = User(controller, 100)
        await alice.tap(f"open_challenge|{challenge.id}")
        await alice.tap("delete_challenge")
        await alice.tap("confirm_delete_challenge")

        assert services.challenges.get_by_user_id(100) == []
        assert services.states.get(200).current_challenge == ""
        deleted = notifier.published[-1]
        assert deleted.type == NotificationType.CHALLENGE_DELETED
        assert sorted(deleted.recipients) == [100, 200]

    async def test_callback_resets_abandoned_flow(self, controller, services, challenge):
        """Tapping an unrelated button leaves the half-finished flow."""
        alice = User(controller, 100)
        await alice.tap(f"open_challenge|{challenge.id}")
        await alice.tap("edit_challenge_name")
        ctx = await alice.tap("team_progress")
        assert ctx.state == State.IDLE
        assert services.states.get(100).current_challenge == challenge.id


class TestErrorHandling:
    """What users see when things go wrong."""

    async def test_callbacks_are_answered(self, controller, transport):
        """Every button press is acknowledged."""
        await User(controller, 1).tap("noop")
        assert transport.answered == ["cb-noop"]

    async def test_unknown_action_is_ignored(self, controller, transport):
        """Buttons from old messages do nothing."""
        await User(controller, 1).tap("no_such_action")
        assert transport.texts(1) == []

    async def test_text_in_idle_is_ignored(self, controller, transport):
        """Free text outside a flow gets no reply."""
        await User(controller, 1).say("hello")
        assert transport.texts(1) == []

    async def test_unexpected_error_gets_generic_reply(self, controller, services, transport, monkeypatch):
        """A crash inside a handler is logged and answered politely."""

        def boom(user_id):
            raise RuntimeError("boom")

        monkeypatch.setattr(services.challenges, "get_by_user_id", boom)
        await User(controller, 1).start()
        assert transport.texts(1) == [GENERIC_ERROR]

    async def test_send_failure_does_not_raise(self, services, notifier):
        """A transport error is logged, not propagated."""

        class Broken(FakeTransport):
            async def send_message(self, chat_id, text, keyboard=None, html=False):
                raise RuntimeError("network down")

        await Controller(services, Broken(), notifier=notifier).handle(events.start(Sender(1)))

    def test_error_reply_prefers_specific_kind(self):
        """Specific errors win over their base kind."""
        assert error_reply(errors.EmojiTaken()) != error_reply(errors.InvalidName())
        assert error_reply(errors.NotAdmin()) == NO_PERMISSION
        assert error_reply(errors.ServiceError()) == GENERIC_ERROR


class TestSuperAdminFlows:
    """Super admin screens."""

    async def test_regular_user_refused(self, controller, transport):
        """Super admin screens are closed to everyone else."""
        await User(controller, 5).tap("sa_manage")
        assert transport.texts(5)[-1] == error_reply(errors.NotSuperAdmin())

    async def test_grant_by_id(self, controller, services, transport):
        """A typed numeric id becomes a super admin; junk is asked again."""
        services.super_admins.seed_from_env(1)
        root = User(controller, 1)
        await root.tap("super_admin")
        await root.tap("sa_grant")
        ctx = await root.say("not-a-number")
        assert ctx.state == State.AWAITING_SUPER_ADMIN_ID
        await root.say("77")
        assert services.super_admins.is_super_admin(77)

    async def test_observe_and_edit(self, controller, services, transport, challenge):
        """An observer can open the admin panel of a challenge they are not in."""
        services.super_admins.seed_from_env(1)
        root = User(controller, 1)
        await root.tap("sa_observe")
        await root.tap(f"observe|{challenge.id}")
        assert "Observer Mode" in transport.texts(1)[-1]

        await root.tap("admin_panel")
        assert "Admin Panel (Super Admin)" in transport.texts(1)[-1]
        await root.tap("edit_challenge_name")
        await root.say("Evening Run")
        assert services.challenges.get_by_id(challenge.id).name == "Evening Run"

        # back from the panel returns to the observer screen, not a member view
        await root.tap("back_to_main")
        assert "Observer Mode" in transport.texts(1)[-1]


class TestTemplateFlows:
    """Saving a challenge as a template and creating from one."""

    async def test_save_and_use_template(self, controller, services, transport, challenge, five_tasks):
        """A saved template seeds a new challenge with the same tasks."""
        services.super_admins.seed_from_env(100)
        alice = User(controller, 100)
        await alice.tap(f"open_challenge|{challenge.id}")
        await alice.tap("save_as_template")
        await alice.say("Runner")
        template = services.templates.get_all()[0]
        assert template.name == "Runner"

        dan = User(controller, 400, username="dan")
        await dan.tap("create_challenge")
        await dan.tap("template_list")
        await dan.tap(f"template_use|{template.id}")
        await dan.say("Dan's Run")
        await dan.tap("skip")
        await dan.say("🐢")
        await dan.tap("skip_creator_sync_time")

        created = services.challenges.get_by_user_id(400)[0]
        assert created.name == "Dan's Run"
        assert [t.title for t in services.tasks.get_by_challenge_id(created.id)] == [t.title for t in five_tasks]
        assert services.participants.get_by_challenge_and_user(created.id, 400).display_name == "dan"


class TestPerUserOrdering:
    """Events from one user are handled one at a time, in arrival order."""

    async def test_concurrent_texts_run_in_order(self, controller, services, transport):
        """Two messages sent together each land on their own question."""
        user = User(controller, 1)
        await user.tap("create_challenge")
        await asyncio.gather(user.say("Walk"), user.say("Brisk walk every morning"))

        assert services.states.get(1).state == State.AWAITING_CREATOR_NAME.value
        assert "Brisk walk every morning" in services.states.get(1).temp_data
        ctx = await user.say("Jo")
        assert ctx.state == State.AWAITING_CREATOR_EMOJI
        replies = transport.texts(1)
        assert "description" in replies[1].lower()
        assert replies[2] == "👤 What should we call you?"

    async def test_locks_are_released_after_use(self, controller, services):
        """No per-user lock outlives the events that needed it."""
        for user_id in range(1, 201):
            await User(controller, user_id).start()
        assert controller._locks == {}

        user = User(controller, 500)
        await asyncio.gather(user.tap("create_challenge"), user.say("Walk"), user.tap("cancel"))
        assert controller._locks == {}


class TestTemplateTaskFlows:
    """Super admins curating the tasks inside a template."""

    @pytest.fixture
    def template(self, services, challenge, five_tasks):
        services.super_admins.seed_from_env(1)
        return services.templates.create_from_challenge(challenge.id, "Runner")

    async def test_add_task_with_image_and_description(self, controller, services, transport, template):
        """Title, image and description end up on a new last task."""
        root = User(controller, 1)
        await root.tap(f"sa_template|{template.id}")
        await root.tap(f"sa_tpl_tasks|{template.id}")
        await root.tap(f"sa_tpl_add|{template.id}")
        await root.say("Cool down")
        await root.photo("photo-1")
        ctx = await root.say("Walk for five minutes")

        added = services.templates.get_tasks(template.id)[-1]
        assert (added.order_num, added.title, added.image_file_id, added.description) == (
            6, "Cool down", "photo-1", "Walk for five minutes",
        )
        assert ctx.state == State.IDLE
        assert transport.texts(1)[-1] == '✅ Task #6 added: "Cool down"'

    async def test_add_task_skipping_optional_steps(self, controller, services, template):
        """Image and description can both be skipped."""
        root = User(controller, 1)
        await root.tap(f"sa_tpl_add|{template.id}")
        await root.say("Stretch")
        await root.tap("skip")
        await root.tap("skip")
        added = services.templates.get_tasks(template.id)[-1]
        assert (added.title, added.image_file_id, added.description) == ("Stretch", "", "")

    async def test_bad_title_asks_again(self, controller, services, template):
        """A too long title keeps the question open."""
        root = User(controller, 1)
        await root.tap(f"sa_tpl_add|{template.id}")
        ctx = await root.say("x" * 101)
        assert ctx.state == State.AWAITING_TEMPLATE_TASK_TITLE
        assert len(services.templates.get_tasks(template.id)) == 5

    async def test_edit_title_description_and_image(self, controller, services, transport, template):
        """Each field is edited on its own and the task panel is shown again."""
        root = User(controller, 1)
        task = services.templates.get_tasks(template.id)[0]
        services.templates.update_task(task.id, description="Old", image_file_id="photo-1")

        await root.tap(f"sa_tpl_task_title|{template.id}|{task.id}")
        await root.say("Warm up")
        assert "Task 1: Warm up" in transport.texts(1)[-1]

        await root.tap(f"sa_tpl_task_desc|{template.id}|{task.id}")
        await root.say("-")

        await root.tap(f"sa_tpl_task_image|{template.id}|{task.id}")
        ctx = await root.say("remove")

        stored = services.templates.get_task(task.id)
        assert (stored.title, stored.description, stored.image_file_id) == ("Warm up", "", "")
        assert ctx.state == State.IDLE

    async def test_delete_keeps_order_dense(self, controller, services, template):
        """Deleting a task renumbers the rest."""
        root = User(controller, 1)
        second = services.templates.get_tasks(template.id)[1]
        await root.tap(f"sa_tpl_task_delete|{template.id}|{second.id}")
        await root.tap(f"sa_tpl_task_confirm_delete|{template.id}|{second.id}")
        remaining = services.templates.get_tasks(template.id)
        assert [t.order_num for t in remaining] == [1, 2, 3, 4]
        assert second.title not in [t.title for t in remaining]

    async def test_reorder_and_randomize(self, controller, services, transport, template):
        """A task can be moved to a new position, and the list shuffled."""
        root = User(controller, 1)
        last = services.templates.get_tasks(template.id)[-1]
        await root.tap(f"sa_tpl_reorder|{template.id}")
        await root.tap(f"sa_tpl_reorder_select|{template.id}|{last.id}")
        await root.tap(f"sa_tpl_reorder_move|{template.id}|{last.id}|1")
        assert services.templates.get_tasks(template.id)[0].title == "Task 5"
        assert "1. Task 5" in transport.texts(1)[-1]

        await root.tap(f"sa_tpl_randomize|{template.id}")
        shuffled = services.templates.get_tasks(template.id)
        assert [t.order_num for t in shuffled] == [1, 2, 3, 4, 5]
        assert transport.texts(1)[-2] == "🎲 Tasks randomized!"

    async def test_cancel_returns_to_template_admin(self, controller, services, transport, template):
        """Cancelling a template task edit lands on the template panel."""
        root = User(controller, 1)
        await root.tap(f"sa_tpl_add|{template.id}")
        await root.say("Half done")
        ctx = await root.tap("cancel")
        assert ctx.state == State.IDLE
        assert "Template Admin Panel" in transport.texts(1)[-1]
        assert len(services.templates.get_tasks(template.id)) == 5

    async def test_regular_user_refused(self, controller, services, transport, template):
        """Only super admins may change template tasks."""
        task = services.templates.get_tasks(template.id)[0]
        await User(controller, 5).tap(f"sa_tpl_task_confirm_delete|{template.id}|{task.id}")
        assert transport.texts(5)[-1] == error_reply(errors.NotSuperAdmin())
        assert len(services.templates.get_tasks(template.id)) == 5

    async def test_task_must_belong_to_template(self, controller, services, transport, challenge, template):
        """A task id from another template is not found."""
        other = services.templates.create_from_challenge(challenge.id, "Walker")
        foreign = services.templates.get_tasks(other.id)[0]
        await User(controller, 1).tap(f"sa_tpl_task_delete|{template.id}|{foreign.id}")
        assert transport.texts(1)[-1] == error_reply(errors.TaskNotFound())

    async def test_preview_before_using(self, controller, services, transport, template):
        """Anyone picking a template can read its tasks, images included."""
        task = services.templates.get_tasks(template.id)[0]
        services.templates.update_task(task.id, description="Easy pace", image_file_id="photo-9")

        dan = User(controller, 400)
        await dan.tap(f"template_view|{template.id}")
        await dan.tap(f"template_tasks|{template.id}")
        chat_id, text, keyboard = transport.messages[-1]
        assert "Tasks that will be included" in text
        assert [row[0].data for row in keyboard[:-1]] == [
            f"template_task|{template.id}|{t.id}" for t in services.templates.get_tasks(template.id)
        ]

        await dan.tap(f"template_task|{template.id}|{task.id}")
        assert transport.photos[-1] == (400, "photo-9")
        assert "Easy pace" in transport.texts(400)[-1]

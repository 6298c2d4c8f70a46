from enum import Enum


class State(str, Enum):
    IDLE = "idle"

    # Challenge creation
    AWAITING_CHALLENGE_NAME = "awaiting_challenge_name"
    AWAITING_CHALLENGE_DESCRIPTION = "awaiting_challenge_description"
    AWAITING_CREATOR_NAME = "awaiting_creator_name"
    AWAITING_CREATOR_EMOJI = "awaiting_creator_emoji"
    AWAITING_DAILY_LIMIT = "awaiting_daily_limit"
    AWAITING_HIDE_FUTURE_TASKS = "awaiting_hide_future_tasks"
    AWAITING_CREATOR_SYNC_TIME = "awaiting_creator_sync_time"

    # Task authoring
    AWAITING_TASK_TITLE = "awaiting_task_title"
    AWAITING_TASK_IMAGE = "awaiting_task_image"
    AWAITING_TASK_DESCRIPTION = "awaiting_task_description"
    AWAITING_EDIT_TITLE = "awaiting_edit_title"
    AWAITING_EDIT_DESCRIPTION = "awaiting_edit_description"
    AWAITING_EDIT_IMAGE = "awaiting_edit_image"
    REORDER_SELECT_TASK = "reorder_select_task"
    REORDER_SELECT_POSITION = "reorder_select_position"

    # Join
    AWAITING_CHALLENGE_ID = "awaiting_challenge_id"
    AWAITING_PARTICIPANT_NAME = "awaiting_participant_name"
    AWAITING_PARTICIPANT_EMOJI = "awaiting_participant_emoji"
    AWAITING_SYNC_TIME = "awaiting_sync_time"

    # Admin edits
    AWAITING_NEW_CHALLENGE_NAME = "awaiting_new_challenge_name"
    AWAITING_NEW_CHALLENGE_DESCRIPTION = "awaiting_new_challenge_description"
    AWAITING_NEW_DAILY_LIMIT = "awaiting_new_daily_limit"

    # User settings
    AWAITING_NEW_NAME = "awaiting_new_name"
    AWAITING_NEW_EMOJI = "awaiting_new_emoji"

    # Super admin
    AWAITING_SUPER_ADMIN_ID = "awaiting_super_admin_id"

    # Challenge from template
    SELECT_TEMPLATE_OR_SCRATCH = "select_template_or_scratch"
    SELECT_TEMPLATE = "select_template"
    VIEWING_TEMPLATE = "viewing_template"
    AWAITING_TEMPLATE_CHALLENGE_NAME = "awaiting_template_challenge_name"
    AWAITING_TEMPLATE_CREATOR_NAME = "awaiting_template_creator_name"
    AWAITING_TEMPLATE_CREATOR_EMOJI = "awaiting_template_creator_emoji"
    AWAITING_TEMPLATE_CREATOR_SYNC_TIME = "awaiting_template_creator_sync_time"

    # Template management
    AWAITING_TEMPLATE_NAME = "awaiting_template_name"
    AWAITING_NEW_TEMPLATE_NAME = "awaiting_new_template_name"
    AWAITING_NEW_TEMPLATE_DESCRIPTION = "awaiting_new_template_description"
    AWAITING_NEW_TEMPLATE_DAILY_LIMIT = "awaiting_new_template_daily_limit"

    # Template tasks
    AWAITING_TEMPLATE_TASK_TITLE = "awaiting_template_task_title"
    AWAITING_TEMPLATE_TASK_IMAGE = "awaiting_template_task_image"
    AWAITING_TEMPLATE_TASK_DESCRIPTION = "awaiting_template_task_description"
    AWAITING_EDIT_TEMPLATE_TASK_TITLE = "awaiting_edit_template_task_title"
    AWAITING_EDIT_TEMPLATE_TASK_DESCRIPTION = "awaiting_edit_template_task_description"
    AWAITING_EDIT_TEMPLATE_TASK_IMAGE = "awaiting_edit_template_task_image"

    @classmethod
    def parse(cls, value: str) -> "State":
        try:
            return cls(value)
        except ValueError:
            return cls.IDLE


# Callbacks that belong to the flow in progress and must not reset it
STATE_DEPENDENT_ACTIONS = frozenset({
    "select_emoji",
    "skip",
    "skip_daily_limit",
    "skip_creator_sync_time",
    "skip_sync_time",
    "hide_future_yes",
    "hide_future_no",
    "cancel",
})

# Callbacks that mutate a challenge; only its creator or a super admin may use them
ADMIN_ACTIONS = frozenset({
    "admin_panel",
    "add_task",
    "edit_tasks",
    "edit_task",
    "edit_task_title",
    "edit_task_description",
    "edit_task_image",
    "delete_task",
    "confirm_delete_task",
    "reorder_tasks",
    "reorder_select",
    "reorder_move",
    "randomize_tasks",
    "edit_challenge_name",
    "edit_challenge_description",
    "edit_daily_limit",
    "toggle_hide_future",
    "delete_challenge",
    "confirm_delete_challenge",
    "save_as_template",
})

# Where cancel lands, by the state it interrupts
ADMIN_FLOW_STATES = frozenset({
    State.AWAITING_TASK_TITLE,
    State.AWAITING_TASK_IMAGE,
    State.AWAITING_TASK_DESCRIPTION,
    State.AWAITING_EDIT_TITLE,
    State.AWAITING_EDIT_DESCRIPTION,
    State.AWAITING_EDIT_IMAGE,
    State.REORDER_SELECT_TASK,
    State.REORDER_SELECT_POSITION,
    State.AWAITING_NEW_CHALLENGE_NAME,
    State.AWAITING_NEW_CHALLENGE_DESCRIPTION,
    State.AWAITING_NEW_DAILY_LIMIT,
    State.AWAITING_TEMPLATE_NAME,
})

SETTINGS_FLOW_STATES = frozenset({
    State.AWAITING_NEW_NAME,
    State.AWAITING_NEW_EMOJI,
    State.AWAITING_SYNC_TIME,
})

SUPER_ADMIN_FLOW_STATES = frozenset({
    State.AWAITING_SUPER_ADMIN_ID,
    State.AWAITING_NEW_TEMPLATE_NAME,
    State.AWAITING_NEW_TEMPLATE_DESCRIPTION,
    State.AWAITING_NEW_TEMPLATE_DAILY_LIMIT,
    State.AWAITING_TEMPLATE_TASK_TITLE,
    State.AWAITING_TEMPLATE_TASK_IMAGE,
    State.AWAITING_TEMPLATE_TASK_DESCRIPTION,
    State.AWAITING_EDIT_TEMPLATE_TASK_TITLE,
    State.AWAITING_EDIT_TEMPLATE_TASK_DESCRIPTION,
    State.AWAITING_EDIT_TEMPLATE_TASK_IMAGE,
})

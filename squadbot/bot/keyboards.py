from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from ..utils.emoji import filter_available_emojis

TASK_GRID_COLUMNS = 7
EMOJI_GRID_COLUMNS = 5


@dataclass(frozen=True)
class Button:
    text: str
    data: Optional[str] = None
    copy_text: Optional[str] = None


Keyboard = List[List[Button]]


def data(text: str, action: str, *args) -> Button:
    return Button(text, "|".join([action, *[str(a) for a in args]]))


def cancel_only() -> Keyboard:
    return [[data("❌ Cancel", "cancel")]]


def skip_cancel(action: str = "skip") -> Keyboard:
    return [[data("⏭ Skip", action), data("❌ Cancel", "cancel")]]


def skip_name(name: str) -> Keyboard:
    return [[data(f"⏭ Use {name}", "skip")], [data("❌ Cancel", "cancel")]]


def start_menu(
    challenges: Sequence,
    task_counts: Dict[str, int],
    completed_counts: Dict[str, int],
    is_super_admin: bool = False,
) -> Keyboard:
    rows = []
    for challenge in challenges:
        total = task_counts.get(challenge.id, 0)
        completed = completed_counts.get(challenge.id, 0)
        label = f"🏆 {challenge.name} ({completed}/{total}"
        label += " ✅)" if total > 0 and completed >= total else " tasks)"
        rows.append([data(label, "open_challenge", challenge.id)])
    rows.append([data("🎯 Create Challenge", "create_challenge"), data("🚀 Join Challenge", "join_challenge")])
    if is_super_admin:
        rows.append([data("🔑 Super Admin", "super_admin")])
    return rows


def emoji_selector(used: Iterable[str]) -> Keyboard:
    available = filter_available_emojis(used)
    rows = [
        [data(emoji, "select_emoji", emoji) for emoji in available[i:i + EMOJI_GRID_COLUMNS]]
        for i in range(0, len(available), EMOJI_GRID_COLUMNS)
    ]
    rows.append([data("❌ Cancel", "cancel")])
    return rows


def daily_limit_prompt() -> Keyboard:
    return skip_cancel("skip_daily_limit")


def hide_future_choice() -> Keyboard:
    return [
        [data("🔒 Sequential", "hide_future_yes"), data("👀 All visible", "hide_future_no")],
        [data("❌ Cancel", "cancel")],
    ]


def skip_sync_time(creator: bool) -> Keyboard:
    return skip_cancel("skip_creator_sync_time" if creator else "skip_sync_time")


@dataclass
class TaskButton:
    id: int
    order_num: int
    title: str
    is_completed: bool
    is_current: bool


def main_challenge_view(current_task_num: int, is_admin: bool, tasks: Sequence[TaskButton]) -> Keyboard:
    rows: Keyboard = []
    row: List[Button] = []
    for task in tasks:
        status = "✅" if task.is_completed else "⬜"
        row.append(data(f"{status} {task.order_num}", "task_detail", task.id))
        if len(row) == TASK_GRID_COLUMNS:
            rows.append(row)
            row = []
    if row:
        row.extend(data(" ", "noop") for _ in range(TASK_GRID_COLUMNS - len(row)))
        rows.append(row)

    if current_task_num > 0:
        rows.append([data(f"✅ Complete #{current_task_num}", "complete_current")])
    rows.append([data("👥 Squad stats", "team_progress"), data("📋 List all tasks", "list_all_tasks")])

    last = [data("⚙️ Settings", "settings"), data("🚪 Exit", "exit_challenge")]
    if is_admin:
        last.insert(0, data("🔧 Admin", "admin_panel"))
    rows.append(last)
    return rows


def task_detail(task_id: int, is_completed: bool) -> Keyboard:
    if is_completed:
        action = data("↩️ Uncomplete", "uncomplete_task", task_id)
    else:
        action = data("✅ Complete", "complete_task", task_id)
    return [[action, data("⬅️ Back", "back_to_main")]]


def back_to_main() -> Keyboard:
    return [[data("⬅️ Back", "back_to_main")]]


def share_id(challenge_id: str, bot_username: str) -> Keyboard:
    link = f"t.me/{bot_username}?start={challenge_id}"
    return [
        [Button("📋 Copy ID", copy_text=challenge_id), Button("🔗 Copy Link", copy_text=link)],
        [data("⬅️ Back", "back_to_main")],
    ]


def admin_panel(daily_limit: int, hide_future_tasks: bool, observer_mode: bool, is_super_admin: bool) -> Keyboard:
    limit_label = f"🕓 Limit: {daily_limit}/day" if daily_limit > 0 else "🕓 Limit: none"
    mode_label = "🔒 Mode: Sequential" if hide_future_tasks else "👀 Mode: All visible"
    rows = [
        [data("➕ Add Task", "add_task"), data("📋 Edit Tasks", "edit_tasks")],
        [data("✏️ Name", "edit_challenge_name"), data("📝 Description", "edit_challenge_description")],
        [data(limit_label, "edit_daily_limit"), data(mode_label, "toggle_hide_future")],
    ]
    if is_super_admin:
        rows.append([data("📦 Save as Template", "save_as_template")])
    back = data("⬅️ Back", "back_to_observer") if observer_mode else data("🏠 Main Menu", "back_to_main")
    rows.append([data("🗑 Delete Challenge", "delete_challenge"), back])
    return rows


def add_task_done() -> Keyboard:
    return [[data("➕ Add Another Task", "add_task")], [data("✅ Done Adding Tasks", "back_to_admin")]]


def edit_tasks_list(tasks: Sequence) -> Keyboard:
    rows = [[data(f"{t.order_num}. {t.title} ✏️", "edit_task", t.id)] for t in tasks]
    rows.append([data("🔀 Reorder Tasks", "reorder_tasks"), data("⬅️ Back", "back_to_admin")])
    return rows


def edit_task(task_id: int) -> Keyboard:
    return [
        [data("📝 Edit Title", "edit_task_title", task_id), data("📷 Change Image", "edit_task_image", task_id)],
        [data("📄 Edit Description", "edit_task_description", task_id)],
        [data("🗑 Delete Task", "delete_task", task_id), data("⬅️ Back", "back_to_tasks")],
    ]


def delete_task_confirm(task_id: int) -> Keyboard:
    return [[data("✅ Yes, delete", "confirm_delete_task", task_id), data("❌ Cancel", "cancel_delete_task")]]


def delete_challenge_confirm() -> Keyboard:
    return [[data("🗑 Yes, delete everything", "confirm_delete_challenge"), data("❌ Cancel", "cancel_delete_challenge")]]


def reorder_tasks_list(tasks: Sequence) -> Keyboard:
    rows = [[data(f"{t.order_num}. {t.title}", "reorder_select", t.id)] for t in tasks]
    rows.append([data("🎲 Randomize", "randomize_tasks"), data("⬅️ Back", "back_to_tasks")])
    return rows


def _position_rows(total: int, current: int, action: str, *args) -> Keyboard:
    rows = []
    for position in range(1, total + 1):
        if position == current:
            rows.append([data(f"   Current position: {position}", "noop")])
        else:
            arrow = "⬆️" if position < current else "⬇️"
            rows.append([data(f"{arrow} Move to position {position}", action, *args, position)])
    return rows


def reorder_positions(task_id: int, total: int, current: int) -> Keyboard:
    rows = _position_rows(total, current, "reorder_move", task_id)
    rows.append([data("❌ Cancel", "reorder_cancel")])
    return rows


def reorder_done() -> Keyboard:
    return [[data("🔀 Move Another", "reorder_tasks"), data("⬅️ Done", "back_to_tasks")]]


def back_to_admin() -> Keyboard:
    return [[data("⬅️ Back to Admin", "back_to_admin")]]


def settings(notify_enabled: bool, is_admin: bool) -> Keyboard:
    notify = "🔔 Notifications: ON" if notify_enabled else "🔕 Notifications: OFF"
    rows = [
        [data(notify, "toggle_notifications")],
        [data("✏️ Change Name", "change_name"), data("😀 Change Emoji", "change_emoji")],
        [data("🕐 Sync Time", "sync_time"), data("🔗 Share the Challenge", "share_id")],
    ]
    if is_admin:
        rows.append([data("⬅️ Back", "back_to_main")])
    else:
        rows.append([data("🚫 Leave Challenge", "leave_challenge"), data("⬅️ Back", "back_to_main")])
    return rows


def leave_confirm() -> Keyboard:
    return [[data("✅ Yes, leave", "confirm_leave"), data("❌ Cancel", "cancel_leave")]]


def join_welcome(challenge_id: str) -> Keyboard:
    return [[data("🚀 Start Challenge", "start_challenge", challenge_id)]]


def celebration() -> Keyboard:
    return [[data("👥 View Squad", "team_progress"), data("🏠 Main Menu", "exit_challenge")]]


def template_or_scratch() -> Keyboard:
    return [
        [data("📦 From Template", "template_list"), data("✨ From Scratch", "from_scratch")],
        [data("❌ Cancel", "cancel")],
    ]


def template_list(templates: Sequence, task_counts: Dict[int, int]) -> Keyboard:
    rows = [
        [data(f"📦 {t.name} ({task_counts.get(t.id, 0)} tasks)", "template_view", t.id)]
        for t in templates
    ]
    rows.append([data("⬅️ Back", "create_challenge")])
    return rows


def template_details(template_id: int) -> Keyboard:
    return [
        [data("✅ Use This Template", "template_use", template_id)],
        [data("📋 View Tasks", "template_tasks", template_id)],
        [data("⬅️ Back", "template_list")],
    ]


def super_admin_menu() -> Keyboard:
    return [
        [data("👁 Observe Challenges", "sa_observe")],
        [data("🔑 Grant Super Admin", "sa_grant"), data("👑 Manage Admins", "sa_manage")],
        [data("📦 Templates", "sa_templates")],
        [data("🏠 Main Menu", "exit_challenge")],
    ]


def back_to_super_admin() -> Keyboard:
    return [[data("⬅️ Back", "super_admin")]]


def observer_list(challenges: Sequence, task_counts: Dict[str, int], participant_counts: Dict[str, int]) -> Keyboard:
    rows = [
        [
            data(
                f"👁 {c.name} ({task_counts.get(c.id, 0)} tasks, {participant_counts.get(c.id, 0)} members)",
                "observe",
                c.id,
            )
        ]
        for c in challenges
    ]
    rows.append([data("⬅️ Back", "super_admin")])
    return rows


def observer_view(is_participant: bool) -> Keyboard:
    rows = [[data("👥 Squad stats", "team_progress"), data("🔧 Admin", "admin_panel")]]
    if is_participant:
        rows.append([data("🏆 Open as Participant", "back_to_main")])
    rows.append([data("⬅️ Back", "sa_observe")])
    return rows


def manage_super_admins(admins: Sequence, current_user_id: int) -> Keyboard:
    rows = [
        [data(f"❌ Revoke {a.telegram_id}", "sa_revoke", a.telegram_id)]
        for a in admins
        if a.telegram_id != current_user_id
    ]
    rows.append([data("⬅️ Back", "super_admin")])
    return rows


def templates_admin(templates: Sequence) -> Keyboard:
    rows = [[data(f"📦 {t.name}", "sa_template", t.id)] for t in templates]
    rows.append([data("⬅️ Back", "super_admin")])
    return rows


def template_admin(template_id: int, daily_limit: int, hide_future_tasks: bool) -> Keyboard:
    limit_label = f"🕓 Limit: {daily_limit}/day" if daily_limit > 0 else "🕓 Limit: none"
    mode_label = "🔒 Mode: Sequential" if hide_future_tasks else "👀 Mode: All visible"
    return [
        [data("✏️ Name", "sa_tpl_name", template_id), data("📝 Description", "sa_tpl_desc", template_id)],
        [data(limit_label, "sa_tpl_limit", template_id), data(mode_label, "sa_tpl_hide", template_id)],
        [data("📋 Tasks", "sa_tpl_tasks", template_id)],
        [data("🗑 Delete Template", "sa_tpl_delete", template_id), data("⬅️ Back", "sa_templates")],
    ]


def delete_template_confirm(template_id: int) -> Keyboard:
    return [[data("✅ Yes, delete", "sa_tpl_confirm_delete", template_id), data("❌ Cancel", "sa_template", template_id)]]


def template_tasks_preview(template_id: int, tasks: Sequence) -> Keyboard:
    rows = [[data(f"{t.order_num}. {t.title}", "template_task", template_id, t.id)] for t in tasks]
    rows.append([data("⬅️ Back", "template_view", template_id)])
    return rows


def back_to_template_tasks(template_id: int) -> Keyboard:
    return [[data("⬅️ Back", "template_tasks", template_id)]]


def edit_template_tasks_list(template_id: int, tasks: Sequence) -> Keyboard:
    rows = [[data(f"{t.order_num}. {t.title} ✏️", "sa_tpl_task", template_id, t.id)] for t in tasks]
    rows.append([data("➕ Add Task", "sa_tpl_add", template_id), data("🔀 Reorder", "sa_tpl_reorder", template_id)])
    rows.append([data("⬅️ Back", "sa_template", template_id)])
    return rows


def edit_template_task(template_id: int, task_id: int) -> Keyboard:
    return [
        [
            data("📝 Edit Title", "sa_tpl_task_title", template_id, task_id),
            data("📷 Change Image", "sa_tpl_task_image", template_id, task_id),
        ],
        [data("📄 Edit Description", "sa_tpl_task_desc", template_id, task_id)],
        [
            data("🗑 Delete Task", "sa_tpl_task_delete", template_id, task_id),
            data("⬅️ Back", "sa_tpl_tasks", template_id),
        ],
    ]


def add_template_task_done(template_id: int) -> Keyboard:
    return [
        [data("➕ Add Another Task", "sa_tpl_add", template_id)],
        [data("✅ Done Adding Tasks", "sa_tpl_tasks", template_id)],
    ]


def delete_template_task_confirm(template_id: int, task_id: int) -> Keyboard:
    return [[
        data("✅ Yes, delete", "sa_tpl_task_confirm_delete", template_id, task_id),
        data("❌ Cancel", "sa_tpl_task", template_id, task_id),
    ]]


def reorder_template_tasks_list(template_id: int, tasks: Sequence) -> Keyboard:
    rows = [[data(f"{t.order_num}. {t.title}", "sa_tpl_reorder_select", template_id, t.id)] for t in tasks]
    rows.append([data("🎲 Randomize", "sa_tpl_randomize", template_id), data("⬅️ Back", "sa_tpl_tasks", template_id)])
    return rows


def reorder_template_positions(template_id: int, task_id: int, total: int, current: int) -> Keyboard:
    rows = _position_rows(total, current, "sa_tpl_reorder_move", template_id, task_id)
    rows.append([data("❌ Cancel", "sa_tpl_reorder", template_id)])
    return rows


def reorder_template_done(template_id: int) -> Keyboard:
    return [[data("🔀 Move Another", "sa_tpl_reorder", template_id), data("⬅️ Done", "sa_tpl_tasks", template_id)]]

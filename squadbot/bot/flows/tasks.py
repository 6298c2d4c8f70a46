from html import escape

from ...models.task import MAX_TASK_DESCRIPTION_INPUT
from ...services.errors import InvalidPosition, InvalidTitle, MaxTasksReached, TaskNotFound
from ...services.limits import MAX_TASKS_PER_CHALLENGE
from ...services.task import validate_task_title
from .. import keyboards
from ..context import Context
from ..router import FlowRouter
from ..scratch import TaskScratch
from ..screens import int_arg, require_challenge, show_edit_tasks
from ..states import State

router = FlowRouter()

TITLE_HINT = "❌ Task title must be 1-100 characters. Try again:"
DESCRIPTION_HINT = f"❌ Description must be {MAX_TASK_DESCRIPTION_INPUT} characters or less. Try again:"
CLEAR_WORDS = {"-", "remove"}


def own_task(ctx: Context, task_id: int):
    task = ctx.services.tasks.get_by_id(task_id)
    if task.challenge_id != require_challenge(ctx):
        raise TaskNotFound()
    return task


def _scratch(ctx: Context) -> TaskScratch:
    return ctx.scratch_as(TaskScratch) or TaskScratch()


def _edited_task_id(ctx: Context) -> int:
    task_id = _scratch(ctx).task_id
    if task_id is None:
        raise TaskNotFound()
    return task_id


# Adding

@router.callback("add_task")
def add_task(ctx: Context):
    if ctx.services.tasks.count_by_challenge_id(require_challenge(ctx)) >= MAX_TASKS_PER_CHALLENGE:
        raise MaxTasksReached()
    ctx.set_flow(State.AWAITING_TASK_TITLE, TaskScratch())
    ctx.send("Enter task title:", keyboards.cancel_only())


@router.text(State.AWAITING_TASK_TITLE)
def task_title(ctx: Context):
    try:
        title = validate_task_title(ctx.event.text.strip())
    except InvalidTitle:
        ctx.send(TITLE_HINT, keyboards.cancel_only())
        return
    ctx.set_flow(State.AWAITING_TASK_IMAGE, TaskScratch(task_title=title))
    ctx.send("Send an image for this task (or click Skip):", keyboards.skip_cancel())


@router.photo(State.AWAITING_TASK_IMAGE)
def task_image(ctx: Context):
    scratch = _scratch(ctx)
    scratch.image_file_id = ctx.event.media_id
    ctx.set_flow(State.AWAITING_TASK_DESCRIPTION, scratch)
    ctx.send("Enter task description (or click Skip):", keyboards.skip_cancel())


@router.text(State.AWAITING_TASK_IMAGE)
def task_image_expected(ctx: Context):
    ctx.send("📷 Please send an image (or click Skip):", keyboards.skip_cancel())


@router.callback("skip", state=State.AWAITING_TASK_IMAGE)
def skip_task_image(ctx: Context):
    ctx.set_state(State.AWAITING_TASK_DESCRIPTION)
    ctx.send("Enter task description (or click Skip):", keyboards.skip_cancel())


@router.text(State.AWAITING_TASK_DESCRIPTION)
def task_description(ctx: Context):
    description = ctx.event.text.strip()
    if len(description) > MAX_TASK_DESCRIPTION_INPUT:
        ctx.send(DESCRIPTION_HINT, keyboards.skip_cancel())
        return
    _create_task(ctx, description)


@router.callback("skip", state=State.AWAITING_TASK_DESCRIPTION)
def skip_task_description(ctx: Context):
    _create_task(ctx, "")


def _create_task(ctx: Context, description: str) -> None:
    scratch = _scratch(ctx)
    try:
        task = ctx.services.tasks.create(require_challenge(ctx), scratch.task_title, description, scratch.image_file_id)
    except MaxTasksReached:
        ctx.reset_keep_challenge()
        raise
    ctx.reset_keep_challenge()
    ctx.send(f'✅ Task #{task.order_num} "{task.title}" added!', keyboards.add_task_done())


# Editing

@router.callback("edit_tasks", "back_to_tasks", "cancel_delete_task", "reorder_cancel")
def edit_tasks(ctx: Context):
    show_edit_tasks(ctx)


@router.callback("edit_task")
def edit_task(ctx: Context):
    task = own_task(ctx, int_arg(ctx))
    ctx.send(f"Edit Task #{task.order_num}: {task.title}", keyboards.edit_task(task.id))


def _start_edit(ctx: Context, state: State, prompt: str) -> None:
    task = own_task(ctx, int_arg(ctx))
    ctx.set_flow(state, TaskScratch(task_id=task.id))
    ctx.send(prompt, keyboards.cancel_only())


@router.callback("edit_task_title")
def edit_task_title(ctx: Context):
    _start_edit(ctx, State.AWAITING_EDIT_TITLE, "Enter new task title:")


@router.callback("edit_task_description")
def edit_task_description(ctx: Context):
    _start_edit(ctx, State.AWAITING_EDIT_DESCRIPTION, "Enter new task description (or send - to clear it):")


@router.callback("edit_task_image")
def edit_task_image(ctx: Context):
    _start_edit(ctx, State.AWAITING_EDIT_IMAGE, "Send new image for this task (or type remove to drop it):")


def _finish_edit(ctx: Context, message: str, **changes) -> None:
    task = own_task(ctx, _edited_task_id(ctx))
    ctx.services.tasks.update(task.id, **changes)
    ctx.reset_keep_challenge()
    ctx.send(message)
    show_edit_tasks(ctx)


@router.text(State.AWAITING_EDIT_TITLE)
def new_task_title(ctx: Context):
    try:
        title = validate_task_title(ctx.event.text.strip())
    except InvalidTitle:
        ctx.send(TITLE_HINT, keyboards.cancel_only())
        return
    _finish_edit(ctx, f'✅ Task title updated to "{title}"', title=title)


@router.text(State.AWAITING_EDIT_DESCRIPTION)
def new_task_description(ctx: Context):
    description = ctx.event.text.strip()
    if description in CLEAR_WORDS:
        description = ""
    if len(description) > MAX_TASK_DESCRIPTION_INPUT:
        ctx.send(DESCRIPTION_HINT, keyboards.cancel_only())
        return
    _finish_edit(ctx, "✅ Task description updated!", description=description)


@router.photo(State.AWAITING_EDIT_IMAGE)
def new_task_image(ctx: Context):
    _finish_edit(ctx, "✅ Task image updated!", image_file_id=ctx.event.media_id)


@router.text(State.AWAITING_EDIT_IMAGE)
def remove_task_image(ctx: Context):
    if ctx.event.text.strip().lower() not in CLEAR_WORDS:
        ctx.send("📷 Please send an image or type remove", keyboards.cancel_only())
        return
    _finish_edit(ctx, "✅ Task image removed!", image_file_id="")


@router.callback("delete_task")
def delete_task(ctx: Context):
    task = own_task(ctx, int_arg(ctx))
    ctx.send(
        f'⚠️ Delete task "{task.title}"?\n\nThis will remove completion data for all users.',
        keyboards.delete_task_confirm(task.id),
    )


@router.callback("confirm_delete_task")
def confirm_delete_task(ctx: Context):
    task = own_task(ctx, int_arg(ctx))
    ctx.services.tasks.delete(task.id, task.challenge_id)
    ctx.send("✅ Task deleted!")
    show_edit_tasks(ctx)


# Reordering

def show_reorder(ctx: Context) -> None:
    s = ctx.services
    challenge = s.challenges.get_by_id(require_challenge(ctx))
    tasks = s.tasks.get_by_challenge_id(challenge.id)
    if len(tasks) < 2:
        ctx.send("📭 Need at least 2 tasks to reorder.", keyboards.back_to_admin())
        return
    ctx.set_state(State.REORDER_SELECT_TASK)
    ctx.send(f"🔀 Reorder Tasks - {challenge.name}\n\nSelect a task to move:", keyboards.reorder_tasks_list(tasks))


@router.callback("reorder_tasks")
def reorder_tasks(ctx: Context):
    show_reorder(ctx)


@router.callback("reorder_select")
def reorder_select(ctx: Context):
    task = own_task(ctx, int_arg(ctx))
    total = ctx.services.tasks.count_by_challenge_id(task.challenge_id)
    ctx.set_flow(State.REORDER_SELECT_POSITION, TaskScratch(task_id=task.id))
    ctx.send(
        f'🔀 Moving: "{task.title}"\n\nSelect new position:',
        keyboards.reorder_positions(task.id, total, task.order_num),
    )


@router.callback("reorder_move")
def reorder_move(ctx: Context):
    task = own_task(ctx, int_arg(ctx, 0))
    position = int_arg(ctx, 1, error=InvalidPosition)
    s = ctx.services
    s.tasks.move_task(task.id, task.challenge_id, position)
    lines = ["✅ Task moved!", "", "New order:"]
    lines += [f"{t.order_num}. {escape(t.title)}" for t in s.tasks.get_by_challenge_id(task.challenge_id)]
    ctx.send("\n".join(lines), keyboards.reorder_done(), html=True)


@router.callback("randomize_tasks")
def randomize_tasks(ctx: Context):
    ctx.services.tasks.randomize_order(require_challenge(ctx))
    ctx.send("🎲 Tasks shuffled!")
    show_reorder(ctx)

"""Template task lists: the read-only preview shown before using a template,
and the super admin screens that add, edit, delete and reorder its tasks."""
from html import escape

from ...models.task import MAX_TASK_DESCRIPTION_INPUT
from ...services.errors import InvalidPosition, InvalidTitle, MaxTasksReached, TaskNotFound, TemplateNotFound
from ...services.limits import MAX_TASKS_PER_CHALLENGE
from ...services.task import validate_task_title
from .. import keyboards
from ..context import Context
from ..router import FlowRouter
from ..scratch import TemplateScratch
from ..screens import int_arg, require_super_admin
from ..states import State
from .tasks import CLEAR_WORDS, DESCRIPTION_HINT, TITLE_HINT

router = FlowRouter()


def _template_id(ctx: Context) -> int:
    return int_arg(ctx, 0, error=TemplateNotFound)


def template_task(ctx: Context, template_id: int, task_id: int):
    task = ctx.services.templates.get_task(task_id)
    if task.template_id != template_id:
        raise TaskNotFound()
    return task


def _task_from_args(ctx: Context):
    return template_task(ctx, _template_id(ctx), int_arg(ctx, 1))


def _scratch(ctx: Context) -> TemplateScratch:
    scratch = ctx.scratch_as(TemplateScratch)
    if scratch is None or scratch.template_id is None:
        raise TemplateNotFound()
    return scratch


# Preview while picking a template


@router.callback("template_tasks")
def preview_tasks(ctx: Context):
    s = ctx.services
    template = s.templates.get_by_id(_template_id(ctx))
    tasks = s.templates.get_tasks(template.id)
    if not tasks:
        ctx.send("No tasks in this template.", keyboards.template_details(template.id))
        return
    ctx.send(
        "📋 <b>Template Tasks</b>\n\nTasks that will be included:",
        keyboards.template_tasks_preview(template.id, tasks),
        html=True,
    )


@router.callback("template_task")
def preview_task(ctx: Context):
    task = _task_from_args(ctx)
    lines = [f"📋 <b>Task {task.order_num}</b>", "", f"<b>{escape(task.title)}</b>"]
    if task.description:
        lines += ["", escape(task.description)]
    if task.image_file_id:
        ctx.send_photo(task.image_file_id)
    ctx.send("\n".join(lines), keyboards.back_to_template_tasks(task.template_id), html=True)


# Task list for super admins


def show_template_tasks(ctx: Context, template_id: int) -> None:
    s = ctx.services
    template = s.templates.get_by_id(template_id)
    tasks = s.templates.get_tasks(template.id)
    if tasks:
        text = f"📋 <b>Edit Tasks</b> - {escape(template.name)}\n\nSelect a task to edit:"
    else:
        text = f"📋 <b>Edit Tasks</b> - {escape(template.name)}\n\nNo tasks in this template. Add some!"
    ctx.send(text, keyboards.edit_template_tasks_list(template.id, tasks), html=True)


def show_template_task(ctx: Context, template_id: int, task_id: int) -> None:
    task = template_task(ctx, template_id, task_id)
    lines = [f"📝 <b>Task {task.order_num}: {escape(task.title)}</b>"]
    if task.description:
        lines += ["", f"<i>{escape(task.description)}</i>"]
    if task.image_file_id:
        lines += ["", "📷 Has image"]
    ctx.send("\n".join(lines), keyboards.edit_template_task(template_id, task.id), html=True)


@router.callback("sa_tpl_tasks")
def template_tasks_admin(ctx: Context):
    require_super_admin(ctx)
    show_template_tasks(ctx, _template_id(ctx))


@router.callback("sa_tpl_task")
def template_task_admin(ctx: Context):
    require_super_admin(ctx)
    show_template_task(ctx, _template_id(ctx), int_arg(ctx, 1))


# Adding


@router.callback("sa_tpl_add")
def add_template_task(ctx: Context):
    require_super_admin(ctx)
    s = ctx.services
    template = s.templates.get_by_id(_template_id(ctx))
    if len(s.templates.get_tasks(template.id)) >= MAX_TASKS_PER_CHALLENGE:
        raise MaxTasksReached()
    ctx.set_flow(State.AWAITING_TEMPLATE_TASK_TITLE, TemplateScratch(template_id=template.id))
    ctx.send("📝 <b>Add Task</b>\n\nWhat's the title of this task?", keyboards.cancel_only(), html=True)


@router.text(State.AWAITING_TEMPLATE_TASK_TITLE)
def template_task_title(ctx: Context):
    require_super_admin(ctx)
    scratch = _scratch(ctx)
    try:
        scratch.task_title = validate_task_title(ctx.event.text.strip())
    except InvalidTitle:
        ctx.send(TITLE_HINT, keyboards.cancel_only())
        return
    ctx.set_flow(State.AWAITING_TEMPLATE_TASK_IMAGE, scratch)
    ctx.send("🖼 Got a picture for this task? (or skip it)", keyboards.skip_cancel())


@router.photo(State.AWAITING_TEMPLATE_TASK_IMAGE)
def template_task_image(ctx: Context):
    scratch = _scratch(ctx)
    scratch.image_file_id = ctx.event.media_id
    ctx.set_flow(State.AWAITING_TEMPLATE_TASK_DESCRIPTION, scratch)
    ctx.send("📝 Add some details? (or skip it)", keyboards.skip_cancel())


@router.text(State.AWAITING_TEMPLATE_TASK_IMAGE)
def template_task_image_expected(ctx: Context):
    ctx.send("📷 Please send an image (or click Skip):", keyboards.skip_cancel())


@router.callback("skip", state=State.AWAITING_TEMPLATE_TASK_IMAGE)
def skip_template_task_image(ctx: Context):
    ctx.set_state(State.AWAITING_TEMPLATE_TASK_DESCRIPTION)
    ctx.send("📝 Add some details? (or skip it)", keyboards.skip_cancel())


@router.text(State.AWAITING_TEMPLATE_TASK_DESCRIPTION)
def template_task_description(ctx: Context):
    description = ctx.event.text.strip()
    if len(description) > MAX_TASK_DESCRIPTION_INPUT:
        ctx.send(DESCRIPTION_HINT, keyboards.skip_cancel())
        return
    _create_template_task(ctx, description)


@router.callback("skip", state=State.AWAITING_TEMPLATE_TASK_DESCRIPTION)
def skip_template_task_description(ctx: Context):
    _create_template_task(ctx, "")


def _create_template_task(ctx: Context, description: str) -> None:
    require_super_admin(ctx)
    scratch = _scratch(ctx)
    ctx.reset_keep_challenge()
    task = ctx.services.templates.create_task(
        scratch.template_id, scratch.task_title, description, scratch.image_file_id
    )
    ctx.send(
        f'✅ Task #{task.order_num} added: "{task.title}"',
        keyboards.add_template_task_done(scratch.template_id),
    )


# Editing


def _start_edit(ctx: Context, state: State, prompt: str) -> None:
    require_super_admin(ctx)
    task = _task_from_args(ctx)
    ctx.set_flow(state, TemplateScratch(template_id=task.template_id, task_id=task.id))
    ctx.send(prompt.format(title=escape(task.title)), keyboards.cancel_only(), html=True)


@router.callback("sa_tpl_task_title")
def edit_template_task_title(ctx: Context):
    _start_edit(
        ctx, State.AWAITING_EDIT_TEMPLATE_TASK_TITLE, "📝 <b>Edit Title</b>\n\nCurrent: {title}\n\nEnter a new title:"
    )


@router.callback("sa_tpl_task_desc")
def edit_template_task_description(ctx: Context):
    _start_edit(
        ctx,
        State.AWAITING_EDIT_TEMPLATE_TASK_DESCRIPTION,
        "📄 <b>Edit Description</b>\n\nEnter a new description:\n\n(send - to clear it)",
    )


@router.callback("sa_tpl_task_image")
def edit_template_task_image(ctx: Context):
    _start_edit(
        ctx,
        State.AWAITING_EDIT_TEMPLATE_TASK_IMAGE,
        "📷 <b>Change Image</b>\n\nSend a new image (or type remove to drop the current one):",
    )


def _finish_edit(ctx: Context, message: str, **changes) -> None:
    require_super_admin(ctx)
    scratch = _scratch(ctx)
    if scratch.task_id is None:
        raise TaskNotFound()
    task = template_task(ctx, scratch.template_id, scratch.task_id)
    ctx.services.templates.update_task(task.id, **changes)
    ctx.reset_keep_challenge()
    ctx.send(message)
    show_template_task(ctx, task.template_id, task.id)


@router.text(State.AWAITING_EDIT_TEMPLATE_TASK_TITLE)
def new_template_task_title(ctx: Context):
    try:
        title = validate_task_title(ctx.event.text.strip())
    except InvalidTitle:
        ctx.send(TITLE_HINT, keyboards.cancel_only())
        return
    _finish_edit(ctx, "✅ Title updated!", title=title)


@router.text(State.AWAITING_EDIT_TEMPLATE_TASK_DESCRIPTION)
def new_template_task_description(ctx: Context):
    description = ctx.event.text.strip()
    if description in CLEAR_WORDS:
        description = ""
    if len(description) > MAX_TASK_DESCRIPTION_INPUT:
        ctx.send(DESCRIPTION_HINT, keyboards.cancel_only())
        return
    _finish_edit(ctx, "✅ Description updated!", description=description)


@router.photo(State.AWAITING_EDIT_TEMPLATE_TASK_IMAGE)
def new_template_task_image(ctx: Context):
    _finish_edit(ctx, "✅ Image updated!", image_file_id=ctx.event.media_id)


@router.text(State.AWAITING_EDIT_TEMPLATE_TASK_IMAGE)
def remove_template_task_image(ctx: Context):
    if ctx.event.text.strip().lower() not in CLEAR_WORDS:
        ctx.send("📷 Please send an image or type remove", keyboards.cancel_only())
        return
    _finish_edit(ctx, "✅ Image removed!", image_file_id="")


@router.callback("sa_tpl_task_delete")
def delete_template_task(ctx: Context):
    require_super_admin(ctx)
    task = _task_from_args(ctx)
    ctx.send(
        f"🗑 <b>Delete Task?</b>\n\n<b>{escape(task.title)}</b>\n\n<i>This cannot be undone!</i>",
        keyboards.delete_template_task_confirm(task.template_id, task.id),
        html=True,
    )


@router.callback("sa_tpl_task_confirm_delete")
def confirm_delete_template_task(ctx: Context):
    require_super_admin(ctx)
    task = _task_from_args(ctx)
    ctx.services.templates.delete_task(task.id, task.template_id)
    ctx.send("✅ Task deleted!")
    show_template_tasks(ctx, task.template_id)


# Reordering


def show_template_reorder(ctx: Context, template_id: int) -> None:
    tasks = ctx.services.templates.get_tasks(template_id)
    if len(tasks) < 2:
        ctx.send("📭 Need at least 2 tasks to reorder.", keyboards.edit_template_tasks_list(template_id, tasks))
        return
    ctx.send(
        "🔀 <b>Reorder Tasks</b>\n\nSelect a task to move:",
        keyboards.reorder_template_tasks_list(template_id, tasks),
        html=True,
    )


@router.callback("sa_tpl_reorder")
def reorder_template_tasks(ctx: Context):
    require_super_admin(ctx)
    show_template_reorder(ctx, ctx.services.templates.get_by_id(_template_id(ctx)).id)


@router.callback("sa_tpl_reorder_select")
def reorder_template_select(ctx: Context):
    require_super_admin(ctx)
    task = _task_from_args(ctx)
    total = len(ctx.services.templates.get_tasks(task.template_id))
    ctx.send(
        f"🔀 Moving: <b>{escape(task.title)}</b>\n\nSelect new position:",
        keyboards.reorder_template_positions(task.template_id, task.id, total, task.order_num),
        html=True,
    )


@router.callback("sa_tpl_reorder_move")
def reorder_template_move(ctx: Context):
    require_super_admin(ctx)
    task = _task_from_args(ctx)
    position = int_arg(ctx, 2, error=InvalidPosition)
    s = ctx.services
    s.templates.move_task(task.id, task.template_id, position)
    lines = ["✅ Done! Here's the new order:", ""]
    lines += [f"{t.order_num}. {escape(t.title)}" for t in s.templates.get_tasks(task.template_id)]
    ctx.send("\n".join(lines), keyboards.reorder_template_done(task.template_id), html=True)


@router.callback("sa_tpl_randomize")
def randomize_template_tasks(ctx: Context):
    require_super_admin(ctx)
    template_id = ctx.services.templates.get_by_id(_template_id(ctx)).id
    ctx.services.templates.randomize_order(template_id)
    ctx.send("🎲 Tasks randomized!")
    show_template_reorder(ctx, template_id)

from .flows import admin, create, join, menu, progress, settings, super_admin, tasks, template_tasks, templates
from .router import FlowRouter

FLOW_ROUTERS = (
    menu.router,
    create.router,
    join.router,
    tasks.router,
    admin.router,
    progress.router,
    settings.router,
    super_admin.router,
    templates.router,
    template_tasks.router,
)


def build_router() -> FlowRouter:
    router = FlowRouter()
    for flow in FLOW_ROUTERS:
        router.include_router(flow)
    return router

from typing import Callable, Dict, Iterable, Optional, Tuple, Union

from .states import State

Handler = Callable[..., None]


class FlowRouter:
    """Handler tables for one flow family.

    Text and photo handlers are keyed by the state that expects them. Callback
    handlers are keyed by action, optionally narrowed to a state; a narrowed
    handler wins over a plain one for the same action.
    """

    def __init__(self):
        self.text_handlers: Dict[State, Handler] = {}
        self.photo_handlers: Dict[State, Handler] = {}
        self.callback_handlers: Dict[Tuple[Optional[State], str], Handler] = {}

    def text(self, *states: State):
        def decorator(func: Handler) -> Handler:
            for state in states:
                self.text_handlers[state] = func
            return func

        return decorator

    def photo(self, *states: State):
        def decorator(func: Handler) -> Handler:
            for state in states:
                self.photo_handlers[state] = func
            return func

        return decorator

    def callback(self, *actions: str, state: Union[State, Iterable[State], None] = None):
        if state is None or isinstance(state, State):
            states = [state]
        else:
            states = list(state)

        def decorator(func: Handler) -> Handler:
            for action in actions:
                for s in states:
                    self.callback_handlers[(s, action)] = func
            return func

        return decorator

    def include_router(self, router: "FlowRouter") -> None:
        for table, other in (
            (self.text_handlers, router.text_handlers),
            (self.photo_handlers, router.photo_handlers),
            (self.callback_handlers, router.callback_handlers),
        ):
            duplicates = set(table) & set(other)
            if duplicates:
                raise ValueError(f"handlers registered twice: {sorted(map(str, duplicates))}")
            table.update(other)

    def resolve_text(self, state: State) -> Optional[Handler]:
        return self.text_handlers.get(state)

    def resolve_photo(self, state: State) -> Optional[Handler]:
        return self.photo_handlers.get(state)

    def resolve_callback(self, state: State, action: str) -> Optional[Handler]:
        return self.callback_handlers.get((state, action)) or self.callback_handlers.get((None, action))

"""View state as a tagged variant with a single dispatcher."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from promptstudio.core.events import EVENT_VIEW_CHANGED, EventBus, ViewChangedEvent

MAX_BACK_STACK = 20


class View(str, Enum):
    HOME = "home"
    DASHBOARD = "dashboard"
    DOCS = "docs"
    FAQ = "faq"
    PRICING = "pricing"


@dataclass(frozen=True)
class NavigationState:
    view: View = View.HOME
    back_stack: tuple[View, ...] = ()


@dataclass(frozen=True)
class Navigate:
    view: View


@dataclass(frozen=True)
class GoBack:
    pass


@dataclass(frozen=True)
class OpenProject:
    """A project was started or loaded from history."""


@dataclass(frozen=True)
class ResetNavigation:
    pass


Action = Union[Navigate, GoBack, OpenProject, ResetNavigation]


def _push(state: NavigationState, view: View) -> NavigationState:
    if view == state.view:
        return state
    stack = (state.back_stack + (state.view,))[-MAX_BACK_STACK:]
    return NavigationState(view=view, back_stack=stack)


def dispatch(state: NavigationState, action: Action) -> NavigationState:
    """
    The only way to change the view.

    Raises:
        TypeError: If the action is not a navigation action
    """
    if isinstance(action, Navigate):
        return _push(state, View(action.view))
    if isinstance(action, OpenProject):
        return _push(state, View.DASHBOARD)
    if isinstance(action, GoBack):
        if not state.back_stack:
            return state
        return NavigationState(view=state.back_stack[-1], back_stack=state.back_stack[:-1])
    if isinstance(action, ResetNavigation):
        return NavigationState()
    raise TypeError(f"Unknown navigation action: {action!r}")


class Navigator:
    """Holds the current NavigationState and announces view changes."""

    def __init__(self, event_bus: Optional[EventBus] = None, state: Optional[NavigationState] = None):
        self.state = state or NavigationState()
        self.event_bus = event_bus

    @property
    def view(self) -> View:
        return self.state.view

    def dispatch(self, action: Action) -> View:
        new_state = dispatch(self.state, action)
        changed = new_state.view != self.state.view
        self.state = new_state
        if changed and self.event_bus is not None:
            self.event_bus.publish(EVENT_VIEW_CHANGED, ViewChangedEvent(view=new_state.view.value))
        return new_state.view

"""Resolve a decoded command to its configured action."""

from logging import Logger

from .models import Action, ActionMapping, Command, Unmapped, WindowOp

__all__ = ["resolve"]


def resolve(command: Command, mapping: ActionMapping, log: Logger | None = None) -> Action:
    """Return the action mapped to `command`.

    A target sent by the client replaces the configured one for window
    operations and is ignored for other actions.

    Raises:
        Unmapped: the command has no action in `mapping`
    """
    try:
        action = mapping[command.id]
    except KeyError:
        msg = f"{command.id} has no configured action"
        raise Unmapped(msg) from None

    if command.target:
        if isinstance(action, WindowOp):
            return action.with_target(command.target)
        if log:
            log.debug("Ignoring target %r for %s action %s", command.target, action.kind, command.id)
    return action

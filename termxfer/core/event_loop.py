"""Main loop helpers for termxfer."""

import logging

LOGGER = logging.getLogger(__name__)


def run_activity(activity, context):
    """Drive an activity's lifecycle hooks until it asks to be unmounted.

    `on_destroy` runs on every exit path. Returns the exit reason.
    """
    exit_reason = None
    try:
        activity.on_create(context)
        while exit_reason is None:
            activity.on_draw()
            exit_reason = activity.will_umount()
    finally:
        activity.on_destroy()
    LOGGER.debug('activity exited: %s', exit_reason)
    return exit_reason

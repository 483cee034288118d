# Overview: Outcome notifications for the surrounding application (toast layer, audit feeds).

"""
Notification collaborator.

Services call notify_success / notify_failure after an operation finishes.
The sink is app.config["NOTIFIER"] (a callable taking (level, message)) or,
when unset, the application logger. Notifications are observational: a
failing sink is logged and never changes the outcome of the operation.
"""

from flask import current_app

SUCCESS = "success"
FAILURE = "failure"


def _default_notifier(level: str, message: str) -> None:
    if level == FAILURE:
        current_app.logger.warning(message)
    else:
        current_app.logger.info(message)


def notify(level: str, message: str) -> None:
    notifier = current_app.config.get("NOTIFIER") or _default_notifier
    try:
        notifier(level, message)
    except Exception:
        current_app.logger.exception("Notifier failed while delivering: %s", message)


def notify_success(message: str) -> None:
    notify(SUCCESS, message)


def notify_failure(message: str) -> None:
    notify(FAILURE, message)

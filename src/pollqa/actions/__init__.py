"""
Action library: named multi-step interactions built from session primitives.
"""

from pollqa.actions.polling import (
    ChoiceOp,
    StartPollOptions,
    answer_first_option,
    answer_free_text,
    author_free_text_poll,
    cancel_active_poll,
    manage_choice,
    open_poll_authoring,
    publish_results,
    start_authored_poll,
    start_poll,
)
from pollqa.actions.presentation import upload_presentation

__all__ = [
    "ChoiceOp",
    "StartPollOptions",
    "answer_first_option",
    "answer_free_text",
    "author_free_text_poll",
    "cancel_active_poll",
    "manage_choice",
    "open_poll_authoring",
    "publish_results",
    "start_authored_poll",
    "start_poll",
    "upload_presentation",
]

"""Maps a replied-to Telegram message back to the submission it belongs to."""

import re

MARKER_PATTERN = re.compile(r"#MSG(\d+)")


class ResolutionError(Exception):
    """The replied-to bot message carries no #MSG marker."""


def format_marker(message_id):
    return f"#MSG{message_id}"


def resolve_target(replied):
    """Return the submission id a reply refers to.

    A user's own message is the submission, so its id is the target. Bot
    messages point at the submission through the #MSG<id> marker embedded
    in the confirmation text.
    """
    if not replied.from_bot:
        return replied.message_id

    match = MARKER_PATTERN.search(replied.text or "")
    if not match:
        raise ResolutionError("no #MSG marker in replied message")
    return int(match.group(1))

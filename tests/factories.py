"""Record builders shared by the test modules."""

from timecard.session import SessionRecord
from timecard.time_utils import round_down_to_hour, round_up_to_hour, to_millis


def make_record(session_id, start, end=None, archived=False, rounded=None):
    """Build a stored record.

    Rounded bounds default to the hour-rounded ``start``/``end``; ``rounded``
    overrides both.
    """
    if rounded is None:
        rounded = (
            round_up_to_hour(start),
            round_down_to_hour(end) if end else None,
        )
    in_rounded, out_rounded = rounded
    return SessionRecord(
        id=session_id,
        time_in=to_millis(start),
        time_out=to_millis(end) if end else None,
        time_in_rounded=to_millis(in_rounded),
        time_out_rounded=to_millis(out_rounded) if out_rounded else None,
        is_completed=end is not None,
        created_at=to_millis(start),
        archived_at=to_millis(end or start) if archived else None,
    )

import logging

from schoolmed.logging_config import ContactRedactingFilter


def _filtered(msg, *args):
    record = logging.LogRecord(
        name="schoolmed",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )
    assert ContactRedactingFilter().filter(record) is True
    return record.getMessage()


def test_contact_details_are_redacted():
    message = _filtered("Reminder sent to %s at %s", "parent@example.com", "+84 912 345 678")

    assert message == "Reminder sent to [REDACTED_EMAIL] at [REDACTED_PHONE]"
    assert _filtered("Call 0912-345-678 now") == "Call [REDACTED_PHONE] now"


def test_dates_and_times_survive_redaction():
    messages = [
        "Failed to create schedules for 2024-01-03",
        "Generating schedules for medication m1 from 2024-01-01 to 2024-01-10",
        "Activated medication at 2024-01-08 08:00:00",
    ]

    assert [_filtered(message) for message in messages] == messages

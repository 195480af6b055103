"""Tests for action inference and the answer payload."""

import pytest
from pydantic import ValidationError

from src.core.schemas.ask import (
    AnswerPayload,
    ForcedSummary,
    ModelAnswer,
    NoAction,
    ScheduleAction,
    SendAction,
)
from src.orchestrators.ask.actions import ActionState, infer_action, infer_recipient, match_participant
from src.tools.gmail import to_candidate

SEND_PRIYA = "send an email to priya@example.com saying thanks"


def test_send_to_literal_address_defaults_subject():
    state, action = infer_action(SEND_PRIYA, "Sure, here is a note.", None, None, [])

    assert state == ActionState.RESOLVED_SEND
    assert isinstance(action, SendAction)
    assert action.to_email == "priya@example.com"
    assert action.subject == "Quick note"
    assert action.body == "Sure, here is a note."


def test_model_send_is_kept():
    model = ModelAnswer.model_validate({
        "answer": "Drafted.",
        "action": "send",
        "send": {"toEmail": "ravi@example.com", "subject": "Lease", "body": "Hi Ravi"},
    })

    state, action = infer_action("please email ravi about the lease", "Drafted.", model, None, [])

    assert state == ActionState.RESOLVED_SEND
    assert action == SendAction(to_email="ravi@example.com", subject="Lease", body="Hi Ravi")


def test_model_send_with_bad_recipient_falls_back_to_question():
    model = ModelAnswer.model_validate({"action": "send", "send": {"toEmail": "priya", "body": "Thanks!"}})

    state, action = infer_action(SEND_PRIYA, "ok", model, None, [])

    assert state == ActionState.RESOLVED_SEND
    assert action.to_email == "priya@example.com"
    assert action.body == "Thanks!"


def test_model_schedule_is_kept():
    model = ModelAnswer.model_validate({
        "action": "schedule",
        "schedule": {"when": "tomorrow 9am", "toEmail": "a@b.co", "subject": "Ping", "body": "Hello"},
    })

    state, action = infer_action("schedule an email to a@b.co tomorrow", "ok", model, None, [])

    assert state == ActionState.RESOLVED_SEND
    assert isinstance(action, ScheduleAction)
    assert action.when == "tomorrow 9am"
    assert action.timezone == "UTC"


def test_mailbox_question_never_gets_an_action(make_message):
    results = [to_candidate(make_message("m", sender="Ravi <ravi@example.com>"))]

    state, action = infer_action("when did Ravi send the email about rent?", "Yesterday.", None, None, results)

    assert state == ActionState.QUESTION
    assert action == NoAction()


def test_plain_statement_is_none():
    state, action = infer_action("thanks", "You're welcome.", None, None, [])
    assert state == ActionState.NONE
    assert isinstance(action, NoAction)


def test_reply_uses_top_result(make_message):
    results = [to_candidate(make_message("m", subject="RE: Lease renewal", sender="Landlord <landlord@rent.com>"))]

    state, action = infer_action("reply to the landlord", "x" * 900, None, None, results)

    assert state == ActionState.RESOLVED_SEND
    assert action.to_email == "landlord@rent.com"
    assert action.subject == "Re: Lease renewal"
    assert action.body == "Thank you!"


def test_reply_falls_back_to_to_header(make_message):
    results = [to_candidate(make_message("m", sender="Landlord", to="owner@rent.com"))]
    _, action = infer_action("reply to the landlord", "ok", None, None, results)
    assert action.to_email == "owner@rent.com"


PARTICIPANTS = ["Bob Stone <bob@corp.com>", "me@example.com", "Irfan Khan <irfan.khan@corp.com>"]


def test_match_participant_picks_best_name():
    assert match_participant(["irfan", "khan"], PARTICIPANTS, 3) == "irfan.khan@corp.com"
    assert match_participant(["bob"], PARTICIPANTS, 3) == "bob@corp.com"


def test_match_participant_below_threshold():
    # a bare substring of the name scores 1
    assert match_participant(["irf"], PARTICIPANTS, 3) is None
    assert match_participant([], PARTICIPANTS, 3) is None


def test_named_participant_beats_top_result(make_message):
    results = [to_candidate(make_message("b", subject="Thanks for lunch", sender="Bob Stone <bob@corp.com>"))]

    assert infer_recipient("email Irfan Khan", results, ["irfan", "khan"], PARTICIPANTS) == "irfan.khan@corp.com"
    assert infer_recipient("email priya@example.com", results, ["irfan"], PARTICIPANTS) == "priya@example.com"
    assert infer_recipient("email someone", results, ["zed"], PARTICIPANTS) == "bob@corp.com"


def test_send_to_named_participant_anchors_subject(make_message):
    results = [
        to_candidate(make_message("b", subject="Thanks for lunch", sender="Bob Stone <bob@corp.com>")),
        to_candidate(make_message("i", subject="Q1 invoice", sender="Irfan Khan <irfan.khan@corp.com>")),
    ]

    state, action = infer_action(
        "send an email to Irfan Khan saying thanks", "Thanks!", None, None, results,
        target_tokens=["irfan", "khan"], participants=PARTICIPANTS,
    )

    assert state == ActionState.RESOLVED_SEND
    assert action.to_email == "irfan.khan@corp.com"
    assert action.subject == "Re: Q1 invoice"


def test_forced_summary_feeds_subject_and_body():
    forced = ForcedSummary(summary="Statement is ready.", subject="HDFC statement", message_id="h")

    _, action = infer_action("summarize hdfc and send to me@example.com", "long", None, forced, [])

    assert action.subject == "Summary: HDFC statement"
    assert action.body == "Statement is ready."


def test_send_intent_without_recipient_is_none():
    state, action = infer_action("send a thank you note", "ok", None, None, [])
    assert state == ActionState.NONE
    assert isinstance(action, NoAction)


def test_send_action_rejects_empty_recipient():
    with pytest.raises(ValidationError):
        SendAction(to_email="", subject="s", body="b")


def test_payload_for_send_uses_wire_names():
    payload = AnswerPayload.build("ok", [], SendAction(to_email="p@example.com", subject="s", body="b"))
    body = payload.model_dump(by_alias=True)
    assert body["action"] == "send"
    assert body["send"] == {"toEmail": "p@example.com", "subject": "s", "body": "b"}
    assert body["schedule"] is None


def test_payload_for_schedule_and_none():
    schedule = ScheduleAction(to_email="p@example.com", subject="s", body="b", when="9am", timezone="Asia/Kolkata")
    body = AnswerPayload.build("ok", ["c"], schedule).model_dump(by_alias=True)
    assert body["action"] == "schedule"
    assert body["schedule"]["when"] == "9am"
    assert body["send"] is None

    empty = AnswerPayload.build("ok", [], NoAction()).model_dump(by_alias=True)
    assert empty == {"answer": "ok", "citations": [], "action": None, "send": None, "schedule": None}

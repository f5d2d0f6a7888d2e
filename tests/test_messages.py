import pytest

from azureassistant import ValidationError
from azureassistant.messages import build_thread_messages, normalize_messages, system_instructions


def test_thread_messages_skip_system_and_attach_once():
    msgs = [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "u1"},
        {"role": "user", "content": "u2"},
    ]
    out = build_thread_messages(msgs, ["f1"])
    assert out[0]["attachments"] == [{"file_id": "f1", "tools": [{"type": "code_interpreter"}]}]
    assert out[1] == {"role": "user", "content": "u2"}
    assert build_thread_messages(msgs) == [
        {"role": "user", "content": "u1"},
        {"role": "user", "content": "u2"},
    ]


def test_first_system_message_wins():
    msgs = [
        {"role": "user", "content": "u"},
        {"role": "system", "content": "first"},
        {"role": "system", "content": "second"},
    ]
    assert system_instructions(msgs, "fallback") == "first"
    assert system_instructions(msgs[:1], "fallback") == "fallback"


def test_normalize_accepts_single_mapping_and_rejects_non_text():
    assert normalize_messages({"role": "user", "content": "hi"}) == [{"role": "user", "content": "hi"}]
    with pytest.raises(ValidationError):
        normalize_messages([{"role": "user", "content": ["parts"]}])
    with pytest.raises(ValidationError):
        normalize_messages("user: hi")

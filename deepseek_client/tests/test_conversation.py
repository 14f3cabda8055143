import pytest

from deepseek_client.domain.conversation import Conversation
from deepseek_client.domain.exceptions import OrderingViolation
from deepseek_client.domain.models import Message


def test_system_message_first_occupies_index_zero():
    conv = Conversation()
    msg = conv.add_system_message("be brief")
    assert msg == Message(content="be brief", role="system")
    assert conv.snapshot()[0] is msg
    assert conv.has_system_message


def test_system_message_after_any_message_fails():
    conv = Conversation()
    conv.add_user_message("hi")
    with pytest.raises(OrderingViolation) as ei:
        conv.add_system_message("late")
    assert ei.value.code == "SYSTEM_MESSAGE_NOT_FIRST"
    assert len(conv) == 1


def test_second_system_message_fails():
    conv = Conversation()
    conv.add_system_message("one")
    with pytest.raises(OrderingViolation):
        conv.add_system_message("two")


def test_first_user_message_signals_missing_system_message():
    conv = Conversation()
    _, first = conv.add_user_message("hi", name="ken")
    assert first is True
    _, second = conv.add_user_message("again")
    assert second is False
    assert conv.snapshot()[0].name == "ken"


def test_user_message_after_system_has_no_advisory():
    conv = Conversation()
    conv.add_system_message("sys")
    _, first = conv.add_user_message("hi")
    assert first is False


def test_snapshot_is_not_affected_by_later_appends():
    conv = Conversation()
    conv.add_user_message("hi")
    snap = conv.snapshot()
    conv.add_assistant_message("hello")
    assert isinstance(snap, tuple)
    assert len(snap) == 1
    assert [m.role for m in conv] == ["user", "assistant"]


def test_clear_allows_new_system_message():
    conv = Conversation()
    conv.add_user_message("hi")
    conv.clear()
    assert len(conv) == 0
    conv.add_system_message("fresh")
    assert conv.messages[0].role == "system"

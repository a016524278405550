import base64

import pytest
from pydantic import ValidationError

from fabot.client.models import (
    Attachment,
    AttachmentTooLarge,
    Message,
    attachment_kind,
    derive_key_points,
    new_id,
    utc_now,
)
from fabot.schemas import ConversationAnalysis


def test_ids_are_unique_under_rapid_creation():
    ids = {new_id() for _ in range(1000)}
    assert len(ids) == 1000


def test_timestamps_have_millisecond_precision():
    assert utc_now().microsecond % 1000 == 0


def test_messages_are_immutable():
    message = Message(role="user", content="Hello")
    with pytest.raises(ValidationError):
        message.content = "changed"


@pytest.mark.parametrize(
    "name, kind",
    [
        ("photo.png", "image"),
        ("notes.txt", "text"),
        ("data.json", "text"),
        ("report.pdf", "document"),
        ("mystery", "document"),
    ],
)
def test_attachment_kind(name, kind):
    assert attachment_kind(name) == kind


def test_attachment_from_path(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("remember the milk", encoding="utf-8")

    attachment = Attachment.from_path(path, max_bytes=1024)

    assert attachment.name == "notes.txt"
    assert attachment.kind == "text"
    assert attachment.size == len("remember the milk")
    assert base64.b64decode(attachment.payload) == b"remember the milk"


def test_attachment_too_large(tmp_path):
    path = tmp_path / "big.bin"
    path.write_bytes(b"x" * 20)

    with pytest.raises(AttachmentTooLarge):
        Attachment.from_path(path, max_bytes=10)


def test_attachments_render_into_wire_content(tmp_path):
    text_file = tmp_path / "notes.txt"
    text_file.write_text("line one", encoding="utf-8")
    image_file = tmp_path / "cat.png"
    image_file.write_bytes(b"\x89PNG....")

    message = Message(
        role="user",
        content="Look at these",
        attachments=[
            Attachment.from_path(text_file, max_bytes=1024),
            Attachment.from_path(image_file, max_bytes=1024),
        ],
    )
    wire = message.to_wire()

    assert wire["role"] == "user"
    assert wire["content"].startswith("Look at these")
    assert "[File: notes.txt]" in wire["content"]
    assert "line one" in wire["content"]
    assert "[Attached image: cat.png (8 bytes)]" in wire["content"]


def test_key_points_link_to_messages_by_position():
    messages = [Message(role="user", content="a"), Message(role="assistant", content="b")]
    analysis = ConversationAnalysis(key_points=["one", "two", "three", "four", "five"])

    key_points = derive_key_points(analysis, messages)

    assert [kp.text for kp in key_points] == ["one", "two", "three", "four", "five"]
    assert [kp.message_id for kp in key_points] == [messages[0].id, messages[1].id, None, None, None]
    assert [kp.relevance for kp in key_points] == ["high", "high", "medium", "medium", "low"]

import json
from datetime import datetime, timedelta, timezone

import pytest

from sms_bills.errors import InboxUnavailable
from sms_bills.inbox import JsonFileInboxSource, StaticInboxSource

from helpers import HDFC_STATEMENT, ICICI_STATEMENT, make_sms


def _millis(dt):
    return int(dt.timestamp() * 1000)


@pytest.mark.asyncio
async def test_json_export_read_with_window(tmp_path):
    now = datetime.now(timezone.utc)
    path = tmp_path / "inbox.json"
    path.write_text(
        json.dumps([
            {"id": 1, "address": "AD-HDFCBK", "body": HDFC_STATEMENT, "date": _millis(now - timedelta(days=3))},
            {"id": 2, "address": "AD-ICICIB", "body": ICICI_STATEMENT, "date": _millis(now - timedelta(days=90))},
            {"id": 3, "sender": "AD-SBICRD", "body": "hello", "timestamp": now.isoformat()},
            {"body": "no id at all"},
        ]),
        encoding="utf-8",
    )
    inbox = JsonFileInboxSource(str(path))

    assert await inbox.check_permission() is True
    messages = await inbox.read_inbox(60)

    assert [m.id for m in messages] == ["1", "3"]
    assert messages[0].sender == "AD-HDFCBK"
    assert messages[1].sender == "AD-SBICRD"


@pytest.mark.asyncio
async def test_json_export_wrapped_in_object(tmp_path):
    path = tmp_path / "inbox.json"
    path.write_text(json.dumps({"messages": [{"id": "a", "body": HDFC_STATEMENT}]}), encoding="utf-8")

    messages = await JsonFileInboxSource(str(path)).read_inbox(60)

    assert [m.id for m in messages] == ["a"]


@pytest.mark.asyncio
async def test_missing_export_denies_permission(tmp_path):
    inbox = JsonFileInboxSource(str(tmp_path / "missing.json"))

    assert await inbox.check_permission() is False
    assert await inbox.request_permission() is False


@pytest.mark.asyncio
async def test_unreadable_export_raises(tmp_path):
    path = tmp_path / "inbox.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(InboxUnavailable):
        await JsonFileInboxSource(str(path)).read_inbox(60)


@pytest.mark.asyncio
async def test_static_inbox_window_is_optional():
    old = make_sms("old", HDFC_STATEMENT).model_copy(
        update={"timestamp": datetime.now(timezone.utc) - timedelta(days=200)}
    )

    assert [m.id for m in await StaticInboxSource([old]).read_inbox(60)] == ["old"]
    assert await StaticInboxSource([old], apply_window=True).read_inbox(60) == []

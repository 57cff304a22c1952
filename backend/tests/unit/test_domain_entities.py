"""Unit tests for domain entities and the error taxonomy."""

import pytest

from livesync.domain.entities import (
    MISSING,
    EntityRecord,
    Page,
    RowFilter,
    Subscription,
    SubscriptionStatus,
    SyncedRow,
    apply_patch,
    invert_patch,
)
from livesync.domain.exceptions import (
    PermissionDenied,
    RemoteError,
    WriteConflict,
    WriteRejected,
    classify_remote_error,
)


def test_inverse_patch_restores_fields_exactly():
    fields = {"status": "Open", "likes": 3}
    patch = {"status": "Resolved", "resolved_by": "admin"}

    inverse = invert_patch(fields, patch)
    assert inverse == {"status": "Open", "resolved_by": MISSING}
    assert apply_patch(apply_patch(fields, patch), inverse) == fields


def test_entity_record_from_row_requires_id():
    record = EntityRecord.from_row({"id": 7, "title": "T"})
    assert record.id == "7"
    assert record.fields == {"title": "T"}
    assert record.to_row() == {"id": "7", "title": "T"}

    with pytest.raises(ValueError):
        EntityRecord.from_row({"title": "no id"})


def test_page_has_more():
    assert Page(page_number=1, page_size=12, total=30).has_more is True
    assert Page(page_number=3, page_size=12, total=30).has_more is False
    assert Page(page_number=1, page_size=12, total=12).has_more is False


def test_row_filter_matches_on_string_value():
    story_filter = RowFilter("story_id", 5)
    assert story_filter.matches({"story_id": "5"})
    assert not story_filter.matches({"story_id": "6"})
    assert not story_filter.matches({})
    assert not story_filter.matches(None)
    assert str(story_filter) == "story_id=eq.5"



def test_row_filter_compares_booleans_by_text():
    approved = RowFilter("is_approved", "true")
    assert approved.matches({"is_approved": True})
    assert not approved.matches({"is_approved": False})
    assert RowFilter("is_approved", True).matches({"is_approved": "true"})
    assert not RowFilter("is_approved", "None").matches({"is_approved": None})
    assert str(RowFilter("is_approved", True)) == "is_approved=eq.true"


@pytest.mark.asyncio
async def test_subscription_close_runs_closer_once():
    calls: list[str] = []

    async def closer(subscription: Subscription) -> None:
        calls.append(subscription.id)

    subscription = Subscription(entity_type="comments", closer=closer)
    subscription.mark_open("handle")
    await subscription.close()
    await subscription.close()

    assert calls == [subscription.id]
    assert subscription.status is SubscriptionStatus.CLOSED
    assert subscription.closed_at is not None


def test_subscription_error_during_handshake_wins_over_open():
    subscription = Subscription(entity_type="comments")
    subscription.mark_error("socket closed")
    subscription.mark_open("handle")

    assert subscription.status is SubscriptionStatus.ERROR
    assert subscription.handle == "handle"


def test_synced_row_to_wire_flattens_data():
    row = SyncedRow(entity_type="stories", data={"title": "T", "id": "ignored"}, id="s1")
    wire = row.to_wire()
    assert wire["id"] == "s1"
    assert wire["title"] == "T"
    assert "created_at" in wire and "updated_at" in wire


@pytest.mark.parametrize(
    ("code", "status_code", "expected"),
    [
        ("23505", 409, WriteConflict),
        ("42501", 403, PermissionDenied),
        (None, 403, PermissionDenied),
        ("22P02", 400, WriteRejected),
    ],
)
def test_classify_remote_error(code, status_code, expected):
    error = classify_remote_error(RemoteError(code, "boom", status_code))
    assert type(error) is expected

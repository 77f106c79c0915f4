import pytest

from backend.app.notifications import low_stock_crossed, low_stock_message, mark_all_read, maybe_emit
from backend.app.routers import notifications as notifications_router
from backend.app.security import Caller
from backend.tests._fakes import FakeDb


@pytest.mark.parametrize(
    "stock_before,threshold,qty,expected",
    [
        (6, 5, 2, True),  # 6 -> 4 crosses
        (6, 5, 1, True),  # lands exactly on the threshold
        (4, 5, 1, False),  # already below: no repeat alert
        (5, 5, 1, False),  # at threshold is already "crossed"
        (20, 5, 3, False),  # stays above
        (3, 0, 3, True),  # zero threshold fires when stock runs out
    ],
)
def test_low_stock_crossed_is_edge_triggered(stock_before, threshold, qty, expected):
    assert low_stock_crossed(stock_before, threshold, qty) is expected


def test_low_stock_message():
    assert low_stock_message("Green Tea", 2) == "Green Tea is low on stock! Only 2 left."


def test_maybe_emit_inserts_only_on_crossing():
    db = FakeDb()
    sid = db.add_shop()
    product = {"id": "p-1", "name": "Sugar", "stock": 6, "low_stock_threshold": 5}
    with db.conn().cursor() as cur:
        note = maybe_emit(cur, sid, product, 2)
        assert note["message"] == "Sugar is low on stock! Only 4 left."
        assert note["is_read"] is False
        assert maybe_emit(cur, sid, product, 1, stock_before=4) is None
    assert len(db.notifications) == 1


def test_mark_all_read_is_scoped_to_shop():
    db = FakeDb()
    a = db.add_shop()
    b = db.add_shop()
    with db.conn().cursor() as cur:
        for sid in (a, a, b):
            maybe_emit(cur, sid, {"name": "X", "stock": 1, "low_stock_threshold": 0}, 1)
        assert mark_all_read(cur, a) == 2
        assert mark_all_read(cur, a) == 0
    by_shop = {(n["shop_id"], n["is_read"]) for n in db.notifications.values()}
    assert by_shop == {(a, True), (b, False)}


def test_mark_read_route_uses_caller_shop(monkeypatch):
    db = FakeDb()
    a = db.add_shop()
    b = db.add_shop()
    with db.conn().cursor() as cur:
        maybe_emit(cur, a, {"name": "X", "stock": 1, "low_stock_threshold": 0}, 1)
        maybe_emit(cur, b, {"name": "Y", "stock": 1, "low_stock_threshold": 0}, 1)
    monkeypatch.setattr(notifications_router, "get_conn", db.conn)

    caller = Caller(user_id="u-1", name="Asha", role="biller", shop_id=a)
    out = notifications_router.mark_notifications_read(caller=caller)
    assert out["updated"] == 1

    listed = notifications_router.list_notifications(unread_only=True, limit=100, caller=caller)
    assert listed["notifications"] == []
    other = notifications_router.list_notifications(
        unread_only=True, limit=100, caller=Caller(user_id="u-2", name="B", role="owner", shop_id=b)
    )
    assert [n["message"] for n in other["notifications"]] == ["Y is low on stock! Only 0 left."]

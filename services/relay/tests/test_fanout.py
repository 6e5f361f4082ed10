import pytest

from relay.events import ErrorEvent, UsersUpdate
from relay.fanout import Fanout, Scope
from relay.registry import RoomDirectory


@pytest.fixture
def rooms():
    directory = RoomDirectory()
    for cid in ("a", "b", "c"):
        directory.add_member("general", cid)
    directory.add_member("tech", "d")
    return directory


@pytest.fixture
def wired(rooms, make_sink):
    fanout = Fanout(rooms)
    sinks = {}
    for cid in ("a", "b", "c", "d"):
        sinks[cid] = make_sink()
        fanout.attach(cid, sinks[cid])
    return fanout, sinks


def _received(sinks):
    return {cid for cid, sink in sinks.items() if sink.events}


async def test_room_all(wired):
    fanout, sinks = wired
    delivered = await fanout.to_room("general", UsersUpdate(users=[]))

    assert delivered == 3
    assert _received(sinks) == {"a", "b", "c"}


async def test_room_others_excludes_sender(wired):
    fanout, sinks = wired
    delivered = await fanout.to_room_except("general", "a", UsersUpdate(users=[]))

    assert delivered == 2
    assert _received(sinks) == {"b", "c"}


async def test_self_and_direct(wired):
    fanout, sinks = wired
    await fanout.to_self("a", ErrorEvent(message="x"))
    await fanout.to_peer("d", ErrorEvent(message="y"))

    assert _received(sinks) == {"a", "d"}
    assert sinks["d"].events[0].message == "y"


async def test_direct_to_unknown_target_is_silent(wired):
    fanout, sinks = wired
    assert await fanout.to_peer("ghost", ErrorEvent(message="x")) == 0
    assert _received(sinks) == set()


async def test_detached_member_is_skipped(wired):
    fanout, sinks = wired
    fanout.detach("b")

    assert await fanout.to_room("general", UsersUpdate(users=[])) == 2
    assert _received(sinks) == {"a", "c"}
    assert not fanout.is_attached("b")


async def test_room_scope_of_missing_room_delivers_nothing(wired):
    fanout, _ = wired
    assert await fanout.to_room("ghost", UsersUpdate(users=[])) == 0


async def test_targets_are_snapshotted_before_delivery(rooms, make_sink):
    fanout = Fanout(rooms)
    late = make_sink()

    class JoiningSink(make_sink):
        async def enqueue(self, event):
            await super().enqueue(event)
            rooms.add_member("general", "late")

    fanout.attach("a", JoiningSink())
    fanout.attach("late", late)

    await fanout.to_room("general", UsersUpdate(users=[]))

    assert late.events == []


async def test_order_preserved_per_target(wired):
    fanout, sinks = wired
    for i in range(5):
        await fanout.to_room("general", ErrorEvent(message=str(i)))

    assert [e.message for e in sinks["b"].events] == ["0", "1", "2", "3", "4"]


@pytest.mark.parametrize(
    "scope, kwargs",
    [
        (Scope.SELF, {}),
        (Scope.DIRECT, {}),
        (Scope.ROOM_ALL, {}),
        (Scope.ROOM_OTHERS, {"room": "general"}),
    ],
)
async def test_missing_scope_argument_raises(wired, scope, kwargs):
    fanout, _ = wired
    with pytest.raises(ValueError):
        await fanout.publish(scope, ErrorEvent(message="x"), **kwargs)

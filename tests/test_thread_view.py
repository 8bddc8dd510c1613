from hackmates.services.thread_view import ThreadView

from conftest import Collector


async def mounted(messages, users, me, other):
    updates = Collector()
    headers = Collector()
    thread = ThreadView(messages, users, me, other, updates, on_header=headers)
    await thread.mount()
    return thread, updates, headers


async def test_mount_sends_header_then_snapshot(messages, users, alice, bob):
    await messages.send(bob, alice, "hi alice")
    thread, updates, headers = await mounted(messages, users, alice, bob)
    try:
        header = await headers.next()
        assert header.counterpart_name == "Bob"
        assert header.me_name == "Alice"
        assert header.status == "Online"

        items, scroll_to = await updates.next()
        assert [m.content for m in items] == ["hi alice"]
        assert scroll_to == items[-1].id
    finally:
        thread.unmount()


async def test_send_relies_on_subscription_and_clears_draft(messages, users, alice, bob):
    thread, updates, _ = await mounted(messages, users, alice, bob)
    try:
        items, scroll_to = await updates.next()
        assert items == [] and scroll_to is None

        thread.draft = "  hey bob "
        sent = await thread.send()
        assert sent is not None and sent.content == "hey bob"
        assert thread.draft == ""

        items, scroll_to = await updates.next()
        assert [m.content for m in items] == ["hey bob"]
        assert scroll_to == sent.id
        assert thread.messages == items

        await messages.send(bob, alice, "hey alice")
        items, scroll_to = await updates.next()
        assert [m.content for m in items] == ["hey bob", "hey alice"]
        assert scroll_to == items[-1].id
    finally:
        thread.unmount()


async def test_send_is_a_no_op_for_blank_text(messages, users, alice, bob, db):
    thread, updates, _ = await mounted(messages, users, alice, bob)
    try:
        thread.draft = "   "
        assert await thread.send() is None
        assert await thread.send("") is None
        assert thread.draft == "   "
        assert await db["messages"].count_documents({}) == 0
    finally:
        thread.unmount()


async def test_send_is_a_no_op_for_unknown_counterpart(messages, users, alice, db):
    thread, _, headers = await mounted(messages, users, alice, "65a000000000000000000000")
    try:
        header = await headers.next()
        assert header.counterpart_name == "Anonymous"
        assert await thread.send("hello?") is None
        assert await db["messages"].count_documents({}) == 0
    finally:
        thread.unmount()


async def test_signed_out_thread_does_nothing(messages, users, bob, db):
    updates = Collector()
    thread = ThreadView(messages, users, None, bob, updates)
    await thread.mount()
    assert await thread.send("hi") is None
    assert await updates.nothing_more()
    thread.unmount()


async def test_unmount_stops_updates(messages, users, alice, bob):
    thread, updates, _ = await mounted(messages, users, alice, bob)
    await updates.next()
    thread.unmount()
    thread.unmount()
    await messages.send(bob, alice, "gone")
    assert await updates.nothing_more(0.1)

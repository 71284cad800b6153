"""Fake conversations for screenshots and demos."""

from __future__ import annotations

from .store import MessageStore
from .store.types import Contact, Conversation, Draft, MessageRecord, Participant

ME_NUMBER = "+15551234567"

_PEOPLE = {
    "sarah": ("Sarah Chen", "+14155551234"),
    "marcus": ("Marcus Johnson", "+12125559876"),
    "emily": ("Emily Park", "+13105553456"),
    "david": ("David Kim", "+14085557890"),
    "lisa": ("Lisa Rodriguez", "+12025551111"),
    "alex": ("Alex Thompson", "+17185552222"),
    "rachel": ("Rachel Green", "+16505553333"),
}

# (id, name, people, last_message_ts, unread)
_CONVERSATIONS = [
    ("conv1", "Sarah Chen", ["sarah"], 1738958400000, 0),
    ("conv2", "Marcus Johnson", ["marcus"], 1738956600000, 2),
    ("conv3", "Weekend Hiking Group", ["emily", "david", "alex"], 1738954800000, 0),
    ("conv4", "Emily Park", ["emily"], 1738951200000, 0),
    ("conv5", "Lisa Rodriguez", ["lisa"], 1738947600000, 1),
    ("conv6", "David Kim", ["david"], 1738944000000, 0),
    ("conv7", "Rachel Green", ["rachel"], 1738940400000, 0),
    ("conv8", "Alex Thompson", ["alex"], 1738936800000, 0),
]

# (id, conversation, sender key or None for me, body, timestamp_ms)
_MESSAGES = [
    ("m1a", "conv1", "sarah", "Hey! Are you free for dinner tonight?", 1738951200000),
    ("m1b", "conv1", None, "Yes! What did you have in mind?", 1738952100000),
    (
        "m1c",
        "conv1",
        "sarah",
        "There is a new Thai place on Valencia that just opened. "
        "Heard great things about their pad see ew",
        1738953000000,
    ),
    ("m1d", "conv1", None, "That sounds perfect! What time works for you?", 1738954800000),
    ("m1e", "conv1", "sarah", "How about 7:30? I can make a reservation", 1738956600000),
    ("m1f", "conv1", None, "Perfect, see you there!", 1738958400000),
    (
        "m2a",
        "conv2",
        "marcus",
        "Quick update on the project - we hit our Q1 milestone early!",
        1738944000000,
    ),
    ("m2b", "conv2", None, "That is awesome news! The team did a great job.", 1738945800000),
    (
        "m2c",
        "conv2",
        "marcus",
        "Agreed. Want to hop on a call Monday to discuss next steps?",
        1738947600000,
    ),
    (
        "m2d",
        "conv2",
        "marcus",
        "Also, I sent over the slide deck to review when you get a chance",
        1738956600000,
    ),
    (
        "m3a",
        "conv3",
        "emily",
        "Who is in for Muir Woods this Saturday? Weather looks amazing",
        1738940400000,
    ),
    ("m3b", "conv3", "david", "Count me in! Should we do the Dipsea Trail?", 1738942200000),
    ("m3c", "conv3", None, "I am in! Let us meet at the parking lot at 9am?", 1738944000000),
    (
        "m3d",
        "conv3",
        "alex",
        "Perfect! I will bring trail mix and water for everyone",
        1738945800000,
    ),
    (
        "m3e",
        "conv3",
        "emily",
        "Amazing! It is going to be a great day. Do not forget sunscreen!",
        1738954800000,
    ),
    (
        "m4a",
        "conv4",
        "emily",
        "Thanks for the book recommendation! I am already halfway through it",
        1738940400000,
    ),
    ("m4b", "conv4", None, "Glad you are enjoying it! The second half gets even better", 1738951200000),
    ("m5a", "conv5", "lisa", "Are we still on for coffee tomorrow morning?", 1738936800000),
    ("m5b", "conv5", None, "Absolutely! Blue Bottle at 10?", 1738938600000),
    ("m5c", "conv5", "lisa", "Sounds great! I have some exciting news to share", 1738947600000),
    ("m6a", "conv6", None, "Hey, did you see the Warriors game last night?", 1738933200000),
    (
        "m6b",
        "conv6",
        "david",
        "Incredible comeback! Curry was unreal in the 4th quarter",
        1738936800000,
    ),
    ("m6c", "conv6", None, "We should catch the next home game together", 1738944000000),
    (
        "m7a",
        "conv7",
        "rachel",
        "Just landed! Flight was smooth. Thanks for the ride to the airport",
        1738929600000,
    ),
    ("m7b", "conv7", None, "Anytime! Have an amazing trip", 1738940400000),
    (
        "m8a",
        "conv8",
        "alex",
        "Found that restaurant we were talking about - it is called Nopa",
        1738929600000,
    ),
    ("m8b", "conv8", None, "Nice find! Let us go next week", 1738936800000),
]

_CONTACT_ORDER = ["sarah", "marcus", "emily", "david", "lisa", "alex", "rachel"]

_DRAFT = Draft(
    draft_id="draft1",
    conversation_id="conv1",
    body=(
        "Hey! That Thai place is Kin Khao at 55 Cyril Magnin St. Open til 10pm tonight "
        "and has 4.5 stars. Want me to book on OpenTable?"
    ),
    created_at=1738959000000,
)


def seed_demo(store: MessageStore) -> dict[str, int]:
    """Populate ``store`` with demo rows. Safe to run more than once."""

    for conv_id, name, people, last_ts, unread in _CONVERSATIONS:
        store.upsert_conversation(
            Conversation(
                conversation_id=conv_id,
                name=name,
                is_group=len(people) > 1,
                participants=[Participant(*_PEOPLE[key]) for key in people],
                last_message_ts=last_ts,
                unread_count=unread,
            )
        )
    for msg_id, conv_id, sender, body, ts in _MESSAGES:
        name, number = _PEOPLE[sender] if sender else ("Me", ME_NUMBER)
        store.upsert_message(
            MessageRecord(
                message_id=msg_id,
                conversation_id=conv_id,
                sender_name=name,
                sender_number=number,
                body=body,
                timestamp_ms=ts,
                status="delivered",
                is_from_me=sender is None,
            )
        )
    for index, key in enumerate(_CONTACT_ORDER, start=1):
        name, number = _PEOPLE[key]
        store.upsert_contact(Contact(contact_id=f"c{index}", name=name, number=number))
    store.upsert_draft(_DRAFT)
    return {
        "conversations": len(_CONVERSATIONS),
        "messages": len(_MESSAGES),
        "contacts": len(_CONTACT_ORDER),
        "drafts": 1,
    }

import json

from soundboard.models.events import (
    ClipSignal,
    Started,
    Stopped,
    decode_message,
    encode_batch,
)


class TestDecodeMessage:
    def test_single_started(self):
        batch = decode_message('{"Started": {"coll_id": "C1", "clip_id": "A"}}')

        assert len(batch) == 1
        event = batch.root[0]
        assert isinstance(event, Started)
        assert event.key == ("C1", "A")
        assert event.duration is None

    def test_started_with_duration(self):
        batch = decode_message('{"Started": {"coll_id": 0, "clip_id": 3, "duration": 2.5}}')

        event = batch.root[0]
        assert event.duration == 2.5
        assert event.key == ("0", "3")

    def test_batch_keeps_order(self):
        raw = json.dumps(
            [
                {"Started": {"coll_id": "C1", "clip_id": "A"}},
                {"Stopped": {"coll_id": "C1", "clip_id": "B"}},
            ]
        )
        events = list(decode_message(raw))

        assert [type(e) for e in events] == [Started, Stopped]
        assert [e.key for e in events] == [("C1", "A"), ("C1", "B")]

    def test_integer_and_string_ids_share_a_key(self):
        a = decode_message('{"Stopped": {"coll_id": 1, "clip_id": 2}}').root[0]
        b = decode_message('{"Stopped": {"coll_id": "1", "clip_id": "2"}}').root[0]
        assert a.key == b.key

    def test_malformed_json_is_dropped(self):
        assert len(decode_message("{not json")) == 0

    def test_unknown_variant_is_dropped(self):
        assert len(decode_message('{"Paused": {"coll_id": "C1", "clip_id": "A"}}')) == 0

    def test_bad_entry_does_not_drop_siblings(self):
        raw = json.dumps(
            [
                {"Started": {"coll_id": "C1"}},
                "garbage",
                {"Stopped": {"coll_id": "C1", "clip_id": "B"}},
            ]
        )
        events = list(decode_message(raw))
        assert len(events) == 1
        assert isinstance(events[0], Stopped)

    def test_empty_array(self):
        assert len(decode_message("[]")) == 0

    def test_encoded_batch_decodes_back(self):
        raw = encode_batch([Started(coll_id=0, clip_id=1, duration=1.0), Stopped(coll_id=0, clip_id=2)])

        assert json.loads(raw) == [
            {"Started": {"coll_id": 0, "clip_id": 1, "duration": 1.0}},
            {"Stopped": {"coll_id": 0, "clip_id": 2}},
        ]


class TestClipSignal:
    def test_from_started_carries_duration(self):
        signal = ClipSignal.from_event(Started(coll_id="C1", clip_id="A", duration=3.0))
        assert signal.event == "Started"
        assert signal.duration == 3.0

    def test_from_stopped(self):
        signal = ClipSignal.from_event(Stopped(coll_id="C1", clip_id="A"))
        assert signal.event == "Stopped"
        assert signal.duration is None
